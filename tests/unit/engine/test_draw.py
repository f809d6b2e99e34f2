"""Tests for pool and collection draws."""

from __future__ import annotations

from collections import Counter
from types import SimpleNamespace
from typing import Any

import pytest
from structlog.testing import capture_logs

from narrative_engine.core.config import DrawSettings
from narrative_engine.core.exceptions import DataNotFoundError
from narrative_engine.engine.draw import (
    DataRegistry,
    DrawEngine,
    get_nested_value,
    matches_filter,
    matches_filters,
    to_entries,
)
from narrative_engine.engine.rng import SeededRandom
from narrative_engine.engine.session import NarrativeSession
from narrative_engine.models.pools import PoolDefinition, PoolEntityGroup, PoolEntry


WEAPONS = {"dagger", "sword", "axe"}
ARMOR = {"shield", "helm"}


@pytest.fixture
def engine(loot_templates: dict[str, dict[str, Any]]) -> DrawEngine:
    """Provide a seeded draw engine over the loot collection."""
    draw = DrawEngine(DataRegistry({"items/loot": loot_templates}), rng=SeededRandom(seed=5))
    draw.add_definition(PoolDefinition(id="loot", source="items/loot"))
    return draw


class TestHelpers:
    """Tests for path and filter helpers."""

    def test_get_nested_value(self) -> None:
        """Test traversal through mappings, sequences and attributes."""
        data = {"a": {"b": [{"c": 10}, {"c": 20}]}, "obj": SimpleNamespace(name="x")}

        assert get_nested_value(data, "a.b.1.c") == 20
        assert get_nested_value(data, "obj.name") == "x"
        assert get_nested_value(data, "a.missing.c") is None
        assert get_nested_value(data, "a.b.9") is None
        assert get_nested_value(data, "a.b.0.c.deeper") is None

    def test_to_entries(self) -> None:
        """Test mapping records become id/value entries."""
        assert to_entries({"a": 5, "b": 6}, "weight") == [{"id": "a", "weight": 5}, {"id": "b", "weight": 6}]

    @pytest.mark.parametrize(
        ("path", "expected", "result"),
        [
            ("type", "weapon", True),
            ("type", "armor", False),
            ("tags", "blade", True),
            ("type", ["armor", "weapon"], True),
            ("tags", ["heavy", "rare"], False),
            ("tags", ["light", "rare"], True),
            ("tags", {"$all": ["blade", "light"]}, True),
            ("tags", {"$all": ["blade", "heavy"]}, False),
            ("tier", {"min": 1, "max": 1}, True),
            ("tier", {"min": 2}, False),
            ("tier", {"min": "1", "max": "2"}, True),
            ("type", {"max": 3}, False),
            ("weight", "heavy", False),
        ],
    )
    def test_matches_filter(
        self,
        loot_templates: dict[str, dict[str, Any]],
        path: str,
        expected: Any,
        result: bool,
    ) -> None:
        """Test each filter form against the dagger."""
        assert matches_filter(loot_templates["dagger"], path, expected) is result

    def test_matches_filters(self, loot_templates: dict[str, dict[str, Any]]) -> None:
        """Test include and exclude combine."""
        sword = loot_templates["sword"]
        assert matches_filters(sword, {"type": "weapon"}, {"tags": "heavy"})
        assert not matches_filters(loot_templates["axe"], {"type": "weapon"}, {"tags": "heavy"})
        assert matches_filters(sword)

    def test_non_numeric_range_bounds_never_match(self, loot_templates: dict[str, dict[str, Any]]) -> None:
        """Test a range with a non-numeric bound rejects the template and warns."""
        with capture_logs() as logs:
            assert not matches_filter(loot_templates["dagger"], "tier", {"min": "low"})
            assert not matches_filter(loot_templates["dagger"], "tier", {"min": 0, "max": {"x": 1}})

        assert [entry["event"] for entry in logs] == ["Range filter bounds must be numbers"] * 2
        assert logs[0]["log_level"] == "warning"


class TestDataRegistry:
    """Tests for DataRegistry."""

    def test_returns_isolated_copy(self) -> None:
        """Test callers cannot mutate the stored collection."""
        registry = DataRegistry({"items": {"a": {"tier": 1}}})
        copy = registry.get_data("items")
        copy["a"]["tier"] = 99

        assert registry.get_data("items")["a"]["tier"] == 1

    def test_missing_source(self) -> None:
        """Test a missing collection raises."""
        with pytest.raises(DataNotFoundError) as exc_info:
            DataRegistry().get_data("nowhere")
        assert exc_info.value.details["source"] == "nowhere"
        assert "nowhere" not in DataRegistry()


class TestPoolDraws:
    """Tests for draw_from_pool."""

    def test_weight_draws_follow_filters(self, pool_session: NarrativeSession) -> None:
        """Test every key drawn comes from one of the groups' slices."""
        drawn = pool_session.draw_from_pool("chest", {"draws": 20})

        assert len(drawn) == 20
        assert set(drawn) <= WEAPONS | ARMOR

    def test_weights_bias_the_draw(self, pool_session: NarrativeSession) -> None:
        """Test the heavier group is picked more often."""
        drawn = pool_session.draw_from_pool("chest", {"draws": 400})
        counts = Counter("weapon" if key in WEAPONS else "armor" for key in drawn)

        assert counts["weapon"] > counts["armor"]

    def test_unique_draws_exhaust_then_stop(self, pool_session: NarrativeSession) -> None:
        """Test unique draws never repeat and stop when every group is empty."""
        with capture_logs() as logs:
            drawn = pool_session.draw_from_pool("chest", {"draws": 6, "unique": True})

        assert sorted(drawn) == sorted(WEAPONS | ARMOR)
        assert any(entry["event"] == "Every entity group is excluded, stopping the draw" for entry in logs)

    def test_group_short_of_count_is_excluded(self, pool_session: NarrativeSession) -> None:
        """Test a group that cannot supply its count yields to another."""
        drawn = pool_session.draw_from_pool("greedy", {"draws": 1, "unique": True})

        assert len(drawn) == 1
        assert drawn[0] in {"dagger", "shield", "potion"}

    def test_chance_mode(self, pool_session: NarrativeSession) -> None:
        """Test every group rolls its own chance."""
        drawn = pool_session.draw_from_pool("hoard", {"type": "chance", "unique": True})
        assert sorted(drawn) == ["elixir", "helm"]

    def test_chance_mode_shortfall_warns(self, pool_session: NarrativeSession) -> None:
        """Test a chance group that runs dry logs a warning."""
        with capture_logs() as logs:
            drawn = pool_session.draw_from_pool("hoard", {"type": "chance", "draws": 2, "unique": True})

        assert sorted(drawn) == ["elixir", "helm"]
        assert any(entry["event"] == "Entity group ran short of templates" for entry in logs)

    def test_missing_definition(self, pool_session: NarrativeSession) -> None:
        """Test an entry whose pool is unknown draws nothing."""
        with capture_logs() as logs:
            assert pool_session.draw_from_pool("orphan") == []
        assert logs[0]["log_level"] == "error"

    def test_missing_entry(self, pool_session: NarrativeSession) -> None:
        """Test an unknown entry id draws nothing."""
        with capture_logs() as logs:
            assert pool_session.draw_from_pool("nope") == []
        assert logs[0]["entry_id"] == "nope"

    def test_inline_entry(self, engine: DrawEngine) -> None:
        """Test an entry can be passed directly instead of by id."""
        entry = PoolEntry(pool="loot", entities=[PoolEntityGroup(filters_include={"type": "consumable"})])
        assert set(engine.draw_from_pool(entry, {"draws": 5})) <= {"potion", "elixir"}

    def test_seeded_draws_repeat(self, loot_templates: dict[str, dict[str, Any]]) -> None:
        """Test equal seeds draw the same keys."""

        def run() -> list[str]:
            draw = DrawEngine(DataRegistry({"items": loot_templates}), rng=SeededRandom(seed=11))
            draw.add_definition({"id": "loot", "source": "items"})
            draw.add_entry({"id": "any", "pool": "loot", "entities": [{}]})
            return draw.draw_from_pool("any", {"draws": 8})

        assert run() == run()

    def test_list_source_keyed_by_id(self) -> None:
        """Test list sources use item ids as keys."""
        draw = DrawEngine(DataRegistry({"mobs": [{"id": "wolf"}, {"id": "bear"}]}), rng=SeededRandom(seed=2))
        draw.add_definition({"id": "wild", "source": "mobs"})
        draw.add_entry({"id": "forest", "pool": "wild", "entities": [{"count": 2}]})

        assert sorted(draw.draw_from_pool("forest", {"unique": True})) == ["bear", "wolf"]

    def test_duplicate_list_ids_keep_first(self) -> None:
        """Test a repeated item id is kept once so unique draws never repeat it."""
        mobs = [{"id": "wolf", "pack": 1}, {"id": "bear"}, {"id": "wolf", "pack": 2}]
        draw = DrawEngine(DataRegistry({"mobs": mobs}), rng=SeededRandom(seed=4))
        draw.add_definition({"id": "wild", "source": "mobs"})
        draw.add_entry({"id": "forest", "pool": "wild", "entities": [{"count": 1}]})

        with capture_logs() as logs:
            drawn = draw.draw_from_pool("forest", {"draws": 5, "unique": True})

        assert sorted(drawn) == ["bear", "wolf"]
        assert any(entry["event"] == "Duplicate source key, keeping the first item" for entry in logs)

    def test_non_numeric_range_filter_draws_nothing(self, engine: DrawEngine) -> None:
        """Test a bad range filter excludes its group instead of failing the draw."""
        entry = PoolEntry(pool="loot", entities=[PoolEntityGroup(filters_include={"tier": {"max": "high"}})])

        with capture_logs() as logs:
            drawn = engine.draw_from_pool(entry, {"draws": 2})

        assert drawn == []
        assert logs[-1]["event"] == "Every entity group is excluded, stopping the draw"

    def test_group_defaults_come_from_settings(self, loot_templates: dict[str, dict[str, Any]]) -> None:
        """Test groups without a weight or chance use the configured defaults."""
        settings = DrawSettings(default_weight=5.0, default_chance=100.0)
        draw = DrawEngine(DataRegistry({"items": loot_templates}), rng=SeededRandom(seed=3), settings=settings)
        draw.add_definition({"id": "loot", "source": "items"})
        draw.add_entry(
            {
                "id": "mixed",
                "pool": "loot",
                "entities": [
                    {"id": "unweighted", "filters_include": {"type": "weapon"}},
                    {"id": "armor", "weight": 0, "filters_include": {"type": "armor"}},
                ],
            }
        )

        assert set(draw.draw_from_pool("mixed", {"draws": 10})) <= WEAPONS
        assert len(draw.draw_from_pool("mixed", {"type": "chance", "draws": 3})) == 6


class TestCollectionDraws:
    """Tests for draw_from_collection."""

    def test_uniform_unique(self, engine: DrawEngine) -> None:
        """Test unique uniform draws never repeat."""
        drawn = engine.draw_from_collection(list(range(10)), {"count": 6, "unique": True})

        assert len(drawn) == 6
        assert len(set(drawn)) == 6

    def test_uniform_unique_shortfall(self, engine: DrawEngine) -> None:
        """Test asking for more unique items than exist warns."""
        with capture_logs() as logs:
            drawn = engine.draw_from_collection(["a", "b"], {"count": 5, "unique": True})

        assert sorted(drawn) == ["a", "b"]
        assert logs[0]["event"] == "Collection ran short of items"

    def test_weight_unique_no_repeats(self, engine: DrawEngine) -> None:
        """Test a weighted unique draw skips zero weights and never repeats."""
        items = [{"id": "a", "weight": 5}, {"id": "b", "weight": 0}, {"id": "c", "weight": 1}]
        drawn = engine.draw_from_collection(items, {"type": "weight", "count": 2, "unique": True})

        assert sorted(item["id"] for item in drawn) == ["a", "c"]

    def test_weight_default(self, engine: DrawEngine) -> None:
        """Test items without a weight use the default weight."""
        drawn = engine.draw_from_collection({"x": "X", "y": "Y"}, {"type": "weight", "count": 4})
        assert set(drawn) <= {"X", "Y"}
        assert len(drawn) == 4

    def test_weight_field(self, engine: DrawEngine) -> None:
        """Test the weight can be read from a nested field."""
        items = [{"odds": {"w": 0}}, {"odds": {"w": 2}}]
        drawn = engine.draw_from_collection(items, {"type": "weight", "count": 3, "weight_field": "odds.w"})
        assert drawn == [items[1]] * 3

    def test_chance(self, engine: DrawEngine) -> None:
        """Test chance mode rolls every item each round."""
        items = [{"id": "always", "chance": 100}, {"id": "never", "chance": 0}]

        repeated = engine.draw_from_collection(items, {"type": "chance", "count": 3})
        unique = engine.draw_from_collection(items, {"type": "chance", "count": 3, "unique": True})

        assert [item["id"] for item in repeated] == ["always"] * 3
        assert [item["id"] for item in unique] == ["always"]

    def test_default_count_from_settings(self, loot_templates: dict[str, dict[str, Any]]) -> None:
        """Test the configured default count applies when no settings are given."""
        draw = DrawEngine(DataRegistry(), rng=SeededRandom(seed=1), settings=DrawSettings(default_count=3))
        assert len(draw.draw_from_collection(loot_templates)) == 3
