"""Weighted and chance-based random draws for loot and encounter pools.

Two engines share one random source:

* ``draw_from_pool`` draws source keys through a PoolEntry. Each of the
  entry's entity groups selects a filtered slice of the pool's source
  collection and contributes ``count`` templates when it is selected. In
  weight mode one group is picked per round by weight; a group that cannot
  supply enough templates is excluded and another is rolled. In chance mode
  every group rolls its own chance each round.
* ``draw_from_collection`` samples values straight from a list or mapping,
  uniformly, by a weight field, or by a chance field.

With ``unique`` set, no key is returned twice within one call. Running short
is never an error: the engine logs a warning and returns what it found.
"""

from __future__ import annotations

import copy
import math
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from narrative_engine.core.config import DrawSettings
from narrative_engine.core.constants import CHANCE_SCALE
from narrative_engine.core.exceptions import DataNotFoundError, DrawError
from narrative_engine.core.logging import get_logger
from narrative_engine.engine.expressions import to_number
from narrative_engine.engine.rng import RandomSource, SeededRandom, roll_chance, weighted_index
from narrative_engine.models.pools import (
    CollectionSettings,
    PoolDefinition,
    PoolEntityGroup,
    PoolEntry,
    PoolSettings,
)


logger = get_logger(__name__)

ALL_KEY = "$all"


class DataSource(Protocol):
    """Where pool definitions find their source collections."""

    def get_data(self, source_id: str) -> Any:
        """Return an isolated copy of a data collection.

        Raises:
            DataNotFoundError: If the collection does not exist.
        """
        ...


# =============================================================================
# Helpers
# =============================================================================


def get_nested_value(obj: Any, path: str) -> Any:
    """Read a value through a dot-separated path.

    Mappings are traversed by key, sequences by integer index and other
    objects by attribute.

    Example:
        >>> get_nested_value({"a": {"b": {"c": 10}}}, "a.b.c")
        10

    Returns:
        The value, or None when any step is missing.
    """
    value = obj
    for part in path.split("."):
        if value is None or isinstance(value, (str, bytes, int, float)):
            return None
        if isinstance(value, Mapping):
            value = value.get(part)
        elif isinstance(value, Sequence):
            if not part.isdigit() or int(part) >= len(value):
                return None
            value = value[int(part)]
        else:
            value = getattr(value, part, None)
    return value


def to_entries(record: Mapping[str, Any], value_field: str = "value") -> list[dict[str, Any]]:
    """Turn ``{"a": 5}`` into ``[{"id": "a", value_field: 5}]``."""
    return [{"id": key, value_field: value} for key, value in record.items()]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def matches_filter(template: Any, path: str, expected: Any) -> bool:
    """Check one filter against a template.

    Args:
        template: Candidate template.
        path: Dotted field path inside the template.
        expected: Scalar, list, ``{"$all": [...]}`` or ``{"min": x, "max": y}``.

    Returns:
        False when the field is missing.
    """
    actual = get_nested_value(template, path)
    if actual is None:
        return False

    if isinstance(expected, Mapping):
        if ALL_KEY in expected:
            required = expected[ALL_KEY]
            if not isinstance(actual, list):
                return False
            if not isinstance(required, list):
                required = [required]
            return all(item in actual for item in required)
        if "min" in expected or "max" in expected:
            if not _is_number(actual):
                return False
            low, high = expected.get("min"), expected.get("max")
            bounds = [to_number(bound) for bound in (low, high) if bound is not None]
            if any(math.isnan(bound) for bound in bounds):
                logger.warning("Range filter bounds must be numbers", path=path, min=low, max=high)
                return False
            if low is not None and actual < to_number(low):
                return False
            return high is None or actual <= to_number(high)
        return actual == expected

    if isinstance(expected, list):
        if isinstance(actual, list):
            return any(item in expected for item in actual)
        return actual in expected

    if isinstance(actual, list):
        return expected in actual
    return actual == expected


def matches_filters(
    template: Any,
    include: Mapping[str, Any] | None = None,
    exclude: Mapping[str, Any] | None = None,
) -> bool:
    """Check a template against include and exclude filter tables.

    Every include filter must match; no exclude filter may match.
    """
    for path, expected in (include or {}).items():
        if not matches_filter(template, path, expected):
            return False
    for path, expected in (exclude or {}).items():
        if matches_filter(template, path, expected):
            return False
    return True


def _keyed_items(data: Any) -> list[tuple[str, Any]]:
    if isinstance(data, Mapping):
        return [(str(key), value) for key, value in data.items()]
    if isinstance(data, (list, tuple)):
        keyed: dict[str, Any] = {}
        for index, item in enumerate(data):
            item_id = item.get("id") if isinstance(item, Mapping) else None
            key = str(item_id) if item_id is not None else str(index)
            if key in keyed:
                logger.warning("Duplicate source key, keeping the first item", key=key, index=index)
                continue
            keyed[key] = item
        return list(keyed.items())
    raise DrawError("Source data must be a list or a mapping", details={"data_type": type(data).__name__})


# =============================================================================
# Data Registry
# =============================================================================


class DataRegistry:
    """In-memory data collections keyed by source path id."""

    def __init__(self, collections: Mapping[str, Any] | None = None) -> None:
        self._collections: dict[str, Any] = dict(collections or {})

    def register(self, source_id: str, data: Any) -> None:
        self._collections[source_id] = data

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._collections

    def get_data(self, source_id: str) -> Any:
        """Return a deep copy of a collection, safe for callers to mutate.

        Raises:
            DataNotFoundError: If no collection is registered under the id.
        """
        if source_id not in self._collections:
            raise DataNotFoundError(f"No data for source {source_id}", source=source_id)
        return copy.deepcopy(self._collections[source_id])


# =============================================================================
# Draw Engine
# =============================================================================


class DrawEngine:
    """Pool and collection draws over a session's pool tables.

    Example:
        >>> engine = DrawEngine(DataRegistry({"items": {"sword": {"tier": 1}}}))
        >>> engine.add_definition(PoolDefinition(id="loot", source="items"))
        >>> engine.add_entry(PoolEntry(id="chest", pool="loot", entities=[PoolEntityGroup()]))
        >>> engine.draw_from_pool("chest")
        ['sword']
    """

    def __init__(
        self,
        data: DataSource,
        *,
        rng: RandomSource | None = None,
        settings: DrawSettings | None = None,
    ) -> None:
        """Initialize the draw engine.

        Args:
            data: Supplies source collections by id.
            rng: Random source; a SeededRandom from the settings seed when omitted.
            settings: Draw settings; defaults apply when omitted.
        """
        self.settings = settings or DrawSettings()
        self.data = data
        self.rng = rng or SeededRandom(seed=self.settings.seed)
        self.definitions: dict[str, PoolDefinition] = {}
        self.entries: dict[str, PoolEntry] = {}

    def add_definition(self, definition: PoolDefinition | Mapping[str, Any]) -> PoolDefinition:
        if not isinstance(definition, PoolDefinition):
            definition = PoolDefinition.model_validate(definition)
        self.definitions[definition.id] = definition
        return definition

    def add_entry(self, entry: PoolEntry | Mapping[str, Any]) -> PoolEntry:
        if not isinstance(entry, PoolEntry):
            entry = PoolEntry.model_validate(entry)
        self.entries[entry.id] = entry
        return entry

    def clear(self) -> None:
        self.definitions.clear()
        self.entries.clear()

    # -------------------------------------------------------------------------
    # Primitives
    # -------------------------------------------------------------------------

    def pick_uniform(self, candidates: Sequence[Any], count: int, unique: bool = False) -> list[Any]:
        """Pick ``count`` candidates by uniform random index.

        With ``unique``, each candidate is removed once picked, so fewer than
        ``count`` may come back.
        """
        if unique:
            pool = list(candidates)
            picked = []
            for _ in range(count):
                if not pool:
                    break
                picked.append(pool.pop(self.rng.randrange(len(pool))))
            return picked
        if not candidates:
            return []
        return [candidates[self.rng.randrange(len(candidates))] for _ in range(count)]

    def _pool_source(self, entry: PoolEntry) -> list[tuple[str, Any]]:
        definition = self.definitions.get(entry.pool)
        if definition is None:
            raise DrawError(f"Pool definition {entry.pool} not found", pool_id=entry.pool)
        return _keyed_items(self.data.get_data(definition.source))

    def _candidates(
        self,
        source: list[tuple[str, Any]],
        group: PoolEntityGroup,
        taken: set[str],
    ) -> list[str]:
        return [
            key
            for key, template in source
            if key not in taken and matches_filters(template, group.filters_include, group.filters_exclude)
        ]

    # -------------------------------------------------------------------------
    # Pools
    # -------------------------------------------------------------------------

    def draw_from_pool(
        self,
        entry_or_id: PoolEntry | Mapping[str, Any] | str,
        settings: PoolSettings | Mapping[str, Any] | None = None,
    ) -> list[str]:
        """Draw source keys through a pool entry.

        Args:
            entry_or_id: A pool entry, its field mapping, or a registered entry id.
            settings: Draw mode, rounds and uniqueness.

        Returns:
            Source collection keys in draw order. Empty when the entry, its
            definition or its data cannot be found.
        """
        if settings is None:
            settings = PoolSettings(draws=self.settings.default_count)
        elif not isinstance(settings, PoolSettings):
            settings = PoolSettings.model_validate(settings)

        if isinstance(entry_or_id, str):
            entry = self.entries.get(entry_or_id)
            if entry is None:
                logger.error("Pool entry not found", entry_id=entry_or_id)
                return []
        elif isinstance(entry_or_id, PoolEntry):
            entry = entry_or_id
        else:
            entry = PoolEntry.model_validate(entry_or_id)

        try:
            source = self._pool_source(entry)
        except DrawError as exc:
            logger.error("Cannot draw from pool", entry_id=entry.id, error=str(exc))
            return []

        if settings.type == "chance":
            return self._draw_chance(entry, source, settings)
        return self._draw_weight(entry, source, settings)

    def _draw_weight(self, entry: PoolEntry, source: list[tuple[str, Any]], settings: PoolSettings) -> list[str]:
        drawn: list[str] = []
        taken: set[str] = set()
        groups = entry.entities

        for draw_round in range(settings.draws):
            excluded: set[int] = set()
            while True:
                weights = [0.0 if i in excluded else self._group_weight(group) for i, group in enumerate(groups)]
                index = weighted_index(self.rng, weights)
                if index is None:
                    logger.warning(
                        "Every entity group is excluded, stopping the draw",
                        entry_id=entry.id,
                        round=draw_round,
                        drawn=len(drawn),
                    )
                    return drawn

                group = groups[index]
                candidates = self._candidates(source, group, taken if settings.unique else set())
                needed = group.count if settings.unique else min(group.count, 1)
                if len(candidates) < needed:
                    logger.debug(
                        "Entity group cannot satisfy its count, re-rolling",
                        entry_id=entry.id,
                        group=group.label,
                        candidates=len(candidates),
                        count=group.count,
                    )
                    excluded.add(index)
                    continue

                picks = self.pick_uniform(candidates, group.count, settings.unique)
                drawn.extend(picks)
                taken.update(picks)
                break

        return drawn

    def _draw_chance(self, entry: PoolEntry, source: list[tuple[str, Any]], settings: PoolSettings) -> list[str]:
        drawn: list[str] = []
        taken: set[str] = set()

        for _ in range(settings.draws):
            for group in entry.entities:
                if not roll_chance(self.rng, self._group_chance(group), scale=CHANCE_SCALE):
                    continue
                candidates = self._candidates(source, group, taken if settings.unique else set())
                picks = self.pick_uniform(candidates, group.count, settings.unique)
                if len(picks) < group.count:
                    logger.warning(
                        "Entity group ran short of templates",
                        entry_id=entry.id,
                        group=group.label,
                        requested=group.count,
                        delivered=len(picks),
                    )
                drawn.extend(picks)
                taken.update(picks)

        return drawn

    def _group_weight(self, group: PoolEntityGroup) -> float:
        return self.settings.default_weight if group.weight is None else group.weight

    def _group_chance(self, group: PoolEntityGroup) -> float:
        return self.settings.default_chance if group.chance is None else group.chance

    # -------------------------------------------------------------------------
    # Collections
    # -------------------------------------------------------------------------

    def _item_number(self, item: Any, field: str, default: float) -> float:
        value = get_nested_value(item, field) if isinstance(item, Mapping) else None
        return float(value) if _is_number(value) else default

    def draw_from_collection(
        self,
        data: Sequence[Any] | Mapping[str, Any],
        settings: CollectionSettings | Mapping[str, Any] | None = None,
    ) -> list[Any]:
        """Sample values from a list or mapping.

        Args:
            data: Items to draw from. Mapping values are drawn, keyed by
                their mapping key.
            settings: Sampling mode, count and uniqueness.

        Returns:
            Drawn values in draw order.
        """
        if settings is None:
            settings = CollectionSettings(count=self.settings.default_count)
        elif not isinstance(settings, CollectionSettings):
            settings = CollectionSettings.model_validate(settings)

        values = list(data.values()) if isinstance(data, Mapping) else list(data)
        positions = list(range(len(values)))

        if settings.type == "chance":
            drawn_positions = self._collection_chance(values, settings)
        elif settings.type == "weight":
            drawn_positions = self._collection_weight(values, settings)
        else:
            drawn_positions = self.pick_uniform(positions, settings.count, settings.unique)

        if settings.type != "chance" and len(drawn_positions) < settings.count:
            logger.warning(
                "Collection ran short of items",
                mode=settings.type,
                requested=settings.count,
                delivered=len(drawn_positions),
            )
        return [values[position] for position in drawn_positions]

    def _collection_weight(self, values: list[Any], settings: CollectionSettings) -> list[int]:
        weights = [self._item_number(item, settings.weight_field, self.settings.default_weight) for item in values]
        drawn: list[int] = []
        for _ in range(settings.count):
            index = weighted_index(self.rng, weights)
            if index is None:
                break
            drawn.append(index)
            if settings.unique:
                weights[index] = 0.0
        return drawn

    def _collection_chance(self, values: list[Any], settings: CollectionSettings) -> list[int]:
        chances = [self._item_number(item, settings.chance_field, self.settings.default_chance) for item in values]
        drawn: list[int] = []
        taken: set[int] = set()
        for _ in range(settings.count):
            for index, chance in enumerate(chances):
                if settings.unique and index in taken:
                    continue
                if roll_chance(self.rng, chance, scale=CHANCE_SCALE):
                    drawn.append(index)
                    taken.add(index)
        return drawn


__all__ = [
    "DataSource",
    "get_nested_value",
    "to_entries",
    "matches_filter",
    "matches_filters",
    "DataRegistry",
    "DrawEngine",
]
