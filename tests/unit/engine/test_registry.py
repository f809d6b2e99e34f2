"""Tests for the condition, action and placeholder registries."""

from __future__ import annotations

from typing import Any

import pytest
from structlog.testing import capture_logs

from narrative_engine.core.exceptions import RegistrationError
from narrative_engine.core.logging import OVERWRITE_SEVERITY
from narrative_engine.engine.registry import (
    ActionRecord,
    ActionRegistry,
    ConditionRegistry,
    PlaceholderRegistry,
    Registries,
)


class TestConditionRegistry:
    """Tests for ConditionRegistry."""

    def test_requires_prefix(self) -> None:
        """Test condition ids must start with an underscore."""
        with pytest.raises(RegistrationError) as exc_info:
            ConditionRegistry().register("no_prefix", lambda: True)

        assert exc_info.value.details["entry_id"] == "no_prefix"
        assert exc_info.value.details["registry"] == "condition"

    def test_register_and_get(self) -> None:
        """Test a registered function is returned by id."""
        registry = ConditionRegistry()
        func = registry.register("_always", lambda: True)

        assert registry.get("_always") is func
        assert "_always" in registry
        assert len(registry) == 1

    def test_decorator_form(self) -> None:
        """Test register works as a decorator."""
        registry = ConditionRegistry()

        @registry.register("_double")
        def double(value: str) -> float:
            return float(value) * 2

        assert registry.get("_double") is double
        assert double("2") == 4.0

    def test_overwrite_logs_notice(self) -> None:
        """Test replacing an entry logs an overwrite notice."""
        registry = ConditionRegistry()
        registry.register("_x", lambda: 1)

        with capture_logs() as logs:
            registry.register("_x", lambda: 2)

        assert registry.get("_x")() == 2
        assert logs[0]["severity"] == OVERWRITE_SEVERITY
        assert logs[0]["entry_id"] == "_x"


class TestPlaceholderRegistry:
    """Tests for PlaceholderRegistry."""

    def test_empty_id_rejected(self) -> None:
        """Test an empty id cannot be registered."""
        with pytest.raises(RegistrationError):
            PlaceholderRegistry().register("", lambda: "x")

    def test_unregister_and_clear(self) -> None:
        """Test entries can be removed."""
        registry = PlaceholderRegistry()
        registry.register("a", lambda: "a")
        registry.register("b", lambda: "b")

        registry.unregister("a")
        assert registry.ids() == ["b"]

        registry.clear()
        assert len(registry) == 0


class TestActionRegistry:
    """Tests for ActionRegistry."""

    def test_bare_callable(self) -> None:
        """Test a bare handler is wrapped in a record with flags."""
        registry = ActionRegistry()
        record = registry.register("enter", lambda payload: None, event_delayed=True)

        assert isinstance(record, ActionRecord)
        assert record.event_delayed is True
        assert record.on_game_load is False

    def test_mapping_defaults_to_noops(self) -> None:
        """Test missing handlers in a mapping default to no-ops."""
        record = ActionRegistry().register("choices", {"on_game_load": True})

        assert record.on_game_load is True
        assert record.action("anything") is None
        assert record.choice_modifier(object(), "anything") is None

    def test_record_is_stored_as_is(self) -> None:
        """Test a full ActionRecord is stored unchanged."""
        record = ActionRecord(event_delayed=True)
        assert ActionRegistry().register("scene", record) is record

    def test_decorator_form(self) -> None:
        """Test the decorator registers the function as the handler."""
        registry = ActionRegistry()
        seen: list[Any] = []

        @registry.register("collect", on_game_load=True)
        def collect(payload: Any) -> None:
            seen.append(payload)

        record = registry.get("collect")
        assert record is not None
        record.action(3)
        assert seen == [3]
        assert record.on_game_load is True

    def test_reregistration_replaces_handler(self) -> None:
        """Test only the newest handler remains."""
        registry = ActionRegistry()
        calls: list[str] = []
        registry.register("ping", lambda payload: calls.append("old"))
        registry.register("ping", lambda payload: calls.append("new"))

        registry.get("ping").action(None)

        assert calls == ["new"]


class TestRegistries:
    """Tests for the registries container."""

    def test_clear_empties_all(self) -> None:
        """Test clear empties every registry."""
        registries = Registries()
        registries.conditions.register("_a", lambda: 1)
        registries.actions.register("a", lambda payload: None)
        registries.placeholders.register("a", lambda: "a")

        registries.clear()

        assert len(registries.conditions) == 0
        assert len(registries.actions) == 0
        assert len(registries.placeholders) == 0
