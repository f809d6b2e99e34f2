"""Tests for content lines and choices."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from narrative_engine.models.content import Choice, ContentLine


class TestContentLine:
    """Tests for ContentLine."""

    def test_defaults(self) -> None:
        """Test optional fields default to empty."""
        line = ContentLine(id="$greeting")
        assert line.val == ""
        assert line.params is None
        assert line.anchor is None

    def test_id_required(self) -> None:
        """Test an empty id is rejected."""
        with pytest.raises(ValidationError):
            ContentLine(id="")

    def test_immutable(self) -> None:
        """Test lines cannot be mutated during play."""
        line = ContentLine(id="a", val="x")
        with pytest.raises(ValidationError):
            line.val = "y"  # type: ignore[misc]


class TestChoice:
    """Tests for Choice."""

    def test_defaults_visible_and_available(self) -> None:
        """Test a bare choice is shown and can be taken."""
        choice = Choice(id="c", name="Wait")
        assert choice.is_visible()
        assert choice.is_available()
        assert choice.display_name() == "Wait"

    def test_callables_are_evaluated_each_time(self) -> None:
        """Test visibility follows its callable."""
        open_door = {"value": False}
        choice = Choice(id="c", visibility=lambda: open_door["value"])

        assert not choice.is_visible()
        open_door["value"] = True
        assert choice.is_visible()

    def test_name_override(self) -> None:
        """Test an override replaces the display name."""
        choice = Choice(id="c", name="Wait", name_override=lambda: "Rest")
        assert choice.display_name() == "Rest"
