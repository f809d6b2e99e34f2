"""Content models: directive-bearing lines and player choices.

Content lines arrive already tokenized from the upstream content compiler.
Their ``val`` is the raw directive text fed to the resolver. Lines are loaded
once per session and never mutated during play.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from pydantic import BaseModel, ConfigDict, Field


if TYPE_CHECKING:
    from narrative_engine.engine.session import NarrativeSession


class ContentLine(BaseModel):
    """A single authored line of a dungeon.

    Attributes:
        id: Line id, unique within its dungeon. Template lines start with "$".
        val: Raw directive text.
        params: Optional structured parameters attached by the compiler.
        anchor: Optional anchor used by navigation.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(min_length=1, description="Line id within its dungeon")
    val: str = Field(default="", description="Raw directive text")
    params: dict[str, Any] | None = Field(default=None, description="Compiled line parameters")
    anchor: str | None = Field(default=None, description="Navigation anchor")


def _always_true() -> bool:
    return True


@dataclass
class Choice:
    """A choice offered to the player.

    Visibility (``if``/``ifOr``) and availability (``active``/``activeOr``) are
    evaluated lazily each time they are queried, so they follow flag changes
    without being rebuilt.

    Attributes:
        id: Choice id. Ids starting with "!", ">" or "~" are remembered as
            visited once taken.
        name: Display name.
        params: Directive params; condition clauses plus actions to run.
        visibility: Evaluates whether the choice is shown.
        availability: Evaluates whether the choice can be taken.
        name_override: Optional display name producer set by choice modifiers.
    """

    id: str = ""
    name: str = ""
    params: dict[str, Any] = field(default_factory=dict)
    visibility: Callable[[], bool] = _always_true
    availability: Callable[[], bool] = _always_true
    name_override: Callable[[], str] | None = None

    def is_visible(self) -> bool:
        """Check whether the choice should be shown."""
        return bool(self.visibility())

    def is_available(self) -> bool:
        """Check whether the choice can currently be taken."""
        return bool(self.availability())

    def display_name(self) -> str:
        """Get the name to display, honoring choice modifiers."""
        if self.name_override is not None:
            return self.name_override()
        return self.name

    def do(self, session: NarrativeSession) -> bool:
        """Take the choice: record it as visited and run its actions.

        Args:
            session: Session whose registries execute the params.

        Returns:
            False if the choice was unavailable and nothing happened.
        """
        if not self.is_available():
            return False

        if self.id:
            session.state.used_dungeon().add_visited_choice(self.id)
        session.execute(self.params)
        return True


__all__ = [
    "ContentLine",
    "Choice",
]
