"""Mutable session state read and written by conditions and actions.

This is the in-memory stand-in for the host's dungeon and core systems: the
flag tables the expression evaluator reads, the scene pointers the built-in
navigation actions move, and the generic key/value states.

Flags are numeric and dungeon-scoped. A flag key is either ``name`` (the
dungeon in use) or ``dungeonId.name``. Reading a flag that was never set
yields 0.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from narrative_engine.core.exceptions import SessionStateError


VISITED_CHOICE_SYMBOLS = ("!", ">", "~")


class DungeonState(BaseModel):
    """Per-dungeon progress: flags, visited rooms and remembered choices."""

    model_config = ConfigDict(validate_assignment=True)

    dungeon_id: str
    flags: dict[str, float] = Field(default_factory=dict)
    visited_rooms: set[str] = Field(default_factory=set)
    visited_choices: set[str] = Field(default_factory=set)

    def get_flag(self, flag_id: str) -> float:
        return self.flags.get(flag_id, 0)

    def set_flag(self, flag_id: str, value: float) -> None:
        self.flags[flag_id] = value

    def add_flag(self, flag_id: str, value: float) -> None:
        self.flags[flag_id] = self.get_flag(flag_id) + value

    def remove_flag(self, flag_id: str) -> bool:
        return self.flags.pop(flag_id, None) is not None

    def add_visited_room(self, room_id: str) -> None:
        self.visited_rooms.add(room_id)

    def is_room_visited(self, room_id: str) -> bool:
        return room_id in self.visited_rooms

    def add_visited_choice(self, choice_id: str) -> None:
        """Remember a taken choice; only symbol-prefixed ids are tracked."""
        if choice_id[:1] in VISITED_CHOICE_SYMBOLS:
            self.visited_choices.add(choice_id)


class SessionState(BaseModel):
    """Everything the engine mutates during play.

    Attributes:
        dungeons: Dungeon states by dungeon id, created on first write.
        current_dungeon_id: Dungeon the party is in.
        active_dungeon_id: Dungeon whose content is being played, when it
            differs from the current one (e.g. a scene borrowed from another).
        current_room_id: Room the party is in.
        current_scene_id: Scene being played, if any.
        choices_scene_id: Scene whose choices are on offer, if any.
        talking_character_id: Speaker of the most recently resolved line.
        states: Generic host key/value state.
        notifications: Messages queued for the player.
    """

    dungeons: dict[str, DungeonState] = Field(default_factory=dict)
    current_dungeon_id: str | None = None
    active_dungeon_id: str | None = None
    current_room_id: str | None = None
    current_scene_id: str | None = None
    choices_scene_id: str | None = None
    talking_character_id: str | None = None
    states: dict[str, Any] = Field(default_factory=dict)
    notifications: list[str] = Field(default_factory=list)

    def get_dungeon_id(self, dungeon_id: str | None = None) -> str:
        """Resolve which dungeon a lookup refers to.

        Args:
            dungeon_id: Explicit dungeon id, if the caller has one.

        Returns:
            The explicit id, else the active dungeon, else the current one.

        Raises:
            SessionStateError: If no dungeon can be determined.
        """
        if dungeon_id:
            return dungeon_id
        if self.active_dungeon_id:
            return self.active_dungeon_id
        if self.current_dungeon_id:
            return self.current_dungeon_id
        raise SessionStateError("No dungeon id: no dungeon has been entered")

    def dungeon(self, dungeon_id: str) -> DungeonState:
        """Get a dungeon's state, creating it on first use."""
        state = self.dungeons.get(dungeon_id)
        if state is None:
            state = DungeonState(dungeon_id=dungeon_id)
            self.dungeons[dungeon_id] = state
        return state

    def used_dungeon(self) -> DungeonState:
        """Get the state of the dungeon currently in use."""
        return self.dungeon(self.get_dungeon_id())

    def _split_flag_key(self, key: str) -> tuple[str, str]:
        parts = key.split(".")
        if len(parts) == 2:
            return parts[0], parts[1]
        return self.active_dungeon_id or self.current_dungeon_id or "", key

    def get_flag(self, key: str) -> float:
        dungeon_id, flag_id = self._split_flag_key(key)
        state = self.dungeons.get(dungeon_id)
        if state is None:
            return 0
        return state.get_flag(flag_id)

    def set_flag(self, key: str, value: float) -> None:
        dungeon_id, flag_id = self._split_flag_key(key)
        self.dungeon(dungeon_id).set_flag(flag_id, value)

    def add_flag(self, key: str, value: float) -> None:
        dungeon_id, flag_id = self._split_flag_key(key)
        self.dungeon(dungeon_id).add_flag(flag_id, value)

    def get_state(self, key: str, default: Any = None) -> Any:
        return self.states.get(key, default)

    def set_state(self, key: str, value: Any) -> None:
        self.states[key] = value


__all__ = [
    "VISITED_CHOICE_SYMBOLS",
    "DungeonState",
    "SessionState",
]
