"""Built-in conditions, placeholders and actions.

Registered by ``NarrativeSession.init()``. Content and mods may overwrite
any of them by registering the same id.

Conditions:
    _room_visited(room | dungeon.room): whether a room was visited.
    _scene: whether a scene is playing.
    _state(key): a generic session state value.
    _selected_character: the ``selected_character`` state value.

Placeholders:
    |flag(name)|: a flag value.
    |state(key)|: a session state value.

Actions:
    flag: ``"gold=5, xp>10, hp<3"`` sets, adds and subtracts; a mapping sets.
    state: ``"weather=rain, night=true"`` or a mapping.
    notification: queues a message for the player.
    redirect: plays another scene.
    enter, exit, scene: navigation, run only at delayed scheduling points.
    choices: offers a scene's choices; replayed when a saved game loads.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Literal

from narrative_engine.core.logging import get_logger
from narrative_engine.engine.expressions import to_number


if TYPE_CHECKING:
    from narrative_engine.engine.session import NarrativeSession

logger = get_logger(__name__)

FlagOperator = Literal["=", ">", "<"]


# =============================================================================
# Payload Parsing
# =============================================================================


def parse_flag_operations(data: str | Mapping[str, Any]) -> list[tuple[str, FlagOperator, float]]:
    """Parse a flag action payload into (key, operator, value) operations.

    ``=`` sets, ``>`` adds and ``<`` subtracts. A mapping payload sets every
    key. Invalid pairs are logged and skipped.

    Example:
        >>> parse_flag_operations("gold=5, xp>10")
        [('gold', '=', 5.0), ('xp', '>', 10.0)]
    """
    if isinstance(data, Mapping):
        return [(str(key), "=", to_number(value)) for key, value in data.items()]

    operations: list[tuple[str, FlagOperator, float]] = []
    for pair in (part.strip() for part in str(data).split(",")):
        operator: FlagOperator | None = next((op for op in ("=", ">", "<") if op in pair), None)
        if operator is None:
            logger.error('Invalid flag format, use "key=value", "key>value" or "key<value"', pair=pair)
            continue

        key, _, raw_value = (piece.strip() for piece in pair.partition(operator))
        if not key:
            logger.error('Invalid flag format, use "key=value", "key>value" or "key<value"', pair=pair)
            continue

        value = to_number(raw_value)
        if math.isnan(value):
            logger.error("Invalid flag value, flags must be numbers", key=key, value=raw_value)
            continue
        operations.append((key, operator, value))

    return operations


def parse_state_value(raw: str) -> Any:
    """Parse a state value: true/false/null, then number, else the string."""
    if raw == "true":
        return True
    if raw == "false":
        return False
    if raw == "null":
        return None
    number = to_number(raw)
    if raw and not math.isnan(number):
        return number
    return raw


def parse_state_assignments(data: str | Mapping[str, Any]) -> dict[str, Any]:
    """Parse a state action payload into key/value assignments."""
    if isinstance(data, Mapping):
        return dict(data)

    assignments: dict[str, Any] = {}
    for pair in (part.strip() for part in str(data).split(",")):
        key, sep, raw_value = (piece.strip() for piece in pair.partition("="))
        if not key or not sep:
            logger.error('Invalid state format, use "key=value"', pair=pair)
            continue
        assignments[key] = parse_state_value(raw_value)
    return assignments


# =============================================================================
# Registration
# =============================================================================


def register_builtins(session: NarrativeSession) -> None:
    """Register every built-in on a session."""
    register_conditions(session)
    register_placeholders(session)
    register_actions(session)


def register_conditions(session: NarrativeSession) -> None:
    @session.conditions.register("_room_visited")
    def room_visited(reference: str) -> bool:
        dungeon_id, _, room_id = reference.rpartition(".")
        dungeon = session.state.dungeons.get(dungeon_id or session.state.current_dungeon_id or "")
        return dungeon is not None and dungeon.is_room_visited(room_id)

    @session.conditions.register("_scene")
    def scene_active() -> bool:
        return bool(session.state.current_scene_id)

    @session.conditions.register("_state")
    def state_value(key: str) -> Any:
        return session.state.get_state(key)

    @session.conditions.register("_selected_character")
    def selected_character() -> Any:
        return session.state.get_state("selected_character")


def register_placeholders(session: NarrativeSession) -> None:
    @session.placeholders.register("flag")
    def flag_value(name: str) -> float:
        return session.state.get_flag(name)

    @session.placeholders.register("state")
    def state_value(key: str) -> Any:
        value = session.state.get_state(key)
        if isinstance(value, (Mapping, list)):
            return json.dumps(value)
        return value


def register_actions(session: NarrativeSession) -> None:
    @session.actions.register("flag")
    def flag(data: str | Mapping[str, Any]) -> None:
        for key, operator, value in parse_flag_operations(data):
            if operator == "=":
                session.state.set_flag(key, value)
            elif operator == ">":
                session.state.add_flag(key, value)
            else:
                session.state.add_flag(key, -value)
        logger.info("Flag operation", data=data)

    @session.actions.register("state")
    def set_state(data: str | Mapping[str, Any]) -> None:
        assignments = parse_state_assignments(data)
        for key, value in assignments.items():
            session.state.set_state(key, value)
        if assignments:
            logger.info("Updated game states", states=assignments)

    @session.actions.register("notification")
    def notification(text: str) -> None:
        session.state.notifications.append(str(text))
        logger.info("Notification queued", text=text)

    @session.actions.register("redirect")
    def redirect(value: str) -> None:
        session.execute({"scene": value})
        logger.info("Redirected to scene", scene=value)

    @session.actions.register("enter", event_delayed=True)
    def enter(value: str) -> None:
        dungeon_id, _, room_id = str(value).rpartition(".")
        if dungeon_id:
            session.state.current_dungeon_id = dungeon_id
            session.state.active_dungeon_id = None
        session.state.current_scene_id = None
        session.state.current_room_id = room_id
        session.state.used_dungeon().add_visited_room(room_id)
        logger.info("Entered room", room=room_id, dungeon=session.state.current_dungeon_id)

    @session.actions.register("exit", event_delayed=True)
    def exit_scene(_: Any = None) -> None:
        session.state.current_scene_id = None
        session.state.active_dungeon_id = None
        session.state.choices_scene_id = None
        logger.info("Exited current scene")

    @session.actions.register("scene", event_delayed=True)
    def scene(value: str | None) -> None:
        if not value:
            exit_scene()
            return
        dungeon_id, _, scene_id = str(value).rpartition(".")
        if dungeon_id:
            borrowed = dungeon_id != session.state.current_dungeon_id
            session.state.active_dungeon_id = dungeon_id if borrowed else None
        session.state.current_scene_id = scene_id
        session.state.choices_scene_id = None
        logger.info("Playing scene", scene=scene_id, dungeon=dungeon_id or session.state.current_dungeon_id)

    @session.actions.register("choices", on_game_load=True)
    def choices(value: str) -> None:
        session.state.choices_scene_id = str(value).rpartition(".")[2]
        logger.info("Offering choices", scene=session.state.choices_scene_id)


__all__ = [
    "parse_flag_operations",
    "parse_state_value",
    "parse_state_assignments",
    "register_builtins",
    "register_conditions",
    "register_placeholders",
    "register_actions",
]
