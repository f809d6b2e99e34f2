"""Action dispatch.

A directive object maps action ids to payloads:

    {"flag": "gold>10", "notification": "You found gold", "if": "gold < 100"}

Dispatch walks the keys in order and calls each registered action's handler
with its payload. Condition clause keys are metadata and are never
dispatched. A list payload calls the handler once per element.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from narrative_engine.core.constants import CONDITION_CLAUSE_KEYS
from narrative_engine.core.exceptions import ConditionError, DirectiveParseError
from narrative_engine.core.logging import get_logger
from narrative_engine.engine.loose_json import parse_directive
from narrative_engine.engine.registry import ActionRecord, ActionRegistry


if TYPE_CHECKING:
    from narrative_engine.models.content import Choice

logger = get_logger(__name__)


class ActionDispatcher:
    """Routes directive objects to registered action handlers."""

    def __init__(self, actions: ActionRegistry) -> None:
        self.actions = actions

    def dispatch(self, actions: Mapping[str, Any] | str, skip_delayed: bool = False) -> list[str]:
        """Run the actions named by a directive object.

        Handler failures are logged with their traceback and dispatch moves on
        to the next key. A ConditionError is an authoring error and propagates.

        Args:
            actions: Directive mapping, or loosely written JSON text of one.
            skip_delayed: Leave actions flagged ``event_delayed`` for later.

        Returns:
            Ids of the actions whose handlers were invoked.

        Raises:
            ConditionError: If a handler evaluates a broken condition.
        """
        if isinstance(actions, str):
            try:
                actions = parse_directive(actions)
            except DirectiveParseError as exc:
                logger.error("Cannot dispatch unparseable actions", error=str(exc))
                return []

        dispatched: list[str] = []
        for action_id, payload in actions.items():
            if action_id in CONDITION_CLAUSE_KEYS:
                continue

            record = self.actions.get(action_id)
            if record is None:
                logger.error("Action is not registered", action_id=action_id)
                continue
            if skip_delayed and record.event_delayed:
                continue

            if isinstance(payload, list):
                for item in payload:
                    self._invoke(action_id, record, item)
            else:
                self._invoke(action_id, record, payload)
            dispatched.append(action_id)

        return dispatched

    def _invoke(self, action_id: str, record: ActionRecord, payload: Any) -> None:
        try:
            record.action(payload)
        except ConditionError:
            raise
        except Exception:
            logger.exception("Action handler failed", action_id=action_id, payload=payload)

    def delayed_actions(self, actions: Mapping[str, Any]) -> dict[str, Any]:
        """Get the subset of actions flagged ``event_delayed``."""
        return {
            action_id: payload
            for action_id, payload in actions.items()
            if (record := self.actions.get(action_id)) is not None and record.event_delayed
        }

    def reload_actions(self, actions: Mapping[str, Any]) -> dict[str, Any]:
        """Get the subset of actions that replay when a saved game loads."""
        return {
            action_id: payload
            for action_id, payload in actions.items()
            if (record := self.actions.get(action_id)) is not None and record.on_game_load
        }

    def apply_choice_modifiers(self, choice: Choice, params: Mapping[str, Any]) -> None:
        """Let every action named in a choice's params modify the choice.

        Args:
            choice: The choice being built.
            params: The choice's directive params.
        """
        for action_id, payload in params.items():
            record = self.actions.get(action_id)
            if record is None:
                continue
            try:
                record.choice_modifier(choice, payload)
            except ConditionError:
                raise
            except Exception:
                logger.exception("Choice modifier failed", action_id=action_id, choice_id=choice.id)


__all__ = [
    "ActionDispatcher",
]
