"""Registries for host-extensible conditions, actions and placeholders.

Each registry maps a string id to a callable. Built-ins are registered when a
session initializes; host scripts and mods may register more at any time.
Registering an id that already exists replaces the old entry and logs an
overwrite notice. This is how later-loaded content redefines built-in
behavior, so it is never an error.

Every registry's ``register`` also works as a decorator:

    >>> registries = Registries()
    >>> @registries.conditions.register("_always")
    ... def always() -> bool:
    ...     return True
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from narrative_engine.core.constants import CONDITION_PREFIX
from narrative_engine.core.exceptions import RegistrationError
from narrative_engine.core.logging import get_logger, log_overwrite


if TYPE_CHECKING:
    from narrative_engine.models.content import Choice

logger = get_logger(__name__)

T = TypeVar("T")

ConditionFunc = Callable[..., Any]
PlaceholderFunc = Callable[..., Any]
ActionFunc = Callable[[Any], Any]
ChoiceModifierFunc = Callable[["Choice", Any], Any]


def _noop_action(payload: Any) -> None:
    return None


def _noop_modifier(choice: Choice, payload: Any) -> None:
    return None


@dataclass
class ActionRecord:
    """A registered action.

    Attributes:
        action: Called with the directive payload (once per element for lists).
        choice_modifier: Called with (choice, payload) when a choice carrying
            this action is built.
        on_game_load: Replay this action when a saved game is loaded.
        event_delayed: Run only at a later scheduling point, never inline
            while resolving text.
    """

    action: ActionFunc = _noop_action
    choice_modifier: ChoiceModifierFunc = _noop_modifier
    on_game_load: bool = False
    event_delayed: bool = False


class Registry(Generic[T]):
    """Id-keyed registry with overwrite-on-conflict semantics."""

    kind = "entry"

    def __init__(self) -> None:
        self._entries: dict[str, T] = {}

    def _validate_id(self, entry_id: str) -> None:
        if not entry_id:
            raise RegistrationError(
                f"Cannot register a {self.kind} with an empty id",
                registry=self.kind,
                entry_id=entry_id,
            )

    def _store(self, entry_id: str, entry: T) -> T:
        self._validate_id(entry_id)
        if entry_id in self._entries:
            log_overwrite(
                logger,
                f"{self.kind.capitalize()} already exists - overwriting",
                registry=self.kind,
                entry_id=entry_id,
            )
        self._entries[entry_id] = entry
        return entry

    def register(self, entry_id: str, entry: T | None = None) -> Any:
        """Register an entry, or return a decorator that registers one.

        Args:
            entry_id: Id the entry is looked up by.
            entry: The entry. When omitted, a decorator is returned.

        Returns:
            The registered entry, or a decorator.

        Raises:
            RegistrationError: If the id is not acceptable for this registry.
        """
        if entry is None:
            def decorator(func: T) -> T:
                self._store(entry_id, func)
                return func

            return decorator
        return self._store(entry_id, entry)

    def get(self, entry_id: str) -> T | None:
        return self._entries.get(entry_id)

    def unregister(self, entry_id: str) -> T | None:
        return self._entries.pop(entry_id, None)

    def ids(self) -> list[str]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)


class ConditionRegistry(Registry[ConditionFunc]):
    """Condition functions, referenced from conditions as _name(args).

    Conditions return values, not booleans; the expression evaluator does the
    comparison.
    """

    kind = "condition"

    def _validate_id(self, entry_id: str) -> None:
        super()._validate_id(entry_id)
        if not entry_id.startswith(CONDITION_PREFIX):
            raise RegistrationError(
                f"Error registering condition {entry_id}: conditions need the "
                f"{CONDITION_PREFIX} prefix, e.g. {CONDITION_PREFIX}my_condition",
                registry=self.kind,
                entry_id=entry_id,
            )


class PlaceholderRegistry(Registry[PlaceholderFunc]):
    """Placeholder functions, referenced from text as |name(args)|."""

    kind = "placeholder"


class ActionRegistry(Registry[ActionRecord]):
    """Action handlers, referenced from directive objects by key."""

    kind = "action"

    def register(  # type: ignore[override]
        self,
        entry_id: str,
        entry: ActionRecord | Mapping[str, Any] | ActionFunc | None = None,
        *,
        choice_modifier: ChoiceModifierFunc | None = None,
        on_game_load: bool = False,
        event_delayed: bool = False,
    ) -> Any:
        """Register an action.

        Accepts a full ActionRecord, a mapping of ActionRecord fields, or a
        bare handler plus keyword flags. With no entry, returns a decorator
        that registers the decorated function as the handler.

        Args:
            entry_id: Directive key that triggers the action.
            entry: Record, field mapping, or handler.
            choice_modifier: Modifier for a bare handler.
            on_game_load: Flag for a bare handler.
            event_delayed: Flag for a bare handler.

        Returns:
            The stored ActionRecord, or a decorator.
        """
        def build(handler: ActionFunc | None) -> ActionRecord:
            record = ActionRecord(on_game_load=on_game_load, event_delayed=event_delayed)
            if handler is not None:
                record.action = handler
            if choice_modifier is not None:
                record.choice_modifier = choice_modifier
            return record

        if entry is None:
            def decorator(func: ActionFunc) -> ActionFunc:
                self._store(entry_id, build(func))
                return func

            return decorator

        if isinstance(entry, ActionRecord):
            record = entry
        elif isinstance(entry, Mapping):
            record = ActionRecord(
                action=entry.get("action") or _noop_action,
                choice_modifier=entry.get("choice_modifier") or _noop_modifier,
                on_game_load=bool(entry.get("on_game_load", False)),
                event_delayed=bool(entry.get("event_delayed", False)),
            )
        else:
            record = build(entry)
        return self._store(entry_id, record)


@dataclass
class Registries:
    """The three registries a session dispatches through."""

    conditions: ConditionRegistry = field(default_factory=ConditionRegistry)
    actions: ActionRegistry = field(default_factory=ActionRegistry)
    placeholders: PlaceholderRegistry = field(default_factory=PlaceholderRegistry)

    def clear(self) -> None:
        self.conditions.clear()
        self.actions.clear()
        self.placeholders.clear()


__all__ = [
    "ConditionFunc",
    "PlaceholderFunc",
    "ActionFunc",
    "ChoiceModifierFunc",
    "ActionRecord",
    "Registry",
    "ConditionRegistry",
    "PlaceholderRegistry",
    "ActionRegistry",
    "Registries",
]
