"""Narrative session: the engine's public entry point.

A NarrativeSession owns the registries, the session state, the content
store, the data collections and the pool tables, and wires the evaluator,
dispatcher, resolver and draw engine together over them.

Example:
    >>> session = NarrativeSession().init()
    >>> session.state.current_dungeon_id = "village"
    >>> session.add_lines("village", [{"id": "$greeting", "val": "Hello, *traveler*."}])
    >>> session.resolve_string('elder: |$greeting| {"flag": "met_elder=1"}').output
    'Hello, <b>traveler</b>. '
    >>> session.state.get_flag("met_elder")
    1.0
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Protocol

from narrative_engine.core.config import Settings, get_settings
from narrative_engine.core.exceptions import DirectiveParseError, ValidationError
from narrative_engine.core.logging import get_logger
from narrative_engine.engine.builtins import register_builtins
from narrative_engine.engine.dispatcher import ActionDispatcher
from narrative_engine.engine.draw import DataRegistry, DrawEngine, get_nested_value, to_entries
from narrative_engine.engine.expressions import ConditionMode, ExpressionEvaluator
from narrative_engine.engine.loose_json import parse_directive
from narrative_engine.engine.registry import (
    ActionRecord,
    ActionRegistry,
    ChoiceModifierFunc,
    ConditionFunc,
    ConditionRegistry,
    PlaceholderFunc,
    PlaceholderRegistry,
    Registries,
)
from narrative_engine.engine.resolver import DirectiveResolver, ResolveResult
from narrative_engine.engine.rng import RandomSource, SeededRandom
from narrative_engine.models.content import Choice, ContentLine
from narrative_engine.models.pools import (
    CollectionSettings,
    PoolDefinition,
    PoolEntry,
    PoolSettings,
)
from narrative_engine.models.state import SessionState


logger = get_logger(__name__)


# =============================================================================
# Collaborator Interfaces
# =============================================================================


class FlagStore(Protocol):
    """Numeric, optionally dungeon-scoped (``dungeon.flag``) flags."""

    def get_flag(self, key: str) -> float: ...

    def set_flag(self, key: str, value: float) -> None: ...

    def add_flag(self, key: str, value: float) -> None: ...


class LineSource(Protocol):
    """Content lines by id within a dungeon."""

    def get_line(self, line_id: str, dungeon_id: str) -> ContentLine | None: ...


class ContentStore:
    """In-memory content lines, keyed by dungeon id then line id."""

    def __init__(self) -> None:
        self._lines: dict[str, dict[str, ContentLine]] = {}

    def add_lines(self, dungeon_id: str, lines: Iterable[ContentLine | Mapping[str, Any]]) -> int:
        """Add lines to a dungeon, replacing lines with the same id.

        Returns:
            Number of lines added.
        """
        table = self._lines.setdefault(dungeon_id, {})
        added = 0
        for line in lines:
            if not isinstance(line, ContentLine):
                line = ContentLine.model_validate(line)
            table[line.id] = line
            added += 1
        return added

    def get_line(self, line_id: str, dungeon_id: str) -> ContentLine | None:
        return self._lines.get(dungeon_id, {}).get(line_id)

    def clear(self) -> None:
        self._lines.clear()


# =============================================================================
# Helpers
# =============================================================================


def get_parts(text: str, simple: bool = False) -> list[str]:
    """Split a comma-separated parameter list.

    Commas inside ``[...]`` or ``(...)`` do not split. With ``simple``, every
    comma splits.

    Example:
        >>> get_parts("sword(sharp, heavy), [a, b], shield")
        ['sword(sharp, heavy)', '[a, b]', 'shield']

    Raises:
        ValidationError: If text is not a string.
    """
    if not isinstance(text, str):
        raise ValidationError("get_parts expects a string", field_name="text", invalid_value=text)

    if simple:
        return [part.strip() for part in text.split(",")]

    parts: list[str] = []
    current: list[str] = []
    brackets = 0
    parens = 0
    for char in text:
        if char == "[":
            brackets += 1
        elif char == "]":
            brackets -= 1
        elif char == "(":
            parens += 1
        elif char == ")":
            parens -= 1
        elif char == "," and brackets == 0 and parens == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(char)

    tail = "".join(current).strip()
    if tail:
        parts.append(tail)
    return parts


# =============================================================================
# Session
# =============================================================================


class NarrativeSession:
    """Registries, state and engines for one play session.

    Call ``init()`` once to register the built-ins. ``reset()`` starts a new
    game: state and registries are rebuilt, while loaded content, data and
    pool tables are kept.

    Attributes:
        settings: Engine settings.
        registries: Condition, action and placeholder registries.
        state: Mutable session state.
        content: Content lines for templates.
        data: Data collections that pools draw from.
        rng: Random source shared by every draw.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        rng: RandomSource | None = None,
        state: SessionState | None = None,
        content: ContentStore | None = None,
        data: DataRegistry | None = None,
    ) -> None:
        """Create a session. Built-ins are not registered until ``init()``.

        Args:
            settings: Engine settings; the cached environment settings when omitted.
            rng: Random source; seeded from ``settings.draw.seed`` when omitted.
            state: Initial session state.
            content: Content store for template lines.
            data: Data collections for pool sources.
        """
        self.settings = settings or get_settings()
        self.registries = Registries()
        self.state = state or SessionState()
        self.content = content or ContentStore()
        self.data = data or DataRegistry()
        self.rng = rng or SeededRandom(seed=self.settings.draw.seed)
        self.draw_engine = DrawEngine(self.data, rng=self.rng, settings=self.settings.draw)
        self.initialized = False
        self._wire()

    def _wire(self) -> None:
        self.evaluator = ExpressionEvaluator(self.registries.conditions, self.state.get_flag)
        self.dispatcher = ActionDispatcher(self.registries.actions)
        self.resolver = DirectiveResolver(
            evaluator=self.evaluator,
            placeholders=self.registries.placeholders,
            dispatcher=self.dispatcher,
            lines=self.content,
            state=self.state,
            settings=self.settings.resolver,
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def init(self) -> NarrativeSession:
        """Register the built-in conditions, placeholders and actions.

        Returns:
            The session, for chaining.
        """
        register_builtins(self)
        self.initialized = True
        logger.info(
            "Narrative session initialized",
            conditions=len(self.registries.conditions),
            actions=len(self.registries.actions),
            placeholders=len(self.registries.placeholders),
        )
        return self

    def reset(self) -> NarrativeSession:
        """Start a new game: fresh state, rebuilt registries, restarted random source."""
        self.registries.clear()
        self.state = SessionState()
        if isinstance(self.rng, SeededRandom):
            self.rng.reseed()
        self._wire()
        logger.info("Narrative session reset")
        return self.init()

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    @property
    def conditions(self) -> ConditionRegistry:
        return self.registries.conditions

    @property
    def actions(self) -> ActionRegistry:
        return self.registries.actions

    @property
    def placeholders(self) -> PlaceholderRegistry:
        return self.registries.placeholders

    def register_condition(self, condition_id: str, func: ConditionFunc) -> ConditionFunc:
        """Register a condition function; the id must start with ``_``.

        Raises:
            RegistrationError: If the id lacks the ``_`` prefix.
        """
        return self.registries.conditions.register(condition_id, func)

    def register_action(
        self,
        action_id: str,
        record_or_callable: ActionRecord | Mapping[str, Any] | Any,
        *,
        choice_modifier: ChoiceModifierFunc | None = None,
        on_game_load: bool = False,
        event_delayed: bool = False,
    ) -> ActionRecord:
        """Register an action from a record, a field mapping or a bare handler."""
        return self.registries.actions.register(
            action_id,
            record_or_callable,
            choice_modifier=choice_modifier,
            on_game_load=on_game_load,
            event_delayed=event_delayed,
        )

    def register_placeholder(self, placeholder_id: str, func: PlaceholderFunc) -> PlaceholderFunc:
        return self.registries.placeholders.register(placeholder_id, func)

    # -------------------------------------------------------------------------
    # Content and Data
    # -------------------------------------------------------------------------

    def add_lines(self, dungeon_id: str, lines: Iterable[ContentLine | Mapping[str, Any]]) -> int:
        return self.content.add_lines(dungeon_id, lines)

    def add_data(self, source_id: str, data: Any) -> None:
        self.data.register(source_id, data)

    def add_pool_definitions(self, definitions: Iterable[PoolDefinition | Mapping[str, Any]]) -> None:
        for definition in definitions:
            self.draw_engine.add_definition(definition)

    def add_pool_entries(self, entries: Iterable[PoolEntry | Mapping[str, Any]]) -> None:
        for entry in entries:
            self.draw_engine.add_entry(entry)

    # -------------------------------------------------------------------------
    # Directives
    # -------------------------------------------------------------------------

    def resolve_string(self, text: str, no_execute_actions: bool = False) -> ResolveResult:
        """Resolve a content string into display text, actions and speaker.

        Args:
            text: Raw directive text.
            no_execute_actions: Collect action blocks without running them.

        Raises:
            ConditionError: If a condition references a missing or malformed
                condition function.
        """
        return self.resolver.resolve(text, skip_actions=no_execute_actions)

    def execute(self, actions: Mapping[str, Any] | str, skip_delayed: bool = False) -> list[str]:
        """Dispatch a directive object (or its loose JSON text)."""
        return self.dispatcher.dispatch(actions, skip_delayed=skip_delayed)

    def delayed_actions(self, actions: Mapping[str, Any]) -> dict[str, Any]:
        return self.dispatcher.delayed_actions(actions)

    def reload_actions(self, actions: Mapping[str, Any]) -> dict[str, Any]:
        return self.dispatcher.reload_actions(actions)

    def evaluate(self, expression: str, mode: ConditionMode = ConditionMode.AND) -> bool:
        return self.evaluator.evaluate_list(expression, mode)

    def perform_conditional_evaluation(
        self,
        params: Mapping[str, Any] | None,
        is_active_clause: bool = False,
    ) -> bool:
        return self.evaluator.perform_conditional_evaluation(params, is_active_clause)

    def create_custom_choice(
        self,
        choice_id: str,
        name: str = "",
        params: Mapping[str, Any] | str | None = None,
    ) -> Choice:
        """Build a choice whose visibility and availability follow its params.

        Args:
            choice_id: Choice id.
            name: Display name.
            params: Directive params, or their loose JSON text.

        Returns:
            The choice, with every applicable choice modifier applied.
        """
        if isinstance(params, str):
            try:
                params = parse_directive(params)
            except DirectiveParseError as exc:
                logger.error("Invalid choice params, using none", choice_id=choice_id, error=str(exc))
                params = {}
        resolved: dict[str, Any] = dict(params or {})

        choice = Choice(
            id=choice_id,
            name=name,
            params=resolved,
            visibility=lambda: self.perform_conditional_evaluation(resolved),
            availability=lambda: self.perform_conditional_evaluation(resolved, is_active_clause=True),
        )
        self.dispatcher.apply_choice_modifiers(choice, resolved)
        return choice

    # -------------------------------------------------------------------------
    # Draws
    # -------------------------------------------------------------------------

    def draw_from_pool(
        self,
        entry_or_id: PoolEntry | Mapping[str, Any] | str,
        settings: PoolSettings | Mapping[str, Any] | None = None,
    ) -> list[str]:
        return self.draw_engine.draw_from_pool(entry_or_id, settings)

    def draw_from_collection(
        self,
        data: Sequence[Any] | Mapping[str, Any],
        settings: CollectionSettings | Mapping[str, Any] | None = None,
    ) -> list[Any]:
        return self.draw_engine.draw_from_collection(data, settings)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def to_entries(record: Mapping[str, Any], value_field: str = "value") -> list[dict[str, Any]]:
        return to_entries(record, value_field)

    @staticmethod
    def get_nested_value(obj: Any, path: str) -> Any:
        return get_nested_value(obj, path)

    @staticmethod
    def get_parts(text: str, simple: bool = False) -> list[str]:
        return get_parts(text, simple)


__all__ = [
    "FlagStore",
    "LineSource",
    "ContentStore",
    "get_parts",
    "NarrativeSession",
]
