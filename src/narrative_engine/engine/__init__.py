"""Directive resolution, rule evaluation and random draws.

Submodules:
    expressions: Condition expression evaluation
    registry: Condition, action and placeholder registries
    control_flow: if{}/ifOr{}/else{}/fi{} chains in text
    loose_json: Tolerant parsing of author-written action blocks
    dispatcher: Action dispatch
    resolver: The directive resolution pipeline
    draw: Pool and collection draw engines
    rng: Seedable randomness
    builtins: Built-in conditions, placeholders and actions
    session: NarrativeSession, the public entry point

Example:
    >>> from narrative_engine.engine import NarrativeSession
    >>> session = NarrativeSession().init()
    >>> session.state.set_flag("village.gold", 20)
    >>> session.state.current_dungeon_id = "village"
    >>> session.resolve_string("if{gold > 10}Rich fi{}").output
    'Rich '
"""

from __future__ import annotations

# =============================================================================
# Conditions
# =============================================================================
from narrative_engine.engine.expressions import (
    ConditionMode,
    ExpressionEvaluator,
    loose_equals,
    split_conditions,
)

# =============================================================================
# Registries
# =============================================================================
from narrative_engine.engine.registry import (
    ActionRecord,
    ActionRegistry,
    ConditionRegistry,
    PlaceholderRegistry,
    Registries,
)

# =============================================================================
# Directives
# =============================================================================
from narrative_engine.engine.control_flow import (
    Token,
    TokenKind,
    resolve_inline_conditionals,
    tokenize,
)
from narrative_engine.engine.dispatcher import ActionDispatcher
from narrative_engine.engine.loose_json import fix_json, parse_directive
from narrative_engine.engine.resolver import DirectiveResolver, ResolveResult

# =============================================================================
# Draws
# =============================================================================
from narrative_engine.engine.draw import (
    DataRegistry,
    DrawEngine,
    get_nested_value,
    matches_filters,
    to_entries,
)
from narrative_engine.engine.rng import RandomSource, SeededRandom

# =============================================================================
# Session
# =============================================================================
from narrative_engine.engine.session import ContentStore, NarrativeSession, get_parts


__all__ = [
    # Conditions
    "ConditionMode",
    "ExpressionEvaluator",
    "loose_equals",
    "split_conditions",
    # Registries
    "ActionRecord",
    "ActionRegistry",
    "ConditionRegistry",
    "PlaceholderRegistry",
    "Registries",
    # Directives
    "Token",
    "TokenKind",
    "tokenize",
    "resolve_inline_conditionals",
    "ActionDispatcher",
    "fix_json",
    "parse_directive",
    "DirectiveResolver",
    "ResolveResult",
    # Draws
    "DataRegistry",
    "DrawEngine",
    "get_nested_value",
    "matches_filters",
    "to_entries",
    "RandomSource",
    "SeededRandom",
    # Session
    "ContentStore",
    "NarrativeSession",
    "get_parts",
]
