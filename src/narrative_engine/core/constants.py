"""Engine-wide constants for the narrative engine.

This module defines the fixed vocabulary of the directive grammar: the
clause keys that carry conditions rather than actions, the comparison
operators, and the characters escaped inside [code] blocks.
"""

from __future__ import annotations

# =============================================================================
# Conditions
# =============================================================================

IF_KEY = "if"
IF_OR_KEY = "ifOr"
ACTIVE_KEY = "active"
ACTIVE_OR_KEY = "activeOr"

CONDITION_CLAUSE_KEYS = frozenset({IF_KEY, IF_OR_KEY, ACTIVE_KEY, ACTIVE_OR_KEY})
"""Directive keys that are condition metadata, never dispatched as actions."""

COMPARISON_OPERATORS = ("==", "!=", ">=", "<=", ">", "<", "=")
"""Supported operators, longest first so "==" wins over "="."""

ORDERING_OPERATORS = frozenset({">", "<", ">=", "<="})

CONDITION_PREFIX = "_"
"""Condition functions are referenced as _name or _name(args)."""

# =============================================================================
# Directives
# =============================================================================

TEMPLATE_PREFIX = "$"
"""Placeholders starting with this character are template references."""

REDIRECT_KEY = "redirect"
"""A directive object carrying this key short-circuits resolution."""

CODE_ESCAPES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ("{", "&#123;"),
    ("}", "&#125;"),
    ("[", "&#91;"),
    ("]", "&#93;"),
    ("|", "&#124;"),
    ("*", "&#42;"),
    ("$", "&#36;"),
)
"""Entity replacements for [code] content; "&" must stay first."""

DOT_MARKER = "__dot__"
"""Stand-in for "." while author JSON is repaired."""

# =============================================================================
# Draws
# =============================================================================

DEFAULT_WEIGHT = 1.0
DEFAULT_CHANCE = 50.0
DEFAULT_COUNT = 1
CHANCE_SCALE = 100.0


__all__ = [
    # Conditions
    "IF_KEY",
    "IF_OR_KEY",
    "ACTIVE_KEY",
    "ACTIVE_OR_KEY",
    "CONDITION_CLAUSE_KEYS",
    "COMPARISON_OPERATORS",
    "ORDERING_OPERATORS",
    "CONDITION_PREFIX",
    # Directives
    "TEMPLATE_PREFIX",
    "REDIRECT_KEY",
    "CODE_ESCAPES",
    "DOT_MARKER",
    # Draws
    "DEFAULT_WEIGHT",
    "DEFAULT_CHANCE",
    "DEFAULT_COUNT",
    "CHANCE_SCALE",
]
