"""Condition expression evaluation.

Conditions are comma-separated comparisons of the form ``key operator value``:

    gold > 10, village.met_elder = true, _state(weather) != rain

The key is either a flag path (``flag`` or ``dungeon.flag``), read through the
flag reader, or a condition function reference (``_name`` or
``_name(arg1, arg2)``) looked up in the condition registry and called with the
trimmed string arguments. The right-hand side is parsed as a boolean, then a
number, then a plain string.

Equality uses loose semantics so that author-friendly comparisons work across
types: ``true`` equals 1, ``"5"`` equals 5, and a list equals its
comma-joined string.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Mapping
from enum import StrEnum
from typing import Any

from narrative_engine.core.constants import (
    ACTIVE_KEY,
    ACTIVE_OR_KEY,
    CONDITION_PREFIX,
    IF_KEY,
    IF_OR_KEY,
    ORDERING_OPERATORS,
)
from narrative_engine.core.exceptions import ConditionError
from narrative_engine.core.logging import get_logger
from narrative_engine.engine.registry import ConditionRegistry


logger = get_logger(__name__)

FlagReader = Callable[[str], Any]

CONDITION_PATTERN = re.compile(r"^([a-zA-Z0-9_.]+(?:\([^)]*\))?)\s*(==|!=|>=|<=|>|<|=)\s*(.+)$")
FUNCTION_PATTERN = re.compile(r"^(_[a-zA-Z0-9_]+)(?:\(([^)]*)\))?$")
NUMBER_PATTERN = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


class ConditionMode(StrEnum):
    """How a list of conditions combines."""

    AND = "and"
    OR = "or"


# =============================================================================
# Value Coercion
# =============================================================================


def stringify(value: Any) -> str:
    """Render a value the way authored text expects to see it.

    Booleans render lowercase, None renders empty, whole floats drop their
    fractional part and lists are comma-joined.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, (list, tuple)):
        return ",".join(stringify(item) for item in value)
    return str(value)


def to_number(value: Any) -> float:
    """Coerce a value to a number, NaN when it has no numeric reading."""
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, (list, tuple)):
        value = stringify(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        if NUMBER_PATTERN.match(text):
            return float(text)
    return math.nan


def loose_equals(left: Any, right: Any) -> bool:
    """Compare two values with loose, cross-type equality.

    None equals only None. Strings compare as strings when both sides are
    strings (after list flattening); any other pairing compares numerically.
    """
    if left is None or right is None:
        return left is None and right is None
    if isinstance(left, Mapping) or isinstance(right, Mapping):
        return left == right

    if isinstance(left, (list, tuple)):
        left = stringify(left)
    if isinstance(right, (list, tuple)):
        right = stringify(right)

    if isinstance(left, str) and isinstance(right, str):
        return left == right
    return to_number(left) == to_number(right)


def parse_literal(raw: str) -> bool | float | str:
    """Parse a right-hand side literal: boolean, then number, then string."""
    text = raw.strip()
    if text in ("true", "false"):
        return text == "true"
    if NUMBER_PATTERN.match(text):
        return float(text)
    return text


def split_conditions(expression: str) -> list[str]:
    """Split a condition list on commas outside parentheses.

    Example:
        >>> split_conditions("_has(alice, sword) = true, gold > 3")
        ['_has(alice, sword) = true', 'gold > 3']
    """
    parts: list[str] = []
    current: list[str] = []
    depth = 0

    for char in expression:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1

        if char == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
        else:
            current.append(char)

    tail = "".join(current).strip()
    if tail:
        parts.append(tail)
    return parts


# =============================================================================
# Evaluator
# =============================================================================


class ExpressionEvaluator:
    """Evaluates condition expressions against flags and condition functions.

    Example:
        >>> registry = ConditionRegistry()
        >>> evaluator = ExpressionEvaluator(registry, {"gold": 20}.get)
        >>> evaluator.evaluate_list("gold > 10")
        True
    """

    def __init__(self, conditions: ConditionRegistry, get_flag: FlagReader) -> None:
        """Initialize the evaluator.

        Args:
            conditions: Registry consulted for ``_name`` keys.
            get_flag: Reads a flag value by (optionally dungeon-scoped) key.
        """
        self.conditions = conditions
        self.get_flag = get_flag

    def get_condition_value(self, key: str) -> Any:
        """Get the current value behind a condition key.

        Args:
            key: Flag path or condition function reference.

        Returns:
            The condition function's return value, or the flag value.

        Raises:
            ConditionError: If a function reference is malformed or unregistered.
        """
        if not key.startswith(CONDITION_PREFIX):
            value = self.get_flag(key)
            return 0 if value is None else value

        match = FUNCTION_PATTERN.match(key)
        if match is None:
            raise ConditionError(f"Invalid condition format: {key}", expression=key)

        name, args_text = match.group(1), match.group(2) or ""
        args = [arg.strip() for arg in args_text.split(",")] if args_text else []

        func = self.conditions.get(name)
        if func is None:
            raise ConditionError(f"Condition {name} not found", expression=key)

        return func(*args)

    def evaluate_single(self, condition: str) -> bool:
        """Evaluate one ``key operator value`` comparison.

        Malformed comparisons and ordering against a string literal are
        logged and evaluate to False.

        Raises:
            ConditionError: If the key references a missing condition function.
        """
        match = CONDITION_PATTERN.match(condition.strip())
        if match is None:
            logger.error(
                "Invalid condition format, use key==value or key=value without quotes",
                condition=condition,
            )
            return False

        key, operator, raw_value = match.groups()
        actual = self.get_condition_value(key.strip())
        expected = parse_literal(raw_value)

        if operator in ("=", "=="):
            return loose_equals(actual, expected)
        if operator == "!=":
            return not loose_equals(actual, expected)

        if operator in ORDERING_OPERATORS and isinstance(expected, str):
            logger.error(
                "Operator not supported for string comparison",
                operator=operator,
                condition=condition,
            )
            return False

        left, right = to_number(actual), to_number(expected)
        if operator == ">":
            return left > right
        if operator == "<":
            return left < right
        if operator == ">=":
            return left >= right
        return left <= right

    def evaluate_list(self, expression: str, mode: ConditionMode = ConditionMode.AND) -> bool:
        """Evaluate a comma-separated condition list.

        Args:
            expression: Conditions separated by top-level commas.
            mode: AND requires every condition, OR requires at least one.

        Returns:
            The combined result. Evaluation short-circuits.
        """
        conditions = split_conditions(expression)
        if mode == ConditionMode.OR:
            return any(self.evaluate_single(condition) for condition in conditions)
        return all(self.evaluate_single(condition) for condition in conditions)

    def perform_conditional_evaluation(
        self,
        params: Mapping[str, Any] | None,
        is_active_clause: bool = False,
    ) -> bool:
        """Evaluate the condition clauses carried by a directive object.

        ``if`` may be a boolean or a condition string; ``ifOr`` must be a
        string. A clause of any other type is ignored. When both are present,
        both must pass.

        Args:
            params: Directive params, or None.
            is_active_clause: Read ``active``/``activeOr`` instead of
                ``if``/``ifOr``.

        Returns:
            True when no recognised clause is present.
        """
        if params is None:
            return True

        primary_key, or_key = (ACTIVE_KEY, ACTIVE_OR_KEY) if is_active_clause else (IF_KEY, IF_OR_KEY)
        primary = params.get(primary_key)
        alternative = params.get(or_key)

        has_primary = isinstance(primary, (bool, str))
        has_or = isinstance(alternative, str)
        if not has_primary and not has_or:
            return True

        if has_primary:
            passes = primary if isinstance(primary, bool) else self.evaluate_list(primary)
            if not passes:
                return False
        if has_or:
            return self.evaluate_list(alternative, ConditionMode.OR)
        return True


__all__ = [
    "FlagReader",
    "ConditionMode",
    "stringify",
    "to_number",
    "loose_equals",
    "parse_literal",
    "split_conditions",
    "ExpressionEvaluator",
]
