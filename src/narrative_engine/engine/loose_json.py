"""Tolerant parsing of author-written directive objects.

Authors write action blocks by hand, in documents that like to replace
quotes with typographic ones:

    {flag: 'gold>10', scene: “village.square”,}

json_repair turns that into valid JSON. Dots that are not decimal points are
masked while repairing so that dotted ids such as ``village.square`` survive
as a single token when they are unquoted.
"""

from __future__ import annotations

import json
import re
from typing import Any

import json_repair

from narrative_engine.core.constants import DOT_MARKER
from narrative_engine.core.exceptions import DirectiveParseError


_NON_DECIMAL_DOT = re.compile(r"\.(?!\d)")
_SMART_QUOTES = str.maketrans({"“": '"', "”": '"', "‘": "'", "’": "'"})


def fix_json(text: str) -> str:
    """Repair loosely written JSON into a strict JSON string.

    Args:
        text: Author-written object text.

    Returns:
        A JSON string. It may still fail to parse when the input was not
        object-like at all.
    """
    masked = _NON_DECIMAL_DOT.sub(DOT_MARKER, text.translate(_SMART_QUOTES))
    repaired = json_repair.repair_json(masked)
    return repaired.replace(DOT_MARKER, ".")


def parse_directive(text: str) -> dict[str, Any]:
    """Parse an action block into a mapping.

    Args:
        text: Object text, braces included.

    Returns:
        The parsed mapping.

    Raises:
        DirectiveParseError: If the text cannot be read as a JSON object.
    """
    try:
        parsed = json.loads(fix_json(text))
    except (ValueError, RecursionError) as exc:
        raise DirectiveParseError(
            "Malformed directive object",
            fragment=text,
            details={"reason": str(exc)},
        ) from exc

    if not isinstance(parsed, dict):
        raise DirectiveParseError(
            "Directive is not an object",
            fragment=text,
            details={"parsed_type": type(parsed).__name__},
        )
    return parsed


__all__ = [
    "fix_json",
    "parse_directive",
]
