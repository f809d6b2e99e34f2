"""Inline conditional blocks in authored text.

Authors branch text with keyword braces:

    You see a door. if{key = 1}You unlock it. else{}It is locked. fi{}Onward.

A keyword is recognised by the characters directly before a ``{`` that opens
at brace depth zero: ``if`` or ``fi``, otherwise ``else`` or ``ifOr``. The
text is first cut into a flat token stream, then walked:

* text before the first keyword is always kept;
* branches (``if``/``ifOr``/``else``) are tried in order until one passes,
  and only the winner's body is kept;
* ``fi{}`` closes the chain and the text after it is kept again.

An empty condition always passes, so ``else{}`` is the fallback branch.
``ifOr`` evaluates its condition list with OR, ``if`` with AND, and ``else``
inherits the mode of the chain.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from narrative_engine.core.logging import get_logger
from narrative_engine.engine.expressions import ConditionMode


logger = get_logger(__name__)

ConditionCallback = Callable[[str, ConditionMode], bool]


class TokenKind(StrEnum):
    """Kinds of control-flow tokens."""

    PLAIN = "plain"
    IF_OPEN = "if"
    IF_OR_OPEN = "ifOr"
    ELSE_OPEN = "else"
    FI_CLOSE = "fi"


_SHORT_KEYWORDS = {"if": TokenKind.IF_OPEN, "fi": TokenKind.FI_CLOSE}
_LONG_KEYWORDS = {"else": TokenKind.ELSE_OPEN, "ifOr": TokenKind.IF_OR_OPEN}


@dataclass(frozen=True)
class Token:
    """A control-flow token.

    For keyword tokens ``text`` is the content between the keyword's braces;
    for PLAIN tokens it is the literal text.
    """

    kind: TokenKind
    text: str


def _find_closing(text: str, start: int) -> int:
    """Return the index of the brace closing the one at ``start``, or -1."""
    depth = 0
    for index in range(start, len(text)):
        char = text[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
    return -1


def _match_keyword(buffer: list[str]) -> tuple[TokenKind, int] | None:
    tail = "".join(buffer[-4:])
    if tail[-2:] in _SHORT_KEYWORDS:
        return _SHORT_KEYWORDS[tail[-2:]], 2
    if tail in _LONG_KEYWORDS:
        return _LONG_KEYWORDS[tail], 4
    return None


def tokenize(text: str) -> list[Token]:
    """Cut text into PLAIN and keyword tokens.

    Braces that are not keyword braces (JSON action blocks, stray braces)
    stay inside PLAIN tokens, and keyword detection is suspended while inside
    them. An unclosed keyword brace is logged and the remainder of the text,
    keyword included, becomes one PLAIN token.

    Args:
        text: Text to scan.

    Returns:
        Tokens in source order. Adjacent plain text forms a single token.
    """
    tokens: list[Token] = []
    buffer: list[str] = []
    depth = 0
    index = 0

    def flush() -> None:
        if buffer:
            tokens.append(Token(TokenKind.PLAIN, "".join(buffer)))
            buffer.clear()

    while index < len(text):
        char = text[index]

        if char == "{" and depth == 0:
            keyword = _match_keyword(buffer)
            if keyword is not None:
                kind, length = keyword
                close = _find_closing(text, index)
                if close == -1:
                    logger.error(
                        "Unclosed control-flow brace, keeping the rest of the text",
                        keyword=kind.value,
                        fragment=text[index - length:],
                    )
                    buffer.extend(text[index:])
                    break
                del buffer[-length:]
                flush()
                tokens.append(Token(kind, text[index + 1:close]))
                index = close + 1
                continue
            depth += 1
        elif char == "{":
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1

        buffer.append(char)
        index += 1

    flush()
    return tokens


def resolve_inline_conditionals(text: str, evaluate: ConditionCallback) -> str:
    """Resolve if/ifOr/else/fi chains in text.

    Args:
        text: Text that may contain keyword braces.
        evaluate: Evaluates a non-empty condition list in the given mode.

    Returns:
        The text with only the winning branch bodies kept and every control
        token removed.
    """
    tokens = tokenize(text)
    if all(token.kind == TokenKind.PLAIN for token in tokens):
        return text

    result: list[str] = []
    keep = True
    chain_won = False
    mode = ConditionMode.AND

    for token in tokens:
        if token.kind == TokenKind.PLAIN:
            if keep:
                result.append(token.text)
            continue

        if token.kind == TokenKind.FI_CLOSE:
            if token.text.strip():
                logger.warning("Content inside fi{} is ignored", content=token.text)
            keep = True
            chain_won = False
            mode = ConditionMode.AND
            continue

        if chain_won:
            keep = False
            continue

        if token.kind == TokenKind.IF_OR_OPEN:
            mode = ConditionMode.OR
        elif token.kind == TokenKind.IF_OPEN:
            mode = ConditionMode.AND

        condition = token.text.strip()
        keep = True if not condition else evaluate(condition, mode)
        chain_won = keep

    return "".join(result)


__all__ = [
    "ConditionCallback",
    "TokenKind",
    "Token",
    "tokenize",
    "resolve_inline_conditionals",
]
