"""Directive resolution pipeline.

Turns one raw content string into display text plus the actions it carries.
The passes run in a fixed order, each on the output of the previous one:

1. ``[code]...[/code]`` blocks are entity-escaped so later passes ignore them.
2. ``|placeholder|`` and ``|placeholder(a, b)|`` are replaced by the
   registered placeholder's value.
3. ``if{}...else{}...fi{}`` chains are resolved.
4. ``|$template|`` and ``|$dungeon.$template|`` are replaced by the template
   line, itself run through the whole pipeline.
5. Top-level ``{...}`` action blocks are parsed, dispatched (unless actions
   are skipped or flagged as delayed) and removed from the text.
6. A leading ``speaker: `` prefix is split off.
7. ``**italic**`` and ``*bold*`` markup becomes HTML.

Content errors are logged and the offending fragment is left in place or
dropped; only a ConditionError (a broken condition reference) propagates.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from narrative_engine.core.config import ResolverSettings
from narrative_engine.core.constants import CODE_ESCAPES, REDIRECT_KEY, TEMPLATE_PREFIX
from narrative_engine.core.exceptions import (
    ConditionError,
    DirectiveParseError,
    PlaceholderError,
    SessionStateError,
    TemplateError,
)
from narrative_engine.core.logging import get_logger
from narrative_engine.engine.control_flow import resolve_inline_conditionals
from narrative_engine.engine.expressions import ExpressionEvaluator, stringify
from narrative_engine.engine.loose_json import parse_directive
from narrative_engine.engine.registry import PlaceholderRegistry


if TYPE_CHECKING:
    from narrative_engine.engine.dispatcher import ActionDispatcher
    from narrative_engine.engine.session import LineSource
    from narrative_engine.models.state import SessionState

logger = get_logger(__name__)

CODE_PATTERN = re.compile(r"\[code\]([\s\S]*?)\[/code\]")
PLACEHOLDER_PATTERN = re.compile(r"\|([^|]+?)\|")
PLACEHOLDER_CALL_PATTERN = re.compile(r"^([a-zA-Z0-9_]+)(?:\(([^)]*)\))?$")
TEMPLATE_PATTERN = re.compile(r"\|(\$[^|]+?)\|")
SPEAKER_PATTERN = re.compile(r"(\w+):\s*(.*)")
ITALIC_PATTERN = re.compile(r"\*\*(.*?)\*\*")
BOLD_PATTERN = re.compile(r"\*(.*?)\*")


class ResolveResult(BaseModel):
    """Outcome of resolving one content string.

    Attributes:
        output: Display text.
        actions: Every action block found, shallow-merged in order.
        speaker: Character id from a leading ``speaker:`` prefix.
    """

    output: str = ""
    actions: dict[str, Any] = Field(default_factory=dict)
    speaker: str | None = None


# =============================================================================
# Stateless Passes
# =============================================================================


def escape_code_blocks(text: str, css_class: str = "output_code") -> str:
    """Escape directive characters inside [code] blocks and wrap them in a span."""

    def escape(match: re.Match[str]) -> str:
        content = match.group(1)
        for char, entity in CODE_ESCAPES:
            content = content.replace(char, entity)
        return f'<span class="{css_class}">{content}</span>'

    return CODE_PATTERN.sub(escape, text)


def split_speaker(text: str) -> tuple[str | None, str]:
    """Split a leading ``speaker: `` prefix off a line.

    Returns:
        (speaker id or None, remaining text).
    """
    match = SPEAKER_PATTERN.fullmatch(text)
    if match is None:
        return None, text
    return match.group(1), match.group(2)


def apply_text_styles(text: str) -> str:
    """Convert ``**x**`` to italic and then ``*x*`` to bold."""
    output = ITALIC_PATTERN.sub(r"<i>\1</i>", text)
    return BOLD_PATTERN.sub(r"<b>\1</b>", output)


# =============================================================================
# Resolver
# =============================================================================


class DirectiveResolver:
    """Runs the directive pipeline against a session's registries and state.

    Example:
        >>> result = resolver.resolve('elder: Welcome! {"flag": "met_elder=1"}')
        >>> result.speaker, result.output
        ('elder', 'Welcome! ')
    """

    def __init__(
        self,
        *,
        evaluator: ExpressionEvaluator,
        placeholders: PlaceholderRegistry,
        dispatcher: ActionDispatcher,
        lines: LineSource,
        state: SessionState,
        settings: ResolverSettings | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            evaluator: Evaluates conditions in control-flow chains.
            placeholders: Registry consulted for |placeholder| references.
            dispatcher: Runs the action blocks found in text.
            lines: Content store consulted for |$template| references.
            state: Session state; supplies the dungeon in use and receives the
                current speaker.
            settings: Resolver settings; defaults apply when omitted.
        """
        self.evaluator = evaluator
        self.placeholders = placeholders
        self.dispatcher = dispatcher
        self.lines = lines
        self.state = state
        self.settings = settings or ResolverSettings()

    def resolve(self, text: str, skip_actions: bool = False) -> ResolveResult:
        """Resolve a content string.

        Args:
            text: Raw directive text.
            skip_actions: Collect action blocks without dispatching them.

        Returns:
            The display text, the collected actions and the speaker. The
            speaker is also recorded as the session's talking character,
            except after a redirect, which leaves it unchanged.

        Raises:
            ConditionError: If a condition references a missing or malformed
                condition function.
        """
        result = self._resolve(text, skip_actions, depth=0)
        if REDIRECT_KEY not in result.actions:
            self.state.talking_character_id = result.speaker
        return result

    def _resolve(self, text: str, skip_actions: bool, depth: int) -> ResolveResult:
        output = escape_code_blocks(text, self.settings.code_css_class)
        output = self.resolve_placeholders(output)
        output = resolve_inline_conditionals(output, self.evaluator.evaluate_list)
        output = self.resolve_templates(output, skip_actions, depth)

        output, actions, redirected = self.extract_actions(output, skip_actions)
        if redirected:
            return ResolveResult(output="", actions=actions, speaker=None)

        speaker, output = split_speaker(output)
        return ResolveResult(output=apply_text_styles(output), actions=actions, speaker=speaker)

    # -------------------------------------------------------------------------
    # Placeholders
    # -------------------------------------------------------------------------

    def call_placeholder(self, reference: str) -> str:
        """Evaluate a placeholder reference such as ``flag(gold)``.

        Raises:
            PlaceholderError: If the reference is malformed or unregistered.
        """
        match = PLACEHOLDER_CALL_PATTERN.match(reference)
        if match is None:
            raise PlaceholderError(f"Invalid placeholder format: {reference}", fragment=reference)

        name, args_text = match.group(1), match.group(2) or ""
        func = self.placeholders.get(name)
        if func is None:
            raise PlaceholderError(f"Placeholder {name} is not registered", fragment=reference)

        args = [arg.strip() for arg in args_text.split(",")] if args_text else []
        return stringify(func(*args))

    def resolve_placeholders(self, text: str) -> str:
        """Replace every non-template |placeholder| in text."""

        def replace(match: re.Match[str]) -> str:
            reference = match.group(1)
            if reference.startswith(TEMPLATE_PREFIX):
                return match.group(0)
            try:
                return self.call_placeholder(reference)
            except PlaceholderError as exc:
                logger.error("Error resolving placeholder", placeholder=reference, error=exc.message)
            except ConditionError:
                raise
            except Exception:
                logger.exception("Placeholder function failed", placeholder=reference)
            return match.group(0)

        return PLACEHOLDER_PATTERN.sub(replace, text)

    # -------------------------------------------------------------------------
    # Templates
    # -------------------------------------------------------------------------

    def load_template(self, reference: str, skip_actions: bool = False, depth: int = 0) -> str:
        """Resolve a template reference such as ``$greeting`` or ``$village.$greeting``.

        Raises:
            TemplateError: If the template does not exist or no dungeon can be
                determined.
        """
        dungeon_part, _, template_part = reference.rpartition(".")
        if dungeon_part:
            dungeon_id: str | None = dungeon_part.removeprefix(TEMPLATE_PREFIX)
            template_id = TEMPLATE_PREFIX + template_part.removeprefix(TEMPLATE_PREFIX)
        else:
            dungeon_id, template_id = None, template_part

        try:
            real_dungeon_id = self.state.get_dungeon_id(dungeon_id)
        except SessionStateError as exc:
            raise TemplateError(exc.message, fragment=reference) from exc

        line = self.lines.get_line(template_id, real_dungeon_id)
        if line is None:
            raise TemplateError(
                f"Template {template_id} not found",
                fragment=reference,
                details={"dungeon_id": real_dungeon_id},
            )
        return self._resolve(line.val, skip_actions, depth + 1).output

    def resolve_templates(self, text: str, skip_actions: bool = False, depth: int = 0) -> str:
        """Replace every |$template| in text with its resolved line."""

        def replace(match: re.Match[str]) -> str:
            reference = match.group(1)
            if depth >= self.settings.max_template_depth:
                logger.error(
                    "Template recursion limit reached, dropping it",
                    template=reference,
                    max_template_depth=self.settings.max_template_depth,
                )
                return ""
            try:
                return self.load_template(reference, skip_actions, depth)
            except TemplateError as exc:
                logger.error("Error resolving template", template=reference, error=exc.message)
                return match.group(0)

        return TEMPLATE_PATTERN.sub(replace, text)

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    def extract_actions(self, text: str, skip_actions: bool = False) -> tuple[str, dict[str, Any], bool]:
        """Pull top-level {...} action blocks out of text.

        Each block is parsed, dispatched with delayed actions skipped (unless
        ``skip_actions``) and merged into the collected actions. A block that
        fails to parse is logged and still removed. An unmatched ``{`` is
        logged and the rest of the text is kept as is.

        Returns:
            (remaining text, collected actions, redirected). When a block
            carries a redirect, resolution stops: the text is empty and the
            actions are exactly that block.
        """
        pieces: list[str] = []
        actions: dict[str, Any] = {}
        remaining = text

        while (start := remaining.find("{")) != -1:
            pieces.append(remaining[:start])

            depth = 0
            end = -1
            for index in range(start, len(remaining)):
                if remaining[index] == "{":
                    depth += 1
                elif remaining[index] == "}":
                    depth -= 1
                    if depth == 0:
                        end = index
                        break

            if end == -1:
                logger.error("Unmatched open brace in text", fragment=remaining[start:])
                pieces.append(remaining[start:])
                remaining = ""
                break

            block = remaining[start:end + 1]
            remaining = remaining[end + 1:]
            try:
                parsed = parse_directive(block)
            except DirectiveParseError as exc:
                logger.error("Failed to process directive object", fragment=block, error=str(exc))
                continue

            if REDIRECT_KEY in parsed:
                return "", parsed, True

            if not skip_actions:
                self.dispatcher.dispatch(parsed, skip_delayed=True)
            actions.update(parsed)

        pieces.append(remaining)
        return "".join(pieces), actions, False


__all__ = [
    "ResolveResult",
    "escape_code_blocks",
    "split_speaker",
    "apply_text_styles",
    "DirectiveResolver",
]
