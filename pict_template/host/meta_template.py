# ==============================
# Meta Template (pattern table + scanner)
# ==============================
"""
Pattern table and template scanner for the reference host.

Design:
- Providers register (start, end) delimiter pairs with both render entry points.
- The table keeps an end table under each start delimiter, so pairs sharing a start
  coexist. Re-registering the exact same (start, end) replaces the earlier handlers.
- Scanning is linear: at each position the longest registered start that closes wins;
  among its ends, the one occurring first closes the span.
- Text outside matched spans is copied unchanged. An unclosed start delimiter is
  emitted as literal text and scanning continues after it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from pydantic import ValidationError

from pict_template.contracts.template_schema import (
    PatternDef,
    RenderCallback,
    RenderError,
    RenderErrorCode,
    TemplateRenderError,
)


logger = logging.getLogger(__name__)


# ==============================
# Segments
# ==============================
@dataclass(frozen=True)
class Match:
    """A matched delimiter span: the pattern and the text between its delimiters."""
    pattern: PatternDef
    template_hash: str


Segment = Union[str, Match]


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _span_context(segment: Match) -> Dict[str, Any]:
    owner = segment.pattern.owner
    return {
        "template_hash": segment.template_hash,
        "provider": type(owner).__name__ if owner is not None else None,
        "service_hash": getattr(owner, "service_hash", None),
    }


# ==============================
# Meta Template
# ==============================
class MetaTemplate:
    """
    Delimiter pattern table plus the scanner that dispatches matched spans.

    Providers only call add_pattern_both; the host calls parse_string /
    parse_string_async.
    """

    def __init__(self) -> None:
        # start delimiter -> end delimiter -> pattern
        self._patterns: Dict[str, Dict[str, PatternDef]] = {}

    # ---- registration ----

    def add_pattern_both(
        self,
        start: str,
        end: str,
        render: Callable[..., Any],
        render_async: Callable[..., Any],
        owner: Any = None,
    ) -> PatternDef:
        try:
            pattern = PatternDef(start=start, end=end, render=render, render_async=render_async, owner=owner)
        except ValidationError as exc:
            err = TemplateRenderError(
                RenderError(
                    code=RenderErrorCode.INVALID_PATTERN,
                    message=f"Invalid delimiter pair {start!r}...{end!r}",
                    details={"start": start, "end": end},
                )
            )
            raise err from exc

        ends = self._patterns.setdefault(start, {})
        if end in ends:
            logger.debug("Replacing handlers for pattern %s...%s", start, end)
        ends[end] = pattern
        logger.debug(
            "Registered pattern %s...%s",
            start,
            end,
            extra={"provider": type(owner).__name__ if owner is not None else None},
        )
        return pattern

    def patterns(self) -> List[PatternDef]:
        return [pattern for ends in self._patterns.values() for pattern in ends.values()]

    def has_pattern(self, start: str, end: Optional[str] = None) -> bool:
        ends = self._patterns.get(start)
        if not ends:
            return False
        return end is None or end in ends

    # ---- scanning ----

    def segments(self, template: str) -> List[Segment]:
        """Split a template into literal text and matched spans."""
        if not template or not self._patterns:
            return [template] if template else []

        starts = sorted(self._patterns, key=len, reverse=True)
        out: List[Segment] = []
        literal: List[str] = []
        i = 0
        n = len(template)
        while i < n:
            opened: Optional[str] = None
            found: Optional[Tuple[PatternDef, int]] = None
            for start in starts:
                if not template.startswith(start, i):
                    continue
                opened = opened or start
                found = self._closing(template, i + len(start), self._patterns[start])
                if found is not None:
                    break

            if found is None:
                if opened is None:
                    literal.append(template[i])
                    i += 1
                else:
                    # unclosed start delimiter is literal
                    literal.append(opened)
                    i += len(opened)
                continue

            pattern, end_at = found
            if literal:
                out.append("".join(literal))
                literal = []
            out.append(Match(pattern=pattern, template_hash=template[i + len(pattern.start) : end_at]))
            i = end_at + len(pattern.end)
        if literal:
            out.append("".join(literal))
        return out

    @staticmethod
    def _closing(template: str, body_at: int, ends: Dict[str, PatternDef]) -> Optional[Tuple[PatternDef, int]]:
        """Earliest end delimiter after body_at; longer end wins a tie."""
        best: Optional[Tuple[PatternDef, int]] = None
        for end, pattern in ends.items():
            end_at = template.find(end, body_at)
            if end_at < 0:
                continue
            if best is None or end_at < best[1] or (end_at == best[1] and len(end) > len(best[0].end)):
                best = (pattern, end_at)
        return best

    def parse_string(
        self,
        template: str,
        record: Any = None,
        context_array: Any = None,
        scope: Any = None,
        state: Any = None,
    ) -> str:
        parts: List[str] = []
        for segment in self.segments(template):
            if isinstance(segment, str):
                parts.append(segment)
                continue
            value = segment.pattern.render(segment.template_hash, record, context_array, scope, state)
            parts.append(_to_text(value))
        return "".join(parts)

    def parse_string_async(
        self,
        template: str,
        callback: RenderCallback,
        record: Any = None,
        context_array: Any = None,
        scope: Any = None,
        state: Any = None,
    ) -> None:
        """
        Render each span through its render_async entry point, in order.

        callback(None, text) on success; callback(error, None) exactly once on
        the first failure. Exceptions raised by a provider are delivered as
        TemplateRenderError.
        """
        segments = self.segments(template)
        parts: List[str] = []
        finished = [False]

        def finish(error: Optional[BaseException], content: Optional[str]) -> None:
            if finished[0]:
                return
            finished[0] = True
            callback(error, content)

        def step(index: int) -> None:
            while index < len(segments):
                segment = segments[index]
                if isinstance(segment, str):
                    parts.append(segment)
                    index += 1
                    continue
                self._render_span_async(segment, index, record, context_array, scope, state, parts, step, finish)
                return
            finish(None, "".join(parts))

        step(0)

    def _render_span_async(
        self,
        segment: Match,
        index: int,
        record: Any,
        context_array: Any,
        scope: Any,
        state: Any,
        parts: List[str],
        step: Callable[[int], None],
        finish: RenderCallback,
    ) -> None:
        delivered = [False]

        def on_rendered(error: Optional[BaseException], content: Optional[str] = None) -> None:
            if delivered[0]:
                logger.warning(
                    "Provider delivered more than one result for %r",
                    segment.template_hash,
                    extra=_span_context(segment),
                )
                return
            delivered[0] = True
            if error is not None:
                finish(error, None)
                return
            parts.append(_to_text(content))
            step(index + 1)

        try:
            segment.pattern.render_async(segment.template_hash, record, on_rendered, context_array, scope, state)
        except Exception as exc:
            if delivered[0]:
                raise
            logger.warning(
                "Provider raised while rendering %r: %s",
                segment.template_hash,
                exc,
                extra=_span_context(segment),
            )
            delivered[0] = True
            finish(
                TemplateRenderError.from_exception(
                    exc,
                    code=RenderErrorCode.PROVIDER_ERROR,
                    details={"template_hash": segment.template_hash, "start": segment.pattern.start},
                ),
                None,
            )
