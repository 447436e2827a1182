"""Locate math markup embedded in plain text."""

import re
from typing import List, NamedTuple


class MathSpan(NamedTuple):
    start: int
    end: int
    latex: str


# Display delimiters are tried before inline ones so "$$a$$" is one span.
_MATH = re.compile(
    r"(?<!\\)\$\$(?P<display>.+?)(?<!\\)\$\$"
    r"|(?<!\\)\$(?P<inline>[^$\n]+?)(?<!\\)\$"
    r"|\\\((?P<paren>.+?)\\\)"
    r"|\\\[(?P<bracket>.+?)\\\]",
    re.DOTALL,
)


def detect_math(text) -> List[MathSpan]:
    """Return the math spans of ``text`` in left-to-right order.

    Offsets are half-open and include the delimiters. Content is not
    validated; an unmatched delimiter simply produces no span.
    """
    spans = []
    for m in _MATH.finditer(text or ""):
        latex = next(g for g in m.groups() if g is not None).strip()
        if latex:
            spans.append(MathSpan(m.start(), m.end(), latex))
    return spans


def split_math(text, spans=None):
    """Partition ``text`` into ("text" | "math", content) segments."""
    if spans is None:
        spans = detect_math(text)
    segments = []
    last = 0
    for span in spans:
        if span.start > last:
            segments.append(("text", text[last:span.start]))
        segments.append(("math", span.latex))
        last = span.end
    if last < len(text):
        segments.append(("text", text[last:]))
    return segments


def unwrap_math(text):
    """Strip one delimiter pair when it encloses the whole of ``text``."""
    stripped = (text or "").strip()
    spans = detect_math(stripped)
    if len(spans) == 1 and spans[0].start == 0 and spans[0].end == len(stripped):
        return spans[0].latex
    return stripped
