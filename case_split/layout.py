"""Rebuild reading-order text lines from positioned words.

Works on anything exposing ``text``, ``left`` and ``bottom`` in PDF user
space, so the document reader can be swapped without touching the
allocation logic.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from .config import DEFAULT_LINE_TOLERANCE
from .models import LogicalLine, PositionedToken


def build_lines(
    tokens: Iterable[PositionedToken],
    tolerance: float = DEFAULT_LINE_TOLERANCE,
    page: Optional[int] = None,
) -> List[LogicalLine]:
    """
    Group one page's tokens into logical lines.
    - Deterministic sort: bottom descending (top of page first), then left
    - New line when |bottom - line anchor bottom| > tolerance; the anchor is
      the first token of the line, so a slow drift never chains lines together
    - Blank tokens are dropped
    """
    words = [t for t in tokens if t.text and t.text.strip()]
    words.sort(key=lambda t: (-t.bottom, t.left))

    lines: List[LogicalLine] = []
    current: Optional[LogicalLine] = None
    for word in words:
        if current is not None and abs(current.bottom - word.bottom) <= tolerance:
            current.tokens.append(word)
            continue
        current = LogicalLine(tokens=[word], page=page if page is not None else word.page)
        lines.append(current)

    return lines


def build_document_lines(
    pages: Iterable[Sequence[PositionedToken]],
    tolerance: float = DEFAULT_LINE_TOLERANCE,
) -> List[LogicalLine]:
    """Lines of every page in page order; lines never span pages."""
    lines: List[LogicalLine] = []
    for number, tokens in enumerate(pages, start=1):
        lines.extend(build_lines(tokens, tolerance=tolerance, page=number))
    return lines
