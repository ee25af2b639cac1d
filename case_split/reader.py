"""PDF word extraction with pdfplumber.

pdfplumber measures ``top``/``bottom`` from the top edge of the page; tokens
are converted to PDF user space (origin bottom-left) so that a larger
``bottom`` means higher on the page.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Union

import pdfplumber

from .logging import get_logger
from .models import PositionedToken

logger = get_logger(__name__)


def _page_tokens(page, page_number: int) -> List[PositionedToken]:
    height = float(page.height)
    words = page.extract_words(
        use_text_flow=False,
        keep_blank_chars=False,
        extra_attrs=[],
    )

    tokens: List[PositionedToken] = []
    for w in words:
        text = (w.get("text") or "").strip()
        if not text:
            continue
        tokens.append(PositionedToken(
            text=text,
            left=float(w["x0"]),
            bottom=height - float(w["bottom"]),
            right=float(w["x1"]),
            top=height - float(w["top"]),
            page=page_number,
        ))
    return tokens


def read_pages(pdf_path: Union[str, Path]) -> List[List[PositionedToken]]:
    """Return one token list per page, in page order."""
    path = Path(pdf_path)
    if not path.exists():
        raise FileNotFoundError(f"PDF not found: {path}")

    pages: List[List[PositionedToken]] = []
    with pdfplumber.open(str(path)) as pdf:
        for pidx, page in enumerate(pdf.pages):
            pages.append(_page_tokens(page, pidx + 1))

    logger.info("pdf_read", pdf=path.name, pages=len(pages), tokens=sum(len(p) for p in pages))
    return pages
