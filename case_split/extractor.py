"""Case Details extraction: per handling unit product quantities.

Rows look like ``4401762522 100794958 5589401 OIL FILTER TN 189``: a 10-digit
handling unit, the delivery number, the product id, a free-text description,
the 2-letter country of origin and the quantity. Rows are validated token by
token instead of with one pattern so ragged spacing does not matter.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence, Union

from .config import AppConfig, DEFAULT_SECTION_END, DEFAULT_SECTION_START
from .layout import build_document_lines
from .logging import get_logger
from .models import LogicalLine, UnitFact
from .numeral import pad_handling_unit
from .reader import read_pages

logger = get_logger(__name__)

MIN_ROW_TOKENS = 6


def _is_unit_id(token: str) -> bool:
    return len(token) == 10 and token.isascii() and token.isdigit()


def _is_country(token: str) -> bool:
    return len(token) == 2 and token.isascii() and token.isalpha()


def _is_quantity(token: str) -> bool:
    return token.isascii() and token.isdigit()


def section_lines(
    lines: Iterable[LogicalLine],
    start_marker: str = DEFAULT_SECTION_START,
    end_marker: str = DEFAULT_SECTION_END,
) -> Iterator[LogicalLine]:
    """Yield the lines strictly between a start marker line and the next end marker line."""
    start = start_marker.lower()
    end = end_marker.lower()
    inside = False
    for line in lines:
        text = line.text.lower()
        if start in text:
            inside = True
            continue
        if end in text:
            inside = False
            continue
        if inside:
            yield line


def _segments(tokens: Sequence[str]) -> List[Sequence[str]]:
    # A merged line holds several rows; a new row starts at a unit id that
    # directly follows "<country> <qty>".
    cuts = [0]
    for i in range(2, len(tokens)):
        if _is_unit_id(tokens[i]) and _is_quantity(tokens[i - 1]) and _is_country(tokens[i - 2]):
            cuts.append(i)
    cuts.append(len(tokens))
    return [tokens[a:b] for a, b in zip(cuts, cuts[1:])]


def _parse_segment(tokens: Sequence[str]) -> Optional[UnitFact]:
    if len(tokens) < MIN_ROW_TOKENS:
        return None
    if not _is_unit_id(tokens[0]):
        return None
    delivery, product = tokens[1], tokens[2]
    country, qty = tokens[-2], tokens[-1]
    if not delivery or not product:
        return None
    if not _is_country(country) or not _is_quantity(qty):
        return None
    return UnitFact(
        handling_unit=pad_handling_unit(tokens[0]),
        delivery_number=delivery,
        product_id=product,
        country_of_origin=country.upper(),
        quantity=int(qty),
        description=" ".join(tokens[3:-2]),
    )


def parse_unit_facts(text: str) -> List[UnitFact]:
    """Zero or more facts from one logical line; non-matching text yields nothing."""
    tokens = text.split()
    if not tokens:
        return []
    facts: List[UnitFact] = []
    for segment in _segments(tokens):
        fact = _parse_segment(segment)
        if fact is not None:
            facts.append(fact)
    return facts


def extract_unit_facts(
    lines: Iterable[LogicalLine],
    start_marker: str = DEFAULT_SECTION_START,
    end_marker: str = DEFAULT_SECTION_END,
) -> List[UnitFact]:
    facts: List[UnitFact] = []
    for line in section_lines(lines, start_marker, end_marker):
        parsed = parse_unit_facts(line.text)
        if not parsed:
            logger.debug("line_skipped", page=line.page, text=line.text)
        facts.extend(parsed)
    return facts


def read_unit_facts(pdf_path: Union[str, Path], config: AppConfig) -> List[UnitFact]:
    pages = read_pages(pdf_path)
    lines = build_document_lines(pages, tolerance=config.line_tolerance)
    facts = extract_unit_facts(lines, config.section_start, config.section_end)
    logger.info(
        "unit_facts_extracted",
        facts=len(facts),
        products=len({f.product_id for f in facts}),
        handling_units=len({f.handling_unit for f in facts}),
    )
    return facts
