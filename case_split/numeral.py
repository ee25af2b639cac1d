"""Helpers for manifest numbers, rounding and handling-unit identifiers."""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

from .logging import get_logger

__all__ = [
    "HANDLING_UNIT_WIDTH",
    "parse_decimal",
    "to_int_quantity",
    "round_half_away",
    "format_quantity",
    "format_money",
    "pad_handling_unit",
]

logger = get_logger(__name__)

HANDLING_UNIT_WIDTH = 20

_WHITESPACE = re.compile(r"\s+")
_NON_DIGIT = re.compile(r"\D")


def parse_decimal(text: Any) -> Optional[Decimal]:
    """Parse a printed number like 198.250, 198,250, 1.234,56 or 1,234.56.

    When both separators are present the last one is the decimal separator;
    a lone comma is a decimal comma.
    """
    if text is None:
        return None
    s = _WHITESPACE.sub("", str(text))
    if s == "":
        return None
    if "," in s and "." in s:
        if s.rfind(",") > s.rfind("."):
            s = s.replace(".", "").replace(",", ".")
        else:
            s = s.replace(",", "")
    elif "," in s:
        s = s.replace(",", ".")
    try:
        value = Decimal(s)
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def round_half_away(value: Decimal, places: int = 2) -> Decimal:
    # ROUND_HALF_UP on Decimal rounds ties away from zero, for negatives too
    q = Decimal(1).scaleb(-places)
    return value.quantize(q, rounding=ROUND_HALF_UP)


def to_int_quantity(text: Any) -> int:
    """Manifest quantities are printed as ``8.000``; unparseable means 0."""
    value = parse_decimal(text)
    if value is None:
        return 0
    rounded = round_half_away(value, 0)
    if rounded != value:
        logger.warning("quantity_rounded", quantity=str(text), rounded=int(rounded))
    return int(rounded)


def format_quantity(quantity: int) -> str:
    return f"{quantity}.000"


def format_money(value: Decimal) -> str:
    return str(round_half_away(value, 2))


def pad_handling_unit(raw: Optional[str]) -> str:
    """Left-pad a handling unit's digits to 20 characters.

    Values without any digit are returned trimmed and otherwise untouched.
    """
    value = (raw or "").strip()
    digits = _NON_DIGIT.sub("", value)
    if not digits:
        return value
    return digits.rjust(HANDLING_UNIT_WIDTH, "0")
