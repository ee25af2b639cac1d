"""Domain models shared by the layout, allocation and verification stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(slots=True, frozen=True)
class PositionedToken:
    """A word from the positional document, in PDF user space (origin bottom-left)."""

    text: str
    left: float
    bottom: float
    right: Optional[float] = None
    top: Optional[float] = None
    page: Optional[int] = None


@dataclass(slots=True)
class LogicalLine:
    """Tokens believed to share one visual row.

    ``tokens[0]`` is the reference token the line was started with; the
    joined text is always produced in left-to-right order.
    """

    tokens: List[PositionedToken] = field(default_factory=list)
    page: Optional[int] = None

    @property
    def bottom(self) -> float:
        return self.tokens[0].bottom

    @property
    def text(self) -> str:
        ordered = sorted(self.tokens, key=lambda t: t.left)
        return " ".join(t.text for t in ordered).strip()


@dataclass(slots=True, frozen=True)
class UnitFact:
    """One handling unit x product observation from the Case Details section."""

    handling_unit: str
    delivery_number: str
    product_id: str
    country_of_origin: str
    quantity: int
    description: str = ""

    def describe(self) -> str:
        return (
            f"{self.country_of_origin} Box {self.handling_unit}: "
            f"Item {self.description}({self.product_id}) x {self.quantity}. "
            f"Part of delivery {self.delivery_number}."
        )


@dataclass(slots=True, frozen=True)
class Allocation:
    handling_unit: str
    quantity: int


@dataclass(slots=True, frozen=True)
class Mismatch:
    """Difference between the rewritten manifest and the ground truth for one pair."""

    handling_unit: str
    product_id: str
    expected: int
    actual: int

    @property
    def delta(self) -> int:
        """Positive for a surplus in the output, negative for a deficit."""
        return self.actual - self.expected


@dataclass(slots=True, frozen=True)
class Transfer:
    product_id: str
    from_unit: str
    to_unit: str
    quantity: int

    def describe(self) -> str:
        return f"{self.product_id}: moved {self.quantity} from {self.from_unit} to {self.to_unit}"
