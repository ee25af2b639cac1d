"""Split aggregated manifest rows into one row per handling unit.

The Case Details inventory is the source of truth: a row naming several
handling units takes capacity from the listed units first, then from any
other unit known to hold the product. Capacity is never invented; rows that
cannot be (fully) allocated are reported and kept.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Iterable, List

from .inventory import Inventory
from .logging import get_logger
from .manifest import COL_HANDLING_UNIT, HANDLING_UNIT_SEPARATOR, ManifestRow
from .models import Allocation
from .numeral import format_money, format_quantity, pad_handling_unit, parse_decimal, to_int_quantity

logger = get_logger(__name__)


class RowStatus(str, Enum):
    PASSTHROUGH = "passthrough"
    SINGLE_UNIT = "single_unit"
    SPLIT = "split"
    PARTIAL = "partial"
    UNALLOCATED = "unallocated"


@dataclass(slots=True)
class RowOutcome:
    source: ManifestRow
    status: RowStatus
    rows: List[ManifestRow]
    allocations: List[Allocation] = field(default_factory=list)
    requested: int = 0

    @property
    def allocated(self) -> int:
        return sum(a.quantity for a in self.allocations)

    @property
    def shortfall(self) -> int:
        return max(0, self.requested - self.allocated)

    def note(self) -> str:
        product = self.source.product_id
        units = self.source.handling_unit
        if self.status is RowStatus.UNALLOCATED and self.requested <= 0:
            return f"{product} [{units}]: quantity {self.requested} cannot be split across units, row kept unchanged"
        if self.status is RowStatus.UNALLOCATED:
            return f"{product} [{units}]: no capacity found for {self.requested}, row kept unchanged"
        return f"{product} [{units}]: allocated {self.allocated} of {self.requested}, short {self.shortfall}"


@dataclass(slots=True)
class AllocationRun:
    rows: List[ManifestRow] = field(default_factory=list)
    outcomes: List[RowOutcome] = field(default_factory=list)

    @property
    def issues(self) -> List[RowOutcome]:
        return [o for o in self.outcomes if o.status in (RowStatus.PARTIAL, RowStatus.UNALLOCATED)]


def unit_price(row: ManifestRow) -> Decimal:
    """Extended net value over quantity; zero when the quantity is zero."""
    qty = to_int_quantity(row.quantity)
    if qty == 0:
        return Decimal(0)
    net = parse_decimal(row.net_value) or Decimal(0)
    return net / Decimal(qty)


def priced_row(template: ManifestRow, handling_unit: str, quantity: int, price: Decimal) -> ManifestRow:
    return template.with_values(
        handling_unit=handling_unit,
        quantity=format_quantity(quantity),
        net_value=format_money(price * quantity),
    )


def listed_units(raw: str) -> List[str]:
    units = []
    for part in raw.split(HANDLING_UNIT_SEPARATOR):
        padded = pad_handling_unit(part)
        if padded:
            units.append(padded)
    return units


class AllocationEngine:
    def __init__(self, inventory: Inventory) -> None:
        self.inventory = inventory

    def split_row(self, row: ManifestRow) -> RowOutcome:
        if not row.is_detail:
            return RowOutcome(source=row, status=RowStatus.PASSTHROUGH, rows=[row])

        raw_units = row.handling_unit
        if HANDLING_UNIT_SEPARATOR not in raw_units:
            return self._single_unit(row, raw_units)

        product = row.product_id
        qty = to_int_quantity(row.quantity)
        price = unit_price(row)
        listed = listed_units(raw_units)

        allocations: List[Allocation] = []
        remaining = self._take(product, listed, qty, allocations)
        if remaining > 0:
            remaining = self._take(product, self.inventory.holders(product), remaining, allocations)

        if not allocations:
            outcome = RowOutcome(source=row, status=RowStatus.UNALLOCATED, rows=[row], requested=qty)
            logger.warning("allocation_failed", product=product, handling_units=raw_units, quantity=qty)
            return outcome

        rows = [priced_row(row, a.handling_unit, a.quantity, price) for a in allocations]
        status = RowStatus.PARTIAL if remaining > 0 else RowStatus.SPLIT
        outcome = RowOutcome(source=row, status=status, rows=rows, allocations=allocations, requested=qty)
        if status is RowStatus.PARTIAL:
            logger.warning(
                "allocation_partial",
                product=product,
                handling_units=raw_units,
                requested=qty,
                shortfall=remaining,
            )
        else:
            logger.info("allocation_split", product=product, requested=qty, parts=len(rows))
        return outcome

    def _single_unit(self, row: ManifestRow, raw_unit: str) -> RowOutcome:
        if not raw_unit:
            return RowOutcome(source=row, status=RowStatus.SINGLE_UNIT, rows=[row])
        hu = pad_handling_unit(raw_unit)
        qty = to_int_quantity(row.quantity)
        self.inventory.reserve(hu, row.product_id, qty)
        out = row if hu == row.get(COL_HANDLING_UNIT) else row.with_values(handling_unit=hu)
        return RowOutcome(
            source=row,
            status=RowStatus.SINGLE_UNIT,
            rows=[out],
            allocations=[Allocation(hu, qty)],
            requested=qty,
        )

    def _take(self, product: str, units: Iterable[str], remaining: int, allocations: List[Allocation]) -> int:
        for hu in units:
            if remaining <= 0:
                break
            take = min(self.inventory.available(hu, product), remaining)
            if take <= 0:
                continue
            self.inventory.reserve(hu, product, take)
            allocations.append(Allocation(hu, take))
            remaining -= take
        return remaining

    def split_rows(self, rows: Iterable[ManifestRow]) -> AllocationRun:
        run = AllocationRun()
        for row in rows:
            outcome = self.split_row(row)
            run.outcomes.append(outcome)
            run.rows.extend(outcome.rows)
        return run
