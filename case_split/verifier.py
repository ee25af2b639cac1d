"""Conservation check between the rewritten manifest and the Case Details.

For every (handling unit, product) the output quantities must add up to the
Case Details quantity. Mismatches within one product are repaired once by
moving quantity from surplus units to deficit units; whatever is left is
reported, never guessed away.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .allocation import RowOutcome, priced_row, unit_price
from .config import AppConfig
from .inventory import Inventory
from .logging import get_logger
from .manifest import (
    COL_CUSTOMER,
    COL_INVOICE,
    HANDLING_UNIT_SEPARATOR,
    ManifestRow,
    RecordKind,
    atomic_write_text,
    read_manifest,
    write_manifest,
)
from .models import Mismatch, Transfer, UnitFact
from .numeral import format_money, format_quantity, pad_handling_unit, to_int_quantity

logger = get_logger(__name__)

PairKey = Tuple[str, str]
Totals = Dict[PairKey, int]


def row_key(row: ManifestRow) -> PairKey:
    raw = row.handling_unit
    hu = raw if HANDLING_UNIT_SEPARATOR in raw else pad_handling_unit(raw)
    return hu, row.product_id


def expected_totals(facts: Iterable[UnitFact]) -> Totals:
    # Kept apart from Inventory.from_facts so an allocation bug cannot hide here.
    totals: Totals = {}
    for fact in facts:
        key = (fact.handling_unit, fact.product_id)
        totals[key] = totals.get(key, 0) + fact.quantity
    return totals


def actual_totals(rows: Iterable[ManifestRow]) -> Totals:
    totals: Totals = {}
    for row in rows:
        if not row.is_detail:
            continue
        key = row_key(row)
        totals[key] = totals.get(key, 0) + to_int_quantity(row.quantity)
    return totals


def find_mismatches(expected: Totals, actual: Totals) -> List[Mismatch]:
    keys = list(expected) + [k for k in actual if k not in expected]
    mismatches = []
    for hu, product in keys:
        exp = expected.get((hu, product), 0)
        act = actual.get((hu, product), 0)
        if exp != act:
            mismatches.append(Mismatch(hu, product, exp, act))
    return mismatches


def _increment(rows: List[ManifestRow], hu: str, product: str, amount: int) -> None:
    for index, row in enumerate(rows):
        if row.is_detail and row_key(row) == (hu, product):
            qty = to_int_quantity(row.quantity) + amount
            rows[index] = priced_row(row, hu, qty, unit_price(row))
            return

    positions = [i for i, row in enumerate(rows) if row.is_detail and row.product_id == product]
    template = rows[positions[0]]
    rows.insert(positions[-1] + 1, priced_row(template, hu, amount, unit_price(template)))


def _decrement(rows: List[ManifestRow], hu: str, product: str, amount: int) -> int:
    left = amount
    kept: List[ManifestRow] = []
    for row in rows:
        if left <= 0 or not row.is_detail or row_key(row) != (hu, product):
            kept.append(row)
            continue
        qty = to_int_quantity(row.quantity)
        if qty <= 0:
            kept.append(row)
            continue
        take = min(qty, left)
        left -= take
        if qty - take <= 0:
            continue
        kept.append(row.with_values(
            quantity=format_quantity(qty - take),
            net_value=format_money(unit_price(row) * (qty - take)),
        ))
    rows[:] = kept
    return amount - left


def rebalance(
    rows: Sequence[ManifestRow],
    mismatches: Iterable[Mismatch],
    inventory: Optional[Inventory] = None,
) -> Tuple[List[ManifestRow], List[Transfer]]:
    """One greedy pass per product: earliest surplus unit feeds earliest deficit unit."""
    surplus: Dict[str, List[List]] = {}
    deficit: Dict[str, List[List]] = {}
    for m in mismatches:
        # Unallocated multi-unit rows are reported as they are, never moved into or out of.
        if HANDLING_UNIT_SEPARATOR in m.handling_unit:
            continue
        if m.delta > 0:
            surplus.setdefault(m.product_id, []).append([m.handling_unit, m.delta])
        elif m.delta < 0:
            deficit.setdefault(m.product_id, []).append([m.handling_unit, -m.delta])

    out = list(rows)
    transfers: List[Transfer] = []
    for product, sources in surplus.items():
        targets = deficit.get(product, [])
        i = j = 0
        while i < len(sources) and j < len(targets):
            source, target = sources[i], targets[j]
            amount = min(source[1], target[1])
            # Increment first: the surplus row may disappear and it is the clone template.
            _increment(out, target[0], product, amount)
            moved = _decrement(out, source[0], product, amount)
            if moved != amount:
                logger.error("rebalance_short", product=product, source=source[0], requested=amount, moved=moved)
            if inventory is not None:
                inventory.reserve(target[0], product, amount)
                inventory.release(source[0], product, moved)
            transfer = Transfer(product, source[0], target[0], amount)
            transfers.append(transfer)
            logger.info("rebalance_transfer", product=product, source=source[0], target=target[0], quantity=amount)
            source[1] -= amount
            target[1] -= amount
            if source[1] == 0:
                i += 1
            if target[1] == 0:
                j += 1
    return out, transfers


@dataclass(slots=True, frozen=True)
class ReportLine:
    handling_unit: str
    product_id: str
    expected: int
    actual: int

    @property
    def ok(self) -> bool:
        return self.expected == self.actual


@dataclass(slots=True)
class VerificationReport:
    lines: List[ReportLine] = field(default_factory=list)
    transfers: List[Transfer] = field(default_factory=list)
    initial_mismatches: List[Mismatch] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)
    invoice: str = ""
    customer: str = ""

    @property
    def ok(self) -> bool:
        return all(line.ok for line in self.lines)

    @property
    def mismatches(self) -> List[ReportLine]:
        return [line for line in self.lines if not line.ok]

    def render(self) -> str:
        out: List[str] = ["Handling unit verification"]
        if self.invoice or self.customer:
            out.append(f"Invoice: {self.invoice}  Customer: {self.customer}")
        out.append("")

        by_unit: Dict[str, List[ReportLine]] = {}
        for line in self.lines:
            by_unit.setdefault(line.handling_unit, []).append(line)
        for hu, lines in by_unit.items():
            out.append(f"HU {hu}")
            for line in lines:
                marker = "OK" if line.ok else "MISMATCH"
                out.append(f"  {line.product_id:<20} expected {line.expected:>6}  actual {line.actual:>6}  {marker}")
            out.append("")

        out.append("Automatic transfers")
        out.extend(f"  {t.describe()}" for t in self.transfers)
        if not self.transfers:
            out.append("  (none)")
        out.append("")

        out.append("Allocation notes")
        out.extend(f"  {note}" for note in self.notes)
        if not self.notes:
            out.append("  (none)")
        out.append("")

        out.append(f"Overall: {'OK' if self.ok else 'FAILED'}")
        return "\n".join(out) + "\n"


def build_report(
    expected: Totals,
    actual: Totals,
    rows: Sequence[ManifestRow] = (),
    transfers: Sequence[Transfer] = (),
    initial: Sequence[Mismatch] = (),
    notes: Sequence[str] = (),
) -> VerificationReport:
    keys = list(expected) + [k for k in actual if k not in expected]
    header = next((row for row in rows if row.kind is RecordKind.HEADER), None)
    return VerificationReport(
        lines=[ReportLine(hu, product, expected.get((hu, product), 0), actual.get((hu, product), 0)) for hu, product in keys],
        transfers=list(transfers),
        initial_mismatches=list(initial),
        notes=list(notes),
        invoice=header.get(COL_INVOICE).strip() if header else "",
        customer=header.get(COL_CUSTOMER).strip() if header else "",
    )


def verify_output(
    output_path: Union[str, Path],
    facts: Sequence[UnitFact],
    inventory: Optional[Inventory] = None,
    config: Optional[AppConfig] = None,
    issues: Sequence[RowOutcome] = (),
) -> VerificationReport:
    """Verify the written output, repair it once if possible and re-verify."""
    cfg = config or AppConfig()
    expected = expected_totals(facts)
    rows = read_manifest(output_path, cfg.legend_prefix)
    initial = find_mismatches(expected, actual_totals(rows))

    transfers: List[Transfer] = []
    if initial:
        logger.info("verification_mismatches", count=len(initial))
        repaired, transfers = rebalance(rows, initial, inventory)
        if transfers:
            write_manifest(output_path, repaired, bom=cfg.write_bom, newline=cfg.newline)
            rows = read_manifest(output_path, cfg.legend_prefix)

    report = build_report(
        expected,
        actual_totals(rows),
        rows=rows,
        transfers=transfers,
        initial=initial,
        notes=[outcome.note() for outcome in issues],
    )
    if report.ok:
        logger.info("verification_done", pairs=len(report.lines), transfers=len(transfers))
    else:
        logger.warning(
            "verification_failed",
            mismatches=len(report.mismatches),
            transfers=len(transfers),
        )
    return report


def write_report(path: Union[str, Path], report: VerificationReport) -> None:
    atomic_write_text(path, report.render())
