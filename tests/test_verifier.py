from case_split.inventory import Inventory
from case_split.manifest import parse_line, read_manifest, write_manifest
from case_split.models import Mismatch, Transfer, UnitFact
from case_split.verifier import (
    actual_totals,
    expected_totals,
    find_mismatches,
    rebalance,
    verify_output,
)

HU_A = "00000000000000000001"
HU_B = "00000000000000000002"
HU_C = "00000000000000000003"


def fact(hu, product, qty):
    return UnitFact(hu, "D1", product, "TN", qty)


def rows_of(*lines):
    return [parse_line(line) for line in lines]


def test_find_mismatches_over_union_of_keys(detail_line):
    expected = expected_totals([fact(HU_A, "P1", 4), fact(HU_B, "P1", 4)])
    actual = actual_totals(rows_of(
        detail_line("P1", "4.000", "4.00", HU_A),
        detail_line("P1", "1.000", "1.00", HU_C),
    ))
    assert find_mismatches(expected, actual) == [
        Mismatch(HU_B, "P1", 4, 0),
        Mismatch(HU_C, "P1", 0, 1),
    ]


def test_actual_totals_pads_units_and_sums_rows(detail_line):
    actual = actual_totals(rows_of(
        detail_line("P1", "2.000", "2.00", "1"),
        detail_line("P1", "3.000", "3.00", HU_A),
    ))
    assert actual == {(HU_A, "P1"): 5}


def test_rebalance_moves_surplus_to_existing_deficit_row(detail_line):
    rows = rows_of(
        detail_line("P1", "6.000", "12.00", HU_A),
        detail_line("P1", "2.000", "4.00", HU_B),
    )
    facts = [fact(HU_A, "P1", 4), fact(HU_B, "P1", 4)]
    inventory = Inventory.from_facts(facts)
    inventory.reserve(HU_A, "P1", 6)
    inventory.reserve(HU_B, "P1", 2)
    mismatches = find_mismatches(expected_totals(facts), actual_totals(rows))

    repaired, transfers = rebalance(rows, mismatches, inventory)

    assert transfers == [Transfer("P1", HU_A, HU_B, 2)]
    assert [(r.handling_unit, r.quantity, r.net_value) for r in repaired] == [
        (HU_A, "4.000", "8.00"),
        (HU_B, "4.000", "8.00"),
    ]
    assert find_mismatches(expected_totals(facts), actual_totals(repaired)) == []
    assert inventory.available(HU_B, "P1") == 0
    assert inventory.overdrawn(HU_A, "P1") == 0


def test_rebalance_synthesizes_row_for_missing_unit(detail_line, header_line):
    rows = rows_of(
        header_line,
        detail_line("P1", "5.000", "10.00", HU_A),
        detail_line("P2", "1.000", "1.00", HU_A),
    )
    facts = [fact(HU_A, "P1", 3), fact(HU_B, "P1", 2), fact(HU_A, "P2", 1)]
    mismatches = find_mismatches(expected_totals(facts), actual_totals(rows))

    repaired, transfers = rebalance(rows, mismatches)

    assert transfers == [Transfer("P1", HU_A, HU_B, 2)]
    details = [(r.product_id, r.handling_unit, r.quantity, r.net_value) for r in repaired if r.is_detail]
    assert details == [
        ("P1", HU_A, "3.000", "6.00"),
        ("P1", HU_B, "2.000", "4.00"),
        ("P2", HU_A, "1.000", "1.00"),
    ]


def test_rebalance_drops_emptied_rows_and_spans_several_rows(detail_line):
    rows = rows_of(
        detail_line("P1", "1.000", "1.00", HU_A),
        detail_line("P1", "2.000", "2.00", HU_A),
        detail_line("P1", "1.000", "1.00", HU_B),
    )
    facts = [fact(HU_A, "P1", 1), fact(HU_B, "P1", 3)]
    repaired, transfers = rebalance(rows, find_mismatches(expected_totals(facts), actual_totals(rows)))

    assert transfers == [Transfer("P1", HU_A, HU_B, 2)]
    assert [(r.handling_unit, r.quantity) for r in repaired] == [(HU_A, "1.000"), (HU_B, "3.000")]


def test_rebalance_leaves_unpaired_mismatches(detail_line):
    rows = rows_of(detail_line("P1", "5.000", "5.00", HU_A))
    facts = [fact(HU_A, "P1", 4), fact(HU_B, "P2", 1)]
    mismatches = find_mismatches(expected_totals(facts), actual_totals(rows))

    repaired, transfers = rebalance(rows, mismatches)

    assert transfers == []
    assert [r.to_line() for r in repaired] == [r.to_line() for r in rows]


def test_verify_output_repairs_once_and_reports_ok(tmp_path, detail_line, header_line):
    output = tmp_path / "out.fixed.txt"
    write_manifest(output, rows_of(
        header_line,
        detail_line("P1", "6.000", "12.00", HU_A),
        detail_line("P1", "2.000", "4.00", HU_B),
    ))
    facts = [fact(HU_A, "P1", 4), fact(HU_B, "P1", 4)]

    report = verify_output(output, facts)

    assert report.ok
    assert report.transfers == [Transfer("P1", HU_A, HU_B, 2)]
    assert len(report.initial_mismatches) == 2
    text = report.render()
    assert f"HU {HU_A}" in text and f"HU {HU_B}" in text
    assert "MISMATCH" not in text
    assert "P1: moved 2 from" in text
    assert "Invoice: INV900" in text
    assert text.rstrip().endswith("Overall: OK")
    rows = read_manifest(output)
    assert actual_totals(rows) == {(HU_A, "P1"): 4, (HU_B, "P1"): 4}


def test_verify_output_reports_residual_mismatch(tmp_path, detail_line):
    output = tmp_path / "out.fixed.txt"
    write_manifest(output, rows_of(detail_line("P1", "5.000", "5.00", HU_A)))
    before = output.read_bytes()

    report = verify_output(output, [fact(HU_A, "P1", 4)])

    assert not report.ok
    assert output.read_bytes() == before
    text = report.render()
    assert "expected      4  actual      5  MISMATCH" in text
    assert text.rstrip().endswith("Overall: FAILED")


def test_rebalance_never_touches_unallocated_multi_unit_rows(detail_line):
    credit = detail_line("P1", "-1.000", "-10.00", "0000000001/0000000002")
    rows = rows_of(detail_line("P1", "5.000", "5.00", HU_A), credit)
    facts = [fact(HU_A, "P1", 4)]
    mismatches = find_mismatches(expected_totals(facts), actual_totals(rows))
    assert Mismatch("0000000001/0000000002", "P1", 0, -1) in mismatches

    repaired, transfers = rebalance(rows, mismatches)

    assert transfers == []
    assert [r.to_line() for r in repaired] == [r.to_line() for r in rows]


def test_rebalance_logs_short_surplus_instead_of_raising(detail_line):
    rows = rows_of(detail_line("P1", "1.000", "1.00", HU_A))
    mismatches = [Mismatch(HU_A, "P1", 0, 3), Mismatch(HU_B, "P1", 3, 0)]

    repaired, transfers = rebalance(rows, mismatches)

    assert transfers == [Transfer("P1", HU_A, HU_B, 3)]
    assert [(r.handling_unit, r.quantity) for r in repaired] == [(HU_B, "3.000")]
