import json

import pytest
from typer.testing import CliRunner

from case_split.cli import app
from case_split.extractor import extract_unit_facts
from case_split.layout import build_lines

runner = CliRunner()


def _summary(output):
    for line in reversed(output.splitlines()):
        if line.startswith("{"):
            payload = json.loads(line)
            if "status" in payload and "event" not in payload:
                return payload
    raise AssertionError(f"no summary line in {output!r}")


@pytest.fixture()
def patched_facts(case_page, monkeypatch):
    facts = extract_unit_facts(build_lines(case_page))
    monkeypatch.setattr("case_split.pipeline.read_unit_facts", lambda path, config: facts)
    monkeypatch.setattr("case_split.cli.read_unit_facts", lambda path, config: facts)
    monkeypatch.setenv("LOG_LEVEL", "ERROR")
    return facts


def test_fix_command_writes_outputs(tmp_path, sample_manifest, patched_facts):
    pdf = tmp_path / "INV900.pdf"
    pdf.write_bytes(b"%PDF-1.4")

    result = runner.invoke(app, ["fix", str(pdf)])

    assert result.exit_code == 0, result.output
    summary = _summary(result.output)
    assert summary["status"] == "OK"
    assert summary["transfers"] == 0
    assert (tmp_path / "INV900.fixed.txt").exists()


def test_fix_command_missing_manifest_exits_1(tmp_path, patched_facts):
    pdf = tmp_path / "lonely.pdf"
    pdf.write_bytes(b"%PDF-1.4")

    result = runner.invoke(app, ["fix", str(pdf)])

    assert result.exit_code == 1
    assert not (tmp_path / "lonely.fixed.txt").exists()


def test_fix_command_failed_verification_exits_2(tmp_path, detail_line, patched_facts):
    pdf = tmp_path / "short.pdf"
    pdf.write_bytes(b"%PDF-1.4")
    manifest = tmp_path / "short.TXT"
    manifest.write_text(detail_line("5589401", "1.000", "1.00", "4401762522") + "\n", encoding="utf-8")

    result = runner.invoke(app, ["fix", str(pdf), "--manifest", str(manifest)])

    assert result.exit_code == 2
    assert _summary(result.output)["status"] == "FAILED"


def test_cases_command_prints_facts(tmp_path, patched_facts):
    result = runner.invoke(app, ["cases", str(tmp_path / "any.pdf"), "--describe"])

    assert result.exit_code == 0
    assert "TN Box 00000000004401762522: Item OIL FILTER(5589401) x 5. Part of delivery 100794958." in result.output


def test_fix_command_with_console_logs(tmp_path, sample_manifest, patched_facts, monkeypatch):
    monkeypatch.setenv("CASE_SPLIT_LOG_JSON", "no")
    pdf = tmp_path / "INV900.pdf"
    pdf.write_bytes(b"%PDF-1.4")

    result = runner.invoke(app, ["fix", str(pdf)])

    assert result.exit_code == 0, result.output
    assert _summary(result.output)["status"] == "OK"
