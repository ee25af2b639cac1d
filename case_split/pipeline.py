"""One reconciliation run: extract, allocate, write, verify (and repair once), report."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

from .allocation import AllocationEngine
from .config import AppConfig
from .extractor import read_unit_facts
from .inventory import Inventory
from .logging import get_logger
from .manifest import read_manifest, write_manifest
from .models import UnitFact
from .verifier import VerificationReport, verify_output, write_report

logger = get_logger(__name__)

PathLike = Union[str, Path]


@dataclass(slots=True)
class InvoicePaths:
    pdf: Path
    manifest: Path
    output: Path
    report: Path


def sibling_paths(pdf_path: PathLike, config: AppConfig) -> InvoicePaths:
    """The supplier ships ``X.pdf`` with ``X.TXT``; outputs land next to them."""
    pdf = Path(pdf_path)
    manifest = pdf.with_suffix(".TXT")
    if not manifest.exists() and pdf.with_suffix(".txt").exists():
        manifest = pdf.with_suffix(".txt")
    return InvoicePaths(
        pdf=pdf,
        manifest=manifest,
        output=pdf.with_name(pdf.stem + config.output_suffix),
        report=pdf.with_name(pdf.stem + config.report_suffix),
    )


def reconcile(
    manifest_path: PathLike,
    facts: Sequence[UnitFact],
    output_path: PathLike,
    report_path: Optional[PathLike] = None,
    config: Optional[AppConfig] = None,
) -> VerificationReport:
    cfg = config or AppConfig()
    manifest = Path(manifest_path)
    if not manifest.exists():
        raise FileNotFoundError(f"Manifest not found: {manifest}")

    inventory = Inventory.from_facts(facts)
    rows = read_manifest(manifest, cfg.legend_prefix)
    logger.info("manifest_read", manifest=manifest.name, rows=len(rows), facts=len(facts))

    engine = AllocationEngine(inventory)
    run = engine.split_rows(rows)
    write_manifest(output_path, run.rows, bom=cfg.write_bom, newline=cfg.newline)
    logger.info(
        "manifest_written",
        output=Path(output_path).name,
        rows=len(run.rows),
        issues=len(run.issues),
    )

    report = verify_output(output_path, facts, inventory=inventory, config=cfg, issues=run.issues)
    if report_path is not None:
        write_report(report_path, report)
    return report


def fix_invoice(
    pdf_path: PathLike,
    config: Optional[AppConfig] = None,
    manifest_path: Optional[PathLike] = None,
    output_path: Optional[PathLike] = None,
    report_path: Optional[PathLike] = None,
) -> VerificationReport:
    cfg = config or AppConfig()
    paths = sibling_paths(pdf_path, cfg)
    manifest = Path(manifest_path) if manifest_path else paths.manifest
    if not manifest.exists():
        raise FileNotFoundError(f"Manifest not found: {manifest}")

    facts = read_unit_facts(paths.pdf, cfg)
    return reconcile(
        manifest,
        facts,
        output_path or paths.output,
        report_path or paths.report,
        cfg,
    )
