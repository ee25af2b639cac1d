"""Command-line interface for the case-split reconciler."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

from .config import load_config
from .extractor import read_unit_facts
from .logging import configure_logging, get_logger
from .pipeline import fix_invoice, sibling_paths

logger = get_logger(__name__)

app = typer.Typer(add_completion=False, help="Split supplier manifest rows per handling unit")

EXIT_INPUT_ERROR = 1
EXIT_VERIFICATION_FAILED = 2


@app.command("fix")
def fix_command(
    pdf: Path = typer.Argument(..., help="Invoice PDF with a Case Details section"),
    manifest: Optional[Path] = typer.Option(
        None,
        "--manifest",
        help="Supplier manifest (default: the .TXT next to the PDF)",
    ),
    output: Optional[Path] = typer.Option(None, "--output", help="Rewritten manifest path"),
    report: Optional[Path] = typer.Option(None, "--report", help="Verification report path"),
) -> None:
    config = load_config()
    configure_logging(config.log_level, json_logs=config.log_json)
    paths = sibling_paths(pdf, config)

    try:
        result = fix_invoice(pdf, config, manifest_path=manifest, output_path=output, report_path=report)
    except (FileNotFoundError, UnicodeDecodeError) as exc:
        logger.error("run_aborted", pdf=str(pdf), error=str(exc))
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=EXIT_INPUT_ERROR)

    typer.echo(json.dumps({
        "output": str(output or paths.output),
        "report": str(report or paths.report),
        "status": "OK" if result.ok else "FAILED",
        "transfers": len(result.transfers),
        "mismatches": len(result.mismatches),
    }, ensure_ascii=False))
    if not result.ok:
        raise typer.Exit(code=EXIT_VERIFICATION_FAILED)


@app.command("cases")
def cases_command(
    pdf: Path = typer.Argument(..., help="Invoice PDF with a Case Details section"),
    describe: bool = typer.Option(False, "--describe", help="Print readable sentences instead of JSON"),
) -> None:
    config = load_config()
    configure_logging(config.log_level, json_logs=config.log_json)
    try:
        facts = read_unit_facts(pdf, config)
    except FileNotFoundError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=EXIT_INPUT_ERROR)

    for fact in facts:
        if describe:
            typer.echo(fact.describe())
            continue
        typer.echo(json.dumps({
            "handling_unit": fact.handling_unit,
            "delivery_number": fact.delivery_number,
            "product_id": fact.product_id,
            "country_of_origin": fact.country_of_origin,
            "quantity": fact.quantity,
        }, ensure_ascii=False))


def main():
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
