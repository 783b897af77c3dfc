"""
Command-line interface for the ledger matching tool.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional
import json
import logging
import sys

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__
from .config import load_config, generate_default_config, ReconConfig
from .matching.engine import ReconciliationEngine
from .matching.normalizer import (
    extract_amount,
    extract_currency,
    find_date_value,
    normalize_row,
)
from .matching.transport import build_transport
from .models.reconciliation import ReconciliationResult, ReconciliationSummary
from .parsers.ledger_parser import LedgerParser
from .reports.excel_generator import ExcelReportGenerator
from .utils.logging_config import setup_logging, level_from_name

console = Console()


@click.group()
@click.version_option(version=__version__)
def main():
    """LLM-assisted ledger reconciliation tool."""
    load_dotenv()


@main.command()
@click.argument("file_a", type=click.Path(exists=True, path_type=Path))
@click.argument("file_b", type=click.Path(exists=True, path_type=Path))
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file (YAML)",
)
@click.option("-o", "--output", type=click.Path(path_type=Path), help="Output Excel file path")
@click.option(
    "--json-output", type=click.Path(path_type=Path), help="Also write the result as JSON"
)
@click.option("--date-tolerance", type=int, default=None, help="Override date tolerance in days")
@click.option(
    "--amount-tolerance",
    type=float,
    default=None,
    help="Override absolute amount tolerance",
)
@click.option(
    "--threshold",
    type=click.FloatRange(0.0, 1.0),
    default=None,
    help="Override the minimum confidence for a match",
)
@click.option("--model", default=None, help="Override the oracle model name")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option("--dry-run", is_flag=True, help="Reconcile and show summary without writing a report")
def reconcile(
    file_a: Path,
    file_b: Path,
    config: Optional[Path],
    output: Optional[Path],
    json_output: Optional[Path],
    date_tolerance: Optional[int],
    amount_tolerance: Optional[float],
    threshold: Optional[float],
    model: Optional[str],
    verbose: bool,
    dry_run: bool,
):
    """
    Reconcile two transaction ledgers.

    FILE_A: Path to the first ledger (CSV or XLSX)
    FILE_B: Path to the second ledger (CSV or XLSX)
    """
    try:
        recon_config = load_config(config)
        log_level = logging.DEBUG if verbose else level_from_name(recon_config.logging.level)
        log_file = Path(recon_config.logging.file) if recon_config.logging.file else None
        setup_logging(log_level, log_file=log_file, log_format=recon_config.logging.format)

        _apply_overrides(recon_config, date_tolerance, amount_tolerance, threshold, model)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            parser = LedgerParser(recon_config)

            task = progress.add_task(f"Parsing {file_a.name}...", total=None)
            rows_a = parser.parse_file(file_a)
            progress.update(task, completed=True)

            task = progress.add_task(f"Parsing {file_b.name}...", total=None)
            rows_b = parser.parse_file(file_b)
            progress.update(task, completed=True)

            task = progress.add_task("Matching ledgers...", total=None)
            engine = ReconciliationEngine(
                recon_config, transport=build_transport(recon_config.oracle)
            )
            result = engine.reconcile(rows_a, rows_b, file_a.name, file_b.name)
            progress.update(task, completed=True)

        if result.summary is not None:
            _display_summary(result.summary)
        _display_matches(result)

        if json_output is not None:
            json_output.parent.mkdir(parents=True, exist_ok=True)
            with open(json_output, "w") as f:
                json.dump(result.to_dict(), f, indent=2, default=str)
            console.print(f"\n[green]JSON result written: {json_output}[/green]")

        if dry_run:
            console.print("\n[yellow]Dry run - no report generated[/yellow]")
            return

        if output is None:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            output = Path(f"ledger_match_report_{timestamp}.xlsx")

        report_path = ExcelReportGenerator(recon_config).generate_report(result, output)
        console.print(f"\n[green]Report generated: {report_path}[/green]")

    except Exception as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        if verbose:
            console.print_exception()
        sys.exit(1)


@main.command()
@click.argument("ledger_file", type=click.Path(exists=True, path_type=Path))
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
def preview(ledger_file: Path, config: Optional[Path]):
    """
    Parse a ledger file and show how its rows will be read for matching.

    LEDGER_FILE: Path to the ledger (CSV or XLSX)
    """
    try:
        recon_config = load_config(config)
        parser = LedgerParser(recon_config)
        rows = parser.parse_file(ledger_file)
    except Exception as e:
        console.print(f"[red]Error parsing file: {escape(str(e))}[/red]")
        sys.exit(1)

    matching = recon_config.matching
    table = Table(title=f"Ledger Rows: {ledger_file.name}")
    table.add_column("Row", justify="right", no_wrap=True)
    table.add_column("Date", no_wrap=True)
    table.add_column("Amount", justify="right", no_wrap=True)
    table.add_column("Currency", no_wrap=True)
    table.add_column("Columns")

    for index, row in enumerate(rows[:20]):  # Show first 20
        normalized = normalize_row(row)
        filled = [k for k, v in row.items() if v not in (None, "")]
        table.add_row(
            str(index),
            str(find_date_value(normalized) or "-"),
            str(extract_amount(normalized, matching.amount_columns) or "-"),
            extract_currency(normalized, matching.currency_columns) or "-",
            ", ".join(filled)[:60],
        )

    console.print(table)

    if len(rows) > 20:
        console.print(f"\n... and {len(rows) - 20} more rows")

    console.print(f"\nTotal rows: {len(rows)}")


@main.command("init-config")
@click.option("-o", "--output", type=click.Path(path_type=Path), default=Path("config.yaml"))
def init_config(output: Path):
    """Generate a sample configuration file."""
    generate_default_config(output)
    console.print(f"[green]Configuration file generated: {output}[/green]")


def _display_summary(summary: ReconciliationSummary) -> None:
    """Display reconciliation summary in console."""
    table = Table(title="Reconciliation Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row(f"Rows in {summary.left_name}", str(summary.total_left))
    table.add_row(f"Rows in {summary.right_name}", str(summary.total_right))
    table.add_row("Matched", str(summary.matched_count))
    table.add_row(f"Unmatched in {summary.left_name}", str(summary.unmatched_left_count))
    table.add_row(f"Unmatched in {summary.right_name}", str(summary.unmatched_right_count))
    table.add_row("Candidates Considered", str(summary.candidates_considered))
    table.add_row("Oracle Calls", str(summary.oracle_calls))
    table.add_row("Unreadable Oracle Responses", str(summary.parse_failures))
    table.add_row("Average Confidence", f"{summary.average_confidence:.2f}")
    table.add_row("Processing Time", f"{summary.processing_time_seconds:.2f}s")

    console.print(table)


def _display_matches(result: ReconciliationResult) -> None:
    """Display committed matches in console."""
    if not result.assignments:
        console.print("\n[yellow]No matches committed[/yellow]")
        return

    table = Table(title="Matches")
    table.add_column("A Row", justify="right")
    table.add_column("B Row", justify="right")
    table.add_column("Confidence", justify="right")
    table.add_column("Reason")

    for match in result.assignments:
        reason = match.reason if len(match.reason) <= 60 else match.reason[:60] + "..."
        table.add_row(
            str(match.left_index),
            str(match.right_index),
            f"{match.confidence:.2f}",
            reason,
        )

    console.print(table)


def _apply_overrides(
    config: ReconConfig,
    date_tolerance: Optional[int],
    amount_tolerance: Optional[float],
    threshold: Optional[float],
    model: Optional[str],
) -> None:
    """Apply command-line overrides to the loaded configuration."""
    if date_tolerance is not None:
        config.matching.date_tolerance_days = date_tolerance
    if amount_tolerance is not None:
        config.matching.amount_tolerance = amount_tolerance
    if threshold is not None:
        config.matching.match_threshold = threshold
    if model is not None:
        config.oracle.model = model


if __name__ == "__main__":
    main()
