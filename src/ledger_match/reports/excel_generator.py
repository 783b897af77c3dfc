"""
Excel report generator for ledger matching results.
Creates a multi-sheet workbook with matches, leftovers and the candidate audit.
"""

from collections.abc import Mapping, Sequence
from datetime import datetime
from pathlib import Path
from typing import Any
import logging

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Border, Side
from openpyxl.worksheet.worksheet import Worksheet

from ..config import ReconConfig
from ..matching.normalizer import extract_amount, extract_currency, find_date_value
from ..models.reconciliation import LedgerEntry, ReconciliationResult
from ..utils.exceptions import ReportGenerationError

logger = logging.getLogger(__name__)

# Style definitions
HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True)
MATCH_FILL = PatternFill(start_color="C6EFCE", end_color="C6EFCE", fill_type="solid")
VARIANCE_FILL = PatternFill(start_color="FFEB9C", end_color="FFEB9C", fill_type="solid")
UNMATCHED_FILL = PatternFill(start_color="FFC7CE", end_color="FFC7CE", fill_type="solid")
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)


def _cell_value(value: Any) -> Any:
    """Coerce a row value into something openpyxl can store."""
    if value is None or isinstance(value, (str, int, float, datetime)):
        return value
    if isinstance(value, Mapping):
        return "; ".join(f"{k}: {v}" for k, v in value.items())
    return str(value)


class ExcelReportGenerator:
    """Generates Excel ledger matching reports with multiple sheets."""

    def __init__(self, config: ReconConfig):
        """
        Initialize the report generator.

        Args:
            config: Application configuration
        """
        self.config = config
        self.sheet_config = config.output.sheets
        self.amount_columns = config.matching.amount_columns
        self.currency_columns = config.matching.currency_columns

    def generate_report(self, result: ReconciliationResult, output_path: Path) -> Path:
        """
        Generate the complete reconciliation report.

        Args:
            result: Reconciliation result
            output_path: Path for output file

        Returns:
            Path to generated report

        Raises:
            ReportGenerationError: If the workbook cannot be written
        """
        logger.info(f"Generating Excel report: {output_path}")

        wb = Workbook()

        # Remove default sheet
        if wb.active:
            wb.remove(wb.active)

        sheets = self.sheet_config
        if sheets.summary.enabled:
            self._create_summary_sheet(wb, result)
        if sheets.matches.enabled:
            self._create_matches_sheet(wb, result)
        if sheets.unmatched_left.enabled:
            self._create_unmatched_sheet(wb, sheets.unmatched_left.name, result.unmatched_left)
        if sheets.unmatched_right.enabled:
            self._create_unmatched_sheet(wb, sheets.unmatched_right.name, result.unmatched_right)
        if sheets.candidate_audit.enabled:
            self._create_audit_sheet(wb, result)

        if not wb.sheetnames:
            raise ReportGenerationError("All report sheets are disabled in configuration")

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            wb.save(output_path)
        except OSError as e:
            raise ReportGenerationError(f"Failed to save report {output_path}: {e}") from e

        logger.info(f"Report saved: {output_path}")
        return output_path

    def _create_summary_sheet(self, wb: Workbook, result: ReconciliationResult) -> None:
        """Create the summary sheet with key metrics."""
        ws = wb.create_sheet(self.sheet_config.summary.name)

        ws["A1"] = "Ledger Reconciliation Summary"
        ws["A1"].font = Font(size=16, bold=True)
        ws.merge_cells("A1:D1")

        summary = result.summary
        if summary is None:
            ws["A3"] = "Matched:"
            ws["B3"] = len(result.assignments)
            ws["A4"] = "Unmatched Ledger A:"
            ws["B4"] = len(result.unmatched_left)
            ws["A5"] = "Unmatched Ledger B:"
            ws["B5"] = len(result.unmatched_right)
        else:
            ws["A3"] = "File Information"
            ws["A3"].font = Font(bold=True)
            file_info = [
                ("Ledger A:", summary.left_name),
                ("Ledger B:", summary.right_name),
                (
                    "Reconciliation Date:",
                    summary.reconciliation_date.strftime("%Y-%m-%d %H:%M:%S"),
                ),
                ("Config File:", summary.config_file_used or "Default"),
            ]
            for i, (label, value) in enumerate(file_info, start=4):
                ws[f"A{i}"] = label
                ws[f"B{i}"] = str(value)

            ws["A9"] = "Row Counts"
            ws["A9"].font = Font(bold=True)
            count_data = [
                ("Ledger A Rows:", summary.total_left),
                ("Ledger B Rows:", summary.total_right),
                ("Matched Pairs:", summary.matched_count),
                ("Unmatched Ledger A:", summary.unmatched_left_count),
                ("Unmatched Ledger B:", summary.unmatched_right_count),
                ("Candidates Considered:", summary.candidates_considered),
                ("Oracle Calls:", summary.oracle_calls),
                ("Unreadable Oracle Responses:", summary.parse_failures),
            ]
            for i, (label, value) in enumerate(count_data, start=10):
                ws[f"A{i}"] = label
                ws[f"B{i}"] = value

            ws["A19"] = "Match Rates"
            ws["A19"].font = Font(bold=True)
            ws["A20"] = "Ledger A Match Rate:"
            ws["B20"] = f"{summary.match_rate_left:.1f}%"
            ws["A21"] = "Ledger B Match Rate:"
            ws["B21"] = f"{summary.match_rate_right:.1f}%"
            ws["A22"] = "Average Confidence:"
            ws["B22"] = f"{summary.average_confidence:.2f}"
            ws["A23"] = "Processing Time:"
            ws["B23"] = f"{summary.processing_time_seconds:.2f} seconds"

        ws.column_dimensions["A"].width = 30
        ws.column_dimensions["B"].width = 40

    def _create_matches_sheet(self, wb: Workbook, result: ReconciliationResult) -> None:
        """Create the committed matches sheet."""
        ws = wb.create_sheet(self.sheet_config.matches.name)

        headers = [
            "Ledger A Row",
            "Ledger A Date",
            "Ledger A Amount",
            "Ledger A Currency",
            "Ledger B Row",
            "Ledger B Date",
            "Ledger B Amount",
            "Ledger B Currency",
            "Confidence",
            "Match Reason",
            "Matched At",
        ]
        self._write_headers(ws, headers)

        for row_num, match in enumerate(result.assignments, start=2):
            left_currency = extract_currency(match.left_row, self.currency_columns)
            right_currency = extract_currency(match.right_row, self.currency_columns)
            row_data = [
                match.left_index,
                *self._key_fields(match.left_row),
                match.right_index,
                *self._key_fields(match.right_row),
                round(match.confidence, 2),
                match.reason,
                match.matched_at.strftime("%Y-%m-%d %H:%M:%S"),
            ]

            currency_mismatch = bool(left_currency and right_currency and left_currency != right_currency)
            for col, value in enumerate(row_data, start=1):
                cell = ws.cell(row=row_num, column=col, value=_cell_value(value))
                cell.border = THIN_BORDER
                cell.fill = VARIANCE_FILL if currency_mismatch and col in (4, 8) else MATCH_FILL

        self._auto_fit_columns(ws)

    def _create_unmatched_sheet(
        self, wb: Workbook, sheet_name: str, entries: Sequence[LedgerEntry]
    ) -> None:
        """Create an unmatched-rows sheet using the union of the rows' columns."""
        ws = wb.create_sheet(sheet_name)

        columns: list[str] = []
        for entry in entries:
            for key in entry.row:
                if key not in columns:
                    columns.append(key)

        self._write_headers(ws, ["Row", *columns])

        for row_num, entry in enumerate(entries, start=2):
            row_data = [entry.index, *(entry.row.get(c, "") for c in columns)]
            for col, value in enumerate(row_data, start=1):
                cell = ws.cell(row=row_num, column=col, value=_cell_value(value))
                cell.border = THIN_BORDER
                cell.fill = UNMATCHED_FILL

        self._auto_fit_columns(ws)

    def _create_audit_sheet(self, wb: Workbook, result: ReconciliationResult) -> None:
        """Create the candidate audit sheet: one line per oracle verdict."""
        ws = wb.create_sheet(self.sheet_config.candidate_audit.name)

        ws["A1"] = "Candidate Audit Trail"
        ws["A1"].font = Font(size=14, bold=True)
        ws["A2"] = f"Generated At: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}"

        headers = [
            "Ledger A Row",
            "Ledger B Row",
            "Ledger A Date",
            "Ledger A Amount",
            "Ledger A Currency",
            "Ledger B Date",
            "Ledger B Amount",
            "Ledger B Currency",
            "Oracle Match",
            "Confidence",
            "Reason",
            "Committed",
            "Parse Failure",
        ]
        self._write_headers(ws, headers, row=4)

        for row_num, record in enumerate(result.all_candidates, start=5):
            row_data = [
                record.left_index,
                record.right_index,
                *self._key_fields(record.left_row),
                *self._key_fields(record.right_row),
                "Yes" if record.matched else "No",
                round(record.confidence, 2),
                record.reason,
                "Yes" if record.committed else "No",
                "Yes" if record.parse_failure else "No",
            ]
            for col, value in enumerate(row_data, start=1):
                cell = ws.cell(row=row_num, column=col, value=_cell_value(value))
                cell.border = THIN_BORDER
                if record.committed:
                    cell.fill = MATCH_FILL
                elif record.parse_failure:
                    cell.fill = UNMATCHED_FILL

        self._auto_fit_columns(ws)

    def _key_fields(self, row: Mapping[str, Any]) -> list[Any]:
        """Date, amount and currency of a row, for side-by-side columns."""
        return [
            find_date_value(row) or "",
            extract_amount(row, self.amount_columns) or "",
            extract_currency(row, self.currency_columns) or "",
        ]

    @staticmethod
    def _write_headers(ws: Worksheet, headers: list[str], row: int = 1) -> None:
        for col, header in enumerate(headers, start=1):
            cell = ws.cell(row=row, column=col, value=header)
            cell.fill = HEADER_FILL
            cell.font = HEADER_FONT
            cell.border = THIN_BORDER

    def _auto_fit_columns(self, ws: Worksheet) -> None:
        """Auto-fit column widths based on content."""
        for column_cells in ws.columns:
            max_length = 0
            column = column_cells[0].column_letter

            for cell in column_cells:
                if cell.value is not None:
                    max_length = max(max_length, len(str(cell.value)))

            ws.column_dimensions[column].width = min(max_length + 2, 50)
