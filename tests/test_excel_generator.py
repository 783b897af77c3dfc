"""Tests for the Excel report writer."""

import pytest
from openpyxl import load_workbook

from ledger_match.config import ReconConfig
from ledger_match.reports.excel_generator import ExcelReportGenerator
from ledger_match.utils.exceptions import ReportGenerationError

from .conftest import FakeTransport, verdicts_json


@pytest.fixture
def result(make_engine, invoice_row, wire_row):
    left = [invoice_row, {"Date": "03/01/2024", "Amount": "75.00", "Memo": "fee"}]
    right = [
        dict(wire_row, **{"Credit Amount": "995.00"}),
        wire_row,
        {"Date": "05/05/2024", "Debit Amount": "12.00", "Currency": "EUR"},
    ]
    transport = FakeTransport(
        [verdicts_json((0, True, 0.72, "possible partial payment"), (1, True, 0.96, "same ref"))]
    )
    return make_engine(transport).reconcile(left, right, "books.csv", "bank.csv")


class TestExcelReportGenerator:
    """Test workbook contents."""

    def test_all_sheets_written(self, result, tmp_path):
        path = ExcelReportGenerator(ReconConfig()).generate_report(result, tmp_path / "out" / "r.xlsx")

        wb = load_workbook(path)
        assert wb.sheetnames == [
            "Summary",
            "Matches",
            "Unmatched Ledger A",
            "Unmatched Ledger B",
            "Candidate Audit",
        ]

    def test_summary_values(self, result, tmp_path):
        path = ExcelReportGenerator(ReconConfig()).generate_report(result, tmp_path / "r.xlsx")

        ws = load_workbook(path)["Summary"]
        assert ws["B4"].value == "books.csv"
        assert ws["B5"].value == "bank.csv"
        assert ws["B12"].value == 1  # Matched Pairs

    def test_matches_sheet(self, result, tmp_path):
        path = ExcelReportGenerator(ReconConfig()).generate_report(result, tmp_path / "r.xlsx")

        ws = load_workbook(path)["Matches"]
        assert ws["A1"].value == "Ledger A Row"
        assert ws["A2"].value == 0
        assert ws["E2"].value == 1
        assert ws["G2"].value == "1,000.00"
        assert ws["I2"].value == 0.96
        assert ws["A3"].value is None

    def test_unmatched_sheets_use_row_columns(self, result, tmp_path):
        path = ExcelReportGenerator(ReconConfig()).generate_report(result, tmp_path / "r.xlsx")

        wb = load_workbook(path)
        left = wb["Unmatched Ledger A"]
        assert [c.value for c in left[1]] == ["Row", "Date", "Amount", "Memo"]
        assert [c.value for c in left[2]] == [1, "03/01/2024", "75.00", "fee"]

        right = wb["Unmatched Ledger B"]
        assert [right.cell(row=r, column=1).value for r in (2, 3)] == [0, 2]

    def test_audit_sheet_lists_every_candidate(self, result, tmp_path):
        path = ExcelReportGenerator(ReconConfig()).generate_report(result, tmp_path / "r.xlsx")

        ws = load_workbook(path)["Candidate Audit"]
        assert ws["A4"].value == "Ledger A Row"
        audited = [(ws.cell(row=r, column=2).value, ws.cell(row=r, column=12).value) for r in (5, 6)]
        assert audited == [(0, "No"), (1, "Yes")]
        assert ws.cell(row=7, column=1).value is None

    def test_disabled_sheets_are_skipped(self, result, tmp_path):
        config = ReconConfig()
        config.output.sheets.candidate_audit.enabled = False
        config.output.sheets.summary.name = "Overview"

        path = ExcelReportGenerator(config).generate_report(result, tmp_path / "r.xlsx")

        sheetnames = load_workbook(path).sheetnames
        assert "Candidate Audit" not in sheetnames
        assert sheetnames[0] == "Overview"

    def test_all_sheets_disabled(self, result, tmp_path):
        config = ReconConfig()
        for name in ("summary", "matches", "unmatched_left", "unmatched_right", "candidate_audit"):
            getattr(config.output.sheets, name).enabled = False

        with pytest.raises(ReportGenerationError):
            ExcelReportGenerator(config).generate_report(result, tmp_path / "r.xlsx")
