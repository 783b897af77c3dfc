"""
Ledger file parser.
Reads CSV and Excel exports with arbitrary column layouts into row mappings.
"""

from pathlib import Path
from typing import Any
import logging

import pandas as pd

from ..config import ReconConfig
from ..matching.normalizer import (
    extract_amount,
    extract_currency,
    find_date_value,
    is_date_field,
)
from ..models.reconciliation import Row
from ..utils.exceptions import LedgerParseError

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".csv", ".xlsx")


class LedgerParser:
    """
    Parser for ledger exports.

    Rows are returned as plain dicts keyed by column header. Cell values are
    left as read; date canonicalization happens in the matching engine.
    """

    def __init__(self, config: ReconConfig):
        """
        Initialize the parser with configuration.

        Args:
            config: Application configuration object
        """
        self.config = config
        self.input_config = config.input

    def parse_file(self, file_path: Path) -> list[Row]:
        """
        Parse a ledger file into rows.

        Args:
            file_path: Path to a .csv or .xlsx file

        Returns:
            List of rows in file order

        Raises:
            LedgerParseError: If the file type is unsupported or reading fails
        """
        logger.info(f"Parsing ledger file: {file_path}")
        df = self._read_dataframe(file_path)
        rows = self._process_dataframe(df)
        logger.info(f"Extracted {len(rows)} rows from {file_path.name}")
        return rows

    def _read_dataframe(self, file_path: Path) -> pd.DataFrame:
        extension = file_path.suffix.lower()
        if extension not in SUPPORTED_EXTENSIONS:
            raise LedgerParseError(f"Unsupported file extension: {extension or file_path.name}")

        try:
            if extension == ".csv":
                return pd.read_csv(
                    file_path,
                    encoding=self.input_config.encoding,
                    delimiter=self.input_config.delimiter,
                    dtype=str,
                    keep_default_na=False,
                    skip_blank_lines=True,
                )
            sheet = self.input_config.sheet_name if self.input_config.sheet_name else 0
            return pd.read_excel(file_path, sheet_name=sheet, dtype=object, engine="openpyxl")
        except Exception as e:
            logger.error(f"Failed to read ledger file {file_path}: {e}")
            raise LedgerParseError(f"Failed to read ledger file {file_path.name}: {e}") from e

    def _process_dataframe(self, df: pd.DataFrame) -> list[Row]:
        """
        Convert DataFrame rows to plain dicts.

        Missing cells become empty strings and pandas timestamps become
        plain datetimes. Rows where every cell is blank are dropped.
        """
        rows: list[Row] = []
        for _, series in df.iterrows():
            row = {str(column): self._clean_value(value) for column, value in series.items()}
            if all(value == "" for value in row.values()):
                continue
            rows.append(row)
        return rows

    @staticmethod
    def _clean_value(value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, pd.Timestamp):
            return value.to_pydatetime()
        try:
            if pd.isna(value):
                return ""
        except (TypeError, ValueError):
            pass
        return value

    def get_file_summary(self, file_path: Path) -> dict:
        """
        Get summary information from a ledger file.

        Args:
            file_path: Path to the ledger file

        Returns:
            Dictionary with file summary information
        """
        rows = self.parse_file(file_path)
        matching = self.config.matching
        columns = list(rows[0].keys()) if rows else []

        return {
            "row_count": len(rows),
            "columns": columns,
            "date_columns": [c for c in columns if is_date_field(c)],
            "amount_columns": [c for c in matching.amount_columns if c in columns],
            "currency_columns": [c for c in matching.currency_columns if c in columns],
            "rows_with_date": sum(1 for r in rows if find_date_value(r) not in (None, "")),
            "rows_with_amount": sum(
                1 for r in rows if extract_amount(r, matching.amount_columns) is not None
            ),
            "currencies": sorted(
                {
                    c
                    for c in (extract_currency(r, matching.currency_columns) for r in rows)
                    if c
                }
            ),
        }
