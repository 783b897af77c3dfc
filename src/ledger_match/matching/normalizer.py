"""
Field normalization for heterogeneous ledger rows.

Dates are rewritten in place (on a copy) to a canonical MM/DD/YYYY string.
Amount and currency are looked up, never written back to the row.
"""

from collections.abc import Mapping
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional
import math
import re

from ..config import DEFAULT_AMOUNT_COLUMNS, DEFAULT_CURRENCY_COLUMNS
from ..models.reconciliation import Row

CANONICAL_DATE_FORMAT = "%m/%d/%Y"
DATE_FIELD_NAME = "date"

AMOUNT_COLUMNS = tuple(DEFAULT_AMOUNT_COLUMNS)
CURRENCY_COLUMNS = tuple(DEFAULT_CURRENCY_COLUMNS)

# Spreadsheet serial day numbers use the 1900 date system, whose day 0 is
# 1899-12-30 once the fictitious 1900-02-29 is accounted for.
SERIAL_EPOCH = date(1899, 12, 30)
SERIAL_MIN = 40000  # 2009-07-06
SERIAL_MAX = 60000  # 2064-04-08

_FOUR_DIGIT_YEAR = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{4})$")
_TWO_DIGIT_YEAR = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{2})$")
_NON_NUMERIC = re.compile(r"[^\d.\-]")


def normalize_date_value(value: Any) -> str:
    """
    Normalize a single date value to an MM/DD/YYYY string.

    Unrecognized values are returned as their trimmed string form, so the
    function never fails and applying it twice gives the same result.

    Args:
        value: Raw date cell (string, spreadsheet serial, date/datetime or None)

    Returns:
        Canonical date string, or the trimmed input when it cannot be read
    """
    if value is None:
        return ""

    if isinstance(value, datetime):
        return value.strftime(CANONICAL_DATE_FORMAT)
    if isinstance(value, date):
        return value.strftime(CANONICAL_DATE_FORMAT)

    if _is_number(value) and SERIAL_MIN < value < SERIAL_MAX:
        serial_date = SERIAL_EPOCH + timedelta(days=math.floor(value))
        return serial_date.strftime(CANONICAL_DATE_FORMAT)

    text = str(value).strip()

    match = _FOUR_DIGIT_YEAR.match(text)
    if match:
        month, day, year = match.groups()
        return f"{month.zfill(2)}/{day.zfill(2)}/{year}"

    match = _TWO_DIGIT_YEAR.match(text)
    if match:
        month, day, short_year = match.groups()
        yy = int(short_year)
        # 00-49 -> 2000-2049, 50-99 -> 1950-1999
        year = 2000 + yy if yy < 50 else 1900 + yy
        return f"{month.zfill(2)}/{day.zfill(2)}/{year}"

    return text


def is_date_field(name: Any) -> bool:
    """Check whether a column name designates the date field."""
    return isinstance(name, str) and name.strip().lower() == DATE_FIELD_NAME


def normalize_row(row: Mapping[str, Any]) -> Row:
    """
    Return a copy of the row with every date field normalized.

    Nested mappings are walked recursively; lists and other values are
    copied through untouched.
    """
    normalized: Row = {}
    for key, value in row.items():
        if isinstance(value, Mapping):
            normalized[key] = normalize_row(value)
        elif is_date_field(key):
            normalized[key] = normalize_date_value(value)
        else:
            normalized[key] = value
    return normalized


def extract_amount(
    row: Mapping[str, Any], columns: Iterable[str] = AMOUNT_COLUMNS
) -> Optional[Any]:
    """Return the first non-blank amount-bearing value in priority order."""
    for column in columns:
        value = row.get(column)
        if not _is_blank(value):
            return value
    return None


def extract_currency(
    row: Mapping[str, Any], columns: Iterable[str] = CURRENCY_COLUMNS
) -> Optional[str]:
    """Return the first non-blank currency code, trimmed and upper-cased."""
    for column in columns:
        value = row.get(column)
        if not _is_blank(value):
            return str(value).strip().upper()
    return None


def parse_amount(value: Any) -> Optional[Decimal]:
    """
    Parse an amount cell into a signed Decimal.

    Currency symbols, thousands separators and any other characters besides
    digits, '.' and '-' are stripped before parsing.

    Returns:
        Decimal amount or None if the value cannot be read
    """
    if _is_blank(value) or isinstance(value, bool):
        return None

    if _is_number(value) or isinstance(value, Decimal):
        if not math.isfinite(value):
            return None
        return Decimal(str(value))

    cleaned = _NON_NUMERIC.sub("", str(value))
    if not cleaned:
        return None

    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return None


def find_date_value(row: Mapping[str, Any]) -> Any:
    """Return the value of the row's top-level date field, if any."""
    for key, value in row.items():
        if is_date_field(key):
            return value
    return None


def parse_row_date(row: Mapping[str, Any]) -> Optional[date]:
    """Read the row's date field as a calendar date (expects a normalized row)."""
    value = find_date_value(row)
    if _is_blank(value):
        return None

    try:
        return datetime.strptime(normalize_date_value(value), CANONICAL_DATE_FORMAT).date()
    except ValueError:
        return None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value.strip() == ""
