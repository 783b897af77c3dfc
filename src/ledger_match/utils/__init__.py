"""Utility modules."""

from .exceptions import (
    ReconciliationError,
    LedgerParseError,
    ConfigurationError,
    RowLimitExceededError,
    ReportGenerationError,
)
from .logging_config import setup_logging, level_from_name

__all__ = [
    "ReconciliationError",
    "LedgerParseError",
    "ConfigurationError",
    "RowLimitExceededError",
    "ReportGenerationError",
    "setup_logging",
    "level_from_name",
]
