"""Custom exceptions for the ledger matching application."""


class ReconciliationError(Exception):
    """Base exception for reconciliation errors."""

    pass


class LedgerParseError(ReconciliationError):
    """Error reading a ledger file into rows."""

    pass


class ConfigurationError(ReconciliationError):
    """Error in configuration."""

    pass


class RowLimitExceededError(ReconciliationError):
    """Input ledgers are larger than the configured row-count guard allows."""

    def __init__(self, message: str, left_count: int, right_count: int):
        super().__init__(message)
        self.left_count = left_count
        self.right_count = right_count


class ReportGenerationError(ReconciliationError):
    """Error generating Excel report."""

    pass
