"""Data models for ledger reconciliation."""

from .reconciliation import (
    PARSE_FAILURE_REASON,
    Row,
    LedgerEntry,
    CandidatePair,
    OracleVerdict,
    JudgementStatus,
    OracleJudgement,
    CandidateRecord,
    Assignment,
    ReconciliationSummary,
    ReconciliationResult,
)

__all__ = [
    "PARSE_FAILURE_REASON",
    "Row",
    "LedgerEntry",
    "CandidatePair",
    "OracleVerdict",
    "JudgementStatus",
    "OracleJudgement",
    "CandidateRecord",
    "Assignment",
    "ReconciliationSummary",
    "ReconciliationResult",
]
