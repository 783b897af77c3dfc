"""Data models for ledger reconciliation: candidates, verdicts and results."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

# A ledger row: column name to scalar value, schema varies per file
Row = dict[str, Any]

PARSE_FAILURE_REASON = "parse failure"


@dataclass(frozen=True)
class LedgerEntry:
    """A row together with its position in the source ledger."""

    index: int
    row: Row


@dataclass(frozen=True)
class CandidatePair:
    """A left/right pairing that passed the date and amount tolerance windows."""

    left_index: int
    right_index: int
    left_row: Row
    right_row: Row


@dataclass(frozen=True)
class OracleVerdict:
    """One oracle judgement for one candidate right row."""

    right_index: int
    matched: bool
    confidence: float  # 0.0 to 1.0
    reason: str


class JudgementStatus(Enum):
    """Outcome of a single oracle batch."""

    PARSED = "parsed"
    PARSE_FAILURE = "parse_failure"
    SKIPPED = "skipped"  # Empty candidate set, no call made


@dataclass
class OracleJudgement:
    """
    Result of judging one left row against its candidate set.

    Distinguishes "the oracle said no" (PARSED with matched=False verdicts)
    from "the oracle response was unreadable" (PARSE_FAILURE).
    """

    status: JudgementStatus
    verdicts: list[OracleVerdict] = field(default_factory=list)
    raw_response: Optional[str] = None

    @classmethod
    def skipped(cls) -> "OracleJudgement":
        return cls(status=JudgementStatus.SKIPPED)

    @classmethod
    def parsed(cls, verdicts: list[OracleVerdict], raw_response: str) -> "OracleJudgement":
        return cls(status=JudgementStatus.PARSED, verdicts=verdicts, raw_response=raw_response)

    @classmethod
    def parse_failure(cls, raw_response: str) -> "OracleJudgement":
        return cls(status=JudgementStatus.PARSE_FAILURE, raw_response=raw_response)

    @property
    def is_parse_failure(self) -> bool:
        return self.status is JudgementStatus.PARSE_FAILURE


@dataclass
class CandidateRecord:
    """Audit entry for one verdict, with the rows it was made about."""

    left_index: int
    right_index: int
    left_row: Row
    right_row: Row
    matched: bool
    confidence: float
    reason: str
    parse_failure: bool = False
    committed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_a_entry": self.left_row,
            "file_b_entry": self.right_row,
            "file_a_index": self.left_index,
            "file_b_index": self.right_index,
            "match": self.matched,
            "confidence_score": round(self.confidence, 2),
            "match_reason": self.reason,
            "parse_failure": self.parse_failure,
            "committed": self.committed,
        }


@dataclass
class Assignment:
    """A committed one-to-one pairing between a left row and a right row."""

    left_index: int
    right_index: int
    left_row: Row
    right_row: Row
    confidence: float
    reason: str

    # Timestamp for audit
    matched_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "1-to-1",
            "file_a_entry": self.left_row,
            "file_b_entry": self.right_row,
            "file_a_index": self.left_index,
            "file_b_index": self.right_index,
            "confidence_score": round(self.confidence, 2),
            "match_reason": self.reason,
        }


@dataclass
class ReconciliationSummary:
    """Summary of one reconciliation run."""

    left_name: str
    right_name: str
    reconciliation_date: datetime

    total_left: int
    total_right: int
    matched_count: int
    unmatched_left_count: int
    unmatched_right_count: int

    candidates_considered: int
    oracle_calls: int
    parse_failures: int

    average_confidence: float = 0.0
    processing_time_seconds: float = 0.0
    config_file_used: Optional[str] = None

    @property
    def match_rate_left(self) -> float:
        """Percentage of ledger A rows matched."""
        if self.total_left == 0:
            return 0.0
        return (self.matched_count / self.total_left) * 100

    @property
    def match_rate_right(self) -> float:
        """Percentage of ledger B rows matched."""
        if self.total_right == 0:
            return 0.0
        return (self.matched_count / self.total_right) * 100

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_a": self.left_name,
            "file_b": self.right_name,
            "reconciliation_date": self.reconciliation_date.isoformat(),
            "total_file_a_entries": self.total_left,
            "total_file_b_entries": self.total_right,
            "matched": self.matched_count,
            "unmatched_file_a": self.unmatched_left_count,
            "unmatched_file_b": self.unmatched_right_count,
            "candidates_considered": self.candidates_considered,
            "oracle_calls": self.oracle_calls,
            "parse_failures": self.parse_failures,
            "average_confidence": round(self.average_confidence, 2),
            "processing_time_seconds": round(self.processing_time_seconds, 3),
        }


@dataclass
class ReconciliationResult:
    """Final output: committed matches, leftovers on each side, and the audit trail."""

    assignments: list[Assignment]
    unmatched_left: list[LedgerEntry]
    unmatched_right: list[LedgerEntry]
    all_candidates: list[CandidateRecord]
    summary: Optional[ReconciliationSummary] = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the JSON shape consumed by the review UI."""
        payload: dict[str, Any] = {
            "matches": [a.to_dict() for a in self.assignments],
            "unmatched_file_a_entries": [e.row for e in self.unmatched_left],
            "unmatched_file_b_entries": [e.row for e in self.unmatched_right],
            "llm_candidates": [c.to_dict() for c in self.all_candidates],
        }
        if self.summary is not None:
            payload["summary"] = self.summary.to_dict()
        return payload
