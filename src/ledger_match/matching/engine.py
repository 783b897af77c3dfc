"""
Ledger matching engine.
Orchestrates normalization, candidate generation, oracle judgement,
greedy assignment and result aggregation for one reconciliation request.
"""

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any, Optional
import logging

from ..config import ReconConfig
from ..models.reconciliation import ReconciliationResult, ReconciliationSummary, Row
from ..utils.exceptions import RowLimitExceededError
from .aggregator import aggregate
from .normalizer import normalize_row
from .oracle import MatchOracle
from .resolver import AssignmentResolver, ResolverState
from .transport import OracleTransport, build_transport

logger = logging.getLogger(__name__)


class ReconciliationEngine:
    """
    Main engine that pairs rows from two ledgers.

    Holds no state between calls to reconcile(); every request gets its own
    resolver state, so one engine can serve concurrent requests.
    """

    def __init__(
        self,
        config: ReconConfig,
        oracle: Optional[MatchOracle] = None,
        transport: Optional[OracleTransport] = None,
    ):
        """
        Initialize the reconciliation engine.

        Args:
            config: Application configuration
            oracle: Match oracle adapter (built from transport if omitted)
            transport: Oracle transport (built from config if both are omitted)
        """
        self.config = config
        if oracle is None:
            oracle = MatchOracle(transport or build_transport(config.oracle))
        self.oracle = oracle

    def reconcile(
        self,
        left_rows: Sequence[Mapping[str, Any]],
        right_rows: Sequence[Mapping[str, Any]],
        left_name: str = "ledger_a",
        right_name: str = "ledger_b",
    ) -> ReconciliationResult:
        """
        Reconcile two ledgers.

        Args:
            left_rows: Ledger A rows as parsed from the source file
            right_rows: Ledger B rows as parsed from the source file
            left_name: Display name for ledger A
            right_name: Display name for ledger B

        Returns:
            Complete reconciliation result

        Raises:
            RowLimitExceededError: If the input is larger than the configured guard
        """
        self.check_row_limits(left_rows, right_rows)

        start_time = datetime.now()
        logger.info(
            f"Starting reconciliation: {len(left_rows)} rows in {left_name}, "
            f"{len(right_rows)} rows in {right_name}"
        )

        norm_left = [normalize_row(row) for row in left_rows]
        norm_right = [normalize_row(row) for row in right_rows]

        resolver = AssignmentResolver(self.oracle, self.config.matching)
        try:
            state = resolver.resolve(norm_left, norm_right)
        except Exception as e:
            logger.error(f"Reconciliation aborted: {e}")
            raise

        elapsed = (datetime.now() - start_time).total_seconds()
        summary = self.generate_summary(
            state, norm_left, norm_right, left_name, right_name, elapsed
        )
        result = aggregate(state, norm_left, norm_right, summary)

        logger.info(
            f"Reconciliation complete in {elapsed:.2f}s: {len(result.assignments)} matches, "
            f"{len(result.unmatched_left)} unmatched in {left_name}, "
            f"{len(result.unmatched_right)} unmatched in {right_name}, "
            f"{state.oracle_calls} oracle call(s)"
        )
        return result

    def check_row_limits(
        self,
        left_rows: Sequence[Mapping[str, Any]],
        right_rows: Sequence[Mapping[str, Any]],
    ) -> None:
        """Reject inputs that would need too many oracle calls."""
        matching = self.config.matching
        left_count, right_count = len(left_rows), len(right_rows)

        if left_count > matching.max_rows_per_ledger or right_count > matching.max_rows_per_ledger:
            raise RowLimitExceededError(
                f"Too many rows to reconcile: each ledger may have at most "
                f"{matching.max_rows_per_ledger} rows (got {left_count} and {right_count}). "
                "Please upload smaller files.",
                left_count,
                right_count,
            )

        if left_count + right_count > matching.max_total_rows:
            raise RowLimitExceededError(
                f"Too many rows to reconcile: at most {matching.max_total_rows} rows "
                f"in total (got {left_count + right_count}). Please upload smaller files.",
                left_count,
                right_count,
            )

    def generate_summary(
        self,
        state: ResolverState,
        left_rows: Sequence[Row],
        right_rows: Sequence[Row],
        left_name: str,
        right_name: str,
        processing_time: float,
    ) -> ReconciliationSummary:
        """
        Generate a summary of the reconciliation results.

        Args:
            state: Final resolver state
            left_rows: Normalized ledger A rows
            right_rows: Normalized ledger B rows
            left_name: Display name for ledger A
            right_name: Display name for ledger B
            processing_time: Time taken in seconds

        Returns:
            Reconciliation summary object
        """
        matched = len(state.assignments)
        average_confidence = (
            sum(a.confidence for a in state.assignments) / matched if matched else 0.0
        )

        return ReconciliationSummary(
            left_name=left_name,
            right_name=right_name,
            reconciliation_date=datetime.now(),
            total_left=len(left_rows),
            total_right=len(right_rows),
            matched_count=matched,
            unmatched_left_count=len(left_rows) - matched,
            unmatched_right_count=len(right_rows) - matched,
            candidates_considered=len(state.candidates),
            oracle_calls=state.oracle_calls,
            parse_failures=state.parse_failures,
            average_confidence=average_confidence,
            processing_time_seconds=processing_time,
            config_file_used=self.config.config_file_path,
        )
