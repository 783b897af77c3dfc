"""
Greedy one-to-one assignment of left rows to right rows.

The resolver is a single pass over the left ledger in index order. Each
step generates candidates against the right rows still free, asks the
oracle, records every verdict for audit, and commits the best approved
verdict at or above the threshold. Committed rows are never revisited.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional
import logging

from ..config import MatchingConfig
from ..models.reconciliation import (
    PARSE_FAILURE_REASON,
    Assignment,
    CandidatePair,
    CandidateRecord,
    OracleVerdict,
    Row,
)
from .candidates import candidates_for
from .oracle import MatchOracle

logger = logging.getLogger(__name__)


@dataclass
class ResolverState:
    """Accumulator threaded through the resolver's fold over left rows."""

    used_left: set[int] = field(default_factory=set)
    used_right: set[int] = field(default_factory=set)
    assignments: list[Assignment] = field(default_factory=list)
    candidates: list[CandidateRecord] = field(default_factory=list)
    oracle_calls: int = 0
    parse_failures: int = 0


def select_best(verdicts: Sequence[OracleVerdict]) -> Optional[OracleVerdict]:
    """
    Pick the highest-confidence verdict the oracle marked as a match.

    Ties go to the earliest verdict in oracle order.
    """
    best: Optional[OracleVerdict] = None
    for verdict in verdicts:
        if not verdict.matched:
            continue
        if best is None or verdict.confidence > best.confidence:
            best = verdict
    return best


class AssignmentResolver:
    """Single-pass greedy resolver with a confidence threshold."""

    def __init__(self, oracle: MatchOracle, config: MatchingConfig):
        """
        Initialize the resolver.

        Args:
            oracle: Match oracle adapter used for every non-empty candidate set
            config: Tolerances, threshold and amount columns
        """
        self.oracle = oracle
        self.config = config
        self.threshold = config.match_threshold
        self.amount_tolerance = Decimal(str(config.amount_tolerance))

    def resolve(self, left_rows: Sequence[Row], right_rows: Sequence[Row]) -> ResolverState:
        """
        Assign left rows to right rows.

        Args:
            left_rows: Normalized left ledger
            right_rows: Normalized right ledger

        Returns:
            Final resolver state with assignments and the candidate audit trail
        """
        state = ResolverState()
        for left_index, left_row in enumerate(left_rows):
            state = self.step(state, left_index, left_row, right_rows)
        return state

    def step(
        self,
        state: ResolverState,
        left_index: int,
        left_row: Row,
        right_rows: Sequence[Row],
    ) -> ResolverState:
        """Process one left row against the right rows still available."""
        if left_index in state.used_left:
            return state

        candidates = candidates_for(
            left_index,
            left_row,
            right_rows,
            state.used_right,
            self.config.date_tolerance_days,
            self.amount_tolerance,
            self.config.amount_columns,
        )
        if not candidates:
            return state

        logger.info(f"Ledger A row {left_index}: judging {len(candidates)} candidate(s)")
        judgement = self.oracle.judge(left_row, candidates)
        state.oracle_calls += 1

        if judgement.is_parse_failure:
            state.parse_failures += 1
            verdicts = [
                OracleVerdict(
                    right_index=pair.right_index,
                    matched=False,
                    confidence=0.0,
                    reason=PARSE_FAILURE_REASON,
                )
                for pair in candidates
            ]
        else:
            verdicts = judgement.verdicts

        by_index = {pair.right_index: pair for pair in candidates}
        records = [
            self._record(by_index[v.right_index], v, judgement.is_parse_failure)
            for v in verdicts
        ]
        state.candidates.extend(records)

        best = select_best(verdicts)
        if best is None or best.confidence < self.threshold:
            logger.debug(
                f"Ledger A row {left_index}: no verdict reached threshold {self.threshold}"
            )
            return state

        pair = by_index[best.right_index]
        state.assignments.append(
            Assignment(
                left_index=left_index,
                right_index=best.right_index,
                left_row=left_row,
                right_row=pair.right_row,
                confidence=best.confidence,
                reason=best.reason,
            )
        )
        state.used_left.add(left_index)
        state.used_right.add(best.right_index)
        records[verdicts.index(best)].committed = True

        logger.info(
            f"Matched ledger A row {left_index} to ledger B row {best.right_index} "
            f"(confidence {best.confidence:.2f})"
        )
        return state

    @staticmethod
    def _record(pair: CandidatePair, verdict: OracleVerdict, parse_failure: bool) -> CandidateRecord:
        return CandidateRecord(
            left_index=pair.left_index,
            right_index=pair.right_index,
            left_row=pair.left_row,
            right_row=pair.right_row,
            matched=verdict.matched,
            confidence=verdict.confidence,
            reason=verdict.reason,
            parse_failure=parse_failure,
        )
