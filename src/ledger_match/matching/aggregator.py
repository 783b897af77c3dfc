"""Assemble the reconciliation result from the resolver's final state."""

from collections.abc import Sequence
from typing import Optional

from ..models.reconciliation import (
    LedgerEntry,
    ReconciliationResult,
    ReconciliationSummary,
    Row,
)
from .resolver import ResolverState


def aggregate(
    state: ResolverState,
    left_rows: Sequence[Row],
    right_rows: Sequence[Row],
    summary: Optional[ReconciliationSummary] = None,
) -> ReconciliationResult:
    """
    Build the final result.

    Unmatched rows are the complement of the committed indices on each side,
    kept in ledger order.
    """
    committed_left = {a.left_index for a in state.assignments}
    committed_right = {a.right_index for a in state.assignments}

    return ReconciliationResult(
        assignments=list(state.assignments),
        unmatched_left=[
            LedgerEntry(index=i, row=row)
            for i, row in enumerate(left_rows)
            if i not in committed_left
        ],
        unmatched_right=[
            LedgerEntry(index=j, row=row)
            for j, row in enumerate(right_rows)
            if j not in committed_right
        ],
        all_candidates=list(state.candidates),
        summary=summary,
    )
