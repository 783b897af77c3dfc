"""
Tolerance-window candidate generation.

For one left row, select the right rows close enough in date and amount to
be worth sending to the match oracle.
"""

from collections.abc import Sequence, Set
from decimal import Decimal
from typing import Iterable, Union
import logging

from ..models.reconciliation import CandidatePair, Row
from .normalizer import AMOUNT_COLUMNS, extract_amount, parse_amount, parse_row_date

logger = logging.getLogger(__name__)


def candidates_for(
    left_index: int,
    left_row: Row,
    right_rows: Sequence[Row],
    used_right: Set[int],
    date_tolerance_days: int,
    amount_tolerance: Union[Decimal, float, int],
    amount_columns: Iterable[str] = AMOUNT_COLUMNS,
) -> list[CandidatePair]:
    """
    Find the right rows within the date and amount tolerance windows.

    Rows that cannot be compared (missing date, unreadable amount on either
    side) are excluded rather than reported.

    Args:
        left_index: Position of the left row in its ledger
        left_row: Normalized left row
        right_rows: All normalized right rows
        used_right: Right indices already committed to an assignment
        date_tolerance_days: Maximum calendar-day difference
        amount_tolerance: Maximum absolute amount difference
        amount_columns: Amount column names in priority order

    Returns:
        Candidate pairs in right-ledger order
    """
    amount_columns = tuple(amount_columns)
    tolerance = Decimal(str(amount_tolerance))

    left_date = parse_row_date(left_row)
    if left_date is None:
        logger.debug(f"Left row {left_index}: no readable date, no candidates")
        return []

    left_amount = parse_amount(extract_amount(left_row, amount_columns))
    if left_amount is None:
        logger.debug(f"Left row {left_index}: no readable amount, no candidates")
        return []

    candidates: list[CandidatePair] = []
    for right_index, right_row in enumerate(right_rows):
        if right_index in used_right:
            continue

        right_date = parse_row_date(right_row)
        if right_date is None:
            continue

        if abs((left_date - right_date).days) > date_tolerance_days:
            continue

        right_amount = parse_amount(extract_amount(right_row, amount_columns))
        if right_amount is None:
            logger.debug(
                f"Left row {left_index}: right row {right_index} excluded, unreadable amount"
            )
            continue

        if abs(left_amount - right_amount) > tolerance:
            continue

        candidates.append(
            CandidatePair(
                left_index=left_index,
                right_index=right_index,
                left_row=left_row,
                right_row=right_row,
            )
        )

    logger.debug(f"Left row {left_index}: {len(candidates)} candidate(s)")
    return candidates
