"""Matching engine and its pipeline stages."""

from .engine import ReconciliationEngine
from .normalizer import (
    normalize_row,
    normalize_date_value,
    extract_amount,
    extract_currency,
    parse_amount,
    parse_row_date,
)
from .candidates import candidates_for
from .oracle import MatchOracle, build_prompt
from .resolver import AssignmentResolver, ResolverState, select_best
from .aggregator import aggregate
from .transport import OracleTransport, OpenAITransport, build_transport

__all__ = [
    "ReconciliationEngine",
    "normalize_row",
    "normalize_date_value",
    "extract_amount",
    "extract_currency",
    "parse_amount",
    "parse_row_date",
    "candidates_for",
    "MatchOracle",
    "build_prompt",
    "AssignmentResolver",
    "ResolverState",
    "select_best",
    "aggregate",
    "OracleTransport",
    "OpenAITransport",
    "build_transport",
]
