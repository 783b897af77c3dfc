"""
Match oracle adapter.

Batches one left row against its candidate set, asks the external oracle
for a verdict on every candidate in a single call, and reads the reply back
into OracleVerdicts. Unreadable replies degrade to a parse-failure
judgement; transport errors propagate.
"""

from collections.abc import Mapping, Sequence
from typing import Any, Optional
import json
import logging
import math

from ..models.reconciliation import (
    CandidatePair,
    OracleJudgement,
    OracleVerdict,
    Row,
)
from .transport import OracleTransport

logger = logging.getLogger(__name__)

DEFAULT_REASON = "No reason provided"

MATCH_INSTRUCTIONS = """You are a financial reconciliation expert.

Your task is to compare the following File A transaction to each of the File B candidates. For each candidate, output a JSON object with: file_b_index, match (true/false), confidence (0-1), and a clear, human-readable reason.

**Instructions:**
- Consider all possible reasons two transactions may represent the same real-world event, even if there are differences in description, wording, date or amount format, or currency.
- If you detect a possible partial payment, duplicate, or ambiguous record, explain this in the reason and set confidence accordingly.
- If the amounts are close but not exact, consider rounding, partial payments, or splits.
- If the dates are off by a few days, consider posting delays.
- If currencies differ, only match if you are highly confident and explain why.
- If you are uncertain, set confidence below 0.85 and explain why.
- Always give a clear, concise reason, mentioning any edge case (partial payment, duplicate, ambiguous, currency/format mismatch) that applies.

**Confidence Scoring System:**
- Use the full range from 0 (no match) to 1 (perfect match).
- 0.95-1.0: Nearly certain match (all key fields align, only minor differences).
- 0.85-0.94: Strong match with some uncertainty (minor field differences, plausible but not perfect).
- 0.7-0.84: Possible match with notable uncertainty (partial payment, ambiguous description, several plausible candidates).
- 0.5-0.69: Weak match, only some fields align, or possible duplicate.
- 0.2-0.49: Very weak match, unlikely but not impossible.
- 0-0.19: No meaningful match.
- Justify the confidence score in your reason.

Output ONLY a single JSON array, one object per File B candidate, in the same order as below, where each object is {"file_b_index": <int>, "match": <bool>, "confidence": <number>, "reason": <string>}. Do not include any commentary, markdown, or explanation outside the JSON."""

_DECODER = json.JSONDecoder()


def format_row(row: Mapping[str, Any]) -> str:
    """Render a row as "key: value" lines for the prompt."""
    return "\n".join(f"{key}: {'' if value is None else value}" for key, value in row.items())


def build_prompt(left_row: Row, candidates: Sequence[CandidatePair]) -> str:
    """Assemble the oracle prompt for one left row and its candidates."""
    candidate_blocks = "\n\n".join(
        f"{pair.right_index}:\n{format_row(pair.right_row)}" for pair in candidates
    )
    return (
        f"{MATCH_INSTRUCTIONS}\n\n"
        f"File A:\n{format_row(left_row)}\n\n"
        f"File B candidates:\n{candidate_blocks}"
    )


class MatchOracle:
    """Adapter between the assignment resolver and an OracleTransport."""

    def __init__(self, transport: OracleTransport):
        self.transport = transport
        self.calls = 0

    def judge(self, left_row: Row, candidates: Sequence[CandidatePair]) -> OracleJudgement:
        """
        Ask the oracle about every candidate for one left row.

        Args:
            left_row: Normalized left row
            candidates: Candidate pairs for that row

        Returns:
            SKIPPED for an empty candidate set, otherwise PARSED or PARSE_FAILURE
        """
        if not candidates:
            return OracleJudgement.skipped()

        prompt = build_prompt(left_row, candidates)
        self.calls += 1
        raw = self.transport.complete(prompt)

        return self.parse_response(raw, [pair.right_index for pair in candidates])

    def parse_response(self, raw: str, candidate_indices: Sequence[int]) -> OracleJudgement:
        """
        Read the oracle reply into verdicts for the given candidate indices.

        Tries the whole text as JSON first, then the first array of verdict
        objects embedded in it. Anything else is a parse failure.
        """
        items = _load_array(raw)
        if items is None:
            logger.warning(f"Failed to parse oracle response: {raw!r}")
            return OracleJudgement.parse_failure(raw)

        allowed = set(candidate_indices)
        seen: set[int] = set()
        verdicts: list[OracleVerdict] = []

        for item in items:
            verdict = _coerce_verdict(item)
            if verdict is None:
                logger.warning(f"Dropping malformed oracle verdict: {item!r}")
                continue
            if verdict.right_index not in allowed:
                logger.warning(
                    f"Dropping oracle verdict for index {verdict.right_index}, "
                    "not in the candidate batch"
                )
                continue
            if verdict.right_index in seen:
                logger.warning(f"Dropping duplicate oracle verdict for index {verdict.right_index}")
                continue
            seen.add(verdict.right_index)
            verdicts.append(verdict)

        return OracleJudgement.parsed(verdicts, raw)


def _load_array(text: str) -> Optional[list]:
    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        parsed = None
    if _is_verdict_array(parsed):
        return parsed

    # Decode from each '[' in turn; bracketed asides in prose are skipped
    text = text or ""
    start = text.find("[")
    while start != -1:
        try:
            parsed, _ = _DECODER.raw_decode(text, start)
        except json.JSONDecodeError:
            parsed = None
        if _is_verdict_array(parsed):
            return parsed
        start = text.find("[", start + 1)

    return None


def _is_verdict_array(value: Any) -> bool:
    if not isinstance(value, list):
        return False
    return not value or any(isinstance(item, dict) for item in value)


def _coerce_verdict(item: Any) -> Optional[OracleVerdict]:
    if not isinstance(item, dict):
        return None

    right_index = _coerce_index(item.get("file_b_index"))
    if right_index is None:
        return None

    return OracleVerdict(
        right_index=right_index,
        matched=_coerce_bool(item.get("match")),
        confidence=_coerce_confidence(item.get("confidence")),
        reason=str(item.get("reason") or DEFAULT_REASON),
    )


def _coerce_index(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            return None
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def _coerce_confidence(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    try:
        confidence = float(value)
    except OverflowError:
        return 0.0
    if not math.isfinite(confidence):
        return 0.0
    return min(1.0, max(0.0, confidence))
