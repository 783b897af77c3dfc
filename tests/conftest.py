"""
Pytest Configuration and Shared Fixtures

Provides a scripted oracle transport and common ledger rows so the engine
can be exercised without network access.
"""

import json
import re
from typing import Any, Callable, Optional

import pytest

from ledger_match.config import ReconConfig
from ledger_match.matching.engine import ReconciliationEngine
from ledger_match.matching.oracle import MatchOracle

_CANDIDATE_HEADER = re.compile(r"^(\d+):$", re.MULTILINE)


class FakeTransport:
    """
    OracleTransport double.

    Replays queued responses in order (an Exception instance is raised
    instead of returned), or delegates to a handler called with the prompt.
    Every prompt is recorded.
    """

    def __init__(
        self,
        responses: Optional[list[Any]] = None,
        handler: Optional[Callable[[str], str]] = None,
    ):
        self.responses = list(responses or [])
        self.handler = handler
        self.prompts: list[str] = []

    @property
    def call_count(self) -> int:
        return len(self.prompts)

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.handler is not None:
            return self.handler(prompt)
        if not self.responses:
            raise AssertionError("FakeTransport called more times than scripted")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def candidate_indices(prompt: str) -> list[int]:
    """Right-ledger indices listed in the candidate section of a prompt."""
    section = prompt.split("File B candidates:", 1)[1]
    return [int(m) for m in _CANDIDATE_HEADER.findall(section)]


def verdicts_json(*verdicts: tuple) -> str:
    """Build an oracle reply from (index, match, confidence, reason) tuples."""
    return json.dumps(
        [
            {"file_b_index": i, "match": m, "confidence": c, "reason": r}
            for i, m, c, r in verdicts
        ]
    )


def approve_all(confidence: float = 0.95) -> Callable[[str], str]:
    """Handler that approves every candidate it is shown."""

    def handler(prompt: str) -> str:
        return verdicts_json(
            *[(i, True, confidence, "same event") for i in candidate_indices(prompt)]
        )

    return handler


@pytest.fixture
def config() -> ReconConfig:
    """Default configuration."""
    return ReconConfig()


@pytest.fixture
def make_engine(config):
    """Factory for an engine wired to a FakeTransport."""

    def _make(transport: FakeTransport, recon_config: Optional[ReconConfig] = None):
        return ReconciliationEngine(
            recon_config or config, oracle=MatchOracle(transport)
        )

    return _make


@pytest.fixture
def invoice_row() -> dict[str, Any]:
    """Accounting-system invoice row (ledger A layout)."""
    return {
        "Date": "01/29/2024",
        "Type": "Invoice",
        "No.": "KAI-0020",
        "Customer": "Koin",
        "Memo": "",
        "Amount": "1,000.00",
    }


@pytest.fixture
def wire_row() -> dict[str, Any]:
    """Bank statement wire row (ledger B layout)."""
    return {
        "Date": "01/29/2024",
        "Account Title": "Analysis Checking",
        "Tran Type": "WIRE TRANSFER CREDIT",
        "Currency": "USD",
        "Credit Amount": "1,000.00",
        "Debit Amount": "",
        "Description": "WIRE IN 240129B6B7HU3R001624;ORG Koin;OBI KAI-0020",
    }
