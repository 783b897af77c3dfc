"""End-to-end tests for the reconciliation engine."""

import json
import logging

import pytest

from ledger_match.config import MatchingConfig, ReconConfig
from ledger_match.matching.engine import ReconciliationEngine
from ledger_match.utils.exceptions import ConfigurationError, RowLimitExceededError

from .conftest import FakeTransport, candidate_indices, verdicts_json


class TestReconcileScenarios:
    """Concrete reconciliation scenarios."""

    def test_exact_match_is_committed(self, make_engine, invoice_row, wire_row):
        transport = FakeTransport([verdicts_json((0, True, 0.97, "same wire, same invoice ref"))])

        result = make_engine(transport).reconcile([invoice_row], [wire_row])

        assert len(result.assignments) == 1
        match = result.assignments[0]
        assert (match.left_index, match.right_index) == (0, 0)
        assert match.confidence == 0.97
        assert result.unmatched_left == []
        assert result.unmatched_right == []
        assert len(result.all_candidates) == 1

    def test_out_of_tolerance_row_is_left_unmatched_without_a_call(self, make_engine, invoice_row):
        right = [
            {"Date": "01/29/2024", "Amount": "2,000.00"},
            {"Date": "01/29/2024", "Amount": "400.00"},
        ]
        transport = FakeTransport()

        result = make_engine(transport).reconcile([invoice_row], right)

        assert transport.call_count == 0
        assert result.assignments == []
        assert [e.index for e in result.unmatched_left] == [0]
        assert [e.index for e in result.unmatched_right] == [0, 1]
        assert result.all_candidates == []

    def test_two_candidates_only_stronger_committed(self, make_engine, invoice_row, wire_row):
        weaker = dict(wire_row, Description="WIRE IN ORG Koin", **{"Credit Amount": "990.00"})
        transport = FakeTransport(
            [verdicts_json((0, True, 0.70, "partial payment?"), (1, True, 0.91, "same ref"))]
        )

        result = make_engine(transport).reconcile([invoice_row], [weaker, wire_row])

        assert [(a.left_index, a.right_index) for a in result.assignments] == [(0, 1)]
        assert [e.index for e in result.unmatched_right] == [0]
        audit = {c.right_index: c for c in result.all_candidates}
        assert audit[0].confidence == 0.70
        assert audit[0].committed is False
        assert audit[1].committed is True

    def test_mixed_date_representations_are_compared(self, make_engine):
        left = [{"Date": "1/29/24", "Amount": "$1,000.00"}]
        right = [{"date": 45320, "Debit Amount": "1000"}]
        transport = FakeTransport([verdicts_json((0, True, 0.9, "ok"))])

        result = make_engine(transport).reconcile(left, right)

        assert len(result.assignments) == 1
        assert result.assignments[0].left_row["Date"] == "01/29/2024"
        assert result.assignments[0].right_row["date"] == "01/29/2024"

    def test_unreadable_oracle_reply_degrades_to_no_match(self, make_engine, invoice_row, wire_row):
        transport = FakeTransport(["<html>502 Bad Gateway</html>"])

        result = make_engine(transport).reconcile([invoice_row], [wire_row])

        assert result.assignments == []
        assert len(result.all_candidates) == 1
        assert result.all_candidates[0].parse_failure is True
        assert result.summary.parse_failures == 1

    def test_non_finite_numbers_in_reply_do_not_abort(self, make_engine, invoice_row, wire_row):
        transport = FakeTransport(
            ['[{"file_b_index": Infinity, "match": true, "confidence": 1e999}]']
        )

        result = make_engine(transport).reconcile([invoice_row], [wire_row])

        assert result.assignments == []
        assert result.all_candidates == []
        assert len(result.unmatched_left) == 1


class TestEngineInvariants:
    """Properties that must hold for any oracle behaviour."""

    @pytest.fixture
    def ledgers(self):
        left = [{"Date": f"01/{d:02d}/2024", "Amount": str(100 + d)} for d in range(1, 11)]
        right = [{"Date": f"01/{d:02d}/2024", "Amount": str(100 + d)} for d in range(3, 13)]
        return left, right

    @staticmethod
    def scoring_handler(prompt: str) -> str:
        indices = candidate_indices(prompt)
        return verdicts_json(
            *[(i, i % 3 != 0, round(0.6 + (i % 5) * 0.1, 2), f"score {i}") for i in indices]
        )

    def test_one_to_one_and_complements(self, make_engine, ledgers):
        left, right = ledgers
        transport = FakeTransport(handler=self.scoring_handler)

        result = make_engine(transport).reconcile(left, right)

        left_ids = [a.left_index for a in result.assignments]
        right_ids = [a.right_index for a in result.assignments]
        assert len(left_ids) == len(set(left_ids))
        assert len(right_ids) == len(set(right_ids))
        assert {e.index for e in result.unmatched_left} == set(range(len(left))) - set(left_ids)
        assert {e.index for e in result.unmatched_right} == set(range(len(right))) - set(right_ids)

    def test_every_verdict_is_audited_once(self, make_engine, ledgers):
        left, right = ledgers
        transport = FakeTransport(handler=self.scoring_handler)

        result = make_engine(transport).reconcile(left, right)

        expected = sum(len(candidate_indices(p)) for p in transport.prompts)
        assert len(result.all_candidates) == expected
        keys = [(c.left_index, c.right_index) for c in result.all_candidates]
        assert len(keys) == len(set(keys))
        assert sum(c.committed for c in result.all_candidates) == len(result.assignments)

    def test_engine_is_reusable_across_requests(self, make_engine, ledgers):
        left, right = ledgers
        engine = make_engine(FakeTransport(handler=self.scoring_handler))

        first = engine.reconcile(left, right)
        second = engine.reconcile(left, right)

        assert [(a.left_index, a.right_index) for a in first.assignments] == [
            (a.left_index, a.right_index) for a in second.assignments
        ]


class TestRowLimitGuard:
    """Test the oversized-input guard."""

    def test_per_ledger_limit(self, make_engine):
        rows = [{"Date": "01/01/2024", "Amount": "1"}] * 16
        transport = FakeTransport()

        with pytest.raises(RowLimitExceededError, match="Too many rows") as exc_info:
            make_engine(transport).reconcile(rows, rows[:1])

        assert transport.call_count == 0
        assert exc_info.value.left_count == 16

    def test_combined_limit(self, make_engine):
        config = ReconConfig(matching=MatchingConfig(max_rows_per_ledger=10, max_total_rows=12))
        rows = [{"Date": "01/01/2024", "Amount": "1"}] * 7
        transport = FakeTransport()

        with pytest.raises(RowLimitExceededError, match="at most 12 rows"):
            make_engine(transport, config).reconcile(rows, rows)

        assert transport.call_count == 0

    def test_at_limit_is_accepted(self, make_engine):
        rows = [{"Date": "01/01/2024", "Amount": "1"}] * 15
        transport = FakeTransport(handler=lambda prompt: "[]")

        result = make_engine(transport).reconcile(rows, rows)

        assert len(result.unmatched_left) == 15


class TestTransportFailure:
    """A failed oracle call aborts the whole request."""

    def test_error_propagates_unchanged(self, make_engine, invoice_row, wire_row):
        error = PermissionError("invalid API key")
        transport = FakeTransport([error])

        with pytest.raises(PermissionError) as exc_info:
            make_engine(transport).reconcile([invoice_row], [wire_row])

        assert exc_info.value is error

    def test_abort_is_logged(self, make_engine, invoice_row, wire_row, caplog):
        transport = FakeTransport([TimeoutError("oracle timed out")])

        with caplog.at_level(logging.ERROR, logger="ledger_match"):
            with pytest.raises(TimeoutError):
                make_engine(transport).reconcile([invoice_row], [wire_row])

        assert "Reconciliation aborted: oracle timed out" in caplog.text

    def test_missing_api_key_is_a_configuration_error(self, monkeypatch):
        monkeypatch.delenv("LEDGER_MATCH_TEST_KEY", raising=False)
        config = ReconConfig()
        config.oracle.api_key_env = "LEDGER_MATCH_TEST_KEY"

        with pytest.raises(ConfigurationError, match="LEDGER_MATCH_TEST_KEY"):
            ReconciliationEngine(config)


class TestResultOutput:
    """Test the summary and serialized result."""

    def test_summary_counts(self, make_engine, invoice_row, wire_row):
        transport = FakeTransport([verdicts_json((0, True, 0.9, "ok"))])

        result = make_engine(transport).reconcile(
            [invoice_row, {"Date": "", "Amount": "5"}], [wire_row], "books.csv", "bank.xlsx"
        )

        summary = result.summary
        assert summary.left_name == "books.csv"
        assert summary.right_name == "bank.xlsx"
        assert summary.total_left == 2
        assert summary.total_right == 1
        assert summary.matched_count == 1
        assert summary.unmatched_left_count == 1
        assert summary.unmatched_right_count == 0
        assert summary.oracle_calls == 1
        assert summary.candidates_considered == 1
        assert summary.average_confidence == pytest.approx(0.9)
        assert summary.match_rate_left == pytest.approx(50.0)
        assert summary.match_rate_right == pytest.approx(100.0)

    def test_to_dict_is_json_serializable(self, make_engine, invoice_row, wire_row):
        transport = FakeTransport([verdicts_json((0, True, 0.876, "ok"))])

        payload = make_engine(transport).reconcile([invoice_row], [wire_row]).to_dict()

        assert set(payload) == {
            "matches",
            "unmatched_file_a_entries",
            "unmatched_file_b_entries",
            "llm_candidates",
            "summary",
        }
        assert payload["matches"][0]["type"] == "1-to-1"
        assert payload["matches"][0]["confidence_score"] == 0.88
        assert payload["llm_candidates"][0]["file_b_index"] == 0
        json.dumps(payload)
