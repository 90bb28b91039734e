"""Unit tests for Pydantic models in src/core/models.py."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from src.core.models import (
    Confidence,
    Finding,
    Hypothesis,
    HypothesisStatus,
    IncidentMemory,
    IncidentStatus,
    Metadata,
    Severity,
    TimelineEvent,
    TLDR,
    format_timestamp,
    normalize_timestamp,
    utc_now,
)


class TestEnums:
    def test_severity_values(self):
        assert Severity.CRITICAL == "critical"
        assert Severity.LOW == "low"
        assert len(Severity) == 4

    def test_incident_status_values(self):
        assert {s.value for s in IncidentStatus} == {"investigating", "resolved", "escalated"}

    def test_hypothesis_status_values(self):
        assert HypothesisStatus.CONFIRMED_ROOT_CAUSE == "confirmed_root_cause"
        assert HypothesisStatus.RULED_OUT == "ruled_out"


class TestTimestamps:
    def test_utc_now_format(self):
        now = utc_now()
        assert now.endswith("Z")
        assert len(now) == len("2026-02-02T07:00:00.000Z")

    def test_normalize_z_suffix(self):
        assert normalize_timestamp("2026-02-02T07:00:00Z") == "2026-02-02T07:00:00.000Z"

    def test_normalize_offset_to_utc(self):
        assert normalize_timestamp("2026-02-02T09:00:00+02:00") == "2026-02-02T07:00:00.000Z"

    def test_naive_is_utc(self):
        assert normalize_timestamp("2026-02-02T07:00:00") == "2026-02-02T07:00:00.000Z"

    def test_invalid_rejected(self):
        with pytest.raises(ValueError):
            normalize_timestamp("yesterday afternoon")

    def test_lexical_order_is_chronological(self):
        base = datetime(2026, 2, 2, 7, 0, tzinfo=timezone.utc)
        stamps = [format_timestamp(base + timedelta(milliseconds=ms)) for ms in (5, 1500, 61_000)]
        assert stamps == sorted(stamps)


def _hypothesis(**overrides) -> dict:
    data = {
        "id": "hyp_1",
        "title": "DB pool exhaustion",
        "proposed_at": "2026-02-02T07:00:00.000Z",
        "proposed_by": "agent",
        "confidence": "medium",
    }
    data.update(overrides)
    return data


class TestHypothesis:
    def test_defaults(self):
        h = Hypothesis.model_validate(_hypothesis())
        assert h.status == HypothesisStatus.INVESTIGATING
        assert h.confidence == Confidence.MEDIUM
        assert h.supporting_evidence == []
        assert h.ruled_out_at is None
        assert not h.is_terminal

    def test_ruled_out_requires_timestamp(self):
        with pytest.raises(ValidationError):
            Hypothesis.model_validate(_hypothesis(status="ruled_out"))

    def test_timestamp_requires_ruled_out(self):
        with pytest.raises(ValidationError):
            Hypothesis.model_validate(_hypothesis(ruled_out_at="2026-02-02T08:00:00Z"))

    def test_ruled_out_with_timestamp(self):
        h = Hypothesis.model_validate(
            _hypothesis(status="ruled_out", ruled_out_at="2026-02-02T08:00:00Z")
        )
        assert h.is_terminal
        assert h.ruled_out_at == "2026-02-02T08:00:00.000Z"

    def test_invalid_confidence(self):
        with pytest.raises(ValidationError):
            Hypothesis.model_validate(_hypothesis(confidence="certain"))


class TestIncidentMemory:
    @pytest.fixture
    def memory(self) -> IncidentMemory:
        return IncidentMemory(
            incident_id="inc_test_1",
            incident_name="Checkout 500 Errors",
            metadata=Metadata(
                started_at="2026-02-02T07:00:00Z",
                severity="critical",
                affected_services=["checkout-api"],
                investigator="alice",
            ),
            tldr=TLDR(summary="Users report 500s", last_updated="2026-02-02T07:00:00Z"),
        )

    def test_document_omits_absent_optionals(self, memory):
        memory.findings.append(
            Finding(
                type="error",
                description="Timeouts",
                service="checkout-api",
                timestamp="2026-02-02T07:01:00Z",
            )
        )
        memory.hypotheses.append(Hypothesis.model_validate(_hypothesis()))
        doc = memory.to_document()
        assert "value" not in doc["findings"][0]
        assert "ruled_out_at" not in doc["hypotheses"][0]
        assert doc["metadata"]["status"] == "investigating"

    def test_document_field_names(self, memory):
        doc = memory.to_document()
        assert set(doc) == {
            "incident_id",
            "incident_name",
            "metadata",
            "tldr",
            "timeline",
            "hypotheses",
            "findings",
            "ruled_out",
        }

    def test_sort_timeline(self, memory):
        for ts in ("2026-02-02T07:30:00Z", "2026-02-02T06:00:00Z", "2026-02-02T07:10:00Z"):
            memory.timeline.append(
                TimelineEvent(timestamp=ts, event="e", source="logs", details="d")
            )
        memory.sort_timeline()
        stamps = [e.timestamp for e in memory.timeline]
        assert stamps == sorted(stamps)

    def test_find_hypothesis(self, memory):
        memory.hypotheses.append(Hypothesis.model_validate(_hypothesis()))
        assert memory.find_hypothesis("hyp_1").title == "DB pool exhaustion"
        assert memory.find_hypothesis("hyp_9") is None

    def test_document_roundtrip(self, memory):
        restored = IncidentMemory.model_validate(memory.to_document())
        assert restored == memory
