"""Pydantic models for the incident memory document.

One ``IncidentMemory`` is persisted per incident as pretty-printed JSON.
Timestamps are ISO-8601 UTC strings with millisecond precision and a ``Z``
suffix, so lexical order equals chronological order.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, Field, model_validator


# ── Timestamps ──────────────────────────────────────────────────


def format_timestamp(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def utc_now() -> str:
    return format_timestamp(datetime.now(timezone.utc))


def normalize_timestamp(value: str) -> str:
    """Canonicalise an ISO-8601 string; naive values are taken as UTC."""
    try:
        dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        raise ValueError(f"not an ISO-8601 timestamp: {value!r}") from None
    return format_timestamp(dt)


IsoTimestamp = Annotated[str, AfterValidator(normalize_timestamp)]


# ── Enums ───────────────────────────────────────────────────────


class IncidentStatus(str, Enum):
    INVESTIGATING = "investigating"
    RESOLVED = "resolved"
    ESCALATED = "escalated"


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class HypothesisStatus(str, Enum):
    INVESTIGATING = "investigating"
    CONFIRMED_ROOT_CAUSE = "confirmed_root_cause"
    RULED_OUT = "ruled_out"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class EventSource(str, Enum):
    LOGS = "logs"
    USER = "user"
    AGENT = "agent"
    METRICS = "metrics"


class Proposer(str, Enum):
    AGENT = "agent"
    USER = "user"


class FindingType(str, Enum):
    ERROR = "error"
    METRIC = "metric"
    CONFIG_CHANGE = "config_change"


# ── Record parts ────────────────────────────────────────────────


class Metadata(BaseModel):
    started_at: IsoTimestamp
    status: IncidentStatus = IncidentStatus.INVESTIGATING
    severity: Severity
    affected_services: list[str] = Field(default_factory=list)
    investigator: str


class TLDR(BaseModel):
    summary: str
    last_updated: IsoTimestamp


class TimelineEvent(BaseModel):
    timestamp: IsoTimestamp
    event: str
    source: EventSource
    details: str


class Hypothesis(BaseModel):
    id: str
    title: str
    proposed_at: IsoTimestamp
    proposed_by: Proposer
    status: HypothesisStatus = HypothesisStatus.INVESTIGATING
    confidence: Confidence
    supporting_evidence: list[str] = Field(default_factory=list)
    counter_evidence: list[str] = Field(default_factory=list)
    ruled_out_at: Optional[IsoTimestamp] = None

    @model_validator(mode="after")
    def _ruled_out_at_matches_status(self) -> "Hypothesis":
        is_ruled_out = self.status == HypothesisStatus.RULED_OUT
        if is_ruled_out != (self.ruled_out_at is not None):
            raise ValueError(
                f"hypothesis {self.id}: ruled_out_at must be set exactly when status is ruled_out"
            )
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status != HypothesisStatus.INVESTIGATING


class Finding(BaseModel):
    type: FindingType
    description: str
    service: str
    timestamp: IsoTimestamp
    value: Optional[str] = None


class RuledOutEntry(BaseModel):
    hypothesis: str
    reason: str
    ruled_out_at: IsoTimestamp


class IncidentMemory(BaseModel):
    """The full investigation record for one incident."""

    incident_id: str
    incident_name: str
    metadata: Metadata
    tldr: TLDR
    timeline: list[TimelineEvent] = Field(default_factory=list)
    hypotheses: list[Hypothesis] = Field(default_factory=list)
    findings: list[Finding] = Field(default_factory=list)
    ruled_out: list[RuledOutEntry] = Field(default_factory=list)

    def find_hypothesis(self, hypothesis_id: str) -> Hypothesis | None:
        for hypothesis in self.hypotheses:
            if hypothesis.id == hypothesis_id:
                return hypothesis
        return None

    def sort_timeline(self) -> None:
        self.timeline.sort(key=lambda e: e.timestamp)

    def to_document(self) -> dict:
        """JSON-compatible dict with absent optional fields omitted."""
        return self.model_dump(mode="json", exclude_none=True)
