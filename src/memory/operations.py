"""Incident memory operations — the typed mutations behind the agent's tools.

Every mutating operation loads the record, applies the change, saves the whole
document and returns the updated record. Nothing is deduplicated: calling an
operation twice applies it twice.

Hypothesis lifecycle::

    investigating ──► ruled_out             (terminal)
                  └─► confirmed_root_cause  (terminal, resolves the incident)
"""

from __future__ import annotations

import time
from typing import Optional
from uuid import uuid4

from src.core.errors import HypothesisStateError, InvalidToolInputError, NotFoundError
from src.core.logging import get_logger
from src.core.models import (
    TLDR,
    Confidence,
    EventSource,
    Finding,
    FindingType,
    Hypothesis,
    HypothesisStatus,
    IncidentMemory,
    IncidentStatus,
    Metadata,
    Proposer,
    RuledOutEntry,
    Severity,
    TimelineEvent,
    normalize_timestamp,
    utc_now,
)
from src.memory.storage import IncidentStore

logger = get_logger("memory")

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(n: int) -> str:
    digits = []
    while n:
        n, rem = divmod(n, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits)) or "0"


def generate_incident_id() -> str:
    return f"inc_{_base36(int(time.time() * 1000))}_{uuid4().hex[:6]}"


def _next_hypothesis_id(memory: IncidentMemory) -> str:
    # Position-derived; only safe with a single writer per incident.
    return f"hyp_{len(memory.hypotheses) + 1}"


async def _require(store: IncidentStore, incident_id: str) -> IncidentMemory:
    memory = await store.load(incident_id)
    if memory is None:
        raise NotFoundError(f"Incident {incident_id} not found")
    return memory


def _require_hypothesis(memory: IncidentMemory, hypothesis_id: str) -> Hypothesis:
    hypothesis = memory.find_hypothesis(hypothesis_id)
    if hypothesis is None:
        raise NotFoundError(
            f"Hypothesis {hypothesis_id} not found in incident {memory.incident_id}"
        )
    return hypothesis


def _caller_timestamp(value: str) -> str:
    try:
        return normalize_timestamp(value)
    except ValueError as e:
        raise InvalidToolInputError(str(e)) from e


def _require_open(hypothesis: Hypothesis) -> None:
    if hypothesis.is_terminal:
        raise HypothesisStateError(
            f"Hypothesis {hypothesis.id} is already {hypothesis.status.value}"
        )


# ── Incident creation ───────────────────────────────────────────


async def create_incident(
    store: IncidentStore,
    *,
    name: str,
    severity: Severity,
    affected_services: list[str],
    investigator: str,
    initial_description: str,
) -> IncidentMemory:
    now = utc_now()
    memory = IncidentMemory(
        incident_id=generate_incident_id(),
        incident_name=name,
        metadata=Metadata(
            started_at=now,
            status=IncidentStatus.INVESTIGATING,
            severity=severity,
            affected_services=list(affected_services),
            investigator=investigator,
        ),
        tldr=TLDR(summary=initial_description, last_updated=now),
        timeline=[
            TimelineEvent(
                timestamp=now,
                event="Investigation started",
                source=EventSource.USER,
                details=initial_description,
            )
        ],
    )
    await store.save(memory)
    logger.info(
        "incident_created",
        incident_id=memory.incident_id,
        name=name,
        severity=memory.metadata.severity.value,
    )
    return memory


# ── Timeline ────────────────────────────────────────────────────


async def add_timeline_event(
    store: IncidentStore,
    *,
    incident_id: str,
    event: str,
    source: EventSource,
    details: str,
    timestamp: Optional[str] = None,
) -> IncidentMemory:
    memory = await _require(store, incident_id)
    memory.timeline.append(
        TimelineEvent(
            timestamp=_caller_timestamp(timestamp) if timestamp else utc_now(),
            event=event,
            source=source,
            details=details,
        )
    )
    # Callers may supply historical timestamps.
    memory.sort_timeline()
    await store.save(memory)
    return memory


# ── Hypotheses ──────────────────────────────────────────────────


async def propose_hypothesis(
    store: IncidentStore,
    *,
    incident_id: str,
    title: str,
    proposed_by: Proposer,
    initial_evidence: list[str],
    confidence: Confidence,
) -> IncidentMemory:
    memory = await _require(store, incident_id)
    hypothesis = Hypothesis(
        id=_next_hypothesis_id(memory),
        title=title,
        proposed_at=utc_now(),
        proposed_by=proposed_by,
        status=HypothesisStatus.INVESTIGATING,
        confidence=confidence,
        supporting_evidence=list(initial_evidence),
        counter_evidence=[],
    )
    memory.hypotheses.append(hypothesis)
    await store.save(memory)
    logger.info(
        "hypothesis_proposed",
        incident_id=incident_id,
        hypothesis_id=hypothesis.id,
        title=title,
    )
    return memory


async def update_hypothesis(
    store: IncidentStore,
    *,
    incident_id: str,
    hypothesis_id: str,
    add_supporting_evidence: Optional[list[str]] = None,
    add_counter_evidence: Optional[list[str]] = None,
    new_confidence: Optional[Confidence] = None,
) -> IncidentMemory:
    memory = await _require(store, incident_id)
    hypothesis = _require_hypothesis(memory, hypothesis_id)

    if add_supporting_evidence:
        hypothesis.supporting_evidence.extend(add_supporting_evidence)
    if add_counter_evidence:
        hypothesis.counter_evidence.extend(add_counter_evidence)
    if new_confidence is not None:
        hypothesis.confidence = Confidence(new_confidence)

    await store.save(memory)
    return memory


async def rule_out_hypothesis(
    store: IncidentStore,
    *,
    incident_id: str,
    hypothesis_id: str,
    reason: str,
) -> IncidentMemory:
    memory = await _require(store, incident_id)
    hypothesis = _require_hypothesis(memory, hypothesis_id)
    _require_open(hypothesis)

    now = utc_now()
    hypothesis.status = HypothesisStatus.RULED_OUT
    hypothesis.ruled_out_at = now
    memory.ruled_out.append(
        RuledOutEntry(hypothesis=hypothesis.title, reason=reason, ruled_out_at=now)
    )

    await store.save(memory)
    logger.info("hypothesis_ruled_out", incident_id=incident_id, hypothesis_id=hypothesis_id)
    return memory


async def confirm_root_cause(
    store: IncidentStore,
    *,
    incident_id: str,
    hypothesis_id: str,
) -> IncidentMemory:
    memory = await _require(store, incident_id)
    hypothesis = _require_hypothesis(memory, hypothesis_id)
    _require_open(hypothesis)

    already_confirmed = [
        h.id for h in memory.hypotheses if h.status == HypothesisStatus.CONFIRMED_ROOT_CAUSE
    ]
    if already_confirmed:
        logger.warning(
            "multiple_root_causes_confirmed",
            incident_id=incident_id,
            hypothesis_id=hypothesis_id,
            already_confirmed=already_confirmed,
        )

    now = utc_now()
    hypothesis.status = HypothesisStatus.CONFIRMED_ROOT_CAUSE
    memory.metadata.status = IncidentStatus.RESOLVED
    memory.tldr = TLDR(summary=f"Root cause confirmed: {hypothesis.title}", last_updated=now)
    memory.timeline.append(
        TimelineEvent(
            timestamp=now,
            event="Root cause confirmed",
            source=EventSource.USER,
            details=hypothesis.title,
        )
    )
    memory.sort_timeline()

    await store.save(memory)
    logger.info(
        "root_cause_confirmed",
        incident_id=incident_id,
        hypothesis_id=hypothesis_id,
        title=hypothesis.title,
    )
    return memory


# ── Findings & TLDR ─────────────────────────────────────────────


async def add_finding(
    store: IncidentStore,
    *,
    incident_id: str,
    type: FindingType,
    description: str,
    service: str,
    timestamp: str,
    value: Optional[str] = None,
) -> IncidentMemory:
    memory = await _require(store, incident_id)
    memory.findings.append(
        Finding(
            type=type,
            description=description,
            service=service,
            timestamp=_caller_timestamp(timestamp),
            value=value,
        )
    )
    await store.save(memory)
    return memory


async def update_tldr(
    store: IncidentStore,
    *,
    incident_id: str,
    summary: str,
) -> IncidentMemory:
    memory = await _require(store, incident_id)
    memory.tldr = TLDR(summary=summary, last_updated=utc_now())
    await store.save(memory)
    return memory


# ── Reads ───────────────────────────────────────────────────────


async def get_incident(store: IncidentStore, incident_id: str) -> IncidentMemory:
    return await _require(store, incident_id)


async def get_hypotheses(store: IncidentStore, incident_id: str) -> list[Hypothesis]:
    memory = await _require(store, incident_id)
    return memory.hypotheses


async def get_timeline(store: IncidentStore, incident_id: str) -> list[TimelineEvent]:
    memory = await _require(store, incident_id)
    return memory.timeline


async def list_incidents(store: IncidentStore) -> list[str]:
    return await store.list_ids()
