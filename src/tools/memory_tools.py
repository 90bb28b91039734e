"""Agent tool definitions for incident memory operations.

Each tool pairs a pydantic input model (its schema is what the LLM sees) with
an executor that calls into ``src.memory.operations``.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

from src.core.models import IsoTimestamp
from src.memory import operations as ops
from src.memory.storage import IncidentStore
from src.tools.registry import Tool

SeverityLiteral = Literal["critical", "high", "medium", "low"]
ConfidenceLiteral = Literal["high", "medium", "low"]
SourceLiteral = Literal["logs", "user", "agent", "metrics"]

_INCIDENT_ID = "The incident ID"


# ── Input models ────────────────────────────────────────────────


class CreateIncidentInput(BaseModel):
    name: str = Field(description="Short descriptive name for the incident (e.g., 'Checkout 500 Errors')")
    severity: SeverityLiteral = Field(description="Incident severity level")
    affected_services: list[str] = Field(description="List of affected service names")
    investigator: str = Field(description="Email or name of the person leading the investigation")
    initial_description: str = Field(description="Initial description of the problem from the user")


class IncidentRef(BaseModel):
    incident_id: str = Field(description=_INCIDENT_ID)


class ListIncidentsInput(BaseModel):
    pass


class AddTimelineEventInput(BaseModel):
    incident_id: str = Field(description=_INCIDENT_ID)
    event: str = Field(description="Short event title (e.g., 'Error spike detected')")
    source: SourceLiteral = Field(description="Source of this information")
    details: str = Field(description="Detailed description of the event or finding")
    timestamp: Optional[IsoTimestamp] = Field(
        default=None, description="ISO 8601 UTC timestamp. If omitted, uses current time."
    )


class ProposeHypothesisInput(BaseModel):
    incident_id: str = Field(description=_INCIDENT_ID)
    title: str = Field(description="Clear, specific hypothesis title (e.g., 'Redis connection pool exhaustion')")
    proposed_by: Literal["agent", "user"] = Field(description="Who proposed this hypothesis")
    initial_evidence: list[str] = Field(description="Initial evidence supporting this hypothesis")
    confidence: ConfidenceLiteral = Field(description="Current confidence level based on available evidence")


class UpdateHypothesisInput(BaseModel):
    incident_id: str = Field(description=_INCIDENT_ID)
    hypothesis_id: str = Field(description="The hypothesis ID (e.g., 'hyp_1')")
    add_supporting_evidence: list[str] = Field(
        default_factory=list, description="New evidence supporting the hypothesis"
    )
    add_counter_evidence: list[str] = Field(
        default_factory=list, description="New evidence against the hypothesis"
    )
    new_confidence: Optional[ConfidenceLiteral] = Field(default=None, description="Updated confidence level")


class RuleOutHypothesisInput(BaseModel):
    incident_id: str = Field(description=_INCIDENT_ID)
    hypothesis_id: str = Field(description="The hypothesis ID to rule out")
    reason: str = Field(description="Clear explanation of why this hypothesis was ruled out")


class ConfirmRootCauseInput(BaseModel):
    incident_id: str = Field(description=_INCIDENT_ID)
    hypothesis_id: str = Field(description="The hypothesis ID to confirm as root cause")


class AddFindingInput(BaseModel):
    incident_id: str = Field(description=_INCIDENT_ID)
    type: Literal["error", "metric", "config_change"] = Field(description="Type of finding")
    description: str = Field(
        description="Description of the finding (e.g., 'Connection timeout to redis-cache-prod')"
    )
    service: str = Field(description="Service where the finding was observed")
    timestamp: IsoTimestamp = Field(description="ISO 8601 UTC timestamp of when this was observed")
    value: Optional[str] = Field(
        default=None,
        description="Optional additional value (e.g., '847 occurrences', 'spike from 150 to 2400')",
    )


class UpdateTLDRInput(BaseModel):
    incident_id: str = Field(description=_INCIDENT_ID)
    summary: str = Field(description="Updated summary of current investigation state")


# ── Tool table ──────────────────────────────────────────────────


def build_memory_tools(store: IncidentStore) -> list[Tool]:
    """Bind every memory operation to ``store`` as an agent tool."""

    async def create_incident(p: CreateIncidentInput):
        return await ops.create_incident(store, **p.model_dump())

    async def get_incident(p: IncidentRef):
        return await ops.get_incident(store, p.incident_id)

    async def list_incidents(p: ListIncidentsInput):
        return await ops.list_incidents(store)

    async def add_timeline_event(p: AddTimelineEventInput):
        return await ops.add_timeline_event(store, **p.model_dump())

    async def propose_hypothesis(p: ProposeHypothesisInput):
        return await ops.propose_hypothesis(store, **p.model_dump())

    async def update_hypothesis(p: UpdateHypothesisInput):
        return await ops.update_hypothesis(store, **p.model_dump())

    async def rule_out_hypothesis(p: RuleOutHypothesisInput):
        return await ops.rule_out_hypothesis(store, **p.model_dump())

    async def confirm_root_cause(p: ConfirmRootCauseInput):
        return await ops.confirm_root_cause(store, **p.model_dump())

    async def add_finding(p: AddFindingInput):
        return await ops.add_finding(store, **p.model_dump())

    async def update_tldr(p: UpdateTLDRInput):
        return await ops.update_tldr(store, **p.model_dump())

    async def get_hypotheses(p: IncidentRef):
        return await ops.get_hypotheses(store, p.incident_id)

    async def get_timeline(p: IncidentRef):
        return await ops.get_timeline(store, p.incident_id)

    return [
        Tool(
            "create_incident",
            "Create a new incident investigation. Use this when starting a new "
            "investigation. Returns the full incident memory object.",
            CreateIncidentInput,
            create_incident,
        ),
        Tool(
            "get_incident",
            "Retrieve the full incident memory. Use this to check current investigation "
            "state before taking actions or making queries.",
            IncidentRef,
            get_incident,
        ),
        Tool(
            "list_incidents",
            "List all existing incident IDs. Use this to find incidents to resume.",
            ListIncidentsInput,
            list_incidents,
        ),
        Tool(
            "add_timeline_event",
            "Add an event to the investigation timeline. Use this after discovering "
            "significant information from logs or user input.",
            AddTimelineEventInput,
            add_timeline_event,
        ),
        Tool(
            "propose_hypothesis",
            "Propose a new hypothesis for the root cause. Include initial evidence and "
            "confidence level.",
            ProposeHypothesisInput,
            propose_hypothesis,
        ),
        Tool(
            "update_hypothesis",
            "Update an existing hypothesis with new evidence, counter-evidence, or "
            "confidence level.",
            UpdateHypothesisInput,
            update_hypothesis,
        ),
        Tool(
            "rule_out_hypothesis",
            "Mark a hypothesis as ruled out with the reason. Use when evidence clearly "
            "contradicts the hypothesis.",
            RuleOutHypothesisInput,
            rule_out_hypothesis,
        ),
        Tool(
            "confirm_root_cause",
            "Mark a hypothesis as the confirmed root cause. IMPORTANT: Only use this "
            "after receiving explicit user confirmation.",
            ConfirmRootCauseInput,
            confirm_root_cause,
        ),
        Tool(
            "add_finding",
            "Record a significant finding discovered during investigation (error, "
            "metric anomaly, or config change).",
            AddFindingInput,
            add_finding,
        ),
        Tool(
            "update_tldr",
            "Update the TLDR summary of the investigation. Use this to keep the summary "
            "current with latest findings.",
            UpdateTLDRInput,
            update_tldr,
        ),
        Tool(
            "get_hypotheses",
            "Get all hypotheses for an incident. Useful for reviewing current theories.",
            IncidentRef,
            get_hypotheses,
        ),
        Tool(
            "get_timeline",
            "Get the full timeline for an incident. Useful for reviewing investigation history.",
            IncidentRef,
            get_timeline,
        ),
    ]
