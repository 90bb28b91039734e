"""Postmortem generator — Jinja2-based markdown rendering of an incident record.

Renders the full investigation trail: metadata, TLDR, timeline, hypotheses
with their evidence, findings and the ruled-out audit log.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from jinja2 import Environment, FileSystemLoader

from src.core.models import HypothesisStatus, IncidentMemory

TEMPLATE_DIR = Path(__file__).parent / "templates"


def _parse(value: str) -> Optional[datetime]:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _fmt_timestamp(value: Any) -> str:
    """Format a timestamp for display."""
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S UTC")
    if isinstance(value, str):
        dt = _parse(value)
        return dt.strftime("%Y-%m-%d %H:%M:%S UTC") if dt else value
    return str(value)


def _fmt_duration(value: Any) -> str:
    """Format seconds as a readable duration."""
    if value is None:
        return "N/A"
    try:
        secs = float(value)
    except (TypeError, ValueError):
        return str(value)
    if secs < 60:
        return f"{secs:.1f}s"
    if secs < 3600:
        return f"{int(secs // 60)}m {secs % 60:.0f}s"
    return f"{int(secs // 3600)}h {int(secs % 3600 // 60)}m"


def _time_to_resolution(memory: IncidentMemory) -> Optional[float]:
    """Seconds from investigation start to the first root-cause confirmation."""
    confirmations = [e.timestamp for e in memory.timeline if e.event == "Root cause confirmed"]
    if not confirmations:
        return None
    start, end = _parse(memory.metadata.started_at), _parse(min(confirmations))
    if start is None or end is None:
        return None
    return (end - start).total_seconds()


def _get_jinja_env() -> Environment:
    """Create a Jinja2 environment with custom filters."""
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters["fmt_timestamp"] = _fmt_timestamp
    env.filters["fmt_duration"] = _fmt_duration
    return env


def generate_postmortem(memory: IncidentMemory) -> str:
    """Render an incident record as a markdown postmortem."""
    env = _get_jinja_env()
    template = env.get_template("postmortem.md.j2")

    root_causes = [
        h for h in memory.hypotheses if h.status == HypothesisStatus.CONFIRMED_ROOT_CAUSE
    ]
    open_hypotheses = [h for h in memory.hypotheses if h.status == HypothesisStatus.INVESTIGATING]

    return template.render(
        incident=memory.model_dump(mode="json"),
        root_causes=[h.model_dump(mode="json") for h in root_causes],
        open_count=len(open_hypotheses),
        time_to_resolution=_time_to_resolution(memory),
    )
