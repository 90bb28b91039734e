"""Shared test fixtures for the FirstResponder test suite."""

from __future__ import annotations

import pytest

from src.core.models import IncidentMemory
from src.memory import operations as ops
from src.memory.storage import IncidentStore
from src.tools.memory_tools import build_memory_tools
from src.tools.registry import ToolDispatcher


# ── Store fixtures ──────────────────────────────────────────────


@pytest.fixture
def store(tmp_path) -> IncidentStore:
    return IncidentStore(tmp_path / "investigations")


@pytest.fixture
async def checkout_incident(store) -> IncidentMemory:
    return await ops.create_incident(
        store,
        name="Checkout 500 Errors",
        severity="critical",
        affected_services=["checkout-api"],
        investigator="alice",
        initial_description="Users report 500s at checkout",
    )


@pytest.fixture
def dispatcher(store) -> ToolDispatcher:
    return ToolDispatcher(build_memory_tools(store))
