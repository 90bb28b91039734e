"""Runtime wiring — builds an InvestigationSession and owns its resources.

Connects the log-query MCP server, binds memory and log tools to the Groq
chat model and closes the MCP session on exit.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from langchain_groq import ChatGroq

from src.agents.prompt import SYSTEM_PROMPT
from src.agents.session import InvestigationSession
from src.core.config import Settings, get_settings
from src.core.errors import FirstResponderError
from src.core.logging import get_logger
from src.memory.storage import IncidentStore
from src.tools.log_query import LogQueryClient
from src.tools.memory_tools import build_memory_tools
from src.tools.registry import ToolDispatcher

logger = get_logger("runner")


class MissingApiKey(FirstResponderError):
    pass


@dataclass
class Runtime:
    session: InvestigationSession
    store: IncidentStore
    memory_tool_count: int
    log_tool_count: int


def build_chat_model(settings: Settings) -> ChatGroq:
    if not settings.groq_api_key:
        raise MissingApiKey("Set FR_GROQ_API_KEY in the environment or .env file")
    return ChatGroq(
        api_key=settings.groq_api_key,
        model=settings.groq_model,
        temperature=settings.groq_temperature,
        max_tokens=settings.groq_max_tokens,
        streaming=True,
    )


@asynccontextmanager
async def open_runtime(
    settings: Optional[Settings] = None,
    *,
    chat_model=None,
    log_client: Optional[LogQueryClient] = None,
) -> AsyncIterator[Runtime]:
    """Yield a ready session; the MCP connection is closed on exit."""
    settings = settings or get_settings()
    chat_model = chat_model or build_chat_model(settings)
    log_client = log_client or LogQueryClient(settings.mcp_command, settings.mcp_args)

    store = IncidentStore(settings.memory_dir)
    memory_tools = build_memory_tools(store)

    try:
        await log_client.connect()
        dispatcher = ToolDispatcher(memory_tools, external=log_client)
        catalog = dispatcher.catalog()
        session = InvestigationSession(
            chat_model.bind_tools([spec.to_openai() for spec in catalog]),
            dispatcher,
            system_prompt=SYSTEM_PROMPT,
            oracle_timeout=settings.oracle_timeout_seconds,
            tool_timeout=settings.tool_timeout_seconds,
        )
        runtime = Runtime(
            session=session,
            store=store,
            memory_tool_count=len(memory_tools),
            log_tool_count=len(dispatcher.external_specs()),
        )
        logger.info(
            "runtime_ready",
            model=settings.groq_model,
            memory_tools=runtime.memory_tool_count,
            log_tools=runtime.log_tool_count,
            memory_dir=settings.memory_dir,
        )
        yield runtime
    finally:
        await log_client.close()
