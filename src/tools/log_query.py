"""MCP client for the external log-query (observability) server.

The server's tools are discovered at connect time and passed through to the
LLM unchanged; calls are forwarded verbatim.
"""

from __future__ import annotations

import json
from contextlib import AsyncExitStack
from typing import Any, Optional

from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client

from src.core.errors import ToolExecutionError
from src.core.logging import get_logger
from src.tools.registry import ToolSpec

logger = get_logger("log_query")


def decode_tool_output(text: str) -> Any:
    """Parse text that looks like a JSON object or array; otherwise return it as-is."""
    if text.startswith("{") or text.startswith("["):
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return text
    return text


def _to_spec(mcp_tool) -> ToolSpec:
    schema = mcp_tool.inputSchema or {}
    return ToolSpec(
        name=mcp_tool.name,
        description=mcp_tool.description or "",
        input_schema={
            "type": "object",
            "properties": schema.get("properties") or {},
            "required": schema.get("required") or [],
        },
    )


class LogQueryClient:
    """Stdio MCP session to the log-query server."""

    def __init__(self, command: str, args: Optional[list[str]] = None) -> None:
        self._params = StdioServerParameters(command=command, args=list(args or []))
        self._stack: AsyncExitStack | None = None
        self._session: ClientSession | None = None
        self._specs: list[ToolSpec] = []

    @property
    def tool_specs(self) -> list[ToolSpec]:
        return list(self._specs)

    async def connect(self) -> list[ToolSpec]:
        """Start the server, initialise the session and discover its tools."""
        if self._session is not None:
            return self.tool_specs

        stack = AsyncExitStack()
        try:
            read, write = await stack.enter_async_context(stdio_client(self._params))
            session = await stack.enter_async_context(ClientSession(read, write))
            await session.initialize()
            listed = await session.list_tools()
        except BaseException:
            await stack.aclose()
            raise

        self._stack = stack
        self._session = session
        self._specs = [_to_spec(t) for t in listed.tools]
        logger.info(
            "log_query_connected",
            command=self._params.command,
            tools=len(self._specs),
        )
        return self.tool_specs

    async def call_tool(self, name: str, arguments: dict) -> Any:
        if self._session is None:
            raise ToolExecutionError("Log-query server is not connected")

        result = await self._session.call_tool(name, arguments=arguments)

        if result.content is None:
            return result.model_dump(mode="json")

        text = "\n".join(
            block.text for block in result.content if getattr(block, "type", None) == "text"
        )
        if result.isError:
            raise ToolExecutionError(text or f"{name} failed")
        return decode_tool_output(text)

    async def close(self) -> None:
        if self._stack is not None:
            await self._stack.aclose()
        self._stack = None
        self._session = None
        self._specs = []
