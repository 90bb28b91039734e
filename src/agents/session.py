"""Investigation session — the agentic tool-use loop.

One session owns one conversation. For each user message it streams the LLM
response, executes any requested tools in order, feeds their results back and
repeats until the model ends its turn.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Optional, Union

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage, ToolMessage

from src.agents.oracle import TRUNCATION_NOTICE, OracleStream, StopReason, extract_text, stop_reason_of
from src.core.errors import SessionBusyError
from src.core.logging import get_logger
from src.tools.registry import ToolDispatcher

logger = get_logger("session")


# ── Events ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class TextDelta:
    text: str


@dataclass(frozen=True)
class ToolStarted:
    name: str
    input: dict


@dataclass(frozen=True)
class ToolFinished:
    name: str
    result: Any
    is_error: bool


@dataclass(frozen=True)
class TurnCompleted:
    text: str
    stop_reason: StopReason


AgentEvent = Union[TextDelta, ToolStarted, ToolFinished, TurnCompleted]


@dataclass
class AgentEventHandlers:
    """Optional callbacks for observing a message exchange."""

    on_text: Optional[Callable[[str], None]] = None
    on_tool_start: Optional[Callable[[str, dict], None]] = None
    on_tool_end: Optional[Callable[[str, Any, bool], None]] = None


def _is_error_result(result: Any) -> bool:
    return isinstance(result, dict) and "error" in result


def _stringify(result: Any) -> str:
    if isinstance(result, str):
        return result
    return json.dumps(result, default=str)


# ── Session ─────────────────────────────────────────────────────


class InvestigationSession:
    """Conversation state plus the loop that drives it.

    ``chat_model`` must already have the tool catalog bound; it is called with
    ``astream(messages)`` and must yield ``AIMessageChunk`` objects.
    """

    def __init__(
        self,
        chat_model,
        dispatcher: ToolDispatcher,
        *,
        system_prompt: str,
        oracle_timeout: Optional[float] = None,
        tool_timeout: Optional[float] = None,
    ) -> None:
        self._chat_model = chat_model
        self._dispatcher = dispatcher
        self._system_prompt = system_prompt
        self._oracle_timeout = oracle_timeout
        self._tool_timeout = tool_timeout
        self._history: list[BaseMessage] = []
        self._lock = asyncio.Lock()

    @property
    def history(self) -> list[BaseMessage]:
        return self._history

    @property
    def is_busy(self) -> bool:
        return self._lock.locked()

    async def send_message(
        self,
        user_message: str,
        handlers: Optional[AgentEventHandlers] = None,
    ) -> str:
        """Run one full exchange and return the final response text."""
        handlers = handlers or AgentEventHandlers()
        final_text = ""
        async for event in self.stream(user_message):
            if isinstance(event, TextDelta) and handlers.on_text:
                handlers.on_text(event.text)
            elif isinstance(event, ToolStarted) and handlers.on_tool_start:
                handlers.on_tool_start(event.name, event.input)
            elif isinstance(event, ToolFinished) and handlers.on_tool_end:
                handlers.on_tool_end(event.name, event.result, event.is_error)
            elif isinstance(event, TurnCompleted):
                final_text = event.text
        return final_text

    async def stream(self, user_message: str) -> AsyncIterator[AgentEvent]:
        """Run one full exchange, yielding events; the last one is ``TurnCompleted``."""
        if self._lock.locked():
            raise SessionBusyError("A message exchange is already in progress")

        async with self._lock:
            self._history.append(HumanMessage(content=user_message))
            turn = 0

            while True:
                turn += 1
                oracle = OracleStream(
                    self._chat_model.astream(
                        [SystemMessage(content=self._system_prompt), *self._history]
                    ),
                    chunk_timeout=self._oracle_timeout,
                )
                async for delta in oracle:
                    yield TextDelta(delta)

                response = oracle.final_message()
                self._history.append(response)
                stop_reason = stop_reason_of(response)
                logger.debug(
                    "oracle_turn",
                    turn=turn,
                    stop_reason=stop_reason.value,
                    tool_calls=len(response.tool_calls),
                )

                invalid_calls = response.invalid_tool_calls
                if stop_reason == StopReason.TOOL_USE and (response.tool_calls or invalid_calls):
                    results: list[ToolMessage] = []
                    for call in response.tool_calls:
                        tool_input = call.get("args") or {}
                        yield ToolStarted(call["name"], tool_input)

                        result = await self._execute_tool(call["name"], tool_input)
                        is_error = _is_error_result(result)
                        yield ToolFinished(call["name"], result, is_error)

                        results.append(
                            ToolMessage(
                                content=_stringify(result),
                                tool_call_id=call["id"],
                                name=call["name"],
                            )
                        )
                    # Arguments that failed to parse still need an answer.
                    for call in invalid_calls:
                        name = call.get("name") or ""
                        yield ToolStarted(name, {})
                        result = {"error": f"Invalid arguments for {name}: {call.get('args')}"}
                        logger.warning("tool_arguments_invalid", tool=name, error=call.get("error"))
                        yield ToolFinished(name, result, True)
                        results.append(
                            ToolMessage(
                                content=_stringify(result),
                                tool_call_id=call.get("id") or "",
                                name=name,
                            )
                        )
                    # Every tool call must be answered before the next request.
                    self._history.extend(results)
                    continue

                text = extract_text(response)
                if stop_reason == StopReason.MAX_TOKENS:
                    text += TRUNCATION_NOTICE
                yield TurnCompleted(text, stop_reason)
                return

    async def _execute_tool(self, name: str, tool_input: dict) -> Any:
        """Dispatch a tool call, converting any failure into an ``{"error": ...}`` payload."""
        try:
            return await asyncio.wait_for(
                self._dispatcher.dispatch(name, tool_input),
                timeout=self._tool_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("tool_timed_out", tool=name, timeout=self._tool_timeout)
            return {"error": f"Tool {name} timed out after {self._tool_timeout:.0f}s"}
        except Exception as e:
            logger.warning("tool_failed", tool=name, error=str(e), error_type=type(e).__name__)
            return {"error": str(e)}
