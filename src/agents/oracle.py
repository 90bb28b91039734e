"""Streaming adapter over a LangChain chat model.

``OracleStream`` yields text fragments as they arrive; once exhausted it
exposes the aggregated assistant message and a provider-neutral stop reason.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import AsyncIterator, Optional

from langchain_core.messages import AIMessage, AIMessageChunk, message_chunk_to_message

from src.core.errors import OracleError

TRUNCATION_NOTICE = "\n\n[Response truncated due to length]"


class StopReason(str, Enum):
    END_TURN = "end_turn"
    TOOL_USE = "tool_use"
    MAX_TOKENS = "max_tokens"
    OTHER = "other"


_STOP_REASONS = {
    "stop": StopReason.END_TURN,
    "end_turn": StopReason.END_TURN,
    "stop_sequence": StopReason.END_TURN,
    "tool_calls": StopReason.TOOL_USE,
    "tool_use": StopReason.TOOL_USE,
    "function_call": StopReason.TOOL_USE,
    "length": StopReason.MAX_TOKENS,
    "max_tokens": StopReason.MAX_TOKENS,
}


def stop_reason_of(message: AIMessage) -> StopReason:
    meta = message.response_metadata or {}
    raw = meta.get("finish_reason") or meta.get("stop_reason")
    return _STOP_REASONS.get(str(raw), StopReason.OTHER) if raw else StopReason.OTHER


def _text_blocks(content) -> list[str]:
    if isinstance(content, str):
        return [content]
    blocks = []
    for block in content or []:
        if isinstance(block, str):
            blocks.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            blocks.append(block.get("text", ""))
    return blocks


def extract_text(message: AIMessage) -> str:
    """Text blocks of a response, joined with newlines."""
    return "\n".join(_text_blocks(message.content))


class OracleStream:
    """Single-consumer iterator of text deltas for one completion request."""

    def __init__(
        self,
        chunks: AsyncIterator[AIMessageChunk],
        *,
        chunk_timeout: Optional[float] = None,
    ) -> None:
        self._chunks = chunks
        self._chunk_timeout = chunk_timeout
        self._aggregate: AIMessageChunk | None = None
        self._finished = False

    def __aiter__(self) -> AsyncIterator[str]:
        return self._text_deltas()

    async def _text_deltas(self) -> AsyncIterator[str]:
        iterator = self._chunks.__aiter__()
        while True:
            try:
                chunk = await asyncio.wait_for(iterator.__anext__(), timeout=self._chunk_timeout)
            except StopAsyncIteration:
                break
            except asyncio.TimeoutError as e:
                raise OracleError(
                    f"LLM stream stalled for more than {self._chunk_timeout:.0f}s"
                ) from e
            except Exception as e:
                raise OracleError(f"LLM request failed: {e}") from e

            self._aggregate = chunk if self._aggregate is None else self._aggregate + chunk
            text = "".join(_text_blocks(chunk.content))
            if text:
                yield text
        self._finished = True

    def final_message(self) -> AIMessage:
        if not self._finished:
            raise OracleError("LLM stream has not been fully consumed")
        if self._aggregate is None:
            raise OracleError("LLM stream closed without a response")
        return message_chunk_to_message(self._aggregate)
