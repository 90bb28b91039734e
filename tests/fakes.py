"""Fakes for the chat model used by the agent loop tests."""

from __future__ import annotations

import json
from typing import AsyncIterator

from langchain_core.messages import AIMessageChunk
from langchain_core.messages.tool import tool_call_chunk


def text_turn(*fragments: str, finish_reason: str = "stop") -> list[AIMessageChunk]:
    """Chunks for a text-only assistant turn."""
    chunks = [AIMessageChunk(content=f) for f in fragments]
    chunks.append(AIMessageChunk(content="", response_metadata={"finish_reason": finish_reason}))
    return chunks


def tool_turn(*calls: tuple[str, str, dict], preamble: str = "") -> list[AIMessageChunk]:
    """Chunks for an assistant turn requesting tools: ``(call_id, name, args)``."""
    chunks = []
    if preamble:
        chunks.append(AIMessageChunk(content=preamble))
    for index, (call_id, name, args) in enumerate(calls):
        chunks.append(
            AIMessageChunk(
                content="",
                tool_call_chunks=[
                    tool_call_chunk(name=name, args=json.dumps(args), id=call_id, index=index)
                ],
            )
        )
    chunks.append(AIMessageChunk(content="", response_metadata={"finish_reason": "tool_calls"}))
    return chunks


class ScriptedChatModel:
    """Stands in for a tool-bound chat model; replays one scripted turn per request."""

    def __init__(self, turns: list[list[AIMessageChunk]]) -> None:
        self._turns = list(turns)
        self.requests: list[list] = []

    async def astream(self, messages, **kwargs) -> AsyncIterator[AIMessageChunk]:
        self.requests.append(list(messages))
        if not self._turns:
            raise AssertionError("chat model called more times than scripted")
        for chunk in self._turns.pop(0):
            yield chunk

    def bind_tools(self, tools, **kwargs) -> "ScriptedChatModel":
        self.bound_tools = tools
        return self
