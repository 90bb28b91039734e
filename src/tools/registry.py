"""Uniform tool shape and the dispatcher that routes tool calls by name.

Memory tools are validated against their pydantic input model before they
run. Any other name is forwarded to the external log-query client, which
rejects names it never advertised.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Protocol

from pydantic import BaseModel, ValidationError

from src.core.errors import InvalidToolInputError, UnknownToolError
from src.core.logging import get_logger

logger = get_logger("tools")

ToolExecutor = Callable[[Any], Awaitable[Any]]


@dataclass
class ToolSpec:
    """Name, description and JSON schema of a tool, as advertised to the LLM."""

    name: str
    description: str
    input_schema: dict = field(default_factory=lambda: {"type": "object", "properties": {}})

    def to_openai(self) -> dict:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.input_schema,
            },
        }


@dataclass
class Tool:
    """A tool backed by an executor that takes a validated input model."""

    name: str
    description: str
    input_model: type[BaseModel]
    executor: ToolExecutor

    @property
    def spec(self) -> ToolSpec:
        schema = self.input_model.model_json_schema()
        schema.pop("title", None)
        schema.setdefault("properties", {})
        schema.setdefault("required", [])
        return ToolSpec(name=self.name, description=self.description, input_schema=schema)

    def parse_input(self, raw_input: dict) -> BaseModel:
        try:
            return self.input_model.model_validate(raw_input or {})
        except ValidationError as e:
            raise InvalidToolInputError(f"Invalid input for {self.name}: {e}") from e

    async def run(self, raw_input: dict) -> Any:
        return await self.executor(self.parse_input(raw_input))


class ExternalToolProvider(Protocol):
    @property
    def tool_specs(self) -> list[ToolSpec]: ...

    async def call_tool(self, name: str, arguments: dict) -> Any: ...


def to_jsonable(value: Any) -> Any:
    """Convert tool results (models, lists of models) into JSON-compatible values."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", exclude_none=True)
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    return value


class ToolDispatcher:
    """Routes a tool name to a memory tool or to the external log-query client."""

    def __init__(
        self,
        memory_tools: list[Tool],
        external: Optional[ExternalToolProvider] = None,
    ) -> None:
        self._memory = {t.name: t for t in memory_tools}
        self._external = external

    def external_specs(self) -> list[ToolSpec]:
        if self._external is None:
            return []
        # Memory tools win on a name clash.
        return [s for s in self._external.tool_specs if s.name not in self._memory]

    def catalog(self) -> list[ToolSpec]:
        return [t.spec for t in self._memory.values()] + self.external_specs()

    def is_known(self, name: str) -> bool:
        return name in self._memory or any(s.name == name for s in self.external_specs())

    async def dispatch(self, name: str, tool_input: dict) -> Any:
        """Execute a tool. Raises on failure; the caller decides how to report it."""
        tool = self._memory.get(name)
        if tool is not None:
            logger.debug("tool_dispatched", tool=name, target="memory")
            return to_jsonable(await tool.run(tool_input))

        if self._external is None or not self.is_known(name):
            raise UnknownToolError(f"Unknown tool: {name}")

        logger.debug("tool_dispatched", tool=name, target="log_query")
        return to_jsonable(await self._external.call_tool(name, tool_input))
