"""Name to handler map of tools the model may call."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from loguru import logger

from ..exceptions import ToolExecutionError
from ..models import Channel, ExecutionContext, ToolResult

ToolHandler = Callable[[dict[str, Any], ExecutionContext], Awaitable[ToolResult]]

DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass
class Tool:
    """A callable capability exposed to the model.

    ``channels`` restricts the tool to specific channels; None means every
    channel.
    """

    name: str
    description: str
    handler: ToolHandler
    parameters: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )
    channels: list[Channel] | None = None

    def to_definition(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }


class ToolRegistry:
    """In-process ToolExecutor."""

    def __init__(self, default_timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self.default_timeout = default_timeout
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        if not tool.name:
            raise ValueError("Tool must have a name")
        if not tool.description:
            raise ValueError("Tool must have a description")
        if tool.name in self._tools:
            logger.warning(f"[ToolRegistry] Tool '{tool.name}' already registered, overwriting")
        self._tools[tool.name] = tool
        logger.info(f"[ToolRegistry] Registered tool: {tool.name}")

    def unregister(self, name: str) -> bool:
        removed = self._tools.pop(name, None) is not None
        if removed:
            logger.info(f"[ToolRegistry] Unregistered tool: {name}")
        return removed

    def has(self, name: str) -> bool:
        return name in self._tools

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def list_available(self, channel: Channel | None = None) -> list[dict[str, Any]]:
        """Tool definitions to advertise to the model on ``channel``."""
        return [
            tool.to_definition()
            for tool in self._tools.values()
            if channel is None or tool.channels is None or channel in tool.channels
        ]

    async def execute(
        self,
        name: str,
        parameters: dict[str, Any],
        context: ExecutionContext,
        timeout: float | None = None,
    ) -> ToolResult:
        """Run a tool handler.

        Returns:
            The handler's result, or a failed result for an unknown tool

        Raises:
            ToolExecutionError: If the handler raises or times out
        """
        tool = self._tools.get(name)
        if tool is None:
            logger.warning(f"[ToolRegistry] Unknown tool requested: {name}")
            return ToolResult(success=False, error=f"Tool '{name}' not found")

        limit = timeout if timeout is not None else self.default_timeout
        logger.debug(f"[ToolRegistry] Executing {name} for {context.conversation_id}")
        try:
            return await asyncio.wait_for(tool.handler(parameters, context), timeout=limit)
        except asyncio.TimeoutError as e:
            raise ToolExecutionError(name, f"timed out after {limit}s") from e
        except Exception as e:
            raise ToolExecutionError(name, str(e)) from e
