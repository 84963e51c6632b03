"""Narrow interfaces to external collaborators (AI model, tool execution)."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from .models import AIRequest, AIResponse, ExecutionContext, ToolResult


@runtime_checkable
class AIProvider(Protocol):
    """External AI chat call."""

    async def chat(self, request: AIRequest) -> AIResponse:
        """
        Send one chat turn to the model.

        Args:
            request: System prompt, user message, history and available tools

        Returns:
            Model reply, optionally carrying tool calls
        """
        ...


@runtime_checkable
class ToolExecutor(Protocol):
    """Executes a named tool on behalf of the model."""

    async def execute(
        self,
        name: str,
        parameters: dict[str, Any],
        context: ExecutionContext,
    ) -> ToolResult:
        ...
