from ..interfaces import AIProvider, ToolExecutor
from .agent import Agent, AgentStatus, PerformanceMetrics
from .tool_registry import Tool, ToolRegistry

__all__ = [
    "AIProvider",
    "Agent",
    "AgentStatus",
    "PerformanceMetrics",
    "Tool",
    "ToolExecutor",
    "ToolRegistry",
]
