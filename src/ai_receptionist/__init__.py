"""Multi-channel conversational agent SDK.

Tiered memory, layered system prompt assembly with token budgeting, an
input security gate and an agent loop that ties them to an external AI
provider and tool executor.
"""

from .agent import Agent, AgentStatus, Tool, ToolRegistry
from .config import AgentConfig, load_config
from .exceptions import (
    AgentNotInitializedError,
    AgentSDKError,
    ConfigError,
    MissingPromptSectionError,
    PromptTooLargeError,
    StorageError,
    ToolExecutionError,
)
from .interfaces import AIProvider, ToolExecutor
from .log import setup_logging
from .memory import LongTermMemory, MemoryManager, ShortTermMemory
from .models import (
    AgentRequest,
    AgentResponse,
    AIRequest,
    AIResponse,
    Channel,
    MemoryRecord,
    MemorySearchQuery,
    MemoryType,
    Message,
    Role,
    SessionMetadata,
)
from .prompt import PromptOptimizer, SystemPromptBuilder
from .security import InputValidator
from .storage import InMemoryStorage, SQLiteStorage, StorageBackend, create_storage

__version__ = "0.4.0"

__all__ = [
    "AIProvider",
    "AIRequest",
    "AIResponse",
    "Agent",
    "AgentConfig",
    "AgentNotInitializedError",
    "AgentRequest",
    "AgentResponse",
    "AgentSDKError",
    "AgentStatus",
    "Channel",
    "ConfigError",
    "InMemoryStorage",
    "InputValidator",
    "LongTermMemory",
    "MemoryManager",
    "MemoryRecord",
    "MemorySearchQuery",
    "MemoryType",
    "Message",
    "MissingPromptSectionError",
    "PromptOptimizer",
    "PromptTooLargeError",
    "Role",
    "SQLiteStorage",
    "SessionMetadata",
    "ShortTermMemory",
    "StorageBackend",
    "StorageError",
    "SystemPromptBuilder",
    "Tool",
    "ToolExecutionError",
    "ToolExecutor",
    "ToolRegistry",
    "create_storage",
    "load_config",
    "setup_logging",
]
