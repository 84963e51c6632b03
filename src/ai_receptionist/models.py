"""Core data models shared by memory, prompt and agent layers."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _uuid() -> str:
    return str(uuid4())


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class MemoryType(str, Enum):
    CONVERSATION = "conversation"
    DECISION = "decision"
    ERROR = "error"
    TOOL_EXECUTION = "tool_execution"
    SYSTEM = "system"


class Channel(str, Enum):
    CALL = "call"
    SMS = "sms"
    EMAIL = "email"
    TEXT = "text"


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class GoalType(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


class SessionMetadata(BaseModel):
    """Correlation fields attached to a memory record.

    This is the only join key across subsystems. Lookups over it are linear
    scans, there is no index on SIDs or participant identifiers.
    """

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    conversation_id: str | None = None
    call_sid: str | None = None
    message_sid: str | None = None
    email_id: str | None = None
    thread_id: str | None = None
    in_reply_to: str | None = None
    from_: str | None = Field(default=None, alias="from")
    to: str | None = None
    direction: str | None = None  # "inbound" or "outbound"
    status: str | None = None  # "active", "completed", "failed"
    duration: float | None = None
    participants: list[str] = Field(default_factory=list)

    def matches_participant(self, identifier: str) -> bool:
        return self.from_ == identifier or self.to == identifier


class ToolCall(BaseModel):
    """A tool invocation requested by the AI model."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_uuid)
    name: str
    parameters: dict[str, Any] = Field(default_factory=dict)


class ToolResult(BaseModel):
    """Outcome of a tool execution."""

    model_config = ConfigDict(frozen=True)

    success: bool
    data: Any = None
    error: str | None = None
    response: dict[str, Any] | None = None


class MemoryRecord(BaseModel):
    """The atomic unit of conversational state. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_uuid)
    content: str
    timestamp: datetime = Field(default_factory=_utcnow)
    type: MemoryType = MemoryType.CONVERSATION
    importance: int | None = Field(default=None, ge=1, le=10)
    channel: Channel | None = None
    role: Role | None = None
    session_metadata: SessionMetadata = Field(default_factory=SessionMetadata)
    tool_call: ToolCall | None = None
    tool_result: ToolResult | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    goal_achieved: bool | None = None

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @property
    def conversation_id(self) -> str | None:
        return self.session_metadata.conversation_id

    @property
    def is_chat_message(self) -> bool:
        """Only records carrying a role can be replayed as chat messages."""
        return self.role is not None

    def preview(self, length: int = 100) -> str:
        if len(self.content) > length:
            return self.content[:length] + "..."
        return self.content

    def to_message(self) -> "Message":
        if self.role is None:
            raise ValueError(f"Memory {self.id} has no role and cannot be a message")
        return Message(role=self.role, content=self.content, timestamp=self.timestamp)


class Message(BaseModel):
    """A single chat message."""

    role: Role
    content: str
    timestamp: datetime | None = None
    name: str | None = None

    def to_chat_dict(self) -> dict[str, Any]:
        chat_msg: dict[str, Any] = {"role": self.role.value, "content": self.content}
        if self.name:
            chat_msg["name"] = self.name
        return chat_msg


class MemorySearchQuery(BaseModel):
    """Filter, ordering and pagination options for memory search.

    ``limit=None`` means no limit.
    """

    conversation_id: str | None = None
    channel: Channel | None = None
    type: MemoryType | list[MemoryType] | None = None
    role: Role | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    min_importance: int | None = None
    keywords: list[str] = Field(default_factory=list)
    limit: int | None = Field(default=None, ge=0)
    offset: int = Field(default=0, ge=0)
    order_by: str = Field(default="timestamp", pattern="^(timestamp|importance)$")
    order_direction: str = Field(default="desc", pattern="^(asc|desc)$")

    @field_validator("start_date", "end_date")
    @classmethod
    def _normalize_dates(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None

    def types(self) -> list[MemoryType]:
        if self.type is None:
            return []
        if isinstance(self.type, list):
            return list(self.type)
        return [self.type]


class MemoryStats(BaseModel):
    short_term_count: int = 0
    long_term_count: int = 0


# ---------------------------------------------------------------------------
# Prompt building
# ---------------------------------------------------------------------------


class PromptSection(BaseModel):
    """One rendered block of the system prompt."""

    name: str
    priority: int = 0
    content: str


class PromptExample(BaseModel):
    """Few-shot example rendered into the EXAMPLES section."""

    scenario: str
    input: str
    reasoning: str
    response: str
    explanation: list[str] = Field(default_factory=list)


class PolicyRule(BaseModel):
    name: str
    rule: str


class BusinessContext(BaseModel):
    """Domain-specific data injected into the prompt."""

    company_info: str | None = None
    lead_info: str | None = None
    additional_context: str | None = None


# ---------------------------------------------------------------------------
# Agent I/O
# ---------------------------------------------------------------------------


class AgentRequest(BaseModel):
    """An inbound user turn on some channel."""

    id: str = Field(default_factory=lambda: f"req_{uuid4().hex[:12]}")
    input: str
    channel: Channel = Channel.TEXT
    conversation_id: str
    session_metadata: SessionMetadata | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class AgentResponse(BaseModel):
    content: str
    channel: Channel
    metadata: dict[str, Any] = Field(default_factory=dict)


class AIRequest(BaseModel):
    """Payload for the external AI chat call."""

    conversation_id: str
    user_message: str
    conversation_history: list[Message] = Field(default_factory=list)
    available_tools: list[dict[str, Any]] = Field(default_factory=list)
    system_prompt: str = ""


class AIResponse(BaseModel):
    content: str = ""
    confidence: float | None = None
    tool_calls: list[ToolCall] = Field(default_factory=list)


class ExecutionContext(BaseModel):
    """Context handed to tool handlers."""

    conversation_id: str
    channel: Channel
    request_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
