"""
Shared test fixtures for the agent SDK.
"""

import sys
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
from loguru import logger

from ai_receptionist.config import AgentConfig
from ai_receptionist.models import (
    AIResponse,
    Channel,
    MemoryRecord,
    MemoryType,
    Role,
    SessionMetadata,
)

logger.remove()
logger.add(sys.stderr, level="WARNING")

BASE_TIME = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_record(
    content: str = "hello",
    *,
    conversation_id: str | None = "conv-1",
    minutes: int = 0,
    **kwargs,
) -> MemoryRecord:
    """Build a MemoryRecord with a deterministic timestamp offset from BASE_TIME."""
    session_metadata = kwargs.pop("session_metadata", None) or SessionMetadata(
        conversation_id=conversation_id
    )
    return MemoryRecord(
        content=content,
        timestamp=BASE_TIME + timedelta(minutes=minutes),
        session_metadata=session_metadata,
        **kwargs,
    )


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def chat_record():
    return make_record(
        "I'd like to book an appointment",
        type=MemoryType.CONVERSATION,
        role=Role.USER,
        channel=Channel.SMS,
        importance=5,
    )


@pytest.fixture
def agent_config_data():
    return {
        "identity": {"name": "Sarah", "role": "Sales Representative"},
        "personality": {"traits": ["friendly", "helpful"], "communication_style": "friendly"},
        "knowledge": {"domain": "Home services", "expertise": ["HVAC", "Plumbing"]},
        "goals": {
            "primary": "Book qualified appointments",
            "secondary": ["Answer pricing questions"],
            "constraints": ["Never quote exact prices"],
        },
    }


@pytest.fixture
def agent_config(agent_config_data):
    return AgentConfig.model_validate(agent_config_data)


@pytest.fixture
def mock_ai_provider():
    """AIProvider stub whose chat() returns a fixed reply."""
    provider = AsyncMock()
    provider.chat.return_value = AIResponse(content="Happy to help!", confidence=0.9)
    return provider
