"""Agent configuration models and YAML loader."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Literal

import yaml
from dotenv import load_dotenv
from loguru import logger
from pydantic import BaseModel, Field, ValidationError, model_validator

from .exceptions import ConfigError
from .facets import GoalConfig, Identity, KnowledgeBase, Personality
from .models import BusinessContext, MemoryType, PolicyRule, PromptExample


class AutoPersistConfig(BaseModel):
    """Custom long-term persistence rule.

    A record is persisted when any of the configured conditions match.
    """

    min_importance: int | None = Field(default=None, ge=1, le=10)
    types: list[MemoryType] = Field(default_factory=list)
    persist_all: bool = False


class MemoryConfig(BaseModel):
    """Memory tier configuration."""

    context_window: int = Field(default=20, ge=1)
    long_term_enabled: bool = True
    lookup_window: int = Field(default=10, ge=1)  # recent records scanned by SID lookups
    auto_persist: AutoPersistConfig | None = None


class StorageConfig(BaseModel):
    """Long-term storage backend configuration."""

    backend: Literal["memory", "sqlite"] = "memory"
    sqlite_db_path: str = "./memory/agent_memory.db"

    @model_validator(mode="after")
    def _validate_paths(self) -> "StorageConfig":
        normalized = os.path.normpath(self.sqlite_db_path)
        parts = normalized.replace("\\", "/").split("/")
        if ".." in parts:
            raise ValueError(
                f"sqlite_db_path must not contain '..' components: "
                f"{self.sqlite_db_path!r}"
            )
        self.sqlite_db_path = normalized
        return self


class PromptConfig(BaseModel):
    """Prompt budget and tokenizer configuration."""

    max_tokens: int = Field(default=8000, gt=0)
    history_max_tokens: int = Field(default=4000, gt=0)
    recent_message_count: int = Field(default=5, ge=0)
    tokenizer: Literal["estimate", "tiktoken"] = "estimate"
    tiktoken_model: str = "gpt-4"


class AgentConfig(BaseModel):
    """Top-level agent configuration."""

    identity: Identity
    personality: Personality = Field(default_factory=Personality)
    knowledge: KnowledgeBase
    goals: GoalConfig
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    prompt: PromptConfig = Field(default_factory=PromptConfig)
    business_context: BusinessContext | None = None
    policies: list[PolicyRule] = Field(default_factory=list)
    escalation_rules: list[str] = Field(default_factory=list)
    examples: list[PromptExample] = Field(default_factory=list)
    max_tool_iterations: int = Field(default=5, ge=0)


_ENV_PATTERN = re.compile(r"\$\{(\w+)\}")


def read_yaml(config_path: str | Path) -> dict[str, Any]:
    """Read a YAML file, substituting ``${VAR}`` references from the environment.

    Unset variables are left as-is.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigError: If the file is not valid YAML.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    content = path.read_text(encoding="utf-8")

    def replacer(match: re.Match) -> str:
        return os.getenv(match.group(1), match.group(0))

    content = _ENV_PATTERN.sub(replacer, content)

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        logger.critical(f"Error parsing YAML file: {e}")
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
    return data or {}


def _format_validation_error(error: ValidationError) -> str:
    messages = []
    for err in error.errors():
        location = " -> ".join(str(loc) for loc in err["loc"])
        messages.append(f"  - '{location}': {err['msg']}")
    return "\n".join(messages)


def load_config(config_path: str | Path) -> AgentConfig:
    """Load and validate an agent configuration file.

    Environment variables from a ``.env`` file are loaded before substitution.
    """
    load_dotenv()
    data = read_yaml(config_path)
    try:
        config = AgentConfig.model_validate(data)
    except ValidationError as e:
        summary = _format_validation_error(e)
        logger.error(f"[Config] Invalid configuration in {config_path}:\n{summary}")
        raise ConfigError(f"Invalid configuration in {config_path}:\n{summary}") from e
    logger.info(f"[Config] Loaded configuration for agent '{config.identity.name}'")
    return config
