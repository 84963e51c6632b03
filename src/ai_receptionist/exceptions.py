"""Exception hierarchy for the agent SDK."""

from __future__ import annotations


class AgentSDKError(Exception):
    """Base exception for the agent SDK."""

    pass


class PromptTooLargeError(AgentSDKError):
    """System prompt exceeds its token budget after deterministic cleanup."""

    def __init__(
        self,
        message: str,
        tokens: int,
        max_tokens: int,
        sections: dict[str, int] | None = None,
    ):
        self.tokens = tokens
        self.max_tokens = max_tokens
        self.sections = dict(sections or {})
        super().__init__(message)

    @property
    def details(self) -> dict:
        return {
            "tokens": self.tokens,
            "max_tokens": self.max_tokens,
            "sections": dict(self.sections),
        }


class MissingPromptSectionError(AgentSDKError):
    """A required top-level section is absent from the prompt."""

    def __init__(self, section: str):
        self.section = section
        super().__init__(f"Required section missing: {section}")


class StorageError(AgentSDKError):
    """Storage backend failure."""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(message)


class ToolExecutionError(AgentSDKError):
    """A tool handler raised or timed out."""

    def __init__(self, tool_name: str, reason: str):
        self.tool_name = tool_name
        self.reason = reason
        super().__init__(f"Tool '{tool_name}' failed: {reason}")


class ConfigError(AgentSDKError):
    """Configuration could not be loaded or validated."""

    pass


class AgentNotInitializedError(AgentSDKError):
    """Agent was used before initialize() was awaited."""

    pass
