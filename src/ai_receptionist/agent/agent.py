"""Agent orchestration.

One turn runs: security gate, memory retrieval, history compression, cached
channel prompt, AI call, bounded tool loop, memory write-back and goal
tracking. AI and tool failures degrade to an error-recovery AI call and then
to a static per-channel message. An oversized system prompt is a
configuration problem and propagates to the caller.
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Any

from loguru import logger

from ..config import AgentConfig
from ..exceptions import AgentNotInitializedError, PromptTooLargeError
from ..facets import GoalSystem, PersonalityTrait
from ..interfaces import AIProvider, ToolExecutor
from ..memory import MemoryManager
from ..models import (
    AgentRequest,
    AgentResponse,
    AIRequest,
    AIResponse,
    Channel,
    ExecutionContext,
    MemoryRecord,
    MemoryType,
    Message,
    RiskLevel,
    Role,
    SessionMetadata,
    ToolCall,
    ToolResult,
)
from ..prompt import PromptContext, PromptOptimizer, SystemPromptBuilder, create_tokenizer
from ..security import InputValidator
from ..storage.base import StorageBackend
from .tool_registry import ToolRegistry

REQUIRED_PROMPT_SECTIONS = ("# IDENTITY",)
CONVERSATION_IMPORTANCE = 5


class AgentStatus(str, Enum):
    INITIALIZING = "initializing"
    READY = "ready"
    PROCESSING = "processing"
    ERROR = "error"
    DISPOSED = "disposed"


@dataclass
class PerformanceMetrics:
    average_response_time_ms: float = 0.0
    success_rate: float = 0.0
    error_rate: float = 0.0
    total_interactions: int = 0


class Agent:
    """Conversational agent over one configuration.

    Facets are copied from the configuration so that runtime mutations
    (traits, formality) never leak back into the caller's config object.
    """

    def __init__(
        self,
        config: AgentConfig,
        ai_provider: AIProvider,
        storage: StorageBackend | None = None,
        tool_executor: ToolExecutor | None = None,
        summarizer: AIProvider | None = None,
        memory: MemoryManager | None = None,
    ):
        """Initialize the agent.

        Args:
            config: Agent configuration
            ai_provider: External AI chat call
            storage: Backend for the long-term memory tier
            tool_executor: Executes tool calls requested by the model
            summarizer: AI provider used to compress long chat histories
            memory: Pre-built memory manager. Overrides ``storage``.
        """
        self.config = config
        self.identity = config.identity.model_copy(deep=True)
        self.personality = config.personality.model_copy(deep=True)
        self.knowledge = config.knowledge.model_copy(deep=True)
        self.goals = GoalSystem.from_config(config.goals)
        self.memory = memory or MemoryManager(config.memory, storage=storage)

        self.ai_provider = ai_provider
        self.tool_executor = tool_executor
        self.validator = InputValidator()
        self.prompt_builder = SystemPromptBuilder()
        self.optimizer = PromptOptimizer(
            tokenizer=create_tokenizer(config.prompt),
            summarizer=summarizer,
            recent_message_count=config.prompt.recent_message_count,
        )

        self.status = AgentStatus.INITIALIZING
        self._base_prompt: str | None = None
        self._channel_prompts: dict[Channel, str] = {}
        self._metrics = PerformanceMetrics()

        logger.info(f"[Agent] Created agent {self.identity.summary()}")

    async def initialize(self) -> None:
        """Build and validate the channel-independent system prompt."""
        try:
            self.rebuild_system_prompt()
        except PromptTooLargeError:
            self.status = AgentStatus.ERROR
            raise
        self.status = AgentStatus.READY
        logger.info(f"[Agent] Agent {self.identity.name} initialized")

    # ------------------------------------------------------------------
    # System prompt
    # ------------------------------------------------------------------

    def _prompt_context(self, channel: Channel | None) -> PromptContext:
        return PromptContext(
            identity=self.identity,
            personality=self.personality,
            knowledge=self.knowledge,
            goals=self.goals.get_current(),
            channel=channel,
            business_context=self.config.business_context,
            policies=self.config.policies,
            escalation_rules=self.config.escalation_rules,
            examples=self.config.examples,
        )

    def _render_prompt(self, channel: Channel | None) -> str:
        raw = self.prompt_builder.build(self._prompt_context(channel))
        return self.optimizer.optimize(
            raw,
            max_tokens=self.config.prompt.max_tokens,
            required_sections=REQUIRED_PROMPT_SECTIONS,
        )

    def rebuild_system_prompt(self) -> None:
        """Rebuild the base prompt and drop every cached channel variant."""
        self._channel_prompts.clear()
        self._base_prompt = self._render_prompt(None)
        logger.debug(
            f"[Agent] System prompt rebuilt ({len(self._base_prompt)} chars, "
            f"sections: {', '.join(self.prompt_builder.get_sections())})"
        )

    def get_system_prompt(self, channel: Channel | None = None) -> str:
        if channel is not None:
            return self._prompt_for(channel)
        if self._base_prompt is None:
            raise AgentNotInitializedError(
                "System prompt not yet built. Call initialize() first."
            )
        return self._base_prompt

    def _prompt_for(self, channel: Channel) -> str:
        prompt = self._channel_prompts.get(channel)
        if prompt is None:
            prompt = self._render_prompt(channel)
            self._channel_prompts[channel] = prompt
            logger.debug(f"[Agent] Cached system prompt for channel {channel.value}")
        return prompt

    # ------------------------------------------------------------------
    # Facet mutations
    # ------------------------------------------------------------------

    def add_personality_trait(self, trait: str | PersonalityTrait) -> None:
        self.personality.add_trait(trait)
        self.rebuild_system_prompt()
        logger.info(f"[Agent] Personality trait added: {trait}")

    def remove_personality_trait(self, name: str) -> None:
        self.personality.remove_trait(name)
        self.rebuild_system_prompt()
        logger.info(f"[Agent] Personality trait removed: {name}")

    def update_communication_style(self, style: str | dict[str, Any]) -> None:
        self.personality.update_communication_style(style)
        self.rebuild_system_prompt()
        logger.info(f"[Agent] Communication style updated: {style}")

    def set_formality_level(self, level: int) -> None:
        self.personality.set_formality_level(level)
        self.rebuild_system_prompt()
        logger.info(f"[Agent] Formality level set to {self.personality.formality_level}")

    # ------------------------------------------------------------------
    # Turn processing
    # ------------------------------------------------------------------

    async def process(self, request: AgentRequest) -> AgentResponse:
        """Handle one user turn.

        Raises:
            PromptTooLargeError: If the channel prompt exceeds its budget
        """
        start = time.perf_counter()
        self.status = AgentStatus.PROCESSING
        try:
            security = self.validator.validate(request.input)
            if security.risk_level == RiskLevel.HIGH:
                logger.warning(
                    f"[Agent] Blocked request {request.id}: {', '.join(security.detected_patterns)}"
                )
                return AgentResponse(
                    content=self.validator.get_security_response(RiskLevel.HIGH),
                    channel=request.channel,
                    metadata={
                        "security_blocked": True,
                        "risk_level": security.risk_level.value,
                        "detected_patterns": security.detected_patterns,
                    },
                )
            if security.risk_level == RiskLevel.MEDIUM:
                logger.warning(
                    f"[Agent] Medium-risk input on {request.id}, continuing with sanitized text"
                )
            user_input = security.sanitized_content

            history = await self._load_history(request.conversation_id)
            system_prompt = self._prompt_for(request.channel)

            try:
                response = await self._execute(request, user_input, system_prompt, history)
            except Exception as e:
                logger.error(f"[Agent] Error processing request {request.id}: {e}")
                self._update_metrics(start, success=False)
                return await self._handle_error(e, request, user_input)

            await self._write_back(request, user_input, response)
            self.goals.track_progress(request, response)
            self._update_metrics(start, success=True)
            return response
        finally:
            if self.status == AgentStatus.PROCESSING:
                self.status = AgentStatus.READY

    async def _load_history(self, conversation_id: str) -> list[Message]:
        try:
            records = await self.memory.get_conversation_history(conversation_id)
        except Exception as e:
            logger.error(
                f"[Agent] Memory retrieval failed for {conversation_id}, "
                f"continuing without history: {e}"
            )
            return []

        messages = [r.to_message() for r in records if r.is_chat_message]
        target = self.config.prompt.history_max_tokens
        try:
            return await self.optimizer.compress_chat_history(messages, target)
        except Exception as e:
            keep = self.config.prompt.recent_message_count
            logger.warning(
                f"[Agent] History compression failed, keeping last {keep} messages: {e}"
            )
            return messages[-keep:] if keep else []

    def _available_tools(self, channel: Channel) -> list[dict[str, Any]]:
        if isinstance(self.tool_executor, ToolRegistry):
            return self.tool_executor.list_available(channel)
        return []

    async def _execute(
        self,
        request: AgentRequest,
        user_input: str,
        system_prompt: str,
        history: list[Message],
    ) -> AgentResponse:
        tools = self._available_tools(request.channel)
        ai_response = await self.ai_provider.chat(
            AIRequest(
                conversation_id=request.conversation_id,
                user_message=user_input,
                conversation_history=history,
                available_tools=tools,
                system_prompt=system_prompt,
            )
        )

        tools_used: list[str] = []
        tool_messages: list[Message] = []
        iterations = 0
        context = ExecutionContext(
            conversation_id=request.conversation_id,
            channel=request.channel,
            request_id=request.id,
            metadata=request.metadata,
        )

        while ai_response.tool_calls and self.tool_executor is not None:
            if iterations >= self.config.max_tool_iterations:
                logger.warning(
                    f"[Agent] Tool loop stopped after {iterations} iterations on {request.id}"
                )
                break
            iterations += 1

            for call in ai_response.tool_calls:
                result = await self.tool_executor.execute(call.name, call.parameters, context)
                tools_used.append(call.name)
                await self._store_tool_execution(request, call, result)
                tool_messages.append(
                    Message(
                        role=Role.TOOL,
                        name=call.name,
                        content=result.model_dump_json(exclude_none=True),
                    )
                )

            ai_response = await self.ai_provider.chat(
                AIRequest(
                    conversation_id=request.conversation_id,
                    user_message=user_input,
                    conversation_history=history + tool_messages,
                    available_tools=tools,
                    system_prompt=system_prompt,
                )
            )

        return self._to_agent_response(ai_response, request.channel, tools_used, iterations)

    @staticmethod
    def _to_agent_response(
        ai_response: AIResponse,
        channel: Channel,
        tools_used: list[str],
        iterations: int,
    ) -> AgentResponse:
        content = ai_response.content
        if not content and tools_used:
            content = "Task completed."
        metadata: dict[str, Any] = {"confidence": ai_response.confidence}
        if tools_used:
            metadata["tools_used"] = tools_used
            metadata["tool_iterations"] = iterations
        return AgentResponse(content=content, channel=channel, metadata=metadata)

    def _session_metadata(self, request: AgentRequest) -> SessionMetadata:
        if request.session_metadata is None:
            return SessionMetadata(conversation_id=request.conversation_id)
        return request.session_metadata.model_copy(
            update={"conversation_id": request.conversation_id}
        )

    async def _store_tool_execution(
        self, request: AgentRequest, call: ToolCall, result: ToolResult
    ) -> None:
        record = MemoryRecord(
            content=f"Executed tool {call.name} (success={result.success})",
            type=MemoryType.TOOL_EXECUTION,
            channel=request.channel,
            session_metadata=self._session_metadata(request),
            tool_call=call,
            tool_result=result,
        )
        try:
            await self.memory.store(record)
        except Exception as e:
            logger.error(f"[Agent] Failed to store tool execution {call.name}: {e}")

    async def _write_back(
        self, request: AgentRequest, user_input: str, response: AgentResponse
    ) -> None:
        session_metadata = self._session_metadata(request)
        turns = [
            MemoryRecord(
                id=f"{request.id}-user",
                content=user_input,
                type=MemoryType.CONVERSATION,
                role=Role.USER,
                channel=request.channel,
                importance=CONVERSATION_IMPORTANCE,
                session_metadata=session_metadata,
            ),
            MemoryRecord(
                id=f"{request.id}-assistant",
                content=response.content,
                type=MemoryType.CONVERSATION,
                role=Role.ASSISTANT,
                channel=request.channel,
                importance=CONVERSATION_IMPORTANCE,
                session_metadata=session_metadata,
            ),
        ]
        for record in turns:
            try:
                await self.memory.store(record)
            except Exception as e:
                logger.error(f"[Agent] Failed to store turn {record.id}: {e}")

    async def _handle_error(
        self, error: Exception, request: AgentRequest, user_input: str
    ) -> AgentResponse:
        recovery_prompt = self.prompt_builder.build_error_recovery_prompt(error, user_input)
        try:
            recovered = await self.ai_provider.chat(
                AIRequest(
                    conversation_id=request.conversation_id,
                    user_message=user_input,
                    system_prompt=recovery_prompt,
                )
            )
            return AgentResponse(
                content=recovered.content,
                channel=request.channel,
                metadata={"recovered_from_error": True},
            )
        except Exception as fallback_error:
            logger.error(f"[Agent] Error recovery failed for {request.id}: {fallback_error}")
            return AgentResponse(
                content=self.personality.get_error_message(request.channel),
                channel=request.channel,
                metadata={"error": True},
            )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def _update_metrics(self, start: float, success: bool) -> None:
        duration_ms = (time.perf_counter() - start) * 1000
        m = self._metrics
        total = m.total_interactions
        new_total = total + 1
        m.average_response_time_ms = (m.average_response_time_ms * total + duration_ms) / new_total
        m.success_rate = (m.success_rate * total + (1 if success else 0)) / new_total
        m.error_rate = (m.error_rate * total + (0 if success else 1)) / new_total
        m.total_interactions = new_total

    def get_performance_metrics(self) -> PerformanceMetrics:
        return replace(self._metrics)

    def get_state(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "identity": self.identity.model_dump(),
            "current_goals": [g.model_dump(mode="json") for g in self.goals.get_current()],
            "memory_stats": self.memory.get_stats().model_dump(),
            "performance": asdict(self._metrics),
        }

    async def dispose(self) -> None:
        self.status = AgentStatus.DISPOSED
        await self.memory.dispose()
        self._channel_prompts.clear()
        logger.info(f"[Agent] Agent {self.identity.name} disposed")
