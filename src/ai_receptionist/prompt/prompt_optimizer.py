"""System prompt validation and chat history compression.

Two separate jobs live here. ``optimize`` only applies deterministic cleanup
to a system prompt and refuses (raises) when it is over budget; it never
shortens instructions. ``compress_chat_history`` is the one place where lossy,
model-assisted summarisation is allowed, and it only touches chat turns.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Sequence

from loguru import logger

from ..exceptions import MissingPromptSectionError, PromptTooLargeError
from ..interfaces import AIProvider
from ..models import AIRequest, Message, Role
from .token_counter import SimpleTokenizer, Tokenizer

DEFAULT_MAX_TOKENS = 8000
RECENT_MESSAGE_COUNT = 5

SUMMARY_SYSTEM_PROMPT = (
    "You are a conversation summarizer. Extract and preserve important facts, "
    "decisions, and context."
)
SUMMARY_REQUEST = (
    "Summarize this conversation concisely, preserving key facts and context:\n\n"
)


@dataclass
class SectionStats:
    name: str
    tokens: int
    chars: int


@dataclass
class PromptStats:
    total_tokens: int
    total_chars: int
    total_lines: int
    sections: list[SectionStats] = field(default_factory=list)


def _extract_sections(prompt: str) -> list[tuple[str, str]]:
    """Split a prompt into (heading, content) pairs on top-level ``# `` headings."""
    sections: list[tuple[str, list[str]]] = []
    for line in prompt.split("\n"):
        if line.startswith("# "):
            sections.append((line[2:].strip(), [line]))
        elif sections:
            sections[-1][1].append(line)
    return [(name, "\n".join(lines) + "\n") for name, lines in sections]


class PromptOptimizer:
    """Budget gate for system prompts and compressor for chat history."""

    def __init__(
        self,
        tokenizer: Tokenizer | None = None,
        summarizer: AIProvider | None = None,
        recent_message_count: int = RECENT_MESSAGE_COUNT,
    ):
        """
        Args:
            tokenizer: Token counting strategy. Defaults to SimpleTokenizer.
            summarizer: AI provider used to summarise old chat turns. Without
                one, history compression falls back to tail truncation.
            recent_message_count: Messages always kept verbatim when summarising
        """
        self.tokenizer = tokenizer or SimpleTokenizer()
        self.summarizer = summarizer
        self.recent_message_count = recent_message_count

    # ------------------------------------------------------------------
    # System prompt validation
    # ------------------------------------------------------------------

    def optimize(
        self,
        prompt: str,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        required_sections: Sequence[str] = (),
    ) -> str:
        """Clean up a system prompt and enforce its token budget.

        Raises:
            PromptTooLargeError: If the cleaned prompt exceeds ``max_tokens``
            MissingPromptSectionError: If a required heading is absent
        """
        optimized = self._normalize_whitespace(self._deduplicate_lines(prompt))

        tokens = self.tokenizer.count(optimized)
        if tokens > max_tokens:
            sections = self._section_sizes(optimized)
            logger.error(
                f"[PromptOptimizer] System prompt over budget: {tokens} > {max_tokens}"
            )
            raise PromptTooLargeError(
                f"System prompt exceeds token budget: {tokens} > {max_tokens}. "
                "Please reduce prompt size by removing sections or shortening content.",
                tokens=tokens,
                max_tokens=max_tokens,
                sections=sections,
            )

        for section in required_sections:
            if section not in optimized:
                raise MissingPromptSectionError(section)

        logger.debug(f"[PromptOptimizer] System prompt validated: {tokens} tokens")
        return optimized

    @staticmethod
    def _deduplicate_lines(text: str) -> str:
        deduped: list[str] = []
        last = ""
        for line in text.split("\n"):
            if line.strip() != last.strip():
                deduped.append(line)
                last = line
        return "\n".join(deduped)

    @staticmethod
    def _normalize_whitespace(text: str) -> str:
        text = re.sub(r"\n{3,}", "\n\n", text)
        text = re.sub(r" {2,}", " ", text)
        text = text.replace("\t", "  ")
        return text.strip()

    def _section_sizes(self, prompt: str) -> dict[str, int]:
        return {name: self.tokenizer.count(content) for name, content in _extract_sections(prompt)}

    def get_stats(self, prompt: str) -> PromptStats:
        return PromptStats(
            total_tokens=self.tokenizer.count(prompt),
            total_chars=len(prompt),
            total_lines=len(prompt.split("\n")),
            sections=[
                SectionStats(name=name, tokens=self.tokenizer.count(content), chars=len(content))
                for name, content in _extract_sections(prompt)
            ],
        )

    def suggest_optimizations(self, prompt: str, max_tokens: int = DEFAULT_MAX_TOKENS) -> list[str]:
        """Human-readable trimming advice. Never raises for an oversized prompt."""
        stats = self.get_stats(prompt)
        if stats.total_tokens <= max_tokens:
            return ["Prompt is within token budget. No optimization needed."]

        suggestions = [f"Prompt is {stats.total_tokens - max_tokens} tokens over budget."]
        largest = sorted(stats.sections, key=lambda s: s.tokens, reverse=True)[:3]
        suggestions.append("\nLargest sections:")
        suggestions += [f"- {s.name}: {s.tokens} tokens" for s in largest]
        suggestions += [
            "\nOptimization suggestions:",
            "1. Reduce the number of examples",
            "2. Shorten personality trait descriptions",
            "3. Limit memory context to fewer messages",
            "4. Remove optional sections",
        ]
        return suggestions

    # ------------------------------------------------------------------
    # Chat history compression
    # ------------------------------------------------------------------

    async def compress_chat_history(
        self, messages: list[Message], target_tokens: int
    ) -> list[Message]:
        """Fit chat history into ``target_tokens``.

        Without a summarizer the oldest messages are dropped. With one, the
        last few messages are kept verbatim and everything older is replaced
        by a single system summary message.
        """
        if self.summarizer is None:
            return self._truncate_messages(messages, target_tokens)

        current = self.tokenizer.count("\n".join(m.content for m in messages))
        if current <= target_tokens:
            return list(messages)

        keep = self.recent_message_count
        recent = messages[-keep:] if keep else []
        old = messages[: len(messages) - len(recent)]

        if not old or len(old) < keep:
            logger.debug(
                f"[PromptOptimizer] Only {len(old)} old messages, keeping recent tail"
            )
            return list(recent)

        summary = await self._summarize(old)
        logger.info(
            f"[PromptOptimizer] Compressed {len(old)} messages into a summary "
            f"({current} tokens before)"
        )
        return [
            Message(role=Role.SYSTEM, content=f"Previous conversation summary:\n{summary}"),
            *recent,
        ]

    async def _summarize(self, messages: list[Message]) -> str:
        conversation = "\n".join(f"{m.role.value}: {m.content}" for m in messages)
        response = await self.summarizer.chat(
            AIRequest(
                conversation_id="compression",
                user_message=SUMMARY_REQUEST + conversation,
                system_prompt=SUMMARY_SYSTEM_PROMPT,
                available_tools=[],
            )
        )
        return response.content

    def _truncate_messages(self, messages: list[Message], target_tokens: int) -> list[Message]:
        kept: list[Message] = []
        used = 0
        for message in reversed(messages):
            tokens = self.tokenizer.count(message.content)
            if used + tokens > target_tokens:
                break
            kept.append(message)
            used += tokens
        kept.reverse()
        if len(kept) < len(messages):
            logger.debug(
                f"[PromptOptimizer] Truncated history from {len(messages)} to {len(kept)} messages"
            )
        return kept
