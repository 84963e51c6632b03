"""Token counting strategies for prompt budget checks."""

from __future__ import annotations

import math
from typing import Protocol, runtime_checkable

import tiktoken
from loguru import logger

from ..config import PromptConfig
from ..models import Message


@runtime_checkable
class Tokenizer(Protocol):
    """Anything that can count tokens in a string."""

    def count(self, text: str) -> int:
        ...


class SimpleTokenizer:
    """Approximate token counter.

    Averages a characters/4 estimate with a words*1.3 estimate. Counts are
    not guaranteed to match any model's real tokenization.
    """

    def count(self, text: str) -> int:
        if not text:
            return 0
        char_estimate = len(text) / 4
        word_estimate = len(text.split()) * 1.3
        return math.ceil((char_estimate + word_estimate) / 2)


class TiktokenTokenizer:
    """Exact token counter backed by tiktoken."""

    def __init__(self, model: str = "gpt-4"):
        self._model = model
        try:
            self._encoder = tiktoken.encoding_for_model(model)
        except KeyError:
            logger.debug(f"No tiktoken encoding registered for {model}, using cl100k_base")
            self._encoder = tiktoken.get_encoding("cl100k_base")

    def count(self, text: str) -> int:
        return len(self._encoder.encode(text))


def create_tokenizer(config: PromptConfig | None = None) -> Tokenizer:
    config = config or PromptConfig()
    if config.tokenizer == "tiktoken":
        return TiktokenTokenizer(config.tiktoken_model)
    return SimpleTokenizer()


def count_messages(tokenizer: Tokenizer, messages: list[Message]) -> int:
    """Total tokens across message contents."""
    return sum(tokenizer.count(m.content) for m in messages)
