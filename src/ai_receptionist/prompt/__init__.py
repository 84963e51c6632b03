"""System prompt assembly, budget validation and history compression."""

from .prompt_optimizer import PromptOptimizer, PromptStats, SectionStats
from .system_prompt_builder import PromptContext, SystemPromptBuilder
from .token_counter import SimpleTokenizer, TiktokenTokenizer, Tokenizer, create_tokenizer

__all__ = [
    "PromptContext",
    "PromptOptimizer",
    "PromptStats",
    "SectionStats",
    "SimpleTokenizer",
    "SystemPromptBuilder",
    "TiktokenTokenizer",
    "Tokenizer",
    "create_tokenizer",
]
