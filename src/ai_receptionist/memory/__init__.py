"""Tiered conversation memory."""

from .long_term import LongTermMemory
from .memory_manager import MemoryManager
from .short_term import ShortTermMemory

__all__ = ["LongTermMemory", "MemoryManager", "ShortTermMemory"]
