"""Short-term memory: a bounded FIFO buffer of recent conversation records.

The buffer is process-local and shared by every conversation handled by the
owning MemoryManager. When full, the oldest record is evicted silently.
"""

from __future__ import annotations

from loguru import logger

from ..models import MemoryRecord, Message


class ShortTermMemory:
    """Bounded FIFO buffer of memory records.

    Attributes:
        capacity: Maximum number of records held at once
    """

    def __init__(self, capacity: int = 20) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self._buffer: list[MemoryRecord] = []

    def add(self, record: MemoryRecord) -> None:
        """Append a record, evicting the oldest until size equals capacity."""
        self._buffer.append(record)

        while len(self._buffer) > self.capacity:
            evicted = self._buffer.pop(0)
            logger.debug(
                f"[ShortTermMemory] Evicted memory {evicted.id} (type={evicted.type.value})"
            )

        logger.debug(
            f"[ShortTermMemory] Added memory {record.id}: {record.preview()!r} "
            f"({len(self._buffer)}/{self.capacity})"
        )

    def get_all(self) -> list[MemoryRecord]:
        """Return a copy of the buffer, oldest first."""
        return self._buffer.copy()

    def get_recent(self, count: int) -> list[MemoryRecord]:
        if count <= 0:
            return []
        return self._buffer[-count:]

    def to_messages(self) -> list[Message]:
        return [record.to_message() for record in self._buffer if record.is_chat_message]

    def is_full(self) -> bool:
        return len(self._buffer) >= self.capacity

    def clear(self) -> None:
        self._buffer = []

    def count(self) -> int:
        return len(self._buffer)

    def __len__(self) -> int:
        return len(self._buffer)

    @property
    def oldest(self) -> MemoryRecord | None:
        return self._buffer[0] if self._buffer else None

    @property
    def newest(self) -> MemoryRecord | None:
        return self._buffer[-1] if self._buffer else None
