"""Storage backend interface for long-term memory."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..models import MemoryRecord, MemorySearchQuery


@runtime_checkable
class StorageBackend(Protocol):
    """Durable store of memory records.

    Implementations may raise on any operation; callers in the memory layer
    propagate those errors unchanged.
    """

    async def save(self, record: MemoryRecord) -> None:
        """Persist a record, overwriting any record with the same id."""
        ...

    async def save_batch(self, records: list[MemoryRecord]) -> None:
        ...

    async def get(self, record_id: str) -> MemoryRecord | None:
        """
        Fetch a record by id.

        Returns:
            The record, or None if no record has that id
        """
        ...

    async def search(self, query: MemorySearchQuery) -> list[MemoryRecord]:
        ...

    async def delete(self, record_id: str) -> None:
        ...

    async def health_check(self) -> bool:
        ...
