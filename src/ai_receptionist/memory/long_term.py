"""Long-term memory: a storage backend fronted by a read-through id cache."""

from __future__ import annotations

from loguru import logger

from ..models import MemoryRecord, MemorySearchQuery
from ..storage.base import StorageBackend


class LongTermMemory:
    """Durable memory tier.

    Writes go to the backend first and reach the cache only after the backend
    accepted them. Searches always hit the backend. Backend errors propagate.
    """

    def __init__(self, storage: StorageBackend) -> None:
        self.storage = storage
        self._cache: dict[str, MemoryRecord] = {}

    async def add(self, record: MemoryRecord) -> None:
        await self.storage.save(record)
        self._cache[record.id] = record
        logger.debug(f"[LongTermMemory] Persisted memory {record.id}")

    async def add_batch(self, records: list[MemoryRecord]) -> None:
        await self.storage.save_batch(records)
        for record in records:
            self._cache[record.id] = record

    async def get(self, record_id: str) -> MemoryRecord | None:
        cached = self._cache.get(record_id)
        if cached is not None:
            return cached

        record = await self.storage.get(record_id)
        if record is not None:
            self._cache[record_id] = record
        return record

    async def search(self, query: MemorySearchQuery) -> list[MemoryRecord]:
        return await self.storage.search(query)

    async def delete(self, record_id: str) -> None:
        await self.storage.delete(record_id)
        self._cache.pop(record_id, None)

    def has(self, record_id: str) -> bool:
        """Whether the record is in the cache. Does not consult the backend."""
        return record_id in self._cache

    def count(self) -> int:
        return len(self._cache)

    def clear_cache(self) -> None:
        """Drop the cache. Durable records are untouched."""
        self._cache.clear()

    async def health_check(self) -> bool:
        return await self.storage.health_check()
