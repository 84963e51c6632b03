"""Process-local storage backend.

Keeps every record in a dict with secondary indexes by conversation id and
channel. Data is lost on restart; intended for development and tests.
"""

from __future__ import annotations

from loguru import logger

from ..models import MemoryRecord, MemorySearchQuery


def _sort_key(order_by: str):
    if order_by == "importance":
        return lambda r: r.importance or 0
    return lambda r: r.timestamp


def _matches(record: MemoryRecord, query: MemorySearchQuery) -> bool:
    if query.channel is not None and record.channel != query.channel:
        return False
    types = query.types()
    if types and record.type not in types:
        return False
    if query.role is not None and record.role != query.role:
        return False
    if query.start_date is not None and record.timestamp < query.start_date:
        return False
    if query.end_date is not None and record.timestamp > query.end_date:
        return False
    if query.min_importance is not None and (
        record.importance is None or record.importance < query.min_importance
    ):
        return False
    if query.keywords:
        content = record.content.lower()
        if not any(keyword.lower() in content for keyword in query.keywords):
            return False
    return True


def apply_query(
    records: list[MemoryRecord], query: MemorySearchQuery
) -> list[MemoryRecord]:
    """Filter, order and paginate records according to a search query."""
    results = [r for r in records if _matches(r, query)]
    results.sort(key=_sort_key(query.order_by), reverse=query.order_direction == "desc")
    if query.limit is None:
        return results[query.offset :]
    return results[query.offset : query.offset + query.limit]


class InMemoryStorage:
    """Dict-backed StorageBackend."""

    def __init__(self) -> None:
        self._records: dict[str, MemoryRecord] = {}
        self._conversation_index: dict[str, dict[str, None]] = {}
        self._channel_index: dict[str, dict[str, None]] = {}

    async def save(self, record: MemoryRecord) -> None:
        existing = self._records.get(record.id)
        if existing is not None:
            self._unindex(existing)
        self._records[record.id] = record
        self._index(record)

    async def save_batch(self, records: list[MemoryRecord]) -> None:
        for record in records:
            await self.save(record)

    async def get(self, record_id: str) -> MemoryRecord | None:
        return self._records.get(record_id)

    async def search(self, query: MemorySearchQuery) -> list[MemoryRecord]:
        if query.conversation_id is not None:
            ids = self._conversation_index.get(query.conversation_id)
            if not ids:
                return []
            candidates = [self._records[i] for i in ids]
        elif query.channel is not None:
            ids = self._channel_index.get(query.channel.value, {})
            candidates = [self._records[i] for i in ids]
        else:
            candidates = list(self._records.values())
        return apply_query(candidates, query)

    async def delete(self, record_id: str) -> None:
        record = self._records.pop(record_id, None)
        if record is not None:
            self._unindex(record)

    async def health_check(self) -> bool:
        return True

    def clear(self) -> None:
        self._records.clear()
        self._conversation_index.clear()
        self._channel_index.clear()
        logger.debug("[InMemoryStorage] Cleared all records")

    def count(self) -> int:
        return len(self._records)

    def get_all(self) -> list[MemoryRecord]:
        return list(self._records.values())

    def _index(self, record: MemoryRecord) -> None:
        if record.conversation_id:
            self._conversation_index.setdefault(record.conversation_id, {})[record.id] = None
        if record.channel is not None:
            self._channel_index.setdefault(record.channel.value, {})[record.id] = None

    def _unindex(self, record: MemoryRecord) -> None:
        if record.conversation_id:
            self._conversation_index.get(record.conversation_id, {}).pop(record.id, None)
        if record.channel is not None:
            self._channel_index.get(record.channel.value, {}).pop(record.id, None)
