"""Tiered memory facade.

MemoryManager is the single entry point for memory reads and writes. It owns
the persistence policy deciding which tier(s) a record lands in, exposes
conversation-centric lookups, and models session boundaries as system records.

Short-term memory is only consulted for reads when no long-term tier exists
(development mode). Storage errors are never caught here.
"""

from __future__ import annotations

import random
import string
import time
from typing import Any

from loguru import logger

from ..config import MemoryConfig
from ..models import (
    Channel,
    MemoryRecord,
    MemorySearchQuery,
    MemoryStats,
    MemoryType,
    SessionMetadata,
)
from ..storage.base import StorageBackend
from .long_term import LongTermMemory
from .short_term import ShortTermMemory

DEFAULT_FALLBACK_LIMIT = 10

_ALWAYS_PERSISTED_TYPES = {
    MemoryType.DECISION,
    MemoryType.ERROR,
    MemoryType.TOOL_EXECUTION,
    MemoryType.SYSTEM,
}


class MemoryManager:
    """Composes short-term and long-term memory behind one API."""

    def __init__(
        self,
        config: MemoryConfig | None = None,
        storage: StorageBackend | None = None,
        shared_long_term: LongTermMemory | None = None,
    ) -> None:
        """Initialize the memory tiers.

        Args:
            config: Memory configuration. Defaults are used if None.
            storage: Backend for a per-manager long-term tier
            shared_long_term: Existing long-term tier shared with other
                managers. Takes precedence over ``storage``.
        """
        self.config = config or MemoryConfig()
        self._short_term = ShortTermMemory(self.config.context_window)
        self._long_term: LongTermMemory | None = None

        if self.config.long_term_enabled:
            if shared_long_term is not None:
                self._long_term = shared_long_term
                logger.info("[MemoryManager] Using shared long-term memory")
            elif storage is not None:
                self._long_term = LongTermMemory(storage)
                logger.info("[MemoryManager] Created long-term memory over storage backend")
            else:
                logger.warning(
                    "[MemoryManager] long_term_enabled is true but no storage provided; "
                    "long-term memory will not be available"
                )
        else:
            logger.info("[MemoryManager] Long-term memory disabled")

        logger.debug(
            f"[MemoryManager] Initialized: context_window={self.config.context_window}, "
            f"long_term={self._long_term is not None}"
        )

    @property
    def short_term(self) -> ShortTermMemory:
        return self._short_term

    @property
    def long_term(self) -> LongTermMemory | None:
        return self._long_term

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def store(self, record: MemoryRecord) -> None:
        """Route a record to the short-term and/or long-term tier.

        The two decisions are independent: a record may land in both tiers,
        one, or neither.
        """
        use_short_term = self._should_use_short_term(record)
        persist = self._should_persist(record)

        logger.debug(
            f"[MemoryManager] Storing memory {record.id} (type={record.type.value}, "
            f"short_term={use_short_term}, persist={persist}): {record.preview()!r}"
        )

        if use_short_term:
            self._short_term.add(record)

        if persist:
            if self._long_term is not None:
                await self._long_term.add(record)
            else:
                logger.warning(
                    f"[MemoryManager] Memory {record.id} should be persisted but "
                    "no long-term storage is available"
                )

    def _should_use_short_term(self, record: MemoryRecord) -> bool:
        # Exclusion is decided once, at write time
        return (
            record.type == MemoryType.CONVERSATION
            and record.role is not None
            and not self._short_term.is_full()
        )

    def _should_persist(self, record: MemoryRecord) -> bool:
        rule = self.config.auto_persist
        if rule is not None:
            if (
                rule.min_importance is not None
                and record.importance is not None
                and record.importance >= rule.min_importance
            ):
                return True
            if record.type in rule.types:
                return True
            if rule.persist_all:
                return True

        return (
            (record.importance is not None and record.importance > 7)
            or record.type in _ALWAYS_PERSISTED_TYPES
            or record.goal_achieved is True
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def search(self, query: MemorySearchQuery) -> list[MemoryRecord]:
        if self._long_term is not None:
            return await self._long_term.search(query)

        logger.warning("[MemoryManager] No long-term storage, searching short-term buffer")
        results = self._short_term.get_all()
        if query.channel is not None:
            results = [r for r in results if r.channel == query.channel]
        if query.conversation_id is not None:
            results = [r for r in results if r.conversation_id == query.conversation_id]
        types = query.types()
        if types:
            results = [r for r in results if r.type in types]

        limit = query.limit if query.limit is not None else DEFAULT_FALLBACK_LIMIT
        return results[:limit]

    async def get_conversation_history(self, conversation_id: str) -> list[MemoryRecord]:
        """Every record of a conversation, oldest first."""
        if self._long_term is not None:
            records = await self._long_term.search(
                MemorySearchQuery(
                    conversation_id=conversation_id,
                    order_by="timestamp",
                    order_direction="asc",
                )
            )
        else:
            logger.warning(
                f"[MemoryManager] No long-term storage, using short-term history for "
                f"{conversation_id}"
            )
            records = [
                r
                for r in self._short_term.get_all()
                if r.conversation_id == conversation_id
            ]

        logger.debug(
            f"[MemoryManager] Retrieved {len(records)} records for conversation "
            f"{conversation_id}"
        )
        return records

    async def get_channel_history(
        self,
        channel: Channel,
        limit: int | None = None,
        conversation_id: str | None = None,
    ) -> list[MemoryRecord]:
        """Records of one channel, newest first."""
        if self._long_term is not None:
            return await self._long_term.search(
                MemorySearchQuery(
                    channel=channel,
                    conversation_id=conversation_id,
                    limit=limit,
                    order_by="timestamp",
                    order_direction="desc",
                )
            )

        logger.warning(
            f"[MemoryManager] No long-term storage, using short-term history for "
            f"channel {channel.value}"
        )
        return [r for r in self._short_term.get_all() if r.channel == channel]

    # ------------------------------------------------------------------
    # Correlation lookups (best-effort scans over recent records)
    # ------------------------------------------------------------------

    async def get_conversation_by_identifier(
        self, channel: Channel, identifier: str
    ) -> MemoryRecord | None:
        """Most recent record of ``channel`` whose sender or recipient is ``identifier``.

        Only the newest ``lookup_window`` long-term records are scanned, so an
        older conversation with the same participant can be missed.
        """
        if self._long_term is None:
            candidates = [r for r in self._short_term.get_all() if r.channel == channel]
        else:
            candidates = await self._long_term.search(
                MemorySearchQuery(
                    channel=channel,
                    order_by="timestamp",
                    order_direction="desc",
                    limit=self.config.lookup_window,
                )
            )

        for record in candidates:
            if record.session_metadata.matches_participant(identifier):
                return record
        return None

    async def get_conversation_by_call_id(self, call_sid: str) -> MemoryRecord | None:
        for record in await self._recent_records():
            if record.session_metadata.call_sid == call_sid:
                return record
        return None

    async def get_conversation_by_message_id(self, message_sid: str) -> MemoryRecord | None:
        for record in await self._recent_records():
            if record.session_metadata.message_sid == message_sid:
                return record
        return None

    async def _recent_records(self) -> list[MemoryRecord]:
        return await self.search(
            MemorySearchQuery(
                order_by="timestamp",
                order_direction="desc",
                limit=self.config.lookup_window,
            )
        )

    async def attach_call_sid(self, conversation_id: str, call_sid: str) -> None:
        await self.store(
            MemoryRecord(
                id=f"session-call-{conversation_id}",
                content="Attached call SID",
                type=MemoryType.SYSTEM,
                session_metadata=SessionMetadata(
                    conversation_id=conversation_id, call_sid=call_sid
                ),
            )
        )

    async def attach_message_sid(self, conversation_id: str, message_sid: str) -> None:
        await self.store(
            MemoryRecord(
                id=f"session-message-{conversation_id}",
                content="Attached message SID",
                type=MemoryType.SYSTEM,
                session_metadata=SessionMetadata(
                    conversation_id=conversation_id, message_sid=message_sid
                ),
            )
        )

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    @staticmethod
    def generate_conversation_id() -> str:
        suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=7))
        return f"conv_{int(time.time() * 1000)}_{suffix}"

    async def start_session(
        self,
        conversation_id: str,
        channel: Channel,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        await self.store(
            MemoryRecord(
                id=f"session-start-{conversation_id}",
                content=f"Started {channel.value} conversation",
                type=MemoryType.SYSTEM,
                channel=channel,
                importance=5,
                session_metadata=SessionMetadata(conversation_id=conversation_id),
                metadata=metadata or {},
            )
        )
        logger.info(f"[MemoryManager] Session started: {conversation_id} ({channel.value})")

    async def end_session(self, conversation_id: str, summary: str | None = None) -> None:
        await self.store(
            MemoryRecord(
                id=f"session-end-{conversation_id}",
                content=summary or "Conversation ended",
                type=MemoryType.SYSTEM,
                importance=7,
                session_metadata=SessionMetadata(conversation_id=conversation_id),
            )
        )
        logger.info(f"[MemoryManager] Session ended: {conversation_id}")

    # ------------------------------------------------------------------
    # Management
    # ------------------------------------------------------------------

    def get_stats(self) -> MemoryStats:
        return MemoryStats(
            short_term_count=self._short_term.count(),
            long_term_count=self._long_term.count() if self._long_term else 0,
        )

    async def dispose(self) -> None:
        await self.clear_all()

    async def clear_all(self) -> None:
        """Empty the short-term buffer and the long-term cache. Durable data is kept."""
        self._short_term.clear()
        if self._long_term is not None:
            self._long_term.clear_cache()

    def clear_short_term(self) -> None:
        self._short_term.clear()

    def clear_long_term(self) -> None:
        if self._long_term is not None:
            self._long_term.clear_cache()
