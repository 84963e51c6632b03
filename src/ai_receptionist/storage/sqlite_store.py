"""SQLite storage backend for long-term memory.

Persists memory records in a single ``memories`` table using aiosqlite.
Structured fields (session metadata, tool call/result, metadata) are stored
as JSON text; the conversation id is denormalised into its own indexed column.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite
from loguru import logger

from ..exceptions import StorageError
from ..models import MemoryRecord, MemorySearchQuery, ensure_utc

_COLUMNS = (
    "id, content, timestamp, type, importance, channel, role, conversation_id, "
    "session_metadata, tool_call, tool_result, metadata, goal_achieved"
)

# Fixed-width UTC format keeps string comparison chronological
_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%f+00:00"


def _format_timestamp(value: datetime) -> str:
    return ensure_utc(value).strftime(_TIMESTAMP_FORMAT)


class SQLiteStorage:
    """SQLite-backed StorageBackend.

    Uses WAL mode for concurrent reads. Every operation requires a prior
    ``initialize()`` call; driver errors are re-raised as StorageError.
    """

    def __init__(self, db_path: str = "./memory/agent_memory.db"):
        """Initialize SQLite storage.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self._db: aiosqlite.Connection | None = None
        logger.info(f"[SQLiteStorage] Created with db_path: {db_path}")

    async def initialize(self) -> None:
        """Open the connection and create the table and indexes if missing."""
        db_dir = Path(self.db_path).parent
        db_dir.mkdir(parents=True, exist_ok=True)

        try:
            self._db = await aiosqlite.connect(self.db_path)
            await self._db.execute("PRAGMA journal_mode=WAL")
            await self._create_tables()
            await self._create_indexes()
            await self._db.commit()
        except aiosqlite.Error as e:
            raise StorageError(f"Failed to initialize database: {e}", self.db_path) from e

        logger.info("[SQLiteStorage] Database initialized successfully")

    async def _create_tables(self) -> None:
        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS memories (
                id TEXT PRIMARY KEY,
                content TEXT NOT NULL,
                timestamp TEXT NOT NULL,
                type TEXT NOT NULL,
                importance INTEGER,
                channel TEXT,
                role TEXT,
                conversation_id TEXT,
                session_metadata TEXT,
                tool_call TEXT,
                tool_result TEXT,
                metadata TEXT,
                goal_achieved INTEGER
            )
        """)

    async def _create_indexes(self) -> None:
        indexes = [
            "CREATE INDEX IF NOT EXISTS idx_memories_conversation ON memories(conversation_id)",
            "CREATE INDEX IF NOT EXISTS idx_memories_channel ON memories(channel)",
            "CREATE INDEX IF NOT EXISTS idx_memories_type ON memories(type)",
            "CREATE INDEX IF NOT EXISTS idx_memories_timestamp ON memories(timestamp)",
            "CREATE INDEX IF NOT EXISTS idx_memories_importance ON memories(importance)",
        ]
        for statement in indexes:
            await self._db.execute(statement)

    async def close(self) -> None:
        """Close database connection."""
        if self._db:
            await self._db.close()
            self._db = None
            logger.info("[SQLiteStorage] Database connection closed")

    def _require_db(self) -> aiosqlite.Connection:
        if not self._db:
            raise RuntimeError("Database not initialized. Call initialize() first.")
        return self._db

    # ------------------------------------------------------------------
    # StorageBackend
    # ------------------------------------------------------------------

    async def save(self, record: MemoryRecord) -> None:
        db = self._require_db()
        try:
            await db.execute(
                f"INSERT OR REPLACE INTO memories ({_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                self._to_row(record),
            )
            await db.commit()
        except aiosqlite.Error as e:
            raise StorageError(f"Failed to save memory {record.id}: {e}", self.db_path) from e

    async def save_batch(self, records: list[MemoryRecord]) -> None:
        db = self._require_db()
        if not records:
            return
        try:
            await db.executemany(
                f"INSERT OR REPLACE INTO memories ({_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                [self._to_row(r) for r in records],
            )
            await db.commit()
        except aiosqlite.Error as e:
            raise StorageError(
                f"Failed to save batch of {len(records)} memories: {e}", self.db_path
            ) from e
        logger.debug(f"[SQLiteStorage] Saved batch of {len(records)} memories")

    async def get(self, record_id: str) -> MemoryRecord | None:
        db = self._require_db()
        try:
            async with db.execute(
                f"SELECT {_COLUMNS} FROM memories WHERE id = ?", (record_id,)
            ) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StorageError(f"Failed to get memory {record_id}: {e}", self.db_path) from e

        if row is None:
            return None
        return self._from_row(row)

    async def search(self, query: MemorySearchQuery) -> list[MemoryRecord]:
        db = self._require_db()
        sql, params = self._build_search(query)
        try:
            async with db.execute(sql, params) as cursor:
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise StorageError(f"Failed to search memories: {e}", self.db_path) from e
        return [self._from_row(row) for row in rows]

    async def delete(self, record_id: str) -> None:
        db = self._require_db()
        try:
            await db.execute("DELETE FROM memories WHERE id = ?", (record_id,))
            await db.commit()
        except aiosqlite.Error as e:
            raise StorageError(f"Failed to delete memory {record_id}: {e}", self.db_path) from e

    async def health_check(self) -> bool:
        if not self._db:
            return False
        try:
            async with self._db.execute("SELECT 1") as cursor:
                await cursor.fetchone()
        except aiosqlite.Error as e:
            logger.warning(f"[SQLiteStorage] Health check failed: {e}")
            return False
        return True

    async def clear(self) -> None:
        db = self._require_db()
        try:
            await db.execute("DELETE FROM memories")
            await db.commit()
        except aiosqlite.Error as e:
            raise StorageError(f"Failed to clear memories: {e}", self.db_path) from e
        logger.debug("[SQLiteStorage] Cleared all records")

    async def count(self) -> int:
        db = self._require_db()
        try:
            async with db.execute("SELECT COUNT(*) FROM memories") as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StorageError(f"Failed to count memories: {e}", self.db_path) from e
        return row[0]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _build_search(query: MemorySearchQuery) -> tuple[str, list[Any]]:
        clauses: list[str] = []
        params: list[Any] = []

        if query.conversation_id is not None:
            clauses.append("conversation_id = ?")
            params.append(query.conversation_id)
        if query.channel is not None:
            clauses.append("channel = ?")
            params.append(query.channel.value)
        types = query.types()
        if types:
            clauses.append(f"type IN ({', '.join('?' for _ in types)})")
            params.extend(t.value for t in types)
        if query.role is not None:
            clauses.append("role = ?")
            params.append(query.role.value)
        if query.start_date is not None:
            clauses.append("timestamp >= ?")
            params.append(_format_timestamp(query.start_date))
        if query.end_date is not None:
            clauses.append("timestamp <= ?")
            params.append(_format_timestamp(query.end_date))
        if query.min_importance is not None:
            clauses.append("importance IS NOT NULL AND importance >= ?")
            params.append(query.min_importance)
        if query.keywords:
            keyword_clauses = ["instr(lower(content), ?) > 0" for _ in query.keywords]
            clauses.append(f"({' OR '.join(keyword_clauses)})")
            params.extend(k.lower() for k in query.keywords)

        sql = f"SELECT {_COLUMNS} FROM memories"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)

        direction = "ASC" if query.order_direction == "asc" else "DESC"
        order_column = (
            "COALESCE(importance, 0)" if query.order_by == "importance" else "timestamp"
        )
        sql += f" ORDER BY {order_column} {direction}, rowid ASC"

        if query.limit is not None:
            sql += " LIMIT ? OFFSET ?"
            params.extend([query.limit, query.offset])
        elif query.offset:
            sql += " LIMIT -1 OFFSET ?"
            params.append(query.offset)

        return sql, params

    @staticmethod
    def _to_row(record: MemoryRecord) -> tuple:
        return (
            record.id,
            record.content,
            _format_timestamp(record.timestamp),
            record.type.value,
            record.importance,
            record.channel.value if record.channel else None,
            record.role.value if record.role else None,
            record.conversation_id,
            json.dumps(record.session_metadata.model_dump(mode="json", by_alias=True)),
            record.tool_call.model_dump_json() if record.tool_call else None,
            record.tool_result.model_dump_json() if record.tool_result else None,
            json.dumps(record.metadata, default=str),
            None if record.goal_achieved is None else int(record.goal_achieved),
        )

    @staticmethod
    def _from_row(row: tuple) -> MemoryRecord:
        (
            record_id,
            content,
            timestamp,
            memory_type,
            importance,
            channel,
            role,
            _conversation_id,
            session_metadata,
            tool_call,
            tool_result,
            metadata,
            goal_achieved,
        ) = row
        return MemoryRecord.model_validate(
            {
                "id": record_id,
                "content": content,
                "timestamp": datetime.fromisoformat(timestamp),
                "type": memory_type,
                "importance": importance,
                "channel": channel,
                "role": role,
                "session_metadata": json.loads(session_metadata) if session_metadata else {},
                "tool_call": json.loads(tool_call) if tool_call else None,
                "tool_result": json.loads(tool_result) if tool_result else None,
                "metadata": json.loads(metadata) if metadata else {},
                "goal_achieved": None if goal_achieved is None else bool(goal_achieved),
            }
        )
