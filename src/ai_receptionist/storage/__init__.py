"""Long-term storage backends."""

from loguru import logger

from ..config import StorageConfig
from .base import StorageBackend
from .in_memory_store import InMemoryStorage
from .sqlite_store import SQLiteStorage


async def create_storage(config: StorageConfig) -> StorageBackend:
    """Build the configured backend, initialising SQLite when selected."""
    if config.backend == "sqlite":
        storage = SQLiteStorage(config.sqlite_db_path)
        await storage.initialize()
        return storage
    logger.debug("[Storage] Using in-memory storage backend")
    return InMemoryStorage()


__all__ = ["InMemoryStorage", "SQLiteStorage", "StorageBackend", "create_storage"]
