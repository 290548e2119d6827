"""Store Factory — picks the ReflectionStore backend from settings."""

import logging

from brain_dump.config import Settings
from brain_dump.infrastructure.database import DatabaseSessionManager
from brain_dump.infrastructure.memory_store import InMemoryReflectionStore
from brain_dump.infrastructure.sql_store import SqlReflectionStore

logger = logging.getLogger(__name__)


async def build_store(
    settings: Settings,
) -> InMemoryReflectionStore | SqlReflectionStore:
    """Build the configured store. SQL backend creates missing tables."""
    if settings.storage_backend == "sql":
        manager = DatabaseSessionManager(
            settings.database_url,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
        )
        await manager.create_tables()
        logger.info("Using SQL reflection store")
        return SqlReflectionStore(manager)
    logger.info("Using in-memory reflection store")
    return InMemoryReflectionStore()
