"""
Key-value storage backends for serialized dashboard documents
"""
import logging

from .storage_interface import KeyValueStore
from .memory_store import InMemoryKeyValueStore
from .redis_store import RedisKeyValueStore
from .sql_store import SqlKeyValueStore
from ..db.session import create_db_engine

logger = logging.getLogger(__name__)


def create_store(settings) -> KeyValueStore:
    """Build the store selected by STORAGE_BACKEND"""
    backend = settings.STORAGE_BACKEND.lower()
    if backend == "redis":
        logger.info(f"Using Redis storage at {settings.REDIS_URL}")
        return RedisKeyValueStore(settings.REDIS_URL)
    if backend == "sql":
        logger.info("Using SQL storage")
        return SqlKeyValueStore(create_db_engine(settings.DATABASE_URL))
    if backend == "memory":
        logger.info("Using in-memory storage")
        return InMemoryKeyValueStore()
    raise ValueError(f"Unsupported storage backend: {settings.STORAGE_BACKEND}")


__all__ = [
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "RedisKeyValueStore",
    "SqlKeyValueStore",
    "create_store",
]
