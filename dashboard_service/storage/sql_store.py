"""SQL-backed key-value store"""
import logging
from typing import Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine

from ..db.models import KVDocument, utcnow
from ..db.session import create_session_factory
from .storage_interface import KeyValueStore

logger = logging.getLogger(__name__)


class SqlKeyValueStore(KeyValueStore):
    """Stores documents as rows of the kv_documents table"""

    def __init__(self, engine: Engine):
        self.engine = engine
        self.SessionLocal = create_session_factory(engine)

    async def get(self, key: str) -> Optional[str]:
        with self.SessionLocal() as db:
            row = db.get(KVDocument, key)
            return row.value if row else None

    async def set(self, key: str, value: str) -> None:
        with self.SessionLocal() as db:
            try:
                row = db.get(KVDocument, key)
                if row is None:
                    db.add(KVDocument(key=key, value=value))
                else:
                    row.value = value
                    row.updated_at = utcnow()
                db.commit()
            except Exception:
                db.rollback()
                raise

    async def delete(self, key: str) -> None:
        with self.SessionLocal() as db:
            row = db.get(KVDocument, key)
            if row is not None:
                db.delete(row)
                db.commit()

    async def health_check(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.warning(f"Database health check failed: {e}")
            return False

    async def close(self) -> None:
        self.engine.dispose()
