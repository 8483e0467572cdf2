"""
Persistence gateway for saved dashboards.

The whole collection lives as one JSON array under a single key and every
write rewrites it. Read-modify-write cycles are serialized in-process with an
asyncio lock; the per-dashboard version acts as a compare-and-swap token
against writers in other processes.
"""
import asyncio
import json
import logging
from typing import List, Optional

from pydantic import ValidationError

from ..errors import DashboardSaveError, DashboardSerializationError, VersionConflictError
from ..models import SavedDashboard
from ..storage import KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_DASHBOARDS_KEY = "unified-analytics-dashboards"


def serialize_dashboards(dashboards: List[SavedDashboard]) -> str:
    """Serialize a collection to the stored JSON array (camelCase keys)"""
    return json.dumps([d.model_dump(by_alias=True, mode="json") for d in dashboards])


def deserialize_dashboards(raw: str, key: str = DEFAULT_DASHBOARDS_KEY) -> List[SavedDashboard]:
    """
    Parse a stored JSON array of dashboards.

    Raises:
        DashboardSerializationError: Malformed JSON or an invalid record
    """
    try:
        items = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise DashboardSerializationError(key, str(e)) from e

    if not isinstance(items, list):
        raise DashboardSerializationError(key, f"expected a JSON array, got {type(items).__name__}")

    try:
        return [SavedDashboard.model_validate(item) for item in items]
    except ValidationError as e:
        raise DashboardSerializationError(key, f"{e.error_count()} invalid field(s)") from e


class DashboardRepository:
    """Load/save/list/delete dashboards against a key-value store"""

    def __init__(self, store: KeyValueStore, key: str = DEFAULT_DASHBOARDS_KEY, enforce_version: bool = True):
        self.store = store
        self.key = key
        self.enforce_version = enforce_version
        self._lock = asyncio.Lock()

    async def _read(self, strict: bool = False) -> List[SavedDashboard]:
        """
        Load the stored collection.

        With strict set, a storage failure raises instead of yielding an empty
        list, so a read-modify-write never overwrites dashboards it could not see.
        Corrupt data yields an empty list either way.
        """
        try:
            raw = await self.store.get(self.key)
        except Exception as e:
            if strict:
                logger.error(f"Failed to read dashboards before write: {e}")
                raise DashboardSaveError(f"Failed to read dashboards: {e}") from e
            logger.warning(f"Failed to read dashboards from storage, treating as empty: {e}")
            return []

        if raw is None:
            return []

        try:
            return deserialize_dashboards(raw, self.key)
        except DashboardSerializationError as e:
            logger.warning(f"{e}; treating stored dashboards as empty")
            return []

    async def _write(self, dashboards: List[SavedDashboard]) -> None:
        try:
            await self.store.set(self.key, serialize_dashboards(dashboards))
        except Exception as e:
            logger.error(f"Failed to write dashboards: {e}")
            raise DashboardSaveError(f"Failed to save dashboards: {e}") from e

    async def list(self) -> List[SavedDashboard]:
        """All stored dashboards in storage order; corrupted data yields an empty list"""
        return await self._read()

    async def get(self, dashboard_id: str) -> Optional[SavedDashboard]:
        for dashboard in await self._read():
            if dashboard.id == dashboard_id:
                return dashboard
        return None

    async def exists(self, dashboard_id: str) -> bool:
        return await self.get(dashboard_id) is not None

    async def save(self, dashboard: SavedDashboard, expected_version: Optional[int] = None) -> SavedDashboard:
        """
        Upsert a dashboard keyed by id.

        Args:
            dashboard: Dashboard to store
            expected_version: Version the caller last read; when given (and
                version checks are enforced) the stored version must match

        Returns:
            The stored dashboard

        Raises:
            VersionConflictError: Stored version differs from expected_version
            DashboardSaveError: The store could not be read or rejected the write
        """
        async with self._lock:
            dashboards = await self._read(strict=True)
            index = next((i for i, d in enumerate(dashboards) if d.id == dashboard.id), None)

            if expected_version is not None and self.enforce_version:
                actual = dashboards[index].version if index is not None else None
                if actual != expected_version:
                    logger.warning(
                        f"Rejected stale save of {dashboard.id}: expected v{expected_version}, found v{actual}"
                    )
                    raise VersionConflictError(dashboard.id, expected_version, actual)

            if index is None:
                dashboards.append(dashboard)
            else:
                dashboards[index] = dashboard

            await self._write(dashboards)

        logger.info(f"Saved dashboard {dashboard.id} (v{dashboard.version})")
        return dashboard

    async def delete(self, dashboard_id: str) -> bool:
        """
        Remove a dashboard; deleting a missing id is a no-op.

        Returns:
            True if a dashboard was removed
        """
        async with self._lock:
            dashboards = await self._read(strict=True)
            remaining = [d for d in dashboards if d.id != dashboard_id]
            if len(remaining) == len(dashboards):
                return False
            await self._write(remaining)

        logger.info(f"Deleted dashboard {dashboard_id}")
        return True
