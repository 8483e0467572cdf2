"""
Deployment registry: the set of dashboard ids promoted to the deployed surface.

Stored as a JSON array of ids under its own key, independent of dashboard content.
"""
import asyncio
import json
import logging
from typing import List

from ..errors import DashboardSaveError
from ..storage import KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_DEPLOYED_KEY = "unified-analytics-deployed-dashboards"


class DeploymentRegistry:
    """Tracks deployed dashboard ids"""

    def __init__(self, store: KeyValueStore, key: str = DEFAULT_DEPLOYED_KEY):
        self.store = store
        self.key = key
        self._lock = asyncio.Lock()

    async def _read(self, strict: bool = False) -> List[str]:
        try:
            raw = await self.store.get(self.key)
        except Exception as e:
            if strict:
                logger.error(f"Failed to read deployed dashboards before write: {e}")
                raise DashboardSaveError(f"Failed to read deployed dashboards: {e}") from e
            logger.warning(f"Failed to read deployed dashboards, treating as empty: {e}")
            return []

        if raw is None:
            return []

        try:
            ids = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse deployed dashboards '{self.key}': {e}")
            return []

        if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
            logger.warning(f"Deployed dashboards '{self.key}' is not an array of ids, treating as empty")
            return []

        # Keep first occurrence order, drop duplicates
        return list(dict.fromkeys(ids))

    async def _write(self, ids: List[str]) -> None:
        try:
            await self.store.set(self.key, json.dumps(ids))
        except Exception as e:
            raise DashboardSaveError(f"Failed to save deployed dashboards: {e}") from e

    async def list_ids(self) -> List[str]:
        return await self._read()

    async def is_deployed(self, dashboard_id: str) -> bool:
        return dashboard_id in await self._read()

    async def deploy(self, dashboard_id: str) -> List[str]:
        """Add an id to the set; deploying twice is a no-op"""
        async with self._lock:
            ids = await self._read(strict=True)
            if dashboard_id not in ids:
                ids.append(dashboard_id)
                await self._write(ids)
                logger.info(f"Deployed dashboard {dashboard_id}")
        return ids

    async def undeploy(self, dashboard_id: str) -> List[str]:
        """Remove an id from the set; removing an absent id is a no-op"""
        async with self._lock:
            ids = await self._read(strict=True)
            if dashboard_id in ids:
                ids = [i for i in ids if i != dashboard_id]
                await self._write(ids)
                logger.info(f"Undeployed dashboard {dashboard_id}")
        return ids
