"""Redis-backed key-value store"""
import logging
from typing import Optional
import redis.asyncio as aioredis

from .storage_interface import KeyValueStore

logger = logging.getLogger(__name__)


class RedisKeyValueStore(KeyValueStore):
    """Stores each document as a plain Redis string"""

    def __init__(self, redis_url: str, client: Optional[aioredis.Redis] = None):
        self.redis_url = redis_url
        self._client: Optional[aioredis.Redis] = client

    async def get_client(self) -> aioredis.Redis:
        """Get or create Redis client"""
        if self._client is None:
            self._client = await aioredis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True
            )
        return self._client

    async def get(self, key: str) -> Optional[str]:
        client = await self.get_client()
        return await client.get(key)

    async def set(self, key: str, value: str) -> None:
        client = await self.get_client()
        await client.set(key, value)

    async def delete(self, key: str) -> None:
        client = await self.get_client()
        await client.delete(key)

    async def health_check(self) -> bool:
        try:
            client = await self.get_client()
            return bool(await client.ping())
        except Exception as e:
            logger.warning(f"Redis health check failed: {e}")
            return False

    async def close(self) -> None:
        """Close Redis connection"""
        if self._client:
            await self._client.close()
            self._client = None
