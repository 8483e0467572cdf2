"""
In-process key-value store
"""
from typing import Dict, Optional

from .storage_interface import KeyValueStore


class InMemoryKeyValueStore(KeyValueStore):
    """Dictionary-backed store, used by default and in tests"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def health_check(self) -> bool:
        return True
