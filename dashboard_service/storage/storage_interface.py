"""
Abstract interface for key-value storage backends
"""

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueStore(ABC):
    """Abstract base class for the stores that hold serialized documents"""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Read the document stored under a key

        Args:
            key: Document key

        Returns:
            Serialized document, or None if nothing is stored
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """
        Replace the document stored under a key

        Args:
            key: Document key
            value: Serialized document

        Raises:
            Exception: Backend-specific write failure
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """
        Remove a key; removing a missing key is not an error

        Args:
            key: Document key
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the backend is reachable

        Returns:
            True if healthy, False otherwise
        """
        pass

    async def close(self) -> None:
        """Release backend resources"""
        pass
