"""
State store collaborator interface.

The clinic service persists each collection as a JSON array under its own
namespaced key. Stores only need to honour one guarantee: ``save_many``
writes every given key or none of them.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

Payload = List[Any]


class StateStore(ABC):
    """Key-value store holding JSON-serialisable collections."""

    @abstractmethod
    async def load(self, key: str) -> Optional[Payload]:
        """Return the collection stored under ``key``, or None if absent."""

    @abstractmethod
    async def save_many(self, collections: Dict[str, Payload]) -> None:
        """
        Write several collections as one all-or-nothing unit.

        Raises:
            PersistenceException: If the write could not be completed
        """

    @abstractmethod
    async def delete(self, keys: Iterable[str]) -> None:
        """Remove the given keys; unknown keys are ignored."""

    async def keys(self) -> List[str]:
        """List stored keys. Backends that cannot enumerate return []."""
        return []

    async def close(self) -> None:
        """Release backend resources."""
        return None
