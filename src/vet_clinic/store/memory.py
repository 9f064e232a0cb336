"""
In-memory state store.

Collections are kept as JSON text so that every read returns a fresh copy and
anything that would not survive a real backend fails here too.
"""

import json
import logging
from typing import Dict, Iterable, List, Optional

from ..exceptions import PersistenceException
from .base import Payload, StateStore

logger = logging.getLogger(__name__)


class InMemoryStateStore(StateStore):
    """Process-local store, mainly for tests and embedding."""

    def __init__(self, initial: Optional[Dict[str, Payload]] = None):
        self._data: Dict[str, str] = {}
        self.write_count = 0
        if initial:
            for key, payload in initial.items():
                self._data[key] = json.dumps(payload)

    async def load(self, key: str) -> Optional[Payload]:
        raw = self._data.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    async def save_many(self, collections: Dict[str, Payload]) -> None:
        # Serialise everything before touching the store
        try:
            encoded = {key: json.dumps(payload) for key, payload in collections.items()}
        except (TypeError, ValueError) as e:
            raise PersistenceException(
                "Collection is not JSON serialisable",
                error_code="STORE_SERIALIZATION_ERROR",
                details={"keys": sorted(collections)},
                original_error=e,
                max_retries=0,
            )

        self._data.update(encoded)
        self.write_count += 1
        logger.debug(f"Saved {len(encoded)} collections to memory store")

    async def delete(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._data.pop(key, None)

    async def keys(self) -> List[str]:
        return sorted(self._data)
