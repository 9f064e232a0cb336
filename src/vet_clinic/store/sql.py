"""
SQL-backed state store.

Each namespaced collection is one row of the ``stored_collections`` table.
``save_many`` upserts every row inside a single database transaction.
"""

import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import SessionManager, create_engine
from ..exceptions import handle_persistence_retry
from ..models import Base, StoredCollection
from .base import Payload, StateStore

logger = logging.getLogger(__name__)


class SqlStateStore(StateStore):
    """State store persisting collections through SQLAlchemy."""

    def __init__(self, session_manager: SessionManager):
        self.session_manager = session_manager

    @classmethod
    async def from_url(cls, database_url: str, **engine_kwargs) -> "SqlStateStore":
        """
        Create a store for ``database_url`` and make sure its table exists.

        Args:
            database_url: PostgreSQL or SQLite URL
            **engine_kwargs: Extra options for :func:`create_engine`
        """
        engine = create_engine(database_url, **engine_kwargs)
        store = cls(SessionManager(engine))
        await store.initialize()
        return store

    async def initialize(self) -> None:
        """Create the collection table if needed."""
        await self.session_manager.initialize_database(Base.metadata)

    @handle_persistence_retry("load_collection", max_retries=2, base_delay=0.1)
    async def load(self, key: str) -> Optional[Payload]:
        async def _load(session: AsyncSession) -> Optional[Payload]:
            result = await session.execute(
                select(StoredCollection).where(
                    StoredCollection.namespace == key,
                    StoredCollection.create_query_filter_active(),
                )
            )
            row = result.scalar_one_or_none()
            return None if row is None else list(row.payload)

        return await self.session_manager.execute_in_transaction(_load)

    async def save_many(self, collections: Dict[str, Payload]) -> None:
        async def _save(session: AsyncSession) -> None:
            result = await session.execute(
                select(StoredCollection).where(
                    StoredCollection.namespace.in_(list(collections))
                )
            )
            existing = {row.namespace: row for row in result.scalars()}

            for key, payload in collections.items():
                row = existing.get(key)
                if row is None:
                    session.add(StoredCollection(namespace=key, payload=payload))
                else:
                    row.replace_payload(payload)

        await self.session_manager.execute_in_transaction(_save)
        logger.debug(f"Saved {len(collections)} collections to SQL store")

    async def delete(self, keys: Iterable[str]) -> None:
        key_list = list(keys)

        async def _delete(session: AsyncSession) -> None:
            result = await session.execute(
                select(StoredCollection).where(
                    StoredCollection.namespace.in_(key_list),
                    StoredCollection.create_query_filter_active(),
                )
            )
            for row in result.scalars():
                row.soft_delete()

        await self.session_manager.execute_in_transaction(_delete)

    async def keys(self) -> List[str]:
        async def _keys(session: AsyncSession) -> List[str]:
            result = await session.execute(
                select(StoredCollection.namespace)
                .where(StoredCollection.create_query_filter_active())
                .order_by(StoredCollection.namespace)
            )
            return list(result.scalars())

        return await self.session_manager.execute_in_transaction(_keys)

    async def close(self) -> None:
        await self.session_manager.close_all_sessions()
