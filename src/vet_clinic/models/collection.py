"""
Stored collection model for the SQL state store.

Each row holds one namespaced, JSON-serialised collection of clinic records.
"""

from typing import Any, List

from sqlalchemy import JSON, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel


class StoredCollection(BaseModel):
    """
    A namespaced collection persisted as a JSON document.

    The namespace is the full state store key (prefix included). ``version``
    is bumped on every write so concurrent readers can detect changes.
    """

    __tablename__ = "stored_collections"

    namespace: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        unique=True,
        comment="Full state store key, e.g. 'vetpro_vaccinations'",
    )

    payload: Mapped[List[Any]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="JSON array of serialised records",
    )

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        comment="Incremented on every write",
    )

    __table_args__ = (Index("idx_stored_collections_is_deleted", "is_deleted"),)

    def replace_payload(self, payload: List[Any]) -> None:
        """Replace the stored records and bump the version."""
        self.payload = payload
        self.version = (self.version or 0) + 1
        if self.is_deleted:
            self.restore()

    @property
    def record_count(self) -> int:
        """Number of records held in the payload."""
        return len(self.payload or [])
