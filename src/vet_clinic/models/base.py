"""
Base model class for all SQLAlchemy models in the vet-clinic package.

This module provides the foundational base model class that persisted tables
inherit from, including common fields, audit functionality, soft delete
capabilities, and utility methods.

The BaseModel class follows SQLAlchemy 2.0 patterns with:
- UUID primary keys (the generic ``Uuid`` type, so SQLite and PostgreSQL both work)
- Automatic timestamp management for audit trails
- Soft delete functionality
- Common utility methods for data conversion and querying

Example:
    >>> from vet_clinic.models.base import BaseModel
    >>> from sqlalchemy.orm import Mapped, mapped_column
    >>> from sqlalchemy import String

    >>> class MyModel(BaseModel):
    ...     __tablename__ = "my_table"
    ...     name: Mapped[str] = mapped_column(String(100))
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import Boolean, DateTime, Uuid, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """
    Base declarative class for all SQLAlchemy models.

    Attributes:
        type_annotation_map: Maps Python types to SQLAlchemy column types
    """

    type_annotation_map = {
        uuid.UUID: Uuid(as_uuid=True),
    }


class BaseModel(Base):
    """
    Abstract base model class providing common functionality for all tables.

    Attributes:
        id (UUID): Primary key, automatically generated UUID4
        created_at (datetime): Timestamp when record was created
        updated_at (datetime): Timestamp when record was last updated
        created_by (UUID, optional): ID of user who created the record
        updated_by (UUID, optional): ID of user who last updated the record
        deleted_at (datetime, optional): Timestamp when record was soft deleted
        is_deleted (bool): Flag indicating if record is soft deleted

    Note:
        This is an abstract base class and cannot be instantiated directly.
        All concrete models must define a __tablename__ attribute.
    """

    __abstract__ = True

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # Audit fields
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        nullable=True,
    )

    updated_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        nullable=True,
    )

    # Soft delete fields
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    is_deleted: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )

    def __repr__(self) -> str:
        """Return string representation in format <ModelName(id=uuid)>."""
        return f"<{self.__class__.__name__}(id={self.id})>"

    def to_dict(self, exclude_deleted: bool = True) -> Dict[str, Any]:
        """
        Convert model instance to dictionary representation.

        datetime values become ISO strings and UUIDs become strings.
        Returns an empty dict for soft-deleted rows unless
        ``exclude_deleted`` is False.
        """
        if exclude_deleted and self.is_deleted:
            return {}

        result = {}
        for column in self.__table__.columns:
            value = getattr(self, column.name)
            if isinstance(value, datetime):
                result[column.name] = value.isoformat()
            elif isinstance(value, uuid.UUID):
                result[column.name] = str(value)
            else:
                result[column.name] = value
        return result

    def soft_delete(self, deleted_by: Optional[uuid.UUID] = None) -> None:
        """
        Mark the record as deleted without removing it from the database.

        Note:
            This method only modifies the instance. You must commit the
            transaction to persist changes to the database.
        """
        self.is_deleted = True
        self.deleted_at = datetime.now(timezone.utc)
        if deleted_by:
            self.updated_by = deleted_by

    def restore(self, restored_by: Optional[uuid.UUID] = None) -> None:
        """Restore a soft-deleted record to active status."""
        self.is_deleted = False
        self.deleted_at = None
        if restored_by:
            self.updated_by = restored_by

    @classmethod
    def create_query_filter_active(cls):
        """
        Create a SQLAlchemy filter expression for active (non-deleted) records.

        Example:
            >>> from sqlalchemy import select
            >>> stmt = select(StoredCollection).where(
            ...     StoredCollection.create_query_filter_active()
            ... )
        """
        return cls.is_deleted.is_(False)
