"""
Base model class for all SQLAlchemy models in the vet-scheduler package.

This module provides the foundational base model class that all other models
inherit from, including common fields, audit columns and utility methods.

The BaseModel class follows modern SQLAlchemy 2.0 patterns with:
- UUID primary keys generated in Python, so objects are complete before flush
- UTC audit timestamps that survive a round trip through SQLite
- Common utility methods for data conversion

Example:
    >>> from vet_scheduler.models.base import BaseModel
    >>> from sqlalchemy.orm import Mapped, mapped_column
    >>> from sqlalchemy import String

    >>> class Room(BaseModel):
    ...     __tablename__ = "rooms"
    ...     name: Mapped[str] = mapped_column(String(100))

    >>> room = Room(name="Exam 1")
    >>> print(room.id)  # Auto-generated UUID
    >>> data = room.to_dict()
    >>> print(data['name'])  # "Exam 1"
"""

import enum
import uuid
from datetime import datetime
from typing import Any, Dict, Optional, TypeVar

from sqlalchemy import Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ..database.types import UTCDateTime
from ..utils.datetime_utils import get_current_utc

# Type variable for model classes
T = TypeVar("T", bound="BaseModel")


class Base(DeclarativeBase):
    """
    Base declarative class for all SQLAlchemy models.

    Attributes:
        type_annotation_map: Maps Python types to SQLAlchemy column types
    """

    # Backend-neutral UUID and tz-aware datetimes for both PostgreSQL and SQLite
    type_annotation_map = {
        uuid.UUID: Uuid(as_uuid=True),
        datetime: UTCDateTime(),
    }


class BaseModel(Base):
    """
    Abstract base model class providing common functionality for all entities.

    - **UUID Primary Keys**: UUID4 assigned at construction time
    - **Audit Fields**: creation/modification times and the acting user

    Attributes:
        id (UUID): Primary key, automatically generated UUID4
        created_at (datetime): Timestamp when record was created (UTC)
        updated_at (datetime): Timestamp when record was last updated (UTC)
        created_by (UUID, optional): ID of the actor who created the record
        updated_by (UUID, optional): ID of the actor who last updated the record

    Note:
        This is an abstract base class and cannot be instantiated directly.
        All concrete models must define a __tablename__ attribute.
    """

    __abstract__ = True

    def __init__(self, **kwargs: Any):
        """Assign identity and audit timestamps eagerly."""
        kwargs.setdefault("id", uuid.uuid4())
        now = kwargs.get("created_at") or get_current_utc()
        kwargs.setdefault("created_at", now)
        kwargs.setdefault("updated_at", now)
        super().__init__(**kwargs)

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    # Audit fields
    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        default=get_current_utc,
    )

    updated_at: Mapped[datetime] = mapped_column(
        nullable=False,
        default=get_current_utc,
        onupdate=get_current_utc,
    )

    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(nullable=True)

    updated_by: Mapped[Optional[uuid.UUID]] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        """
        Return string representation of the model instance.

        Returns:
            String in format: <ModelName(id=uuid)>
        """
        return f"<{self.__class__.__name__}(id={self.id})>"

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert model instance to dictionary representation.

        Converts all column values to JSON-serializable types:
        - datetime and time objects to ISO format strings
        - UUID objects to string representation
        - Enum members to their values
        - Other types remain unchanged

        Returns:
            Dictionary with column names as keys and serialized values.
        """
        result = {}
        for column in self.__table__.columns:
            value = getattr(self, column.key)
            if hasattr(value, "isoformat"):
                result[column.key] = value.isoformat()
            elif isinstance(value, uuid.UUID):
                result[column.key] = str(value)
            elif isinstance(value, enum.Enum):
                result[column.key] = value.value
            else:
                result[column.key] = value
        return result

    @classmethod
    def get_table_name(cls) -> str:
        """Get the database table name for this model."""
        return cls.__tablename__

    def update_fields(self, **kwargs) -> None:
        """
        Update multiple fields on the model instance in a single operation.

        Args:
            **kwargs: Field names as keys and new values as values.
                     Only existing model attributes can be updated.

        Raises:
            AttributeError: If any field name doesn't exist on the model.

        Note:
            This method only modifies the instance. You must commit the
            transaction to persist changes to the database.
        """
        for field, value in kwargs.items():
            if hasattr(self, field):
                setattr(self, field, value)
            else:
                raise AttributeError(
                    f"'{self.__class__.__name__}' has no attribute '{field}'"
                )
