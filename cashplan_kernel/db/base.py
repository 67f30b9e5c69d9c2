"""
Declarative base for the cashplan ORM models.

Column conventions shared by every table:

- Primary keys are uuid4 values stored as 36-character strings, which
  behaves identically on SQLite and PostgreSQL.
- Annotated ``int`` columns are BIGINT; cent amounts routinely pass 2**31.
- Annotated ``datetime`` columns are timezone-aware.

Nothing here may import models, selectors or services.
"""

from datetime import datetime
from typing import Any, ClassVar
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """``uuid.UUID`` on the Python side, VARCHAR(36) in the database."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Any) -> str | None:
        return None if value is None else str(value)

    def process_result_value(self, value: Any, dialect: Any) -> UUID | None:
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        UUID: UUIDString(),
        datetime: DateTime(timezone=True),
        int: BigInteger,
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TimestampedBase(Base):
    """Adds a database-assigned ``created_at`` insertion timestamp."""

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        nullable=False,
    )
