"""Shared column types and mixins for the models."""

from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import BigInteger, DateTime, Integer, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from core.utils.datetime import now

# SQLite only autoincrements INTEGER primary keys
BigIntId = BigInteger().with_variant(Integer, "sqlite")


def enum_column(enum_cls: type[PyEnum], length: int = 50) -> SQLEnum:
    """Store enum values (not member names) as plain strings."""
    return SQLEnum(
        enum_cls,
        native_enum=False,
        length=length,
        values_callable=lambda members: [m.value for m in members],
    )


class TimestampMixin:
    """created_at / updated_at stamped application-side in UTC."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now, onupdate=now
    )
