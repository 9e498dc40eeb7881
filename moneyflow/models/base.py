from datetime import datetime, UTC
from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Declarative base for all moneyflow models"""

    pass


class TimestampMixin:
    """Adds created_at/updated_at columns maintained by the ORM"""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )


def enum_values(enum_cls) -> list[str]:
    """Persist enum values (not member names) in string enum columns"""
    return [member.value for member in enum_cls]
