"""Declarative base and column helpers for the kingdom schema.

Timestamps are written from Python with :func:`utc_now` so that ordering by
``created_at`` follows the injected clock, with a server default as a
fallback for rows inserted outside the ORM (migrations, manual fixes).
"""

from datetime import UTC, datetime
from typing import ClassVar

from sqlalchemy import CheckConstraint, DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    """Timezone-aware current time; the default clock of every service."""
    return datetime.now(UTC)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from stores without tz support (SQLite)."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def at_least(
    table: str, column: str, minimum: int = 0, *, name: str | None = None
) -> CheckConstraint:
    """``CHECK (column >= minimum)`` named ``ck_<table>_<name or column>``."""
    return CheckConstraint(f"{column} >= {minimum}", name=f"ck_{table}_{name or column}")


class Base(DeclarativeBase):
    """Base class for all kingdom models."""

    type_annotation_map: ClassVar[dict] = {
        datetime: DateTime(timezone=True),
    }


class CreatedAtMixin:
    """Creation stamp for append-only or rarely changing rows."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=func.now(),
    )


class AuditMixin(CreatedAtMixin):
    """Creation stamp plus an ``updated_at`` refreshed on every ORM update."""

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
        server_default=func.now(),
    )
