"""
Declarative base and the column mixins shared by every table.

Primary keys are ULID strings so ids sort by creation time and can be minted
without a round-trip to the database.
"""
from datetime import datetime
from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from ulid import ULID


def generate_ulid() -> str:
    return str(ULID())


class Base(DeclarativeBase):
    """
    Root of the model registry; ``init_db`` creates every table mapped on it.
    
    Usage:
        class Organization(Base, UlidPrimaryKeyMixin, TimestampMixin):
            __tablename__ = "organizations"
            name: Mapped[str] = mapped_column(String(255))
    """
    pass


class UlidPrimaryKeyMixin:
    """26-character ULID primary key, generated client-side."""
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)


class TimestampMixin:
    """
    ``created_at`` / ``updated_at`` maintained by the database.
    
    Both are server-side values: after an insert or update they are expired on
    the instance, so re-read the row (``session.refresh``) before serializing it.
    """
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
