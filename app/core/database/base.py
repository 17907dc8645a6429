"""
Declarative base shared by every model, plus id and timestamp helpers.
"""
import uuid
from datetime import datetime
from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def generate_uuid() -> str:
    """Random (version 4) UUID as a 36-character string, used for every string primary key."""
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    """Server-side created_at/updated_at. SQLite returns them without tzinfo; treat as UTC."""
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
