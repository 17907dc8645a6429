"""
Feature flag models.

A flag is enabled for a user when a user_flags row links them.
"""
from datetime import datetime
from sqlalchemy import String, ForeignKey, Table, Column, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database.base import Base, TimestampMixin, generate_uuid


user_flags = Table(
    "user_flags",
    Base.metadata,
    Column("user_id", String(36), ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True),
    Column("flag_id", String(36), ForeignKey("feature_flags.id", ondelete="CASCADE"), primary_key=True),
    Column("assigned_at", DateTime(timezone=True), nullable=False, default=datetime.now),
)


class FeatureFlag(Base, TimestampMixin):
    __tablename__ = "feature_flags"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<FeatureFlag(id={self.id}, name={self.name!r})>"
