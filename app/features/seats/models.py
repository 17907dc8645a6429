"""
Seat, SeatPackage and AuditLog models.

An organization owns its seats and seat packages. Each seat consumes one unit
of capacity; the effective limit is the sum of the limits of the packages that
are active and inside their validity window.
"""
from datetime import datetime
from typing import Any, Dict
import enum
from sqlalchemy import String, ForeignKey, Integer, JSON, DateTime, CheckConstraint, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database.base import Base, TimestampMixin, generate_uuid


class SeatPackageStatus(str, enum.Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class Seat(Base, TimestampMixin):
    __tablename__ = "seats"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    organization_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    occupant_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    def __repr__(self) -> str:
        return f"<Seat(id={self.id}, org_id={self.organization_id}, occupant={self.occupant_id})>"


class SeatPackage(Base, TimestampMixin):
    """
    Contracted bundle of seats. A null bound on the validity window is unbounded
    on that side; the window is half-open, [starts_at, ends_at).
    """
    __tablename__ = "seat_packages"
    __table_args__ = (CheckConstraint("seat_limit >= 0", name="ck_seat_packages_limit"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    organization_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    seat_limit: Mapped[int] = mapped_column(Integer, nullable=False)
    starts_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    ends_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[SeatPackageStatus] = mapped_column(
        SQLEnum(SeatPackageStatus),
        default=SeatPackageStatus.ACTIVE,
        nullable=False,
        index=True
    )

    def __repr__(self) -> str:
        return f"<SeatPackage(id={self.id}, org_id={self.organization_id}, limit={self.seat_limit}, status={self.status})>"


class AuditLog(Base, TimestampMixin):
    """
    Audit log for capacity changes: seat creation/removal and freeze transitions.
    """
    __tablename__ = "audit_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)

    # Actor, null for the periodic sweep
    user_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)

    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    resource_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    resource_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    organization_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    details: Mapped[Dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<AuditLog(id={self.id}, action={self.action}, resource={self.resource_type})>"
