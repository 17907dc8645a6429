"""
Organization models for the residential access service.

Organizations have a type (e.g. residential) that defines the roles available
to their members. Each (user, organization) pair has at most one membership.
`is_frozen` is a derived flag owned by the seat capacity manager.
"""
from sqlalchemy import String, ForeignKey, Boolean, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database.base import Base, TimestampMixin, generate_uuid


class OrganizationType(Base):
    """Kind of organization, e.g. "residential"."""
    __tablename__ = "organization_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<OrganizationType(id={self.id}, name={self.name!r})>"


class OrganizationRole(Base):
    """Role a member can hold, scoped to an organization type."""
    __tablename__ = "organization_roles"
    __table_args__ = (UniqueConstraint("organization_type_id", "name"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    organization_type_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("organization_types.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    def __repr__(self) -> str:
        return f"<OrganizationRole(id={self.id}, name={self.name!r})>"


class Organization(Base, TimestampMixin):
    __tablename__ = "organizations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    organization_type_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("organization_types.id"),
        nullable=False
    )
    created_by: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True
    )

    # Recomputed by SeatCapacityManager, never written elsewhere
    is_frozen: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    organization_type: Mapped["OrganizationType"] = relationship("OrganizationType", lazy="selectin")

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name={self.name!r}, frozen={self.is_frozen})>"


class OrganizationMember(Base, TimestampMixin):
    __tablename__ = "organization_members"
    __table_args__ = (UniqueConstraint("user_id", "organization_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    organization_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    organization_role_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("organization_roles.id"),
        nullable=False
    )

    organization: Mapped["Organization"] = relationship("Organization", lazy="selectin")
    organization_role: Mapped["OrganizationRole"] = relationship("OrganizationRole", lazy="selectin")

    def __repr__(self) -> str:
        return f"<OrganizationMember(user_id={self.user_id}, org_id={self.organization_id})>"
