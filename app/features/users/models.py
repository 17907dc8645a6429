"""
Profile and app-level role models.

Profiles mirror identities owned by the external identity provider; the
provider's user id is used as the profile id.
"""
from sqlalchemy import String, ForeignKey, Table, Column
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database.base import Base, TimestampMixin, generate_uuid


# A profile holds zero or one app-level role (unique on profile_id)
profile_roles = Table(
    "profile_roles",
    Base.metadata,
    Column("profile_id", String(36), ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", String(36), ForeignKey("app_roles.id", ondelete="CASCADE"), nullable=False),
)


class AppRole(Base, TimestampMixin):
    """
    Application-wide role, e.g. "admin". Independent of organization roles.
    """
    __tablename__ = "app_roles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<AppRole(id={self.id}, name={self.name!r})>"


class Profile(Base, TimestampMixin):
    """
    User profile keyed by the identity provider's user id.
    """
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    roles: Mapped[list["AppRole"]] = relationship(
        "AppRole",
        secondary=profile_roles,
        lazy="selectin"
    )

    @property
    def app_role(self) -> str | None:
        return self.roles[0].name if self.roles else None

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, email={self.email!r})>"
