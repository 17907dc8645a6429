"""
IdentityStore: resolves a user id to its profile, app-level role and
organization memberships.

The caller's identity is always passed in explicitly; nothing here reads
ambient request state.
"""
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.store import bounded
from app.core.errors import UpstreamUnavailable
from app.features.organizations.models import Organization, OrganizationMember, OrganizationRole
from app.features.permissions.evaluator import Membership
from app.features.users.models import AppRole, Profile, profile_roles
from app.utils import get_logger


log = get_logger(__name__)

APP_ADMIN_ROLE = "admin"


class IdentityStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_profile(self, user_id: str) -> Optional[Profile]:
        result = await bounded(
            self.db.execute(select(Profile).where(Profile.id == user_id)),
            "profile lookup",
        )
        return result.scalar_one_or_none()

    async def get_app_role(self, user_id: str) -> Optional[str]:
        stmt = (
            select(AppRole.name)
            .join(profile_roles, profile_roles.c.role_id == AppRole.id)
            .where(profile_roles.c.profile_id == user_id)
        )
        result = await bounded(self.db.execute(stmt), "app role lookup")
        return result.scalars().first()

    async def is_app_admin(self, user_id: Optional[str]) -> bool:
        """False for anonymous or unknown users and when the store fails."""
        if not user_id:
            return False
        try:
            return await self.get_app_role(user_id) == APP_ADMIN_ROLE
        except UpstreamUnavailable:
            log.warning(f"Could not check app admin status for user {user_id}")
            return False

    async def get_membership(self, user_id: str, organization_id: str) -> Optional[Membership]:
        """
        Fetch the (user, organization) membership.

        Returns None when the user is not a member or the organization does not
        exist; the two cases are not distinguished. Raises UpstreamUnavailable
        when the store cannot answer.
        """
        stmt = (
            select(OrganizationMember.user_id, OrganizationRole.name, Organization.is_frozen)
            .join(OrganizationRole, OrganizationRole.id == OrganizationMember.organization_role_id)
            .join(Organization, Organization.id == OrganizationMember.organization_id)
            .where(
                OrganizationMember.user_id == user_id,
                OrganizationMember.organization_id == organization_id,
            )
        )
        result = await bounded(self.db.execute(stmt), "membership lookup")
        row = result.first()
        if row is None:
            return None
        return Membership.for_role(
            row.name,
            user_id=user_id,
            organization_id=organization_id,
            is_frozen=bool(row.is_frozen),
        )

    async def list_memberships(self, user_id: str) -> list[tuple[Organization, Membership]]:
        stmt = (
            select(Organization, OrganizationRole.name)
            .join(OrganizationMember, OrganizationMember.organization_id == Organization.id)
            .join(OrganizationRole, OrganizationRole.id == OrganizationMember.organization_role_id)
            .where(OrganizationMember.user_id == user_id)
            .order_by(Organization.name)
        )
        result = await bounded(self.db.execute(stmt), "membership listing")
        return [
            (
                organization,
                Membership.for_role(
                    role_name,
                    user_id=user_id,
                    organization_id=organization.id,
                    is_frozen=organization.is_frozen,
                ),
            )
            for organization, role_name in result.all()
        ]
