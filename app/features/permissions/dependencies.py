"""
FastAPI dependencies for organization-scoped permission checks.

`require_permission` composes three independent pieces:
- IdentityStore: the caller's membership in the organization
- evaluator.can: the static permission table
- SeatCapacityManager.is_frozen + evaluator.frozen_blocks: freeze gating for
  mutating permissions
"""
from dataclasses import dataclass
from typing import Annotated
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.core.errors import NotAMember, OrganizationFrozen, PermissionDenied
from app.features.organizations.dependencies import get_organization_id
from app.features.permissions.evaluator import Membership, can, frozen_blocks, is_mutating
from app.features.seats.manager import SeatCapacityManager
from app.features.users.dependencies import get_current_user_id
from app.features.users.store import IdentityStore
from app.utils import get_logger


log = get_logger(__name__)


@dataclass(frozen=True)
class OrganizationAccess:
    """Who is acting, where, and with which membership."""
    user_id: str
    organization_id: str
    membership: Membership


async def get_organization_access(
    organization_id: Annotated[str, Depends(get_organization_id)],
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> OrganizationAccess:
    """
    Resolve the caller's membership or raise NotAMember.

    Unknown organizations and organizations the caller does not belong to are
    reported identically.
    """
    membership = await IdentityStore(db).get_membership(user_id, organization_id)
    if membership is None:
        log.debug(f"User {user_id} is not a member of {organization_id}")
        raise NotAMember()
    return OrganizationAccess(user_id=user_id, organization_id=organization_id, membership=membership)


async def check_permission(db: AsyncSession, access: OrganizationAccess, permission: str) -> None:
    """
    Raise unless `access` may exercise `permission` right now.

    Raises:
        PermissionDenied: the membership's role does not grant the permission
        OrganizationFrozen: the permission is mutating and the organization is frozen
    """
    if not can(permission, access.membership):
        log.debug(f"User {access.user_id} denied {permission} in org {access.organization_id}")
        raise PermissionDenied()

    if is_mutating(permission):
        # Read the stored flag fresh rather than trusting the membership snapshot
        frozen = await SeatCapacityManager(db).is_frozen(access.organization_id)
        if frozen_blocks(permission, access.membership, frozen):
            log.info(f"User {access.user_id} blocked from {permission}: org {access.organization_id} is frozen")
            raise OrganizationFrozen()


def require_permission(permission: str):
    """
    FastAPI dependency to require an organization permission.

    Usage:
        @router.post("/{organization_id}/seats")
        async def create_seat(
            access: OrganizationAccess = Depends(require_permission("manage_seats"))
        ):
            ...

    Returns:
        Dependency function that returns the OrganizationAccess when allowed
    """
    async def permission_dependency(
        access: Annotated[OrganizationAccess, Depends(get_organization_access)],
        db: Annotated[AsyncSession, Depends(get_db)],
    ) -> OrganizationAccess:
        await check_permission(db, access, permission)
        return access

    return permission_dependency
