"""
Organization feature routes.
"""
from typing import Annotated, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError

from app.core.database.engine import get_db
from app.core.database.store import bounded
from app.core.errors import NotAMember, ValidationError
from app.core.responses import envelope
from app.features.organizations.models import Organization, OrganizationRole, OrganizationType
from app.features.organizations.schemas import (
    OrganizationRoleResponse,
    OrganizationSnapshot,
    OrganizationTypeResponse,
    OrganizationUpdate,
)
from app.features.permissions.dependencies import (
    OrganizationAccess,
    get_organization_access,
    require_permission,
)
from app.features.permissions.evaluator import Membership, granted_permissions
from app.features.users.dependencies import get_current_user_id, get_identity_store
from app.features.users.store import IdentityStore
from app.utils import get_logger


log = get_logger(__name__)
router = APIRouter(tags=["organizations"])
catalog_router = APIRouter(tags=["organizations"])


def build_snapshot(organization: Organization, membership: Membership) -> OrganizationSnapshot:
    return OrganizationSnapshot(
        id=organization.id,
        name=organization.name,
        organization_type=organization.organization_type.name,
        is_frozen=organization.is_frozen,
        user_role=membership.role,
        is_admin=membership.is_admin,
        permissions=granted_permissions(membership),
    )


# Public catalog endpoints
@catalog_router.get("/organization-types")
async def list_organization_types(db: Annotated[AsyncSession, Depends(get_db)]):
    result = await bounded(db.execute(select(OrganizationType).order_by(OrganizationType.id)))
    types = [OrganizationTypeResponse.model_validate(t) for t in result.scalars().all()]
    return envelope(types, "Organization types retrieved.")


@catalog_router.get("/organization-roles")
async def list_organization_roles(
    db: Annotated[AsyncSession, Depends(get_db)],
    organization_type_id: Optional[int] = Query(None, description="Filter roles by organization type ID"),
):
    query = select(OrganizationRole)
    if organization_type_id is not None:
        query = query.where(OrganizationRole.organization_type_id == organization_type_id)
    result = await bounded(db.execute(query.order_by(OrganizationRole.id)))
    roles = [OrganizationRoleResponse.model_validate(r) for r in result.scalars().all()]
    return envelope(roles, "Roles retrieved.")


# Member endpoints
@router.get("/")
async def list_my_organizations(
    user_id: Annotated[str, Depends(get_current_user_id)],
    identity: Annotated[IdentityStore, Depends(get_identity_store)],
):
    """Organizations the current user belongs to, with their membership surface."""
    memberships = await identity.list_memberships(user_id)
    snapshots = [build_snapshot(org, membership) for org, membership in memberships]
    return envelope(snapshots, "Organizations retrieved.")


@router.get("/{organization_id}")
async def get_organization(
    access: Annotated[OrganizationAccess, Depends(get_organization_access)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Organization snapshot for a member. Non-members get the generic denial."""
    organization = await bounded(db.get(Organization, access.organization_id), "organization lookup")
    if organization is None:
        raise NotAMember()
    return envelope(build_snapshot(organization, access.membership), "Organization retrieved.")


@router.patch("/{organization_id}")
async def update_organization(
    update_data: OrganizationUpdate,
    access: Annotated[OrganizationAccess, Depends(require_permission("edit_organization"))],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Rename the organization (admins only, allowed while frozen)."""
    organization = await bounded(db.get(Organization, access.organization_id), "organization lookup")
    if organization is None:
        raise NotAMember()

    organization.name = update_data.name
    try:
        await bounded(db.commit(), "organization rename")
    except IntegrityError:
        await db.rollback()
        raise ValidationError("An organization with that name already exists.", field="name")
    log.info(f"User {access.user_id} renamed organization {organization.id}")
    return envelope(build_snapshot(organization, access.membership), "Organization updated.")
