"""
Seat and seat package routes, nested under /organizations/{organization_id}.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.core.responses import envelope, error_response
from app.core.validation import validate_uuid
from app.features.organizations.dependencies import get_organization_id
from app.features.permissions.dependencies import OrganizationAccess, require_permission
from app.features.seats.manager import SeatCapacityManager
from app.features.seats.schemas import (
    SeatCreate,
    SeatListResponse,
    SeatPackageCreate,
    SeatPackageResponse,
    SeatPackageSummary,
    SeatPackageUpdate,
    SeatResponse,
)
from app.features.users.dependencies import get_current_app_admin


router = APIRouter(tags=["seats"])


def get_seat_manager(db: Annotated[AsyncSession, Depends(get_db)]) -> SeatCapacityManager:
    return SeatCapacityManager(db)


@router.get("/{organization_id}/seats")
async def list_seats(
    access: Annotated[OrganizationAccess, Depends(require_permission("view_members"))],
    seats: Annotated[SeatCapacityManager, Depends(get_seat_manager)],
):
    org_id = access.organization_id
    seat_list = await seats.list_seats(org_id)
    data = SeatListResponse(
        seats=[SeatResponse.model_validate(s) for s in seat_list],
        total_limit=await seats.effective_limit(org_id),
        current_usage=len(seat_list),
        is_frozen=await seats.is_frozen(org_id),
    )
    return envelope(data, "Seats retrieved.")


@router.post("/{organization_id}/seats", status_code=status.HTTP_201_CREATED)
async def create_seat(
    seat_data: SeatCreate,
    access: Annotated[OrganizationAccess, Depends(require_permission("manage_seats"))],
    seats: Annotated[SeatCapacityManager, Depends(get_seat_manager)],
):
    """Create a seat. Going over capacity freezes the organization rather than failing."""
    seat = await seats.create_seat(access.organization_id, seat_data, actor_id=access.user_id)
    frozen = await seats.recompute_frozen(access.organization_id, actor_id=access.user_id)
    message = "Seat created." if not frozen else "Seat created. The seat limit is exceeded and the organization is frozen."
    return envelope({"seat": SeatResponse.model_validate(seat), "is_frozen": frozen}, message)


@router.delete("/{organization_id}/seats/{seat_id}")
async def remove_seat(
    seat_id: str,
    access: Annotated[OrganizationAccess, Depends(require_permission("release_seats"))],
    seats: Annotated[SeatCapacityManager, Depends(get_seat_manager)],
):
    seat_id = validate_uuid(seat_id, "seat")
    frozen = await seats.remove_seat(access.organization_id, seat_id, actor_id=access.user_id)
    if frozen is None:
        return error_response(status.HTTP_404_NOT_FOUND, "Seat not found.")
    return envelope({"is_frozen": frozen}, "Seat removed.")


@router.get("/{organization_id}/seat-packages")
async def list_seat_packages(
    access: Annotated[OrganizationAccess, Depends(require_permission("edit_organization"))],
    seats: Annotated[SeatCapacityManager, Depends(get_seat_manager)],
):
    org_id = access.organization_id
    data = SeatPackageSummary(
        packages=[SeatPackageResponse.model_validate(p) for p in await seats.list_packages(org_id)],
        total_limit=await seats.effective_limit(org_id),
        current_usage=await seats.seat_count(org_id),
        is_frozen=await seats.is_frozen(org_id),
    )
    return envelope(data, "Seat packages retrieved.")


# Package changes mirror payment events and are applied by app admins only
@router.post("/{organization_id}/seat-packages", status_code=status.HTTP_201_CREATED)
async def add_seat_package(
    package_data: SeatPackageCreate,
    organization_id: Annotated[str, Depends(get_organization_id)],
    admin_id: Annotated[str, Depends(get_current_app_admin)],
    seats: Annotated[SeatCapacityManager, Depends(get_seat_manager)],
):
    package = await seats.add_package(organization_id, package_data, actor_id=admin_id)
    if package is None:
        return error_response(status.HTTP_404_NOT_FOUND, "Organization not found.")
    return envelope(SeatPackageResponse.model_validate(package), "Seat package created.")


@router.patch("/{organization_id}/seat-packages/{package_id}")
async def update_seat_package(
    package_id: str,
    changes: SeatPackageUpdate,
    organization_id: Annotated[str, Depends(get_organization_id)],
    admin_id: Annotated[str, Depends(get_current_app_admin)],
    seats: Annotated[SeatCapacityManager, Depends(get_seat_manager)],
):
    package_id = validate_uuid(package_id, "seat package")
    package = await seats.update_package(organization_id, package_id, changes, actor_id=admin_id)
    if package is None:
        return error_response(status.HTTP_404_NOT_FOUND, "Seat package not found.")
    return envelope(SeatPackageResponse.model_validate(package), "Seat package updated.")
