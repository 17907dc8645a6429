"""
Route guard endpoint.

Page renderers call this once per navigation: a 200 means render, a 307
means render nothing and follow the Location header.
"""
from typing import Annotated, Optional
from fastapi import APIRouter, Depends, Query

from app.core.responses import envelope
from app.features.access.dependencies import get_route_guard
from app.features.access.guard import RouteAccessGuard, RouteRedirect
from app.features.permissions.evaluator import granted_permissions
from app.features.users.dependencies import get_optional_user_id


router = APIRouter(tags=["access"])


@router.get("/{organization_id}/guard")
async def guard_route(
    organization_id: str,
    user_id: Annotated[Optional[str], Depends(get_optional_user_id)],
    guard: Annotated[RouteAccessGuard, Depends(get_route_guard)],
    route: str = Query("/", max_length=200, description="Organization page route, e.g. /chat"),
):
    verdict = await guard.authorize(user_id, organization_id, route)
    if not verdict.allowed:
        raise RouteRedirect(verdict)
    return envelope(
        {
            "route": verdict.route,
            "permission": verdict.permission,
            "user_role": verdict.membership.role,
            "is_admin": verdict.membership.is_admin,
            "permissions": granted_permissions(verdict.membership),
        },
        "Access granted.",
    )
