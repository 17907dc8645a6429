"""
FastAPI dependencies for authentication.

Identity is resolved from the bearer token and handed to the core as an
explicit user id.
"""
from typing import Annotated, Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.core.errors import NotAuthenticated, PermissionDenied
from app.features.users.auth import verify_jwt_token, user_id_from_payload
from app.features.users.store import IdentityStore


security = HTTPBearer(auto_error=False)


async def get_optional_user_id(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> Optional[str]:
    """
    The caller's user id, or None for anonymous requests and unusable tokens.

    Used by the route guard, which turns anonymity into a login redirect.
    """
    if credentials is None:
        return None
    try:
        payload = verify_jwt_token(credentials.credentials)
    except NotAuthenticated:
        return None
    return user_id_from_payload(payload)


async def get_current_user_id(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> str:
    """
    Require an authenticated caller.

    Usage:
        @router.get("/me")
        async def get_me(user_id: str = Depends(get_current_user_id)):
            ...
    """
    if credentials is None:
        raise NotAuthenticated()
    payload = verify_jwt_token(credentials.credentials)
    user_id = user_id_from_payload(payload)
    if user_id is None:
        raise NotAuthenticated("Invalid token payload.")
    return user_id


def get_identity_store(db: Annotated[AsyncSession, Depends(get_db)]) -> IdentityStore:
    return IdentityStore(db)


async def get_current_app_admin(
    user_id: Annotated[str, Depends(get_current_user_id)],
    identity: Annotated[IdentityStore, Depends(get_identity_store)],
) -> str:
    """
    Require app-level admin privileges.

    Usage:
        @router.post("/admin/feature-flags")
        async def create_flag(admin_id: str = Depends(get_current_app_admin)):
            ...
    """
    if not await identity.is_app_admin(user_id):
        raise PermissionDenied("Admin privileges required.")
    return user_id


def get_authorization_header(request) -> str:
    """
    Extract authorization header for rate limiting.
    Used with slowapi Limiter.
    """
    auth = request.headers.get("Authorization", "")
    return auth or "anonymous"
