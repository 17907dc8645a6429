"""
User feature routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends

from app.core.errors import NotAuthenticated
from app.core.responses import envelope
from app.features.users.dependencies import get_current_user_id, get_identity_store
from app.features.users.schemas import ProfileResponse
from app.features.users.store import IdentityStore


router = APIRouter(tags=["users"])


@router.get("/me")
async def get_current_user_profile(
    user_id: Annotated[str, Depends(get_current_user_id)],
    identity: Annotated[IdentityStore, Depends(get_identity_store)],
):
    """Get the current authenticated user's profile and app-level role."""
    profile = await identity.get_profile(user_id)
    if profile is None:
        # Token is valid but the identity was never provisioned locally
        raise NotAuthenticated("No profile exists for this identity.")
    return envelope(ProfileResponse.model_validate(profile), "Profile retrieved.")
