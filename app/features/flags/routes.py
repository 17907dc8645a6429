"""
Feature flag routes: the caller's flags, plus app-admin flag management.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, status
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError

from app.core.database.engine import get_db
from app.core.database.store import bounded
from app.core.errors import ValidationError
from app.core.responses import envelope, error_response
from app.core.validation import validate_uuid
from app.features.flags.models import FeatureFlag, user_flags
from app.features.flags.resolver import FeatureFlagResolver, SqlFlagEvaluator
from app.features.flags.schemas import (
    FeatureFlagCreate,
    FeatureFlagResponse,
    FlagStateResponse,
    UserFlagAssign,
)
from app.features.users.dependencies import get_current_app_admin, get_current_user_id
from app.utils import get_logger


log = get_logger(__name__)
router = APIRouter(tags=["flags"])
admin_router = APIRouter(tags=["admin"])


def get_flag_resolver(db: Annotated[AsyncSession, Depends(get_db)]) -> FeatureFlagResolver:
    return FeatureFlagResolver(SqlFlagEvaluator(db))


@router.get("/flags")
async def get_user_flags(
    user_id: Annotated[str, Depends(get_current_user_id)],
    resolver: Annotated[FeatureFlagResolver, Depends(get_flag_resolver)],
):
    """All feature flags with their enabled status for the current user."""
    flags = await resolver.flags_for(user_id)
    return envelope(
        {"flags": [FlagStateResponse.model_validate(flag) for flag in flags]},
        "Flags retrieved.",
    )


# ============================================================================
# Admin Routes
# ============================================================================

@admin_router.get("/feature-flags")
async def list_feature_flags(
    admin_id: Annotated[str, Depends(get_current_app_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    result = await bounded(db.execute(select(FeatureFlag).order_by(FeatureFlag.name)), "flag listing")
    flags = [FeatureFlagResponse.model_validate(f) for f in result.scalars().all()]
    return envelope(flags, "Flags retrieved.")


@admin_router.post("/feature-flags", status_code=status.HTTP_201_CREATED)
async def create_feature_flag(
    flag_data: FeatureFlagCreate,
    admin_id: Annotated[str, Depends(get_current_app_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    flag = FeatureFlag(**flag_data.model_dump())
    db.add(flag)
    try:
        await bounded(db.commit(), "flag creation")
    except IntegrityError:
        await db.rollback()
        raise ValidationError("A flag with this name already exists.", field="name")
    await bounded(db.refresh(flag), "flag reload")
    log.info(f"Admin {admin_id} created flag {flag.name}")
    return envelope(FeatureFlagResponse.model_validate(flag), "Flag created.")


@admin_router.post("/user-flags", status_code=status.HTTP_201_CREATED)
async def assign_user_flag(
    assignment: UserFlagAssign,
    admin_id: Annotated[str, Depends(get_current_app_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    try:
        await bounded(db.execute(user_flags.insert().values(**assignment.model_dump())), "flag assignment")
        await bounded(db.commit(), "flag assignment")
    except IntegrityError:
        await db.rollback()
        raise ValidationError("Unknown user or flag, or the flag is already assigned.", field="flag_id")
    log.info(f"Admin {admin_id} enabled flag {assignment.flag_id} for user {assignment.user_id}")
    return envelope(assignment, "Flag assigned.")


@admin_router.delete("/user-flags/{user_id}/{flag_id}")
async def remove_user_flag(
    user_id: str,
    flag_id: str,
    admin_id: Annotated[str, Depends(get_current_app_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    user_id = validate_uuid(user_id, "user")
    flag_id = validate_uuid(flag_id, "flag")
    result = await bounded(
        db.execute(delete(user_flags).where(user_flags.c.user_id == user_id, user_flags.c.flag_id == flag_id)),
        "flag removal",
    )
    await bounded(db.commit(), "flag removal")
    if result.rowcount == 0:
        return error_response(status.HTTP_404_NOT_FOUND, "Flag assignment not found.")
    return envelope(None, "Flag removed.")
