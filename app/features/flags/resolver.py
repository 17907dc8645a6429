"""
FeatureFlagResolver: per-user feature flags.

Flag rules are evaluated by an external capability, any async callable
`evaluator(user_id) -> sequence of {"name": str, "enabled": bool}`. Flags are
additive and never gate security on their own, so resolution fails open: an
evaluation error, a timeout or an unknown user yields an empty result.
"""
from dataclasses import dataclass
from typing import Awaitable, Callable, Mapping, Optional, Sequence

from sqlalchemy import select, exists, and_
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.store import bounded
from app.features.flags.models import FeatureFlag, user_flags
from app.features.users.models import Profile
from app.utils import get_logger


log = get_logger(__name__)

FlagEvaluator = Callable[[str], Awaitable[Sequence[Mapping]]]


@dataclass(frozen=True)
class FlagState:
    name: str
    enabled: bool


class SqlFlagEvaluator:
    """Default evaluator: every flag by name, enabled when assigned to the user."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def __call__(self, user_id: str) -> list[dict]:
        known = await self.db.execute(select(Profile.id).where(Profile.id == user_id))
        if known.scalar_one_or_none() is None:
            return []

        assigned = exists().where(
            and_(user_flags.c.flag_id == FeatureFlag.id, user_flags.c.user_id == user_id)
        )
        result = await self.db.execute(
            select(FeatureFlag.name, assigned.label("enabled")).order_by(FeatureFlag.name)
        )
        return [{"name": row.name, "enabled": bool(row.enabled)} for row in result.all()]


class FeatureFlagResolver:
    def __init__(self, evaluator: FlagEvaluator, timeout: Optional[float] = None):
        self.evaluator = evaluator
        self.timeout = timeout

    async def flags_for(self, user_id: Optional[str]) -> list[FlagState]:
        """Flags in evaluator order; empty on any failure."""
        if not user_id:
            return []
        try:
            rows = await bounded(self.evaluator(user_id), "flag evaluation", self.timeout)
            return [FlagState(name=str(row["name"]), enabled=row["enabled"] is True) for row in rows or []]
        except Exception as e:
            log.warning(f"Flag evaluation failed for user {user_id}: {e!r}")
            return []

    async def has_flag(self, user_id: Optional[str], name: Optional[str]) -> bool:
        if not user_id or not name:
            return False
        return any(flag.name == name and flag.enabled for flag in await self.flags_for(user_id))
