"""
Periodic freeze sweep.

Package expiry is a time-based boundary crossing that no seat mutation
observes, so every organization's freeze flag is recomputed on a timer.
A pass walks organizations in id order, one short session per batch, and can
be resumed from any cursor. Running it twice yields the same flags.
"""
import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.errors import UpstreamUnavailable
from app.core.database.store import bounded
from app.features.organizations.models import Organization
from app.features.seats.manager import SeatCapacityManager
from app.utils import get_logger


log = get_logger(__name__)


@dataclass
class SweepResult:
    checked: int = 0
    frozen: int = 0
    changed: int = 0
    # Last organization id fully processed; pass it as `after` to resume
    cursor: Optional[str] = None
    completed: bool = False


async def _next_batch(db: AsyncSession, after: Optional[str], batch_size: int) -> list[tuple[str, bool]]:
    stmt = select(Organization.id, Organization.is_frozen).order_by(Organization.id).limit(batch_size)
    if after is not None:
        stmt = stmt.where(Organization.id > after)
    result = await bounded(db.execute(stmt), "sweep batch")
    return [(row.id, bool(row.is_frozen)) for row in result.all()]


async def sweep_frozen_flags(
    session_factory: async_sessionmaker,
    now: Optional[datetime] = None,
    after: Optional[str] = None,
    batch_size: int = 100,
) -> SweepResult:
    """Recompute the freeze flag of every organization with id > `after`."""
    result = SweepResult(cursor=after)
    while True:
        async with session_factory() as db:
            try:
                batch = await _next_batch(db, result.cursor, batch_size)
                if not batch:
                    result.completed = True
                    break
                manager = SeatCapacityManager(db)
                for organization_id, was_frozen in batch:
                    frozen = await manager.recompute_frozen(organization_id, now=now)
                    result.checked += 1
                    result.frozen += int(frozen)
                    result.changed += int(frozen != was_frozen)
                    result.cursor = organization_id
            except UpstreamUnavailable:
                log.warning(f"Freeze sweep interrupted after {result.cursor}; resume from there")
                break

    log.info(
        f"Freeze sweep: {result.checked} checked, {result.changed} changed, "
        f"{result.frozen} frozen, completed={result.completed}"
    )
    return result


async def run_periodic_sweep(session_factory: async_sessionmaker, interval: float) -> None:
    """Run sweeps forever; cancel the task to stop."""
    log.info(f"Starting freeze sweep every {interval:.0f}s")
    cursor: Optional[str] = None
    while True:
        try:
            result = await sweep_frozen_flags(session_factory, after=cursor)
            # An interrupted pass resumes where it stopped on the next tick
            cursor = None if result.completed else result.cursor
        except asyncio.CancelledError:
            raise
        except Exception:
            log.exception("Freeze sweep failed")
        await asyncio.sleep(interval)
