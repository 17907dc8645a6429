"""
SeatCapacityManager: seat allocation against contracted seat packages.

The organization's `is_frozen` flag is a derived value,

    frozen = seat_count(org) > effective_limit(org, now)

and `recompute_frozen` is the only code that writes it. It runs after every
seat removal, after every package change, after seat creation (by the caller)
and from the periodic sweep, which is what catches packages expiring without
any accompanying mutation. Between trigger points the flag may be stale; the
next recompute converges it.

Seat creation is never refused for capacity reasons. Going over the limit
freezes the organization instead.
"""
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional, Union

import pydantic
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.base import generate_uuid
from app.core.database.store import bounded
from app.core.errors import ValidationError
from app.features.organizations.models import Organization
from app.features.seats.models import AuditLog, Seat, SeatPackage, SeatPackageStatus
from app.features.seats.schemas import SeatCreate, SeatPackageCreate, SeatPackageUpdate
from app.utils import get_logger


log = get_logger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes for timezone-aware columns
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def package_contributes(package: SeatPackage, now: datetime) -> bool:
    if package.status != SeatPackageStatus.ACTIVE:
        return False
    starts_at = as_utc(package.starts_at)
    ends_at = as_utc(package.ends_at)
    if starts_at is not None and now < starts_at:
        return False
    if ends_at is not None and now >= ends_at:
        return False
    return True


def _validation_error(exc: pydantic.ValidationError) -> ValidationError:
    first = exc.errors()[0]
    field = str(first["loc"][-1]) if first.get("loc") else None
    return ValidationError(f"{field}: {first['msg']}" if field else first["msg"], field=field)


class SeatCapacityManager:
    def __init__(self, db: AsyncSession, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    def _now(self, now: Optional[datetime]) -> datetime:
        return as_utc(now) if now is not None else self.clock()

    async def _organization_exists(self, organization_id: str) -> bool:
        result = await bounded(
            self.db.execute(select(Organization.id).where(Organization.id == organization_id)),
            "organization lookup",
        )
        return result.scalar_one_or_none() is not None

    async def list_packages(self, organization_id: str) -> list[SeatPackage]:
        result = await bounded(
            self.db.execute(
                select(SeatPackage)
                .where(SeatPackage.organization_id == organization_id)
                .order_by(SeatPackage.created_at.desc(), SeatPackage.id)
            ),
            "seat package listing",
        )
        return list(result.scalars().all())

    async def list_seats(self, organization_id: str) -> list[Seat]:
        result = await bounded(
            self.db.execute(
                select(Seat)
                .where(Seat.organization_id == organization_id)
                .order_by(Seat.created_at, Seat.id)
            ),
            "seat listing",
        )
        return list(result.scalars().all())

    async def effective_limit(self, organization_id: str, now: Optional[datetime] = None) -> int:
        """Sum of seat limits over active packages whose window contains `now`."""
        moment = self._now(now)
        packages = await self.list_packages(organization_id)
        return sum(p.seat_limit for p in packages if package_contributes(p, moment))

    async def seat_count(self, organization_id: str) -> int:
        result = await bounded(
            self.db.execute(
                select(func.count(Seat.id)).where(Seat.organization_id == organization_id)
            ),
            "seat count",
        )
        return int(result.scalar_one())

    async def is_frozen(self, organization_id: str) -> bool:
        """The stored flag as of the last recompute. Unknown organizations are not frozen."""
        result = await bounded(
            self.db.execute(select(Organization.is_frozen).where(Organization.id == organization_id)),
            "freeze flag lookup",
        )
        return bool(result.scalar_one_or_none())

    async def recompute_frozen(
        self,
        organization_id: str,
        now: Optional[datetime] = None,
        actor_id: Optional[str] = None,
    ) -> bool:
        """
        Recompute and persist the freeze flag, returning the new value.

        Idempotent: with no intervening mutation a second call computes the
        same value and writes nothing.
        """
        organization = await bounded(self.db.get(Organization, organization_id), "organization lookup")
        if organization is None:
            log.warning(f"Recompute requested for unknown organization {organization_id}")
            return False

        usage = await self.seat_count(organization_id)
        limit = await self.effective_limit(organization_id, now)
        frozen = usage > limit

        if organization.is_frozen != frozen:
            organization.is_frozen = frozen
            self.db.add(AuditLog(
                user_id=actor_id,
                action="freeze" if frozen else "unfreeze",
                resource_type="organization",
                resource_id=organization_id,
                organization_id=organization_id,
                details={"seat_count": usage, "effective_limit": limit},
            ))
            await bounded(self.db.commit(), "freeze flag update")
            log.info(
                f"Organization {organization_id} {'frozen' if frozen else 'unfrozen'}: "
                f"{usage} seats, limit {limit}"
            )
        else:
            log.debug(f"Organization {organization_id} unchanged (frozen={frozen}, {usage}/{limit})")
        return frozen

    async def create_seat(
        self,
        organization_id: str,
        occupant: Union[SeatCreate, Mapping[str, Any]],
        actor_id: Optional[str] = None,
    ) -> Seat:
        """
        Create a seat regardless of remaining capacity.

        The caller must run `recompute_frozen` afterwards.

        Raises:
            ValidationError: occupant data is malformed
        """
        if not isinstance(occupant, SeatCreate):
            try:
                occupant = SeatCreate.model_validate(occupant)
            except pydantic.ValidationError as e:
                raise _validation_error(e)

        seat = Seat(id=generate_uuid(), organization_id=organization_id, **occupant.model_dump())
        self.db.add(seat)
        self.db.add(AuditLog(
            user_id=actor_id,
            action="create",
            resource_type="seat",
            resource_id=seat.id,
            organization_id=organization_id,
        ))
        await bounded(self.db.commit(), "seat creation")
        await bounded(self.db.refresh(seat), "seat refresh")
        log.info(f"Seat {seat.id} created in organization {organization_id}")
        return seat

    async def remove_seat(
        self,
        organization_id: str,
        seat_id: str,
        actor_id: Optional[str] = None,
    ) -> Optional[bool]:
        """
        Delete a seat and recompute the freeze flag.

        Returns the new frozen value, or None if the seat does not exist in
        this organization.
        """
        result = await bounded(
            self.db.execute(
                select(Seat).where(Seat.id == seat_id, Seat.organization_id == organization_id)
            ),
            "seat lookup",
        )
        seat = result.scalar_one_or_none()
        if seat is None:
            return None

        await bounded(self.db.delete(seat), "seat removal")
        self.db.add(AuditLog(
            user_id=actor_id,
            action="delete",
            resource_type="seat",
            resource_id=seat_id,
            organization_id=organization_id,
        ))
        await bounded(self.db.commit(), "seat removal")
        log.info(f"Seat {seat_id} removed from organization {organization_id}")
        return await self.recompute_frozen(organization_id, actor_id=actor_id)

    async def add_package(
        self,
        organization_id: str,
        data: SeatPackageCreate,
        actor_id: Optional[str] = None,
    ) -> Optional[SeatPackage]:
        """Record a new package and recompute. None if the organization does not exist."""
        if not await self._organization_exists(organization_id):
            return None
        package = SeatPackage(organization_id=organization_id, **data.model_dump())
        self.db.add(package)
        await bounded(self.db.commit(), "seat package creation")
        await bounded(self.db.refresh(package), "seat package refresh")
        await self.recompute_frozen(organization_id, actor_id=actor_id)
        return package

    async def update_package(
        self,
        organization_id: str,
        package_id: str,
        changes: SeatPackageUpdate,
        actor_id: Optional[str] = None,
    ) -> Optional[SeatPackage]:
        """Apply a status/limit/window change and recompute. None if not found."""
        result = await bounded(
            self.db.execute(
                select(SeatPackage).where(
                    SeatPackage.id == package_id,
                    SeatPackage.organization_id == organization_id,
                )
            ),
            "seat package lookup",
        )
        package = result.scalar_one_or_none()
        if package is None:
            return None

        for field, value in changes.model_dump(exclude_unset=True).items():
            # An explicit null only makes sense for ends_at (unbounded)
            if value is None and field != "ends_at":
                continue
            setattr(package, field, value)
        await bounded(self.db.commit(), "seat package update")
        await bounded(self.db.refresh(package), "seat package refresh")
        await self.recompute_frozen(organization_id, actor_id=actor_id)
        return package
