"""
Pydantic schemas for seat and seat package requests and responses.
"""
from datetime import datetime, timezone
from pydantic import BaseModel, Field, field_validator, model_validator

from app.core.validation import is_valid_uuid
from app.features.seats.models import SeatPackageStatus


class SeatCreate(BaseModel):
    """Occupant data for a new seat."""
    occupant_id: str = Field(..., description="Profile ID of the seat occupant (UUID)")
    name: str | None = Field(None, min_length=1, max_length=100)

    model_config = {"extra": "forbid"}

    @field_validator("occupant_id")
    @classmethod
    def occupant_must_be_uuid(cls, value: str) -> str:
        if not is_valid_uuid(value):
            raise ValueError("occupant_id must be a valid UUID")
        return value.strip()


class SeatResponse(BaseModel):
    id: str
    organization_id: str
    occupant_id: str
    name: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class SeatListResponse(BaseModel):
    seats: list[SeatResponse]
    total_limit: int
    current_usage: int
    is_frozen: bool


def to_utc(value: datetime | None) -> datetime | None:
    """Normalize a window bound to UTC. Values without an offset are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SeatPackageCreate(BaseModel):
    seat_limit: int = Field(..., ge=0)
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    status: SeatPackageStatus = SeatPackageStatus.ACTIVE

    @field_validator("starts_at", "ends_at")
    @classmethod
    def window_in_utc(cls, value: datetime | None) -> datetime | None:
        # The store keeps wall-clock time without an offset
        return to_utc(value)

    @model_validator(mode="after")
    def window_must_be_ordered(self):
        if self.starts_at and self.ends_at and self.ends_at <= self.starts_at:
            raise ValueError("ends_at must be after starts_at")
        return self


class SeatPackageUpdate(BaseModel):
    """Effect of a payment event: renewal, expiry, cancellation or resize."""
    seat_limit: int | None = Field(None, ge=0)
    ends_at: datetime | None = None
    status: SeatPackageStatus | None = None

    @field_validator("ends_at")
    @classmethod
    def ends_at_in_utc(cls, value: datetime | None) -> datetime | None:
        return to_utc(value)


class SeatPackageResponse(BaseModel):
    id: str
    organization_id: str
    seat_limit: int
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    status: SeatPackageStatus
    created_at: datetime

    model_config = {"from_attributes": True}


class SeatPackageSummary(BaseModel):
    packages: list[SeatPackageResponse]
    total_limit: int
    current_usage: int
    is_frozen: bool
