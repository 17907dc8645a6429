"""
Pydantic schemas for feature flag requests and responses.
"""
from datetime import datetime
from pydantic import BaseModel, Field, field_validator

from app.core.validation import is_valid_uuid


class FlagStateResponse(BaseModel):
    name: str
    enabled: bool

    model_config = {"from_attributes": True}


class FeatureFlagCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=1000)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name is required")
        return value


class FeatureFlagResponse(BaseModel):
    id: str
    name: str
    description: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserFlagAssign(BaseModel):
    user_id: str
    flag_id: str

    @field_validator("user_id", "flag_id")
    @classmethod
    def must_be_uuid(cls, value: str) -> str:
        if not is_valid_uuid(value):
            raise ValueError("must be a valid UUID")
        return value.strip()
