"""
Pydantic schemas for profile responses.
"""
from datetime import datetime
from pydantic import BaseModel, EmailStr


class ProfileResponse(BaseModel):
    """The caller's own profile."""
    id: str
    email: EmailStr
    full_name: str | None = None
    app_role: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}
