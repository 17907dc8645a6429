"""
Pydantic schemas for organization-related requests and responses.
"""
from pydantic import BaseModel, Field, field_validator


class OrganizationTypeResponse(BaseModel):
    id: int
    name: str
    description: str | None = None

    model_config = {"from_attributes": True}


class OrganizationRoleResponse(BaseModel):
    id: int
    name: str
    description: str | None = None

    model_config = {"from_attributes": True}


class OrganizationSnapshot(BaseModel):
    """
    An organization as seen by one member: the membership surface used for
    UI gating. Not authoritative; privileged actions are re-checked server-side.
    """
    id: str
    name: str
    organization_type: str
    is_frozen: bool
    user_role: str | None = None
    is_admin: bool = False
    permissions: list[str] = Field(default_factory=list)


class OrganizationUpdate(BaseModel):
    name: str = Field(..., description="New organization name, 2 to 100 characters")

    @field_validator("name")
    @classmethod
    def name_length(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError("The organization name must have at least 2 characters.")
        if len(value) > 100:
            raise ValueError("The organization name cannot exceed 100 characters.")
        return value
