"""
Organization-related dependency injection functions.
"""
from app.core.validation import validate_uuid


async def get_organization_id(organization_id: str) -> str:
    """
    Validate the organization path parameter.

    Raises:
        ValidationError: 400 if the ID is not a UUID
    """
    return validate_uuid(organization_id, "organization")
