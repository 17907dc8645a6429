"""
Identifier validation for values crossing the API boundary.
"""
import re
from typing import Any

from app.core.errors import ValidationError

UUID_V4_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def is_valid_uuid(value: Any) -> bool:
    if not value or not isinstance(value, str):
        return False
    return UUID_V4_PATTERN.match(value.strip()) is not None


def validate_uuid(value: Any, field_name: str = "resource") -> str:
    """
    Return the trimmed identifier or raise a field-scoped ValidationError.

    Example:
        validate_uuid(organization_id, "organization")
    """
    if not value or not isinstance(value, str):
        raise ValidationError(
            f"Invalid {field_name} ID. The ID cannot be empty.",
            field=field_name,
        )
    if not is_valid_uuid(value):
        raise ValidationError(
            f"Invalid {field_name} ID. The ID format is not valid "
            "(example: 123e4567-e89b-12d3-a456-426614174000).",
            field=field_name,
        )
    return value.strip()
