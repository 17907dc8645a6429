"""
Error taxonomy shared by the authorization core and the API surface.

Every error carries the HTTP status and message used when it reaches the API
boundary. At the route guard boundary the same errors become redirect
decisions instead (see app.features.access.guard).
"""
from typing import Optional

from app.core import config


GENERIC_DENIAL_MESSAGE = "You do not have access to this resource."


class AccessError(Exception):
    """Base class for every error the core raises on purpose."""

    status_code: int = 500
    default_message: str = "Unexpected error."

    def __init__(self, message: Optional[str] = None, field: Optional[str] = None):
        self.message = message or self.default_message
        self.field = field
        super().__init__(self.message)

    @property
    def public_message(self) -> str:
        return self.message


class NotAuthenticated(AccessError):
    status_code = 401
    default_message = "You are not authenticated. Please sign in."


class _MembershipRevealing(AccessError):
    """Denials that would reveal membership if rendered verbatim."""

    status_code = 403

    @property
    def public_message(self) -> str:
        if config.IS_DEVELOPMENT:
            return self.message
        return GENERIC_DENIAL_MESSAGE


class NotAMember(_MembershipRevealing):
    default_message = "You are not a member of this organization."


class PermissionDenied(_MembershipRevealing):
    default_message = "You do not have permission to perform this action."


class OrganizationFrozen(AccessError):
    status_code = 403
    default_message = "The organization has exceeded its seat limit. This action is blocked until it is resolved."


class ValidationError(AccessError):
    status_code = 400
    default_message = "Invalid input."


class UpstreamUnavailable(AccessError):
    status_code = 500
    default_message = "The data store is unavailable. Please try again later."
