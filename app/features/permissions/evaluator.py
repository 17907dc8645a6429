"""
Organization permission table and evaluator.

`can(permission, membership)` is a pure, total function: unknown permission
names and absent memberships resolve to False, and an organization admin is
granted everything, unknown names included. The table below is the single
source of truth shared by the route guard, the API dependencies and the
client-side context cache.

Freezing is not part of `can`. Call sites that perform mutating
actions combine it with `frozen_blocks` (see app.features.permissions.dependencies).
"""
from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, Optional

from app.core import config


class OrgRole:
    ADMIN = "admin"
    RESIDENT = "resident"
    SECURITY = "security"

    ALL = frozenset({ADMIN, RESIDENT, SECURITY})


# Stored role names that are presented under another name
ROLE_ALIASES: Dict[str, str] = {
    "security_personnel": OrgRole.SECURITY,
}


def normalize_role(role_name: Optional[str]) -> Optional[str]:
    if role_name is None:
        return None
    return ROLE_ALIASES.get(role_name, role_name)


@dataclass(frozen=True)
class Membership:
    """
    A user's membership in one organization.

    `is_frozen` is a snapshot of the organization's freeze flag taken when the
    membership was resolved; it is informational and never consulted by `can`.
    """
    role: Optional[str]
    is_admin: bool = False
    user_id: Optional[str] = None
    organization_id: Optional[str] = None
    is_frozen: bool = False

    @classmethod
    def for_role(cls, role_name: Optional[str], **kwargs) -> "Membership":
        role = normalize_role(role_name)
        return cls(role=role, is_admin=role == OrgRole.ADMIN, **kwargs)


Rule = Callable[[Membership], bool]


def _roles(*allowed: str) -> Rule:
    allowed_set = frozenset(allowed)

    def rule(membership: Membership) -> bool:
        return membership.role in allowed_set

    return rule


def _nobody(_membership: Membership) -> bool:
    # Admin-only permissions: admins are granted before the table is consulted
    return False


PERMISSION_RULES: Dict[str, Rule] = {
    "manage_members": _nobody,
    "manage_invitations": _nobody,
    "manage_chat_permissions": _nobody,
    "edit_organization": _nobody,
    "manage_seats": _nobody,
    "release_seats": _nobody,
    "view_pending": _roles(OrgRole.SECURITY),
    "view_history": _roles(OrgRole.SECURITY),
    "validate_access": _roles(OrgRole.SECURITY),
    "view_members": _roles(OrgRole.RESIDENT, OrgRole.SECURITY),
    "access_chat": _roles(OrgRole.RESIDENT, OrgRole.SECURITY),
    "create_invites": _roles(OrgRole.RESIDENT),
    "view_organization": _roles(OrgRole.RESIDENT, OrgRole.SECURITY),
}

# Permission codes used by the API surface and stored role grants
PERMISSION_ALIASES: Dict[str, str] = {
    "members:manage": "manage_members",
    "invites:manage": "manage_invitations",
    "chat:manage": "manage_chat_permissions",
    "org:update": "edit_organization",
    "qr:validate": "view_pending",
    "qr:view_history": "view_history",
    "members:view": "view_members",
    "chat:read": "access_chat",
    "invites:create": "create_invites",
}

MUTATING_PERMISSIONS: FrozenSet[str] = frozenset({
    "manage_members",
    "manage_invitations",
    "manage_chat_permissions",
    "edit_organization",
    "create_invites",
    "manage_seats",
    "release_seats",
})

SEAT_AFFECTING_PERMISSIONS: FrozenSet[str] = frozenset({
    "manage_members",
    "manage_invitations",
    "create_invites",
    "manage_seats",
})

# Remedies an admin needs while frozen: billing and giving seats back
FROZEN_EXEMPT_PERMISSIONS: FrozenSet[str] = frozenset({
    "edit_organization",
    "release_seats",
})


def canonical(permission: str) -> str:
    return PERMISSION_ALIASES.get(permission, permission)


def can(permission: str, membership: Optional[Membership]) -> bool:
    if membership is None:
        return False
    if membership.is_admin:
        return True
    rule = PERMISSION_RULES.get(canonical(permission)) if isinstance(permission, str) else None
    if rule is None:
        return False
    return rule(membership)


def is_mutating(permission: str) -> bool:
    return canonical(permission) in MUTATING_PERMISSIONS


def frozen_blocks(permission: str, membership: Optional[Membership], is_frozen: bool) -> bool:
    """True when a frozen organization must refuse this permission for this member."""
    if not is_frozen:
        return False
    name = canonical(permission)
    if membership is not None and membership.is_admin and name in FROZEN_EXEMPT_PERMISSIONS:
        return False
    gated = MUTATING_PERMISSIONS if config.FROZEN_BLOCKS_ALL_MUTATIONS else SEAT_AFFECTING_PERMISSIONS
    return name in gated


def granted_permissions(membership: Optional[Membership]) -> list[str]:
    """All named permissions the membership holds, sorted, for UI gating."""
    return sorted(name for name in PERMISSION_RULES if can(name, membership))
