import pytest

from app.core import config
from app.features.permissions.evaluator import (
    PERMISSION_RULES,
    Membership,
    can,
    canonical,
    frozen_blocks,
    granted_permissions,
    is_mutating,
)


ADMIN = Membership.for_role("admin")
RESIDENT = Membership.for_role("resident")
SECURITY = Membership.for_role("security")


@pytest.mark.parametrize("permission", sorted(PERMISSION_RULES) + ["launch_rockets", ""])
def test_admin_is_granted_everything(permission):
    assert can(permission, ADMIN)


@pytest.mark.parametrize("permission", sorted(PERMISSION_RULES) + ["launch_rockets"])
def test_no_membership_is_never_granted(permission):
    assert not can(permission, None)


@pytest.mark.parametrize(
    "permission, resident, security",
    [
        ("manage_members", False, False),
        ("manage_invitations", False, False),
        ("manage_chat_permissions", False, False),
        ("edit_organization", False, False),
        ("manage_seats", False, False),
        ("release_seats", False, False),
        ("view_pending", False, True),
        ("view_history", False, True),
        ("validate_access", False, True),
        ("view_members", True, True),
        ("access_chat", True, True),
        ("create_invites", True, False),
        ("view_organization", True, True),
        ("launch_rockets", False, False),
    ],
)
def test_role_table(permission, resident, security):
    assert can(permission, RESIDENT) is resident
    assert can(permission, SECURITY) is security


def test_unknown_role_gets_nothing():
    assert granted_permissions(Membership.for_role("gardener")) == []


def test_stored_role_alias():
    membership = Membership.for_role("security_personnel")
    assert membership.role == "security"
    assert not membership.is_admin
    assert can("validate_access", membership)


@pytest.mark.parametrize(
    "alias, name",
    [
        ("members:manage", "manage_members"),
        ("org:update", "edit_organization"),
        ("qr:validate", "view_pending"),
        ("chat:read", "access_chat"),
        ("invites:create", "create_invites"),
    ],
)
def test_permission_aliases(alias, name):
    assert canonical(alias) == name
    assert can(alias, RESIDENT) is can(name, RESIDENT)
    assert can(alias, SECURITY) is can(name, SECURITY)


def test_mutating_permissions():
    assert is_mutating("manage_seats")
    assert is_mutating("invites:create")
    assert not is_mutating("view_members")
    assert not is_mutating("launch_rockets")


def test_granted_permissions_for_resident():
    assert granted_permissions(RESIDENT) == [
        "access_chat", "create_invites", "view_members", "view_organization",
    ]
    assert granted_permissions(None) == []


def test_frozen_blocks_nothing_when_not_frozen():
    assert not frozen_blocks("manage_seats", ADMIN, False)
    assert not frozen_blocks("create_invites", RESIDENT, False)


def test_frozen_blocks_mutations_for_everyone():
    assert frozen_blocks("create_invites", RESIDENT, True)
    assert frozen_blocks("manage_seats", ADMIN, True)
    assert frozen_blocks("manage_members", ADMIN, True)
    assert not frozen_blocks("view_members", RESIDENT, True)
    assert not frozen_blocks("access_chat", SECURITY, True)


def test_frozen_admin_keeps_remedies():
    assert not frozen_blocks("edit_organization", ADMIN, True)
    assert not frozen_blocks("release_seats", ADMIN, True)
    assert not frozen_blocks("org:update", ADMIN, True)


def test_frozen_only_gates_seat_affecting_when_configured(monkeypatch):
    monkeypatch.setattr(config, "FROZEN_BLOCKS_ALL_MUTATIONS", False)
    assert frozen_blocks("create_invites", RESIDENT, True)
    assert frozen_blocks("manage_seats", ADMIN, True)
    assert not frozen_blocks("manage_chat_permissions", ADMIN, True)
