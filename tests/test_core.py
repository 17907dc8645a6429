import asyncio

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from app.core import config
from app.core.database.store import bounded
from app.core.errors import GENERIC_DENIAL_MESSAGE, NotAMember, PermissionDenied, UpstreamUnavailable, ValidationError
from app.core.validation import is_valid_uuid, validate_uuid
from app.features.users.auth import user_id_from_payload


async def test_bounded_returns_result():
    async def answer():
        return 42

    assert await bounded(answer()) == 42


async def test_bounded_timeout_is_upstream_unavailable():
    with pytest.raises(UpstreamUnavailable):
        await bounded(asyncio.sleep(1), "slow call", timeout=0.01)


async def test_bounded_driver_error_is_upstream_unavailable():
    async def broken():
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    with pytest.raises(UpstreamUnavailable):
        await bounded(broken())


async def test_bounded_passes_constraint_violations_through():
    async def duplicate():
        raise IntegrityError("INSERT INTO feature_flags", {}, Exception("UNIQUE constraint failed"))

    with pytest.raises(IntegrityError):
        await bounded(duplicate(), "flag creation")


@pytest.mark.parametrize(
    "value, valid",
    [
        ("123e4567-e89b-12d3-a456-426614174000", True),
        ("  123E4567-E89B-12D3-A456-426614174000 ", True),
        ("123e4567e89b12d3a456426614174000", False),
        ("not-a-uuid", False),
        ("", False),
        (None, False),
        (12345, False),
    ],
)
def test_is_valid_uuid(value, valid):
    assert is_valid_uuid(value) is valid


def test_validate_uuid_is_field_scoped():
    assert validate_uuid(" 123e4567-e89b-12d3-a456-426614174000 ") == "123e4567-e89b-12d3-a456-426614174000"
    with pytest.raises(ValidationError) as exc:
        validate_uuid("abc", "seat")
    assert exc.value.field == "seat"
    assert exc.value.status_code == 400
    with pytest.raises(ValidationError):
        validate_uuid(None, "seat")


def test_membership_denials_are_generic_outside_development(monkeypatch):
    monkeypatch.setattr(config, "IS_DEVELOPMENT", False)
    assert NotAMember().public_message == GENERIC_DENIAL_MESSAGE
    assert PermissionDenied().public_message == GENERIC_DENIAL_MESSAGE

    monkeypatch.setattr(config, "IS_DEVELOPMENT", True)
    assert NotAMember().public_message == NotAMember.default_message


def test_user_id_from_payload():
    user_id = "123e4567-e89b-12d3-a456-426614174000"
    assert user_id_from_payload({"sub": user_id}) == user_id
    assert user_id_from_payload({"userId": user_id}) == user_id
    assert user_id_from_payload({"sub": "alice"}) is None
    assert user_id_from_payload({}) is None
