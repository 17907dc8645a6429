from app.core import config
from app.core.database.base import generate_uuid
from app.core.errors import UpstreamUnavailable
from app.features.access.guard import AuthState, RouteAccessGuard, login_redirect, normalize_route
from app.features.seats.manager import SeatCapacityManager
from app.features.users.store import IdentityStore


def make_guard(db):
    return RouteAccessGuard(IdentityStore(db), SeatCapacityManager(db))


class CountingIdentity:
    def __init__(self, inner):
        self.inner = inner
        self.calls = 0

    async def get_membership(self, user_id, organization_id):
        self.calls += 1
        return await self.inner.get_membership(user_id, organization_id)


class BrokenIdentity:
    async def get_membership(self, user_id, organization_id):
        raise UpstreamUnavailable()


def test_normalize_route():
    assert normalize_route(None) == "/"
    assert normalize_route("chat") == "/chat"
    assert normalize_route("/chat/") == "/chat"
    assert normalize_route("/") == "/"


async def test_anonymous_goes_to_login(db):
    verdict = await make_guard(db).authorize(None, generate_uuid(), "/chat")

    assert verdict.state == AuthState.DENIED_REDIRECT
    assert verdict.redirect_to == "/login?next=%2Fchat"
    assert verdict.redirect_to == login_redirect("/chat")
    assert verdict.reason == "not_authenticated"


async def test_resident_allowed_on_chat(db, factory):
    user = await factory.profile()
    org = await factory.organization()
    await factory.member(user, org, "resident")

    verdict = await make_guard(db).authorize(user.id, org.id, "/chat")

    assert verdict.allowed
    assert verdict.permission == "access_chat"
    assert verdict.membership.role == "resident"


async def test_non_member_and_forbidden_look_the_same(db, factory):
    outsider = await factory.profile()
    resident = await factory.profile()
    org = await factory.organization()
    await factory.member(resident, org, "resident")
    guard = make_guard(db)

    not_member = await guard.authorize(outsider.id, org.id, "/chat")
    forbidden = await guard.authorize(resident.id, org.id, "/validate")
    missing_org = await guard.authorize(outsider.id, generate_uuid(), "/chat")

    for verdict in (not_member, forbidden, missing_org):
        assert verdict.state == AuthState.DENIED_REDIRECT
        assert verdict.redirect_to == config.DENIED_PATH
        assert verdict.membership is None
        assert verdict.permission is None
    assert not_member.reason == "not_a_member"
    assert forbidden.reason == "forbidden"


async def test_unknown_route_is_denied(db, factory):
    user = await factory.profile()
    org = await factory.organization()
    await factory.member(user, org, "admin")

    verdict = await make_guard(db).authorize(user.id, org.id, "/secret")

    assert verdict.redirect_to == config.DENIED_PATH


async def test_invalid_organization_id(db, factory):
    user = await factory.profile()

    verdict = await make_guard(db).authorize(user.id, "not-a-uuid", "/chat")

    assert verdict.redirect_to == config.DENIED_PATH
    assert verdict.reason == "invalid_identifier"


async def test_frozen_blocks_mutating_route(db, factory):
    resident = await factory.profile()
    admin = await factory.profile()
    org = await factory.organization(is_frozen=True)
    await factory.member(resident, org, "resident")
    await factory.member(admin, org, "admin")
    guard = make_guard(db)

    invites = await guard.authorize(resident.id, org.id, "/invites")
    seats = await guard.authorize(admin.id, org.id, "/seats")
    billing = await guard.authorize(admin.id, org.id, "/billing")
    chat = await guard.authorize(resident.id, org.id, "/chat")

    assert invites.redirect_to == f"/organizations/{org.id}"
    assert invites.reason == "frozen"
    assert seats.redirect_to == f"/organizations/{org.id}"
    assert billing.allowed
    assert chat.allowed


async def test_verdicts_are_cached_per_guard(db, factory):
    user = await factory.profile()
    org = await factory.organization()
    await factory.member(user, org, "security")
    identity = CountingIdentity(IdentityStore(db))
    guard = RouteAccessGuard(identity, SeatCapacityManager(db))

    first = await guard.authorize(user.id, org.id, "/validate")
    second = await guard.authorize(user.id, org.id, "/validate/")

    assert first is second
    assert identity.calls == 1

    await guard.authorize(user.id, org.id, "/history")
    assert identity.calls == 2


async def test_store_failure_denies(db):
    guard = RouteAccessGuard(BrokenIdentity(), SeatCapacityManager(db))

    verdict = await guard.authorize(generate_uuid(), generate_uuid(), "/chat")

    assert verdict.state == AuthState.DENIED_REDIRECT
    assert verdict.redirect_to == config.DENIED_PATH
    assert verdict.reason == "unavailable"


async def test_development_exposes_reason(db, factory, monkeypatch):
    monkeypatch.setattr(config, "IS_DEVELOPMENT", True)
    user = await factory.profile()

    verdict = await make_guard(db).authorize(user.id, generate_uuid(), "/chat")

    assert verdict.redirect_to == f"{config.DENIED_PATH}?reason=not_a_member"


async def test_development_reason_appends_to_login(db, monkeypatch):
    monkeypatch.setattr(config, "IS_DEVELOPMENT", True)

    verdict = await make_guard(db).authorize(None, generate_uuid(), "/chat")

    assert verdict.redirect_to == "/login?next=%2Fchat&reason=not_authenticated"
