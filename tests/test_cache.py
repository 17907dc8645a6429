import httpx

from app.core.database.base import generate_uuid
from app.features.organizations.cache import OrganizationClient, OrganizationContextCache
from app.features.organizations.schemas import OrganizationSnapshot


def snapshot(org_id, role="resident", is_frozen=False, name="Palm Grove"):
    return OrganizationSnapshot(
        id=org_id,
        name=name,
        organization_type="residential",
        is_frozen=is_frozen,
        user_role=role,
        is_admin=role == "admin",
    )


class FakeFetcher:
    def __init__(self, snapshots):
        self.snapshots = snapshots
        self.calls = []

    async def __call__(self, org_id):
        self.calls.append(org_id)
        return self.snapshots.get(org_id)


async def test_get_caches_successful_fetches():
    org_id = generate_uuid()
    fetcher = FakeFetcher({org_id: snapshot(org_id)})
    cache = OrganizationContextCache(fetcher)

    assert (await cache.get(org_id)).name == "Palm Grove"
    assert (await cache.get(org_id)).name == "Palm Grove"
    assert fetcher.calls == [org_id]


async def test_failed_fetch_is_not_cached():
    org_id = generate_uuid()
    fetcher = FakeFetcher({})
    cache = OrganizationContextCache(fetcher)

    assert await cache.get(org_id) is None
    assert await cache.get(org_id) is None
    assert fetcher.calls == [org_id, org_id]


async def test_invalid_id_never_fetches():
    fetcher = FakeFetcher({})
    cache = OrganizationContextCache(fetcher)

    assert await cache.get("12345") is None
    assert fetcher.calls == []


async def test_invalidate_and_refetch():
    org_id = generate_uuid()
    fetcher = FakeFetcher({org_id: snapshot(org_id)})
    cache = OrganizationContextCache(fetcher)
    await cache.get(org_id)

    fetcher.snapshots[org_id] = snapshot(org_id, is_frozen=True)
    assert cache.is_frozen(org_id) is False
    await cache.refetch(org_id)
    assert cache.is_frozen(org_id) is True

    cache.invalidate(org_id)
    assert cache.peek(org_id) is None

    await cache.get(org_id)
    cache.clear_cache()
    assert cache.peek(org_id) is None


async def test_can_uses_cached_membership():
    resident_org, admin_org, unknown_org = generate_uuid(), generate_uuid(), generate_uuid()
    cache = OrganizationContextCache(FakeFetcher({}))
    cache.update(snapshot(resident_org, role="resident"))
    cache.update(snapshot(admin_org, role="admin"))

    assert cache.can(resident_org, "create_invites") is True
    assert cache.can(resident_org, "manage_members") is False
    assert cache.can(admin_org, "manage_members") is True
    assert cache.can(unknown_org, "view_members") is False


async def test_client_fetch_and_rename(client, factory, auth_headers):
    admin = await factory.profile()
    org = await factory.organization(name="Palm Grove")
    await factory.member(admin, org, "admin")
    token = auth_headers(admin.id)["Authorization"].removeprefix("Bearer ")
    api = OrganizationClient(client, token=token)
    cache = OrganizationContextCache(api.fetch)

    fetched = await cache.get(org.id)
    assert fetched.is_admin is True
    assert cache.can(org.id, "edit_organization") is True

    renamed = await api.rename(org.id, "Palm Grove North")
    cache.update(renamed)
    assert cache.peek(org.id).name == "Palm Grove North"


async def test_client_returns_none_on_denial(client, factory, auth_headers):
    outsider = await factory.profile()
    org = await factory.organization()
    token = auth_headers(outsider.id)["Authorization"].removeprefix("Bearer ")

    assert await OrganizationClient(client, token=token).fetch(org.id) is None
    assert await OrganizationClient(client).fetch(org.id) is None


async def test_client_returns_none_on_transport_error():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(refuse), base_url="http://api") as http:
        assert await OrganizationClient(http, token="t").fetch(generate_uuid()) is None
