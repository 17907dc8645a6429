"""
Client-side organization context.

OrganizationClient talks to the API over httpx. OrganizationContextCache keeps
the last snapshot fetched per organization so UI code can gate controls
synchronously with the same permission table the server uses. The cache is a
convenience, never a security boundary: every privileged action is checked
again by the server.
"""
from typing import Awaitable, Callable, Dict, Optional

import httpx

from app.core.validation import is_valid_uuid
from app.features.organizations.schemas import OrganizationSnapshot
from app.features.permissions.evaluator import Membership, can
from app.utils import get_logger


log = get_logger(__name__)

SnapshotFetcher = Callable[[str], Awaitable[Optional[OrganizationSnapshot]]]


class OrganizationClient:
    def __init__(self, http: httpx.AsyncClient, token: Optional[str] = None):
        self.http = http
        self.headers = {"Authorization": f"Bearer {token}"} if token else {}

    async def _snapshot(self, method: str, url: str, **kwargs) -> Optional[OrganizationSnapshot]:
        try:
            response = await self.http.request(method, url, headers=self.headers, **kwargs)
        except httpx.HTTPError as e:
            log.warning(f"{method} {url} failed: {e!r}")
            return None
        body = response.json() if response.headers.get("content-type", "").startswith("application/json") else {}
        if response.is_error or body.get("error", True):
            log.debug(f"{method} {url} -> {response.status_code}")
            return None
        return OrganizationSnapshot.model_validate(body["data"])

    async def fetch(self, organization_id: str) -> Optional[OrganizationSnapshot]:
        return await self._snapshot("GET", f"/organizations/{organization_id}")

    async def rename(self, organization_id: str, name: str) -> Optional[OrganizationSnapshot]:
        return await self._snapshot("PATCH", f"/organizations/{organization_id}", json={"name": name})


class OrganizationContextCache:
    def __init__(self, fetcher: SnapshotFetcher):
        self.fetcher = fetcher
        self._snapshots: Dict[str, OrganizationSnapshot] = {}

    async def get(self, organization_id: str) -> Optional[OrganizationSnapshot]:
        """Cached snapshot, fetching on a miss. None for invalid ids and failed fetches."""
        if not is_valid_uuid(organization_id):
            return None
        snapshot = self._snapshots.get(organization_id)
        if snapshot is None:
            snapshot = await self.fetcher(organization_id)
            if snapshot is not None:
                self._snapshots[organization_id] = snapshot
        return snapshot

    async def refetch(self, organization_id: str) -> Optional[OrganizationSnapshot]:
        self.invalidate(organization_id)
        return await self.get(organization_id)

    def update(self, snapshot: OrganizationSnapshot) -> None:
        self._snapshots[snapshot.id] = snapshot

    def invalidate(self, organization_id: str) -> None:
        """Drop one entry; call after any mutation affecting the organization."""
        self._snapshots.pop(organization_id, None)

    def clear_cache(self) -> None:
        """Drop everything, e.g. on sign-out."""
        self._snapshots.clear()

    def peek(self, organization_id: str) -> Optional[OrganizationSnapshot]:
        return self._snapshots.get(organization_id)

    def can(self, organization_id: str, permission: str) -> bool:
        """Synchronous UI-level check against the cached membership."""
        snapshot = self._snapshots.get(organization_id)
        if snapshot is None or snapshot.user_role is None:
            return False
        return can(permission, Membership(role=snapshot.user_role, is_admin=snapshot.is_admin))

    def is_frozen(self, organization_id: str) -> bool:
        snapshot = self._snapshots.get(organization_id)
        return bool(snapshot and snapshot.is_frozen)
