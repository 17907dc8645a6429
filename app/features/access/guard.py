"""
RouteAccessGuard: server-side authorization of a (user, organization, route)
triple.

A single attempt moves through

    START -> IDENTIFIED -> MEMBERSHIP_RESOLVED -> ALLOWED | DENIED_REDIRECT

and any step may jump straight to DENIED_REDIRECT. Every denial, including a
store failure, becomes a redirect decision; nothing is raised to the caller.
Non-member and forbidden denials share one destination so a response never
tells an outsider whether the organization exists.

A guard instance caches its verdicts, so nested layouts of one request can
ask repeatedly without querying the store again. Create one guard per request.
"""
import enum
from dataclasses import dataclass
from typing import Dict, Optional, Tuple
from urllib.parse import urlencode

from app.core import config
from app.core.errors import (
    AccessError,
    NotAMember,
    NotAuthenticated,
    OrganizationFrozen,
    PermissionDenied,
    UpstreamUnavailable,
    ValidationError,
)
from app.core.validation import is_valid_uuid
from app.features.permissions.evaluator import Membership, can, frozen_blocks
from app.features.seats.manager import SeatCapacityManager
from app.features.users.store import IdentityStore
from app.utils import get_logger


log = get_logger(__name__)


class AuthState(str, enum.Enum):
    START = "start"
    IDENTIFIED = "identified"
    MEMBERSHIP_RESOLVED = "membership_resolved"
    ALLOWED = "allowed"
    DENIED_REDIRECT = "denied_redirect"


@dataclass(frozen=True)
class RouteRule:
    permission: str
    mutating: bool = False


# Organization page routes, relative to /organizations/{id}
ROUTE_PERMISSIONS: Dict[str, RouteRule] = {
    "/": RouteRule("view_organization"),
    "/members": RouteRule("view_members"),
    "/invitations": RouteRule("manage_invitations", mutating=True),
    "/chat-permissions": RouteRule("manage_chat_permissions", mutating=True),
    "/chat": RouteRule("access_chat"),
    "/invites": RouteRule("create_invites", mutating=True),
    "/validate": RouteRule("validate_access"),
    "/history": RouteRule("view_history"),
    "/pending": RouteRule("view_pending"),
    "/seats": RouteRule("manage_seats", mutating=True),
    "/billing": RouteRule("edit_organization", mutating=True),
    "/edit": RouteRule("edit_organization", mutating=True),
}

_REASON_CODES: Dict[type, str] = {
    NotAuthenticated: "not_authenticated",
    NotAMember: "not_a_member",
    PermissionDenied: "forbidden",
    OrganizationFrozen: "frozen",
    ValidationError: "invalid_identifier",
    UpstreamUnavailable: "unavailable",
}


def normalize_route(route: Optional[str]) -> str:
    route = (route or "").strip()
    if not route.startswith("/"):
        route = "/" + route
    if len(route) > 1:
        route = route.rstrip("/")
    return route


def login_redirect(route: str) -> str:
    return f"{config.LOGIN_PATH}?{urlencode({config.LOGIN_NEXT_PARAM: route})}"


@dataclass(frozen=True)
class Verdict:
    state: AuthState
    route: str
    redirect_to: Optional[str] = None
    # Denial reason code, for logs; only exposed to clients in development
    reason: Optional[str] = None
    permission: Optional[str] = None
    membership: Optional[Membership] = None

    @property
    def allowed(self) -> bool:
        return self.state == AuthState.ALLOWED


class RouteRedirect(Exception):
    """Raised by page dependencies to turn a denied verdict into an HTTP redirect."""

    def __init__(self, verdict: Verdict):
        self.verdict = verdict
        super().__init__(verdict.redirect_to)


class RouteAccessGuard:
    def __init__(self, identity: IdentityStore, seats: SeatCapacityManager):
        self.identity = identity
        self.seats = seats
        self._verdicts: Dict[Tuple[Optional[str], str, str], Verdict] = {}

    async def authorize(self, user_id: Optional[str], organization_id: str, route: str) -> Verdict:
        route = normalize_route(route)
        key = (user_id, organization_id, route)
        verdict = self._verdicts.get(key)
        if verdict is None:
            verdict = await self._evaluate(user_id, organization_id, route)
            self._verdicts[key] = verdict
            log.debug(
                f"Guard user={user_id} org={organization_id} route={route} -> "
                f"{verdict.state.value} ({verdict.reason or 'ok'})"
            )
        return verdict

    def _deny(self, route: str, error: AccessError, redirect_to: str, **kwargs) -> Verdict:
        reason = _REASON_CODES.get(type(error), "forbidden")
        if config.IS_DEVELOPMENT:
            separator = "&" if "?" in redirect_to else "?"
            redirect_to = f"{redirect_to}{separator}{urlencode({'reason': reason})}"
        return Verdict(
            state=AuthState.DENIED_REDIRECT,
            route=route,
            redirect_to=redirect_to,
            reason=reason,
            **kwargs,
        )

    async def _evaluate(self, user_id: Optional[str], organization_id: str, route: str) -> Verdict:
        # START -> IDENTIFIED
        if not user_id:
            return self._deny(route, NotAuthenticated(), login_redirect(route))

        # IDENTIFIED -> MEMBERSHIP_RESOLVED
        if not is_valid_uuid(organization_id):
            return self._deny(route, ValidationError(), config.DENIED_PATH)
        try:
            membership = await self.identity.get_membership(user_id, organization_id)
        except UpstreamUnavailable as e:
            return self._deny(route, e, config.DENIED_PATH)
        if membership is None:
            return self._deny(route, NotAMember(), config.DENIED_PATH)

        # MEMBERSHIP_RESOLVED -> ALLOWED | DENIED_REDIRECT
        rule = ROUTE_PERMISSIONS.get(route)
        if rule is None or not can(rule.permission, membership):
            return self._deny(route, PermissionDenied(), config.DENIED_PATH)

        if rule.mutating:
            try:
                frozen = await self.seats.is_frozen(organization_id)
            except UpstreamUnavailable as e:
                return self._deny(route, e, config.DENIED_PATH)
            if frozen_blocks(rule.permission, membership, frozen):
                return self._deny(
                    route,
                    OrganizationFrozen(),
                    f"/organizations/{organization_id}",
                    permission=rule.permission,
                    membership=membership,
                )

        return Verdict(
            state=AuthState.ALLOWED,
            route=route,
            permission=rule.permission,
            membership=membership,
        )
