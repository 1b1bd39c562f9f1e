"""Capability checks and route gating shared by pages and dashboard actions."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Union

from canteen.core.errors import PermissionDenied
from canteen.schemas.catalog import Restaurant
from canteen.schemas.user import Identity, Role, UserProfile

SIGN_IN_PATH = "/login"
LANDING_PATH = "/"


class Capability(str, Enum):
    ACCESS_DASHBOARD = "access_dashboard"
    MANAGE_CATALOG = "manage_catalog"
    MANAGE_ORDERS = "manage_orders"
    MANAGE_USERS = "manage_users"


ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.ADMIN: frozenset(Capability),
    Role.VENDOR: frozenset(
        {Capability.ACCESS_DASHBOARD, Capability.MANAGE_CATALOG, Capability.MANAGE_ORDERS}
    ),
    Role.CUSTOMER: frozenset(),
}


@dataclass(frozen=True)
class Permission:
    capability: Capability
    granted: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.granted


def check_capability(profile: UserProfile | None, capability: Capability) -> Permission:
    """The one place where roles are translated into rights."""
    if profile is None:
        return Permission(capability, False, "not signed in")
    if capability not in ROLE_CAPABILITIES.get(profile.role, frozenset()):
        return Permission(capability, False, f"role {profile.role.value} lacks {capability.value}")
    return Permission(capability, True)


def require_capability(profile: UserProfile | None, capability: Capability) -> UserProfile:
    if profile is None or not check_capability(profile, capability):
        raise PermissionDenied(capability.value)
    return profile


def can_manage_restaurant(profile: UserProfile | None, restaurant: Restaurant) -> bool:
    """Vendors manage their own restaurants; admins manage all of them."""
    if profile is None or not check_capability(profile, Capability.MANAGE_CATALOG):
        return False
    return profile.role == Role.ADMIN or restaurant.vendor_id == profile.uid


def require_restaurant_manager(
    profile: UserProfile | None,
    restaurant: Restaurant,
    capability: Capability = Capability.MANAGE_CATALOG,
) -> UserProfile:
    actor = require_capability(profile, capability)
    if actor.role != Role.ADMIN and restaurant.vendor_id != actor.uid:
        raise PermissionDenied(capability.value)
    return actor


# Auth states


@dataclass(frozen=True)
class Loading:
    pass


@dataclass(frozen=True)
class Anonymous:
    pass


@dataclass(frozen=True)
class Authenticated:
    profile: UserProfile


AuthState = Union[Loading, Anonymous, Authenticated]

LOADING = Loading()
ANONYMOUS = Anonymous()


def fallback_profile(identity: Identity) -> UserProfile:
    """Profile used while the stored one cannot be read; never grants staff rights."""
    return UserProfile(
        id=identity.uid,
        uid=identity.uid,
        email=identity.email,
        display_name=identity.display_name,
        photo_url=identity.photo_url,
        role=Role.CUSTOMER,
    )


def auth_state_for(
    identity: Identity | None,
    resolve_profile: Callable[[Identity], UserProfile | None],
) -> AuthState:
    if identity is None:
        return ANONYMOUS
    profile = resolve_profile(identity)
    return Authenticated(profile if profile is not None else fallback_profile(identity))


# Route gating


class RouteAccess(Enum):
    PUBLIC = "public"
    SIGNED_IN = "signed_in"
    STAFF = "staff"
    ADMIN = "admin"


ROUTE_CAPABILITY: dict[RouteAccess, Capability] = {
    RouteAccess.STAFF: Capability.ACCESS_DASHBOARD,
    RouteAccess.ADMIN: Capability.MANAGE_USERS,
}

ROUTE_ACCESS: dict[str, RouteAccess] = {
    "/": RouteAccess.PUBLIC,
    "/restaurant/{restaurant_id}": RouteAccess.PUBLIC,
    "/cart": RouteAccess.PUBLIC,
    "/checkout/success": RouteAccess.PUBLIC,
    "/login": RouteAccess.PUBLIC,
    "/register": RouteAccess.PUBLIC,
    "/orders": RouteAccess.SIGNED_IN,
    "/profile": RouteAccess.SIGNED_IN,
    "/dashboard": RouteAccess.STAFF,
    "/dashboard/users": RouteAccess.ADMIN,
}


@dataclass(frozen=True)
class Wait:
    pass


@dataclass(frozen=True)
class Allow:
    profile: UserProfile | None = None


@dataclass(frozen=True)
class Redirect:
    location: str


GateDecision = Union[Wait, Allow, Redirect]


def evaluate_route(state: AuthState, access: RouteAccess) -> GateDecision:
    """Decide whether a route renders, waits for identity, or redirects."""
    profile = state.profile if isinstance(state, Authenticated) else None
    if access is RouteAccess.PUBLIC:
        return Allow(profile)
    if isinstance(state, Loading):
        return Wait()
    if isinstance(state, Anonymous):
        return Redirect(SIGN_IN_PATH)

    capability = ROUTE_CAPABILITY.get(access)
    if capability is not None and not check_capability(profile, capability):
        return Redirect(LANDING_PATH)
    return Allow(profile)


def watch_route(
    identities: Iterable[Identity | None],
    access: RouteAccess,
    resolve_profile: Callable[[Identity], UserProfile | None],
) -> Iterator[GateDecision]:
    """Re-evaluate a route on every identity-changed event, starting from Loading."""
    yield evaluate_route(LOADING, access)
    for identity in identities:
        yield evaluate_route(auth_state_for(identity, resolve_profile), access)
