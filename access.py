"""
Access Policy.

A static role -> capability table. Every ``Role`` must appear in ``POLICY``
and ``DASHBOARDS``; ``capabilities_for`` fails loudly on a role missing from
either.
"""

from enum import Enum
from typing import FrozenSet, Optional

from errors import NoSession, PermissionDenied
from schemas import Role, Session, User


class Capability(str, Enum):
    MANAGE_USERS = "manage_users"
    MANAGE_STORES = "manage_stores"
    BROWSE_ALL = "browse_all"
    BROWSE_STORES = "browse_stores"
    RATE_STORES = "rate_stores"
    VIEW_OWN_STORE_RATINGS = "view_own_store_ratings"
    CHANGE_OWN_PASSWORD = "change_own_password"


POLICY = {
    Role.ADMIN: frozenset({Capability.MANAGE_USERS, Capability.MANAGE_STORES, Capability.BROWSE_ALL}),
    Role.USER: frozenset({Capability.BROWSE_STORES, Capability.RATE_STORES, Capability.CHANGE_OWN_PASSWORD}),
    Role.STORE_OWNER: frozenset({Capability.VIEW_OWN_STORE_RATINGS, Capability.CHANGE_OWN_PASSWORD}),
}

DASHBOARDS = {
    Role.ADMIN: "admin",
    Role.USER: "user",
    Role.STORE_OWNER: "store_owner",
}


def capabilities_for(role: Role) -> FrozenSet[Capability]:
    try:
        return POLICY[Role(role)]
    except KeyError:
        raise ValueError(f"No access policy for role {role!r}")


def dashboard_for(role: Role) -> str:
    try:
        return DASHBOARDS[Role(role)]
    except KeyError:
        raise ValueError(f"No dashboard for role {role!r}")


def can(user: Optional[User], capability: Capability) -> bool:
    return user is not None and capability in capabilities_for(user.role)


def require_capability(session: Session, capability: Capability) -> User:
    if not session.is_authenticated:
        raise NoSession()
    if not can(session.user, capability):
        raise PermissionDenied()
    return session.user
