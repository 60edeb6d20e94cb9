"""Tests for the role -> capability table."""

import pytest

from access import POLICY, Capability, can, capabilities_for, dashboard_for, require_capability
from errors import NoSession, PermissionDenied
from schemas import Role, Session, User


def user_with(role: Role) -> User:
    return User(name="Access Policy Test Person", email="p@example.com", address="1 Policy Way",
                password_hash="x", role=role)


class TestPolicyTable:
    def test_every_role_has_an_entry(self) -> None:
        assert set(POLICY) == set(Role)
        for role in Role:
            assert capabilities_for(role)
            assert dashboard_for(role) == role.value

    def test_admin(self) -> None:
        assert capabilities_for(Role.ADMIN) == {
            Capability.MANAGE_USERS, Capability.MANAGE_STORES, Capability.BROWSE_ALL,
        }

    def test_user(self) -> None:
        caps = capabilities_for(Role.USER)
        assert Capability.RATE_STORES in caps
        assert Capability.CHANGE_OWN_PASSWORD in caps
        assert Capability.MANAGE_USERS not in caps

    def test_store_owner(self) -> None:
        caps = capabilities_for(Role.STORE_OWNER)
        assert caps == {Capability.VIEW_OWN_STORE_RATINGS, Capability.CHANGE_OWN_PASSWORD}

    def test_accepts_role_values(self) -> None:
        assert capabilities_for("store_owner") == capabilities_for(Role.STORE_OWNER)

    def test_unknown_role(self) -> None:
        with pytest.raises(ValueError):
            capabilities_for("superuser")


class TestRequireCapability:
    def test_anonymous_session(self) -> None:
        with pytest.raises(NoSession):
            require_capability(Session(), Capability.BROWSE_STORES)
        assert can(None, Capability.BROWSE_STORES) is False

    def test_denied(self) -> None:
        with pytest.raises(PermissionDenied):
            require_capability(Session(user=user_with(Role.STORE_OWNER)), Capability.RATE_STORES)

    def test_allowed_returns_user(self) -> None:
        user = user_with(Role.USER)
        assert require_capability(Session(user=user), Capability.RATE_STORES) is user
