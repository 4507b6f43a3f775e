"""Tests for roles and role checks."""

import asyncio
from types import SimpleNamespace
from uuid import uuid4

import pytest
from fastapi import HTTPException

from expenseflow.core.approval.service import Actor
from expenseflow.core.rbac import (
    APPROVER_ROLES,
    DEFAULT_ROLE,
    Role,
    has_role,
    is_approver,
    parse_role,
    require_role,
)
from expenseflow.core.rbac.roles import ROLE_DESCRIPTIONS


class TestRoles:
    """Test role vocabulary."""

    def test_five_roles(self):
        assert {r.value for r in Role} == {"employee", "manager", "finance", "president", "admin"}
        assert set(ROLE_DESCRIPTIONS) == set(Role)

    def test_default_role(self):
        assert DEFAULT_ROLE == Role.EMPLOYEE

    def test_approver_roles(self):
        assert APPROVER_ROLES == {Role.MANAGER, Role.FINANCE, Role.PRESIDENT}
        assert is_approver(Role.FINANCE)
        assert not is_approver(Role.ADMIN)
        assert not is_approver(Role.EMPLOYEE)

    def test_parse_role(self):
        assert parse_role("Finance ") == Role.FINANCE
        assert parse_role(Role.ADMIN) == Role.ADMIN

    @pytest.mark.parametrize("value", ["ceo", "", None])
    def test_parse_unknown_role(self, value):
        with pytest.raises(ValueError):
            parse_role(value)


class TestHasRole:
    """Test has_role checks."""

    def test_profile_like(self):
        user = SimpleNamespace(role="manager")
        assert has_role(user, Role.MANAGER)
        assert has_role(user, "finance", "manager")
        assert not has_role(user, Role.ADMIN)

    def test_actor(self):
        assert has_role(Actor(id=uuid4(), role=Role.ADMIN), Role.ADMIN)

    def test_missing_or_unknown(self):
        assert not has_role(None, Role.ADMIN)
        assert not has_role(SimpleNamespace(role=None), Role.ADMIN)
        assert not has_role(SimpleNamespace(role="ceo"), Role.ADMIN)


class TestRequireRole:
    """Test the endpoint decorator."""

    @staticmethod
    @require_role(Role.ADMIN)
    async def admin_endpoint(current_user=None):
        return "ok"

    def test_allows_role(self):
        result = asyncio.run(self.admin_endpoint(current_user=SimpleNamespace(role="admin")))
        assert result == "ok"

    def test_rejects_other_role(self):
        with pytest.raises(HTTPException) as exc_info:
            asyncio.run(self.admin_endpoint(current_user=SimpleNamespace(role="president")))
        assert exc_info.value.status_code == 403
        assert "admin" in exc_info.value.detail

    def test_requires_user(self):
        with pytest.raises(HTTPException) as exc_info:
            asyncio.run(self.admin_endpoint())
        assert exc_info.value.status_code == 401
