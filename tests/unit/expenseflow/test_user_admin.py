"""Tests for profile administration."""

from uuid import uuid4

import pytest

from expenseflow.core.approval.service import Actor
from expenseflow.core.errors import Forbidden, NotFound, Unauthenticated, ValidationError
from expenseflow.core.rbac import Role
from expenseflow.db.models import Notification, Profile
from expenseflow.services.notifications import NotificationDispatcher
from expenseflow.services.users import UserAdminService

from tests.factories import create_profile


@pytest.fixture
def admin_service(db_session):
    return UserAdminService(db_session, notifier=NotificationDispatcher(db_session, gateway_url=""))


def actor(profile):
    return Actor.from_profile(profile)


class TestChangeRole:
    """Test role assignment."""

    def test_admin_changes_role(self, admin_service, db_session, staff):
        employee = staff[Role.EMPLOYEE]

        profile = admin_service.change_role(actor(staff[Role.ADMIN]), employee.id, "manager")

        assert profile.role == "manager"
        db_session.expire_all()
        assert db_session.get(Profile, employee.id).role == "manager"
        notification = db_session.query(Notification).filter(Notification.user_id == employee.id).one()
        assert notification.message == "Your role is now manager"

    def test_same_role_is_noop(self, admin_service, db_session, staff):
        admin_service.change_role(actor(staff[Role.ADMIN]), staff[Role.FINANCE].id, Role.FINANCE)
        assert db_session.query(Notification).count() == 0

    @pytest.mark.parametrize("role", [Role.EMPLOYEE, Role.MANAGER, Role.FINANCE, Role.PRESIDENT])
    def test_non_admin_forbidden(self, admin_service, db_session, staff, role):
        target = staff[Role.EMPLOYEE]
        with pytest.raises(Forbidden):
            admin_service.change_role(actor(staff[role]), target.id, Role.PRESIDENT)
        db_session.expire_all()
        assert db_session.get(Profile, target.id).role == "employee"

    def test_unauthenticated(self, admin_service, staff):
        with pytest.raises(Unauthenticated):
            admin_service.change_role(None, staff[Role.EMPLOYEE].id, Role.MANAGER)

    def test_unknown_profile(self, admin_service, staff):
        with pytest.raises(NotFound):
            admin_service.change_role(actor(staff[Role.ADMIN]), uuid4(), Role.MANAGER)

    def test_unknown_role(self, admin_service, staff):
        with pytest.raises(ValidationError):
            admin_service.change_role(actor(staff[Role.ADMIN]), staff[Role.EMPLOYEE].id, "ceo")


class TestProfileQueries:
    """Test admin listings."""

    def test_list_profiles(self, admin_service, db_session, staff):
        create_profile(db_session, role=Role.MANAGER)
        db_session.commit()

        assert len(admin_service.list_profiles(actor(staff[Role.ADMIN]))) == 6
        managers = admin_service.list_profiles(actor(staff[Role.ADMIN]), role="manager")
        assert {p.role for p in managers} == {"manager"}
        assert len(managers) == 2

    def test_list_profiles_forbidden(self, admin_service, staff):
        with pytest.raises(Forbidden):
            admin_service.list_profiles(actor(staff[Role.PRESIDENT]))

    def test_role_counts(self, admin_service, db_session, staff):
        create_profile(db_session, role=Role.EMPLOYEE)
        db_session.commit()

        counts = admin_service.role_counts(actor(staff[Role.ADMIN]))

        assert counts == {
            "employee": 2,
            "manager": 1,
            "finance": 1,
            "president": 1,
            "admin": 1,
        }
