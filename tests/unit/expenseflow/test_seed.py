"""Tests for demo profile seeding."""

from expenseflow.core.rbac import Role
from expenseflow.core.security import verify_password
from expenseflow.db.models import Profile
from expenseflow.db.seed import seed_demo_profiles, seed_profile


class TestSeed:

    def test_one_profile_per_role(self, db_session):
        profiles = seed_demo_profiles(db_session, password="secret-pass")

        assert set(profiles) == set(Role)
        assert profiles[Role.FINANCE].email == "finance@example.com"
        assert profiles[Role.FINANCE].role == "finance"
        assert verify_password("secret-pass", profiles[Role.FINANCE].password_hash)

    def test_idempotent(self, db_session):
        seed_demo_profiles(db_session, password="secret-pass")
        seed_demo_profiles(db_session, password="secret-pass")

        assert db_session.query(Profile).count() == len(Role)

    def test_existing_email_kept(self, db_session):
        first = seed_profile(db_session, "Boss@Example.com", "one-pass", Role.PRESIDENT)
        again = seed_profile(db_session, "boss@example.com", "two-pass", Role.EMPLOYEE)

        assert again.id == first.id
        assert again.role == "president"
