"""Database seeding for ExpenseFlow.

Creates one profile per role so a fresh install can be exercised end to
end. Run with ``python -m expenseflow.db.seed``.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from expenseflow.core.rbac.roles import Role, parse_role
from expenseflow.core.security import get_password_hash
from expenseflow.db.models import Profile

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "changeme123"


def seed_profile(
    db: Session,
    email: str,
    password: str,
    role: Role,
    *,
    full_name: Optional[str] = None,
) -> Profile:
    """
    Create a profile, or return the existing one with that email.

    Args:
        db: Database session
        email: Login email
        password: Plain password, stored hashed
        role: Role to assign on creation
        full_name: Display name

    Returns:
        The profile
    """
    email = email.lower()
    existing = db.query(Profile).filter(Profile.email == email).first()
    if existing:
        return existing

    profile = Profile(
        email=email,
        password_hash=get_password_hash(password),
        full_name=full_name,
        role=parse_role(role).value,
    )
    db.add(profile)
    db.flush()
    return profile


def seed_demo_profiles(db: Session, password: str = DEMO_PASSWORD) -> dict[Role, Profile]:
    """Create ``<role>@example.com`` for every role. Idempotent."""
    profiles = {}
    for role in Role:
        profiles[role] = seed_profile(
            db,
            f"{role.value}@example.com",
            password,
            role,
            full_name=f"Demo {role.value.title()}",
        )
    db.commit()
    return profiles


if __name__ == "__main__":
    from expenseflow.core.config import get_settings
    from expenseflow.core.logger import setup_logger
    from expenseflow.db.session import SessionLocal

    settings = get_settings()
    setup_logger("expenseflow", level=settings.log_level)

    db = SessionLocal()
    try:
        created = seed_demo_profiles(db)
        for role, profile in created.items():
            logger.info(f"{role.value}: {profile.email}")
    finally:
        db.close()
