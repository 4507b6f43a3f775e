"""Profile administration.

Role management is separate from approval authority: only admins may
list profiles or change roles, and holding the admin role never lets a
user act on a request.
"""

import logging
from typing import Dict, List, Optional, Union
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from expenseflow.core.approval.service import Actor
from expenseflow.core.errors import (
    Forbidden,
    NotFound,
    PersistenceError,
    Unauthenticated,
    ValidationError,
)
from expenseflow.core.rbac.roles import Role, parse_role
from expenseflow.db.models import NotificationEventType, Profile

logger = logging.getLogger(__name__)


class UserAdminService:
    """Admin-only operations on profiles."""

    def __init__(self, db: Session, *, notifier=None):
        self.db = db
        self.notifier = notifier

    def list_profiles(self, actor: Optional[Actor], *, role: Optional[str] = None) -> List[Profile]:
        """All profiles, optionally restricted to one role."""
        self._require_admin(actor)

        query = self.db.query(Profile)
        if role is not None:
            query = query.filter(Profile.role == self._parse_role(role).value)
        return query.order_by(Profile.created_at.desc()).all()

    def role_counts(self, actor: Optional[Actor]) -> Dict[str, int]:
        """Number of profiles per role. Every role is present."""
        self._require_admin(actor)

        counts = {role.value: 0 for role in Role}
        rows = self.db.query(Profile.role, func.count(Profile.id)).group_by(Profile.role).all()
        for role, count in rows:
            counts[role] = count
        return counts

    def change_role(self, actor: Optional[Actor], user_id: UUID, role: Union[Role, str]) -> Profile:
        """
        Assign a new role to a profile.

        Raises:
            Unauthenticated: If no actor is given
            Forbidden: If the actor is not an admin
            NotFound: If the profile does not exist
            ValidationError: If the role is unknown
        """
        self._require_admin(actor)
        new_role = self._parse_role(role)

        profile = self.db.query(Profile).filter(Profile.id == user_id).first()
        if not profile:
            raise NotFound("Profile", user_id)

        old_role = profile.role
        if old_role == new_role.value:
            return profile

        try:
            profile.role = new_role.value
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"Failed to change role of {user_id}")
            raise PersistenceError(f"Could not update profile {user_id}") from e

        self.db.refresh(profile)
        logger.info(f"Role of {profile.email} changed from {old_role} to {new_role.value} by {actor.id}")

        if self.notifier is not None:
            try:
                self.notifier.emit(
                    profile.id,
                    f"Your role is now {new_role.value}",
                    "/",
                    event_type=NotificationEventType.ROLE_CHANGED,
                )
            except Exception:
                logger.exception(f"Role change notification for {profile.id} failed")
        return profile

    @staticmethod
    def _require_admin(actor: Optional[Actor]) -> None:
        if actor is None:
            raise Unauthenticated()
        if actor.role != Role.ADMIN:
            raise Forbidden("Admin role required", role=actor.role.value)

    @staticmethod
    def _parse_role(role: Union[Role, str]) -> Role:
        try:
            return parse_role(role)
        except ValueError as e:
            raise ValidationError(str(e)) from e
