from typing import Generator

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from expenseflow.core.approval import Actor, WorkflowService, thresholds_from_settings
from expenseflow.core.config import get_settings
from expenseflow.core.rbac import parse_role
from expenseflow.core.security import decode_token
from expenseflow.db.models import Profile
from expenseflow.db.session import SessionLocal
from expenseflow.services import LocalObjectStore, NotificationDispatcher, UserAdminService

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def get_db() -> Generator:
    """Database session dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    db: Session = Depends(get_db),
    token: str = Depends(oauth2_scheme),
) -> Profile:
    """Get current authenticated profile from JWT token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if token:
        user_id = decode_token(token)
        if user_id:
            user = db.query(Profile).filter(Profile.id == user_id).first()
            if user and user.is_active:
                return user

    raise credentials_exception


def get_current_actor(current_user: Profile = Depends(get_current_user)) -> Actor:
    """Resolve the authenticated profile into the Actor passed to services."""
    try:
        role = parse_role(current_user.role)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Profile has unknown role {current_user.role!r}",
        )
    return Actor(id=current_user.id, role=role)


def get_notifier(db: Session = Depends(get_db)) -> NotificationDispatcher:
    return NotificationDispatcher(db)


def get_workflow_service(
    db: Session = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
) -> WorkflowService:
    return WorkflowService(
        db,
        thresholds=thresholds_from_settings(get_settings()),
        notifier=notifier,
    )


def get_user_admin_service(
    db: Session = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
) -> UserAdminService:
    return UserAdminService(db, notifier=notifier)


def get_object_store() -> LocalObjectStore:
    return LocalObjectStore()
