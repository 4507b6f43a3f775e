"""User administration API endpoints."""

from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from pydantic import BaseModel

from expenseflow.api.deps import (
    get_current_actor,
    get_current_user,
    get_notifier,
    get_user_admin_service,
)
from expenseflow.api.errors import http_error
from expenseflow.api.schemas.auth import ProfileResponse
from expenseflow.core.approval import Actor
from expenseflow.core.errors import WorkflowError
from expenseflow.core.rbac import Role, require_role
from expenseflow.db.models import Profile
from expenseflow.services import NotificationDispatcher, UserAdminService

router = APIRouter(prefix="/users", tags=["users"])


# Schemas
class RoleUpdate(BaseModel):
    role: str


# Endpoints
@router.get("", response_model=List[ProfileResponse])
@require_role(Role.ADMIN)
async def list_users(
    role: Optional[str] = Query(None),
    current_user: Profile = Depends(get_current_user),
    actor: Actor = Depends(get_current_actor),
    service: UserAdminService = Depends(get_user_admin_service),
):
    """List all profiles."""
    try:
        profiles = service.list_profiles(actor, role=role)
    except WorkflowError as e:
        raise http_error(e)
    return [ProfileResponse.model_validate(p) for p in profiles]


@router.get("/role-counts", response_model=Dict[str, int])
@require_role(Role.ADMIN)
async def get_role_counts(
    current_user: Profile = Depends(get_current_user),
    actor: Actor = Depends(get_current_actor),
    service: UserAdminService = Depends(get_user_admin_service),
):
    """Number of profiles per role."""
    try:
        return service.role_counts(actor)
    except WorkflowError as e:
        raise http_error(e)


@router.patch("/{user_id}/role", response_model=ProfileResponse)
@require_role(Role.ADMIN)
async def change_user_role(
    user_id: UUID,
    role_in: RoleUpdate,
    background_tasks: BackgroundTasks,
    current_user: Profile = Depends(get_current_user),
    actor: Actor = Depends(get_current_actor),
    service: UserAdminService = Depends(get_user_admin_service),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    """Assign a new role to a profile."""
    try:
        profile = service.change_role(actor, user_id, role_in.role)
    except WorkflowError as e:
        raise http_error(e)

    background_tasks.add_task(notifier.deliver_push)
    return ProfileResponse.model_validate(profile)
