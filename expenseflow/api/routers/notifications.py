"""Notification API endpoints."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from expenseflow.api.deps import get_db, get_current_user
from expenseflow.api.schemas.common import CountResponse
from expenseflow.db.models import Profile
from expenseflow.services.notifications import (
    list_notifications,
    mark_all_read,
    register_subscription,
    unread_count,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


# Schemas
class NotificationResponse(BaseModel):
    id: UUID
    message: str
    link: Optional[str]
    event_type: Optional[str]
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True


class SubscriptionKeys(BaseModel):
    p256dh: str = Field(..., min_length=1)
    auth: str = Field(..., min_length=1)


class SubscriptionCreate(BaseModel):
    endpoint: str = Field(..., min_length=1)
    keys: SubscriptionKeys


class SubscriptionResponse(BaseModel):
    id: UUID
    endpoint: str
    created_at: datetime

    class Config:
        from_attributes = True


class MarkReadResponse(BaseModel):
    updated: int


# Endpoints
@router.get("", response_model=List[NotificationResponse])
def get_notifications(
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    """Most recent notifications of the current user."""
    notifications = list_notifications(db, current_user.id, limit=limit)
    return [NotificationResponse.model_validate(n) for n in notifications]


@router.get("/unread-count", response_model=CountResponse)
def get_unread_count(
    db: Session = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    """Number of unread notifications of the current user."""
    return CountResponse(count=unread_count(db, current_user.id))


@router.post("/read-all", response_model=MarkReadResponse)
def read_all(
    db: Session = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    """Mark every notification of the current user as read."""
    return MarkReadResponse(updated=mark_all_read(db, current_user.id))


@router.post("/subscriptions", response_model=SubscriptionResponse, status_code=status.HTTP_201_CREATED)
def subscribe(
    subscription_in: SubscriptionCreate,
    db: Session = Depends(get_db),
    current_user: Profile = Depends(get_current_user),
):
    """Register a browser push subscription for the current user."""
    subscription = register_subscription(
        db,
        current_user.id,
        subscription_in.endpoint,
        subscription_in.keys.p256dh,
        subscription_in.keys.auth,
    )
    return SubscriptionResponse.model_validate(subscription)
