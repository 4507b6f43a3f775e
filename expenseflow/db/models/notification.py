"""In-app notification and push subscription models."""

import uuid
from datetime import datetime
from enum import Enum
from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Text, Uuid
from sqlalchemy.orm import relationship

from expenseflow.db.base import Base


class NotificationChannel(str, Enum):
    """Available notification channels."""
    IN_APP = "in_app"
    PUSH = "push"


class NotificationEventType(str, Enum):
    """Events that can trigger notifications."""
    REQUEST_SUBMITTED = "request_submitted"
    REQUEST_ESCALATED = "request_escalated"
    REQUEST_APPROVED = "request_approved"
    REQUEST_REJECTED = "request_rejected"
    ROLE_CHANGED = "role_changed"


class Notification(Base):
    """
    A message shown in a user's notification bell.
    """
    __tablename__ = "notifications"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)

    event_type = Column(String(50), nullable=True)
    message = Column(Text, nullable=False)
    link = Column(String(512), nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    # Relationships
    user = relationship("Profile", back_populates="notifications")

    def __repr__(self) -> str:
        return f"<Notification {self.event_type} to {self.user_id}>"


class PushSubscription(Base):
    """
    A browser push endpoint registered by a user.
    """
    __tablename__ = "push_subscriptions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)

    endpoint = Column(Text, nullable=False, unique=True)
    p256dh = Column(String(255), nullable=False)
    auth = Column(String(255), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    user = relationship("Profile", back_populates="push_subscriptions")

    def __repr__(self) -> str:
        return f"<PushSubscription user={self.user_id}>"
