"""Database models for ExpenseFlow."""

from expenseflow.db.models.user import Profile
from expenseflow.db.models.request import (
    ApprovalRequestMixin,
    ExpenseClaim,
    PurchaseOrder,
    RequestKind,
    model_for,
)
from expenseflow.db.models.approval import ApprovalHistory
from expenseflow.db.models.notification import (
    Notification,
    PushSubscription,
    NotificationChannel,
    NotificationEventType,
)

__all__ = [
    "Profile",
    "ApprovalRequestMixin",
    "ExpenseClaim",
    "PurchaseOrder",
    "RequestKind",
    "model_for",
    "ApprovalHistory",
    "Notification",
    "PushSubscription",
    "NotificationChannel",
    "NotificationEventType",
]
