"""Services for ExpenseFlow."""

from expenseflow.services.notifications import NotificationDispatcher
from expenseflow.services.storage import LocalObjectStore
from expenseflow.services.users import UserAdminService

__all__ = [
    "NotificationDispatcher",
    "LocalObjectStore",
    "UserAdminService",
]
