"""API routers for ExpenseFlow."""

from . import auth
from . import requests
from . import dashboard
from . import notifications
from . import users

__all__ = [
    "auth",
    "requests",
    "dashboard",
    "notifications",
    "users",
]
