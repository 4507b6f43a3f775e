"""RBAC module for ExpenseFlow.

Defines the fixed role vocabulary and endpoint-level role checks.
"""

from .roles import Role, APPROVER_ROLES, DEFAULT_ROLE, parse_role, is_approver
from .checker import has_role, require_role

__all__ = [
    "Role",
    "APPROVER_ROLES",
    "DEFAULT_ROLE",
    "parse_role",
    "is_approver",
    "has_role",
    "require_role",
]
