"""Role vocabulary for ExpenseFlow.

Every profile holds exactly one of five fixed roles:
1. Employee - submits expense claims and purchase orders
2. Manager - first approval tier
3. Finance - second approval tier
4. President - final approval tier
5. Admin - manages user roles, holds no approval authority
"""

from enum import Enum
from typing import Dict, FrozenSet


class Role(str, Enum):
    """Roles a profile can hold."""

    EMPLOYEE = "employee"
    MANAGER = "manager"
    FINANCE = "finance"
    PRESIDENT = "president"
    ADMIN = "admin"


# Roles that own a step of the approval ladder
APPROVER_ROLES: FrozenSet[Role] = frozenset([
    Role.MANAGER,
    Role.FINANCE,
    Role.PRESIDENT,
])

DEFAULT_ROLE = Role.EMPLOYEE


ROLE_DESCRIPTIONS: Dict[Role, str] = {
    Role.EMPLOYEE: "Submits expense claims and purchase orders",
    Role.MANAGER: "Approves requests in the first tier",
    Role.FINANCE: "Approves requests escalated past the manager limit",
    Role.PRESIDENT: "Approves requests escalated past the finance limit",
    Role.ADMIN: "Manages user roles",
}


def parse_role(value: str) -> Role:
    """Parse a stored role string, raising ValueError for unknown roles."""
    try:
        return Role(value.strip().lower())
    except (AttributeError, ValueError):
        raise ValueError(f"Unknown role: {value!r}")


def is_approver(role: Role) -> bool:
    return role in APPROVER_ROLES
