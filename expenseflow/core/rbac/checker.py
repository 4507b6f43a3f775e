"""Role checking utilities for ExpenseFlow.

Provides a decorator for FastAPI endpoints restricted to given roles.
Approval authority is not decided here; see ``core.approval.guard``.
"""

from functools import wraps
from typing import Callable, Union

from fastapi import HTTPException, status

from .roles import Role, parse_role


def has_role(user, *roles: Union[str, Role]) -> bool:
    """
    Check if a user holds one of the given roles.

    Args:
        user: Profile model instance or Actor
        roles: Accepted roles

    Returns:
        True if the user's role is among ``roles``
    """
    if not user or not getattr(user, "role", None):
        return False

    try:
        current = parse_role(str(getattr(user.role, "value", user.role)))
    except ValueError:
        return False

    return current in {parse_role(str(getattr(r, "value", r))) for r in roles}


def require_role(*roles: Union[str, Role]):
    """
    Decorator factory for FastAPI endpoints restricted to specific roles.

    Usage:
        @router.patch("/users/{user_id}/role")
        @require_role(Role.ADMIN)
        async def change_role(user_id: UUID, current_user: Profile = Depends(get_current_user)):
            ...
    """
    role_names = [str(getattr(r, "value", r)) for r in roles]

    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            current_user = kwargs.get("current_user")

            if not current_user:
                raise HTTPException(
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    detail="Authentication required"
                )

            if not has_role(current_user, *roles):
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"Insufficient role. Required: {', '.join(role_names)}"
                )

            return await func(*args, **kwargs)

        return wrapper
    return decorator
