"""Translation of workflow errors into HTTP responses."""

from fastapi import HTTPException, status

from expenseflow.core.errors import (
    ConflictError,
    Forbidden,
    NotFound,
    PersistenceError,
    Unauthenticated,
    ValidationError,
    WorkflowError,
)

ERROR_STATUS = {
    NotFound: status.HTTP_404_NOT_FOUND,
    Unauthenticated: status.HTTP_401_UNAUTHORIZED,
    Forbidden: status.HTTP_403_FORBIDDEN,
    ConflictError: status.HTTP_409_CONFLICT,
    PersistenceError: status.HTTP_503_SERVICE_UNAVAILABLE,
    ValidationError: 422,
}


def http_error(error: WorkflowError) -> HTTPException:
    """Build the HTTPException for a workflow error."""
    status_code = ERROR_STATUS.get(type(error), status.HTTP_400_BAD_REQUEST)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(error, Unauthenticated) else None
    return HTTPException(status_code=status_code, detail=str(error), headers=headers)
