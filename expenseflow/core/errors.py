"""Typed errors raised by the approval workflow.

Routers map each class to an HTTP status; services raise them and never
return error codes.
"""

from typing import Optional


class WorkflowError(Exception):
    """Base class for workflow failures surfaced to callers."""


class NotFound(WorkflowError):
    """The requested record does not exist."""

    def __init__(self, kind: str, record_id):
        super().__init__(f"{kind} {record_id} not found")
        self.kind = kind
        self.record_id = record_id


class Unauthenticated(WorkflowError):
    """No active identity is attached to the call."""

    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(message)


class Forbidden(WorkflowError):
    """The actor's role may not perform the action."""

    def __init__(self, message: str, *, status: Optional[str] = None, role: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.role = role


class ConflictError(WorkflowError):
    """The request changed status between read and write."""

    def __init__(self, record_id, expected: str):
        super().__init__(f"Request {record_id} is no longer in status {expected}")
        self.record_id = record_id
        self.expected = expected


class PersistenceError(WorkflowError):
    """The record store rejected a write. Prior state is kept."""


class ValidationError(WorkflowError):
    """Caller supplied an invalid value."""


class RoutingError(Exception):
    """The role policy was asked to route for a role with no approval tier."""

    def __init__(self, role: str):
        super().__init__(f"No approval tier for role {role}")
        self.role = role


class NotificationDeliveryError(Exception):
    """A notification channel failed. Logged, never surfaced."""

    def __init__(self, channel: str, message: str):
        super().__init__(f"{channel} delivery failed: {message}")
        self.channel = channel
