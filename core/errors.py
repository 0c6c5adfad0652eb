"""
Domain error taxonomy.

Services raise these; the error handlers in core.middleware.error_handling turn
them into the JSON failure envelope with the matching HTTP status.
"""

from fastapi import status


class ServiceError(Exception):
    """Base class for errors that map to a client-facing response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str, *, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationFailed(ServiceError):
    """Missing or malformed input."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"


class Unauthenticated(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHENTICATED"


class Forbidden(ServiceError):
    """Role, membership or assignment mismatch."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"


class NotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class Conflict(ServiceError):
    """Duplicate unique key or an already-existing relationship."""

    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"


class IllegalTransition(Conflict):
    """Requested status is not reachable from the current one."""

    code = "ILLEGAL_TRANSITION"

    def __init__(self, entity: str, current: str, requested: str):
        super().__init__(
            f"Cannot change {entity} status from '{current}' to '{requested}'"
        )
        self.entity = entity
        self.current = current
        self.requested = requested


class TransitionNotPermitted(Forbidden):
    """Caller's actor kind may not drive the requested status."""

    def __init__(self, entity: str, requested: str, actor: str):
        super().__init__(
            f"{actor.capitalize()} users cannot set {entity} status to '{requested}'"
        )
        self.entity = entity
        self.requested = requested
        self.actor = actor
