"""
Domain errors raised by the services layer.

Each error carries the HTTP status it maps to; server.py turns any of them
into the standard {"success": false, "message": ...} envelope.
"""


class PharmaError(Exception):
    """Base class for every expected, user-facing failure."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PharmaError):
    """Bad input shape, missing required field or bad format."""
    status_code = 400


class AuthError(PharmaError):
    """Missing, invalid or expired credentials."""
    status_code = 401


class ForbiddenError(PharmaError):
    """Authenticated, but the role does not allow the operation."""
    status_code = 403


class NotFoundError(PharmaError):
    status_code = 404


class InvalidStateError(PharmaError):
    """Operation not allowed in the entity's current state."""
    status_code = 409


class InvalidTransitionError(InvalidStateError):
    """Requested status is not a legal successor of the current one."""

    def __init__(self, entity: str, from_status: str, to_status: str, allowed=None):
        allowed = list(allowed or [])
        super().__init__(
            f"Invalid transition for {entity}: '{from_status}' -> '{to_status}'. "
            f"Allowed from '{from_status}': {allowed}"
        )
        self.from_status = from_status
        self.to_status = to_status
        self.allowed = allowed
