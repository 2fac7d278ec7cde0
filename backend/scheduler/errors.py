# backend/scheduler/errors.py
"""Error taxonomy shared by the scheduling core and the web layer.

Every error carries a stable machine-readable ``code`` and the HTTP status it
maps to, so the API can render ``{"error": {"code", "message"}}`` without a
second lookup table.
"""


class SchedulingError(Exception):
    status_code = 500
    default_code = "SCHEDULING_ERROR"
    default_message = "Scheduling request failed"
    retryable = False

    def __init__(self, message=None, code=None):
        self.message = message or self.default_message
        self.code = code or self.default_code
        super().__init__(self.message)

    def to_dict(self):
        body = {"code": self.code, "message": self.message}
        if self.retryable:
            body["retryable"] = True
        return {"error": body}


class ValidationError(SchedulingError):
    status_code = 400
    default_code = "VALIDATION_ERROR"
    default_message = "Invalid request"


class AuthenticationError(SchedulingError):
    status_code = 401
    default_code = "INVALID_TOKEN"
    default_message = "Invalid token"


class AuthorizationError(SchedulingError):
    status_code = 403
    default_code = "ACCESS_DENIED"
    default_message = "Access denied"


class NotFoundError(SchedulingError):
    status_code = 404
    default_code = "NOT_FOUND"
    default_message = "Not found"


class ConflictError(SchedulingError):
    status_code = 409
    default_code = "TIME_CONFLICT"
    default_message = "Time slot is not available"


class InvalidTransitionError(SchedulingError):
    status_code = 400
    default_code = "INVALID_TRANSITION"
    default_message = "Invalid status transition"


class InfrastructureError(SchedulingError):
    """Store or delivery failure. Safe for the client to retry."""

    status_code = 500
    default_code = "INFRASTRUCTURE_ERROR"
    default_message = "A backend service is temporarily unavailable"
    retryable = True


__all__ = [
    "SchedulingError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "InvalidTransitionError",
    "InfrastructureError",
]
