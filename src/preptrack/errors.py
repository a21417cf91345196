"""Domain errors raised by the PrepTrack services.

Each error carries the machine-readable ``code`` and HTTP ``status_code`` used
by the API layer when rendering an ``ErrorResponse``. ``retryable`` errors are
safe for the caller to repeat.
"""

from typing import Any, Dict, Optional


class PrepTrackError(Exception):
    """Base class for all domain errors."""

    code = "ERROR"
    status_code = 500
    retryable = False

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }


class NotFoundError(PrepTrackError):
    """Item, user, progress row or test session is absent."""

    code = "NOT_FOUND"
    status_code = 404


class InvalidTransitionError(PrepTrackError):
    """Requested status change is not allowed."""

    code = "INVALID_TRANSITION"
    status_code = 400


class InvalidArgumentError(PrepTrackError):
    """Non-positive id, unknown enum value or malformed input."""

    code = "INVALID_ARGUMENT"
    status_code = 400


class AuthenticationError(PrepTrackError):
    """Unknown user or wrong secret."""

    code = "UNAUTHORIZED"
    status_code = 401


class PreconditionFailedError(PrepTrackError):
    """The user's current state does not allow the operation."""

    code = "PRECONDITION_FAILED"
    status_code = 409


class TransientError(PrepTrackError):
    """Storage failed or timed out."""

    code = "TRANSIENT"
    status_code = 503
    retryable = True


class ConflictError(PrepTrackError):
    """A concurrent request for the same user won the race."""

    code = "CONFLICT"
    status_code = 503
    retryable = True


def require_positive_id(value: int, name: str) -> int:
    """Validate an integer identifier."""
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidArgumentError(f"invalid {name}: {value!r}", {name: value})
    return value
