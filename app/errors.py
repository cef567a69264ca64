"""
Scheduling error taxonomy

Every workflow raises one of these before performing any mutation.
main.py renders them as {"statusCode", "statusMessage", "error": {...}}.
"""
from typing import Optional


class SchedulingError(Exception):
    """Base class for errors surfaced to API callers"""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class BadRequestError(SchedulingError):
    """Missing/invalid input or wrong state for the requested transition"""

    status_code = 400
    code = "BAD_REQUEST"


class PreconditionFailedError(BadRequestError):
    """Entity is not in the status required by the transition"""

    code = "PRECONDITION_FAILED"


class NotFoundError(SchedulingError):
    status_code = 404
    code = "NOT_FOUND"


class UnauthorizedError(SchedulingError):
    status_code = 401
    code = "UNAUTHORIZED"


class ConflictError(SchedulingError):
    """A concurrent writer changed the item between read and write"""

    status_code = 409
    code = "CONFLICT"


class InternalError(SchedulingError):
    status_code = 500
    code = "INTERNAL_ERROR"


class ConfigurationError(InternalError):
    code = "CONFIGURATION_ERROR"


class BackendError(InternalError):
    """Unexpected failure reported by the item store backend"""

    code = "BACKEND_ERROR"


class MeetingProvisioningError(Exception):
    """
    Meeting provisioner failure.

    Deliberately not a SchedulingError: the approval workflow recovers from it
    locally and it never reaches an API caller.
    """
