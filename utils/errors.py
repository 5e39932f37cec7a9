# utils/errors.py - Domain error taxonomy mapped onto HTTP status codes
from fastapi import HTTPException, status
from typing import List, Optional


class BookingError(HTTPException):
    """Base for every domain failure; `detail` is always a structured dict"""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "error"

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.message = message
        self.errors = errors or []
        detail = {"error": self.code, "message": message}
        if self.errors:
            detail["errors"] = self.errors
        super().__init__(status_code=self.status_code, detail=detail)


class ValidationError(BookingError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"

    def __init__(self, errors: List[str], message: str = "Validation failed"):
        super().__init__(message, errors)


class NotFound(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class SlotConflict(BookingError):
    status_code = status.HTTP_409_CONFLICT
    code = "slot_conflict"

    def __init__(self, message: str = "Selected time slot is no longer available"):
        super().__init__(message)


class InvalidTransition(BookingError):
    status_code = status.HTTP_409_CONFLICT
    code = "invalid_transition"


class TerminalStateViolation(BookingError):
    status_code = status.HTTP_409_CONFLICT
    code = "terminal_state"


class PreconditionFailed(BookingError):
    status_code = status.HTTP_409_CONFLICT
    code = "precondition_failed"


class RateLimited(BookingError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "rate_limited"

    def __init__(self, message: str = "Too many requests. Please try again later."):
        super().__init__(message)


class StorageUnavailable(BookingError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "storage_unavailable"

    def __init__(self, message: str = "Service temporarily unavailable. Database connection failed."):
        super().__init__(message)
