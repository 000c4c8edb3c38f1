# Calendar API Error Handling
# Google-style error responses for the recurring event service

import logging
from typing import Any, Optional
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)


# ============================================================================
# ERROR REASONS
# ============================================================================

ERROR_NOT_FOUND = "notFound"
ERROR_INVALID = "invalid"
ERROR_REQUIRED = "required"
ERROR_FORBIDDEN = "forbidden"
ERROR_UNAUTHORIZED = "authError"
ERROR_BACKEND = "backendError"
ERROR_INTERNAL = "internalError"

# Series-specific error reasons
ERROR_EVENT_NOT_FOUND = "eventNotFound"
ERROR_BASE_EVENT_NOT_FOUND = "baseEventNotFound"

# Domain
ERROR_DOMAIN_GLOBAL = "global"
ERROR_DOMAIN_CALENDAR = "calendar"


# ============================================================================
# EXCEPTION CLASSES
# ============================================================================


class CalendarAPIError(Exception):
    """
    Base exception for Calendar API errors.

    Subclasses pick their HTTP status, reason and domain as class attributes;
    instances carry the message and, for field errors, the offending field.
    """

    status_code: int = 400
    reason: str = ERROR_INVALID
    domain: str = ERROR_DOMAIN_CALENDAR

    def __init__(self, message: str, *, location: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.location = location

    @property
    def location_type(self) -> Optional[str]:
        return "parameter" if self.location else None

    def to_dict(self) -> dict[str, Any]:
        """Convert to Google-style error response dict."""
        detail: dict[str, Any] = {
            "domain": self.domain,
            "reason": self.reason,
            "message": self.message,
        }
        if self.location:
            detail["location"] = self.location
            detail["locationType"] = self.location_type

        return {
            "error": {
                "code": self.status_code,
                "message": self.message,
                "errors": [detail],
            }
        }

    def to_response(self) -> JSONResponse:
        return JSONResponse(content=self.to_dict(), status_code=self.status_code)


class NotFoundError(CalendarAPIError):
    status_code = 404
    reason = ERROR_NOT_FOUND


class EventNotFoundError(NotFoundError):
    reason = ERROR_EVENT_NOT_FOUND

    def __init__(self, event_id: str):
        super().__init__(f"Event not found: {event_id}")
        self.event_id = event_id


class BaseEventNotFoundError(NotFoundError):
    """An override points at a base event that no longer exists."""

    reason = ERROR_BASE_EVENT_NOT_FOUND

    def __init__(self, base_event_id: str):
        super().__init__(f"Base event not found: {base_event_id}")
        self.base_event_id = base_event_id


class ValidationError(CalendarAPIError):
    """Invalid request data (400)."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, location=field)


class RequiredFieldError(ValidationError):
    reason = ERROR_REQUIRED

    def __init__(self, field: str):
        super().__init__(f"Required field missing: {field}", field)


class InvalidFieldError(ValidationError):
    def __init__(self, field: str, message: Optional[str] = None):
        super().__init__(message or f"Invalid value for field: {field}", field)


class PermissionDeniedError(CalendarAPIError):
    """Caller may not modify the event (403)."""

    status_code = 403
    reason = ERROR_FORBIDDEN


class UnauthorizedError(CalendarAPIError):
    status_code = 401
    reason = ERROR_UNAUTHORIZED
    domain = ERROR_DOMAIN_GLOBAL


class StoreFailureError(CalendarAPIError):
    """The event store failed; the store's message is passed through (500)."""

    status_code = 500
    reason = ERROR_BACKEND
    domain = ERROR_DOMAIN_GLOBAL


class InternalError(CalendarAPIError):
    status_code = 500
    reason = ERROR_INTERNAL
    domain = ERROR_DOMAIN_GLOBAL


class ServiceUnavailableError(CalendarAPIError):
    """A dependency of the request, such as the control plane, is down (503)."""

    status_code = 503
    reason = ERROR_BACKEND
    domain = ERROR_DOMAIN_GLOBAL


# ============================================================================
# ERROR HANDLING UTILITIES
# ============================================================================


def handle_exception(exc: Exception) -> JSONResponse:
    """Convert an exception to a JSONResponse; unknown errors become a bare 500."""
    if isinstance(exc, CalendarAPIError):
        return exc.to_response()

    logger.error("Unexpected exception: %s", exc, exc_info=exc)
    return InternalError("Internal Server Error").to_response()
