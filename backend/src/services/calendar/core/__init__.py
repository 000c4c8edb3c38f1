# Core utilities for the recurring event service
from .errors import (
    CalendarAPIError,
    NotFoundError,
    EventNotFoundError,
    BaseEventNotFoundError,
    ValidationError,
    RequiredFieldError,
    InvalidFieldError,
    PermissionDeniedError,
    UnauthorizedError,
    StoreFailureError,
    InternalError,
    ServiceUnavailableError,
    handle_exception,
)
from .permissions import Identity, can_edit, check_can_edit
from .series import EventSeries, group_events_into_series
from .utils import (
    apply_participant_delta,
    calendar_now,
    format_rfc3339,
    generate_event_id,
    parse_enum,
    parse_event_time,
    parse_text,
    parse_rfc3339,
)

__all__ = [
    "CalendarAPIError",
    "NotFoundError",
    "EventNotFoundError",
    "BaseEventNotFoundError",
    "ValidationError",
    "RequiredFieldError",
    "InvalidFieldError",
    "PermissionDeniedError",
    "UnauthorizedError",
    "StoreFailureError",
    "InternalError",
    "ServiceUnavailableError",
    "handle_exception",
    "Identity",
    "can_edit",
    "check_can_edit",
    "EventSeries",
    "group_events_into_series",
    "apply_participant_delta",
    "calendar_now",
    "format_rfc3339",
    "generate_event_id",
    "parse_enum",
    "parse_event_time",
    "parse_text",
    "parse_rfc3339",
]
