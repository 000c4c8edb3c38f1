# Database layer for the recurring event service
from .base import Base
from .schema import (
    Event,
    EventParticipant,
    Recurrence,
    RecurrenceScope,
)
from .operations import (
    DeleteOutcome,
    EventChanges,
    create_event,
    delete_event,
    delete_events_where,
    find_events,
    get_event,
    list_my_events,
    resolve_base_event,
    save_event,
    update_event,
)
from .typed_operations import CalendarOperations

__all__ = [
    "Base",
    "Event",
    "EventParticipant",
    "Recurrence",
    "RecurrenceScope",
    "DeleteOutcome",
    "EventChanges",
    "create_event",
    "delete_event",
    "delete_events_where",
    "find_events",
    "get_event",
    "list_my_events",
    "resolve_base_event",
    "save_event",
    "update_event",
    "CalendarOperations",
]
