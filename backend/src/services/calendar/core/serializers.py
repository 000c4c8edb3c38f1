# Response serializers for the recurring event service
# Converts ORM models to camelCase JSON payloads

from datetime import datetime
from typing import Any, Optional
from enum import Enum

from ..database.schema import Event
from ..database.operations import DeleteOutcome
from .series import EventSeries
from .utils import format_rfc3339


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================


def _format_datetime(dt: Optional[datetime]) -> Optional[str]:
    return format_rfc3339(dt) if dt is not None else None


def _enum_value(val: Any) -> Any:
    """Extract value from enum if needed."""
    if isinstance(val, Enum):
        return val.value
    return val


# ============================================================================
# EVENT SERIALIZERS
# ============================================================================


def serialize_event(event: Event) -> dict[str, Any]:
    """
    Serialize an Event.

    Response format:
    {
        "id": "...",
        "title": "...",
        "description": "...",
        "startTime": "2024-01-15T09:00:00+00:00",
        "endTime": "2024-01-15T09:15:00+00:00",
        "participants": ["u1", "u2"],
        "creator": "u1",
        "recurrence": "weekly",
        "parentEvent": null,
        "recurrenceUpdateOption": null,
        "cancelled": false
    }
    """
    return {
        "id": event.id,
        "title": event.title,
        "description": event.description,
        "startTime": _format_datetime(event.start_time),
        "endTime": _format_datetime(event.end_time),
        "participants": sorted(event.participants),
        "creator": event.creator,
        "recurrence": _enum_value(event.recurrence),
        "parentEvent": event.parent_event_id,
        "recurrenceUpdateOption": _enum_value(event.recurrence_update_option),
        "cancelled": bool(event.cancelled),
        "created": _format_datetime(event.created_at),
        "updated": _format_datetime(event.updated_at),
    }


def serialize_series(series: EventSeries[Event]) -> dict[str, Any]:
    """Serialize one series as {seriesId, baseEvent, overrides}."""
    return {
        "seriesId": series.series_id,
        "baseEvent": serialize_event(series.base_event),
        "overrides": [serialize_event(e) for e in series.overrides],
    }


def serialize_series_list(series_list: list[EventSeries[Event]]) -> list[dict[str, Any]]:
    return [serialize_series(series) for series in series_list]


def serialize_delete_outcome(outcome: DeleteOutcome) -> dict[str, Any]:
    result: dict[str, Any] = {
        "message": outcome.message,
        "scope": _enum_value(outcome.scope),
        "deletedCount": outcome.deleted_count,
    }
    if outcome.tombstone is not None:
        result["tombstone"] = serialize_event(outcome.tombstone)
    return result
