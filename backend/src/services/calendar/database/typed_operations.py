"""
Typed operations wrapper for the recurring event service.

This module provides a class-based API for event operations, encapsulating
session and identity handling and returning Pydantic models instead of ORM
objects.
"""

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from . import operations as ops
from .pydantic_schemas import (
    DeleteOutcomeSchema,
    EventSchema,
    EventSeriesSchema,
)
from .schema import Event, Recurrence, RecurrenceScope
from ..core.permissions import Identity


class CalendarOperations:
    """
    Typed operations for recurring events.

    Example usage:
        ops = CalendarOperations(session, Identity(user_id="u1"))

        standup = ops.create_event(
            title="Standup",
            start_time="2024-01-15T09:00:00Z",
            end_time="2024-01-15T09:15:00Z",
            recurrence="weekly",
        )

        moved = ops.update_event(
            standup.id,
            title="Standup (moved)",
            scope="thisEvent",
        )
    """

    def __init__(self, session: Session, identity: Identity):
        """
        Initialize with a SQLAlchemy session and the acting identity.

        Args:
            session: SQLAlchemy session for database operations
            identity: Caller every mutation is authorized against
        """
        self.session = session
        self.identity = identity

    def as_user(self, user_id: str, *, is_admin: bool = False) -> "CalendarOperations":
        """Same session, different caller."""
        return CalendarOperations(self.session, Identity(user_id=user_id, is_admin=is_admin))

    def create_event(
        self,
        title: str,
        start_time: datetime | str,
        end_time: datetime | str,
        *,
        description: Optional[str] = None,
        participants: Iterable[str] = (),
        recurrence: Recurrence | str | None = Recurrence.none,
    ) -> EventSchema:
        """
        Create a base event owned by the acting identity.

        Raises:
            RequiredFieldError: If title, start_time or end_time is missing
            InvalidFieldError: If recurrence is not none/daily/weekly/monthly
        """
        result = ops.create_event(
            self.session,
            self.identity,
            title=title,
            start_time=start_time,
            end_time=end_time,
            description=description,
            participants=participants,
            recurrence=recurrence,
        )
        return EventSchema.model_validate(result)

    def get_event(self, event_id: str) -> Optional[EventSchema]:
        """Get an event by ID, or None if it does not exist."""
        result = self.session.get(Event, event_id)
        return EventSchema.model_validate(result) if result else None

    def update_event(
        self,
        event_id: str,
        *,
        title: Optional[str] = None,
        description: Optional[str] = None,
        start_time: datetime | str | None = None,
        end_time: datetime | str | None = None,
        add_participants: Iterable[str] = (),
        remove_participants: Iterable[str] = (),
        scope: RecurrenceScope | str = RecurrenceScope.thisEvent,
    ) -> EventSchema:
        """Update with the given scope; see operations.update_event."""
        result = ops.update_event(
            self.session,
            self.identity,
            event_id,
            title=title,
            description=description,
            start_time=start_time,
            end_time=end_time,
            add_participants=add_participants,
            remove_participants=remove_participants,
            scope=scope,
        )
        return EventSchema.model_validate(result)

    def delete_event(
        self,
        event_id: str,
        scope: RecurrenceScope | str = RecurrenceScope.thisEvent,
    ) -> DeleteOutcomeSchema:
        """Delete with the given scope; see operations.delete_event."""
        result = ops.delete_event(self.session, self.identity, event_id, scope)
        return DeleteOutcomeSchema.model_validate(result)

    def list_my_events(self) -> list[EventSeriesSchema]:
        """Series visible to the acting identity."""
        return [
            EventSeriesSchema.model_validate(series)
            for series in ops.list_my_events(self.session, self.identity)
        ]

    def count_events(self) -> int:
        """Number of event records in the store, orphans and tombstones included."""
        return len(ops.find_events(self.session))
