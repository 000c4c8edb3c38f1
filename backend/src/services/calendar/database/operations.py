# Database operations for the recurring event service
# Event store primitives plus the series update/delete engines

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Iterator, Optional, assert_never

logger = logging.getLogger(__name__)
from sqlalchemy.orm import Session
from sqlalchemy import select, or_
from sqlalchemy.exc import DBAPIError, SQLAlchemyError

from .schema import (
    Event,
    EventParticipant,
    Recurrence,
    RecurrenceScope,
)
from ..core.utils import (
    apply_participant_delta,
    generate_event_id,
    parse_enum,
    parse_event_time,
    parse_text,
)
from ..core.errors import (
    EventNotFoundError,
    BaseEventNotFoundError,
    RequiredFieldError,
    StoreFailureError,
)
from ..core.permissions import Identity, check_can_edit
from ..core.series import EventSeries, group_events_into_series


# Overrides produced by single-occurrence or split edits; the only records a
# "this and following" sweep removes.
TAGGED_OVERRIDE_SCOPES = (RecurrenceScope.thisEvent, RecurrenceScope.thisAndFollowing)


# ============================================================================
# EVENT STORE
# ============================================================================


@contextmanager
def _store_errors() -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("Event store failure: %s", exc)
        # The driver message only; the statement and its parameters stay in the log
        message = str(exc.orig) if isinstance(exc, DBAPIError) else type(exc).__name__
        raise StoreFailureError(message) from exc


def visible_to(user_id: str):
    """Events the user created or participates in."""
    return or_(
        Event.creator == user_id,
        Event.participant_rows.any(EventParticipant.user_id == user_id),
    )


def in_series(base_id: str):
    """The base event and every override of it."""
    return or_(Event.id == base_id, Event.parent_event_id == base_id)


def overrides_of(base_id: str):
    return Event.parent_event_id == base_id


def following_occurrences(event: Event, base: Event) -> list[Any]:
    """
    Records swept by a "this and following" edit or delete.

    Matches the target itself or any override of the base that starts at or
    after the target and was tagged by an earlier occurrence-level edit.
    """
    return [
        or_(Event.id == event.id, Event.parent_event_id == base.id),
        Event.start_time >= event.start_time,
        Event.recurrence_update_option.in_(TAGGED_OVERRIDE_SCOPES),
    ]


def get_event(session: Session, event_id: str) -> Event:
    """Get an event by ID."""
    with _store_errors():
        event = session.get(Event, event_id)
    if event is None:
        raise EventNotFoundError(event_id)
    return event


def find_events(session: Session, *criteria: Any) -> list[Event]:
    """Fetch events matching all criteria, ordered by start time."""
    query = select(Event).order_by(Event.start_time, Event.id)
    if criteria:
        query = query.where(*criteria)
    with _store_errors():
        return list(session.execute(query).scalars().all())


def delete_events_where(session: Session, *criteria: Any) -> int:
    """Delete every event matching all criteria. Returns the number removed."""
    events = find_events(session, *criteria)
    with _store_errors():
        for event in events:
            session.delete(event)
        session.flush()
    return len(events)


def save_event(session: Session, event: Event) -> Event:
    """Persist a new or modified event."""
    with _store_errors():
        session.add(event)
        session.flush()
    return event


def _new_event(participants: Iterable[str] = (), **fields: Any) -> Event:
    event = Event(id=generate_event_id(), **fields)
    event.set_participants(set(participants))
    return event


# ============================================================================
# SERIES RESOLUTION
# ============================================================================


def resolve_base_event(session: Session, event: Event) -> Event:
    """
    Find the base event of the series ``event`` belongs to.

    Raises:
        BaseEventNotFoundError: If the override's base no longer exists
    """
    if event.parent_event_id is None:
        return event

    with _store_errors():
        base = session.get(Event, event.parent_event_id)
    if base is None:
        raise BaseEventNotFoundError(event.parent_event_id)
    return base


# ============================================================================
# EVENT OPERATIONS
# ============================================================================


def create_event(
    session: Session,
    identity: Identity,
    *,
    title: Optional[str],
    start_time: datetime | str | None,
    end_time: datetime | str | None,
    description: Optional[str] = None,
    participants: Iterable[str] = (),
    recurrence: Recurrence | str | None = Recurrence.none,
) -> Event:
    """Create a new base event owned by the caller."""
    title = parse_text(title, "title")
    description = parse_text(description, "description")
    if not title:
        raise RequiredFieldError("title")
    start = parse_event_time(start_time, "startTime")
    if start is None:
        raise RequiredFieldError("startTime")
    end = parse_event_time(end_time, "endTime")
    if end is None:
        raise RequiredFieldError("endTime")
    pattern = parse_enum(Recurrence, recurrence, "recurrence")

    event = _new_event(
        title=title,
        description=description,
        start_time=start,
        end_time=end,
        creator=identity.user_id,
        recurrence=pattern,
        participants=participants,
    )
    save_event(session, event)
    logger.debug("Created event %s (recurrence=%s)", event.id, pattern.value)
    return event


def list_my_events(session: Session, identity: Identity) -> list[EventSeries[Event]]:
    """Series the caller created or participates in, orphans excluded."""
    events = find_events(session, visible_to(identity.user_id))
    return group_events_into_series(events)


# ============================================================================
# UPDATE ENGINE
# ============================================================================


@dataclass
class EventChanges:
    """Field and participant deltas of an update; None means "not supplied"."""

    title: Optional[str] = None
    description: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    add_participants: list[str] = field(default_factory=list)
    remove_participants: list[str] = field(default_factory=list)

    def participants_for(self, source: Event) -> set[str]:
        return apply_participant_delta(
            source.participants, self.add_participants, self.remove_participants
        )

    def copy_fields(self, source: Event) -> dict[str, Any]:
        """Source fields with the supplied deltas laid over them."""
        return {
            "title": self.title if self.title is not None else source.title,
            "description": (
                self.description if self.description is not None else source.description
            ),
            "start_time": self.start_time or source.start_time,
            "end_time": self.end_time or source.end_time,
            "participants": self.participants_for(source),
        }

    def apply_to(self, event: Event) -> None:
        if self.title is not None:
            event.title = self.title
        if self.description is not None:
            event.description = self.description
        if self.start_time is not None:
            event.start_time = self.start_time
        if self.end_time is not None:
            event.end_time = self.end_time
        event.set_participants(self.participants_for(event))


def update_event(
    session: Session,
    identity: Identity,
    event_id: str,
    *,
    title: Optional[str] = None,
    description: Optional[str] = None,
    start_time: datetime | str | None = None,
    end_time: datetime | str | None = None,
    add_participants: Iterable[str] = (),
    remove_participants: Iterable[str] = (),
    scope: RecurrenceScope | str = RecurrenceScope.thisEvent,
) -> Event:
    """
    Update an event, a single occurrence of a series, or a whole series.

    Returns the record that now carries the change: the event itself, a new
    override, the new series root, or the updated base.

    Raises:
        ValidationError: If the scope or a timestamp is invalid
        EventNotFoundError: If the target event does not exist
        BaseEventNotFoundError: If the target's base does not exist
        PermissionDeniedError: If the caller may not edit the target or its base
    """
    scope = parse_enum(RecurrenceScope, scope, "recurrenceUpdateOption")
    changes = EventChanges(
        title=parse_text(title, "title"),
        description=parse_text(description, "description"),
        start_time=parse_event_time(start_time, "startTime"),
        end_time=parse_event_time(end_time, "endTime"),
        add_participants=list(add_participants),
        remove_participants=list(remove_participants),
    )

    event = get_event(session, event_id)
    check_can_edit(identity, event, "No permission to update this event")

    match scope:
        case RecurrenceScope.thisEvent:
            return _update_this_event(session, event, changes)
        case RecurrenceScope.thisAndFollowing:
            return _update_this_and_following(session, identity, event, changes)
        case RecurrenceScope.allEvents:
            return _update_all_events(session, identity, event, changes)
        case _:
            assert_never(scope)


def _update_in_place(session: Session, event: Event, changes: EventChanges) -> Event:
    changes.apply_to(event)
    save_event(session, event)
    logger.debug("Updated event %s in place", event.id)
    return event


def _update_this_event(session: Session, event: Event, changes: EventChanges) -> Event:
    if event.recurrence == Recurrence.none or event.is_override:
        return _update_in_place(session, event, changes)

    override = _new_event(
        creator=event.creator,
        recurrence=Recurrence.none,
        parent_event_id=event.id,
        recurrence_update_option=RecurrenceScope.thisEvent,
        **changes.copy_fields(event),
    )
    save_event(session, override)
    logger.info("Created override %s for series %s", override.id, event.id)
    return override


def _update_this_and_following(
    session: Session, identity: Identity, event: Event, changes: EventChanges
) -> Event:
    if event.is_standalone:
        return _update_in_place(session, event, changes)

    base = resolve_base_event(session, event)
    check_can_edit(identity, base, "No permission to update this event series")

    new_start = changes.start_time or event.start_time
    new_end = changes.end_time or event.end_time

    removed = delete_events_where(session, *following_occurrences(event, base))

    base.recurrence = Recurrence.none
    save_event(session, base)

    # TODO: carry the old pattern over to the new series once callers no
    # longer depend on splits producing a single non-recurring event.
    # The recurrence is read after the cutoff above, so it is always none.
    fields = changes.copy_fields(base)
    fields.update(start_time=new_start, end_time=new_end)
    new_series = _new_event(
        creator=base.creator,
        recurrence=base.recurrence,
        **fields,
    )
    save_event(session, new_series)
    logger.info(
        "Split series %s at %s into %s (%d overrides removed)",
        base.id,
        event.start_time.isoformat(),
        new_series.id,
        removed,
    )
    return new_series


def _update_all_events(
    session: Session, identity: Identity, event: Event, changes: EventChanges
) -> Event:
    base = resolve_base_event(session, event)
    check_can_edit(identity, base, "No permission to update this event series")

    changes.apply_to(base)
    save_event(session, base)

    # Override history, cancellations included, no longer applies.
    removed = delete_events_where(session, overrides_of(base.id))
    logger.info("Updated series %s, discarded %d overrides", base.id, removed)
    return base


# ============================================================================
# DELETE ENGINE
# ============================================================================


@dataclass
class DeleteOutcome:
    """Result of a delete request."""

    scope: RecurrenceScope
    message: str
    deleted_count: int = 0
    tombstone: Optional[Event] = None


def delete_event(
    session: Session,
    identity: Identity,
    event_id: str,
    scope: RecurrenceScope | str = RecurrenceScope.thisEvent,
) -> DeleteOutcome:
    """
    Delete an event, a single occurrence of a series, or a whole series.

    Raises:
        ValidationError: If the scope is invalid
        EventNotFoundError: If the target event does not exist
        BaseEventNotFoundError: If the target's base does not exist
        PermissionDeniedError: If the caller may not edit the target or its base
    """
    scope = parse_enum(RecurrenceScope, scope, "recurrenceDeleteOption")

    event = get_event(session, event_id)
    check_can_edit(identity, event, "No permission to delete this event")

    match scope:
        case RecurrenceScope.thisEvent:
            return _delete_this_event(session, event)
        case RecurrenceScope.thisAndFollowing:
            return _delete_this_and_following(session, identity, event)
        case RecurrenceScope.allEvents:
            return _delete_all_events(session, identity, event)
        case _:
            assert_never(scope)


def _delete_this_event(session: Session, event: Event) -> DeleteOutcome:
    if event.recurrence == Recurrence.none or event.is_override:
        deleted = delete_events_where(session, Event.id == event.id)
        logger.debug("Deleted event %s", event.id)
        return DeleteOutcome(
            scope=RecurrenceScope.thisEvent,
            message="Event deleted",
            deleted_count=deleted,
        )

    tombstone = _new_event(
        title=event.title,
        description=event.description,
        start_time=event.start_time,
        end_time=event.end_time,
        participants=event.participants,
        creator=event.creator,
        recurrence=Recurrence.none,
        parent_event_id=event.id,
        recurrence_update_option=RecurrenceScope.thisEvent,
        cancelled=True,
    )
    save_event(session, tombstone)
    logger.info("Cancelled occurrence of series %s with %s", event.id, tombstone.id)
    return DeleteOutcome(
        scope=RecurrenceScope.thisEvent,
        message="This event occurrence cancelled",
        tombstone=tombstone,
    )


def _delete_this_and_following(
    session: Session, identity: Identity, event: Event
) -> DeleteOutcome:
    base = resolve_base_event(session, event)
    check_can_edit(identity, base, "No permission to delete this event series")

    cutoff = event.start_time
    deleted = delete_events_where(session, *following_occurrences(event, base))

    base.recurrence = Recurrence.none
    save_event(session, base)
    logger.info(
        "Ended series %s at %s (%d records deleted)", base.id, cutoff.isoformat(), deleted
    )
    return DeleteOutcome(
        scope=RecurrenceScope.thisAndFollowing,
        message="This and following events deleted",
        deleted_count=deleted,
    )


def _delete_all_events(session: Session, identity: Identity, event: Event) -> DeleteOutcome:
    base = resolve_base_event(session, event)
    check_can_edit(identity, base, "No permission to delete this event series")

    deleted = delete_events_where(session, in_series(base.id))
    logger.info("Deleted series %s (%d records)", base.id, deleted)
    return DeleteOutcome(
        scope=RecurrenceScope.allEvents,
        message="All events in series deleted",
        deleted_count=deleted,
    )
