"""
Tests for event creation, lookup and series listing against SQLite.
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from services.calendar.core.errors import (
    EventNotFoundError,
    InvalidFieldError,
    RequiredFieldError,
    StoreFailureError,
    ValidationError,
)
from services.calendar.core.permissions import Identity
from services.calendar.database import Event, Recurrence, RecurrenceScope
from services.calendar.database import operations


@pytest.mark.parametrize("recurrence", ["none", "daily", "weekly", "monthly"])
def test_create_stores_recurrence_exactly(ops, recurrence):
    event = ops.create_event(
        title="Review",
        start_time="2024-03-01T10:00:00Z",
        end_time="2024-03-01T11:00:00Z",
        recurrence=recurrence,
    )

    stored = ops.get_event(event.id)
    assert stored.recurrence == Recurrence(recurrence)
    assert stored.parent_event_id is None
    assert stored.recurrence_update_option is None
    assert stored.cancelled is False


@pytest.mark.parametrize("recurrence", ["yearly", "Weekly", "", "hourly"])
def test_create_rejects_unknown_recurrence_and_persists_nothing(ops, recurrence):
    with pytest.raises(ValidationError) as exc_info:
        ops.create_event(
            title="Review",
            start_time="2024-03-01T10:00:00Z",
            end_time="2024-03-01T11:00:00Z",
            recurrence=recurrence,
        )

    assert isinstance(exc_info.value, InvalidFieldError)
    assert exc_info.value.location == "recurrence"
    assert ops.count_events() == 0


@pytest.mark.parametrize(
    "missing,kwargs",
    [
        ("title", {"title": "", "start_time": "2024-03-01T10:00:00Z", "end_time": "2024-03-01T11:00:00Z"}),
        ("startTime", {"title": "A", "start_time": None, "end_time": "2024-03-01T11:00:00Z"}),
        ("endTime", {"title": "A", "start_time": "2024-03-01T10:00:00Z", "end_time": None}),
    ],
)
def test_create_requires_title_and_times(session, owner, missing, kwargs):
    with pytest.raises(RequiredFieldError) as exc_info:
        operations.create_event(session, owner, **kwargs)
    assert exc_info.value.location == missing


def test_create_rejects_unparseable_timestamp(ops):
    with pytest.raises(InvalidFieldError):
        ops.create_event(title="A", start_time="next tuesday-ish", end_time="2024-03-01T11:00:00Z")


def test_create_normalizes_timestamps_to_utc(ops):
    event = ops.create_event(
        title="Offset",
        start_time="2024-03-01T10:00:00+02:00",
        end_time=datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc),
    )
    assert event.start_time == datetime(2024, 3, 1, 8, 0)
    assert event.end_time == datetime(2024, 3, 1, 9, 0)


def test_create_sets_creator_and_deduplicates_participants(ops):
    event = ops.create_event(
        title="Planning",
        start_time=datetime(2024, 3, 1, 10),
        end_time=datetime(2024, 3, 1, 11),
        participants=["u2", "u3", "u2"],
    )
    assert event.creator == "u1"
    assert event.participants == {"u2", "u3"}


def test_get_event_raises_for_unknown_id(session):
    with pytest.raises(EventNotFoundError) as exc_info:
        operations.get_event(session, "doesnotexist")
    assert exc_info.value.status_code == 404


def test_example_scenario_override_listed_with_its_series(ops, weekly_standup):
    """Weekly E1 plus a thisEvent edit lists as one series with one override."""
    override = ops.update_event(
        weekly_standup.id,
        title="Standup (moved)",
        start_time=datetime(2024, 1, 15, 10, 0),
        end_time=datetime(2024, 1, 15, 10, 15),
        scope="thisEvent",
    )

    base_after = ops.get_event(weekly_standup.id)
    assert base_after.title == "Standup"
    assert base_after.recurrence == Recurrence.weekly

    assert override.parent_event_id == weekly_standup.id
    assert override.recurrence == Recurrence.none
    assert override.recurrence_update_option == RecurrenceScope.thisEvent
    assert override.title == "Standup (moved)"

    series = ops.list_my_events()
    assert len(series) == 1
    assert series[0].series_id == weekly_standup.id
    assert series[0].base_event.id == weekly_standup.id
    assert [o.id for o in series[0].overrides] == [override.id]


def test_listing_includes_events_where_caller_participates(ops, weekly_standup):
    ops.create_event(
        title="Private",
        start_time=datetime(2024, 1, 2, 9),
        end_time=datetime(2024, 1, 2, 10),
    )

    as_participant = ops.as_user("u2").list_my_events()
    assert [s.series_id for s in as_participant] == [weekly_standup.id]

    assert ops.as_user("stranger").list_my_events() == []


def test_listing_drops_series_whose_base_was_deleted(ops, weekly_standup):
    """Overrides that outlive their base stay in storage but are not listed."""
    early = ops.update_event(
        weekly_standup.id,
        title="Early",
        start_time=datetime(2024, 1, 8, 9),
        end_time=datetime(2024, 1, 8, 9, 15),
    )
    late = ops.update_event(
        weekly_standup.id,
        title="Late",
        start_time=datetime(2024, 1, 22, 9),
        end_time=datetime(2024, 1, 22, 9, 15),
    )

    # Ending the series at the late override leaves the base non-recurring,
    # so a single-event delete of the base no longer cascades.
    ops.delete_event(late.id, scope="thisAndFollowing")
    outcome = ops.delete_event(weekly_standup.id, scope="thisEvent")
    assert outcome.deleted_count == 1

    assert ops.get_event(weekly_standup.id) is None
    orphan = ops.get_event(early.id)
    assert orphan is not None
    assert orphan.parent_event_id == weekly_standup.id

    assert ops.list_my_events() == []
    assert ops.count_events() == 1


def test_store_failure_is_wrapped(tmp_path):
    """Errors raised by the database surface as StoreFailureError."""
    engine = create_engine(f"sqlite:///{tmp_path / 'empty.db'}")
    session = sessionmaker(bind=engine)()
    try:
        with pytest.raises(StoreFailureError) as exc_info:
            operations.get_event(session, "anything")
        assert exc_info.value.status_code == 500
        assert "no such table" in exc_info.value.message
    finally:
        session.close()
        engine.dispose()


def test_event_helpers_reflect_series_role(session, owner):
    base = operations.create_event(
        session,
        owner,
        title="Base",
        start_time=datetime(2024, 1, 1, 9),
        end_time=datetime(2024, 1, 1, 10),
        recurrence=Recurrence.daily,
    )
    override = Event(
        id="override00001",
        title="Override",
        start_time=datetime(2024, 1, 2, 9),
        end_time=datetime(2024, 1, 2, 10),
        creator=owner.user_id,
        recurrence=Recurrence.none,
        parent_event_id=base.id,
    )
    session.add(override)
    session.flush()

    assert not base.is_standalone and not base.is_override
    assert override.is_override and not override.is_standalone
    assert operations.resolve_base_event(session, override) is base
    assert operations.resolve_base_event(session, base) is base

    standalone = operations.create_event(
        session,
        Identity(user_id="u9"),
        title="Solo",
        start_time=datetime(2024, 1, 3, 9),
        end_time=datetime(2024, 1, 3, 10),
    )
    assert standalone.is_standalone


def test_create_rejects_explicit_null_recurrence(ops):
    with pytest.raises(InvalidFieldError) as exc_info:
        ops.create_event(
            title="Null pattern",
            start_time=datetime(2024, 1, 1, 9),
            end_time=datetime(2024, 1, 1, 10),
            recurrence=None,
        )
    assert exc_info.value.location == "recurrence"
    assert ops.count_events() == 0


@pytest.mark.parametrize(
    "fields, location",
    [
        ({"title": 42}, "title"),
        ({"title": "Ok", "description": ["not", "text"]}, "description"),
    ],
)
def test_create_rejects_non_string_text_fields(ops, fields, location):
    with pytest.raises(InvalidFieldError) as exc_info:
        ops.create_event(
            start_time=datetime(2024, 1, 1, 9),
            end_time=datetime(2024, 1, 1, 10),
            **fields,
        )
    assert exc_info.value.location == location
    assert ops.count_events() == 0


def test_store_failure_message_omits_statement(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'empty.db'}")
    session = sessionmaker(bind=engine)()
    try:
        with pytest.raises(StoreFailureError) as exc_info:
            operations.find_events(session)
        message = exc_info.value.message
        assert message == "no such table: calendar_events"
        assert "SELECT" not in message
    finally:
        session.close()
        engine.dispose()
