"""
Series aggregation.

Rebuilds recurring series from a flat list of event records. A record with
``parent_event_id`` set is an override of the series rooted at that ID; a
record without one is the root (base) of its own series.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, Iterable, Optional, Protocol, TypeVar


class SeriesMember(Protocol):
    id: str
    parent_event_id: Optional[str]


T = TypeVar("T", bound=SeriesMember)


@dataclass
class EventSeries(Generic[T]):
    """A base event together with the overrides that point at it."""

    series_id: str
    base_event: Optional[T] = None
    overrides: list[T] = field(default_factory=list)


def series_key(event: SeriesMember) -> str:
    return event.parent_event_id or event.id


def group_events_into_series(events: Iterable[T]) -> list[EventSeries[T]]:
    """
    Group events by series key, keeping first-seen order.

    Groups whose base event is not part of the input (orphaned overrides,
    e.g. after the base was deleted on its own) are dropped from the result.
    """
    groups: dict[str, EventSeries[T]] = {}

    for event in events:
        key = series_key(event)
        group = groups.get(key)
        if group is None:
            group = groups[key] = EventSeries(series_id=key)

        if event.parent_event_id is None:
            group.base_event = event
        else:
            group.overrides.append(event)

    return [group for group in groups.values() if group.base_event is not None]
