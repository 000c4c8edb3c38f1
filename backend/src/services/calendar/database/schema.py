# Schema for the recurring event service
# One table of events plus their participant sets

from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional
from sqlalchemy import (
    String,
    Text,
    Boolean,
    DateTime,
    ForeignKey,
    Enum,
    Index,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from .base import Base
from ..core.utils import calendar_now


# ============================================================================
# ENUMS
# ============================================================================


class Recurrence(PyEnum):
    """Repeat pattern of a base event."""

    none = "none"
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"


class RecurrenceScope(PyEnum):
    """How far an update or delete propagates across a series."""

    thisEvent = "thisEvent"
    thisAndFollowing = "thisAndFollowing"
    allEvents = "allEvents"


# ============================================================================
# MODELS
# ============================================================================


class Event(Base):
    """
    Event resource.

    A record without ``parent_event_id`` is a base event: standalone when its
    recurrence is ``none``, otherwise the root of a series. A record with
    ``parent_event_id`` is an override of one occurrence of that series.
    ``parent_event_id`` is a plain indexed column rather than a foreign key:
    overrides may outlive their base.
    """

    __tablename__ = "calendar_events"

    id: Mapped[str] = mapped_column(String(1024), primary_key=True)
    title: Mapped[str] = mapped_column(String(1024), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    creator: Mapped[str] = mapped_column(String(255), nullable=False)
    recurrence: Mapped[Recurrence] = mapped_column(
        Enum(Recurrence, name="event_recurrence"),
        default=Recurrence.none,
        nullable=False,
    )
    parent_event_id: Mapped[Optional[str]] = mapped_column(
        String(1024), nullable=True
    )
    recurrence_update_option: Mapped[Optional[RecurrenceScope]] = mapped_column(
        Enum(RecurrenceScope, name="event_recurrence_scope"),
        nullable=True,
    )
    # Set on overrides that mark an occurrence as skipped
    cancelled: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=calendar_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=calendar_now, onupdate=calendar_now
    )

    # Relationships
    participant_rows: Mapped[list["EventParticipant"]] = relationship(
        back_populates="event",
        cascade="all,delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_calendar_events_parent", "parent_event_id"),
        Index("ix_calendar_events_creator", "creator"),
        Index("ix_calendar_events_start", "start_time"),
    )

    @property
    def participants(self) -> set[str]:
        return {row.user_id for row in self.participant_rows}

    @property
    def is_override(self) -> bool:
        return self.parent_event_id is not None

    @property
    def is_standalone(self) -> bool:
        return self.parent_event_id is None and self.recurrence == Recurrence.none

    def set_participants(self, user_ids: set[str]) -> None:
        """Replace the participant set, touching only rows that change."""
        for row in list(self.participant_rows):
            if row.user_id not in user_ids:
                self.participant_rows.remove(row)
        existing = self.participants
        for user_id in sorted(user_ids - existing):
            self.participant_rows.append(EventParticipant(user_id=user_id))


class EventParticipant(Base):
    """Membership of one user in an event's participant set."""

    __tablename__ = "calendar_event_participants"

    event_id: Mapped[str] = mapped_column(
        ForeignKey("calendar_events.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)

    event: Mapped["Event"] = relationship(back_populates="participant_rows")

    __table_args__ = (Index("ix_calendar_event_participants_user", "user_id"),)
