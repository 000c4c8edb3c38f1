from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .schema import Recurrence, RecurrenceScope


class EventSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str | None = None
    start_time: datetime
    end_time: datetime
    participants: set[str] = Field(default_factory=set)
    creator: str
    recurrence: Recurrence = Recurrence.none
    parent_event_id: str | None = None
    recurrence_update_option: RecurrenceScope | None = None
    cancelled: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


class EventSeriesSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    series_id: str
    base_event: EventSchema
    overrides: list[EventSchema] = Field(default_factory=list)


class DeleteOutcomeSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    scope: RecurrenceScope
    message: str
    deleted_count: int = 0
    tombstone: EventSchema | None = None
