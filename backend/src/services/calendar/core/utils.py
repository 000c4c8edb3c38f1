# Utility functions for the recurring event service
# ID generation, RFC3339 datetime handling, enum parsing, participant deltas

import base64
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Optional, TypeVar

from dateutil import parser as date_parser

from .errors import InvalidFieldError

E = TypeVar("E", bound=Enum)


# ============================================================================
# ID GENERATION
# ============================================================================


def generate_event_id() -> str:
    """
    Generate an event ID.

    Uses UUID v4 encoded as lowercase base32hex (characters a-v and 0-9),
    which keeps IDs URL-safe and sortable-looking.
    """
    raw = uuid.uuid4().bytes
    encoded = base64.b32hexencode(raw).decode("ascii").lower().rstrip("=")
    return encoded  # 26 characters


# ============================================================================
# DATETIME HANDLING
# ============================================================================


def calendar_now() -> datetime:
    """Current time as naive UTC, the form stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(dt: datetime) -> datetime:
    """Normalize a datetime to naive UTC. Naive input is assumed to be UTC."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_rfc3339(value: str) -> datetime:
    """
    Parse an RFC3339 datetime string.

    Supports:
    - Full datetime: 2024-01-15T10:30:00Z
    - With offset: 2024-01-15T10:30:00-05:00
    - With microseconds: 2024-01-15T10:30:00.123456Z
    """
    return date_parser.isoparse(value)


def format_rfc3339(dt: datetime) -> str:
    """
    Format a datetime as RFC3339 string.

    If datetime is naive, assumes UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def parse_event_time(value: datetime | str | None, field: str) -> Optional[datetime]:
    """
    Coerce a request value into a stored timestamp.

    Accepts datetimes or RFC3339 strings; returns None when the value is None.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if not isinstance(value, str) or not value.strip():
        raise InvalidFieldError(field, f"{field} must be an RFC3339 timestamp")
    try:
        return to_naive_utc(parse_rfc3339(value))
    except (ValueError, OverflowError):
        raise InvalidFieldError(field, f"{field} must be an RFC3339 timestamp")


def parse_text(value: object, field: str) -> Optional[str]:
    """Accept a string field as-is; None means not supplied."""
    if value is None or isinstance(value, str):
        return value
    raise InvalidFieldError(field, f"{field} must be a string")


# ============================================================================
# ENUM PARSING
# ============================================================================


def parse_enum(enum_cls: type[E], value: E | str | None, field: str) -> E:
    """Resolve a raw option string into a member of a closed enum. None is rejected."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        allowed = ", ".join(member.value for member in enum_cls)
        raise InvalidFieldError(
            field, f"Invalid {field} value: {value!r} (expected one of: {allowed})"
        )


# ============================================================================
# PARTICIPANTS
# ============================================================================


def apply_participant_delta(
    current: Iterable[str],
    add: Iterable[str] = (),
    remove: Iterable[str] = (),
) -> set[str]:
    """
    Apply add/remove deltas to a participant set.

    Additions are applied first and removals second, so an ID present in
    both lists is absent from the result: ``(current | add) - remove``.
    """
    participants = set(current)
    participants.update(add)
    participants.difference_update(remove)
    return participants
