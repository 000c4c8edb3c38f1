"""Edit permissions for calendar events."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from .errors import PermissionDeniedError


@dataclass(frozen=True)
class Identity:
    """The caller of a request, as resolved by the authentication layer."""

    user_id: str
    is_admin: bool = False


class HasCreator(Protocol):
    creator: str


def can_edit(identity: Identity, event: HasCreator) -> bool:
    """Admins may edit anything; everyone else only the events they created."""
    return identity.is_admin or identity.user_id == event.creator


def check_can_edit(
    identity: Identity,
    event: HasCreator,
    message: str = "No permission to update this event",
) -> None:
    """Raise PermissionDeniedError unless ``identity`` may edit ``event``."""
    if not can_edit(identity, event):
        raise PermissionDeniedError(message)
