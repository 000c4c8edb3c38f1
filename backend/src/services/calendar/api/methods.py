"""
Recurring Event Service - Endpoint Handlers

This module implements the REST endpoints for events and event series.
Uses Starlette for HTTP handling with SQLAlchemy for database operations.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Awaitable
from functools import wraps

logger = logging.getLogger(__name__)

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route
from starlette import status

from sqlalchemy.orm import Session

from ..database import (
    create_event,
    get_event,
    update_event,
    delete_event,
    list_my_events,
)
from ..core import (
    CalendarAPIError,
    Identity,
    InternalError,
    InvalidFieldError,
    PermissionDeniedError,
    UnauthorizedError,
    ValidationError,
    can_edit,
    handle_exception,
)
from ..core.serializers import (
    serialize_delete_outcome,
    serialize_event,
    serialize_series_list,
)


# ============================================================================
# REQUEST UTILITIES
# ============================================================================


def _get_session(request: Request) -> Session:
    """
    Get the database session from request state.

    The IdentityMiddleware sets request.state.db_session to a session that
    is committed once the request completes.
    """
    session = getattr(request.state, "db_session", None)
    if session is None:
        raise UnauthorizedError("Missing database session")
    return session


def get_identity(request: Request) -> Identity:
    """Extract the caller's identity from request state."""
    identity = getattr(request.state, "identity", None)
    if identity is None:
        raise UnauthorizedError("Missing user authentication")
    return identity


async def get_request_body(request: Request) -> dict[str, Any]:
    """Parse JSON body from request, return empty dict if no body."""
    try:
        body = await request.body()
        if not body:
            return {}
        parsed = json.loads(body)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON: {e}")
    if not isinstance(parsed, dict):
        raise ValidationError("Request body must be a JSON object")
    return parsed


def get_string_list(body: dict[str, Any], name: str) -> list[str]:
    """Read an optional list-of-user-ID field from a request body."""
    value = body.get(name)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise InvalidFieldError(name, f"{name} must be a list of user IDs")
    return value


# ============================================================================
# ERROR HANDLING WRAPPER
# ============================================================================


def api_handler(
    handler: Callable[[Request], Awaitable[JSONResponse]]
) -> Callable[[Request], Awaitable[JSONResponse]]:
    """
    Decorator that wraps API handlers with:
    - Database session access (from IdentityMiddleware)
    - Error handling and conversion to JSON responses
    - Rollback of the request's writes when the handler fails
    """
    @wraps(handler)
    async def wrapper(request: Request) -> JSONResponse:
        session = getattr(request.state, "db_session", None)
        if session is None:
            return InternalError("Missing database session").to_response()

        try:
            request.state.db = session
            return await handler(request)
        except CalendarAPIError as e:
            session.rollback()
            return handle_exception(e)
        except Exception as e:
            session.rollback()
            # Log full exception server-side; the client gets a sanitized error
            logger.exception("Unhandled exception in calendar API: %s", e)
            return InternalError("Internal server error").to_response()

    return wrapper


# ============================================================================
# EVENT ENDPOINTS
# ============================================================================


@api_handler
async def events_insert(request: Request) -> JSONResponse:
    """
    POST /events

    Creates a base event owned by the caller.

    Body:
    - title, startTime, endTime (required)
    - description, participants, recurrence (none|daily|weekly|monthly)
    """
    session: Session = request.state.db
    identity = get_identity(request)
    body = await get_request_body(request)

    event = create_event(
        session,
        identity,
        title=body.get("title"),
        description=body.get("description"),
        start_time=body.get("startTime"),
        end_time=body.get("endTime"),
        participants=get_string_list(body, "participants"),
        recurrence=body.get("recurrence", "none"),
    )
    return JSONResponse(
        content=serialize_event(event),
        status_code=status.HTTP_201_CREATED,
    )


@api_handler
async def events_get(request: Request) -> JSONResponse:
    """
    GET /events/{eventId}

    Returns an event the caller created, participates in, or administers.
    """
    session: Session = request.state.db
    identity = get_identity(request)
    event_id = request.path_params["eventId"]

    event = get_event(session, event_id)
    if not (can_edit(identity, event) or identity.user_id in event.participants):
        raise PermissionDeniedError("No permission to view this event")

    return JSONResponse(content=serialize_event(event), status_code=status.HTTP_200_OK)


@api_handler
async def events_update(request: Request) -> JSONResponse:
    """
    PUT /events/{eventId}

    Updates an event, one occurrence of a series, or a whole series.

    Body:
    - title, description, startTime, endTime (optional deltas)
    - addParticipants, removeParticipants (optional lists)
    - recurrenceUpdateOption: thisEvent (default) | thisAndFollowing | allEvents
    """
    session: Session = request.state.db
    identity = get_identity(request)
    event_id = request.path_params["eventId"]
    body = await get_request_body(request)

    event = update_event(
        session,
        identity,
        event_id,
        title=body.get("title"),
        description=body.get("description"),
        start_time=body.get("startTime"),
        end_time=body.get("endTime"),
        add_participants=get_string_list(body, "addParticipants"),
        remove_participants=get_string_list(body, "removeParticipants"),
        scope=body.get("recurrenceUpdateOption", "thisEvent"),
    )
    return JSONResponse(content=serialize_event(event), status_code=status.HTTP_200_OK)


@api_handler
async def events_delete(request: Request) -> JSONResponse:
    """
    DELETE /events/{eventId}

    Deletes an event, one occurrence of a series, or a whole series.

    Body or query:
    - recurrenceDeleteOption: thisEvent (default) | thisAndFollowing | allEvents
    """
    session: Session = request.state.db
    identity = get_identity(request)
    event_id = request.path_params["eventId"]
    body = await get_request_body(request)

    if "recurrenceDeleteOption" in body:
        scope = body["recurrenceDeleteOption"]
    else:
        scope = request.query_params.get("recurrenceDeleteOption", "thisEvent")
    outcome = delete_event(session, identity, event_id, scope)
    return JSONResponse(
        content=serialize_delete_outcome(outcome), status_code=status.HTTP_200_OK
    )


@api_handler
async def my_events_list(request: Request) -> JSONResponse:
    """
    GET /myevents

    Returns the caller's events grouped as
    [{seriesId, baseEvent, overrides}], orphaned overrides omitted.
    """
    session: Session = request.state.db
    identity = get_identity(request)

    series_list = list_my_events(session, identity)
    return JSONResponse(
        content=serialize_series_list(series_list), status_code=status.HTTP_200_OK
    )


# ============================================================================
# ROUTES
# ============================================================================


event_routes = [
    # POST /events - Create a new event or series
    Route("/events", events_insert, methods=["POST"]),

    # GET/PUT/DELETE /events/{eventId}
    Route("/events/{eventId}", events_get, methods=["GET"]),
    Route("/events/{eventId}", events_update, methods=["PUT"]),
    Route("/events/{eventId}", events_delete, methods=["DELETE"]),

    # GET /myevents - Caller's events grouped by series
    Route("/myevents", my_events_list, methods=["GET"]),
]

# Export all routes
routes = event_routes
