# API endpoint handlers for the recurring event service
from .methods import (
    routes,
    event_routes,
    get_identity,
    get_request_body,
    api_handler,
    events_insert,
    events_get,
    events_update,
    events_delete,
    my_events_list,
)

__all__ = [
    "routes",
    "event_routes",
    "get_identity",
    "get_request_body",
    "api_handler",
    "events_insert",
    "events_get",
    "events_update",
    "events_delete",
    "my_events_list",
]
