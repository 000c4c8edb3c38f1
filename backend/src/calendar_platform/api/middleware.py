from __future__ import annotations

import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from calendar_platform.session import SessionManager
from calendar_platform.api.auth import get_identity
from services.calendar.core.errors import (
    InternalError,
    ServiceUnavailableError,
    UnauthorizedError,
)

logger = logging.getLogger(__name__)

PUBLIC_PATHS = {"/api/health"}


class IdentityMiddleware(BaseHTTPMiddleware):
    """
    Resolves the caller and opens the request's database session.

    Everything a handler writes is committed together when the request
    completes and rolled back if it raises.
    """

    def __init__(self, app, *, session_manager: SessionManager):
        super().__init__(app)
        self.session_manager = session_manager

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path in PUBLIC_PATHS:
            return await call_next(request)

        try:
            identity = await get_identity(request.headers)
        except PermissionError as exc:
            return UnauthorizedError(str(exc)).to_response()
        except RuntimeError as exc:
            logger.error(f"Control plane error: {exc}")
            return ServiceUnavailableError(str(exc)).to_response()

        request.state.identity = identity
        try:
            with self.session_manager.with_session() as session:
                request.state.db_session = session
                return await call_next(request)
        except Exception:
            logger.exception("Request %s %s failed", request.method, request.url.path)
            return InternalError("Internal server error").to_response()
