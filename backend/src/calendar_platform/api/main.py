from contextlib import asynccontextmanager
from os import environ
from typing import Optional

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Mount, Route

from calendar_platform.api.auth import close_http_client
from calendar_platform.api.middleware import IdentityMiddleware
from calendar_platform.logging_config import setup_logging
from calendar_platform.session import SessionManager
from services.calendar.api import routes as calendar_routes
from services.calendar.database import Base

setup_logging()


async def health(request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


def create_app(
    database_url: Optional[str] = None,
    *,
    session_manager: Optional[SessionManager] = None,
) -> Starlette:
    if session_manager is None:
        db_url = database_url or environ["DATABASE_URL"]
        echo = environ.get("SQL_ECHO", "false").lower() == "true"
        session_manager = SessionManager.from_url(db_url, echo=echo)

    Base.metadata.create_all(session_manager.base_engine)

    @asynccontextmanager
    async def lifespan(app: Starlette):
        yield
        await close_http_client()
        session_manager.dispose()

    app = Starlette(
        routes=[
            Route("/api/health", health, methods=["GET"]),
            Mount("/api", routes=calendar_routes),
        ],
        middleware=[
            Middleware(IdentityMiddleware, session_manager=session_manager),
        ],
        lifespan=lifespan,
    )
    app.state.sessions = session_manager
    return app
