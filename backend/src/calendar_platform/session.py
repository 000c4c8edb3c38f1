from __future__ import annotations

import logging
from contextlib import contextmanager

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool

logger = logging.getLogger(__name__)


class SessionManager:
    """
    Process-wide handle on the event store.

    Created once at startup and disposed at shutdown; request handlers get
    their own session from it and never touch the engine directly.
    """

    def __init__(
        self,
        base_engine: Engine,
    ):
        self.base_engine = base_engine
        self._sessionmaker = sessionmaker(bind=base_engine, expire_on_commit=False)

    @classmethod
    def from_url(cls, db_url: str, *, echo: bool = False) -> "SessionManager":
        if db_url.startswith("sqlite"):
            # Requests may run on a different thread than the one that
            # opened the pooled connection.
            engine = create_engine(
                db_url, echo=echo, connect_args={"check_same_thread": False}
            )
        elif "-pooler" in db_url or "pgbouncer=true" in db_url:
            # The external pooler manages connections; avoid double pooling
            engine = create_engine(db_url, echo=echo, poolclass=NullPool)
        else:
            engine = create_engine(
                db_url, echo=echo, pool_size=20, max_overflow=40, pool_pre_ping=True
            )
        logger.info("Event store engine created for %s", engine.url.render_as_string())
        return cls(engine)

    def get_session(self) -> Session:
        """
        Returns a raw session.
        Caller MUST manually commit/rollback and close the session.
        Use with_session() instead for automatic cleanup.
        """
        return self._sessionmaker()

    @contextmanager
    def with_session(self):
        session = self.get_session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.base_engine.dispose()
        logger.info("Event store engine disposed")
