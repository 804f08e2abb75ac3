"""Database setup for storing user accounts."""

import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

logger = logging.getLogger(__name__)

Base = declarative_base()


class Database:
    """Own the engine and session factory of one relational store.

    The engine keeps a pool of connections that is safe to share between
    request threads. Create one instance per process and hand it to the
    application factory.
    """

    def __init__(self, url: str, **engine_options) -> None:
        if url.startswith("sqlite"):
            # Sessions are used from the server's worker threads.
            connect_args = engine_options.setdefault("connect_args", {})
            connect_args.setdefault("check_same_thread", False)
        self.url = url
        self.engine = create_engine(url, future=True, **engine_options)
        self.SessionLocal = sessionmaker(
            bind=self.engine,
            autoflush=False,
            autocommit=False,
            expire_on_commit=False,
            future=True,
        )

    def session(self) -> Session:
        return self.SessionLocal()

    def init_db(self) -> None:
        """Create database tables if they do not exist."""
        from .models import project, user  # noqa: F401

        logger.debug("creating missing tables on %s", self.engine.url)
        Base.metadata.create_all(bind=self.engine)

    def close(self) -> None:
        self.engine.dispose()
