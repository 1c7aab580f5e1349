import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from astra_pos.config import get_settings

# Base class for models
Base = declarative_base()


def _engine_options(url: str) -> dict:
    if not url.startswith("sqlite"):
        # Connection pooling for a real database server
        return {"pool_size": 10, "max_overflow": 20, "pool_pre_ping": True}

    options = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection, otherwise every session sees an empty database
        options["poolclass"] = StaticPool
    return options


class Database:
    """
    The backing store for catalog, sale history and user directory.

    Constructed once per process and handed to every service, the session
    authenticator and the HTTP app. Each unit of work runs inside
    ``session()``, which holds an exclusive re-entrant lock for its whole
    duration. That lock is what makes the engine's validate, decrement and
    append sequence serializable: two sales competing for the last unit of
    stock can never both pass validation.
    """

    def __init__(self, url: Optional[str] = None, echo: bool = False):
        self.url = url or get_settings().DATABASE_URL
        self.engine = create_engine(self.url, echo=echo, **_engine_options(self.url))
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        self._lock = threading.RLock()

    def create_all(self) -> None:
        # Register every table on Base.metadata
        from astra_pos.models import product, sale, user  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def drop_all(self) -> None:
        Base.metadata.drop_all(bind=self.engine)

    @contextmanager
    def locked(self) -> Iterator[None]:
        """Hold the store lock so several reads see one consistent state."""
        with self._lock:
            yield

    @contextmanager
    def session(self) -> Iterator[Session]:
        """
        Open a session under the store lock.

        Commits are left to the caller; anything raised inside the block
        rolls the session back before it propagates.
        """
        with self.locked():
            db = self.SessionLocal()
            try:
                yield db
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

    def dispose(self) -> None:
        self.engine.dispose()


def get_database(request: Request) -> Database:
    """Dependency returning the process-wide store attached to the app."""
    return request.app.state.database
