"""
Database connection and setup
SQLite cache database with SQLAlchemy
"""
import logging
import threading
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .tables import Base

logger = logging.getLogger("local.db")

# SQLite file in the working directory
DEFAULT_DATABASE_URL = "sqlite:///./bookclub_cache.db"

_IN_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


class Database:
    """
    Owns the engine and session factory for the local cache.

    Store calls arrive from worker threads (asyncio.to_thread), so every unit
    of work is serialized through one lock; SQLite allows a single writer anyway.
    """

    def __init__(self, url: str = DEFAULT_DATABASE_URL, echo: bool = False):
        self.url = url
        engine_kwargs = {}
        if url in _IN_MEMORY_URLS:
            # One shared connection, otherwise each thread sees an empty database
            engine_kwargs["poolclass"] = StaticPool

        self.engine = create_engine(
            url,
            connect_args={"check_same_thread": False},  # Needed for SQLite
            echo=echo,  # Set to True to see SQL queries
            **engine_kwargs,
        )
        self.SessionLocal = sessionmaker(autoflush=False, bind=self.engine)
        self._lock = threading.RLock()

    def init_db(self) -> None:
        """
        Create all tables.
        Safe to call multiple times (won't recreate existing tables)
        """
        Base.metadata.create_all(bind=self.engine)
        logger.info(f"Cache database initialized at: {self.url}")

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Yield a session, committing on success and rolling back on error."""
        with self._lock:
            db = self.SessionLocal()
            try:
                yield db
                db.commit()
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

    def dispose(self) -> None:
        self.engine.dispose()
