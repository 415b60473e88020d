"""
SQLAlchemy engine and session management shared by the discovery and
playback packages. Each package owns one SQLite file through its own
DatabaseHandle.
"""

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, Engine
from sqlalchemy.orm import Session, sessionmaker


class DatabaseHandle:
    """Lazily created engine plus session factory for one database file."""

    def __init__(self, db_name: str):
        self.db_name = db_name
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    def get_engine(self) -> Engine:
        """Get the SQLAlchemy engine, creating it if necessary."""
        if self._engine is None:
            # Sampling runs in worker threads, so connections cross threads
            self._engine = create_engine(
                f"sqlite:///{self.db_name}",
                connect_args={"check_same_thread": False},
            )
            self._session_factory = sessionmaker(bind=self._engine)
        return self._engine

    def set_engine(self, engine: Engine) -> None:
        """Set a custom engine (for testing)."""
        self._engine = engine
        self._session_factory = sessionmaker(bind=engine)

    def reset_engine(self) -> None:
        """Reset the engine to None (for testing)."""
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._session_factory = None

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Get a session context manager for database operations.

        Usage:
            with handle.get_session() as session:
                session.add(obj)
                # commit happens automatically on successful exit
        """
        if self._session_factory is None:
            self.get_engine()

        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
