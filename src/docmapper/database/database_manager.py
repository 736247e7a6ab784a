"""Database manager for the docmapper pipeline.

This module contains the DatabaseManager class for handling database
connections, session creation, and database initialization.
"""

from typing import Any, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from ..config import Config
from ..models import Base
from ..exceptions import DatabaseError

__all__ = ["DatabaseManager"]


class DatabaseManager:
    """Manages database connections and session creation.

    Creates the SQLAlchemy engine lazily on first use and makes sure the
    durable store's table exists.

    Attributes:
        database_url: SQLAlchemy database URL
        _engine: Cached SQLAlchemy engine instance
        _session_factory: Cached sessionmaker factory
    """

    def __init__(self, database_url: str = Config.DATABASE_URL) -> None:
        """Initialize DatabaseManager with database URL.

        Args:
            database_url: SQLAlchemy database URL string
        """
        self.database_url: str = database_url
        self._engine: Optional[Any] = None
        self._session_factory: Optional[Any] = None

    @property
    def engine(self) -> Any:
        """Get or create the SQLAlchemy engine.

        SQLite URLs get a static pool and cross-thread access so the store
        can be shared by the event loop and worker threads.

        Returns:
            SQLAlchemy engine instance

        Raises:
            DatabaseError: If engine creation or table creation fails
        """
        if self._engine is None:
            try:
                kwargs: dict = {"echo": False}
                if self.database_url.startswith("sqlite"):
                    kwargs["connect_args"] = {"check_same_thread": False, "timeout": 20}
                    kwargs["poolclass"] = StaticPool
                self._engine = create_engine(self.database_url, **kwargs)
                Base.metadata.create_all(self._engine)
            except Exception as e:
                raise DatabaseError(f"Database initialization error: {str(e)}")
        return self._engine

    def create_session(self) -> Session:
        """Create a new database session.

        Returns:
            SQLAlchemy Session instance
        """
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self.engine)
        return self._session_factory()
