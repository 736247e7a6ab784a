"""Key/value blob store for the docmapper pipeline.

This module contains the BlobStore class, a repository that persists
JSON documents under string keys with last-write-wins semantics.
"""

import json
from typing import Any, List

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from ..models import StoredBlob
from ..exceptions import DatabaseError
from .database_manager import DatabaseManager

__all__ = ["BlobStore"]


class BlobStore:
    """Repository for JSON blobs keyed by name.

    Attributes:
        db_manager: DatabaseManager instance for database operations
    """

    def __init__(self, db_manager: DatabaseManager) -> None:
        """Initialize the store with a database manager.

        Args:
            db_manager: DatabaseManager instance for database operations
        """
        self.db_manager: DatabaseManager = db_manager

    def get(self, key: str, default: Any = None) -> Any:
        """Load the JSON document stored under ``key``.

        Args:
            key: Store key
            default: Value returned when the key is absent

        Returns:
            Decoded JSON document or ``default``

        Raises:
            DatabaseError: If the query fails or the stored value is not JSON
        """
        session: Session = self.db_manager.create_session()
        try:
            record = session.get(StoredBlob, key)
            if record is None:
                return default
            return json.loads(record.value)
        except SQLAlchemyError as e:
            raise DatabaseError(f"Database read error: {str(e)}")
        except json.JSONDecodeError as e:
            raise DatabaseError(f"Corrupt value stored under {key}: {str(e)}")
        finally:
            session.close()

    def put(self, key: str, value: Any) -> None:
        """Store ``value`` as JSON under ``key``, replacing any previous value.

        Raises:
            DatabaseError: If the value cannot be serialized or saved
        """
        try:
            serialized = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise DatabaseError(f"Value for {key} is not JSON serializable: {str(e)}")

        session: Session = self.db_manager.create_session()
        try:
            session.merge(StoredBlob(key=key, value=serialized))
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise DatabaseError(f"Database save error: {str(e)}")
        finally:
            session.close()

    def delete(self, key: str) -> bool:
        """Remove ``key`` from the store.

        Returns:
            True if a value was removed
        """
        session: Session = self.db_manager.create_session()
        try:
            record = session.get(StoredBlob, key)
            if record is None:
                return False
            session.delete(record)
            session.commit()
            return True
        except SQLAlchemyError as e:
            session.rollback()
            raise DatabaseError(f"Database delete error: {str(e)}")
        finally:
            session.close()

    def keys(self) -> List[str]:
        session: Session = self.db_manager.create_session()
        try:
            return [row.key for row in session.query(StoredBlob).order_by(StoredBlob.key)]
        except SQLAlchemyError as e:
            raise DatabaseError(f"Database read error: {str(e)}")
        finally:
            session.close()
