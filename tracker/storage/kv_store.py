"""
==============================================================================
Key-Value Store Module
==============================================================================

Persistence collaborators for the product catalog.

Classes:
--------
- KeyValueStore: Abstract get/set/delete interface
- MemoryKeyValueStore: Dict-backed store for tests and ephemeral runs
- SqlKeyValueStore: SQLAlchemy-backed store (key_value_entries table)

Quota:
------
Every store accepts an optional quota in bytes. A value whose UTF-8
encoding exceeds the quota is rejected with PersistenceError and the
previously stored value is left untouched.

==============================================================================
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from tracker.core.exceptions import PersistenceError, quota_exceeded
from tracker.db.database import Base
from tracker.db.models import KeyValueEntry


# Module logger
logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """
    Abstract key-value store.

    Attributes:
        quota_bytes: Maximum stored value size, None for unlimited
    """

    def __init__(self, quota_bytes: Optional[int] = None) -> None:
        self.quota_bytes = quota_bytes

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """
        Return the stored value or None if the key is absent.

        Raises:
            PersistenceError: If the store cannot be read
        """

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Store a value.

        Raises:
            PersistenceError: If the write is rejected
        """

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a key. Absent keys are ignored."""

    def ping(self) -> bool:
        """Check the store is reachable."""
        return True

    def _check_quota(self, value: str) -> None:
        if self.quota_bytes is None:
            return
        size = len(value.encode("utf-8"))
        if size > self.quota_bytes:
            raise quota_exceeded(size, self.quota_bytes)


class MemoryKeyValueStore(KeyValueStore):
    """
    In-process store.

    Example:
        >>> store = MemoryKeyValueStore(quota_bytes=1024)
        >>> store.set("products", "[]")
        >>> store.get("products")
        '[]'
    """

    def __init__(self, quota_bytes: Optional[int] = None) -> None:
        super().__init__(quota_bytes)
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._check_quota(value)
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def __repr__(self) -> str:
        return f"MemoryKeyValueStore(keys={len(self._data)})"


class SqlKeyValueStore(KeyValueStore):
    """
    SQLAlchemy-backed store.

    Each operation runs in its own session. SQLAlchemy errors on write
    are reported as PersistenceError.

    Attributes:
        _session_factory: Session factory bound to the engine

    Example:
        >>> store = SqlKeyValueStore(get_database_manager().engine)
        >>> store.set("products", snapshot)
    """

    def __init__(
        self,
        engine: Engine,
        quota_bytes: Optional[int] = None,
        create_tables: bool = True
    ) -> None:
        super().__init__(quota_bytes)
        self._engine = engine
        self._session_factory = sessionmaker(
            bind=engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )
        if create_tables:
            self._create_table()

    def _create_table(self) -> None:
        try:
            Base.metadata.create_all(bind=self._engine, tables=[KeyValueEntry.__table__])
        except SQLAlchemyError as e:
            logger.error(f"Failed to create key-value table: {e}")
            raise PersistenceError(
                "Failed to prepare storage",
                {"reason": str(e)}
            ) from e

    def _session(self) -> Session:
        return self._session_factory()

    def get(self, key: str) -> Optional[str]:
        try:
            with self._session() as session:
                entry = session.get(KeyValueEntry, key)
                return entry.value if entry is not None else None
        except SQLAlchemyError as e:
            logger.error(f"Failed to read key '{key}': {e}")
            raise PersistenceError(
                f"Failed to read '{key}' from storage",
                {"key": key, "reason": str(e)}
            ) from e

    def set(self, key: str, value: str) -> None:
        self._check_quota(value)

        session = self._session()
        try:
            entry = session.get(KeyValueEntry, key)
            if entry is None:
                session.add(KeyValueEntry(key=key, value=value))
            else:
                entry.value = value
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to write key '{key}': {e}")
            raise PersistenceError(
                f"Failed to write '{key}' to storage",
                {"key": key, "reason": str(e)}
            ) from e
        finally:
            session.close()

    def delete(self, key: str) -> None:
        session = self._session()
        try:
            entry = session.get(KeyValueEntry, key)
            if entry is not None:
                session.delete(entry)
                session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to delete key '{key}': {e}")
            raise PersistenceError(
                f"Failed to delete '{key}' from storage",
                {"key": key, "reason": str(e)}
            ) from e
        finally:
            session.close()

    def ping(self) -> bool:
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Storage connection failed: {e}")
            return False

    def __repr__(self) -> str:
        return f"SqlKeyValueStore(url={self._engine.url!r})"
