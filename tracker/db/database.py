"""
==============================================================================
Database Connection Management Module
==============================================================================

Database connection management using SQLAlchemy.

This module implements:
- DatabaseManager: Singleton class for managing the engine
- Table creation for the key-value snapshot store

SQLAlchemy Architecture:
-----------------------
    ┌─────────────────┐
    │ DatabaseManager │ (Singleton)
    └────────┬────────┘
             │
    ┌────────▼────────┐
    │     Engine      │ (Connection pool)
    └────────┬────────┘
             │
    ┌────────▼────────┐
    │ SqlKeyValueStore│ (Session per operation)
    └─────────────────┘

SQLite Note:
-----------
In-memory SQLite URLs use StaticPool so every session sees the same
database. 'check_same_thread' is disabled because FastAPI runs sync
endpoints in a thread pool.

==============================================================================
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from tracker.config import get_settings


# Module logger
logger = logging.getLogger(__name__)

# SQLAlchemy declarative base for all models
Base = declarative_base()

IN_MEMORY_URLS = {"sqlite://", "sqlite:///:memory:"}


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create a SQLAlchemy engine configured for the database type.

    Args:
        database_url: SQLAlchemy connection string
        echo: Log SQL statements

    Returns:
        Configured SQLAlchemy Engine
    """
    if database_url in IN_MEMORY_URLS:
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=echo,
        )
        logger.info("Created in-memory SQLite engine")

    elif database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            echo=echo,
        )
        logger.info(f"Created SQLite engine: {database_url}")

    else:
        engine = create_engine(
            database_url,
            pool_size=5,
            max_overflow=10,
            pool_timeout=30,
            pool_recycle=1800,
            pool_pre_ping=True,
            echo=echo,
        )
        logger.info(f"Created database engine with pooling: {database_url}")

    return engine


class DatabaseManager:
    """
    Centralized database connection manager.

    The engine is created lazily on first access.

    Attributes:
        _engine: SQLAlchemy engine instance (lazy loaded)
        _settings: Application settings reference

    Example:
        >>> db_manager = DatabaseManager()
        >>> db_manager.create_tables()
        >>> store = SqlKeyValueStore(db_manager.engine)
    """

    # Singleton instance
    _instance: Optional[DatabaseManager] = None

    def __new__(cls) -> DatabaseManager:
        """Ensure only one DatabaseManager instance exists."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self) -> None:
        if getattr(self, '_initialized', False):
            return

        self._settings = get_settings()
        self._engine: Optional[Engine] = None
        self._initialized = True

        logger.debug("DatabaseManager initialized")

    # =========================================================================
    # ENGINE MANAGEMENT
    # =========================================================================

    @property
    def engine(self) -> Engine:
        """Get the SQLAlchemy engine (lazy initialization)."""
        if self._engine is None:
            self._engine = build_engine(
                self._settings.database_url,
                echo=self._settings.debug,
            )
        return self._engine

    # =========================================================================
    # TABLE MANAGEMENT
    # =========================================================================

    def create_tables(self) -> None:
        """
        Create all tables defined in the models.

        Only creates tables that don't already exist.
        """
        # Register models on Base.metadata
        from tracker.db import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)
        logger.info("Database tables created/verified")

    # =========================================================================
    # CONNECTION MANAGEMENT
    # =========================================================================

    def verify_connection(self) -> bool:
        """
        Verify database connection is working.

        Returns:
            True if connection successful, False otherwise
        """
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.debug("Database connection verified")
            return True
        except SQLAlchemyError as e:
            logger.error(f"Database connection failed: {e}")
            return False

    def dispose(self) -> None:
        """Dispose of the connection pool on shutdown."""
        if self._engine is not None:
            self._engine.dispose()
            logger.info("Database connection pool disposed")

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"DatabaseManager(url={self._settings.database_url!r})"


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

@lru_cache(maxsize=1)
def get_database_manager() -> DatabaseManager:
    """Get the global DatabaseManager instance."""
    return DatabaseManager()


def init_db() -> DatabaseManager:
    """
    Initialize the database: create the engine and all tables.

    Returns:
        The global DatabaseManager
    """
    db_manager = get_database_manager()
    db_manager.create_tables()
    return db_manager
