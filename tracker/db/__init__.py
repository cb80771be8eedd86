"""
==============================================================================
Database Package
==============================================================================

SQLAlchemy infrastructure for the key-value snapshot store.

Architecture:
------------
├── database.py   - DatabaseManager class, engine factory, init_db
└── models.py     - KeyValueEntry ORM model

==============================================================================
"""

from .database import Base, DatabaseManager, build_engine, get_database_manager, init_db
from .models import KeyValueEntry

__all__ = [
    "Base",
    "DatabaseManager",
    "build_engine",
    "get_database_manager",
    "init_db",
    "KeyValueEntry",
]
