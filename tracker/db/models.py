"""
==============================================================================
SQLAlchemy ORM Models Module
==============================================================================

ORM model backing the key-value snapshot store.

Database Schema:
---------------

    ┌─────────────────────────────────────────────────────────────────┐
    │                       key_value_entries                          │
    ├─────────────────────────────────────────────────────────────────┤
    │ key (VARCHAR, PK)                                               │
    │ value (TEXT, NOT NULL)                                          │
    │ updated_at (DATETIME, AUTO UPDATE)                              │
    └─────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from sqlalchemy import Column, DateTime, String, Text, func

from tracker.db.database import Base


class KeyValueEntry(Base):
    """
    One stored value.

    The product catalog occupies a single row whose value is the
    serialized snapshot of the whole collection.

    Attributes:
        key: Storage key (e.g. "products")
        value: Serialized value
        updated_at: Last write timestamp
    """

    __tablename__ = "key_value_entries"

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<KeyValueEntry(key={self.key!r}, size={len(self.value or '')})>"
