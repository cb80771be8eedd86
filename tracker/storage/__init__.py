"""
==============================================================================
Storage Package
==============================================================================

Persistence collaborators for the product catalog.

Classes:
--------
- KeyValueStore: Abstract get/set/delete interface
- MemoryKeyValueStore: In-process implementation
- SqlKeyValueStore: SQLAlchemy implementation

==============================================================================
"""

from .kv_store import KeyValueStore, MemoryKeyValueStore, SqlKeyValueStore

__all__ = [
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SqlKeyValueStore",
]
