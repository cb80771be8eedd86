"""
==============================================================================
Catalog Package - Product Evaluation Records
==============================================================================

Product records, the tried/outcome state machine, sorted views and the
store that keeps them persisted.

Classes:
--------
- ProductRecord: Pydantic model for evaluated products
- RecordInput: Immutable validated input for add/update
- CatalogStore: Collection manager with persistence
- CatalogView: Restartable ordered view

==============================================================================
"""

from .models import (
    Outcome,
    PriceBand,
    ProductRecord,
    ProfitTier,
    RatingTier,
    RecordInput,
    SortOption,
    TrialState,
)
from .sorting import CatalogView, sort_records
from .snapshot import decode_snapshot, encode_snapshot
from .catalog import CatalogStore, get_store, init_store

__all__ = [
    "Outcome",
    "PriceBand",
    "ProductRecord",
    "ProfitTier",
    "RatingTier",
    "RecordInput",
    "SortOption",
    "TrialState",
    "CatalogView",
    "sort_records",
    "decode_snapshot",
    "encode_snapshot",
    "CatalogStore",
    "get_store",
    "init_store",
]
