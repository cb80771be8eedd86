"""
==============================================================================
Product Catalog Store Module
==============================================================================

Authoritative in-memory collection of evaluated products.

Features:
---------
- Create / update / delete with single-pass input validation
- Tried/outcome state machine per record
- Derived net profit, recomputed from current field values
- Partitioned, stable, restartable sorted views
- Full snapshot persisted after every successful mutation

Failure Semantics:
-----------------
- ValidationError / NotFoundError / ConfirmationRequiredError:
  raised before any change; nothing is persisted
- PersistenceError: raised after the in-memory change was applied;
  the in-memory collection stays authoritative for the session
- CorruptStateError: recorded by load(), which falls back to an
  empty collection and discards the stored snapshot
- PersistenceError on read: recorded by load(), which falls back to
  an empty collection and leaves the stored value untouched

==============================================================================
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Set, Union

from tracker.core.exceptions import (
    ConfirmationRequiredError,
    CorruptStateError,
    NotFoundError,
    PersistenceError,
)
from tracker.storage.kv_store import KeyValueStore

from .models import ProductRecord, RecordInput, SortOption, TrialState
from .snapshot import decode_snapshot, encode_snapshot
from .sorting import CatalogView


# Module logger
logger = logging.getLogger(__name__)


Clock = Callable[[], datetime]
IdFactory = Callable[[], str]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


class CatalogStore:
    """
    Product catalog manager.

    Owns the list of ProductRecords for the session and writes the
    whole collection to a KeyValueStore after each mutation.

    Attributes:
        storage_key: Key of the snapshot in the key-value store
        load_error: CorruptStateError or PersistenceError from the last load(), if any

    Example:
        >>> store = CatalogStore(MemoryKeyValueStore())
        >>> store.load()
        []
        >>> record = store.add({"name": "Desk Lamp", ...})
        >>> store.mark_outcome(record.id, False)
        >>> [r.name for r in store.view("netProfit-desc")]
    """

    def __init__(
        self,
        storage: KeyValueStore,
        storage_key: str = "products",
        clock: Optional[Clock] = None,
        id_factory: Optional[IdFactory] = None
    ) -> None:
        """
        Initialize an empty store. Call load() to read the snapshot.

        Args:
            storage: Persistence collaborator
            storage_key: Key holding the snapshot
            clock: Source of creation timestamps (UTC now by default)
            id_factory: Source of record ids (uuid4 hex by default)
        """
        self._storage = storage
        self.storage_key = storage_key
        self._clock = clock or _utc_now
        self._id_factory = id_factory or _new_id
        self._records: List[ProductRecord] = []
        self._issued_ids: Set[str] = set()
        self.load_error: Optional[Union[CorruptStateError, PersistenceError]] = None

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def records(self) -> List[ProductRecord]:
        """Get all records in collection order."""
        return self._records.copy()

    @property
    def storage(self) -> KeyValueStore:
        return self._storage

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        return any(record.id == record_id for record in self._records)

    # =========================================================================
    # LOADING
    # =========================================================================

    def load(self) -> List[ProductRecord]:
        """
        Load the collection from the key-value store.

        A missing snapshot yields an empty collection. A corrupt snapshot
        is discarded: the collection is reset to empty and the error is
        kept in load_error instead of being raised. An unreadable store
        also yields an empty collection, but the stored value is left
        in place.

        Returns:
            Loaded records
        """
        self.load_error = None
        try:
            raw = self._storage.get(self.storage_key)
        except PersistenceError as e:
            logger.error(f"❌ Could not read stored catalog: {e.message}")
            self.load_error = e
            self._records = []
            return self.records

        if raw is None:
            self._records = []
            logger.info("No stored snapshot, starting with an empty catalog")
            return self.records

        try:
            records = decode_snapshot(raw)
        except CorruptStateError as e:
            logger.warning(f"⚠️ Discarding corrupt snapshot: {e.reason}")
            self.load_error = e
            self._records = []
            self._discard_snapshot()
            return self.records

        self._records = records
        self._issued_ids.update(record.id for record in records)

        logger.info(f"✅ Loaded {len(records)} products")
        return self.records

    def _discard_snapshot(self) -> None:
        try:
            self._storage.delete(self.storage_key)
        except PersistenceError as e:
            logger.error(f"Failed to discard corrupt snapshot: {e.message}")

    # =========================================================================
    # LOOKUP
    # =========================================================================

    def _index_of(self, record_id: str) -> int:
        for index, record in enumerate(self._records):
            if record.id == record_id:
                return index
        raise NotFoundError(record_id)

    def get(self, record_id: str) -> ProductRecord:
        """
        Get a record by id.

        Raises:
            NotFoundError: If no record has this id
        """
        return self._records[self._index_of(record_id)]

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def add(self, data: Union[RecordInput, Dict[str, Any]]) -> ProductRecord:
        """
        Create a new untried record.

        Args:
            data: RecordInput or a mapping of raw field values

        Returns:
            The created record

        Raises:
            ValidationError: If a field is missing or invalid
            PersistenceError: If the snapshot write failed (record is kept)
        """
        record_input = RecordInput.from_data(data)
        record = ProductRecord.create(
            record_id=self._next_id(),
            data=record_input,
            created_at=self._clock(),
        )

        self._records.append(record)
        logger.info(f"➕ Added product '{record.name}' ({record.id})")

        self._persist(record)
        return record

    def update(
        self,
        record_id: str,
        data: Union[RecordInput, Dict[str, Any]]
    ) -> ProductRecord:
        """
        Replace all mutable fields of a record.

        id, created_at and the trial state are kept. An empty
        image_reference keeps the current preview.

        Raises:
            ValidationError: If a field is missing or invalid
            NotFoundError: If no record has this id
            PersistenceError: If the snapshot write failed (edit is kept)
        """
        record_input = RecordInput.from_data(data)
        index = self._index_of(record_id)

        record = self._records[index].with_input(record_input)
        self._records[index] = record
        logger.info(f"✏️ Updated product '{record.name}' ({record.id})")

        self._persist(record)
        return record

    def remove(self, record_id: str, confirmed: bool = False) -> ProductRecord:
        """
        Delete a record after explicit confirmation.

        Returns:
            The removed record

        Raises:
            NotFoundError: If no record has this id
            ConfirmationRequiredError: If confirmed is False
            PersistenceError: If the snapshot write failed (deletion is kept)
        """
        index = self._index_of(record_id)
        if not confirmed:
            raise ConfirmationRequiredError(record_id)

        record = self._records.pop(index)
        logger.info(f"🗑️ Removed product '{record.name}' ({record.id})")

        self._persist(record)
        return record

    def mark_outcome(
        self,
        record_id: str,
        succeeded: Optional[bool] = None
    ) -> ProductRecord:
        """
        Advance the tried/outcome state machine of a record.

        Args:
            record_id: Record to mark
            succeeded: None toggles tried/untried, True/False records the outcome

        Raises:
            NotFoundError: If no record has this id
            PersistenceError: If the snapshot write failed (transition is kept)
        """
        index = self._index_of(record_id)

        previous = self._records[index]
        record = previous.with_outcome(succeeded)
        self._records[index] = record
        logger.info(
            f"🏷️ Product '{record.name}' ({record.id}): "
            f"{previous.state} → {record.state}"
        )

        self._persist(record)
        return record

    # =========================================================================
    # VIEWS
    # =========================================================================

    def view(self, sort_option: Union[SortOption, str] = SortOption.CREATED_AT_DESC) -> CatalogView:
        """
        Get an ordered view of the current collection.

        Untried records come first; ties keep collection order.

        Raises:
            InvalidSortOptionError: If the sort option is not supported
        """
        return CatalogView(self._records, SortOption.parse(sort_option))

    def get_stats(self) -> Dict[str, Any]:
        """Get collection statistics."""
        by_state = {state.value: 0 for state in TrialState}
        for record in self._records:
            by_state[record.state.value] += 1

        profits = [record.net_profit for record in self._records]
        average: Optional[Decimal] = None
        if profits:
            average = (sum(profits, Decimal(0)) / len(profits)).quantize(Decimal("0.01"))

        return {
            "total_products": len(self._records),
            "untried": by_state[TrialState.UNTRIED.value],
            "tried": len(self._records) - by_state[TrialState.UNTRIED.value],
            "states": by_state,
            "average_net_profit": average,
            "best_net_profit": max(profits) if profits else None,
        }

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _next_id(self) -> str:
        record_id = self._id_factory()
        while record_id in self._issued_ids:
            record_id = self._id_factory()
        self._issued_ids.add(record_id)
        return record_id

    def _persist(self, record: ProductRecord) -> None:
        """
        Write the full snapshot after a mutation of record.

        Errors propagate with the record id attached; memory is not rolled back.
        """
        try:
            self._storage.set(self.storage_key, encode_snapshot(self._records))
        except PersistenceError as e:
            logger.error(f"❌ Snapshot not saved, changes kept in memory only: {e.message}")
            e.details["record_id"] = record.id
            raise

    def __repr__(self) -> str:
        return f"CatalogStore(key={self.storage_key!r}, records={len(self._records)})"


# =============================================================================
# SINGLETON INSTANCE MANAGEMENT
# =============================================================================

_store_instance: Optional[CatalogStore] = None


def get_store() -> Optional[CatalogStore]:
    """Get the global store instance."""
    return _store_instance


def init_store(storage: KeyValueStore, storage_key: str = "products") -> CatalogStore:
    """
    Initialize and load the global store instance.

    Args:
        storage: Persistence collaborator
        storage_key: Key holding the snapshot

    Returns:
        Loaded CatalogStore
    """
    global _store_instance
    _store_instance = CatalogStore(storage, storage_key=storage_key)
    _store_instance.load()
    return _store_instance
