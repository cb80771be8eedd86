"""
==============================================================================
Catalog Store Tests
==============================================================================

Tests for CRUD, outcome marking, sorted views, loading and persistence
failure handling.

==============================================================================
"""

import itertools
import json
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from tracker.catalog import CatalogStore, Outcome, SortOption, TrialState
from tracker.catalog.catalog import get_store, init_store
from tracker.core.exceptions import (
    ConfirmationRequiredError,
    InvalidSortOptionError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from tracker.storage import MemoryKeyValueStore


def names(view) -> list:
    return [record.name for record in view]


class TestAddUpdateRemove:
    """Tests for record mutations."""

    def test_add_assigns_identity(self, store, product_data):
        """add() assigns id, creation time and untried state."""
        record = store.add(product_data())

        assert record.id == "p1"
        assert record.created_at == datetime(2026, 1, 1, tzinfo=timezone.utc)
        assert record.state is TrialState.UNTRIED
        assert record.net_profit == Decimal("250")
        assert store.get("p1") == record

    def test_add_persists_snapshot(self, store, kv_storage, product_data):
        """Each mutation writes the full snapshot."""
        store.add(product_data(name="A"))
        store.add(product_data(name="B"))

        stored = json.loads(kv_storage.get("products"))
        assert [item["name"] for item in stored] == ["A", "B"]
        assert "net_profit" not in stored[0]

    def test_invalid_add_changes_nothing(self, store, kv_storage, product_data):
        """A validation failure neither mutates nor persists."""
        with pytest.raises(ValidationError) as exc_info:
            store.add(product_data(rating="12"))

        assert exc_info.value.field == "rating"
        assert len(store) == 0
        assert kv_storage.get("products") is None

    def test_ids_are_unique(self, kv_storage, clock, product_data):
        """A repeated id from the factory is never reused."""
        ids = iter(["dup", "dup", "other"])
        catalog_store = CatalogStore(kv_storage, clock=clock, id_factory=lambda: next(ids))

        first = catalog_store.add(product_data())
        second = catalog_store.add(product_data())
        assert first.id == "dup"
        assert second.id == "other"

    def test_update_recomputes_net_profit(self, store, product_data):
        """update() replaces fields and recomputes the derived profit."""
        record = store.add(product_data())
        updated = store.update(record.id, product_data(name="Renamed", target_sale_price="600"))

        assert updated.name == "Renamed"
        assert updated.net_profit == Decimal("450")
        assert updated.id == record.id
        assert updated.created_at == record.created_at
        assert store.get(record.id).net_profit == Decimal("450")

    def test_update_keeps_trial_state(self, store, product_data):
        """Editing does not touch the tried/outcome state."""
        record = store.add(product_data())
        store.mark_outcome(record.id, True)

        updated = store.update(record.id, product_data(notes="restocked"))
        assert updated.state is TrialState.TRIED_SUCCEEDED

    def test_update_keeps_position(self, store, product_data):
        """An edited record stays at its collection position."""
        first = store.add(product_data(name="A"))
        store.add(product_data(name="B"))
        store.update(first.id, product_data(name="A2"))

        assert [record.name for record in store.records] == ["A2", "B"]

    def test_update_unknown_id(self, store, product_data):
        with pytest.raises(NotFoundError):
            store.update("missing", product_data())

    def test_update_validates_before_lookup(self, store, product_data):
        """Invalid input is reported even for a known id, with no change."""
        record = store.add(product_data())
        with pytest.raises(ValidationError):
            store.update(record.id, product_data(other_costs="lots"))
        assert store.get(record.id) == record

    def test_remove_requires_confirmation(self, store, product_data):
        """remove() without confirmation leaves the record in place."""
        record = store.add(product_data())
        with pytest.raises(ConfirmationRequiredError):
            store.remove(record.id)
        assert record.id in store

    def test_add_then_remove_restores_ids(self, store, product_data):
        """add followed by remove of the same id restores the id set."""
        store.add(product_data(name="A"))
        before = {record.id for record in store.records}

        record = store.add(product_data(name="B"))
        removed = store.remove(record.id, confirmed=True)

        assert removed == record
        assert {r.id for r in store.records} == before

    def test_remove_unknown_id(self, store):
        with pytest.raises(NotFoundError) as exc_info:
            store.remove("missing", confirmed=True)
        assert exc_info.value.status_code == 404


class TestMarkOutcome:
    """Tests for the tried/outcome state machine on the store."""

    EXPECTED = {
        (TrialState.UNTRIED, None): TrialState.TRIED_UNKNOWN,
        (TrialState.UNTRIED, True): TrialState.TRIED_SUCCEEDED,
        (TrialState.UNTRIED, False): TrialState.TRIED_FAILED,
        (TrialState.TRIED_UNKNOWN, None): TrialState.UNTRIED,
        (TrialState.TRIED_UNKNOWN, True): TrialState.TRIED_SUCCEEDED,
        (TrialState.TRIED_UNKNOWN, False): TrialState.TRIED_FAILED,
        (TrialState.TRIED_SUCCEEDED, None): TrialState.UNTRIED,
        (TrialState.TRIED_SUCCEEDED, True): TrialState.TRIED_SUCCEEDED,
        (TrialState.TRIED_SUCCEEDED, False): TrialState.TRIED_FAILED,
        (TrialState.TRIED_FAILED, None): TrialState.UNTRIED,
        (TrialState.TRIED_FAILED, True): TrialState.TRIED_SUCCEEDED,
        (TrialState.TRIED_FAILED, False): TrialState.TRIED_FAILED,
    }

    def test_all_sequences_up_to_four(self, store, product_data):
        """Every sequence of up to four marks follows the transition table."""
        for length in range(1, 5):
            for sequence in itertools.product([None, True, False], repeat=length):
                record = store.add(product_data())
                state = TrialState.UNTRIED
                recorded = Outcome.UNTRIED

                for succeeded in sequence:
                    record = store.mark_outcome(record.id, succeeded)
                    state = self.EXPECTED[(state, succeeded)]
                    if succeeded is not None:
                        recorded = Outcome.SUCCEEDED if succeeded else Outcome.FAILED

                    assert record.state is state, sequence
                    assert record.tried is state.tried
                    assert record.recorded_outcome is recorded

                store.remove(record.id, confirmed=True)

    def test_toggle_then_fail(self, store, product_data):
        record = store.add(product_data())

        tried = store.mark_outcome(record.id)
        assert tried.tried is True
        assert tried.outcome is Outcome.UNTRIED

        failed = store.mark_outcome(record.id, False)
        assert failed.outcome is Outcome.FAILED

    def test_revert_retains_stale_outcome(self, store, product_data):
        """Reverting keeps the previous outcome, but it is not authoritative."""
        record = store.add(product_data())
        store.mark_outcome(record.id, True)
        reverted = store.mark_outcome(record.id)

        assert reverted.tried is False
        assert reverted.outcome is Outcome.UNTRIED
        assert reverted.recorded_outcome is Outcome.SUCCEEDED

        # Toggling again does not resurrect the stale outcome
        again = store.mark_outcome(record.id)
        assert again.state is TrialState.TRIED_UNKNOWN

    def test_unknown_id(self, store):
        with pytest.raises(NotFoundError):
            store.mark_outcome("missing", True)


class TestView:
    """Tests for partitioned, stable sorted views."""

    @pytest.fixture
    def populated(self, store, product_data):
        """
        Four untried and two tried records with ties on every numeric key.

        Insertion order: u1, u2, u3, u4, t1, t2
        """
        store.add(product_data(name="u1", rating="5", supplier_price="100",
                               marketplace_price="", other_costs="10",
                               target_sale_price="300"))
        store.add(product_data(name="u2", rating="8", supplier_price="50",
                               marketplace_price="1200", other_costs="10",
                               target_sale_price="300"))
        store.add(product_data(name="u3", rating="5", supplier_price="100",
                               marketplace_price="0", other_costs="10",
                               target_sale_price="300"))
        store.add(product_data(name="u4", rating="2", supplier_price="200",
                               marketplace_price="1600", other_costs="30",
                               target_sale_price="500"))
        t1 = store.add(product_data(name="t1", rating="9", supplier_price="10",
                                    marketplace_price="50", other_costs="5",
                                    target_sale_price="900"))
        t2 = store.add(product_data(name="t2", rating="9", supplier_price="10",
                                    marketplace_price="50", other_costs="5",
                                    target_sale_price="900"))
        store.mark_outcome(t1.id, False)
        store.mark_outcome(t2.id)
        return store

    @staticmethod
    def _key(record, option: SortOption):
        values = {
            "rating": record.rating,
            "supplierPrice": record.supplier_price,
            "marketplacePrice": record.marketplace_price or Decimal(0),
            "otherCosts": record.other_costs,
            "netProfit": record.net_profit,
            "createdAt": record.created_at,
        }
        return values[option.key]

    @pytest.mark.parametrize("option", list(SortOption))
    def test_sorted_within_partitions_and_stable(self, populated, option):
        """Every option: untried first, ordered keys, ties in insertion order."""
        insertion = {record.id: index for index, record in enumerate(populated.records)}
        ordered = list(populated.view(option))

        assert len(ordered) == 6
        tried_flags = [record.tried for record in ordered]
        assert tried_flags == sorted(tried_flags)

        for left, right in zip(ordered, ordered[1:]):
            if left.tried != right.tried:
                continue
            left_key, right_key = self._key(left, option), self._key(right, option)
            if option.descending:
                assert left_key >= right_key
            else:
                assert left_key <= right_key
            if left_key == right_key:
                assert insertion[left.id] < insertion[right.id]

    def test_explicit_orders(self, populated):
        assert names(populated.view("rating-desc")) == ["u2", "u1", "u3", "u4", "t1", "t2"]
        assert names(populated.view("rating-asc")) == ["u4", "u1", "u3", "u2", "t1", "t2"]
        assert names(populated.view("marketplacePrice-asc")) == ["u1", "u3", "u2", "u4", "t1", "t2"]
        assert names(populated.view("otherCosts-desc")) == ["u4", "u1", "u2", "u3", "t1", "t2"]
        assert names(populated.view("createdAt-desc")) == ["u4", "u3", "u2", "u1", "t2", "t1"]

    def test_created_at_ties_keep_insertion_order(self, kv_storage, product_data):
        """Records created at the same instant keep insertion order."""
        instant = datetime(2026, 3, 1, tzinfo=timezone.utc)
        catalog_store = CatalogStore(kv_storage, clock=lambda: instant)
        for name in ["a", "b", "c"]:
            catalog_store.add(product_data(name=name))

        assert names(catalog_store.view("createdAt-desc")) == ["a", "b", "c"]
        assert names(catalog_store.view("createdAt-asc")) == ["a", "b", "c"]

    def test_view_is_restartable(self, populated):
        """Iterating a view twice yields the same sequence."""
        view = populated.view("netProfit-asc")
        assert list(view) == list(view)
        assert len(view) == 6

    def test_view_is_snapshot(self, populated, product_data):
        """A view reflects the collection at the time it was taken."""
        view = populated.view("rating-desc")
        populated.add(product_data(name="late"))
        assert "late" not in names(view)
        assert "late" in names(populated.view("rating-desc"))

    def test_default_sort_is_newest_first(self, store, product_data):
        store.add(product_data(name="old"))
        store.add(product_data(name="new"))
        assert names(store.view()) == ["new", "old"]

    def test_unknown_sort_option(self, store):
        with pytest.raises(InvalidSortOptionError):
            store.view("popularity-desc")

    def test_empty_view(self, store):
        assert list(store.view("netProfit-desc")) == []


class TestScenario:
    """End-to-end evaluation walkthrough."""

    def test_walkthrough(self, store, kv_storage, product_data):
        a = store.add(product_data(name="A", supplier_price="100",
                                   target_sale_price="400", other_costs="50"))
        assert a.net_profit == Decimal("250")
        assert a.rating_tier.value == "mid"

        b = store.add(product_data(name="B", supplier_price="50",
                                   target_sale_price="600", other_costs="20", rating="9"))
        assert b.created_at > a.created_at

        view = list(store.view("netProfit-desc"))
        assert [r.name for r in view] == ["B", "A"]
        assert [r.net_profit for r in view] == [Decimal("530"), Decimal("250")]

        failed = store.mark_outcome(a.id, False)
        assert failed.tried is True
        assert failed.outcome is Outcome.FAILED
        assert names(store.view("netProfit-desc")) == ["B", "A"]
        assert names(store.view("netProfit-asc")) == ["B", "A"]

        store.remove(b.id, confirmed=True)

        # Simulated restart over the same storage
        restarted = CatalogStore(kv_storage)
        loaded = restarted.load()
        assert [r.name for r in loaded] == ["A"]
        assert loaded[0].state is TrialState.TRIED_FAILED
        assert loaded[0].net_profit == Decimal("250")
        assert loaded[0].created_at == a.created_at


class TestLoad:
    """Tests for loading and corruption recovery."""

    def test_load_without_snapshot(self, kv_storage):
        catalog_store = CatalogStore(kv_storage)
        assert catalog_store.load() == []
        assert catalog_store.load_error is None

    @pytest.mark.parametrize("raw", [
        "{not json",
        '{"products": []}',
        '[{"id": "x"}]',
        '[1, 2, 3]',
    ])
    def test_corrupt_snapshot_resets(self, kv_storage, raw):
        """A corrupt snapshot yields an empty collection and is discarded."""
        kv_storage.set("products", raw)
        catalog_store = CatalogStore(kv_storage)

        assert catalog_store.load() == []
        assert catalog_store.load_error is not None
        assert catalog_store.load_error.code == "CORRUPT_STATE"
        assert kv_storage.get("products") is None

    def test_out_of_range_value_is_corrupt(self, store, kv_storage, product_data):
        store.add(product_data())
        stored = json.loads(kv_storage.get("products"))
        stored[0]["rating"] = 42
        kv_storage.set("products", json.dumps(stored))

        catalog_store = CatalogStore(kv_storage)
        assert catalog_store.load() == []
        assert catalog_store.load_error is not None

    def test_store_usable_after_recovery(self, kv_storage, product_data):
        kv_storage.set("products", "garbage")
        catalog_store = CatalogStore(kv_storage)
        catalog_store.load()

        catalog_store.add(product_data())
        assert len(CatalogStore(kv_storage).load()) == 1

    def test_loaded_ids_are_not_reissued(self, store, kv_storage, product_data):
        store.add(product_data())
        catalog_store = CatalogStore(kv_storage, id_factory=iter(["p1", "p9"]).__next__)
        catalog_store.load()

        assert catalog_store.add(product_data()).id == "p9"


class TestPersistenceFailure:
    """Tests for write failures downstream of a successful mutation."""

    def test_quota_failure_keeps_memory(self, clock, product_data):
        """A rejected write is reported but the mutation is kept."""
        catalog_store = CatalogStore(MemoryKeyValueStore(quota_bytes=64), clock=clock)
        catalog_store.load()

        with pytest.raises(PersistenceError) as exc_info:
            catalog_store.add(product_data(name="Kept"))

        assert exc_info.value.status_code == 507
        assert len(catalog_store) == 1
        assert exc_info.value.details["record_id"] == catalog_store.records[0].id
        assert names(catalog_store.view()) == ["Kept"]

    def test_failure_then_success(self, product_data):
        """Once space is available the next mutation writes everything."""
        storage = MemoryKeyValueStore(quota_bytes=64)
        catalog_store = CatalogStore(storage)
        catalog_store.load()

        with pytest.raises(PersistenceError):
            catalog_store.add(product_data(name="A"))

        storage.quota_bytes = None
        catalog_store.add(product_data(name="B"))
        assert [r.name for r in CatalogStore(storage).load()] == ["A", "B"]


class TestStats:
    """Tests for catalog statistics."""

    def test_stats(self, store, product_data):
        a = store.add(product_data(target_sale_price="400"))
        b = store.add(product_data(target_sale_price="500"))
        store.add(product_data(target_sale_price="300"))
        store.mark_outcome(a.id, True)
        store.mark_outcome(b.id)

        stats = store.get_stats()
        assert stats["total_products"] == 3
        assert stats["untried"] == 1
        assert stats["tried"] == 2
        assert stats["states"]["tried_succeeded"] == 1
        assert stats["states"]["tried_unknown"] == 1
        assert stats["average_net_profit"] == Decimal("250.00")
        assert stats["best_net_profit"] == Decimal("350")

    def test_empty_stats(self, store):
        stats = store.get_stats()
        assert stats["total_products"] == 0
        assert stats["average_net_profit"] is None


class TestSingleton:
    """Tests for the module-level store instance."""

    def test_init_store_loads(self, kv_storage, product_data):
        CatalogStore(kv_storage).add(product_data())
        catalog_store = init_store(kv_storage)

        assert get_store() is catalog_store
        assert len(catalog_store) == 1
