"""
==============================================================================
Catalog Sorting Module
==============================================================================

Partitioned, stable ordering of product records.

Ordering Rules:
--------------
1. Untried records always come before tried records
2. Inside each partition the selected SortOption applies
3. Ties keep collection (insertion) order

==============================================================================
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Callable, Dict, Iterator, Sequence, Tuple

from .models import ProductRecord, SortOption


SortKey = Callable[[ProductRecord], Any]


def _marketplace_price(record: ProductRecord) -> Decimal:
    # Unlisted products compare as zero
    if record.marketplace_price is None:
        return Decimal(0)
    return record.marketplace_price


SORT_KEYS: Dict[str, SortKey] = {
    "rating": lambda record: record.rating,
    "supplierPrice": lambda record: record.supplier_price,
    "marketplacePrice": _marketplace_price,
    "otherCosts": lambda record: record.other_costs,
    "netProfit": lambda record: record.net_profit,
    "createdAt": lambda record: record.created_at,
}


def sort_records(
    records: Sequence[ProductRecord],
    option: SortOption
) -> Iterator[ProductRecord]:
    """
    Yield records in listing order.

    sorted() is stable, also with reverse=True, so equal keys keep
    their collection order in both directions.

    Args:
        records: Records in collection order
        option: Sort option applied within each partition

    Yields:
        Untried records, then tried records
    """
    key = SORT_KEYS[option.key]

    untried = [record for record in records if not record.tried]
    tried = [record for record in records if record.tried]

    yield from sorted(untried, key=key, reverse=option.descending)
    yield from sorted(tried, key=key, reverse=option.descending)


class CatalogView:
    """
    Ordered, restartable view over a snapshot of the collection.

    Each iteration sorts the snapshot again; there is no shared cursor.

    Example:
        >>> view = store.view("netProfit-desc")
        >>> [record.name for record in view]
        ['B', 'A']
        >>> list(view) == list(view)
        True
    """

    def __init__(self, records: Sequence[ProductRecord], option: SortOption) -> None:
        self._records: Tuple[ProductRecord, ...] = tuple(records)
        self._option = option

    @property
    def sort_option(self) -> SortOption:
        return self._option

    def __iter__(self) -> Iterator[ProductRecord]:
        return sort_records(self._records, self._option)

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"CatalogView(sort={self._option.value!r}, records={len(self._records)})"
