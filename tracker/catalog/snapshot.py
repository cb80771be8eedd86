"""
==============================================================================
Snapshot Codec Module
==============================================================================

Encoding of the product collection for the key-value store.

JSON Structure:
--------------
[
  {
    "id": "4f1c...",
    "name": "Posture Corrector",
    "supplier_price": "100",
    "marketplace_price": null,
    "target_sale_price": "400",
    "other_costs": "50",
    "state": "untried",
    "recorded_outcome": "untried",
    "created_at": "2026-01-15T10:30:45+00:00",
    ...
  },
  ...
]

Only stored fields are written. Derived fields (net_profit, tiers,
tried/outcome) are recomputed on load.

==============================================================================
"""

from __future__ import annotations

import json
from typing import List, Sequence

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from tracker.core.exceptions import CorruptStateError

from .models import STORED_FIELDS, ProductRecord


_SNAPSHOT_ADAPTER = TypeAdapter(List[ProductRecord])
_STORED_FIELDS = set(STORED_FIELDS)


def encode_snapshot(records: Sequence[ProductRecord]) -> str:
    """
    Serialize records in collection order.

    Args:
        records: Records to encode

    Returns:
        JSON array string
    """
    return json.dumps(
        [record.model_dump(mode="json", include=_STORED_FIELDS) for record in records],
        ensure_ascii=False,
    )


def decode_snapshot(raw: str) -> List[ProductRecord]:
    """
    Parse a stored snapshot.

    Args:
        raw: JSON array string written by encode_snapshot()

    Returns:
        Records in stored order

    Raises:
        CorruptStateError: Invalid JSON, wrong shape, invalid values or duplicate ids
    """
    try:
        records = _SNAPSHOT_ADAPTER.validate_json(raw)
    except PydanticValidationError as e:
        error = e.errors()[0]
        location = ".".join(str(part) for part in error.get("loc", ()))
        reason = error.get("msg", "invalid snapshot")
        raise CorruptStateError(f"{location}: {reason}" if location else reason) from e

    seen = set()
    for record in records:
        if record.id in seen:
            raise CorruptStateError(f"duplicate record id '{record.id}'")
        seen.add(record.id)

    return records
