"""
==============================================================================
Product Schemas Module
==============================================================================

Request and response helpers for product endpoints.

Product create/update bodies are plain JSON objects validated by
RecordInput.from_data(), so that errors name the offending field in
the AppException envelope.

==============================================================================
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from tracker.catalog import ProductRecord, SortOption


class OutcomeUpdate(BaseModel):
    """
    Outcome request body.

    succeeded=None toggles tried/untried; true/false records the result.
    """

    succeeded: Optional[bool] = Field(default=None)


class SortOptionInfo(BaseModel):
    """One entry of the sort options listing."""

    value: str
    key: str
    descending: bool

    @classmethod
    def from_option(cls, option: SortOption) -> "SortOptionInfo":
        return cls(value=option.value, key=option.key, descending=option.descending)


def product_to_dict(record: ProductRecord, include_image: bool = True) -> Dict[str, Any]:
    """
    Serialize a record with its derived fields.

    Args:
        record: Record to serialize
        include_image: Include the (large) image_reference data URL

    Returns:
        JSON-compatible dict
    """
    data = record.model_dump(mode="json")
    if not include_image:
        data["has_image"] = bool(data.pop("image_reference"))
    return data


def products_to_list(records, include_image: bool = True) -> List[Dict[str, Any]]:
    """Serialize records in the given order."""
    return [product_to_dict(record, include_image) for record in records]
