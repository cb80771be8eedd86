"""
==============================================================================
Schemas Package - Pydantic Models
==============================================================================

Request and response schemas for the HTTP API.

==============================================================================
"""

from .product import OutcomeUpdate, SortOptionInfo, product_to_dict, products_to_list

__all__ = [
    "OutcomeUpdate",
    "SortOptionInfo",
    "product_to_dict",
    "products_to_list",
]
