"""
==============================================================================
Product Catalog Endpoints
==============================================================================

Endpoints for recording, editing, marking and listing evaluated products.

==============================================================================
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, Response

from tracker.catalog import CatalogStore, SortOption
from tracker.config import get_settings
from tracker.core.dependencies import get_catalog_store
from tracker.core.exceptions import ImageNotFoundError
from tracker.imaging import decode_reference
from tracker.schemas import OutcomeUpdate, SortOptionInfo, product_to_dict, products_to_list


router = APIRouter(prefix="/products", tags=["Products"])


class ProductController:
    """Controller for product catalog operations."""

    def __init__(self, store: CatalogStore):
        self._store = store

    def list_products(self, sort: Optional[str], include_images: bool) -> dict:
        """List products in partitioned sort order."""
        view = self._store.view(sort or get_settings().default_sort)

        return {
            "success": True,
            "sort": view.sort_option.value,
            "total": len(view),
            "products": products_to_list(view, include_image=include_images)
        }

    def sort_options(self) -> dict:
        """List supported sort options."""
        return {
            "success": True,
            "default": get_settings().default_sort,
            "options": [
                SortOptionInfo.from_option(option).model_dump()
                for option in SortOption
            ]
        }

    def get_stats(self) -> dict:
        """Get catalog statistics."""
        stats = self._store.get_stats()
        for key in ("average_net_profit", "best_net_profit"):
            if stats[key] is not None:
                stats[key] = str(stats[key])
        return {
            "success": True,
            "stats": stats
        }

    def get_product(self, record_id: str) -> dict:
        """Get a product by id."""
        return {
            "success": True,
            "product": product_to_dict(self._store.get(record_id))
        }

    def create(self, payload: Dict[str, Any]) -> dict:
        """Create a product."""
        record = self._store.add(payload)
        return {
            "success": True,
            "product": product_to_dict(record)
        }

    def update(self, record_id: str, payload: Dict[str, Any]) -> dict:
        """Replace the editable fields of a product."""
        record = self._store.update(record_id, payload)
        return {
            "success": True,
            "product": product_to_dict(record)
        }

    def delete(self, record_id: str, confirm: bool) -> dict:
        """Delete a product after confirmation."""
        record = self._store.remove(record_id, confirmed=confirm)
        return {
            "success": True,
            "message": f"Product '{record.name}' deleted",
            "id": record.id
        }

    def mark_outcome(self, record_id: str, succeeded: Optional[bool]) -> dict:
        """Advance the tried/outcome state."""
        record = self._store.mark_outcome(record_id, succeeded)
        return {
            "success": True,
            "product": product_to_dict(record, include_image=False)
        }

    def get_image(self, record_id: str) -> Response:
        """Return the stored preview as a JPEG."""
        record = self._store.get(record_id)
        if not record.image_reference:
            raise ImageNotFoundError(record_id)
        return Response(
            content=decode_reference(record.image_reference),
            media_type="image/jpeg"
        )


@router.get("")
async def list_products(
    sort: Optional[str] = Query(None, description="Sort option, e.g. netProfit-desc"),
    include_images: bool = Query(True),
    store: CatalogStore = Depends(get_catalog_store)
):
    """List products: untried first, then tried, each ordered by the sort option."""
    controller = ProductController(store)
    return controller.list_products(sort, include_images)


@router.get("/sort-options")
async def get_sort_options(store: CatalogStore = Depends(get_catalog_store)):
    """Get the supported sort options."""
    controller = ProductController(store)
    return controller.sort_options()


@router.get("/stats")
async def get_catalog_stats(store: CatalogStore = Depends(get_catalog_store)):
    """Get catalog statistics."""
    controller = ProductController(store)
    return controller.get_stats()


@router.post("")
async def create_product(
    payload: Dict[str, Any] = Body(...),
    store: CatalogStore = Depends(get_catalog_store)
):
    """Create a product record."""
    controller = ProductController(store)
    return controller.create(payload)


@router.get("/{record_id}")
async def get_product(record_id: str, store: CatalogStore = Depends(get_catalog_store)):
    """Get a product record by id."""
    controller = ProductController(store)
    return controller.get_product(record_id)


@router.put("/{record_id}")
async def update_product(
    record_id: str,
    payload: Dict[str, Any] = Body(...),
    store: CatalogStore = Depends(get_catalog_store)
):
    """Edit a product record. An empty image_reference keeps the current preview."""
    controller = ProductController(store)
    return controller.update(record_id, payload)


@router.delete("/{record_id}")
async def delete_product(
    record_id: str,
    confirm: bool = Query(False, description="Must be true to delete"),
    store: CatalogStore = Depends(get_catalog_store)
):
    """Delete a product record."""
    controller = ProductController(store)
    return controller.delete(record_id, confirm)


@router.post("/{record_id}/outcome")
async def mark_outcome(
    record_id: str,
    body: Optional[OutcomeUpdate] = None,
    store: CatalogStore = Depends(get_catalog_store)
):
    """
    Mark a product as tried or record its outcome.

    An empty body or {"succeeded": null} toggles tried/untried.
    """
    controller = ProductController(store)
    return controller.mark_outcome(record_id, body.succeeded if body else None)


@router.get("/{record_id}/image")
async def get_product_image(record_id: str, store: CatalogStore = Depends(get_catalog_store)):
    """Get the product preview image."""
    controller = ProductController(store)
    return controller.get_image(record_id)
