"""
==============================================================================
FastAPI Dependencies Module
==============================================================================

Dependency injection for the catalog store and the image collaborator.

Dependency Hierarchy:
--------------------
    ┌─────────────────┐      ┌──────────────────────┐
    │  get_settings() │ ───▶ │ get_image_compressor │
    └─────────────────┘      └──────────────────────┘

    ┌─────────────────┐      ┌──────────────────────┐
    │   get_store()   │ ───▶ │  get_catalog_store   │
    └─────────────────┘      └──────────────────────┘

Usage Examples:
--------------
    @router.get("")
    async def list_products(store: CatalogStore = Depends(get_catalog_store)):
        return [record.name for record in store.view()]

Tests replace get_catalog_store through app.dependency_overrides.

==============================================================================
"""

from __future__ import annotations

from functools import lru_cache

from tracker.catalog import CatalogStore, get_store
from tracker.config import get_settings
from tracker.core import exceptions
from tracker.imaging import ImageCompressor


def get_catalog_store() -> CatalogStore:
    """
    FastAPI dependency returning the loaded catalog store.

    Raises:
        AppException: STORE_NOT_LOADED before application startup
    """
    store = get_store()
    if store is None:
        raise exceptions.store_not_loaded()
    return store


@lru_cache(maxsize=1)
def get_image_compressor() -> ImageCompressor:
    """FastAPI dependency returning the configured image compressor."""
    settings = get_settings()
    return ImageCompressor(
        max_width=settings.image_max_width,
        jpeg_quality=settings.image_jpeg_quality,
        max_upload_bytes=settings.image_max_upload_bytes,
    )
