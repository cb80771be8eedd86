"""
==============================================================================
API v1 Endpoints
==============================================================================

Version 1 of the REST API.

Routers:
--------
- health: Health check endpoints
- products: Product records, outcomes and listings
- images: Preview image upload

==============================================================================
"""

from . import health, images, products

__all__ = ["health", "images", "products"]
