"""
==============================================================================
Health Check Endpoints
==============================================================================

System health status endpoints for monitoring.

==============================================================================
"""

from fastapi import APIRouter

from tracker.catalog import get_store
from tracker.core.exceptions import CorruptStateError


router = APIRouter(prefix="/health", tags=["Health"])


class HealthController:
    """Controller for health check operations."""

    def check_store(self) -> dict:
        """Check catalog and storage status."""
        store = get_store()
        if store is None:
            return {"catalog": "not_loaded", "storage": "unknown", "products": 0}

        if store.load_error is None:
            catalog = "healthy"
        elif isinstance(store.load_error, CorruptStateError):
            catalog = "recovered"
        else:
            catalog = "unavailable"

        return {
            "catalog": catalog,
            "storage": "healthy" if store.storage.ping() else "unhealthy",
            "products": len(store)
        }

    def get_health(self) -> dict:
        """Get full health status."""
        info = self.check_store()
        healthy = info["catalog"] == "healthy" and info["storage"] == "healthy"

        return {
            "status": "healthy" if healthy else "degraded",
            "components": {
                "api": "healthy",
                "catalog": info["catalog"],
                "storage": info["storage"]
            },
            "details": {
                "products_loaded": info["products"]
            }
        }


@router.get("")
async def health_check():
    """
    Health check endpoint.

    Returns system status including API, catalog and storage.
    """
    controller = HealthController()
    return controller.get_health()


@router.get("/ready")
async def readiness_check():
    """Readiness probe: true once the catalog is loaded."""
    return {"ready": get_store() is not None}


@router.get("/live")
async def liveness_check():
    """Liveness probe."""
    return {"alive": True}
