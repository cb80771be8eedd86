"""
==============================================================================
Product Evaluation Tracker - Application Entry Point
==============================================================================

FastAPI application with:
- Product record CRUD and outcome tracking
- Sorted listings with derived net profit
- Preview image upload
- Snapshot persistence in a SQL key-value table

Usage:
------
    # Development
    uvicorn tracker.main:app --reload

    # Production
    uvicorn tracker.main:app --host 0.0.0.0 --port 8000

==============================================================================
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError

from tracker.api.router import api_router
from tracker.catalog import init_store
from tracker.config import get_settings
from tracker.core.exceptions import PersistenceError, register_exception_handlers
from tracker.db import get_database_manager, init_db
from tracker.storage import SqlKeyValueStore


# ============================================================================
# LOGGING SETUP
# ============================================================================

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)

logger = logging.getLogger(__name__)


# ============================================================================
# APPLICATION FACTORY
# ============================================================================

class Application:
    """
    FastAPI application factory and manager.

    Handles application lifecycle including:
    - Startup (database, catalog load) and shutdown
    - Middleware configuration
    - Router registration
    - Exception handler setup
    """

    def __init__(self):
        """Initialize the application."""
        self._settings = get_settings()
        self._db_manager = None
        self._app = self._create_app()

    def _create_app(self) -> FastAPI:
        """Create and configure the FastAPI application."""
        app = FastAPI(
            title=self._settings.app_name,
            version="1.0.0",
            description="Evaluation tracker for dropshipping product candidates",
            lifespan=self._lifespan,
            docs_url="/docs",
            redoc_url="/redoc",
        )

        self._configure_middleware(app)
        register_exception_handlers(app)
        self._register_routers(app)
        self._register_root(app)

        return app

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        """Application lifespan manager."""
        self._startup()
        yield
        self._shutdown()

    def _startup(self) -> None:
        """Application startup tasks."""
        logger.info("=" * 60)
        logger.info(f"🚀 Starting {self._settings.app_name}")
        logger.info("=" * 60)

        try:
            self._db_manager = init_db()
        except SQLAlchemyError as e:
            logger.error(f"❌ Database initialization failed: {e}")
            self._db_manager = get_database_manager()

        if not self._db_manager.verify_connection():
            logger.warning("⚠️ Database unreachable, changes will not be saved")
        self._load_catalog()

        logger.info("=" * 60)
        logger.info(f"✅ {self._settings.app_name} ready")
        logger.info(f"📍 Running on http://{self._settings.host}:{self._settings.port}")
        logger.info(f"📖 API Docs: http://{self._settings.host}:{self._settings.port}/docs")
        logger.info("=" * 60)

    def _shutdown(self) -> None:
        """Application shutdown tasks."""
        logger.info("🛑 Shutting down...")
        if self._db_manager is not None:
            self._db_manager.dispose()
        logger.info("✅ Shutdown complete")

    def _load_catalog(self) -> None:
        """Load the product catalog from the key-value store."""
        try:
            storage = SqlKeyValueStore(
                self._db_manager.engine,
                quota_bytes=self._settings.storage_quota_bytes,
            )
        except PersistenceError as e:
            logger.error(f"❌ Storage not ready: {e.message}")
            storage = SqlKeyValueStore(
                self._db_manager.engine,
                quota_bytes=self._settings.storage_quota_bytes,
                create_tables=False,
            )
        store = init_store(storage, storage_key=self._settings.storage_key)

        if store.load_error is not None:
            logger.warning(
                f"⚠️ Catalog started empty ({store.load_error.code}): "
                f"{store.load_error.message}"
            )
        logger.info(f"✅ Catalog ready with {len(store)} products")

    def _configure_middleware(self, app: FastAPI) -> None:
        """Configure application middleware."""
        app.add_middleware(
            CORSMiddleware,
            allow_origins=self._settings.cors_origins_list,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    def _register_routers(self, app: FastAPI) -> None:
        """Register API routers."""
        app.include_router(api_router)

    def _register_root(self, app: FastAPI) -> None:
        """Register root endpoint."""

        @app.get("/", include_in_schema=False)
        async def root():
            """Redirect to the interactive API docs."""
            return RedirectResponse(url="/docs")

    @property
    def app(self) -> FastAPI:
        """Get the FastAPI application instance."""
        return self._app


# ============================================================================
# APPLICATION INSTANCE
# ============================================================================

application = Application()
app = application.app


# ============================================================================
# ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "tracker.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info"
    )
