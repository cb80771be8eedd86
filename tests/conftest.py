"""
==============================================================================
Pytest Configuration and Fixtures
==============================================================================

Provides storage, catalog store, clock and HTTP client fixtures.

==============================================================================
"""

import os

# In-memory database for the application lifespan during tests
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from tracker.catalog import CatalogStore
from tracker.core.dependencies import get_catalog_store
from tracker.main import app
from tracker.storage import MemoryKeyValueStore


# ============================================================================
# CLOCK / ID FIXTURES
# ============================================================================

class TickingClock:
    """Returns a strictly increasing UTC timestamp on every call."""

    def __init__(self, start: datetime, step: timedelta = timedelta(minutes=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value


class SequentialIds:
    """Returns p1, p2, p3, ..."""

    def __init__(self) -> None:
        self.counter = 0

    def __call__(self) -> str:
        self.counter += 1
        return f"p{self.counter}"


@pytest.fixture
def clock() -> TickingClock:
    """Clock starting at 2026-01-01 00:00 UTC, one minute per call."""
    return TickingClock(datetime(2026, 1, 1, tzinfo=timezone.utc))


@pytest.fixture
def id_factory() -> SequentialIds:
    return SequentialIds()


# ============================================================================
# STORAGE FIXTURES
# ============================================================================

@pytest.fixture
def kv_storage() -> MemoryKeyValueStore:
    """Empty in-memory key-value store."""
    return MemoryKeyValueStore()


@pytest.fixture
def sql_engine() -> Generator[Engine, None, None]:
    """Fresh in-memory SQLite engine."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield engine
    engine.dispose()


# ============================================================================
# CATALOG FIXTURES
# ============================================================================

@pytest.fixture
def store(kv_storage, clock, id_factory) -> CatalogStore:
    """Loaded, empty catalog store over in-memory storage."""
    catalog_store = CatalogStore(kv_storage, clock=clock, id_factory=id_factory)
    catalog_store.load()
    return catalog_store


@pytest.fixture
def product_data() -> Callable[..., Dict[str, Any]]:
    """Factory for valid raw product input with overrides."""

    def build(**overrides: Any) -> Dict[str, Any]:
        data = {
            "name": "Posture Corrector",
            "storefront_url": "https://shop.example.com/products/posture",
            "supplier_url": "https://supplier.example.com/item/1",
            "ad_library_url": "https://ads.example.com/library?q=posture",
            "supplier_price": "100",
            "marketplace_price": "",
            "target_sale_price": "400",
            "other_costs": "50",
            "creative_count": "3",
            "rating": "5",
            "notes": "",
            "image_reference": "",
        }
        data.update(overrides)
        return data

    return build


# ============================================================================
# HTTP CLIENT FIXTURES
# ============================================================================

@pytest.fixture
def client(store: CatalogStore) -> Generator[TestClient, None, None]:
    """Test client with the catalog store dependency overridden."""
    app.dependency_overrides[get_catalog_store] = lambda: store

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
