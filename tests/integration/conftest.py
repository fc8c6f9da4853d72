"""
Shared fixtures for integration tests.

Provides:
- Temporary SQLite database for isolated testing
- A small, fully known purchase dataset
- A backend wrapper that fails selected reads
"""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from resale_dashboard.storage import QueryError, get_backend
from resale_dashboard.storage.base import StorageBackend

# =============================================================================
# SAMPLE DATA
# =============================================================================

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)

SAMPLE_STORES = [
    {"id": "store-a", "name": "Eastside Recycle", "type": "recycle"},
    {"id": "store-b", "name": "Harbor Wholesale", "type": "wholesale"},
]

SAMPLE_SESSIONS = [
    {
        "id": "session-oct",
        "title": "October trip",
        "session_date": "2026-10-01",
        "status": "active",
        "transportation_cost": 400,
    },
    {
        "id": "session-sep",
        "title": "September trip",
        "session_date": "2026-09-01",
        "status": "completed",
    },
]

SAMPLE_STORE_PURCHASES = [
    {
        "id": "purchase-a",
        "session_id": "session-oct",
        "store_id": "store-a",
        "product_amount": 800,
        "shipping_cost": 150,
        "commission_fee": 50,
        "item_count": 4,
        "created_at": "2026-10-01T09:00:00+00:00",
    },
    {
        "id": "purchase-b",
        "session_id": "session-oct",
        "store_id": "store-b",
        "product_amount": 3000,
        "item_count": 2,
        "created_at": "2026-10-01T10:00:00+00:00",
    },
    {
        "id": "purchase-c",
        "session_id": "session-sep",
        "store_id": "store-a",
        "product_amount": 500,
        "item_count": 1,
        "purchase_date": "2026-09-01",
        "created_at": "2026-09-01T09:00:00+00:00",
    },
]

SAMPLE_PRODUCTS = [
    {
        "id": "product-a-sold",
        "store_purchase_id": "purchase-a",
        "name": "Denim jacket",
        "category": "Apparel",
        "status": "sold",
        "purchase_cost": 250,
        "sold_price": 2000,
        "shipping_cost": 200,
        "photos": ["jacket.jpg"],
        "created_at": "2026-10-01T12:00:00+00:00",
        "sold_at": "2026-10-05T18:00:00+00:00",
    },
    {
        "id": "product-a-listed",
        "store_purchase_id": "purchase-a",
        "name": "Vintage radio",
        "category": "Electronics",
        "status": "listed",
        "purchase_cost": 300,
        "allocated_cost": 350,
        "photos": ["radio.jpg"],
        "created_at": "2026-07-01T12:00:00+00:00",
    },
    {
        "id": "product-a-stock",
        "store_purchase_id": "purchase-a",
        "name": "Board game",
        "status": "in_stock",
        "purchase_cost": 200,
        "created_at": "2026-10-02T12:00:00+00:00",
    },
    {
        "id": "product-b-sold",
        "store_purchase_id": "purchase-b",
        "name": "Camera lens",
        "category": "Electronics",
        "status": "sold",
        "purchase_cost": 1500,
        "sold_price": 5000,
        "platform_fee": 500,
        "shipping_cost": 0,
        "created_at": "2026-10-01T12:00:00+00:00",
        "sold_at": "2026-10-31T23:00:00+00:00",
    },
    {
        "id": "product-c-discarded",
        "store_purchase_id": "purchase-c",
        "name": "Cracked vase",
        "status": "discarded",
        "purchase_cost": 500,
        "created_at": "2026-09-01T12:00:00+00:00",
        "discarded_at": "2026-09-02T12:00:00+00:00",
    },
]


def seed(backend: StorageBackend) -> None:
    backend.insert("stores", SAMPLE_STORES)
    backend.insert("purchase_sessions", SAMPLE_SESSIONS)
    backend.insert("store_purchases", SAMPLE_STORE_PURCHASES)
    backend.insert("products", SAMPLE_PRODUCTS)


# =============================================================================
# BACKEND FIXTURES
# =============================================================================


@pytest.fixture
def temp_db_path(tmp_path: Path) -> Path:
    """Provide a temporary database path."""
    return tmp_path / "test_resale.db"


@pytest.fixture
def sqlite_backend(temp_db_path: Path):
    """Provide an initialized, empty SQLite backend."""
    backend = get_backend("sqlite", db_path=temp_db_path)
    backend.initialize()
    yield backend
    backend.close()


@pytest.fixture
def seed_sample_rows():
    """Provide the function that inserts the sample dataset."""
    return seed


@pytest.fixture
def seeded_backend(sqlite_backend):
    """Provide a SQLite backend holding the sample dataset."""
    seed(sqlite_backend)
    return sqlite_backend


class FailingBackend(StorageBackend):
    """
    Wraps a backend and fails reads or writes on chosen tables.

    A select fails when its table is in fail_selects and, if
    fail_when_filter_contains is set, one of its filter values contains
    that value.
    """

    def __init__(self, inner: StorageBackend):
        self.inner = inner
        self.fail_selects: set[str] = set()
        self.fail_writes: set[str] = set()
        self.fail_when_filter_contains = None
        self.select_calls: list[str] = []

    @property
    def backend_type(self) -> str:
        return self.inner.backend_type

    def initialize(self) -> None:
        self.inner.initialize()

    def close(self) -> None:
        self.inner.close()

    def _matches(self, filters) -> bool:
        if self.fail_when_filter_contains is None:
            return True
        for flt in filters or []:
            values = flt.value if flt.op == "in" else (flt.value,)
            if self.fail_when_filter_contains in values:
                return True
        return False

    def select(self, table, filters=None, order_by=None, descending=False, limit=None):
        self.select_calls.append(table)
        if table in self.fail_selects and self._matches(filters):
            raise QueryError(f"simulated failure reading {table}")
        return self.inner.select(table, filters, order_by, descending, limit)

    def _check_write(self, table: str) -> None:
        if table in self.fail_writes:
            raise QueryError(f"simulated failure writing {table}")

    def insert(self, table, rows):
        self._check_write(table)
        return self.inner.insert(table, rows)

    def update(self, table, row_id, values):
        self._check_write(table)
        return self.inner.update(table, row_id, values)

    def delete(self, table, row_id):
        self._check_write(table)
        return self.inner.delete(table, row_id)

    def table_exists(self, table_name):
        return self.inner.table_exists(table_name)


@pytest.fixture
def failing_backend(seeded_backend):
    """Provide a seeded backend whose failures can be switched on per table."""
    return FailingBackend(seeded_backend)


@pytest.fixture
def now() -> datetime:
    return NOW
