"""
Integration tests for the SQLite storage backend and backend factory.
"""

import pytest

from resale_dashboard.storage import (
    SchemaError,
    StorageError,
    eq,
    get_backend,
    gt,
    gte,
    in_,
    is_backend_available,
    list_available_backends,
    lt,
    lte,
)
from resale_dashboard.storage.sqlite_backend import SQLiteBackend


class TestFactory:
    def test_creates_sqlite_backend(self, temp_db_path):
        backend = get_backend("sqlite", db_path=temp_db_path)

        assert isinstance(backend, SQLiteBackend)
        assert backend.db_path == temp_db_path
        backend.close()

    def test_unknown_backend(self):
        with pytest.raises(StorageError, match="Unknown storage backend"):
            get_backend("bigquery")

    def test_available_backends(self):
        assert set(list_available_backends()) >= {"sqlite", "remote"}
        assert is_backend_available("SQLite")
        assert not is_backend_available("bigquery")


class TestSchema:
    def test_initialize_creates_tables(self, sqlite_backend):
        for table in ("purchase_sessions", "stores", "store_purchases", "products"):
            assert sqlite_backend.table_exists(table)

    def test_initialize_is_idempotent(self, sqlite_backend):
        sqlite_backend.initialize()

        assert sqlite_backend.get_table_row_count("products") == 0

    def test_health_check(self, sqlite_backend):
        health = sqlite_backend.health_check()

        assert health["healthy"] is True
        assert health["details"]["db_path"] == str(sqlite_backend.db_path)


class TestSelect:
    """Tests for filtered reads."""

    def test_equality_filter(self, seeded_backend):
        rows = seeded_backend.select("purchase_sessions", [eq("status", "completed")])

        assert [row["id"] for row in rows] == ["session-sep"]

    def test_range_filters(self, seeded_backend):
        rows = seeded_backend.select(
            "products",
            [gte("sold_at", "2026-10-01"), lt("sold_at", "2026-10-31")],
        )

        assert [row["id"] for row in rows] == ["product-a-sold"]

    def test_numeric_comparisons(self, seeded_backend):
        cheap = seeded_backend.select("products", [lte("purchase_cost", 250)])
        pricey = seeded_backend.select("products", [gt("purchase_cost", 500)])

        assert {row["id"] for row in cheap} == {"product-a-sold", "product-a-stock"}
        assert [row["id"] for row in pricey] == ["product-b-sold"]

    def test_in_filter(self, seeded_backend):
        rows = seeded_backend.select(
            "products", [in_("status", ["in_stock", "listed"])]
        )

        assert {row["id"] for row in rows} == {"product-a-listed", "product-a-stock"}

    def test_empty_in_filter_matches_nothing(self, seeded_backend):
        assert seeded_backend.select("products", [in_("id", [])]) == []

    def test_order_and_limit(self, seeded_backend):
        rows = seeded_backend.select(
            "purchase_sessions", order_by="session_date", descending=True, limit=1
        )

        assert [row["id"] for row in rows] == ["session-oct"]

    def test_photos_are_decoded(self, seeded_backend):
        row = seeded_backend.get_by_id("products", "product-a-sold")

        assert row["photos"] == ["jacket.jpg"]

    def test_unknown_column_is_rejected(self, seeded_backend):
        with pytest.raises(SchemaError):
            seeded_backend.select("products", [eq("price; DROP TABLE products", 1)])

    def test_unknown_table_is_rejected(self, seeded_backend):
        with pytest.raises(SchemaError):
            seeded_backend.select("users")


class TestWrites:
    """Tests for insert, update and delete."""

    def test_insert_assigns_id_and_created_at(self, sqlite_backend):
        (row,) = sqlite_backend.insert(
            "stores", [{"name": "New store", "type": "online"}]
        )

        assert row["id"]
        assert row["created_at"]
        assert sqlite_backend.get_by_id("stores", row["id"])["name"] == "New store"

    def test_update(self, seeded_backend):
        count = seeded_backend.update(
            "products", "product-a-stock", {"status": "listed", "photos": ["a.jpg"]}
        )

        row = seeded_backend.get_by_id("products", "product-a-stock")
        assert count == 1
        assert row["status"] == "listed"
        assert row["photos"] == ["a.jpg"]

    def test_update_missing_row(self, seeded_backend):
        assert seeded_backend.update("products", "nope", {"status": "listed"}) == 0

    def test_check_constraint_raises_storage_error(self, seeded_backend):
        with pytest.raises(StorageError):
            seeded_backend.update("products", "product-a-stock", {"status": "lost"})

    def test_deleting_session_removes_its_purchases(self, seeded_backend):
        seeded_backend.delete("purchase_sessions", "session-oct")

        purchases = seeded_backend.select(
            "store_purchases", [eq("session_id", "session-oct")]
        )
        orphan = seeded_backend.get_by_id("products", "product-a-sold")
        assert purchases == []
        assert orphan is not None
        assert orphan["store_purchase_id"] is None

    def test_row_count(self, seeded_backend):
        assert seeded_backend.get_table_row_count("products") == 5
