"""
Unit tests for decoding storage rows into records.
"""

from datetime import date, datetime, timezone

import pytest

from resale_dashboard.schemas import Product, PurchaseSession, Store, StorePurchase


class TestPurchaseSession:
    def test_from_row_defaults(self):
        """Missing costs decode to 0 and status to active."""
        session = PurchaseSession.from_row(
            {"id": "s1", "title": "Trip", "session_date": "2026-10-01"}
        )

        assert session.session_date == date(2026, 10, 1)
        assert session.status == "active"
        assert session.shared_cost == 0

    def test_shared_cost(self):
        session = PurchaseSession.from_row(
            {
                "id": "s1",
                "title": "Trip",
                "transportation_cost": 1200,
                "transfer_fee": "330",
                "agency_fee": None,
            }
        )

        assert session.shared_cost == 1530


class TestStorePurchase:
    def test_purchase_amount(self):
        purchase = StorePurchase.from_row(
            {
                "id": "p1",
                "session_id": "s1",
                "store_id": "st1",
                "product_amount": 1000,
                "shipping_cost": 500,
                "commission_fee": 100,
                "item_count": 4,
            }
        )

        assert purchase.purchase_amount == 1600
        assert purchase.item_count == 4

    def test_legacy_product_cost_column(self):
        """Rows written before product_amount existed use product_cost."""
        purchase = StorePurchase.from_row(
            {"id": "p1", "session_id": "s1", "store_id": "st1", "product_cost": 800}
        )

        assert purchase.product_amount == 800

    def test_garbage_numbers_decode_to_zero(self):
        purchase = StorePurchase.from_row(
            {"id": "p1", "session_id": "s1", "store_id": "st1", "item_count": "n/a"}
        )

        assert purchase.item_count == 0
        assert purchase.purchase_amount == 0

    @pytest.mark.parametrize("value", ["Infinity", "-Infinity", "NaN", float("inf")])
    def test_non_finite_numbers_decode_to_zero(self, value):
        purchase = StorePurchase.from_row(
            {
                "id": "p1",
                "session_id": "s1",
                "store_id": "st1",
                "item_count": value,
                "shipping_cost": value,
            }
        )

        assert purchase.item_count == 0
        assert purchase.shipping_cost == 0


class TestProduct:
    def test_optional_fields_stay_none(self):
        product = Product.from_row({"id": "x", "store_purchase_id": "p1", "name": "Cap"})

        assert product.sold_price is None
        assert product.platform_fee is None
        assert product.allocated_cost is None
        assert product.photos == []
        assert product.status == "in_stock"
        assert product.created_at is None

    def test_non_finite_optional_number_is_none(self):
        product = Product.from_row(
            {
                "id": "x",
                "store_purchase_id": "p1",
                "sold_price": "NaN",
                "platform_fee": "Infinity",
            }
        )

        assert product.sold_price is None
        assert product.platform_fee is None

    def test_timestamps_are_aware(self):
        product = Product.from_row(
            {
                "id": "x",
                "store_purchase_id": "p1",
                "created_at": "2026-10-01T09:30:00",
                "sold_at": "2026-10-05T10:00:00Z",
            }
        )

        assert product.created_at == datetime(2026, 10, 1, 9, 30, tzinfo=timezone.utc)
        assert product.sold_at.tzinfo is not None

    def test_cost_prefers_allocated(self):
        allocated = Product(id="a", store_purchase_id=None, purchase_cost=100, allocated_cost=150)
        raw = Product(id="b", store_purchase_id=None, purchase_cost=100)

        assert allocated.cost == 150
        assert raw.cost == 100

    def test_photos(self):
        product = Product.from_row(
            {"id": "x", "store_purchase_id": None, "photos": ["a.jpg", "", "b.jpg"]}
        )

        assert product.photos == ["a.jpg", "b.jpg"]
        assert product.has_photos


class TestStore:
    def test_from_row(self):
        store = Store.from_row({"id": "st1", "name": "Harbor", "prefecture": ""})

        assert store.type == "other"
        assert store.prefecture is None
