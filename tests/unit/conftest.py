"""
Pytest configuration and shared fixtures for unit tests.

Provides factories for building records without touching storage.
"""

import itertools
from datetime import datetime, timezone

import pytest

from resale_dashboard.schemas import Product, PurchaseSession, Store, StorePurchase

_ids = itertools.count(1)


def _next_id(prefix: str) -> str:
    return f"{prefix}-{next(_ids)}"


@pytest.fixture
def make_session():
    """Factory for PurchaseSession records."""

    def factory(
        transportation_cost: float = 0.0,
        transfer_fee: float = 0.0,
        agency_fee: float = 0.0,
        **kwargs,
    ) -> PurchaseSession:
        return PurchaseSession(
            id=kwargs.pop("id", _next_id("session")),
            title=kwargs.pop("title", "Test trip"),
            session_date=kwargs.pop("session_date", None),
            transportation_cost=transportation_cost,
            transfer_fee=transfer_fee,
            agency_fee=agency_fee,
            **kwargs,
        )

    return factory


@pytest.fixture
def make_purchase():
    """Factory for StorePurchase records."""

    def factory(
        session_id: str,
        store_id: str,
        product_amount: float = 0.0,
        item_count: int = 0,
        **kwargs,
    ) -> StorePurchase:
        return StorePurchase(
            id=kwargs.pop("id", _next_id("purchase")),
            session_id=session_id,
            store_id=store_id,
            product_amount=product_amount,
            item_count=item_count,
            **kwargs,
        )

    return factory


@pytest.fixture
def make_product():
    """Factory for Product records."""

    def factory(store_purchase_id: str, status: str = "in_stock", **kwargs) -> Product:
        return Product(
            id=kwargs.pop("id", _next_id("product")),
            store_purchase_id=store_purchase_id,
            name=kwargs.pop("name", "Item"),
            status=status,
            **kwargs,
        )

    return factory


@pytest.fixture
def make_store():
    def factory(store_id: str, name: str = "", store_type: str = "recycle") -> Store:
        return Store(id=store_id, name=name or f"Store {store_id}", type=store_type)

    return factory


@pytest.fixture
def now() -> datetime:
    """Fixed reference time for day-count calculations."""
    return datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
