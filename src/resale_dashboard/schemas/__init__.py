"""Typed records for purchase and inventory rows."""

from .records import Product, PurchaseSession, Store, StorePurchase

__all__ = [
    "PurchaseSession",
    "Store",
    "StorePurchase",
    "Product",
]
