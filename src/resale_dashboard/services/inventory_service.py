"""
Product state transitions: sale, hold and disposal.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Optional

from ..config.constants import (
    STATUS_DISCARDED,
    STATUS_ON_HOLD,
    STATUS_SOLD,
    TABLE_PRODUCTS,
)
from ..schemas import Product
from ..storage import StorageBackend, StorageError
from .exceptions import MutationError, SessionValidationError

logger = logging.getLogger(__name__)

# Products in these states can no longer change state
FINAL_STATUSES = (STATUS_SOLD, STATUS_DISCARDED)


def _check_amount(name: str, value: float) -> None:
    if not math.isfinite(value):
        raise SessionValidationError(f"{name} must be a finite number", field=name)
    if value < 0:
        raise SessionValidationError(f"{name} must not be negative", field=name)


class InventoryService:
    """Applies sale, hold and discard transitions to products."""

    def __init__(self, backend: StorageBackend):
        self._backend = backend

    def _load(self, product_id: str) -> dict:
        try:
            row = self._backend.get_by_id(TABLE_PRODUCTS, product_id)
        except StorageError as e:
            raise MutationError(f"Failed to load product: {e}") from e
        if row is None:
            raise MutationError(f"Product not found: {product_id}")
        return row

    def _transition(self, product_id: str, target: str, values: dict) -> Product:
        row = self._load(product_id)
        product = Product.from_row(row)
        if product.status in FINAL_STATUSES:
            raise MutationError(
                f"Cannot change product {product_id} to {target}: "
                f"it is already {product.status}"
            )

        values = {"status": target, **values}
        try:
            self._backend.update(TABLE_PRODUCTS, product_id, values)
        except StorageError as e:
            raise MutationError(f"Failed to update product: {e}") from e

        logger.info(f"Product {product_id}: {product.status} -> {target}")
        return Product.from_row({**row, **values})

    def record_sale(
        self,
        product_id: str,
        sold_price: float,
        shipping_cost: float = 0.0,
        platform_fee: Optional[float] = None,
        sold_at: Optional[datetime] = None,
        shipping_method: Optional[str] = None,
    ) -> Product:
        """
        Mark a product as sold.

        When platform_fee is omitted the stored fee stays empty and
        reports fall back to the default platform fee rate.

        Raises:
            SessionValidationError: If a price or cost is negative or not finite
            MutationError: If the product is missing, already sold or
                discarded, or the update fails
        """
        _check_amount("sold_price", sold_price)
        _check_amount("shipping_cost", shipping_cost)
        if platform_fee is not None:
            _check_amount("platform_fee", platform_fee)

        values = {
            "sold_price": sold_price,
            "shipping_cost": shipping_cost,
            "sold_at": sold_at or datetime.now(timezone.utc),
        }
        if platform_fee is not None:
            values["platform_fee"] = platform_fee
        if shipping_method:
            values["shipping_method"] = shipping_method

        return self._transition(product_id, STATUS_SOLD, values)

    def hold(
        self,
        product_id: str,
        reason: str = "",
        held_at: Optional[datetime] = None,
    ) -> Product:
        """Put a product on hold."""
        return self._transition(
            product_id,
            STATUS_ON_HOLD,
            {"hold_reason": reason, "held_at": held_at or datetime.now(timezone.utc)},
        )

    def discard(
        self,
        product_id: str,
        reason: str = "",
        discarded_at: Optional[datetime] = None,
    ) -> Product:
        """Write a product off."""
        return self._transition(
            product_id,
            STATUS_DISCARDED,
            {
                "discard_reason": reason,
                "discarded_at": discarded_at or datetime.now(timezone.utc),
            },
        )
