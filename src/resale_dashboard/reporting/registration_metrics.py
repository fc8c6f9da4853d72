"""
Registration progress and photo coverage for a purchase session.

Every item bought in a session should eventually be registered as a
product, and every registered product should have photos. These metrics
show how far along that data entry is.
"""

import math
from dataclasses import asdict, dataclass, field
from typing import Iterable, Optional

from ..schemas import Product, StorePurchase


def completion_percent(part: float, whole: float) -> int:
    """
    Integer percentage of part in whole.

    Rounded half-up, clamped to 0-100, and 0 when whole is 0.
    """
    if whole <= 0:
        return 0
    percent = math.floor(part / whole * 100 + 0.5)
    return max(0, min(100, percent))


@dataclass
class StoreRegistrationDetail:
    """Registration progress for one store purchase."""

    store_purchase_id: str
    store_id: str
    store_name: str
    item_count: int
    registered_count: int
    purchase_amount: float

    @property
    def has_unregistered(self) -> bool:
        return self.registered_count < self.item_count


@dataclass
class RegistrationMetrics:
    """Session-wide registration and photo progress."""

    total_items: int = 0
    registered_items: int = 0
    items_with_photos: int = 0
    registration_rate: int = 0
    photo_rate: int = 0
    stores: list[StoreRegistrationDetail] = field(default_factory=list)

    @property
    def unregistered_items(self) -> int:
        return max(0, self.total_items - self.registered_items)

    @property
    def items_without_photos(self) -> int:
        return max(0, self.registered_items - self.items_with_photos)

    @property
    def is_complete(self) -> bool:
        return self.total_items > 0 and self.unregistered_items == 0

    def to_dict(self) -> dict:
        result = asdict(self)
        result["unregistered_items"] = self.unregistered_items
        result["items_without_photos"] = self.items_without_photos
        return result


def compute_registration_metrics(
    store_purchases: Iterable[StorePurchase],
    products: Iterable[Product],
    store_names: Optional[dict[str, str]] = None,
) -> RegistrationMetrics:
    """
    Compare purchased item counts with registered products.

    Args:
        store_purchases: The session's store purchases
        products: Products; only those linked to the given purchases count
        store_names: Store id to display name (optional)

    Returns:
        RegistrationMetrics with one detail row per store purchase
    """
    store_names = store_names or {}
    purchases = list(store_purchases)

    registered_by_purchase: dict[str, int] = {p.id: 0 for p in purchases}
    metrics = RegistrationMetrics()

    for product in products:
        if product.store_purchase_id not in registered_by_purchase:
            continue
        registered_by_purchase[product.store_purchase_id] += 1
        metrics.registered_items += 1
        if product.has_photos:
            metrics.items_with_photos += 1

    for purchase in purchases:
        metrics.total_items += purchase.item_count
        metrics.stores.append(
            StoreRegistrationDetail(
                store_purchase_id=purchase.id,
                store_id=purchase.store_id,
                store_name=store_names.get(purchase.store_id, ""),
                item_count=purchase.item_count,
                registered_count=registered_by_purchase[purchase.id],
                purchase_amount=purchase.purchase_amount,
            )
        )

    metrics.registration_rate = completion_percent(
        metrics.registered_items, metrics.total_items
    )
    metrics.photo_rate = completion_percent(
        metrics.items_with_photos, metrics.registered_items
    )
    return metrics
