"""
Cross-session store overview.

Rolls every store purchase up to its store and ranks stores by return
on what was spent there.
"""

from dataclasses import asdict, dataclass
from datetime import date
from typing import Iterable, Optional

from ..config.constants import (
    LOWEST_STORE_RANK,
    STATUS_SOLD,
    STORE_RANK_THRESHOLDS,
)
from ..schemas import Product, Store, StorePurchase
from .session_aggregations import UNKNOWN_STORE_NAME, safe_percentage


def rank_for_roi(roi: float) -> str:
    """Letter rank for an ROI percentage."""
    for rank, threshold in STORE_RANK_THRESHOLDS:
        if roi >= threshold:
            return rank
    return LOWEST_STORE_RANK


@dataclass
class StoreOverview:
    store_id: str
    store_name: str
    store_type: str = "other"
    purchase_count: int = 0
    total_amount: float = 0.0
    total_items: int = 0
    sold_items: int = 0
    sold_amount: float = 0.0
    profit: float = 0.0
    profit_rate: float = 0.0
    roi: float = 0.0
    last_purchase_date: Optional[date] = None
    rank: str = LOWEST_STORE_RANK
    position: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def _purchase_day(purchase: StorePurchase) -> Optional[date]:
    if purchase.purchase_date:
        return purchase.purchase_date
    if purchase.created_at:
        return purchase.created_at.date()
    return None


def compute_store_overview(
    store_purchases: Iterable[StorePurchase],
    products: Iterable[Product],
    stores: Iterable[Store] = (),
) -> list[StoreOverview]:
    """
    Summarize every store that has at least one purchase.

    Args:
        store_purchases: All store purchases
        products: Products; sold ones count toward their purchase's store
        stores: Store records, for names and types

    Returns:
        StoreOverview list sorted by ROI descending, positions from 1
    """
    store_info = {store.id: store for store in stores}
    overviews: dict[str, StoreOverview] = {}
    store_of_purchase: dict[str, str] = {}

    for purchase in store_purchases:
        store_of_purchase[purchase.id] = purchase.store_id
        overview = overviews.get(purchase.store_id)
        if overview is None:
            store = store_info.get(purchase.store_id)
            overview = StoreOverview(
                store_id=purchase.store_id,
                store_name=store.name if store else UNKNOWN_STORE_NAME,
                store_type=store.type if store else "other",
            )
            overviews[purchase.store_id] = overview

        overview.purchase_count += 1
        overview.total_amount += purchase.purchase_amount
        overview.total_items += purchase.item_count

        day = _purchase_day(purchase)
        if day and (overview.last_purchase_date is None or day > overview.last_purchase_date):
            overview.last_purchase_date = day

    for product in products:
        if product.status != STATUS_SOLD:
            continue
        store_id = store_of_purchase.get(product.store_purchase_id or "")
        if store_id is None:
            continue
        overviews[store_id].sold_items += 1
        overviews[store_id].sold_amount += product.sold_price or 0.0

    for overview in overviews.values():
        overview.profit = overview.sold_amount - overview.total_amount
        overview.profit_rate = safe_percentage(overview.profit, overview.sold_amount)
        overview.roi = safe_percentage(overview.profit, overview.total_amount)
        overview.rank = rank_for_roi(overview.roi)

    ranked = sorted(overviews.values(), key=lambda o: o.roi, reverse=True)
    for position, overview in enumerate(ranked, start=1):
        overview.position = position
    return ranked
