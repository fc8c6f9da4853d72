"""
Monthly sales rollup and break-even analysis of unsold stock.

Monthly figures cover every sold product, grouped by the calendar month
(UTC) of its sale. The break-even analysis looks at each session that
still holds unsold products: how far its sales are from covering the
session's total cost, and what each remaining product needs to sell for.
"""

import math
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional

from ..config.constants import (
    DEFAULT_PLATFORM_FEE_RATE,
    LOWEST_RISK_LEVEL,
    RISK_LEVEL_THRESHOLDS,
    RISK_RECOMMENDATIONS,
    SHIPPING_ESTIMATE_MAX,
    SHIPPING_ESTIMATE_TIERS,
    STATUS_DISCARDED,
    STATUS_SOLD,
)
from ..schemas import Product, PurchaseSession, StorePurchase
from ..utils.date_utils import days_between
from .session_aggregations import platform_fee_for


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


# =============================================================================
# Monthly sales
# =============================================================================


@dataclass
class MonthlySales:
    """Sales totals for one calendar month (YYYY-MM)."""

    month: str
    revenue: float = 0.0
    sales_fee: float = 0.0
    shipping_cost: float = 0.0
    profit: float = 0.0
    profit_rate: int = 0
    items_sold: int = 0
    avg_price: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def compute_monthly_sales(
    products: Iterable[Product],
    fee_rate: float = DEFAULT_PLATFORM_FEE_RATE,
) -> list[MonthlySales]:
    """
    Roll sold products up by month of sale, newest month first.

    Profit is revenue less platform fees and outbound shipping. Profit
    rate and average price are rounded to whole numbers.
    """
    months: dict[str, MonthlySales] = {}

    for product in products:
        if product.status != STATUS_SOLD or product.sold_at is None:
            continue

        key = product.sold_at.astimezone(timezone.utc).strftime("%Y-%m")
        month = months.setdefault(key, MonthlySales(month=key))

        revenue = product.sold_price or 0.0
        fee = platform_fee_for(product, fee_rate)
        month.revenue += revenue
        month.sales_fee += fee
        month.shipping_cost += product.shipping_cost
        month.profit += revenue - fee - product.shipping_cost
        month.items_sold += 1

    for month in months.values():
        month.avg_price = _round_half_up(month.revenue / month.items_sold)
        if month.revenue:
            month.profit_rate = _round_half_up(month.profit / month.revenue * 100)

    return sorted(months.values(), key=lambda m: m.month, reverse=True)


# =============================================================================
# Break-even analysis of unsold stock
# =============================================================================


def estimate_shipping(price: float) -> float:
    """Outbound shipping expected for an item listed at price."""
    for below, cost in SHIPPING_ESTIMATE_TIERS:
        if price < below:
            return float(cost)
    return float(SHIPPING_ESTIMATE_MAX)


def risk_level_for(days_in_stock: int) -> str:
    for level, days in RISK_LEVEL_THRESHOLDS:
        if days_in_stock > days:
            return level
    return LOWEST_RISK_LEVEL


@dataclass
class RemainingProduct:
    """An unsold product with the price it needs to cover its cost."""

    product_id: str
    name: str
    category: Optional[str]
    status: str
    allocated_cost: float
    current_price: float
    days_in_stock: int
    shipping_cost: float
    platform_fee: float
    net_profit: float
    break_even_price: float
    risk_level: str

    @property
    def recommendation(self) -> str:
        return RISK_RECOMMENDATIONS[self.risk_level]


@dataclass
class SessionStrategy:
    """How far a session is from breaking even, with its unsold products."""

    session_id: str
    session_title: str
    total_items: int = 0
    sold_items: int = 0
    current_revenue: float = 0.0
    total_cost: float = 0.0
    remaining_products: list[RemainingProduct] = field(default_factory=list)

    @property
    def remaining_items(self) -> int:
        """Registered products not sold yet, discarded ones included."""
        return self.total_items - self.sold_items

    @property
    def current_profit(self) -> float:
        return self.current_revenue - self.total_cost

    @property
    def required_revenue(self) -> float:
        """Net revenue still needed to cover the session's total cost."""
        return max(0.0, self.total_cost - self.current_revenue)


def analyze_remaining_product(
    product: Product,
    now: datetime,
    fee_rate: float = DEFAULT_PLATFORM_FEE_RATE,
) -> RemainingProduct:
    """
    Break-even figures for one unsold product at its current price.

    Shipping is estimated from the price tier and the platform fee is the
    marketplace rate on the current price. A product with no creation
    time counts as added today.
    """
    price = product.current_price or product.initial_price
    shipping = estimate_shipping(price)
    fee = float(math.floor(price * fee_rate))
    days = days_between(product.created_at, now) if product.created_at else 0

    return RemainingProduct(
        product_id=product.id,
        name=product.name,
        category=product.category,
        status=product.status,
        allocated_cost=product.cost,
        current_price=price,
        days_in_stock=days,
        shipping_cost=shipping,
        platform_fee=fee,
        net_profit=price - fee - shipping - product.cost,
        break_even_price=product.cost + fee + shipping,
        risk_level=risk_level_for(days),
    )


def compute_session_strategies(
    sessions: Iterable[PurchaseSession],
    store_purchases: Iterable[StorePurchase],
    products: Iterable[Product],
    now: Optional[datetime] = None,
    fee_rate: float = DEFAULT_PLATFORM_FEE_RATE,
) -> list[SessionStrategy]:
    """
    Break-even analysis for every session that still has unsold products.

    Sessions keep the order they are given in. Current revenue is what
    sold products brought in after platform fees and shipping; total cost
    is the store purchase amounts plus the session's shared costs.
    """
    now = now or datetime.now(timezone.utc)
    store_purchases = list(store_purchases)
    products = list(products)

    strategies = []
    for session in sessions:
        purchases = [p for p in store_purchases if p.session_id == session.id]
        purchase_ids = {p.id for p in purchases}
        session_products = [p for p in products if p.store_purchase_id in purchase_ids]

        strategy = SessionStrategy(
            session_id=session.id,
            session_title=session.title,
            total_items=len(session_products),
            total_cost=sum(p.purchase_amount for p in purchases) + session.shared_cost,
        )
        for product in session_products:
            if product.status == STATUS_SOLD:
                strategy.sold_items += 1
                strategy.current_revenue += (
                    (product.sold_price or 0.0)
                    - platform_fee_for(product, fee_rate)
                    - product.shipping_cost
                )
            elif product.status != STATUS_DISCARDED:
                strategy.remaining_products.append(
                    analyze_remaining_product(product, now, fee_rate)
                )

        if strategy.remaining_items > 0:
            strategies.append(strategy)

    return strategies
