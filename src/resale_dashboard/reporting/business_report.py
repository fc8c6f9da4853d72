"""
Date-ranged business report over sold products and current inventory.

The report covers:
- Sales in the period: revenue, cost, profit, margin, average price
- Top categories and top stores by revenue
- Revenue and profit per day
- Current inventory grouped by status, and slow-moving items
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

import pandas as pd

from ..config.constants import (
    DEFAULT_CATEGORY,
    INVENTORY_STATUSES,
    STATUS_SOLD,
    TABLE_PRODUCTS,
    TABLE_STORE_PURCHASES,
    TABLE_STORES,
)
from ..config.settings import ReportingSettings
from ..schemas import Product, Store, StorePurchase
from ..storage import StorageBackend, StorageError, eq, gte, in_, lt
from ..utils.concurrency import fetch_concurrently
from ..utils.date_utils import days_between, end_of_day_exclusive, month_bounds

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("csv", "pdf", "xlsx")


class ExportNotImplementedError(NotImplementedError):
    """Raised for export formats that are not available yet."""

    pass


# =============================================================================
# Report Data Structures
# =============================================================================


@dataclass
class CategorySales:
    name: str
    count: int = 0
    revenue: float = 0.0


@dataclass
class StoreSales:
    store_id: str
    name: str
    count: int = 0
    revenue: float = 0.0


@dataclass
class InventoryStatusGroup:
    status: str
    count: int = 0
    value: float = 0.0


@dataclass
class SlowMovingItem:
    product_id: str
    name: str
    days_in_stock: int
    cost: float


@dataclass
class DailySales:
    date: date
    revenue: float = 0.0
    profit: float = 0.0


@dataclass
class BusinessReport:
    """Business report for one period."""

    start: date
    end: date
    total_revenue: float = 0.0
    total_cost: float = 0.0
    total_profit: float = 0.0
    total_items_sold: int = 0
    profit_margin: float = 0.0
    avg_selling_price: float = 0.0
    top_categories: list[CategorySales] = field(default_factory=list)
    top_stores: list[StoreSales] = field(default_factory=list)
    daily_sales: list[DailySales] = field(default_factory=list)
    inventory_total_items: int = 0
    inventory_total_value: float = 0.0
    inventory_by_status: list[InventoryStatusGroup] = field(default_factory=list)
    slow_moving: list[SlowMovingItem] = field(default_factory=list)

    @property
    def label(self) -> str:
        return f"{self.start.isoformat()} ~ {self.end.isoformat()}"

    def to_dict(self) -> dict:
        result = asdict(self)
        result["label"] = self.label
        return result


def default_period(today: Optional[date] = None) -> tuple[date, date]:
    """The calendar month containing today."""
    return month_bounds(today or date.today())


# =============================================================================
# Report Computation
# =============================================================================


def _sold_in_period(product: Product, start: date, end: date) -> bool:
    if product.status != STATUS_SOLD or product.sold_at is None:
        return False
    return start <= product.sold_at.date() <= end


def build_report(
    sold_products: Iterable[Product],
    inventory: Iterable[Product],
    start: date,
    end: date,
    now: Optional[datetime] = None,
    store_of_purchase: Optional[dict[str, str]] = None,
    store_names: Optional[dict[str, str]] = None,
    settings: Optional[ReportingSettings] = None,
) -> BusinessReport:
    """
    Compute a business report from already-loaded products.

    Args:
        sold_products: Candidate sold products; only those with status
            'sold' and a sold date within start..end (inclusive) count
        inventory: Candidate inventory; only sellable statuses count
        start: First day of the period
        end: Last day of the period
        now: Reference time for days in stock (default: current time)
        store_of_purchase: Store purchase id to store id, for top stores
        store_names: Store id to name, for top stores
        settings: Reporting tunables (default: ReportingSettings())

    Returns:
        BusinessReport
    """
    settings = settings or ReportingSettings()
    now = now or datetime.now(timezone.utc)
    store_of_purchase = store_of_purchase or {}
    store_names = store_names or {}

    report = BusinessReport(start=start, end=end)

    sold = [p for p in sold_products if _sold_in_period(p, start, end)]
    categories: dict[str, CategorySales] = {}
    stores: dict[str, StoreSales] = {}
    days: dict[date, DailySales] = {}

    for product in sold:
        revenue = product.sold_price or 0.0
        cost = product.cost
        report.total_revenue += revenue
        report.total_cost += cost

        category = product.category or DEFAULT_CATEGORY
        category_sales = categories.setdefault(category, CategorySales(name=category))
        category_sales.count += 1
        category_sales.revenue += revenue

        store_id = store_of_purchase.get(product.store_purchase_id or "")
        if store_id:
            store_sales = stores.setdefault(
                store_id,
                StoreSales(store_id=store_id, name=store_names.get(store_id, "")),
            )
            store_sales.count += 1
            store_sales.revenue += revenue

        sold_day = product.sold_at.date()
        day = days.setdefault(sold_day, DailySales(date=sold_day))
        day.revenue += revenue
        day.profit += revenue - cost

    report.total_items_sold = len(sold)
    report.total_profit = report.total_revenue - report.total_cost
    if report.total_revenue > 0:
        report.profit_margin = report.total_profit / report.total_revenue * 100
    if sold:
        report.avg_selling_price = report.total_revenue / len(sold)

    # sorted() is stable, ties keep first-seen order
    report.top_categories = sorted(
        categories.values(), key=lambda c: c.revenue, reverse=True
    )[: settings.top_n_limit]
    report.top_stores = sorted(
        stores.values(), key=lambda s: s.revenue, reverse=True
    )[: settings.top_n_limit]
    report.daily_sales = [days[d] for d in sorted(days)]

    groups = {status: InventoryStatusGroup(status=status) for status in INVENTORY_STATUSES}
    slow_moving = []

    for product in inventory:
        if product.status not in groups:
            continue
        cost = product.cost
        report.inventory_total_items += 1
        report.inventory_total_value += cost
        groups[product.status].count += 1
        groups[product.status].value += cost

        if product.created_at is None:
            continue
        days_in_stock = days_between(product.created_at, now)
        if days_in_stock > settings.slow_moving_days:
            slow_moving.append(
                SlowMovingItem(
                    product_id=product.id,
                    name=product.name,
                    days_in_stock=days_in_stock,
                    cost=cost,
                )
            )

    report.inventory_by_status = [g for g in groups.values() if g.count > 0]
    slow_moving.sort(key=lambda item: item.days_in_stock, reverse=True)
    report.slow_moving = slow_moving[: settings.slow_moving_limit]

    return report


# =============================================================================
# Fetch-and-compute
# =============================================================================


@dataclass
class ReportResult:
    """Result of generating a report from storage."""

    success: bool
    report: Optional[BusinessReport] = None
    error: Optional[str] = None


class ReportAggregator:
    """Loads sales and inventory from storage and builds a BusinessReport."""

    def __init__(
        self,
        backend: StorageBackend,
        settings: Optional[ReportingSettings] = None,
    ):
        self._backend = backend
        self._settings = settings or ReportingSettings()

    def _fetch_sold(self, start: date, end: date) -> list[Product]:
        rows = self._backend.select(
            TABLE_PRODUCTS,
            [
                eq("status", STATUS_SOLD),
                gte("sold_at", start.isoformat()),
                lt("sold_at", end_of_day_exclusive(end).isoformat()),
            ],
        )
        return [Product.from_row(row) for row in rows]

    def _fetch_inventory(self) -> list[Product]:
        rows = self._backend.select(
            TABLE_PRODUCTS, [in_("status", INVENTORY_STATUSES)]
        )
        return [Product.from_row(row) for row in rows]

    def _fetch_purchases(self) -> list[StorePurchase]:
        return [
            StorePurchase.from_row(row)
            for row in self._backend.select(TABLE_STORE_PURCHASES)
        ]

    def _fetch_stores(self) -> list[Store]:
        return [Store.from_row(row) for row in self._backend.select(TABLE_STORES)]

    def generate(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> ReportResult:
        """
        Generate the report for start..end (default: the current month).

        Storage failures are logged and returned as an unsuccessful result.
        """
        if start is None or end is None:
            default_start, default_end = default_period()
            start = start or default_start
            end = end or default_end

        if start > end:
            return ReportResult(
                success=False,
                error=f"Start date {start} is after end date {end}",
            )

        logger.info(f"Generating business report for {start} ~ {end}")

        try:
            data = fetch_concurrently(
                {
                    "sold": lambda: self._fetch_sold(start, end),
                    "inventory": self._fetch_inventory,
                    "purchases": self._fetch_purchases,
                    "stores": self._fetch_stores,
                }
            )
        except StorageError as e:
            logger.exception(f"Failed to load report data: {e}")
            return ReportResult(success=False, error=str(e))

        report = build_report(
            data["sold"],
            data["inventory"],
            start,
            end,
            now=now,
            store_of_purchase={p.id: p.store_id for p in data["purchases"]},
            store_names={s.id: s.name for s in data["stores"]},
            settings=self._settings,
        )

        logger.info(
            f"Report ready: {report.total_items_sold} sold, "
            f"{report.inventory_total_items} in inventory, "
            f"{len(report.slow_moving)} slow-moving"
        )
        return ReportResult(success=True, report=report)


# =============================================================================
# Export
# =============================================================================


def report_to_dataframes(report: BusinessReport) -> dict[str, pd.DataFrame]:
    """Tabular views of a report, keyed by table name."""
    summary = pd.DataFrame(
        [
            {
                "period_start": report.start.isoformat(),
                "period_end": report.end.isoformat(),
                "total_revenue": report.total_revenue,
                "total_cost": report.total_cost,
                "total_profit": report.total_profit,
                "profit_margin": round(report.profit_margin, 2),
                "items_sold": report.total_items_sold,
                "avg_selling_price": round(report.avg_selling_price, 2),
                "inventory_items": report.inventory_total_items,
                "inventory_value": report.inventory_total_value,
            }
        ]
    )

    def frame(rows: list, columns: list[str]) -> pd.DataFrame:
        return pd.DataFrame([asdict(row) for row in rows], columns=columns)

    return {
        "summary": summary,
        "categories": frame(report.top_categories, ["name", "count", "revenue"]),
        "stores": frame(report.top_stores, ["store_id", "name", "count", "revenue"]),
        "daily_sales": frame(report.daily_sales, ["date", "revenue", "profit"]),
        "inventory": frame(report.inventory_by_status, ["status", "count", "value"]),
        "slow_moving": frame(
            report.slow_moving, ["product_id", "name", "days_in_stock", "cost"]
        ),
    }


def export_report(report: BusinessReport, fmt: str, output_path: Path) -> list[Path]:
    """
    Export a report.

    CSV writes one file per table next to output_path, named
    ``<stem>_<table>.csv``.

    Args:
        report: Report to export
        fmt: 'csv', 'pdf' or 'xlsx'
        output_path: Target path

    Returns:
        Paths of the written files

    Raises:
        ExportNotImplementedError: For 'pdf' and 'xlsx'
        ValueError: For unknown formats
    """
    fmt = fmt.lower()
    if fmt not in EXPORT_FORMATS:
        raise ValueError(
            f"Unknown export format: '{fmt}'. Must be one of: {EXPORT_FORMATS}"
        )
    if fmt in ("pdf", "xlsx"):
        raise ExportNotImplementedError(f"{fmt.upper()} export is not implemented yet")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    written = []
    for name, df in report_to_dataframes(report).items():
        path = output_path.with_name(f"{output_path.stem}_{name}.csv")
        df.to_csv(path, index=False)
        written.append(path)

    logger.info(f"Exported report tables to {output_path.parent}")
    return written
