"""
Per-session and per-store financial aggregations.

A purchase session groups several store purchases made on one trip. The
trip's shared costs (transportation, transfer fee, agency fee) are spread
over its stores in proportion to what was spent at each store, and each
store's sold products are then weighed against that allocated cost.
"""

import logging
import math
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from ..config.constants import (
    DEFAULT_PLATFORM_FEE_RATE,
    STATUS_DISCARDED,
    STATUS_IN_STOCK,
    STATUS_LISTED,
    STATUS_READY_TO_LIST,
    STATUS_SOLD,
    TABLE_PRODUCTS,
    TABLE_PURCHASE_SESSIONS,
    TABLE_STORE_PURCHASES,
    TABLE_STORES,
)
from ..schemas import Product, PurchaseSession, StorePurchase
from ..storage import StorageBackend, StorageError, eq, get_backend, in_

logger = logging.getLogger(__name__)

UNKNOWN_STORE_NAME = "Unknown store"


# =============================================================================
# Arithmetic helpers
# =============================================================================


def safe_percentage(numerator: float, denominator: float) -> float:
    """numerator / denominator * 100, or 0 when the denominator is 0."""
    if not denominator:
        return 0.0
    return numerator / denominator * 100


def platform_fee_for(
    product: Product, fee_rate: float = DEFAULT_PLATFORM_FEE_RATE
) -> float:
    """
    Stored platform fee, or the marketplace rate applied to the sale price.

    A stored fee of 0 counts as unrecorded and also gets the rate.
    """
    if product.platform_fee:
        return product.platform_fee
    return float(math.floor((product.sold_price or 0.0) * fee_rate))


def sales_expense_for(
    product: Product, fee_rate: float = DEFAULT_PLATFORM_FEE_RATE
) -> float:
    """Platform fee plus outbound shipping for one sold product."""
    return platform_fee_for(product, fee_rate) + product.shipping_cost


def allocate_shared_cost(
    store_amount: float, session_total: float, shared_cost: float
) -> float:
    """A store's share of the session's shared cost, by purchase amount."""
    if not session_total:
        return 0.0
    return store_amount / session_total * shared_cost


# =============================================================================
# Store analysis
# =============================================================================


@dataclass
class StoreAnalysis:
    """Financial rollup of one store within one purchase session."""

    store_id: str
    store_name: str
    base_purchase_amount: float = 0.0
    allocated_shared_cost: float = 0.0
    purchase_amount: float = 0.0
    item_count: int = 0
    registered_count: int = 0
    in_stock_count: int = 0
    listed_count: int = 0
    sold_count: int = 0
    discarded_count: int = 0
    sold_amount: float = 0.0
    sales_expenses: float = 0.0
    profit: float = 0.0
    profit_rate: float = 0.0
    roi: float = 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary for export."""
        return asdict(self)


def compute_store_analyses(
    store_purchases: Iterable[StorePurchase],
    products: Iterable[Product],
    session: PurchaseSession,
    store_names: Optional[dict[str, str]] = None,
    skipped_store_ids: Iterable[str] = (),
    fee_rate: float = DEFAULT_PLATFORM_FEE_RATE,
) -> list[StoreAnalysis]:
    """
    Build one StoreAnalysis per store purchased from in a session.

    Args:
        store_purchases: The session's store purchase rows
        products: Products registered against those purchases
        session: The session, for its shared costs
        store_names: Store id to display name (optional)
        skipped_store_ids: Stores whose products could not be read; they
            still count toward the session total but get no analysis
        fee_rate: Platform fee rate for sold products without a stored fee

    Returns:
        StoreAnalysis list in order of each store's first purchase
    """
    store_names = store_names or {}
    skipped = set(skipped_store_ids)

    analyses: dict[str, StoreAnalysis] = {}
    store_of_purchase: dict[str, str] = {}
    session_total = 0.0

    for purchase in store_purchases:
        session_total += purchase.purchase_amount
        store_of_purchase[purchase.id] = purchase.store_id

        if purchase.store_id in skipped:
            continue

        analysis = analyses.get(purchase.store_id)
        if analysis is None:
            analysis = StoreAnalysis(
                store_id=purchase.store_id,
                store_name=store_names.get(purchase.store_id, UNKNOWN_STORE_NAME),
            )
            analyses[purchase.store_id] = analysis

        analysis.base_purchase_amount += purchase.purchase_amount
        analysis.item_count += purchase.item_count

    for product in products:
        store_id = store_of_purchase.get(product.store_purchase_id or "")
        analysis = analyses.get(store_id) if store_id else None
        if analysis is None:
            continue

        analysis.registered_count += 1
        if product.status == STATUS_SOLD:
            analysis.sold_count += 1
            analysis.sold_amount += product.sold_price or 0.0
            analysis.sales_expenses += sales_expense_for(product, fee_rate)
        elif product.status == STATUS_LISTED:
            analysis.listed_count += 1
        elif product.status in (STATUS_IN_STOCK, STATUS_READY_TO_LIST):
            analysis.in_stock_count += 1
        elif product.status == STATUS_DISCARDED:
            analysis.discarded_count += 1

    shared_cost = session.shared_cost
    for analysis in analyses.values():
        analysis.allocated_shared_cost = allocate_shared_cost(
            analysis.base_purchase_amount, session_total, shared_cost
        )
        analysis.purchase_amount = (
            analysis.base_purchase_amount + analysis.allocated_shared_cost
        )
        analysis.profit = (
            analysis.sold_amount - analysis.sales_expenses - analysis.purchase_amount
        )
        analysis.profit_rate = safe_percentage(analysis.profit, analysis.sold_amount)
        analysis.roi = safe_percentage(analysis.profit, analysis.purchase_amount)

    return list(analyses.values())


def allocated_cost_per_item(
    store_purchase: StorePurchase,
    session: PurchaseSession,
    session_purchases: Iterable[StorePurchase],
) -> int:
    """
    Unit cost of one item from a store purchase, including its share of
    the session's shared costs. Rounded to a whole amount.
    """
    session_total = sum(p.purchase_amount for p in session_purchases)
    share = allocate_shared_cost(
        store_purchase.purchase_amount, session_total, session.shared_cost
    )
    item_count = store_purchase.item_count or 1
    return math.floor((store_purchase.purchase_amount + share) / item_count + 0.5)


# =============================================================================
# Session summary
# =============================================================================


@dataclass
class SessionSummary:
    """Whole-session rollup of cost, sales and product states."""

    session_id: str
    session_title: str
    product_cost: float = 0.0
    common_cost: float = 0.0
    total_cost: float = 0.0
    registered_count: int = 0
    sold_count: int = 0
    listed_count: int = 0
    in_stock_count: int = 0
    discarded_count: int = 0
    gross_sales: float = 0.0
    total_fees: float = 0.0
    total_shipping: float = 0.0
    net_revenue: float = 0.0
    profit: float = 0.0
    achievement_rate: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


def compute_session_summary(
    session: PurchaseSession,
    store_purchases: Iterable[StorePurchase],
    products: Iterable[Product],
    fee_rate: float = DEFAULT_PLATFORM_FEE_RATE,
) -> SessionSummary:
    """
    Summarize a whole session.

    Only purchases belonging to the session, and products registered
    against those purchases, are counted.
    """
    purchases = [p for p in store_purchases if p.session_id == session.id]
    purchase_ids = {p.id for p in purchases}

    summary = SessionSummary(session_id=session.id, session_title=session.title)
    summary.product_cost = sum(p.purchase_amount for p in purchases)
    summary.common_cost = session.shared_cost
    summary.total_cost = summary.product_cost + summary.common_cost

    for product in products:
        if product.store_purchase_id not in purchase_ids:
            continue

        summary.registered_count += 1
        if product.status == STATUS_SOLD:
            fee = platform_fee_for(product, fee_rate)
            sold_price = product.sold_price or 0.0
            summary.sold_count += 1
            summary.gross_sales += sold_price
            summary.total_fees += fee
            summary.total_shipping += product.shipping_cost
            summary.net_revenue += sold_price - fee - product.shipping_cost
        elif product.status == STATUS_LISTED:
            summary.listed_count += 1
        elif product.status in (STATUS_IN_STOCK, STATUS_READY_TO_LIST):
            summary.in_stock_count += 1
        elif product.status == STATUS_DISCARDED:
            summary.discarded_count += 1

    summary.profit = summary.net_revenue - summary.total_cost
    summary.achievement_rate = safe_percentage(summary.net_revenue, summary.total_cost)
    return summary


# =============================================================================
# Fetch-and-compute
# =============================================================================


@dataclass
class SessionAnalysisResult:
    """Result of analyzing one session's stores."""

    success: bool
    session_id: str
    stores: list[StoreAnalysis] = field(default_factory=list)
    skipped_store_ids: list[str] = field(default_factory=list)
    error: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def is_partial(self) -> bool:
        return bool(self.skipped_store_ids)


class SessionAnalyzer:
    """
    Fetches a session's purchases and products and computes its store
    analyses.

    Product reads are issued per store; a store whose products cannot be
    read is logged and left out, the rest of the session is still
    analyzed.
    """

    def __init__(
        self,
        backend: Optional[StorageBackend] = None,
        backend_type: str = "sqlite",
        db_path: Optional[Path] = None,
        fee_rate: float = DEFAULT_PLATFORM_FEE_RATE,
    ):
        """
        Initialize session analyzer.

        Args:
            backend: Pre-initialized StorageBackend (optional)
            backend_type: Backend type if creating new ('sqlite' or 'remote')
            db_path: Path to SQLite database (for sqlite backend)
            fee_rate: Platform fee rate for sold products without a stored fee
        """
        if backend:
            self._backend = backend
            self._owns_backend = False
        else:
            kwargs = {}
            if backend_type == "sqlite" and db_path:
                kwargs["db_path"] = db_path
            self._backend = get_backend(backend_type, **kwargs)
            self._owns_backend = True

        self._fee_rate = fee_rate
        self._initialized = False

        logger.info(
            f"SessionAnalyzer initialized with {self._backend.backend_type} backend"
        )

    def initialize(self) -> None:
        """Initialize the backend (create tables if needed)."""
        if not self._initialized:
            self._backend.initialize()
            self._initialized = True

    def close(self) -> None:
        """Close the backend connection."""
        if self._owns_backend:
            self._backend.close()

    def __enter__(self) -> "SessionAnalyzer":
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _fetch_store_names(self, store_ids: list[str]) -> dict[str, str]:
        if not store_ids:
            return {}
        try:
            rows = self._backend.select(TABLE_STORES, [in_("id", store_ids)])
        except StorageError as e:
            logger.warning(f"Failed to fetch store names: {e}")
            return {}
        return {str(row["id"]): str(row.get("name") or UNKNOWN_STORE_NAME) for row in rows}

    def analyze_session(self, session_id: str) -> SessionAnalysisResult:
        """
        Compute store analyses for one session.

        Args:
            session_id: Id of the purchase session

        Returns:
            SessionAnalysisResult; success is False only when the session
            or its purchases could not be read at all
        """
        self.initialize()
        started_at = datetime.now().astimezone()

        try:
            session_row = self._backend.get_by_id(TABLE_PURCHASE_SESSIONS, session_id)
            if session_row is None:
                raise LookupError(f"Purchase session not found: {session_id}")
            session = PurchaseSession.from_row(session_row)

            purchases = [
                StorePurchase.from_row(row)
                for row in self._backend.select(
                    TABLE_STORE_PURCHASES, [eq("session_id", session_id)]
                )
            ]
        except (StorageError, LookupError) as e:
            logger.exception(f"Failed to load session {session_id}: {e}")
            return SessionAnalysisResult(
                success=False,
                session_id=session_id,
                error=str(e),
                duration_seconds=(
                    datetime.now().astimezone() - started_at
                ).total_seconds(),
            )

        purchases_by_store: dict[str, list[str]] = {}
        for purchase in purchases:
            purchases_by_store.setdefault(purchase.store_id, []).append(purchase.id)

        products: list[Product] = []
        skipped: list[str] = []
        for store_id, purchase_ids in purchases_by_store.items():
            try:
                rows = self._backend.select(
                    TABLE_PRODUCTS, [in_("store_purchase_id", purchase_ids)]
                )
            except StorageError as e:
                logger.warning(
                    f"Skipping store {store_id} in session {session_id}: "
                    f"failed to fetch products: {e}"
                )
                skipped.append(store_id)
                continue
            products.extend(Product.from_row(row) for row in rows)

        store_names = self._fetch_store_names(list(purchases_by_store))
        stores = compute_store_analyses(
            purchases,
            products,
            session,
            store_names=store_names,
            skipped_store_ids=skipped,
            fee_rate=self._fee_rate,
        )

        duration = (datetime.now().astimezone() - started_at).total_seconds()
        logger.info(
            f"Analyzed session {session_id}: {len(stores)} stores, "
            f"{len(skipped)} skipped in {duration:.2f}s"
        )

        return SessionAnalysisResult(
            success=True,
            session_id=session_id,
            stores=stores,
            skipped_store_ids=skipped,
            duration_seconds=duration,
        )
