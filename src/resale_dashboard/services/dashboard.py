"""
Dashboard data loading and session list view state.

DashboardDataLoader reads everything the session list needs in one
joint round of concurrent fetches. SessionListView holds the state of
one session list: the loaded data, the status filter, which sessions
are expanded, and the store analyses already computed for them.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..config.constants import (
    DEFAULT_PLATFORM_FEE_RATE,
    STATUS_FILTER_ALL,
    STATUS_FILTERS,
    TABLE_PRODUCTS,
    TABLE_PURCHASE_SESSIONS,
    TABLE_STORE_PURCHASES,
    TABLE_STORES,
)
from ..reporting.registration_metrics import (
    RegistrationMetrics,
    compute_registration_metrics,
)
from ..reporting.sales_analytics import (
    MonthlySales,
    SessionStrategy,
    compute_monthly_sales,
    compute_session_strategies,
)
from ..reporting.session_aggregations import (
    SessionAnalysisResult,
    SessionAnalyzer,
    SessionSummary,
    compute_session_summary,
)
from ..schemas import Product, PurchaseSession, Store, StorePurchase
from ..storage import StorageBackend, StorageError
from ..utils.concurrency import fetch_concurrently
from .session_service import count_by_status, filter_by_status

logger = logging.getLogger(__name__)


@dataclass
class DashboardData:
    """Everything the session list shows, loaded together."""

    sessions: list[PurchaseSession] = field(default_factory=list)
    store_purchases: list[StorePurchase] = field(default_factory=list)
    products: list[Product] = field(default_factory=list)
    stores: list[Store] = field(default_factory=list)

    @property
    def store_names(self) -> dict[str, str]:
        return {store.id: store.name for store in self.stores}

    def purchases_for(self, session_id: str) -> list[StorePurchase]:
        return [p for p in self.store_purchases if p.session_id == session_id]

    def products_for(self, session_id: str) -> list[Product]:
        purchase_ids = {p.id for p in self.purchases_for(session_id)}
        return [p for p in self.products if p.store_purchase_id in purchase_ids]


class DashboardDataLoader:
    """Loads sessions, store purchases, products and stores concurrently."""

    def __init__(self, backend: StorageBackend):
        self._backend = backend

    def load(self) -> DashboardData:
        """
        Fetch all dashboard tables and merge them once every fetch is done.

        Raises:
            StorageError: If any fetch fails
        """
        results = fetch_concurrently(
            {
                "sessions": lambda: self._backend.select(
                    TABLE_PURCHASE_SESSIONS, order_by="session_date", descending=True
                ),
                "store_purchases": lambda: self._backend.select(TABLE_STORE_PURCHASES),
                "products": lambda: self._backend.select(TABLE_PRODUCTS),
                "stores": lambda: self._backend.select(TABLE_STORES),
            }
        )

        data = DashboardData(
            sessions=[PurchaseSession.from_row(r) for r in results["sessions"]],
            store_purchases=[StorePurchase.from_row(r) for r in results["store_purchases"]],
            products=[Product.from_row(r) for r in results["products"]],
            stores=[Store.from_row(r) for r in results["stores"]],
        )
        logger.debug(
            f"Loaded {len(data.sessions)} sessions, "
            f"{len(data.store_purchases)} store purchases, "
            f"{len(data.products)} products"
        )
        return data


class SessionListView:
    """
    State of one session list.

    Store analyses are computed the first time a session is expanded and
    reused for the rest of the view's life, including after collapsing
    and re-expanding. A failed refresh keeps the previously loaded data.
    """

    def __init__(
        self,
        backend: StorageBackend,
        analyzer: Optional[SessionAnalyzer] = None,
        fee_rate: float = DEFAULT_PLATFORM_FEE_RATE,
    ):
        self._loader = DashboardDataLoader(backend)
        self._analyzer = analyzer or SessionAnalyzer(backend=backend, fee_rate=fee_rate)
        self._fee_rate = fee_rate

        self.data = DashboardData()
        self.status_filter = STATUS_FILTER_ALL
        self.expanded: set[str] = set()
        self.last_error: Optional[str] = None
        self._analyses: dict[str, SessionAnalysisResult] = {}

    def refresh(self) -> bool:
        """
        Reload the dashboard data.

        Returns:
            True on success; on failure the error is logged, kept in
            last_error, and the previous data stays in place
        """
        try:
            data = self._loader.load()
        except StorageError as e:
            logger.exception(f"Failed to load dashboard data: {e}")
            self.last_error = str(e)
            return False

        self.data = data
        self.last_error = None
        return True

    def set_status_filter(self, status_filter: str) -> None:
        if status_filter not in STATUS_FILTERS:
            raise ValueError(
                f"Unknown status filter: '{status_filter}'. "
                f"Must be one of: {STATUS_FILTERS}"
            )
        self.status_filter = status_filter

    @property
    def visible_sessions(self) -> list[PurchaseSession]:
        return filter_by_status(self.data.sessions, self.status_filter)

    @property
    def status_counts(self) -> dict[str, int]:
        return count_by_status(self.data.sessions)

    def is_expanded(self, session_id: str) -> bool:
        return session_id in self.expanded

    def cached_analysis(self, session_id: str) -> Optional[SessionAnalysisResult]:
        return self._analyses.get(session_id)

    def toggle_expansion(self, session_id: str) -> Optional[SessionAnalysisResult]:
        """
        Expand or collapse a session row.

        Returns:
            The session's analysis when the row is now expanded, None when
            it was collapsed
        """
        if session_id in self.expanded:
            self.expanded.discard(session_id)
            return None

        self.expanded.add(session_id)

        cached = self._analyses.get(session_id)
        if cached is not None:
            return cached

        result = self._analyzer.analyze_session(session_id)
        if result.success:
            self._analyses[session_id] = result
        else:
            logger.warning(f"Analysis of session {session_id} failed: {result.error}")
        return result

    def invalidate(self, session_id: Optional[str] = None) -> None:
        """Drop cached analyses (one session, or all) after a mutation."""
        if session_id is None:
            self._analyses.clear()
        else:
            self._analyses.pop(session_id, None)

    def registration_metrics(self, session_id: str) -> RegistrationMetrics:
        """Registration progress from the loaded data."""
        return compute_registration_metrics(
            self.data.purchases_for(session_id),
            self.data.products_for(session_id),
            store_names=self.data.store_names,
        )

    def session_summary(self, session_id: str) -> Optional[SessionSummary]:
        session = next((s for s in self.data.sessions if s.id == session_id), None)
        if session is None:
            return None
        return compute_session_summary(
            session,
            self.data.purchases_for(session_id),
            self.data.products_for(session_id),
            fee_rate=self._fee_rate,
        )

    def monthly_sales(self) -> list[MonthlySales]:
        """Sales by month over every loaded product, newest first."""
        return compute_monthly_sales(self.data.products, fee_rate=self._fee_rate)

    def session_strategies(self, now: Optional[datetime] = None) -> list[SessionStrategy]:
        """Break-even analysis for visible sessions that still hold stock."""
        return compute_session_strategies(
            self.visible_sessions,
            self.data.store_purchases,
            self.data.products,
            now=now,
            fee_rate=self._fee_rate,
        )
