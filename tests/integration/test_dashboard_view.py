"""
Integration tests for dashboard loading and session list view state.
"""

from datetime import datetime, timezone

import pytest

from resale_dashboard.reporting import SessionAnalyzer
from resale_dashboard.services import DashboardDataLoader, SessionListView


class CountingAnalyzer(SessionAnalyzer):
    """SessionAnalyzer that records which sessions it analyzed."""

    def __init__(self, backend):
        super().__init__(backend=backend)
        self.analyzed: list[str] = []

    def analyze_session(self, session_id):
        self.analyzed.append(session_id)
        return super().analyze_session(session_id)


class TestDashboardDataLoader:
    def test_loads_all_tables(self, seeded_backend):
        data = DashboardDataLoader(seeded_backend).load()

        assert [s.id for s in data.sessions] == ["session-oct", "session-sep"]
        assert len(data.store_purchases) == 3
        assert len(data.products) == 5
        assert data.store_names["store-b"] == "Harbor Wholesale"

    def test_session_slices(self, seeded_backend):
        data = DashboardDataLoader(seeded_backend).load()

        assert {p.id for p in data.purchases_for("session-oct")} == {
            "purchase-a",
            "purchase-b",
        }
        assert {p.id for p in data.products_for("session-sep")} == {
            "product-c-discarded"
        }


class TestSessionListView:
    """Tests for view state: filtering, expansion and memoized analysis."""

    @pytest.fixture
    def analyzer(self, seeded_backend):
        return CountingAnalyzer(seeded_backend)

    @pytest.fixture
    def view(self, seeded_backend, analyzer):
        view = SessionListView(seeded_backend, analyzer=analyzer)
        assert view.refresh()
        return view

    def test_status_filter(self, view):
        view.set_status_filter("completed")

        assert [s.id for s in view.visible_sessions] == ["session-sep"]
        assert view.status_counts == {"all": 2, "active": 1, "completed": 1}

    def test_unknown_status_filter(self, view):
        with pytest.raises(ValueError):
            view.set_status_filter("archived")

    def test_expansion_is_computed_once(self, view, analyzer):
        first = view.toggle_expansion("session-oct")
        collapsed = view.toggle_expansion("session-oct")
        again = view.toggle_expansion("session-oct")

        assert first.success
        assert collapsed is None
        assert again is first
        assert analyzer.analyzed == ["session-oct"]
        assert view.is_expanded("session-oct")

    def test_sessions_are_cached_independently(self, view, analyzer):
        view.toggle_expansion("session-oct")
        view.toggle_expansion("session-sep")

        assert analyzer.analyzed == ["session-oct", "session-sep"]
        assert view.cached_analysis("session-sep").stores[0].store_id == "store-a"

    def test_failed_analysis_is_not_cached(self, view, analyzer):
        result = view.toggle_expansion("missing")
        view.toggle_expansion("missing")
        view.toggle_expansion("missing")

        assert not result.success
        assert view.cached_analysis("missing") is None
        assert analyzer.analyzed == ["missing", "missing"]

    def test_invalidate(self, view, analyzer):
        view.toggle_expansion("session-oct")
        view.toggle_expansion("session-oct")
        view.invalidate("session-oct")
        view.toggle_expansion("session-oct")

        assert analyzer.analyzed == ["session-oct", "session-oct"]

    def test_registration_metrics_from_loaded_data(self, view):
        metrics = view.registration_metrics("session-oct")

        assert metrics.total_items == 6
        assert metrics.registered_items == 4
        assert metrics.registration_rate == 67
        assert metrics.photo_rate == 50

    def test_session_summary(self, view):
        summary = view.session_summary("session-oct")

        assert summary.total_cost == pytest.approx(4400)
        assert summary.sold_count == 2
        assert view.session_summary("missing") is None

    def test_monthly_sales(self, view):
        (october,) = view.monthly_sales()

        assert october.month == "2026-10"
        assert october.items_sold == 2
        assert october.revenue == pytest.approx(7000)
        assert october.sales_fee == pytest.approx(700)
        assert october.shipping_cost == pytest.approx(200)
        assert october.profit == pytest.approx(6100)
        assert october.profit_rate == 87
        assert october.avg_price == 3500

    def test_session_strategies(self, view):
        now = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)

        october, september = view.session_strategies(now)

        assert october.session_id == "session-oct"
        assert october.total_cost == pytest.approx(4400)
        assert october.current_revenue == pytest.approx(6100)
        assert october.required_revenue == 0
        remaining = {p.product_id: p for p in october.remaining_products}
        assert set(remaining) == {"product-a-listed", "product-a-stock"}
        radio = remaining["product-a-listed"]
        assert radio.days_in_stock == 109
        assert radio.risk_level == "critical"
        assert radio.break_even_price == pytest.approx(565)
        assert remaining["product-a-stock"].risk_level == "low"

        # Only a discarded product is left, which still counts as unsold
        assert september.remaining_items == 1
        assert september.remaining_products == []
        assert september.required_revenue == pytest.approx(500)

    def test_strategies_follow_status_filter(self, view):
        view.set_status_filter("active")

        assert [s.session_id for s in view.session_strategies()] == ["session-oct"]

    def test_failed_refresh_keeps_previous_data(self, failing_backend):
        view = SessionListView(failing_backend)
        assert view.refresh()
        loaded = view.data

        failing_backend.fail_selects.add("products")
        assert not view.refresh()

        assert view.data is loaded
        assert "simulated failure" in view.last_error
        assert len(view.data.sessions) == 2
