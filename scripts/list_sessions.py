#!/usr/bin/env python3
"""
List purchase sessions with registration progress and store analysis.

Usage:
    # All sessions, newest first
    python scripts/list_sessions.py

    # Only active sessions
    python scripts/list_sessions.py --status active

    # Expand sessions to show per-store profit and ROI
    python scripts/list_sessions.py --expand <session-id> --expand <session-id>
    python scripts/list_sessions.py --expand-all

    # Monthly sales and break-even status of unsold stock
    python scripts/list_sessions.py --monthly --break-even

    # Read from the hosted database configured in settings
    python scripts/list_sessions.py --backend remote
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from resale_dashboard.config import STATUS_FILTERS, get_settings
from resale_dashboard.reporting import MonthlySales, SessionAnalysisResult, SessionStrategy
from resale_dashboard.services import SessionListView
from resale_dashboard.storage import get_backend
from resale_dashboard.utils import setup_logging

logger = logging.getLogger(__name__)


def format_amount(value: float) -> str:
    return f"¥{value:,.0f}"


def print_store_analysis(result: SessionAnalysisResult) -> None:
    if not result.success:
        print(f"    ❌ Analysis failed: {result.error}")
        return
    if not result.stores:
        print("    No store purchases")
        return

    print(
        f"    {'Store':<24} {'Purchase':>12} {'Sold':>12} "
        f"{'Profit':>12} {'Rate':>7} {'ROI':>7}  Items (sold/listed/discarded)"
    )
    for store in result.stores:
        print(
            f"    {store.store_name[:24]:<24} "
            f"{format_amount(store.purchase_amount):>12} "
            f"{format_amount(store.sold_amount):>12} "
            f"{format_amount(store.profit):>12} "
            f"{store.profit_rate:>6.1f}% {store.roi:>6.1f}%  "
            f"{store.item_count} ({store.sold_count}/{store.listed_count}/"
            f"{store.discarded_count})"
        )
    if result.is_partial:
        print(
            f"    ⚠️  {len(result.skipped_store_ids)} store(s) skipped: "
            "products could not be loaded"
        )


def print_strategies(strategies: list[SessionStrategy]) -> None:
    if not strategies:
        print("\nNo sessions with unsold stock")
        return

    print("\nBreak-even status:")
    for strategy in strategies:
        print(
            f"  {strategy.session_title}: {strategy.remaining_items} unsold, "
            f"profit {format_amount(strategy.current_profit)}, "
            f"needs {format_amount(strategy.required_revenue)}"
        )
        for item in strategy.remaining_products:
            print(
                f"    {item.name:<28} {item.days_in_stock:>4}d  "
                f"break-even {format_amount(item.break_even_price)}  [{item.risk_level}]"
            )


def print_monthly_sales(months: list[MonthlySales]) -> None:
    print("\nMonthly sales:")
    if not months:
        print("  No sales yet")
        return
    for month in months:
        print(
            f"  {month.month}  {month.items_sold:>4} sold  "
            f"revenue {format_amount(month.revenue)}  "
            f"profit {format_amount(month.profit)} ({month.profit_rate}%)  "
            f"avg {format_amount(month.avg_price)}"
        )


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="List purchase sessions with store analysis",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--backend",
        choices=["sqlite", "remote"],
        help="Storage backend (default: from settings)",
    )
    parser.add_argument(
        "--db-path",
        type=Path,
        help="Path to SQLite database (default: from settings)",
    )
    parser.add_argument(
        "--status",
        choices=STATUS_FILTERS,
        default="all",
        help="Only show sessions with this status",
    )
    parser.add_argument(
        "--expand",
        action="append",
        default=[],
        metavar="SESSION_ID",
        help="Show store analysis for a session (repeatable)",
    )
    parser.add_argument(
        "--expand-all",
        action="store_true",
        help="Show store analysis for every listed session",
    )
    parser.add_argument(
        "--break-even",
        action="store_true",
        help="Show what listed sessions still need to sell to break even",
    )
    parser.add_argument(
        "--monthly",
        action="store_true",
        help="Show sales totals by month",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args(argv)
    setup_logging(level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        backend_type = args.backend or get_settings().storage_backend
        kwargs = {"db_path": args.db_path} if backend_type == "sqlite" else {}
        backend = get_backend(backend_type=backend_type, **kwargs)
        backend.initialize()
    except Exception as e:
        logger.error(f"Failed to initialize storage backend: {e}")
        return 1

    try:
        view = SessionListView(
            backend, fee_rate=get_settings().reporting.platform_fee_rate
        )
        if not view.refresh():
            print(f"❌ Failed to load sessions: {view.last_error}")
            return 1

        view.set_status_filter(args.status)
        counts = view.status_counts
        print(
            "Sessions: "
            + "  ".join(f"{name}={counts[name]}" for name in STATUS_FILTERS)
        )

        sessions = view.visible_sessions
        if not sessions:
            print("No sessions found")

        expand = set(args.expand)
        for session in sessions:
            summary = view.session_summary(session.id)
            metrics = view.registration_metrics(session.id)
            session_date = session.session_date.isoformat() if session.session_date else "-"

            print(
                f"\n{session_date}  {session.title}  [{session.status}]  "
                f"id={session.id}"
            )
            print(
                f"  Cost {format_amount(summary.total_cost)} "
                f"(shared {format_amount(session.shared_cost)})  "
                f"Net {format_amount(summary.net_revenue)}  "
                f"Profit {format_amount(summary.profit)}  "
                f"Achieved {summary.achievement_rate:.1f}%"
            )
            print(
                f"  Registered {metrics.registered_items}/{metrics.total_items} "
                f"({metrics.registration_rate}%)  Photos {metrics.photo_rate}%"
            )

            if args.expand_all or session.id in expand:
                print_store_analysis(view.toggle_expansion(session.id))

        if args.break_even:
            print_strategies(view.session_strategies())
        if args.monthly:
            print_monthly_sales(view.monthly_sales())

        return 0

    except Exception as e:
        logger.exception(f"Listing sessions failed: {e}")
        return 1

    finally:
        backend.close()


if __name__ == "__main__":
    sys.exit(main())
