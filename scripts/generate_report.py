#!/usr/bin/env python3
"""
Generate the business report for a date range.

Usage:
    # Current month, printed to the console
    python scripts/generate_report.py

    # Specific period
    python scripts/generate_report.py --start-date 2026-09-01 --end-date 2026-09-30

    # Export report tables as CSV (writes report_summary.csv, report_categories.csv, ...)
    python scripts/generate_report.py --format csv --output data/reports/report.csv
"""

import argparse
import logging
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Optional

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from resale_dashboard.config import get_settings
from resale_dashboard.reporting import (
    BusinessReport,
    ExportNotImplementedError,
    ReportAggregator,
    export_report,
)
from resale_dashboard.storage import get_backend
from resale_dashboard.utils import setup_logging

logger = logging.getLogger(__name__)


def parse_date(date_str: str) -> date:
    """Parse date string in YYYY-MM-DD format."""
    try:
        return datetime.strptime(date_str, "%Y-%m-%d").date()
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"Invalid date format: {date_str}. Use YYYY-MM-DD"
        )


def print_report(report: BusinessReport) -> None:
    print(f"\n{'=' * 60}")
    print(f"Business report {report.label}")
    print(f"{'=' * 60}")
    print(f"  Revenue:        ¥{report.total_revenue:,.0f}")
    print(f"  Cost:           ¥{report.total_cost:,.0f}")
    print(f"  Profit:         ¥{report.total_profit:,.0f}")
    print(f"  Margin:         {report.profit_margin:.1f}%")
    print(f"  Items sold:     {report.total_items_sold}")
    print(f"  Avg price:      ¥{report.avg_selling_price:,.0f}")

    if report.top_categories:
        print("\nTop categories:")
        for category in report.top_categories:
            print(f"  {category.name:<20} {category.count:>4}  ¥{category.revenue:,.0f}")

    if report.top_stores:
        print("\nTop stores:")
        for store in report.top_stores:
            print(f"  {store.name:<20} {store.count:>4}  ¥{store.revenue:,.0f}")

    print(
        f"\nInventory: {report.inventory_total_items} items, "
        f"¥{report.inventory_total_value:,.0f}"
    )
    for group in report.inventory_by_status:
        print(f"  {group.status:<15} {group.count:>4}  ¥{group.value:,.0f}")

    if report.slow_moving:
        print(f"\n⚠️  {len(report.slow_moving)} slow-moving items:")
        for item in report.slow_moving:
            print(f"  {item.name:<30} {item.days_in_stock:>4} days  ¥{item.cost:,.0f}")


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Generate the business report for a date range",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--start-date",
        type=parse_date,
        help="First day of the period (YYYY-MM-DD, default: start of this month)",
    )
    parser.add_argument(
        "--end-date",
        type=parse_date,
        help="Last day of the period (YYYY-MM-DD, default: end of this month)",
    )
    parser.add_argument(
        "--format",
        "-f",
        choices=["console", "csv", "pdf", "xlsx"],
        default="console",
        help="Output format",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        help="Output file path for exported formats",
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
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args(argv)
    setup_logging(level=logging.DEBUG if args.verbose else logging.INFO)

    if args.format == "csv" and args.output is None:
        parser.error("--output is required for csv export")

    settings = get_settings()

    try:
        backend_type = args.backend or settings.storage_backend
        kwargs = {"db_path": args.db_path} if backend_type == "sqlite" else {}
        backend = get_backend(backend_type=backend_type, **kwargs)
        backend.initialize()
    except Exception as e:
        logger.error(f"Failed to initialize storage backend: {e}")
        return 1

    try:
        result = ReportAggregator(backend, settings.reporting).generate(
            start=args.start_date, end=args.end_date
        )
        if not result.success:
            print(f"❌ Report failed: {result.error}")
            return 1

        if args.format == "console":
            print_report(result.report)
            return 0

        paths = export_report(result.report, args.format, args.output)
        print(f"\n✅ Exported {len(paths)} tables:")
        for path in paths:
            print(f"  {path}")
        return 0

    except ExportNotImplementedError as e:
        print(str(e))
        return 0

    except Exception as e:
        logger.exception(f"Report generation failed: {e}")
        return 1

    finally:
        backend.close()


if __name__ == "__main__":
    sys.exit(main())
