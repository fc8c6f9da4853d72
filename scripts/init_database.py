#!/usr/bin/env python3
"""
Create the local SQLite database and optionally fill it with sample data.

Usage:
    # Create empty tables
    python scripts/init_database.py

    # Create tables and add three sample purchase sessions
    python scripts/init_database.py --sample-data

    # Use a different database file
    python scripts/init_database.py --db-path data/test.db --sample-data
"""

import argparse
import logging
import random
import sys
from datetime import date, datetime, time, timedelta, timezone
from pathlib import Path
from typing import Optional

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from resale_dashboard.config.constants import (
    SESSION_STATUS_ACTIVE,
    SESSION_STATUS_COMPLETED,
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
from resale_dashboard.storage import StorageBackend, get_backend
from resale_dashboard.utils import setup_logging

logger = logging.getLogger(__name__)

SAMPLE_STORES = [
    {"name": "Eastside Recycle", "type": "recycle", "prefecture": "Tokyo"},
    {"name": "Harbor Wholesale", "type": "wholesale", "prefecture": "Kanagawa"},
    {"name": "Flea Market Online", "type": "online", "prefecture": None},
    {"name": "Riverside Thrift", "type": "recycle", "prefecture": "Saitama"},
]

SAMPLE_CATEGORIES = ["Apparel", "Toys", "Electronics", "Books", None]

# Product status mix for sample data, weighted toward stock that is moving
SAMPLE_STATUS_WEIGHTS = {
    STATUS_SOLD: 4,
    STATUS_LISTED: 3,
    STATUS_READY_TO_LIST: 1,
    STATUS_IN_STOCK: 2,
    STATUS_DISCARDED: 1,
}


def _timestamp(day: date, hour: int = 10) -> str:
    return datetime.combine(day, time(hour), tzinfo=timezone.utc).isoformat()


def seed_sample_data(
    backend: StorageBackend,
    today: Optional[date] = None,
    seed: int = 42,
) -> dict[str, int]:
    """
    Insert stores, sessions, store purchases and products.

    Args:
        backend: Initialized storage backend
        today: Reference date; sessions are placed before it
        seed: Random seed, for repeatable data

    Returns:
        Number of rows inserted per table
    """
    rng = random.Random(seed)
    today = today or date.today()

    stores = backend.insert(
        TABLE_STORES, [dict(store, notes=None) for store in SAMPLE_STORES]
    )

    session_offsets = [
        (90, SESSION_STATUS_COMPLETED),
        (35, SESSION_STATUS_COMPLETED),
        (5, SESSION_STATUS_ACTIVE),
    ]
    counts = {
        TABLE_STORES: len(stores),
        TABLE_PURCHASE_SESSIONS: 0,
        TABLE_STORE_PURCHASES: 0,
        TABLE_PRODUCTS: 0,
    }

    for index, (days_ago, status) in enumerate(session_offsets, start=1):
        session_day = today - timedelta(days=days_ago)
        session = backend.insert(
            TABLE_PURCHASE_SESSIONS,
            [
                {
                    "title": f"Buying trip #{index}",
                    "session_date": session_day.isoformat(),
                    "status": status,
                    "transportation_cost": rng.choice([1200, 2400, 3600]),
                    "transfer_fee": rng.choice([0, 330, 660]),
                    "agency_fee": rng.choice([0, 1000]),
                }
            ],
        )[0]
        counts[TABLE_PURCHASE_SESSIONS] += 1

        for store in rng.sample(stores, k=rng.randint(2, len(stores))):
            item_count = rng.randint(3, 8)
            purchase = backend.insert(
                TABLE_STORE_PURCHASES,
                [
                    {
                        "session_id": session["id"],
                        "store_id": store["id"],
                        "purchase_date": session_day.isoformat(),
                        "product_amount": item_count * rng.randint(3, 15) * 100,
                        "shipping_cost": rng.choice([0, 800, 1500]),
                        "commission_fee": rng.choice([0, 200]),
                        "item_count": item_count,
                        "created_at": _timestamp(session_day),
                    }
                ],
            )[0]
            counts[TABLE_STORE_PURCHASES] += 1

            # Leave some items unregistered in the newest session
            registered = item_count if status == SESSION_STATUS_COMPLETED else item_count - 1
            products = []
            for n in range(registered):
                product_status = rng.choices(
                    list(SAMPLE_STATUS_WEIGHTS), weights=list(SAMPLE_STATUS_WEIGHTS.values())
                )[0]
                purchase_cost = rng.randint(3, 15) * 100
                price = purchase_cost * rng.choice([2, 3, 4])
                product = {
                    "store_purchase_id": purchase["id"],
                    "name": f"{store['name']} item {n + 1}",
                    "category": rng.choice(SAMPLE_CATEGORIES),
                    "status": product_status,
                    "purchase_cost": purchase_cost,
                    "initial_price": price,
                    "current_price": price,
                    "shipping_cost": 0,
                    "photos": (
                        [f"photos/{purchase['id']}/{n + 1}.jpg"]
                        if rng.random() < 0.7
                        else []
                    ),
                    "created_at": _timestamp(session_day, 12),
                }
                if product_status == STATUS_SOLD:
                    sold_day = min(today, session_day + timedelta(days=rng.randint(1, 30)))
                    product.update(
                        sold_price=price,
                        shipping_cost=rng.choice([210, 520, 750]),
                        sold_at=_timestamp(sold_day, 18),
                    )
                    if rng.random() < 0.5:
                        product["platform_fee"] = price // 10
                elif product_status == STATUS_DISCARDED:
                    product.update(
                        discard_reason="Damaged",
                        discarded_at=_timestamp(session_day + timedelta(days=1)),
                    )
                products.append(product)

            backend.insert(TABLE_PRODUCTS, products)
            counts[TABLE_PRODUCTS] += len(products)

    return counts


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Create the local resale dashboard database",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--db-path",
        type=Path,
        help="Path to SQLite database (default: from settings)",
    )
    parser.add_argument(
        "--sample-data",
        action="store_true",
        help="Insert sample stores, sessions, purchases and products",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=42,
        help="Random seed for sample data",
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
        backend = get_backend(backend_type="sqlite", db_path=args.db_path)
        backend.initialize()
    except Exception as e:
        logger.error(f"Failed to initialize storage backend: {e}")
        return 1

    try:
        if args.sample_data:
            counts = seed_sample_data(backend, seed=args.seed)
            for table, count in counts.items():
                print(f"  {table}: {count} rows")
        print(f"\n✅ Database ready at {backend.db_path}")
        return 0

    except Exception as e:
        logger.exception(f"Database setup failed: {e}")
        return 1

    finally:
        backend.close()


if __name__ == "__main__":
    sys.exit(main())
