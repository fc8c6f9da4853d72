"""
SQLite storage backend implementation.

Provides local storage for development and offline use, with a schema
matching the hosted purchase-management tables.
"""

import json
import logging
import sqlite3
import threading
import uuid
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional, Sequence

from ..config.constants import DEFAULT_DB_PATH
from .base import (
    Filter,
    QueryError,
    SchemaError,
    StorageBackend,
    StorageConnectionError,
)

logger = logging.getLogger(__name__)


# =============================================================================
# SQLite Schema Definitions
# =============================================================================

PURCHASE_SESSIONS_SCHEMA = """
CREATE TABLE IF NOT EXISTS purchase_sessions (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    session_date TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'active',
    transportation_cost REAL NOT NULL DEFAULT 0,
    transfer_fee REAL NOT NULL DEFAULT 0,
    agency_fee REAL NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    CONSTRAINT valid_status CHECK (status IN ('active', 'completed'))
)
"""

STORES_SCHEMA = """
CREATE TABLE IF NOT EXISTS stores (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    type TEXT NOT NULL DEFAULT 'other',
    prefecture TEXT,
    notes TEXT,
    created_at TEXT NOT NULL
)
"""

STORE_PURCHASES_SCHEMA = """
CREATE TABLE IF NOT EXISTS store_purchases (
    id TEXT PRIMARY KEY,
    session_id TEXT NOT NULL REFERENCES purchase_sessions(id) ON DELETE CASCADE,
    store_id TEXT NOT NULL,
    purchase_date TEXT,
    product_amount REAL NOT NULL DEFAULT 0,
    shipping_cost REAL NOT NULL DEFAULT 0,
    commission_fee REAL NOT NULL DEFAULT 0,
    item_count INTEGER NOT NULL DEFAULT 0,
    payment_notes TEXT,
    created_at TEXT NOT NULL
)
"""

PRODUCTS_SCHEMA = """
CREATE TABLE IF NOT EXISTS products (
    id TEXT PRIMARY KEY,
    store_purchase_id TEXT REFERENCES store_purchases(id) ON DELETE SET NULL,
    name TEXT NOT NULL,
    category TEXT,
    brand TEXT,
    condition TEXT,
    purchase_cost REAL NOT NULL DEFAULT 0,
    allocated_cost REAL,
    initial_price REAL NOT NULL DEFAULT 0,
    current_price REAL NOT NULL DEFAULT 0,
    sold_price REAL,
    platform_fee REAL,
    shipping_cost REAL,
    shipping_method TEXT,
    photos TEXT,  -- JSON array stored as string
    status TEXT NOT NULL DEFAULT 'in_stock',
    notes TEXT,
    hold_reason TEXT,
    discard_reason TEXT,
    created_at TEXT NOT NULL,
    listed_at TEXT,
    sold_at TEXT,
    held_at TEXT,
    discarded_at TEXT,
    CONSTRAINT valid_status CHECK (status IN (
        'in_stock', 'ready_to_list', 'listed', 'sold', 'on_hold', 'discarded'
    ))
)
"""

# Index definitions for the lookups the dashboard performs
INDEX_DEFINITIONS = [
    "CREATE INDEX IF NOT EXISTS idx_sessions_date ON purchase_sessions(session_date)",
    "CREATE INDEX IF NOT EXISTS idx_sessions_status ON purchase_sessions(status)",
    "CREATE INDEX IF NOT EXISTS idx_store_purchases_session ON store_purchases(session_id)",
    "CREATE INDEX IF NOT EXISTS idx_store_purchases_store ON store_purchases(store_id)",
    "CREATE INDEX IF NOT EXISTS idx_products_store_purchase ON products(store_purchase_id)",
    "CREATE INDEX IF NOT EXISTS idx_products_status ON products(status)",
    "CREATE INDEX IF NOT EXISTS idx_products_sold_at ON products(sold_at)",
]

# Column whitelist per table, used to validate identifiers
TABLE_COLUMNS: dict[str, frozenset] = {
    "purchase_sessions": frozenset(
        [
            "id",
            "title",
            "session_date",
            "status",
            "transportation_cost",
            "transfer_fee",
            "agency_fee",
            "created_at",
        ]
    ),
    "stores": frozenset(["id", "name", "type", "prefecture", "notes", "created_at"]),
    "store_purchases": frozenset(
        [
            "id",
            "session_id",
            "store_id",
            "purchase_date",
            "product_amount",
            "shipping_cost",
            "commission_fee",
            "item_count",
            "payment_notes",
            "created_at",
        ]
    ),
    "products": frozenset(
        [
            "id",
            "store_purchase_id",
            "name",
            "category",
            "brand",
            "condition",
            "purchase_cost",
            "allocated_cost",
            "initial_price",
            "current_price",
            "sold_price",
            "platform_fee",
            "shipping_cost",
            "shipping_method",
            "photos",
            "status",
            "notes",
            "hold_reason",
            "discard_reason",
            "created_at",
            "listed_at",
            "sold_at",
            "held_at",
            "discarded_at",
        ]
    ),
}

# Columns holding JSON arrays
JSON_COLUMNS = frozenset(["photos"])

SQL_OPERATORS = {
    "eq": "=",
    "gt": ">",
    "gte": ">=",
    "lt": "<",
    "lte": "<=",
}


# =============================================================================
# Type Conversion Helpers
# =============================================================================


def _to_sqlite_value(value: Any) -> Any:
    """Convert a Python value to something SQLite can bind."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bool):
        return 1 if value else 0
    return value


def _to_sqlite_json(value: Any) -> Optional[str]:
    """Convert list/dict to JSON string for SQLite."""
    if value is None:
        return None
    if isinstance(value, str):
        return value  # Assume already JSON
    return json.dumps(value)


def from_sqlite_json(value: Any) -> Optional[list | dict]:
    """Convert JSON string to Python list/dict."""
    if value is None:
        return None
    if isinstance(value, (list, dict)):
        return value
    try:
        return json.loads(value)
    except (json.JSONDecodeError, TypeError):
        return None


# =============================================================================
# Validation Helpers
# =============================================================================


def _validate_identifier(value: str, valid_set: frozenset, name: str) -> str:
    """
    Validate an identifier against a whitelist to prevent SQL injection.

    Raises:
        SchemaError: If identifier is not in the valid set
    """
    if value not in valid_set:
        raise SchemaError(
            f"Invalid {name}: '{value}'. Must be one of: {sorted(valid_set)}"
        )
    return value


def _validate_table(table: str) -> frozenset:
    _validate_identifier(table, frozenset(TABLE_COLUMNS), "table")
    return TABLE_COLUMNS[table]


# =============================================================================
# SQLite Backend Implementation
# =============================================================================


class SQLiteBackend(StorageBackend):
    """
    SQLite storage backend for local use.

    Rows are exchanged as dictionaries, ids are UUID strings generated on
    insert, and JSON columns are encoded transparently. Access to the
    connection is serialized so the backend can serve concurrent fetches.
    """

    def __init__(
        self,
        db_path: Path | str = DEFAULT_DB_PATH,
        *,
        check_same_thread: bool = False,
        timeout: float = 30.0,
    ):
        """
        Initialize SQLite backend.

        Args:
            db_path: Path to SQLite database file
            check_same_thread: SQLite check_same_thread parameter
            timeout: Connection timeout in seconds
        """
        self.db_path = Path(db_path)
        self._check_same_thread = check_same_thread
        self._timeout = timeout
        self._connection: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()

        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def backend_type(self) -> str:
        """Return backend type identifier."""
        return "sqlite"

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._connection is None:
            try:
                self._connection = sqlite3.connect(
                    str(self.db_path),
                    check_same_thread=self._check_same_thread,
                    timeout=self._timeout,
                )
                self._connection.row_factory = sqlite3.Row
                self._connection.execute("PRAGMA foreign_keys = ON")
                logger.debug(f"Connected to SQLite database: {self.db_path}")
            except sqlite3.Error as e:
                raise StorageConnectionError(
                    f"Failed to connect to SQLite database: {e}"
                ) from e
        return self._connection

    @contextmanager
    def _cursor(self):
        """Context manager for database cursor with automatic commit/rollback."""
        with self._lock:
            conn = self._get_connection()
            cursor = conn.cursor()
            try:
                yield cursor
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise QueryError(f"SQLite query failed: {e}") from e
            finally:
                cursor.close()

    def initialize(self) -> None:
        """
        Initialize database with all required tables and indexes.

        Safe to call multiple times - uses IF NOT EXISTS.
        """
        logger.info(f"Initializing SQLite database: {self.db_path}")

        with self._cursor() as cursor:
            cursor.execute(PURCHASE_SESSIONS_SCHEMA)
            cursor.execute(STORES_SCHEMA)
            cursor.execute(STORE_PURCHASES_SCHEMA)
            cursor.execute(PRODUCTS_SCHEMA)

            for index_sql in INDEX_DEFINITIONS:
                cursor.execute(index_sql)

        logger.info("SQLite database initialized successfully")

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None
                logger.debug("SQLite connection closed")

    def _build_where(
        self,
        columns: frozenset,
        filters: Optional[Sequence[Filter]],
    ) -> tuple[str, dict]:
        """Translate filters into a WHERE clause and bound parameters."""
        if not filters:
            return "", {}

        clauses = []
        params: dict[str, Any] = {}

        for i, flt in enumerate(filters):
            _validate_identifier(flt.column, columns, "column")
            if flt.op == "in":
                if not flt.value:
                    # Empty set matches nothing
                    clauses.append("0")
                    continue
                names = []
                for j, value in enumerate(flt.value):
                    name = f"p{i}_{j}"
                    params[name] = _to_sqlite_value(value)
                    names.append(f":{name}")
                clauses.append(f"{flt.column} IN ({', '.join(names)})")
            else:
                name = f"p{i}"
                params[name] = _to_sqlite_value(flt.value)
                clauses.append(f"{flt.column} {SQL_OPERATORS[flt.op]} :{name}")

        return " WHERE " + " AND ".join(clauses), params

    def _decode_row(self, row: dict) -> dict:
        for column in JSON_COLUMNS:
            if column in row:
                row[column] = from_sqlite_json(row[column])
        return row

    def _encode_values(self, columns: frozenset, values: dict) -> dict:
        encoded = {}
        for column, value in values.items():
            _validate_identifier(column, columns, "column")
            if column in JSON_COLUMNS:
                encoded[column] = _to_sqlite_json(value)
            else:
                encoded[column] = _to_sqlite_value(value)
        return encoded

    def select(
        self,
        table: str,
        filters: Optional[Sequence[Filter]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict]:
        """Read rows from a table as dictionaries."""
        columns = _validate_table(table)
        where, params = self._build_where(columns, filters)

        sql = f"SELECT * FROM {table}{where}"
        if order_by:
            _validate_identifier(order_by, columns, "order column")
            sql += f" ORDER BY {order_by} {'DESC' if descending else 'ASC'}"
        if limit is not None:
            sql += f" LIMIT {int(limit)}"

        with self._cursor() as cursor:
            cursor.execute(sql, params)
            names = [desc[0] for desc in cursor.description or []]
            rows = cursor.fetchall()
            return [self._decode_row(dict(zip(names, row))) for row in rows]

    def insert(self, table: str, rows: list[dict]) -> list[dict]:
        """
        Insert rows, assigning ids and created_at where missing.

        Returns:
            The inserted rows as stored
        """
        if not rows:
            return []

        columns = _validate_table(table)
        now = datetime.now().astimezone().isoformat()
        inserted = []

        with self._cursor() as cursor:
            for row in rows:
                values = dict(row)
                values.setdefault("id", str(uuid.uuid4()))
                values.setdefault("created_at", now)
                encoded = self._encode_values(columns, values)

                names = list(encoded)
                sql = (
                    f"INSERT INTO {table} ({', '.join(names)}) "
                    f"VALUES ({', '.join(':' + name for name in names)})"
                )
                cursor.execute(sql, encoded)
                inserted.append(values)

        logger.debug(f"Inserted {len(inserted)} rows into {table}")
        return inserted

    def update(self, table: str, row_id: str, values: dict) -> int:
        """Update a row by id. Returns number of affected rows."""
        columns = _validate_table(table)
        if not values:
            return 0

        encoded = self._encode_values(columns, values)
        encoded.pop("id", None)
        if not encoded:
            return 0

        assignments = ", ".join(f"{name} = :{name}" for name in encoded)
        sql = f"UPDATE {table} SET {assignments} WHERE id = :row_id"

        with self._cursor() as cursor:
            cursor.execute(sql, {**encoded, "row_id": row_id})
            return cursor.rowcount

    def delete(self, table: str, row_id: str) -> int:
        """Delete a row by id. Returns number of affected rows."""
        _validate_table(table)

        with self._cursor() as cursor:
            cursor.execute(f"DELETE FROM {table} WHERE id = :row_id", {"row_id": row_id})
            return cursor.rowcount

    def table_exists(self, table_name: str) -> bool:
        """Check if a table exists."""
        with self._cursor() as cursor:
            cursor.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name=:table_name",
                {"table_name": table_name},
            )
            return cursor.fetchone() is not None

    def get_table_row_count(self, table_name: str) -> int:
        """Get total row count for a table."""
        _validate_table(table_name)
        if not self.table_exists(table_name):
            raise SchemaError(f"Table '{table_name}' does not exist")

        with self._cursor() as cursor:
            cursor.execute(f"SELECT COUNT(*) FROM {table_name}")
            return cursor.fetchone()[0]

    def health_check(self) -> dict:
        """Extended health check with SQLite-specific info."""
        base_check = super().health_check()

        if base_check["healthy"]:
            db_size = self.db_path.stat().st_size if self.db_path.exists() else 0
            base_check["details"] = {
                "db_path": str(self.db_path),
                "db_size_bytes": db_size,
            }

        return base_check
