"""
Abstract base class for storage backends.

Provides a table-style interface for reading and writing purchase data,
enabling switching between a local SQLite file and a hosted PostgREST
service.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Sequence

# Filter operators understood by every backend
FILTER_OPERATORS = frozenset(["eq", "gt", "gte", "lt", "lte", "in"])


@dataclass(frozen=True)
class Filter:
    """A single column predicate applied by select()."""

    column: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in FILTER_OPERATORS:
            raise ValueError(
                f"Unsupported filter operator: '{self.op}'. "
                f"Must be one of: {sorted(FILTER_OPERATORS)}"
            )
        if self.op == "in" and isinstance(self.value, (str, bytes)):
            raise ValueError("'in' filter requires a sequence of values")


def eq(column: str, value: Any) -> Filter:
    """Equality predicate."""
    return Filter(column, "eq", value)


def gte(column: str, value: Any) -> Filter:
    """Greater-than-or-equal predicate."""
    return Filter(column, "gte", value)


def gt(column: str, value: Any) -> Filter:
    """Greater-than predicate."""
    return Filter(column, "gt", value)


def lte(column: str, value: Any) -> Filter:
    """Less-than-or-equal predicate."""
    return Filter(column, "lte", value)


def lt(column: str, value: Any) -> Filter:
    """Less-than predicate."""
    return Filter(column, "lt", value)


def in_(column: str, values: Sequence[Any]) -> Filter:
    """Set-membership predicate."""
    return Filter(column, "in", tuple(values))


class StorageBackend(ABC):
    """
    Abstract base class for storage backends.

    All storage implementations (SQLite, remote) must implement this
    interface so services and aggregators behave the same on both.
    """

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Return the backend type identifier (e.g., 'sqlite')."""
        pass

    @abstractmethod
    def initialize(self) -> None:
        """
        Initialize the storage backend.

        Creates tables if they don't exist (local backends) or verifies
        connectivity (remote backends). Safe to call multiple times.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Close connections and release resources."""
        pass

    @abstractmethod
    def select(
        self,
        table: str,
        filters: Optional[Sequence[Filter]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict]:
        """
        Read rows from a table.

        Args:
            table: Table name
            filters: Predicates combined with AND
            order_by: Column to sort by (optional)
            descending: Sort direction when order_by is given
            limit: Maximum number of rows

        Returns:
            List of dictionaries, one per row.

        Raises:
            StorageError: If the read fails.
        """
        pass

    @abstractmethod
    def insert(self, table: str, rows: list[dict]) -> list[dict]:
        """
        Insert rows into a table.

        Rows without an ``id`` are assigned one by the backend.

        Returns:
            The inserted rows, including their ids.

        Raises:
            StorageError: If insertion fails.
        """
        pass

    @abstractmethod
    def update(self, table: str, row_id: str, values: dict) -> int:
        """
        Update a row by primary key.

        Returns:
            Number of affected rows (0 when the id does not exist).

        Raises:
            StorageError: If the update fails.
        """
        pass

    @abstractmethod
    def delete(self, table: str, row_id: str) -> int:
        """
        Delete a row by primary key.

        Returns:
            Number of affected rows.

        Raises:
            StorageError: If the delete fails.
        """
        pass

    @abstractmethod
    def table_exists(self, table_name: str) -> bool:
        """Check if a table exists in the storage backend."""
        pass

    def get_by_id(self, table: str, row_id: str) -> Optional[dict]:
        """
        Fetch a single row by primary key.

        Default implementation uses select(); backends may override.
        """
        rows = self.select(table, [eq("id", row_id)], limit=1)
        return rows[0] if rows else None

    def get_table_row_count(self, table_name: str) -> int:
        """
        Get the total row count for a table.

        Default implementation counts select() results; backends may
        override for better performance.
        """
        return len(self.select(table_name))

    def health_check(self) -> dict:
        """
        Perform a health check on the storage backend.

        Returns:
            Dictionary with health status information:
            {
                "healthy": bool,
                "backend_type": str,
                "message": str,
                "details": dict
            }
        """
        try:
            self.select("purchase_sessions", limit=1)
            return {
                "healthy": True,
                "backend_type": self.backend_type,
                "message": "Backend is operational",
                "details": {},
            }
        except StorageError as e:
            return {
                "healthy": False,
                "backend_type": self.backend_type,
                "message": f"Health check failed: {str(e)}",
                "details": {"error": str(e)},
            }

    def __enter__(self) -> "StorageBackend":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - ensures resources are released."""
        self.close()


class StorageError(Exception):
    """Base exception for storage backend errors."""

    pass


class StorageConnectionError(StorageError):
    """Raised when connection to storage backend fails."""

    pass


class QueryError(StorageError):
    """Raised when a query fails to execute."""

    pass


class SchemaError(StorageError):
    """Raised when there's a schema-related error."""

    pass
