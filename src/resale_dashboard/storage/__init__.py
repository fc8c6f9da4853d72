"""
Storage abstraction layer for purchase and inventory data.

Provides a unified table-style interface over a local SQLite file or a
hosted PostgREST service.

Usage:
    from resale_dashboard.storage import get_backend, eq

    # Get backend from configuration
    backend = get_backend()

    # Or explicitly specify backend
    backend = get_backend('sqlite', db_path='data/resale.db')

    # Use as context manager
    with get_backend() as backend:
        backend.initialize()
        sessions = backend.select("purchase_sessions", [eq("status", "active")])
"""

from .base import (
    Filter,
    QueryError,
    SchemaError,
    StorageBackend,
    StorageConnectionError,
    StorageError,
    eq,
    gt,
    gte,
    in_,
    lt,
    lte,
)
from .factory import (
    get_backend,
    is_backend_available,
    list_available_backends,
    register_backend,
)

__all__ = [
    # Base classes and exceptions
    "StorageBackend",
    "StorageError",
    "StorageConnectionError",
    "QueryError",
    "SchemaError",
    # Filters
    "Filter",
    "eq",
    "gt",
    "gte",
    "lt",
    "lte",
    "in_",
    # Factory functions
    "get_backend",
    "register_backend",
    "list_available_backends",
    "is_backend_available",
]
