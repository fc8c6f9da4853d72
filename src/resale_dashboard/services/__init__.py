"""
Session management, product transitions and dashboard view state.
"""

from .dashboard import DashboardData, DashboardDataLoader, SessionListView
from .exceptions import MutationError, ServiceError, SessionValidationError
from .inventory_service import InventoryService
from .session_service import (
    SessionService,
    count_by_status,
    filter_by_status,
    validate_session_form,
    validate_store_purchase_form,
)

__all__ = [
    "SessionService",
    "InventoryService",
    "DashboardData",
    "DashboardDataLoader",
    "SessionListView",
    "count_by_status",
    "filter_by_status",
    "validate_session_form",
    "validate_store_purchase_form",
    "ServiceError",
    "SessionValidationError",
    "MutationError",
]
