"""
Purchase session management.

Lists sessions with status filtering, and creates, edits and deletes
sessions and their store purchases from submitted form data.
"""

import logging
import math
from typing import Any, Callable, Iterable, Optional

from ..config.constants import (
    SESSION_STATUS_ACTIVE,
    SESSION_STATUSES,
    SHARED_COST_FIELDS,
    STATUS_FILTER_ALL,
    STATUS_FILTERS,
    TABLE_PURCHASE_SESSIONS,
    TABLE_STORE_PURCHASES,
)
from ..schemas import PurchaseSession, StorePurchase
from ..storage import StorageBackend, StorageError, eq
from ..utils.date_utils import parse_date
from .exceptions import MutationError, SessionValidationError

logger = logging.getLogger(__name__)

STORE_PURCHASE_COST_FIELDS = ("product_amount", "shipping_cost", "commission_fee")


def _non_negative_number(data: dict, key: str) -> float:
    value = data.get(key)
    if value is None or value == "":
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise SessionValidationError(f"{key} must be a number", field=key)
    if not math.isfinite(number):
        raise SessionValidationError(f"{key} must be a finite number", field=key)
    if number < 0:
        raise SessionValidationError(f"{key} must not be negative", field=key)
    return number


def validate_session_form(data: dict[str, Any]) -> dict[str, Any]:
    """
    Validate session form data and return the row to store.

    Raises:
        SessionValidationError: If title or session_date is missing, the
            status is unknown, or a cost is negative or not a number
    """
    title = str(data.get("title") or "").strip()
    if not title:
        raise SessionValidationError("Title is required", field="title")

    session_date = parse_date(data.get("session_date"))
    if session_date is None:
        raise SessionValidationError("Session date is required", field="session_date")

    status = data.get("status") or SESSION_STATUS_ACTIVE
    if status not in SESSION_STATUSES:
        raise SessionValidationError(
            f"Status must be one of: {', '.join(SESSION_STATUSES)}", field="status"
        )

    row = {
        "title": title,
        "session_date": session_date.isoformat(),
        "status": status,
    }
    for key in SHARED_COST_FIELDS:
        row[key] = _non_negative_number(data, key)
    return row


def validate_store_purchase_form(data: dict[str, Any]) -> dict[str, Any]:
    """Validate store purchase form data and return the row to store."""
    store_id = str(data.get("store_id") or "").strip()
    if not store_id:
        raise SessionValidationError("Store is required", field="store_id")

    row: dict[str, Any] = {"store_id": store_id}
    for key in STORE_PURCHASE_COST_FIELDS:
        row[key] = _non_negative_number(data, key)

    item_count = _non_negative_number(data, "item_count")
    if item_count != int(item_count):
        raise SessionValidationError("item_count must be a whole number", field="item_count")
    row["item_count"] = int(item_count)

    purchase_date = parse_date(data.get("purchase_date"))
    if purchase_date is not None:
        row["purchase_date"] = purchase_date.isoformat()
    if data.get("payment_notes"):
        row["payment_notes"] = str(data["payment_notes"])
    return row


def count_by_status(sessions: Iterable[PurchaseSession]) -> dict[str, int]:
    """Number of sessions matching each status filter."""
    counts = {status_filter: 0 for status_filter in STATUS_FILTERS}
    for session in sessions:
        counts[STATUS_FILTER_ALL] += 1
        if session.status in counts:
            counts[session.status] += 1
    return counts


def filter_by_status(
    sessions: Iterable[PurchaseSession], status_filter: str
) -> list[PurchaseSession]:
    if status_filter == STATUS_FILTER_ALL:
        return list(sessions)
    return [s for s in sessions if s.status == status_filter]


class SessionService:
    """Reads and writes purchase sessions and their store purchases."""

    def __init__(self, backend: StorageBackend):
        self._backend = backend

    def list_sessions(self, status_filter: str = STATUS_FILTER_ALL) -> list[PurchaseSession]:
        """
        Sessions ordered by session date, newest first.

        Raises:
            ValueError: If status_filter is not a known filter
            StorageError: If the read fails
        """
        if status_filter not in STATUS_FILTERS:
            raise ValueError(
                f"Unknown status filter: '{status_filter}'. "
                f"Must be one of: {STATUS_FILTERS}"
            )

        filters = []
        if status_filter != STATUS_FILTER_ALL:
            filters.append(eq("status", status_filter))

        rows = self._backend.select(
            TABLE_PURCHASE_SESSIONS,
            filters,
            order_by="session_date",
            descending=True,
        )
        return [PurchaseSession.from_row(row) for row in rows]

    def get_session(self, session_id: str) -> Optional[PurchaseSession]:
        row = self._backend.get_by_id(TABLE_PURCHASE_SESSIONS, session_id)
        return PurchaseSession.from_row(row) if row else None

    def create_session(self, data: dict[str, Any]) -> PurchaseSession:
        """
        Create a session from form data.

        Raises:
            SessionValidationError: If the form data is invalid
            MutationError: If the insert fails
        """
        row = validate_session_form(data)
        try:
            inserted = self._backend.insert(TABLE_PURCHASE_SESSIONS, [row])
        except StorageError as e:
            raise MutationError(f"Failed to create session: {e}") from e

        session = PurchaseSession.from_row(inserted[0])
        logger.info(f"Created session {session.id} ({session.title})")
        return session

    def update_session(self, session_id: str, data: dict[str, Any]) -> PurchaseSession:
        """
        Replace a session's fields with validated form data.

        Raises:
            SessionValidationError: If the form data is invalid
            MutationError: If the update fails or the session does not exist
        """
        row = validate_session_form(data)
        try:
            updated = self._backend.update(TABLE_PURCHASE_SESSIONS, session_id, row)
        except StorageError as e:
            raise MutationError(f"Failed to update session: {e}") from e

        if not updated:
            raise MutationError(f"Failed to update session: {session_id} not found")

        logger.info(f"Updated session {session_id}")
        return PurchaseSession.from_row({"id": session_id, **row})

    def delete_session(self, session_id: str, confirm: Callable[[str], bool]) -> bool:
        """
        Delete a session and its store purchases once confirmed.

        Args:
            session_id: Session to delete
            confirm: Called with the session id; deletion proceeds only
                when it returns True

        Returns:
            True if deleted, False if the confirmation was declined

        Raises:
            MutationError: If the delete fails
        """
        if not confirm(session_id):
            logger.info(f"Deletion of session {session_id} cancelled")
            return False

        try:
            deleted = self._backend.delete(TABLE_PURCHASE_SESSIONS, session_id)
        except StorageError as e:
            raise MutationError(f"Failed to delete session: {e}") from e

        if not deleted:
            logger.warning(f"Session {session_id} was already gone")
        else:
            logger.info(f"Deleted session {session_id}")
        return True

    def list_store_purchases(self, session_id: str) -> list[StorePurchase]:
        rows = self._backend.select(
            TABLE_STORE_PURCHASES,
            [eq("session_id", session_id)],
            order_by="created_at",
        )
        return [StorePurchase.from_row(row) for row in rows]

    def add_store_purchase(self, session_id: str, data: dict[str, Any]) -> StorePurchase:
        """
        Record a purchase from one store within a session.

        Raises:
            SessionValidationError: If the form data is invalid
            MutationError: If the insert fails
        """
        row = validate_store_purchase_form(data)
        row["session_id"] = session_id
        try:
            inserted = self._backend.insert(TABLE_STORE_PURCHASES, [row])
        except StorageError as e:
            raise MutationError(f"Failed to add store purchase: {e}") from e

        purchase = StorePurchase.from_row(inserted[0])
        logger.info(
            f"Added store purchase {purchase.id} to session {session_id} "
            f"({purchase.item_count} items)"
        )
        return purchase

    def delete_store_purchase(self, purchase_id: str, confirm: Callable[[str], bool]) -> bool:
        """Delete a store purchase once confirmed. Returns False if declined."""
        if not confirm(purchase_id):
            return False

        try:
            self._backend.delete(TABLE_STORE_PURCHASES, purchase_id)
        except StorageError as e:
            raise MutationError(f"Failed to delete store purchase: {e}") from e

        logger.info(f"Deleted store purchase {purchase_id}")
        return True
