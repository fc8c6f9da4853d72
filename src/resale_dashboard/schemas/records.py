"""
Typed records for rows read from storage.

Rows come back as loosely-typed dictionaries; these dataclasses decode
them once, with explicit defaults, so aggregation code never does
arithmetic on missing values.
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional

from ..config.constants import (
    SESSION_STATUS_ACTIVE,
    STATUS_IN_STOCK,
    STATUS_SOLD,
)
from ..utils.date_utils import parse_date, parse_timestamp


def _optional_number(row: dict, key: str) -> Optional[float]:
    """Read a numeric field; missing, garbage, NaN and infinities give None."""
    value = row.get(key)
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _number(row: dict, key: str, default: float = 0.0) -> float:
    """Read a numeric field, treating anything unusable as default."""
    number = _optional_number(row, key)
    return default if number is None else number


def _integer(row: dict, key: str, default: int = 0) -> int:
    return int(_number(row, key, float(default)))


def _text(row: dict, key: str, default: str = "") -> str:
    value = row.get(key)
    return default if value is None else str(value)


def _optional_text(row: dict, key: str) -> Optional[str]:
    value = row.get(key)
    return None if value is None or value == "" else str(value)


def _string_list(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return [str(item) for item in value if item]


@dataclass
class PurchaseSession:
    """A buying trip whose shared costs are spread over its store purchases."""

    id: str
    title: str
    session_date: Optional[date]
    status: str = SESSION_STATUS_ACTIVE
    transportation_cost: float = 0.0
    transfer_fee: float = 0.0
    agency_fee: float = 0.0

    @property
    def shared_cost(self) -> float:
        """Total of the costs shared by every store in the session."""
        return self.transportation_cost + self.transfer_fee + self.agency_fee

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "PurchaseSession":
        return cls(
            id=_text(row, "id"),
            title=_text(row, "title"),
            session_date=parse_date(row.get("session_date")),
            status=_text(row, "status", SESSION_STATUS_ACTIVE),
            transportation_cost=_number(row, "transportation_cost"),
            transfer_fee=_number(row, "transfer_fee"),
            agency_fee=_number(row, "agency_fee"),
        )


@dataclass
class Store:
    """A shop or supplier goods are bought from."""

    id: str
    name: str
    type: str = "other"
    prefecture: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Store":
        return cls(
            id=_text(row, "id"),
            name=_text(row, "name"),
            type=_text(row, "type", "other"),
            prefecture=_optional_text(row, "prefecture"),
            notes=_optional_text(row, "notes"),
        )


@dataclass
class StorePurchase:
    """What was bought from one store during one session."""

    id: str
    session_id: str
    store_id: str
    item_count: int = 0
    product_amount: float = 0.0
    shipping_cost: float = 0.0
    commission_fee: float = 0.0
    purchase_date: Optional[date] = None
    created_at: Optional[datetime] = None
    payment_notes: Optional[str] = None

    @property
    def purchase_amount(self) -> float:
        """Goods plus delivery plus commission, before shared costs."""
        return self.product_amount + self.shipping_cost + self.commission_fee

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "StorePurchase":
        # Older rows store the goods amount as product_cost
        if row.get("product_amount") is not None:
            product_amount = _number(row, "product_amount")
        else:
            product_amount = _number(row, "product_cost")

        return cls(
            id=_text(row, "id"),
            session_id=_text(row, "session_id"),
            store_id=_text(row, "store_id"),
            item_count=_integer(row, "item_count"),
            product_amount=product_amount,
            shipping_cost=_number(row, "shipping_cost"),
            commission_fee=_number(row, "commission_fee"),
            purchase_date=parse_date(row.get("purchase_date")),
            created_at=parse_timestamp(row.get("created_at")),
            payment_notes=_optional_text(row, "payment_notes"),
        )


@dataclass
class Product:
    """A single registered item, from purchase through sale or disposal."""

    id: str
    store_purchase_id: Optional[str]
    name: str = ""
    category: Optional[str] = None
    status: str = STATUS_IN_STOCK
    purchase_cost: float = 0.0
    allocated_cost: Optional[float] = None
    initial_price: float = 0.0
    current_price: float = 0.0
    sold_price: Optional[float] = None
    platform_fee: Optional[float] = None
    shipping_cost: float = 0.0
    photos: list[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    sold_at: Optional[datetime] = None
    discarded_at: Optional[datetime] = None

    @property
    def is_sold(self) -> bool:
        return self.status == STATUS_SOLD

    @property
    def has_photos(self) -> bool:
        return bool(self.photos)

    @property
    def cost(self) -> float:
        """Allocated cost when recorded, else the raw purchase cost."""
        if self.allocated_cost:
            return self.allocated_cost
        return self.purchase_cost

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Product":
        return cls(
            id=_text(row, "id"),
            store_purchase_id=_optional_text(row, "store_purchase_id"),
            name=_text(row, "name"),
            category=_optional_text(row, "category"),
            status=_text(row, "status", STATUS_IN_STOCK),
            purchase_cost=_number(row, "purchase_cost"),
            allocated_cost=_optional_number(row, "allocated_cost"),
            initial_price=_number(row, "initial_price"),
            current_price=_number(row, "current_price"),
            sold_price=_optional_number(row, "sold_price"),
            platform_fee=_optional_number(row, "platform_fee"),
            shipping_cost=_number(row, "shipping_cost"),
            photos=_string_list(row.get("photos")),
            created_at=parse_timestamp(row.get("created_at")),
            sold_at=parse_timestamp(row.get("sold_at")),
            discarded_at=parse_timestamp(row.get("discarded_at")),
        )
