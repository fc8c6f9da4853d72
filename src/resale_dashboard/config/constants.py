"""
Constants for purchase sessions, product statuses and reporting defaults.
"""

# =============================================================================
# Storage
# =============================================================================

DEFAULT_DB_PATH = "data/resale-dashboard.db"

# =============================================================================
# Purchase Sessions
# =============================================================================

SESSION_STATUS_ACTIVE = "active"
SESSION_STATUS_COMPLETED = "completed"
SESSION_STATUSES = (SESSION_STATUS_ACTIVE, SESSION_STATUS_COMPLETED)

# Status filter values offered by the session list
STATUS_FILTER_ALL = "all"
STATUS_FILTERS = (STATUS_FILTER_ALL, SESSION_STATUS_ACTIVE, SESSION_STATUS_COMPLETED)

# Shared session cost fields, allocated across stores by purchase amount
SHARED_COST_FIELDS = ("transportation_cost", "transfer_fee", "agency_fee")

# =============================================================================
# Stores
# =============================================================================

STORE_TYPES = ("online", "recycle", "wholesale", "other")

# ROI thresholds (percent) for store ranks, checked from the top down
STORE_RANK_THRESHOLDS = [
    ("S", 50.0),
    ("A", 30.0),
    ("B", 10.0),
    ("C", 0.0),
]
LOWEST_STORE_RANK = "D"

# =============================================================================
# Products
# =============================================================================

STATUS_IN_STOCK = "in_stock"
STATUS_READY_TO_LIST = "ready_to_list"
STATUS_LISTED = "listed"
STATUS_SOLD = "sold"
STATUS_ON_HOLD = "on_hold"
STATUS_DISCARDED = "discarded"

PRODUCT_STATUSES = (
    STATUS_IN_STOCK,
    STATUS_READY_TO_LIST,
    STATUS_LISTED,
    STATUS_SOLD,
    STATUS_ON_HOLD,
    STATUS_DISCARDED,
)

# Statuses counted as sellable inventory in business reports
INVENTORY_STATUSES = (STATUS_IN_STOCK, STATUS_READY_TO_LIST, STATUS_LISTED)

# Category used when a sold product has none
DEFAULT_CATEGORY = "Other"

# =============================================================================
# Reporting Defaults
# =============================================================================

# Marketplace fee charged on a sale when the product has no stored fee
DEFAULT_PLATFORM_FEE_RATE = 0.10

# Inventory older than this many whole days is reported as slow-moving
SLOW_MOVING_DAYS = 60
SLOW_MOVING_LIMIT = 10

TOP_N_LIMIT = 5

# Estimated outbound shipping for an unsold item, by listed price:
# (price below, cost), checked in order; anything pricier uses the max
SHIPPING_ESTIMATE_TIERS = [
    (3000, 215),
    (10000, 750),
]
SHIPPING_ESTIMATE_MAX = 850

# Days in stock (exclusive) at which an unsold item reaches each risk level
RISK_LEVEL_THRESHOLDS = [
    ("critical", 90),
    ("high", 60),
    ("medium", 30),
]
LOWEST_RISK_LEVEL = "low"

RISK_RECOMMENDATIONS = {
    "critical": "Cut the price sharply or consider discarding",
    "high": "Reduce the price to sell early",
    "medium": "Consider a price adjustment",
    "low": "Keep the current price",
}

# =============================================================================
# Table Names
# =============================================================================

TABLE_PURCHASE_SESSIONS = "purchase_sessions"
TABLE_STORES = "stores"
TABLE_STORE_PURCHASES = "store_purchases"
TABLE_PRODUCTS = "products"
