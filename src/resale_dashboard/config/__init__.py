"""Configuration module."""

from .constants import (
    DEFAULT_PLATFORM_FEE_RATE,
    INVENTORY_STATUSES,
    PRODUCT_STATUSES,
    SESSION_STATUSES,
    SLOW_MOVING_DAYS,
    STATUS_FILTERS,
    TOP_N_LIMIT,
)
from .settings import ReportingSettings, Settings, clear_settings_cache, get_settings
from .sops_loader import (
    check_sops_installed,
    env_overrides,
    load_config,
    read_config_file,
)

__all__ = [
    # Statuses
    "SESSION_STATUSES",
    "STATUS_FILTERS",
    "PRODUCT_STATUSES",
    "INVENTORY_STATUSES",
    # Reporting defaults
    "DEFAULT_PLATFORM_FEE_RATE",
    "SLOW_MOVING_DAYS",
    "TOP_N_LIMIT",
    # Settings
    "Settings",
    "ReportingSettings",
    "get_settings",
    "clear_settings_cache",
    # Config loading
    "load_config",
    "read_config_file",
    "env_overrides",
    "check_sops_installed",
]
