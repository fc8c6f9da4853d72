"""
Application settings and configuration management.

Settings come from a YAML config file (plain or SOPS-encrypted, default
config.enc.yaml) with environment variables overriding individual keys.
"""

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

from .constants import (
    DEFAULT_DB_PATH,
    DEFAULT_PLATFORM_FEE_RATE,
    SLOW_MOVING_DAYS,
    SLOW_MOVING_LIMIT,
    TOP_N_LIMIT,
)
from .sops_loader import env_overrides, load_config

logger = logging.getLogger(__name__)

SUPPORTED_BACKENDS = ("sqlite", "remote")


# =============================================================================
# Reporting Settings
# =============================================================================


@dataclass
class ReportingSettings:
    """
    Tunables for financial aggregation and business reports.

    The platform fee rate is applied to sold products whose stored platform
    fee is missing or 0.
    """

    platform_fee_rate: float = DEFAULT_PLATFORM_FEE_RATE
    slow_moving_days: int = SLOW_MOVING_DAYS
    slow_moving_limit: int = SLOW_MOVING_LIMIT
    top_n_limit: int = TOP_N_LIMIT

    def validate(self) -> list[str]:
        """Validate settings values. Returns list of errors."""
        errors = []

        if not 0.0 <= self.platform_fee_rate <= 1.0:
            errors.append(
                f"platform_fee_rate must be 0-1, got {self.platform_fee_rate}"
            )
        if self.slow_moving_days < 0:
            errors.append(
                f"slow_moving_days must be >= 0, got {self.slow_moving_days}"
            )
        if self.slow_moving_limit < 1:
            errors.append(
                f"slow_moving_limit must be >= 1, got {self.slow_moving_limit}"
            )
        if self.top_n_limit < 1:
            errors.append(f"top_n_limit must be >= 1, got {self.top_n_limit}")

        return errors

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "platform_fee_rate": self.platform_fee_rate,
            "slow_moving_days": self.slow_moving_days,
            "slow_moving_limit": self.slow_moving_limit,
            "top_n_limit": self.top_n_limit,
        }

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> "ReportingSettings":
        """Create from configuration dictionary."""
        return cls(
            platform_fee_rate=config.get(
                "platform_fee_rate", DEFAULT_PLATFORM_FEE_RATE
            ),
            slow_moving_days=config.get("slow_moving_days", SLOW_MOVING_DAYS),
            slow_moving_limit=config.get("slow_moving_limit", SLOW_MOVING_LIMIT),
            top_n_limit=config.get("top_n_limit", TOP_N_LIMIT),
        )

    @classmethod
    def from_env(cls) -> "ReportingSettings":
        """Create from REPORTING_* environment variables."""
        return cls.from_dict(env_overrides().get("reporting", {}))


# =============================================================================
# Main Settings
# =============================================================================


@dataclass
class Settings:
    """Application settings for the storage backends and reporting."""

    # Storage Backend Settings
    storage_backend: str = "sqlite"
    sqlite_db_path: str = DEFAULT_DB_PATH

    # Remote (PostgREST) Settings
    remote_url: str = ""
    remote_api_key: str = ""

    reporting: ReportingSettings = field(default_factory=ReportingSettings)

    def validate(self) -> list[str]:
        """Validate required settings are present. Returns list of errors."""
        errors = []

        if self.storage_backend not in SUPPORTED_BACKENDS:
            errors.append(
                f"storage.backend must be one of {', '.join(SUPPORTED_BACKENDS)}, "
                f"got '{self.storage_backend}'"
            )

        if self.storage_backend == "remote":
            if not self.remote_url:
                errors.append("remote.url is required for the remote backend")
            if not self.remote_api_key:
                errors.append("remote.api_key is required for the remote backend")

        errors.extend(self.reporting.validate())

        return errors

    def to_dict(self) -> dict:
        """Convert to the section-keyed shape read from config files."""
        return {
            "storage": {
                "backend": self.storage_backend,
                "sqlite_db_path": self.sqlite_db_path,
            },
            "remote": {"url": self.remote_url, "api_key": self.remote_api_key},
            "reporting": self.reporting.to_dict(),
        }

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> "Settings":
        """Create Settings from configuration dictionary (e.g., from SOPS)."""
        storage = config.get("storage", {})
        remote = config.get("remote", {})
        reporting = config.get("reporting", {})

        return cls(
            storage_backend=storage.get("backend", "sqlite"),
            sqlite_db_path=storage.get("sqlite_db_path", DEFAULT_DB_PATH),
            remote_url=remote.get("url", ""),
            remote_api_key=remote.get("api_key", ""),
            reporting=ReportingSettings.from_dict(reporting),
        )

    @classmethod
    def from_env(cls) -> "Settings":
        """Create Settings from environment variables only."""
        return cls.from_dict(env_overrides())


# Default config file path
DEFAULT_CONFIG_PATH = Path("config.enc.yaml")


@lru_cache
def get_settings(config_path: Optional[str] = None) -> Settings:
    """
    Get cached settings instance.

    Args:
        config_path: Optional path to the YAML config file

    Returns:
        Settings instance
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    settings = Settings.from_dict(load_config(path))

    for error in settings.validate():
        logger.warning(f"Configuration problem: {error}")

    return settings


def clear_settings_cache() -> None:
    """Clear the cached settings (useful for testing)."""
    get_settings.cache_clear()
