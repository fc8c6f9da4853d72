"""
Configuration file loading.

The dashboard reads a YAML file shaped like::

    storage:
      backend: remote
      sqlite_db_path: data/resale-dashboard.db
    remote:
      url: https://example.supabase.co
      api_key: ...
    reporting:
      platform_fee_rate: 0.10
      slow_moving_days: 60

The file may be plain YAML or SOPS-encrypted (it then carries a top-level
``sops`` metadata block and is decrypted with the ``sops`` binary).
Environment variables override individual keys.
"""

import logging
import os
import subprocess
from pathlib import Path
from typing import Any, Callable, Optional

import yaml

logger = logging.getLogger(__name__)

# (section, key) -> (environment variable, parser)
ENV_KEYS: dict[tuple[str, str], tuple[str, Callable[[str], Any]]] = {
    ("storage", "backend"): ("STORAGE_BACKEND", str),
    ("storage", "sqlite_db_path"): ("SQLITE_DB_PATH", str),
    ("remote", "url"): ("REMOTE_URL", str),
    ("remote", "api_key"): ("REMOTE_API_KEY", str),
    ("reporting", "platform_fee_rate"): ("REPORTING_PLATFORM_FEE_RATE", float),
    ("reporting", "slow_moving_days"): ("REPORTING_SLOW_MOVING_DAYS", int),
    ("reporting", "slow_moving_limit"): ("REPORTING_SLOW_MOVING_LIMIT", int),
    ("reporting", "top_n_limit"): ("REPORTING_TOP_N_LIMIT", int),
}


def is_sops_encrypted(document: Any) -> bool:
    """True when a parsed YAML document carries SOPS metadata."""
    return isinstance(document, dict) and "sops" in document


def _decrypt(file_path: Path) -> str:
    try:
        result = subprocess.run(
            ["sops", "-d", str(file_path)],
            capture_output=True,
            text=True,
            check=True,
        )
    except subprocess.CalledProcessError as e:
        raise RuntimeError(f"SOPS decryption failed: {e.stderr}") from e
    except FileNotFoundError as e:
        raise RuntimeError(
            f"{file_path} is SOPS-encrypted but the sops binary is not installed"
        ) from e
    return result.stdout


def read_config_file(file_path: Path) -> dict[str, Any]:
    """
    Read a plain or SOPS-encrypted YAML configuration file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        RuntimeError: If the file is not valid YAML or cannot be decrypted
    """
    if not file_path.exists():
        raise FileNotFoundError(f"Config file not found: {file_path}")

    try:
        document = yaml.safe_load(file_path.read_text(encoding="utf-8"))
        if is_sops_encrypted(document):
            document = yaml.safe_load(_decrypt(file_path))
    except yaml.YAMLError as e:
        raise RuntimeError(f"{file_path} is not valid YAML: {e}") from e

    if document is None:
        return {}
    if not isinstance(document, dict):
        raise RuntimeError(f"{file_path} must contain a mapping at the top level")

    document.pop("sops", None)
    return document


def env_overrides(environ: Optional[dict[str, str]] = None) -> dict[str, Any]:
    """
    Collect configuration values set through environment variables.

    Only variables that are present appear in the result. Values that
    fail to parse are logged and ignored.
    """
    environ = os.environ if environ is None else environ
    config: dict[str, Any] = {}

    for (section, key), (var, parse) in ENV_KEYS.items():
        raw = environ.get(var)
        if raw is None:
            continue
        try:
            value = parse(raw)
        except ValueError:
            logger.warning(f"Ignoring {var}={raw!r}: expected {parse.__name__}")
            continue
        config.setdefault(section, {})[key] = value

    return config


def merge_config(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Merge two section-keyed configs; override values win."""
    merged = {section: dict(values) for section, values in base.items()}
    for section, values in overrides.items():
        if isinstance(values, dict) and isinstance(merged.get(section), dict):
            merged[section].update(values)
        else:
            merged[section] = values
    return merged


def load_config(
    path: Optional[Path] = None,
    use_env: bool = True,
) -> dict[str, Any]:
    """
    Load configuration from an optional file plus environment overrides.

    An unreadable file is logged and skipped so that environment-only
    setups keep working.
    """
    config: dict[str, Any] = {}

    if path is not None and path.exists():
        try:
            config = read_config_file(path)
        except RuntimeError as e:
            logger.warning(f"Failed to load config from {path}: {e}")

    if use_env:
        config = merge_config(config, env_overrides())

    return config


def check_sops_installed() -> bool:
    """Check if SOPS is installed and accessible."""
    try:
        subprocess.run(["sops", "--version"], capture_output=True, check=True)
        return True
    except (subprocess.CalledProcessError, FileNotFoundError):
        return False
