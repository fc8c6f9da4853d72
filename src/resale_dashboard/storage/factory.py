"""
Storage backend factory.

Backends are imported on first use so that the SQLite path never needs
httpx configured and the remote path never touches the filesystem.
"""

import importlib
import logging
from pathlib import Path
from typing import Any, Optional

from .base import StorageBackend, StorageError

logger = logging.getLogger(__name__)

# backend name -> "module:ClassName" inside this package
_BUILTIN_BACKENDS = {
    "sqlite": "sqlite_backend:SQLiteBackend",
    "remote": "remote_backend:RemoteBackend",
}

_registry: dict[str, type[StorageBackend]] = {}


def register_backend(backend_type: str, backend_class: type[StorageBackend]) -> None:
    """Make a StorageBackend implementation available under a name."""
    _registry[backend_type.lower()] = backend_class
    logger.debug(f"Registered storage backend: {backend_type}")


def _resolve(backend_type: str) -> Optional[type[StorageBackend]]:
    if backend_type in _registry:
        return _registry[backend_type]

    target = _BUILTIN_BACKENDS.get(backend_type)
    if target is None:
        return None

    module_name, class_name = target.split(":")
    module = importlib.import_module(f".{module_name}", __package__)
    register_backend(backend_type, getattr(module, class_name))
    return _registry[backend_type]


def settings_kwargs(backend_type: str, settings=None) -> dict[str, Any]:
    """Constructor arguments for a backend taken from application settings."""
    if settings is None:
        from ..config.settings import get_settings

        settings = get_settings()

    if backend_type == "sqlite":
        return {"db_path": Path(settings.sqlite_db_path)}
    if backend_type == "remote":
        return {"url": settings.remote_url, "api_key": settings.remote_api_key}
    return {}


def get_backend(backend_type: Optional[str] = None, **kwargs) -> StorageBackend:
    """
    Create a storage backend.

    Args:
        backend_type: 'sqlite' or 'remote'. Defaults to storage.backend
            from settings.
        **kwargs: Constructor arguments (db_path for SQLite; url and
            api_key for remote). Arguments left as None are filled in
            from settings.

    Raises:
        StorageError: If the backend is unknown or cannot be constructed.

    Example:
        backend = get_backend("sqlite", db_path="data/resale.db")
    """
    if backend_type is None:
        from ..config.settings import get_settings

        backend_type = get_settings().storage_backend

    backend_type = backend_type.lower()
    backend_class = _resolve(backend_type)
    if backend_class is None:
        known = sorted(set(_registry) | set(_BUILTIN_BACKENDS))
        raise StorageError(
            f"Unknown storage backend: '{backend_type}'. "
            f"Available backends: {', '.join(known)}"
        )

    explicit = {k: v for k, v in kwargs.items() if v is not None}
    if backend_type in _BUILTIN_BACKENDS:
        missing = {
            k: v
            for k, v in settings_kwargs(backend_type).items()
            if k not in explicit
        }
        explicit = {**missing, **explicit}

    try:
        backend = backend_class(**explicit)
    except Exception as e:
        raise StorageError(f"Failed to create {backend_type} backend: {e}") from e

    logger.info(f"Created {backend_type} storage backend")
    return backend


def list_available_backends() -> list[str]:
    """Names of every backend that can be created."""
    for backend_type in _BUILTIN_BACKENDS:
        _resolve(backend_type)
    return list(_registry)


def is_backend_available(backend_type: str) -> bool:
    """True when get_backend() knows the given backend name."""
    return _resolve(backend_type.lower()) is not None
