"""Factory for creating storage backends."""
import os
from pathlib import Path
from typing import Optional

from ...config import UPLOADS_DIR

from .base import StorageConfig, StorageInterface
from .local_storage import LocalStorage


# Singleton instance
_storage_instance: Optional[StorageInterface] = None


def get_storage_config() -> StorageConfig:
    """Get storage configuration from environment variables.

    Environment variables:
    - STORAGE_BACKEND: 'local' (default)
    - STORAGE_BASE_PATH: Root directory for local storage (default: UPLOADS_DIR)
    """
    backend = os.environ.get("STORAGE_BACKEND", "local").lower()

    if backend != "local":
        raise ValueError(f"Unknown storage backend: {backend}")

    base_path = os.environ.get("STORAGE_BASE_PATH")
    return StorageConfig(
        backend="local",
        base_path=Path(base_path) if base_path else Path(UPLOADS_DIR)
    )


def get_storage_from_config(config: StorageConfig) -> StorageInterface:
    """Create storage backend from configuration."""
    if config.backend == "local":
        return LocalStorage(config)
    raise ValueError(f"Unknown storage backend: {config.backend}")


def get_storage() -> StorageInterface:
    """Get or create singleton storage instance.

    Returns:
        Storage backend instance
    """
    global _storage_instance

    if _storage_instance is None:
        _storage_instance = get_storage_from_config(get_storage_config())

    return _storage_instance


def reset_storage():
    """Reset storage singleton (useful for testing)."""
    global _storage_instance
    _storage_instance = None
