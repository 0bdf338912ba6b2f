"""Storage abstraction layer for uploaded course assets."""
from .base import (
    CATEGORIES,
    StorageInterface,
    StorageError,
    FileNotFoundError,
    StorageConfig,
    UploadError,
    DeleteError,
)
from .local_storage import LocalStorage
from .factory import get_storage, get_storage_from_config, reset_storage

__all__ = [
    "CATEGORIES",
    "StorageInterface",
    "StorageError",
    "FileNotFoundError",
    "StorageConfig",
    "UploadError",
    "DeleteError",
    "LocalStorage",
    "get_storage",
    "get_storage_from_config",
    "reset_storage",
]
