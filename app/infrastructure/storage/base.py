"""Abstract storage interface for uploaded course assets."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional, Union

# Asset categories; each maps to one storage folder
CATEGORIES = ("images", "videos", "documents", "audio")


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class FileNotFoundError(StorageError):
    """File not found in storage."""
    pass


class UploadError(StorageError):
    """Failed to write file."""
    pass


class DeleteError(StorageError):
    """Failed to delete file."""
    pass


@dataclass
class StorageConfig:
    """Storage configuration."""
    backend: str  # only 'local' is implemented
    base_path: Optional[Path] = None
    public_url_prefix: str = "/uploads"

    def __post_init__(self):
        if self.backend == "local" and self.base_path is None:
            from ...config import UPLOADS_DIR
            self.base_path = Path(UPLOADS_DIR)


class StorageInterface(ABC):
    """Abstract interface for file storage operations.

    Files are addressed by ``(file_id, folder)`` where folder is one of
    CATEGORIES.
    """

    @abstractmethod
    async def upload(
        self,
        file_id: str,
        content: Union[bytes, BinaryIO],
        folder: str,
        content_type: Optional[str] = None
    ) -> str:
        """Write a file.

        Args:
            file_id: Unique file name inside the folder
            content: File content as bytes or file-like object
            folder: Asset category folder
            content_type: MIME type of the file

        Returns:
            Storage key of the written file (folder/file_id)

        Raises:
            UploadError: If the write fails
        """

    @abstractmethod
    async def download(self, file_id: str, folder: str) -> bytes:
        """Read a file.

        Raises:
            FileNotFoundError: If the file doesn't exist
        """

    @abstractmethod
    async def delete(self, file_id: str, folder: str) -> bool:
        """Delete a file.

        Returns:
            True if deleted, False if it didn't exist
        """

    @abstractmethod
    def exists(self, file_id: str, folder: str) -> bool:
        """Check if a file exists."""

    @abstractmethod
    def get_url(self, file_id: str, folder: str) -> str:
        """Public URL of a stored file."""

    @abstractmethod
    def get_path(self, file_id: str, folder: str) -> Union[str, Path]:
        """Backend-specific location of a file."""
