"""Local filesystem storage implementation."""
from pathlib import Path
from typing import BinaryIO, Optional, Union

import aiofiles

from .base import (
    CATEGORIES,
    StorageInterface,
    StorageConfig,
    FileNotFoundError as StorageFileNotFoundError,
    UploadError,
    DeleteError
)


class LocalStorage(StorageInterface):
    """Local filesystem storage backend.

    Stores files in directory structure:
        base_path/
            images/<file_id>
            videos/<file_id>
            documents/<file_id>
            audio/<file_id>
    """

    def __init__(self, config: StorageConfig):
        """Initialize local storage.

        Args:
            config: Storage configuration with base_path
        """
        if config.backend != "local":
            raise ValueError(f"LocalStorage requires backend='local', got '{config.backend}'")

        self.config = config
        self.base_path = Path(config.base_path)

        for folder in CATEGORIES:
            (self.base_path / folder).mkdir(parents=True, exist_ok=True)

    def _get_path(self, file_id: str, folder: str) -> Path:
        """Get full filesystem path for a file."""
        # Path(...).name strips any directory components (traversal)
        safe_folder = Path(folder).name
        safe_id = Path(file_id).name
        return self.base_path / safe_folder / safe_id

    async def upload(
        self,
        file_id: str,
        content: Union[bytes, BinaryIO],
        folder: str,
        content_type: Optional[str] = None
    ) -> str:
        """Write file to the local filesystem."""
        file_path = self._get_path(file_id, folder)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            async with aiofiles.open(file_path, "wb") as f:
                if isinstance(content, bytes):
                    await f.write(content)
                else:
                    while True:
                        chunk = content.read(64 * 1024)
                        if not chunk:
                            break
                        await f.write(chunk)
        except OSError as e:
            raise UploadError(f"Failed to upload {file_id}: {e}")

        return str(file_path.relative_to(self.base_path).as_posix())

    async def download(self, file_id: str, folder: str) -> bytes:
        file_path = self._get_path(file_id, folder)
        if not file_path.exists():
            raise StorageFileNotFoundError(f"File not found: {folder}/{file_id}")

        async with aiofiles.open(file_path, "rb") as f:
            return await f.read()

    async def delete(self, file_id: str, folder: str) -> bool:
        file_path = self._get_path(file_id, folder)
        if not file_path.exists():
            return False

        try:
            file_path.unlink()
            return True
        except OSError as e:
            raise DeleteError(f"Failed to delete {file_id}: {e}")

    def exists(self, file_id: str, folder: str) -> bool:
        file_path = self._get_path(file_id, folder)
        return file_path.is_file()

    def get_url(self, file_id: str, folder: str) -> str:
        """Public URL path served by the static mount."""
        prefix = self.config.public_url_prefix.rstrip("/")
        return f"{prefix}/{Path(folder).name}/{Path(file_id).name}"

    def get_path(self, file_id: str, folder: str) -> Path:
        return self._get_path(file_id, folder)
