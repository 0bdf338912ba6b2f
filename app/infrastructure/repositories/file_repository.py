"""Uploaded file repository - records of files written to storage."""
from typing import Optional

from .base import Repository


class FileRepository(Repository):
    """Repository for ``uploaded_files`` rows."""

    def create(
        self,
        file_id: str,
        filename: str,
        original_name: str,
        mime_type: str,
        size: int,
        category: str,
        storage_path: str,
        uploaded_by: Optional[int] = None,
        width: Optional[int] = None,
        height: Optional[int] = None
    ) -> dict:
        """Record an uploaded file.

        Args:
            file_id: UUID assigned at upload
            filename: Stored name ({uuid}{ext})
            original_name: Client-supplied file name
            mime_type: Validated MIME type
            size: Size in bytes
            category: images, videos, documents or audio
            storage_path: Path relative to the storage root
            uploaded_by: Uploading user ID
            width: Image width in pixels (images only)
            height: Image height in pixels (images only)

        Returns:
            The stored row
        """
        self._execute(
            """INSERT INTO uploaded_files
               (id, filename, original_name, mime_type, size, category,
                storage_path, width, height, uploaded_by)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (file_id, filename, original_name, mime_type, size, category,
             storage_path, width, height, uploaded_by)
        )
        self._commit()
        return self.get_by_id(file_id)

    def get_by_id(self, file_id: str) -> dict | None:
        return self._fetchone("SELECT * FROM uploaded_files WHERE id = ?", (file_id,))
