"""Upload service - validates and stores course assets.

Checks run in order: declared MIME type against the allow list, empty
file, per-category size limit, then magic bytes against both the MIME type
and the file extension. Accepted files are written to storage as
``{category}/{uuid}{ext}`` and recorded in ``uploaded_files``.
"""
import io
import logging
import uuid
from pathlib import Path
from typing import Optional, Tuple

from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError

from ...config import (
    ALLOWED_IMAGE_TYPES,
    ALLOWED_VIDEO_TYPES,
    ALLOWED_DOCUMENT_TYPES,
    ALLOWED_AUDIO_TYPES,
    MAX_IMAGE_SIZE_MB,
    MAX_VIDEO_SIZE_MB,
    MAX_DOCUMENT_SIZE_MB,
    MAX_AUDIO_SIZE_MB,
)
from ...errors import FileUploadError, FileTooLargeError, InvalidFileTypeError
from ...infrastructure.repositories import FileRepository
from ...infrastructure.services.file_validation import validate_file
from ...infrastructure.storage import get_storage, StorageInterface

logger = logging.getLogger(__name__)

ALLOWED_TYPES_MESSAGE = (
    "Allowed types: images (JPEG, PNG, WebP, GIF), videos (MP4, MOV), "
    "documents (PDF, ZIP, EPUB), audio (MP3, WAV)"
)

# category -> (MIME types, size limit in MB)
CATEGORY_RULES = {
    "images": (ALLOWED_IMAGE_TYPES, MAX_IMAGE_SIZE_MB),
    "videos": (ALLOWED_VIDEO_TYPES, MAX_VIDEO_SIZE_MB),
    "documents": (ALLOWED_DOCUMENT_TYPES, MAX_DOCUMENT_SIZE_MB),
    "audio": (ALLOWED_AUDIO_TYPES, MAX_AUDIO_SIZE_MB),
}

# Used when the client name carries no extension
DEFAULT_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
    "video/mp4": ".mp4",
    "video/quicktime": ".mov",
    "application/pdf": ".pdf",
    "application/zip": ".zip",
    "application/epub+zip": ".epub",
    "audio/mpeg": ".mp3",
    "audio/mp3": ".mp3",
    "audio/wav": ".wav",
}


def get_file_category(mime_type: str) -> Optional[str]:
    """Map a MIME type to its storage category (None if not allowed)."""
    for category, (types, _) in CATEGORY_RULES.items():
        if mime_type in types:
            return category
    return None


def get_max_size_mb(mime_type: str) -> int:
    category = get_file_category(mime_type)
    return CATEGORY_RULES[category][1] if category else MAX_IMAGE_SIZE_MB


def get_image_dimensions(content: bytes) -> Tuple[Optional[int], Optional[int]]:
    """Probe width and height with Pillow, (None, None) if unreadable."""
    try:
        with Image.open(io.BytesIO(content)) as img:
            return img.size
    except (UnidentifiedImageError, OSError) as e:
        logger.warning("Could not read image dimensions: %s", e)
        return None, None


class UploadService:
    """Service for handling file uploads.

    Responsibilities:
    - File validation (type, size, content signature)
    - Image dimension probing
    - Storage write and database record creation
    """

    def __init__(
        self,
        file_repository: FileRepository,
        storage: Optional[StorageInterface] = None
    ):
        self.file_repo = file_repository
        self.storage = storage or get_storage()

    async def upload(self, file: UploadFile, user_id: Optional[int] = None) -> dict:
        """Validate and store one uploaded file.

        Args:
            file: The uploaded file
            user_id: Uploading user ID

        Returns:
            Dict with id, url, filename, size, mimeType, category and,
            for images, width and height

        Raises:
            InvalidFileTypeError: MIME type not allowed
            FileTooLargeError: Over the category limit
            FileUploadError: Missing/empty file or content validation failure
        """
        if not file or not file.filename:
            raise FileUploadError("No file provided")

        mime_type = (file.content_type or "").lower()
        category = get_file_category(mime_type)
        if category is None:
            raise InvalidFileTypeError(ALLOWED_TYPES_MESSAGE, {"received": mime_type})

        content = await file.read()
        size = len(content)
        if size == 0:
            raise FileUploadError("File is empty")

        max_size = get_max_size_mb(mime_type)
        if size > max_size * 1024 * 1024:
            raise FileTooLargeError(
                f"Maximum file size for {category} is {max_size}MB",
                {"received": f"{size / (1024 * 1024):.2f}MB", "maxAllowed": f"{max_size}MB"}
            )

        validation = validate_file(content, mime_type, file.filename)
        if not validation.valid:
            logger.warning(
                "File validation failed",
                extra={
                    "user_id": user_id,
                    "upload_name": file.filename,
                    "claimed_type": mime_type,
                    "detected_type": validation.detected_type,
                }
            )
            raise FileUploadError(
                "The file content does not match the claimed file type",
                details=validation.errors,
                detected_type=validation.detected_type
            )

        ext = Path(file.filename).suffix.lower() or DEFAULT_EXTENSIONS.get(mime_type, "")
        file_id = str(uuid.uuid4())
        stored_name = f"{file_id}{ext}"

        width = height = None
        if category == "images":
            width, height = get_image_dimensions(content)

        storage_path = await self.storage.upload(stored_name, content, category, mime_type)

        try:
            self.file_repo.create(
                file_id=file_id,
                filename=stored_name,
                original_name=file.filename,
                mime_type=mime_type,
                size=size,
                category=category,
                storage_path=storage_path,
                uploaded_by=user_id,
                width=width,
                height=height
            )
        except Exception:
            # No row points at the stored file, remove it before re-raising
            await self.storage.delete(stored_name, category)
            raise

        logger.info(
            "File uploaded",
            extra={"user_id": user_id, "file_id": file_id, "category": category, "size": size}
        )

        result = {
            "id": file_id,
            "url": self.storage.get_url(stored_name, category),
            "filename": file.filename,
            "size": size,
            "mimeType": mime_type,
            "category": category,
        }
        if width and height:
            result["width"] = width
            result["height"] = height
        return result

