"""Unit tests for LocalStorage backend."""
import asyncio
import io
from pathlib import Path

import pytest

from app.infrastructure.storage import LocalStorage, StorageConfig
from app.infrastructure.storage.base import CATEGORIES, FileNotFoundError as StorageFileNotFoundError


@pytest.fixture
def temp_storage(tmp_path: Path):
    """Create a temporary LocalStorage instance."""
    return LocalStorage(StorageConfig(backend="local", base_path=tmp_path))


@pytest.fixture
def run_async():
    """Helper to run async functions in sync context."""
    def _run(coro):
        return asyncio.run(coro)
    return _run


class TestLocalStorageUpload:
    """Test upload functionality."""

    def test_category_folders_created(self, temp_storage):
        for folder in CATEGORIES:
            assert (temp_storage.base_path / folder).is_dir()

    def test_upload_creates_file(self, temp_storage, run_async):
        """Upload should create file in the category folder."""
        content = b"%PDF-1.4 workbook"

        key = run_async(temp_storage.upload("workbook.pdf", content, "documents"))

        assert key == "documents/workbook.pdf"
        assert temp_storage.exists("workbook.pdf", "documents") is True
        assert run_async(temp_storage.download("workbook.pdf", "documents")) == content

    def test_upload_bytes_io(self, temp_storage, run_async):
        """Upload should accept file-like content."""
        run_async(temp_storage.upload("track.mp3", io.BytesIO(b"ID3 audio"), "audio"))

        assert run_async(temp_storage.download("track.mp3", "audio")) == b"ID3 audio"

    def test_path_traversal_is_stripped(self, temp_storage, run_async):
        run_async(temp_storage.upload("../../escape.jpg", b"data", "../images"))

        assert (temp_storage.base_path / "images" / "escape.jpg").is_file()
        assert not (temp_storage.base_path.parent / "escape.jpg").exists()


class TestLocalStorageReadDelete:

    def test_download_missing_raises(self, temp_storage, run_async):
        with pytest.raises(StorageFileNotFoundError):
            run_async(temp_storage.download("missing.png", "images"))

    def test_delete_existing(self, temp_storage, run_async):
        run_async(temp_storage.upload("cover.png", b"png", "images"))

        assert run_async(temp_storage.delete("cover.png", "images")) is True
        assert temp_storage.exists("cover.png", "images") is False

    def test_delete_missing_returns_false(self, temp_storage, run_async):
        assert run_async(temp_storage.delete("nothing.png", "images")) is False

    def test_get_url(self, temp_storage):
        assert temp_storage.get_url("abc.jpg", "images") == "/uploads/images/abc.jpg"

    def test_rejects_other_backend(self, tmp_path):
        with pytest.raises(ValueError):
            LocalStorage(StorageConfig(backend="s3", base_path=tmp_path))
