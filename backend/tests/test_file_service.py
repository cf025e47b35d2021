"""
IoT Tech Backend — File Service Unit Tests
============================================

What:  Tests for FileService validation, naming, storage, and deletion.
How:   Real files in a temporary upload directory; OS failures are patched in
       with unittest.mock.

Test Strategy:
    ✅ Allowed extensions (.jpg, .jpeg, .png, .gif, .webp), case-insensitive
    ✅ Rejected extensions (.pdf, .exe, none)
    ✅ Size limits (empty, at limit, over limit)
    ✅ Content type detected from header bytes; renamed non-images rejected
    ✅ Generated filenames are sanitized and unique
    ✅ References outside UPLOAD_DIR are never deleted
"""

import re
from unittest.mock import patch

import pytest

from app.exceptions import FileStorageError, ValidationError
from app.services.file_service import FileService


class TestFileValidation:
    """Tests for upload validation in FileService."""

    @pytest.fixture(autouse=True)
    def _service(self, tmp_path):
        self.service = FileService(upload_dir=str(tmp_path / "uploads"), max_file_size=2048)

    # ── Extension Validation ──────────────────────────────────────────────

    @pytest.mark.parametrize("name", ["a.jpg", "a.jpeg", "a.png", "a.gif", "a.webp"])
    def test_validate_extension_allowed(self, name):
        assert self.service.validate_extension(name) == name[name.rindex("."):]

    def test_validate_extension_uppercase(self):
        """Extension check should be case-insensitive and normalized."""
        assert self.service.validate_extension("photo.JPG") == ".jpg"
        assert self.service.validate_extension("photo.WebP") == ".webp"

    @pytest.mark.parametrize("name", ["document.pdf", "malware.exe", "noextension"])
    def test_validate_extension_rejected(self, name):
        with pytest.raises(ValidationError, match="not supported") as exc_info:
            self.service.validate_extension(name)
        assert exc_info.value.field == "image"

    # ── Size Validation ───────────────────────────────────────────────────

    def test_validate_size_at_limit(self):
        """Files exactly at the limit should pass."""
        self.service.validate_size(2048)

    def test_validate_size_over_limit(self):
        with pytest.raises(ValidationError, match="exceeds maximum"):
            self.service.validate_size(2049)

    def test_validate_size_empty_file(self):
        with pytest.raises(ValidationError, match="empty"):
            self.service.validate_size(0)


class TestContentType:
    """Content is checked from its header bytes, not from the filename."""

    @pytest.fixture(autouse=True)
    def _service(self, tmp_path):
        self.upload_dir = tmp_path / "uploads"
        self.service = FileService(upload_dir=str(self.upload_dir))

    def test_jpeg_header_detected(self, sample_image_bytes):
        assert self.service.validate_mime_type(sample_image_bytes, "photo.jpg") == "image/jpeg"

    def test_gif_header_detected(self):
        gif = b"GIF89a\x01\x00\x01\x00\x80\x00\x00\x00\x00\x00\xff\xff\xff!\xf9\x04\x01\x00\x00\x00\x00,\x00\x00\x00\x00\x01\x00\x01\x00\x00\x02\x02D\x01\x00;"
        assert self.service.validate_mime_type(gif, "pixel.gif") == "image/gif"

    def test_renamed_html_rejected(self):
        with pytest.raises(ValidationError, match="content type") as exc_info:
            self.service.validate_mime_type(
                b"<html><body><script>alert(1)</script></body></html>", "evil.jpg"
            )
        assert exc_info.value.context["detected_mime"] == "text/html"

    @pytest.mark.asyncio
    async def test_renamed_text_not_stored(self):
        with pytest.raises(ValidationError, match="content type"):
            await self.service.validate_and_store("notes.png", b"plain text, not a picture\n" * 4)
        assert list(self.upload_dir.iterdir()) == []


class TestFilenames:
    """Generated names keep a sanitized stem and never collide."""

    @pytest.fixture(autouse=True)
    def _service(self, tmp_path):
        self.service = FileService(upload_dir=str(tmp_path / "uploads"))

    def test_generate_filename_strips_unsafe_characters(self):
        name = self.service.generate_filename("../Site Photo (final)!.JPG", ".jpg")
        assert re.fullmatch(r"SitePhotofinal-\d+-\d{9}\.jpg", name)

    def test_generate_filename_fallback_stem(self):
        name = self.service.generate_filename("!!!.png", ".png")
        assert name.startswith("image-")

    def test_generate_filename_truncates_long_stem(self):
        name = self.service.generate_filename("a" * 200 + ".gif", ".gif")
        assert name.split("-")[0] == "a" * 50

    def test_generate_filename_unique(self):
        names = {self.service.generate_filename("same.jpg", ".jpg") for _ in range(50)}
        assert len(names) == 50

    def test_path_for_reference_rejects_foreign_paths(self):
        assert self.service.path_for_reference("/images/light.jpg") is None
        assert self.service.path_for_reference("/uploads/../config.py") is None
        assert self.service.path_for_reference("/uploads/nested/a.jpg") is None
        assert self.service.path_for_reference("/uploads/") is None


class TestStorage:
    """store → reference → delete, against a real directory."""

    @pytest.fixture(autouse=True)
    def _service(self, tmp_path):
        self.upload_dir = tmp_path / "uploads"
        self.service = FileService(upload_dir=str(self.upload_dir))

    @pytest.mark.asyncio
    async def test_validate_and_store_writes_file(self, sample_image_bytes):
        reference = await self.service.validate_and_store("Plant Floor.jpg", sample_image_bytes)

        assert reference.startswith("/uploads/PlantFloor-")
        stored = self.upload_dir / reference.rsplit("/", 1)[1]
        assert stored.read_bytes() == sample_image_bytes

    @pytest.mark.asyncio
    async def test_validate_and_store_rejects_without_writing(self):
        with pytest.raises(ValidationError):
            await self.service.validate_and_store("notes.txt", b"hello")
        assert list(self.upload_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_delete_file_removes_file(self, sample_image_bytes):
        reference = await self.service.validate_and_store("a.png", sample_image_bytes)

        assert await self.service.delete_file(reference) is True
        assert list(self.upload_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_delete_file_missing_is_not_an_error(self):
        assert await self.service.delete_file("/uploads/gone-1-000000001.jpg") is False

    @pytest.mark.asyncio
    async def test_delete_file_ignores_foreign_reference(self, tmp_path):
        outside = tmp_path / "keep.jpg"
        outside.write_bytes(b"keep")

        assert await self.service.delete_file("/uploads/../keep.jpg") is False
        assert await self.service.delete_file(None) is False
        assert outside.exists()

    @pytest.mark.asyncio
    async def test_delete_file_os_error_is_swallowed(self, sample_image_bytes):
        """A file that cannot be removed is logged, never raised."""
        reference = await self.service.validate_and_store("locked.jpg", sample_image_bytes)

        with patch("app.services.file_service.os.remove", side_effect=PermissionError("denied")):
            assert await self.service.delete_file(reference) is False

    @pytest.mark.asyncio
    async def test_store_file_os_error_raises_storage_error(self, sample_image_bytes):
        with patch("app.services.file_service.aiofiles.open", side_effect=OSError("disk full")):
            with pytest.raises(FileStorageError):
                await self.service.validate_and_store("a.jpg", sample_image_bytes)
