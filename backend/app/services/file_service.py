"""
IoT Tech Backend — Attachment Storage Service
===============================================

What:  Validates, stores, and deletes uploaded case study images.
How:   Checks extension, size, and the content type python-magic detects
       from the file header, writes the bytes under a generated filename in
       UPLOAD_DIR, and hands back the public reference `/uploads/<filename>`.
       The `/uploads` static mount in main.py serves the file back.
Who:   Called by CaseStudyRepository on create/update/delete.

Filename Rules:
    "Site Photo (final)!.JPG" → "SitePhotofinal-1731320000000-483920117.jpg"

    1. Original stem with every non-alphanumeric character removed
       (fallback "image", at most 50 characters)
    2. "-<epoch milliseconds>-<random 9 digits>" uniqueness suffix
    3. Lowercased, whitelisted extension

    No separator or dot from user input survives, so the name cannot escape
    UPLOAD_DIR, and two uploads of the same file never collide.

Deletion is best-effort: failures are logged and never raised, so a stale
file can never fail the request that replaced or removed it.
"""

import logging
import os
import re
import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import aiofiles
import magic

from app.config import settings
from app.exceptions import FileStorageError, ValidationError

logger = logging.getLogger(__name__)

# Public URL prefix of stored attachments (matches the static mount)
UPLOADS_PREFIX = "/uploads/"

# Content types detected from the file header, mapped to their canonical extension
ALLOWED_MIME_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9]")
_MAX_STEM_LENGTH = 50


@dataclass
class Attachment:
    """An uploaded image as received from the multipart request."""

    filename: str
    content: bytes


class FileService:
    """
    Attachment store backed by a local directory.

    Lifecycle of an uploaded image:
        1. Route reads the multipart part → repository calls validate_and_store()
        2. Extension, size, and magic-byte content checks
           (ValidationError → 400, nothing written)
        3. Bytes written to UPLOAD_DIR/<generated name>
        4. "/uploads/<generated name>" stored as the record's imageUrl
        5. On replacement or record deletion: delete_file(old reference)
    """

    def __init__(self, upload_dir: Optional[str] = None, max_file_size: Optional[int] = None):
        """
        Args:
            upload_dir: Override settings.upload_dir (used in tests).
            max_file_size: Override settings.max_file_size (used in tests).
        """
        self.upload_dir = Path(upload_dir or settings.upload_dir).resolve()
        self.max_file_size = max_file_size or settings.max_file_size
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with upload_dir=%s", self.upload_dir)

    def validate_extension(self, filename: str) -> str:
        """
        Returns:  Normalized extension (lowercase with dot).
        Raises:   ValidationError if the extension is not an allowed image type.
        """
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext or filename}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="image",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, size: int) -> None:
        """Rejects empty uploads and uploads above max_file_size."""
        max_mb = self.max_file_size / (1024 * 1024)

        if size == 0:
            raise ValidationError(
                message="Uploaded image is empty.",
                field="image",
                context={"actual_size": 0},
            )

        if size > self.max_file_size:
            raise ValidationError(
                message=f"Image size ({size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field="image",
                context={"max_size_mb": max_mb, "actual_size": size},
            )

    def validate_mime_type(self, content: bytes, filename: str) -> str:
        """
        Check the real content type from the file header (magic bytes).

        Catches renamed files: an HTML page uploaded as "photo.jpg" has an
        allowed extension but is detected as text/html here.

        Returns:  The detected MIME type.
        Raises:   ValidationError if the content is not an allowed image type.
        """
        mime_type = magic.from_buffer(content, mime=True)
        if mime_type not in ALLOWED_MIME_TYPES:
            logger.warning("Rejected upload %s: detected content type %s", filename, mime_type)
            raise ValidationError(
                message=(
                    f"File content type '{mime_type}' is not supported. "
                    f"Allowed types: {', '.join(ALLOWED_MIME_TYPES)}"
                ),
                field="image",
                context={"detected_mime": mime_type, "allowed": list(ALLOWED_MIME_TYPES)},
            )
        return mime_type

    def generate_filename(self, original_name: str, extension: str) -> str:
        stem = _UNSAFE_CHARS.sub("", Path(original_name).stem)[:_MAX_STEM_LENGTH] or "image"
        suffix = f"{int(time.time() * 1000)}-{secrets.randbelow(10**9):09d}"
        return f"{stem}-{suffix}{extension}"

    def reference_for(self, filename: str) -> str:
        return f"{UPLOADS_PREFIX}{filename}"

    def path_for_reference(self, reference: str) -> Optional[Path]:
        """
        Map "/uploads/<filename>" back to a path inside upload_dir.

        Returns None for references that are not ours (other prefixes, nested
        paths, anything resolving outside upload_dir).
        """
        if not reference or not reference.startswith(UPLOADS_PREFIX):
            return None
        name = reference[len(UPLOADS_PREFIX):]
        if not name or "/" in name or "\\" in name or name in {".", ".."}:
            return None
        path = (self.upload_dir / name).resolve()
        if path.parent != self.upload_dir:
            return None
        return path

    async def store_file(self, content: bytes, filename: str) -> str:
        """
        Write validated bytes to upload_dir/filename.

        Returns:  The public reference of the stored file.
        Raises:   FileStorageError if the directory or file cannot be written.
        """
        path = self.upload_dir / filename
        try:
            self.upload_dir.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": str(path), "os_error": str(e)},
            )

        logger.info("File stored: %s (%d bytes)", filename, len(content))
        return self.reference_for(filename)

    async def validate_and_store(self, filename: str, content: bytes) -> str:
        """
        Complete validation and storage pipeline for one upload.

        Returns:  "/uploads/<generated filename>"
        Raises:   ValidationError (nothing written) or FileStorageError.
        """
        ext = self.validate_extension(filename)
        self.validate_size(len(content))
        self.validate_mime_type(content, filename)
        return await self.store_file(content, self.generate_filename(filename, ext))

    async def delete_file(self, reference: Optional[str]) -> bool:
        """
        Best-effort removal of a stored attachment.

        Returns:  True if a file was removed; False for foreign references,
                  already-missing files, and OS errors (logged as warnings).
        """
        path = self.path_for_reference(reference) if reference else None
        if path is None:
            if reference:
                logger.debug("Not an upload reference, skipping delete: %s", reference)
            return False

        try:
            if path.exists():
                os.remove(path)
                logger.info("Deleted attachment: %s", path.name)
                return True
            logger.debug("Attachment already gone: %s", path.name)
        except OSError as e:
            logger.warning("Failed to delete attachment %s: %s", reference, str(e))
        return False


# Singleton instance
file_service = FileService()
