"""
Blogged Backend — Image Upload Storage
=======================================

What:  Validates uploaded images and writes them under the storage root.
How:   Extension, declared content-type and the type python-magic detects
       from the bytes must all name the same supported image format. Empty
       and oversize files are rejected. Accepted files are written with
       aiofiles to a date-organized path with a UUID name.
Who:   Called by routes/upload.py. The storage root is served read-only at
       UPLOADS_URL_PATH by the StaticFiles mount in main.py.

Directory Structure:
    uploads/
    └── 2026/
        └── 10/
            └── 17/
                ├── 0b9f...e1.png
                └── 7c41...9a.jpg

    The stored name never contains client input, so a crafted filename
    cannot escape the storage root.
"""

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
import magic

from blogged.config import settings
from blogged.exceptions import FileStorageError, ValidationError

logger = logging.getLogger(__name__)

# Declared or detected content type → extensions it may arrive with
ALLOWED_CONTENT_TYPES = {
    "image/png": {".png"},
    "image/jpeg": {".jpg", ".jpeg"},
    "image/jpg": {".jpg", ".jpeg"},
    "image/gif": {".gif"},
    "image/webp": {".webp"},
}

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}


class FileService:
    """
    Upload lifecycle:
        1. Extension check
        2. Content-type check against the extension
        3. Size check (empty or above MAX_FILE_SIZE)
        4. Detected type (magic bytes) against the extension
        5. Write to YYYY/MM/DD/<uuid><ext>
        6. Return the public URL path
    """

    def __init__(self, storage_root: Optional[str] = None, url_prefix: Optional[str] = None):
        """
        Args:
            storage_root: overrides settings.storage_root (tests use a tmp dir)
            url_prefix:   overrides settings.uploads_url_path
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.url_prefix = (url_prefix or settings.uploads_url_path).rstrip("/")

    def validate_extension(self, filename: Optional[str]) -> str:
        """Returns the lower-cased extension, dot included."""
        ext = Path(filename or "").suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext or 'none'}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="file",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_content_type(self, content_type: Optional[str], extension: str) -> None:
        """
        The declared type must be a supported image type matching the
        extension. Parameters such as `; charset=` are ignored.
        """
        declared = (content_type or "").split(";")[0].strip().lower()
        extensions = ALLOWED_CONTENT_TYPES.get(declared)
        if extensions is None or extension not in extensions:
            raise ValidationError(
                message="Only image uploads are allowed (PNG, JPEG, GIF or WebP).",
                field="file",
                context={"content_type": declared, "extension": extension},
            )

    def validate_size(self, size: int) -> None:
        if size == 0:
            raise ValidationError(message="Uploaded file is empty.", field="file")

        if size > settings.max_file_size:
            max_mb = settings.max_file_size / (1024 * 1024)
            raise ValidationError(
                message=f"File size ({size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field="file",
                context={"max_size": settings.max_file_size, "actual_size": size},
            )

    def validate_detected_type(self, content: bytes, extension: str) -> str:
        """
        Inspect the file header with libmagic; a renamed text file or script
        is rejected even when the client declares an image type.

        Returns:
            Detected MIME type, e.g. "image/png"

        Raises:
            ValidationError: bytes are not an image matching the extension
            FileStorageError: libmagic could not inspect the buffer
        """
        try:
            detected = magic.from_buffer(content, mime=True)
        except magic.MagicException as e:
            logger.error("MIME type detection failed: %s", str(e))
            raise FileStorageError(
                message="Could not verify file type. Please try again.",
                context={"error": str(e)},
            )

        extensions = ALLOWED_CONTENT_TYPES.get(detected)
        if extensions is None or extension not in extensions:
            logger.info("Rejected upload: detected %s for extension %s", detected, extension)
            raise ValidationError(
                message="File content is not a valid image of the declared type.",
                field="file",
                context={"detected_type": detected, "extension": extension},
            )
        return detected

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        """Returns (absolute path, path relative to the storage root)."""
        date_dir = datetime.now(timezone.utc).strftime("%Y/%m/%d")
        relative_path = f"{date_dir}/{uuid.uuid4().hex}{extension}"
        return self.storage_root / relative_path, relative_path

    async def store_file(self, content: bytes, extension: str) -> str:
        """
        Write bytes to a fresh path and return it relative to the root.

        Raises:
            FileStorageError: the directory or file could not be written
        """
        absolute_path, relative_path = self._generate_storage_path(extension)
        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store upload at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save the uploaded image. Please try again.",
                context={"path": str(absolute_path), "os_error": str(e)},
            )

        logger.info("Stored upload %s (%d bytes)", relative_path, len(content))
        return relative_path

    def public_url(self, relative_path: str) -> str:
        return f"{self.url_prefix}/{relative_path}"

    async def save_image(
        self,
        filename: Optional[str],
        content_type: Optional[str],
        content: bytes,
    ) -> str:
        """
        Validate and store an uploaded image.

        Returns:
            URL path under which the stored file is served
        """
        ext = self.validate_extension(filename)
        self.validate_content_type(content_type, ext)
        self.validate_size(len(content))
        self.validate_detected_type(content, ext)
        relative_path = await self.store_file(content, ext)
        return self.public_url(relative_path)


file_service = FileService()
