"""
VoiceNotes — Image Store
==========================

What:  Stores images attached to notes and hands back a retrievable URL.
Why:   Notes only keep an opaque `imageUrl` string; the bytes live on disk
       under STORAGE_ROOT and are served by GET /api/files/{path}.
How:   Checks the extension and size, writes the bytes under a
       date-organized directory with a UUID filename, returns the URL.
Who:   Called by POST /api/notes/upload and the file-serving route.

The store never decodes or inspects image content beyond those checks.
Swapping it for an object store means replacing store_image() and
resolve_path(); nothing else reads the files.

Security Model:
    1. Extension allow-list: rejects executables and documents up front
    2. Size limit: bounded memory per upload, empty files rejected
    3. UUID filename: no user input reaches the filesystem path
    4. resolve_path(): served paths must stay inside STORAGE_ROOT
"""

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles

from voicenotes.config import settings
from voicenotes.exceptions import FileStorageError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# Extension → media type used when serving the file back
MEDIA_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
}

ALLOWED_EXTENSIONS = set(MEDIA_TYPES)


class FileService:
    """
    Disk-backed image store.

    Directory Structure:
        storage/
        └── 2026/
            └── 10/
                └── 19/
                    ├── 3f2a...c1.png
                    └── 9b7e...04.jpg
    """

    def __init__(self, storage_root: Optional[str] = None, url_prefix: Optional[str] = None):
        """
        Args:
            storage_root: Override the default storage path (used in tests).
            url_prefix: Override the URL prefix files are served under.
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.url_prefix = (url_prefix or settings.files_url_prefix).rstrip("/")
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    def validate_extension(self, filename: str) -> str:
        """
        Returns: Normalized extension (lowercase with dot).
        Raises:  ValidationError if extension is not allowed.
        """
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext or 'none'}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="image",
                context={"extension": ext},
            )
        return ext

    def validate_size(self, actual_size: int, content_length: Optional[int] = None) -> None:
        """
        Reject empty uploads and anything above settings.max_file_size.

        Content-Length is checked as well as the real size because a client
        may announce one and send another.
        """
        max_mb = settings.max_file_size / (1024 * 1024)

        if actual_size == 0:
            raise ValidationError(message="Uploaded file is empty.", field="image")

        if max(actual_size, content_length or 0) > settings.max_file_size:
            raise ValidationError(
                message=f"File is too large. Maximum size is {max_mb:.0f}MB.",
                field="image",
                context={"actual_size": actual_size, "reported_size": content_length},
            )

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        """Returns (absolute_path, relative_path) for a new YYYY/MM/DD/<uuid><ext> file."""
        date_dir = datetime.now(timezone.utc).strftime("%Y/%m/%d")
        relative_path = f"{date_dir}/{uuid.uuid4()}{extension}"
        return self.storage_root / relative_path, relative_path

    async def store_file(self, content: bytes, extension: str) -> Tuple[str, str]:
        """
        Write content to disk.

        Returns: (absolute_path, relative_path)
        Raises:  FileStorageError if directory creation or the write fails.
        """
        absolute_path, relative_path = self._generate_storage_path(extension)

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": str(absolute_path), "os_error": str(e)},
            )

        logger.info("File stored: %s (%d bytes)", relative_path, len(content))
        return str(absolute_path), relative_path

    def url_for(self, relative_path: str) -> str:
        return f"{self.url_prefix}/{relative_path}"

    async def store_image(
        self,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> str:
        """
        Validate and store an uploaded image.

        Validation order (cheapest first):
            1. Extension check
            2. Size check
            3. Write to disk

        Returns:
            The URL the image can be fetched from (goes into Note.imageUrl).
        """
        ext = self.validate_extension(filename)
        self.validate_size(len(content), content_length)
        _, relative_path = await self.store_file(content, ext)
        return self.url_for(relative_path)

    def resolve_path(self, relative_path: str) -> Tuple[Path, str]:
        """
        Map a served path back to a file inside the storage root.

        Returns: (absolute_path, media_type)
        Raises:  NotFoundError for missing files and for paths that escape
                 the storage root (../ traversal looks the same as missing).
        """
        full_path = (self.storage_root / relative_path).resolve()
        if not full_path.is_relative_to(self.storage_root) or not full_path.is_file():
            raise NotFoundError(resource="file", resource_id=relative_path)

        media_type = MEDIA_TYPES.get(full_path.suffix.lower(), "application/octet-stream")
        return full_path, media_type


file_service = FileService()
