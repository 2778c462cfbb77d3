"""
Upload Store
============

Writes accepted images to the uploads directory under random names.

Design Rules:
    - Only PNG, JPEG and WEBP are accepted, identified by content type
    - Files are named <uuid4><ext>; names are never derived from input
    - The directory is created on first write
"""

import logging
import uuid
from pathlib import Path
from typing import Optional

from capturecam.config import StorageConfig
from capturecam.models.storage import StoredImage


logger = logging.getLogger(__name__)


ALLOWED_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/webp": ".webp",
}


class UploadValidationError(Exception):
    """Raised when an upload is missing, of the wrong type, or too large."""
    pass


class UploadStore:
    """
    Filesystem store for uploaded images.

    Attributes:
        config: Directory, public URL prefix and size limit
    """

    def __init__(self, config: Optional[StorageConfig] = None) -> None:
        self.config = config or StorageConfig()
        self.directory = Path(self.config.uploads_dir)
        self._saved_count = 0

    def validate(self, data: Optional[bytes], content_type: Optional[str]) -> str:
        """
        Check an upload against the allowed types and size limit.

        Returns:
            File extension for the content type

        Raises:
            UploadValidationError: With a user-facing message
        """
        if not data:
            raise UploadValidationError("No image file provided. Send as 'image' field.")

        media_type = (content_type or "").split(";")[0].strip().lower()
        ext = ALLOWED_TYPES.get(media_type)
        if ext is None:
            raise UploadValidationError(
                f"Unsupported file type: {content_type}. "
                f"Allowed: {', '.join(ALLOWED_TYPES)}"
            )

        limit = self.config.max_upload_bytes
        if len(data) > limit:
            raise UploadValidationError(
                f"File too large ({len(data) / 1024 / 1024:.1f} MB). "
                f"Max: {limit / 1024 / 1024:g} MB."
            )

        return ext

    def save(self, data: bytes, content_type: str) -> StoredImage:
        """
        Validate and write one image.

        Raises:
            UploadValidationError: If the upload is rejected
            OSError: If the file cannot be written
        """
        ext = self.validate(data, content_type)

        self.directory.mkdir(parents=True, exist_ok=True)
        filename = f"{uuid.uuid4()}{ext}"
        (self.directory / filename).write_bytes(data)

        self._saved_count += 1
        logger.info(f"Stored upload {filename} ({len(data)} bytes)")

        return StoredImage(
            filename=filename,
            url=f"{self.config.url_prefix.rstrip('/')}/{filename}",
            size=len(data),
            type=content_type.split(";")[0].strip().lower(),
        )

    @property
    def saved_count(self) -> int:
        return self._saved_count
