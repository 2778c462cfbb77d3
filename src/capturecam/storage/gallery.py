"""
Gallery
=======

Lists stored images, newest first.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from capturecam.config import StorageConfig
from capturecam.models.storage import GalleryImage


logger = logging.getLogger(__name__)


IMAGE_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".webp"})


class Gallery:
    """Read-only view over the uploads directory."""

    def __init__(self, config: Optional[StorageConfig] = None) -> None:
        self.config = config or StorageConfig()
        self.directory = Path(self.config.uploads_dir)

    def list(self) -> List[GalleryImage]:
        """
        Image files in the uploads directory, newest first.

        A missing directory is an empty gallery.
        """
        if not self.directory.is_dir():
            return []

        prefix = self.config.url_prefix.rstrip("/")
        images = []
        for path in self.directory.iterdir():
            if path.suffix.lower() not in IMAGE_EXTENSIONS or not path.is_file():
                continue

            info = path.stat()
            created = getattr(info, "st_birthtime", info.st_mtime)
            images.append(
                GalleryImage(
                    filename=path.name,
                    url=f"{prefix}/{path.name}",
                    size=info.st_size,
                    created_at=datetime.fromtimestamp(created, tz=timezone.utc),
                )
            )

        images.sort(key=lambda image: (image.created_at, image.filename), reverse=True)
        logger.debug(f"Gallery listed {len(images)} images")
        return images
