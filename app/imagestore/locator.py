"""Filesystem probing for an owner's image: canonical path, then legacy spots."""

from pathlib import Path

from loguru import logger

from app.imagestore.layout import StorageLayout
from app.imagestore.owner import Owner
from app.imagestore.paths import (
    InvalidFilenameError,
    build_path,
    build_thumbnail_path,
    fallback_candidates,
)


class ImageLocator:
    """Finds image files for an owner without ever leaving the uploads root."""

    def __init__(self, layout: StorageLayout):
        self.layout = layout

    def existing(self, relative_path: str) -> Path | None:
        """Absolute path if ``relative_path`` is a regular file inside the root."""
        try:
            path = self.layout.safe_join(relative_path)
            if path is not None and path.is_file():
                return path
        except OSError as e:
            logger.warning(f"Treating {relative_path} as absent: {e}")
        return None

    def canonical(self, owner: Owner, filename: str) -> Path | None:
        try:
            return self.existing(build_path(owner, filename))
        except InvalidFilenameError:
            return None

    def thumbnail(self, owner: Owner, filename: str) -> Path | None:
        try:
            return self.existing(build_thumbnail_path(owner, filename))
        except InvalidFilenameError:
            return None

    def find(self, owner: Owner, filename: str) -> Path | None:
        """Canonical file, else the first hit of the bounded fallback search."""
        try:
            relative_paths = [build_path(owner, filename), *fallback_candidates(owner, filename)]
        except InvalidFilenameError:
            return None

        for relative_path in relative_paths:
            path = self.existing(relative_path)
            if path is not None:
                return path
        return None
