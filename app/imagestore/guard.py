"""Request-time guard for files under the uploads root."""

import posixpath
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import unquote

from loguru import logger

from app.imagestore.layout import PlaceholderVariant
from app.imagestore.locator import ImageLocator
from app.imagestore.owner import Owner
from app.imagestore.paths import (
    is_image_filename,
    parse_owner_from_path,
    parse_owner_from_thumbnail_path,
)


@dataclass(frozen=True)
class ServeFile:
    path: Path


@dataclass(frozen=True)
class ServePlaceholder:
    variant: PlaceholderVariant = PlaceholderVariant.DEFAULT


@dataclass(frozen=True)
class RejectRequest:
    reason: str


GuardDecision = ServeFile | ServePlaceholder | RejectRequest


def normalize_request_path(raw_path: str) -> str | None:
    """Path relative to the uploads root, or None if it escapes the root."""
    path = unquote(raw_path).replace("\\", "/")
    if "\x00" in path:
        return None
    if path.startswith("/uploads/"):
        path = path[len("/uploads/"):]
    elif path.startswith("uploads/"):
        path = path[len("uploads/"):]
    path = path.lstrip("/")
    if not path:
        return None
    normalized = posixpath.normpath(path)
    if normalized == "." or normalized == ".." or normalized.startswith("../"):
        return None
    return normalized


class PathSecurityGuard:
    """Decides what, if anything, to stream back for an uploads request.

    Traversal is the only hard failure. Everything else resolves to a real
    file (canonical, legacy, or verbatim) or to the placeholder.
    """

    def __init__(self, locator: ImageLocator):
        self.locator = locator

    def evaluate(self, raw_path: str, owner_hint: Owner | None = None) -> GuardDecision:
        relative = normalize_request_path(raw_path)
        if relative is None or self.locator.layout.safe_join(relative) is None:
            logger.warning(f"Rejected upload path outside the uploads root: {raw_path!r}")
            return RejectRequest("path escapes the uploads root")

        filename = relative.rsplit("/", 1)[-1]

        # Already canonical: serve it, or search the legacy spots of that owner
        owner = parse_owner_from_path(relative)
        if owner is not None:
            path = self.locator.find(owner, filename)
            return ServeFile(path) if path is not None else ServePlaceholder()

        thumbnail_owner = parse_owner_from_thumbnail_path(relative)
        if thumbnail_owner is not None:
            path = self.locator.existing(relative)
            return ServeFile(path) if path is not None else ServePlaceholder()

        if owner_hint is not None and is_image_filename(filename):
            path = self.locator.find(owner_hint, filename)
            if path is not None:
                logger.info(f"Upgraded legacy request {relative} to {owner_hint}")
                return ServeFile(path)

        # Last resort: the raw path if it exists verbatim under the root
        path = self.locator.existing(relative)
        if path is not None:
            logger.warning(f"Serving non-canonical upload path: {relative}")
            return ServeFile(path)

        return ServePlaceholder()
