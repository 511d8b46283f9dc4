"""Canonical upload layout: path building and parsing.

Layout under the uploads root::

    stores/{storeId}/{filename}
    stores/{storeId}/thumbnails/{filename}
    stores/{storeId}/products/{productId}/{filename}
    stores/{storeId}/products/{productId}/thumbnails/{filename}

Every function here is pure string manipulation; nothing touches the disk.
"""

import posixpath
from urllib.parse import urlsplit

from app.imagestore.owner import Owner, ProductOwner, StoreOwner

UPLOADS_URL_PREFIX = "/uploads/"
STORES_DIR = "stores"
PRODUCTS_DIR = "products"
THUMBNAILS_DIR = "thumbnails"
LEGACY_ORIGINALS_DIR = "originals"

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg")

# References that can never be dereferenced on the server
_TRANSIENT_SCHEMES = ("blob:", "data:")


class InvalidFilenameError(ValueError):
    """Raised when a filename carries directory components or traversal."""


def validate_filename(filename: str) -> str:
    """Return the filename unchanged, or raise if it is not a bare base name."""
    if not filename or not filename.strip():
        raise InvalidFilenameError("Filename is empty")
    if "/" in filename or "\\" in filename:
        raise InvalidFilenameError(f"Filename contains a path separator: {filename!r}")
    if ".." in filename:
        raise InvalidFilenameError(f"Filename contains '..': {filename!r}")
    if "\x00" in filename:
        raise InvalidFilenameError("Filename contains a NUL byte")
    return filename


def owner_directory(owner: Owner) -> str:
    """Relative directory holding an owner's originals."""
    if isinstance(owner, ProductOwner):
        return f"{STORES_DIR}/{owner.store_id}/{PRODUCTS_DIR}/{owner.product_id}"
    return f"{STORES_DIR}/{owner.store_id}"


def build_path(owner: Owner, filename: str) -> str:
    """Canonical relative path of an owner's image."""
    return f"{owner_directory(owner)}/{validate_filename(filename)}"


def build_thumbnail_path(owner: Owner, filename: str) -> str:
    """Canonical relative path of an owner's thumbnail."""
    return f"{owner_directory(owner)}/{THUMBNAILS_DIR}/{validate_filename(filename)}"


def _parse_id(segment: str) -> int | None:
    if not segment.isdigit():
        return None
    return int(segment)


def _parse_owner_dir(segments: list[str]) -> Owner | None:
    """Parse the directory part (without the filename) of a canonical path."""
    if len(segments) == 2 and segments[0] == STORES_DIR:
        store_id = _parse_id(segments[1])
        return StoreOwner(store_id) if store_id is not None else None

    if len(segments) == 4 and segments[0] == STORES_DIR and segments[2] == PRODUCTS_DIR:
        store_id = _parse_id(segments[1])
        product_id = _parse_id(segments[3])
        if store_id is None or product_id is None:
            return None
        return ProductOwner(store_id, product_id)

    return None


def _split(relative_path: str) -> list[str] | None:
    if not relative_path:
        return None
    segments = relative_path.split("/")
    if any(not s for s in segments):
        return None
    try:
        validate_filename(segments[-1])
    except InvalidFilenameError:
        return None
    return segments


def parse_owner_from_path(relative_path: str) -> Owner | None:
    """Inverse of build_path; anything but the two canonical shapes is None."""
    segments = _split(relative_path)
    if segments is None:
        return None
    return _parse_owner_dir(segments[:-1])


def parse_owner_from_thumbnail_path(relative_path: str) -> Owner | None:
    """Inverse of build_thumbnail_path."""
    segments = _split(relative_path)
    if segments is None or len(segments) < 2 or segments[-2] != THUMBNAILS_DIR:
        return None
    return _parse_owner_dir(segments[:-2])


def fallback_candidates(owner: Owner, filename: str) -> list[str]:
    """Legacy locations probed, in order, when the canonical file is missing.

    The list is fixed and short so request-time probing stays bounded.
    """
    name = validate_filename(filename)
    candidates = [
        name,
        f"{LEGACY_ORIGINALS_DIR}/{name}",
        f"{THUMBNAILS_DIR}/{name}",
    ]
    if isinstance(owner, ProductOwner):
        # Product images once landed one level too shallow, in the store dir
        candidates.append(f"{STORES_DIR}/{owner.store_id}/{name}")
    return candidates


def is_transient_reference(value: str | None) -> bool:
    """True for client-generated references such as blob: URLs."""
    return bool(value) and value.strip().lower().startswith(_TRANSIENT_SCHEMES)


def extract_filename(value: str | None) -> str | None:
    """Base name of a stored filename or legacy URL.

    Transient references are returned untouched so they can be flagged later.
    """
    if not value or not value.strip():
        return None
    value = value.strip()
    if is_transient_reference(value):
        return value
    path = urlsplit(value).path if "://" in value else value.split("?", 1)[0].split("#", 1)[0]
    name = path.rstrip("/").rsplit("/", 1)[-1]
    return name or None


def relative_from_url(value: str | None) -> str | None:
    """Relative upload path from a legacy full URL like ``/uploads/stores/3/a.jpg``."""
    if not value or is_transient_reference(value):
        return None
    path = urlsplit(value).path if "://" in value else value.split("?", 1)[0]
    path = path.lstrip("/")
    if path.startswith("public/"):
        path = path[len("public/"):]
    if path.startswith("uploads/"):
        path = path[len("uploads/"):]
    if not path:
        return None
    normalized = posixpath.normpath(path)
    if normalized.startswith("..") or normalized == ".":
        return None
    return normalized


def is_unresolvable_reference(value: str | None) -> bool:
    """True when a stored reference can never map to a real file."""
    if not value or is_transient_reference(value):
        return True
    try:
        validate_filename(value)
    except InvalidFilenameError:
        return True
    return False


def is_image_filename(name: str) -> bool:
    return name.lower().endswith(IMAGE_EXTENSIONS)


def to_upload_url(relative_path: str) -> str:
    """Public URL of a path relative to the uploads root."""
    return f"{UPLOADS_URL_PREFIX}{relative_path.lstrip('/')}"
