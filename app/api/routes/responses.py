"""Responses for resolved images and placeholders."""

from fastapi import Response
from fastapi.responses import FileResponse
from loguru import logger

from app.imagestore.layout import PlaceholderVariant, StorageLayout
from app.imagestore.resolver import ImageFile, ResolvedImage

RESOLUTION_HEADER = "X-Image-Resolution"

# Served when the placeholder asset itself is missing from disk
INLINE_PLACEHOLDER_SVG = (
    b'<svg xmlns="http://www.w3.org/2000/svg" width="300" height="300" viewBox="0 0 300 300">'
    b'<rect width="300" height="300" fill="#E5E7EB"/></svg>'
)


def placeholder_response(
    layout: StorageLayout,
    variant: PlaceholderVariant = PlaceholderVariant.DEFAULT,
) -> Response:
    """Placeholder image; never cached so a later upload shows up at once."""
    headers = {
        RESOLUTION_HEADER: f"placeholder:{variant.value}",
        "Cache-Control": "no-cache",
    }
    path = layout.placeholder_path(variant)
    if not path.is_file() and variant is not PlaceholderVariant.DEFAULT:
        path = layout.placeholder_path(PlaceholderVariant.DEFAULT)
    if path.is_file():
        return FileResponse(path, media_type="image/svg+xml", headers=headers)

    logger.warning(f"Placeholder asset missing: {path}")
    return Response(content=INLINE_PLACEHOLDER_SVG, media_type="image/svg+xml", headers=headers)


def image_response(resolved: ResolvedImage, layout: StorageLayout) -> Response:
    """Stream a resolved file, or the placeholder it degraded to."""
    if isinstance(resolved, ImageFile):
        return FileResponse(resolved.path, headers={RESOLUTION_HEADER: "file"})
    return placeholder_response(layout, resolved.variant)
