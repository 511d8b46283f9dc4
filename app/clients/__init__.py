"""HTTP clients for consumers of the image service."""

from app.clients.image_client import FetchedImage, ImageClient

__all__ = ["FetchedImage", "ImageClient"]
