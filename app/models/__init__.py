"""Database models."""

from app.models.image import ProductImage, StoreImage
from app.models.store import Product, Store
from app.models.user import User

__all__ = [
    "Product",
    "ProductImage",
    "Store",
    "StoreImage",
    "User",
]
