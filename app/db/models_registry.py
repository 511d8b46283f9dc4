"""
Model registry for metadata creation.

Import all models here to ensure they are registered with SQLAlchemy metadata.
"""

from app.db.base import Base
from app.models.image import ProductImage, StoreImage
from app.models.store import Product, Store
from app.models.user import User

__all__ = [
    "Base",
    "Product",
    "ProductImage",
    "Store",
    "StoreImage",
    "User",
]
