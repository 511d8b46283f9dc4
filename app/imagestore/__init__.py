"""Entity-scoped image storage: layout, resolution, guarding and reconciliation."""

from app.imagestore.layout import PlaceholderVariant, StorageLayout
from app.imagestore.locator import ImageLocator
from app.imagestore.owner import Owner, ProductOwner, StoreOwner
from app.imagestore.records import ImageRecord, ImageRecordStore, RecordStoreError, TieBreakPolicy
from app.imagestore.resolver import ImageFile, PlaceholderImage, PrimaryImageResolver, ResolvedImage

__all__ = [
    "ImageFile",
    "ImageLocator",
    "ImageRecord",
    "ImageRecordStore",
    "Owner",
    "PlaceholderImage",
    "PlaceholderVariant",
    "PrimaryImageResolver",
    "ProductOwner",
    "RecordStoreError",
    "ResolvedImage",
    "StorageLayout",
    "StoreOwner",
    "TieBreakPolicy",
]
