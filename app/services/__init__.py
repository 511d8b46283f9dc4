"""Service layer for business logic."""

from app.services.auth_service import AuthService
from app.services.catalog_service import CatalogService
from app.services.image_record_store import SqlImageRecordStore
from app.services.image_service import ImageService
from app.services.reconciliation_service import ReconciliationService
from app.services.user_service import UserService

__all__ = [
    "AuthService",
    "CatalogService",
    "ImageService",
    "ReconciliationService",
    "SqlImageRecordStore",
    "UserService",
]
