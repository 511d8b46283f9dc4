"""API routes."""

from fastapi import APIRouter

from app.api.routes.admin import router as admin_router
from app.api.routes.auth import router as auth_router
from app.api.routes.products import router as products_router
from app.api.routes.stores import router as stores_router
from app.api.routes.uploads import router as uploads_router

router = APIRouter()

router.include_router(auth_router, prefix="/auth", tags=["Auth"])
router.include_router(stores_router, prefix="/stores", tags=["Stores"])
router.include_router(products_router, prefix="/products", tags=["Products"])
router.include_router(admin_router, prefix="/admin", tags=["Admin"])

__all__ = ["router", "uploads_router"]
