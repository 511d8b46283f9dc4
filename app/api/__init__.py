"""API router initialization."""

from fastapi import APIRouter

from app.api.routes import router as routes_router
from app.api.routes import uploads_router

router = APIRouter()
router.include_router(routes_router, prefix="/api")
router.include_router(uploads_router, tags=["Uploads"])
