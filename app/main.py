"""
Marketplace Image Service - FastAPI Application

Serves store and product images from the uploads tree and keeps image
records and files consistent.
"""

from contextlib import asynccontextmanager
from pathlib import Path

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from app.api import router as api_router
from app.core.config import get_settings
from app.db import models_registry  # noqa: F401 - Import to register models
from app.db.base import Base
from app.db.session import async_session_maker, engine
from app.services.user_service import UserService
from app.workers.image_reconciliation import ImageReconciliationWorker

settings = get_settings()

scheduler: AsyncIOScheduler | None = None


async def init_database() -> None:
    """Initialize database tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database initialized")


async def init_default_user() -> None:
    """Create default admin user if not exists."""
    async with async_session_maker() as db:
        await UserService(db).ensure_admin(settings.admin_user_id, settings.admin_password)


def start_scheduler() -> None:
    """Schedule periodic reconciliation when enabled."""
    global scheduler

    if not settings.reconcile_enabled:
        logger.info("Image reconciliation disabled")
        return

    scheduler = AsyncIOScheduler()
    worker = ImageReconciliationWorker()
    scheduler.add_job(
        worker.run,
        "interval",
        minutes=settings.reconcile_interval_minutes,
        id="image_reconciliation",
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    logger.info(f"Image reconciliation scheduled every {settings.reconcile_interval_minutes} minutes")


def stop_scheduler() -> None:
    global scheduler

    if scheduler:
        scheduler.shutdown()
        scheduler = None
        logger.info("Scheduler stopped")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info(f"Starting {settings.app_name}...")

    Path(settings.data_save_folder).mkdir(parents=True, exist_ok=True)
    uploads_root = Path(settings.uploads_root)
    uploads_root.mkdir(parents=True, exist_ok=True)
    logger.info(f"Serving uploads from {uploads_root.resolve()}")

    await init_database()
    await init_default_user()
    start_scheduler()

    logger.info(f"{settings.app_name} started on port {settings.port}")

    yield

    logger.info(f"Shutting down {settings.app_name}...")
    stop_scheduler()
    await engine.dispose()
    logger.info(f"{settings.app_name} stopped")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Store and product image resolution and reconciliation",
    lifespan=lifespan,
    docs_url="/swagger" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
    expose_headers=["X-Image-Resolution", "Content-Length"],
)


# Exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler."""
    logger.error(f"Unhandled exception on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"Code": 500, "Message": str(exc)},
    )


# Include API router
app.include_router(api_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=settings.workers,
    )
