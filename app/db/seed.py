"""Database seeder for demo stores, products and images.

The seeded image rows deliberately include the legacy shapes the
reconciliation job knows how to repair: a flat upload, a file under
``originals/``, a product image stored in its store's directory and a
``blob:`` URL saved by an old client.
"""

import asyncio
from pathlib import Path

from loguru import logger
from sqlalchemy import select

from app.core.config import get_settings
from app.core.security import get_password_hash
from app.db import models_registry  # noqa: F401 - Import to register models
from app.db.base import Base
from app.db.session import async_session_maker, engine
from app.models.image import ProductImage, StoreImage
from app.models.store import Product, Store
from app.models.user import User

settings = get_settings()

# Minimal valid PNG (1x1, transparent)
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000154a24f5d0000000049454e44ae426082"
)


async def create_tables():
    """Create all tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Tables created")


async def seed_users():
    """Seed users."""
    users = [
        User(
            id=settings.admin_user_id,
            username=settings.admin_user_id,
            hashed_password=get_password_hash(settings.admin_password),
            is_active=True,
            is_superuser=True,
        ),
        User(
            id="editor",
            username="editor",
            hashed_password=get_password_hash("editor123"),
            is_active=True,
            is_superuser=False,
        ),
    ]

    async with async_session_maker() as db:
        for user in users:
            existing = await db.get(User, user.id)
            if not existing:
                db.add(user)
        await db.commit()
    logger.info(f"Seeded {len(users)} users")


async def seed_catalog():
    """Seed stores and products."""
    stores = [Store(id=1, name="Corner Bakery"), Store(id=2, name="Hardware Hub")]
    products = [
        Product(id=10, store_id=1, name="Sourdough Loaf"),
        Product(id=11, store_id=1, name="Croissant"),
        Product(id=20, store_id=2, name="Claw Hammer"),
    ]

    async with async_session_maker() as db:
        for obj in [*stores, *products]:
            existing = await db.get(type(obj), obj.id)
            if not existing:
                db.add(obj)
        await db.commit()
    logger.info(f"Seeded {len(stores)} stores, {len(products)} products")


def write_upload(relative_path: str) -> None:
    path = Path(settings.uploads_root) / relative_path
    path.parent.mkdir(parents=True, exist_ok=True)
    if not path.exists():
        path.write_bytes(PNG_BYTES)


async def seed_images():
    """Seed image rows and files, some of them in legacy locations."""
    write_upload("stores/1/storefront.png")
    write_upload("stores/1/thumbnails/storefront.png")
    write_upload("originals/hammer.png")
    write_upload("loaf.png")
    write_upload("stores/1/croissant.png")
    write_upload("stores/2/products/20/unregistered.png")

    store_images = [
        StoreImage(
            store_id=1,
            filename="storefront.png",
            thumbnail_filename="storefront.png",
            image_url="/uploads/stores/1/storefront.png",
            is_primary=True,
        ),
    ]
    product_images = [
        ProductImage(product_id=10, filename="loaf.png", image_url="/uploads/loaf.png", is_primary=True),
        ProductImage(
            product_id=11,
            filename="croissant.png",
            image_url="/uploads/stores/1/croissant.png",
            is_primary=True,
        ),
        ProductImage(product_id=11, image_url="blob:http://localhost:3000/6f1c", is_primary=False),
        ProductImage(product_id=20, filename="hammer.png", image_url="/uploads/hammer.png", is_primary=True),
    ]

    async with async_session_maker() as db:
        if await db.scalar(select(StoreImage.id).limit(1)) is not None:
            logger.info("Image records already seeded")
            return
        db.add_all([*store_images, *product_images])
        await db.commit()
    logger.info(f"Seeded {len(store_images) + len(product_images)} image records")


async def seed_all():
    """Seed all demo data."""
    logger.info("Starting database seeding...")

    await create_tables()
    await seed_users()
    await seed_catalog()
    await seed_images()

    logger.info("Database seeding completed!")


async def clear_all():
    """Clear all data from tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    logger.info("All tables cleared and recreated")


if __name__ == "__main__":
    import sys

    if len(sys.argv) > 1 and sys.argv[1] == "--clear":
        asyncio.run(clear_all())
    else:
        asyncio.run(seed_all())
