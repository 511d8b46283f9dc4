"""Image models for store and product galleries."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class StoreImage(Base):
    """Store image database model."""

    __tablename__ = "store_images"

    # SQLite requires INTEGER (not BIGINT) for autoincrement
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    store_id: Mapped[int] = mapped_column(Integer, ForeignKey("stores.id"), index=True)

    # Bare file names inside the canonical store directory
    filename: Mapped[str | None] = mapped_column(String(512), nullable=True)
    thumbnail_filename: Mapped[str | None] = mapped_column(String(512), nullable=True)

    # Legacy full URLs (/uploads/...) written before filenames were stored
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    thumbnail_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_primary: Mapped[bool] = mapped_column(Boolean, default=False)
    display_order: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    __table_args__ = (Index("ix_store_images_primary", "store_id", "is_primary"),)


class ProductImage(Base):
    """Product image database model."""

    __tablename__ = "product_images"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(Integer, ForeignKey("products.id"), index=True)

    filename: Mapped[str | None] = mapped_column(String(512), nullable=True)
    thumbnail_filename: Mapped[str | None] = mapped_column(String(512), nullable=True)

    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    thumbnail_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_primary: Mapped[bool] = mapped_column(Boolean, default=False)
    display_order: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    __table_args__ = (Index("ix_product_images_primary", "product_id", "is_primary"),)
