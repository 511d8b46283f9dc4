"""SQLAlchemy implementation of the image record store.

This is the only place that queries the image tables. Every query is built
with the SQLAlchemy expression API, so values are always bound parameters.
"""

from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.imagestore.owner import Owner, ProductOwner, StoreOwner
from app.imagestore.paths import (
    build_path,
    build_thumbnail_path,
    extract_filename,
    is_unresolvable_reference,
    relative_from_url,
    to_upload_url,
)
from app.imagestore.records import ImageRecord, RecordStoreError
from app.models.image import ProductImage, StoreImage
from app.models.store import Product, Store


def _to_record(row: StoreImage | ProductImage, owner: Owner) -> ImageRecord:
    """Map a row to a record; legacy URL columns stand in for missing filenames."""
    return ImageRecord(
        id=row.id,
        owner=owner,
        filename=row.filename or extract_filename(row.image_url),
        thumbnail_filename=row.thumbnail_filename or extract_filename(row.thumbnail_url),
        is_primary=bool(row.is_primary),
        display_order=row.display_order or 0,
        created_at=row.created_at,
        stored_path=relative_from_url(row.image_url),
    )


def _apply_record(row: StoreImage | ProductImage, record: ImageRecord) -> None:
    row.filename = record.filename
    row.thumbnail_filename = record.thumbnail_filename
    row.is_primary = record.is_primary
    row.display_order = record.display_order

    if record.stored_path:
        row.image_url = to_upload_url(record.stored_path)
    elif not is_unresolvable_reference(record.filename):
        row.image_url = to_upload_url(build_path(record.owner, record.filename))
    else:
        row.image_url = None

    if record.thumbnail_filename and not is_unresolvable_reference(record.thumbnail_filename):
        row.thumbnail_url = to_upload_url(
            build_thumbnail_path(record.owner, record.thumbnail_filename)
        )
    else:
        row.thumbnail_url = None


class SqlImageRecordStore:
    """Image record store over the ``store_images`` and ``product_images`` tables."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _store_query(self):
        return select(StoreImage).order_by(desc(StoreImage.is_primary), desc(StoreImage.id))

    def _product_query(self):
        return (
            select(ProductImage, Product.store_id)
            .join(Product, Product.id == ProductImage.product_id)
            .order_by(desc(ProductImage.is_primary), desc(ProductImage.id))
        )

    async def find_by_owner(self, owner: Owner) -> list[ImageRecord]:
        """All records of one owner, primary first, newest id first."""
        try:
            if isinstance(owner, ProductOwner):
                result = await self.db.execute(
                    self._product_query().where(ProductImage.product_id == owner.product_id)
                )
                return [
                    _to_record(row, ProductOwner(store_id, row.product_id))
                    for row, store_id in result.all()
                ]

            result = await self.db.execute(
                self._store_query().where(StoreImage.store_id == owner.store_id)
            )
            return [_to_record(row, owner) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise RecordStoreError(f"Failed to load images of {owner}: {e}") from e

    async def find_all(self) -> list[ImageRecord]:
        """Every store and product image record."""
        try:
            store_rows = (await self.db.execute(self._store_query())).scalars().all()
            product_rows = (await self.db.execute(self._product_query())).all()
        except SQLAlchemyError as e:
            raise RecordStoreError(f"Failed to load image records: {e}") from e

        records = [_to_record(row, StoreOwner(row.store_id)) for row in store_rows]
        records.extend(
            _to_record(row, ProductOwner(store_id, row.product_id))
            for row, store_id in product_rows
        )
        return records

    async def _get_row(self, record: ImageRecord) -> StoreImage | ProductImage | None:
        model = ProductImage if isinstance(record.owner, ProductOwner) else StoreImage
        return await self.db.get(model, record.id)

    async def upsert(self, record: ImageRecord) -> ImageRecord:
        """Insert or update a record and return it as stored."""
        try:
            if record.id is None:
                if isinstance(record.owner, ProductOwner):
                    row = ProductImage(product_id=record.owner.product_id)
                else:
                    row = StoreImage(store_id=record.owner.store_id)
                self.db.add(row)
            else:
                row = await self._get_row(record)
                if row is None:
                    raise RecordStoreError(f"Image record {record.key} no longer exists")

            _apply_record(row, record)
            await self.db.commit()
            await self.db.refresh(row)
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise RecordStoreError(f"Failed to save image record {record.key}: {e}") from e

        return _to_record(row, record.owner)

    async def delete(self, record: ImageRecord) -> None:
        """Delete a record if it still exists."""
        try:
            row = await self._get_row(record)
            if row is not None:
                await self.db.delete(row)
                await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise RecordStoreError(f"Failed to delete image record {record.key}: {e}") from e

    async def known_owners(self) -> frozenset[Owner]:
        """Every store and product in the catalog."""
        try:
            store_ids = (await self.db.execute(select(Store.id))).scalars().all()
            products = (await self.db.execute(select(Product.store_id, Product.id))).all()
        except SQLAlchemyError as e:
            raise RecordStoreError(f"Failed to load stores and products: {e}") from e

        owners: set[Owner] = {StoreOwner(store_id) for store_id in store_ids}
        owners.update(ProductOwner(store_id, product_id) for store_id, product_id in products)
        return frozenset(owners)
