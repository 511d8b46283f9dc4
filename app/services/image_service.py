"""Image service for gallery management and primary image resolution."""

from dataclasses import replace

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.imagestore.layout import StorageLayout
from app.imagestore.locator import ImageLocator
from app.imagestore.owner import Owner
from app.imagestore.paths import (
    PRODUCTS_DIR,
    STORES_DIR,
    build_path,
    build_thumbnail_path,
    is_unresolvable_reference,
    to_upload_url,
    validate_filename,
)
from app.imagestore.records import ImageRecord, TieBreakPolicy
from app.imagestore.resolver import PrimaryImageResolver, ResolvedImage
from app.schemas.image import ImageRecordCreate, ImageRecordDTO, UploadsDiagnostic
from app.services.image_record_store import SqlImageRecordStore


def gallery_order(records: list[ImageRecord]) -> list[ImageRecord]:
    """Primary first, then display order, then id."""
    return sorted(records, key=lambda r: (not r.is_primary, r.display_order, r.id or 0))


class ImageService:
    """Image records of stores and products, and where their files live."""

    def __init__(
        self,
        db: AsyncSession,
        layout: StorageLayout,
        policy: TieBreakPolicy = TieBreakPolicy.MOST_RECENT,
    ):
        self.db = db
        self.layout = layout
        self.store = SqlImageRecordStore(db)
        self.locator = ImageLocator(layout)
        self.resolver = PrimaryImageResolver(self.store, self.locator, policy)

    async def resolve_primary(self, owner: Owner) -> ResolvedImage:
        return await self.resolver.resolve_primary(owner)

    async def resolve_thumbnail(self, owner: Owner) -> ResolvedImage:
        return await self.resolver.resolve_thumbnail(owner)

    async def resolve_by_id(self, owner: Owner, image_id: int) -> ResolvedImage:
        return await self.resolver.resolve_by_id(owner, image_id)

    async def list_images(self, owner: Owner) -> list[ImageRecordDTO]:
        """Gallery of an owner with canonical URLs."""
        records = await self.store.find_by_owner(owner)
        return [self._to_dto(r) for r in gallery_order(records)]

    async def register_image(self, owner: Owner, data: ImageRecordCreate) -> ImageRecordDTO:
        """
        Record a file already written to the owner's canonical directory.

        Raises InvalidFilenameError for names that cannot be stored.
        """
        filename = validate_filename(data.filename)
        thumbnail = validate_filename(data.thumbnail_filename) if data.thumbnail_filename else None

        if self.locator.canonical(owner, filename) is None:
            logger.warning(f"Registering {owner} image {filename} before its file exists")

        existing = await self.store.find_by_owner(owner)
        make_primary = data.make_primary or not existing
        if make_primary:
            await self._demote(existing)

        display_order = data.display_order
        if display_order is None:
            display_order = max((r.display_order for r in existing), default=-1) + 1

        record = await self.store.upsert(
            ImageRecord(
                id=None,
                owner=owner,
                filename=filename,
                thumbnail_filename=thumbnail,
                is_primary=make_primary,
                display_order=display_order,
            )
        )
        logger.info(f"Registered {owner} image {record.id} ({filename}, primary={make_primary})")
        return self._to_dto(record)

    async def set_primary(self, owner: Owner, image_id: int) -> ImageRecordDTO | None:
        """Make one record the primary of its owner."""
        records = await self.store.find_by_owner(owner)
        target = next((r for r in records if r.id == image_id), None)
        if target is None:
            return None

        await self._demote([r for r in records if r.id != image_id])
        if not target.is_primary:
            target = await self.store.upsert(replace(target, is_primary=True))
        logger.info(f"{owner} primary image set to {image_id}")
        return self._to_dto(target)

    async def delete_image(self, owner: Owner, image_id: int) -> bool:
        """Delete a record together with its canonical file and thumbnail."""
        records = await self.store.find_by_owner(owner)
        target = next((r for r in records if r.id == image_id), None)
        if target is None:
            return False

        await self.store.delete(target)
        others = [r for r in records if r.id != image_id]

        if not is_unresolvable_reference(target.filename) and not any(
            r.filename == target.filename for r in others
        ):
            self._unlink(build_path(owner, target.filename))
        if not is_unresolvable_reference(target.thumbnail_filename) and not any(
            r.thumbnail_filename == target.thumbnail_filename for r in others
        ):
            self._unlink(build_thumbnail_path(owner, target.thumbnail_filename))

        logger.info(f"Deleted {owner} image {image_id}")
        return True

    async def uploads_diagnostic(self) -> UploadsDiagnostic:
        """Directory and file counts plus records whose files cannot be found."""
        root = self.layout.uploads_root
        diagnostic = UploadsDiagnostic(uploads_root=str(root), exists=root.is_dir())
        if not diagnostic.exists:
            logger.warning(f"Uploads root {root} does not exist")
            return diagnostic

        for path in root.rglob("*"):
            if path.is_dir():
                diagnostic.directories += 1
                parts = path.relative_to(root).parts
                if len(parts) == 2 and parts[0] == STORES_DIR:
                    diagnostic.store_directories += 1
                elif len(parts) == 4 and parts[0] == STORES_DIR and parts[2] == PRODUCTS_DIR:
                    diagnostic.product_directories += 1
            elif path.is_file():
                diagnostic.files += 1

        for record in await self.store.find_all():
            if record.filename == self.layout.placeholder_filename:
                continue
            if is_unresolvable_reference(record.filename):
                diagnostic.missing_files.append(f"{record.owner}: {record.filename}")
            elif self.locator.find(record.owner, record.filename) is None:
                diagnostic.missing_files.append(
                    f"{record.owner}: {build_path(record.owner, record.filename)}"
                )
        return diagnostic

    async def _demote(self, records: list[ImageRecord]) -> None:
        for record in records:
            if record.is_primary:
                await self.store.upsert(replace(record, is_primary=False))

    def _unlink(self, relative_path: str) -> None:
        path = self.layout.safe_join(relative_path)
        if path is None:
            return
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove {relative_path}: {e}")

    def _to_dto(self, record: ImageRecord) -> ImageRecordDTO:
        """Convert an image record to a DTO with canonical URLs."""
        image_url = None
        thumbnail_url = None
        if not is_unresolvable_reference(record.filename) and (
            record.filename != self.layout.placeholder_filename
        ):
            image_url = to_upload_url(build_path(record.owner, record.filename))
            if not is_unresolvable_reference(record.thumbnail_filename):
                thumbnail_url = to_upload_url(
                    build_thumbnail_path(record.owner, record.thumbnail_filename)
                )
        return ImageRecordDTO(
            id=record.id,
            filename=record.filename,
            thumbnail_filename=record.thumbnail_filename,
            image_url=image_url,
            thumbnail_url=thumbnail_url,
            is_primary=record.is_primary,
            display_order=record.display_order,
            created_at=record.created_at,
        )

