"""Primary image resolution with a bounded fallback chain.

Resolution is read-only and total: every call returns either an existing file
or a placeholder. Missing files, storage errors and unusable references all
degrade to the placeholder; inconsistencies are left for reconciliation.
"""

from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from app.imagestore.layout import PlaceholderVariant
from app.imagestore.locator import ImageLocator
from app.imagestore.owner import Owner
from app.imagestore.paths import THUMBNAILS_DIR, is_unresolvable_reference
from app.imagestore.records import (
    ImageRecord,
    ImageRecordStore,
    RecordStoreError,
    TieBreakPolicy,
)


@dataclass(frozen=True)
class ImageFile:
    """A resolved image that exists on disk."""

    path: Path

    @property
    def is_placeholder(self) -> bool:
        return False


@dataclass(frozen=True)
class PlaceholderImage:
    """No real image could be resolved."""

    variant: PlaceholderVariant = PlaceholderVariant.DEFAULT

    @property
    def is_placeholder(self) -> bool:
        return True


ResolvedImage = ImageFile | PlaceholderImage


class PrimaryImageResolver:
    """Picks the representative image of an owner and finds where it lives."""

    def __init__(
        self,
        store: ImageRecordStore,
        locator: ImageLocator,
        policy: TieBreakPolicy = TieBreakPolicy.MOST_RECENT,
    ):
        self.store = store
        self.locator = locator
        self.policy = policy

    @property
    def placeholder_filename(self) -> str:
        return self.locator.layout.placeholder_filename

    async def _records(self, owner: Owner) -> list[ImageRecord] | None:
        try:
            return await self.store.find_by_owner(owner)
        except RecordStoreError as e:
            logger.warning(f"Image records unavailable for {owner}: {e}")
            return None

    def _is_usable(self, filename: str | None) -> bool:
        return not is_unresolvable_reference(filename) and filename != self.placeholder_filename

    def resolve_record(self, owner: Owner, record: ImageRecord) -> ResolvedImage:
        """Resolve one record scoped to ``owner``."""
        if not self._is_usable(record.filename):
            # blob: URLs and placeholder rewrites never hit the filesystem
            return PlaceholderImage(PlaceholderVariant.UNAVAILABLE)

        path = self.locator.find(owner, record.filename)
        if path is None:
            logger.debug(f"No file for {owner} record {record.id} ({record.filename})")
            return PlaceholderImage()
        return ImageFile(path)

    async def resolve_primary(self, owner: Owner) -> ResolvedImage:
        """Primary image of ``owner`` or a placeholder."""
        records = await self._records(owner)
        if records is None:
            return PlaceholderImage(PlaceholderVariant.ERROR)

        record = self.policy.select(records)
        if record is None:
            return PlaceholderImage()
        return self.resolve_record(owner, record)

    async def resolve_thumbnail(self, owner: Owner) -> ResolvedImage:
        """Thumbnail of the primary record, falling back to the primary image."""
        records = await self._records(owner)
        if records is None:
            return PlaceholderImage(PlaceholderVariant.ERROR)

        record = self.policy.select(records)
        if record is None:
            return PlaceholderImage()

        thumbnail = record.thumbnail_filename
        if self._is_usable(record.filename) and self._is_usable(thumbnail):
            path = self.locator.thumbnail(owner, thumbnail)
            if path is None:
                path = self.locator.existing(f"{THUMBNAILS_DIR}/{thumbnail}")
            if path is not None:
                return ImageFile(path)

        return self.resolve_record(owner, record)

    async def resolve_by_id(self, owner: Owner, record_id: int) -> ResolvedImage:
        """A specific record of ``owner``; other owners' records are never served."""
        records = await self._records(owner)
        if records is None:
            return PlaceholderImage(PlaceholderVariant.ERROR)

        for record in records:
            if record.id == record_id:
                return self.resolve_record(owner, record)
        return PlaceholderImage()
