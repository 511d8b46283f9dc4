"""Image records and the narrow interface used to reach them.

The engine never talks SQL. It goes through ``ImageRecordStore``; the
SQLAlchemy implementation lives in ``app.services.image_record_store``.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol

from app.imagestore.owner import Owner

# (owner kind, record id): ids are only unique per table
RecordKey = tuple[str, int]


class RecordStoreError(Exception):
    """Raised by a record store when the backing storage fails."""


@dataclass(frozen=True)
class ImageRecord:
    """One known image of an owner.

    ``stored_path`` is the legacy location the row points at (derived from a
    full ``imageUrl``), relative to the uploads root. It may encode a
    different owner than ``owner`` on rows written by early upload code.
    """

    id: int | None
    owner: Owner
    filename: str | None
    thumbnail_filename: str | None = None
    is_primary: bool = False
    display_order: int = 0
    created_at: datetime | None = None
    stored_path: str | None = None

    @property
    def key(self) -> RecordKey:
        return (self.owner.kind, self.id if self.id is not None else -1)


class ImageRecordStore(Protocol):
    """Persistence boundary for image records."""

    async def find_by_owner(self, owner: Owner) -> list[ImageRecord]:
        """All records of one owner."""
        ...

    async def find_all(self) -> list[ImageRecord]:
        """Every record of every owner."""
        ...

    async def upsert(self, record: ImageRecord) -> ImageRecord:
        """Insert (``id is None``) or update a record; returns the stored row."""
        ...

    async def delete(self, record: ImageRecord) -> None:
        """Remove a record."""
        ...

    async def known_owners(self) -> frozenset[Owner] | None:
        """Every existing store and product, or None if unknown."""
        ...


class TieBreakPolicy(str, Enum):
    """How the representative record of an owner is picked.

    All policies put primary records first; they differ in how ties are
    broken among records with the same primary flag.
    """

    MOST_RECENT = "most_recent"  # id descending
    NEWEST_CREATED = "newest_created"  # createdAt descending, then id
    DISPLAY_ORDER = "display_order"  # displayOrder ascending, then id descending

    def sort(self, records: list[ImageRecord]) -> list[ImageRecord]:
        """Records ordered best-first under this policy."""
        if self is TieBreakPolicy.NEWEST_CREATED:
            return sorted(
                records,
                key=lambda r: (
                    r.is_primary,
                    r.created_at is not None,
                    r.created_at or datetime.min,
                    r.id or 0,
                ),
                reverse=True,
            )
        if self is TieBreakPolicy.DISPLAY_ORDER:
            return sorted(
                records,
                key=lambda r: (not r.is_primary, r.display_order, -(r.id or 0)),
            )
        return sorted(records, key=lambda r: (r.is_primary, r.id or 0), reverse=True)

    def select(self, records: list[ImageRecord]) -> ImageRecord | None:
        ordered = self.sort(records)
        return ordered[0] if ordered else None
