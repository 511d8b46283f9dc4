"""On-disk layout: the uploads root and the placeholder assets."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from app.core.config import Settings


class PlaceholderVariant(str, Enum):
    """Placeholder flavours served when no real image can be resolved."""

    DEFAULT = "default"
    UNAVAILABLE = "unavailable"
    ERROR = "error"
    PROCESSING = "processing"


@dataclass(frozen=True)
class StorageLayout:
    """Where uploads live and which files stand in for missing images."""

    uploads_root: Path
    placeholder_dir: Path
    placeholder_filename: str = "placeholder.svg"
    unavailable_filename: str = "placeholder-unavailable.svg"
    error_filename: str = "placeholder-error.svg"
    processing_filename: str = "placeholder-processing.svg"

    @classmethod
    def from_settings(cls, settings: "Settings") -> "StorageLayout":
        return cls(
            uploads_root=Path(settings.uploads_root),
            placeholder_dir=Path(settings.placeholder_dir),
            placeholder_filename=settings.placeholder_filename,
            unavailable_filename=settings.placeholder_unavailable_filename,
            error_filename=settings.placeholder_error_filename,
            processing_filename=settings.placeholder_processing_filename,
        )

    def safe_join(self, relative_path: str) -> Path | None:
        """Absolute path for ``relative_path`` if it stays inside the uploads root.

        Symlinks are followed before the containment check, so a link that
        points outside the root is refused like a ``../`` traversal.
        """
        if not relative_path or "\x00" in relative_path:
            return None
        if PurePosixPath(relative_path).is_absolute():
            return None
        root = self.uploads_root.resolve()
        candidate = (root / relative_path).resolve()
        if candidate != root and not candidate.is_relative_to(root):
            return None
        return candidate

    def placeholder_path(self, variant: PlaceholderVariant = PlaceholderVariant.DEFAULT) -> Path:
        filename = {
            PlaceholderVariant.DEFAULT: self.placeholder_filename,
            PlaceholderVariant.UNAVAILABLE: self.unavailable_filename,
            PlaceholderVariant.ERROR: self.error_filename,
            PlaceholderVariant.PROCESSING: self.processing_filename,
        }[variant]
        return self.placeholder_dir / filename
