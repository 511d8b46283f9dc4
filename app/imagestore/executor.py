"""Applies planned repair steps to the uploads tree and the record store."""

import shutil
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from app.imagestore.layout import StorageLayout
from app.imagestore.reconcile import Snapshot
from app.imagestore.records import ImageRecordStore, RecordStoreError
from app.imagestore.repair import (
    CopyFile,
    DeleteRecord,
    RemoveFile,
    RepairAction,
    RepairStep,
    SaveRecord,
)


class RepairError(Exception):
    """A repair action could not be completed safely."""


@dataclass
class RepairOutcome:
    applied: list[RepairStep] = field(default_factory=list)
    failed: list[tuple[RepairStep, str]] = field(default_factory=list)
    copied_files: int = 0
    removed_files: int = 0
    kept_files: int = 0
    saved_records: int = 0
    deleted_records: int = 0


def scan_uploads(root: Path) -> frozenset[str]:
    """Every regular file under ``root`` as a relative POSIX path."""
    if not root.is_dir():
        return frozenset()

    files = set()
    for path in root.rglob("*"):
        try:
            if path.is_symlink() or not path.is_file():
                continue
        except OSError as e:
            logger.warning(f"Skipping unreadable upload entry {path}: {e}")
            continue
        files.add(path.relative_to(root).as_posix())
    return frozenset(files)


async def take_snapshot(store: ImageRecordStore, layout: StorageLayout) -> Snapshot:
    """Read every record and every upload file."""
    records = await store.find_all()
    owners = await store.known_owners()
    files = scan_uploads(layout.uploads_root)
    return Snapshot(
        records=tuple(records),
        files=files,
        placeholder_filename=layout.placeholder_filename,
        owners=owners,
    )


class RepairExecutor:
    """Runs repair steps one by one; a failing step is logged and skipped.

    Files are never moved: a copy is verified before any original is removed,
    so a crash leaves both copies behind rather than neither.
    """

    def __init__(self, layout: StorageLayout, store: ImageRecordStore):
        self.layout = layout
        self.store = store

    def _resolve(self, relative_path: str) -> Path:
        path = self.layout.safe_join(relative_path)
        if path is None:
            raise RepairError(f"Path escapes the uploads root: {relative_path}")
        return path

    @staticmethod
    def _non_empty(path: Path) -> bool:
        return path.is_file() and path.stat().st_size > 0

    def _copy(self, action: CopyFile, outcome: RepairOutcome) -> None:
        source = self._resolve(action.source)
        destination = self._resolve(action.destination)

        if self._non_empty(destination):
            logger.info(f"Canonical file already present: {action.destination}")
            return
        if not self._non_empty(source):
            raise RepairError(f"Source missing or empty: {action.source}")

        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, destination)

        if not self._non_empty(destination) or destination.stat().st_size != source.stat().st_size:
            raise RepairError(f"Copy verification failed: {action.source} -> {action.destination}")

        outcome.copied_files += 1
        logger.info(f"Copied {action.source} -> {action.destination}")

    def _remove(self, action: RemoveFile, outcome: RepairOutcome) -> None:
        for required in action.require:
            if not self._non_empty(self._resolve(required)):
                logger.warning(f"Keeping {action.path}: {required} is not in place yet")
                outcome.kept_files += 1
                return

        path = self._resolve(action.path)
        path.unlink(missing_ok=True)
        outcome.removed_files += 1
        logger.info(f"Removed {action.path}")

    async def _apply(self, action: RepairAction, outcome: RepairOutcome) -> None:
        if isinstance(action, CopyFile):
            self._copy(action, outcome)
        elif isinstance(action, RemoveFile):
            self._remove(action, outcome)
        elif isinstance(action, SaveRecord):
            await self.store.upsert(action.record)
            outcome.saved_records += 1
        elif isinstance(action, DeleteRecord):
            await self.store.delete(action.record)
            outcome.deleted_records += 1

    async def execute(self, steps: list[RepairStep]) -> RepairOutcome:
        outcome = RepairOutcome()
        for step in steps:
            try:
                for action in step.actions:
                    await self._apply(action, outcome)
            except (OSError, RepairError, RecordStoreError) as e:
                logger.error(f"Repair step failed ({step.description}): {e}")
                outcome.failed.append((step, str(e)))
                continue
            outcome.applied.append(step)
            logger.info(f"Repaired: {step.description}")
        return outcome
