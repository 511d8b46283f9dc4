"""Diagnosis stage of image reconciliation.

``diagnose`` is pure: it classifies divergences between a snapshot of the
image records and the set of files under the uploads root. Planning repairs
lives in ``repair`` and touching disk/database lives in ``executor``.
"""

import posixpath
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from app.imagestore.owner import Owner
from app.imagestore.paths import (
    build_path,
    fallback_candidates,
    is_image_filename,
    is_unresolvable_reference,
    parse_owner_from_path,
)
from app.imagestore.records import ImageRecord, RecordKey


class FindingKind(str, Enum):
    ORPHAN_RECORD = "OrphanRecord"
    ORPHAN_FILE = "OrphanFile"
    MISMATCHED_PATH = "MismatchedPath"
    DUPLICATE_PRIMARY = "DuplicatePrimary"
    BROKEN_REFERENCE = "BrokenReference"
    # Reported for manual attention, never repaired
    PLACEHOLDER_REFERENCE = "PlaceholderReference"
    UNKNOWN_OWNER = "UnknownOwner"

    @property
    def actionable(self) -> bool:
        return self not in (FindingKind.PLACEHOLDER_REFERENCE, FindingKind.UNKNOWN_OWNER)


@dataclass(frozen=True)
class Snapshot:
    """Records plus every file path (relative, POSIX) under the uploads root."""

    records: tuple[ImageRecord, ...]
    files: frozenset[str]
    placeholder_filename: str = "placeholder.svg"
    # Stores and products that exist; None when the store cannot tell
    owners: frozenset[Owner] | None = None

    def record(self, key: RecordKey) -> ImageRecord | None:
        for record in self.records:
            if record.key == key:
                return record
        return None


@dataclass(frozen=True)
class Finding:
    kind: FindingKind
    owner: Owner
    record_key: RecordKey | None = None
    # Orphan file path, or the located source of a record's file
    path: str | None = None
    # Duplicate primaries: every primary key, the survivor first
    record_keys: tuple[RecordKey, ...] = ()
    detail: str = ""

    @property
    def actionable(self) -> bool:
        return self.kind.actionable


@dataclass
class Report:
    snapshot: Snapshot
    findings: list[Finding] = field(default_factory=list)
    # path -> keys of the records that rely on that file
    references: dict[str, frozenset[RecordKey]] = field(default_factory=dict)

    @property
    def actionable(self) -> list[Finding]:
        return [f for f in self.findings if f.actionable]

    @property
    def is_clean(self) -> bool:
        return not self.actionable

    def count(self, kind: FindingKind) -> int:
        return sum(1 for f in self.findings if f.kind is kind)

    def summary(self) -> dict[str, int]:
        return {kind.value: self.count(kind) for kind in FindingKind}


def newest_first_key(record: ImageRecord) -> tuple:
    """Sort key for "most recent wins": createdAt, then id."""
    return (
        record.created_at is not None,
        record.created_at or datetime.min,
        record.id or 0,
    )


def _diagnose_record(
    record: ImageRecord,
    files: frozenset[str],
    placeholder_filename: str,
    refs: dict[str, set[RecordKey]],
) -> Finding | None:
    owner = record.owner
    filename = record.filename

    if is_unresolvable_reference(filename):
        return Finding(
            FindingKind.BROKEN_REFERENCE,
            owner,
            record_key=record.key,
            detail=f"unresolvable reference {filename!r}",
        )

    if filename == placeholder_filename:
        canonical = build_path(owner, filename)
        if canonical in files:
            refs[canonical].add(record.key)
        return Finding(
            FindingKind.PLACEHOLDER_REFERENCE,
            owner,
            record_key=record.key,
            detail="record points at the placeholder",
        )

    canonical = build_path(owner, filename)
    stored = record.stored_path
    if stored in files:
        refs[stored].add(record.key)

    stored_owner = parse_owner_from_path(stored) if stored else None
    if stored_owner is not None and stored_owner != owner:
        if stored in files or canonical in files:
            if canonical in files:
                refs[canonical].add(record.key)
            return Finding(
                FindingKind.MISMATCHED_PATH,
                owner,
                record_key=record.key,
                path=stored if stored in files else None,
                detail=f"stored path {stored} belongs to {stored_owner}",
            )

    if canonical in files:
        refs[canonical].add(record.key)
        return None

    for candidate in fallback_candidates(owner, filename):
        if candidate in files:
            refs[candidate].add(record.key)
            return Finding(
                FindingKind.ORPHAN_RECORD,
                owner,
                record_key=record.key,
                path=candidate,
                detail=f"canonical file missing, found at {candidate}",
            )

    return Finding(
        FindingKind.ORPHAN_RECORD,
        owner,
        record_key=record.key,
        detail=f"no file for {filename} anywhere",
    )


def diagnose(snapshot: Snapshot) -> Report:
    """Classify every divergence between records and files."""
    findings: list[Finding] = []
    refs: dict[str, set[RecordKey]] = defaultdict(set)

    records = sorted(snapshot.records, key=lambda r: r.key)
    for record in records:
        finding = _diagnose_record(record, snapshot.files, snapshot.placeholder_filename, refs)
        if finding is not None:
            findings.append(finding)

    by_owner: dict[Owner, list[ImageRecord]] = defaultdict(list)
    for record in records:
        by_owner[record.owner].append(record)

    for owner, owner_records in by_owner.items():
        primaries = sorted(
            (r for r in owner_records if r.is_primary),
            key=newest_first_key,
            reverse=True,
        )
        if len(primaries) > 1:
            findings.append(
                Finding(
                    FindingKind.DUPLICATE_PRIMARY,
                    owner,
                    record_key=primaries[0].key,
                    record_keys=tuple(r.key for r in primaries),
                    detail=f"{len(primaries)} primary records",
                )
            )

    for path in sorted(snapshot.files):
        if path in refs:
            continue
        owner = parse_owner_from_path(path)
        if owner is None or not is_image_filename(path):
            continue
        if posixpath.basename(path) == snapshot.placeholder_filename:
            continue
        if snapshot.owners is not None and owner not in snapshot.owners:
            findings.append(
                Finding(
                    FindingKind.UNKNOWN_OWNER,
                    owner,
                    path=path,
                    detail=f"{owner} does not exist",
                )
            )
            continue
        findings.append(
            Finding(
                FindingKind.ORPHAN_FILE,
                owner,
                path=path,
                detail="file has no matching record",
            )
        )

    return Report(
        snapshot=snapshot,
        findings=findings,
        references={path: frozenset(keys) for path, keys in refs.items()},
    )
