"""Repair planning stage of image reconciliation.

``plan_repair`` turns a report into ordered steps of plain actions. It is pure;
``executor.RepairExecutor`` applies the steps. Each step is independent, so a
failing step never blocks the others.
"""

from collections import defaultdict
from dataclasses import dataclass, replace

from app.imagestore.owner import Owner
from app.imagestore.paths import build_path, build_thumbnail_path
from app.imagestore.reconcile import Finding, FindingKind, Report
from app.imagestore.records import ImageRecord, RecordKey


@dataclass(frozen=True)
class RepairPolicy:
    """``dedupe`` deletes demoted duplicate primaries and their files."""

    dedupe: bool = False


@dataclass(frozen=True)
class CopyFile:
    """Copy then verify; the source is left in place."""

    source: str
    destination: str


@dataclass(frozen=True)
class RemoveFile:
    """Delete ``path`` only if every path in ``require`` exists and is non-empty."""

    path: str
    require: tuple[str, ...] = ()


@dataclass(frozen=True)
class SaveRecord:
    record: ImageRecord


@dataclass(frozen=True)
class DeleteRecord:
    record: ImageRecord


RepairAction = CopyFile | RemoveFile | SaveRecord | DeleteRecord


@dataclass(frozen=True)
class RepairStep:
    finding: Finding
    actions: tuple[RepairAction, ...]
    description: str


def _placeholder_rewrite(record: ImageRecord, placeholder_filename: str) -> ImageRecord:
    return replace(
        record,
        filename=placeholder_filename,
        thumbnail_filename=None,
        stored_path=None,
    )


def _thumbnail_for(owner: Owner, filename: str, files: frozenset[str]) -> str | None:
    for candidate in (filename, f"thumb-{filename}"):
        if build_thumbnail_path(owner, candidate) in files:
            return candidate
    return None


class _Planner:
    def __init__(self, report: Report, policy: RepairPolicy):
        self.report = report
        self.policy = policy
        self.snapshot = report.snapshot
        self.working: dict[RecordKey, ImageRecord] = {r.key: r for r in self.snapshot.records}
        self.deleted: set[RecordKey] = set()
        self.steps: list[RepairStep] = []

    def surviving_refs(self, path: str) -> frozenset[RecordKey]:
        return self.report.references.get(path, frozenset()) - self.deleted

    def plan(self) -> list[RepairStep]:
        findings = self.report.actionable
        duplicates = [f for f in findings if f.kind is FindingKind.DUPLICATE_PRIMARY]
        per_record = [
            f
            for f in findings
            if f.kind
            in (FindingKind.ORPHAN_RECORD, FindingKind.MISMATCHED_PATH, FindingKind.BROKEN_REFERENCE)
        ]
        orphan_files = [f for f in findings if f.kind is FindingKind.ORPHAN_FILE]

        self._plan_duplicates(duplicates)
        self._plan_records([f for f in per_record if f.record_key not in self.deleted])
        self._plan_orphan_files(orphan_files)
        return self.steps

    def _plan_duplicates(self, duplicates: list[Finding]) -> None:
        pending: list[tuple[Finding, list[RepairAction], list[ImageRecord]]] = []
        for finding in duplicates:
            _keep, *losers = finding.record_keys
            actions: list[RepairAction] = []
            removed: list[ImageRecord] = []
            for key in losers:
                record = self.working[key]
                if self.policy.dedupe:
                    self.deleted.add(key)
                    removed.append(record)
                    actions.append(DeleteRecord(record))
                else:
                    demoted = replace(record, is_primary=False)
                    self.working[key] = demoted
                    actions.append(SaveRecord(demoted))
            pending.append((finding, actions, removed))

        # File removal needs the full deleted set to know what is still shared
        surviving_thumbnails = {
            build_thumbnail_path(r.owner, r.thumbnail_filename)
            for key, r in self.working.items()
            if key not in self.deleted and self._valid_name(r.thumbnail_filename)
        }
        for finding, actions, removed in pending:
            for record in removed:
                for path, keys in self.report.references.items():
                    if record.key in keys and not self.surviving_refs(path):
                        actions.append(RemoveFile(path))
                if self._valid_name(record.thumbnail_filename):
                    thumb = build_thumbnail_path(record.owner, record.thumbnail_filename)
                    if thumb in self.snapshot.files and thumb not in surviving_thumbnails:
                        actions.append(RemoveFile(thumb))

            mode = "deleted" if self.policy.dedupe else "demoted"
            self.steps.append(
                RepairStep(
                    finding,
                    tuple(actions),
                    f"{finding.owner}: kept record {finding.record_key[1]} as primary, "
                    f"{mode} {len(finding.record_keys) - 1}",
                )
            )

    @staticmethod
    def _valid_name(name: str | None) -> bool:
        return bool(name) and "/" not in name and ".." not in name and ":" not in name

    def _plan_records(self, findings: list[Finding]) -> None:
        placeholder = self.snapshot.placeholder_filename

        # Files relocated from a shared legacy source: remove the source after
        # the last copy, and only if no other record still relies on it
        groups: dict[str, list[Finding]] = defaultdict(list)
        for finding in findings:
            if finding.path and finding.kind in (FindingKind.ORPHAN_RECORD, FindingKind.MISMATCHED_PATH):
                groups[finding.path].append(finding)

        for finding in findings:
            record = self.working[finding.record_key]
            actions: list[RepairAction] = []

            if finding.kind is FindingKind.BROKEN_REFERENCE or (
                finding.kind is FindingKind.ORPHAN_RECORD and finding.path is None
            ):
                updated = _placeholder_rewrite(record, placeholder)
                actions.append(SaveRecord(updated))
                self.working[record.key] = updated
                self.steps.append(
                    RepairStep(
                        finding,
                        tuple(actions),
                        f"{finding.owner}: record {record.id} now references the placeholder",
                    )
                )
                continue

            canonical = build_path(record.owner, record.filename)
            if finding.path and canonical not in self.snapshot.files:
                actions.append(CopyFile(finding.path, canonical))

            updated = replace(record, stored_path=canonical)
            if updated != record:
                actions.append(SaveRecord(updated))
                self.working[record.key] = updated

            if finding.path:
                group = groups[finding.path]
                group_keys = {f.record_key for f in group}
                if group[-1] is finding and self.surviving_refs(finding.path) <= group_keys:
                    require = tuple(
                        build_path(self.working[f.record_key].owner, self.working[f.record_key].filename)
                        for f in group
                    )
                    actions.append(RemoveFile(finding.path, require=require))

            verb = "relocated" if finding.kind is FindingKind.ORPHAN_RECORD else "re-scoped"
            self.steps.append(
                RepairStep(
                    finding,
                    tuple(actions),
                    f"{finding.owner}: record {record.id} {verb} to {canonical}",
                )
            )

    def _plan_orphan_files(self, findings: list[Finding]) -> None:
        owner_records: dict[Owner, list[ImageRecord]] = defaultdict(list)
        for key, record in self.working.items():
            if key not in self.deleted:
                owner_records[record.owner].append(record)

        for finding in findings:
            owner = finding.owner
            filename = finding.path.rsplit("/", 1)[-1]
            existing = owner_records[owner]
            record = ImageRecord(
                id=None,
                owner=owner,
                filename=filename,
                thumbnail_filename=_thumbnail_for(owner, filename, self.snapshot.files),
                is_primary=not existing,
                display_order=max((r.display_order for r in existing), default=-1) + 1,
                stored_path=finding.path,
            )
            existing.append(record)
            self.steps.append(
                RepairStep(
                    finding,
                    (SaveRecord(record),),
                    f"{owner}: registered {finding.path}"
                    + (" as primary" if record.is_primary else ""),
                )
            )


def plan_repair(report: Report, policy: RepairPolicy | None = None) -> list[RepairStep]:
    """Ordered repair steps for every actionable finding of ``report``."""
    return _Planner(report, policy or RepairPolicy()).plan()
