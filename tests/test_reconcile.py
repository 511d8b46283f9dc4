"""Tests for diagnosis and repair planning.

These run entirely on snapshots; nothing touches disk or a database.
"""

from datetime import datetime

from app.imagestore.owner import ProductOwner, StoreOwner
from app.imagestore.reconcile import FindingKind, Snapshot, diagnose
from app.imagestore.records import ImageRecord
from app.imagestore.repair import (
    CopyFile,
    DeleteRecord,
    RemoveFile,
    RepairPolicy,
    SaveRecord,
    plan_repair,
)

EARLY = datetime(2024, 1, 1, 9, 0)
LATE = datetime(2024, 1, 2, 9, 0)


def snapshot(records, files):
    return Snapshot(records=tuple(records), files=frozenset(files))


def actions_of(steps, action_type):
    return [a for step in steps for a in step.actions if isinstance(a, action_type)]


def test_consistent_state_is_clean():
    owner = StoreOwner(3)
    report = diagnose(
        snapshot(
            [ImageRecord(1, owner, "a.jpg", is_primary=True, stored_path="stores/3/a.jpg")],
            ["stores/3/a.jpg"],
        )
    )

    assert report.findings == []
    assert report.is_clean
    assert plan_repair(report) == []


def test_orphan_file_registration_creates_primary_record():
    report = diagnose(snapshot([], ["stores/4/products/11/y.jpg"]))

    assert report.count(FindingKind.ORPHAN_FILE) == 1
    finding = report.findings[0]
    assert finding.owner == ProductOwner(4, 11)
    assert finding.path == "stores/4/products/11/y.jpg"

    steps = plan_repair(report)
    saved = actions_of(steps, SaveRecord)
    assert len(saved) == 1
    record = saved[0].record
    assert record.id is None
    assert record.owner == ProductOwner(4, 11)
    assert record.filename == "y.jpg"
    assert record.is_primary is True
    assert record.display_order == 0


def test_orphan_file_for_owner_with_records_is_not_primary():
    owner = StoreOwner(3)
    existing = ImageRecord(1, owner, "a.jpg", is_primary=True, display_order=4)
    report = diagnose(snapshot([existing], ["stores/3/a.jpg", "stores/3/b.jpg"]))

    assert [f.kind for f in report.findings] == [FindingKind.ORPHAN_FILE]

    record = actions_of(plan_repair(report), SaveRecord)[0].record
    assert record.filename == "b.jpg"
    assert record.is_primary is False
    assert record.display_order == 5


def test_orphan_file_picks_up_existing_thumbnail():
    report = diagnose(snapshot([], ["stores/3/b.jpg", "stores/3/thumbnails/thumb-b.jpg"]))

    record = actions_of(plan_repair(report), SaveRecord)[0].record
    assert record.thumbnail_filename == "thumb-b.jpg"


def test_file_of_missing_owner_is_unknown_owner_not_orphan():
    snap = Snapshot(
        records=(),
        files=frozenset(["stores/3/products/21/a.jpg", "stores/4/products/11/y.jpg", "stores/9/b.jpg"]),
        owners=frozenset([StoreOwner(3), ProductOwner(3, 21)]),
    )
    report = diagnose(snap)

    assert report.count(FindingKind.ORPHAN_FILE) == 1
    assert report.count(FindingKind.UNKNOWN_OWNER) == 2
    assert all(not f.actionable for f in report.findings if f.kind == FindingKind.UNKNOWN_OWNER)
    assert len(plan_repair(report)) == 1


def test_thumbnails_and_legacy_files_are_not_orphans():
    report = diagnose(snapshot([], ["stores/3/thumbnails/a.jpg", "originals/a.jpg", "a.jpg", "stores/3/notes.txt"]))

    assert report.findings == []


def test_orphan_record_with_fallback_copies_then_removes_source():
    owner = ProductOwner(3, 21)
    record = ImageRecord(1, owner, "x.jpg", is_primary=True, stored_path="x.jpg")
    report = diagnose(snapshot([record], ["x.jpg"]))

    [finding] = report.findings
    assert finding.kind is FindingKind.ORPHAN_RECORD
    assert finding.path == "x.jpg"

    [step] = plan_repair(report)
    copy, save, remove = step.actions
    assert copy == CopyFile("x.jpg", "stores/3/products/21/x.jpg")
    assert isinstance(save, SaveRecord)
    assert save.record.stored_path == "stores/3/products/21/x.jpg"
    assert remove == RemoveFile("x.jpg", require=("stores/3/products/21/x.jpg",))


def test_shared_legacy_source_is_removed_after_last_copy_only():
    a = ImageRecord(1, ProductOwner(3, 21), "x.jpg", is_primary=True)
    b = ImageRecord(2, ProductOwner(3, 22), "x.jpg", is_primary=True)
    report = diagnose(snapshot([a, b], ["originals/x.jpg"]))

    steps = plan_repair(report)

    copies = actions_of(steps, CopyFile)
    assert {c.destination for c in copies} == {
        "stores/3/products/21/x.jpg",
        "stores/3/products/22/x.jpg",
    }
    [remove] = actions_of(steps, RemoveFile)
    assert remove.path == "originals/x.jpg"
    assert set(remove.require) == {c.destination for c in copies}
    assert remove in steps[-1].actions


def test_legacy_source_used_by_a_healthy_record_is_kept():
    store_record = ImageRecord(1, StoreOwner(3), "x.jpg", is_primary=True)
    product_record = ImageRecord(2, ProductOwner(3, 21), "x.jpg", is_primary=True)
    report = diagnose(snapshot([store_record, product_record], ["stores/3/x.jpg"]))

    [finding] = report.findings
    assert finding.kind is FindingKind.ORPHAN_RECORD
    assert finding.path == "stores/3/x.jpg"

    steps = plan_repair(report)
    assert actions_of(steps, CopyFile) == [CopyFile("stores/3/x.jpg", "stores/3/products/21/x.jpg")]
    assert actions_of(steps, RemoveFile) == []


def test_orphan_record_without_fallback_is_rewritten_to_placeholder():
    owner = StoreOwner(4)
    record = ImageRecord(1, owner, "a.jpg", thumbnail_filename="t.jpg", is_primary=True, display_order=2)
    report = diagnose(snapshot([record], []))

    [finding] = report.findings
    assert finding.kind is FindingKind.ORPHAN_RECORD
    assert finding.path is None

    [save] = actions_of(plan_repair(report), SaveRecord)
    assert save.record.filename == "placeholder.svg"
    assert save.record.thumbnail_filename is None
    assert save.record.display_order == 2
    assert save.record.is_primary is True


def test_placeholder_reference_is_reported_but_not_actionable():
    record = ImageRecord(1, StoreOwner(4), "placeholder.svg", is_primary=True)
    report = diagnose(snapshot([record], []))

    assert report.count(FindingKind.PLACEHOLDER_REFERENCE) == 1
    assert report.is_clean
    assert plan_repair(report) == []


def test_mismatched_path_is_rescoped_to_declared_owner():
    owner = ProductOwner(3, 21)
    record = ImageRecord(1, owner, "loaf.jpg", is_primary=True, stored_path="stores/3/products/22/loaf.jpg")
    report = diagnose(snapshot([record], ["stores/3/products/22/loaf.jpg"]))

    [finding] = report.findings
    assert finding.kind is FindingKind.MISMATCHED_PATH
    assert finding.path == "stores/3/products/22/loaf.jpg"

    [step] = plan_repair(report)
    assert step.actions[0] == CopyFile("stores/3/products/22/loaf.jpg", "stores/3/products/21/loaf.jpg")
    assert step.actions[1].record.stored_path == "stores/3/products/21/loaf.jpg"
    assert isinstance(step.actions[2], RemoveFile)


def test_mismatched_source_owned_by_another_record_is_kept():
    mine = ImageRecord(1, ProductOwner(3, 21), "loaf.jpg", stored_path="stores/3/products/22/loaf.jpg")
    theirs = ImageRecord(2, ProductOwner(3, 22), "loaf.jpg", stored_path="stores/3/products/22/loaf.jpg")
    report = diagnose(snapshot([mine, theirs], ["stores/3/products/22/loaf.jpg"]))

    steps = plan_repair(report)

    assert len(actions_of(steps, CopyFile)) == 1
    assert actions_of(steps, RemoveFile) == []


def test_blob_reference_is_broken_and_rewritten():
    record = ImageRecord(1, StoreOwner(3), "blob:http://host/abc", is_primary=True)
    report = diagnose(snapshot([record], []))

    [finding] = report.findings
    assert finding.kind is FindingKind.BROKEN_REFERENCE

    steps = plan_repair(report)
    assert actions_of(steps, CopyFile) == []
    [save] = actions_of(steps, SaveRecord)
    assert save.record.filename == "placeholder.svg"


def duplicate_snapshot():
    owner = StoreOwner(3)
    a = ImageRecord(1, owner, "a.jpg", thumbnail_filename="a.jpg", is_primary=True, created_at=EARLY)
    b = ImageRecord(2, owner, "b.jpg", is_primary=True, created_at=LATE)
    return snapshot([a, b], ["stores/3/a.jpg", "stores/3/b.jpg", "stores/3/thumbnails/a.jpg"])


def test_duplicate_primary_survivor_is_newest():
    report = diagnose(duplicate_snapshot())

    [finding] = [f for f in report.findings if f.kind is FindingKind.DUPLICATE_PRIMARY]
    assert finding.record_keys == (("store", 2), ("store", 1))


def test_duplicate_primary_without_dedupe_demotes():
    steps = plan_repair(diagnose(duplicate_snapshot()))

    [save] = actions_of(steps, SaveRecord)
    assert save.record.id == 1
    assert save.record.is_primary is False
    assert actions_of(steps, DeleteRecord) == []
    assert actions_of(steps, RemoveFile) == []


def test_duplicate_primary_with_dedupe_deletes_loser_and_files():
    steps = plan_repair(diagnose(duplicate_snapshot()), RepairPolicy(dedupe=True))

    [delete] = actions_of(steps, DeleteRecord)
    assert delete.record.id == 1
    assert {r.path for r in actions_of(steps, RemoveFile)} == {
        "stores/3/a.jpg",
        "stores/3/thumbnails/a.jpg",
    }
    assert actions_of(steps, SaveRecord) == []


def test_dedupe_keeps_files_still_used_by_survivor():
    owner = StoreOwner(3)
    a = ImageRecord(1, owner, "same.jpg", is_primary=True, created_at=EARLY)
    b = ImageRecord(2, owner, "same.jpg", is_primary=True, created_at=LATE)
    steps = plan_repair(diagnose(snapshot([a, b], ["stores/3/same.jpg"])), RepairPolicy(dedupe=True))

    assert len(actions_of(steps, DeleteRecord)) == 1
    assert actions_of(steps, RemoveFile) == []


def test_dedupe_skips_per_record_repair_of_deleted_records():
    owner = StoreOwner(3)
    a = ImageRecord(1, owner, "blob:http://host/1", is_primary=True, created_at=EARLY)
    b = ImageRecord(2, owner, "b.jpg", is_primary=True, created_at=LATE)
    steps = plan_repair(diagnose(snapshot([a, b], ["stores/3/b.jpg"])), RepairPolicy(dedupe=True))

    assert [d.record.id for d in actions_of(steps, DeleteRecord)] == [1]
    assert actions_of(steps, SaveRecord) == []


def test_repair_plan_applied_to_snapshot_is_idempotent():
    """Simulate the executor on a snapshot and diagnose again."""
    owner = ProductOwner(3, 21)
    records = [
        ImageRecord(1, owner, "x.jpg", is_primary=True, stored_path="x.jpg", created_at=EARLY),
        ImageRecord(2, owner, "y.jpg", is_primary=True, created_at=LATE),
        ImageRecord(3, StoreOwner(3), "blob:http://host/abc"),
    ]
    files = {"x.jpg", "stores/3/products/21/y.jpg", "stores/3/z.jpg"}

    steps = plan_repair(diagnose(snapshot(records, files)))

    state = {r.key: r for r in records}
    next_id = 100
    for action in (a for step in steps for a in step.actions):
        if isinstance(action, CopyFile):
            files.add(action.destination)
        elif isinstance(action, RemoveFile):
            files.discard(action.path)
        elif isinstance(action, SaveRecord):
            record = action.record
            if record.id is None:
                next_id += 1
                record = ImageRecord(next_id, record.owner, record.filename, record.thumbnail_filename,
                                     record.is_primary, record.display_order, LATE, record.stored_path)
            state[record.key] = record

    again = diagnose(snapshot(state.values(), files))

    assert again.is_clean
    assert "x.jpg" not in files
    primaries = [r for r in state.values() if r.owner == owner and r.is_primary]
    assert [r.id for r in primaries] == [2]


def test_placeholder_named_file_is_never_registered():
    """Repeated runs over a copied placeholder converge without new records."""
    files = {"stores/3/placeholder.svg", "stores/3/products/21/placeholder.svg"}
    records = []

    for _ in range(3):
        report = diagnose(snapshot(records, files))
        assert report.count(FindingKind.ORPHAN_FILE) == 0
        records.extend(action.record for action in actions_of(plan_repair(report), SaveRecord))

    assert records == []


def test_placeholder_record_claims_its_canonical_file():
    owner = StoreOwner(3)
    report = diagnose(
        snapshot([ImageRecord(1, owner, "placeholder.svg", is_primary=True)], ["stores/3/placeholder.svg"])
    )

    assert [f.kind for f in report.findings] == [FindingKind.PLACEHOLDER_REFERENCE]
    assert "stores/3/placeholder.svg" in report.references
    assert report.is_clean
