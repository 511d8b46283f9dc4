"""Reconciliation service: diagnose and repair the uploads tree against the records."""

from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.imagestore.executor import RepairExecutor, RepairOutcome, take_snapshot
from app.imagestore.layout import StorageLayout
from app.imagestore.lock import ReconcileLock
from app.imagestore.reconcile import Finding, Report, diagnose
from app.imagestore.records import RecordKey
from app.imagestore.repair import RepairPolicy, RepairStep, plan_repair
from app.schemas.reconciliation import (
    DiagnoseResponse,
    FindingDTO,
    RepairResponse,
    RepairStepDTO,
)
from app.services.image_record_store import SqlImageRecordStore


@dataclass
class ReconcileRun:
    """A planned, and unless dry-run executed, repair batch."""

    policy: RepairPolicy
    dry_run: bool
    steps: list[RepairStep] = field(default_factory=list)
    outcome: RepairOutcome = field(default_factory=RepairOutcome)
    remaining: Report | None = None


def _record_id(key: RecordKey | None) -> int | None:
    if key is None or key[1] < 0:
        return None
    return key[1]


class ReconciliationService:
    """Runs diagnosis and repair under the reconciliation lock."""

    def __init__(self, db: AsyncSession, layout: StorageLayout, lock_path: str | Path):
        self.db = db
        self.layout = layout
        self.store = SqlImageRecordStore(db)
        self.lock_path = Path(lock_path)

    async def diagnose(self) -> Report:
        """Diagnose a fresh snapshot of records and files."""
        snapshot = await take_snapshot(self.store, self.layout)
        report = diagnose(snapshot)
        logger.info(
            f"Image diagnosis: {len(snapshot.records)} records, {len(snapshot.files)} files, "
            f"{len(report.actionable)} actionable findings"
        )
        return report

    async def repair(self, report: Report, policy: RepairPolicy) -> tuple[list[RepairStep], RepairOutcome]:
        """Plan and apply repairs for ``report``."""
        steps = plan_repair(report, policy)
        outcome = await RepairExecutor(self.layout, self.store).execute(steps)
        logger.info(
            f"Image repair: {len(outcome.applied)} applied, {len(outcome.failed)} failed, "
            f"{outcome.copied_files} copied, {outcome.removed_files} removed"
        )
        return steps, outcome

    async def reconcile(self, policy: RepairPolicy | None = None, dry_run: bool = False) -> ReconcileRun:
        """
        Diagnose, plan and repair in one locked run.

        Raises ReconcileLockError when another run holds the lock.
        """
        policy = policy or RepairPolicy()
        run = ReconcileRun(policy=policy, dry_run=dry_run)

        with ReconcileLock(self.lock_path):
            report = await self.diagnose()
            if dry_run:
                run.steps = plan_repair(report, policy)
                run.remaining = report
                return run

            run.steps, run.outcome = await self.repair(report, policy)
            run.remaining = await self.diagnose()

        return run

    @staticmethod
    def to_finding_dto(finding: Finding) -> FindingDTO:
        return FindingDTO(
            kind=finding.kind.value,
            owner=str(finding.owner),
            record_id=_record_id(finding.record_key),
            path=finding.path,
            record_ids=[k[1] for k in finding.record_keys if k[1] >= 0],
            detail=finding.detail,
            actionable=finding.actionable,
        )

    @classmethod
    def to_diagnose_response(cls, report: Report) -> DiagnoseResponse:
        return DiagnoseResponse(
            records=len(report.snapshot.records),
            files=len(report.snapshot.files),
            clean=report.is_clean,
            summary=report.summary(),
            findings=[cls.to_finding_dto(f) for f in report.findings],
        )

    @staticmethod
    def to_repair_response(run: ReconcileRun) -> RepairResponse:
        applied = {id(step) for step in run.outcome.applied}
        errors = {id(step): message for step, message in run.outcome.failed}
        return RepairResponse(
            dry_run=run.dry_run,
            dedupe=run.policy.dedupe,
            steps=[
                RepairStepDTO(
                    kind=step.finding.kind.value,
                    owner=str(step.finding.owner),
                    description=step.description,
                    applied=id(step) in applied,
                    error=errors.get(id(step)),
                )
                for step in run.steps
            ],
            copied_files=run.outcome.copied_files,
            removed_files=run.outcome.removed_files,
            kept_files=run.outcome.kept_files,
            saved_records=run.outcome.saved_records,
            deleted_records=run.outcome.deleted_records,
            failed=len(run.outcome.failed),
            remaining=run.remaining.summary() if run.remaining else {},
        )
