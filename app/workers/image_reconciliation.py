"""Image reconciliation worker for keeping records and uploads in step."""

from loguru import logger

from app.core.config import get_settings
from app.db.session import async_session_maker
from app.imagestore.layout import StorageLayout
from app.imagestore.lock import ReconcileLockError
from app.imagestore.repair import RepairPolicy
from app.services.reconciliation_service import ReconciliationService

settings = get_settings()


class ImageReconciliationWorker:
    """Worker that diagnoses and repairs image storage on a schedule."""

    def __init__(
        self,
        layout: StorageLayout | None = None,
        dedupe: bool | None = None,
        lock_path: str | None = None,
        session_maker=async_session_maker,
    ):
        self.layout = layout or StorageLayout.from_settings(settings)
        self.dedupe = settings.reconcile_dedupe if dedupe is None else dedupe
        self.lock_path = lock_path or settings.reconcile_lock_file
        self.session_maker = session_maker

    async def run(self) -> None:
        """Run one reconciliation pass."""
        logger.info(f"Running image reconciliation (dedupe={self.dedupe})")

        async with self.session_maker() as db:
            service = ReconciliationService(db, self.layout, self.lock_path)
            try:
                run = await service.reconcile(RepairPolicy(dedupe=self.dedupe))
            except ReconcileLockError as e:
                logger.warning(f"Image reconciliation skipped: {e}")
                return
            except Exception as e:
                logger.error(f"Image reconciliation error: {e}")
                await db.rollback()
                return

        outcome = run.outcome
        remaining = len(run.remaining.actionable) if run.remaining else 0
        logger.info(
            f"Image reconciliation: {len(outcome.applied)} repairs applied, "
            f"{len(outcome.failed)} failed, {remaining} findings remaining"
        )
