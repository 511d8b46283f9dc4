"""Background workers for scheduled tasks."""

from app.workers.image_reconciliation import ImageReconciliationWorker

__all__ = [
    "ImageReconciliationWorker",
]
