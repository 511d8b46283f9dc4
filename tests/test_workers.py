"""Tests for the scheduled reconciliation worker."""

import os

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.image import ProductImage
from app.workers.image_reconciliation import ImageReconciliationWorker


def make_worker(test_engine, layout, tmp_path) -> ImageReconciliationWorker:
    return ImageReconciliationWorker(
        layout=layout,
        dedupe=False,
        lock_path=str(tmp_path / "reconcile.lock"),
        session_maker=async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False),
    )


@pytest.mark.asyncio
async def test_worker_registers_orphan_files(test_engine, db_session, sample_catalog, layout, write_upload, tmp_path):
    """Test one pass registers an orphan file and releases the lock."""
    write_upload("stores/3/products/22/y.jpg")

    await make_worker(test_engine, layout, tmp_path).run()

    rows = (await db_session.execute(select(ProductImage))).scalars().all()
    assert [(r.product_id, r.filename, r.is_primary) for r in rows] == [(22, "y.jpg", True)]
    assert not (tmp_path / "reconcile.lock").exists()


@pytest.mark.asyncio
async def test_worker_skips_when_locked(test_engine, db_session, sample_catalog, layout, write_upload, tmp_path):
    """Test a held lock skips the pass without raising."""
    write_upload("stores/3/products/22/y.jpg")
    (tmp_path / "reconcile.lock").write_text(str(os.getpid()))

    await make_worker(test_engine, layout, tmp_path).run()

    rows = (await db_session.execute(select(ProductImage))).scalars().all()
    assert rows == []
    assert (tmp_path / "reconcile.lock").exists()
