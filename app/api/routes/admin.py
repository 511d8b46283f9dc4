"""Image reconciliation administration endpoints."""

from fastapi import APIRouter, HTTPException, status

from app.core.deps import CurrentSuperuser, DBSession, Images, Layout, ReconcileLockPath
from app.imagestore.lock import ReconcileLockError
from app.imagestore.repair import RepairPolicy
from app.schemas.image import UploadsDiagnostic
from app.schemas.reconciliation import DiagnoseResponse, RepairRequest, RepairResponse
from app.services.reconciliation_service import ReconciliationService

router = APIRouter()


@router.get("/images/diagnose", response_model=DiagnoseResponse)
async def diagnose_images(
    db: DBSession,
    layout: Layout,
    lock_path: ReconcileLockPath,
    current_user: CurrentSuperuser,
) -> DiagnoseResponse:
    """Report divergences between image records and the uploads tree. Read-only."""
    service = ReconciliationService(db, layout, lock_path)
    report = await service.diagnose()
    return service.to_diagnose_response(report)


@router.post("/images/repair", response_model=RepairResponse)
async def repair_images(
    data: RepairRequest,
    db: DBSession,
    layout: Layout,
    lock_path: ReconcileLockPath,
    current_user: CurrentSuperuser,
) -> RepairResponse:
    """
    Diagnose and repair in one locked run.

    - **dedupe**: Delete losing duplicate primaries instead of demoting them
    - **dryRun**: Plan only; nothing is copied, removed or saved
    """
    service = ReconciliationService(db, layout, lock_path)
    try:
        run = await service.reconcile(RepairPolicy(dedupe=data.dedupe), dry_run=data.dry_run)
    except ReconcileLockError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return service.to_repair_response(run)


@router.get("/uploads-diagnostic", response_model=UploadsDiagnostic)
async def uploads_diagnostic(
    images: Images,
    current_user: CurrentSuperuser,
) -> UploadsDiagnostic:
    """Uploads tree counts and records whose files are missing."""
    return await images.uploads_diagnostic()
