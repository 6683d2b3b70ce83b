"""
Backup Import API Routes

Two-step import workflow:
1. Preview - Upload a backup file; it is decoded, migrated and analyzed
2. Execute - Fold the analyzed records into the log with a merge policy

Plus restore from the debounced auto-backup snapshot.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile

from trelog_api.api.deps import PreviewCache, get_preview_cache, get_repository
from trelog_api.backup import BackupDecodeError, MergePolicy, analyze, decode_backup
from trelog_api.backup.models import ImportPreview
from trelog_api.models import BACKUP_TYPE
from trelog_api.services.storage import TrainingLogRepository

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Backup Import"])


def _preview_summary(import_id: str, preview: ImportPreview) -> dict:
    return {
        "import_id": import_id,
        **preview.model_dump(
            mode="json", by_alias=True, exclude={"sessions", "templates"}
        ),
    }


# ============================================================================
# Step 1: Preview
# ============================================================================

@router.post("/import/preview")
async def import_preview(
    file: UploadFile = File(...),
    require_type: bool = Query(False, description="Reject files whose __type is not a trelog backup"),
    cache: PreviewCache = Depends(get_preview_cache),
):
    """
    Analyze an uploaded backup without touching the stored log.

    Returns counts, the session date range and any warnings, plus an
    ``import_id`` to pass to the execute step.
    """
    content = await file.read()
    try:
        raw = decode_backup(content)
    except BackupDecodeError as e:
        raise HTTPException(status_code=400, detail=str(e))

    preview = analyze(raw)
    if require_type and preview.backup_type != BACKUP_TYPE:
        raise HTTPException(
            status_code=400,
            detail=f"Not a trelog backup (type: {preview.backup_type or 'missing'})",
        )

    import_id = str(uuid.uuid4())
    cache.put(import_id, preview)
    logger.info(
        f"Import {import_id} from {file.filename or 'upload'}: "
        f"{preview.counts.sessions} sessions, {preview.counts.templates} templates, "
        f"{len(preview.warnings)} warnings"
    )
    return _preview_summary(import_id, preview)


# ============================================================================
# Step 2: Execute
# ============================================================================

@router.post("/import/{import_id}/execute")
def import_execute(
    import_id: str,
    policy: MergePolicy = Query(MergePolicy.MERGE),
    cache: PreviewCache = Depends(get_preview_cache),
    repo: TrainingLogRepository = Depends(get_repository),
):
    """
    Reconcile a previewed import with the stored log and persist the result.

    A replace import that carries no sessions and no templates is refused with
    409 and the log is left as it was.
    """
    # Claiming the preview up front stops a second execute of the same import
    preview = cache.pop(import_id)
    if preview is None:
        raise HTTPException(status_code=404, detail="Import not found or already executed")

    if policy is MergePolicy.REPLACE and preview.is_empty:
        cache.put(import_id, preview)
        raise HTTPException(
            status_code=409,
            detail="Backup has no sessions or templates; nothing to replace",
        )

    result = repo.apply_import(preview, policy)

    return {
        "success": True,
        "policy": policy.value,
        "sessions": len(result.sessions),
        "templates": len(result.templates),
        "warnings": list(preview.warnings),
    }


@router.delete("/import/{import_id}")
def import_discard(
    import_id: str,
    cache: PreviewCache = Depends(get_preview_cache),
):
    """Drop a pending preview."""
    if cache.pop(import_id) is None:
        raise HTTPException(status_code=404, detail="Import not found")
    return {"success": True}


# ============================================================================
# Auto-backup
# ============================================================================

@router.post("/backup/restore-auto")
def restore_auto_backup(repo: TrainingLogRepository = Depends(get_repository)):
    """Replace history and templates with the last auto-backup snapshot."""
    if not repo.restore_auto_backup():
        raise HTTPException(status_code=404, detail="No auto-backup found")
    return {
        "success": True,
        "sessions": len(repo.load_history()),
        "templates": len(repo.load_templates()),
    }
