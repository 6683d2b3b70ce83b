"""
Training Log API Routes

History, the current draft, templates, statistics and exports.
"""

import json
import logging
from typing import Literal, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from fastapi.responses import Response

from trelog_api import __version__
from trelog_api.models import Session
from trelog_api.services import draft_service
from trelog_api.services.aggregator import Granularity, flat_summary, group_sessions, summarize
from trelog_api.services.draft_service import EmptyTemplateError
from trelog_api.services.export_service import BackupScope, ExportService
from trelog_api.services.search_filter import filter_sessions
from trelog_api.services.storage import TrainingLogRepository
from trelog_api.api.deps import get_repository

logger = logging.getLogger(__name__)

router = APIRouter()


def _attachment(filename: str) -> dict:
    return {"Content-Disposition": f'attachment; filename="{filename}"'}


def _filtered(repo: TrainingLogRepository, q: str, only_with_sets: bool):
    return filter_sessions(repo.load_history(), q, only_with_sets)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get("/health")
def health():
    """Health check endpoint."""
    return {"ok": True, "version": __version__}


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


@router.get("/sessions", tags=["Sessions"])
def list_sessions(
    q: str = Query("", description="Case-insensitive text search"),
    only_with_sets: bool = Query(False),
    repo: TrainingLogRepository = Depends(get_repository),
):
    """Session history, newest first, filtered by text and the set flag."""
    return [s.to_wire() for s in _filtered(repo, q, only_with_sets)]


@router.get("/sessions/grouped", tags=["Sessions"])
def list_sessions_grouped(
    granularity: Granularity = Query(Granularity.WEEK),
    q: str = Query(""),
    only_with_sets: bool = Query(False),
    repo: TrainingLogRepository = Depends(get_repository),
):
    """History grouped by week or month, newest bucket first."""
    groups = group_sessions(_filtered(repo, q, only_with_sets), granularity)
    return [
        {"bucket": key, "sessions": [s.to_wire() for s in sessions]}
        for key, sessions in groups
    ]


@router.post("/sessions", tags=["Sessions"])
def save_session(
    session: Optional[Session] = Body(None),
    repo: TrainingLogRepository = Depends(get_repository),
):
    """
    Save a session into history.

    Without a body the current draft is saved and a fresh draft is started.
    """
    from_draft = session is None
    if from_draft:
        session = repo.load_draft()

    if not draft_service.can_save(session):
        raise HTTPException(status_code=400, detail="Session is empty; add a title, notes or a set first")

    saved = draft_service.finalize_session(session)
    repo.add_session(saved)
    if from_draft:
        repo.save_draft(draft_service.new_session())
    logger.info(f"Saved session {saved.id} ({saved.date or 'no date'})")
    return saved.to_wire()


@router.delete("/sessions/{session_id}", tags=["Sessions"])
def delete_session(session_id: str, repo: TrainingLogRepository = Depends(get_repository)):
    if not repo.delete_session(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return {"success": True}


# ---------------------------------------------------------------------------
# Draft
# ---------------------------------------------------------------------------


@router.get("/draft", tags=["Draft"])
def get_draft(repo: TrainingLogRepository = Depends(get_repository)):
    return repo.load_draft().to_wire()


@router.put("/draft", tags=["Draft"])
def put_draft(session: Session, repo: TrainingLogRepository = Depends(get_repository)):
    """Replace the current draft."""
    repo.save_draft(session)
    return session.to_wire()


@router.post("/draft/reset", tags=["Draft"])
def reset_draft(repo: TrainingLogRepository = Depends(get_repository)):
    """Discard the current draft and start a blank one dated today."""
    draft = draft_service.new_session()
    repo.save_draft(draft)
    return draft.to_wire()


@router.post("/draft/exercises", tags=["Draft"])
def add_draft_exercise(
    name: str = Body("", embed=True),
    repo: TrainingLogRepository = Depends(get_repository),
):
    draft = draft_service.add_exercise(repo.load_draft(), name)
    repo.save_draft(draft)
    return draft.to_wire()


def _draft_block(draft: Session, exercise_id: str):
    block = next((ex for ex in draft.exercises if ex.id == exercise_id), None)
    if block is None:
        raise HTTPException(status_code=404, detail="Exercise not found")
    return block


@router.delete("/draft/exercises/{exercise_id}", tags=["Draft"])
def remove_draft_exercise(exercise_id: str, repo: TrainingLogRepository = Depends(get_repository)):
    draft = repo.load_draft()
    _draft_block(draft, exercise_id)
    draft = draft_service.remove_exercise(draft, exercise_id)
    repo.save_draft(draft)
    return draft.to_wire()


@router.post("/draft/exercises/{exercise_id}/sets", tags=["Draft"])
def add_draft_set(
    exercise_id: str,
    copy_from_last: bool = Query(False, description="Copy weight, reps and RPE from the last set"),
    repo: TrainingLogRepository = Depends(get_repository),
):
    draft = repo.load_draft()
    block = draft_service.add_set(_draft_block(draft, exercise_id), copy_from_last)
    draft = draft_service.update_exercise(draft, block)
    repo.save_draft(draft)
    return draft.to_wire()


@router.delete("/draft/exercises/{exercise_id}/sets/{set_id}", tags=["Draft"])
def remove_draft_set(
    exercise_id: str,
    set_id: str,
    repo: TrainingLogRepository = Depends(get_repository),
):
    draft = repo.load_draft()
    block = draft_service.remove_set(_draft_block(draft, exercise_id), set_id)
    draft = draft_service.update_exercise(draft, block)
    repo.save_draft(draft)
    return draft.to_wire()


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


@router.get("/templates", tags=["Templates"])
def list_templates(repo: TrainingLogRepository = Depends(get_repository)):
    return [t.to_wire() for t in repo.load_templates()]


@router.post("/templates", tags=["Templates"])
def create_template(
    name: str = Body("", embed=True),
    repo: TrainingLogRepository = Depends(get_repository),
):
    """Save the current draft's exercise list as a template."""
    try:
        template = draft_service.template_from_session(repo.load_draft(), name)
    except EmptyTemplateError as e:
        raise HTTPException(status_code=400, detail=str(e))
    repo.add_template(template)
    return template.to_wire()


@router.post("/templates/{template_id}/apply", tags=["Templates"])
def apply_template(
    template_id: str,
    mode: Literal["replace", "append"] = Query("replace"),
    repo: TrainingLogRepository = Depends(get_repository),
):
    """Copy a template's exercises (with fresh ids) into the current draft."""
    template = repo.get_template(template_id)
    if template is None:
        raise HTTPException(status_code=404, detail="Template not found")
    draft = draft_service.apply_template(repo.load_draft(), template, mode)
    repo.save_draft(draft)
    return draft.to_wire()


@router.delete("/templates/{template_id}", tags=["Templates"])
def delete_template(template_id: str, repo: TrainingLogRepository = Depends(get_repository)):
    if not repo.delete_template(template_id):
        raise HTTPException(status_code=404, detail="Template not found")
    return {"success": True}


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------


@router.get("/stats/summary", tags=["Stats"])
def stats_summary(
    granularity: Granularity = Query(Granularity.WEEK),
    q: str = Query(""),
    only_with_sets: bool = Query(False),
    repo: TrainingLogRepository = Depends(get_repository),
):
    """Chart buckets plus totals over the filtered history."""
    sessions = _filtered(repo, q, only_with_sets)
    return {
        "granularity": granularity.value,
        "buckets": [b.model_dump() for b in summarize(sessions, granularity)],
        "summary": flat_summary(sessions).model_dump(),
    }


# ---------------------------------------------------------------------------
# Export routes
# ---------------------------------------------------------------------------


@router.get("/export/csv", tags=["Export"])
def export_csv(
    q: str = Query(""),
    only_with_sets: bool = Query(False),
    repo: TrainingLogRepository = Depends(get_repository),
):
    """Export the filtered history as CSV, one row per set."""
    csv_text = ExportService.render_sessions_csv(_filtered(repo, q, only_with_sets))
    return Response(
        content=csv_text,
        media_type="text/csv; charset=utf-8",
        headers=_attachment(ExportService.export_filename("filtered")),
    )


@router.get("/export/backup", tags=["Export"])
def export_backup(
    scope: BackupScope = Query(BackupScope.ALL),
    repo: TrainingLogRepository = Depends(get_repository),
):
    """Download a JSON backup of sessions, templates, or both."""
    payload = ExportService.build_backup(repo.load_history(), repo.load_templates(), scope)
    kind = "backup" if scope is BackupScope.ALL else scope.value
    return Response(
        content=json.dumps(payload, indent=2, ensure_ascii=False),
        media_type="application/json",
        headers=_attachment(ExportService.export_filename(kind)),
    )
