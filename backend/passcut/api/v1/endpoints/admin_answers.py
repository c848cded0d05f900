"""Admin answer-key API: preview, commit and manual rescore."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from passcut.core.config import settings
from passcut.db.session import get_db
from passcut.rescoring.preview import preview_answer_key
from passcut.rescoring.service import commit_answer_key, manual_rescore
from passcut.schemas.answer_key import AnswerKeyRequest, CommitResult, PreviewResult, RescoreRequest

router = APIRouter()


@router.post("/answers/preview", response_model=PreviewResult)
def preview_answers(request: AnswerKeyRequest, db: Session = Depends(get_db)) -> PreviewResult:
    """Impact of a proposed key; nothing is written."""
    return preview_answer_key(db, request.exam_id, request.track, request.is_confirmed, request.rows)


@router.post("/answers", response_model=CommitResult, status_code=status.HTTP_201_CREATED)
def save_answers(request: AnswerKeyRequest, db: Session = Depends(get_db)) -> CommitResult:
    """Replace the key of (exam, track) and rescore the exam."""
    reason = request.reason.strip() if request.reason and request.reason.strip() else None
    return commit_answer_key(
        db,
        exam_id=request.exam_id,
        track=request.track,
        is_confirmed=request.is_confirmed,
        rows=request.rows,
        reason=reason,
        admin_user_id=request.admin_user_id,
        batch_size=settings.RESCORE_BATCH_SIZE,
    )


@router.post("/rescore")
def rescore(request: RescoreRequest, db: Session = Depends(get_db)) -> dict[str, Any]:
    """Rescore every submission of an exam without changing the key."""
    reason = request.reason.strip() if request.reason and request.reason.strip() else None
    result = manual_rescore(
        db,
        exam_id=request.exam_id,
        track=request.track,
        reason=reason,
        admin_user_id=request.admin_user_id,
        batch_size=settings.RESCORE_BATCH_SIZE,
    )
    result["message"] = f"Rescored {result['rescored_count']} submissions"
    return result
