"""Rescore notification endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from passcut.db.session import get_db
from passcut.rescoring.notifications import (
    list_unread_rescore_notifications,
    mark_rescore_notifications_read,
)
from passcut.schemas.notification import MarkReadRequest, RescoreNotificationList

router = APIRouter()


@router.get("/rescore", response_model=RescoreNotificationList)
def list_rescore_notifications(
    user_id: int = Query(..., ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
) -> RescoreNotificationList:
    return list_unread_rescore_notifications(db, user_id, limit)


@router.post("/rescore/read")
def mark_rescore_read(request: MarkReadRequest, db: Session = Depends(get_db)) -> dict:
    updated = mark_rescore_notifications_read(db, request.user_id, request.detail_ids)
    return {"updated_count": updated}
