"""Unread rescore notifications derived from RescoreDetail rows."""

import logging

from pydantic import ValidationError
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from passcut.models.rescore import RescoreDetail, RescoreEvent
from passcut.schemas.answer_key import ChangedQuestion
from passcut.schemas.notification import RescoreNotification, RescoreNotificationList

logger = logging.getLogger(__name__)


def parse_summary(summary) -> list[ChangedQuestion]:
    """Typed changed-question list from the stored JSON; malformed entries are skipped."""
    if not isinstance(summary, list):
        return []
    questions: list[ChangedQuestion] = []
    for item in summary:
        try:
            questions.append(ChangedQuestion.model_validate(item))
        except ValidationError:
            logger.warning("Skipping malformed rescore summary entry", extra={"entry": item})
    return questions


def list_unread_rescore_notifications(db: Session, user_id: int, limit: int = 20) -> RescoreNotificationList:
    unread_filter = (RescoreDetail.user_id == user_id, RescoreDetail.is_read.is_(False))
    unread_count = db.execute(select(func.count()).select_from(RescoreDetail).where(*unread_filter)).scalar_one()

    stmt = (
        select(RescoreDetail, RescoreEvent)
        .join(RescoreEvent, RescoreEvent.id == RescoreDetail.rescore_event_id)
        .where(*unread_filter)
        .order_by(RescoreDetail.created_at.desc(), RescoreDetail.id.desc())
        .limit(limit)
    )
    items = [
        RescoreNotification(
            id=detail.id,
            rescore_event_id=event.id,
            exam_id=event.exam_id,
            track=event.track,
            reason=event.reason,
            old_total_score=detail.old_total_score,
            new_total_score=detail.new_total_score,
            old_final_score=detail.old_final_score,
            new_final_score=detail.new_final_score,
            old_rank=detail.old_rank,
            new_rank=detail.new_rank,
            score_delta=detail.score_delta,
            created_at=detail.created_at,
            changed_questions=parse_summary(event.summary),
        )
        for detail, event in db.execute(stmt).all()
    ]
    return RescoreNotificationList(unread_count=unread_count, items=items)


def mark_rescore_notifications_read(db: Session, user_id: int, detail_ids: list[int] | None = None) -> int:
    """Mark the user's unread details (all, or just ``detail_ids``) as read."""
    stmt = (
        update(RescoreDetail)
        .where(RescoreDetail.user_id == user_id, RescoreDetail.is_read.is_(False))
        .values(is_read=True)
    )
    if detail_ids is not None:
        if not detail_ids:
            return 0
        stmt = stmt.where(RescoreDetail.id.in_(detail_ids))
    updated = db.execute(stmt.execution_options(synchronize_session=False)).rowcount
    db.commit()
    return updated or 0
