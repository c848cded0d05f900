"""Pydantic schemas for rescore notifications."""

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from passcut.schemas.answer_key import ChangedQuestion


class RescoreNotification(BaseModel):
    id: int
    rescore_event_id: int
    exam_id: int
    track: str
    reason: str | None
    old_total_score: float
    new_total_score: float
    old_final_score: float
    new_final_score: float
    old_rank: int | None
    new_rank: int | None
    score_delta: float
    created_at: datetime | None
    changed_questions: list[ChangedQuestion]


class RescoreNotificationList(BaseModel):
    unread_count: int
    items: list[RescoreNotification]


class MarkReadRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: int = Field(validation_alias=AliasChoices("user_id", "userId"))
    detail_ids: list[int] | None = Field(default=None, validation_alias=AliasChoices("detail_ids", "ids"))
