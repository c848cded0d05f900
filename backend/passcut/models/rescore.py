"""Rescore audit trail: one event per answer-key change, one detail per affected submission."""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from passcut.db.base import Base


class RescoreEvent(Base):
    """Answer-key change that triggered a rescore of one exam track."""

    __tablename__ = "rescore_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    exam_id = Column(Integer, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False)
    track = Column(String(16), nullable=False)
    reason = Column(Text, nullable=True)
    # [{subject_name, question_number, old_answer, new_answer}, ...]
    summary = Column(JSON, nullable=False, default=list)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    details = relationship("RescoreDetail", back_populates="event", cascade="all, delete-orphan")

    __table_args__ = (Index("ix_rescore_events_exam_id", "exam_id"),)


class RescoreDetail(Base):
    """Before/after scores of one submission for one rescore event."""

    __tablename__ = "rescore_details"

    id = Column(Integer, primary_key=True, autoincrement=True)
    rescore_event_id = Column(
        Integer, ForeignKey("rescore_events.id", ondelete="CASCADE"), nullable=False
    )
    submission_id = Column(
        Integer, ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False
    )
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    old_total_score = Column(Float, nullable=False)
    new_total_score = Column(Float, nullable=False)
    old_final_score = Column(Float, nullable=False)
    new_final_score = Column(Float, nullable=False)
    old_rank = Column(Integer, nullable=True)
    new_rank = Column(Integer, nullable=True)
    score_delta = Column(Float, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    event = relationship("RescoreEvent", back_populates="details")

    __table_args__ = (
        UniqueConstraint("rescore_event_id", "submission_id", name="uq_rescore_details_event_submission"),
        Index("ix_rescore_details_user_read", "user_id", "is_read"),
    )
