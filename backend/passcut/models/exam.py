"""Exam, region, subject and answer-key models."""

from enum import Enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from passcut.db.base import Base


class Track(str, Enum):
    """Exam track. Both tracks share the criminal-law and police-science subjects."""

    PUBLIC = "PUBLIC"
    CAREER = "CAREER"


class Exam(Base):
    """One exam sitting."""

    __tablename__ = "exams"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    year = Column(Integer, nullable=False)
    round = Column(Integer, nullable=False)
    exam_date = Column(Date, nullable=True)
    is_active = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (Index("ix_exams_is_active", "is_active"),)


class Region(Base):
    """Recruiting region with per-track recruit and applicant counts."""

    __tablename__ = "regions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)
    recruit_count = Column(Integer, nullable=False, default=0)
    recruit_count_career = Column(Integer, nullable=False, default=0)
    applicant_count = Column(Integer, nullable=True)
    applicant_count_career = Column(Integer, nullable=True)

    __table_args__ = (
        CheckConstraint("recruit_count >= 0", name="ck_regions_recruit_count"),
        CheckConstraint("recruit_count_career >= 0", name="ck_regions_recruit_count_career"),
    )

    def recruit_count_for(self, track: "Track | str") -> int:
        """Recruit count for a track (no cross-track fallback)."""
        if Track(track) == Track.CAREER:
            return self.recruit_count_career or 0
        return self.recruit_count or 0

    def applicant_count_for(self, track: "Track | str") -> int | None:
        """Known applicant count for a track, or None when not entered."""
        raw = self.applicant_count_career if Track(track) == Track.CAREER else self.applicant_count
        if raw is None or raw < 0:
            return None
        return int(raw)


class Subject(Base):
    """Exam subject configured per track."""

    __tablename__ = "subjects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    track = Column(String(16), nullable=False)
    name = Column(String(100), nullable=False)
    question_count = Column(Integer, nullable=False)
    point_per_question = Column(Float, nullable=False)
    max_score = Column(Float, nullable=False)

    __table_args__ = (UniqueConstraint("track", "name", name="uq_subjects_track_name"),)


class AnswerKey(Base):
    """Correct choice for one question of one subject in one exam."""

    __tablename__ = "answer_keys"

    id = Column(Integer, primary_key=True, autoincrement=True)
    exam_id = Column(Integer, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False)
    question_number = Column(Integer, nullable=False)
    correct_answer = Column(Integer, nullable=False)
    is_confirmed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    subject = relationship("Subject")

    __table_args__ = (
        UniqueConstraint(
            "exam_id", "subject_id", "question_number", name="uq_answer_keys_exam_subject_question"
        ),
        CheckConstraint("correct_answer BETWEEN 1 AND 4", name="ck_answer_keys_correct_answer"),
        Index("ix_answer_keys_exam_id", "exam_id"),
    )
