"""Submission, per-question answers, subject scores and final predictions."""

from enum import Enum

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
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from passcut.db.base import Base


class BonusType(str, Enum):
    """Bonus category. Veteran and hero bonuses are mutually exclusive."""

    NONE = "NONE"
    VETERAN_5 = "VETERAN_5"
    VETERAN_10 = "VETERAN_10"
    HERO_3 = "HERO_3"
    HERO_5 = "HERO_5"


class Submission(Base):
    """One exam attempt by one user."""

    __tablename__ = "submissions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    exam_id = Column(Integer, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    region_id = Column(Integer, ForeignKey("regions.id"), nullable=False)
    track = Column(String(16), nullable=False)
    gender = Column(String(16), nullable=True)
    exam_number = Column(String(50), nullable=True)
    total_score = Column(Float, nullable=False, default=0.0)
    bonus_type = Column(String(16), nullable=False, default=BonusType.NONE.value)
    bonus_rate = Column(Float, nullable=False, default=0.0)
    final_score = Column(Float, nullable=False, default=0.0)
    edit_count = Column(Integer, nullable=False, default=0)
    is_suspicious = Column(Boolean, nullable=False, default=False)
    suspicious_reasons = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    user = relationship("User")
    region = relationship("Region")
    exam = relationship("Exam")
    user_answers = relationship(
        "UserAnswer", back_populates="submission", cascade="all, delete-orphan"
    )
    subject_scores = relationship(
        "SubjectScore", back_populates="submission", cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("exam_id", "user_id", name="uq_submissions_exam_user"),
        Index("ix_submissions_exam_region_track", "exam_id", "region_id", "track"),
        Index("ix_submissions_exam_track_final_score", "exam_id", "track", "final_score"),
    )

    @property
    def has_cutoff(self) -> bool:
        return any(score.is_failed for score in self.subject_scores)


class UserAnswer(Base):
    """Selected choice for one question, with cached correctness."""

    __tablename__ = "user_answers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    submission_id = Column(
        Integer, ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False
    )
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=False)
    question_number = Column(Integer, nullable=False)
    selected_answer = Column(Integer, nullable=False)
    is_correct = Column(Boolean, nullable=False, default=False)

    submission = relationship("Submission", back_populates="user_answers")

    __table_args__ = (
        UniqueConstraint(
            "submission_id", "subject_id", "question_number", name="uq_user_answers_question"
        ),
    )


class SubjectScore(Base):
    """Raw score and cutoff flag of one subject in one submission."""

    __tablename__ = "subject_scores"

    id = Column(Integer, primary_key=True, autoincrement=True)
    submission_id = Column(
        Integer, ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False
    )
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=False)
    raw_score = Column(Float, nullable=False)
    is_failed = Column(Boolean, nullable=False, default=False)

    submission = relationship("Submission", back_populates="subject_scores")
    subject = relationship("Subject")

    __table_args__ = (
        UniqueConstraint("submission_id", "subject_id", name="uq_subject_scores_submission_subject"),
        Index("ix_subject_scores_subject_id", "subject_id"),
    )


class FinalPrediction(Base):
    """Post-written-exam inputs (fitness, interview) entered by the user."""

    __tablename__ = "final_predictions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    submission_id = Column(
        Integer, ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    fitness_score = Column(Float, nullable=True)  # martial-arts bonus points
    interview_score = Column(Float, nullable=True)  # additional bonus points
    interview_grade = Column(String(20), nullable=True)  # PASS | FAIL
    final_score = Column(Float, nullable=True)
    final_rank = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    submission = relationship("Submission")
