"""Pass-cut releases and their per-region/track snapshots."""

from enum import Enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from passcut.db.base import Base


class SnapshotStatus(str, Enum):
    """Readiness of one region/track row."""

    READY = "READY"
    COLLECTING_LOW_PARTICIPATION = "COLLECTING_LOW_PARTICIPATION"
    COLLECTING_UNSTABLE = "COLLECTING_UNSTABLE"
    COLLECTING_MISSING_APPLICANT_COUNT = "COLLECTING_MISSING_APPLICANT_COUNT"
    COLLECTING_INSUFFICIENT_SAMPLE = "COLLECTING_INSUFFICIENT_SAMPLE"


class ReleaseSource(str, Enum):
    """Who created a release."""

    ADMIN = "ADMIN"
    AUTO = "AUTO"


class PassCutRelease(Base):
    """Numbered (1..4) pass-cut announcement for an exam."""

    __tablename__ = "pass_cut_releases"

    id = Column(Integer, primary_key=True, autoincrement=True)
    exam_id = Column(Integer, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False)
    release_number = Column(Integer, nullable=False)
    released_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    participant_count = Column(Integer, nullable=False, default=0)
    source = Column(String(16), nullable=False, default=ReleaseSource.ADMIN.value)
    memo = Column(Text, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)

    snapshots = relationship(
        "PassCutSnapshot", back_populates="release", cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("exam_id", "release_number", name="uq_pass_cut_releases_exam_number"),
        CheckConstraint("release_number BETWEEN 1 AND 4", name="ck_pass_cut_releases_number"),
    )


class PassCutSnapshot(Base):
    """Frozen pass-cut figures for one region/track at release time."""

    __tablename__ = "pass_cut_snapshots"

    id = Column(Integer, primary_key=True, autoincrement=True)
    release_id = Column(
        Integer, ForeignKey("pass_cut_releases.id", ondelete="CASCADE"), nullable=False
    )
    region_id = Column(Integer, ForeignKey("regions.id"), nullable=False)
    track = Column(String(16), nullable=False)
    status = Column(String(48), nullable=True)
    status_reason = Column(Text, nullable=True)
    participant_count = Column(Integer, nullable=False, default=0)
    recruit_count = Column(Integer, nullable=False, default=0)
    applicant_count = Column(Integer, nullable=True)
    target_participant_count = Column(Integer, nullable=True)
    coverage_rate = Column(Float, nullable=True)
    stability_score = Column(Float, nullable=True)
    average_score = Column(Float, nullable=True)
    one_multiple_cut_score = Column(Float, nullable=True)
    sure_min_score = Column(Float, nullable=True)
    likely_min_score = Column(Float, nullable=True)
    possible_min_score = Column(Float, nullable=True)

    release = relationship("PassCutRelease", back_populates="snapshots")

    __table_args__ = (
        UniqueConstraint("release_id", "region_id", "track", name="uq_pass_cut_snapshots_row"),
    )
