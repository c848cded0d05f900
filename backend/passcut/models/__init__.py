"""ORM models. Importing this package registers every table on Base.metadata."""

from passcut.models.exam import AnswerKey, Exam, Region, Subject, Track
from passcut.models.pass_cut import PassCutRelease, PassCutSnapshot, ReleaseSource, SnapshotStatus
from passcut.models.rescore import RescoreDetail, RescoreEvent
from passcut.models.site import Notice, SiteSetting
from passcut.models.submission import (
    BonusType,
    FinalPrediction,
    SubjectScore,
    Submission,
    UserAnswer,
)
from passcut.models.user import User, UserRole

__all__ = [
    "AnswerKey",
    "BonusType",
    "Exam",
    "FinalPrediction",
    "Notice",
    "PassCutRelease",
    "PassCutSnapshot",
    "Region",
    "ReleaseSource",
    "RescoreDetail",
    "RescoreEvent",
    "SiteSetting",
    "SnapshotStatus",
    "Subject",
    "SubjectScore",
    "Submission",
    "Track",
    "User",
    "UserAnswer",
    "UserRole",
]
