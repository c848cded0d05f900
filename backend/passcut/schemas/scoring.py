"""Pydantic schemas for single-submission scoring."""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from passcut.models.exam import Track
from passcut.models.submission import BonusType


class SelectedAnswerIn(BaseModel):
    """A user's selected choice for one question."""

    model_config = ConfigDict(populate_by_name=True)

    subject_name: str = Field(validation_alias=AliasChoices("subject_name", "subjectName"))
    question_no: int = Field(
        validation_alias=AliasChoices("question_no", "questionNo", "question_number", "questionNumber")
    )
    answer: int


class ScoreRequest(BaseModel):
    """Submission scoring request."""

    model_config = ConfigDict(populate_by_name=True)

    exam_id: int = Field(validation_alias=AliasChoices("exam_id", "examId"))
    track: Track
    answers: list[SelectedAnswerIn]
    bonus_type: BonusType = Field(
        default=BonusType.NONE, validation_alias=AliasChoices("bonus_type", "bonusType")
    )
    veteran_percent: int | None = Field(
        default=None, validation_alias=AliasChoices("veteran_percent", "veteranPercent")
    )
    hero_percent: int | None = Field(default=None, validation_alias=AliasChoices("hero_percent", "heroPercent"))
    bonus_rate: float | None = Field(default=None, validation_alias=AliasChoices("bonus_rate", "bonusRate"))
    duration_seconds: float | None = Field(
        default=None, validation_alias=AliasChoices("duration_seconds", "durationSeconds")
    )


class SubjectScoreOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    subject_id: int
    subject_name: str
    question_count: int
    correct_count: int
    raw_score: float
    max_score: float
    bonus_score: float
    final_score: float
    is_cutoff: bool


class ScoreResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    subjects: list[SubjectScoreOut]
    total_score: float
    bonus_rate: float
    bonus_score: float
    final_score: float
    has_cutoff: bool
    suspicious_reasons: list[str] = []
