"""Pydantic schemas for result ranking and pass predictions."""

from enum import Enum
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class RankingBasis(str, Enum):
    ALL_PARTICIPANTS = "ALL_PARTICIPANTS"
    NON_CUTOFF_PARTICIPANTS = "NON_CUTOFF_PARTICIPANTS"


class PredictionGrade(str, Enum):
    SURE = "sure"
    LIKELY = "likely"
    POSSIBLE = "possible"
    CHALLENGE = "challenge"
    BELOW_CHALLENGE = "belowChallenge"


class RankPosition(BaseModel):
    rank: int
    percentile: float
    total_participants: int
    ranking_basis: RankingBasis


class SubjectRanking(RankPosition):
    subject_id: int
    subject_name: str
    raw_score: float
    max_score: float
    correct_count: int
    cutoff_score: float
    is_cutoff: bool


class SubmissionRanking(BaseModel):
    """Overall and per-subject standing of one submission."""

    submission_id: int
    exam_id: int
    region_id: int
    track: str
    total_score: float
    final_score: float
    has_cutoff: bool
    cutoff_subjects: list[str]
    overall: RankPosition
    subjects: list[SubjectRanking]


class PredictionLevel(BaseModel):
    key: PredictionGrade
    max_rank: int | None
    count: int
    min_score: float | None
    max_score: float | None


class Competitor(BaseModel):
    rank: int
    score: float
    masked_name: str
    is_mine: bool


class CompetitorPage(BaseModel):
    page: int
    limit: int
    total_count: int
    total_pages: int
    items: list[Competitor]


class PredictionResult(BaseModel):
    """Five-level pass prediction for one non-cutoff submission."""

    submission_id: int
    region_id: int
    track: str
    recruit_count: int
    total_participants: int
    my_rank: int
    my_score: float
    my_multiple: float
    pass_multiple: float
    pass_multiple_label: str
    likely_multiple: float
    challenge_multiple: float
    pass_count: int
    pass_line_score: float | None
    grade: PredictionGrade
    levels: list[PredictionLevel]
    competitors: CompetitorPage


class FinalPredictionIn(BaseModel):
    """Fitness and interview results entered after the written exam."""

    model_config = ConfigDict(populate_by_name=True)

    fitness_passed: bool = Field(validation_alias=AliasChoices("fitness_passed", "fitnessPassed"))
    martial_dan_level: float | None = Field(
        default=None, ge=0, validation_alias=AliasChoices("martial_dan_level", "martialDanLevel")
    )
    additional_bonus_point: float = Field(
        default=0.0, validation_alias=AliasChoices("additional_bonus_point", "additionalBonusPoint")
    )
    interview_grade: Literal["PASS", "FAIL"] | None = Field(
        default=None, validation_alias=AliasChoices("interview_grade", "interviewGrade")
    )
