"""Pydantic schemas for answer-key preview, commit and rescoring."""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from passcut.models.exam import Track

# ============================================================================
# Input
# ============================================================================


class RawAnswerRow(BaseModel):
    """One proposed answer-key row as uploaded by an admin.

    Subjects may be referenced by id or by name; question and answer fields
    accept the aliases used by the upload form.
    """

    model_config = ConfigDict(populate_by_name=True)

    subject_id: int | None = Field(default=None, validation_alias=AliasChoices("subject_id", "subjectId"))
    subject_name: str | None = Field(
        default=None, validation_alias=AliasChoices("subject_name", "subjectName")
    )
    question_number: int | None = Field(
        default=None,
        validation_alias=AliasChoices("question_number", "questionNumber", "question_no", "questionNo"),
    )
    answer: int | None = Field(
        default=None, validation_alias=AliasChoices("answer", "correct_answer", "correctAnswer")
    )


class AnswerKeyRequest(BaseModel):
    """Answer-key correction request for one exam track."""

    model_config = ConfigDict(populate_by_name=True)

    exam_id: int = Field(validation_alias=AliasChoices("exam_id", "examId"))
    track: Track
    is_confirmed: bool = Field(default=False, validation_alias=AliasChoices("is_confirmed", "isConfirmed"))
    rows: list[RawAnswerRow] = Field(validation_alias=AliasChoices("rows", "answers"))
    reason: str | None = None
    admin_user_id: int | None = Field(
        default=None, validation_alias=AliasChoices("admin_user_id", "adminUserId")
    )


class RescoreRequest(BaseModel):
    """Manual rescore of an exam (optionally one track) without a key change."""

    model_config = ConfigDict(populate_by_name=True)

    exam_id: int = Field(validation_alias=AliasChoices("exam_id", "examId"), ge=1)
    track: Track | None = None
    reason: str | None = None
    admin_user_id: int | None = Field(
        default=None, validation_alias=AliasChoices("admin_user_id", "adminUserId")
    )


# ============================================================================
# Output
# ============================================================================


class ChangedQuestion(BaseModel):
    """One question whose correct answer differs from the stored key."""

    subject_name: str
    question_number: int
    old_answer: int | None
    new_answer: int


class ScoreChanges(BaseModel):
    increased: int = 0
    decreased: int = 0
    unchanged: int = 0


class PreviewResult(BaseModel):
    """Impact of a proposed key, computed without writing anything."""

    changed_questions: list[ChangedQuestion]
    status_changed_count: int
    affected_submissions: int
    score_changes: ScoreChanges


class SubmissionDelta(BaseModel):
    submission_id: int
    user_id: int
    old_total_score: float
    new_total_score: float
    old_final_score: float
    new_final_score: float

    @property
    def score_delta(self) -> float:
        return round(self.new_final_score - self.old_final_score, 2)


class RescoreResult(BaseModel):
    """Outcome of a full-exam rescore."""

    exam_id: int
    rescored_count: int
    score_changes: ScoreChanges
    deltas: list[SubmissionDelta] = Field(default_factory=list, exclude=True)


class CommitResult(BaseModel):
    """Outcome of an answer-key commit."""

    saved_count: int
    rescored_count: int
    changed_questions: list[ChangedQuestion]
    score_changes: ScoreChanges
    rescore_event_id: int | None
