"""Store-backed scoring: load subjects and key, then score with the pure engine."""

import logging
from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from passcut.core.app_exceptions import AnswerValidationError, NotFoundError, ScoringConfigError
from passcut.models.exam import AnswerKey, Exam, Subject, Track
from passcut.models.submission import BonusType
from passcut.schemas.scoring import SelectedAnswerIn
from passcut.scoring.core import (
    ScoreResult,
    ScoringContext,
    SubjectConfig,
    build_scoring_context,
    score_submission,
    validate_selected_answers,
)
from passcut.scoring.rules import subject_lookup_key
from passcut.scoring.suspicious import detect_suspicious_answers

logger = logging.getLogger(__name__)


def load_track_subjects(db: Session, track: Track | str) -> list[SubjectConfig]:
    """Configured subjects of a track as plain configs, ordered by id."""
    stmt = select(Subject).where(Subject.track == Track(track).value).order_by(Subject.id)
    return [
        SubjectConfig(
            id=s.id,
            name=s.name,
            question_count=s.question_count,
            point_per_question=s.point_per_question,
            max_score=s.max_score,
        )
        for s in db.execute(stmt).scalars().all()
    ]


def load_answer_key(db: Session, exam_id: int, subject_ids: Sequence[int]) -> dict[tuple[int, int], AnswerKey]:
    if not subject_ids:
        return {}
    stmt = select(AnswerKey).where(AnswerKey.exam_id == exam_id, AnswerKey.subject_id.in_(subject_ids))
    return {(row.subject_id, row.question_number): row for row in db.execute(stmt).scalars().all()}


def load_scoring_context(db: Session, exam_id: int, track: Track | str) -> ScoringContext:
    """Validated subjects and the complete key for (exam, track).

    Raises:
        ScoringConfigError: subject rules mismatch or key incomplete.
    """
    subjects = load_track_subjects(db, track)
    keys = load_answer_key(db, exam_id, [s.id for s in subjects])
    try:
        return build_scoring_context(
            track, subjects, {key: row.correct_answer for key, row in keys.items()}
        )
    except ScoringConfigError as e:
        logger.error(
            "Scoring context invalid",
            extra={"event": "scoring_config_error", "exam_id": exam_id, "track": str(track), "error": e.message},
        )
        raise


def resolve_selected_answers(
    context: ScoringContext, answers: Sequence[SelectedAnswerIn]
) -> dict[tuple[int, int], int]:
    """Map name-keyed answers onto (subject_id, question) keys and validate them."""
    by_name = {subject_lookup_key(s.name): s for s in context.subjects}
    selected: dict[tuple[int, int], int] = {}
    for item in answers:
        subject = by_name.get(subject_lookup_key(item.subject_name))
        if subject is None:
            raise AnswerValidationError("Unknown subject in answers", {"subject_name": item.subject_name})
        key = (subject.id, item.question_no)
        if key in selected:
            raise AnswerValidationError(
                "Duplicate answer for question",
                {"subject": subject.name, "question_number": item.question_no},
            )
        selected[key] = item.answer
    return validate_selected_answers(context, selected)


def calculate_score(
    db: Session,
    exam_id: int,
    track: Track | str,
    answers: Sequence[SelectedAnswerIn],
    bonus_type: BonusType | str = BonusType.NONE,
    bonus_rate: float | None = None,
    duration_seconds: float | None = None,
) -> ScoreResult:
    """Score one submission request against the stored answer key.

    The result also carries the suspicious-pattern reasons for the answers,
    including the timing check. Nothing is persisted here; rescoring keeps
    `Submission.is_suspicious` current for stored submissions.
    """
    if db.get(Exam, exam_id) is None:
        raise NotFoundError(f"Exam {exam_id} not found")
    context = load_scoring_context(db, exam_id, track)
    selected = resolve_selected_answers(context, answers)
    result = score_submission(context, selected, bonus_type, bonus_rate)
    flattened = [selected[key] for key in sorted(selected)]
    report = detect_suspicious_answers(flattened, result.total_score, context.max_total, duration_seconds)
    result.suspicious_reasons = report.reasons
    return result
