"""Known final score and rank once fitness and interview results are in."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from passcut.core.app_exceptions import NotFoundError
from passcut.models.submission import BonusType, FinalPrediction, Submission
from passcut.scoring.rules import round2

VETERAN_BONUS_TYPES = {BonusType.VETERAN_5.value, BonusType.VETERAN_10.value}


@dataclass
class KnownFinalScore:
    martial_bonus_point: float
    known_bonus_point: float
    known_final_score: float | None


@dataclass
class FinalRankRow:
    submission_id: int
    known_final_score: float
    is_veteran_preferred: bool
    written_score: float
    known_bonus_point: float


def martial_bonus_point(dan_level: float | None) -> int:
    if dan_level is None:
        return 0
    if dan_level >= 4:
        return 2
    if dan_level >= 2:
        return 1
    return 0


def calculate_known_final_score(
    written_score: float, fitness_passed: bool, martial_dan_level: float | None, additional_bonus_point: float
) -> KnownFinalScore:
    """Written score plus known bonus points; no score at all when fitness failed."""
    if not fitness_passed:
        return KnownFinalScore(0, 0, None)
    martial = martial_bonus_point(martial_dan_level)
    bonus = round2(martial + max(0.0, additional_bonus_point))
    return KnownFinalScore(martial, bonus, round2(max(0.0, written_score) + bonus))


def _sort_key(row: FinalRankRow) -> tuple:
    return (
        -row.known_final_score,
        not row.is_veteran_preferred,
        -row.written_score,
        -row.known_bonus_point,
        row.submission_id,
    )


def rank_final_rows(rows: list[FinalRankRow]) -> dict[int, int]:
    """Strict ordering (no shared ranks) by score, veteran preference, written score, bonus, id."""
    return {row.submission_id: index + 1 for index, row in enumerate(sorted(rows, key=_sort_key))}


def calculate_known_final_rank(
    db: Session, exam_id: int, region_id: int, track: str, submission_id: int
) -> tuple[int | None, int]:
    """(rank, total) among interview-passed predictions with a known final score."""
    stmt = (
        select(FinalPrediction, Submission.final_score, Submission.bonus_type)
        .join(Submission, Submission.id == FinalPrediction.submission_id)
        .where(
            FinalPrediction.final_score.is_not(None),
            FinalPrediction.interview_grade == "PASS",
            Submission.exam_id == exam_id,
            Submission.region_id == region_id,
            Submission.track == track,
        )
    )
    rows = [
        FinalRankRow(
            submission_id=prediction.submission_id,
            known_final_score=prediction.final_score,
            is_veteran_preferred=bonus_type in VETERAN_BONUS_TYPES,
            written_score=written,
            known_bonus_point=round2((prediction.fitness_score or 0) + (prediction.interview_score or 0)),
        )
        for prediction, written, bonus_type in db.execute(stmt).all()
    ]
    if not rows:
        return None, 0
    return rank_final_rows(rows).get(submission_id), len(rows)


def get_final_prediction_summary(db: Session, submission_id: int) -> dict:
    """Stored final prediction of a submission plus its current known rank."""
    submission = db.get(Submission, submission_id)
    if submission is None:
        raise NotFoundError(f"Submission {submission_id} not found")
    prediction = db.execute(
        select(FinalPrediction).where(FinalPrediction.submission_id == submission_id)
    ).scalar_one_or_none()
    if prediction is None:
        raise NotFoundError(f"No final prediction for submission {submission_id}")

    rank, total = calculate_known_final_rank(
        db, submission.exam_id, submission.region_id, submission.track, submission_id
    )
    return {
        "submission_id": submission_id,
        "written_score": round2(submission.final_score),
        "martial_bonus_point": prediction.fitness_score,
        "additional_bonus_point": prediction.interview_score,
        "interview_grade": prediction.interview_grade,
        "final_score": prediction.final_score,
        "final_rank": rank,
        "total_participants": total,
    }


def save_final_prediction(
    db: Session,
    submission_id: int,
    fitness_passed: bool,
    martial_dan_level: float | None = None,
    additional_bonus_point: float = 0.0,
    interview_grade: str | None = None,
) -> dict:
    """Store the post-written inputs of a submission and refresh its known rank."""
    submission = db.get(Submission, submission_id)
    if submission is None:
        raise NotFoundError(f"Submission {submission_id} not found")

    known = calculate_known_final_score(
        submission.final_score, fitness_passed, martial_dan_level, additional_bonus_point
    )
    prediction = db.execute(
        select(FinalPrediction).where(FinalPrediction.submission_id == submission_id)
    ).scalar_one_or_none()
    if prediction is None:
        prediction = FinalPrediction(submission_id=submission_id, user_id=submission.user_id)
        db.add(prediction)

    prediction.fitness_score = float(known.martial_bonus_point)
    prediction.interview_score = round2(known.known_bonus_point - known.martial_bonus_point)
    prediction.interview_grade = interview_grade
    prediction.final_score = known.known_final_score
    db.flush()

    rank, _ = calculate_known_final_rank(
        db, submission.exam_id, submission.region_id, submission.track, submission_id
    )
    prediction.final_rank = rank
    db.commit()
    return get_final_prediction_summary(db, submission_id)
