"""Result ranking and five-level pass prediction for a submission."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from fastapi import status
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from passcut.core.app_exceptions import NotFoundError, PredictionUnavailableError
from passcut.models.exam import Region, Subject, Track
from passcut.models.submission import SubjectScore, Submission
from passcut.models.user import User
from passcut.ranking.pass_multiple import (
    CHALLENGE_FACTOR,
    LIKELY_FACTOR,
    challenge_max_rank,
    classify_grade,
    display_pass_multiple,
    get_pass_count,
    get_pass_multiple,
    likely_max_rank,
)
from passcut.ranking.population import (
    basis_for,
    has_scores_clause,
    no_cutoff_clause,
    overall_rank,
    subject_rank,
)
from passcut.schemas.ranking import (
    Competitor,
    CompetitorPage,
    PredictionGrade,
    PredictionLevel,
    PredictionResult,
    SubjectRanking,
    SubmissionRanking,
)
from passcut.scoring.rules import cutoff_threshold, round2

logger = logging.getLogger(__name__)

SCORE_EPSILON = 1e-9
DEFAULT_COMPETITOR_LIMIT = 20
MAX_COMPETITOR_LIMIT = 50


def _load_submission(db: Session, submission_id: int) -> Submission:
    stmt = (
        select(Submission)
        .options(selectinload(Submission.subject_scores).selectinload(SubjectScore.subject))
        .where(Submission.id == submission_id)
    )
    submission = db.execute(stmt).scalar_one_or_none()
    if submission is None:
        raise NotFoundError(f"Submission {submission_id} not found")
    return submission


def get_submission_ranking(db: Session, submission_id: int) -> SubmissionRanking:
    """Overall and per-subject rank/percentile of one submission."""
    submission = _load_submission(db, submission_id)
    has_cutoff = submission.has_cutoff
    basis = basis_for(has_cutoff)

    overall = overall_rank(db, submission, basis)

    subjects: list[SubjectRanking] = []
    for score in sorted(submission.subject_scores, key=lambda s: s.subject_id):
        subject: Subject = score.subject
        position = subject_rank(db, submission, score.subject_id, score.raw_score, basis)
        subjects.append(
            SubjectRanking(
                **position.model_dump(),
                subject_id=subject.id,
                subject_name=subject.name,
                raw_score=round2(score.raw_score),
                max_score=subject.max_score,
                correct_count=round(score.raw_score / subject.point_per_question),
                cutoff_score=cutoff_threshold(subject.max_score),
                is_cutoff=score.is_failed,
            )
        )

    return SubmissionRanking(
        submission_id=submission.id,
        exam_id=submission.exam_id,
        region_id=submission.region_id,
        track=submission.track,
        total_score=round2(submission.total_score),
        final_score=round2(submission.final_score),
        has_cutoff=has_cutoff,
        cutoff_subjects=[s.subject_name for s in subjects if s.is_cutoff],
        overall=overall,
        subjects=subjects,
    )


# ============================================================================
# Prediction
# ============================================================================


@dataclass
class RankedParticipant:
    submission_id: int
    user_id: int
    name: str
    score: float
    rank: int


def prediction_recruit_count(region: Region, track: str) -> int:
    """Recruit count for the prediction view; CAREER falls back to the public count."""
    if Track(track) == Track.CAREER:
        return region.recruit_count_career if region.recruit_count_career > 0 else region.recruit_count
    return region.recruit_count


def mask_name(name: str) -> str:
    trimmed = (name or "").strip()
    if not trimmed:
        return "익명**"
    return f"{trimmed[0]}**"


def rank_participants(rows: list[tuple[int, int, str, float]]) -> list[RankedParticipant]:
    """Competition ranking: equal scores share a rank, order ties by submission id."""
    ordered = sorted(rows, key=lambda r: (-r[3], r[0]))
    ranked: list[RankedParticipant] = []
    previous: float | None = None
    current_rank = 0
    for index, (submission_id, user_id, name, score) in enumerate(ordered):
        if previous is None or abs(score - previous) > SCORE_EPSILON:
            current_rank = index + 1
            previous = score
        ranked.append(RankedParticipant(submission_id, user_id, name, round2(score), current_rank))
    return ranked


def _min_score_within(ranked: list[RankedParticipant], max_rank: int) -> float | None:
    selected = [p for p in ranked if p.rank <= max_rank]
    return selected[-1].score if selected else None


def _max_score_from(ranked: list[RankedParticipant], min_rank: int) -> float | None:
    for participant in ranked:
        if participant.rank >= min_rank:
            return participant.score
    return None


def _levels(
    ranked: list[RankedParticipant], recruit: int, likely_rank: int, pass_count: int, challenge_rank: int
) -> list[PredictionLevel]:
    def count_between(low: int, high: int | None) -> int:
        return sum(1 for p in ranked if p.rank > low and (high is None or p.rank <= high))

    return [
        PredictionLevel(
            key=PredictionGrade.SURE,
            max_rank=recruit,
            count=count_between(0, recruit),
            min_score=_min_score_within(ranked, recruit),
            max_score=_max_score_from(ranked, 1),
        ),
        PredictionLevel(
            key=PredictionGrade.LIKELY,
            max_rank=likely_rank,
            count=count_between(recruit, likely_rank),
            min_score=_min_score_within(ranked, likely_rank),
            max_score=_max_score_from(ranked, recruit + 1),
        ),
        PredictionLevel(
            key=PredictionGrade.POSSIBLE,
            max_rank=pass_count,
            count=count_between(likely_rank, pass_count),
            min_score=_min_score_within(ranked, pass_count),
            max_score=_max_score_from(ranked, likely_rank + 1),
        ),
        PredictionLevel(
            key=PredictionGrade.CHALLENGE,
            max_rank=challenge_rank,
            count=count_between(pass_count, challenge_rank),
            min_score=_min_score_within(ranked, challenge_rank),
            max_score=_max_score_from(ranked, pass_count + 1),
        ),
        PredictionLevel(
            key=PredictionGrade.BELOW_CHALLENGE,
            max_rank=None,
            count=count_between(challenge_rank, None),
            min_score=None,
            max_score=_max_score_from(ranked, challenge_rank + 1),
        ),
    ]


def calculate_prediction(
    db: Session, submission_id: int, page: int = 1, limit: int = DEFAULT_COMPETITOR_LIMIT
) -> PredictionResult:
    """Pass prediction for a clean submission among clean submissions of its region/track.

    Raises:
        NotFoundError: unknown submission.
        PredictionUnavailableError: cutoff submission (400), bad recruit count (500),
            or no population yet (404).
    """
    page = page if isinstance(page, int) and page >= 1 else 1
    limit = min(limit, MAX_COMPETITOR_LIMIT) if isinstance(limit, int) and limit >= 1 else DEFAULT_COMPETITOR_LIMIT

    submission = _load_submission(db, submission_id)
    if submission.has_cutoff:
        raise PredictionUnavailableError("Prediction is not available for a submission with a cutoff subject")

    region = db.get(Region, submission.region_id)
    recruit = prediction_recruit_count(region, submission.track)
    pass_multiple = get_pass_multiple(recruit)
    if recruit < 1 or pass_multiple is None:
        raise PredictionUnavailableError(
            "Region recruit count is not configured", status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    pass_count = get_pass_count(recruit, pass_multiple)
    likely_rank = likely_max_rank(recruit, pass_multiple)
    challenge_rank = challenge_max_rank(recruit, pass_multiple)

    stmt = (
        select(Submission.id, Submission.user_id, User.name, Submission.final_score)
        .join(User, User.id == Submission.user_id)
        .where(
            Submission.exam_id == submission.exam_id,
            Submission.region_id == submission.region_id,
            Submission.track == submission.track,
            has_scores_clause(),
            no_cutoff_clause(),
        )
    )
    rows = [tuple(row) for row in db.execute(stmt).all()]
    if not rows:
        raise PredictionUnavailableError("No participants to predict against yet", status.HTTP_404_NOT_FOUND)

    ranked = rank_participants(rows)
    mine = next((p for p in ranked if p.submission_id == submission.id), None)
    if mine is None:
        raise PredictionUnavailableError("Submission is not part of the population", status.HTTP_404_NOT_FOUND)

    my_multiple = mine.rank / recruit
    total = len(ranked)
    total_pages = max(1, math.ceil(total / limit))
    page = min(page, total_pages)
    start = (page - 1) * limit
    competitors = [
        Competitor(
            rank=p.rank,
            score=p.score,
            masked_name=mask_name(p.name),
            is_mine=p.submission_id == submission.id,
        )
        for p in ranked[start : start + limit]
    ]

    return PredictionResult(
        submission_id=submission.id,
        region_id=submission.region_id,
        track=submission.track,
        recruit_count=recruit,
        total_participants=total,
        my_rank=mine.rank,
        my_score=round2(submission.final_score),
        my_multiple=round2(my_multiple),
        pass_multiple=round2(pass_multiple),
        pass_multiple_label=display_pass_multiple(pass_multiple),
        likely_multiple=round2(pass_multiple * LIKELY_FACTOR),
        challenge_multiple=round2(pass_multiple * CHALLENGE_FACTOR),
        pass_count=pass_count,
        pass_line_score=_min_score_within(ranked, pass_count),
        grade=classify_grade(my_multiple, pass_multiple),
        levels=_levels(ranked, recruit, likely_rank, pass_count, challenge_rank),
        competitors=CompetitorPage(
            page=page, limit=limit, total_count=total, total_pages=total_pages, items=competitors
        ),
    )
