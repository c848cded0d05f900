"""Result, prediction and scoring endpoints."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from passcut.db.session import get_db
from passcut.ranking.final_rank import get_final_prediction_summary, save_final_prediction
from passcut.ranking.service import (
    DEFAULT_COMPETITOR_LIMIT,
    calculate_prediction,
    get_submission_ranking,
)
from passcut.schemas.ranking import FinalPredictionIn, PredictionResult, SubmissionRanking
from passcut.schemas.scoring import ScoreRequest, ScoreResponse
from passcut.scoring.core import bonus_type_from_percent
from passcut.scoring.service import calculate_score

router = APIRouter()


@router.get("/results/{submission_id}", response_model=SubmissionRanking)
def get_result(submission_id: int, db: Session = Depends(get_db)) -> SubmissionRanking:
    return get_submission_ranking(db, submission_id)


@router.get("/predictions/{submission_id}", response_model=PredictionResult)
def get_prediction(
    submission_id: int,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_COMPETITOR_LIMIT, ge=1),
    db: Session = Depends(get_db),
) -> PredictionResult:
    return calculate_prediction(db, submission_id, page=page, limit=limit)


@router.get("/final-predictions/{submission_id}")
def get_final_prediction(submission_id: int, db: Session = Depends(get_db)) -> dict:
    """Known final score and rank once fitness/interview results are entered."""
    return get_final_prediction_summary(db, submission_id)


@router.put("/final-predictions/{submission_id}")
def put_final_prediction(submission_id: int, request: FinalPredictionIn, db: Session = Depends(get_db)) -> dict:
    return save_final_prediction(
        db,
        submission_id,
        fitness_passed=request.fitness_passed,
        martial_dan_level=request.martial_dan_level,
        additional_bonus_point=request.additional_bonus_point,
        interview_grade=request.interview_grade,
    )


@router.post("/scores", response_model=ScoreResponse)
def score_answers(request: ScoreRequest, db: Session = Depends(get_db)) -> ScoreResponse:
    """Score a set of answers against the stored key without saving anything."""
    bonus_type = request.bonus_type
    if request.veteran_percent is not None or request.hero_percent is not None:
        bonus_type = bonus_type_from_percent(request.veteran_percent or 0, request.hero_percent or 0)
    result = calculate_score(
        db,
        request.exam_id,
        request.track,
        request.answers,
        bonus_type,
        request.bonus_rate,
        request.duration_seconds,
    )
    return ScoreResponse.model_validate(result, from_attributes=True)
