"""Release readiness evaluation over live submission data."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy.orm import Session

from passcut.models.pass_cut import SnapshotStatus
from passcut.models.submission import Submission
from passcut.ranking.pass_multiple import get_pass_count, get_pass_multiple, score_at_rank
from passcut.ranking.population import release_population_filters
from passcut.release.config import AutoReleaseConfig
from passcut.release.readiness import (
    classify_readiness,
    cut_shift_penalty,
    inflow_penalty,
    rate_pct,
    stability_score,
    threshold_index,
    tie_penalty,
)
from passcut.release.rows import build_pass_cut_rows, count_by_row, load_score_bands
from passcut.schemas.release import EvaluatedRow
from passcut.scoring.rules import round2

logger = logging.getLogger(__name__)

INFLOW_WINDOW = timedelta(hours=1)


def evaluate_rows(
    db: Session,
    exam_id: int,
    config: AutoReleaseConfig,
    release_number: int,
    now: datetime | None = None,
) -> list[EvaluatedRow]:
    """Pass-cut rows with coverage, stability and status for a release number's thresholds."""
    now = now or datetime.now(UTC)
    rows = build_pass_cut_rows(db, exam_id, config.include_career)
    if not rows:
        return []

    thresholds = config.thresholds
    index = threshold_index(release_number)
    coverage_threshold = thresholds.coverage_by_release[index]
    stability_threshold = thresholds.stability_by_release[index]

    window_start = now - INFLOW_WINDOW
    population = release_population_filters(exam_id)
    recent_counts = count_by_row(db, [*population, Submission.created_at >= window_start])
    current_bands = load_score_bands(db, population)
    history_bands = load_score_bands(db, [*population, Submission.created_at < window_start])

    evaluated: list[EvaluatedRow] = []
    for row in rows:
        key = (row.region_id, row.track)
        target = get_pass_count(row.recruit_count, get_pass_multiple(row.recruit_count))
        coverage_rate = rate_pct(row.participant_count, target)
        recent_inflow = recent_counts.get(key, 0)
        inflow_rate = rate_pct(recent_inflow, target)

        tie_count = None
        if row.one_multiple_cut_score is not None:
            tie_count = next(
                (
                    count
                    for score, count in current_bands.get(key, [])
                    if round2(score) == row.one_multiple_cut_score
                ),
                0,
            )

        cut_60m_ago = score_at_rank(history_bands.get(key, []), row.recruit_count)
        cut_shift = None
        if row.one_multiple_cut_score is not None and cut_60m_ago is not None:
            cut_shift = round2(abs(row.one_multiple_cut_score - cut_60m_ago))

        tie_rate = 0.0
        if tie_count is not None and row.participant_count > 0:
            tie_rate = tie_count / row.participant_count * 100
        stability = stability_score(cut_shift, inflow_rate, tie_rate)

        payload = classify_readiness(
            applicant_count=row.applicant_count,
            participant_count=row.participant_count,
            one_multiple_cut_score=row.one_multiple_cut_score,
            coverage_rate=coverage_rate,
            stability=stability,
            target_participant_count=target,
            min_sample_count=thresholds.min_sample_count,
            coverage_threshold=coverage_threshold,
            stability_threshold=stability_threshold,
        )
        evaluated.append(
            EvaluatedRow(
                **row.model_dump(),
                status_payload=payload,
                is_ready=payload.status == SnapshotStatus.READY,
                one_multiple_tie_count=tie_count,
                recent_inflow_count=recent_inflow,
                recent_inflow_rate_pct=inflow_rate,
                cut_60m_ago=cut_60m_ago,
                cut_shift=cut_shift,
                cut_shift_penalty=round2(cut_shift_penalty(cut_shift)),
                inflow_penalty=round2(inflow_penalty(inflow_rate)),
                tie_penalty=round2(tie_penalty(tie_rate)),
            )
        )

    logger.debug(
        "Release rows evaluated",
        extra={"event": "release_rows_evaluated", "exam_id": exam_id, "rows": len(evaluated)},
    )
    return evaluated
