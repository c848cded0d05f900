"""Pass-cut rows: per (region, track) participant stats and cut scores."""

from __future__ import annotations

from collections import defaultdict

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from passcut.models.exam import Region, Track
from passcut.models.submission import Submission
from passcut.ranking.pass_multiple import (
    ScoreBand,
    build_score_bands,
    get_pass_count,
    get_pass_multiple,
    likely_max_rank,
    score_at_rank,
    score_range,
)
from passcut.ranking.population import release_population_filters
from passcut.schemas.release import PassCutRow
from passcut.scoring.rules import round2

RowKey = tuple[int, str]


def tracks_for(include_career: bool) -> list[Track]:
    return [Track.PUBLIC, Track.CAREER] if include_career else [Track.PUBLIC]


def load_score_bands(db: Session, filters: list) -> dict[RowKey, list[ScoreBand]]:
    """(score, count) bands per (region, track), highest score first."""
    stmt = select(Submission.region_id, Submission.track, Submission.final_score).where(*filters)
    scores: dict[RowKey, list[float]] = defaultdict(list)
    for region_id, track, score in db.execute(stmt).all():
        scores[(region_id, track)].append(float(score))
    return {key: build_score_bands(values) for key, values in scores.items()}


def count_by_row(db: Session, filters: list) -> dict[RowKey, int]:
    stmt = (
        select(Submission.region_id, Submission.track, func.count())
        .where(*filters)
        .group_by(Submission.region_id, Submission.track)
    )
    return {(region_id, track): int(count) for region_id, track, count in db.execute(stmt).all()}


def build_pass_cut_rows(db: Session, exam_id: int, include_career: bool) -> list[PassCutRow]:
    """One row per active region and track that recruits at least one person."""
    filters = release_population_filters(exam_id)
    stats_stmt = (
        select(Submission.region_id, Submission.track, func.count(), func.avg(Submission.final_score))
        .where(*filters)
        .group_by(Submission.region_id, Submission.track)
    )
    stats = {
        (region_id, track): (int(count), None if avg is None else round2(float(avg)))
        for region_id, track, count, avg in db.execute(stats_stmt).all()
    }
    bands_by_row = load_score_bands(db, filters)

    regions = db.execute(
        select(Region).where(Region.is_active.is_(True)).order_by(Region.name, Region.id)
    ).scalars().all()

    rows: list[PassCutRow] = []
    for region in regions:
        for track in tracks_for(include_career):
            recruit = region.recruit_count_for(track)
            if recruit < 1:
                continue
            key = (region.id, track.value)
            participant_count, average_score = stats.get(key, (0, None))
            applicant_count = region.applicant_count_for(track)
            bands = bands_by_row.get(key, [])

            pass_multiple = get_pass_multiple(recruit)
            likely_rank = likely_max_rank(recruit, pass_multiple)
            pass_count = get_pass_count(recruit, pass_multiple)
            _, likely_min = score_range(bands, recruit + 1, likely_rank)
            _, possible_min = score_range(bands, likely_rank + 1, pass_count)
            one_multiple_cut = score_at_rank(bands, recruit)

            rows.append(
                PassCutRow(
                    region_id=region.id,
                    region_name=region.name,
                    track=track.value,
                    recruit_count=recruit,
                    applicant_count=applicant_count,
                    competition_rate=(
                        round2(applicant_count / recruit) if applicant_count is not None else None
                    ),
                    participant_count=participant_count,
                    average_score=average_score,
                    one_multiple_cut_score=one_multiple_cut,
                    sure_min_score=one_multiple_cut,
                    likely_min_score=likely_min,
                    possible_min_score=possible_min,
                )
            )
    return rows
