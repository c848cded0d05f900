"""Population selection and rank/percentile primitives.

The population rule lives here and nowhere else: a submission with a
cutoff subject is compared against everyone in its (exam, region, track),
a clean submission only against other clean submissions.
"""

from __future__ import annotations

import bisect
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy import case, exists, func, select
from sqlalchemy.orm import Session, aliased

from passcut.core.app_exceptions import PopulationNotFoundError
from passcut.models.submission import SubjectScore, Submission
from passcut.schemas.ranking import RankingBasis, RankPosition
from passcut.scoring.rules import round2


def basis_for(has_cutoff: bool) -> RankingBasis:
    return RankingBasis.ALL_PARTICIPANTS if has_cutoff else RankingBasis.NON_CUTOFF_PARTICIPANTS


def has_scores_clause():
    scores = aliased(SubjectScore)
    return exists().where(scores.submission_id == Submission.id)


def cutoff_clause():
    failed = aliased(SubjectScore)
    return exists().where(failed.submission_id == Submission.id, failed.is_failed.is_(True))


def no_cutoff_clause():
    return ~cutoff_clause()


def population_filters(
    exam_id: int, region_id: int, track: str, basis: RankingBasis
) -> list:
    """WHERE clauses selecting the comparable population."""
    filters = [
        Submission.exam_id == exam_id,
        Submission.region_id == region_id,
        Submission.track == track,
    ]
    if basis == RankingBasis.NON_CUTOFF_PARTICIPANTS:
        filters.extend([has_scores_clause(), no_cutoff_clause()])
    return filters


def release_population_filters(exam_id: int) -> list:
    """Population used for pass-cut rows: clean, scored, not suspicious."""
    return [
        Submission.exam_id == exam_id,
        Submission.is_suspicious.is_(False),
        has_scores_clause(),
        no_cutoff_clause(),
    ]


def compute_rank(higher_count: int, lower_count: int, total: int, basis: RankingBasis) -> RankPosition:
    """rank = higher + 1, percentile = lower / total * 100."""
    if total < 1:
        raise PopulationNotFoundError()
    return RankPosition(
        rank=higher_count + 1,
        percentile=round2(lower_count / total * 100),
        total_participants=total,
        ranking_basis=basis,
    )


def _rank_columns(score_column, my_score: float) -> tuple:
    return (
        func.count(),
        func.coalesce(func.sum(case((score_column > my_score, 1), else_=0)), 0),
        func.coalesce(func.sum(case((score_column < my_score, 1), else_=0)), 0),
    )


def count_rank(db: Session, stmt, basis: RankingBasis) -> RankPosition:
    """Run a total/higher/lower count query and turn it into a rank."""
    total, higher, lower = db.execute(stmt).one()
    return compute_rank(int(higher), int(lower), int(total), basis)


def overall_rank(db: Session, submission: Submission, basis: RankingBasis) -> RankPosition:
    filters = population_filters(submission.exam_id, submission.region_id, submission.track, basis)
    stmt = select(*_rank_columns(Submission.final_score, submission.final_score)).where(*filters)
    return count_rank(db, stmt, basis)


def subject_rank(
    db: Session, submission: Submission, subject_id: int, raw_score: float, basis: RankingBasis
) -> RankPosition:
    filters = population_filters(submission.exam_id, submission.region_id, submission.track, basis)
    stmt = (
        select(*_rank_columns(SubjectScore.raw_score, raw_score))
        .select_from(SubjectScore)
        .join(Submission, Submission.id == SubjectScore.submission_id)
        .where(SubjectScore.subject_id == subject_id, *filters)
    )
    return count_rank(db, stmt, basis)


# ----------------------------------------------------------------------------
# In-memory snapshots (rescore notifications)
# ----------------------------------------------------------------------------


@dataclass(frozen=True)
class PopulationEntry:
    submission_id: int
    region_id: int
    track: str
    final_score: float
    has_cutoff: bool
    has_scores: bool = True


def snapshot_ranks(entries: Iterable[PopulationEntry]) -> dict[int, int]:
    """Rank every entry under the population rule, without touching the store.

    Unscored submissions never count as clean competitors, matching the
    `has_scores_clause` filter of live ranking.
    """
    groups: dict[tuple[int, str], list[PopulationEntry]] = defaultdict(list)
    for entry in entries:
        groups[(entry.region_id, entry.track)].append(entry)

    ranks: dict[int, int] = {}
    for members in groups.values():
        everyone = sorted(e.final_score for e in members)
        clean = sorted(e.final_score for e in members if e.has_scores and not e.has_cutoff)
        for entry in members:
            population = everyone if entry.has_cutoff else clean
            higher = len(population) - bisect.bisect_right(population, entry.final_score)
            ranks[entry.submission_id] = higher + 1
    return ranks


def load_population_entries(db: Session, exam_id: int) -> list[PopulationEntry]:
    """Current scores of every submission of an exam, for snapshot ranking."""
    stmt = select(
        Submission.id,
        Submission.region_id,
        Submission.track,
        Submission.final_score,
        cutoff_clause().label("has_cutoff"),
        has_scores_clause().label("has_scores"),
    ).where(Submission.exam_id == exam_id)
    return [
        PopulationEntry(
            submission_id=row.id,
            region_id=row.region_id,
            track=row.track,
            final_score=row.final_score,
            has_cutoff=bool(row.has_cutoff),
            has_scores=bool(row.has_scores),
        )
        for row in db.execute(stmt).all()
    ]
