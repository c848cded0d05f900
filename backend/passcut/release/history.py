"""Pass-cut history of one region/track, with a traffic-triggered auto-release check."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from passcut.models.exam import Track
from passcut.models.pass_cut import PassCutRelease, SnapshotStatus
from passcut.release.config import load_auto_release_config
from passcut.release.evaluator import evaluate_rows
from passcut.release.readiness import MAX_RELEASE_NUMBER, next_release_number
from passcut.release.service import latest_active_exam_id, run_auto_release
from passcut.schemas.release import (
    EvaluatedRow,
    PassCutHistory,
    PassCutHistoryRelease,
    PassCutSnapshotOut,
    ReleaseTrigger,
)

logger = logging.getLogger(__name__)


def empty_snapshot() -> PassCutSnapshotOut:
    return PassCutSnapshotOut(
        participant_count=0,
        recruit_count=0,
        status=SnapshotStatus.COLLECTING_INSUFFICIENT_SAMPLE,
        status_reason="insufficient sample",
    )


def snapshot_from_row(row: EvaluatedRow | None) -> PassCutSnapshotOut:
    if row is None:
        return empty_snapshot()
    payload = row.status_payload
    return PassCutSnapshotOut(
        participant_count=row.participant_count,
        recruit_count=row.recruit_count,
        applicant_count=payload.applicant_count,
        target_participant_count=payload.target_participant_count,
        coverage_rate=payload.coverage_rate,
        stability_score=payload.stability_score,
        status=payload.status,
        status_reason=payload.status_reason,
        average_score=row.average_score,
        one_multiple_cut_score=row.one_multiple_cut_score,
        sure_min_score=row.sure_min_score,
        likely_min_score=row.likely_min_score,
        possible_min_score=row.possible_min_score,
    )


def _trigger_traffic_release(db: Session, exam_id: int, now: datetime | None) -> list[EvaluatedRow]:
    """Auxiliary auto-release check; a failure never breaks the history read."""
    try:
        return run_auto_release(db, ReleaseTrigger.TRAFFIC, exam_id=exam_id, now=now).rows
    except Exception as e:
        db.rollback()
        logger.error(
            f"Auxiliary auto-release trigger failed: {e}",
            exc_info=True,
            extra={"event": "auto_release_traffic_failed", "exam_id": exam_id},
        )
        return []


def get_pass_cut_history(
    db: Session,
    region_id: int,
    track: Track | str,
    exam_id: int | None = None,
    now: datetime | None = None,
) -> PassCutHistory:
    """Releases of the exam with this region/track's snapshot, plus the current live figures.

    Every read doubles as a traffic signal for the auto-release run, which
    applies its own mode and interval gates.
    """
    track = Track(track).value
    exam_id = exam_id or latest_active_exam_id(db)
    if exam_id is None:
        return PassCutHistory(exam_id=None, releases=[], current=empty_snapshot())

    rows = _trigger_traffic_release(db, exam_id, now)

    releases = (
        db.execute(
            select(PassCutRelease)
            .options(selectinload(PassCutRelease.snapshots))
            .where(PassCutRelease.exam_id == exam_id)
            .order_by(PassCutRelease.release_number, PassCutRelease.id)
        )
        .scalars()
        .all()
    )

    if not rows:
        release_number = next_release_number([r.release_number for r in releases]) or MAX_RELEASE_NUMBER
        rows = evaluate_rows(db, exam_id, load_auto_release_config(db), release_number, now)

    items = []
    for release in releases:
        snapshot = next(
            (s for s in release.snapshots if s.region_id == region_id and s.track == track), None
        )
        items.append(
            PassCutHistoryRelease(
                release_number=release.release_number,
                released_at=release.released_at,
                total_participant_count=release.participant_count,
                snapshot=PassCutSnapshotOut.model_validate(snapshot) if snapshot is not None else None,
            )
        )

    current = next((row for row in rows if row.region_id == region_id and row.track == track), None)
    return PassCutHistory(exam_id=exam_id, releases=items, current=snapshot_from_row(current))
