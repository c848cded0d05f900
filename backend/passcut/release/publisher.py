"""Transactional creation of a pass-cut release, its snapshots and notice."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from passcut.core.app_exceptions import ReleaseConflictError, ReleaseValidationError
from passcut.models.exam import Exam, Track
from passcut.models.pass_cut import PassCutRelease, PassCutSnapshot, ReleaseSource, SnapshotStatus
from passcut.models.site import Notice
from passcut.release.readiness import MAX_RELEASE_NUMBER
from passcut.schemas.release import EvaluatedRow, PassCutReleaseCreated
from passcut.scoring.rules import round2

logger = logging.getLogger(__name__)

NOTICE_PRIORITY = {ReleaseSource.AUTO: 110, ReleaseSource.ADMIN: 100}
TRACK_LABELS = {Track.PUBLIC.value: "public", Track.CAREER.value: "career"}


def _safe_float(value: float | None) -> float | None:
    if value is None or not math.isfinite(value):
        return None
    return round2(value)


def default_notice_title(release_number: int, source: ReleaseSource) -> str:
    if source == ReleaseSource.AUTO:
        return f"Pass-cut release {release_number} published automatically"
    return f"Pass-cut release {release_number} published"


def default_notice_content(exam: Exam, release_number: int, source: ReleaseSource) -> str:
    verb = "was published automatically" if source == ReleaseSource.AUTO else "was published"
    return f"{exam.year} round {exam.round} {exam.name}: pass-cut release {release_number} {verb}."


def build_auto_notice_content(
    release_number: int,
    ready_count: int,
    eligible_count: int,
    ready_ratio: float,
    rows: Sequence[EvaluatedRow],
) -> str:
    """Notice body listing one status line per region/track."""
    lines = [
        f"Pass-cut release {release_number} was published automatically.",
        f"Ready regions: {ready_count}/{eligible_count} ({ready_ratio:.1f}%)",
        f"Still collecting: {max(0, eligible_count - ready_count)}",
        "",
        "[Status by region and track]",
    ]
    for row in sorted(rows, key=lambda r: (r.region_name, r.track)):
        payload = row.status_payload
        if payload.status == SnapshotStatus.READY:
            cut = "-" if row.one_multiple_cut_score is None else f"{row.one_multiple_cut_score:.2f}"
            state = f"ready (1x cut {cut})"
        else:
            state = f"collecting ({payload.status_reason})"
        lines.append(
            f"- {row.region_name}-{TRACK_LABELS.get(row.track, row.track)}: {state}, "
            f"participants {row.participant_count:,} / target {payload.target_participant_count:,} / "
            f"coverage {payload.coverage_rate:.1f}% / stability {payload.stability_score:.1f}"
        )
    return "\n".join(lines)


def create_pass_cut_release(
    db: Session,
    exam_id: int,
    release_number: int,
    created_by: int,
    source: ReleaseSource = ReleaseSource.ADMIN,
    snapshots: Sequence[EvaluatedRow] = (),
    memo: str | None = None,
    auto_notice: bool = True,
    notice_title: str | None = None,
    notice_content: str | None = None,
) -> PassCutReleaseCreated:
    """Create the release, one snapshot per row and optionally a notice, all or nothing.

    Raises:
        ReleaseValidationError: bad release number, creator or unknown exam.
        ReleaseConflictError: (exam, release number) already exists.
    """
    if not 1 <= release_number <= MAX_RELEASE_NUMBER:
        raise ReleaseValidationError("release_number must be between 1 and 4")
    if created_by is None or created_by < 1:
        raise ReleaseValidationError("Release creator is invalid", status.HTTP_401_UNAUTHORIZED)

    exam = db.get(Exam, exam_id)
    if exam is None:
        raise ReleaseValidationError(f"Exam {exam_id} not found", status.HTTP_404_NOT_FOUND)

    existing = db.execute(
        select(PassCutRelease.id).where(
            PassCutRelease.exam_id == exam_id, PassCutRelease.release_number == release_number
        )
    ).scalar_one_or_none()
    if existing is not None:
        raise ReleaseConflictError(exam_id, release_number)

    source = ReleaseSource(source)
    memo = memo.strip() if memo and memo.strip() else None
    release = PassCutRelease(
        exam_id=exam_id,
        release_number=release_number,
        participant_count=sum(row.participant_count for row in snapshots),
        source=source.value,
        memo=memo,
        created_by=created_by,
    )
    for row in snapshots:
        payload = row.status_payload
        release.snapshots.append(
            PassCutSnapshot(
                region_id=row.region_id,
                track=row.track,
                status=payload.status.value,
                status_reason=payload.status_reason,
                applicant_count=payload.applicant_count,
                target_participant_count=payload.target_participant_count,
                coverage_rate=_safe_float(payload.coverage_rate),
                stability_score=_safe_float(payload.stability_score),
                participant_count=row.participant_count,
                recruit_count=row.recruit_count,
                average_score=row.average_score,
                one_multiple_cut_score=row.one_multiple_cut_score,
                sure_min_score=row.sure_min_score,
                likely_min_score=row.likely_min_score,
                possible_min_score=row.possible_min_score,
            )
        )

    try:
        db.add(release)
        if auto_notice:
            db.add(
                Notice(
                    title=notice_title or default_notice_title(release_number, source),
                    content=notice_content or default_notice_content(exam, release_number, source),
                    is_active=True,
                    priority=NOTICE_PRIORITY[source],
                )
            )
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning(
            "Duplicate pass-cut release rejected by unique key",
            extra={"event": "release_duplicated", "exam_id": exam_id, "release_number": release_number},
        )
        raise ReleaseConflictError(exam_id, release_number) from None
    except Exception:
        db.rollback()
        raise

    logger.info(
        "Pass-cut release created",
        extra={
            "event": "release_created",
            "exam_id": exam_id,
            "release_number": release_number,
            "release_id": release.id,
            "source": source.value,
            "snapshots": len(snapshots),
        },
    )
    return PassCutReleaseCreated(
        id=release.id,
        exam_id=exam_id,
        release_number=release_number,
        participant_count=release.participant_count,
        snapshot_count=len(snapshots),
    )
