"""Auto-release run: gate the trigger, evaluate rows, publish the next release."""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import status
from sqlalchemy import select
from sqlalchemy.orm import Session

from passcut.core.app_exceptions import ReleaseConflictError, ReleaseValidationError
from passcut.core.config import settings
from passcut.models.exam import Exam
from passcut.models.pass_cut import PassCutRelease, ReleaseSource
from passcut.models.user import User, UserRole
from passcut.release.config import AutoReleaseConfig, load_auto_release_config
from passcut.release.evaluator import evaluate_rows
from passcut.release.publisher import build_auto_notice_content, create_pass_cut_release
from passcut.release.readiness import MAX_RELEASE_NUMBER, next_release_number
from passcut.release.throttle import TrafficThrottle, traffic_throttle
from passcut.schemas.release import (
    AutoReleaseReason,
    AutoReleaseRunResult,
    EvaluatedRow,
    PassCutReleaseCreated,
    ReleaseTrigger,
)
from passcut.scoring.rules import round2

logger = logging.getLogger(__name__)


def latest_active_exam_id(db: Session) -> int | None:
    stmt = (
        select(Exam.id)
        .where(Exam.is_active.is_(True))
        .order_by(Exam.exam_date.desc(), Exam.id.desc())
        .limit(1)
    )
    return db.execute(stmt).scalar_one_or_none()


def resolve_auto_admin_user_id(db: Session, configured_id: int | None) -> int | None:
    """Configured admin if it is one, otherwise the lowest-id admin."""
    if configured_id:
        found = db.execute(
            select(User.id).where(User.id == configured_id, User.role == UserRole.ADMIN.value)
        ).scalar_one_or_none()
        if found is not None:
            return found
    return db.execute(
        select(User.id).where(User.role == UserRole.ADMIN.value).order_by(User.id).limit(1)
    ).scalar_one_or_none()


def _ready_stats(rows: list[EvaluatedRow]) -> tuple[int, int, float]:
    eligible = len(rows)
    ready = sum(1 for row in rows if row.is_ready)
    ratio = round2(ready / eligible * 100) if eligible else 0.0
    return eligible, ready, ratio


def _log_decision(result: AutoReleaseRunResult, trigger: ReleaseTrigger) -> AutoReleaseRunResult:
    logger.info(
        "Auto release decision",
        extra={
            "event": "auto_release_decision",
            "trigger": trigger.value,
            "reason": result.reason.value,
            "exam_id": result.exam_id,
            "next_release_number": result.next_release_number,
            "ready_region_ratio": result.ready_region_ratio,
            "release_id": result.release_id,
        },
    )
    return result


def run_auto_release(
    db: Session,
    trigger: ReleaseTrigger | str,
    exam_id: int | None = None,
    force: bool = False,
    now: datetime | None = None,
    config: AutoReleaseConfig | None = None,
    throttle: TrafficThrottle | None = None,
) -> AutoReleaseRunResult:
    """Evaluate every region/track and publish the next release when enough regions are ready."""
    trigger = ReleaseTrigger(trigger)
    config = config or load_auto_release_config(db)
    throttle = throttle or traffic_throttle

    if not config.enabled:
        return _log_decision(AutoReleaseRunResult(triggered=False, reason=AutoReleaseReason.AUTO_DISABLED), trigger)
    if not config.allows(trigger.value):
        return _log_decision(AutoReleaseRunResult(triggered=False, reason=AutoReleaseReason.MODE_BLOCKED), trigger)

    exam_id = exam_id or latest_active_exam_id(db)
    if exam_id is None:
        return _log_decision(AutoReleaseRunResult(triggered=False, reason=AutoReleaseReason.NO_ACTIVE_EXAM), trigger)

    if trigger == ReleaseTrigger.TRAFFIC and not force:
        if throttle.should_skip(exam_id, config.throttle_interval_sec):
            return AutoReleaseRunResult(
                triggered=False, exam_id=exam_id, reason=AutoReleaseReason.INTERVAL_THROTTLED
            )

    existing = db.execute(
        select(PassCutRelease.release_number).where(PassCutRelease.exam_id == exam_id)
    ).scalars().all()
    release_number = next_release_number(existing)

    if release_number is None:
        rows = evaluate_rows(db, exam_id, config, MAX_RELEASE_NUMBER, now)
        eligible, ready, ratio = _ready_stats(rows)
        return _log_decision(
            AutoReleaseRunResult(
                triggered=False,
                reason=AutoReleaseReason.ALL_RELEASES_COMPLETED,
                exam_id=exam_id,
                ready_region_ratio=ratio,
                eligible_region_count=eligible,
                ready_region_count=ready,
                rows=rows,
            ),
            trigger,
        )

    rows = evaluate_rows(db, exam_id, config, release_number, now)
    if not rows:
        return _log_decision(
            AutoReleaseRunResult(
                triggered=False,
                reason=AutoReleaseReason.NO_TARGET_ROWS,
                exam_id=exam_id,
                next_release_number=release_number,
            ),
            trigger,
        )

    eligible, ready, ratio = _ready_stats(rows)
    required = config.thresholds.ready_ratio_by_release[release_number - 1]
    result = AutoReleaseRunResult(
        triggered=False,
        reason=AutoReleaseReason.THRESHOLD_NOT_REACHED,
        exam_id=exam_id,
        next_release_number=release_number,
        ready_region_ratio=ratio,
        required_ready_ratio=required,
        eligible_region_count=eligible,
        ready_region_count=ready,
        rows=rows,
    )
    if ratio < required:
        return _log_decision(result, trigger)

    created_by = resolve_auto_admin_user_id(db, settings.AUTO_PASSCUT_ADMIN_USER_ID)
    if created_by is None:
        result.reason = AutoReleaseReason.NO_ADMIN_USER
        return _log_decision(result, trigger)

    try:
        created = create_pass_cut_release(
            db,
            exam_id=exam_id,
            release_number=release_number,
            created_by=created_by,
            source=ReleaseSource.AUTO,
            snapshots=rows,
            memo=f"AUTO release {release_number} (ready {ready}/{eligible}, {ratio:.1f}%)",
            auto_notice=True,
            notice_title=f"Pass-cut release {release_number} published automatically",
            notice_content=build_auto_notice_content(release_number, ready, eligible, ratio, rows),
        )
    except ReleaseConflictError:
        result.reason = AutoReleaseReason.DUPLICATED
        return _log_decision(result, trigger)

    result.triggered = True
    result.reason = AutoReleaseReason.RELEASE_CREATED
    result.release_id = created.id
    return _log_decision(result, trigger)


def publish_admin_release(
    db: Session,
    exam_id: int,
    release_number: int,
    admin_user_id: int,
    memo: str | None = None,
    auto_notice: bool = True,
    now: datetime | None = None,
) -> PassCutReleaseCreated:
    """Publish a release by hand, snapshotting the rows as evaluated for that release number."""
    if not 1 <= release_number <= MAX_RELEASE_NUMBER:
        raise ReleaseValidationError("release_number must be between 1 and 4")
    is_admin = db.execute(
        select(User.id).where(User.id == admin_user_id, User.role == UserRole.ADMIN.value)
    ).scalar_one_or_none()
    if is_admin is None:
        raise ReleaseValidationError("Admin user required", status.HTTP_403_FORBIDDEN)
    if db.get(Exam, exam_id) is None:
        raise ReleaseValidationError(f"Exam {exam_id} not found", status.HTTP_404_NOT_FOUND)

    config = load_auto_release_config(db)
    rows = evaluate_rows(db, exam_id, config, release_number, now)
    return create_pass_cut_release(
        db,
        exam_id=exam_id,
        release_number=release_number,
        created_by=admin_user_id,
        source=ReleaseSource.ADMIN,
        snapshots=rows,
        memo=memo,
        auto_notice=auto_notice,
    )
