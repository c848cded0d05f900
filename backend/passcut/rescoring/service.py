"""Bulk rescoring and answer-key commit.

Rescoring walks an exam's submissions in fixed-size chunks. Each chunk is
one transaction: a failure rolls back that chunk only, chunks already
committed stay committed and the error propagates to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from passcut.core.app_exceptions import NotFoundError
from passcut.core.config import settings
from passcut.models.exam import Exam, Track
from passcut.models.rescore import RescoreDetail, RescoreEvent
from passcut.models.submission import SubjectScore, Submission
from passcut.ranking.population import load_population_entries, snapshot_ranks
from passcut.rescoring.preview import collect_changes, tally_change
from passcut.schemas.answer_key import (
    ChangedQuestion,
    CommitResult,
    RawAnswerRow,
    RescoreResult,
    ScoreChanges,
    SubmissionDelta,
)
from passcut.scoring.answer_keys import normalize_answer_rows, replace_answer_keys
from passcut.scoring.core import ScoreResult, ScoringContext, score_submission, validate_subject_rules
from passcut.scoring.rules import round2
from passcut.scoring.service import load_answer_key, load_scoring_context, load_track_subjects
from passcut.scoring.suspicious import detect_suspicious_answers, is_timing_reason

logger = logging.getLogger(__name__)


def _chunks(ids: list[int], size: int):
    for start in range(0, len(ids), size):
        yield ids[start : start + size]


def _apply_result(db: Session, submission: Submission, result: ScoreResult) -> bool:
    """Write back only what differs. Returns True when anything was written."""
    written = False

    if (
        submission.total_score != result.total_score
        or submission.final_score != result.final_score
        or submission.bonus_rate != result.bonus_rate
    ):
        submission.total_score = result.total_score
        submission.final_score = result.final_score
        submission.bonus_rate = result.bonus_rate
        written = True

    for answer in submission.user_answers:
        is_correct = result.correctness.get((answer.subject_id, answer.question_number), False)
        if answer.is_correct != is_correct:
            answer.is_correct = is_correct
            written = True

    current = {s.subject_id: (s.raw_score, s.is_failed) for s in submission.subject_scores}
    computed = {s.subject_id: (s.raw_score, s.is_cutoff) for s in result.subjects}
    if current != computed:
        # recreated, not patched; flush the deletes first so the unique key is free
        submission.subject_scores.clear()
        db.flush()
        submission.subject_scores.extend(
            SubjectScore(subject_id=subject_id, raw_score=raw, is_failed=failed)
            for subject_id, (raw, failed) in computed.items()
        )
        written = True

    return written


def _refresh_suspicious(submission: Submission, answers: list[int], result: ScoreResult, max_total: float) -> None:
    """Re-run the answer heuristics against the new score, keeping stored timing reasons."""
    timing = [r for r in submission.suspicious_reasons or [] if is_timing_reason(r)]
    reasons = detect_suspicious_answers(answers, result.total_score, max_total).reasons + timing
    if reasons != (submission.suspicious_reasons or []):
        submission.suspicious_reasons = reasons or None
    if submission.is_suspicious != bool(reasons):
        submission.is_suspicious = bool(reasons)


def _rescore_chunk(db: Session, exam_id: int, chunk: Sequence[int]) -> list[SubmissionDelta]:
    stmt = (
        select(Submission)
        .options(selectinload(Submission.user_answers), selectinload(Submission.subject_scores))
        .where(Submission.id.in_(chunk))
        .order_by(Submission.id)
    )
    submissions = db.execute(stmt).scalars().all()

    # one context per track per chunk
    contexts: dict[str, ScoringContext] = {}
    deltas: list[SubmissionDelta] = []
    for submission in submissions:
        context = contexts.get(submission.track)
        if context is None:
            context = load_scoring_context(db, exam_id, submission.track)
            contexts[submission.track] = context

        selected = {(a.subject_id, a.question_number): a.selected_answer for a in submission.user_answers}
        old_total, old_final = submission.total_score, submission.final_score
        result = score_submission(context, selected, submission.bonus_type, submission.bonus_rate)
        _apply_result(db, submission, result)
        _refresh_suspicious(submission, [selected[key] for key in sorted(selected)], result, context.max_total)
        deltas.append(
            SubmissionDelta(
                submission_id=submission.id,
                user_id=submission.user_id,
                old_total_score=round2(old_total),
                new_total_score=result.total_score,
                old_final_score=round2(old_final),
                new_final_score=result.final_score,
            )
        )
    return deltas


def rescore_exam(
    db: Session, exam_id: int, batch_size: int | None = None, track: Track | str | None = None
) -> RescoreResult:
    """Recompute every submission of an exam (optionally one track) chunk by chunk."""
    batch_size = batch_size or settings.RESCORE_BATCH_SIZE
    stmt = select(Submission.id).where(Submission.exam_id == exam_id).order_by(Submission.id)
    if track is not None:
        stmt = stmt.where(Submission.track == Track(track).value)
    ids = list(db.execute(stmt).scalars().all())

    deltas: list[SubmissionDelta] = []
    for index, chunk in enumerate(_chunks(ids, batch_size)):
        log_extra = {"exam_id": exam_id, "chunk_index": index, "submission_count": len(chunk)}
        logger.debug("Rescore chunk started", extra={"event": "rescore_chunk_start", **log_extra})
        try:
            chunk_deltas = _rescore_chunk(db, exam_id, chunk)
            db.commit()
        except Exception:
            db.rollback()
            logger.error("Rescore chunk rolled back", extra={"event": "rescore_chunk_rollback", **log_extra})
            raise
        deltas.extend(chunk_deltas)
        logger.info("Rescore chunk committed", extra={"event": "rescore_chunk_commit", **log_extra})

    changes = ScoreChanges()
    for delta in deltas:
        tally_change(changes, delta.old_final_score, delta.new_final_score)
    return RescoreResult(exam_id=exam_id, rescored_count=len(deltas), score_changes=changes, deltas=deltas)


def _record_rescore_event(
    db: Session,
    exam_id: int,
    track: Track,
    reason: str | None,
    changed_questions: list[ChangedQuestion],
    admin_user_id: int | None,
    deltas: list[SubmissionDelta],
    old_ranks: dict[int, int],
    new_ranks: dict[int, int],
    submission_tracks: dict[int, str],
) -> int:
    event = RescoreEvent(
        exam_id=exam_id,
        track=track.value,
        reason=reason,
        summary=[c.model_dump() for c in changed_questions],
        created_by=admin_user_id,
    )
    db.add(event)
    for delta in deltas:
        if submission_tracks.get(delta.submission_id) != track.value:
            continue
        if delta.old_final_score == delta.new_final_score:
            continue
        event.details.append(
            RescoreDetail(
                submission_id=delta.submission_id,
                user_id=delta.user_id,
                old_total_score=delta.old_total_score,
                new_total_score=delta.new_total_score,
                old_final_score=delta.old_final_score,
                new_final_score=delta.new_final_score,
                old_rank=old_ranks.get(delta.submission_id),
                new_rank=new_ranks.get(delta.submission_id),
                score_delta=delta.score_delta,
                is_read=False,
            )
        )
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(
        "Rescore event recorded",
        extra={
            "event": "rescore_event_recorded",
            "exam_id": exam_id,
            "track": track.value,
            "rescore_event_id": event.id,
            "details": len(event.details),
        },
    )
    return event.id


def _rescore_with_event(
    db: Session,
    exam_id: int,
    track: Track,
    reason: str | None,
    changed_questions: list[ChangedQuestion],
    admin_user_id: int | None,
    batch_size: int | None,
    rescore_track: Track | None,
) -> tuple[RescoreResult, int | None]:
    before = load_population_entries(db, exam_id)
    result = rescore_exam(db, exam_id, batch_size, rescore_track)
    if not changed_questions and not reason:
        return result, None

    after = load_population_entries(db, exam_id)
    event_id = _record_rescore_event(
        db,
        exam_id,
        track,
        reason,
        changed_questions,
        admin_user_id,
        result.deltas,
        snapshot_ranks(before),
        snapshot_ranks(after),
        {entry.submission_id: entry.track for entry in after},
    )
    return result, event_id


def commit_answer_key(
    db: Session,
    exam_id: int,
    track: Track | str,
    is_confirmed: bool,
    rows: Sequence[RawAnswerRow],
    reason: str | None = None,
    admin_user_id: int | None = None,
    batch_size: int | None = None,
) -> CommitResult:
    """Validate and swap the key rows of (exam, track), then rescore the whole exam.

    Validation and the rule check happen before the swap, so a rejected batch
    leaves the stored key and scores untouched.
    """
    track = Track(track)
    if db.get(Exam, exam_id) is None:
        raise NotFoundError(f"Exam {exam_id} not found")

    subjects = validate_subject_rules(track, load_track_subjects(db, track))
    proposed = normalize_answer_rows(subjects, rows)
    existing = load_answer_key(db, exam_id, [s.id for s in subjects])
    changes, _ = collect_changes(subjects, existing, proposed, is_confirmed)
    changed_questions = list(changes.values())

    try:
        saved = replace_answer_keys(db, exam_id, subjects, proposed, is_confirmed)
        db.commit()
    except Exception:
        db.rollback()
        raise

    result, event_id = _rescore_with_event(
        db, exam_id, track, reason, changed_questions, admin_user_id, batch_size, None
    )
    return CommitResult(
        saved_count=saved,
        rescored_count=result.rescored_count,
        changed_questions=changed_questions,
        score_changes=result.score_changes,
        rescore_event_id=event_id,
    )


def manual_rescore(
    db: Session,
    exam_id: int,
    track: Track | str | None = None,
    reason: str | None = None,
    admin_user_id: int | None = None,
    batch_size: int | None = None,
) -> dict:
    """Rescore per track without a key change; records an event per track when a reason is given."""
    if db.get(Exam, exam_id) is None:
        raise NotFoundError(f"Exam {exam_id} not found")

    if track is not None:
        tracks = [Track(track)]
    else:
        stmt = select(Submission.track).where(Submission.exam_id == exam_id).distinct()
        tracks = sorted(Track(value) for value in db.execute(stmt).scalars().all())

    changes = ScoreChanges()
    event_ids: list[int] = []
    rescored = 0
    for target in tracks:
        result, event_id = _rescore_with_event(
            db, exam_id, target, reason, [], admin_user_id, batch_size, target
        )
        rescored += result.rescored_count
        changes.increased += result.score_changes.increased
        changes.decreased += result.score_changes.decreased
        changes.unchanged += result.score_changes.unchanged
        if event_id is not None:
            event_ids.append(event_id)

    return {
        "exam_id": exam_id,
        "tracks": [t.value for t in tracks],
        "rescored_count": rescored,
        "rescore_event_id": event_ids[0] if len(event_ids) == 1 else None,
        "rescore_event_ids": event_ids,
        "score_changes": changes.model_dump(),
    }
