"""Read-only impact preview of a proposed answer key."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from passcut.models.exam import AnswerKey, Track
from passcut.models.submission import Submission
from passcut.schemas.answer_key import ChangedQuestion, PreviewResult, RawAnswerRow, ScoreChanges
from passcut.scoring.answer_keys import normalize_answer_rows
from passcut.scoring.core import QuestionKey, SubjectConfig, validate_subject_rules
from passcut.scoring.rules import round2
from passcut.scoring.service import load_answer_key, load_track_subjects

logger = logging.getLogger(__name__)

SCORE_EPSILON = 1e-6


def collect_changes(
    subjects: Sequence[SubjectConfig],
    existing: Mapping[QuestionKey, AnswerKey],
    proposed: Mapping[QuestionKey, int],
    is_confirmed: bool,
) -> tuple[dict[QuestionKey, ChangedQuestion], int]:
    """Diff stored vs proposed keys.

    Returns the changed questions keyed by (subject_id, question_number) and
    the number of kept rows whose confirmed flag flips.
    """
    names = {s.id: s.name for s in subjects}
    changes: dict[QuestionKey, ChangedQuestion] = {}
    status_changed = 0
    for key in sorted(proposed):
        new_answer = proposed[key]
        current = existing.get(key)
        old_answer = current.correct_answer if current is not None else None
        if old_answer != new_answer:
            changes[key] = ChangedQuestion(
                subject_name=names[key[0]],
                question_number=key[1],
                old_answer=old_answer,
                new_answer=new_answer,
            )
        if current is not None and current.is_confirmed != is_confirmed:
            status_changed += 1
    return changes, status_changed


def score_delta(
    selected: Mapping[QuestionKey, int],
    changes: Mapping[QuestionKey, ChangedQuestion],
    points: Mapping[int, float],
) -> float:
    """Point delta for one submission, simulating only the changed questions."""
    delta = 0.0
    for key, change in changes.items():
        chosen = selected.get(key)
        if chosen is None:
            continue
        old_correct = change.old_answer is not None and chosen == change.old_answer
        new_correct = chosen == change.new_answer
        if old_correct == new_correct:
            continue
        point = points.get(key[0], 0.0)
        delta += point if new_correct else -point
    return delta


def tally_change(changes: ScoreChanges, old_score: float, new_score: float) -> None:
    old_score, new_score = round2(old_score), round2(new_score)
    if abs(new_score - old_score) <= SCORE_EPSILON:
        changes.unchanged += 1
    elif new_score > old_score:
        changes.increased += 1
    else:
        changes.decreased += 1


def preview_answer_key(
    db: Session,
    exam_id: int,
    track: Track | str,
    is_confirmed: bool,
    rows: Sequence[RawAnswerRow],
) -> PreviewResult:
    """Report how many submissions would gain or lose points. Writes nothing."""
    track = Track(track)
    subjects = validate_subject_rules(track, load_track_subjects(db, track))
    proposed = normalize_answer_rows(subjects, rows)
    existing = load_answer_key(db, exam_id, [s.id for s in subjects])
    changes, status_changed = collect_changes(subjects, existing, proposed, is_confirmed)

    if not changes:
        return PreviewResult(
            changed_questions=[],
            status_changed_count=status_changed,
            affected_submissions=0,
            score_changes=ScoreChanges(),
        )

    points = {s.id: s.point_per_question for s in subjects}
    stmt = (
        select(Submission)
        .options(selectinload(Submission.user_answers))
        .where(Submission.exam_id == exam_id, Submission.track == track.value)
    )
    submissions = db.execute(stmt).scalars().all()

    tally = ScoreChanges()
    for submission in submissions:
        selected = {(a.subject_id, a.question_number): a.selected_answer for a in submission.user_answers}
        delta = score_delta(selected, changes, points)
        current = round2(submission.final_score)
        tally_change(tally, current, current + delta)

    logger.info(
        "Answer key preview computed",
        extra={
            "event": "answer_key_preview",
            "exam_id": exam_id,
            "track": track.value,
            "changed_questions": len(changes),
            "affected_submissions": len(submissions),
        },
    )
    return PreviewResult(
        changed_questions=list(changes.values()),
        status_changed_count=status_changed,
        affected_submissions=len(submissions),
        score_changes=tally,
    )
