"""Answer-key row normalization and replacement."""

import logging
from collections.abc import Sequence

from sqlalchemy import delete
from sqlalchemy.orm import Session

from passcut.core.app_exceptions import AnswerValidationError
from passcut.models.exam import AnswerKey
from passcut.schemas.answer_key import RawAnswerRow
from passcut.scoring.core import QuestionKey, SubjectConfig
from passcut.scoring.rules import CHOICE_MAX, CHOICE_MIN, subject_lookup_key

logger = logging.getLogger(__name__)


def normalize_answer_rows(
    subjects: Sequence[SubjectConfig], rows: Sequence[RawAnswerRow]
) -> dict[QuestionKey, int]:
    """Validate an uploaded row set and key it by (subject_id, question_number).

    The set must cover every question of every subject exactly once. The
    whole batch is rejected on the first problem found.
    """
    if not rows:
        raise AnswerValidationError("No answer rows supplied")

    by_id = {s.id: s for s in subjects}
    by_name = {subject_lookup_key(s.name): s for s in subjects}
    normalized: dict[QuestionKey, int] = {}

    for index, row in enumerate(rows):
        subject = None
        if row.subject_id is not None:
            subject = by_id.get(row.subject_id)
        elif row.subject_name:
            subject = by_name.get(subject_lookup_key(row.subject_name))
        if subject is None:
            raise AnswerValidationError(
                "Invalid subject",
                {"row": index, "subject_id": row.subject_id, "subject_name": row.subject_name},
            )

        question_number = row.question_number
        if question_number is None or not 1 <= question_number <= subject.question_count:
            raise AnswerValidationError(
                "Question number out of range",
                {"row": index, "subject": subject.name, "question_number": question_number},
            )
        if row.answer is None or not CHOICE_MIN <= row.answer <= CHOICE_MAX:
            raise AnswerValidationError(
                "Answer must be between 1 and 4",
                {"row": index, "subject": subject.name, "question_number": question_number, "answer": row.answer},
            )

        key = (subject.id, question_number)
        if key in normalized:
            raise AnswerValidationError(
                "Duplicate answer row",
                {"row": index, "subject": subject.name, "question_number": question_number},
            )
        normalized[key] = row.answer

    expected = sum(s.question_count for s in subjects)
    if len(normalized) != expected:
        raise AnswerValidationError(
            "Answer rows incomplete",
            {"expected": expected, "received": len(normalized)},
        )
    return normalized


def replace_answer_keys(
    db: Session,
    exam_id: int,
    subjects: Sequence[SubjectConfig],
    answers: dict[QuestionKey, int],
    is_confirmed: bool,
) -> int:
    """Swap the key rows of the given subjects. Caller owns the transaction."""
    subject_ids = [s.id for s in subjects]
    db.execute(
        delete(AnswerKey).where(AnswerKey.exam_id == exam_id, AnswerKey.subject_id.in_(subject_ids))
    )
    db.add_all(
        AnswerKey(
            exam_id=exam_id,
            subject_id=subject_id,
            question_number=question_number,
            correct_answer=answer,
            is_confirmed=is_confirmed,
        )
        for (subject_id, question_number), answer in sorted(answers.items())
    )
    db.flush()
    logger.info(
        "Answer key replaced",
        extra={"event": "answer_key_replaced", "exam_id": exam_id, "rows": len(answers)},
    )
    return len(answers)
