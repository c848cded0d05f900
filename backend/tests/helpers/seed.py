"""Test seed helpers for creating test data."""

from datetime import UTC, date, datetime
from itertools import count

from sqlalchemy.orm import Session

from passcut.models.exam import AnswerKey, Exam, Region, Subject, Track
from passcut.models.submission import BonusType, SubjectScore, Submission, UserAnswer
from passcut.models.user import User, UserRole
from passcut.schemas.answer_key import RawAnswerRow
from passcut.scoring.core import score_submission
from passcut.scoring.rules import cutoff_threshold, rules_for_track
from passcut.scoring.service import load_scoring_context

_names = count(1)


def key_answer(question_number: int) -> int:
    """Deterministic correct choice used by the seeded keys: 1,2,3,4,1,2..."""
    return (question_number - 1) % 4 + 1


def wrong_answer(correct: int) -> int:
    return correct % 4 + 1


def create_user(db: Session, name: str | None = None, role: UserRole = UserRole.USER) -> User:
    user = User(name=name or f"응시자{next(_names)}", role=role.value)
    db.add(user)
    db.flush()
    return user


def create_admin(db: Session, name: str = "관리자") -> User:
    return create_user(db, name=name, role=UserRole.ADMIN)


def create_exam(
    db: Session,
    name: str = "경찰공무원 채용시험",
    year: int = 2026,
    round: int = 1,
    is_active: bool = True,
    exam_date: date | None = date(2026, 3, 14),
) -> Exam:
    exam = Exam(name=name, year=year, round=round, is_active=is_active, exam_date=exam_date)
    db.add(exam)
    db.commit()
    return exam


def create_region(
    db: Session,
    name: str,
    recruit_count: int = 10,
    recruit_count_career: int = 0,
    applicant_count: int | None = None,
    applicant_count_career: int | None = None,
    is_active: bool = True,
) -> Region:
    region = Region(
        name=name,
        recruit_count=recruit_count,
        recruit_count_career=recruit_count_career,
        applicant_count=applicant_count,
        applicant_count_career=applicant_count_career,
        is_active=is_active,
    )
    db.add(region)
    db.commit()
    return region


def create_subjects(db: Session, track: Track) -> list[Subject]:
    """Subjects matching the rule table for a track."""
    subjects = [
        Subject(
            track=track.value,
            name=rule.name,
            question_count=rule.question_count,
            point_per_question=rule.point_per_question,
            max_score=rule.max_score,
        )
        for rule in rules_for_track(track)
    ]
    db.add_all(subjects)
    db.commit()
    return subjects


def create_answer_key(
    db: Session,
    exam: Exam,
    subjects: list[Subject],
    is_confirmed: bool = True,
    overrides: dict[tuple[int, int], int] | None = None,
) -> dict[tuple[int, int], int]:
    overrides = overrides or {}
    key: dict[tuple[int, int], int] = {}
    for subject in subjects:
        for number in range(1, subject.question_count + 1):
            answer = overrides.get((subject.id, number), key_answer(number))
            key[(subject.id, number)] = answer
            db.add(
                AnswerKey(
                    exam_id=exam.id,
                    subject_id=subject.id,
                    question_number=number,
                    correct_answer=answer,
                    is_confirmed=is_confirmed,
                )
            )
    db.commit()
    return key


def answer_rows(
    subjects: list[Subject], overrides: dict[tuple[int, int], int] | None = None
) -> list[RawAnswerRow]:
    """Full row set in upload form; defaults to the seeded key."""
    overrides = overrides or {}
    return [
        RawAnswerRow(
            subject_id=subject.id,
            question_number=number,
            answer=overrides.get((subject.id, number), key_answer(number)),
        )
        for subject in subjects
        for number in range(1, subject.question_count + 1)
    ]


def selected_with_correct(
    subjects: list[Subject], correct_counts: dict[str, int] | None = None
) -> dict[tuple[int, int], int]:
    """Answer every question; the first N of each subject match the seeded key."""
    correct_counts = correct_counts or {}
    selected: dict[tuple[int, int], int] = {}
    for subject in subjects:
        n_correct = correct_counts.get(subject.name, subject.question_count)
        for number in range(1, subject.question_count + 1):
            correct = key_answer(number)
            selected[(subject.id, number)] = correct if number <= n_correct else wrong_answer(correct)
    return selected


def create_answered_submission(
    db: Session,
    exam: Exam,
    region: Region,
    track: Track,
    selected: dict[tuple[int, int], int],
    user: User | None = None,
    bonus_type: BonusType = BonusType.NONE,
    created_at: datetime | None = None,
) -> Submission:
    """Submission with answers, scored against the stored key the way the submit flow does."""
    user = user or create_user(db)
    context = load_scoring_context(db, exam.id, track)
    result = score_submission(context, selected, bonus_type)
    submission = Submission(
        exam_id=exam.id,
        user_id=user.id,
        region_id=region.id,
        track=track.value,
        total_score=result.total_score,
        bonus_type=bonus_type.value,
        bonus_rate=result.bonus_rate,
        final_score=result.final_score,
        created_at=created_at or datetime.now(UTC),
    )
    submission.user_answers = [
        UserAnswer(
            subject_id=subject_id,
            question_number=number,
            selected_answer=answer,
            is_correct=result.correctness.get((subject_id, number), False),
        )
        for (subject_id, number), answer in selected.items()
    ]
    submission.subject_scores = [
        SubjectScore(subject_id=s.subject_id, raw_score=s.raw_score, is_failed=s.is_cutoff)
        for s in result.subjects
    ]
    db.add(submission)
    db.commit()
    return submission


def create_scored_submission(
    db: Session,
    exam: Exam,
    region: Region,
    subjects: list[Subject],
    final_score: float,
    track: Track = Track.PUBLIC,
    failed: bool = False,
    user: User | None = None,
    is_suspicious: bool = False,
    created_at: datetime | None = None,
    with_scores: bool = True,
) -> Submission:
    """Submission with only scores; subject raw scores are spread evenly from final_score."""
    user = user or create_user(db)
    submission = Submission(
        exam_id=exam.id,
        user_id=user.id,
        region_id=region.id,
        track=track.value,
        total_score=final_score,
        final_score=final_score,
        is_suspicious=is_suspicious,
        created_at=created_at or datetime.now(UTC),
    )
    if with_scores:
        total_max = sum(s.max_score for s in subjects)
        for index, subject in enumerate(subjects):
            raw = round(final_score * subject.max_score / total_max, 2)
            is_failed = failed and index == 0
            if is_failed:
                raw = 0.0
            submission.subject_scores.append(
                SubjectScore(
                    subject_id=subject.id,
                    raw_score=raw,
                    is_failed=is_failed or raw < cutoff_threshold(subject.max_score),
                )
            )
    db.add(submission)
    db.commit()
    return submission
