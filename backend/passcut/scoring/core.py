"""Pure scoring engine.

Everything here works on plain data (no session), so the same functions
back single-submission scoring, bulk rescoring and the property tests.

Rounding contract: every subject value is rounded to 2 decimals first and
the submission totals are accumulated subject by subject, rounding after
each addition. Summing unrounded values and rounding once drifts by cents
on some inputs, so keep the order.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from passcut.core.app_exceptions import AnswerValidationError, ScoringConfigError
from passcut.models.exam import Track
from passcut.models.submission import BonusType
from passcut.scoring.rules import (
    BONUS_RATE_BY_TYPE,
    CHOICE_MAX,
    CHOICE_MIN,
    HERO_BONUS_BY_PERCENT,
    MAX_BONUS_RATE,
    VETERAN_BONUS_BY_PERCENT,
    cutoff_threshold,
    normalize_subject_name,
    round2,
    rules_for_track,
)

# (subject_id, question_number)
QuestionKey = tuple[int, int]


@dataclass(frozen=True)
class SubjectConfig:
    id: int
    name: str
    question_count: int
    point_per_question: float
    max_score: float


@dataclass
class ScoringContext:
    """Validated subjects of one track plus a complete answer key."""

    track: Track
    subjects: list[SubjectConfig]
    answer_key: dict[QuestionKey, int]

    def subject_by_id(self, subject_id: int) -> SubjectConfig | None:
        for subject in self.subjects:
            if subject.id == subject_id:
                return subject
        return None

    @property
    def max_total(self) -> float:
        return round2(sum(subject.max_score for subject in self.subjects))


@dataclass
class SubjectResult:
    subject_id: int
    subject_name: str
    question_count: int
    correct_count: int
    raw_score: float
    max_score: float
    bonus_score: float
    final_score: float
    is_cutoff: bool


@dataclass
class ScoreResult:
    bonus_rate: float
    subjects: list[SubjectResult] = field(default_factory=list)
    total_score: float = 0.0
    bonus_score: float = 0.0
    final_score: float = 0.0
    has_cutoff: bool = False
    # (subject_id, question_number) -> correct? for every answered question
    correctness: dict[QuestionKey, bool] = field(default_factory=dict)
    suspicious_reasons: list[str] = field(default_factory=list)


def validate_subject_rules(track: Track | str, subjects: Iterable[SubjectConfig]) -> list[SubjectConfig]:
    """Check configured subjects against the rule table, returned in rule order.

    Raises:
        ScoringConfigError: on any missing, unexpected or mismatching subject.
    """
    track = Track(track)
    by_name = {normalize_subject_name(s.name): s for s in subjects}
    rules = rules_for_track(track)
    expected_names = {normalize_subject_name(rule.name) for rule in rules}

    unexpected = sorted(set(by_name) - expected_names)
    if unexpected:
        raise ScoringConfigError(
            f"Unexpected subjects configured for {track.value}",
            {"track": track.value, "subjects": unexpected},
        )

    ordered: list[SubjectConfig] = []
    for rule in rules:
        subject = by_name.get(normalize_subject_name(rule.name))
        if subject is None:
            raise ScoringConfigError(
                f"Subject '{rule.name}' is not configured for {track.value}",
                {"track": track.value, "subject": rule.name},
            )
        if (
            subject.question_count != rule.question_count
            or round2(subject.point_per_question) != round2(rule.point_per_question)
            or round2(subject.max_score) != round2(rule.max_score)
        ):
            raise ScoringConfigError(
                f"Subject '{rule.name}' does not match the {track.value} rule table",
                {
                    "track": track.value,
                    "subject": rule.name,
                    "expected": {
                        "question_count": rule.question_count,
                        "point_per_question": rule.point_per_question,
                        "max_score": rule.max_score,
                    },
                    "actual": {
                        "question_count": subject.question_count,
                        "point_per_question": subject.point_per_question,
                        "max_score": subject.max_score,
                    },
                },
            )
        ordered.append(subject)
    return ordered


def ensure_answer_key_complete(subjects: Iterable[SubjectConfig], answer_key: Mapping[QuestionKey, int]) -> None:
    """Every question of every subject needs a key row."""
    for subject in subjects:
        for question_number in range(1, subject.question_count + 1):
            if (subject.id, question_number) not in answer_key:
                raise ScoringConfigError(
                    "Answer key incomplete",
                    {"subject": subject.name, "question_number": question_number},
                )


def build_scoring_context(
    track: Track | str,
    subjects: Iterable[SubjectConfig],
    answer_key: Mapping[QuestionKey, int],
) -> ScoringContext:
    ordered = validate_subject_rules(track, subjects)
    ensure_answer_key_complete(ordered, answer_key)
    return ScoringContext(track=Track(track), subjects=ordered, answer_key=dict(answer_key))


def normalize_bonus_rate(bonus_type: BonusType | str | None, bonus_rate: float | None = None) -> float:
    """Directly supplied rates win when finite and within [0, 0.10]; otherwise use the type."""
    if bonus_rate is not None and isinstance(bonus_rate, int | float) and math.isfinite(bonus_rate):
        rate = round2(bonus_rate)
        if 0 <= rate <= MAX_BONUS_RATE:
            return rate
    try:
        return BONUS_RATE_BY_TYPE[BonusType(bonus_type or BonusType.NONE)]
    except ValueError:
        return 0.0


def bonus_type_from_percent(veteran_percent: int = 0, hero_percent: int = 0) -> BonusType:
    """Map the two mutually exclusive bonus categories to one BonusType."""
    if veteran_percent not in VETERAN_BONUS_BY_PERCENT:
        raise AnswerValidationError(
            "Veteran bonus must be 0, 5 or 10 percent", {"veteran_percent": veteran_percent}
        )
    if hero_percent not in HERO_BONUS_BY_PERCENT:
        raise AnswerValidationError("Hero bonus must be 0, 3 or 5 percent", {"hero_percent": hero_percent})
    if veteran_percent and hero_percent:
        raise AnswerValidationError(
            "Veteran and hero bonuses cannot both apply",
            {"veteran_percent": veteran_percent, "hero_percent": hero_percent},
        )
    if veteran_percent:
        return VETERAN_BONUS_BY_PERCENT[veteran_percent]
    return HERO_BONUS_BY_PERCENT[hero_percent]


def validate_selected_answers(
    context: ScoringContext, selected: Mapping[QuestionKey, int]
) -> dict[QuestionKey, int]:
    """Reject answers for unknown subjects, questions out of range or choices outside 1..4."""
    validated: dict[QuestionKey, int] = {}
    for (subject_id, question_number), answer in selected.items():
        subject = context.subject_by_id(subject_id)
        if subject is None:
            raise AnswerValidationError("Unknown subject in answers", {"subject_id": subject_id})
        if not 1 <= question_number <= subject.question_count:
            raise AnswerValidationError(
                "Question number out of range",
                {"subject": subject.name, "question_number": question_number},
            )
        if not CHOICE_MIN <= answer <= CHOICE_MAX:
            raise AnswerValidationError(
                "Answer must be between 1 and 4",
                {"subject": subject.name, "question_number": question_number, "answer": answer},
            )
        validated[(subject_id, question_number)] = answer
    return validated


def score_subject(
    subject: SubjectConfig,
    answer_key: Mapping[QuestionKey, int],
    selected: Mapping[QuestionKey, int],
    bonus_rate: float,
    correctness: dict[QuestionKey, bool] | None = None,
) -> SubjectResult:
    correct_count = 0
    for question_number in range(1, subject.question_count + 1):
        key = (subject.id, question_number)
        correct_answer = answer_key.get(key)
        if correct_answer is None:
            raise ScoringConfigError(
                "Answer key incomplete", {"subject": subject.name, "question_number": question_number}
            )
        chosen = selected.get(key)
        is_correct = chosen is not None and chosen == correct_answer
        if is_correct:
            correct_count += 1
        if correctness is not None and chosen is not None:
            correctness[key] = is_correct

    raw_score = round2(correct_count * subject.point_per_question)
    bonus_score = round2(subject.max_score * bonus_rate)
    return SubjectResult(
        subject_id=subject.id,
        subject_name=subject.name,
        question_count=subject.question_count,
        correct_count=correct_count,
        raw_score=raw_score,
        max_score=subject.max_score,
        bonus_score=bonus_score,
        final_score=round2(raw_score + bonus_score),
        is_cutoff=raw_score < cutoff_threshold(subject.max_score),
    )


def score_submission(
    context: ScoringContext,
    selected: Mapping[QuestionKey, int],
    bonus_type: BonusType | str | None = BonusType.NONE,
    bonus_rate: float | None = None,
) -> ScoreResult:
    """Score one submission. Unanswered questions count as wrong."""
    rate = normalize_bonus_rate(bonus_type, bonus_rate)
    result = ScoreResult(bonus_rate=rate)
    for subject in context.subjects:
        subject_result = score_subject(subject, context.answer_key, selected, rate, result.correctness)
        result.subjects.append(subject_result)
        result.total_score = round2(result.total_score + subject_result.raw_score)
        result.bonus_score = round2(result.bonus_score + subject_result.bonus_score)
        result.has_cutoff = result.has_cutoff or subject_result.is_cutoff
    result.final_score = round2(result.total_score + result.bonus_score)
    return result
