"""Static subject rule table and bonus-rate lookups."""

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from passcut.models.exam import Track
from passcut.models.submission import BonusType

CUTOFF_RATIO = 0.4
MAX_BONUS_RATE = 0.10
CHOICE_MIN = 1
CHOICE_MAX = 4


@dataclass(frozen=True)
class SubjectRule:
    name: str
    question_count: int
    point_per_question: float
    max_score: float


SUBJECT_RULES: dict[Track, tuple[SubjectRule, ...]] = {
    Track.PUBLIC: (
        SubjectRule("헌법", 20, 2.5, 50.0),
        SubjectRule("형사법", 40, 2.5, 100.0),
        SubjectRule("경찰학", 40, 2.5, 100.0),
    ),
    Track.CAREER: (
        SubjectRule("범죄학", 20, 2.5, 50.0),
        SubjectRule("형사법", 40, 2.5, 100.0),
        SubjectRule("경찰학", 40, 2.5, 100.0),
    ),
}

BONUS_RATE_BY_TYPE: dict[BonusType, float] = {
    BonusType.NONE: 0.0,
    BonusType.VETERAN_5: 0.05,
    BonusType.VETERAN_10: 0.10,
    BonusType.HERO_3: 0.03,
    BonusType.HERO_5: 0.05,
}

VETERAN_BONUS_BY_PERCENT: dict[int, BonusType] = {
    0: BonusType.NONE,
    5: BonusType.VETERAN_5,
    10: BonusType.VETERAN_10,
}

HERO_BONUS_BY_PERCENT: dict[int, BonusType] = {
    0: BonusType.NONE,
    3: BonusType.HERO_3,
    5: BonusType.HERO_5,
}

_WHITESPACE = re.compile(r"\s+")
_CENT = Decimal("0.01")


def round2(value: float) -> float:
    """Round half-up to 2 decimals (all score arithmetic goes through here)."""
    return float(Decimal(repr(float(value))).quantize(_CENT, rounding=ROUND_HALF_UP))


def normalize_subject_name(name: str) -> str:
    return _WHITESPACE.sub("", name or "")


def subject_lookup_key(name: str) -> str:
    """Case- and whitespace-insensitive key used when matching user input."""
    return normalize_subject_name(name).lower()


def rules_for_track(track: Track | str) -> tuple[SubjectRule, ...]:
    return SUBJECT_RULES[Track(track)]


def cutoff_threshold(max_score: float) -> float:
    return round2(max_score * CUTOFF_RATIO)
