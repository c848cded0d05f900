"""Pass-multiple lookup and the rank-to-score walk over score bands."""

from __future__ import annotations

import math
from collections import Counter
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from passcut.schemas.ranking import PredictionGrade
from passcut.scoring.rules import round2

LIKELY_FACTOR = 0.8
CHALLENGE_FACTOR = 1.3

# Regions recruiting fewer than six use a fixed pass count instead of a multiple
SMALL_RECRUIT_PASS_COUNTS: dict[int, int] = {1: 3, 2: 6, 3: 8, 4: 9, 5: 10}

# (final score, participants with that score), score descending
ScoreBand = tuple[float, int]


def _guard(value: float) -> float:
    # strips float noise such as 160.00000000000003 before ceil/floor
    return round(value, 6)


def get_pass_multiple(recruit_count: int) -> float | None:
    """Pass multiple for a recruit count; None when nobody is recruited."""
    if recruit_count >= 150:
        return 1.5
    if recruit_count >= 100:
        return 1.6
    if recruit_count >= 50:
        return 1.7
    if recruit_count >= 6:
        return 1.8
    pass_count = SMALL_RECRUIT_PASS_COUNTS.get(recruit_count)
    if pass_count is None:
        return None
    return pass_count / recruit_count


def display_pass_multiple(pass_multiple: float | None) -> str:
    """One-decimal label, '-' when undefined."""
    if pass_multiple is None:
        return "-"
    return str(Decimal(repr(pass_multiple)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def get_pass_count(recruit_count: int, pass_multiple: float | None = None) -> int | None:
    if recruit_count in SMALL_RECRUIT_PASS_COUNTS:
        return SMALL_RECRUIT_PASS_COUNTS[recruit_count]
    if pass_multiple is None:
        pass_multiple = get_pass_multiple(recruit_count)
    if pass_multiple is None:
        return None
    return math.ceil(_guard(recruit_count * pass_multiple))


def max_rank_by_multiple(recruit_count: int, multiple: float) -> int:
    return max(1, math.floor(_guard(recruit_count * multiple)))


def likely_max_rank(recruit_count: int, pass_multiple: float) -> int:
    return max_rank_by_multiple(recruit_count, pass_multiple * LIKELY_FACTOR)


def challenge_max_rank(recruit_count: int, pass_multiple: float) -> int:
    return max_rank_by_multiple(recruit_count, pass_multiple * CHALLENGE_FACTOR)


def classify_grade(my_multiple: float, pass_multiple: float) -> PredictionGrade:
    if my_multiple <= 1:
        return PredictionGrade.SURE
    if my_multiple <= pass_multiple * LIKELY_FACTOR:
        return PredictionGrade.LIKELY
    if my_multiple <= pass_multiple:
        return PredictionGrade.POSSIBLE
    if my_multiple <= pass_multiple * CHALLENGE_FACTOR:
        return PredictionGrade.CHALLENGE
    return PredictionGrade.BELOW_CHALLENGE


def build_score_bands(scores: Iterable[float]) -> list[ScoreBand]:
    """Group scores into (score, count) bands, highest score first."""
    counts = Counter(round2(score) for score in scores)
    return sorted(counts.items(), key=lambda band: -band[0])


def score_at_rank(bands: list[ScoreBand], rank: int) -> float | None:
    """Score held by the participant at ``rank``.

    Walks the bands accumulating counts until the rank is covered. Every
    reported cut score goes through this walk.
    """
    if not isinstance(rank, int) or rank < 1:
        return None
    covered = 0
    for score, count in bands:
        covered += count
        if covered >= rank:
            return round2(score)
    return None


def score_range(bands: list[ScoreBand], start_rank: int, end_rank: int) -> tuple[float | None, float | None]:
    """(max, min) score over ranks start..end; (None, None) for an empty range."""
    if start_rank < 1 or start_rank > end_rank:
        return None, None
    return score_at_rank(bands, start_rank), score_at_rank(bands, end_rank)
