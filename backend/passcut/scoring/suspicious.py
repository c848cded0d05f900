"""Heuristics flagging submissions that were not genuinely sat.

Flagged submissions stay rankable for their owner but are left out of the
pass-cut populations.
"""

from __future__ import annotations

import math
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field

SINGLE_ANSWER_THRESHOLD = 0.85
CYCLE_MATCH_THRESHOLD = 0.8
MIN_CYCLE_LENGTH = 2
MAX_CYCLE_LENGTH = 5
ENTROPY_THRESHOLD = 0.8
LOW_SCORE_RATIO = 0.1
MIN_SUBMIT_SECONDS = 120


@dataclass
class SuspiciousReport:
    reasons: list[str] = field(default_factory=list)

    @property
    def is_suspicious(self) -> bool:
        return bool(self.reasons)


def _dominant_answer(answers: Sequence[int]) -> str | None:
    if not answers:
        return None
    answer, count = Counter(answers).most_common(1)[0]
    ratio = count / len(answers)
    if ratio >= SINGLE_ANSWER_THRESHOLD:
        return f"single answer dominance: choice {answer} selected {ratio * 100:.0f}%"
    return None


def _repeating_cycle(answers: Sequence[int]) -> str | None:
    if len(answers) < MAX_CYCLE_LENGTH * 2:
        return None
    for length in range(MIN_CYCLE_LENGTH, MAX_CYCLE_LENGTH + 1):
        pattern = answers[:length]
        matches = sum(1 for i, a in enumerate(answers) if a == pattern[i % length])
        ratio = matches / len(answers)
        if ratio >= CYCLE_MATCH_THRESHOLD:
            joined = "-".join(str(a) for a in pattern)
            return f"repeating pattern {joined} matches {ratio * 100:.0f}%"
    return None


def answer_entropy(answers: Sequence[int]) -> float:
    """Shannon entropy in bits (2.0 for a uniform 4-choice spread)."""
    total = len(answers)
    if total == 0:
        return 0.0
    return -sum((n / total) * math.log2(n / total) for n in Counter(answers).values())


def _low_entropy(answers: Sequence[int]) -> str | None:
    if not answers:
        return None
    entropy = answer_entropy(answers)
    if entropy < ENTROPY_THRESHOLD:
        return f"low answer entropy: H={entropy:.2f}"
    return None


def _low_score(total_score: float, max_score: float) -> str | None:
    if max_score <= 0:
        return None
    ratio = total_score / max_score
    if ratio < LOW_SCORE_RATIO:
        return f"unrealistically low score: {total_score} ({ratio * 100:.1f}% of max)"
    return None


FAST_SUBMIT_PREFIX = "submitted in "


def _fast_submit(duration_seconds: float | None) -> str | None:
    if duration_seconds is None or duration_seconds <= 0:
        return None
    if duration_seconds < MIN_SUBMIT_SECONDS:
        return f"{FAST_SUBMIT_PREFIX}{round(duration_seconds)}s"
    return None


def is_timing_reason(reason: str) -> bool:
    """Timing reasons depend on the submit duration, which is not stored."""
    return reason.startswith(FAST_SUBMIT_PREFIX)


def detect_suspicious_answers(
    answers: Sequence[int],
    total_score: float,
    max_score: float,
    duration_seconds: float | None = None,
) -> SuspiciousReport:
    """Run every heuristic over the flattened answer list."""
    report = SuspiciousReport()
    for reason in (
        _dominant_answer(answers),
        _repeating_cycle(answers),
        _low_entropy(answers),
        _low_score(total_score, max_score),
        _fast_submit(duration_seconds),
    ):
        if reason:
            report.reasons.append(reason)
    return report
