"""Pure readiness math: coverage, stability penalties and the status gates.

Gates run in a fixed order and the first failing one decides the status:
missing applicant count, insufficient sample, low participation, unstable,
then ready.
"""

from __future__ import annotations

from passcut.models.pass_cut import SnapshotStatus
from passcut.schemas.release import ReleaseStatusPayload
from passcut.scoring.rules import round2

CUT_SHIFT_PENALTY_CAP = 40.0
INFLOW_PENALTY_CAP = 30.0
TIE_PENALTY_CAP = 30.0
CUT_SHIFT_WEIGHT = 20.0
INFLOW_WEIGHT = 1.5
TIE_WEIGHT = 1.2
MAX_RELEASE_NUMBER = 4

STATUS_REASONS: dict[SnapshotStatus, str] = {
    SnapshotStatus.COLLECTING_MISSING_APPLICANT_COUNT: "applicant count not entered",
    SnapshotStatus.COLLECTING_INSUFFICIENT_SAMPLE: "insufficient sample",
    SnapshotStatus.COLLECTING_LOW_PARTICIPATION: "low participation",
    SnapshotStatus.COLLECTING_UNSTABLE: "unstable",
}


def rate_pct(count: int, target: int) -> float:
    return round2(count / target * 100) if target > 0 else 0.0


def cut_shift_penalty(cut_shift: float | None) -> float:
    if cut_shift is None:
        return CUT_SHIFT_PENALTY_CAP
    return min(CUT_SHIFT_PENALTY_CAP, cut_shift * CUT_SHIFT_WEIGHT)


def inflow_penalty(inflow_rate_pct: float) -> float:
    return min(INFLOW_PENALTY_CAP, inflow_rate_pct * INFLOW_WEIGHT)


def tie_penalty(tie_rate_pct: float) -> float:
    return min(TIE_PENALTY_CAP, tie_rate_pct * TIE_WEIGHT)


def stability_score(cut_shift: float | None, inflow_rate_pct: float, tie_rate_pct: float) -> float:
    """100 minus the three capped penalties, floored at zero."""
    penalty = cut_shift_penalty(cut_shift) + inflow_penalty(inflow_rate_pct) + tie_penalty(tie_rate_pct)
    return round2(max(0.0, 100.0 - penalty))


def threshold_index(release_number: int) -> int:
    return max(0, min(MAX_RELEASE_NUMBER - 1, release_number - 1))


def next_release_number(existing: list[int] | set[int]) -> int | None:
    """First unused release number in 1..4, None when all four exist."""
    used = set(existing)
    for number in range(1, MAX_RELEASE_NUMBER + 1):
        if number not in used:
            return number
    return None


def classify_readiness(
    applicant_count: int | None,
    participant_count: int,
    one_multiple_cut_score: float | None,
    coverage_rate: float,
    stability: float,
    target_participant_count: int,
    min_sample_count: int,
    coverage_threshold: float,
    stability_threshold: float,
) -> ReleaseStatusPayload:
    if applicant_count is None:
        status = SnapshotStatus.COLLECTING_MISSING_APPLICANT_COUNT
        reason = STATUS_REASONS[status]
    elif participant_count < min_sample_count or one_multiple_cut_score is None:
        status = SnapshotStatus.COLLECTING_INSUFFICIENT_SAMPLE
        reason = STATUS_REASONS[status]
    elif coverage_rate < coverage_threshold:
        status = SnapshotStatus.COLLECTING_LOW_PARTICIPATION
        reason = f"low participation ({coverage_rate:.1f}% < {coverage_threshold:g}%)"
    elif stability < stability_threshold:
        status = SnapshotStatus.COLLECTING_UNSTABLE
        reason = f"unstable ({stability:.1f} < {stability_threshold:g})"
    else:
        status, reason = SnapshotStatus.READY, None

    return ReleaseStatusPayload(
        status=status,
        status_reason=reason,
        applicant_count=applicant_count,
        target_participant_count=target_participant_count,
        coverage_rate=round2(coverage_rate),
        stability_score=round2(stability),
    )
