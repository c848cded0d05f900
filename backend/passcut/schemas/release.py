"""Pydantic schemas for pass-cut releases and auto-release runs."""

from datetime import datetime
from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from passcut.models.pass_cut import SnapshotStatus


class ReleaseTrigger(str, Enum):
    TRAFFIC = "traffic"
    CRON = "cron"


class AutoReleaseReason(str, Enum):
    """Outcome of one auto-release run."""

    AUTO_DISABLED = "disabled"
    MODE_BLOCKED = "mode-blocked"
    INTERVAL_THROTTLED = "throttled"
    NO_ACTIVE_EXAM = "no-active-exam"
    NO_TARGET_ROWS = "no-target-rows"
    ALL_RELEASES_COMPLETED = "all-completed"
    THRESHOLD_NOT_REACHED = "threshold-not-reached"
    NO_ADMIN_USER = "no-admin-user"
    RELEASE_CREATED = "created"
    DUPLICATED = "duplicated"


class AutoReleaseTriggerIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    exam_id: int | None = Field(default=None, ge=1, validation_alias=AliasChoices("exam_id", "examId"))
    trigger: ReleaseTrigger = ReleaseTrigger.CRON
    force: bool = False


class PassCutRow(BaseModel):
    """Pass-cut figures of one (region, track) pair."""

    region_id: int
    region_name: str
    track: str
    recruit_count: int
    applicant_count: int | None
    competition_rate: float | None
    participant_count: int
    average_score: float | None
    one_multiple_cut_score: float | None
    sure_min_score: float | None
    likely_min_score: float | None
    possible_min_score: float | None


class ReleaseStatusPayload(BaseModel):
    status: SnapshotStatus
    status_reason: str | None
    applicant_count: int | None
    target_participant_count: int
    coverage_rate: float
    stability_score: float


class EvaluatedRow(PassCutRow):
    """Pass-cut row plus the readiness signals it was judged on."""

    status_payload: ReleaseStatusPayload
    is_ready: bool
    one_multiple_tie_count: int | None
    recent_inflow_count: int
    recent_inflow_rate_pct: float
    cut_60m_ago: float | None
    cut_shift: float | None
    cut_shift_penalty: float
    inflow_penalty: float
    tie_penalty: float


class AutoReleaseRunResult(BaseModel):
    """Result of one evaluation/publish cycle."""

    triggered: bool
    reason: AutoReleaseReason
    exam_id: int | None = None
    next_release_number: int | None = None
    ready_region_ratio: float | None = None
    required_ready_ratio: float | None = None
    eligible_region_count: int = 0
    ready_region_count: int = 0
    release_id: int | None = None
    rows: list[EvaluatedRow] = Field(default_factory=list)


class PassCutReleaseCreated(BaseModel):
    id: int
    exam_id: int
    release_number: int
    participant_count: int
    snapshot_count: int


class AdminReleaseRequest(BaseModel):
    """POST /admin/pass-cut-releases."""

    model_config = ConfigDict(populate_by_name=True)

    exam_id: int = Field(ge=1, validation_alias=AliasChoices("exam_id", "examId"))
    release_number: int = Field(ge=1, le=4, validation_alias=AliasChoices("release_number", "releaseNumber"))
    admin_user_id: int = Field(ge=1, validation_alias=AliasChoices("admin_user_id", "adminUserId"))
    memo: str | None = None
    auto_notice: bool = Field(default=True, validation_alias=AliasChoices("auto_notice", "autoNotice"))


class PassCutSnapshotOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    participant_count: int
    recruit_count: int
    applicant_count: int | None = None
    target_participant_count: int | None = None
    coverage_rate: float | None = None
    stability_score: float | None = None
    status: SnapshotStatus | None = None
    status_reason: str | None = None
    average_score: float | None = None
    one_multiple_cut_score: float | None = None
    sure_min_score: float | None = None
    likely_min_score: float | None = None
    possible_min_score: float | None = None


class PassCutHistoryRelease(BaseModel):
    release_number: int
    released_at: datetime
    total_participant_count: int
    snapshot: PassCutSnapshotOut | None


class PassCutHistory(BaseModel):
    """Published releases of one region/track plus its live current snapshot."""

    exam_id: int | None
    releases: list[PassCutHistoryRelease]
    current: PassCutSnapshotOut
