"""Auto-release configuration.

Site settings are read once per run into an immutable ``AutoReleaseConfig``
that is passed down explicitly; nothing below the run entry point looks up
settings on its own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from passcut.core.config import settings
from passcut.models.site import SiteSetting

logger = logging.getLogger(__name__)

MIN_CHECK_INTERVAL_SEC = 30
DEFAULT_CHECK_INTERVAL_SEC = 300

KEY_ENABLED = "site.autoPassCutEnabled"
KEY_MODE = "site.autoPassCutMode"
KEY_INTERVAL = "site.autoPassCutCheckIntervalSec"
KEY_THRESHOLD_PROFILE = "site.autoPassCutThresholdProfile"
KEY_READY_RATIO_PROFILE = "site.autoPassCutReadyRatioProfile"
KEY_CAREER_ENABLED = "site.careerExamEnabled"

SETTING_KEYS = (
    KEY_ENABLED,
    KEY_MODE,
    KEY_INTERVAL,
    KEY_THRESHOLD_PROFILE,
    KEY_READY_RATIO_PROFILE,
    KEY_CAREER_ENABLED,
)


class AutoReleaseMode(str, Enum):
    HYBRID = "HYBRID"
    TRAFFIC_ONLY = "TRAFFIC_ONLY"
    CRON_ONLY = "CRON_ONLY"


class ThresholdProfile(str, Enum):
    BALANCED = "BALANCED"
    CONSERVATIVE = "CONSERVATIVE"
    AGGRESSIVE = "AGGRESSIVE"


@dataclass(frozen=True)
class ThresholdBundle:
    """Per-release (1..4) thresholds plus the minimum sample size."""

    coverage_by_release: tuple[float, float, float, float]
    stability_by_release: tuple[float, float, float, float]
    ready_ratio_by_release: tuple[float, float, float, float]
    min_sample_count: int


PROFILE_MAP: dict[ThresholdProfile, ThresholdBundle] = {
    ThresholdProfile.BALANCED: ThresholdBundle(
        coverage_by_release=(30, 50, 70, 90),
        stability_by_release=(45, 55, 65, 75),
        ready_ratio_by_release=(25, 45, 65, 85),
        min_sample_count=10,
    ),
    ThresholdProfile.CONSERVATIVE: ThresholdBundle(
        coverage_by_release=(40, 60, 80, 95),
        stability_by_release=(55, 65, 75, 85),
        ready_ratio_by_release=(35, 55, 75, 95),
        min_sample_count=15,
    ),
    ThresholdProfile.AGGRESSIVE: ThresholdBundle(
        coverage_by_release=(20, 35, 50, 70),
        stability_by_release=(35, 45, 55, 65),
        ready_ratio_by_release=(15, 30, 50, 70),
        min_sample_count=8,
    ),
}


@dataclass(frozen=True)
class AutoReleaseConfig:
    enabled: bool = False
    mode: AutoReleaseMode = AutoReleaseMode.HYBRID
    check_interval_sec: int = DEFAULT_CHECK_INTERVAL_SEC
    threshold_profile: ThresholdProfile = ThresholdProfile.BALANCED
    ready_ratio_profile: ThresholdProfile = ThresholdProfile.BALANCED
    include_career: bool = True

    @property
    def thresholds(self) -> ThresholdBundle:
        """Threshold-profile bundle with the ready-ratio row taken from the ratio profile."""
        base = PROFILE_MAP[self.threshold_profile]
        return ThresholdBundle(
            coverage_by_release=base.coverage_by_release,
            stability_by_release=base.stability_by_release,
            ready_ratio_by_release=PROFILE_MAP[self.ready_ratio_profile].ready_ratio_by_release,
            min_sample_count=base.min_sample_count,
        )

    @property
    def throttle_interval_sec(self) -> int:
        return max(MIN_CHECK_INTERVAL_SEC, self.check_interval_sec)

    def allows(self, trigger: str) -> bool:
        if self.mode == AutoReleaseMode.HYBRID:
            return True
        if trigger == "traffic":
            return self.mode == AutoReleaseMode.TRAFFIC_ONLY
        return self.mode == AutoReleaseMode.CRON_ONLY


def parse_profile(value: Any, fallback: ThresholdProfile = ThresholdProfile.BALANCED) -> ThresholdProfile:
    if not isinstance(value, str):
        return fallback
    try:
        return ThresholdProfile(value.strip().upper())
    except ValueError:
        return fallback


def parse_mode(value: Any) -> AutoReleaseMode:
    if not isinstance(value, str):
        return AutoReleaseMode.HYBRID
    try:
        return AutoReleaseMode(value.strip().upper())
    except ValueError:
        return AutoReleaseMode.HYBRID


def parse_interval(value: Any) -> int:
    try:
        parsed = int(float(value))
    except (TypeError, ValueError):
        return DEFAULT_CHECK_INTERVAL_SEC
    return parsed if parsed >= 1 else DEFAULT_CHECK_INTERVAL_SEC


def parse_bool(value: Any, fallback: bool) -> bool:
    if value is None:
        return fallback
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def build_auto_release_config(values: dict[str, Any]) -> AutoReleaseConfig:
    """Config from site-setting values, falling back to environment defaults."""
    return AutoReleaseConfig(
        enabled=parse_bool(values.get(KEY_ENABLED), settings.AUTO_PASSCUT_ENABLED),
        mode=parse_mode(values.get(KEY_MODE, settings.AUTO_PASSCUT_MODE)),
        check_interval_sec=parse_interval(values.get(KEY_INTERVAL, settings.AUTO_PASSCUT_CHECK_INTERVAL_SEC)),
        threshold_profile=parse_profile(
            values.get(KEY_THRESHOLD_PROFILE, settings.AUTO_PASSCUT_THRESHOLD_PROFILE)
        ),
        ready_ratio_profile=parse_profile(
            values.get(KEY_READY_RATIO_PROFILE, settings.AUTO_PASSCUT_READY_RATIO_PROFILE)
        ),
        include_career=parse_bool(values.get(KEY_CAREER_ENABLED), settings.CAREER_EXAM_ENABLED),
    )


def load_auto_release_config(db: Session) -> AutoReleaseConfig:
    """Read the site-setting rows once and freeze them."""
    rows = db.execute(select(SiteSetting).where(SiteSetting.key.in_(SETTING_KEYS))).scalars().all()
    return build_auto_release_config({row.key: row.value for row in rows})
