"""Sleep schedule consistency.

Consistency is the inverse of the spread of bed and wake clock times over
recent nights:

    total_hours = (stdev(bedtimes) + stdev(wake_times)) / 3600
    score       = clamp(1 - total_hours / 4, 0, 1)

Times are compared as time-of-day, not as timestamps.  Bedtimes are measured
from noon so that 23:30 and 00:30 land one hour apart; wake times are
measured from midnight with evening times wrapping negative.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time
from enum import Enum
from typing import Iterable, Optional, Sequence, Tuple, Union

from pulsebase.analytics.stats import clamp, std_dev
from pulsebase.config import DEFAULT_CONFIG, ScoringConfig
from pulsebase.models import Night

SECONDS_PER_DAY = 24 * 3600
NOON = 12 * 3600
EVENING = 18 * 3600

TimeLike = Union[time, datetime]
NightLike = Union[Night, Tuple[Optional[TimeLike], Optional[TimeLike]]]


@dataclass(frozen=True)
class ConsistencyMetrics:
    """Spread of bed/wake times and the resulting 0-1 score."""

    bedtime_variance: float  # std dev, seconds
    wake_time_variance: float  # std dev, seconds
    consistency_score: float  # 0-1
    insufficient_data: bool
    nights_used: int = 0

    def to_dict(self) -> dict:
        return {
            "bedtime_variance": round(self.bedtime_variance, 1),
            "wake_time_variance": round(self.wake_time_variance, 1),
            "consistency_score": round(self.consistency_score, 4),
            "insufficient_data": self.insufficient_data,
            "nights_used": self.nights_used,
        }

    def __repr__(self) -> str:
        flag = ", insufficient" if self.insufficient_data else ""
        return (
            f"ConsistencyMetrics(score={self.consistency_score:.2f}, "
            f"bed_sd={self.bedtime_variance / 60:.0f}min, "
            f"wake_sd={self.wake_time_variance / 60:.0f}min, "
            f"n={self.nights_used}{flag})"
        )


def _seconds_of_day(t: TimeLike) -> int:
    return t.hour * 3600 + t.minute * 60 + t.second


def bedtime_seconds(t: TimeLike) -> float:
    """Seconds after noon, so an evening-to-early-morning span is contiguous."""
    return float((_seconds_of_day(t) - NOON) % SECONDS_PER_DAY)


def wake_seconds(t: TimeLike) -> float:
    """Seconds after midnight; 18:00 and later count as before midnight."""
    s = _seconds_of_day(t)
    return float(s - SECONDS_PER_DAY if s >= EVENING else s)


def _as_night(item: NightLike) -> Night:
    if isinstance(item, Night):
        return item
    bedtime, wake = item
    return Night(bedtime, wake)


def calculate_consistency(
    nights: Iterable[NightLike],
    config: ScoringConfig = DEFAULT_CONFIG,
) -> ConsistencyMetrics:
    """Compute consistency over the given nights.

    Args:
        nights: Night records (or ``(bedtime, wake_time)`` tuples); nights
            missing either time do not qualify.
        config: Minimum nights and the variance at which the score hits 0.

    Returns:
        ConsistencyMetrics.  With fewer than ``consistency_min_nights``
        qualifying nights, ``insufficient_data`` is True and the score is a
        neutral 1.0.
    """
    qualifying = [n for n in (_as_night(i) for i in nights) if n.complete]
    if len(qualifying) < config.consistency_min_nights:
        return ConsistencyMetrics(
            bedtime_variance=0.0,
            wake_time_variance=0.0,
            consistency_score=1.0,
            insufficient_data=True,
            nights_used=len(qualifying),
        )

    beds = [bedtime_seconds(n.bedtime) for n in qualifying]  # type: ignore[arg-type]
    wakes = [wake_seconds(n.wake_time) for n in qualifying]  # type: ignore[arg-type]

    bed_sd = std_dev(beds, ddof=0)
    wake_sd = std_dev(wakes, ddof=0)
    total_hours = (bed_sd + wake_sd) / 3600.0
    score = clamp(1.0 - total_hours / config.consistency_max_variance_hours, 0.0, 1.0)

    return ConsistencyMetrics(
        bedtime_variance=bed_sd,
        wake_time_variance=wake_sd,
        consistency_score=score,
        insufficient_data=False,
        nights_used=len(qualifying),
    )


# ---------------------------------------------------------------------------
# Categories and trends
# ---------------------------------------------------------------------------


class ConsistencyCategory(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


CATEGORY_RECOMMENDATIONS = {
    ConsistencyCategory.EXCELLENT: "Maintain your current sleep schedule.",
    ConsistencyCategory.GOOD: "Try to be more consistent on weekends.",
    ConsistencyCategory.FAIR: "Set a fixed bedtime and stick to it.",
    ConsistencyCategory.POOR: "Prioritize a regular sleep schedule for better recovery.",
}


def consistency_category(score: float) -> ConsistencyCategory:
    if score >= 0.8:
        return ConsistencyCategory.EXCELLENT
    if score >= 0.6:
        return ConsistencyCategory.GOOD
    if score >= 0.4:
        return ConsistencyCategory.FAIR
    return ConsistencyCategory.POOR


@dataclass(frozen=True)
class ConsistencyTrend:
    direction: str  # improving / stable / declining
    change: float
    insight: str


TREND_CHANGE = 0.1


def consistency_trend(weekly_scores: Sequence[float]) -> ConsistencyTrend:
    """Compare the last two weekly consistency scores."""
    if len(weekly_scores) < 2:
        return ConsistencyTrend("stable", 0.0, "Not enough data for trend analysis")

    change = weekly_scores[-1] - weekly_scores[-2]
    if change > TREND_CHANGE:
        return ConsistencyTrend(
            "improving",
            change,
            "Your sleep schedule is becoming more consistent. Keep it up!",
        )
    if change < -TREND_CHANGE:
        return ConsistencyTrend(
            "declining",
            change,
            "Your sleep schedule has been less consistent. Try setting a fixed bedtime.",
        )
    return ConsistencyTrend("stable", change, "Your sleep consistency has been stable.")
