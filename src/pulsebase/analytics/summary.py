"""Daily score records and calendar-week aggregation.

:class:`DailyScores` bundles one day's sample with every score derived from
it and is JSON-serializable.  :func:`aggregate_week` rolls those records up
over a fixed calendar week, averaging each metric independently over only
the days where it is present.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date, timedelta
from types import MappingProxyType
from typing import Any, Callable, Mapping, Sequence

from pulsebase.analytics.consistency import (
    ConsistencyMetrics,
    bedtime_seconds,
    calculate_consistency,
)
from pulsebase.analytics.deviation import DeviationResult
from pulsebase.analytics.recovery import RecoveryScore
from pulsebase.analytics.sleep import SleepPerformanceScore
from pulsebase.analytics.stats import mean_or_none
from pulsebase.analytics.strain import StrainScore
from pulsebase.config import DEFAULT_CONFIG, ScoringConfig
from pulsebase.exceptions import InvalidInputError
from pulsebase.models import DailySample

DAYS_PER_WEEK = 7


@dataclass(frozen=True)
class DailyScores:
    """A single day's sample and the scores computed from it."""

    day: date
    sample: DailySample | None = None
    hrv_deviation: DeviationResult | None = None
    rhr_deviation: DeviationResult | None = None
    recovery: RecoveryScore | None = None
    strain: StrainScore | None = None
    sleep_performance: SleepPerformanceScore | None = None
    consistency: ConsistencyMetrics | None = None

    def metric(self, key: str) -> float | None:
        """Look up a named daily metric; None when absent."""
        getter = METRICS.get(key)
        if getter is None:
            raise InvalidInputError(
                f"Unknown metric {key!r}; expected one of {sorted(METRICS)}"
            )
        return getter(self)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dict (JSON-friendly)."""

        def _opt(obj: Any) -> Any:
            return obj.to_dict() if obj is not None else None

        return {
            "day": self.day.isoformat(),
            "sample": _opt(self.sample),
            "hrv_deviation": _opt(self.hrv_deviation),
            "rhr_deviation": _opt(self.rhr_deviation),
            "recovery": _opt(self.recovery),
            "strain": _opt(self.strain),
            "sleep_performance": _opt(self.sleep_performance),
            "consistency": _opt(self.consistency),
        }

    def to_json(self, indent: int = 2) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    def __repr__(self) -> str:
        def _fmt(v: float | None, spec: str) -> str:
            return "-" if v is None else format(v, spec)

        strain = (
            "-" if self.strain is None
            else f"{self.strain.score:.1f}/{self.strain.scale_max:g}"
        )
        return (
            f"DailyScores({self.day}: "
            f"recovery={_fmt(self.metric('recovery'), '.0f')}, "
            f"strain={strain}, "
            f"sleep={_fmt(self.metric('sleep_performance'), '.0f')})"
        )


def _sample_attr(name: str) -> Callable[[DailyScores], float | None]:
    def get(rec: DailyScores) -> float | None:
        return getattr(rec.sample, name) if rec.sample is not None else None

    return get


def _bedtime_minutes(rec: DailyScores) -> float | None:
    if rec.sample is None or rec.sample.bedtime is None:
        return None
    return bedtime_seconds(rec.sample.bedtime) / 60.0


# Named metrics usable by pattern detection and week summaries
METRICS: dict[str, Callable[[DailyScores], float | None]] = {
    "recovery": lambda r: float(r.recovery.score) if r.recovery else None,
    "strain": lambda r: r.strain.score if r.strain else None,
    "strain_normalized": lambda r: r.strain.normalized if r.strain else None,
    "sleep_performance": (
        lambda r: float(r.sleep_performance.score) if r.sleep_performance else None
    ),
    "consistency": (
        lambda r: r.consistency.consistency_score
        if r.consistency is not None and not r.consistency.insufficient_data
        else None
    ),
    "hrv": _sample_attr("hrv_ms"),
    "resting_hr": _sample_attr("resting_hr"),
    "sleep_hours": _sample_attr("sleep_hours"),
    "sleep_efficiency": _sample_attr("sleep_efficiency"),
    "active_energy": _sample_attr("active_energy_kcal"),
    "bedtime": _bedtime_minutes,  # minutes after noon
}


# ---------------------------------------------------------------------------
# Week aggregation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WeekSummary:
    """Averages over one calendar week, each over its own present days."""

    week_start: date
    days: tuple[DailyScores, ...]
    avg_recovery: float | None = None
    avg_strain: float | None = None
    avg_sleep_hours: float | None = None
    avg_sleep_performance: float | None = None
    avg_hrv: float | None = None
    avg_resting_hr: float | None = None
    avg_active_energy: float | None = None
    total_sleep_hours: float = 0.0
    sleep_consistency: ConsistencyMetrics | None = None
    counts: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "counts", MappingProxyType(dict(self.counts)))

    def __hash__(self) -> int:
        return hash((self.week_start, tuple(sorted(self.counts.items()))))

    @property
    def week_end(self) -> date:
        return self.week_start + timedelta(days=DAYS_PER_WEEK - 1)

    def to_dict(self) -> dict[str, Any]:
        def _r(v: float | None, nd: int = 2) -> float | None:
            return None if v is None else round(v, nd)

        return {
            "week_start": self.week_start.isoformat(),
            "week_end": self.week_end.isoformat(),
            "days": [d.day.isoformat() for d in self.days],
            "avg_recovery": _r(self.avg_recovery, 1),
            "avg_strain": _r(self.avg_strain),
            "avg_sleep_hours": _r(self.avg_sleep_hours),
            "avg_sleep_performance": _r(self.avg_sleep_performance, 1),
            "avg_hrv": _r(self.avg_hrv, 1),
            "avg_resting_hr": _r(self.avg_resting_hr, 1),
            "avg_active_energy": _r(self.avg_active_energy, 0),
            "total_sleep_hours": round(self.total_sleep_hours, 2),
            "sleep_consistency": (
                self.sleep_consistency.to_dict() if self.sleep_consistency else None
            ),
            "counts": dict(self.counts),
        }

    def __repr__(self) -> str:
        rec = "-" if self.avg_recovery is None else f"{self.avg_recovery:.0f}"
        return (
            f"WeekSummary({self.week_start}..{self.week_end}: "
            f"days={len(self.days)}, avg_recovery={rec})"
        )


# WeekSummary field -> metric key
_AVERAGED = {
    "avg_recovery": "recovery",
    "avg_strain": "strain",
    "avg_sleep_hours": "sleep_hours",
    "avg_sleep_performance": "sleep_performance",
    "avg_hrv": "hrv",
    "avg_resting_hr": "resting_hr",
    "avg_active_energy": "active_energy",
}


def week_start_for(day: date, first_weekday: int = 0) -> date:
    """First day of the calendar week containing *day*.

    Args:
        first_weekday: 0 = Monday ... 6 = Sunday.
    """
    return day - timedelta(days=(day.weekday() - first_weekday) % DAYS_PER_WEEK)


def previous_week_start(week_start: date) -> date:
    return week_start - timedelta(days=DAYS_PER_WEEK)


def next_week_start(week_start: date) -> date:
    return week_start + timedelta(days=DAYS_PER_WEEK)


def aggregate_week(
    records: Sequence[DailyScores],
    week_start: date,
    first_weekday: int = 0,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> WeekSummary:
    """Aggregate the records falling in the 7 days from *week_start*.

    Args:
        records: Daily records in any order, at most one per date.
        week_start: First day of the week; must fall on *first_weekday*.
        first_weekday: 0 = Monday ... 6 = Sunday.
        config: Consistency settings for the week's nights.

    Raises:
        InvalidInputError: If *week_start* is not aligned to the configured
            first weekday, or two records share a date.
    """
    if week_start.weekday() != first_weekday:
        raise InvalidInputError(
            f"week_start {week_start} is a {week_start.strftime('%A')}; "
            f"weeks start on weekday {first_weekday}"
        )

    end = week_start + timedelta(days=DAYS_PER_WEEK)
    in_week: dict[date, DailyScores] = {}
    for rec in records:
        if week_start <= rec.day < end:
            if rec.day in in_week:
                raise InvalidInputError(f"Duplicate record for {rec.day}")
            in_week[rec.day] = rec
    days = tuple(in_week[d] for d in sorted(in_week))

    averages: dict[str, float | None] = {}
    counts: dict[str, int] = {}
    for attr, key in _AVERAGED.items():
        values = [v for v in (d.metric(key) for d in days) if v is not None]
        averages[attr] = mean_or_none(values)
        counts[key] = len(values)

    sleep_hours = [v for v in (d.metric("sleep_hours") for d in days) if v is not None]
    nights = [d.sample.night for d in days if d.sample is not None]

    return WeekSummary(
        week_start=week_start,
        days=days,
        total_sleep_hours=float(sum(sleep_hours)),
        sleep_consistency=calculate_consistency(nights, config),
        counts=counts,
        **averages,
    )


# ---------------------------------------------------------------------------
# Week-over-week comparison
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WeekComparison:
    recovery_change: float | None
    strain_change: float | None
    sleep_hours_change: float
    consistency_change: float

    @property
    def recovery_trend(self) -> str:
        if self.recovery_change is None:
            return "n/a"
        if self.recovery_change > 5:
            return "improved"
        if self.recovery_change < -5:
            return "declined"
        return "stable"

    @property
    def strain_trend(self) -> str:
        if self.strain_change is None:
            return "n/a"
        if self.strain_change > 2:
            return "higher"
        if self.strain_change < -2:
            return "lower"
        return "similar"

    @property
    def sleep_trend(self) -> str:
        if self.sleep_hours_change > 3.5:
            return "more sleep"
        if self.sleep_hours_change < -3.5:
            return "less sleep"
        return "similar"

    @property
    def consistency_trend(self) -> str:
        if self.consistency_change > 0.1:
            return "more consistent"
        if self.consistency_change < -0.1:
            return "less consistent"
        return "stable"

    @property
    def overall_insight(self) -> str:
        insights = []
        if self.recovery_trend == "improved":
            insights.append("Recovery improved this week")
        elif self.recovery_trend == "declined":
            insights.append("Recovery declined this week")
        if self.sleep_trend == "less sleep":
            insights.append("Consider getting more sleep")
        if self.consistency_trend == "less consistent":
            insights.append("Try to maintain a more consistent sleep schedule")
        if not insights:
            return "Your metrics are stable week-over-week."
        return ". ".join(insights) + "."


def _diff(a: float | None, b: float | None) -> float | None:
    if a is None or b is None:
        return None
    return a - b


def compare_weeks(current: WeekSummary, previous: WeekSummary) -> WeekComparison:
    def _consistency(w: WeekSummary) -> float:
        return w.sleep_consistency.consistency_score if w.sleep_consistency else 1.0

    return WeekComparison(
        recovery_change=_diff(current.avg_recovery, previous.avg_recovery),
        strain_change=_diff(current.avg_strain, previous.avg_strain),
        sleep_hours_change=current.total_sleep_hours - previous.total_sleep_hours,
        consistency_change=_consistency(current) - _consistency(previous),
    )


def format_week_range(week_start: date) -> str:
    """e.g. "Jan 15-21" or "Jan 29 - Feb 4"."""
    week_end = week_start + timedelta(days=DAYS_PER_WEEK - 1)
    start = f"{week_start.strftime('%b')} {week_start.day}"
    if week_start.month == week_end.month:
        return f"{start}-{week_end.day}"
    return f"{start} - {week_end.strftime('%b')} {week_end.day}"
