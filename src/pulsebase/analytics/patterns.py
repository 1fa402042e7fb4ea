"""Correlation-based pattern detection between daily metrics.

:func:`detect_pattern` pairs two date-keyed series (optionally lagging the
first one, so "today's bedtime" lines up with "tomorrow's recovery") and
reports a :class:`DetectedPattern` when the Pearson correlation is strong
enough to mention.  :func:`detect_patterns` runs the built-in catalog of
behaviour -> outcome checks plus one check per user goal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, timedelta
from enum import Enum
from typing import Iterable, Sequence

from pulsebase.analytics.stats import mean_or_none, pearson_r
from pulsebase.analytics.summary import DailyScores
from pulsebase.config import DEFAULT_CONFIG, ScoringConfig
from pulsebase.exceptions import InvalidInputError
from pulsebase.models import Goal

logger = logging.getLogger(__name__)

DatedValue = tuple[date, float]

REST_DAY_STRAIN = 30.0  # normalized 0-100 strain below which a day is "rest"
EARLY_BEDTIME_MINUTES = 11 * 60  # 23:00, in minutes after noon


class PatternConfidence(str, Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


_STRENGTH_WORDS = {
    PatternConfidence.LOW: "weak",
    PatternConfidence.MEDIUM: "moderate",
    PatternConfidence.HIGH: "strong",
}


@dataclass(frozen=True)
class DetectedPattern:
    """A reported correlation between two daily metrics."""

    metric_a: str
    metric_b: str
    correlation: float  # Pearson r, -1..1
    sample_size: int
    confidence: PatternConfidence
    description: str
    recommendation: str
    lag_days: int = 0
    impact: float | None = None  # mean difference of metric_b between groups
    pattern_type: str = "correlation"

    @property
    def is_positive(self) -> bool:
        return self.correlation > 0

    def to_dict(self) -> dict:
        return {
            "pattern_type": self.pattern_type,
            "metric_a": self.metric_a,
            "metric_b": self.metric_b,
            "lag_days": self.lag_days,
            "correlation": round(self.correlation, 4),
            "sample_size": self.sample_size,
            "confidence": self.confidence.value,
            "description": self.description,
            "recommendation": self.recommendation,
            "impact": None if self.impact is None else round(self.impact, 2),
        }

    def __repr__(self) -> str:
        return (
            f"DetectedPattern({self.metric_a} -> {self.metric_b}, "
            f"r={self.correlation:+.2f}, n={self.sample_size}, "
            f"{self.confidence.value})"
        )


def pattern_confidence(
    r: float, sample_size: int, config: ScoringConfig = DEFAULT_CONFIG
) -> PatternConfidence:
    """Bucket a correlation by strength.

    ``|r| < low`` is NONE, ``[low, medium)`` LOW, ``[medium, high]`` MEDIUM
    and ``> high`` HIGH.  HIGH also needs
    ``pattern_high_confidence_min_samples`` pairs; otherwise it is MEDIUM.
    """
    t = config.pattern_confidence_thresholds
    strength = abs(r)
    if strength < t.low:
        return PatternConfidence.NONE
    if strength < t.medium:
        return PatternConfidence.LOW
    if strength <= t.high:
        return PatternConfidence.MEDIUM
    if sample_size >= config.pattern_high_confidence_min_samples:
        return PatternConfidence.HIGH
    return PatternConfidence.MEDIUM


def _index_by_day(series: Iterable[DatedValue], name: str) -> dict[date, float]:
    out: dict[date, float] = {}
    for day, value in series:
        if day in out:
            raise InvalidInputError(f"Duplicate date {day} in series {name!r}")
        out[day] = float(value)
    return out


def join_series(
    series_a: Iterable[DatedValue],
    series_b: Iterable[DatedValue],
    lag_days: int = 0,
) -> list[tuple[date, float, float]]:
    """Inner-join two series on date, pairing ``a[d]`` with ``b[d + lag]``.

    Returns ``(day_of_b, a, b)`` triples in date order.

    Raises:
        InvalidInputError: If either series repeats a date.
    """
    a = _index_by_day(series_a, "a")
    b = _index_by_day(series_b, "b")
    shift = timedelta(days=lag_days)
    shifted = {day + shift: value for day, value in a.items()}
    return [(day, shifted[day], b[day]) for day in sorted(shifted.keys() & b.keys())]


def _describe(
    metric_a: str, metric_b: str, r: float, level: PatternConfidence, lag_days: int
) -> tuple[str, str]:
    direction = "higher" if r > 0 else "lower"
    target = f"next-day {metric_b}" if lag_days == 1 else metric_b
    if lag_days > 1:
        target = f"{metric_b} {lag_days} days later"
    description = (
        f"Higher {metric_a} tends to come with {direction} {target} "
        f"({_STRENGTH_WORDS[level]} correlation, r={r:+.2f})"
    )
    if level is PatternConfidence.LOW:
        recommendation = f"Keep logging {metric_a}; the link is still weak."
    elif r > 0:
        recommendation = f"Days with more {metric_a} look good for {metric_b}."
    else:
        recommendation = f"Watch your {metric_a}; it tracks against {metric_b}."
    return description, recommendation


def detect_pattern(
    series_a: Iterable[DatedValue],
    series_b: Iterable[DatedValue],
    metric_a: str = "a",
    metric_b: str = "b",
    lag_days: int = 0,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> DetectedPattern | None:
    """Correlate two daily series.

    Args:
        series_a: ``(date, value)`` pairs for the input metric.
        series_b: ``(date, value)`` pairs for the outcome metric.
        metric_a: Display name of the input metric.
        metric_b: Display name of the outcome metric.
        lag_days: Pair each ``a`` value with the ``b`` value this many days
            later.
        config: Minimum sample size and confidence thresholds.

    Returns:
        DetectedPattern, or None when fewer than ``pattern_min_sample_size``
        dates pair up or the correlation is below the LOW threshold.

    Raises:
        InvalidInputError: If a series repeats a date or ``lag_days < 0``.
    """
    if lag_days < 0:
        raise InvalidInputError(f"lag_days must be >= 0, got {lag_days}")

    pairs = join_series(series_a, series_b, lag_days)
    n = len(pairs)
    if n < config.pattern_min_sample_size:
        logger.debug(
            "pattern %s -> %s skipped: %d paired days (< %d)",
            metric_a, metric_b, n, config.pattern_min_sample_size,
        )
        return None

    r = pearson_r([p[1] for p in pairs], [p[2] for p in pairs])
    level = pattern_confidence(r, n, config)
    if level is PatternConfidence.NONE:
        return None

    description, recommendation = _describe(metric_a, metric_b, r, level, lag_days)
    return DetectedPattern(
        metric_a=metric_a,
        metric_b=metric_b,
        correlation=r,
        sample_size=n,
        confidence=level,
        description=description,
        recommendation=recommendation,
        lag_days=lag_days,
    )


# ---------------------------------------------------------------------------
# Series extraction and goals
# ---------------------------------------------------------------------------


def metric_series(records: Iterable[DailyScores], key: str) -> list[DatedValue]:
    """``(day, value)`` for each record where the metric is present."""
    out = []
    for rec in records:
        value = rec.metric(key)
        if value is not None:
            out.append((rec.day, value))
    return out


def goal_series(goal: Goal, records: Iterable[DailyScores]) -> list[DatedValue]:
    """1.0 on days the goal was met, 0.0 when missed; skipped when unknown."""
    return [
        (day, 1.0 if goal.is_achieved(value) else 0.0)
        for day, value in metric_series(records, goal.metric)
    ]


@dataclass(frozen=True)
class GoalStreak:
    current: int
    longest: int
    achieved_days: int
    tracked_days: int

    @property
    def completion_rate(self) -> float:
        return self.achieved_days / self.tracked_days if self.tracked_days else 0.0


def goal_streak(goal: Goal, records: Iterable[DailyScores]) -> GoalStreak:
    """Current and longest run of consecutive days meeting *goal*.

    A missed day, an untracked day or a calendar gap ends a run.
    """
    series = sorted(goal_series(goal, records))
    current = longest = achieved = 0
    prev_day: date | None = None
    for day, hit in series:
        contiguous = prev_day is not None and day - prev_day == timedelta(days=1)
        if hit:
            achieved += 1
            current = current + 1 if contiguous else 1
            longest = max(longest, current)
        else:
            current = 0
        prev_day = day
    return GoalStreak(
        current=current,
        longest=longest,
        achieved_days=achieved,
        tracked_days=len(series),
    )


# ---------------------------------------------------------------------------
# Pattern catalog
# ---------------------------------------------------------------------------


def _group_impact(pairs: Sequence[tuple[date, float, float]], in_first) -> float | None:
    """Mean outcome of pairs selected by *in_first* minus the rest."""
    first = [b for _d, a, b in pairs if in_first(a)]
    rest = [b for _d, a, b in pairs if not in_first(a)]
    m1, m2 = mean_or_none(first), mean_or_none(rest)
    if m1 is None or m2 is None:
        return None
    return m1 - m2


def _bedtime_recovery(records, config) -> DetectedPattern | None:
    bed = metric_series(records, "bedtime")
    rec = metric_series(records, "recovery")
    pattern = detect_pattern(bed, rec, "bedtime", "recovery", lag_days=1, config=config)
    if pattern is None:
        return None
    impact = _group_impact(join_series(bed, rec, 1), lambda m: m < EARLY_BEDTIME_MINUTES)
    if impact is not None and impact > 0:
        description = (
            f"Sleeping before 11pm correlates with {impact:.0f} points "
            f"higher recovery"
        )
        recommendation = "Try to get to bed before 11pm to optimize recovery"
    else:
        description = "Later bedtimes don't seem to hurt your recovery"
        recommendation = "Your recovery is consistent regardless of bedtime"
    return replace(
        pattern,
        pattern_type="sleep_timing",
        impact=impact,
        description=description,
        recommendation=recommendation,
    )


def _rest_day_hrv(records, config) -> DetectedPattern | None:
    rest = [
        (day, 1.0 if v < REST_DAY_STRAIN else 0.0)
        for day, v in metric_series(records, "strain_normalized")
    ]
    hrv = metric_series(records, "hrv")
    pattern = detect_pattern(rest, hrv, "rest_day", "hrv", lag_days=1, config=config)
    if pattern is None:
        return None
    impact = _group_impact(join_series(rest, hrv, 1), lambda m: m == 1.0)
    if impact is not None and impact > 0:
        description = (
            f"Rest days (strain < 30) correlate with +{impact:.0f}ms HRV the next day"
        )
        recommendation = "Consider scheduling rest days after high-strain workouts"
    else:
        description = "High activity days don't seem to hurt your HRV"
        recommendation = "Your body recovers well from activity"
    return replace(
        pattern,
        pattern_type="rest_day",
        impact=impact,
        description=description,
        recommendation=recommendation,
    )


def _strain_recovery(records, config) -> DetectedPattern | None:
    strain = metric_series(records, "strain")
    rec = metric_series(records, "recovery")
    pattern = detect_pattern(strain, rec, "strain", "recovery", lag_days=1, config=config)
    if pattern is None:
        return None
    pairs = sorted(join_series(strain, rec, 1), key=lambda p: p[1])
    third = len(pairs) // 3
    impact = None
    if third:
        low = mean_or_none([b for _d, _a, b in pairs[:third]])
        high = mean_or_none([b for _d, _a, b in pairs[-third:]])
        impact = low - high  # type: ignore[operator]
    if pattern.correlation < 0:
        description = (
            "High-strain days correlate with lower next-day recovery"
            if impact is None
            else f"High-strain days correlate with {abs(impact):.0f} points "
                 f"lower next-day recovery"
        )
        recommendation = "Plan recovery days after intense sessions"
    else:
        description = "Your recovery handles training load well"
        recommendation = "Keep training consistently; your body adapts well"
    return replace(
        pattern,
        pattern_type="workout_recovery",
        impact=impact,
        description=description,
        recommendation=recommendation,
    )


def _consistency_recovery(records, config) -> DetectedPattern | None:
    cons = metric_series(records, "consistency")
    rec = metric_series(records, "recovery")
    pattern = detect_pattern(cons, rec, "sleep_consistency", "recovery", config=config)
    if pattern is None:
        return None
    if pattern.correlation > 0:
        description = "A more consistent sleep schedule correlates with better recovery"
        recommendation = "Try to maintain a consistent sleep schedule"
    else:
        description = "Your recovery doesn't depend much on bedtime consistency"
        recommendation = "Focus on sleep quality over timing"
    return replace(
        pattern,
        pattern_type="consistency",
        description=description,
        recommendation=recommendation,
    )


def _goal_recovery(goal: Goal, records, config) -> DetectedPattern | None:
    hits = goal_series(goal, records)
    rec = metric_series(records, "recovery")
    pattern = detect_pattern(hits, rec, goal.name, "recovery", lag_days=1, config=config)
    if pattern is None:
        return None
    impact = _group_impact(join_series(hits, rec, 1), lambda m: m == 1.0)
    if pattern.correlation > 0:
        description = f"Days you meet '{goal.name}' are followed by better recovery"
        recommendation = f"Keep up '{goal.name}'"
    else:
        description = f"Meeting '{goal.name}' tends to precede lower recovery"
        recommendation = f"Review whether '{goal.name}' fits your recovery needs"
    return replace(
        pattern,
        pattern_type="goal",
        impact=impact,
        description=description,
        recommendation=recommendation,
    )


_CATALOG = (_bedtime_recovery, _rest_day_hrv, _strain_recovery, _consistency_recovery)


def detect_patterns(
    records: Sequence[DailyScores],
    goals: Iterable[Goal] = (),
    config: ScoringConfig = DEFAULT_CONFIG,
) -> list[DetectedPattern]:
    """Run every catalog check and goal check; strongest |r| first.

    Raises:
        InvalidInputError: If two records share a date.
    """
    found = [p for check in _CATALOG if (p := check(records, config)) is not None]
    for goal in goals:
        pattern = _goal_recovery(goal, records, config)
        if pattern is not None:
            found.append(pattern)
    found.sort(key=lambda p: abs(p.correlation), reverse=True)
    logger.info("Detected %d patterns over %d days", len(found), len(records))
    return found
