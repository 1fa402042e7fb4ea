"""Sleep performance scoring.

    score = 100 * (0.40 * min(hours_vs_need, 1)
                   + 0.30 * efficiency
                   + 0.30 * consistency)

``hours_vs_need`` is reported up to 1.5 so oversleeping stays visible, but it
contributes at most 1.0 to the composite.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from pulsebase.analytics.stats import clamp, round_half_up
from pulsebase.config import DEFAULT_CONFIG, ScoringConfig
from pulsebase.exceptions import InvalidInputError
from pulsebase.models import ScoreComponent

COMPONENT_HOURS = "Hours vs need"
COMPONENT_EFFICIENCY = "Sleep efficiency"
COMPONENT_CONSISTENCY = "Sleep consistency"


@dataclass(frozen=True)
class SleepPerformanceScore:
    """Sleep performance score and its sub-metrics."""

    score: int  # 0-100
    hours_vs_need: float  # slept / needed, capped at 1.5
    efficiency: float  # 0-1
    consistency: float  # 0-1
    components: tuple[ScoreComponent, ...] = ()

    @property
    def insight(self) -> str:
        return sleep_insight(self.score)

    @property
    def recommended_action(self) -> str:
        if self.efficiency < 0.85:
            return "Improve sleep environment to increase efficiency"
        if self.consistency < 0.7:
            return "Maintain consistent bed and wake times"
        if self.hours_vs_need < 0.9:
            return "Aim for 30 more minutes of sleep"
        return "Maintain current sleep habits"

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "hours_vs_need": round(self.hours_vs_need, 3),
            "efficiency": round(self.efficiency, 3),
            "consistency": round(self.consistency, 3),
            "components": [c.to_dict() for c in self.components],
        }

    def __repr__(self) -> str:
        return (
            f"SleepPerformanceScore(score={self.score}, "
            f"hours={self.hours_vs_need:.0%}, eff={self.efficiency:.0%}, "
            f"cons={self.consistency:.0%})"
        )


def score_sleep_performance(
    hours_slept: float,
    hours_needed: float,
    efficiency: float,
    consistency: float,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> SleepPerformanceScore:
    """Compute the sleep performance score.

    Args:
        hours_slept: Actual hours asleep.
        hours_needed: Target hours; must be positive.
        efficiency: Time asleep / time in bed (0-1; clamped).
        consistency: Consistency score (0-1; clamped).
        config: Component weights and the hours-ratio cap.

    Raises:
        InvalidInputError: If ``hours_needed <= 0`` or ``hours_slept < 0``.
    """
    if hours_needed is None or math.isnan(hours_needed) or hours_needed <= 0:
        raise InvalidInputError(f"hours_needed must be > 0, got {hours_needed}")
    if hours_slept is None or math.isnan(hours_slept) or hours_slept < 0:
        raise InvalidInputError(f"hours_slept must be >= 0, got {hours_slept}")

    hours_ratio = min(hours_slept / hours_needed, config.sleep_hours_cap)
    eff = clamp(efficiency, 0.0, 1.0)
    cons = clamp(consistency, 0.0, 1.0)

    w = config.sleep_weights
    components = (
        ScoreComponent.build(COMPONENT_HOURS, w.hours, hours_ratio, min(hours_ratio, 1.0) * 100.0),
        ScoreComponent.build(COMPONENT_EFFICIENCY, w.efficiency, efficiency, eff * 100.0),
        ScoreComponent.build(COMPONENT_CONSISTENCY, w.consistency, consistency, cons * 100.0),
    )
    total = sum(c.contribution for c in components)

    return SleepPerformanceScore(
        score=round_half_up(clamp(total, 0.0, 100.0)),
        hours_vs_need=hours_ratio,
        efficiency=eff,
        consistency=cons,
        components=components,
    )


# ---------------------------------------------------------------------------
# Sleep need and debt
# ---------------------------------------------------------------------------


def estimate_hours_needed(age: int, high_activity_days: int = 0) -> float:
    """Recommended nightly sleep by age, plus 15 min per high-strain day (max 1 h)."""
    if age < 18:
        base = 9.0
    elif age < 26:
        base = 8.0
    elif age < 65:
        base = 7.5
    else:
        base = 7.0
    return base + min(max(high_activity_days, 0) * 0.25, 1.0)


def sleep_debt(history: Sequence[tuple[float, float]]) -> float:
    """Cumulative ``needed - slept`` hours; negative means surplus.

    Args:
        history: ``(hours_slept, hours_needed)`` per night.
    """
    return round(sum(needed - slept for slept, needed in history), 2)


def is_debt_recoverable(debt_hours: float) -> bool:
    """Up to two hours of debt can be recovered in a single night."""
    return debt_hours <= 2.0


# (lower bound, text), highest first
_INSIGHTS = (
    (90, "Excellent sleep. Your body is well-rested and ready for high performance."),
    (80, "Great sleep quality. You should feel refreshed and recovered."),
    (70, "Adequate sleep. Consider improving consistency or duration."),
    (60, "Sleep could be better. Focus on getting to bed earlier."),
)


def sleep_insight(score: int) -> str:
    for lower, text in _INSIGHTS:
        if score >= lower:
            return text
    return "Poor sleep quality detected. Prioritize rest today."
