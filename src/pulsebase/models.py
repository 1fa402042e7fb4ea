"""Input records and shared value types.

A :class:`DailySample` is one calendar day's aggregated inputs as handed over
by the health-data source.  Every physiological field is optional: a missing
signal is ``None``, never ``0``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Mapping, Sequence

from pulsebase.exceptions import InvalidInputError


HR_ZONES = (1, 2, 3, 4, 5)
ZONE_LABELS = {z: f"Zone {z}" for z in HR_ZONES}


@dataclass(frozen=True)
class DailySample:
    """Raw per-day physiological inputs, identified by ``day``."""

    day: date
    hrv_ms: float | None = None
    resting_hr: float | None = None  # bpm
    sleep_hours: float | None = None
    sleep_efficiency: float | None = None  # 0-1
    bedtime: time | None = None  # local time-of-day
    wake_time: time | None = None
    zone_minutes: Mapping[int, float] = field(default_factory=dict)
    active_energy_kcal: float | None = None

    def __post_init__(self) -> None:
        bad = [z for z in self.zone_minutes if z not in HR_ZONES]
        if bad:
            raise InvalidInputError(f"{self.day}: unknown HR zone(s) {bad}")
        # read-only copy, detached from the caller's dict
        object.__setattr__(
            self, "zone_minutes", MappingProxyType(dict(self.zone_minutes))
        )

    def __hash__(self) -> int:
        return hash((
            self.day,
            self.hrv_ms,
            self.resting_hr,
            self.sleep_hours,
            self.sleep_efficiency,
            self.bedtime,
            self.wake_time,
            tuple(sorted(self.zone_minutes.items())),
            self.active_energy_kcal,
        ))

    @property
    def has_zone_data(self) -> bool:
        return bool(self.zone_minutes)

    @property
    def night(self) -> "Night":
        return Night(self.bedtime, self.wake_time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "day": self.day.isoformat(),
            "hrv_ms": self.hrv_ms,
            "resting_hr": self.resting_hr,
            "sleep_hours": self.sleep_hours,
            "sleep_efficiency": self.sleep_efficiency,
            "bedtime": self.bedtime.strftime("%H:%M") if self.bedtime else None,
            "wake_time": self.wake_time.strftime("%H:%M") if self.wake_time else None,
            "zone_minutes": {str(z): m for z, m in sorted(self.zone_minutes.items())},
            "active_energy_kcal": self.active_energy_kcal,
        }


@dataclass(frozen=True)
class Night:
    """Bedtime / wake time pair for one night (either side may be missing)."""

    bedtime: time | datetime | None
    wake_time: time | datetime | None

    @property
    def complete(self) -> bool:
        return self.bedtime is not None and self.wake_time is not None


class Signal(str, Enum):
    """Physiological signals that carry a rolling baseline."""

    HRV = "hrv"
    RESTING_HR = "resting_hr"
    SLEEP_HOURS = "sleep_hours"
    SLEEP_EFFICIENCY = "sleep_efficiency"
    ACTIVE_ENERGY = "active_energy"

    def value_of(self, sample: DailySample) -> float | None:
        return _SIGNAL_GETTERS[self](sample)


_SIGNAL_GETTERS: dict[Signal, Callable[[DailySample], float | None]] = {
    Signal.HRV: lambda s: s.hrv_ms,
    Signal.RESTING_HR: lambda s: s.resting_hr,
    Signal.SLEEP_HOURS: lambda s: s.sleep_hours,
    Signal.SLEEP_EFFICIENCY: lambda s: s.sleep_efficiency,
    Signal.ACTIVE_ENERGY: lambda s: s.active_energy_kcal,
}


class Confidence(str, Enum):
    """Data-availability confidence attached to derived values."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _CONFIDENCE_RANK[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Confidence):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Confidence):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Confidence):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Confidence):
            return NotImplemented
        return self.rank >= other.rank

    @staticmethod
    def weakest(*levels: "Confidence") -> "Confidence":
        """Lowest of the given levels (HIGH when none are given)."""
        return min(levels, key=lambda c: c.rank, default=Confidence.HIGH)


_CONFIDENCE_RANK = {Confidence.LOW: 0, Confidence.MEDIUM: 1, Confidence.HIGH: 2}


@dataclass(frozen=True)
class ScoreComponent:
    """One weighted input of a composite score, kept for breakdown display."""

    name: str
    weight: float  # 0-1
    raw_value: float
    normalized_value: float  # 0-100
    contribution: float  # weight * normalized_value

    @classmethod
    def build(
        cls, name: str, weight: float, raw_value: float, normalized_value: float
    ) -> "ScoreComponent":
        return cls(
            name=name,
            weight=weight,
            raw_value=raw_value,
            normalized_value=normalized_value,
            contribution=weight * normalized_value,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "weight": round(self.weight, 4),
            "raw_value": round(self.raw_value, 3),
            "normalized_value": round(self.normalized_value, 2),
            "contribution": round(self.contribution, 2),
        }


# ---------------------------------------------------------------------------
# Goals
# ---------------------------------------------------------------------------

GOAL_COMPARISONS = (">=", "<=", "==", "range")


@dataclass(frozen=True)
class Goal:
    """A user-defined daily target, e.g. "sleep >= 7 h"."""

    name: str
    metric: str  # key of pulsebase.analytics.summary.METRICS
    target: float
    comparison: str = ">="
    range_max: float | None = None
    unit: str = ""

    def __post_init__(self) -> None:
        if self.comparison not in GOAL_COMPARISONS:
            raise InvalidInputError(
                f"Goal comparison must be one of {GOAL_COMPARISONS}, "
                f"got {self.comparison!r}"
            )
        if self.comparison == "range":
            if self.range_max is None or self.range_max < self.target:
                raise InvalidInputError(
                    "A 'range' goal needs range_max >= target"
                )

    def is_achieved(self, value: float) -> bool:
        if self.comparison == ">=":
            return value >= self.target
        if self.comparison == "<=":
            return value <= self.target
        if self.comparison == "==":
            return abs(value - self.target) < 0.1
        return self.target <= value <= self.range_max  # type: ignore[operator]


def ensure_unique_days(samples: Sequence[DailySample]) -> None:
    """Raise if two samples share a calendar date."""
    seen: set[date] = set()
    for s in samples:
        if s.day in seen:
            raise InvalidInputError(f"Duplicate daily sample for {s.day}")
        seen.add(s.day)
