"""Scoring configuration.

Every tunable constant of the scoring engines lives here.  Engines take a
:class:`ScoringConfig` argument (defaulting to :data:`DEFAULT_CONFIG`) instead
of reading module globals, so callers can swap weights without touching the
scoring logic.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Mapping

from pulsebase.exceptions import ConfigError


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

# Recovery composite weights
W_HRV = 0.50
W_RHR = 0.30
W_SLEEP = 0.20

# Strain: per-zone intensity multipliers (zone 1 lightest, zone 5 heaviest)
ZONE_WEIGHTS = {1: 0.1, 2: 0.3, 3: 0.6, 4: 1.0, 5: 1.5}
HR_NORMALIZATION = 10.0  # weighted zone-minutes per strain point
ENERGY_NORMALIZATION = 200.0  # kcal per strain point
STRAIN_MAX = 21.0

# Sleep performance composite weights
W_SLEEP_HOURS = 0.40
W_SLEEP_EFFICIENCY = 0.30
W_SLEEP_CONSISTENCY = 0.30
SLEEP_HOURS_CAP = 1.5
DEFAULT_HOURS_NEEDED = 7.5

# Baselines
SHORT_WINDOW_DAYS = 7
LONG_WINDOW_DAYS = 28
BASELINE_MIN_SAMPLES = 3

# Consistency
CONSISTENCY_MAX_VARIANCE_HOURS = 4.0
CONSISTENCY_MIN_NIGHTS = 3

# Pattern detection
PATTERN_MIN_SAMPLE_SIZE = 5
PATTERN_THRESHOLDS = {"low": 0.3, "medium": 0.5, "high": 0.7}
PATTERN_HIGH_CONFIDENCE_MIN_SAMPLES = 7

WEIGHT_TOLERANCE = 1e-6


@dataclass(frozen=True)
class RecoveryWeights:
    hrv: float = W_HRV
    rhr: float = W_RHR
    sleep: float = W_SLEEP

    def as_dict(self) -> dict[str, float]:
        return {"hrv": self.hrv, "rhr": self.rhr, "sleep": self.sleep}


@dataclass(frozen=True)
class SleepWeights:
    hours: float = W_SLEEP_HOURS
    efficiency: float = W_SLEEP_EFFICIENCY
    consistency: float = W_SLEEP_CONSISTENCY

    def as_dict(self) -> dict[str, float]:
        return {
            "hours": self.hours,
            "efficiency": self.efficiency,
            "consistency": self.consistency,
        }


@dataclass(frozen=True)
class BaselineWindows:
    short: int = SHORT_WINDOW_DAYS
    long: int = LONG_WINDOW_DAYS


@dataclass(frozen=True)
class PatternThresholds:
    low: float = PATTERN_THRESHOLDS["low"]
    medium: float = PATTERN_THRESHOLDS["medium"]
    high: float = PATTERN_THRESHOLDS["high"]


@dataclass(frozen=True)
class ScoringConfig:
    """All recognized configuration options with their defaults.

    Instances are validated on construction; an inconsistent table raises
    :class:`~pulsebase.exceptions.ConfigError`.
    """

    recovery_weights: RecoveryWeights = field(default_factory=RecoveryWeights)
    strain_zone_weights: Mapping[int, float] = field(
        default_factory=lambda: dict(ZONE_WEIGHTS)
    )
    strain_hr_normalization: float = HR_NORMALIZATION
    strain_energy_normalization: float = ENERGY_NORMALIZATION
    strain_scale_max: float = STRAIN_MAX
    sleep_weights: SleepWeights = field(default_factory=SleepWeights)
    sleep_hours_cap: float = SLEEP_HOURS_CAP
    default_hours_needed: float = DEFAULT_HOURS_NEEDED
    baseline_window_days: BaselineWindows = field(default_factory=BaselineWindows)
    baseline_min_samples: int = BASELINE_MIN_SAMPLES
    consistency_max_variance_hours: float = CONSISTENCY_MAX_VARIANCE_HOURS
    consistency_min_nights: int = CONSISTENCY_MIN_NIGHTS
    pattern_min_sample_size: int = PATTERN_MIN_SAMPLE_SIZE
    pattern_confidence_thresholds: PatternThresholds = field(
        default_factory=PatternThresholds
    )
    pattern_high_confidence_min_samples: int = PATTERN_HIGH_CONFIDENCE_MIN_SAMPLES
    first_weekday: int = 0  # Monday, as in date.weekday()

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> "ScoringConfig":
        """Check internal consistency; returns ``self`` so it can be chained.

        Raises:
            ConfigError: On any inconsistent option.
        """
        _check_weights("recovery_weights", self.recovery_weights.as_dict())
        _check_weights("sleep_weights", self.sleep_weights.as_dict())

        zones = self.strain_zone_weights
        if sorted(zones) != [1, 2, 3, 4, 5]:
            raise ConfigError(
                f"strain_zone_weights must define zones 1-5, got {sorted(zones)}"
            )
        ordered = [zones[z] for z in range(1, 6)]
        if ordered[0] <= 0 or any(b <= a for a, b in zip(ordered, ordered[1:])):
            raise ConfigError(
                f"strain_zone_weights must be positive and increasing, got {ordered}"
            )

        for name in (
            "strain_hr_normalization",
            "strain_energy_normalization",
            "strain_scale_max",
            "consistency_max_variance_hours",
            "default_hours_needed",
        ):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive")
        if self.sleep_hours_cap < 1.0:
            raise ConfigError("sleep_hours_cap must be at least 1.0")

        windows = self.baseline_window_days
        if windows.short < 1 or windows.long < windows.short:
            raise ConfigError(
                f"baseline windows must satisfy 1 <= short <= long, "
                f"got short={windows.short} long={windows.long}"
            )
        for name in (
            "baseline_min_samples",
            "consistency_min_nights",
            "pattern_min_sample_size",
            "pattern_high_confidence_min_samples",
        ):
            if getattr(self, name) < 1:
                raise ConfigError(f"{name} must be at least 1")
        if self.pattern_min_sample_size < 3:
            raise ConfigError("pattern_min_sample_size must be at least 3")

        t = self.pattern_confidence_thresholds
        if not 0.0 < t.low < t.medium < t.high < 1.0:
            raise ConfigError(
                "pattern_confidence_thresholds must satisfy 0 < low < medium < high < 1"
            )
        if not 0 <= self.first_weekday <= 6:
            raise ConfigError("first_weekday must be 0 (Monday) .. 6 (Sunday)")
        return self

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScoringConfig":
        """Build a validated config from a (possibly partial) nested mapping."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {sorted(unknown)}")

        kwargs: dict[str, Any] = {}
        nested = {
            "recovery_weights": RecoveryWeights,
            "sleep_weights": SleepWeights,
            "baseline_window_days": BaselineWindows,
            "pattern_confidence_thresholds": PatternThresholds,
        }
        try:
            for key, value in data.items():
                if key in nested:
                    kwargs[key] = nested[key](**value)
                elif key == "strain_zone_weights":
                    kwargs[key] = {int(z): float(w) for z, w in value.items()}
                else:
                    kwargs[key] = value
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Malformed configuration: {exc}") from exc

        # replace() re-runs __post_init__, which validates
        return replace(DEFAULT_CONFIG, **kwargs)


def _check_weights(name: str, weights: Mapping[str, float]) -> None:
    if any(w < 0 or w > 1 for w in weights.values()):
        raise ConfigError(f"{name} must each lie in [0, 1], got {dict(weights)}")
    total = sum(weights.values())
    if not math.isclose(total, 1.0, abs_tol=WEIGHT_TOLERANCE):
        raise ConfigError(f"{name} must sum to 1.0, got {total:.6f}")


def load_config(path: str | Path) -> ScoringConfig:
    """Load a :class:`ScoringConfig` from a JSON file.

    Keys absent from the file keep their defaults.
    """
    p = Path(path)
    try:
        with open(p) as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{p}: invalid JSON ({exc})") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{p}: top-level JSON value must be an object")
    return ScoringConfig.from_dict(data)


DEFAULT_CONFIG = ScoringConfig()
