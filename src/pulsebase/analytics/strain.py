"""Strain / training load scoring (HR-zone weighted minutes + active energy).

Each HR zone's minutes are multiplied by an intensity weight that grows with
the zone number, then combined with active energy:

    hr_load     = sum(minutes[z] * weight[z]) / HR_NORMALIZATION
    energy_load = active_kcal / ENERGY_NORMALIZATION
    score       = min(hr_load + energy_load, 21)

The canonical scale is 0-21; :attr:`StrainScore.normalized` converts to 0-100
for consumers that want a percentage.  Hitting the cap on a very heavy day is
expected, not an error.  A rest day (no zone minutes, no energy) scores 0.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Sequence

from pulsebase.config import DEFAULT_CONFIG, STRAIN_MAX, ScoringConfig
from pulsebase.exceptions import InvalidInputError
from pulsebase.models import HR_ZONES, ZONE_LABELS, ScoreComponent

COMPONENT_ZONES = "HR zone load"
COMPONENT_ENERGY = "Active energy load"

NORMALIZED_MAX = 100.0


@dataclass(frozen=True)
class StrainScore:
    """Strain score (0-21) and breakdown."""

    score: float  # 0-scale_max, canonical 0-21
    raw_load: float  # uncapped hr_load + energy_load
    components: tuple[ScoreComponent, ...]
    scale_max: float = STRAIN_MAX

    @property
    def capped(self) -> bool:
        return self.raw_load > self.scale_max

    @property
    def normalized(self) -> float:
        """Score converted to the 0-100 presentation scale."""
        return round(self.score / self.scale_max * NORMALIZED_MAX, 1)

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "normalized": self.normalized,
            "raw_load": round(self.raw_load, 3),
            "capped": self.capped,
            "components": [c.to_dict() for c in self.components],
        }

    def __repr__(self) -> str:
        return (
            f"StrainScore(score={self.score:.1f}/{self.scale_max:.0f}, "
            f"raw={self.raw_load:.2f})"
        )


def weighted_zone_minutes(
    zone_minutes: Mapping[int, float],
    zone_weights: Mapping[int, float],
) -> float:
    """Sum of minutes x intensity weight over zones 1-5."""
    total = 0.0
    for zone, minutes in zone_minutes.items():
        if zone not in HR_ZONES:
            raise InvalidInputError(f"Unknown HR zone {zone!r}; expected 1-5")
        if minutes is None:
            continue
        if minutes < 0 or math.isnan(minutes):
            raise InvalidInputError(f"{ZONE_LABELS[zone]} minutes must be >= 0")
        total += minutes * zone_weights[zone]
    return total


def score_strain(
    zone_minutes: Mapping[int, float] | None,
    active_energy_kcal: float | None,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> StrainScore:
    """Compute a strain score from HR-zone minutes and active energy.

    Args:
        zone_minutes: Minutes per HR zone (keys 1-5); missing zones count 0.
        active_energy_kcal: Active energy burned (kcal); None counts 0.
        config: Zone weights, normalization factors and scale cap.

    Returns:
        StrainScore on the 0-``strain_scale_max`` scale.

    Raises:
        InvalidInputError: On negative minutes/energy or unknown zones.
    """
    zones = zone_minutes or {}
    energy = active_energy_kcal or 0.0
    if energy < 0 or math.isnan(energy):
        raise InvalidInputError(f"active_energy_kcal must be >= 0, got {energy}")

    weighted = weighted_zone_minutes(zones, config.strain_zone_weights)
    hr_load = weighted / config.strain_hr_normalization
    energy_load = energy / config.strain_energy_normalization
    raw = hr_load + energy_load
    scale_max = config.strain_scale_max
    score = min(raw, scale_max)

    # Each component's weight is its share of the load, so contributions
    # add up to the normalized (0-100) score.
    if raw > 0:
        w_hr, w_energy = hr_load / raw, energy_load / raw
    else:
        w_hr = w_energy = 0.5
    overall = score / scale_max * NORMALIZED_MAX
    components = (
        ScoreComponent(
            name=COMPONENT_ZONES,
            weight=w_hr,
            raw_value=weighted,
            normalized_value=min(hr_load / scale_max * NORMALIZED_MAX, NORMALIZED_MAX),
            contribution=w_hr * overall,
        ),
        ScoreComponent(
            name=COMPONENT_ENERGY,
            weight=w_energy,
            raw_value=energy,
            normalized_value=min(
                energy_load / scale_max * NORMALIZED_MAX, NORMALIZED_MAX
            ),
            contribution=w_energy * overall,
        ),
    )

    return StrainScore(
        score=round(score, 1),
        raw_load=raw,
        components=components,
        scale_max=scale_max,
    )


def to_normalized(score: float, config: ScoringConfig = DEFAULT_CONFIG) -> float:
    """Convert a canonical 0-``strain_scale_max`` strain value to 0-100."""
    scale_max = config.strain_scale_max
    return round(min(max(score, 0.0), scale_max) / scale_max * NORMALIZED_MAX, 1)


# ---------------------------------------------------------------------------
# Zone analysis
# ---------------------------------------------------------------------------


class IntensityLevel(str, Enum):
    NONE = "none"
    MINIMAL = "minimal"
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


@dataclass(frozen=True)
class ZoneAnalysis:
    dominant_zone: int | None
    intensity: IntensityLevel
    total_minutes: float
    description: str


def analyze_zones(zone_minutes: Mapping[int, float]) -> ZoneAnalysis:
    """Summarize where the day's HR-zone time went."""
    total = float(sum(m for m in zone_minutes.values() if m))
    if total <= 0:
        return ZoneAnalysis(None, IntensityLevel.NONE, 0.0, "No HR zone data recorded")

    dominant = max(HR_ZONES, key=lambda z: zone_minutes.get(z, 0.0) or 0.0)
    high_share = (
        (zone_minutes.get(4, 0.0) or 0.0) + (zone_minutes.get(5, 0.0) or 0.0)
    ) / total

    if high_share > 0.3:
        intensity = IntensityLevel.HIGH
    elif high_share > 0.1:
        intensity = IntensityLevel.MODERATE
    elif total > 30:
        intensity = IntensityLevel.LOW
    else:
        intensity = IntensityLevel.MINIMAL

    label = ZONE_LABELS[dominant]
    minutes = f"{total:.0f} min"
    description = {
        IntensityLevel.HIGH: f"High intensity session with {minutes} total, primarily in {label}",
        IntensityLevel.MODERATE: f"Moderate intensity with {minutes}, mostly {label}",
        IntensityLevel.LOW: f"Low intensity activity: {minutes} in {label}",
        IntensityLevel.MINIMAL: f"Minimal cardio load: {minutes} recorded",
    }[intensity]
    return ZoneAnalysis(dominant, intensity, total, description)


# ---------------------------------------------------------------------------
# Strain vs recovery
# ---------------------------------------------------------------------------


class BalanceStatus(str, Enum):
    UNDER_LOADED = "under loaded"
    BALANCED = "balanced"
    OPTIMAL = "optimal"
    PUSHING = "pushing"
    OVERREACHING = "overreaching"


# (upper bound of strain/recovery ratio, status, description)
_BALANCE_BANDS = (
    (0.5, BalanceStatus.UNDER_LOADED,
     "Low strain relative to recovery. Room for more intensity."),
    (0.8, BalanceStatus.BALANCED, "Good balance between strain and recovery."),
    (1.2, BalanceStatus.OPTIMAL,
     "Optimal training load matching your recovery capacity."),
    (1.5, BalanceStatus.PUSHING, "Pushing beyond recovery. Monitor for fatigue."),
)


def strain_recovery_balance(
    strain_normalized: float, recovery_score: float
) -> tuple[BalanceStatus, str]:
    """Compare 0-100 strain against 0-100 recovery."""
    ratio = strain_normalized / max(recovery_score, 1.0)
    for upper, status, text in _BALANCE_BANDS:
        if ratio < upper:
            return status, text
    return (
        BalanceStatus.OVERREACHING,
        "Strain significantly exceeds recovery. Rest recommended.",
    )


def weekly_strain(daily_scores: Sequence[float], days: int = 7) -> float:
    """Cumulative strain over the last *days* daily scores."""
    return round(float(sum(daily_scores[-days:])), 1) if daily_scores else 0.0
