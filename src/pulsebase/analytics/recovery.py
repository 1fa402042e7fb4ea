"""Recovery score computation (HRV-driven).

Recovery combines three 0-100 inputs:

    score = 0.50 * hrv_percentile
          + 0.30 * (100 - rhr_percentile)
          + 0.20 * sleep_performance

HRV above baseline is favorable; resting HR above baseline is not, hence the
inversion.  A missing input is dropped and the remaining weights are
renormalized to 1.0, with confidence lowered for each dropped input.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from pulsebase.analytics.stats import clamp, round_half_up
from pulsebase.config import DEFAULT_CONFIG, ScoringConfig
from pulsebase.exceptions import InvalidInputError
from pulsebase.models import Confidence, ScoreComponent


class RecoveryCategory(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    OPTIMAL = "optimal"


# Lower bound (inclusive) of each category band, highest first
CATEGORY_LOWER_BOUNDS = (
    (RecoveryCategory.OPTIMAL, 67),
    (RecoveryCategory.MODERATE, 34),
    (RecoveryCategory.LOW, 0),
)

COMPONENT_HRV = "HRV deviation"
COMPONENT_RHR = "Resting HR deviation"
COMPONENT_SLEEP = "Sleep performance"

# Confidence by number of inputs actually present
_CONFIDENCE_BY_INPUTS = {3: Confidence.HIGH, 2: Confidence.MEDIUM, 1: Confidence.LOW}


@dataclass(frozen=True)
class RecoveryScore:
    """Recovery score and its components."""

    score: int  # 0-100
    category: RecoveryCategory
    components: tuple[ScoreComponent, ...]
    confidence: Confidence
    excluded: tuple[str, ...] = field(default=())

    def component(self, name: str) -> ScoreComponent | None:
        for c in self.components:
            if c.name == name:
                return c
        return None

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "category": self.category.value,
            "confidence": self.confidence.value,
            "components": [c.to_dict() for c in self.components],
            "excluded": list(self.excluded),
        }

    def __repr__(self) -> str:
        return (
            f"RecoveryScore(score={self.score}, {self.category.value}, "
            f"confidence={self.confidence.value})"
        )


def recovery_category(score: float) -> RecoveryCategory:
    """Band a 0-100 score: <=33 low, 34-66 moderate, >=67 optimal."""
    for category, lower in CATEGORY_LOWER_BOUNDS:
        if score >= lower:
            return category
    return RecoveryCategory.LOW


def _check_scale(name: str, value: float | None) -> None:
    if value is None:
        return
    if math.isnan(value) or not 0.0 <= value <= 100.0:
        raise InvalidInputError(f"{name} must be within 0-100, got {value}")


def score_recovery(
    hrv_percentile: float | None,
    rhr_percentile: float | None,
    sleep_performance: float | None,
    config: ScoringConfig = DEFAULT_CONFIG,
    input_confidence: Iterable[Confidence] = (),
) -> RecoveryScore | None:
    """Compute the composite recovery score.

    Args:
        hrv_percentile: HRV deviation percentile (0-100), None if missing.
        rhr_percentile: Resting HR deviation percentile (0-100), None if missing.
        sleep_performance: Sleep performance score (0-100), None if missing.
        config: Supplies the component weights.
        input_confidence: Confidence of the baselines/samples behind the
            inputs; the result is never more confident than the weakest.

    Returns:
        RecoveryScore, or None when all three inputs are missing.

    Raises:
        InvalidInputError: If a present input is outside 0-100.
    """
    _check_scale("hrv_percentile", hrv_percentile)
    _check_scale("rhr_percentile", rhr_percentile)
    _check_scale("sleep_performance", sleep_performance)

    weights = config.recovery_weights
    # (name, weight, raw input, normalized 0-100 where higher is better)
    candidates = [
        (COMPONENT_HRV, weights.hrv, hrv_percentile, hrv_percentile),
        (COMPONENT_RHR, weights.rhr, rhr_percentile,
         None if rhr_percentile is None else 100.0 - rhr_percentile),
        (COMPONENT_SLEEP, weights.sleep, sleep_performance, sleep_performance),
    ]
    included = [
        (name, w, raw, norm) for name, w, raw, norm in candidates
        if raw is not None and w > 0
    ]
    # missing inputs and zero-weight components carry no information
    excluded = tuple(
        name for name, w, raw, _n in candidates if raw is None or w <= 0
    )

    if not included:
        return None

    total_weight = sum(w for _name, w, _raw, _norm in included)
    components = tuple(
        ScoreComponent.build(name, w / total_weight, raw, norm)
        for name, w, raw, norm in included
    )
    raw_score = sum(c.contribution for c in components)
    score = round_half_up(clamp(raw_score, 0.0, 100.0))

    confidence = Confidence.weakest(
        _CONFIDENCE_BY_INPUTS[len(included)],
        *input_confidence,
    )

    return RecoveryScore(
        score=score,
        category=recovery_category(score),
        components=components,
        confidence=confidence,
        excluded=excluded,
    )


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Recommendation:
    kind: str  # rest / moderate / train / hrv / rhr / sleep
    title: str
    description: str


_CATEGORY_ADVICE = {
    RecoveryCategory.LOW: Recommendation(
        "rest",
        "Prioritize rest",
        "Your body shows signs of incomplete recovery. Consider light activity only.",
    ),
    RecoveryCategory.MODERATE: Recommendation(
        "moderate",
        "Moderate activity OK",
        "You're partially recovered. Moderate intensity training is appropriate.",
    ),
    RecoveryCategory.OPTIMAL: Recommendation(
        "train",
        "Ready for training",
        "Good recovery indicators. Your body can handle high intensity.",
    ),
}

# (component, normalized value below which to flag, advice)
_COMPONENT_FLAGS = (
    (COMPONENT_HRV, 40.0, Recommendation(
        "hrv",
        "HRV below baseline",
        "Consider stress reduction techniques and ensure adequate sleep.",
    )),
    (COMPONENT_RHR, 40.0, Recommendation(
        "rhr",
        "Elevated resting HR",
        "Your resting heart rate is elevated. Monitor for signs of overtraining.",
    )),
    (COMPONENT_SLEEP, 50.0, Recommendation(
        "sleep",
        "Sleep deficit",
        "You're not meeting your sleep need. Prioritize more sleep tonight.",
    )),
)


def recovery_recommendations(score: RecoveryScore) -> list[Recommendation]:
    """Category advice followed by one flag per weak component."""
    out = [_CATEGORY_ADVICE[score.category]]
    for name, below, advice in _COMPONENT_FLAGS:
        comp = score.component(name)
        if comp is not None and comp.normalized_value < below:
            out.append(advice)
    return out
