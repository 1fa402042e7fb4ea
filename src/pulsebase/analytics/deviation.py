"""Baseline-relative deviation: z-score, percent deviation, percentile.

An invalid baseline (too few samples) or one with zero spread yields a
neutral result (z = 0, in range, low confidence) instead of dividing by
zero.  Score engines consume the 0-100 percentile, not the raw z, so an
extreme day can never exceed its intended weight.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from pulsebase.analytics.baseline import Baseline
from pulsebase.analytics.stats import z_to_percentile
from pulsebase.models import Confidence

logger = logging.getLogger(__name__)

IN_RANGE_Z = 1.0


@dataclass(frozen=True)
class DeviationResult:
    """How far a day's value sits from its baseline."""

    z_score: float
    percent_deviation: float  # fraction of the baseline mean, e.g. 0.12
    in_range: bool  # |z| <= 1
    confidence: Confidence  # HIGH when the baseline was usable, else LOW

    @property
    def percentile(self) -> float:
        """0-100 position of the value on the baseline's normal curve."""
        return z_to_percentile(self.z_score)

    def to_dict(self) -> dict:
        return {
            "z_score": round(self.z_score, 3),
            "percent_deviation": round(self.percent_deviation, 4),
            "percentile": round(self.percentile, 1),
            "in_range": self.in_range,
            "confidence": self.confidence.value,
        }


NEUTRAL_DEVIATION = DeviationResult(
    z_score=0.0,
    percent_deviation=0.0,
    in_range=True,
    confidence=Confidence.LOW,
)


def deviation(value: float, baseline: Baseline) -> DeviationResult:
    """Compare *value* with *baseline*.

    Returns the neutral result when the baseline is invalid or has zero
    standard deviation.
    """
    if not baseline.is_valid or baseline.std_dev == 0:
        logger.debug(
            "Neutral deviation for %s: n=%d, sd=%.3f",
            baseline.signal.value,
            baseline.sample_count,
            baseline.std_dev,
        )
        return NEUTRAL_DEVIATION

    diff = value - baseline.mean
    z = diff / baseline.std_dev
    pct = diff / baseline.mean if baseline.mean != 0 else 0.0
    return DeviationResult(
        z_score=z,
        percent_deviation=pct,
        in_range=abs(z) <= IN_RANGE_Z,
        confidence=Confidence.HIGH,
    )


# ---------------------------------------------------------------------------
# Comparison labels
# ---------------------------------------------------------------------------


class ComparisonStatus(str, Enum):
    SIGNIFICANTLY_BETTER = "much better"
    SLIGHTLY_BETTER = "better"
    SIMILAR = "similar"
    SLIGHTLY_WORSE = "worse"
    SIGNIFICANTLY_WORSE = "much worse"


@dataclass(frozen=True)
class BaselineComparison:
    current: float
    baseline: float
    difference: float
    percent_change: float  # percent, e.g. 12.5
    status: ComparisonStatus

    @property
    def formatted_difference(self) -> str:
        return f"{self.difference:+.1f}"

    @property
    def formatted_percent_change(self) -> str:
        return f"{self.percent_change:+.1f}%"


def _status_from_bands(value: float, narrow: float, wide: float) -> ComparisonStatus:
    if value < -wide:
        return ComparisonStatus.SIGNIFICANTLY_WORSE
    if value < -narrow:
        return ComparisonStatus.SLIGHTLY_WORSE
    if value <= narrow:
        return ComparisonStatus.SIMILAR
    if value < wide:
        return ComparisonStatus.SLIGHTLY_BETTER
    return ComparisonStatus.SIGNIFICANTLY_BETTER


def compare_to_baseline(
    value: float,
    baseline: Baseline,
    higher_is_better: bool = True,
) -> BaselineComparison | None:
    """Label a value relative to its baseline for display.

    Uses z-score bands (0.5 / 1.5) when the baseline is valid with nonzero
    spread, otherwise percent-change bands (5% / 15%).  Returns None when the
    baseline has no samples at all.
    """
    if baseline.sample_count == 0:
        return None

    difference = value - baseline.mean
    pct = difference / baseline.mean * 100.0 if baseline.mean != 0 else 0.0
    sign = 1.0 if higher_is_better else -1.0

    if baseline.is_valid and baseline.std_dev > 0:
        status = _status_from_bands(sign * difference / baseline.std_dev, 0.5, 1.5)
    else:
        status = _status_from_bands(sign * pct, 5.0, 15.0)

    return BaselineComparison(
        current=value,
        baseline=baseline.mean,
        difference=difference,
        percent_change=pct,
        status=status,
    )
