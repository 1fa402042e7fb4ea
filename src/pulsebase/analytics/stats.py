"""Statistical primitives shared by the scoring engines.

This is the shared foundation for all analytics modules.  It provides:
  - Mean and standard deviation over present (non-missing) values
  - Standard-normal percentile mapping for z-scores
  - Pearson correlation with a zero-variance guard
  - Least-squares slope for trend detection
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np
from scipy.stats import norm


def present(values: Sequence[float | None]) -> list[float]:
    """Drop missing values."""
    return [float(v) for v in values if v is not None]


def mean_or_none(values: Sequence[float | None]) -> float | None:
    """Arithmetic mean of the present values, or None if there are none."""
    vals = present(values)
    if not vals:
        return None
    return float(np.mean(np.asarray(vals, dtype=np.float64)))


def std_dev(values: Sequence[float], ddof: int = 1) -> float:
    """Standard deviation; 0.0 when there are too few values for *ddof*."""
    if len(values) <= ddof:
        return 0.0
    arr = np.asarray(values, dtype=np.float64)
    return float(np.std(arr, ddof=ddof))


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def z_to_percentile(z: float) -> float:
    """Map a z-score to a 0-100 percentile via the standard normal CDF."""
    if math.isnan(z):
        return 50.0
    return clamp(float(norm.cdf(z)) * 100.0, 0.0, 100.0)


def pearson_r(x: Sequence[float], y: Sequence[float]) -> float:
    """Pearson correlation coefficient.

    Uses ``(n*Sxy - Sx*Sy) / sqrt((n*Sxx - Sx^2) * (n*Syy - Sy^2))``.
    Returns 0.0 when either series has no variance (zero denominator) or
    fewer than two points are given.
    """
    if len(x) != len(y):
        raise ValueError("x and y must have the same length")
    n = len(x)
    if n < 2:
        return 0.0

    xa = np.asarray(x, dtype=np.float64)
    ya = np.asarray(y, dtype=np.float64)
    sx, sy = xa.sum(), ya.sum()
    numerator = n * float(np.dot(xa, ya)) - sx * sy
    var_x = n * float(np.dot(xa, xa)) - sx * sx
    var_y = n * float(np.dot(ya, ya)) - sy * sy
    # Rounding can push a constant series slightly negative
    if var_x <= 0 or var_y <= 0:
        return 0.0
    denominator = math.sqrt(var_x * var_y)
    if denominator == 0:
        return 0.0
    return clamp(float(numerator / denominator), -1.0, 1.0)


def linear_slope(values: Sequence[float]) -> float | None:
    """Least-squares slope of *values* against their index.

    Returns None if fewer than 2 values.
    """
    if len(values) < 2:
        return None
    y = np.asarray(values, dtype=np.float64)
    x = np.arange(len(y), dtype=np.float64)
    slope, _intercept = np.polyfit(x, y, 1)
    return float(slope)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))
