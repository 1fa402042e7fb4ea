"""Rolling personal baselines.

A baseline is the mean and standard deviation of one signal over a trailing
window of calendar days ending at (and including) ``as_of``.  Days without a
value are skipped, never zero-filled, so ``sample_count`` can be smaller than
the window.  Short (7-day) and long (28-day) windows are computed
independently; callers pick which one a metric is compared against.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Iterable, Sequence

from pulsebase.analytics.stats import linear_slope, mean_or_none, std_dev
from pulsebase.config import DEFAULT_CONFIG, ScoringConfig
from pulsebase.exceptions import InvalidInputError
from pulsebase.models import DailySample, Signal, ensure_unique_days


@dataclass(frozen=True)
class Baseline:
    """Rolling statistic for one signal, scoped to its window and end date."""

    signal: Signal
    window_days: int
    as_of: date
    sample_count: int
    mean: float
    std_dev: float  # sample standard deviation, >= 0
    min_samples: int = 3

    @property
    def is_valid(self) -> bool:
        """Whether enough samples back this baseline for z-scores."""
        return self.sample_count >= self.min_samples

    def to_dict(self) -> dict:
        return {
            "signal": self.signal.value,
            "window_days": self.window_days,
            "as_of": self.as_of.isoformat(),
            "sample_count": self.sample_count,
            "mean": round(self.mean, 3),
            "std_dev": round(self.std_dev, 3),
            "valid": self.is_valid,
        }

    def __repr__(self) -> str:
        flag = "" if self.is_valid else ", invalid"
        return (
            f"Baseline({self.signal.value} {self.window_days}d @ {self.as_of}: "
            f"mean={self.mean:.1f}, sd={self.std_dev:.1f}, n={self.sample_count}{flag})"
        )


@dataclass(frozen=True)
class BaselinePair:
    """Short- and long-window baselines for one signal."""

    short: Baseline
    long: Baseline


def compute_baseline(
    signal: Signal,
    history: Sequence[DailySample],
    as_of: date,
    window_days: int = 7,
    min_samples: int = 3,
) -> Baseline:
    """Compute the rolling baseline of *signal* over ``(as_of - window, as_of]``.

    Args:
        signal: Which physiological signal to summarize.
        history: Daily samples in any order, at most one per date.
        as_of: Last day (inclusive) of the window.
        window_days: Window length in calendar days.
        min_samples: Samples needed for the baseline to be valid.

    Returns:
        A Baseline.  With fewer than *min_samples* present values it is still
        populated from whatever is available but ``is_valid`` is False.
    """
    if window_days < 1:
        raise InvalidInputError(f"window_days must be >= 1, got {window_days}")
    ensure_unique_days(history)

    start = as_of - timedelta(days=window_days)
    values = [
        signal.value_of(s)
        for s in sorted(history, key=lambda s: s.day)
        if start < s.day <= as_of
    ]
    vals = [float(v) for v in values if v is not None]

    return Baseline(
        signal=signal,
        window_days=window_days,
        as_of=as_of,
        sample_count=len(vals),
        mean=mean_or_none(vals) or 0.0,
        std_dev=std_dev(vals, ddof=1),
        min_samples=min_samples,
    )


def compute_baselines(
    signal: Signal,
    history: Sequence[DailySample],
    as_of: date,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> BaselinePair:
    """Compute the configured short and long baselines for *signal*."""
    windows = config.baseline_window_days
    return BaselinePair(
        short=compute_baseline(
            signal, history, as_of, windows.short, config.baseline_min_samples
        ),
        long=compute_baseline(
            signal, history, as_of, windows.long, config.baseline_min_samples
        ),
    )


# ---------------------------------------------------------------------------
# Memoization
# ---------------------------------------------------------------------------


class BaselineCache:
    """Compute-once cache of baselines keyed by ``(signal, window, as_of)``.

    An entry is either absent or one complete, immutable Baseline; the
    computation runs under the lock so no caller observes a partial value.
    The caller must use one cache per history: new samples for an already
    cached date require :meth:`invalidate`.
    """

    def __init__(self, min_samples: int = 3) -> None:
        self._min_samples = min_samples
        self._entries: dict[tuple[Signal, int, date], Baseline] = {}
        self._lock = threading.Lock()

    def get(
        self,
        signal: Signal,
        history: Sequence[DailySample],
        as_of: date,
        window_days: int,
    ) -> Baseline:
        key = (signal, window_days, as_of)
        with self._lock:
            cached = self._entries.get(key)
            if cached is None:
                cached = compute_baseline(
                    signal, history, as_of, window_days, self._min_samples
                )
                self._entries[key] = cached
            return cached

    def invalidate(self, since: date | None = None) -> None:
        """Drop entries whose window could include days on/after *since*."""
        with self._lock:
            if since is None:
                self._entries.clear()
                return
            self._entries = {
                k: v for k, v in self._entries.items() if k[2] < since
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


# ---------------------------------------------------------------------------
# Baseline quality
# ---------------------------------------------------------------------------


class BaselineQuality(str, Enum):
    INSUFFICIENT = "insufficient"
    LIMITED = "limited"
    SUFFICIENT = "sufficient"


# Days of data needed before a baseline is considered reliable
MIN_DAYS_SHORT_WINDOW = 4
MIN_DAYS_LONG_WINDOW = 14

QUALITY_DESCRIPTIONS = {
    BaselineQuality.INSUFFICIENT: (
        "Not enough data for a reliable baseline. Continue wearing your device."
    ),
    BaselineQuality.LIMITED: (
        "Limited data available. Baseline accuracy will improve over time."
    ),
    BaselineQuality.SUFFICIENT: "Baseline is reliable based on available data.",
}


def assess_baseline_quality(baseline: Baseline) -> BaselineQuality:
    """Grade a baseline by how many days of data back it."""
    min_days = (
        MIN_DAYS_SHORT_WINDOW if baseline.window_days <= 7 else MIN_DAYS_LONG_WINDOW
    )
    if baseline.sample_count >= min_days:
        return BaselineQuality.SUFFICIENT
    if baseline.sample_count >= min_days / 2:
        return BaselineQuality.LIMITED
    return BaselineQuality.INSUFFICIENT


# ---------------------------------------------------------------------------
# Trend detection
# ---------------------------------------------------------------------------


class TrendDirection(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


@dataclass(frozen=True)
class Trend:
    direction: TrendDirection
    slope: float  # units per day
    confidence: float  # share of the window with data, 0-1


TREND_THRESHOLD_FRACTION = 0.02  # slope must exceed 2% of the mean


def detect_trend(
    values: Sequence[float | None],
    window_days: int = 7,
    inverse: bool = False,
) -> Trend | None:
    """Detect the direction of the last *window_days* daily values.

    Args:
        values: Daily values, oldest first; None marks a missing day.
        window_days: How many trailing days to consider.
        inverse: True for lower-is-better signals (resting HR), so a falling
            series reads as improving.

    Returns:
        A Trend, or None with fewer than 3 present values in the window.
    """
    window = list(values)[-window_days:]
    vals = [float(v) for v in window if v is not None]
    if len(vals) < 3:
        return None

    slope = linear_slope(vals)
    avg = mean_or_none(vals)
    if slope is None or avg is None:
        return None
    threshold = abs(avg) * TREND_THRESHOLD_FRACTION

    signed = -slope if inverse else slope
    if signed > threshold:
        direction = TrendDirection.IMPROVING
    elif signed < -threshold:
        direction = TrendDirection.DECLINING
    else:
        direction = TrendDirection.STABLE

    return Trend(
        direction=direction,
        slope=round(slope, 4),
        confidence=round(len(vals) / window_days, 3),
    )


def signal_series(
    signal: Signal,
    history: Iterable[DailySample],
    start: date,
    end: date,
) -> list[float | None]:
    """Daily values of *signal* from *start* to *end* inclusive, None for gaps."""
    by_day = {s.day: s for s in history}
    out: list[float | None] = []
    day = start
    while day <= end:
        sample = by_day.get(day)
        out.append(signal.value_of(sample) if sample is not None else None)
        day += timedelta(days=1)
    return out
