"""Daily health monitor: which of a day's core metrics are in their normal range.

Five checks, each counted only when the day has the metric:

    HRV       within mean +/- 1.5 SD of its baseline (20-100 ms without one)
    RHR       within mean +/- 1.5 SD of its baseline (40-80 bpm without one)
    Recovery  above 33
    Strain    at most 18 on the 0-21 scale
    Sleep     at least 6 hours

The total is never reported below five, so missing data reads as "3 of 5"
rather than "3 of 3".
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Sequence

from pulsebase.analytics.baseline import Baseline, compute_baseline
from pulsebase.analytics.summary import DailyScores
from pulsebase.config import DEFAULT_CONFIG, STRAIN_MAX, ScoringConfig
from pulsebase.models import DailySample, Signal

MONITORED_METRICS = ("HRV", "RHR", "Recovery", "Strain", "Sleep")

BASELINE_SD_BAND = 1.5
DEFAULT_HRV_RANGE = (20.0, 100.0)  # ms
DEFAULT_RHR_RANGE = (40.0, 80.0)  # bpm
RECOVERY_FLOOR = 33  # exclusive
STRAIN_CEILING = 18.0  # on the 0-21 scale
SLEEP_HOURS_FLOOR = 6.0


@dataclass(frozen=True)
class MonitorResult:
    """Outcome of the daily range checks."""

    metrics_in_range: int
    total_metrics: int
    flagged: tuple[str, ...] = ()

    @property
    def all_good(self) -> bool:
        return self.metrics_in_range == self.total_metrics

    def to_dict(self) -> dict:
        return {
            "metrics_in_range": self.metrics_in_range,
            "total_metrics": self.total_metrics,
            "flagged": list(self.flagged),
        }

    def __repr__(self) -> str:
        flags = f", flagged={list(self.flagged)}" if self.flagged else ""
        return f"MonitorResult({self.metrics_in_range}/{self.total_metrics}{flags})"


def _range_for(
    baseline: Baseline | None, default: tuple[float, float]
) -> tuple[float, float]:
    if baseline is None or not baseline.is_valid:
        return default
    band = BASELINE_SD_BAND * baseline.std_dev
    return baseline.mean - band, baseline.mean + band


def evaluate_day(
    record: DailyScores,
    hrv_baseline: Baseline | None = None,
    rhr_baseline: Baseline | None = None,
) -> MonitorResult:
    """Check one scored day against its baselines.

    Args:
        record: The day's sample and scores.
        hrv_baseline: HRV baseline to compare against.  When None or not
            valid, the population range 20-100 ms is used instead.
        rhr_baseline: Resting HR baseline, falling back to 40-80 bpm.

    Returns:
        MonitorResult with the count of in-range metrics and the names of the
        flagged ones, in MONITORED_METRICS order.
    """
    sample = record.sample
    checks: list[tuple[str, bool]] = []

    if sample is not None and sample.hrv_ms is not None:
        lo, hi = _range_for(hrv_baseline, DEFAULT_HRV_RANGE)
        checks.append(("HRV", lo <= sample.hrv_ms <= hi))
    if sample is not None and sample.resting_hr is not None:
        lo, hi = _range_for(rhr_baseline, DEFAULT_RHR_RANGE)
        checks.append(("RHR", lo <= sample.resting_hr <= hi))
    if record.recovery is not None:
        checks.append(("Recovery", record.recovery.score > RECOVERY_FLOOR))
    if record.strain is not None:
        on_21 = record.strain.score / record.strain.scale_max * STRAIN_MAX
        checks.append(("Strain", on_21 <= STRAIN_CEILING))
    if sample is not None and sample.sleep_hours is not None:
        checks.append(("Sleep", sample.sleep_hours >= SLEEP_HOURS_FLOOR))

    return MonitorResult(
        metrics_in_range=sum(1 for _name, ok in checks if ok),
        total_metrics=max(len(checks), len(MONITORED_METRICS)),
        flagged=tuple(name for name, ok in checks if not ok),
    )


def monitor_day(
    history: Sequence[DailySample],
    record: DailyScores,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> MonitorResult:
    """Evaluate *record* against short-window baselines ending the day before."""
    as_of = record.day - timedelta(days=1)
    window = config.baseline_window_days.short
    hrv = compute_baseline(
        Signal.HRV, history, as_of, window, config.baseline_min_samples
    )
    rhr = compute_baseline(
        Signal.RESTING_HR, history, as_of, window, config.baseline_min_samples
    )
    return evaluate_day(record, hrv, rhr)
