"""Daily scoring pipeline.

Runs every engine for a day of history, in dependency order:

    baselines (as of the previous day) -> deviations
    trailing nights -> consistency -> sleep performance
    deviations + sleep performance -> recovery
    zone minutes + active energy -> strain

Each day is compared against a baseline that ends the day before, so a
day's own reading never pulls its baseline toward itself.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Sequence

from pulsebase.analytics.baseline import BaselineCache
from pulsebase.analytics.consistency import SECONDS_PER_DAY, calculate_consistency
from pulsebase.analytics.deviation import DeviationResult, deviation
from pulsebase.analytics.recovery import score_recovery
from pulsebase.analytics.sleep import score_sleep_performance
from pulsebase.analytics.stats import clamp
from pulsebase.analytics.strain import score_strain
from pulsebase.analytics.summary import DailyScores
from pulsebase.config import DEFAULT_CONFIG, ScoringConfig
from pulsebase.models import DailySample, Night, Signal, ensure_unique_days

logger = logging.getLogger(__name__)

CONSISTENCY_NIGHTS = 7


def time_in_bed_hours(night: Night) -> float | None:
    """Hours from bedtime to wake time, wrapping past midnight."""
    if not night.complete:
        return None
    bed = night.bedtime
    wake = night.wake_time
    bed_s = bed.hour * 3600 + bed.minute * 60 + bed.second  # type: ignore[union-attr]
    wake_s = wake.hour * 3600 + wake.minute * 60 + wake.second  # type: ignore[union-attr]
    return ((wake_s - bed_s) % SECONDS_PER_DAY) / 3600.0


def _efficiency(sample: DailySample) -> float | None:
    if sample.sleep_efficiency is not None:
        return sample.sleep_efficiency
    in_bed = time_in_bed_hours(sample.night)
    if not in_bed or sample.sleep_hours is None:
        return None
    return clamp(sample.sleep_hours / in_bed, 0.0, 1.0)


def _deviation_for(
    signal: Signal,
    sample: DailySample,
    history: Sequence[DailySample],
    config: ScoringConfig,
    cache: BaselineCache,
) -> DeviationResult | None:
    value = signal.value_of(sample)
    if value is None:
        return None
    baseline = cache.get(
        signal,
        history,
        sample.day - timedelta(days=1),
        config.baseline_window_days.short,
    )
    return deviation(value, baseline)


def score_day(
    history: Sequence[DailySample],
    day: date,
    config: ScoringConfig = DEFAULT_CONFIG,
    hours_needed: float | None = None,
    cache: BaselineCache | None = None,
) -> DailyScores:
    """Score one day of *history*.

    Args:
        history: Daily samples, at most one per date.  Days after *day*
            are ignored.
        day: Date to score.  A date with no sample yields an empty record.
        config: Scoring configuration.
        hours_needed: Nightly sleep need; defaults to
            ``config.default_hours_needed``.
        cache: Baseline cache shared across days of the same history.

    Raises:
        InvalidInputError: On duplicate dates or invalid sample values.
    """
    if cache is None:
        cache = BaselineCache(config.baseline_min_samples)
    if hours_needed is None:
        hours_needed = config.default_hours_needed

    sample = next((s for s in history if s.day == day), None)
    if sample is None:
        logger.debug("%s: no sample, nothing to score", day)
        return DailyScores(day=day)

    hrv_dev = _deviation_for(Signal.HRV, sample, history, config, cache)
    rhr_dev = _deviation_for(Signal.RESTING_HR, sample, history, config, cache)

    window_start = day - timedelta(days=CONSISTENCY_NIGHTS)
    nights = [s.night for s in history if window_start < s.day <= day]
    consistency = calculate_consistency(nights, config)

    sleep_perf = None
    if sample.sleep_hours is not None:
        eff = _efficiency(sample)
        if eff is None:
            logger.debug("%s: no sleep efficiency or time in bed; skipping sleep score", day)
        else:
            sleep_perf = score_sleep_performance(
                sample.sleep_hours,
                hours_needed,
                eff,
                consistency.consistency_score,
                config,
            )

    strain = None
    if sample.has_zone_data or sample.active_energy_kcal is not None:
        strain = score_strain(sample.zone_minutes, sample.active_energy_kcal, config)

    recovery = score_recovery(
        hrv_dev.percentile if hrv_dev is not None else None,
        rhr_dev.percentile if rhr_dev is not None else None,
        float(sleep_perf.score) if sleep_perf is not None else None,
        config,
        input_confidence=[d.confidence for d in (hrv_dev, rhr_dev) if d is not None],
    )
    if recovery is None:
        logger.debug("%s: no recovery inputs", day)

    return DailyScores(
        day=day,
        sample=sample,
        hrv_deviation=hrv_dev,
        rhr_deviation=rhr_dev,
        recovery=recovery,
        strain=strain,
        sleep_performance=sleep_perf,
        consistency=consistency,
    )


def run_pipeline(
    history: Sequence[DailySample],
    config: ScoringConfig = DEFAULT_CONFIG,
    hours_needed: float | None = None,
    start: date | None = None,
    end: date | None = None,
) -> list[DailyScores]:
    """Score every sampled day of *history* in ``start..end`` (inclusive).

    Returns records in date order.
    """
    ensure_unique_days(history)
    ordered = sorted(history, key=lambda s: s.day)
    cache = BaselineCache(config.baseline_min_samples)

    records = []
    for sample in ordered:
        if start is not None and sample.day < start:
            continue
        if end is not None and sample.day > end:
            continue
        records.append(score_day(ordered, sample.day, config, hours_needed, cache))

    logger.info(
        "Scored %d days (%d with recovery)",
        len(records),
        sum(r.recovery is not None for r in records),
    )
    return records
