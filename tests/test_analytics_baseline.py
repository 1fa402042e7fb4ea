"""Tests for pulsebase.analytics.baseline -- rolling baselines and trends."""

import math
import threading
from datetime import timedelta

import pytest

from pulsebase.analytics.baseline import (
    BaselineCache,
    BaselineQuality,
    TrendDirection,
    assess_baseline_quality,
    compute_baseline,
    compute_baselines,
    detect_trend,
    signal_series,
)
from pulsebase.exceptions import InvalidInputError
from pulsebase.models import Signal

from conftest import START


class TestComputeBaseline:
    def test_window_mean_and_sample_std(self, make_sample):
        hist = [make_sample(i, hrv_ms=v) for i, v in enumerate([40.0, 50.0, 60.0])]
        b = compute_baseline(Signal.HRV, hist, START + timedelta(days=2), 7)
        assert b.sample_count == 3
        assert b.mean == pytest.approx(50.0)
        assert b.std_dev == pytest.approx(10.0)  # ddof=1
        assert b.is_valid

    def test_window_is_half_open(self, make_sample):
        # (as_of - 7, as_of]: day 0 falls out when as_of is day 7
        hist = [make_sample(i, hrv_ms=float(i)) for i in range(8)]
        b = compute_baseline(Signal.HRV, hist, START + timedelta(days=7), 7)
        assert b.sample_count == 7
        assert b.mean == pytest.approx(sum(range(1, 8)) / 7)

    def test_future_days_excluded(self, make_sample):
        hist = [make_sample(i, hrv_ms=50.0) for i in range(3)]
        hist.append(make_sample(5, hrv_ms=500.0))
        b = compute_baseline(Signal.HRV, hist, START + timedelta(days=3), 7)
        assert b.mean == pytest.approx(50.0)

    def test_missing_values_skipped_not_zero(self, make_sample):
        hist = [
            make_sample(0, hrv_ms=50.0),
            make_sample(1, hrv_ms=None),
            make_sample(2, hrv_ms=60.0),
        ]
        b = compute_baseline(Signal.HRV, hist, START + timedelta(days=2), 7)
        assert b.sample_count == 2
        assert b.mean == pytest.approx(55.0)
        assert not b.is_valid

    def test_single_sample(self, make_sample):
        b = compute_baseline(Signal.HRV, [make_sample(0)], START, 7)
        assert b.sample_count == 1
        assert b.std_dev == 0.0
        assert not b.is_valid

    def test_no_samples(self):
        b = compute_baseline(Signal.HRV, [], START, 7)
        assert b.sample_count == 0
        assert b.mean == 0.0
        assert b.std_dev == 0.0
        assert not b.is_valid

    def test_bad_window(self, make_sample):
        with pytest.raises(InvalidInputError):
            compute_baseline(Signal.HRV, [make_sample(0)], START, 0)

    def test_duplicate_dates_rejected(self, make_sample):
        with pytest.raises(InvalidInputError):
            compute_baseline(Signal.HRV, [make_sample(0), make_sample(0)], START, 7)

    def test_deterministic(self, history):
        as_of = START + timedelta(days=10)
        assert compute_baseline(Signal.RESTING_HR, history, as_of, 7) == \
            compute_baseline(Signal.RESTING_HR, history, as_of, 7)

    def test_std_never_negative(self, history):
        for i in range(len(history)):
            b = compute_baseline(Signal.HRV, history, START + timedelta(days=i), 7)
            assert b.std_dev >= 0
            assert not math.isnan(b.std_dev)


class TestComputeBaselines:
    def test_short_and_long_independent(self, history):
        as_of = START + timedelta(days=13)
        pair = compute_baselines(Signal.HRV, history, as_of)
        assert pair.short.window_days == 7
        assert pair.long.window_days == 28
        assert pair.short.sample_count == 7
        assert pair.long.sample_count == 14


class TestBaselineCache:
    def test_compute_once(self, history):
        cache = BaselineCache()
        as_of = START + timedelta(days=10)
        first = cache.get(Signal.HRV, history, as_of, 7)
        second = cache.get(Signal.HRV, history, as_of, 7)
        assert first is second
        assert len(cache) == 1

    def test_invalidate_since(self, history):
        cache = BaselineCache()
        for i in range(5):
            cache.get(Signal.HRV, history, START + timedelta(days=i), 7)
        cache.invalidate(since=START + timedelta(days=3))
        assert len(cache) == 3
        cache.invalidate()
        assert len(cache) == 0

    def test_concurrent_readers_agree(self, history):
        cache = BaselineCache()
        as_of = START + timedelta(days=12)
        results = []

        def worker():
            results.append(cache.get(Signal.RESTING_HR, history, as_of, 7))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len({id(r) for r in results}) == 1
        assert len(cache) == 1


class TestQuality:
    def test_short_window_grades(self, make_sample):
        hist = [make_sample(i) for i in range(4)]
        as_of = START + timedelta(days=3)
        assert assess_baseline_quality(
            compute_baseline(Signal.HRV, hist, as_of, 7)) == BaselineQuality.SUFFICIENT
        assert assess_baseline_quality(
            compute_baseline(Signal.HRV, hist[:2], as_of, 7)) == BaselineQuality.LIMITED
        assert assess_baseline_quality(
            compute_baseline(Signal.HRV, hist[:1], as_of, 7)) == BaselineQuality.INSUFFICIENT

    def test_long_window_needs_more_days(self, history):
        b = compute_baseline(Signal.HRV, history[:10], START + timedelta(days=9), 28)
        assert assess_baseline_quality(b) == BaselineQuality.LIMITED


class TestTrend:
    def test_improving(self):
        trend = detect_trend([50, 52, 54, 56, 58, 60, 62])
        assert trend.direction == TrendDirection.IMPROVING
        assert trend.slope == pytest.approx(2.0)

    def test_inverse_for_resting_hr(self):
        trend = detect_trend([62, 60, 58, 56, 54, 52, 50], inverse=True)
        assert trend.direction == TrendDirection.IMPROVING

    def test_stable(self):
        trend = detect_trend([50, 50.2, 49.9, 50.1, 50, 49.8, 50.1])
        assert trend.direction == TrendDirection.STABLE

    def test_too_few_values(self):
        assert detect_trend([50, None, None, 51]) is None

    def test_confidence_is_coverage(self):
        trend = detect_trend([50, None, 52, None, 54, None, 56])
        assert trend.confidence == pytest.approx(4 / 7, abs=1e-3)


class TestSignalSeries:
    def test_gaps_are_none(self, make_sample):
        hist = [make_sample(0, hrv_ms=40.0), make_sample(2, hrv_ms=42.0)]
        series = signal_series(Signal.HRV, hist, START, START + timedelta(days=2))
        assert series == [40.0, None, 42.0]
