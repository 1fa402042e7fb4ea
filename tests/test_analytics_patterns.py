"""Tests for pulsebase.analytics.patterns -- correlation patterns and goals."""

from datetime import date, time, timedelta

import pytest

from pulsebase.analytics.patterns import (
    PatternConfidence,
    detect_pattern,
    detect_patterns,
    goal_series,
    goal_streak,
    join_series,
    pattern_confidence,
)
from pulsebase.analytics.recovery import score_recovery
from pulsebase.analytics.summary import DailyScores
from pulsebase.exceptions import InvalidInputError
from pulsebase.models import DailySample, Goal

from conftest import START


def _series(values, start=START):
    return [(start + timedelta(days=i), float(v)) for i, v in enumerate(values)]


def _alternating_records(n=14):
    """Early (22:00) and late (00:30) bedtimes alternate; the day after an
    early night recovers to 80, after a late night to 40."""
    records = []
    for i in range(n):
        early = i % 2 == 0
        sample = DailySample(
            day=START + timedelta(days=i),
            bedtime=time(22, 0) if early else time(0, 30),
            wake_time=time(7, 0),
            sleep_hours=8.0 if early else 6.0,
        )
        if i == 0:
            rec = 60.0
        else:
            rec = 80.0 if (i - 1) % 2 == 0 else 40.0
        records.append(DailyScores(
            day=sample.day,
            sample=sample,
            recovery=score_recovery(None, None, rec),
        ))
    return records


class TestPatternConfidence:
    def test_buckets(self):
        assert pattern_confidence(0.29, 10) == PatternConfidence.NONE
        assert pattern_confidence(0.3, 10) == PatternConfidence.LOW
        assert pattern_confidence(-0.45, 10) == PatternConfidence.LOW
        assert pattern_confidence(0.5, 10) == PatternConfidence.MEDIUM
        assert pattern_confidence(0.7, 10) == PatternConfidence.MEDIUM
        assert pattern_confidence(0.71, 10) == PatternConfidence.HIGH

    def test_high_needs_samples(self):
        assert pattern_confidence(0.9, 6) == PatternConfidence.MEDIUM
        assert pattern_confidence(0.9, 7) == PatternConfidence.HIGH


class TestJoinSeries:
    def test_inner_join(self):
        a = _series([1, 2, 3])
        b = _series([10, 20], start=START + timedelta(days=1))
        assert [(x, y) for _d, x, y in join_series(a, b)] == [(2.0, 10.0), (3.0, 20.0)]

    def test_lag_pairs_with_later_day(self):
        a = _series([1, 2, 3])
        b = _series([10, 20, 30])
        pairs = join_series(a, b, lag_days=1)
        assert [(x, y) for _d, x, y in pairs] == [(1.0, 20.0), (2.0, 30.0)]
        assert pairs[0][0] == START + timedelta(days=1)

    def test_duplicate_dates(self):
        a = [(START, 1.0), (START, 2.0)]
        with pytest.raises(InvalidInputError):
            join_series(a, _series([1]))


class TestDetectPattern:
    def test_perfect_positive_high(self):
        x = list(range(7))
        p = detect_pattern(_series(x), _series([3 * v + 2 for v in x]), "a", "b")
        assert p.correlation == pytest.approx(1.0)
        assert p.confidence == PatternConfidence.HIGH
        assert p.sample_size == 7
        assert "strong" in p.description

    def test_perfect_negative(self):
        x = list(range(8))
        p = detect_pattern(_series(x), _series([-v for v in x]))
        assert p.correlation == pytest.approx(-1.0)
        assert not p.is_positive

    def test_six_points_capped_at_medium(self):
        x = list(range(6))
        p = detect_pattern(_series(x), _series(x))
        assert p.confidence == PatternConfidence.MEDIUM

    def test_too_few_pairs(self):
        x = list(range(4))
        assert detect_pattern(_series(x), _series(x)) is None

    def test_no_variance_is_no_pattern(self):
        x = list(range(10))
        assert detect_pattern(_series(x), _series([5] * 10)) is None

    def test_lagged(self):
        a = _series([1, 5, 2, 8, 3, 9, 4])
        b = _series([0, 1, 5, 2, 8, 3, 9, 4])  # b[d+1] == a[d]
        p = detect_pattern(a, b, "x", "y", lag_days=1)
        assert p.correlation == pytest.approx(1.0)
        assert p.lag_days == 1
        assert "next-day y" in p.description

    def test_negative_lag_rejected(self):
        with pytest.raises(InvalidInputError):
            detect_pattern(_series([1] * 5), _series([1] * 5), lag_days=-1)

    def test_to_dict(self):
        x = list(range(7))
        d = detect_pattern(_series(x), _series(x), "a", "b").to_dict()
        assert d["confidence"] == "high"
        assert d["metric_a"] == "a"
        assert d["impact"] is None


class TestGoals:
    def _records(self, hours, start=START):
        return [
            DailyScores(day=day, sample=DailySample(day=day, sleep_hours=h))
            for day, h in _series(hours, start)
        ]

    def test_goal_series(self):
        goal = Goal("sleep 7h", "sleep_hours", 7.0)
        series = goal_series(goal, self._records([8, 6, 7]))
        assert [v for _d, v in series] == [1.0, 0.0, 1.0]

    def test_streak(self):
        goal = Goal("sleep 7h", "sleep_hours", 7.0)
        streak = goal_streak(goal, self._records([8, 8, 6, 8, 8, 8]))
        assert streak.current == 3
        assert streak.longest == 3
        assert streak.achieved_days == 5
        assert streak.completion_rate == pytest.approx(5 / 6)

    def test_calendar_gap_breaks_streak(self):
        goal = Goal("sleep 7h", "sleep_hours", 7.0)
        records = self._records([8, 8]) + self._records(
            [8], start=START + timedelta(days=3)
        )
        streak = goal_streak(goal, records)
        assert streak.current == 1
        assert streak.longest == 2

    def test_range_goal(self):
        goal = Goal("bed window", "sleep_hours", 7.0, "range", range_max=9.0)
        assert goal.is_achieved(8.0)
        assert not goal.is_achieved(9.5)

    def test_range_goal_needs_max(self):
        with pytest.raises(InvalidInputError):
            Goal("bad", "sleep_hours", 7.0, "range")


class TestDetectPatterns:
    def test_bedtime_recovery(self):
        found = detect_patterns(_alternating_records())
        assert len(found) == 1
        p = found[0]
        assert p.pattern_type == "sleep_timing"
        assert p.lag_days == 1
        assert p.correlation == pytest.approx(-1.0)
        assert p.impact == pytest.approx(40.0)
        assert "before 11pm" in p.description

    def test_goal_checks_included(self):
        goal = Goal("sleep 7h", "sleep_hours", 7.0)
        found = detect_patterns(_alternating_records(), goals=[goal])
        types = {p.pattern_type for p in found}
        assert types == {"sleep_timing", "goal"}
        goal_pattern = next(p for p in found if p.pattern_type == "goal")
        assert goal_pattern.correlation == pytest.approx(1.0)
        assert goal_pattern.impact == pytest.approx(40.0)

    def test_sorted_by_strength(self):
        found = detect_patterns(_alternating_records())
        strengths = [abs(p.correlation) for p in found]
        assert strengths == sorted(strengths, reverse=True)

    def test_too_little_history(self):
        assert detect_patterns(_alternating_records(4)) == []


def test_unknown_metric():
    with pytest.raises(InvalidInputError):
        DailyScores(day=date(2024, 1, 1)).metric("vo2max")
