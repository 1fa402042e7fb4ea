"""Tests for pulsebase.analytics.summary -- daily records and week roll-ups."""

import json
from datetime import date, time, timedelta

import pytest

from pulsebase.analytics.recovery import score_recovery
from pulsebase.analytics.strain import score_strain
from pulsebase.analytics.summary import (
    DailyScores,
    aggregate_week,
    compare_weeks,
    format_week_range,
    next_week_start,
    previous_week_start,
    week_start_for,
)
from pulsebase.config import ScoringConfig
from pulsebase.exceptions import InvalidInputError
from pulsebase.models import DailySample

from conftest import START  # Monday


def _record(offset, recovery=None, sleep_hours=None, energy=None, start=START):
    day = start + timedelta(days=offset)
    return DailyScores(
        day=day,
        sample=DailySample(
            day=day,
            sleep_hours=sleep_hours,
            active_energy_kcal=energy,
            bedtime=time(23, 0),
            wake_time=time(7, 0),
        ),
        recovery=score_recovery(None, None, recovery) if recovery is not None else None,
        strain=score_strain({}, energy) if energy is not None else None,
    )


class TestWeekStart:
    def test_monday_weeks(self):
        assert week_start_for(date(2024, 3, 7)) == START
        assert week_start_for(START) == START

    def test_sunday_weeks(self):
        assert week_start_for(date(2024, 3, 7), first_weekday=6) == date(2024, 3, 3)

    def test_navigation(self):
        assert previous_week_start(START) == START - timedelta(days=7)
        assert next_week_start(START) == START + timedelta(days=7)


class TestAggregateWeek:
    def test_independent_denominators(self):
        records = [
            _record(0, recovery=60.0, sleep_hours=7.0),
            _record(1, recovery=80.0),
            _record(2, sleep_hours=8.0),
            _record(3, sleep_hours=9.0),
        ]
        week = aggregate_week(records, START)
        assert week.avg_recovery == pytest.approx(70.0)  # over 2 days
        assert week.avg_sleep_hours == pytest.approx(8.0)  # over 3 days
        assert week.total_sleep_hours == pytest.approx(24.0)
        assert week.counts["recovery"] == 2
        assert week.counts["sleep_hours"] == 3
        assert len(week.days) == 4

    def test_metric_absent_all_week(self):
        week = aggregate_week([_record(0, recovery=50.0)], START)
        assert week.avg_strain is None
        assert week.avg_hrv is None
        assert week.counts["strain"] == 0

    def test_records_outside_week_ignored(self):
        records = [_record(i, recovery=50.0) for i in range(7)]
        records.append(_record(7, recovery=0.0))
        records.append(_record(-1, recovery=0.0))
        week = aggregate_week(records, START)
        assert week.avg_recovery == pytest.approx(50.0)
        assert len(week.days) == 7
        assert week.week_end == START + timedelta(days=6)

    def test_misaligned_start(self):
        with pytest.raises(InvalidInputError):
            aggregate_week([], START + timedelta(days=1))

    def test_custom_first_weekday(self):
        sunday = START - timedelta(days=1)
        week = aggregate_week([_record(0, recovery=40.0)], sunday, first_weekday=6)
        assert week.avg_recovery == pytest.approx(40.0)

    def test_duplicate_day(self):
        with pytest.raises(InvalidInputError):
            aggregate_week([_record(0), _record(0)], START)

    def test_strain_average(self):
        records = [_record(0, energy=400.0), _record(1, energy=800.0)]
        week = aggregate_week(records, START)
        assert week.avg_strain == pytest.approx(3.0)
        assert week.avg_active_energy == pytest.approx(600.0)

    def test_consistency_over_week_nights(self):
        records = [_record(i, sleep_hours=8.0) for i in range(5)]
        week = aggregate_week(records, START)
        assert week.sleep_consistency.consistency_score == 1.0
        assert not week.sleep_consistency.insufficient_data

    def test_empty_week(self):
        week = aggregate_week([], START)
        assert week.days == ()
        assert week.avg_recovery is None
        assert week.total_sleep_hours == 0.0
        assert week.sleep_consistency.insufficient_data

    def test_to_dict_is_json(self):
        week = aggregate_week([_record(0, recovery=60.0, sleep_hours=7.0)], START)
        d = json.loads(json.dumps(week.to_dict()))
        assert d["week_start"] == "2024-03-04"
        assert d["week_end"] == "2024-03-10"
        assert d["avg_recovery"] == 60.0


class TestCompareWeeks:
    def test_trends(self):
        prev_start = previous_week_start(START)
        prev = aggregate_week(
            [_record(i, recovery=50.0, sleep_hours=8.0, start=prev_start)
             for i in range(7)],
            prev_start,
        )
        cur = aggregate_week(
            [_record(i, recovery=70.0, sleep_hours=7.0) for i in range(7)], START
        )
        cmp = compare_weeks(cur, prev)
        assert cmp.recovery_change == pytest.approx(20.0)
        assert cmp.recovery_trend == "improved"
        assert cmp.sleep_trend == "less sleep"  # 7 h less over the week
        assert cmp.strain_trend == "n/a"
        assert "Recovery improved" in cmp.overall_insight

    def test_stable(self):
        week = aggregate_week([_record(0, recovery=60.0)], START)
        cmp = compare_weeks(week, week)
        assert cmp.overall_insight == "Your metrics are stable week-over-week."


class TestFormatWeekRange:
    def test_same_month(self):
        assert format_week_range(START) == "Mar 4-10"

    def test_month_boundary(self):
        assert format_week_range(date(2024, 1, 29)) == "Jan 29 - Feb 4"


class TestDailyScores:
    def test_metrics(self):
        rec = _record(0, recovery=70.0, sleep_hours=7.5, energy=420.0)
        assert rec.metric("recovery") == 70.0
        assert rec.metric("sleep_hours") == 7.5
        assert rec.metric("strain") == pytest.approx(2.1)
        assert rec.metric("strain_normalized") == pytest.approx(10.0)
        assert rec.metric("bedtime") == 11 * 60
        assert rec.metric("hrv") is None

    def test_to_json(self):
        rec = _record(0, recovery=70.0)
        d = json.loads(rec.to_json())
        assert d["day"] == "2024-03-04"
        assert d["recovery"]["score"] == 70
        assert d["strain"] is None

    def test_repr_uses_strain_scale(self):
        config = ScoringConfig(strain_scale_max=10.0)
        day = START
        rec = DailyScores(day=day, strain=score_strain({4: 50}, None, config))
        assert "strain=5.0/10" in repr(rec)
        assert "strain=-" in repr(DailyScores(day=day))


class TestWeekSummaryImmutability:
    def test_counts_read_only_and_hashable(self):
        week = aggregate_week([_record(0, recovery=50.0)], START)
        with pytest.raises(TypeError):
            week.counts["recovery"] = 99
        assert hash(week) == hash(aggregate_week([_record(0, recovery=50.0)], START))
