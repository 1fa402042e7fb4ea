"""Shared fixtures for the pulsebase test suite."""

from __future__ import annotations

import json
from datetime import date, time, timedelta

import pytest

from pulsebase.models import DailySample


START = date(2024, 3, 4)  # a Monday


# ---------------------------------------------------------------------------
# Sample-building helpers
# ---------------------------------------------------------------------------


def _sample(day_offset: int = 0, start: date = START, **kwargs) -> DailySample:
    """Build a sample ``day_offset`` days after *start* with typical values."""
    defaults = dict(
        hrv_ms=50.0,
        resting_hr=55.0,
        sleep_hours=7.5,
        sleep_efficiency=0.9,
        bedtime=time(23, 0),
        wake_time=time(6, 30),
        zone_minutes={1: 30.0, 2: 20.0, 3: 10.0},
        active_energy_kcal=400.0,
    )
    defaults.update(kwargs)
    return DailySample(day=start + timedelta(days=day_offset), **defaults)


@pytest.fixture
def make_sample():
    """Factory: ``make_sample(offset, **overrides)``."""
    return _sample


@pytest.fixture
def history():
    """Two weeks of samples with HRV and resting HR varying day to day."""
    hrv = [48, 52, 50, 47, 55, 51, 49, 53, 46, 54, 50, 52, 48, 51]
    rhr = [56, 54, 55, 57, 53, 55, 56, 54, 58, 53, 55, 54, 56, 55]
    return [
        _sample(i, hrv_ms=float(h), resting_hr=float(r))
        for i, (h, r) in enumerate(zip(hrv, rhr))
    ]


@pytest.fixture
def samples_file(tmp_path, history):
    """The ``history`` fixture written as JSONL."""
    path = tmp_path / "samples.jsonl"
    with open(path, "w") as f:
        for s in history:
            f.write(json.dumps(s.to_dict()) + "\n")
    return path
