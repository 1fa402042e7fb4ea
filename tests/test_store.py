"""Tests for pulsebase.store -- score persistence."""

from datetime import timedelta

import pytest

from pulsebase.analytics.patterns import detect_pattern
from pulsebase.analytics.pipeline import run_pipeline
from pulsebase.exceptions import InvalidInputError
from pulsebase.store import JsonlScoreStore, MemoryScoreStore, ScoreStore

from conftest import START


def _pattern():
    series = [(START + timedelta(days=i), float(i)) for i in range(7)]
    return detect_pattern(series, series, "a", "b")


@pytest.fixture(params=["memory", "jsonl"])
def store(request, tmp_path) -> ScoreStore:
    if request.param == "memory":
        return MemoryScoreStore()
    return JsonlScoreStore(tmp_path / "scores.jsonl")


class TestScoreStore:
    def test_round_trip_days(self, store, history):
        records = run_pipeline(history)
        for rec in records:
            store.save_day(rec)
        loaded = store.load_days()
        assert [d["day"] for d in loaded] == [r.day.isoformat() for r in records]
        assert loaded[-1] == records[-1].to_dict()

    def test_date_range(self, store, history):
        for rec in run_pipeline(history):
            store.save_day(rec)
        loaded = store.load_days(START + timedelta(days=2), START + timedelta(days=4))
        assert len(loaded) == 3

    def test_latest_record_wins(self, store, history):
        first, = run_pipeline(history[:1])
        store.save_day(first)
        rescored, = run_pipeline(history[:1], hours_needed=10.0)
        store.save_day(rescored)
        loaded = store.load_days()
        assert len(loaded) == 1
        assert loaded[0] == rescored.to_dict()

    def test_empty(self, store):
        assert store.load_days() == []


class TestJsonlScoreStore:
    def test_append_only(self, tmp_path, history):
        path = tmp_path / "scores.jsonl"
        store = JsonlScoreStore(path)
        first, = run_pipeline(history[:1])
        store.save_day(first)
        store.save_day(first)
        assert len(path.read_text().splitlines()) == 2

    def test_patterns(self, tmp_path):
        store = JsonlScoreStore(tmp_path / "scores.jsonl")
        assert store.load_patterns() == []
        store.save_patterns([_pattern()])
        store.save_patterns([])
        assert store.load_patterns() == []

    def test_patterns_saved(self, tmp_path):
        store = JsonlScoreStore(tmp_path / "scores.jsonl")
        store.save_patterns([_pattern()])
        assert store.load_patterns()[0]["metric_a"] == "a"

    def test_corrupt_line(self, tmp_path):
        path = tmp_path / "scores.jsonl"
        path.write_text("{oops\n")
        with pytest.raises(InvalidInputError):
            JsonlScoreStore(path).load_days()


def test_memory_patterns():
    store = MemoryScoreStore()
    store.save_patterns([_pattern()])
    assert store.patterns[0]["confidence"] == "high"
