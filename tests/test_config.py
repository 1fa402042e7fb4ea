"""Tests for pulsebase.config -- scoring configuration."""

import json

import pytest

from pulsebase.analytics.recovery import score_recovery
from pulsebase.config import (
    DEFAULT_CONFIG,
    RecoveryWeights,
    ScoringConfig,
    SleepWeights,
    load_config,
)
from pulsebase.exceptions import ConfigError, InvalidInputError, PulsebaseError


class TestDefaults:
    def test_default_values(self):
        c = DEFAULT_CONFIG
        assert c.recovery_weights.as_dict() == {"hrv": 0.5, "rhr": 0.3, "sleep": 0.2}
        assert c.strain_zone_weights == {1: 0.1, 2: 0.3, 3: 0.6, 4: 1.0, 5: 1.5}
        assert c.strain_scale_max == 21.0
        assert c.baseline_window_days.short == 7
        assert c.baseline_window_days.long == 28
        assert c.pattern_min_sample_size == 5
        assert c.first_weekday == 0

    def test_default_is_valid(self):
        assert DEFAULT_CONFIG.validate() is DEFAULT_CONFIG


class TestValidate:
    def test_weights_must_sum_to_one(self):
        with pytest.raises(ConfigError):
            ScoringConfig(recovery_weights=RecoveryWeights(0.9, 0.9, 0.9))

    def test_rejected_before_reaching_engines(self):
        with pytest.raises(InvalidInputError):
            score_recovery(
                80.0, 20.0, 90.0,
                ScoringConfig(recovery_weights=RecoveryWeights(0.9, 0.9, 0.9)),
            )

    def test_sleep_weights_must_sum_to_one(self):
        with pytest.raises(ConfigError):
            ScoringConfig(sleep_weights=SleepWeights(0.4, 0.4, 0.4))

    def test_zone_weights_increasing(self):
        with pytest.raises(ConfigError):
            ScoringConfig(strain_zone_weights={1: 0.1, 2: 0.3, 3: 0.2, 4: 1.0, 5: 1.5})

    def test_windows_ordered(self):
        with pytest.raises(ConfigError):
            ScoringConfig.from_dict({"baseline_window_days": {"short": 30, "long": 7}})

    def test_thresholds_ordered(self):
        with pytest.raises(ConfigError):
            ScoringConfig.from_dict(
                {"pattern_confidence_thresholds": {"low": 0.5, "medium": 0.4, "high": 0.7}}
            )

    def test_error_hierarchy(self):
        assert issubclass(ConfigError, InvalidInputError)
        assert issubclass(InvalidInputError, ValueError)
        assert issubclass(InvalidInputError, PulsebaseError)


class TestFromDict:
    def test_partial_override(self):
        config = ScoringConfig.from_dict({
            "recovery_weights": {"hrv": 0.6, "rhr": 0.2, "sleep": 0.2},
            "strain_zone_weights": {"1": 0.2, "2": 0.4, "3": 0.8, "4": 1.2, "5": 2.0},
            "first_weekday": 6,
        })
        assert config.recovery_weights.hrv == 0.6
        assert config.strain_zone_weights[5] == 2.0
        assert config.first_weekday == 6
        assert config.sleep_hours_cap == DEFAULT_CONFIG.sleep_hours_cap

    def test_unknown_key(self):
        with pytest.raises(ConfigError):
            ScoringConfig.from_dict({"recovery_weight": {}})

    def test_malformed_nested(self):
        with pytest.raises(ConfigError):
            ScoringConfig.from_dict({"recovery_weights": {"vo2": 1.0}})


class TestLoadConfig:
    def test_load(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"default_hours_needed": 8.0}))
        assert load_config(path).default_hours_needed == 8.0

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_not_an_object(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("[1, 2]")
        with pytest.raises(ConfigError):
            load_config(path)
