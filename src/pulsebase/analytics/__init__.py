"""Scoring engines for daily physiological samples.

Modules:
    stats       -- Mean/std, normal percentiles, Pearson r, slopes
    baseline    -- Rolling personal baselines, quality and trends
    deviation   -- Z-score deviation from a baseline
    recovery    -- HRV-driven recovery score
    strain      -- HR-zone + active energy strain (0-21)
    sleep       -- Sleep performance, need and debt
    consistency -- Bed/wake time consistency
    patterns    -- Correlation pattern detection and goal streaks
    summary     -- Daily score records and weekly aggregation
    quality     -- Data gaps and coverage
    monitor     -- Daily in-range checks against baselines
    pipeline    -- Day-by-day scoring over a history
"""

from pulsebase.analytics.baseline import (
    Baseline,
    BaselineCache,
    BaselinePair,
    compute_baseline,
    compute_baselines,
)
from pulsebase.analytics.deviation import DeviationResult, deviation
from pulsebase.analytics.recovery import RecoveryScore, score_recovery
from pulsebase.analytics.strain import StrainScore, score_strain
from pulsebase.analytics.sleep import SleepPerformanceScore, score_sleep_performance
from pulsebase.analytics.consistency import ConsistencyMetrics, calculate_consistency
from pulsebase.analytics.patterns import (
    DetectedPattern,
    PatternConfidence,
    detect_pattern,
    detect_patterns,
)
from pulsebase.analytics.summary import DailyScores, WeekSummary, aggregate_week
from pulsebase.analytics.quality import DataGap, detect_gaps, assess_coverage
from pulsebase.analytics.monitor import MonitorResult, evaluate_day, monitor_day
from pulsebase.analytics.pipeline import run_pipeline, score_day

__all__ = [
    # baseline
    "Baseline",
    "BaselineCache",
    "BaselinePair",
    "compute_baseline",
    "compute_baselines",
    # deviation
    "DeviationResult",
    "deviation",
    # recovery
    "RecoveryScore",
    "score_recovery",
    # strain
    "StrainScore",
    "score_strain",
    # sleep
    "SleepPerformanceScore",
    "score_sleep_performance",
    # consistency
    "ConsistencyMetrics",
    "calculate_consistency",
    # patterns
    "DetectedPattern",
    "PatternConfidence",
    "detect_pattern",
    "detect_patterns",
    # summary
    "DailyScores",
    "WeekSummary",
    "aggregate_week",
    # quality
    "DataGap",
    "detect_gaps",
    "assess_coverage",
    # monitor
    "MonitorResult",
    "evaluate_day",
    "monitor_day",
    # pipeline
    "run_pipeline",
    "score_day",
]
