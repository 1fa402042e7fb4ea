"""Data gaps and coverage.

Flags calendar days with no sample and days whose sample lacks a signal the
scores depend on, and grades how complete a history is overall.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Iterable, Sequence

from pulsebase.exceptions import InvalidInputError
from pulsebase.models import Confidence, DailySample, ensure_unique_days

SHORT_SLEEP_HOURS = 4.0

# Signal weights of the coverage score
COVERAGE_WEIGHTS = {"hrv": 0.35, "sleep": 0.35, "heart_rate": 0.20, "activity": 0.10}


class GapType(str, Enum):
    MISSING_DAY = "missing_day"
    MISSING_HRV = "missing_hrv"
    MISSING_SLEEP = "missing_sleep"
    SHORT_SLEEP = "short_sleep"
    MISSING_SLEEP_TIMES = "missing_sleep_times"
    MISSING_RESTING_HR = "missing_rhr"
    MISSING_ACTIVITY = "missing_activity"


class GapSeverity(str, Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    SEVERE = "severe"


@dataclass(frozen=True)
class DataGap:
    day: date
    gap_type: GapType
    severity: GapSeverity
    description: str

    def to_dict(self) -> dict:
        return {
            "day": self.day.isoformat(),
            "type": self.gap_type.value,
            "severity": self.severity.value,
            "description": self.description,
        }


def _day_gaps(sample: DailySample) -> list[DataGap]:
    day = sample.day
    gaps = []

    def add(kind: GapType, severity: GapSeverity, text: str) -> None:
        gaps.append(DataGap(day, kind, severity, text))

    if sample.hrv_ms is None:
        add(GapType.MISSING_HRV, GapSeverity.MODERATE,
            "No HRV data. Wear your device during sleep.")
    if sample.sleep_hours is None:
        add(GapType.MISSING_SLEEP, GapSeverity.MODERATE, "No sleep data recorded")
    elif sample.sleep_hours < SHORT_SLEEP_HOURS:
        add(GapType.SHORT_SLEEP, GapSeverity.MINOR,
            "Short sleep duration may affect accuracy")
    if not sample.night.complete:
        add(GapType.MISSING_SLEEP_TIMES, GapSeverity.MINOR,
            "Bed or wake time unavailable")
    if sample.resting_hr is None:
        add(GapType.MISSING_RESTING_HR, GapSeverity.MODERATE,
            "Resting heart rate not available")
    if not sample.has_zone_data and sample.active_energy_kcal is None:
        add(GapType.MISSING_ACTIVITY, GapSeverity.MINOR, "No activity data recorded")
    return gaps


def detect_gaps(
    samples: Sequence[DailySample], start: date, end: date
) -> list[DataGap]:
    """Gaps over the inclusive range ``start..end``, in date order.

    Samples outside the range are ignored.

    Raises:
        InvalidInputError: If ``end < start`` or a date repeats.
    """
    if end < start:
        raise InvalidInputError(f"end {end} is before start {start}")
    ensure_unique_days(samples)

    by_day = {s.day: s for s in samples if start <= s.day <= end}
    gaps: list[DataGap] = []
    day = start
    while day <= end:
        sample = by_day.get(day)
        if sample is None:
            gaps.append(DataGap(day, GapType.MISSING_DAY, GapSeverity.MODERATE,
                                "No data recorded for this day"))
        else:
            gaps.extend(_day_gaps(sample))
        day += timedelta(days=1)
    return gaps


def adjust_confidence(base: Confidence, gaps: Iterable[DataGap]) -> Confidence:
    """Lower *base* for the gaps on a scoring day."""
    severities = [g.severity for g in gaps]
    if GapSeverity.SEVERE in severities:
        return Confidence.LOW
    moderate = severities.count(GapSeverity.MODERATE)
    if moderate >= 2:
        return Confidence.MEDIUM if base is Confidence.HIGH else Confidence.LOW
    if moderate == 1 and base is Confidence.HIGH:
        return Confidence.MEDIUM
    return base


# ---------------------------------------------------------------------------
# Coverage
# ---------------------------------------------------------------------------


class QualityGrade(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


@dataclass(frozen=True)
class DataCoverage:
    """Share of days carrying each signal and a weighted 0-100 score."""

    score: float
    grade: QualityGrade
    hrv: float
    sleep: float
    heart_rate: float
    activity: float
    recommendations: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "score": round(self.score, 1),
            "grade": self.grade.value,
            "coverage": {
                "hrv": round(self.hrv, 3),
                "sleep": round(self.sleep, 3),
                "heart_rate": round(self.heart_rate, 3),
                "activity": round(self.activity, 3),
            },
            "recommendations": list(self.recommendations),
        }


def _grade(score: float) -> QualityGrade:
    if score >= 90:
        return QualityGrade.EXCELLENT
    if score >= 75:
        return QualityGrade.GOOD
    if score >= 50:
        return QualityGrade.FAIR
    return QualityGrade.POOR


def assess_coverage(samples: Sequence[DailySample]) -> DataCoverage:
    """Per-signal coverage over the given samples."""
    if not samples:
        return DataCoverage(
            score=0.0,
            grade=QualityGrade.POOR,
            hrv=0.0,
            sleep=0.0,
            heart_rate=0.0,
            activity=0.0,
            recommendations=("Start wearing your device to collect health data",),
        )

    total = float(len(samples))
    coverage = {
        "hrv": sum(s.hrv_ms is not None for s in samples) / total,
        "sleep": sum(s.sleep_hours is not None for s in samples) / total,
        "heart_rate": sum(s.resting_hr is not None for s in samples) / total,
        "activity": sum(
            s.has_zone_data or s.active_energy_kcal is not None for s in samples
        ) / total,
    }
    score = 100.0 * sum(coverage[k] * w for k, w in COVERAGE_WEIGHTS.items())

    recommendations = []
    if coverage["hrv"] < 0.7:
        recommendations.append("Wear your device during sleep for better HRV tracking")
    if coverage["sleep"] < 0.7:
        recommendations.append("Enable sleep tracking")
    if coverage["heart_rate"] < 0.8:
        recommendations.append("Ensure the device fits snugly for heart rate accuracy")
    if coverage["activity"] < 0.8:
        recommendations.append("Wear your device throughout the day for activity tracking")

    return DataCoverage(
        score=score,
        grade=_grade(score),
        recommendations=tuple(recommendations),
        **coverage,
    )
