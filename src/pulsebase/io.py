"""Load daily samples from JSON / JSONL files.

Each sample is an object like::

    {"day": "2024-03-04", "hrv_ms": 52.1, "resting_hr": 54,
     "sleep_hours": 7.4, "sleep_efficiency": 0.91,
     "bedtime": "23:10", "wake_time": "06:45",
     "zone_minutes": {"1": 30, "2": 20, "3": 10},
     "active_energy_kcal": 450}

Only ``day`` is required.  A ``.jsonl`` file holds one object per line; any
other file must hold a JSON array.
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, time
from pathlib import Path
from typing import Any

from pulsebase.exceptions import InvalidInputError
from pulsebase.models import DailySample, ensure_unique_days

logger = logging.getLogger(__name__)

_FLOAT_FIELDS = ("hrv_ms", "resting_hr", "sleep_hours", "sleep_efficiency",
                 "active_energy_kcal")
_KNOWN_FIELDS = {"day", "bedtime", "wake_time", "zone_minutes", *_FLOAT_FIELDS}


def _parse_time(value: Any, name: str) -> time | None:
    if value is None:
        return None
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(value, fmt).time()
        except (TypeError, ValueError):
            continue
    raise InvalidInputError(f"{name}: expected HH:MM, got {value!r}")


def _parse_float(value: Any, name: str) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInputError(f"{name}: expected a number, got {value!r}")
    return float(value)


def parse_sample(raw: dict[str, Any]) -> DailySample:
    """Build a :class:`DailySample` from a decoded JSON object.

    Raises:
        InvalidInputError: On a missing/invalid ``day``, an unknown key, or a
            value of the wrong type.
    """
    if not isinstance(raw, dict):
        raise InvalidInputError(f"expected an object, got {type(raw).__name__}")
    unknown = set(raw) - _KNOWN_FIELDS
    if unknown:
        raise InvalidInputError(f"unknown field(s) {sorted(unknown)}")
    try:
        day = date.fromisoformat(raw["day"])
    except KeyError:
        raise InvalidInputError("missing 'day'") from None
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"day: {e}") from e

    raw_zones = raw.get("zone_minutes") or {}
    if not isinstance(raw_zones, dict):
        raise InvalidInputError("zone_minutes: expected an object")
    zones: dict[int, float] = {}
    for key, minutes in raw_zones.items():
        try:
            zone = int(key)
        except ValueError:
            raise InvalidInputError(f"zone_minutes: bad zone key {key!r}") from None
        zones[zone] = _parse_float(minutes, f"zone_minutes[{key}]") or 0.0

    return DailySample(
        day=day,
        bedtime=_parse_time(raw.get("bedtime"), "bedtime"),
        wake_time=_parse_time(raw.get("wake_time"), "wake_time"),
        zone_minutes=zones,
        **{f: _parse_float(raw.get(f), f) for f in _FLOAT_FIELDS},
    )


def load_samples(path: str | Path) -> list[DailySample]:
    """Read samples from *path*, sorted by day.

    Raises:
        InvalidInputError: If a row cannot be parsed (the message names its
            line or index) or two rows share a date.
        FileNotFoundError: If *path* does not exist.
    """
    path = Path(path)
    samples: list[DailySample] = []

    if path.suffix == ".jsonl":
        with open(path) as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    samples.append(parse_sample(json.loads(line)))
                except json.JSONDecodeError as e:
                    raise InvalidInputError(f"{path.name} line {line_num}: {e}") from e
                except InvalidInputError as e:
                    raise InvalidInputError(f"{path.name} line {line_num}: {e}") from e
    else:
        try:
            rows = json.loads(path.read_text())
        except json.JSONDecodeError as e:
            raise InvalidInputError(f"{path.name}: {e}") from e
        if not isinstance(rows, list):
            raise InvalidInputError(f"{path.name}: expected a JSON array of samples")
        for idx, row in enumerate(rows):
            try:
                samples.append(parse_sample(row))
            except InvalidInputError as e:
                raise InvalidInputError(f"{path.name} item {idx}: {e}") from e

    ensure_unique_days(samples)
    samples.sort(key=lambda s: s.day)
    logger.info("Loaded %d samples from %s", len(samples), path)
    return samples


def dump_samples(samples: list[DailySample], path: str | Path) -> None:
    """Write samples as JSONL (the inverse of :func:`load_samples`)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        for sample in samples:
            f.write(json.dumps(sample.to_dict()) + "\n")
