"""Persistence for scored days and detected patterns.

The scoring engines never persist anything themselves; a caller hands their
results to a :class:`ScoreStore`.  Two implementations ship: an in-memory
store for tests and embedding, and an append-only JSONL file store in the
same line-per-record format the sample loader reads.
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Protocol

from pulsebase.analytics.patterns import DetectedPattern
from pulsebase.analytics.summary import DailyScores
from pulsebase.exceptions import InvalidInputError

logger = logging.getLogger(__name__)


class ScoreStore(Protocol):
    def save_day(self, record: DailyScores) -> None: ...

    def save_patterns(self, patterns: Iterable[DetectedPattern]) -> None: ...

    def load_days(
        self, start: date | None = None, end: date | None = None
    ) -> list[dict[str, Any]]: ...


def _in_range(day: date, start: date | None, end: date | None) -> bool:
    return (start is None or day >= start) and (end is None or day <= end)


class MemoryScoreStore:
    """Keeps the latest record per date and the latest pattern set."""

    def __init__(self) -> None:
        self._days: dict[date, dict[str, Any]] = {}
        self.patterns: list[dict[str, Any]] = []

    def save_day(self, record: DailyScores) -> None:
        self._days[record.day] = record.to_dict()

    def save_patterns(self, patterns: Iterable[DetectedPattern]) -> None:
        self.patterns = [p.to_dict() for p in patterns]

    def load_days(
        self, start: date | None = None, end: date | None = None
    ) -> list[dict[str, Any]]:
        return [
            self._days[d] for d in sorted(self._days) if _in_range(d, start, end)
        ]

    def __len__(self) -> int:
        return len(self._days)


class JsonlScoreStore:
    """Append-only JSONL store.

    Every save appends one line ``{"kind": ..., "saved_at": ..., "data": ...}``.
    When the file holds several records for one date, the last one wins.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _append(self, kind: str, data: Any) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        entry = {
            "kind": kind,
            "saved_at": datetime.now(timezone.utc).isoformat(),
            "data": data,
        }
        with open(self.path, "a") as f:
            f.write(json.dumps(entry) + "\n")

    def _entries(self) -> Iterable[dict[str, Any]]:
        if not self.path.exists():
            return
        with open(self.path) as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    yield json.loads(line)
                except json.JSONDecodeError as e:
                    raise InvalidInputError(
                        f"{self.path.name} line {line_num}: {e}"
                    ) from e

    def save_day(self, record: DailyScores) -> None:
        self._append("day", record.to_dict())
        logger.debug("Saved %s to %s", record.day, self.path)

    def save_patterns(self, patterns: Iterable[DetectedPattern]) -> None:
        data = [p.to_dict() for p in patterns]
        self._append("patterns", data)
        logger.debug("Saved %d patterns to %s", len(data), self.path)

    def load_days(
        self, start: date | None = None, end: date | None = None
    ) -> list[dict[str, Any]]:
        latest: dict[date, dict[str, Any]] = {}
        for entry in self._entries():
            if entry.get("kind") != "day":
                continue
            data = entry["data"]
            latest[date.fromisoformat(data["day"])] = data
        return [latest[d] for d in sorted(latest) if _in_range(d, start, end)]

    def load_patterns(self) -> list[dict[str, Any]]:
        """The most recently saved pattern set (empty if none)."""
        patterns: list[dict[str, Any]] = []
        for entry in self._entries():
            if entry.get("kind") == "patterns":
                patterns = entry["data"]
        return patterns
