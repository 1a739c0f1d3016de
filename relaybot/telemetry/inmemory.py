"""Telemetry backend that keeps agent metrics in process.

Selected by the ``memory`` telemetry backend and used by the test suite.  Series
are keyed by metric name plus a sorted label tuple, so label order at the call
site does not matter.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from typing import TypeAlias

from loguru import logger

Labels: TypeAlias = tuple[tuple[str, str], ...]
SeriesKey: TypeAlias = tuple[str, Labels]


def _series(name: str, labels: Labels) -> SeriesKey:
    return name, tuple(sorted(labels))


class InMemoryTelemetry:
    """Records counters, gauges and message durations for inspection."""

    def __init__(self) -> None:
        self._counts: Counter[SeriesKey] = Counter()
        self._gauges: dict[SeriesKey, float] = {}
        self._durations: defaultdict[SeriesKey, list[float]] = defaultdict(list)

    def incr(self, name: str, value: int = 1, labels: Labels = ()) -> None:
        self._counts[_series(name, labels)] += value
        logger.trace("telemetry {}{} += {}", name, dict(labels), value)

    def gauge(self, name: str, value: float, labels: Labels = ()) -> None:
        self._gauges[_series(name, labels)] = value

    def timing(self, name: str, value: float, labels: Labels = ()) -> None:
        self._durations[_series(name, labels)].append(value)

    histogram = timing

    # ── Queries ──────────────────────────────────────────────────────

    def get_counter(self, name: str, labels: Labels = ()) -> int:
        """Count for one exact series."""
        return self._counts[_series(name, labels)]

    def total(self, name: str) -> int:
        """Sum of a counter across all of its label sets."""
        return sum(count for (metric, _), count in self._counts.items() if metric == name)

    def dropped(self, reason: str | None = None) -> int:
        """Messages dropped before dispatch, for one reason or in total."""
        if reason is None:
            return self.total("messages_dropped")
        return self.get_counter("messages_dropped", (("reason", reason),))

    def handler_errors(self, category: str | None = None) -> int:
        """Handler failures, for one category or in total."""
        if category is None:
            return self.total("handler_errors")
        return self.get_counter("handler_errors", (("category", category),))

    def get_gauge(self, name: str, labels: Labels = ()) -> float | None:
        return self._gauges.get(_series(name, labels))

    def get_histogram_values(self, name: str, labels: Labels = ()) -> list[float]:
        return list(self._durations.get(_series(name, labels), ()))

    def reset(self) -> None:
        self._counts.clear()
        self._gauges.clear()
        self._durations.clear()
