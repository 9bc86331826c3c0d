"""Time-series accumulation for resolved metrics."""

import threading
from collections import deque

from beatperf.logger import logger
from beatperf.models import MetricSet, Series, SeriesPoint, Snapshot
from beatperf.resolver import resolve_leaves


class SeriesAccumulator:
    """
    Holds one append-only series per metric name.

    The render driver calls record() from its own thread while the UI calls
    view() from the event loop. Both take the same lock, so a reader never
    sees a cycle half applied.
    """

    def __init__(self, max_points: int | None = None) -> None:
        """
        Initialize the SeriesAccumulator.

        Args:
            max_points: Optional cap per series. When reached, the oldest point
                is evicted. None keeps every point.
        """
        self._max_points = max_points
        self._lock = threading.Lock()
        self._series: dict[str, deque[SeriesPoint]] = {}
        # Entry name to the series it fed, for entries naming a whole subtree
        self._members: dict[str, list[str]] = {}
        self._timeline: deque[float] = deque(maxlen=max_points)
        self._cycles = 0

    @property
    def max_points(self) -> int | None:
        """Get the per-series retention cap."""
        return self._max_points

    @property
    def cycles(self) -> int:
        """Get the number of recorded cycles."""
        return self._cycles

    def register(self, metric_set: MetricSet) -> None:
        """Create empty series for every entry so views list them before data arrives."""
        with self._lock:
            for name in metric_set:
                self._series.setdefault(name, deque(maxlen=self._max_points))

    def record(self, timestamp: float, metric_set: MetricSet, snapshot: Snapshot) -> int:
        """
        Resolve every metric against a snapshot and append the present values.

        Resolution happens before the lock is taken; the appends are applied
        together. Absent metrics simply get no point for this cycle. An entry
        whose path ends on an object feeds one series per numeric leaf below
        it, named by the entry name plus the rest of the leaf's path.

        Returns:
            The number of points appended.
        """
        resolved: list[tuple[str, str, SeriesPoint]] = []
        seen: set[str] = set()
        for entry, spec in metric_set.items():
            base = str(spec.path)
            found = False
            for leaf_path, value in resolve_leaves(snapshot, spec.path):
                found = True
                name = entry + leaf_path[len(base):]
                # Earlier entries win when two of them reach the same leaf
                if name in seen:
                    continue
                seen.add(name)
                resolved.append((entry, name, SeriesPoint(timestamp, value)))
            if not found:
                logger.debug("key %s does not exist or is not a number", spec.path)

        appended = 0
        with self._lock:
            for entry, name, point in resolved:
                series = self._series_for(entry, name)
                if series and point.timestamp < series[-1].timestamp:
                    logger.debug("dropping out-of-order point for %s at %s", name, point.timestamp)
                    continue
                series.append(point)
                appended += 1
            if not self._timeline or timestamp >= self._timeline[-1]:
                self._timeline.append(timestamp)
            self._cycles += 1
        return appended

    def _series_for(self, entry: str, name: str) -> deque[SeriesPoint]:
        series = self._series.get(name)
        if series is None:
            series = self._series[name] = deque(maxlen=self._max_points)
        members = self._members.setdefault(entry, [])
        if name not in members:
            members.append(name)
            placeholder = self._series.get(entry)
            # The entry turned out to name a subtree; drop its empty stand-in
            if name != entry and placeholder is not None and not placeholder and entry not in members:
                del self._series[entry]
        return series

    def members(self, entry: str) -> list[str]:
        """Get the series fed by a metric set entry, in first-seen order."""
        with self._lock:
            return list(self._members.get(entry) or [entry])

    def view(self) -> dict[str, Series]:
        """Get a read-only copy of every series."""
        with self._lock:
            return {name: Series(name, tuple(points)) for name, points in self._series.items()}

    def timeline(self) -> tuple[float, ...]:
        """Get the timestamps of the recorded cycles, including ones with gaps."""
        with self._lock:
            return tuple(self._timeline)

    def get(self, name: str) -> Series:
        """Get a read-only copy of one series (empty if unknown)."""
        with self._lock:
            return Series(name, tuple(self._series.get(name, ())))

    def clear(self) -> None:
        """Drop every recorded point."""
        with self._lock:
            for series in self._series.values():
                series.clear()
            self._timeline.clear()
            self._cycles = 0
