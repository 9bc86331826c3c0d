"""Data models for beatperf."""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from beatperf.errors import ConfigurationError


class NodeKind(Enum):
    """Shape of a decoded JSON node."""

    OBJECT = "object"
    ARRAY = "array"
    NUMBER = "number"
    STRING = "string"
    BOOL = "bool"
    NULL = "null"


def node_kind(node: Any) -> NodeKind | None:
    """Classify a decoded JSON node, or return None for non-JSON values."""
    # bool is a subclass of int, check it first
    if isinstance(node, bool):
        return NodeKind.BOOL
    if isinstance(node, (int, float)):
        return NodeKind.NUMBER
    if isinstance(node, str):
        return NodeKind.STRING
    if node is None:
        return NodeKind.NULL
    if isinstance(node, Mapping):
        return NodeKind.OBJECT
    if isinstance(node, (list, tuple)):
        return NodeKind.ARRAY
    return None


@dataclass(slots=True, frozen=True)
class Snapshot:
    """Immutable point-in-time read of the monitored process's metrics."""

    timestamp: float  # Unix seconds, or record ordinal for bare archive lines
    document: dict[str, Any]


@dataclass(slots=True, frozen=True)
class MetricPath:
    """Dot-notation address of a scalar inside a snapshot document."""

    segments: tuple[str, ...]

    @classmethod
    def parse(cls, text: str) -> "MetricPath":
        """
        Parse a dot-notation expression such as ``beat.memstats.rss``.

        A single leading dot is accepted (``.beat.runtime.goroutines``).

        Raises:
            ConfigurationError: If the expression or any of its segments is empty.
        """
        raw = text.strip()
        if raw.startswith("."):
            raw = raw[1:]
        if not raw:
            raise ConfigurationError(f"empty metric path: {text!r}")
        segments = tuple(raw.split("."))
        if any(not segment for segment in segments):
            raise ConfigurationError(f"metric path has an empty segment: {text!r}")
        return cls(segments)

    def __str__(self) -> str:
        return ".".join(self.segments)


@dataclass(slots=True, frozen=True)
class MetricSpec:
    """One named entry of a MetricSet."""

    name: str
    path: MetricPath
    chart: str = "Custom"
    hidden: bool = False  # Recorded, but not drawn
    scale: float = 1.0  # Display multiplier, series keep raw values
    unit: str = ""


class MetricSet(Mapping[str, MetricSpec]):
    """Read-only, ordered mapping of display name to MetricSpec."""

    __slots__ = ("_specs",)

    def __init__(self, specs: list[MetricSpec] | tuple[MetricSpec, ...] = ()) -> None:
        by_name: dict[str, MetricSpec] = {}
        for spec in specs:
            if spec.name in by_name:
                raise ConfigurationError(f"duplicate metric name: {spec.name}")
            by_name[spec.name] = spec
        self._specs = by_name

    def __getitem__(self, name: str) -> MetricSpec:
        return self._specs[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._specs)

    def __len__(self) -> int:
        return len(self._specs)

    def __repr__(self) -> str:
        return f"MetricSet({list(self._specs)!r})"

    def specs(self) -> list[MetricSpec]:
        """Get the entries in insertion order."""
        return list(self._specs.values())

    def paths(self) -> list[MetricPath]:
        """Get the configured paths in insertion order."""
        return [spec.path for spec in self._specs.values()]

    def charts(self) -> list[str]:
        """Get the chart titles that have at least one visible metric, in order."""
        titles: list[str] = []
        for spec in self._specs.values():
            if not spec.hidden and spec.chart not in titles:
                titles.append(spec.chart)
        return titles

    def for_chart(self, chart: str) -> list[MetricSpec]:
        """Get the visible entries drawn on the given chart."""
        return [spec for spec in self._specs.values() if spec.chart == chart and not spec.hidden]


@dataclass(slots=True, frozen=True)
class SeriesPoint:
    """A single (timestamp, value) observation."""

    timestamp: float
    value: float | int


class Series:
    """Read-only view over the points recorded for one metric."""

    __slots__ = ("name", "_points")

    def __init__(self, name: str, points: tuple[SeriesPoint, ...] = ()) -> None:
        self.name = name
        self._points = points

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[SeriesPoint]:
        return iter(self._points)

    def __getitem__(self, index: int) -> SeriesPoint:
        return self._points[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Series):
            return NotImplemented
        return self.name == other.name and self._points == other._points

    def __repr__(self) -> str:
        return f"Series({self.name!r}, {len(self._points)} points)"

    @property
    def points(self) -> tuple[SeriesPoint, ...]:
        """Get all points."""
        return self._points

    @property
    def timestamps(self) -> list[float]:
        """Get the point timestamps."""
        return [point.timestamp for point in self._points]

    @property
    def values(self) -> list[float | int]:
        """Get the point values."""
        return [point.value for point in self._points]

    @property
    def last(self) -> SeriesPoint | None:
        """Get the most recent point, if any."""
        return self._points[-1] if self._points else None
