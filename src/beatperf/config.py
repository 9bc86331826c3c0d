"""Configuration and environment handling for beatperf."""

import os
from dataclasses import dataclass, field

from beatperf.errors import ConfigurationError

__all__ = [
    "DEFAULT_ENDPOINT",
    "DEFAULT_INTERVAL",
    "DEFAULT_STATS_PATH",
    "TIMEOUT_RATIO",
    "WatchConfig",
    "get_default_endpoint",
    "get_default_interval",
    "get_default_max_points",
]

DEFAULT_ENDPOINT = "localhost:5066"
DEFAULT_INTERVAL = 5.0
DEFAULT_STATS_PATH = "stats"
# Fetch timeout as a fraction of the interval when none is given
TIMEOUT_RATIO = 0.8


def get_default_endpoint() -> str:
    """Get the default endpoint, overridable via BEATPERF_ENDPOINT."""
    return os.environ.get("BEATPERF_ENDPOINT", DEFAULT_ENDPOINT)


def get_default_interval() -> float:
    """Get the default polling interval, overridable via BEATPERF_INTERVAL."""
    value = os.environ.get("BEATPERF_INTERVAL")
    if value is None:
        return DEFAULT_INTERVAL
    try:
        return float(value)
    except ValueError as e:
        raise ConfigurationError(f"BEATPERF_INTERVAL is not a number: {value!r}") from e


def get_default_max_points() -> int | None:
    """Get the per-series retention cap from BEATPERF_MAX_POINTS (unbounded if unset)."""
    value = os.environ.get("BEATPERF_MAX_POINTS")
    if not value:
        return None
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(f"BEATPERF_MAX_POINTS is not an integer: {value!r}") from e


@dataclass(slots=True)
class WatchConfig:
    """Everything needed to start a watch or a replay."""

    endpoint: str | None = None  # None means the default; set explicitly conflicts with replay
    interval: float = DEFAULT_INTERVAL
    timeout: float | None = None
    stats_path: str = DEFAULT_STATS_PATH
    custom_metrics: list[str] = field(default_factory=list)
    memory: bool = False
    cpu: bool = False
    processdb: bool = False
    pipeline: bool = False
    kernel_tracing: bool = False
    output: bool = False
    verbose: bool = False
    archive_path: str | None = None
    replay_path: str | None = None
    replay_delay: float = 0.0
    max_points: int | None = None
    headless: bool = False
    log_file: str | None = None

    @property
    def is_replay(self) -> bool:
        """Check if snapshots come from an archive log rather than the network."""
        return self.replay_path is not None

    @property
    def has_flags(self) -> bool:
        """Check if any built-in metric group is selected."""
        return any(
            (self.memory, self.cpu, self.processdb, self.pipeline, self.kernel_tracing, self.output)
        )

    @property
    def effective_endpoint(self) -> str:
        """Get the endpoint to poll."""
        return self.endpoint if self.endpoint is not None else get_default_endpoint()

    @property
    def effective_timeout(self) -> float:
        """Get the fetch timeout, derived from the interval if not set."""
        if self.timeout is not None:
            return self.timeout
        return self.interval * TIMEOUT_RATIO

    @property
    def url(self) -> str:
        """Get the stats URL for live polling."""
        endpoint = self.effective_endpoint.rstrip("/")
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        return f"http://{endpoint}/{self.stats_path.lstrip('/')}"

    def validate(self) -> None:
        """
        Check the configuration before the loop starts.

        Raises:
            ConfigurationError: If no metric source is selected, sources conflict,
                or a timing value is out of range.
        """
        if not (self.has_flags or self.custom_metrics or self.archive_path):
            raise ConfigurationError(
                "no metrics configured: select a metric group, --metrics, or --archive"
            )
        if self.replay_path is not None:
            if self.endpoint is not None:
                raise ConfigurationError("--replay reads from a file and cannot be combined with an endpoint")
            if self.archive_path is not None:
                raise ConfigurationError("--replay cannot be combined with --archive")
        if self.interval <= 0:
            raise ConfigurationError(f"interval must be positive, got {self.interval}")
        if self.replay_delay < 0:
            raise ConfigurationError(f"replay delay must not be negative, got {self.replay_delay}")
        if not self.is_replay:
            timeout = self.effective_timeout
            if timeout <= 0 or timeout >= self.interval:
                raise ConfigurationError(
                    f"timeout must be positive and shorter than the interval ({timeout} >= {self.interval})"
                )
        if self.max_points is not None and self.max_points < 1:
            raise ConfigurationError(f"max points must be at least 1, got {self.max_points}")
