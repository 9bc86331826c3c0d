"""Built-in Beat metric groups and MetricSet construction."""

from collections.abc import Iterable

from beatperf.config import WatchConfig
from beatperf.errors import ConfigurationError
from beatperf.models import MetricPath, MetricSet, MetricSpec

MEMSTATS_PREFIX = "beat.memstats"
CPU_PREFIX = "beat.cpu"
PROCESSDB_PREFIX = "processor.add_session_metadata.processdb"
KERNEL_TRACING_PREFIX = "processor.add_session_metadata.kernel_tracing"
PIPELINE_EVENTS_PREFIX = "libbeat.pipeline.events"
PIPELINE_QUEUE_PREFIX = "libbeat.pipeline.queue"
OUTPUT_EVENTS_PREFIX = "libbeat.output.events"

CUSTOM_CHART = "Custom"


def _group(
    prefix: str,
    fields: Iterable[tuple[str, bool]],
    chart: str,
    *,
    scale: float = 1.0,
    unit: str = "",
) -> list[MetricSpec]:
    specs = []
    for field_name, hidden in fields:
        name = f"{prefix}.{field_name}"
        specs.append(
            MetricSpec(
                name=name,
                path=MetricPath.parse(name),
                chart=chart,
                hidden=hidden,
                scale=scale,
                unit=unit,
            )
        )
    return specs


def memory_metrics() -> list[MetricSpec]:
    """Go runtime memory stats, displayed in KB."""
    fields = [
        ("gc_next", False),
        ("memory_alloc", False),
        ("memory_sys", False),
        # Cumulative bytes ever allocated, dwarfs everything else on the chart
        ("memory_total", True),
        ("rss", False),
    ]
    return _group(MEMSTATS_PREFIX, fields, "Memory", scale=1 / 1000, unit="KB")


def cpu_metrics() -> list[MetricSpec]:
    """CPU time counters."""
    fields = [(f"{kind}.time.ms", False) for kind in ("system", "user", "total")]
    return _group(CPU_PREFIX, fields, "CPU", unit="ms")


def processdb_metrics() -> list[MetricSpec]:
    """add_session_metadata process database gauges and counters."""
    fields = [
        ("entry_leader_lookup_fail", True),
        ("entry_leader_relationships_gauge", False),
        ("entry_leaders_gauge", False),
        ("exit_events_gauge", False),
        ("failed_process_lookup_count", True),
        ("processes_gauge", False),
        ("procfs_lookup_fail", False),
        ("reaped_orphan_exits", False),
        ("reaped_orphan_processes", False),
        ("reaped_processes", False),
        ("resolved_orphan_exits", False),
        ("served_process_count", True),
    ]
    return _group(PROCESSDB_PREFIX, fields, "ProcessDB")


def pipeline_metrics() -> list[MetricSpec]:
    """libbeat publisher pipeline events and queue state."""
    events = [
        (name, False)
        for name in ("active", "dropped", "failed", "filtered", "published", "retry", "total")
    ]
    queue = [(name, False) for name in ("acked", "max_events", "filled.events")]
    return (
        _group(PIPELINE_EVENTS_PREFIX, events, "Pipeline Events")
        + _group(PIPELINE_QUEUE_PREFIX, queue, "Pipeline Queue")
        + _group(PIPELINE_QUEUE_PREFIX, [("filled.pct", False)], "Queue % Full", scale=100.0, unit="%")
    )


def output_metrics() -> list[MetricSpec]:
    """libbeat output event counters."""
    fields = [
        (name, False)
        for name in ("acked", "active", "batches", "dropped", "duplicates", "failed", "toomany", "total")
    ]
    return _group(OUTPUT_EVENTS_PREFIX, fields, "Output Events")


def kernel_tracing_metrics() -> list[MetricSpec]:
    """add_session_metadata kernel tracing provider counters."""
    fields = [(name, False) for name in ("events_received", "events_lost", "process_lookup_fail")]
    return _group(KERNEL_TRACING_PREFIX, fields, "Kernel Tracing")


def parse_custom_metrics(raw: Iterable[str]) -> list[MetricPath]:
    """
    Parse user-supplied metric expressions.

    Each item may hold several comma-separated dot paths.

    Raises:
        ConfigurationError: If any expression is empty.
    """
    paths: list[MetricPath] = []
    for item in raw:
        for expression in item.split(","):
            paths.append(MetricPath.parse(expression))
    return paths


def build_metric_set(config: WatchConfig) -> MetricSet:
    """
    Build the frozen MetricSet for a watch.

    Flag groups come first in a fixed order, then custom paths. A custom path
    that a flag group already covers is not added twice.

    Raises:
        ConfigurationError: If nothing at all is selected, or a custom path is empty.
    """
    if not (config.has_flags or config.custom_metrics or config.archive_path):
        raise ConfigurationError("no metrics configured!")

    specs: list[MetricSpec] = []
    if config.memory:
        specs.extend(memory_metrics())
    if config.cpu:
        specs.extend(cpu_metrics())
    if config.processdb:
        specs.extend(processdb_metrics())
    if config.pipeline:
        specs.extend(pipeline_metrics())
    if config.output:
        specs.extend(output_metrics())
    if config.kernel_tracing:
        specs.extend(kernel_tracing_metrics())

    claimed = {spec.path for spec in specs}
    names = {spec.name for spec in specs}
    for path in parse_custom_metrics(config.custom_metrics):
        name = str(path)
        if path in claimed or name in names:
            continue
        claimed.add(path)
        names.add(name)
        specs.append(MetricSpec(name=name, path=path, chart=CUSTOM_CHART))

    return MetricSet(specs)
