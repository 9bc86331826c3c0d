#!/usr/bin/env python3
"""
beatperf CLI tool

Command line interface for watching a Beat's stats endpoint or replaying an
archived capture.
"""

from __future__ import annotations

import argparse
import logging
import sys

from beatperf.archive import SnapshotArchiver
from beatperf.config import (
    WatchConfig,
    get_default_interval,
    get_default_max_points,
)
from beatperf.driver import CycleReport, DriverState, RenderDriver
from beatperf.errors import ConfigurationError, FetchError, MalformedRecord, ReplayExhausted
from beatperf.logger import logger, setup_logger
from beatperf.metric_set import build_metric_set
from beatperf.models import MetricSet
from beatperf.resolver import flatten
from beatperf.series import SeriesAccumulator
from beatperf.sources import HttpSnapshotSource, ReplaySnapshotSource, SnapshotSource


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="beatperf",
        description="Chart a Beat's internal metrics live, or from an archived capture.",
    )
    parser.add_argument(
        "endpoint",
        nargs="?",
        default=None,
        help="host:port of the beat stats endpoint (default: localhost:5066, or BEATPERF_ENDPOINT)",
    )
    parser.add_argument("-i", "--interval", type=float, default=None, help="How often to fetch stats, in seconds (default: 5)")
    parser.add_argument("--timeout", type=float, default=None, help="Fetch timeout in seconds (default: 80%% of the interval)")
    parser.add_argument("--stats-path", default="stats", help="Path of the stats document on the endpoint (default: stats)")
    parser.add_argument(
        "-m",
        "--metrics",
        action="extend",
        nargs="+",
        default=[],
        help="Custom metrics to monitor, in dot-notation. Comma-separated lists are accepted.",
    )
    parser.add_argument("--memory", action="store_true", help="report memory metrics")
    parser.add_argument("--cpu", action="store_true", help="report CPU metrics")
    parser.add_argument("--processdb", action="store_true", help="report add_session_metadata's processDB metrics")
    parser.add_argument("--pipeline", action="store_true", help="report libbeat pipeline metrics")
    parser.add_argument("--kernel-tracing", action="store_true", help="report add_session_metadata's kernel_tracing metrics")
    parser.add_argument("--output", action="store_true", help="report output event metrics")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--archive", "--ndjson", dest="archive", default=None, help="Append every fetched snapshot to this ndjson file")
    parser.add_argument("--replay", "--read", dest="replay", default=None, help="Read snapshots from an ndjson file instead of an endpoint")
    parser.add_argument("--replay-delay", type=float, default=0.0, help="Seconds between replayed snapshots (default: 0)")
    parser.add_argument("--max-points", type=int, default=None, help="Keep at most this many points per metric")
    parser.add_argument("--headless", action="store_true", help="Print the latest values after every cycle instead of drawing charts")
    parser.add_argument("--list", action="store_true", help="Print every numeric metric path in one snapshot and exit")
    parser.add_argument("--log-file", default=None, help="Write log records to this file")
    return parser


def config_from_args(args: argparse.Namespace) -> WatchConfig:
    """Turn parsed arguments into a WatchConfig."""
    return WatchConfig(
        endpoint=args.endpoint,
        interval=args.interval if args.interval is not None else get_default_interval(),
        timeout=args.timeout,
        stats_path=args.stats_path,
        custom_metrics=list(args.metrics),
        memory=args.memory,
        cpu=args.cpu,
        processdb=args.processdb,
        pipeline=args.pipeline,
        kernel_tracing=args.kernel_tracing,
        output=args.output,
        verbose=args.verbose,
        archive_path=args.archive,
        replay_path=args.replay,
        replay_delay=args.replay_delay,
        max_points=args.max_points if args.max_points is not None else get_default_max_points(),
        headless=args.headless,
        log_file=args.log_file,
    )


def create_source(config: WatchConfig) -> SnapshotSource:
    """Create the snapshot source for a configuration."""
    if config.is_replay:
        logger.info("replaying snapshots from %s", config.replay_path)
        return ReplaySnapshotSource(config.replay_path)
    logger.info("using endpoint %s", config.url)
    return HttpSnapshotSource(config.url, timeout=config.effective_timeout)


def list_paths(source: SnapshotSource) -> int:
    """Print every numeric path of the next snapshot."""
    try:
        snapshot = source.next_snapshot()
    except (FetchError, MalformedRecord, ReplayExhausted) as e:
        print(f"beatperf: error: {e}", file=sys.stderr)
        return 1
    for path, value in flatten(snapshot.document):
        print(f"{path} = {value}")
    return 0


def print_last_values(metric_set: MetricSet, accumulator: SeriesAccumulator) -> None:
    """Dump the last value of every visible metric to stdout, grouped by chart."""
    views = accumulator.view()
    for chart in metric_set.charts():
        print(f"{chart}:")
        for spec in metric_set.for_chart(chart):
            for name in accumulator.members(spec.name):
                series = views.get(name)
                last = series.last if series is not None else None
                shown = "-" if last is None else f"{last.value * spec.scale:g}{(' ' + spec.unit) if spec.unit else ''}"
                print(f"\t{name}: {shown}")


def run_headless(driver: RenderDriver) -> int:
    """Run the driver in the foreground until Ctrl-C or the end of a replay."""
    try:
        driver.run()
    except KeyboardInterrupt:
        logger.info("shutting down!")
    return 0


def run_tui(
    config: WatchConfig,
    source: SnapshotSource,
    metric_set: MetricSet,
    accumulator: SeriesAccumulator,
    archiver: SnapshotArchiver | None,
) -> int:
    """Start the Textual chart surface."""
    from beatperf.app import BeatperfApp

    label = f"replay {config.replay_path}" if config.is_replay else config.url
    app = BeatperfApp(
        source,
        metric_set,
        accumulator,
        interval=config.interval,
        archiver=archiver,
        replay_delay=config.replay_delay,
        source_label=label,
    )
    app.run()
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args)
    except ConfigurationError as e:
        parser.error(str(e))

    level = logging.DEBUG if config.verbose else logging.INFO
    setup_logger(level, log_file=config.log_file, quiet=not (config.headless or args.list))

    if args.list:
        try:
            source = create_source(config)
        except ConfigurationError as e:
            parser.error(str(e))
        with source:
            return list_paths(source)

    try:
        config.validate()
        metric_set = build_metric_set(config)
        source = create_source(config)
    except ConfigurationError as e:
        parser.error(str(e))

    if isinstance(source, HttpSnapshotSource):
        # Do an initial fetch to make sure the endpoint is okay
        source.probe()

    archiver = SnapshotArchiver(config.archive_path) if config.archive_path else None
    accumulator = SeriesAccumulator(max_points=config.max_points)

    if not config.headless:
        return run_tui(config, source, metric_set, accumulator, archiver)

    def on_render(report: CycleReport) -> None:
        if report.state is DriverState.RENDERING:
            print(f"cycle {report.cycle}:")
            print_last_values(metric_set, accumulator)

    driver = RenderDriver(
        source,
        metric_set,
        accumulator,
        interval=config.interval,
        archiver=archiver,
        on_render=on_render,
        replay_delay=config.replay_delay,
    )
    logger.info("starting watch of beat stats...")
    return run_headless(driver)


if __name__ == "__main__":
    sys.exit(main())
