"""beatperf - Main Textual application."""

from bisect import bisect_left, bisect_right
from queue import Empty, Queue

from textual.app import App, ComposeResult
from textual.containers import VerticalScroll
from textual.widget import Widget
from textual.widgets import Footer, Static
from textual_plotext import PlotextPlot

from beatperf.archive import SnapshotArchiver
from beatperf.driver import CycleReport, DriverState, RenderDriver
from beatperf.models import MetricSet, MetricSpec, Series
from beatperf.series import SeriesAccumulator
from beatperf.sources import SnapshotSource

LINE_COLORS = ["cyan", "magenta", "green", "yellow", "blue", "red", "orange", "white"]
# Seconds to wait for the driver thread when quitting
QUIT_TIMEOUT = 0.5


def split_gaps(series: Series, timeline: tuple[float, ...]) -> list[list[tuple[float, float]]]:
    """
    Split a series into runs of consecutive cycles.

    Two neighbouring points belong to the same run only if no recorded cycle
    falls strictly between them, so a missing value is drawn as a break in
    the line rather than bridged.
    """
    segments: list[list[tuple[float, float]]] = []
    previous: float | None = None
    for point in series:
        if previous is None or bisect_left(timeline, point.timestamp) > bisect_right(timeline, previous):
            segments.append([])
        segments[-1].append((point.timestamp, point.value))
        previous = point.timestamp
    return segments


def format_value(value: float, unit: str = "") -> str:
    """Format a metric value for display."""
    if isinstance(value, float) and not value.is_integer():
        text = f"{value:.4g}"
    else:
        text = f"{int(value):,}"
    return f"{text} {unit}" if unit else text


class StatusBar(Static):
    """Header widget showing where data comes from and how the run is going."""

    DEFAULT_CSS = """
    StatusBar {
        height: auto;
        padding: 0 1;
        background: $surface;
    }
    """

    def __init__(self, source_label: str, *args, **kwargs) -> None:
        """Initialize StatusBar."""
        super().__init__(*args, **kwargs)
        self._source_label = source_label
        self._cycles = 0
        self._skipped = 0
        self._state = DriverState.WAITING
        self._last_error: str | None = None

    def on_mount(self) -> None:
        self.update(self._get_status())

    def update_report(self, report: CycleReport) -> None:
        """Update the status from a cycle report."""
        self._cycles = report.cycle
        self._state = report.state
        if report.error is not None:
            self._last_error = report.error
            if report.state is DriverState.WAITING:
                self._skipped += 1
        elif report.state is DriverState.RENDERING:
            self._last_error = None
        self.update(self._get_status())

    def _get_status(self) -> str:
        state_colour = "red" if self._state is DriverState.STOPPED else "green"
        status = (
            f"[b]{self._source_label}[/b]  "
            f"[{state_colour}]{self._state.value}[/{state_colour}]  "
            f"cycles: {self._cycles}  skipped: {self._skipped}"
        )
        if self._last_error:
            status += f"\n[red]{self._last_error}[/red]"
        return status


class MetricChart(Widget):
    """One chart holding every visible metric that shares a chart title."""

    DEFAULT_CSS = """
    MetricChart {
        height: 20;
        border: solid $primary;
    }
    """

    def __init__(self, title: str, specs: list[MetricSpec], *args, **kwargs) -> None:
        """Initialize MetricChart."""
        super().__init__(*args, **kwargs)
        self._title = title
        self._specs = specs
        self._plot: PlotextPlot | None = None

    @property
    def chart_title(self) -> str:
        """Get the chart title."""
        return self._title

    @property
    def metric_names(self) -> list[str]:
        """Get the names of the metrics drawn on this chart."""
        return [spec.name for spec in self._specs]

    def compose(self) -> ComposeResult:
        """Compose the chart."""
        self._plot = PlotextPlot()
        yield self._plot

    def on_mount(self) -> None:
        self.update_series({}, ())

    def update_series(
        self,
        views: dict[str, Series],
        timeline: tuple[float, ...],
        members: dict[str, list[str]] | None = None,
    ) -> None:
        """
        Redraw from the accumulator's current view.

        Args:
            views: Series by name.
            timeline: Timestamps of every recorded cycle.
            members: Series names fed by each metric, for metrics naming a
                whole subtree. Defaults to each metric's own name.
        """
        if self._plot is None:
            return

        plt = self._plot.plt
        plt.clear_figure()
        origin = timeline[0] if timeline else 0.0
        units = {spec.unit for spec in self._specs if spec.unit}

        drawn = False
        lines = [
            (spec, views.get(name))
            for spec in self._specs
            for name in ((members or {}).get(spec.name) or [spec.name])
        ]
        for idx, (spec, series) in enumerate(lines):
            if not series:
                continue
            colour = LINE_COLORS[idx % len(LINE_COLORS)]
            label = f"{series.name} = {format_value(series.last.value * spec.scale, spec.unit)}"
            for segment in split_gaps(series, timeline):
                xs = [timestamp - origin for timestamp, _ in segment]
                ys = [value * spec.scale for _, value in segment]
                plt.plot(xs, ys, label=label, color=colour, marker="braille")
                # Label each metric once
                label = None
                drawn = True

        plt.title(self._title if drawn else f"{self._title} (no data)")
        plt.xlabel("seconds")
        if len(units) == 1:
            plt.ylabel(units.pop())
        self._plot.refresh()


class BeatperfApp(App):
    """Main beatperf application."""

    TITLE = "beatperf"
    SUB_TITLE = "Beat metrics monitor"

    CSS = """
    Screen {
        layout: vertical;
    }

    #status-bar {
        dock: top;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("c", "clear", "Clear"),
    ]

    def __init__(
        self,
        source: SnapshotSource,
        metric_set: MetricSet,
        accumulator: SeriesAccumulator | None = None,
        *,
        interval: float = 5.0,
        archiver: SnapshotArchiver | None = None,
        replay_delay: float = 0.0,
        source_label: str = "",
        refresh_rate: float = 0.5,
    ) -> None:
        """Initialize the BeatperfApp."""
        super().__init__()
        self._metric_set = metric_set
        self._accumulator = accumulator if accumulator is not None else SeriesAccumulator()
        self._source_label = source_label
        self._refresh_rate = refresh_rate
        self._update_queue: Queue[CycleReport] = Queue()
        self._render_driver = RenderDriver(
            source,
            metric_set,
            self._accumulator,
            interval=interval,
            archiver=archiver,
            update_queue=self._update_queue,
            replay_delay=replay_delay,
        )

    @property
    def driver(self) -> RenderDriver:
        """Get the render driver."""
        return self._render_driver

    @property
    def accumulator(self) -> SeriesAccumulator:
        """Get the series accumulator."""
        return self._accumulator

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield StatusBar(self._source_label, id="status-bar")
        with VerticalScroll(id="charts"):
            for title in self._metric_set.charts():
                yield MetricChart(title, self._metric_set.for_chart(title))
        yield Footer()

    def on_mount(self) -> None:
        """Start the render driver when the app is mounted."""
        self._render_driver.start()
        # Set up a timer to poll the queue for updates
        self.set_interval(self._refresh_rate, self._check_for_updates)

    def _check_for_updates(self) -> None:
        """Drain cycle reports and redraw if anything arrived."""
        report = None
        while True:
            try:
                report = self._update_queue.get_nowait()
                self.query_one("#status-bar", StatusBar).update_report(report)
            except Empty:
                break

        if report is not None:
            self._redraw()

    def _redraw(self) -> None:
        views = self._accumulator.view()
        timeline = self._accumulator.timeline()
        members = {name: self._accumulator.members(name) for name in self._metric_set}
        for chart in self.query(MetricChart):
            chart.update_series(views, timeline, members)

    def action_clear(self) -> None:
        """Drop the points collected so far."""
        self._accumulator.clear()
        self._redraw()
        self.notify("Cleared")

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        # The thread is a daemon; a fetch still in flight is abandoned
        self._render_driver.stop(timeout=QUIT_TIMEOUT)
        self.exit()
