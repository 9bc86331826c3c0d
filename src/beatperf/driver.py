"""Render driver: the fetch, archive, resolve, render and wait cycle."""

import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from queue import Queue

from beatperf.archive import SnapshotArchiver
from beatperf.errors import ArchiveWriteError, FetchError, MalformedRecord, ReplayExhausted
from beatperf.logger import logger
from beatperf.models import MetricSet, Snapshot
from beatperf.series import SeriesAccumulator
from beatperf.sources import SnapshotSource


class DriverState(Enum):
    """States of the render driver."""

    FETCHING = "fetching"
    ARCHIVING = "archiving"
    RESOLVING = "resolving"
    RENDERING = "rendering"
    WAITING = "waiting"
    STOPPED = "stopped"


@dataclass(slots=True, frozen=True)
class CycleReport:
    """What happened in one cycle, handed to the rendering surface."""

    cycle: int
    state: DriverState
    timestamp: float | None = None
    points: int = 0
    error: str | None = None


class RenderDriver:
    """
    Runs one cycle at a time against a snapshot source.

    Live sources never end: a failed fetch skips the cycle and the driver
    waits for the next one. Replay sources end at the last record or at the
    first malformed one. Cycles can run inline via step()/run() or in a
    daemon thread via start()/stop(), which pushes a CycleReport to the
    update queue after every cycle.
    """

    def __init__(
        self,
        source: SnapshotSource,
        metric_set: MetricSet,
        accumulator: SeriesAccumulator,
        *,
        interval: float = 5.0,
        archiver: SnapshotArchiver | None = None,
        update_queue: Queue[CycleReport] | None = None,
        on_render: Callable[[CycleReport], None] | None = None,
        replay_delay: float = 0.0,
    ) -> None:
        """
        Initialize the RenderDriver.

        Args:
            source: Where snapshots come from.
            metric_set: The frozen set of metrics to resolve.
            accumulator: Receives the resolved points.
            interval: Seconds between live cycles.
            archiver: Optional archive log for every fetched snapshot.
            update_queue: Thread-safe queue to push cycle reports to.
            on_render: Optional callback invoked with each cycle report.
            replay_delay: Seconds between cycles for finite sources. Replay
                does not honour the original capture gaps.
        """
        self._source = source
        self._metric_set = metric_set
        self._accumulator = accumulator
        self._interval = interval
        self._archiver = archiver
        self._queue = update_queue
        self._on_render = on_render
        self._replay_delay = replay_delay
        self._state = DriverState.WAITING
        self._cycles = 0
        self._skipped = 0
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._accumulator.register(metric_set)

    @property
    def state(self) -> DriverState:
        """Get the current state."""
        return self._state

    @property
    def cycles(self) -> int:
        """Get the number of cycles that reached rendering."""
        return self._cycles

    @property
    def skipped(self) -> int:
        """Get the number of cycles abandoned on a fetch failure."""
        return self._skipped

    @property
    def archiving(self) -> bool:
        """Check if snapshots are still being archived."""
        return self._archiver is not None

    @property
    def wait_time(self) -> float:
        """Get the pause between cycles."""
        return self._replay_delay if self._source.finite else self._interval

    @property
    def is_running(self) -> bool:
        """Check if the driver thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """
        Start the driver thread.

        Raises:
            RuntimeError: If the driver was stopped or has finished. A driver
                runs once; its source is closed when the run ends.
        """
        if self._stop_event.is_set() or self._state is DriverState.STOPPED:
            raise RuntimeError("render driver has already stopped")
        if self.is_running:
            return

        self._thread = threading.Thread(
            target=self.run,
            daemon=True,
            name="RenderDriver",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the driver thread. Stopping is final.

        Args:
            timeout: How long to wait for thread to stop (seconds). If the
                thread is still busy after that, it finishes its cycle and
                exits on its own.
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if not self._thread.is_alive():
                self._thread = None

    def run(self) -> None:
        """Run cycles until stopped or the source is exhausted."""
        try:
            while not self._stop_event.is_set():
                if self.step() is DriverState.STOPPED:
                    return
                # Wait for the interval or until stop is requested
                self._stop_event.wait(timeout=self.wait_time)
            self._finish(None)
        finally:
            self._close()

    def step(self) -> DriverState:
        """
        Run one cycle, from fetching up to (not including) the wait.

        Returns:
            WAITING when another cycle may follow, STOPPED when the run is over.
        """
        if self._state is DriverState.STOPPED:
            return self._state

        self._state = DriverState.FETCHING
        try:
            snapshot = self._source.next_snapshot()
        except FetchError as e:
            logger.error("got error fetching stats: %s", e)
            self._skipped += 1
            self._state = DriverState.WAITING
            self._publish(CycleReport(cycle=self._cycles, state=self._state, error=str(e)))
            return self._state
        except ReplayExhausted as e:
            logger.info("%s", e)
            return self._finish(None)
        except MalformedRecord as e:
            logger.error("stopping replay: %s", e)
            return self._finish(str(e))

        if self._archiver is not None:
            self._state = DriverState.ARCHIVING
            self._archive(snapshot)

        self._state = DriverState.RESOLVING
        points = self._accumulator.record(snapshot.timestamp, self._metric_set, snapshot)
        self._cycles += 1

        self._state = DriverState.RENDERING
        self._publish(
            CycleReport(
                cycle=self._cycles,
                state=self._state,
                timestamp=snapshot.timestamp,
                points=points,
            )
        )

        self._state = DriverState.WAITING
        return self._state

    def _archive(self, snapshot: Snapshot) -> None:
        try:
            self._archiver.write(snapshot)
        except ArchiveWriteError as e:
            logger.error("%s; archiving disabled for the rest of the run", e)
            self._archiver.close()
            self._archiver = None

    def _finish(self, error: str | None) -> DriverState:
        if self._state is not DriverState.STOPPED:
            self._state = DriverState.STOPPED
            self._publish(CycleReport(cycle=self._cycles, state=self._state, error=error))
        return self._state

    def _publish(self, report: CycleReport) -> None:
        logger.debug("cycle %d: %s (%d points)", report.cycle, report.state.value, report.points)
        if self._queue is not None:
            self._queue.put(report)
        if self._on_render is not None:
            self._on_render(report)

    def _close(self) -> None:
        if self._archiver is not None:
            self._archiver.close()
        self._source.close()
