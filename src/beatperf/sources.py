"""Snapshot sources: live HTTP polling and archive replay."""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator
from pathlib import Path

import requests

from beatperf.archive import read_archive
from beatperf.errors import ConfigurationError, FetchError, MalformedRecord, ReplayExhausted
from beatperf.logger import logger
from beatperf.models import NodeKind, Snapshot, node_kind


class SnapshotSource:
    """
    Produces one snapshot per call.

    Subclasses set ``finite`` to tell the driver whether running out of
    snapshots is the normal end of the run.
    """

    finite = False

    def next_snapshot(self) -> Snapshot:
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self) -> SnapshotSource:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class HttpSnapshotSource(SnapshotSource):
    """Fetches the stats document from a Beat's HTTP endpoint."""

    def __init__(
        self,
        url: str,
        timeout: float,
        session: requests.Session | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the HttpSnapshotSource.

        Args:
            url: Full stats URL, e.g. ``http://localhost:5066/stats``.
            timeout: Per-request timeout in seconds. Must be shorter than the
                polling interval.
            session: Optional requests session to reuse.
            clock: Source of capture timestamps.
        """
        self.url = url
        self.timeout = timeout
        self._session = session or requests.Session()
        self._clock = clock

    def next_snapshot(self) -> Snapshot:
        """
        Fetch one snapshot.

        Raises:
            FetchError: On connection failure, timeout, non-2xx status, or a
                body that is not a JSON object.
        """
        timestamp = self._clock()
        try:
            response = self._session.get(self.url, timeout=self.timeout)
            response.raise_for_status()
            document = response.json()
        except requests.Timeout as e:
            raise FetchError(f"timed out after {self.timeout}s fetching {self.url}") from e
        except requests.RequestException as e:
            raise FetchError(f"error fetching {self.url}: {e}") from e
        except ValueError as e:
            raise FetchError(f"response from {self.url} is not valid JSON: {e}") from e
        except RecursionError as e:
            raise FetchError(f"response from {self.url} is nested too deeply") from e

        if node_kind(document) is not NodeKind.OBJECT:
            raise FetchError(f"response from {self.url} is not a JSON object")
        return Snapshot(timestamp=timestamp, document=document)

    def probe(self) -> bool:
        """Fetch once to check the endpoint is reachable."""
        try:
            self.next_snapshot()
        except FetchError as e:
            logger.warning("%s. Is it correct, and is the beat running?", e)
            return False
        return True

    def close(self) -> None:
        self._session.close()


class ReplaySnapshotSource(SnapshotSource):
    """Reads snapshots sequentially from an archive log, once."""

    finite = True

    def __init__(self, path: str | Path) -> None:
        """
        Initialize the ReplaySnapshotSource.

        Raises:
            ConfigurationError: If the archive does not exist.
        """
        self.path = Path(path)
        if not self.path.is_file():
            raise ConfigurationError(f"replay file not found: {self.path}")
        self._records: Iterator[Snapshot] | None = None
        self._read = 0

    @property
    def records_read(self) -> int:
        """Get the number of snapshots read so far."""
        return self._read

    def next_snapshot(self) -> Snapshot:
        """
        Read the next snapshot.

        Raises:
            ReplayExhausted: At the end of the log.
            MalformedRecord: At an undecodable line. Replay cannot continue past it.
        """
        if self._records is None:
            self._records = read_archive(self.path)
        try:
            snapshot = next(self._records)
        except StopIteration:
            raise ReplayExhausted(f"replayed {self._read} snapshots from {self.path}") from None
        except UnicodeDecodeError as e:
            self._records = iter(())
            raise MalformedRecord(self._read + 1, f"undecodable bytes: {e.reason}") from e
        except MalformedRecord:
            # A generator that raised is finished; make that explicit
            self._records = iter(())
            raise
        self._read += 1
        return snapshot

    def close(self) -> None:
        if self._records is not None:
            close = getattr(self._records, "close", None)
            if close is not None:
                close()
            self._records = iter(())
