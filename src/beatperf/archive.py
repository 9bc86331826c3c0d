"""
Snapshot archive log.

Each line is one JSON object, ``{"timestamp": <unix seconds>, "snapshot": {...}}``.
Bare snapshot lines (no wrapper) are also read; they are timestamped with
their zero-based line ordinal.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path
from typing import IO, Any

from beatperf.errors import ArchiveWriteError, MalformedRecord
from beatperf.logger import logger
from beatperf.models import NodeKind, Snapshot, node_kind
from beatperf.resolver import is_plottable

TIMESTAMP_FIELD = "timestamp"
SNAPSHOT_FIELD = "snapshot"


def encode_record(snapshot: Snapshot) -> str:
    """Serialize a snapshot to one archive line (without the newline)."""
    return json.dumps({TIMESTAMP_FIELD: snapshot.timestamp, SNAPSHOT_FIELD: snapshot.document})


def decode_record(line: str, line_number: int) -> Snapshot:
    """
    Decode one archive line.

    Args:
        line: The raw line.
        line_number: One-based line number, used for errors and for the
            timestamp of bare snapshot lines.

    Raises:
        MalformedRecord: If the line is not a JSON object.
    """
    try:
        record: Any = json.loads(line)
    except json.JSONDecodeError as e:
        raise MalformedRecord(line_number, f"invalid JSON: {e.msg}") from e
    except ValueError as e:
        # e.g. an integer literal past the int conversion digit limit
        raise MalformedRecord(line_number, f"invalid JSON: {e}") from e
    except RecursionError as e:
        raise MalformedRecord(line_number, "JSON nested too deeply") from e

    if node_kind(record) is not NodeKind.OBJECT:
        raise MalformedRecord(line_number, "record is not a JSON object")

    if set(record) == {TIMESTAMP_FIELD, SNAPSHOT_FIELD}:
        timestamp = record[TIMESTAMP_FIELD]
        document = record[SNAPSHOT_FIELD]
        if not is_plottable(timestamp):
            raise MalformedRecord(line_number, "timestamp is not a finite number")
        if node_kind(document) is not NodeKind.OBJECT:
            raise MalformedRecord(line_number, "snapshot is not a JSON object")
        return Snapshot(timestamp=float(timestamp), document=document)

    return Snapshot(timestamp=float(line_number - 1), document=record)


def read_archive(path: str | Path) -> Iterator[Snapshot]:
    """
    Read an archive log sequentially.

    Blank lines are skipped. Iteration stops with MalformedRecord at the
    first undecodable line; records before it have already been yielded.
    """
    with open(path, encoding="utf-8") as f:
        for line_number, line in enumerate(f, start=1):
            if not line.strip():
                continue
            yield decode_record(line, line_number)


class SnapshotArchiver:
    """Appends every fetched snapshot to an archive log."""

    def __init__(self, path: str | Path) -> None:
        """
        Initialize the SnapshotArchiver.

        The file is opened lazily on the first write.

        Args:
            path: Archive log path. Existing content is kept and appended to.
        """
        self._path = Path(path)
        self._file: IO[str] | None = None
        self._written = 0

    @property
    def path(self) -> Path:
        """Get the archive path."""
        return self._path

    @property
    def written(self) -> int:
        """Get the number of records written by this archiver."""
        return self._written

    def write(self, snapshot: Snapshot) -> None:
        """
        Append one snapshot and flush it to disk.

        Raises:
            ArchiveWriteError: If the file cannot be opened or written.
        """
        try:
            if self._file is None:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                self._file = open(self._path, "a", encoding="utf-8")
                logger.info("archiving snapshots to %s", self._path)
            self._file.write(encode_record(snapshot) + "\n")
            self._file.flush()
        except (OSError, RecursionError, TypeError, ValueError) as e:
            raise ArchiveWriteError(f"could not write to {self._path}: {e}") from e
        self._written += 1

    def close(self) -> None:
        """Close the archive file."""
        if self._file is not None:
            try:
                self._file.close()
            finally:
                self._file = None

    def __enter__(self) -> SnapshotArchiver:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
