"""
beatperf exceptions module.

Only ConfigurationError is fatal. Everything else is raised per cycle and
handled by the render driver.
"""


class BeatperfError(Exception):
    """Base class for beatperf errors."""

    pass


class ConfigurationError(BeatperfError):
    """Raised before the watch loop starts when the configuration is unusable."""

    pass


class FetchError(BeatperfError):
    """Raised when a live snapshot could not be fetched or decoded."""

    pass


class ArchiveWriteError(BeatperfError):
    """Raised when a snapshot could not be appended to the archive log."""

    pass


class ReplayExhausted(BeatperfError):
    """Raised when a replayed archive log has no more records."""

    pass


class MalformedRecord(BeatperfError):
    """Raised when an archive log line cannot be decoded into a snapshot."""

    def __init__(self, line_number: int, reason: str) -> None:
        self.line_number = line_number
        self.reason = reason
        super().__init__(f"malformed record on line {line_number}: {reason}")
