"""
Pytest configuration and shared fixtures.
"""

import json
import logging

import pytest

from beatperf.logger import logger


@pytest.fixture(autouse=True)
def reset_beatperf_logger():
    """Undo setup_logger() so records keep reaching caplog between tests."""
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture(autouse=True)
def clean_env_for_tests(monkeypatch):
    """Keep the user's BEATPERF_* settings out of the tests."""
    monkeypatch.delenv("BEATPERF_ENDPOINT", raising=False)
    monkeypatch.delenv("BEATPERF_INTERVAL", raising=False)
    monkeypatch.delenv("BEATPERF_MAX_POINTS", raising=False)


def make_stats(rss: int = 52_000_000, published: int = 100, filled_pct: float = 0.25) -> dict:
    """A trimmed-down Beat /stats document."""
    return {
        "beat": {
            "cpu": {
                "system": {"ticks": 120, "time": {"ms": 120}},
                "user": {"ticks": 410, "time": {"ms": 410}},
                "total": {"ticks": 530, "time": {"ms": 530}, "value": 530},
            },
            "memstats": {
                "gc_next": 28_000_000,
                "memory_alloc": 19_000_000,
                "memory_sys": 61_000_000,
                "memory_total": 3_400_000_000,
                "rss": rss,
            },
            "runtime": {"goroutines": 42},
            "info": {"name": "filebeat", "ephemeral_id": "f3c1"},
        },
        "libbeat": {
            "output": {
                "type": "elasticsearch",
                "events": {"acked": published, "active": 0, "batches": 3, "failed": 0, "total": published},
            },
            "pipeline": {
                "events": {"active": 0, "dropped": 0, "failed": 0, "filtered": 2, "published": published, "retry": 0, "total": published + 2},
                "queue": {"acked": published, "max_events": 3200, "filled": {"events": 8, "pct": filled_pct}},
            },
        },
    }


@pytest.fixture
def beat_stats() -> dict:
    """A single Beat stats document."""
    return make_stats()


@pytest.fixture
def write_archive(tmp_path):
    """Write raw lines to an archive file and return its path."""

    def _write(lines: list, name: str = "capture.ndjson"):
        path = tmp_path / name
        with open(path, "w", encoding="utf-8") as f:
            for line in lines:
                f.write((line if isinstance(line, str) else json.dumps(line)) + "\n")
        return path

    return _write


@pytest.fixture
def stats_factory():
    """Build Beat stats documents with chosen values."""
    return make_stats
