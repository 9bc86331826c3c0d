"""Tests for dot-notation path resolution."""

import copy
import json
import math

import pytest

from beatperf.models import MetricPath, Snapshot
from beatperf.resolver import flatten, is_plottable, resolve, resolve_leaves

HUGE_INT = int("9" * 400)


def nested(val_l3: int, val_l2: int) -> dict:
    return {"root": {"l1": {"l2": {"l3": {"metric": val_l3}, "metric": val_l2}}}}


class TestResolve:
    """Tests for resolve()."""

    def test_nested_key(self):
        """Test a deeply nested number resolves."""
        assert resolve(nested(42, 0), "root.l1.l2.l3.metric") == 42

    def test_accepts_snapshot_and_path(self):
        """Test Snapshot and MetricPath inputs work like dicts and strings."""
        snapshot = Snapshot(timestamp=0.0, document=nested(42, 21))
        assert resolve(snapshot, MetricPath.parse("root.l1.l2.metric")) == 21

    def test_float_value(self, beat_stats):
        """Test floating point values resolve unchanged."""
        assert resolve(beat_stats, "libbeat.pipeline.queue.filled.pct") == 0.25

    def test_missing_key(self, beat_stats):
        """Test an absent key resolves to None."""
        assert resolve(beat_stats, "beat.memstats.heap") is None

    def test_missing_prefix(self, beat_stats):
        """Test a metric whose whole subtree has not appeared yet is absent."""
        assert resolve(beat_stats, "processor.add_session_metadata.processdb.processes_gauge") is None

    def test_scalar_in_the_middle(self, beat_stats):
        """Test descending into a scalar is absent, not an error."""
        assert resolve(beat_stats, "libbeat.output.type.events") is None

    def test_object_on_array(self):
        """Test an object-style segment on an array is absent."""
        document = {"output": [{"events": {"acked": 5}}]}
        assert resolve(document, "output.events.acked") is None

    def test_array_index(self):
        """Test a numeric segment indexes into an array."""
        document = {"output": [{"events": {"acked": 5}}, {"events": {"acked": 7}}]}
        assert resolve(document, "output.1.events.acked") == 7

    @pytest.mark.parametrize("segment", ["2", "-1", "01x", "1.5"])
    def test_bad_array_index(self, segment):
        """Test out-of-range and non-index segments on arrays are absent."""
        document = {"values": [1, 2]}
        assert resolve(document, f"values.{segment}") is None

    def test_numeric_key_on_object(self):
        """Test a numeric-looking segment is still a key lookup on objects."""
        assert resolve({"queues": {"0": {"size": 3}}}, "queues.0.size") == 3

    @pytest.mark.parametrize("terminal", ["100", True, False, None, {"a": 1}, [1, 2]])
    def test_non_numeric_terminal(self, terminal):
        """Test strings, booleans, null and containers are not plottable."""
        assert resolve({"metric": terminal}, "metric") is None

    @pytest.mark.parametrize("terminal", [math.nan, math.inf, -math.inf])
    def test_non_finite_terminal(self, terminal):
        """Test NaN and infinities are not plottable."""
        assert resolve({"metric": terminal}, "metric") is None

    def test_integer_beyond_float_range(self):
        """Test an integer too large for a float is absent and does not affect siblings."""
        document = json.loads('{"a": ' + "9" * 400 + ', "b": 1}')
        assert resolve(document, "a") is None
        assert resolve(document, "b") == 1
        assert not is_plottable(HUGE_INT)

    def test_zero_is_present(self):
        """Test zero is a value, not absence."""
        assert resolve({"metric": 0}, "metric") == 0

    def test_is_pure(self, beat_stats):
        """Test repeated resolution gives the same answer and leaves the document alone."""
        before = copy.deepcopy(beat_stats)
        results = {resolve(beat_stats, "beat.memstats.rss") for _ in range(5)}
        assert results == {52_000_000}
        assert beat_stats == before

    def test_never_raises_on_odd_documents(self):
        """Test resolution over assorted shapes never raises."""
        documents = [{}, {"a": None}, {"a": []}, {"a": "text"}, {"a": {"b": [None, {"c": True}]}}]
        for document in documents:
            assert resolve(document, "a.b.1.c") is None


class TestFlatten:
    """Tests for flatten()."""

    def test_flatten_nested(self):
        """Test numeric leaves are found in document order."""
        assert list(flatten(nested(42, 45))) == [
            ("root.l1.l2.l3.metric", 42),
            ("root.l1.l2.metric", 45),
        ]

    def test_flatten_skips_non_numeric(self, beat_stats):
        """Test strings and booleans are not listed."""
        paths = dict(flatten(beat_stats))
        assert "beat.info.name" not in paths
        assert "libbeat.output.type" not in paths
        assert paths["beat.memstats.rss"] == 52_000_000

    def test_flatten_arrays(self):
        """Test array elements are listed by index."""
        assert list(flatten({"a": [1, {"b": 2}]})) == [("a.0", 1), ("a.1.b", 2)]

    def test_flattened_paths_resolve(self, beat_stats):
        """Test every listed path resolves back to its value."""
        for path, value in flatten(beat_stats):
            assert resolve(beat_stats, path) == value

    def test_flatten_skips_dotted_keys(self):
        """Test keys that cannot be written in dot notation are skipped."""
        assert list(flatten({"a.b": 1, "c": 2})) == [("c", 2)]

    def test_flatten_skips_huge_integers(self):
        """Test integers beyond float range are not listed."""
        assert list(flatten({"a": HUGE_INT, "b": 2})) == [("b", 2)]

    def test_flatten_deep_nesting(self):
        """Test nesting deeper than the recursion limit is still walked."""
        document: dict = {"metric": 1}
        for _ in range(5_000):
            document = {"n": document}
        [(path, value)] = list(flatten(document))
        assert path == ".".join(["n"] * 5_000 + ["metric"])
        assert value == 1


class TestResolveLeaves:
    """Tests for resolve_leaves()."""

    def test_number_yields_itself(self):
        """Test a path ending on a number yields one value under its own path."""
        assert list(resolve_leaves(nested(42, 45), "root.l1.l2.metric")) == [("root.l1.l2.metric", 45)]

    def test_object_yields_every_leaf(self):
        """Test a path ending on an object yields each numeric leaf below it."""
        assert list(resolve_leaves(nested(42, 45), "root.l1.l2")) == [
            ("root.l1.l2.l3.metric", 42),
            ("root.l1.l2.metric", 45),
        ]

    def test_runtime_group(self, beat_stats):
        """Test a whole section of a stats document expands to its counters."""
        assert list(resolve_leaves(beat_stats, ".beat.runtime")) == [("beat.runtime.goroutines", 42)]

    def test_skips_non_numeric_leaves(self, beat_stats):
        """Test strings under an expanded object are left out."""
        assert list(resolve_leaves(beat_stats, "beat.info")) == []

    @pytest.mark.parametrize("path", ["beat.nope", "beat.info.name", "libbeat.output.type.x"])
    def test_absent_or_unplottable(self, beat_stats, path):
        """Test absent paths and scalar non-numbers yield nothing."""
        assert list(resolve_leaves(beat_stats, path)) == []

    def test_array_terminal_is_not_expanded(self):
        """Test only objects are expanded."""
        assert list(resolve_leaves({"a": [1, 2]}, "a")) == []
