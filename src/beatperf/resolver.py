"""Dot-notation path resolution over snapshot documents."""

import math
from collections.abc import Iterator
from typing import Any

from beatperf.models import MetricPath, NodeKind, Snapshot, node_kind

# Marks a path that leads nowhere; None is a legitimate JSON value
_ABSENT = object()


def _as_path(path: MetricPath | str) -> MetricPath:
    if isinstance(path, MetricPath):
        return path
    return MetricPath.parse(path)


def _array_index(segment: str, length: int) -> int | None:
    """Return the index named by a segment, or None if it is not a valid index."""
    if not segment.isdecimal():
        return None
    index = int(segment)
    return index if index < length else None


def _walk(snapshot: Snapshot | dict[str, Any], path: MetricPath) -> Any:
    node: Any = snapshot.document if isinstance(snapshot, Snapshot) else snapshot
    for segment in path.segments:
        kind = node_kind(node)
        if kind is NodeKind.OBJECT:
            if segment not in node:
                return _ABSENT
            node = node[segment]
        elif kind is NodeKind.ARRAY:
            index = _array_index(segment, len(node))
            if index is None:
                return _ABSENT
            node = node[index]
        else:
            return _ABSENT
    return node


def is_plottable(node: Any) -> bool:
    """Check whether a node is a finite number (booleans excluded)."""
    if node_kind(node) is not NodeKind.NUMBER:
        return False
    try:
        return math.isfinite(node)
    except OverflowError:
        # An integer beyond float range can be neither scaled nor drawn
        return False


def resolve(snapshot: Snapshot | dict[str, Any], path: MetricPath | str) -> float | int | None:
    """
    Resolve a metric path against a snapshot.

    Args:
        snapshot: A Snapshot or a bare decoded document.
        path: A MetricPath or a dot-notation string.

    Returns:
        The numeric value at the path, or None if the path is absent or does
        not end on a finite number.
    """
    node = _walk(snapshot, _as_path(path))
    return node if is_plottable(node) else None


def resolve_leaves(
    snapshot: Snapshot | dict[str, Any], path: MetricPath | str
) -> Iterator[tuple[str, float | int]]:
    """
    Resolve a path that may name a whole subtree.

    A path ending on a number yields that one value under the path itself. A
    path ending on an object yields every numeric leaf below it, keyed by the
    full dot path. Anything else yields nothing.
    """
    path = _as_path(path)
    node = _walk(snapshot, path)
    if node is _ABSENT:
        return
    if node_kind(node) is NodeKind.OBJECT:
        yield from flatten(node, str(path))
    elif is_plottable(node):
        yield str(path), node


def flatten(document: Any, prefix: str = "") -> Iterator[tuple[str, float | int]]:
    """
    Yield every numeric leaf of a document as ``(dot_path, value)``.

    Objects and arrays are both descended, in document order. Every yielded
    path resolves back to the yielded value. Nesting depth is not limited by
    the interpreter's recursion limit.
    """
    stack: list[tuple[str, Any]] = [(prefix, document)]
    while stack:
        path, node = stack.pop()
        kind = node_kind(node)
        if kind is NodeKind.OBJECT:
            children = [(str(key), value) for key, value in node.items()]
        elif kind is NodeKind.ARRAY:
            children = [(str(index), value) for index, value in enumerate(node)]
        else:
            if path and is_plottable(node):
                yield path, node
            continue

        for key, value in reversed(children):
            # Keys containing a dot can never be addressed in dot notation
            if not key or "." in key:
                continue
            stack.append((f"{path}.{key}" if path else key, value))
