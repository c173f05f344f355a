"""Static analysis of the plugin dependency graph."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import StrEnum


class _Mark(StrEnum):
    UNVISITED = "unvisited"
    IN_PROGRESS = "in_progress"
    DONE = "done"


def find_cycle(graph: Mapping[str, Iterable[str]]) -> list[str] | None:
    """Return the first dependency cycle found, or None if the graph is acyclic.

    Depth-first search with three marks. Reaching a node that is still in
    progress closes a cycle; the result starts and ends with that node, e.g.
    ``["a", "b", "a"]``. Edges to nodes absent from ``graph`` are ignored.
    """
    marks: dict[str, _Mark] = {node: _Mark.UNVISITED for node in graph}
    path: list[str] = []

    def visit(node: str) -> list[str] | None:
        marks[node] = _Mark.IN_PROGRESS
        path.append(node)
        for successor in graph[node]:
            mark = marks.get(successor)
            if mark is None:
                continue
            if mark is _Mark.IN_PROGRESS:
                return path[path.index(successor) :] + [successor]
            if mark is _Mark.UNVISITED:
                cycle = visit(successor)
                if cycle:
                    return cycle
        path.pop()
        marks[node] = _Mark.DONE
        return None

    for node in graph:
        if marks[node] is _Mark.UNVISITED:
            cycle = visit(node)
            if cycle:
                return cycle
    return None
