"""Tests for dependency cycle detection."""

from idp_engine.resolver.graph import find_cycle


def test_empty_graph() -> None:
    assert find_cycle({}) is None


def test_acyclic_diamond() -> None:
    graph = {"a": ["b", "c"], "b": ["d"], "c": ["d"], "d": []}
    assert find_cycle(graph) is None


def test_self_loop() -> None:
    assert find_cycle({"a": ["a"]}) == ["a", "a"]


def test_long_cycle_path() -> None:
    graph = {"a": ["b"], "b": ["c"], "c": ["a"], "d": ["a"]}
    assert find_cycle(graph) == ["a", "b", "c", "a"]


def test_cycle_not_including_start() -> None:
    graph = {"root": ["x"], "x": ["y"], "y": ["x"]}
    assert find_cycle(graph) == ["x", "y", "x"]


def test_unknown_successors_ignored() -> None:
    assert find_cycle({"a": ["ghost"], "b": ["a"]}) is None
