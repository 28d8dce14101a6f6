"""Tests for tracker.workflow.graph module."""

import pytest

from tracker.lib.errors import CycleDetectedError
from tracker.workflow.graph import DependencyGraph


class TestFindCycle:
    """Cycle detection over dependency edges."""

    def test_acyclic(self):
        graph = DependencyGraph(edges={"a": [], "b": ["a"], "c": ["a", "b"]})
        assert graph.find_cycle() is None
        graph.check_acyclic()

    def test_two_node_cycle(self):
        graph = DependencyGraph(edges={"a": ["b"], "b": ["a"]})
        assert graph.find_cycle() == ["a", "b", "a"]

    def test_self_loop(self):
        assert DependencyGraph(edges={"a": ["a"]}).find_cycle() == ["a", "a"]

    def test_longer_cycle_behind_acyclic_prefix(self):
        graph = DependencyGraph(edges={"x": ["a"], "a": ["b"], "b": ["c"], "c": ["a"]})
        assert graph.find_cycle() == ["a", "b", "c", "a"]

    def test_forward_references_ignored(self):
        graph = DependencyGraph(edges={"a": ["zzz"], "b": ["a", "yyy"]})
        assert graph.find_cycle() is None

    def test_check_acyclic_raises_with_cycle(self):
        graph = DependencyGraph(edges={"a": ["b"], "b": ["a"]})
        with pytest.raises(CycleDetectedError) as exc_info:
            graph.check_acyclic()
        assert exc_info.value.cycle == ["a", "b", "a"]
        assert str(exc_info.value) == "Dependency cycle detected: a -> b -> a"


class TestGraphQueries:
    def test_missing(self):
        graph = DependencyGraph(edges={"a": ["zzz"], "b": ["a"]})
        assert graph.missing() == {"a": ["zzz"]}

    def test_with_dependencies_copies(self):
        graph = DependencyGraph(edges={"a": [], "b": ["a"]})
        changed = graph.with_dependencies("a", ["b"])
        assert graph.edges["a"] == []
        assert changed.find_cycle() == ["a", "b", "a"]

    def test_from_features(self, make_feature):
        graph = DependencyGraph.from_features([
            make_feature("feature-001"),
            make_feature("feature-002", dependencies=["feature-001"]),
        ])
        assert graph.edges == {"feature-001": [], "feature-002": ["feature-001"]}
