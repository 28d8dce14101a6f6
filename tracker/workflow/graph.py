"""
Explicit dependency graph over features.

Features store dependencies as flat id lists. This module turns them into an
adjacency map once per load/mutation so cycles are reported eagerly instead
of silently starving the scheduler. Dependencies on ids that do not exist yet
are kept as edges to unknown nodes; they are not errors.
"""

from dataclasses import dataclass
from typing import Iterable

from tracker.lib.errors import CycleDetectedError


@dataclass
class DependencyGraph:
    """feature id -> ids it depends on, in declaration order."""
    edges: dict[str, list[str]]

    @classmethod
    def from_features(cls, features: Iterable) -> "DependencyGraph":
        return cls(edges={f.id: list(f.dependencies) for f in features})

    def with_dependencies(self, feature_id: str, dependencies: list[str]) -> "DependencyGraph":
        """Copy of the graph with one node's edges replaced (or added)."""
        edges = dict(self.edges)
        edges[feature_id] = list(dependencies)
        return DependencyGraph(edges=edges)

    def missing(self) -> dict[str, list[str]]:
        """Features whose dependencies reference unknown ids."""
        result = {}
        for fid, deps in self.edges.items():
            unknown = [d for d in deps if d not in self.edges]
            if unknown:
                result[fid] = unknown
        return result

    def find_cycle(self) -> list[str] | None:
        """
        Return one dependency cycle as [a, b, ..., a], or None.

        Iterative DFS with white/grey/black colouring; nodes are visited in
        insertion order so the reported cycle is deterministic.
        """
        WHITE, GREY, BLACK = 0, 1, 2
        colour = {fid: WHITE for fid in self.edges}

        for root in self.edges:
            if colour[root] != WHITE:
                continue
            path = [root]
            stack = [iter(self.edges[root])]
            colour[root] = GREY

            while stack:
                advanced = False
                for dep in stack[-1]:
                    if dep not in colour:
                        continue  # forward reference, not a node yet
                    if colour[dep] == GREY:
                        start = path.index(dep)
                        return path[start:] + [dep]
                    if colour[dep] == WHITE:
                        colour[dep] = GREY
                        path.append(dep)
                        stack.append(iter(self.edges[dep]))
                        advanced = True
                        break
                if not advanced:
                    colour[path.pop()] = BLACK
                    stack.pop()
        return None

    def check_acyclic(self) -> None:
        """
        Raises:
            CycleDetectedError: if any cycle exists
        """
        cycle = self.find_cycle()
        if cycle:
            raise CycleDetectedError(cycle)
