"""Read-only analyses over a dependency graph."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass

from record_catalog.builder import GraphBuilder
from record_catalog.graph import DependencyGraph, GraphStats, Node
from record_catalog.record import Record
from record_catalog.types import RecordType


@dataclass(frozen=True)
class DependencyStats:
    """Reference figures for a single record."""

    record: Record
    reference_count: int
    dependency_count: int
    is_orphan: bool

    @property
    def record_name(self) -> str:
        return self.record.name if self.record is not None else ""

    @property
    def record_type(self) -> str:
        return self.record.type_name if self.record is not None else ""

    @property
    def record_key(self) -> str:
        return self.record.key if self.record is not None else ""


def shortest_path(graph: DependencyGraph, from_record: Record | None, to_record: Record | None) -> list[Node] | None:
    """Find the shortest chain of references from one record to another.

    Breadth-first along dependency edges, visiting neighbours in the order
    the references were recorded.

    Returns:
        The nodes from ``from_record`` to ``to_record`` inclusive, ``[from]``
        when both are the same record, or None when either record is not in
        the graph or ``to_record`` is unreachable.
    """
    start = graph.get_node(from_record)
    goal = graph.get_node(to_record)
    if start is None or goal is None:
        return None
    if start.index == goal.index:
        return [start]

    parents: dict[int, int] = {}
    visited: set[int] = {start.index}
    queue: deque[int] = deque([start.index])

    while queue:
        current = queue.popleft()
        for neighbor in graph.node_at(current).dependencies:
            if neighbor in visited:
                continue
            visited.add(neighbor)
            parents[neighbor] = current
            if neighbor == goal.index:
                path = [neighbor]
                while path[-1] != start.index:
                    path.append(parents[path[-1]])
                path.reverse()
                return [graph.node_at(i) for i in path]
            queue.append(neighbor)

    return None


def _type_names(excluded_types: Iterable[RecordType | str] | None) -> set[str]:
    names: set[str] = set()
    for t in excluded_types or ():
        names.add(t.name if isinstance(t, RecordType) else str(t))
    return names


def find_orphans(graph: DependencyGraph, excluded_types: Iterable[RecordType | str] | None = None) -> list[Record]:
    """Records that nothing references, minus those of the excluded types.

    Exclusion matches the record's own type name exactly; subtypes of an
    excluded type are still reported.
    """
    excluded = _type_names(excluded_types)
    return [
        node.record
        for node in graph.orphan_nodes()
        if node.record is not None and node.record.type_name not in excluded
    ]


def stats_for(graph: DependencyGraph, record: Record | None) -> DependencyStats:
    """Reference figures for ``record``; a record outside the graph is an orphan with no edges."""
    node = graph.get_node(record)
    if node is None:
        return DependencyStats(record=record, reference_count=0, dependency_count=0, is_orphan=True)
    return DependencyStats(
        record=record,
        reference_count=node.reference_count,
        dependency_count=node.dependency_count,
        is_orphan=node.is_orphan,
    )


def is_expected_unreferenced(record_type: RecordType | str | None, suffixes: Iterable[str]) -> bool:
    """Return whether a type is a container type that nothing is expected to reference."""
    if record_type is None:
        return False
    name = record_type.name if isinstance(record_type, RecordType) else record_type
    return any(name.endswith(suffix) for suffix in suffixes)


class DependencyAnalysis:
    """Graph analyses over the builder's cached graph.

    Every call reads the graph through :meth:`GraphBuilder.get_cached_graph`,
    so results are at most one validity window old.
    """

    def __init__(self, builder: GraphBuilder) -> None:
        self.builder = builder

    @property
    def graph(self) -> DependencyGraph:
        return self.builder.get_cached_graph()

    def find_orphans(self, excluded_types: Iterable[RecordType | str] | None = None) -> list[Record]:
        return find_orphans(self.graph, excluded_types)

    def find_most_referenced(self, top_n: int = 10) -> list[Node]:
        return self.graph.most_referenced(top_n)

    def find_most_dependencies(self, top_n: int = 10) -> list[Node]:
        return self.graph.most_dependencies(top_n)

    def get_referencers(self, record: Record | None) -> list[Record]:
        """Records that reference ``record``."""
        return self.graph.dependents_of(record)

    def get_dependencies(self, record: Record | None) -> list[Record]:
        """Records that ``record`` references."""
        return self.graph.dependencies_of(record)

    def find_shortest_path(self, from_record: Record | None, to_record: Record | None) -> list[Record] | None:
        path = shortest_path(self.graph, from_record, to_record)
        if path is None:
            return None
        return [node.record for node in path]

    def get_stats(self, record: Record | None) -> DependencyStats:
        return stats_for(self.graph, record)

    def graph_stats(self) -> GraphStats:
        return self.graph.stats()

    def invalidate_cache(self) -> None:
        self.builder.invalidate_cache()
