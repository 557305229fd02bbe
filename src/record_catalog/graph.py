"""Dependency graph over records.

Nodes live in a dense list (the arena) and refer to each other by index, so
the graph holds no reference cycles between node objects. Each node keeps two
ordered adjacency lists: ``dependencies`` (records it references) and
``dependents`` (records referencing it). Both directions are updated together,
so an edge A -> B always appears in both lists or in neither.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

from record_catalog.record import Record


@dataclass(eq=False)
class Node:
    """A record's position in the dependency graph."""

    key: str
    record: Record
    index: int
    dependencies: list[int] = field(default_factory=list)
    dependents: list[int] = field(default_factory=list)

    @property
    def dependency_count(self) -> int:
        return len(self.dependencies)

    @property
    def reference_count(self) -> int:
        return len(self.dependents)

    @property
    def is_orphan(self) -> bool:
        """A node nothing references."""
        return not self.dependents

    def display_name(self) -> str:
        if self.record is None:
            return self.key
        return f"{self.record.name} ({self.record.type_name})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Node):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __repr__(self) -> str:
        return f"Node({self.key!r}, deps={self.dependency_count}, refs={self.reference_count})"


@dataclass(frozen=True)
class GraphStats:
    """Aggregate figures for a whole graph."""

    total_nodes: int
    total_edges: int
    orphan_count: int
    average_dependencies: float

    @property
    def orphan_percentage(self) -> float:
        if self.total_nodes == 0:
            return 0.0
        return self.orphan_count / self.total_nodes * 100.0

    def __str__(self) -> str:
        return (
            f"Nodes: {self.total_nodes}, Edges: {self.total_edges}, "
            f"Orphans: {self.orphan_count} ({self.orphan_percentage:.1f}%), "
            f"Avg deps: {self.average_dependencies:.2f}"
        )


class DependencyGraph:
    """Directed graph of record references.

    Once :meth:`freeze` has been called the graph is a read-only snapshot and
    any mutation raises ``RuntimeError``.
    """

    def __init__(self) -> None:
        self._nodes: list[Node] = []
        self._index: dict[str, int] = {}
        self._edges: set[tuple[int, int]] = set()
        self._frozen = False

    # -- mutation ---------------------------------------------------------

    def _check_mutable(self) -> None:
        if self._frozen:
            raise RuntimeError("Dependency graph is frozen")

    def add_node(self, record: Record | None) -> Node | None:
        """Return the node for ``record``, creating it on first sight.

        Returns None for a missing record or a record without a key.
        """
        if record is None or not record.key:
            return None

        idx = self._index.get(record.key)
        if idx is not None:
            return self._nodes[idx]

        self._check_mutable()
        node = Node(key=record.key, record=record, index=len(self._nodes))
        self._nodes.append(node)
        self._index[record.key] = node.index
        return node

    def add_dependency(self, from_record: Record | None, to_record: Record | None) -> bool:
        """Record that ``from_record`` references ``to_record``.

        Both nodes are created if needed. Adding an existing edge again is a
        no-op. Returns False if either endpoint has no identity.
        """
        if from_record is None or to_record is None or not from_record.key or not to_record.key:
            return False
        self._check_mutable()

        source = self.add_node(from_record)
        target = self.add_node(to_record)
        edge = (source.index, target.index)
        if edge not in self._edges:
            self._edges.add(edge)
            source.dependencies.append(target.index)
            target.dependents.append(source.index)
        return True

    def clear(self) -> None:
        self._check_mutable()
        self._nodes.clear()
        self._index.clear()
        self._edges.clear()

    def freeze(self) -> DependencyGraph:
        """Make the graph read-only. Returns the graph for chaining."""
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    # -- reads ------------------------------------------------------------

    def get_node(self, record: Record | None) -> Node | None:
        if record is None:
            return None
        return self.get_node_by_key(record.key)

    def get_node_by_key(self, key: str) -> Node | None:
        idx = self._index.get(key)
        return None if idx is None else self._nodes[idx]

    def node_at(self, index: int) -> Node:
        return self._nodes[index]

    @property
    def nodes(self) -> list[Node]:
        """All nodes in insertion order."""
        return list(self._nodes)

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        return len(self._edges)

    def edges(self) -> Iterator[tuple[Node, Node]]:
        """Yield every (source, target) edge, grouped by source node."""
        for node in self._nodes:
            for idx in node.dependencies:
                yield node, self._nodes[idx]

    def dependencies_of(self, record: Record | None) -> list[Record]:
        """Records that ``record`` references; empty if it is not in the graph."""
        node = self.get_node(record)
        if node is None:
            return []
        return [self._nodes[i].record for i in node.dependencies]

    def dependents_of(self, record: Record | None) -> list[Record]:
        """Records that reference ``record``; empty if it is not in the graph."""
        node = self.get_node(record)
        if node is None:
            return []
        return [self._nodes[i].record for i in node.dependents]

    def orphan_nodes(self) -> list[Node]:
        return [n for n in self._nodes if n.is_orphan]

    def most_referenced(self, top_n: int = 10) -> list[Node]:
        """Nodes with the most dependents, ties broken by key."""
        ranked = sorted(self._nodes, key=lambda n: (-n.reference_count, n.key))
        return ranked[:max(top_n, 0)]

    def most_dependencies(self, top_n: int = 10) -> list[Node]:
        """Nodes with the most outgoing references, ties broken by key."""
        ranked = sorted(self._nodes, key=lambda n: (-n.dependency_count, n.key))
        return ranked[:max(top_n, 0)]

    def stats(self) -> GraphStats:
        total = len(self._nodes)
        return GraphStats(
            total_nodes=total,
            total_edges=len(self._edges),
            orphan_count=sum(1 for n in self._nodes if n.is_orphan),
            average_dependencies=(len(self._edges) / total) if total else 0.0,
        )

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, record: object) -> bool:
        if isinstance(record, Record):
            return record.key in self._index
        if isinstance(record, str):
            return record in self._index
        return False

    def __repr__(self) -> str:
        return f"DependencyGraph(nodes={self.node_count}, edges={self.edge_count}, frozen={self._frozen})"
