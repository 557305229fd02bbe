"""Dependency graph construction with a time-boxed cache."""

from __future__ import annotations

import threading
import time
from collections.abc import Iterable, Mapping
from typing import Any, Callable, Protocol

import structlog

from record_catalog.config import settings
from record_catalog.graph import DependencyGraph
from record_catalog.record import Record

logger = structlog.get_logger(__name__)


class RecordSource(Protocol):
    """Where the catalog gets its records from."""

    def list_all_records(self) -> list[Record]:
        """Return every record currently known to the source."""
        ...

    def load_by_identity(self, key: str) -> Record | None:
        """Return the record with ``key``, or None."""
        ...


class ReferenceExtractor(Protocol):
    """Finds the records a record references."""

    def references_of(self, record: Record) -> Iterable[Record | None]:
        ...


class FieldReferenceExtractor:
    """Collects the records referenced from a record's field values.

    Lists, tuples, sets and mappings are searched recursively. Referenced
    records are not followed further; each record reports its own references.
    """

    def references_of(self, record: Record) -> list[Record]:
        found: list[Record] = []
        seen_keys: set[str] = set()
        for value in record.values.values():
            self._collect(value, found, seen_keys, set())
        return found

    def _collect(self, value: Any, found: list[Record], seen_keys: set[str], visiting: set[int]) -> None:
        if value is None:
            return
        if isinstance(value, Record):
            if value.key not in seen_keys:
                seen_keys.add(value.key)
                found.append(value)
            return
        if isinstance(value, (str, bytes)):
            return

        if isinstance(value, Mapping):
            children: Iterable[Any] = value.values()
        elif isinstance(value, (list, tuple, set, frozenset)):
            children = value
        else:
            return

        # Self-containing containers
        if id(value) in visiting:
            return
        visiting.add(id(value))
        for child in children:
            self._collect(child, found, seen_keys, visiting)
        visiting.discard(id(value))


def build_graph(records: Iterable[Record] | None, extractor: ReferenceExtractor) -> DependencyGraph:
    """Build a frozen dependency graph from a record set.

    Every record becomes a node first, so records without references still
    appear. Then each record's references become edges. A record whose
    references cannot be extracted contributes no edges.

    Args:
        records: The records to include.
        extractor: Source of each record's outgoing references.

    Returns:
        The frozen graph.

    Raises:
        ValueError: If ``records`` is None.
    """
    if records is None:
        raise ValueError("records must not be None")

    records = [r for r in records if r is not None]
    graph = DependencyGraph()

    for record in records:
        graph.add_node(record)

    failures = 0
    for record in records:
        try:
            references = list(extractor.references_of(record))
        except Exception as e:
            failures += 1
            logger.warning("reference_extraction_failed", record=record.key, error=str(e))
            continue

        for target in references:
            if target is None or target.key == record.key:
                continue
            graph.add_dependency(record, target)

    logger.info(
        "graph_built",
        nodes=graph.node_count,
        edges=graph.edge_count,
        extraction_failures=failures,
    )
    return graph.freeze()


class GraphBuilder:
    """Owns the cached dependency graph for one record source.

    The cached graph is reused for ``validity_seconds`` after it was built;
    after that (or after :meth:`invalidate_cache`) the next read rebuilds it.
    Rebuilds are serialised by a lock.
    """

    def __init__(
        self,
        source: RecordSource,
        extractor: ReferenceExtractor | None = None,
        validity_seconds: float | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.source = source
        self.extractor = extractor or FieldReferenceExtractor()
        if validity_seconds is None:
            validity_seconds = settings.cache_validity_seconds
        self.validity_seconds = validity_seconds
        self._clock = clock or time.monotonic
        self._lock = threading.Lock()
        self._graph: DependencyGraph | None = None
        self._built_at: float | None = None
        self._generation = 0

    @property
    def built_at(self) -> float | None:
        """Clock reading of the last build, or None if nothing is cached."""
        return self._built_at

    @property
    def generation(self) -> int:
        """Number of builds performed so far."""
        return self._generation

    def is_cache_valid(self) -> bool:
        with self._lock:
            return self._is_valid_locked()

    def _is_valid_locked(self) -> bool:
        if self._graph is None or self._built_at is None:
            return False
        return (self._clock() - self._built_at) < self.validity_seconds

    def build(self, use_cache: bool = True) -> DependencyGraph:
        """Return the dependency graph, rebuilding it unless a valid one is cached."""
        with self._lock:
            if use_cache and self._is_valid_locked():
                logger.debug("graph_cache_hit", generation=self._generation)
                return self._graph

            logger.debug("graph_build_started", generation=self._generation + 1)
            graph = build_graph(self.source.list_all_records(), self.extractor)
            self._graph = graph
            self._built_at = self._clock()
            self._generation += 1
            return graph

    def get_cached_graph(self) -> DependencyGraph:
        """Return the cached graph if still fresh, otherwise rebuild synchronously."""
        return self.build(use_cache=True)

    def invalidate_cache(self) -> None:
        """Drop the cached graph; the next read rebuilds it."""
        with self._lock:
            if self._graph is not None:
                logger.debug("graph_cache_invalidated", generation=self._generation)
            self._graph = None
            self._built_at = None
