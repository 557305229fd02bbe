"""Tests for graph construction and the graph cache."""

import threading

import pytest
from structlog.testing import capture_logs

from record_catalog.builder import FieldReferenceExtractor, GraphBuilder, build_graph
from record_catalog.catalog import InMemoryRecordSource
from record_catalog.record import Record
from record_catalog.types import RecordType

ASSET = RecordType(name="Asset")


class MapExtractor:
    """Extractor driven by an explicit key -> referenced records map."""

    def __init__(self, refs: dict[str, list], fail_on: str | None = None) -> None:
        self.refs = refs
        self.fail_on = fail_on
        self.calls = 0

    def references_of(self, record: Record) -> list:
        self.calls += 1
        if record.key == self.fail_on:
            raise RuntimeError("unreadable")
        return self.refs.get(record.key, [])


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestBuildGraph:
    """Tests for build_graph."""

    def test_null_records_rejected(self):
        with pytest.raises(ValueError):
            build_graph(None, MapExtractor({}))

    def test_every_record_becomes_a_node(self):
        """Test that records without references still appear."""
        a, b, c = Record("a", ASSET), Record("b", ASSET), Record("c", ASSET)
        graph = build_graph([a, None, b, c], MapExtractor({"a": [b]}))
        assert graph.node_count == 3
        assert graph.edge_count == 1
        assert graph.frozen

    def test_self_and_null_references_skipped(self):
        a, b = Record("a", ASSET), Record("b", ASSET)
        graph = build_graph([a, b], MapExtractor({"a": [a, None, b, b]}))
        assert graph.edge_count == 1
        assert graph.dependencies_of(a) == [b]

    def test_reference_outside_record_set(self):
        """Test that a referenced record not in the set is still added as a node."""
        a, outside = Record("a", ASSET), Record("outside", ASSET)
        graph = build_graph([a], MapExtractor({"a": [outside]}))
        assert "outside" in graph
        assert graph.dependents_of(outside) == [a]

    def test_extraction_failure_is_logged_and_skipped(self):
        """Test that one unreadable record does not abort the build."""
        a, b, c = Record("a", ASSET), Record("b", ASSET), Record("c", ASSET)
        extractor = MapExtractor({"a": [c], "b": [c]}, fail_on="b")
        with capture_logs() as logs:
            graph = build_graph([a, b, c], extractor)

        assert graph.node_count == 3
        assert graph.dependents_of(c) == [a]
        warnings = [e for e in logs if e["event"] == "reference_extraction_failed"]
        assert len(warnings) == 1
        assert warnings[0]["record"] == "b"
        assert warnings[0]["log_level"] == "warning"
        built = [e for e in logs if e["event"] == "graph_built"]
        assert built[0]["extraction_failures"] == 1


class TestFieldReferenceExtractor:
    """Tests for FieldReferenceExtractor."""

    def test_fixture_references(self, records: dict[str, Record]):
        extractor = FieldReferenceExtractor()
        assert [r.key for r in extractor.references_of(records["enemies/goblin"])] == ["items/sword"]
        assert [r.key for r in extractor.references_of(records["db/loot"])] == ["items/sword", "items/shield"]
        assert extractor.references_of(records["notes/readme"]) == []

    def test_nested_and_deduplicated(self):
        a, b = Record("a", ASSET), Record("b", ASSET)
        holder = Record("h", ASSET, values={
            "first": a,
            "nested": {"inner": [a, (b,)], "text": "a"},
        })
        assert FieldReferenceExtractor().references_of(holder) == [a, b]

    def test_self_containing_list(self):
        a = Record("a", ASSET)
        loop: list = [a]
        loop.append(loop)
        holder = Record("h", ASSET, values={"loop": loop})
        assert FieldReferenceExtractor().references_of(holder) == [a]


class TestGraphBuilder:
    """Tests for GraphBuilder caching."""

    @pytest.fixture
    def setup(self, source: InMemoryRecordSource):
        clock = FakeClock()
        builder = GraphBuilder(source, validity_seconds=30, clock=clock)
        return builder, clock

    def test_fixture_graph(self, setup):
        builder, _ = setup
        graph = builder.build()
        assert graph.node_count == 6
        assert graph.edge_count == 4
        assert sorted(n.key for n in graph.orphan_nodes()) == [
            "db/loot", "enemies/dragon", "enemies/goblin", "notes/readme",
        ]

    def test_cache_reused_within_window(self, setup):
        builder, clock = setup
        first = builder.build()
        clock.now += 29.9
        assert builder.is_cache_valid()
        assert builder.get_cached_graph() is first
        assert builder.generation == 1

    def test_cache_expires(self, setup):
        builder, clock = setup
        first = builder.build()
        clock.now += 30
        assert not builder.is_cache_valid()
        second = builder.get_cached_graph()
        assert second is not first
        assert builder.generation == 2
        assert builder.built_at == clock.now

    def test_build_without_cache(self, setup):
        builder, _ = setup
        first = builder.build()
        assert builder.build(use_cache=False) is not first

    def test_invalidate(self, setup, source: InMemoryRecordSource):
        """Test that invalidation makes the next read see new records."""
        builder, _ = setup
        builder.build()
        source.add(Record("extra", ASSET))
        assert builder.get_cached_graph().node_count == 6
        builder.invalidate_cache()
        assert not builder.is_cache_valid()
        assert builder.built_at is None
        assert builder.get_cached_graph().node_count == 7

    def test_nothing_cached_initially(self, setup):
        builder, _ = setup
        assert not builder.is_cache_valid()
        assert builder.generation == 0

    def test_concurrent_reads_build_once(self, source: InMemoryRecordSource):
        """Test that simultaneous readers share one build."""
        extractor = MapExtractor({})
        builder = GraphBuilder(source, extractor=extractor, validity_seconds=60)
        results = []

        def read():
            results.append(builder.get_cached_graph())

        threads = [threading.Thread(target=read) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert builder.generation == 1
        assert all(g is results[0] for g in results)
        assert extractor.calls == len(source)
