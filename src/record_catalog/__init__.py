"""Record Catalog - predicate search and reference-graph analysis over typed records."""

from record_catalog.analytics import (
    DependencyAnalysis,
    DependencyStats,
    find_orphans,
    is_expected_unreferenced,
    shortest_path,
    stats_for,
)
from record_catalog.builder import (
    FieldReferenceExtractor,
    GraphBuilder,
    RecordSource,
    ReferenceExtractor,
    build_graph,
)
from record_catalog.catalog import (
    Catalog,
    InMemoryRecordSource,
    ScanResult,
    TypeNode,
    build_category_tree,
)
from record_catalog.compare import compare, matches_text, to_text
from record_catalog.fields import FieldAccessor, default_accessor
from record_catalog.graph import DependencyGraph, GraphStats, Node
from record_catalog.query import (
    Condition,
    ConditionGroup,
    LogicalOperator,
    Operator,
    QueryEngine,
)
from record_catalog.record import Record
from record_catalog.types import (
    Color,
    FieldDefinition,
    RecordType,
    TypeRegistry,
    ValueKind,
    Vector2,
    Vector3,
)

__version__ = "0.1.0"

__all__ = [
    "Catalog",
    "Color",
    "Condition",
    "ConditionGroup",
    "DependencyAnalysis",
    "DependencyGraph",
    "DependencyStats",
    "FieldAccessor",
    "FieldDefinition",
    "FieldReferenceExtractor",
    "GraphBuilder",
    "GraphStats",
    "InMemoryRecordSource",
    "LogicalOperator",
    "Node",
    "Operator",
    "QueryEngine",
    "Record",
    "RecordSource",
    "RecordType",
    "ReferenceExtractor",
    "ScanResult",
    "TypeNode",
    "TypeRegistry",
    "ValueKind",
    "Vector2",
    "Vector3",
    "build_category_tree",
    "build_graph",
    "compare",
    "default_accessor",
    "find_orphans",
    "is_expected_unreferenced",
    "matches_text",
    "shortest_path",
    "stats_for",
    "to_text",
]
