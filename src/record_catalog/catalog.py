"""The record catalog: scanning, categorisation and the services built on a scan."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

import structlog

from record_catalog.analytics import DependencyAnalysis, is_expected_unreferenced
from record_catalog.builder import GraphBuilder, RecordSource, ReferenceExtractor
from record_catalog.config import Settings
from record_catalog.config import settings as default_settings
from record_catalog.fields import FieldAccessor
from record_catalog.query import ConditionGroup, QueryEngine
from record_catalog.record import Record
from record_catalog.types import RecordType, TypeRegistry

logger = structlog.get_logger(__name__)

DEFAULT_CATEGORY = "Other"

# Checked in order; only the first matching suffix is removed
_DISPLAY_SUFFIXES = ("Definition", "Config", "ConfigSO", "SO", "Data", "Base")


def display_name_for(type_name: str) -> str:
    """Shorten a type name for display by dropping one common suffix."""
    for suffix in _DISPLAY_SUFFIXES:
        if type_name.endswith(suffix) and len(type_name) > len(suffix):
            return type_name[: -len(suffix)]
    return type_name


@dataclass(eq=False)
class TypeNode:
    """A node in the category tree: a category folder or a record type."""

    display_name: str
    record_type: RecordType | None = None
    children: list[TypeNode] = field(default_factory=list)
    records: list[Record] = field(default_factory=list)
    record_count: int = 0

    @classmethod
    def folder(cls, name: str) -> TypeNode:
        return cls(display_name=name)

    @classmethod
    def for_type(cls, record_type: RecordType, records: list[Record]) -> TypeNode:
        return cls(
            display_name=display_name_for(record_type.name),
            record_type=record_type,
            records=list(records),
            record_count=len(records),
        )

    @property
    def is_folder(self) -> bool:
        return self.record_type is None

    def add_child(self, child: TypeNode | None) -> None:
        if child is None:
            return
        self.children.append(child)
        self.update_record_count()

    def update_record_count(self) -> int:
        """Recompute the record count; folders sum their children."""
        if self.is_folder:
            self.record_count = sum(c.update_record_count() for c in self.children)
        else:
            self.record_count = len(self.records)
        return self.record_count

    def walk(self) -> Iterable[tuple[int, TypeNode]]:
        """Yield ``(depth, node)`` for this node and its descendants."""
        stack: list[tuple[int, TypeNode]] = [(0, self)]
        while stack:
            depth, node = stack.pop()
            yield depth, node
            for child in reversed(node.children):
                stack.append((depth + 1, child))


def build_category_tree(records_by_type: dict[str, list[Record]], types: dict[str, RecordType] | None = None) -> list[TypeNode]:
    """Group record types into category folders.

    A type's category comes from :attr:`RecordType.category`; types without one
    go to ``Other``. Folders are sorted by name, types within a folder by
    priority (highest first) then display name.

    Args:
        records_by_type: Records grouped by type name.
        types: Type objects by name. When omitted, each type is taken from its
            first record.
    """
    folders: dict[str, TypeNode] = {}

    for type_name, records in records_by_type.items():
        record_type = (types or {}).get(type_name)
        if record_type is None:
            if not records:
                continue
            record_type = records[0].record_type

        category = record_type.category or DEFAULT_CATEGORY
        folder = folders.get(category)
        if folder is None:
            folder = TypeNode.folder(category)
            folders[category] = folder
        folder.children.append(TypeNode.for_type(record_type, records))

    for folder in folders.values():
        folder.children.sort(key=lambda n: (-n.record_type.priority, n.display_name))
        folder.update_record_count()

    return sorted(folders.values(), key=lambda n: n.display_name)


@dataclass(frozen=True)
class ScanResult:
    """Snapshot of a record source, grouped by type and category."""

    records_by_type: dict[str, list[Record]]
    category_tree: list[TypeNode]
    scanned_at: datetime = field(default_factory=datetime.now)

    @property
    def total_record_count(self) -> int:
        return sum(len(v) for v in self.records_by_type.values())

    @property
    def total_type_count(self) -> int:
        return len(self.records_by_type)

    def records_of_type(self, type_name: str) -> list[Record]:
        """Records whose own type is ``type_name`` (subtypes excluded)."""
        return list(self.records_by_type.get(type_name, []))

    def find_by_name(self, name: str) -> Record | None:
        """First record with exactly this name, or None."""
        for records in self.records_by_type.values():
            for record in records:
                if record.name == name:
                    return record
        return None

    def types(self) -> list[str]:
        return list(self.records_by_type.keys())

    def all_records(self) -> list[Record]:
        return [r for records in self.records_by_type.values() for r in records]

    def categories(self) -> list[str]:
        return [node.display_name for node in self.category_tree]


class InMemoryRecordSource:
    """A record source backed by a plain list."""

    def __init__(self, records: Iterable[Record] | None = None) -> None:
        self._records: dict[str, Record] = {}
        for record in records or ():
            self.add(record)

    def add(self, record: Record) -> None:
        """Add a record, replacing any existing record with the same key."""
        if record is None or not record.key:
            raise ValueError("record must have a key")
        self._records[record.key] = record

    def remove(self, key: str) -> bool:
        return self._records.pop(key, None) is not None

    def list_all_records(self) -> list[Record]:
        return list(self._records.values())

    def load_by_identity(self, key: str) -> Record | None:
        return self._records.get(key)

    def __len__(self) -> int:
        return len(self._records)


class Catalog:
    """Entry point tying a record source to queries and dependency analysis.

    The catalog owns the graph builder, so each catalog has its own graph
    cache. :meth:`scan` re-reads the source and invalidates that cache.
    """

    def __init__(
        self,
        source: RecordSource,
        extractor: ReferenceExtractor | None = None,
        settings: Settings | None = None,
        registry: TypeRegistry | None = None,
    ) -> None:
        self.source = source
        self.settings = settings or default_settings
        self.registry = registry
        self.accessor = FieldAccessor(self.settings.reserved_field_names)
        self.builder = GraphBuilder(
            source,
            extractor=extractor,
            validity_seconds=self.settings.cache_validity_seconds,
        )
        self.query_engine = QueryEngine(self.accessor)
        self.analysis = DependencyAnalysis(self.builder)
        self._scan: ScanResult | None = None

    @property
    def last_scan(self) -> ScanResult | None:
        return self._scan

    def scan(self) -> ScanResult:
        """Read every record from the source and group it by type and category."""
        records_by_type: dict[str, list[Record]] = {}
        for record in self.source.list_all_records():
            if record is None:
                continue
            records_by_type.setdefault(record.type_name, []).append(record)

        types = {t.name: t for t in self.registry} if self.registry is not None else None
        result = ScanResult(
            records_by_type=records_by_type,
            category_tree=build_category_tree(records_by_type, types),
        )
        self._scan = result
        self.builder.invalidate_cache()
        logger.info("catalog_scanned", records=result.total_record_count, types=result.total_type_count)
        return result

    def ensure_scanned(self) -> ScanResult:
        return self._scan if self._scan is not None else self.scan()

    def record_types(self) -> list[RecordType]:
        """Known record types: the registry's if there is one, else those seen in the scan."""
        if self.registry is not None:
            return list(self.registry)
        seen: dict[str, RecordType] = {}
        for record in self.ensure_scanned().all_records():
            seen.setdefault(record.type_name, record.record_type)
        return list(seen.values())

    def get_type(self, type_name: str) -> RecordType | None:
        for record_type in self.record_types():
            if record_type.name == type_name:
                return record_type
        return None

    def get_record(self, key: str) -> Record | None:
        return self.source.load_by_identity(key)

    def find(self, group: ConditionGroup | None, type_name: str | None = None) -> list[Record]:
        """Query the scanned records, optionally only those of one type and its subtypes."""
        records = self.ensure_scanned().all_records()
        if type_name is not None:
            records = [r for r in records if r.record_type.is_subtype_of(type_name)]
        return self.query_engine.query(group, records)

    def orphans(self, include_expected: bool = False, excluded_types: Iterable[RecordType | str] | None = None) -> list[Record]:
        """Unreferenced records.

        Records whose type name ends with one of the configured container
        suffixes are left out unless ``include_expected`` is set.
        """
        orphans = self.analysis.find_orphans(excluded_types)
        if include_expected:
            return orphans
        suffixes = self.settings.orphan_excluded_suffixes
        return [r for r in orphans if not is_expected_unreferenced(r.record_type, suffixes)]
