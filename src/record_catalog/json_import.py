"""Load a record catalog from a JSON document.

The document lists record types and records::

    {
      "types": [
        {"name": "Unit", "fields": {"hp": "int"}},
        {"name": "Enemy", "parent": "Unit", "category": "Characters",
         "fields": {"loot": "ref"}}
      ],
      "records": [
        {"key": "enemies/goblin", "type": "Enemy", "name": "Goblin",
         "values": {"hp": 10, "loot": {"$ref": "items/sword"}}}
      ]
    }

``{"$ref": key}`` anywhere in a value refers to another record by key.
Vector and color fields accept ``{"x": .., "y": ..}`` / ``{"r": .., ...}``
objects or plain lists. Loading is read-only: nothing is ever written back.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog

from record_catalog.catalog import InMemoryRecordSource
from record_catalog.record import Record
from record_catalog.types import Color, RecordType, TypeRegistry, ValueKind, Vector2, Vector3

logger = structlog.get_logger(__name__)

REF_KEY = "$ref"

_STRUCT_TYPES = {
    ValueKind.VECTOR2: Vector2,
    ValueKind.VECTOR3: Vector3,
    ValueKind.COLOR: Color,
}


@dataclass
class ImportedCatalog:
    """Types and records read from one document."""

    registry: TypeRegistry
    source: InMemoryRecordSource


def _is_ref(value: Any) -> bool:
    return isinstance(value, dict) and len(value) == 1 and REF_KEY in value


def _define_types(type_docs: list[Any]) -> TypeRegistry:
    """Register types, allowing a parent to be declared after its children."""
    by_name: dict[str, dict[str, Any]] = {}
    for doc in type_docs:
        if not isinstance(doc, dict) or not isinstance(doc.get("name"), str) or not doc["name"]:
            raise ValueError(f"Type entry must be an object with a name: {doc!r}")
        if doc["name"] in by_name:
            raise ValueError(f"Type '{doc['name']}' is declared twice")
        fields = doc.get("fields", {})
        if not isinstance(fields, dict):
            raise ValueError(f"Fields of type '{doc['name']}' must be an object")
        if not all(isinstance(kind, str) for kind in fields.values()):
            raise ValueError(f"Field kinds of type '{doc['name']}' must be strings")
        by_name[doc["name"]] = doc

    registry = TypeRegistry()
    defining: set[str] = set()

    def define(name: str) -> RecordType:
        existing = registry.get(name)
        if existing is not None:
            return existing
        if name in defining:
            raise ValueError(f"Type '{name}' inherits from itself")
        doc = by_name.get(name)
        if doc is None:
            raise ValueError(f"Unknown parent type '{name}'")

        defining.add(name)
        parent_name = doc.get("parent")
        parent = define(parent_name) if parent_name else None
        record_type = RecordType(
            name=name,
            parent=parent,
            category=doc.get("category"),
            priority=int(doc.get("priority", 0)),
        )
        for field_name, kind_name in doc.get("fields", {}).items():
            record_type.add_field(field_name, kind_name)
        defining.discard(name)
        return registry.register(record_type)

    for name in by_name:
        define(name)
    return registry


def _field_kind(record_type: RecordType, field_name: str) -> ValueKind | None:
    for current in record_type.hierarchy():
        field_def = current.get_field(field_name)
        if field_def is not None:
            return field_def.kind
    return None


def _convert(value: Any, kind: ValueKind | None) -> Any:
    """Convert a JSON value for a field of ``kind``; references are resolved later."""
    if value is None:
        return None
    struct_cls = _STRUCT_TYPES.get(kind)
    if struct_cls is not None:
        if isinstance(value, dict):
            return struct_cls(**value)
        if isinstance(value, list):
            return struct_cls(*value)
    return value


def _resolve_refs(value: Any, records: dict[str, Record], owner: str) -> Any:
    if _is_ref(value):
        target = records.get(value[REF_KEY])
        if target is None:
            logger.warning("dangling_reference", record=owner, target=value[REF_KEY])
        return target
    if isinstance(value, list):
        return [_resolve_refs(v, records, owner) for v in value]
    if isinstance(value, dict):
        return {k: _resolve_refs(v, records, owner) for k, v in value.items()}
    return value


def load_catalog_data(data: Any) -> ImportedCatalog:
    """Build a type registry and record source from a parsed JSON document.

    Raises:
        ValueError: If the document is malformed.
    """
    if not isinstance(data, dict):
        raise ValueError("Catalog document must be a JSON object")
    type_docs = data.get("types", [])
    record_docs = data.get("records", [])
    if not isinstance(type_docs, list) or not isinstance(record_docs, list):
        raise ValueError("'types' and 'records' must be arrays")

    registry = _define_types(type_docs)

    records: dict[str, Record] = {}
    for doc in record_docs:
        if not isinstance(doc, dict):
            raise ValueError(f"Record entry must be an object: {doc!r}")
        key = doc.get("key")
        if not isinstance(key, str) or not key:
            raise ValueError(f"Record entry needs a non-empty key: {doc!r}")
        if key in records:
            raise ValueError(f"Record '{key}' is declared twice")
        type_name = doc.get("type")
        record_type = registry.get(type_name) if isinstance(type_name, str) else None
        if record_type is None:
            raise ValueError(f"Record '{key}' has unknown type {type_name!r}")
        values = doc.get("values", {})
        if not isinstance(values, dict):
            raise ValueError(f"Values of record '{key}' must be an object")

        try:
            converted = {name: _convert(v, _field_kind(record_type, name)) for name, v in values.items()}
        except TypeError as e:
            raise ValueError(f"Record '{key}': {e}") from e
        records[key] = Record(key=key, record_type=record_type, name=doc.get("name") or "", values=converted)

    # References can point forwards, so resolve them once every record exists
    for record in records.values():
        record.values = {name: _resolve_refs(v, records, record.key) for name, v in record.values.items()}

    logger.info("catalog_imported", types=len(registry), records=len(records))
    return ImportedCatalog(registry=registry, source=InMemoryRecordSource(records.values()))


def load_catalog(path: str | Path) -> ImportedCatalog:
    """Read a catalog document from a file.

    Raises:
        ValueError: If the file is not valid JSON or not a valid catalog.
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"{path}: invalid JSON: {e}") from e
    return load_catalog_data(data)
