"""Field resolution against record types.

Fields are resolved once per (type, field name) pair and cached. The cache
lives as long as the accessor; callers that change a schema mid-session call
:meth:`FieldAccessor.clear_cache`.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from record_catalog.config import settings
from record_catalog.record import Record
from record_catalog.types import FieldDefinition, RecordType, ValueKind

# Marker for a cached miss, distinct from "not cached yet"
_MISSING = object()

# Every record exposes its identity and display name as read-only fields.
# A declared field of the same name takes precedence.
BUILTIN_OWNER = "Record"
BUILTIN_FIELDS: dict[str, FieldDefinition] = {
    "name": FieldDefinition(name="name", kind=ValueKind.STRING, owner=BUILTIN_OWNER),
    "key": FieldDefinition(name="key", kind=ValueKind.STRING, owner=BUILTIN_OWNER),
}


class FieldAccessor:
    """Resolves field names on record types and reads their values."""

    def __init__(self, reserved_names: Iterable[str] | None = None) -> None:
        if reserved_names is None:
            reserved_names = settings.reserved_field_names
        self.reserved_names: frozenset[str] = frozenset(reserved_names)
        self._cache: dict[tuple[RecordType, str], Any] = {}
        self._queryable_cache: dict[RecordType, dict[str, FieldDefinition]] = {}

    def clear_cache(self) -> None:
        """Drop every cached descriptor."""
        self._cache.clear()
        self._queryable_cache.clear()

    def is_queryable(self, field_def: FieldDefinition) -> bool:
        """Return whether a declared field can take part in a condition."""
        return field_def.name not in self.reserved_names and field_def.kind.is_comparable

    def resolve(self, record_type: RecordType, field_name: str) -> FieldDefinition | None:
        """Resolve a simple field name on a type.

        The type's own fields are searched first, then each base type up to the
        root. Reserved and delegate-typed fields never resolve.
        """
        if record_type is None or not field_name:
            return None

        cache_key = (record_type, field_name)
        cached = self._cache.get(cache_key)
        if cached is not None:
            return None if cached is _MISSING else cached

        result: FieldDefinition | None = None
        if field_name not in self.reserved_names:
            for current in record_type.hierarchy():
                field_def = current.get_field(field_name)
                if field_def is not None:
                    # Most-derived declaration wins, even when it is not queryable
                    result = field_def if field_def.kind.is_comparable else None
                    break
            else:
                result = BUILTIN_FIELDS.get(field_name)

        self._cache[cache_key] = _MISSING if result is None else result
        return result

    def get_value(self, record: Record, field_def: FieldDefinition) -> Any:
        """Read a field value from a record, degrading to None on any failure."""
        try:
            if field_def is BUILTIN_FIELDS.get(field_def.name):
                return getattr(record, field_def.name)
            return record.values.get(field_def.name)
        except Exception:
            return None

    def resolve_path(self, record: Record, path: str) -> tuple[FieldDefinition | None, Any]:
        """Resolve a simple or dotted field path on a record.

        Returns ``(descriptor, value)`` where ``descriptor`` is the first
        segment's field. A ``None`` descriptor means the field does not exist on
        the record's type. Later segments walk into referenced records (through
        their own type) and mappings; anything else yields a ``None`` value.
        """
        if record is None:
            return None, None

        first, _, rest = path.partition(".")
        field_def = self.resolve(record.record_type, first)
        if field_def is None:
            return None, None

        value = self.get_value(record, field_def)
        if rest:
            value = self._walk(value, rest.split("."))
        return field_def, value

    def value_of(self, record: Record, path: str) -> Any:
        """Return the value at ``path`` on ``record``, or None."""
        return self.resolve_path(record, path)[1]

    def _walk(self, value: Any, segments: list[str]) -> Any:
        """Follow the remaining path segments from an intermediate value."""
        for segment in segments:
            if value is None:
                return None
            if isinstance(value, Record):
                field_def = self.resolve(value.record_type, segment)
                if field_def is None:
                    return None
                value = self.get_value(value, field_def)
            elif isinstance(value, Mapping):
                if segment in self.reserved_names:
                    return None
                value = value.get(segment)
            else:
                try:
                    value = getattr(value, segment)
                except Exception:
                    return None
                if ValueKind.of(value) is ValueKind.DELEGATE:
                    return None
        return value

    def queryable_fields(self, record_type: RecordType) -> dict[str, FieldDefinition]:
        """Return every queryable field of a type, derived declarations first."""
        cached = self._queryable_cache.get(record_type)
        if cached is not None:
            return cached

        fields: dict[str, FieldDefinition] = {}
        shadowed: set[str] = set()
        for current in record_type.hierarchy():
            for field_def in current.fields:
                if field_def.name in fields or field_def.name in shadowed:
                    continue
                if self.is_queryable(field_def):
                    fields[field_def.name] = field_def
                else:
                    shadowed.add(field_def.name)

        for name, field_def in BUILTIN_FIELDS.items():
            if name not in fields and name not in shadowed and name not in self.reserved_names:
                fields[name] = field_def

        self._queryable_cache[record_type] = fields
        return fields


# Shared accessor for callers that do not inject their own
default_accessor = FieldAccessor()
