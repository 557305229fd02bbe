"""Type definitions for the record_catalog library."""

from __future__ import annotations

import enum
import numbers
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Iterator


class ValueKind(enum.Enum):
    """Kinds of values a record field can hold."""

    NULL = "null"
    INTEGER = "int"
    FLOAT = "float"
    BOOLEAN = "bool"
    STRING = "string"
    VECTOR2 = "Vector2"
    VECTOR3 = "Vector3"
    COLOR = "Color"
    ENUM = "enum"
    OBJECT = "object"
    REFERENCE = "ref"
    LIST = "list"
    DELEGATE = "delegate"

    @property
    def is_numeric(self) -> bool:
        """Integers and floats compare natively against each other."""
        return self in (ValueKind.INTEGER, ValueKind.FLOAT)

    @property
    def is_comparable(self) -> bool:
        """Return whether values of this kind can take part in a condition."""
        return self is not ValueKind.DELEGATE

    @classmethod
    def of(cls, value: Any) -> ValueKind:
        """Classify a runtime value."""
        from record_catalog.record import Record

        if value is None:
            return cls.NULL
        # bool is an int subclass, check it first
        if isinstance(value, bool):
            return cls.BOOLEAN
        if isinstance(value, numbers.Integral):
            return cls.INTEGER
        if isinstance(value, numbers.Real):
            return cls.FLOAT
        if isinstance(value, str):
            return cls.STRING
        if isinstance(value, Vector2):
            return cls.VECTOR2
        if isinstance(value, Vector3):
            return cls.VECTOR3
        if isinstance(value, Color):
            return cls.COLOR
        if isinstance(value, enum.Enum):
            return cls.ENUM
        if isinstance(value, Record):
            return cls.REFERENCE
        if isinstance(value, Mapping):
            return cls.OBJECT
        if isinstance(value, (list, tuple, set, frozenset)):
            return cls.LIST
        if callable(value):
            return cls.DELEGATE
        return cls.OBJECT

    @classmethod
    def from_name(cls, name: str) -> ValueKind:
        """Map a schema type name (e.g. ``int``, ``Vector3``) to a kind.

        Raises:
            ValueError: If the name is not a known kind.
        """
        kind = _KIND_NAMES.get(name.lower())
        if kind is None:
            raise ValueError(f"Unknown value kind '{name}'")
        return kind


# Lower-cased schema names and aliases -> kind
_KIND_NAMES: dict[str, ValueKind] = {k.value.lower(): k for k in ValueKind}
_KIND_NAMES.update({
    "integer": ValueKind.INTEGER,
    "double": ValueKind.FLOAT,
    "number": ValueKind.FLOAT,
    "boolean": ValueKind.BOOLEAN,
    "str": ValueKind.STRING,
    "text": ValueKind.STRING,
    "vec2": ValueKind.VECTOR2,
    "vec3": ValueKind.VECTOR3,
    "reference": ValueKind.REFERENCE,
    "array": ValueKind.LIST,
    "event": ValueKind.DELEGATE,
})


@dataclass(frozen=True, order=True)
class Vector2:
    """Two-component vector value."""

    x: float = 0.0
    y: float = 0.0

    def __str__(self) -> str:
        return f"({self.x}, {self.y})"


@dataclass(frozen=True, order=True)
class Vector3:
    """Three-component vector value."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __str__(self) -> str:
        return f"({self.x}, {self.y}, {self.z})"


@dataclass(frozen=True, order=True)
class Color:
    """RGBA color value, components in 0..1."""

    r: float = 0.0
    g: float = 0.0
    b: float = 0.0
    a: float = 1.0

    def __str__(self) -> str:
        return f"RGBA({self.r}, {self.g}, {self.b}, {self.a})"


@dataclass(frozen=True)
class FieldDefinition:
    """Definition of a field declared on a record type."""

    name: str
    kind: ValueKind
    owner: str  # Name of the declaring record type


@dataclass(eq=False)
class RecordType:
    """A record type: named fields plus an optional base type.

    Field lookup walks from the most-derived type towards the root, so a
    field redeclared on a subtype shadows the base declaration.
    """

    name: str
    fields: list[FieldDefinition] = field(default_factory=list)
    parent: RecordType | None = None
    category: str | None = None
    priority: int = 0

    def add_field(self, name: str, kind: ValueKind | str) -> FieldDefinition:
        """Declare a field on this type."""
        if isinstance(kind, str):
            kind = ValueKind.from_name(kind)
        if self.get_field(name) is not None:
            raise ValueError(f"Field '{name}' is already declared on '{self.name}'")
        field_def = FieldDefinition(name=name, kind=kind, owner=self.name)
        self.fields.append(field_def)
        return field_def

    def get_field(self, name: str) -> FieldDefinition | None:
        """Get a field declared directly on this type (base types not searched)."""
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def hierarchy(self) -> Iterator[RecordType]:
        """Yield this type, then each base type up to the root."""
        seen: set[int] = set()
        current: RecordType | None = self
        while current is not None and id(current) not in seen:
            seen.add(id(current))
            yield current
            current = current.parent

    def is_subtype_of(self, type_name: str) -> bool:
        """Return whether this type is, or derives from, the named type."""
        return any(t.name == type_name for t in self.hierarchy())

    def __repr__(self) -> str:
        return f"RecordType({self.name!r})"


class TypeRegistry:
    """Registry of all record types."""

    def __init__(self) -> None:
        self._types: dict[str, RecordType] = {}

    def register(self, record_type: RecordType) -> RecordType:
        """Register a record type."""
        if record_type.name in self._types:
            raise ValueError(f"Type '{record_type.name}' is already defined")
        self._types[record_type.name] = record_type
        return record_type

    def define(
        self,
        name: str,
        fields: dict[str, ValueKind | str] | None = None,
        parent: str | None = None,
        category: str | None = None,
        priority: int = 0,
    ) -> RecordType:
        """Create and register a record type in one step."""
        parent_type = self.get_or_raise(parent) if parent else None
        record_type = RecordType(name=name, parent=parent_type, category=category, priority=priority)
        for field_name, kind in (fields or {}).items():
            record_type.add_field(field_name, kind)
        return self.register(record_type)

    def get(self, name: str) -> RecordType | None:
        """Get a type by name."""
        return self._types.get(name)

    def get_or_raise(self, name: str) -> RecordType:
        """Get a type by name, raising if not found."""
        record_type = self._types.get(name)
        if record_type is None:
            raise KeyError(f"Type '{name}' not found")
        return record_type

    def list_types(self) -> list[str]:
        """List all registered type names."""
        return list(self._types.keys())

    def subtypes_of(self, name: str) -> list[RecordType]:
        """Return the named type and every registered type deriving from it."""
        return [t for t in self._types.values() if t.is_subtype_of(name)]

    def __iter__(self) -> Iterator[RecordType]:
        return iter(self._types.values())

    def __len__(self) -> int:
        return len(self._types)

    def __contains__(self, name: str) -> bool:
        return name in self._types
