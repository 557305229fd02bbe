"""Record handle for catalogued data entries."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from record_catalog.types import RecordType


@dataclass(eq=False)
class Record:
    """A catalogued data record.

    A Record is identified by its ``key`` (a path or other unique string).
    Two Record objects with the same key are the same record as far as
    queries and the dependency graph are concerned. The catalog only observes
    records; it never changes their values.
    """

    key: str
    record_type: RecordType
    name: str = ""
    values: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.name:
            # Fall back to the last path segment of the key
            self.name = self.key.rsplit("/", 1)[-1] if self.key else ""

    @property
    def type_name(self) -> str:
        return self.record_type.name

    def get(self, field_name: str, default: Any = None) -> Any:
        """Return the raw value stored for a field, or ``default``."""
        return self.values.get(field_name, default)

    def __repr__(self) -> str:
        return f"Record({self.key!r}, {self.record_type.name})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Record):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)
