"""Predicate queries over record fields.

A :class:`Condition` tests one field of a record; a :class:`ConditionGroup`
combines conditions with AND or OR. Evaluation never raises: a missing field,
a value of the wrong kind or a malformed regex makes the condition false.
"""

from __future__ import annotations

import enum
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

import structlog

from record_catalog.compare import TextMatch, compare, matches_text
from record_catalog.fields import FieldAccessor, default_accessor
from record_catalog.record import Record

logger = structlog.get_logger(__name__)


class Operator(enum.Enum):
    """Condition operators."""

    EQUAL = "eq"
    NOT_EQUAL = "neq"
    GREATER = "gt"
    GREATER_OR_EQUAL = "gte"
    LESS = "lt"
    LESS_OR_EQUAL = "lte"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    REGEX = "matches"
    IS_NULL = "is_null"
    IS_NOT_NULL = "is_not_null"

    @property
    def symbol(self) -> str:
        """Display symbol, matching the filter language."""
        return _OPERATOR_SYMBOLS[self]

    @property
    def takes_value(self) -> bool:
        return self not in (Operator.IS_NULL, Operator.IS_NOT_NULL)


_OPERATOR_SYMBOLS: dict[Operator, str] = {
    Operator.EQUAL: "=",
    Operator.NOT_EQUAL: "!=",
    Operator.GREATER: ">",
    Operator.GREATER_OR_EQUAL: ">=",
    Operator.LESS: "<",
    Operator.LESS_OR_EQUAL: "<=",
    Operator.CONTAINS: "contains",
    Operator.NOT_CONTAINS: "not contains",
    Operator.STARTS_WITH: "starts with",
    Operator.ENDS_WITH: "ends with",
    Operator.REGEX: "matches",
    Operator.IS_NULL: "is null",
    Operator.IS_NOT_NULL: "is not null",
}

# Ordering operators -> predicate over compare()'s result
_ORDERING: dict[Operator, Any] = {
    Operator.EQUAL: lambda c: c == 0,
    Operator.NOT_EQUAL: lambda c: c != 0,
    Operator.GREATER: lambda c: c > 0,
    Operator.GREATER_OR_EQUAL: lambda c: c >= 0,
    Operator.LESS: lambda c: c < 0,
    Operator.LESS_OR_EQUAL: lambda c: c <= 0,
}

_TEXT_MODES: dict[Operator, TextMatch] = {
    Operator.CONTAINS: TextMatch.CONTAINS,
    Operator.STARTS_WITH: TextMatch.STARTS_WITH,
    Operator.ENDS_WITH: TextMatch.ENDS_WITH,
}


class LogicalOperator(enum.Enum):
    """How the conditions of a group are combined."""

    AND = "and"
    OR = "or"


@dataclass
class Condition:
    """A single ``field operator value`` predicate."""

    field_name: str
    operator: Operator = Operator.EQUAL
    value: Any = None
    enabled: bool = True

    def evaluate(self, record: Record, accessor: FieldAccessor | None = None) -> bool:
        """Return whether ``record`` satisfies this condition.

        Disabled conditions are never true on their own; groups skip them.
        """
        if not self.enabled or record is None:
            return False

        accessor = accessor or default_accessor
        try:
            field_def, field_value = accessor.resolve_path(record, self.field_name)
            if field_def is None:
                return False
            return self._apply(field_value)
        except Exception as e:
            logger.debug("condition_failed", condition=self.display_text(), record=record.key, error=str(e))
            return False

    def _apply(self, field_value: Any) -> bool:
        op = self.operator
        if op is Operator.IS_NULL:
            return field_value is None
        if op is Operator.IS_NOT_NULL:
            return field_value is not None
        if op in _ORDERING:
            return _ORDERING[op](compare(field_value, self.value))
        if op in _TEXT_MODES:
            return matches_text(field_value, self.value, _TEXT_MODES[op])
        if op is Operator.NOT_CONTAINS:
            if field_value is None or self.value is None:
                return False
            return not matches_text(field_value, self.value, TextMatch.CONTAINS)
        if op is Operator.REGEX:
            if isinstance(field_value, str) and isinstance(self.value, str):
                return re.search(self.value, field_value) is not None
            return False
        return False

    def display_text(self) -> str:
        """Render the condition in filter-language form."""
        if not self.operator.takes_value:
            return f"{self.field_name} {self.operator.symbol}"
        if self.value is None:
            value_text = "null"
        elif isinstance(self.value, str):
            if self.operator is Operator.REGEX:
                value_text = f"/{self.value}/"
            else:
                value_text = '"' + self.value.replace('"', '\\"') + '"'
        elif isinstance(self.value, bool):
            value_text = "true" if self.value else "false"
        else:
            value_text = str(self.value)
        return f"{self.field_name} {self.operator.symbol} {value_text}"


@dataclass
class ConditionGroup:
    """An ordered list of conditions combined with AND or OR.

    A group with no conditions, or with every condition disabled, matches
    every record.
    """

    conditions: list[Condition] = field(default_factory=list)
    logical_op: LogicalOperator = LogicalOperator.AND

    def evaluate(self, record: Record, accessor: FieldAccessor | None = None) -> bool:
        """Return whether ``record`` satisfies the group."""
        enabled = [c for c in self.conditions if c.enabled]
        if not enabled:
            return True

        if self.logical_op is LogicalOperator.AND:
            return all(c.evaluate(record, accessor) for c in enabled)
        return any(c.evaluate(record, accessor) for c in enabled)

    def add_condition(
        self,
        field_name: str | None = None,
        operator: Operator = Operator.EQUAL,
        value: Any = None,
    ) -> Condition:
        """Append a new condition (on ``name`` by default) and return it."""
        condition = Condition(field_name=field_name or "name", operator=operator, value=value)
        self.conditions.append(condition)
        return condition

    def remove_condition(self, condition: Condition) -> None:
        """Remove a condition; unknown conditions are ignored."""
        for i, c in enumerate(self.conditions):
            if c is condition:
                del self.conditions[i]
                return

    def clear(self) -> None:
        self.conditions.clear()

    @property
    def count(self) -> int:
        return len(self.conditions)

    @property
    def enabled_count(self) -> int:
        return sum(1 for c in self.conditions if c.enabled)

    def display_text(self) -> str:
        """Render the enabled conditions joined by the group's operator."""
        joiner = f" {self.logical_op.value} "
        return joiner.join(c.display_text() for c in self.conditions if c.enabled)

    def __len__(self) -> int:
        return len(self.conditions)


class QueryEngine:
    """Runs condition groups over record sets."""

    def __init__(self, accessor: FieldAccessor | None = None) -> None:
        self.accessor = accessor or default_accessor

    def query(self, group: ConditionGroup | None, records: Iterable[Record]) -> list[Record]:
        """Return the records matching ``group``, in input order.

        A ``None`` or empty group keeps every record.
        """
        if group is None:
            return [r for r in records if r is not None]
        return [r for r in records if r is not None and group.evaluate(r, self.accessor)]

    def query_by_field(
        self,
        field_name: str,
        operator: Operator,
        value: Any,
        records: Iterable[Record],
    ) -> list[Record]:
        """Run a single-condition query."""
        group = ConditionGroup()
        group.add_condition(field_name, operator, value)
        return self.query(group, records)

    def search_by_name(
        self, term: str, records: Iterable[Record], case_sensitive: bool = False
    ) -> list[Record]:
        """Return records whose name contains ``term``."""
        if case_sensitive:
            return [r for r in records if r is not None and term in r.name]
        needle = term.casefold()
        return [r for r in records if r is not None and needle in r.name.casefold()]

    def field_value(self, record: Record, field_name: str) -> Any:
        """Return a field value for display, or None."""
        if record is None or not field_name:
            return None
        return self.accessor.value_of(record, field_name)
