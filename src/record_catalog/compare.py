"""Comparison and text matching across heterogeneous value kinds.

``compare`` never raises. When two values are of different kinds the right
operand is coerced into the left operand's kind; when that fails (or the kind
has no native ordering) both operands are compared as case-insensitive text.
The text fallback is deliberately permissive: it lets a typed-in string be
compared against any stored value, at the price of lexical ordering.
``compare(10, "9")`` parses the string and returns 1, but
``compare("10", 9)`` turns the number into text and returns -1, as does
``compare("10", "9")``.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from typing import Any

from record_catalog.record import Record
from record_catalog.types import Color, ValueKind, Vector2, Vector3

_TRUE_WORDS = frozenset({"true", "1", "yes", "on"})
_FALSE_WORDS = frozenset({"false", "0", "no", "off"})


class TextMatch(enum.Enum):
    """Text matching modes used by the contains/prefix/suffix operators."""

    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"


def to_text(value: Any) -> str:
    """Return the textual form of a value used for text operators and fallback."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "True" if value else "False"
    if isinstance(value, enum.Enum):
        return value.name
    if isinstance(value, Record):
        return value.name
    return str(value)


def coerce(value: Any, kind: ValueKind, like: Any = None) -> Any:
    """Convert ``value`` into ``kind``.

    Args:
        value: Value to convert.
        kind: Target kind.
        like: An existing value of the target kind; needed for enum, vector and
            color targets to know the concrete class.

    Raises:
        TypeError: If no conversion exists between the kinds.
        ValueError: If the value cannot be parsed as the target kind.
    """
    if value is None:
        raise TypeError("cannot coerce null")

    if kind.is_numeric:
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, str):
            text = value.strip()
            try:
                return int(text, 10)
            except ValueError:
                return float(text)
        if isinstance(value, enum.Enum) and isinstance(value.value, (int, float)):
            return value.value
        raise TypeError(f"cannot coerce {type(value).__name__} to {kind.value}")

    if kind is ValueKind.BOOLEAN:
        if isinstance(value, str):
            word = value.strip().lower()
            if word in _TRUE_WORDS:
                return True
            if word in _FALSE_WORDS:
                return False
            raise ValueError(f"'{value}' is not a boolean")
        if isinstance(value, (int, float)):
            return bool(value)
        raise TypeError(f"cannot coerce {type(value).__name__} to bool")

    if kind is ValueKind.STRING:
        return to_text(value)

    if kind is ValueKind.ENUM and isinstance(like, enum.Enum):
        enum_cls = type(like)
        if isinstance(value, str):
            try:
                return enum_cls[value]
            except KeyError:
                pass
            for member in enum_cls:
                if member.name.casefold() == value.casefold():
                    return member
        return enum_cls(value)

    if kind in (ValueKind.VECTOR2, ValueKind.VECTOR3, ValueKind.COLOR):
        target_cls = {ValueKind.VECTOR2: Vector2, ValueKind.VECTOR3: Vector3, ValueKind.COLOR: Color}[kind]
        if isinstance(value, Mapping):
            return target_cls(**value)
        if isinstance(value, (list, tuple)):
            return target_cls(*value)
        raise TypeError(f"cannot coerce {type(value).__name__} to {kind.value}")

    raise TypeError(f"cannot coerce {type(value).__name__} to {kind.value}")


def _native_compare(a: Any, b: Any) -> int | None:
    """Order two values with Python's own operators, or None if unsupported."""
    try:
        if a == b:
            return 0
        return -1 if a < b else 1
    except TypeError:
        return None


def _text_compare(a: Any, b: Any) -> int:
    left = to_text(a).casefold()
    right = to_text(b).casefold()
    return (left > right) - (left < right)


def compare(a: Any, b: Any) -> int:
    """Compare two values, returning -1, 0 or 1.

    Null equals null and sorts before every non-null value.
    """
    if a is None and b is None:
        return 0
    if a is None:
        return -1
    if b is None:
        return 1

    kind_a = ValueKind.of(a)
    kind_b = ValueKind.of(b)

    if kind_a is kind_b or (kind_a.is_numeric and kind_b.is_numeric):
        result = _native_compare(a, b)
        if result is not None:
            return result
    else:
        try:
            converted = coerce(b, kind_a, like=a)
        except (TypeError, ValueError, KeyError):
            pass
        else:
            result = _native_compare(a, converted)
            if result is not None:
                return result

    return _text_compare(a, b)


def matches_text(value: Any, needle: Any, mode: TextMatch | str) -> bool:
    """Case-insensitive contains/prefix/suffix test on the text form of a value.

    A null value or null needle never matches.
    """
    if value is None or needle is None:
        return False

    mode = TextMatch(mode)
    text = to_text(value).casefold()
    pattern = to_text(needle).casefold()

    if mode is TextMatch.CONTAINS:
        return pattern in text
    if mode is TextMatch.STARTS_WITH:
        return text.startswith(pattern)
    return text.endswith(pattern)
