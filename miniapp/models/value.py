"""
Dynamic JSON-like values used for app state, bound component values and
action parameters.

``Value`` is a closed tagged union. Accessors never raise; they return
``None`` when the value cannot be interpreted as the requested type.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from functools import total_ordering
from typing import Annotated, Any, Dict, List, Mapping, Optional

from pydantic import PlainSerializer, PlainValidator, WithJsonSchema


class ValueKind(str, Enum):
    """Tags in their canonical sort order"""
    STRING = "string"
    NUMBER = "number"
    BOOL = "bool"
    OBJECT = "object"
    ARRAY = "array"
    NULL = "null"

    @property
    def rank(self) -> int:
        return _KIND_ORDER.index(self)


_KIND_ORDER = list(ValueKind)


@total_ordering
@dataclass(frozen=True)
class Value:
    """
    Immutable JSON-like value.

    Objects are stored as a tuple of (key, value) pairs sorted by key and
    arrays as tuples, so every Value is hashable and compares structurally.
    """
    kind: ValueKind
    payload: Any = None

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def string(cls, text: str) -> "Value":
        return cls(ValueKind.STRING, str(text))

    @classmethod
    def number(cls, number: float) -> "Value":
        """
        Raises:
            ValueError: ``number`` is an int too large for a float
        """
        try:
            return cls(ValueKind.NUMBER, float(number))
        except OverflowError as e:
            raise ValueError("Number is out of the floating point range") from e

    @classmethod
    def boolean(cls, flag: bool) -> "Value":
        return cls(ValueKind.BOOL, bool(flag))

    @classmethod
    def object(cls, entries: Mapping[str, Any]) -> "Value":
        items = tuple(sorted((str(k), cls.of(v)) for k, v in entries.items()))
        return cls(ValueKind.OBJECT, items)

    @classmethod
    def array(cls, items: Any) -> "Value":
        return cls(ValueKind.ARRAY, tuple(cls.of(item) for item in items))

    @classmethod
    def null(cls) -> "Value":
        return NULL

    @classmethod
    def of(cls, raw: Any) -> "Value":
        """
        Build a Value from already-typed JSON data.

        The JSON type of the input is preserved: a numeric string stays a
        string. ``bool`` is checked before numbers since it subclasses int.
        """
        if isinstance(raw, Value):
            return raw
        if isinstance(raw, str):
            return cls.string(raw)
        if isinstance(raw, bool):
            return cls.boolean(raw)
        if isinstance(raw, (int, float)):
            return cls.number(raw)
        if isinstance(raw, Mapping):
            return cls.object(raw)
        if isinstance(raw, (list, tuple)):
            return cls.array(raw)
        return NULL

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def is_null(self) -> bool:
        return self.kind is ValueKind.NULL

    def as_string(self) -> Optional[str]:
        if self.kind is ValueKind.STRING:
            return self.payload
        if self.kind is ValueKind.NUMBER:
            return format_number(self.payload)
        if self.kind is ValueKind.BOOL:
            return "true" if self.payload else "false"
        return None

    def as_bool(self) -> Optional[bool]:
        if self.kind is ValueKind.BOOL:
            return self.payload
        if self.kind is ValueKind.STRING:
            return parse_truthy(self.payload)
        return None

    def as_number(self) -> Optional[float]:
        if self.kind is ValueKind.NUMBER:
            return self.payload
        if self.kind is ValueKind.STRING:
            try:
                return float(self.payload.strip())
            except ValueError:
                return None
        return None

    def as_dict(self) -> Optional[Dict[str, "Value"]]:
        if self.kind is ValueKind.OBJECT:
            return dict(self.payload)
        return None

    def as_list(self) -> Optional[List["Value"]]:
        if self.kind is ValueKind.ARRAY:
            return list(self.payload)
        return None

    # ------------------------------------------------------------------
    # Encoding
    # ------------------------------------------------------------------

    def to_json(self) -> Any:
        """Structural inverse of ``Value.of``"""
        if self.kind is ValueKind.NUMBER:
            number = self.payload
            if math.isfinite(number) and number.is_integer():
                return int(number)
            return number
        if self.kind is ValueKind.OBJECT:
            return {key: value.to_json() for key, value in self.payload}
        if self.kind is ValueKind.ARRAY:
            return [item.to_json() for item in self.payload]
        return self.payload

    def __lt__(self, other: "Value") -> bool:
        if not isinstance(other, Value):
            return NotImplemented
        if self.kind is not other.kind:
            return self.kind.rank < other.kind.rank
        if self.kind is ValueKind.NULL:
            return False
        return self.payload < other.payload

    def __repr__(self) -> str:
        return f"Value.{self.kind.value}({self.to_json()!r})"


NULL = Value(ValueKind.NULL, None)


def format_number(number: float) -> str:
    """Decimal rendering of a number: ``1.0 -> "1.0"``, ``2.5 -> "2.5"``"""
    if math.isnan(number):
        return "nan"
    if math.isinf(number):
        return "inf" if number > 0 else "-inf"
    return repr(float(number))


def parse_truthy(text: str) -> bool:
    """
    Permissive string to bool conversion.

    Leading whitespace, one optional sign and any leading zeros are skipped;
    the result is true iff the next character is ``Y``, ``T`` (either case)
    or a digit 1-9. Everything else, including the empty string, is false.
    """
    rest = text.lstrip()
    if rest[:1] in ("+", "-"):
        rest = rest[1:]
    rest = rest.lstrip("0")
    return rest[:1] in set("YyTt123456789") if rest else False


def _validate_value(raw: Any) -> Value:
    return Value.of(raw)


def _serialize_value(value: Value) -> Any:
    return value.to_json()


# Pydantic field type: accepts raw JSON or Value, serializes to raw JSON
JSONValue = Annotated[
    Value,
    PlainValidator(_validate_value),
    PlainSerializer(_serialize_value),
    WithJsonSchema({}),
]

ValueMap = Dict[str, JSONValue]

