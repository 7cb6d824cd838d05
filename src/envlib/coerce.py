from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import ConversionError, InvalidTypeError, MapFormatError
from .sniff import (
    Shape,
    classify,
    is_boolean,
    is_float,
    is_integer,
    is_json,
    is_list,
    is_map,
    is_tuple,
    loads_json,
)

log = logging.getLogger(__name__)

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


class ValueKind(str, Enum):
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    STRING = "string"
    LIST = "list"
    TUPLE = "tuple"
    MAP = "map"


@dataclass(frozen=True)
class TypedValue:
    """A coerced value tagged with its kind."""

    kind: ValueKind
    value: Any

    def to_python(self) -> Any:
        if self.kind is ValueKind.TUPLE:
            return list(self.value)
        return self.value


# requested kind name -> kind produced by strict conversion
_KIND_ALIASES: Dict[str, ValueKind] = {
    "str": ValueKind.STRING,
    "string": ValueKind.STRING,
    "bool": ValueKind.BOOLEAN,
    "boolean": ValueKind.BOOLEAN,
    "float": ValueKind.FLOAT,
    "int": ValueKind.INTEGER,
    "integer": ValueKind.INTEGER,
    "list": ValueKind.LIST,
    "array": ValueKind.LIST,
    "tuple": ValueKind.TUPLE,
    "dict": ValueKind.MAP,
    "map": ValueKind.MAP,
    "json": ValueKind.MAP,
}

ALLOWED_KINDS = tuple(_KIND_ALIASES)


def is_allowed_kind(kind: str) -> bool:
    return kind.lower() in _KIND_ALIASES


def _split_sequence(s: str) -> List[str]:
    """Split a bracketed sequence on every comma.

    The split is flat: commas inside nested brackets or quotes are not
    special. An empty interior such as `[]` gives an empty list rather than
    one empty item.
    """
    inner = s.strip()[1:-1].strip()
    if not inner:
        return []
    return [item.strip() for item in inner.split(",")]


def _to_int(s: str, kind: str) -> int:
    number = int(s)
    if not INT64_MIN <= number <= INT64_MAX:
        raise ConversionError(s, kind)
    return number


def _to_float(s: str, kind: str) -> float:
    number = float(s)
    if math.isinf(number):
        raise ConversionError(s, kind)
    return number


def _to_bool(s: str) -> bool:
    return s.lower() == "true"


def to_map(s: str) -> Dict[str, Any]:
    """Parse a brace literal into a dict.

    Single quotes are swapped for double quotes when the text has no double
    quotes at all, so `{'a': 'b'}` is accepted alongside strict JSON.
    """
    s = s.strip()
    if "'" in s and '"' not in s:
        s = s.replace("'", '"')

    if not (s.startswith("{") and s.endswith("}")):
        raise MapFormatError(f"invalid map format: {s!r}")

    try:
        result = loads_json(s)
    except ValueError as e:
        raise MapFormatError(f"failed to parse {s!r} as a map: {e}") from e

    if not isinstance(result, dict):
        raise MapFormatError(f"expected a JSON object, got {type(result).__name__}: {s!r}")
    return result


def infer(s: str) -> TypedValue:
    """Convert `s` according to the shape it looks like.

    Opaque strings are returned unchanged; only brace and JSON shapes can fail.
    """
    shape = classify(s)
    if shape is Shape.INTEGER:
        return TypedValue(ValueKind.INTEGER, _to_int(s, "int"))
    if shape is Shape.FLOAT:
        return TypedValue(ValueKind.FLOAT, _to_float(s, "float"))
    if shape is Shape.BOOLEAN:
        return TypedValue(ValueKind.BOOLEAN, _to_bool(s))
    if shape is Shape.LIST:
        return TypedValue(ValueKind.LIST, _split_sequence(s))
    if shape is Shape.TUPLE:
        return TypedValue(ValueKind.TUPLE, tuple(_split_sequence(s)))
    if shape in (Shape.MAP, Shape.JSON):
        return TypedValue(ValueKind.MAP, to_map(s))
    return TypedValue(ValueKind.STRING, s)


def convert(s: str, kind: str) -> TypedValue:
    """Strictly convert `s` into the requested kind."""
    if not is_allowed_kind(kind):
        raise InvalidTypeError(s, kind)
    target = _KIND_ALIASES[kind.lower()]

    if target is ValueKind.STRING:
        return TypedValue(target, s)

    if target is ValueKind.BOOLEAN and is_boolean(s):
        return TypedValue(target, _to_bool(s))

    if target is ValueKind.FLOAT and is_float(s):
        return TypedValue(target, _to_float(s, kind))

    if target is ValueKind.INTEGER and is_integer(s):
        return TypedValue(target, _to_int(s, kind))

    if target is ValueKind.LIST and (is_list(s) or is_tuple(s)):
        return TypedValue(target, _split_sequence(s))

    if target is ValueKind.TUPLE and (is_list(s) or is_tuple(s)):
        return TypedValue(target, tuple(_split_sequence(s)))

    if target is ValueKind.MAP and (is_map(s) or is_json(s)):
        return TypedValue(target, to_map(s))

    raise ConversionError(s, kind)


def coerce(s: str, kind: Optional[str] = None) -> TypedValue:
    """Coerce a raw string, strictly when `kind` is given, by inference otherwise."""
    if kind:
        log.debug("Converting %r to %s", s, kind)
        return convert(s, kind)
    return infer(s)
