"""Shape detection for raw env values.

Values in an env file are untyped text. The predicates here look only at the
lexical shape of a string (digits, brackets, JSON syntax) and `classify`
applies them in a fixed order, because the shapes overlap: every integer is
also a valid float and every brace literal may also be valid JSON.
"""

from __future__ import annotations

import json
import re
from enum import Enum
from typing import Any

_INT_RE = re.compile(r"[+-]?[0-9]+")
_FLOAT_RE = re.compile(r"[+-]?[0-9]+(\.[0-9]+)?")

BOOLEAN_LITERALS = frozenset({"true", "false", "True", "False"})


class Shape(str, Enum):
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    LIST = "list"
    TUPLE = "tuple"
    MAP = "map"
    JSON = "json"
    STRING = "string"


def _text(value: Any) -> str:
    return value if isinstance(value, str) else str(value)


def _wrapped(value: Any, opening: str, closing: str) -> bool:
    s = _text(value).strip()
    return s.startswith(opening) and s.endswith(closing)


def is_integer(value: Any) -> bool:
    return _INT_RE.fullmatch(_text(value)) is not None


def is_float(value: Any) -> bool:
    return _FLOAT_RE.fullmatch(_text(value)) is not None


def is_boolean(value: Any) -> bool:
    return _text(value) in BOOLEAN_LITERALS


def is_list(value: Any) -> bool:
    return _wrapped(value, "[", "]")


def is_tuple(value: Any) -> bool:
    return _wrapped(value, "(", ")")


def is_map(value: Any) -> bool:
    return _wrapped(value, "{", "}")


def _reject_constant(name: str) -> Any:
    # NaN and Infinity are not JSON
    raise ValueError(f"invalid JSON constant: {name}")


def loads_json(text: str) -> Any:
    return json.loads(text, parse_constant=_reject_constant)


def is_json(value: Any) -> bool:
    try:
        loads_json(_text(value))
    except ValueError:
        return False
    return True


_CHECKS = (
    (Shape.INTEGER, is_integer),
    (Shape.FLOAT, is_float),
    (Shape.BOOLEAN, is_boolean),
    (Shape.LIST, is_list),
    (Shape.TUPLE, is_tuple),
    (Shape.MAP, is_map),
    (Shape.JSON, is_json),
)


def classify(value: Any) -> Shape:
    """Return the first shape `value` matches, falling back to STRING."""
    for shape, check in _CHECKS:
        if check(value):
            return shape
    return Shape.STRING
