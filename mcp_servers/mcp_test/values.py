"""Runtime value helpers for the test DSL.

DSL values are plain JSON-shaped Python objects: ``None``, ``bool``, numbers
(``float`` from literals and arithmetic, ``int`` from ``int()``/``len()`` and
decoded tool output), ``str``, ``list`` and ``dict`` with string keys.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any

from .errors import DSLRuntimeError

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")
_LEADING_FLOAT_RE = re.compile(r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)")


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "bool"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def is_truthy(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if is_number(value):
        return value != 0
    if isinstance(value, (str, list, dict)):
        return len(value) > 0
    return True


def values_equal(a: Any, b: Any) -> bool:
    """Deep structural equality. Numbers compare by value; booleans never equal numbers."""
    if a is None or b is None:
        return a is None and b is None
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if is_number(a) and is_number(b):
        return a == b
    if isinstance(a, list) and isinstance(b, list):
        return len(a) == len(b) and all(values_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, dict) and isinstance(b, dict):
        return a.keys() == b.keys() and all(values_equal(a[k], b[k]) for k in a)
    return type(a) is type(b) and a == b


def to_float(value: Any) -> float:
    if is_number(value):
        return float(value)
    if isinstance(value, str):
        m = _LEADING_FLOAT_RE.match(value)
        if m:
            return float(m.group(1))
        raise DSLRuntimeError(f"cannot convert string {value!r} to float")
    raise DSLRuntimeError(f"cannot convert {type_name(value)} to float")


def to_int(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise DSLRuntimeError(f"cannot convert {value} to int")
        return int(value)
    if isinstance(value, str):
        m = _LEADING_INT_RE.match(value)
        if m:
            return int(m.group(1))
        raise DSLRuntimeError(f"cannot convert string {value!r} to int")
    raise DSLRuntimeError(f"cannot convert {type_name(value)} to int")


def normalize(value: Any) -> Any:
    """Integral floats become ints so ``3.0`` renders as ``3``."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, list):
        return [normalize(v) for v in value]
    if isinstance(value, dict):
        return {str(k): normalize(v) for k, v in value.items()}
    return value


def to_json(value: Any, *, indent: int | None = None) -> str:
    try:
        if indent is None:
            return json.dumps(normalize(value), ensure_ascii=False, sort_keys=True, separators=(",", ":"), allow_nan=False)
        return json.dumps(normalize(value), ensure_ascii=False, sort_keys=True, indent=indent, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise DSLRuntimeError(f"failed to marshal to JSON: {exc}") from exc


def format_value(value: Any) -> str:
    """Print rule: strings as-is, null as ``null``, everything else as indented JSON."""
    if isinstance(value, str):
        return value
    if value is None:
        return "null"
    try:
        return to_json(value, indent=2)
    except DSLRuntimeError:
        return str(value)


def length(value: Any) -> int:
    if isinstance(value, (str, list, dict)):
        return len(value)
    raise DSLRuntimeError(f"cannot get length of {type_name(value)}")


def iterate(value: Any) -> list[Any]:
    """Items visited by ``loop``: array elements, ``{key, value}`` pairs, or characters."""
    if isinstance(value, list):
        return list(value)
    if isinstance(value, dict):
        return [{"key": k, "value": v} for k, v in value.items()]
    if isinstance(value, str):
        return list(value)
    raise DSLRuntimeError(f"collection is not iterable: value is not iterable: {type_name(value)}")
