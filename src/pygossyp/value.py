from __future__ import annotations

import copy
import json
import math
from typing import Any, Dict, List, Union

# JSON data is the only currency between tools.
Value = Union[None, bool, int, float, str, List[Any], Dict[str, Any]]

# Ordering between values of different types
_TYPE_RANK = {
    "array": 0,
    "boolean": 1,
    "null": 2,
    "number": 3,
    "object": 4,
    "string": 5,
}


def type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def is_value(obj: Any) -> bool:
    """True when obj is made only of JSON types (finite numbers, string keys)."""
    if obj is None or isinstance(obj, (bool, str, int)):
        return True
    if isinstance(obj, float):
        return math.isfinite(obj)
    if isinstance(obj, list):
        return all(is_value(x) for x in obj)
    if isinstance(obj, dict):
        return all(isinstance(k, str) and is_value(v) for k, v in obj.items())
    return False


def values_equal(a: Value, b: Value) -> bool:
    """Structural equality.

    Python's own == treats True as 1, which JSON does not, so booleans are
    compared by type first.
    """
    ta, tb = type_name(a), type_name(b)
    if ta != tb:
        return False
    if ta == "array":
        return len(a) == len(b) and all(values_equal(x, y) for x, y in zip(a, b))
    if ta == "object":
        if a.keys() != b.keys():
            return False
        return all(values_equal(a[k], b[k]) for k in a)
    return a == b


def _cmp(x: Any, y: Any) -> int:
    if x < y:
        return -1
    if x > y:
        return 1
    return 0


def compare_values(a: Value, b: Value) -> int:
    """Total order over values: -1, 0 or 1.

    Different types order as array < boolean < null < number < object < string.
    Arrays and objects compare by size first, then element by element (objects
    by sorted key, then by value).
    """
    ta, tb = type_name(a), type_name(b)
    if ta != tb:
        return _cmp(_TYPE_RANK[ta], _TYPE_RANK[tb])

    if ta == "array":
        if len(a) != len(b):
            return _cmp(len(a), len(b))
        for x, y in zip(a, b):
            c = compare_values(x, y)
            if c != 0:
                return c
        return 0

    if ta == "object":
        if len(a) != len(b):
            return _cmp(len(a), len(b))
        for ka, kb in zip(sorted(a), sorted(b)):
            if ka != kb:
                return _cmp(ka, kb)
            c = compare_values(a[ka], b[kb])
            if c != 0:
                return c
        return 0

    if ta == "null":
        return 0
    return _cmp(a, b)


def copy_value(value: Value) -> Value:
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    return copy.deepcopy(value)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not a valid JSON number")


def loads(text: str | bytes) -> Value:
    """Parse JSON text; failures are reported as InvalidInput."""
    from .errors import invalid_input

    if isinstance(text, bytes):
        text = text.decode("utf-8")
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except ValueError as e:
        raise invalid_input("invalid JSON", description=str(e)) from e
    except RecursionError as e:
        raise invalid_input("JSON nested too deeply") from e


def dumps(value: Value, *, pretty: bool = False) -> str:
    if pretty:
        return json.dumps(value, ensure_ascii=False, allow_nan=False, indent=2)
    return json.dumps(value, ensure_ascii=False, allow_nan=False)
