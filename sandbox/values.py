"""
Structural comparison and display serialization for JSON-like values.

Values crossing the sandbox boundary are normalized onto the variant
Null | Bool | Number | String | Sequence | Mapping before comparison.
"""

from __future__ import annotations

import json
import math


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_scalar(value: object) -> bool:
    return value is None or isinstance(value, (bool, int, float, str))


def _same_number(a: int | float, b: int | float) -> bool:
    a_nan = isinstance(a, float) and math.isnan(a)
    b_nan = isinstance(b, float) and math.isnan(b)
    if a_nan or b_nan:
        return a_nan and b_nan
    if a == 0 and b == 0:
        # 0.0 and -0.0 are different values here
        return math.copysign(1.0, a) == math.copysign(1.0, b)
    return a == b


def _same_scalar(a: object, b: object) -> bool:
    if a is None or b is None:
        return a is b
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if _is_number(a) and _is_number(b):
        return _same_number(a, b)  # type: ignore[arg-type]
    if isinstance(a, str) and isinstance(b, str):
        return a == b
    return False


def _deep_equal(a: object, b: object) -> bool:
    if a is b:
        return True
    if _is_scalar(a) or _is_scalar(b):
        return _is_scalar(a) and _is_scalar(b) and _same_scalar(a, b)

    a_seq = isinstance(a, (list, tuple))
    b_seq = isinstance(b, (list, tuple))
    if a_seq and b_seq:
        if len(a) != len(b):  # type: ignore[arg-type]
            return False
        return all(_deep_equal(x, y) for x, y in zip(a, b))  # type: ignore[call-overload]
    if a_seq or b_seq:
        return False

    if isinstance(a, dict) and isinstance(b, dict):
        if a.keys() != b.keys():
            return False
        return all(_deep_equal(a[key], b[key]) for key in a)

    return False


def deep_equal(a: object, b: object) -> bool:
    """
    Compare two values structurally.

    Scalars compare by tag and value: booleans never equal numbers, ints and
    floats share one numeric tag, NaN equals NaN and signed zeros differ.
    Lists and tuples compare positionally, dicts by key set (order ignored)
    and per-key value. Anything else is only equal to itself.

    Never raises; structures too deep to walk, and user values whose
    comparison raises, compare unequal.
    """
    try:
        return _deep_equal(a, b)
    except Exception:  # noqa: BLE001 - includes RecursionError and user __eq__ errors
        return False


def serialize_value(value: object) -> str:
    """Render a value for diagnostics: strings as-is, else compact JSON, else str()."""
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError, RecursionError):
        pass
    try:
        return str(value)
    except Exception:  # noqa: BLE001 - user objects may raise from __str__
        return f"<{type(value).__name__}>"
