"""
function_wrapper/utils/value_coercion.py

Numeric and string coercion helpers used by the result normalizer.

Handlers report `statusCode` in whatever shape their serializer produced:
an int, a float, or a string such as "503". These helpers turn those values
into the int / str the canonical response needs, and nothing else.

This module is pure: no logging, no I/O.
"""

from __future__ import annotations

import json
import math
import re
import sys
from typing import Any

from function_wrapper.adapter.exceptions import IntOverflowError, NotConvertibleError

_INT_MAX = sys.maxsize
_INT_MIN = -sys.maxsize - 1

# Same grammar as a strict base-10 integer parse: optional sign, digits only.
_NUMERIC_RE = re.compile(r"^[+-]?[0-9]+$")


def _check_range(value: Any, number: int) -> int:
    if number > _INT_MAX or number < _INT_MIN:
        raise IntOverflowError(value, f"value {value!r} is too large for int type")
    return number


def coerce_to_int(value: Any) -> int:
    """
    Convert an int, float or numeric string to a native int.

    - floats are truncated toward zero
    - bools are rejected (they are not numbers on the wire)

    Raises:
        NotConvertibleError: the value's type (or content) is not numeric.
        IntOverflowError: the value exceeds the native signed integer range.
    """
    if isinstance(value, bool):
        raise NotConvertibleError(value, "value is not convertible to int")

    if isinstance(value, int):
        return _check_range(value, value)

    if isinstance(value, float):
        if math.isnan(value):
            raise NotConvertibleError(value, "value is not convertible to int")
        if math.isinf(value):
            raise IntOverflowError(value, f"value {value!r} is too large for int type")
        return _check_range(value, int(value))

    if isinstance(value, str):
        if not _NUMERIC_RE.match(value):
            raise NotConvertibleError(value, f"invalid numeric string {value!r}")
        return _check_range(value, int(value))

    raise NotConvertibleError(value, "value is not convertible to int")


def coerce_to_string(value: Any) -> str:
    """
    Return text unchanged; JSON-encode anything else.

    Best effort: an unencodable value yields "" instead of raising,
    so callers must not rely on a non-empty result.
    """
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError):
        return ""
