"""Loose value comparison.

Two values that both look like numbers compare by numeric value, so a
column read back as ``"10"`` equals an integer ``10``. Everything else
compares strictly: same type and equal, so ``"10"`` and ``"10 "`` differ.
"""

from __future__ import annotations

import math
import re
from decimal import Decimal, InvalidOperation
from typing import Any

_NUMERIC_STRING = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")


def is_numeric(value: Any) -> bool:
    """Return True if *value* is a number or a plain numeric string."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, float):
        return math.isfinite(value)
    if isinstance(value, Decimal):
        return value.is_finite()
    if isinstance(value, str):
        return _NUMERIC_STRING.match(value) is not None
    return False


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, float):
        return Decimal(repr(value))
    try:
        return Decimal(value)
    except InvalidOperation:  # pragma: no cover - guarded by is_numeric
        raise ValueError(f"Not a numeric value: {value!r}") from None


def loosely_equal(a: Any, b: Any) -> bool:
    """Compare numerically when both sides are numeric, strictly otherwise."""
    if is_numeric(a) and is_numeric(b):
        return _to_decimal(a) == _to_decimal(b)
    return type(a) is type(b) and a == b


def identity_value(value: Any) -> Any:
    """Canonical hashable form of a key value.

    Loosely-equal numerics map to the same canonical value.
    """
    if is_numeric(value):
        number = _to_decimal(value).normalize()
        if number == number.to_integral_value():
            return int(number)
        return number
    return value
