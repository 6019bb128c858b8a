"""Runtime values: nil is ``None``, booleans, numbers (floats) and strings."""

from __future__ import annotations

import math
from decimal import Decimal
from typing import Union

Value = Union[None, bool, float, str]


def is_number(value: object) -> bool:
    """True for numeric values (booleans are not numbers)."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_string(value: object) -> bool:
    """True for string values."""
    return isinstance(value, str)


def is_falsey(value: object) -> bool:
    """Only nil and false are falsey."""
    return value is None or value is False


def values_equal(a: object, b: object) -> bool:
    """Equality that never mixes kinds: ``true`` is not ``1``."""
    if is_number(a) and is_number(b):
        return float(a) == float(b)  # type: ignore[arg-type]
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    return type(a) is type(b) and a == b


def _format_number(number: float) -> str:
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "inf" if number > 0 else "-inf"
    exact = Decimal(repr(number))
    if exact == exact.to_integral_value():
        if number == 0 and math.copysign(1.0, number) < 0:
            return "-0"
        return str(int(exact))
    return format(exact, "f")


def format_value(value: object) -> str:
    """Render a value the way ``print`` shows it."""
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return _format_number(float(value))  # type: ignore[arg-type]
    if isinstance(value, str):
        return value
    raise TypeError(f"not a Lox value: {value!r}")