"""
Checked unsigned arithmetic for token quantities and timestamps.

Python integers never wrap, so overflow has to be detected against the
declared domain explicitly. Every helper raises ArithmeticOverflowError
instead of returning an out-of-range value.
"""

from __future__ import annotations

from tokenvest.core.constants import UINT256_MAX
from tokenvest.core.exceptions import ArithmeticOverflowError


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def require_uint(value: object, name: str, bits: int = 256) -> int:
    """
    Validate that ``value`` is an unsigned integer of the given width.

    Raises:
        ArithmeticOverflowError: If the value is not an int or is out of range
    """
    if not _is_int(value):
        raise ArithmeticOverflowError(
            f"{name} must be an integer, got {type(value).__name__}",
            details={"field": name},
        )
    limit = 2**bits - 1
    if value < 0 or value > limit:
        raise ArithmeticOverflowError(
            f"{name} out of uint{bits} range: {value}",
            details={"field": name, "bits": bits},
        )
    return value


def checked_add(a: int, b: int, limit: int = UINT256_MAX) -> int:
    result = a + b
    if result > limit:
        raise ArithmeticOverflowError(
            "addition overflow", details={"a": a, "b": b}
        )
    return result


def checked_sub(a: int, b: int) -> int:
    if b > a:
        raise ArithmeticOverflowError(
            "subtraction underflow", details={"a": a, "b": b}
        )
    return a - b


def checked_mul(a: int, b: int, limit: int = UINT256_MAX) -> int:
    result = a * b
    if result > limit:
        raise ArithmeticOverflowError(
            "multiplication overflow", details={"a": a, "b": b}
        )
    return result


def checked_div(a: int, b: int) -> int:
    """Floor division; a zero divisor is reported as an arithmetic fault."""
    if b == 0:
        raise ArithmeticOverflowError("division by zero", details={"a": a})
    return a // b
