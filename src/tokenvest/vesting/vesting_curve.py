"""
Piecewise-linear vesting curve.

Nothing vests before the cliff, everything vests at or after the end, and in
between the vested quantity grows linearly from ``start``. The product is
formed before the division so fractional units are only lost once, at the
final floor.
"""

from __future__ import annotations

from tokenvest.core.exceptions import InvalidInputError
from tokenvest.core.safe_math import checked_div, checked_mul, checked_sub
from tokenvest.vesting.grant_store import Grant


def vested_amount(grant: Grant, time: int) -> int:
    """
    Quantity of ``grant`` vested at ``time``, irrespective of what has been transferred.

    Raises:
        InvalidInputError: If time is not a non-negative integer
        ArithmeticOverflowError: If the interpolation leaves the uint256 domain
    """
    if not isinstance(time, int) or isinstance(time, bool) or time < 0:
        raise InvalidInputError(f"time must be an unsigned integer, got {time!r}")

    if time < grant.cliff:
        return 0
    # Checked before interpolating so start == cliff == end never divides by zero
    if time >= grant.end:
        return grant.value

    elapsed = checked_sub(time, grant.start)
    duration = checked_sub(grant.end, grant.start)
    return checked_div(checked_mul(grant.value, elapsed), duration)


def releasable_amount(grant: Grant, time: int) -> int:
    """
    Vested but not yet transferred quantity of ``grant`` at ``time``.

    A ``time`` earlier than the last settlement yields 0, never a negative delta.
    """
    vested = vested_amount(grant, time)
    if vested <= grant.transferred:
        return 0
    return checked_sub(vested, grant.transferred)
