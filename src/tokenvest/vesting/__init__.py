"""
Vesting Module

- Grant records and the per-holder grant store
- Piecewise-linear (cliff + linear) vesting curve
- Vesting ledger orchestrating grant, revoke, vested_tokens and unlock
"""

from .grant_store import Grant, GrantStore
from .vesting_curve import releasable_amount, vested_amount
from .vesting_ledger import VestingEvent, VestingLedger

__all__ = [
    "Grant",
    "GrantStore",
    "VestingEvent",
    "VestingLedger",
    "releasable_amount",
    "vested_amount",
]
