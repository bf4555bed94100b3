"""
Contract collaborators used by the vesting ledger.

- ERC20: fungible token ledger of record
- Ownable: single-owner access control with two-step handoff
"""

from .erc20 import ERC20Token, TokenEvent
from .ownable import Ownable, OwnershipEvent

__all__ = [
    "ERC20Token",
    "TokenEvent",
    "Ownable",
    "OwnershipEvent",
]
