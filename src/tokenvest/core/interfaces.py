"""
Collaborator Protocol Interfaces - decoupling the vesting ledger from concrete contracts.

The ledger only needs a handful of calls from the token it custodies and from
whatever decides who the administrator is. Depending on these protocols keeps
it testable against stubs and lets any ERC20-shaped ledger be plugged in.

Usage:
    class VestingLedger:
        def __init__(self, token: TokenLedger, ownership: AccessGuard): ...
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class TokenLedger(Protocol):
    """
    Protocol for the fungible-token ledger of record.

    ``transfer`` moves ``amount`` from ``sender`` to ``recipient`` and returns
    True on success. Implementations may signal failure by returning False or
    by raising.
    """

    address: str

    def balance_of(self, account: str) -> int:
        """Get the token balance of an account."""
        ...

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """Transfer tokens from sender to recipient."""
        ...


@runtime_checkable
class AccessGuard(Protocol):
    """Protocol answering "is this caller the current administrator"."""

    @property
    def owner(self) -> str:
        """Current administrator address."""
        ...

    def is_owner(self, caller: str) -> bool:
        """Return True when caller is the current administrator."""
        ...
