"""
Vesting-specific exception hierarchy for tokenvest.

Provides typed exceptions for ledger operations so callers can tell a bad
argument from a missing permission, an exhausted pool, an arithmetic fault
or a failed token transfer.
"""

from __future__ import annotations
from typing import Optional, Any, Dict


class VestingError(Exception):
    """Base exception for all vesting ledger errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
        recoverable: Whether resubmitting the call may succeed
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable


# ==================== Call Errors ====================


class InvalidInputError(VestingError):
    """Raised for a zero/invalid holder address, a zero value or inconsistent dates."""
    pass


class InsufficientPoolError(VestingError):
    """Raised when a new grant would push total vesting above the ledger's custody."""

    def __init__(
        self,
        message: str,
        required: Optional[int] = None,
        available: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.required = required
        self.available = available


class UnauthorizedError(VestingError):
    """Raised when a privileged call does not come from the administrator."""
    pass


class ArithmeticOverflowError(VestingError):
    """Raised when a quantity computation leaves the unsigned integer domain."""
    pass


class TransferFailureError(VestingError):
    """Raised when the token ledger declines a settlement or refund transfer."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, recoverable: bool = True) -> None:
        super().__init__(message, details=details, recoverable=recoverable)


# ==================== Collaborator Errors ====================


class TokenError(VestingError):
    """Raised by the token ledger (zero address, balance exceeded, paused)."""
    pass


class StateStorageError(VestingError):
    """Raised when persisted ledger state cannot be read, verified or written."""
    pass
