"""
ERC20 Token Ledger.

In-memory fungible token compatible with the EIP-20 transfer model. It is the
ledger of record the vesting ledger custodies tokens in:
- Balance queries and transfers
- Owner-only minting (used to fund a vesting pool)
- Pause switch
- Transfer events

Security features:
- uint256 range checks on amounts and balances
- Zero address checks
- Balance underflow prevention
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict

from tokenvest.core.address import derive_contract_address, is_zero_address
from tokenvest.core.constants import UINT256_MAX, ZERO_ADDRESS
from tokenvest.core.exceptions import TokenError

logger = logging.getLogger(__name__)


@dataclass
class TokenEvent:
    """Represents an ERC20 event."""

    event_type: str  # "Transfer"
    from_address: str
    to_address: str
    value: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class ERC20Token:
    """
    ERC20 token with owner-controlled minting.

    All balances are kept in memory and can be persisted with ``to_dict``.
    Addresses are normalized to lowercase on every entry point.
    """

    # Token metadata
    name: str
    symbol: str
    decimals: int = 18
    total_supply: int = 0

    # Contract address
    address: str = ""

    # Owner (for minting permissions)
    owner: str = ""

    # State
    balances: dict[str, int] = field(default_factory=dict)
    events: list[TokenEvent] = field(default_factory=list)

    # Supply cap (0 = unlimited)
    max_supply: int = 0

    paused: bool = False

    def __post_init__(self) -> None:
        if not self.address:
            self.address = derive_contract_address(self.name, self.symbol)
        self.address = self._normalize(self.address)
        self.owner = self._normalize(self.owner)

    # ==================== View Functions ====================

    def balance_of(self, account: str) -> int:
        """
        Get the token balance of an account.

        Args:
            account: Address to check

        Returns:
            Token balance
        """
        return self.balances.get(self._normalize(account), 0)

    # ==================== State-Changing Functions ====================

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """
        Transfer tokens from sender to recipient.

        Args:
            sender: Address sending tokens (msg.sender)
            recipient: Address receiving tokens
            amount: Amount to transfer

        Returns:
            True if successful

        Raises:
            TokenError: If transfer fails
        """
        self._require_not_paused()
        sender_norm = self._normalize(sender)
        recipient_norm = self._normalize(recipient)

        self._validate_address(recipient_norm, "recipient")
        self._validate_amount(amount)

        sender_balance = self.balances.get(sender_norm, 0)
        if sender_balance < amount:
            raise TokenError(
                f"ERC20: transfer amount exceeds balance "
                f"({amount} > {sender_balance})"
            )

        self.balances[sender_norm] = sender_balance - amount
        self.balances[recipient_norm] = self.balances.get(recipient_norm, 0) + amount

        self._emit_transfer(sender_norm, recipient_norm, amount)

        logger.debug(
            "ERC20 transfer",
            extra={
                "event": "erc20.transfer",
                "token": self.symbol,
                "from": sender_norm[:10],
                "to": recipient_norm[:10],
                "amount": amount,
            }
        )

        return True

    def mint(self, minter: str, to: str, amount: int) -> bool:
        """
        Mint new tokens (owner only).

        Raises:
            TokenError: If minting fails
        """
        self._require_not_paused()
        self._require_owner(minter)

        to_norm = self._normalize(to)
        self._validate_address(to_norm, "recipient")
        self._validate_amount(amount)

        new_supply = self.total_supply + amount
        if new_supply > UINT256_MAX:
            raise TokenError("ERC20: total supply overflow")
        if self.max_supply > 0 and new_supply > self.max_supply:
            raise TokenError(
                f"ERC20: mint would exceed max supply "
                f"({new_supply} > {self.max_supply})"
            )

        self.total_supply = new_supply
        self.balances[to_norm] = self.balances.get(to_norm, 0) + amount

        # Emit transfer from zero address
        self._emit_transfer(ZERO_ADDRESS, to_norm, amount)

        logger.info(
            "ERC20 mint",
            extra={
                "event": "erc20.mint",
                "token": self.symbol,
                "to": to_norm[:10],
                "amount": amount,
                "new_supply": self.total_supply,
            }
        )

        return True

    # ==================== Admin Functions ====================

    def pause(self, caller: str) -> bool:
        """Pause token transfers (owner only)."""
        self._require_owner(caller)
        self.paused = True
        return True

    def unpause(self, caller: str) -> bool:
        """Unpause token transfers (owner only)."""
        self._require_owner(caller)
        self.paused = False
        return True

    # ==================== Helpers ====================

    def _normalize(self, address: str) -> str:
        """Normalize address to lowercase."""
        return address.lower() if isinstance(address, str) else ""

    def _validate_address(self, address: str, field: str) -> None:
        """Validate address is not zero."""
        if not address or is_zero_address(address):
            raise TokenError(f"ERC20: {field} is zero address")

    def _validate_amount(self, amount: int) -> None:
        """Validate amount is valid."""
        if not isinstance(amount, int) or isinstance(amount, bool):
            raise TokenError("ERC20: amount must be an integer")
        if amount < 0:
            raise TokenError("ERC20: amount cannot be negative")
        if amount > UINT256_MAX:
            raise TokenError("ERC20: amount exceeds uint256")

    def _require_owner(self, caller: str) -> None:
        """Require caller is owner."""
        if not self.owner or self._normalize(caller) != self.owner:
            raise TokenError("ERC20: caller is not owner")

    def _require_not_paused(self) -> None:
        """Require token is not paused."""
        if self.paused:
            raise TokenError("ERC20: token is paused")

    def _emit_transfer(self, from_addr: str, to_addr: str, amount: int) -> None:
        """Emit Transfer event."""
        self.events.append(
            TokenEvent(
                event_type="Transfer",
                from_address=from_addr,
                to_address=to_addr,
                value=amount,
            )
        )

    # ==================== Serialization ====================

    def to_dict(self) -> Dict[str, Any]:
        """Serialize token state to dictionary."""
        return {
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "total_supply": str(self.total_supply),
            "address": self.address,
            "owner": self.owner,
            # uint256 values do not survive every JSON consumer as numbers
            "balances": {k: str(v) for k, v in self.balances.items()},
            "max_supply": str(self.max_supply),
            "paused": self.paused,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ERC20Token":
        """Deserialize token state from dictionary."""
        token = cls(
            name=data["name"],
            symbol=data["symbol"],
            decimals=data.get("decimals", 18),
            total_supply=int(data.get("total_supply", 0)),
            address=data.get("address", ""),
            owner=data.get("owner", ""),
            max_supply=int(data.get("max_supply", 0)),
            paused=data.get("paused", False),
        )
        token.balances = {k: int(v) for k, v in data.get("balances", {}).items()}
        return token
