"""
Single-owner access control with a two-step ownership handoff.

The current owner proposes a successor with ``transfer_ownership``; control
only moves once the successor calls ``accept_ownership``. Until then the
proposal can be overwritten or cancelled by the owner.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

from tokenvest.core.address import normalize_address
from tokenvest.core.exceptions import UnauthorizedError

logger = logging.getLogger(__name__)


@dataclass
class OwnershipEvent:
    """Represents an ownership event."""

    event_type: str  # "OwnershipTransferStarted" or "OwnershipTransferred"
    previous_owner: str
    new_owner: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class Ownable:
    """
    Administrator record for one contract instance.

    Attributes:
        owner: Current administrator (lowercase)
        pending_owner: Proposed successor, empty when no handoff is in flight
        events: Ownership event log
    """

    owner: str
    pending_owner: str = ""
    events: list[OwnershipEvent] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.owner = normalize_address(self.owner, "owner")
        if self.pending_owner:
            self.pending_owner = normalize_address(self.pending_owner, "pending owner")

    # ==================== Checks ====================

    def is_owner(self, caller: str) -> bool:
        return isinstance(caller, str) and caller.lower() == self.owner

    def require_owner(self, caller: str) -> None:
        """Require caller is owner."""
        if not self.is_owner(caller):
            logger.warning(
                "Access denied: caller is not owner",
                extra={
                    "event": "ownable.access_denied",
                    "caller": str(caller)[:10],
                    "owner": self.owner[:10],
                },
            )
            raise UnauthorizedError(
                "Ownable: caller is not the owner",
                details={"caller": caller},
            )

    # ==================== Handoff ====================

    def transfer_ownership(self, caller: str, new_owner: str) -> bool:
        """Propose ``new_owner`` as successor (owner only)."""
        self.require_owner(caller)
        proposed = normalize_address(new_owner, "new owner")
        self.pending_owner = proposed
        self.events.append(
            OwnershipEvent("OwnershipTransferStarted", self.owner, proposed)
        )
        logger.info(
            "Ownership transfer started",
            extra={
                "event": "ownable.transfer_started",
                "owner": self.owner[:10],
                "pending_owner": proposed[:10],
            },
        )
        return True

    def cancel_ownership_transfer(self, caller: str) -> bool:
        """Withdraw a pending proposal (owner only)."""
        self.require_owner(caller)
        self.pending_owner = ""
        return True

    def accept_ownership(self, caller: str) -> bool:
        """Complete the handoff; only the pending owner may call."""
        if not self.pending_owner or not isinstance(caller, str) or caller.lower() != self.pending_owner:
            raise UnauthorizedError(
                "Ownable: caller is not the pending owner",
                details={"caller": caller},
            )
        previous = self.owner
        self.owner = self.pending_owner
        self.pending_owner = ""
        self.events.append(OwnershipEvent("OwnershipTransferred", previous, self.owner))
        logger.info(
            "Ownership transferred",
            extra={
                "event": "ownable.transferred",
                "previous_owner": previous[:10],
                "new_owner": self.owner[:10],
            },
        )
        return True

    # ==================== Serialization ====================

    def to_dict(self) -> dict:
        return {"owner": self.owner, "pending_owner": self.pending_owner}

    @classmethod
    def from_dict(cls, data: dict) -> "Ownable":
        return cls(owner=data["owner"], pending_owner=data.get("pending_owner", ""))
