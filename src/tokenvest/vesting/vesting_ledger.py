"""
Vesting Ledger - grants, revocation and settlement against a token ledger.

The ledger custodies a pool of tokens at its own address on the token ledger
and promises parts of it to holders through grants. ``total_vesting`` is the
outstanding liability (sum of ``value - transferred`` over live grants) and
never exceeds the tokens actually held.

Every mutating call is atomic: the affected holder's grants and the liability
total are snapshotted on entry and restored if anything raises, including a
declined token transfer. Notifications are only recorded for calls that
complete.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from typing import Any, Callable, Iterator

from tokenvest.core.address import derive_contract_address, normalize_address
from tokenvest.core.constants import (
    EVENT_NEW_GRANT,
    EVENT_REVOKE,
    EVENT_UNLOCK,
    UINT64_MAX,
)
from tokenvest.core.contracts.ownable import Ownable
from tokenvest.core.exceptions import (
    InsufficientPoolError,
    InvalidInputError,
    TransferFailureError,
    UnauthorizedError,
    VestingError,
)
from tokenvest.core.interfaces import AccessGuard, TokenLedger
from tokenvest.core.safe_math import checked_add, checked_sub, require_uint
from tokenvest.vesting.grant_store import Grant, GrantStore
from tokenvest.vesting.vesting_curve import releasable_amount, vested_amount

logger = logging.getLogger(__name__)


@dataclass
class VestingEvent:
    """
    Notification emitted by a successful ledger call.

    ``NewGrant`` carries (administrator, holder, amount), ``Unlock`` and
    ``Revoke`` carry (holder, amount).
    """

    event_type: str
    holder: str
    amount: int
    administrator: str = ""
    timestamp: int = 0

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["amount"] = str(self.amount)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VestingEvent":
        return cls(
            event_type=data["event_type"],
            holder=data["holder"],
            amount=int(data["amount"]),
            administrator=data.get("administrator", ""),
            timestamp=int(data.get("timestamp", 0)),
        )


def _require_timestamp(value: object, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= UINT64_MAX:
        raise InvalidInputError(
            f"{name} must be a uint64 timestamp, got {value!r}",
            details={"field": name},
        )
    return value


class VestingLedger:
    """
    Grant ledger for one token pool and one administrator.

    Args:
        token: Token ledger holding the pool at ``address``
        admin: Administrator address, or an access guard deciding who it is
        address: Ledger address on the token ledger (derived when omitted)
        time_provider: Clock used when a call does not pass ``current_time``
    """

    def __init__(
        self,
        token: TokenLedger,
        admin: str | AccessGuard,
        address: str = "",
        time_provider: Callable[[], int] | None = None,
    ) -> None:
        self.token = token
        self.ownership: AccessGuard = Ownable(admin) if isinstance(admin, str) else admin
        if address:
            self.address = normalize_address(address, "ledger address")
        else:
            self.address = derive_contract_address("vesting", token.address)
        self.grants = GrantStore()
        self.total_vesting = 0
        self.events: list[VestingEvent] = []
        self._time_provider = time_provider or (lambda: int(time.time()))
        logger.info(
            "VestingLedger initialized",
            extra={
                "event": "vesting.initialized",
                "address": self.address[:10],
                "administrator": self.administrator[:10],
                "deterministic_clock": bool(time_provider),
            },
        )

    # ==================== Administration ====================

    @property
    def administrator(self) -> str:
        return self.ownership.owner

    def _require_admin(self, caller: str) -> None:
        if isinstance(self.ownership, Ownable):
            self.ownership.require_owner(caller)
        elif not self.ownership.is_owner(caller):
            raise UnauthorizedError("caller is not the administrator", details={"caller": caller})

    def _require_ownable(self) -> Ownable:
        if not isinstance(self.ownership, Ownable):
            raise VestingError("Access guard does not support ownership handoff")
        return self.ownership

    def transfer_ownership(self, caller: str, new_admin: str) -> bool:
        """Propose a new administrator; effective once they accept."""
        return self._require_ownable().transfer_ownership(caller, new_admin)

    def accept_ownership(self, caller: str) -> bool:
        return self._require_ownable().accept_ownership(caller)

    def cancel_ownership_transfer(self, caller: str) -> bool:
        return self._require_ownable().cancel_ownership_transfer(caller)

    # ==================== Helpers ====================

    def _current_time(self, current_time: int | None = None) -> int:
        if current_time is None:
            timestamp = self._time_provider()
            try:
                current_time = int(timestamp)
            except (TypeError, ValueError) as exc:
                raise ValueError("time_provider must return an integer timestamp") from exc
        return _require_timestamp(current_time, "current_time")

    @contextmanager
    def _transaction(self, holder: str, operation: str) -> Iterator[None]:
        grants_before = self.grants.snapshot(holder)
        total_before = self.total_vesting
        try:
            yield
        except Exception:
            self.grants.restore(holder, grants_before)
            self.total_vesting = total_before
            logger.warning(
                "Vesting %s rolled back",
                operation,
                extra={"event": f"vesting.{operation}_rolled_back", "holder": holder[:10]},
            )
            raise

    def _transfer_out(self, recipient: str, amount: int) -> None:
        try:
            ok = self.token.transfer(self.address, recipient, amount)
        except Exception as exc:
            raise TransferFailureError(
                f"Token transfer of {amount} to {recipient} failed: {exc}",
                details={"recipient": recipient, "amount": amount},
            ) from exc
        if not ok:
            raise TransferFailureError(
                f"Token transfer of {amount} to {recipient} was declined",
                details={"recipient": recipient, "amount": amount},
            )

    def _emit(self, event: VestingEvent) -> None:
        self.events.append(event)

    # ==================== Operations ====================

    def grant(
        self,
        caller: str,
        holder: str,
        value: int,
        start: int,
        cliff: int,
        end: int,
        revokable: bool = False,
        current_time: int | None = None,
    ) -> int:
        """
        Award ``value`` tokens to ``holder`` vesting between ``start`` and ``end``.

        Args:
            caller: Must be the administrator
            holder: Recipient address
            value: Total quantity awarded (> 0)
            start, cliff, end: Timestamps with ``start <= cliff <= end``
            revokable: Whether the administrator may later reclaim the remainder
            current_time: Transaction timestamp recorded on the notification

        Returns:
            Index of the new grant in the holder's list

        Raises:
            UnauthorizedError: Caller is not the administrator
            InvalidInputError: Bad holder, zero value or inconsistent dates
            InsufficientPoolError: The pool cannot cover the new liability
        """
        self._require_admin(caller)
        holder_norm = normalize_address(holder, "holder")
        now = self._current_time(current_time)

        if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            raise InvalidInputError("Grant value must be a positive integer", details={"value": value})
        require_uint(value, "value")

        start = _require_timestamp(start, "start")
        cliff = _require_timestamp(cliff, "cliff")
        end = _require_timestamp(end, "end")
        if start > cliff or cliff > end:
            raise InvalidInputError(
                "Grant dates must satisfy start <= cliff <= end",
                details={"start": start, "cliff": cliff, "end": end},
            )

        new_total = checked_add(self.total_vesting, value)
        available = self.token.balance_of(self.address)
        if new_total > available:
            raise InsufficientPoolError(
                f"Grant of {value} exceeds unallocated pool "
                f"({new_total} > {available})",
                required=new_total,
                available=available,
            )

        with self._transaction(holder_norm, "grant"):
            index = self.grants.append(
                holder_norm,
                Grant(value=value, start=start, cliff=cliff, end=end, revokable=bool(revokable)),
            )
            self.total_vesting = new_total

        self._emit(
            VestingEvent(
                event_type=EVENT_NEW_GRANT,
                holder=holder_norm,
                amount=value,
                administrator=self.administrator,
                timestamp=now,
            )
        )
        logger.info(
            "Vesting grant created",
            extra={
                "event": "vesting.new_grant",
                "holder": holder_norm[:10],
                "value": value,
                "start": start,
                "cliff": cliff,
                "end": end,
                "revokable": bool(revokable),
                "total_vesting": self.total_vesting,
            },
        )
        return index

    def revoke(self, caller: str, holder: str, current_time: int | None = None) -> int:
        """
        Cancel every revokable grant of ``holder`` and refund the administrator.

        Non-revokable grants are left exactly as they are. The refund of each
        revoked grant is its full ``value - transferred``.

        Returns:
            Total quantity returned to the administrator
        """
        self._require_admin(caller)
        holder_norm = normalize_address(holder, "holder")
        now = self._current_time(current_time)
        total_refund = 0
        revoked = 0

        with self._transaction(holder_norm, "revoke"):
            # Highest index first: remove_at compacts everything after the index
            for index in range(self.grants.grant_count(holder_norm) - 1, -1, -1):
                grant = self.grants.get(holder_norm, index)
                if not grant.revokable:
                    continue
                refund = checked_sub(grant.value, grant.transferred)
                total_refund = checked_add(total_refund, refund)
                self.total_vesting = checked_sub(self.total_vesting, refund)
                self.grants.remove_at(holder_norm, index)
                revoked += 1

            if total_refund > 0:
                self._transfer_out(self.administrator, total_refund)

        self._emit(
            VestingEvent(
                event_type=EVENT_REVOKE,
                holder=holder_norm,
                amount=total_refund,
                timestamp=now,
            )
        )
        logger.info(
            "Vesting grants revoked",
            extra={
                "event": "vesting.revoke",
                "holder": holder_norm[:10],
                "revoked_grants": revoked,
                "refund": total_refund,
                "total_vesting": self.total_vesting,
            },
        )
        return total_refund

    def vested_tokens(self, holder: str, time: int) -> tuple[int, int]:
        """
        Total quantity vested by the curve across ``holder``'s grants at ``time``.

        Not reduced by what has already been transferred.

        Returns:
            (total_vested, grant_count)
        """
        grants = self.grants.grants_of(holder.lower())
        total = 0
        for grant in grants:
            total = checked_add(total, vested_amount(grant, time))
        return total, len(grants)

    def releasable_amount(self, holder: str, time: int) -> int:
        """Quantity ``unlock_vested_tokens`` would transfer to ``holder`` at ``time``."""
        total = 0
        for grant in self.grants.grants_of(holder.lower()):
            total = checked_add(total, releasable_amount(grant, time))
        return total

    def unlock_vested_tokens(self, caller: str, current_time: int | None = None) -> int:
        """
        Settle the caller's vested, not yet transferred tokens.

        Nothing vested yet, or nothing new since the last settlement, is a
        silent no-op: no transfer, no notification, returns 0.

        Returns:
            Quantity transferred to the caller
        """
        holder = normalize_address(caller, "caller")
        now = self._current_time(current_time)
        grants = self.grants.grants_of(holder)

        vested: list[int] = []
        total_vested = 0
        for grant in grants:
            amount = vested_amount(grant, now)
            vested.append(amount)
            total_vested = checked_add(total_vested, amount)
        if total_vested == 0:
            return 0

        # Each delta comes from its own grant's transferred value
        deltas = [releasable_amount(grant, now) for grant in grants]
        transferable = 0
        for delta in deltas:
            transferable = checked_add(transferable, delta)
        if transferable == 0:
            return 0

        with self._transaction(holder, "unlock"):
            for index, (amount, delta) in enumerate(zip(vested, deltas)):
                if delta == 0:
                    continue
                self.grants.mutate_transferred(holder, index, amount)
                self.total_vesting = checked_sub(self.total_vesting, delta)
            self._transfer_out(holder, transferable)

        self._emit(
            VestingEvent(
                event_type=EVENT_UNLOCK,
                holder=holder,
                amount=transferable,
                timestamp=now,
            )
        )
        logger.info(
            "Vested tokens unlocked",
            extra={
                "event": "vesting.unlock",
                "holder": holder[:10],
                "amount": transferable,
                "total_vesting": self.total_vesting,
            },
        )
        return transferable

    # ==================== Inspection ====================

    def grant_schedule(self, holder: str, time: int | None = None) -> list[dict[str, Any]]:
        """Holder's grants as dicts, with vested/releasable figures at ``time``."""
        at = self._current_time(time)
        schedule = []
        for index, grant in enumerate(self.grants.grants_of(holder.lower())):
            entry = asdict(grant)
            entry["index"] = index
            entry["vested"] = vested_amount(grant, at)
            entry["releasable"] = releasable_amount(grant, at)
            schedule.append(entry)
        return schedule

    def check_invariants(self) -> bool:
        """
        Verify the per-grant, conservation and custody invariants.

        Raises:
            VestingError: Describing the first violated invariant
        """
        outstanding = 0
        for holder, grant in self.grants.iter_all():
            if not grant.start <= grant.cliff <= grant.end:
                raise VestingError(f"Grant of {holder} has inconsistent dates", details=asdict(grant))
            if not 0 <= grant.transferred <= grant.value:
                raise VestingError(f"Grant of {holder} over-transferred", details=asdict(grant))
            outstanding += grant.outstanding

        if outstanding != self.total_vesting:
            raise VestingError(
                f"total_vesting {self.total_vesting} != outstanding grants {outstanding}",
                details={"total_vesting": self.total_vesting, "outstanding": outstanding},
            )
        custody = self.token.balance_of(self.address)
        if self.total_vesting > custody:
            raise VestingError(
                f"total_vesting {self.total_vesting} exceeds custody {custody}",
                details={"total_vesting": self.total_vesting, "custody": custody},
            )
        return True

    def summary(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "administrator": self.administrator,
            "pending_administrator": getattr(self.ownership, "pending_owner", ""),
            "total_vesting": self.total_vesting,
            "custody": self.token.balance_of(self.address),
            "holders": len(self.grants.holders()),
            "grants": len(self.grants),
        }

    # ==================== Serialization ====================

    def to_dict(self) -> dict[str, Any]:
        if isinstance(self.ownership, Ownable):
            ownership = self.ownership.to_dict()
        else:
            ownership = {"owner": self.administrator}
        return {
            "address": self.address,
            "ownership": ownership,
            "total_vesting": str(self.total_vesting),
            "grants": self.grants.to_dict(),
            "events": [event.to_dict() for event in self.events],
        }

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        token: TokenLedger,
        time_provider: Callable[[], int] | None = None,
    ) -> "VestingLedger":
        ledger = cls(
            token,
            Ownable.from_dict(data["ownership"]),
            address=data["address"],
            time_provider=time_provider,
        )
        ledger.grants = GrantStore.from_dict(data.get("grants", {}))
        ledger.total_vesting = int(data.get("total_vesting", 0))
        ledger.events = [VestingEvent.from_dict(e) for e in data.get("events", [])]
        return ledger
