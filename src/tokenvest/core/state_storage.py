"""
Ledger state persistence.

Token and vesting ledger state live together in one JSON document so they can
never drift apart on disk:

    {
      "version": 1,
      "token": {...},
      "ledger": {...},
      "checksum": "<sha256 of the canonical token+ledger payload>"
    }

Writes go to a temporary file that is fsynced and then moved over the target,
so a crash leaves either the old or the new state, never a torn file.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

from tokenvest.core.constants import STATE_FORMAT_VERSION
from tokenvest.core.contracts.erc20 import ERC20Token
from tokenvest.core.exceptions import StateStorageError, VestingError

if TYPE_CHECKING:
    from tokenvest.vesting.vesting_ledger import VestingLedger

logger = logging.getLogger(__name__)


def _payload_checksum(payload: dict[str, Any]) -> str:
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class StateStorage:
    """Load and save a (token, vesting ledger) pair at ``path``."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def save(self, ledger: "VestingLedger") -> None:
        token = ledger.token
        if not isinstance(token, ERC20Token):
            raise StateStorageError("Only ERC20Token-backed ledgers can be persisted")

        payload = {"token": token.to_dict(), "ledger": ledger.to_dict()}
        document = {
            "version": STATE_FORMAT_VERSION,
            **payload,
            "checksum": _payload_checksum(payload),
        }
        self._atomic_write_json(document)
        logger.debug(
            "Vesting state saved",
            extra={"event": "state_storage.saved", "path": str(self.path), "grants": len(ledger.grants)},
        )

    def load(
        self,
        time_provider: Callable[[], int] | None = None,
    ) -> tuple[ERC20Token, "VestingLedger"]:
        """
        Read, verify and rebuild the token and ledger.

        Raises:
            StateStorageError: Missing/corrupt file, checksum mismatch or
                state that violates the ledger invariants
        """
        from tokenvest.vesting.vesting_ledger import VestingLedger

        if not self.path.exists():
            raise StateStorageError(f"State file {self.path} does not exist")

        try:
            with self.path.open("r", encoding="utf-8") as f:
                document = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise StateStorageError(f"Cannot read state file {self.path}: {exc}") from exc

        if not isinstance(document, dict):
            raise StateStorageError(f"State file {self.path} must contain an object")
        if document.get("version") != STATE_FORMAT_VERSION:
            raise StateStorageError(
                f"Unsupported state format version {document.get('version')!r}"
            )

        payload = {"token": document.get("token"), "ledger": document.get("ledger")}
        if document.get("checksum") != _payload_checksum(payload):
            logger.error(
                "State checksum mismatch",
                extra={"event": "state_storage.checksum_mismatch", "path": str(self.path)},
            )
            raise StateStorageError(f"State file {self.path} failed checksum verification")

        try:
            token = ERC20Token.from_dict(payload["token"])
            ledger = VestingLedger.from_dict(payload["ledger"], token, time_provider=time_provider)
        except (KeyError, TypeError, ValueError, VestingError) as exc:
            raise StateStorageError(f"State file {self.path} is malformed: {exc}") from exc

        try:
            ledger.check_invariants()
        except VestingError as exc:
            raise StateStorageError(f"Persisted state is inconsistent: {exc.message}") from exc

        return token, ledger

    def _atomic_write_json(self, payload: Any) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            with tmp.open("w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except OSError as exc:
            raise StateStorageError(f"Cannot write state file {self.path}: {exc}") from exc
