"""
Grant records and the per-holder grant store.

Each holder owns an ordered list of grants. Indices are only stable for the
duration of a single ledger operation: ``remove_at`` compacts the list, so a
caller that removes while scanning must walk from the highest index down.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Iterator

logger = logging.getLogger(__name__)


@dataclass
class Grant:
    """One vesting schedule awarded to one holder."""

    value: int
    start: int
    cliff: int
    end: int
    transferred: int = 0
    revokable: bool = False

    @property
    def outstanding(self) -> int:
        """Quantity still owed on this grant (``value - transferred``)."""
        return self.value - self.transferred

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["value"] = str(self.value)
        data["transferred"] = str(self.transferred)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Grant":
        return cls(
            value=int(data["value"]),
            start=int(data["start"]),
            cliff=int(data["cliff"]),
            end=int(data["end"]),
            transferred=int(data.get("transferred", 0)),
            revokable=bool(data.get("revokable", False)),
        )


class GrantStore:
    """Mapping from holder address to that holder's grants, in insertion order."""

    def __init__(self) -> None:
        self._grants: dict[str, list[Grant]] = {}

    def __len__(self) -> int:
        return sum(len(grants) for grants in self._grants.values())

    def __contains__(self, holder: str) -> bool:
        return bool(self._grants.get(holder))

    def holders(self) -> list[str]:
        return list(self._grants.keys())

    def grant_count(self, holder: str) -> int:
        return len(self._grants.get(holder, ()))

    def grants_of(self, holder: str) -> tuple[Grant, ...]:
        """Snapshot of the holder's grants; mutate through the store, not the tuple."""
        return tuple(self._grants.get(holder, ()))

    def get(self, holder: str, index: int) -> Grant:
        return self._grants[holder][index]

    def iter_all(self) -> Iterator[tuple[str, Grant]]:
        for holder, grants in self._grants.items():
            for grant in grants:
                yield holder, grant

    def append(self, holder: str, grant: Grant) -> int:
        """Add ``grant`` to the end of the holder's list and return its index."""
        grants = self._grants.setdefault(holder, [])
        grants.append(grant)
        return len(grants) - 1

    def remove_at(self, holder: str, index: int) -> None:
        """
        Remove the grant at ``index``, shifting later grants left.

        An out-of-range index is ignored. The holder's entry is dropped once
        it holds no grants.
        """
        grants = self._grants.get(holder)
        if not grants or not 0 <= index < len(grants):
            logger.debug(
                "Ignoring out-of-range grant removal",
                extra={"event": "grant_store.remove_ignored", "holder": holder[:10], "index": index},
            )
            return
        del grants[index]
        if not grants:
            del self._grants[holder]

    def mutate_transferred(self, holder: str, index: int, new_value: int) -> None:
        """Set ``transferred`` on one grant; the caller guarantees monotonicity and ``<= value``."""
        self._grants[holder][index].transferred = new_value

    def snapshot(self, holder: str) -> list[Grant]:
        """Detached copies of the holder's grants, for restoring after a failed operation."""
        return [Grant(**asdict(g)) for g in self._grants.get(holder, ())]

    def restore(self, holder: str, grants: list[Grant]) -> None:
        """Replace the holder's grants wholesale with a previous snapshot."""
        if grants:
            self._grants[holder] = list(grants)
        else:
            self._grants.pop(holder, None)

    def to_dict(self) -> dict[str, list[dict[str, Any]]]:
        return {
            holder: [grant.to_dict() for grant in grants]
            for holder, grants in self._grants.items()
            if grants
        }

    @classmethod
    def from_dict(cls, data: dict[str, list[dict[str, Any]]]) -> "GrantStore":
        store = cls()
        for holder, grants in data.items():
            for entry in grants:
                store.append(holder.lower(), Grant.from_dict(entry))
        return store
