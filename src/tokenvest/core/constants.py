"""
Numeric and address constants shared by the ledger, token and CLI.
"""

from __future__ import annotations

# Integer domains (Solidity-compatible widths)
UINT256_MAX: int = 2**256 - 1
UINT64_MAX: int = 2**64 - 1

# Address format
ADDRESS_PREFIX = "0x"
ADDRESS_HEX_LENGTH = 40
ZERO_ADDRESS = ADDRESS_PREFIX + "0" * ADDRESS_HEX_LENGTH

# Token defaults
DEFAULT_TOKEN_DECIMALS = 18

# Notification names emitted by the vesting ledger
EVENT_NEW_GRANT = "NewGrant"
EVENT_UNLOCK = "Unlock"
EVENT_REVOKE = "Revoke"

STATE_FORMAT_VERSION = 1
