from __future__ import annotations

"""
Account addresses - EIP-55 mixed-case checksums and normalization.

Address Format:
- Raw:      0x7a8b9c0d1e2f3a4b5c6d7e8f9a0b1c2d3e4f5a6b
- Checksum: 0x7A8b9C0d1E2f3A4b5C6D7e8F9a0B1c2D3e4F5A6b

Ledger state is keyed by the lowercase form; the checksummed form is only
used for display.
"""

import hashlib
import re
import time

from Crypto.Hash import keccak

from tokenvest.core.constants import ADDRESS_HEX_LENGTH, ADDRESS_PREFIX, ZERO_ADDRESS
from tokenvest.core.exceptions import InvalidInputError

_HEX_RE = re.compile(r"[0-9a-fA-F]+")


def _keccak256(data: bytes) -> bytes:
    """Compute keccak256 hash (same as Ethereum)."""
    k = keccak.new(digest_bits=256)
    k.update(data)
    return k.digest()


def _split(address: str) -> str:
    if not isinstance(address, str) or not address.lower().startswith(ADDRESS_PREFIX):
        raise ValueError(f"Address must start with {ADDRESS_PREFIX}")
    return address[len(ADDRESS_PREFIX):]


def to_checksum_address(address: str) -> str:
    """
    Convert an address to checksummed format (EIP-55).

    Raises:
        ValueError: If address format is invalid

    Example:
        >>> to_checksum_address("0x5aaeb6053f3e94c9b9a09f33669435e7ef1beaed")
        '0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed'
    """
    hex_part = _split(address)
    hex_lower = hex_part.lower()
    if len(hex_lower) != ADDRESS_HEX_LENGTH:
        raise ValueError(
            f"Address hex part must be {ADDRESS_HEX_LENGTH} characters, got {len(hex_lower)}"
        )

    if not _HEX_RE.fullmatch(hex_lower):
        raise ValueError(f"Invalid hex characters in address: {hex_part}")

    address_hash = _keccak256(hex_lower.encode("utf-8")).hex()

    checksummed = []
    for i, char in enumerate(hex_lower):
        if char in "0123456789":
            checksummed.append(char)
        elif int(address_hash[i], 16) >= 8:
            checksummed.append(char.upper())
        else:
            checksummed.append(char.lower())

    return ADDRESS_PREFIX + "".join(checksummed)


def is_checksum_valid(address: str) -> bool:
    """
    Verify if address has valid checksum.

    All-lowercase and all-uppercase addresses carry no checksum and are valid.
    """
    try:
        hex_part = _split(address)
    except ValueError:
        return False

    if hex_part == hex_part.lower() or hex_part == hex_part.upper():
        return True

    try:
        return address == to_checksum_address(address)
    except ValueError:
        return False


def validate_address(address: str) -> tuple[bool, str]:
    """
    Validate address format and, for mixed-case input, its checksum.

    Returns:
        Tuple of (is_valid, error_message or checksummed_address)
    """
    try:
        hex_part = _split(address)
    except ValueError as exc:
        return False, str(exc)

    if len(hex_part) != ADDRESS_HEX_LENGTH:
        return False, f"Address must be {len(ADDRESS_PREFIX) + ADDRESS_HEX_LENGTH} characters"

    if not _HEX_RE.fullmatch(hex_part):
        return False, "Address contains invalid hex characters"

    if not is_checksum_valid(address):
        expected = to_checksum_address(ADDRESS_PREFIX + hex_part.lower())
        return False, f"Invalid checksum. Did you mean {expected}?"

    return True, to_checksum_address(address)


def is_valid_address(address: str) -> bool:
    """Return True for a well-formed address (``0x`` + 40 hex) with a valid checksum."""
    return validate_address(address)[0]


def is_zero_address(address: str) -> bool:
    return isinstance(address, str) and address.lower() == ZERO_ADDRESS


def normalize_address(address: str, field: str = "address") -> str:
    """
    Validate an address and return its lowercase storage form.

    Raises:
        InvalidInputError: If the address is malformed or the zero address
    """
    is_valid, result = validate_address(address)
    if not is_valid:
        raise InvalidInputError(f"Invalid {field}: {result}", details={"field": field})
    normalized = result.lower()
    if normalized == ZERO_ADDRESS:
        raise InvalidInputError(f"{field} is zero address", details={"field": field})
    return normalized


def derive_contract_address(*seed: object) -> str:
    """Derive a contract address by hashing a seed together with the current time."""
    addr_input = "".join(str(part) for part in seed) + str(time.time())
    addr_hash = hashlib.sha3_256(addr_input.encode()).digest()
    return f"{ADDRESS_PREFIX}{addr_hash[-20:].hex()}"
