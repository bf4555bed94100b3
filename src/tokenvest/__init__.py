"""
tokenvest - Token Vesting Ledger

Schedule-based release of a fixed pool of fungible tokens to many holders:
- Cliff + linear vesting grants, several per holder
- Selective revocation of revokable grants by the administrator
- Holder-driven settlement of vested, not yet transferred tokens
- ERC20-style token ledger and single-owner access control collaborators
"""

__version__ = "0.1.0"
