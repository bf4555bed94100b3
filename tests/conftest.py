"""
Test configuration and fixtures
"""
import sys
from pathlib import Path

# Add src to Python path
project_root = Path(__file__).parent.parent
src_path = project_root / "src"

sys.path.insert(0, str(src_path))

import pytest

from tokenvest.core.contracts.erc20 import ERC20Token
from tokenvest.vesting.vesting_ledger import VestingLedger

ADMIN = "0x" + "a1" * 20


class ManualClock:
    def __init__(self, start_time: int):
        self.current_time = start_time

    def now(self) -> int:
        return self.current_time

    def advance(self, seconds: int):
        self.current_time += seconds


@pytest.fixture
def clock():
    return ManualClock(start_time=0)


@pytest.fixture
def token():
    return ERC20Token(name="Vesting Token", symbol="VEST", owner=ADMIN)


@pytest.fixture
def make_ledger(token, clock):
    """Build a ledger funded with ``pool`` tokens."""

    def _make(pool: int = 10_000) -> VestingLedger:
        ledger = VestingLedger(token, ADMIN, time_provider=clock.now)
        if pool:
            token.mint(ADMIN, ledger.address, pool)
        return ledger

    return _make


@pytest.fixture
def ledger(make_ledger):
    return make_ledger()
