import pytest

from tokenvest.core.constants import EVENT_NEW_GRANT, EVENT_REVOKE, EVENT_UNLOCK, UINT64_MAX
from tokenvest.core.contracts.erc20 import ERC20Token
from tokenvest.core.exceptions import (
    ArithmeticOverflowError,
    InsufficientPoolError,
    InvalidInputError,
    TransferFailureError,
    UnauthorizedError,
    VestingError,
)
from tokenvest.core.interfaces import TokenLedger
from tokenvest.vesting.vesting_ledger import VestingLedger

ADMIN = "0x" + "a1" * 20
HOLDER = "0x" + "b2" * 20
OTHER = "0x" + "c3" * 20
NEW_ADMIN = "0x" + "d4" * 20


class RecordingToken:
    """Token ledger stub that records transfer calls and can decline them."""

    def __init__(self):
        self.address = "0x" + "ee" * 20
        self.balances = {}
        self.transfers = []
        self.accept = True

    def balance_of(self, account):
        return self.balances.get(account.lower(), 0)

    def transfer(self, sender, recipient, amount):
        self.transfers.append((sender, recipient, amount))
        if not self.accept:
            return False
        self.balances[sender] = self.balances.get(sender, 0) - amount
        self.balances[recipient] = self.balances.get(recipient, 0) + amount
        return True


class FixedGuard:
    def __init__(self, owner):
        self._owner = owner

    @property
    def owner(self):
        return self._owner

    def is_owner(self, caller):
        return caller.lower() == self._owner


@pytest.fixture
def stub_ledger(clock):
    token = RecordingToken()
    ledger = VestingLedger(token, ADMIN, time_provider=clock.now)
    token.balances[ledger.address] = 10_000
    return ledger


def _event_types(ledger):
    return [event.event_type for event in ledger.events]


# ==================== Scenarios ====================


def test_single_grant_vesting_curve(ledger):
    ledger.grant(ADMIN, HOLDER, 1000, 0, 100, 1000, revokable=False)

    assert ledger.vested_tokens(HOLDER, 50) == (0, 1)
    assert ledger.vested_tokens(HOLDER, 500) == (500, 1)
    assert ledger.vested_tokens(HOLDER, 1000) == (1000, 1)


def test_vested_query_far_past_end(ledger):
    ledger.grant(ADMIN, HOLDER, 1000, 0, 100, 1000)
    assert ledger.vested_tokens(HOLDER, UINT64_MAX + 1) == (1000, 1)
    assert ledger.releasable_amount(HOLDER, 2**300) == 1000


def test_revoke_refunds_only_revokable_remainder(ledger, token):
    ledger.grant(ADMIN, HOLDER, 100, 0, 0, 100, revokable=True)
    ledger.grant(ADMIN, HOLDER, 200, 0, 0, 200, revokable=False)

    assert ledger.unlock_vested_tokens(HOLDER, current_time=50) == 50 + 50

    refund = ledger.revoke(ADMIN, HOLDER, current_time=60)

    assert refund == 100 - 50
    assert token.balance_of(ADMIN) == 50
    remaining = ledger.grants.grants_of(HOLDER)
    assert len(remaining) == 1
    kept = remaining[0]
    assert (kept.value, kept.start, kept.cliff, kept.end, kept.revokable) == (200, 0, 0, 200, False)
    assert kept.transferred == 50
    assert ledger.total_vesting == 150
    assert ledger.check_invariants()


def test_cliff_before_start_is_rejected(ledger):
    with pytest.raises(InvalidInputError):
        ledger.grant(ADMIN, HOLDER, 100, 10, 5, 20)
    assert ledger.total_vesting == 0
    assert ledger.events == []


def test_grant_beyond_pool_is_rejected(make_ledger):
    ledger = make_ledger(pool=1000)
    ledger.grant(ADMIN, HOLDER, 1000, 0, 0, 100)

    with pytest.raises(InsufficientPoolError) as exc_info:
        ledger.grant(ADMIN, OTHER, 1, 0, 0, 100)

    assert exc_info.value.required == 1001
    assert exc_info.value.available == 1000
    assert ledger.total_vesting == 1000
    assert ledger.grants.grant_count(OTHER) == 0


def test_unlock_without_grants_is_silent(stub_ledger):
    assert stub_ledger.unlock_vested_tokens(OTHER, current_time=10_000) == 0
    assert stub_ledger.events == []
    assert stub_ledger.token.transfers == []


# ==================== grant ====================


def test_grant_records_notification(ledger, clock):
    clock.advance(7)
    index = ledger.grant(ADMIN, HOLDER, 500, 0, 0, 100, revokable=True)

    assert index == 0
    assert ledger.total_vesting == 500
    event = ledger.events[-1]
    assert (event.event_type, event.holder, event.amount) == (EVENT_NEW_GRANT, HOLDER, 500)
    assert event.administrator == ADMIN
    assert event.timestamp == 7


def test_grant_accepts_mixed_case_holder(ledger):
    checksummed = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"
    ledger.grant(ADMIN, checksummed, 10, 0, 0, 10)
    assert ledger.vested_tokens(checksummed.lower(), 10) == (10, 1)


@pytest.mark.parametrize(
    "holder, value, start, cliff, end",
    [
        ("0x" + "00" * 20, 10, 0, 0, 10),
        ("not-an-address", 10, 0, 0, 10),
        (HOLDER, 0, 0, 0, 10),
        (HOLDER, -5, 0, 0, 10),
        (HOLDER, True, 0, 0, 10),
        (HOLDER, 10, 0, 20, 10),
        (HOLDER, 10, -1, 0, 10),
    ],
)
def test_grant_rejects_invalid_input(ledger, holder, value, start, cliff, end):
    with pytest.raises(InvalidInputError):
        ledger.grant(ADMIN, holder, value, start, cliff, end)
    assert ledger.total_vesting == 0
    assert len(ledger.grants) == 0


def test_only_administrator_may_grant_or_revoke(ledger):
    with pytest.raises(UnauthorizedError):
        ledger.grant(OTHER, HOLDER, 10, 0, 0, 10)
    ledger.grant(ADMIN, HOLDER, 10, 0, 0, 10, revokable=True)
    with pytest.raises(UnauthorizedError):
        ledger.revoke(HOLDER, HOLDER)
    assert ledger.grants.grant_count(HOLDER) == 1


# ==================== unlock_vested_tokens ====================


def test_unlock_is_idempotent_at_same_time(ledger, token):
    ledger.grant(ADMIN, HOLDER, 1000, 0, 0, 1000)

    assert ledger.unlock_vested_tokens(HOLDER, current_time=500) == 500
    events_after_first = len(ledger.events)
    assert ledger.unlock_vested_tokens(HOLDER, current_time=500) == 0

    assert len(ledger.events) == events_after_first
    assert token.balance_of(HOLDER) == 500
    assert ledger.total_vesting == 500


def test_unlock_before_cliff_transfers_nothing(stub_ledger):
    stub_ledger.grant(ADMIN, HOLDER, 1000, 0, 100, 1000)
    assert stub_ledger.unlock_vested_tokens(HOLDER, current_time=50) == 0
    assert stub_ledger.token.transfers == []
    assert _event_types(stub_ledger) == [EVENT_NEW_GRANT]


def test_unlock_sums_each_grants_own_delta(ledger, token):
    ledger.grant(ADMIN, HOLDER, 100, 0, 0, 100)
    ledger.grant(ADMIN, HOLDER, 200, 0, 0, 200)

    assert ledger.unlock_vested_tokens(HOLDER, current_time=50) == 50 + 50
    assert ledger.unlock_vested_tokens(HOLDER, current_time=100) == 50 + 50
    assert [g.transferred for g in ledger.grants.grants_of(HOLDER)] == [100, 100]
    assert token.balance_of(HOLDER) == 200
    assert ledger.total_vesting == 100
    assert ledger.events[-1].event_type == EVENT_UNLOCK
    assert ledger.events[-1].amount == 100


def test_unlock_earlier_than_last_settlement_is_noop(ledger):
    ledger.grant(ADMIN, HOLDER, 1000, 0, 0, 1000)
    ledger.unlock_vested_tokens(HOLDER, current_time=600)

    assert ledger.unlock_vested_tokens(HOLDER, current_time=300) == 0
    assert ledger.grants.get(HOLDER, 0).transferred == 600


def test_unlock_uses_time_provider(ledger, clock, token):
    ledger.grant(ADMIN, HOLDER, 1000, 0, 0, 1000)
    clock.advance(250)
    assert ledger.unlock_vested_tokens(HOLDER) == 250
    assert ledger.events[-1].timestamp == 250


def test_declined_unlock_transfer_rolls_back(stub_ledger):
    stub_ledger.grant(ADMIN, HOLDER, 1000, 0, 0, 1000)
    stub_ledger.token.accept = False

    with pytest.raises(TransferFailureError) as exc_info:
        stub_ledger.unlock_vested_tokens(HOLDER, current_time=400)

    assert exc_info.value.recoverable is True
    assert stub_ledger.grants.get(HOLDER, 0).transferred == 0
    assert stub_ledger.total_vesting == 1000
    assert _event_types(stub_ledger) == [EVENT_NEW_GRANT]

    stub_ledger.token.accept = True
    assert stub_ledger.unlock_vested_tokens(HOLDER, current_time=400) == 400


def test_overflow_in_later_grant_leaves_earlier_grants_untouched(stub_ledger):
    stub_ledger.token.balances[stub_ledger.address] = 2**251
    stub_ledger.grant(ADMIN, HOLDER, 100, 0, 0, 100)
    stub_ledger.grant(ADMIN, HOLDER, 2**250, 0, 0, 2**20)
    total_before = stub_ledger.total_vesting

    with pytest.raises(ArithmeticOverflowError):
        stub_ledger.unlock_vested_tokens(HOLDER, current_time=2**10)

    assert [g.transferred for g in stub_ledger.grants.grants_of(HOLDER)] == [0, 0]
    assert stub_ledger.total_vesting == total_before
    assert _event_types(stub_ledger) == [EVENT_NEW_GRANT, EVENT_NEW_GRANT]
    assert stub_ledger.token.transfers == []


def test_raising_token_is_reported_as_transfer_failure(ledger, token):
    ledger.grant(ADMIN, HOLDER, 1000, 0, 0, 1000)
    token.pause(ADMIN)

    with pytest.raises(TransferFailureError):
        ledger.unlock_vested_tokens(HOLDER, current_time=1000)
    assert ledger.total_vesting == 1000


# ==================== revoke ====================


def test_revoke_removes_every_revokable_grant(ledger, token):
    for value, revokable in [(10, True), (20, False), (30, True), (40, True), (50, False)]:
        ledger.grant(ADMIN, HOLDER, value, 0, 0, 100, revokable=revokable)

    assert ledger.revoke(ADMIN, HOLDER) == 10 + 30 + 40

    assert [g.value for g in ledger.grants.grants_of(HOLDER)] == [20, 50]
    assert ledger.total_vesting == 70
    assert token.balance_of(ADMIN) == 80
    assert ledger.check_invariants()


def test_revoke_without_revokable_grants_skips_transfer(stub_ledger):
    stub_ledger.grant(ADMIN, HOLDER, 100, 0, 0, 100, revokable=False)

    assert stub_ledger.revoke(ADMIN, HOLDER) == 0

    assert stub_ledger.token.transfers == []
    assert stub_ledger.events[-1].event_type == EVENT_REVOKE
    assert stub_ledger.events[-1].amount == 0
    assert stub_ledger.grants.grant_count(HOLDER) == 1


def test_revoke_leaves_other_holders_alone(ledger):
    ledger.grant(ADMIN, HOLDER, 100, 0, 0, 100, revokable=True)
    ledger.grant(ADMIN, OTHER, 100, 0, 0, 100, revokable=True)

    ledger.revoke(ADMIN, HOLDER)

    assert ledger.grants.grant_count(OTHER) == 1
    assert ledger.total_vesting == 100


def test_declined_refund_rolls_back_revoke(stub_ledger):
    stub_ledger.grant(ADMIN, HOLDER, 100, 0, 0, 100, revokable=True)
    stub_ledger.grant(ADMIN, HOLDER, 200, 0, 0, 100, revokable=False)
    stub_ledger.token.accept = False

    with pytest.raises(TransferFailureError):
        stub_ledger.revoke(ADMIN, HOLDER)

    assert [g.value for g in stub_ledger.grants.grants_of(HOLDER)] == [100, 200]
    assert stub_ledger.total_vesting == 300
    assert EVENT_REVOKE not in _event_types(stub_ledger)


def test_fully_unlocked_revokable_grant_refunds_nothing(ledger):
    ledger.grant(ADMIN, HOLDER, 100, 0, 0, 100, revokable=True)
    ledger.unlock_vested_tokens(HOLDER, current_time=100)

    assert ledger.revoke(ADMIN, HOLDER) == 0
    assert ledger.grants.grant_count(HOLDER) == 0
    assert ledger.total_vesting == 0


# ==================== Administration ====================


def test_two_step_administrator_handoff(ledger, token):
    ledger.grant(ADMIN, HOLDER, 100, 0, 0, 100, revokable=True)
    ledger.transfer_ownership(ADMIN, NEW_ADMIN)

    assert ledger.administrator == ADMIN
    with pytest.raises(UnauthorizedError):
        ledger.grant(NEW_ADMIN, HOLDER, 1, 0, 0, 1)
    with pytest.raises(UnauthorizedError):
        ledger.accept_ownership(OTHER)

    ledger.accept_ownership(NEW_ADMIN)

    assert ledger.administrator == NEW_ADMIN
    with pytest.raises(UnauthorizedError):
        ledger.grant(ADMIN, HOLDER, 1, 0, 0, 1)
    assert ledger.revoke(NEW_ADMIN, HOLDER) == 100
    assert token.balance_of(NEW_ADMIN) == 100


def test_cancelled_handoff_cannot_be_accepted(ledger):
    ledger.transfer_ownership(ADMIN, NEW_ADMIN)
    with pytest.raises(UnauthorizedError):
        ledger.cancel_ownership_transfer(NEW_ADMIN)

    ledger.cancel_ownership_transfer(ADMIN)

    assert ledger.summary()["pending_administrator"] == ""
    with pytest.raises(UnauthorizedError):
        ledger.accept_ownership(NEW_ADMIN)
    assert ledger.administrator == ADMIN


def test_external_access_guard(clock):
    token = RecordingToken()
    ledger = VestingLedger(token, FixedGuard(ADMIN), time_provider=clock.now)
    token.balances[ledger.address] = 100

    ledger.grant(ADMIN, HOLDER, 100, 0, 0, 100)
    with pytest.raises(UnauthorizedError):
        ledger.grant(OTHER, HOLDER, 1, 0, 0, 100)
    with pytest.raises(VestingError):
        ledger.transfer_ownership(ADMIN, NEW_ADMIN)


def test_ledger_address_derives_from_token_address():
    token = RecordingToken()
    assert isinstance(token, TokenLedger)
    ledger = VestingLedger(token, ADMIN)
    assert ledger.address != token.address
    assert ledger.address == ledger.address.lower()


# ==================== Inspection & persistence ====================


def test_releasable_and_schedule(ledger):
    ledger.grant(ADMIN, HOLDER, 1000, 0, 0, 1000)
    ledger.unlock_vested_tokens(HOLDER, current_time=200)

    assert ledger.releasable_amount(HOLDER, 500) == 300
    schedule = ledger.grant_schedule(HOLDER, 500)
    assert schedule[0]["index"] == 0
    assert schedule[0]["vested"] == 500
    assert schedule[0]["releasable"] == 300
    assert schedule[0]["transferred"] == 200


def test_check_invariants_detects_drift(ledger):
    ledger.grant(ADMIN, HOLDER, 100, 0, 0, 100)
    ledger.total_vesting = 99
    with pytest.raises(VestingError):
        ledger.check_invariants()


def test_to_dict_from_dict_restores_ledger(ledger, token):
    ledger.grant(ADMIN, HOLDER, 1000, 0, 0, 1000, revokable=True)
    ledger.unlock_vested_tokens(HOLDER, current_time=100)
    ledger.transfer_ownership(ADMIN, NEW_ADMIN)

    restored_token = ERC20Token.from_dict(token.to_dict())
    restored = VestingLedger.from_dict(ledger.to_dict(), restored_token)

    assert restored.address == ledger.address
    assert restored.administrator == ADMIN
    assert restored.ownership.pending_owner == NEW_ADMIN
    assert restored.total_vesting == 900
    assert restored.grants.get(HOLDER, 0).transferred == 100
    assert _event_types(restored) == [EVENT_NEW_GRANT, EVENT_UNLOCK]
    assert restored.check_invariants()
