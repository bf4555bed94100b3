"""
Property-based tests for vesting ledger invariants.

The curve must stay within [0, value] and never decrease over time. Across any
sequence of grant/unlock/revoke calls, the outstanding liability must equal the
sum of ``value - transferred`` over live grants and never exceed the tokens the
ledger holds; no token is created or destroyed along the way.

Uses Hypothesis for property-based testing with random inputs.
"""

from hypothesis import given, settings, strategies as st

from tokenvest.core.constants import UINT64_MAX
from tokenvest.core.contracts.erc20 import ERC20Token
from tokenvest.core.exceptions import InsufficientPoolError
from tokenvest.vesting.grant_store import Grant
from tokenvest.vesting.vesting_curve import vested_amount
from tokenvest.vesting.vesting_ledger import VestingLedger

ADMIN = "0x" + "a1" * 20
HOLDERS = ["0x" + "b2" * 20, "0x" + "c3" * 20, "0x" + "d4" * 20]
POOL = 20_000

timestamps = st.integers(min_value=0, max_value=10_000)


@st.composite
def grants(draw):
    start, cliff, end = sorted(draw(st.lists(timestamps, min_size=3, max_size=3)))
    value = draw(st.integers(min_value=1, max_value=10**30))
    return Grant(value=value, start=start, cliff=cliff, end=end)


class TestVestingCurveProperties:
    """Shape of the vesting curve."""

    @given(grant=grants(), time=st.integers(min_value=0, max_value=UINT64_MAX))
    @settings(max_examples=200)
    def test_vested_is_bounded(self, grant, time):
        vested = vested_amount(grant, time)
        assert 0 <= vested <= grant.value
        if time < grant.cliff:
            assert vested == 0
        if time >= grant.end:
            assert vested == grant.value

    @given(grant=grants(), t1=timestamps, t2=timestamps)
    @settings(max_examples=200)
    def test_vested_is_monotonic(self, grant, t1, t2):
        early, late = sorted((t1, t2))
        assert vested_amount(grant, early) <= vested_amount(grant, late)


operations = st.lists(
    st.one_of(
        st.tuples(
            st.just("grant"),
            st.sampled_from(HOLDERS),
            st.integers(min_value=1, max_value=5_000),
            st.lists(st.integers(min_value=0, max_value=500), min_size=3, max_size=3),
            st.booleans(),
        ),
        st.tuples(st.just("unlock"), st.sampled_from(HOLDERS), st.integers(min_value=0, max_value=600)),
        st.tuples(st.just("revoke"), st.sampled_from(HOLDERS)),
    ),
    max_size=40,
)


class TestLedgerInvariants:
    """Conservation and safety across random call sequences."""

    @given(ops=operations)
    @settings(max_examples=100, deadline=None)
    def test_liability_conserved_and_covered(self, ops):
        token = ERC20Token(name="Vesting Token", symbol="VEST", owner=ADMIN)
        ledger = VestingLedger(token, ADMIN, time_provider=lambda: 0)
        token.mint(ADMIN, ledger.address, POOL)

        for op in ops:
            if op[0] == "grant":
                _, holder, value, times, revokable = op
                start, cliff, end = sorted(times)
                try:
                    ledger.grant(ADMIN, holder, value, start, cliff, end, revokable)
                except InsufficientPoolError:
                    pass
            elif op[0] == "unlock":
                _, holder, at = op
                ledger.unlock_vested_tokens(holder, current_time=at)
            else:
                ledger.revoke(ADMIN, op[1])

            assert ledger.check_invariants()
            outstanding = sum(grant.value - grant.transferred for _, grant in ledger.grants.iter_all())
            assert ledger.total_vesting == outstanding
            assert ledger.total_vesting <= token.balance_of(ledger.address)

        held = token.balance_of(ledger.address) + token.balance_of(ADMIN)
        held += sum(token.balance_of(holder) for holder in HOLDERS)
        assert held == POOL

    @given(grant_times=st.lists(timestamps, min_size=3, max_size=3), value=st.integers(1, 10_000), at=timestamps)
    @settings(max_examples=100, deadline=None)
    def test_repeated_unlock_is_idempotent(self, grant_times, value, at):
        token = ERC20Token(name="Vesting Token", symbol="VEST", owner=ADMIN)
        ledger = VestingLedger(token, ADMIN, time_provider=lambda: 0)
        token.mint(ADMIN, ledger.address, value)
        start, cliff, end = sorted(grant_times)
        ledger.grant(ADMIN, HOLDERS[0], value, start, cliff, end)

        first = ledger.unlock_vested_tokens(HOLDERS[0], current_time=at)
        events = len(ledger.events)

        assert ledger.unlock_vested_tokens(HOLDERS[0], current_time=at) == 0
        assert len(ledger.events) == events
        assert token.balance_of(HOLDERS[0]) == first == ledger.vested_tokens(HOLDERS[0], at)[0]
