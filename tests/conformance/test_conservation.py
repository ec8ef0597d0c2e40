"""
Balance Conservation Conformance Tests

INVARIANT: Committed submissions never overdraw the confirmed balance.

    ∀ sequence of sends S from address A of property P:
        Σ committed amounts ≤ confirmedBalance(A, P)
        availableBalance(A, P) = confirmedBalance(A, P) − Σ committed amounts

Every successful balance-affecting commit strictly decreases the
available balance by its amount.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from issuance import InsufficientBalance, SubmissionState

from tests.fakes import ALICE, BOB, make_coordinator


class TestNoOverdraw:
    """Property-based balance conservation tests."""

    @given(st.lists(st.integers(min_value=1, max_value=60), min_size=1, max_size=15))
    @settings(max_examples=50)
    def test_sequential_sends_never_overdraw(self, amounts):
        """
        PROPERTY: Sum of committed sends never exceeds the confirmed balance.
        """
        coordinator, builder = make_coordinator()
        committed = 0
        for amount in amounts:
            before = coordinator.available_balance(ALICE, 3)
            if amount <= before:
                result = coordinator.call("send", [ALICE, BOB, 3, str(amount)])
                assert result.state == SubmissionState.COMMITTED
                committed += amount
                assert coordinator.available_balance(ALICE, 3) == before - amount
            else:
                with pytest.raises(InsufficientBalance):
                    coordinator.call("send", [ALICE, BOB, 3, str(amount)])
                assert coordinator.available_balance(ALICE, 3) == before

        assert committed <= 100
        assert coordinator.available_balance(ALICE, 3) == 100 - committed
        assert len(builder.calls) == len(coordinator.pending)

    @given(st.lists(
        st.tuples(
            st.sampled_from(["send", "sendsto", "sendrevoke", "sendtrade"]),
            st.integers(min_value=1, max_value=40),
        ),
        min_size=1,
        max_size=10,
    ))
    @settings(max_examples=50)
    def test_mixed_commands_share_one_balance(self, steps):
        """
        PROPERTY: All balance-affecting commands draw on the same available balance.
        """
        coordinator, _ = make_coordinator()
        params = {
            "send": lambda n: [ALICE, BOB, 3, str(n)],
            "sendsto": lambda n: [ALICE, 3, str(n)],
            "sendrevoke": lambda n: [ALICE, 3, str(n)],
            "sendtrade": lambda n: [ALICE, 3, str(n), 4, "1", 1],
        }
        committed = 0
        for name, amount in steps:
            try:
                coordinator.call(name, params[name](amount))
                committed += amount
            except InsufficientBalance:
                assert amount > 100 - committed
        assert 0 <= coordinator.available_balance(ALICE, 3) == 100 - committed

    @given(st.integers(min_value=1, max_value=100))
    @settings(max_examples=50)
    def test_unsigned_builds_reserve_nothing(self, amount):
        """
        PROPERTY: Returned-unsigned submissions never change the available balance.
        """
        coordinator, _ = make_coordinator()
        coordinator.auto_commit = False
        for _ in range(3):
            coordinator.call("send", [ALICE, BOB, 3, str(amount)])
        assert coordinator.available_balance(ALICE, 3) == 100
