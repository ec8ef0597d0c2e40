"""
test_fee_policy.py - Unit tests for the fee policy registry

Tests:
- FeePolicy validation
- Scoped override installs and restores the policy
- Restoration on error
- Mutual exclusion between overrides
"""

import threading

import pytest

from issuance import FeePolicy, FeePolicyRegistry


class TestFeePolicy:

    def test_defaults(self):
        policy = FeePolicy()
        assert policy.rate_per_kb == 0
        assert policy.enforce_minimum is False

    def test_negative_rate_rejected(self):
        with pytest.raises(ValueError):
            FeePolicy(rate_per_kb=-1)


class TestOverride:
    """Tests for FeePolicyRegistry.override()."""

    def test_override_visible_inside_scope(self):
        registry = FeePolicyRegistry()
        policy = FeePolicy(50_000, True)
        with registry.override(policy) as active:
            assert active == policy
            assert registry.current == policy

    def test_restored_after_scope(self):
        original = FeePolicy(1_000)
        registry = FeePolicyRegistry(original)
        with registry.override(FeePolicy(50_000, True)):
            pass
        assert registry.current == original

    def test_restored_after_error(self):
        original = FeePolicy(1_000)
        registry = FeePolicyRegistry(original)
        with pytest.raises(RuntimeError):
            with registry.override(FeePolicy(50_000, True)):
                raise RuntimeError("broadcast failed")
        assert registry.current == original

    def test_set_default(self):
        registry = FeePolicyRegistry()
        registry.set_default(FeePolicy(2_000))
        assert registry.current == FeePolicy(2_000)

    def test_second_override_waits(self):
        """Only one override is held at a time."""
        registry = FeePolicyRegistry()
        entered = threading.Event()
        release = threading.Event()
        seen = []

        def hold():
            with registry.override(FeePolicy(1)):
                entered.set()
                release.wait(timeout=5)

        def contend():
            with registry.override(FeePolicy(2)):
                seen.append(registry.current)

        holder = threading.Thread(target=hold)
        holder.start()
        assert entered.wait(timeout=5)
        contender = threading.Thread(target=contend)
        contender.start()
        contender.join(timeout=0.2)
        assert seen == []
        assert registry.current == FeePolicy(1)

        release.set()
        holder.join(timeout=5)
        contender.join(timeout=5)
        assert seen == [FeePolicy(2)]
        assert registry.current == FeePolicy()
