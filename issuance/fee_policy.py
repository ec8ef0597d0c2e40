"""
fee_policy.py - Process-wide fee policy and its scoped override

The base-ledger builder reads the current fee policy when it sizes the
transaction fee. The exchange-accept flow must pay at least the offer's
minimum fee, so it installs a temporary policy for the duration of exactly
one builder call.

FeePolicyRegistry.override() is the only way to change the policy
temporarily. It holds a lock for the whole override, so at most one
submission holds it at a time, and it restores the prior policy on every
exit path.
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass
import logging
import threading
from typing import Iterator


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FeePolicy:
    """
    Fee settings consulted by the transaction builder.

    Attributes:
        rate_per_kb: Fee rate in base-currency units per 1000 bytes
        enforce_minimum: Pay at least rate_per_kb even for small transactions
    """
    rate_per_kb: int = 0
    enforce_minimum: bool = False

    def __post_init__(self):
        if self.rate_per_kb < 0:
            raise ValueError(f"rate_per_kb must be non-negative, got {self.rate_per_kb}")


class FeePolicyRegistry:
    """
    Holder of the process-wide fee policy.

    Example:
        registry = FeePolicyRegistry()
        with registry.override(FeePolicy(50_000, True)):
            builder.build(...)   # sees the override
        registry.current         # prior policy again
    """

    def __init__(self, policy: FeePolicy = FeePolicy()):
        self._policy = policy
        self._override_lock = threading.Lock()

    @property
    def current(self) -> FeePolicy:
        return self._policy

    def set_default(self, policy: FeePolicy) -> None:
        """Replace the global policy outside of any override."""
        with self._override_lock:
            self._policy = policy

    @contextmanager
    def override(self, policy: FeePolicy) -> Iterator[FeePolicy]:
        with self._override_lock:
            original = self._policy
            self._policy = policy
            logger.debug("fee policy override installed: %r", policy)
            try:
                yield policy
            finally:
                self._policy = original
                logger.debug("fee policy restored: %r", original)

    def __repr__(self) -> str:
        return f"FeePolicyRegistry(current={self._policy!r})"
