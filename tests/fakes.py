"""
fakes.py - Test helpers for the consensus view and transaction builder

Provides a minimal ConsensusView backed by plain dicts and a recording
TransactionBuilder, so the pipeline can be exercised without a node.
"""

from __future__ import annotations
import hashlib
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from issuance import (
    BinaryPayloadCodec, BuildResult, Ecosystem, FeePolicyRegistry, OfferTerms,
    PendingLedger, PropertyDescriptor, SubmissionConfig, SubmissionCoordinator,
    COIN, encode_address,
)


def address(name: str, version: int = 0x00) -> str:
    """Deterministic, checksum-valid address derived from a name."""
    return encode_address(version, hashlib.sha256(name.encode()).digest()[:20])


EXODUS = address("exodus")
ALICE = address("alice")
BOB = address("bob")
CAROL = address("carol")
DAVE = address("dave")

# Indivisible property in the test ecosystem
TEST_PROPERTY = 2_147_483_651

FIXED_TIME = datetime(2025, 1, 1, 12, 0, 0)


class FakeConsensusView:
    """
    Minimal ConsensusView for testing guards and the coordinator.

    Example:
        view = FakeConsensusView(
            properties={3: PropertyDescriptor(3, False, ALICE)},
            balances={ALICE: {3: 100}},
        )
        view.get_balance(ALICE, 3)   # 100
    """

    def __init__(
        self,
        properties: Optional[Dict[int, PropertyDescriptor]] = None,
        balances: Optional[Dict[str, Dict[int, int]]] = None,
        offers: Optional[Dict[Tuple[str, int], OfferTerms]] = None,
    ):
        self._properties = dict(properties or {})
        self._balances = {a: dict(b) for a, b in (balances or {}).items()}
        self._offers = dict(offers or {})

    def get_property(self, property_id: int) -> Optional[PropertyDescriptor]:
        return self._properties.get(property_id)

    def get_balance(self, address: str, property_id: int) -> int:
        return self._balances.get(address, {}).get(property_id, 0)

    def offer_exists(self, address: str, property_id: int) -> bool:
        return (address, property_id) in self._offers

    def get_offer(self, address: str, property_id: int) -> Optional[OfferTerms]:
        return self._offers.get((address, property_id))

    def is_crowdsale_active(self, property_id: int) -> bool:
        descriptor = self._properties.get(property_id)
        return descriptor is not None and descriptor.crowdsale_active

    # Test-only mutators

    def set_balance(self, address: str, property_id: int, amount: int) -> None:
        self._balances.setdefault(address, {})[property_id] = amount

    def add_property(self, descriptor: PropertyDescriptor) -> None:
        self._properties[descriptor.property_id] = descriptor


class FakeBuilder:
    """
    Recording TransactionBuilder.

    Every call is appended to `calls`, including the fee policy in force at
    the time of the call. Returns `code` for every call; on success the txid
    is `txid` if given, otherwise a fresh 64-hex-digit id per call. Raises
    `error` instead when it is set.
    """

    def __init__(
        self,
        fee_policy: Optional[FeePolicyRegistry] = None,
        code: int = 0,
        txid: Optional[str] = None,
        error: Optional[Exception] = None,
    ):
        self.fee_policy = fee_policy
        self.code = code
        self.txid = txid
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def build(
        self,
        sender: str,
        recipient: Optional[str],
        redeem_address: str,
        reference_amount: int,
        payload: bytes,
        commit: bool,
    ) -> BuildResult:
        self.calls.append({
            "sender": sender,
            "recipient": recipient,
            "redeem_address": redeem_address,
            "reference_amount": reference_amount,
            "payload": payload,
            "commit": commit,
            "fee_policy": self.fee_policy.current if self.fee_policy else None,
        })
        if self.error is not None:
            raise self.error
        if self.code != 0:
            return BuildResult(self.code)
        if commit:
            return BuildResult(0, txid=self.txid or f"{len(self.calls):064x}")
        return BuildResult(0, raw_tx="01000000" + payload.hex())


def make_view() -> FakeConsensusView:
    """
    Standard consensus snapshot:

    - 1 Omni (divisible, main) and 2 Test Omni (divisible, test)
    - 3 indivisible managed property issued by ALICE
    - 4 divisible property issued by ALICE with an active crowdsale
    - TEST_PROPERTY indivisible test-ecosystem property issued by BOB
    - BOB has a safe sell offer for 1, CAROL an expensive one for 1,
      BOB a short-window one for 2
    """
    return FakeConsensusView(
        properties={
            1: PropertyDescriptor(1, True, EXODUS, Ecosystem.MAIN, name="Omni"),
            2: PropertyDescriptor(2, True, EXODUS, Ecosystem.TEST, name="Test Omni"),
            3: PropertyDescriptor(3, False, ALICE, Ecosystem.MAIN, name="Quantum Miner"),
            4: PropertyDescriptor(4, True, ALICE, Ecosystem.MAIN, crowdsale_active=True, name="Crowd"),
            TEST_PROPERTY: PropertyDescriptor(TEST_PROPERTY, False, BOB, Ecosystem.TEST, name="Test Token"),
        },
        balances={
            ALICE: {1: 10 * COIN, 2: 10 * COIN, 3: 100, 4: 50 * COIN},
            BOB: {1: 5 * COIN, 2: 5 * COIN, TEST_PROPERTY: 1000},
        },
        offers={
            (BOB, 1): OfferTerms(min_fee=10_000, payment_window=20),
            (CAROL, 1): OfferTerms(min_fee=2 * COIN, payment_window=20),
            (BOB, 2): OfferTerms(min_fee=10_000, payment_window=5),
        },
    )


def make_coordinator(
    view: Optional[FakeConsensusView] = None,
    builder: Optional[FakeBuilder] = None,
    config: Optional[SubmissionConfig] = None,
) -> Tuple[SubmissionCoordinator, FakeBuilder]:
    """Coordinator over a fresh ledger, registry and builder; for use inside hypothesis tests."""
    registry = FeePolicyRegistry()
    if builder is None:
        builder = FakeBuilder(registry)
    else:
        builder.fee_policy = registry
    coordinator = SubmissionCoordinator(
        view if view is not None else make_view(),
        BinaryPayloadCodec(),
        builder,
        pending=PendingLedger(),
        fee_policy=registry,
        config=config,
        clock=lambda: FIXED_TIME,
    )
    return coordinator, builder
