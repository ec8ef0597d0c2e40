#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: The Issuance Pipeline Step by Step

A walk through the submission pipeline against an in-memory consensus
snapshot and a builder that only pretends to broadcast. Each step builds on
the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-2: Foundation     - Consensus view, builder, coordinator
  3-5: Sending        - A send, pending balance, a rejected overdraw
  6-7: Exchange       - Sell offer, accept with a scoped fee override
  8-9: Management     - Issuance, grant, unsigned builds, reconciliation

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
import hashlib
import logging
import sys
from typing import Dict, Optional, Tuple

from issuance import (
    SubmissionCoordinator, CommandSurface, BinaryPayloadCodec,
    FeePolicyRegistry, PendingLedger,
    PropertyDescriptor, OfferTerms, BuildResult, Ecosystem,
    IssuanceError, encode_address, format_amount, COIN,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    alice_tokens: int = 100
    alice_omni: int = 10 * COIN
    first_send: str = "60"
    second_send: str = "60"


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def demo_address(name: str) -> str:
    return encode_address(0x00, hashlib.sha256(name.encode()).digest()[:20])


ALICE = demo_address("alice")
BOB = demo_address("bob")
CAROL = demo_address("carol")


# ============================================================================
# IN-MEMORY COLLABORATORS
# ============================================================================

class InMemoryState:
    """Consensus snapshot held in dicts."""

    def __init__(self):
        self.properties: Dict[int, PropertyDescriptor] = {}
        self.balances: Dict[Tuple[str, int], int] = {}
        self.offers: Dict[Tuple[str, int], OfferTerms] = {}

    def get_property(self, property_id: int) -> Optional[PropertyDescriptor]:
        return self.properties.get(property_id)

    def get_balance(self, address: str, property_id: int) -> int:
        return self.balances.get((address, property_id), 0)

    def offer_exists(self, address: str, property_id: int) -> bool:
        return (address, property_id) in self.offers

    def get_offer(self, address: str, property_id: int) -> Optional[OfferTerms]:
        return self.offers.get((address, property_id))

    def is_crowdsale_active(self, property_id: int) -> bool:
        descriptor = self.properties.get(property_id)
        return bool(descriptor and descriptor.crowdsale_active)


class PrintingBuilder:
    """Builder that hashes the payload into a txid instead of broadcasting."""

    def __init__(self, fee_policy: FeePolicyRegistry):
        self.fee_policy = fee_policy
        self.count = 0

    def build(self, sender, recipient, redeem_address, reference_amount, payload, commit):
        self.count += 1
        print(f"    builder: {len(payload)}-byte payload {payload.hex()}")
        print(f"    builder: fee policy {self.fee_policy.current}")
        digest = hashlib.sha256(payload + self.count.to_bytes(4, "big")).hexdigest()
        if commit:
            return BuildResult(0, txid=digest)
        return BuildResult(0, raw_tx="01000000" + payload.hex())


# ============================================================================
# STEPS
# ============================================================================

def step_01_state() -> InMemoryState:
    step_header(1, "The Consensus View",
        "The pipeline only reads consensus state through a narrow interface.")
    state = InMemoryState()
    state.properties[1] = PropertyDescriptor(1, True, demo_address("exodus"), name="Omni")
    state.properties[3] = PropertyDescriptor(3, False, ALICE, Ecosystem.MAIN, name="Quantum Miner")
    state.balances[(ALICE, 3)] = CONFIG.alice_tokens
    state.balances[(ALICE, 1)] = CONFIG.alice_omni
    state.offers[(BOB, 1)] = OfferTerms(min_fee=10_000, payment_window=20)
    print(f"alice holds {CONFIG.alice_tokens} of #3 and {format_amount(CONFIG.alice_omni, True)} of #1")
    print("bob has a sell offer for #1")
    return state


def step_02_coordinator(state: InMemoryState) -> Tuple[SubmissionCoordinator, CommandSurface]:
    step_header(2, "The Coordinator",
        "One coordinator drives every command through the same stages.")
    registry = FeePolicyRegistry()
    coordinator = SubmissionCoordinator(
        state, BinaryPayloadCodec(), PrintingBuilder(registry),
        pending=PendingLedger(), fee_policy=registry,
    )
    surface = CommandSurface(coordinator)
    print("commands:", ", ".join(surface.commands()))
    return coordinator, surface


def step_03_send(coordinator: SubmissionCoordinator, surface: CommandSurface) -> str:
    step_header(3, "A Simple Send",
        "A committed send is recorded as a pending outflow.")
    txid = surface.execute("send", [ALICE, BOB, 3, CONFIG.first_send])
    print(f"txid: {txid}")
    print(f"available balance of alice in #3: {coordinator.available_balance(ALICE, 3)}")
    return txid


def step_04_overdraw(coordinator: SubmissionCoordinator, surface: CommandSurface):
    step_header(4, "A Rejected Overdraw",
        "Guards check the available balance, not only the confirmed one.")
    try:
        surface.execute("send", [ALICE, CAROL, 3, CONFIG.second_send])
    except IssuanceError as exc:
        print(f"rejected: {type(exc).__name__}({exc.subject!r}): {exc.detail}")
    print(f"pending entries: {len(coordinator.pending)}")


def step_05_offer(surface: CommandSurface):
    step_header(5, "A Sell Offer",
        "Offers reserve the amount for sale until they confirm.")
    surface.execute("senddexsell", [ALICE, 1, "2.5", "0.01", 20, "0.0001", 1])


def step_06_accept(coordinator: SubmissionCoordinator, surface: CommandSurface):
    step_header(6, "Accepting an Offer",
        "The offer's minimum fee is installed for exactly one builder call.")
    surface.execute("senddexaccept", [ALICE, BOB, 1, "0.5"])
    print(f"fee policy afterwards: {coordinator.fee_policy.current}")


def step_07_issue(surface: CommandSurface):
    step_header(7, "Managed Issuance and Grants",
        "Issuance and grants commit without a pending outflow.")
    surface.execute("sendissuancemanaged", [ALICE, 1, 1, 0, "Games", "Cards", "Gold", "", ""])
    surface.execute("sendgrant", [ALICE, "", 3, "500", "treasury"])


def step_08_unsigned(coordinator: SubmissionCoordinator, surface: CommandSurface):
    step_header(8, "Unsigned Builds",
        "With auto-commit off, nothing is broadcast and nothing is recorded.")
    coordinator.auto_commit = False
    raw = surface.execute("send", [ALICE, BOB, 3, "10"])
    coordinator.auto_commit = True
    print(f"raw transaction: {raw}")
    print(f"available balance of alice in #3: {coordinator.available_balance(ALICE, 3)}")


def step_09_reconcile(coordinator: SubmissionCoordinator, state: InMemoryState, txid: str):
    step_header(9, "Reconciliation",
        "Once a transaction confirms, the external process retires its entry.")
    state.balances[(ALICE, 3)] -= int(CONFIG.first_send)
    coordinator.pending.retire(txid)
    print(f"available balance of alice in #3: {coordinator.available_balance(ALICE, 3)}")


def main():
    """Run the complete tutorial."""
    logging.basicConfig(level=logging.INFO, format="    %(name)s: %(message)s")
    print("=" * 70)
    print("       ISSUANCE PIPELINE - INTERACTIVE TUTORIAL")
    print("=" * 70)

    state = step_01_state()
    wait_for_enter()
    coordinator, surface = step_02_coordinator(state)
    wait_for_enter()
    txid = step_03_send(coordinator, surface)
    wait_for_enter()
    step_04_overdraw(coordinator, surface)
    wait_for_enter()
    step_05_offer(surface)
    wait_for_enter()
    step_06_accept(coordinator, surface)
    wait_for_enter()
    step_07_issue(surface)
    wait_for_enter()
    step_08_unsigned(coordinator, surface)
    wait_for_enter()
    step_09_reconcile(coordinator, state, txid)

    print(f"\n{'='*70}")
    print("Next steps:")
    print("  - See issuance/commands.py for every command's guards")
    print("  - Run tests: pytest tests/")


if __name__ == "__main__":
    main()
