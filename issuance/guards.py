"""
guards.py - Guard Chain

Pure precondition predicates over a consensus snapshot plus the pending
effects of unconfirmed submissions. Each require_* function raises the
matching IssuanceError subclass or returns None; none of them mutates state.

Commands compose guards into an ordered tuple. check_all() evaluates them in
order and stops at the first failure, so the reported error is deterministic.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Protocol

from .core import (
    MAX_AMOUNT, PRIMARY_PROPERTIES, PROPERTY_TOMNI, TEST_ECOSYSTEM_FIRST_PROPERTY,
    ConsensusView, Ecosystem, SubmissionConfig, PropertyDescriptor,
    InvalidAmount, InvalidParameter, InsufficientBalance, Unauthorized,
    PreconditionFailed,
)


class PendingView(Protocol):
    """Read side of the pending effects ledger."""

    def pending_outflow(self, address: str, property_id: int) -> int:
        ...


@dataclass(frozen=True, slots=True)
class GuardContext:
    """Everything a guard may read."""
    view: ConsensusView
    pending: PendingView
    config: SubmissionConfig


# A check receives the context and the typed request.
Check = Callable[[GuardContext, Any], None]


@dataclass(frozen=True, slots=True)
class Guard:
    """A named check, optionally applied only when a predicate holds."""
    name: str
    check: Check
    applies: Optional[Callable[[Any], bool]] = None

    def __call__(self, ctx: GuardContext, request: Any) -> None:
        if self.applies is None or self.applies(request):
            self.check(ctx, request)

    def when(self, predicate: Callable[[Any], bool]) -> 'Guard':
        """Return a copy of this guard that only runs when predicate(request) is true."""
        if self.applies is None:
            return Guard(self.name, self.check, predicate)
        previous = self.applies
        return Guard(self.name, self.check, lambda r: previous(r) and predicate(r))


def check_all(guards: Iterable[Guard], ctx: GuardContext, request: Any) -> None:
    """Evaluate guards in order; the first failure propagates."""
    for guard in guards:
        guard(ctx, request)


# ============================================================================
# PREDICATES
# ============================================================================

def available_balance(ctx: GuardContext, address: str, property_id: int) -> int:
    """Confirmed balance minus the outflow of pending entries."""
    confirmed = ctx.view.get_balance(address, property_id)
    return confirmed - ctx.pending.pending_outflow(address, property_id)


def require_sane_reference_amount(ctx: GuardContext, amount: int) -> None:
    if amount > ctx.config.max_reference_amount:
        raise InvalidAmount("reference_amount", "Invalid reference amount")


def require_sufficient_balance(ctx: GuardContext, address: str, property_id: int, amount: int) -> None:
    balance = ctx.view.get_balance(address, property_id)
    if balance < amount:
        raise InsufficientBalance("balance", "Sender has insufficient balance")
    if available_balance(ctx, address, property_id) < amount:
        raise InsufficientBalance(
            "balance", "Sender has insufficient balance (due to pending transactions)"
        )


def require_non_empty_name(name: str) -> None:
    if not name:
        raise InvalidParameter("name", "Property name must not be empty")


def require_primary_property(property_id: int) -> None:
    if property_id not in PRIMARY_PROPERTIES:
        raise InvalidParameter(
            "property", "Invalid property identifier for sale - only 1 and 2 are permitted"
        )


def require_active_crowdsale(ctx: GuardContext, property_id: int) -> None:
    if not ctx.view.is_crowdsale_active(property_id):
        raise PreconditionFailed(
            "crowdsale", "The specified property does not have a crowdsale active"
        )


def require_token_administrator(ctx: GuardContext, sender: str, property_id: int) -> None:
    descriptor = ctx.view.get_property(property_id)
    if descriptor is None or descriptor.issuer != sender:
        raise Unauthorized("issuer", "Sender is not authorized to manage this property")


def require_range(amount: int, field_name: str = "amount", allow_zero: bool = False) -> None:
    if amount < 0 or (amount == 0 and not allow_zero):
        raise InvalidAmount(field_name, f"Invalid {field_name.replace('_', ' ')}")
    if amount > MAX_AMOUNT:
        raise InvalidAmount(field_name, f"{field_name.replace('_', ' ').capitalize()} not in range")


def require_no_duplicate_offer(ctx: GuardContext, address: str, property_id: int) -> None:
    if ctx.view.offer_exists(address, property_id):
        raise PreconditionFailed(
            "offer",
            "There is already a sell offer from this address on the exchange, use update instead",
        )


def require_offer_exists(ctx: GuardContext, seller: str, property_id: int) -> None:
    if not ctx.view.offer_exists(seller, property_id):
        raise PreconditionFailed("offer", "There is no matching sell offer on the exchange")


def require_safe_accept_terms(ctx: GuardContext, seller: str, property_id: int) -> None:
    offer = ctx.view.get_offer(seller, property_id)
    if offer is None:
        raise PreconditionFailed("offer", "Unable to load sell offer from the exchange")
    if offer.min_fee > ctx.config.max_accept_fee:
        raise PreconditionFailed(
            "unsafe fee", "Unsafe trade protection - minimum accept fee is above the ceiling"
        )
    if offer.payment_window < ctx.config.min_payment_window:
        raise PreconditionFailed(
            "unsafe payment window",
            f"Unsafe trade protection - payment window is less than {ctx.config.min_payment_window} blocks",
        )


def is_test_ecosystem(descriptor: PropertyDescriptor) -> bool:
    if descriptor.property_id == PROPERTY_TOMNI or descriptor.property_id >= TEST_ECOSYSTEM_FIRST_PROPERTY:
        return True
    return descriptor.ecosystem == Ecosystem.TEST


def require_existing_property(ctx: GuardContext, property_id: int, field_name: str) -> PropertyDescriptor:
    descriptor = ctx.view.get_property(property_id)
    if descriptor is None:
        raise InvalidParameter(field_name, f"Property identifier {property_id} does not exist")
    return descriptor


def require_same_ecosystem(ctx: GuardContext, property_a: int, property_b: int) -> None:
    a = require_existing_property(ctx, property_a, "property_for_sale")
    b = require_existing_property(ctx, property_b, "property_desired")
    if is_test_ecosystem(a) != is_test_ecosystem(b):
        raise PreconditionFailed(
            "ecosystem", "Property for sale and property desired must be in the same ecosystem"
        )


def require_distinct_properties(property_a: int, property_b: int) -> None:
    if property_a == property_b:
        raise PreconditionFailed(
            "properties", "Property for sale and property desired must be different"
        )


# ============================================================================
# GUARD FACTORIES
# ============================================================================
#
# Commands name the request fields a guard reads; the factories bind them.

def sane_reference_amount(amount_field: str = "reference_amount") -> Guard:
    return Guard(
        "SaneReferenceAmount",
        lambda ctx, r: require_sane_reference_amount(ctx, getattr(r, amount_field)),
    )


def sufficient_balance(property_field: str = "property_id", amount_field: str = "amount") -> Guard:
    return Guard(
        "SufficientBalance",
        lambda ctx, r: require_sufficient_balance(
            ctx, r.sender, getattr(r, property_field), getattr(r, amount_field)
        ),
    )


def non_empty_name() -> Guard:
    return Guard("NonEmptyName", lambda ctx, r: require_non_empty_name(r.name))


def only_primary_properties(property_field: str = "property_id") -> Guard:
    return Guard(
        "OnlyPrimaryProperties",
        lambda ctx, r: require_primary_property(getattr(r, property_field)),
    )


def active_crowdsale() -> Guard:
    return Guard("ActiveCrowdsale", lambda ctx, r: require_active_crowdsale(ctx, r.property_id))


def token_administrator() -> Guard:
    return Guard(
        "TokenAdministrator",
        lambda ctx, r: require_token_administrator(ctx, r.sender, r.property_id),
    )


def range_ok(*amount_fields: str, allow_zero: bool = False) -> Guard:
    def check(ctx: GuardContext, request: Any) -> None:
        for name in amount_fields:
            require_range(getattr(request, name), name, allow_zero)
    return Guard("RangeOK", check)


def no_duplicate_offer() -> Guard:
    return Guard(
        "NoDuplicateOffer",
        lambda ctx, r: require_no_duplicate_offer(ctx, r.sender, r.property_id),
    )


def offer_existence() -> Guard:
    return Guard(
        "OfferExistence",
        lambda ctx, r: require_offer_exists(ctx, r.seller, r.property_id),
    )


def safe_accept_terms() -> Guard:
    return Guard(
        "SafeAcceptTerms",
        lambda ctx, r: require_safe_accept_terms(ctx, r.seller, r.property_id),
    )


def ecosystem_consistency() -> Guard:
    return Guard(
        "EcosystemConsistency",
        lambda ctx, r: require_same_ecosystem(ctx, r.property_for_sale, r.property_desired),
    )


def distinct_properties() -> Guard:
    return Guard(
        "DistinctProperties",
        lambda ctx, r: require_distinct_properties(r.property_for_sale, r.property_desired),
    )
