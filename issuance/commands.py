"""
commands.py - Command specs

One CommandSpec per supported command. A spec supplies everything the
generic Coordinator needs that differs between commands:

1. parse: ordered raw parameters -> typed request (via the normalizer)
   params: the inverse, typed request -> raw parameters, so typed requests
   are normalized the same way
2. guards: the ordered Guard Chain for the request
3. recipient_field: which request field, if any, is the builder's recipient
4. pending: how to describe the committed transaction in the pending ledger
   (None for commands with no effect on the sender's spendable balance)
5. fee_override: temporary fee policy for the builder call, if any

Payload field mapping lives in payload.PAYLOAD_ENCODERS, keyed by kind.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .core import (
    CommandKind, OfferAction, TradeAction, TokenType, PendingEntry,
    SimpleSend, SendToOwners, ExchangeOffer, ExchangeAccept, ExchangeTrade,
    IssuanceFixed, IssuanceCrowdsale, IssuanceManaged,
    Grant, Revoke, CloseCrowdsale, ChangeIssuer,
    PreconditionFailed,
)
from .fee_policy import FeePolicy
from .guards import (
    Guard, GuardContext,
    sane_reference_amount, sufficient_balance, non_empty_name,
    only_primary_properties, active_crowdsale, token_administrator, range_ok,
    no_duplicate_offer, offer_existence, safe_accept_terms,
    ecosystem_consistency, distinct_properties,
)
from .normalize import ParameterNormalizer, format_amount


Parser = Callable[[ParameterNormalizer, Sequence[Any]], Any]
Unparser = Callable[[ParameterNormalizer, Any], List[Any]]
PendingFactory = Callable[[Any, str, datetime], PendingEntry]
FeeOverride = Callable[[GuardContext, Any], FeePolicy]


@dataclass(frozen=True, slots=True)
class CommandSpec:
    """
    Per-command configuration of the submission pipeline.

    Attributes:
        name: Command surface name (e.g. "send")
        kind: Protocol transaction type
        usage: One-line parameter synopsis
        min_params: Fewest positional parameters accepted
        max_params: Most positional parameters accepted
        parse: Builds the typed request from raw parameters
        params: Turns a typed request back into raw parameters
        guards: Ordered preconditions
        recipient_field: Request field passed to the builder as recipient
        pending: Builds the pending entry after commit (None: no entry)
        fee_override: Fee policy to install around the builder call
    """
    name: str
    kind: CommandKind
    usage: str
    min_params: int
    max_params: int
    parse: Parser
    params: Unparser
    guards: Tuple[Guard, ...] = ()
    recipient_field: Optional[str] = None
    pending: Optional[PendingFactory] = None
    fee_override: Optional[FeeOverride] = None

    def recipient(self, request: Any) -> Optional[str]:
        if self.recipient_field is None:
            return None
        return getattr(request, self.recipient_field)


def _opt(params: Sequence[Any], index: int, default: Any = None) -> Any:
    return params[index] if len(params) > index else default


# ============================================================================
# PARSERS
# ============================================================================

def parse_simple_send(n: ParameterNormalizer, p: Sequence[Any]) -> SimpleSend:
    sender = n.address(p[0])
    recipient = n.address(p[1])
    prop = n.property(p[2])
    amount = n.amount(p[3], prop.divisible)
    redeem = n.optional_address(_opt(p, 4))
    reference = n.reference_amount(p[5]) if len(p) > 5 else 0
    return SimpleSend(sender, recipient, prop.property_id, amount, redeem, reference)


def parse_exchange_offer(n: ParameterNormalizer, p: Sequence[Any]) -> ExchangeOffer:
    sender = n.address(p[0])
    prop = n.property(p[1])
    payment_window = n.payment_window(p[4])
    min_fee = n.commitment_fee(p[5])
    action = n.offer_action(p[6])
    # Primary tokens are always divisible. Positivity is left to the range
    # guard, which runs after the primary-property check.
    amount_for_sale = n.amount(p[2], True, require_positive=False)
    amount_desired = n.amount(p[3], True, require_positive=False)
    return ExchangeOffer(
        sender, prop.property_id, amount_for_sale, amount_desired,
        payment_window, min_fee, action,
    )


def parse_exchange_accept(n: ParameterNormalizer, p: Sequence[Any]) -> ExchangeAccept:
    sender = n.address(p[0])
    seller = n.address(p[1])
    prop = n.property(p[2])
    amount = n.amount(p[3], True)
    override = n.flag(p[4], "override") if len(p) > 4 else False
    return ExchangeAccept(sender, seller, prop.property_id, amount, override)


def _issuance_fields(n: ParameterNormalizer, p: Sequence[Any]) -> Tuple[Any, ...]:
    return (
        n.address(p[0]),
        n.ecosystem(p[1]),
        n.token_type(p[2]),
        n.previous_property_id(p[3]),
        n.text(p[4], "category"),
        n.text(p[5], "subcategory"),
        n.text(p[6], "name"),
        n.text(p[7], "url"),
        n.text(p[8], "data"),
    )


def parse_issuance_crowdsale(n: ParameterNormalizer, p: Sequence[Any]) -> IssuanceCrowdsale:
    fields = _issuance_fields(n, p)
    token_type = fields[2]
    desired = n.property(p[9], "property_desired")
    tokens_per_unit = n.amount(p[10], token_type == TokenType.DIVISIBLE)
    return IssuanceCrowdsale(
        *fields,
        property_desired=desired.property_id,
        tokens_per_unit=tokens_per_unit,
        deadline=n.deadline(p[11]),
        early_bonus=n.early_bonus(p[12]),
        issuer_percentage=n.issuer_percentage(p[13]),
    )


def parse_issuance_fixed(n: ParameterNormalizer, p: Sequence[Any]) -> IssuanceFixed:
    fields = _issuance_fields(n, p)
    token_type = fields[2]
    return IssuanceFixed(*fields, amount=n.amount(p[9], token_type == TokenType.DIVISIBLE))


def parse_issuance_managed(n: ParameterNormalizer, p: Sequence[Any]) -> IssuanceManaged:
    return IssuanceManaged(*_issuance_fields(n, p))


def parse_send_to_owners(n: ParameterNormalizer, p: Sequence[Any]) -> SendToOwners:
    sender = n.address(p[0])
    prop = n.property(p[1])
    amount = n.amount(p[2], prop.divisible)
    redeem = n.optional_address(_opt(p, 3))
    return SendToOwners(sender, prop.property_id, amount, redeem)


def parse_grant(n: ParameterNormalizer, p: Sequence[Any]) -> Grant:
    sender = n.address(p[0])
    recipient = n.optional_address(p[1]) or sender
    prop = n.property(p[2])
    amount = n.amount(p[3], prop.divisible)
    memo = n.text(_opt(p, 4, ""), "memo")
    return Grant(sender, recipient, prop.property_id, amount, memo)


def parse_revoke(n: ParameterNormalizer, p: Sequence[Any]) -> Revoke:
    sender = n.address(p[0])
    prop = n.property(p[1])
    amount = n.amount(p[2], prop.divisible)
    memo = n.text(_opt(p, 3, ""), "memo")
    return Revoke(sender, prop.property_id, amount, memo)


def parse_close_crowdsale(n: ParameterNormalizer, p: Sequence[Any]) -> CloseCrowdsale:
    sender = n.address(p[0])
    prop = n.property(p[1])
    return CloseCrowdsale(sender, prop.property_id)


def parse_exchange_trade(n: ParameterNormalizer, p: Sequence[Any]) -> ExchangeTrade:
    sender = n.address(p[0])
    action = n.trade_action(p[5])
    if action == TradeAction.CANCEL_EVERYTHING:
        # Resolution deferred: cancel-everything names an ecosystem, not a pair.
        return ExchangeTrade(
            sender, n.property_id(p[1], "property_for_sale"), 0,
            n.property_id(p[3], "property_desired"), 0, action,
        )
    for_sale = n.property(p[1], "property_for_sale")
    desired = n.property(p[3], "property_desired")
    amount_for_sale = amount_desired = 0
    if action in (TradeAction.ADD, TradeAction.CANCEL_AT_PRICE):
        amount_for_sale = n.amount(p[2], for_sale.divisible, require_positive=False)
        amount_desired = n.amount(p[4], desired.divisible, require_positive=False)
    return ExchangeTrade(
        sender, for_sale.property_id, amount_for_sale,
        desired.property_id, amount_desired, action,
    )


def parse_change_issuer(n: ParameterNormalizer, p: Sequence[Any]) -> ChangeIssuer:
    sender = n.address(p[0])
    new_issuer = n.address(p[1])
    prop = n.property(p[2])
    return ChangeIssuer(sender, new_issuer, prop.property_id)


# ============================================================================
# RAW PARAMETERS
# ============================================================================
#
# Typed requests are turned back into the positional parameters their parser
# accepts, so a request built in code is normalized exactly like one that
# arrived through the command surface.

def _raw(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _divisible(n: ParameterNormalizer, property_id: Any) -> bool:
    if isinstance(property_id, int) and not isinstance(property_id, bool):
        descriptor = n.view.get_property(property_id)
        if descriptor is not None:
            return descriptor.divisible
    return True


def _units(amount: Any, divisible: bool) -> Any:
    """Smallest units as a decimal string; anything else is left for the parser to reject."""
    if isinstance(amount, int) and not isinstance(amount, bool) and amount >= 0:
        return format_amount(amount, divisible)
    return amount


def params_simple_send(n: ParameterNormalizer, r: SimpleSend) -> List[Any]:
    params = [r.sender, r.recipient, r.property_id,
              _units(r.amount, _divisible(n, r.property_id)), r.redeem_address or ""]
    if r.reference_amount != 0:
        params.append(_units(r.reference_amount, True))
    return params


def params_exchange_offer(n: ParameterNormalizer, r: ExchangeOffer) -> List[Any]:
    return [
        r.sender, r.property_id, _units(r.amount_for_sale, True), _units(r.amount_desired, True),
        r.payment_window, _units(r.min_fee, True), _raw(r.action),
    ]


def params_exchange_accept(n: ParameterNormalizer, r: ExchangeAccept) -> List[Any]:
    return [r.sender, r.seller, r.property_id, _units(r.amount, True), r.override]


def _issuance_params(r: Any) -> List[Any]:
    return [
        r.sender, _raw(r.ecosystem), _raw(r.token_type), r.previous_id,
        r.category, r.subcategory, r.name, r.url, r.data,
    ]


def _issued_divisible(r: Any) -> bool:
    return _raw(r.token_type) == TokenType.DIVISIBLE.value


def params_issuance_crowdsale(n: ParameterNormalizer, r: IssuanceCrowdsale) -> List[Any]:
    return _issuance_params(r) + [
        r.property_desired, _units(r.tokens_per_unit, _issued_divisible(r)),
        r.deadline, r.early_bonus, r.issuer_percentage,
    ]


def params_issuance_fixed(n: ParameterNormalizer, r: IssuanceFixed) -> List[Any]:
    return _issuance_params(r) + [_units(r.amount, _issued_divisible(r))]


def params_issuance_managed(n: ParameterNormalizer, r: IssuanceManaged) -> List[Any]:
    return _issuance_params(r)


def params_send_to_owners(n: ParameterNormalizer, r: SendToOwners) -> List[Any]:
    return [r.sender, r.property_id, _units(r.amount, _divisible(n, r.property_id)),
            r.redeem_address or ""]


def params_grant(n: ParameterNormalizer, r: Grant) -> List[Any]:
    return [r.sender, r.recipient, r.property_id,
            _units(r.amount, _divisible(n, r.property_id)), r.memo]


def params_revoke(n: ParameterNormalizer, r: Revoke) -> List[Any]:
    return [r.sender, r.property_id, _units(r.amount, _divisible(n, r.property_id)), r.memo]


def params_close_crowdsale(n: ParameterNormalizer, r: CloseCrowdsale) -> List[Any]:
    return [r.sender, r.property_id]


def params_exchange_trade(n: ParameterNormalizer, r: ExchangeTrade) -> List[Any]:
    return [
        r.sender,
        r.property_for_sale, _units(r.amount_for_sale, _divisible(n, r.property_for_sale)),
        r.property_desired, _units(r.amount_desired, _divisible(n, r.property_desired)),
        _raw(r.action),
    ]


def params_change_issuer(n: ParameterNormalizer, r: ChangeIssuer) -> List[Any]:
    return [r.sender, r.new_issuer, r.property_id]


# ============================================================================
# PENDING ENTRIES
# ============================================================================

def _pending_simple_send(r: SimpleSend, txid: str, at: datetime) -> PendingEntry:
    return PendingEntry(txid, r.sender, r.kind, r.property_id, r.amount, at, recipient=r.recipient)


def _pending_send_to_owners(r: SendToOwners, txid: str, at: datetime) -> PendingEntry:
    return PendingEntry(txid, r.sender, r.kind, r.property_id, r.amount, at)


def _pending_exchange_offer(r: ExchangeOffer, txid: str, at: datetime) -> PendingEntry:
    return PendingEntry(
        txid, r.sender, r.kind, r.property_id, r.amount_for_sale, at,
        amount_desired=r.amount_desired, action=r.action.value,
    )


def _pending_exchange_trade(r: ExchangeTrade, txid: str, at: datetime) -> PendingEntry:
    return PendingEntry(
        txid, r.sender, r.kind, r.property_for_sale, r.amount_for_sale, at,
        property_desired=r.property_desired, amount_desired=r.amount_desired,
        action=r.action.value,
    )


def _pending_revoke(r: Revoke, txid: str, at: datetime) -> PendingEntry:
    return PendingEntry(txid, r.sender, r.kind, r.property_id, r.amount, at)


# ============================================================================
# FEE OVERRIDES
# ============================================================================

def _accept_fee_policy(ctx: GuardContext, r: ExchangeAccept) -> FeePolicy:
    offer = ctx.view.get_offer(r.seller, r.property_id)
    if offer is None:
        raise PreconditionFailed("offer", "Unable to load sell offer from the exchange")
    return FeePolicy(rate_per_kb=offer.min_fee, enforce_minimum=True)


# ============================================================================
# REGISTRY
# ============================================================================

def _offer_opens(r: ExchangeOffer) -> bool:
    return r.action != OfferAction.CANCEL


def _trade_priced(r: ExchangeTrade) -> bool:
    return r.action in (TradeAction.ADD, TradeAction.CANCEL_AT_PRICE)


def _trade_names_pair(r: ExchangeTrade) -> bool:
    return r.action != TradeAction.CANCEL_EVERYTHING


_ISSUANCE_USAGE = '"fromaddress" ecosystem type previousid "category" "subcategory" "name" "url" "data"'

COMMANDS: Dict[str, CommandSpec] = {spec.name: spec for spec in (
    CommandSpec(
        name="send",
        kind=CommandKind.SIMPLE_SEND,
        usage='send "fromaddress" "toaddress" propertyid "amount" ( "redeemaddress" "referenceamount" )',
        min_params=4, max_params=6,
        parse=parse_simple_send, params=params_simple_send,
        guards=(
            sane_reference_amount(),
            range_ok("amount"),
            sufficient_balance(),
        ),
        recipient_field="recipient",
        pending=_pending_simple_send,
    ),
    CommandSpec(
        name="senddexsell",
        kind=CommandKind.EXCHANGE_OFFER,
        usage='senddexsell "fromaddress" propertyidforsale "amountforsale" "amountdesired" paymentwindow minacceptfee action',
        min_params=7, max_params=7,
        parse=parse_exchange_offer, params=params_exchange_offer,
        guards=(
            only_primary_properties(),
            range_ok("amount_for_sale", "amount_desired").when(_offer_opens),
            sufficient_balance(amount_field="amount_for_sale").when(_offer_opens),
            no_duplicate_offer().when(lambda r: r.action == OfferAction.NEW),
        ),
        pending=_pending_exchange_offer,
    ),
    CommandSpec(
        name="senddexaccept",
        kind=CommandKind.EXCHANGE_ACCEPT,
        usage='senddexaccept "fromaddress" "toaddress" propertyid "amount" ( override )',
        min_params=4, max_params=5,
        parse=parse_exchange_accept, params=params_exchange_accept,
        guards=(
            only_primary_properties(),
            range_ok("amount"),
            offer_existence(),
            safe_accept_terms().when(lambda r: not r.override),
        ),
        recipient_field="seller",
        fee_override=_accept_fee_policy,
    ),
    CommandSpec(
        name="sendissuancecrowdsale",
        kind=CommandKind.ISSUANCE_CROWDSALE,
        usage=f"sendissuancecrowdsale {_ISSUANCE_USAGE} propertyiddesired tokensperunit deadline earlybonus issuerpercentage",
        min_params=14, max_params=14,
        parse=parse_issuance_crowdsale, params=params_issuance_crowdsale,
        guards=(non_empty_name(), range_ok("tokens_per_unit")),
    ),
    CommandSpec(
        name="sendissuancefixed",
        kind=CommandKind.ISSUANCE_FIXED,
        usage=f'sendissuancefixed {_ISSUANCE_USAGE} "amount"',
        min_params=10, max_params=10,
        parse=parse_issuance_fixed, params=params_issuance_fixed,
        guards=(non_empty_name(), range_ok("amount")),
    ),
    CommandSpec(
        name="sendissuancemanaged",
        kind=CommandKind.ISSUANCE_MANAGED,
        usage=f"sendissuancemanaged {_ISSUANCE_USAGE}",
        min_params=9, max_params=9,
        parse=parse_issuance_managed, params=params_issuance_managed,
        guards=(non_empty_name(),),
    ),
    CommandSpec(
        name="sendsto",
        kind=CommandKind.SEND_TO_OWNERS,
        usage='sendsto "fromaddress" propertyid "amount" ( "redeemaddress" )',
        min_params=3, max_params=4,
        parse=parse_send_to_owners, params=params_send_to_owners,
        guards=(range_ok("amount"), sufficient_balance()),
        pending=_pending_send_to_owners,
    ),
    CommandSpec(
        name="sendgrant",
        kind=CommandKind.GRANT,
        usage='sendgrant "fromaddress" "toaddress" propertyid "amount" ( "memo" )',
        min_params=4, max_params=5,
        parse=parse_grant, params=params_grant,
        guards=(token_administrator(), range_ok("amount")),
        recipient_field="recipient",
    ),
    CommandSpec(
        name="sendrevoke",
        kind=CommandKind.REVOKE,
        usage='sendrevoke "fromaddress" propertyid "amount" ( "memo" )',
        min_params=3, max_params=4,
        parse=parse_revoke, params=params_revoke,
        guards=(token_administrator(), range_ok("amount"), sufficient_balance()),
        pending=_pending_revoke,
    ),
    CommandSpec(
        name="sendclosecrowdsale",
        kind=CommandKind.CLOSE_CROWDSALE,
        usage='sendclosecrowdsale "fromaddress" propertyid',
        min_params=2, max_params=2,
        parse=parse_close_crowdsale, params=params_close_crowdsale,
        guards=(active_crowdsale(), token_administrator()),
    ),
    CommandSpec(
        name="sendtrade",
        kind=CommandKind.EXCHANGE_TRADE,
        usage='sendtrade "fromaddress" propertyidforsale "amountforsale" propertiddesired "amountdesired" action',
        min_params=6, max_params=6,
        parse=parse_exchange_trade, params=params_exchange_trade,
        guards=(
            ecosystem_consistency().when(_trade_names_pair),
            distinct_properties().when(_trade_names_pair),
            range_ok("amount_for_sale", "amount_desired").when(_trade_priced),
            sufficient_balance("property_for_sale", "amount_for_sale").when(
                lambda r: r.action == TradeAction.ADD
            ),
        ),
        pending=_pending_exchange_trade,
    ),
    CommandSpec(
        name="sendchangeissuer",
        kind=CommandKind.CHANGE_ISSUER,
        usage='sendchangeissuer "fromaddress" "toaddress" propertyid',
        min_params=3, max_params=3,
        parse=parse_change_issuer, params=params_change_issuer,
        guards=(token_administrator(),),
        recipient_field="new_issuer",
    ),
)}

SPECS_BY_KIND: Dict[CommandKind, CommandSpec] = {spec.kind: spec for spec in COMMANDS.values()}


def spec_for(request: Any) -> CommandSpec:
    """Return the CommandSpec for a typed request."""
    return SPECS_BY_KIND[request.kind]
