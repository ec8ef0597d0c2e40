"""
payload.py - Payload Assembler

Maps each validated request variant onto its codec entry point, passing
exactly the fields that entry point takes. Codec failures surface as
PayloadEncodingFailed; nothing here validates business rules.
"""

from __future__ import annotations
import struct
from typing import Any, Callable, Dict

from .codec import PayloadCodec
from .core import (
    CommandKind, PayloadEncodingFailed,
    SimpleSend, SendToOwners, ExchangeOffer, ExchangeAccept, ExchangeTrade,
    IssuanceFixed, IssuanceCrowdsale, IssuanceManaged,
    Grant, Revoke, CloseCrowdsale, ChangeIssuer,
)


Encoder = Callable[[PayloadCodec, Any], bytes]


def _simple_send(codec: PayloadCodec, r: SimpleSend) -> bytes:
    return codec.encode_simple_send(r.property_id, r.amount)


def _send_to_owners(codec: PayloadCodec, r: SendToOwners) -> bytes:
    return codec.encode_send_to_owners(r.property_id, r.amount)


def _exchange_offer(codec: PayloadCodec, r: ExchangeOffer) -> bytes:
    return codec.encode_exchange_offer(
        r.property_id, r.amount_for_sale, r.amount_desired,
        r.payment_window, r.min_fee, r.action.value,
    )


def _exchange_accept(codec: PayloadCodec, r: ExchangeAccept) -> bytes:
    return codec.encode_exchange_accept(r.property_id, r.amount)


def _exchange_trade(codec: PayloadCodec, r: ExchangeTrade) -> bytes:
    return codec.encode_exchange_trade(
        r.property_for_sale, r.amount_for_sale,
        r.property_desired, r.amount_desired, r.action.value,
    )


def _issuance_fixed(codec: PayloadCodec, r: IssuanceFixed) -> bytes:
    return codec.encode_issuance_fixed(
        r.ecosystem.value, r.token_type.value, r.previous_id,
        r.category, r.subcategory, r.name, r.url, r.data, r.amount,
    )


def _issuance_crowdsale(codec: PayloadCodec, r: IssuanceCrowdsale) -> bytes:
    return codec.encode_issuance_crowdsale(
        r.ecosystem.value, r.token_type.value, r.previous_id,
        r.category, r.subcategory, r.name, r.url, r.data,
        r.property_desired, r.tokens_per_unit, r.deadline,
        r.early_bonus, r.issuer_percentage,
    )


def _issuance_managed(codec: PayloadCodec, r: IssuanceManaged) -> bytes:
    return codec.encode_issuance_managed(
        r.ecosystem.value, r.token_type.value, r.previous_id,
        r.category, r.subcategory, r.name, r.url, r.data,
    )


def _grant(codec: PayloadCodec, r: Grant) -> bytes:
    return codec.encode_grant(r.property_id, r.amount, r.memo)


def _revoke(codec: PayloadCodec, r: Revoke) -> bytes:
    return codec.encode_revoke(r.property_id, r.amount, r.memo)


def _close_crowdsale(codec: PayloadCodec, r: CloseCrowdsale) -> bytes:
    return codec.encode_close_crowdsale(r.property_id)


def _change_issuer(codec: PayloadCodec, r: ChangeIssuer) -> bytes:
    return codec.encode_change_issuer(r.property_id)


PAYLOAD_ENCODERS: Dict[CommandKind, Encoder] = {
    CommandKind.SIMPLE_SEND: _simple_send,
    CommandKind.SEND_TO_OWNERS: _send_to_owners,
    CommandKind.EXCHANGE_OFFER: _exchange_offer,
    CommandKind.EXCHANGE_ACCEPT: _exchange_accept,
    CommandKind.EXCHANGE_TRADE: _exchange_trade,
    CommandKind.ISSUANCE_FIXED: _issuance_fixed,
    CommandKind.ISSUANCE_CROWDSALE: _issuance_crowdsale,
    CommandKind.ISSUANCE_MANAGED: _issuance_managed,
    CommandKind.GRANT: _grant,
    CommandKind.REVOKE: _revoke,
    CommandKind.CLOSE_CROWDSALE: _close_crowdsale,
    CommandKind.CHANGE_ISSUER: _change_issuer,
}


def assemble(codec: PayloadCodec, request: Any) -> bytes:
    """
    Build the payload bytes for a validated request.

    Args:
        codec: Encoder for the wire layout
        request: One of the TransactionRequest variants

    Returns:
        The encoded payload

    Raises:
        PayloadEncodingFailed: If the codec rejects a field (EncodingError or any ValueError)
        KeyError: If the request kind has no encoder
    """
    encoder = PAYLOAD_ENCODERS[request.kind]
    try:
        payload = encoder(codec, request)
    except (ValueError, struct.error, OverflowError) as exc:
        raise PayloadEncodingFailed(request.kind.name.lower(), f"Payload encoding failed: {exc}") from exc
    if not payload:
        raise PayloadEncodingFailed(request.kind.name.lower(), "Payload encoding produced no bytes")
    return bytes(payload)
