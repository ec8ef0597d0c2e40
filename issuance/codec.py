"""
codec.py - Payload codec

PayloadCodec is the boundary the Payload Assembler calls: one encode entry
point per command kind, each taking exactly the typed fields of that command
and returning the payload bytes or raising EncodingError.

BinaryPayloadCodec is the reference implementation of the wire layout:

    uint16 version | uint16 type | type-specific fields

All integers are big-endian. Property ids are uint32, amounts uint64, small
enumerations uint8 (token type is uint16). Text fields are UTF-8 followed by
a single NUL byte.
"""

from __future__ import annotations
import struct
from typing import Protocol, runtime_checkable

from .core import MAX_TEXT_BYTES, CommandKind


class EncodingError(ValueError):
    """Raised when a field cannot be represented in the payload layout."""
    pass


@runtime_checkable
class PayloadCodec(Protocol):
    """One encode entry point per command kind."""

    def encode_simple_send(self, property_id: int, amount: int) -> bytes: ...

    def encode_send_to_owners(self, property_id: int, amount: int) -> bytes: ...

    def encode_exchange_offer(
        self, property_id: int, amount_for_sale: int, amount_desired: int,
        payment_window: int, min_fee: int, action: int,
    ) -> bytes: ...

    def encode_exchange_accept(self, property_id: int, amount: int) -> bytes: ...

    def encode_exchange_trade(
        self, property_for_sale: int, amount_for_sale: int,
        property_desired: int, amount_desired: int, action: int,
    ) -> bytes: ...

    def encode_issuance_fixed(
        self, ecosystem: int, token_type: int, previous_id: int,
        category: str, subcategory: str, name: str, url: str, data: str,
        amount: int,
    ) -> bytes: ...

    def encode_issuance_crowdsale(
        self, ecosystem: int, token_type: int, previous_id: int,
        category: str, subcategory: str, name: str, url: str, data: str,
        property_desired: int, tokens_per_unit: int, deadline: int,
        early_bonus: int, issuer_percentage: int,
    ) -> bytes: ...

    def encode_issuance_managed(
        self, ecosystem: int, token_type: int, previous_id: int,
        category: str, subcategory: str, name: str, url: str, data: str,
    ) -> bytes: ...

    def encode_grant(self, property_id: int, amount: int, memo: str) -> bytes: ...

    def encode_revoke(self, property_id: int, amount: int, memo: str) -> bytes: ...

    def encode_close_crowdsale(self, property_id: int) -> bytes: ...

    def encode_change_issuer(self, property_id: int) -> bytes: ...


# Offers carry sub-actions from version 1 onwards.
_VERSIONS = {CommandKind.EXCHANGE_OFFER: 1}


def _header(kind: CommandKind) -> bytes:
    return struct.pack(">HH", _VERSIONS.get(kind, 0), kind.value)


def _pack(fmt: str, *values: int) -> bytes:
    try:
        return struct.pack(fmt, *values)
    except struct.error as exc:
        raise EncodingError(f"field out of encodable range: {exc}") from exc


def _text(value: str) -> bytes:
    encoded = value.encode("utf-8")
    if b"\x00" in encoded:
        raise EncodingError("text fields must not contain NUL bytes")
    if len(encoded) > MAX_TEXT_BYTES:
        raise EncodingError(f"text field longer than {MAX_TEXT_BYTES} bytes")
    return encoded + b"\x00"


class BinaryPayloadCodec:
    """Reference encoder for the tagged binary payload layout."""

    def encode_simple_send(self, property_id: int, amount: int) -> bytes:
        return _header(CommandKind.SIMPLE_SEND) + _pack(">IQ", property_id, amount)

    def encode_send_to_owners(self, property_id: int, amount: int) -> bytes:
        return _header(CommandKind.SEND_TO_OWNERS) + _pack(">IQ", property_id, amount)

    def encode_exchange_offer(
        self, property_id: int, amount_for_sale: int, amount_desired: int,
        payment_window: int, min_fee: int, action: int,
    ) -> bytes:
        return _header(CommandKind.EXCHANGE_OFFER) + _pack(
            ">IQQBQB", property_id, amount_for_sale, amount_desired,
            payment_window, min_fee, action,
        )

    def encode_exchange_accept(self, property_id: int, amount: int) -> bytes:
        return _header(CommandKind.EXCHANGE_ACCEPT) + _pack(">IQ", property_id, amount)

    def encode_exchange_trade(
        self, property_for_sale: int, amount_for_sale: int,
        property_desired: int, amount_desired: int, action: int,
    ) -> bytes:
        return _header(CommandKind.EXCHANGE_TRADE) + _pack(
            ">IQIQB", property_for_sale, amount_for_sale,
            property_desired, amount_desired, action,
        )

    def _issuance_prefix(
        self, kind: CommandKind, ecosystem: int, token_type: int, previous_id: int,
        category: str, subcategory: str, name: str, url: str, data: str,
    ) -> bytes:
        return (
            _header(kind)
            + _pack(">BHI", ecosystem, token_type, previous_id)
            + b"".join(_text(t) for t in (category, subcategory, name, url, data))
        )

    def encode_issuance_fixed(
        self, ecosystem: int, token_type: int, previous_id: int,
        category: str, subcategory: str, name: str, url: str, data: str,
        amount: int,
    ) -> bytes:
        return self._issuance_prefix(
            CommandKind.ISSUANCE_FIXED, ecosystem, token_type, previous_id,
            category, subcategory, name, url, data,
        ) + _pack(">Q", amount)

    def encode_issuance_crowdsale(
        self, ecosystem: int, token_type: int, previous_id: int,
        category: str, subcategory: str, name: str, url: str, data: str,
        property_desired: int, tokens_per_unit: int, deadline: int,
        early_bonus: int, issuer_percentage: int,
    ) -> bytes:
        return self._issuance_prefix(
            CommandKind.ISSUANCE_CROWDSALE, ecosystem, token_type, previous_id,
            category, subcategory, name, url, data,
        ) + _pack(
            ">IQQBB", property_desired, tokens_per_unit, deadline,
            early_bonus, issuer_percentage,
        )

    def encode_issuance_managed(
        self, ecosystem: int, token_type: int, previous_id: int,
        category: str, subcategory: str, name: str, url: str, data: str,
    ) -> bytes:
        return self._issuance_prefix(
            CommandKind.ISSUANCE_MANAGED, ecosystem, token_type, previous_id,
            category, subcategory, name, url, data,
        )

    def encode_grant(self, property_id: int, amount: int, memo: str) -> bytes:
        return _header(CommandKind.GRANT) + _pack(">IQ", property_id, amount) + _text(memo)

    def encode_revoke(self, property_id: int, amount: int, memo: str) -> bytes:
        return _header(CommandKind.REVOKE) + _pack(">IQ", property_id, amount) + _text(memo)

    def encode_close_crowdsale(self, property_id: int) -> bytes:
        return _header(CommandKind.CLOSE_CROWDSALE) + _pack(">I", property_id)

    def encode_change_issuer(self, property_id: int) -> bytes:
        return _header(CommandKind.CHANGE_ISSUER) + _pack(">I", property_id)

    def __repr__(self) -> str:
        return "BinaryPayloadCodec()"
