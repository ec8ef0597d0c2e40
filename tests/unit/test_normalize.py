"""
test_normalize.py - Unit tests for the Parameter Normalizer

Tests:
- Amount parsing for divisible and indivisible properties
- Amount formatting
- base58check address syntax
- Text field limits
- Property resolution and enumerated fields
"""

import pytest

from issuance import (
    ParameterNormalizer, parse_amount, format_amount,
    encode_address, decode_address,
    Ecosystem, TokenType, OfferAction, TradeAction,
    InvalidAddress, InvalidAmount, InvalidParameter,
    COIN, MAX_AMOUNT,
)
from issuance.normalize import parse_text

from tests.fakes import ALICE, address


class TestParseAmount:
    """Tests for decimal amount parsing."""

    def test_divisible_fraction(self):
        assert parse_amount("1.5", True) == 150_000_000

    def test_divisible_whole_number(self):
        assert parse_amount("2", True) == 2 * COIN

    def test_divisible_smallest_unit(self):
        assert parse_amount("0.00000001", True) == 1

    def test_divisible_nine_places_rejected(self):
        """More than 8 fractional digits is not representable."""
        with pytest.raises(InvalidAmount):
            parse_amount("1.000000001", True)

    def test_indivisible_whole_number(self):
        assert parse_amount("10", False) == 10

    def test_indivisible_decimal_point_rejected(self):
        with pytest.raises(InvalidAmount):
            parse_amount("1.0", False)

    def test_integer_input_accepted(self):
        assert parse_amount(7, False) == 7

    def test_zero_rejected_by_default(self):
        with pytest.raises(InvalidAmount):
            parse_amount("0", True)

    def test_zero_allowed_when_positivity_not_required(self):
        assert parse_amount("0", True, require_positive=False) == 0

    @pytest.mark.parametrize("value", ["-1", "abc", "", "1e5", "1,5", ".5", "1."])
    def test_malformed_rejected(self, value):
        with pytest.raises(InvalidAmount):
            parse_amount(value, True)

    @pytest.mark.parametrize("value", [1.5, None, True, b"1"])
    def test_non_string_rejected(self, value):
        with pytest.raises(InvalidAmount):
            parse_amount(value, True)

    def test_maximum_indivisible_accepted(self):
        assert parse_amount(str(MAX_AMOUNT), False) == MAX_AMOUNT

    def test_one_above_maximum_rejected(self):
        with pytest.raises(InvalidAmount):
            parse_amount(str(MAX_AMOUNT + 1), False)

    def test_maximum_divisible_accepted(self):
        assert parse_amount("92233720368.54775807", True) == MAX_AMOUNT

    def test_one_unit_above_maximum_divisible_rejected(self):
        with pytest.raises(InvalidAmount):
            parse_amount("92233720368.54775808", True)

    def test_error_subject_is_amount(self):
        with pytest.raises(InvalidAmount) as exc_info:
            parse_amount("x", True)
        assert exc_info.value.subject == "amount"


class TestFormatAmount:
    """Tests for amount formatting."""

    def test_divisible(self):
        assert format_amount(150_000_000, True) == "1.50000000"

    def test_divisible_sub_unit(self):
        assert format_amount(1, True) == "0.00000001"

    def test_indivisible(self):
        assert format_amount(7, False) == "7"


class TestAddresses:
    """Tests for base58check address syntax."""

    def test_known_address_decodes(self):
        version, payload = decode_address("1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa")
        assert version == 0
        assert len(payload) == 20

    def test_zero_payload_encoding(self):
        assert encode_address(0x00, bytes(20)) == "1111111111111111111114oLvT2"

    def test_encode_then_decode(self):
        payload = bytes(range(20))
        assert decode_address(encode_address(0x6F, payload)) == (0x6F, payload)

    def test_bad_checksum_rejected(self):
        with pytest.raises(InvalidAddress):
            decode_address("1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNb")

    @pytest.mark.parametrize("value", ["", "0OIl", "1A1zP1eP5QGefi2D", "not an address"])
    def test_malformed_rejected(self, value):
        with pytest.raises(InvalidAddress):
            decode_address(value)

    def test_encode_rejects_wrong_payload_length(self):
        with pytest.raises(ValueError):
            encode_address(0x00, bytes(19))


class TestParseText:
    """Tests for the 255-byte text limit."""

    def test_limit_accepted(self):
        assert parse_text("a" * 255) == "a" * 255

    def test_over_limit_rejected_in_strict_mode(self):
        with pytest.raises(InvalidParameter) as exc_info:
            parse_text("a" * 256, strict=True, field_name="url")
        assert exc_info.value.subject == "url"

    def test_over_limit_truncated_in_lenient_mode(self):
        assert parse_text("a" * 300, strict=False) == "a" * 255

    def test_truncation_keeps_whole_characters(self):
        """Two-byte characters are never split."""
        truncated = parse_text("é" * 128, strict=False)
        assert truncated == "é" * 127
        assert len(truncated.encode("utf-8")) == 254

    def test_non_string_rejected(self):
        with pytest.raises(InvalidParameter):
            parse_text(42)


class TestParameterNormalizer:
    """Tests for normalization against a consensus view."""

    @pytest.fixture
    def normalizer(self, view):
        return ParameterNormalizer(view)

    def test_address_accepted(self, normalizer):
        assert normalizer.address(ALICE) == ALICE

    def test_address_whitespace_stripped(self, normalizer):
        assert normalizer.address(f" {ALICE} ") == ALICE

    def test_unsupported_version_rejected(self, normalizer):
        with pytest.raises(InvalidAddress):
            normalizer.address(address("alice", version=0x30))

    def test_testnet_address_accepted(self, normalizer):
        testnet = address("alice", version=0x6F)
        assert normalizer.address(testnet) == testnet

    def test_optional_address_empty_is_none(self, normalizer):
        assert normalizer.optional_address("") is None
        assert normalizer.optional_address(None) is None

    def test_property_resolved(self, normalizer):
        descriptor = normalizer.property("3")
        assert descriptor.property_id == 3
        assert descriptor.divisible is False

    def test_unknown_property_rejected(self, normalizer):
        with pytest.raises(InvalidParameter) as exc_info:
            normalizer.property(99)
        assert exc_info.value.subject == "property"

    @pytest.mark.parametrize("value", [0, -1, 4_294_967_296, "x", True])
    def test_property_id_out_of_range(self, normalizer, value):
        with pytest.raises(InvalidParameter):
            normalizer.property_id(value)

    def test_property_id_does_not_require_existence(self, normalizer):
        assert normalizer.property_id(99) == 99

    def test_previous_property_must_be_zero(self, normalizer):
        assert normalizer.previous_property_id(0) == 0
        with pytest.raises(InvalidParameter):
            normalizer.previous_property_id(5)

    def test_ecosystem_and_type(self, normalizer):
        assert normalizer.ecosystem(2) == Ecosystem.TEST
        assert normalizer.token_type("1") == TokenType.INDIVISIBLE
        with pytest.raises(InvalidParameter):
            normalizer.ecosystem(3)
        with pytest.raises(InvalidParameter):
            normalizer.token_type(0)

    def test_payment_window_bounds(self, normalizer):
        assert normalizer.payment_window(255) == 255
        for bad in (0, 256):
            with pytest.raises(InvalidParameter):
                normalizer.payment_window(bad)

    def test_actions(self, normalizer):
        assert normalizer.offer_action(3) == OfferAction.CANCEL
        assert normalizer.trade_action(4) == TradeAction.CANCEL_EVERYTHING
        with pytest.raises(InvalidParameter):
            normalizer.offer_action(4)
        with pytest.raises(InvalidParameter):
            normalizer.trade_action(5)

    def test_commitment_fee_must_be_positive(self, normalizer):
        assert normalizer.commitment_fee("0.0001") == 10_000
        with pytest.raises(InvalidAmount):
            normalizer.commitment_fee("0")

    def test_crowdsale_percentages(self, normalizer):
        assert normalizer.early_bonus(255) == 255
        with pytest.raises(InvalidParameter):
            normalizer.issuer_percentage(256)

    def test_flag(self, normalizer):
        assert normalizer.flag("true", "override") is True
        assert normalizer.flag(False, "override") is False
        with pytest.raises(InvalidParameter):
            normalizer.flag("yes", "override")

    def test_lenient_text(self, view):
        normalizer = ParameterNormalizer(view, strict_text=False)
        assert len(normalizer.text("x" * 400, "data")) == 255
