"""
normalize.py - Parameter Normalizer

Converts raw, untyped request fields (strings, numbers, booleans as they
arrive from the command surface) into typed domain values, or raises:

- InvalidAddress for addresses that are not valid base58check
- InvalidAmount for amounts that are unparsable, non-positive where
  positivity is required, out of range, or finer than the property allows
- InvalidParameter for unknown properties, malformed enumerated fields and
  over-long text

Amount strings are decimal only: divisible properties accept up to 8
fractional digits, indivisible properties accept whole numbers only.
"""

from __future__ import annotations
import hashlib
import re
from typing import Any, Iterable, Optional, Tuple

from .core import (
    COIN, DIVISIBLE_PLACES, MAX_AMOUNT, MAX_PROPERTY_ID, MAX_TEXT_BYTES,
    DEFAULT_ADDRESS_VERSIONS,
    ConsensusView, PropertyDescriptor,
    Ecosystem, TokenType, OfferAction, TradeAction,
    InvalidAddress, InvalidAmount, InvalidParameter,
)


# ============================================================================
# BASE58CHECK
# ============================================================================

_B58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_B58_INDEX = {c: i for i, c in enumerate(_B58_ALPHABET)}

_ADDRESS_PAYLOAD_BYTES = 20


def _checksum(data: bytes) -> bytes:
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()[:4]


def encode_address(version: int, payload: bytes) -> str:
    """
    Encode a version byte and 20-byte hash as a base58check address.

    Example:
        encode_address(0x00, bytes(20))  # '1111111111111111111114oLvT2'
    """
    if not 0 <= version <= 255:
        raise ValueError(f"version must be a byte, got {version}")
    if len(payload) != _ADDRESS_PAYLOAD_BYTES:
        raise ValueError(f"payload must be {_ADDRESS_PAYLOAD_BYTES} bytes, got {len(payload)}")
    raw = bytes([version]) + payload
    raw += _checksum(raw)
    n = int.from_bytes(raw, "big")
    encoded = ""
    while n:
        n, rem = divmod(n, 58)
        encoded = _B58_ALPHABET[rem] + encoded
    leading = len(raw) - len(raw.lstrip(b"\x00"))
    return "1" * leading + encoded


def decode_address(address: str) -> Tuple[int, bytes]:
    """
    Decode a base58check address into (version, 20-byte hash).

    Raises:
        InvalidAddress: On bad characters, wrong length or checksum mismatch
    """
    if not address:
        raise InvalidAddress("address", "Address must not be empty")
    n = 0
    for char in address:
        digit = _B58_INDEX.get(char)
        if digit is None:
            raise InvalidAddress("address", f"Invalid address: {address!r}")
        n = n * 58 + digit
    leading = len(address) - len(address.lstrip("1"))
    body = n.to_bytes((n.bit_length() + 7) // 8, "big") if n else b""
    raw = b"\x00" * leading + body
    if len(raw) != _ADDRESS_PAYLOAD_BYTES + 5:
        raise InvalidAddress("address", f"Invalid address: {address!r}")
    if _checksum(raw[:-4]) != raw[-4:]:
        raise InvalidAddress("address", f"Invalid address checksum: {address!r}")
    return raw[0], raw[1:-4]


# ============================================================================
# AMOUNTS
# ============================================================================

_DIVISIBLE_RE = re.compile(r"^([0-9]+)(?:\.([0-9]+))?$")
_INDIVISIBLE_RE = re.compile(r"^[0-9]+$")


def parse_amount(value: Any, divisible: bool, require_positive: bool = True) -> int:
    """
    Parse a decimal amount string into smallest units.

    Args:
        value: Amount as a string (integers are accepted for convenience)
        divisible: True for 8-decimal properties
        require_positive: Reject zero when True

    Returns:
        Amount in smallest units, within 0..MAX_AMOUNT

    Raises:
        InvalidAmount: See module docstring
    """
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise InvalidAmount("amount", f"Amount must be a decimal string, got {type(value).__name__}")
    text = str(value).strip()

    if divisible:
        match = _DIVISIBLE_RE.match(text)
        if match is None:
            raise InvalidAmount("amount", f"Invalid amount: {text!r}")
        whole, fraction = match.group(1), match.group(2) or ""
        if len(fraction) > DIVISIBLE_PLACES:
            raise InvalidAmount(
                "amount", f"Amount {text!r} has more than {DIVISIBLE_PLACES} decimal places"
            )
        amount = int(whole) * COIN + int(fraction.ljust(DIVISIBLE_PLACES, "0"))
    else:
        if _INDIVISIBLE_RE.match(text) is None:
            raise InvalidAmount("amount", f"Invalid amount for indivisible property: {text!r}")
        amount = int(text)

    if require_positive and amount <= 0:
        raise InvalidAmount("amount", "Invalid amount: must be greater than zero")
    if amount > MAX_AMOUNT:
        raise InvalidAmount("amount", f"Amount {text!r} is not in range")
    return amount


def format_amount(amount: int, divisible: bool) -> str:
    """Format smallest units as the user-facing decimal string."""
    if not divisible:
        return str(amount)
    whole, fraction = divmod(amount, COIN)
    return f"{whole}.{fraction:0{DIVISIBLE_PLACES}d}"


# ============================================================================
# TEXT
# ============================================================================

def parse_text(value: Any, strict: bool = True, field_name: str = "text") -> str:
    """
    Validate a free-text field against the 255-byte limit.

    In strict mode an over-long value is rejected. Otherwise it is
    truncated at the last whole character that fits.
    """
    if not isinstance(value, str):
        raise InvalidParameter(field_name, f"{field_name} must be a string")
    encoded = value.encode("utf-8")
    if len(encoded) <= MAX_TEXT_BYTES:
        return value
    if strict:
        raise InvalidParameter(
            field_name, f"{field_name} must not be longer than {MAX_TEXT_BYTES} bytes"
        )
    return encoded[:MAX_TEXT_BYTES].decode("utf-8", errors="ignore")


# ============================================================================
# SMALL INTEGERS
# ============================================================================

def _parse_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise InvalidParameter(field_name, f"{field_name} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and re.match(r"^-?[0-9]+$", value.strip()):
        return int(value.strip())
    raise InvalidParameter(field_name, f"{field_name} must be an integer, got {value!r}")


def _parse_bounded(value: Any, field_name: str, low: int, high: int) -> int:
    n = _parse_int(value, field_name)
    if not low <= n <= high:
        raise InvalidParameter(field_name, f"{field_name} must be between {low} and {high}")
    return n


def _parse_bool(value: Any, field_name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise InvalidParameter(field_name, f"{field_name} must be a boolean")


# ============================================================================
# NORMALIZER
# ============================================================================

class ParameterNormalizer:
    """
    Typed conversion of raw request fields against a consensus view.

    Example:
        normalizer = ParameterNormalizer(view)
        sender = normalizer.address("1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa")
        prop = normalizer.property(3)
        amount = normalizer.amount("1.5", prop.divisible)
    """

    def __init__(
        self,
        view: ConsensusView,
        address_versions: Iterable[int] = DEFAULT_ADDRESS_VERSIONS,
        strict_text: bool = True,
    ):
        self.view = view
        self.address_versions = frozenset(address_versions)
        self.strict_text = strict_text

    # -- addresses ----------------------------------------------------------

    def address(self, value: Any) -> str:
        if not isinstance(value, str):
            raise InvalidAddress("address", "Address must be a string")
        address = value.strip()
        version, _ = decode_address(address)
        if version not in self.address_versions:
            raise InvalidAddress("address", f"Unsupported address version {version}: {address!r}")
        return address

    def optional_address(self, value: Any) -> Optional[str]:
        """Empty string or None means 'not given'."""
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return self.address(value)

    # -- properties ---------------------------------------------------------

    def property_id(self, value: Any, field_name: str = "property") -> int:
        """Range check only; the property need not exist."""
        return _parse_bounded(value, field_name, 1, MAX_PROPERTY_ID)

    def property(self, value: Any, field_name: str = "property") -> PropertyDescriptor:
        property_id = self.property_id(value, field_name)
        descriptor = self.view.get_property(property_id)
        if descriptor is None:
            raise InvalidParameter(field_name, f"Property identifier {property_id} does not exist")
        return descriptor

    def previous_property_id(self, value: Any) -> int:
        previous_id = _parse_int(value, "previous_id")
        if previous_id != 0:
            raise InvalidParameter("previous_id", "Property appends/replaces are not supported")
        return previous_id

    # -- amounts ------------------------------------------------------------

    def amount(self, value: Any, divisible: bool, require_positive: bool = True) -> int:
        return parse_amount(value, divisible, require_positive)

    def reference_amount(self, value: Any) -> int:
        """Base-currency amount for the reference output (always divisible)."""
        return parse_amount(value, True)

    def commitment_fee(self, value: Any) -> int:
        """Minimum accept fee a buyer must pay, in base-currency units."""
        return parse_amount(value, True)

    # -- text ---------------------------------------------------------------

    def text(self, value: Any, field_name: str = "text") -> str:
        return parse_text(value, self.strict_text, field_name)

    # -- enumerated fields --------------------------------------------------

    def ecosystem(self, value: Any) -> Ecosystem:
        return Ecosystem(_parse_bounded(value, "ecosystem", 1, 2))

    def token_type(self, value: Any) -> TokenType:
        return TokenType(_parse_bounded(value, "type", 1, 2))

    def payment_window(self, value: Any) -> int:
        return _parse_bounded(value, "payment_window", 1, 255)

    def offer_action(self, value: Any) -> OfferAction:
        return OfferAction(_parse_bounded(value, "action", 1, 3))

    def trade_action(self, value: Any) -> TradeAction:
        return TradeAction(_parse_bounded(value, "action", 1, 4))

    def deadline(self, value: Any) -> int:
        return _parse_bounded(value, "deadline", 0, MAX_AMOUNT)

    def early_bonus(self, value: Any) -> int:
        return _parse_bounded(value, "early_bonus", 0, 255)

    def issuer_percentage(self, value: Any) -> int:
        return _parse_bounded(value, "issuer_percentage", 0, 255)

    def flag(self, value: Any, field_name: str) -> bool:
        return _parse_bool(value, field_name)
