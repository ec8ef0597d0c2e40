"""
Core types for the token-layer transaction issuance pipeline.

This module provides the foundational data structures and protocols:
1. Protocols: ConsensusView for read-only consensus state, TransactionBuilder
   for the base-ledger transaction builder
2. Immutable data structures: PropertyDescriptor, OfferTerms, the
   TransactionRequest variants, PendingEntry, BuildResult
3. Exceptions: IssuanceError and the error taxonomy
4. Constants: reserved property identifiers, amount range, text limits

Nothing in this module mutates state.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import ClassVar, Dict, FrozenSet, Optional, Protocol, Union, runtime_checkable


# ============================================================================
# CONSTANTS
# ============================================================================

# Smallest units per whole coin/token for divisible amounts.
COIN = 100_000_000
DIVISIBLE_PLACES = 8

# Largest amount the protocol can represent, in smallest units.
# Python integers do not overflow, so the bound is checked explicitly.
MAX_AMOUNT = 9_223_372_036_854_775_807

# Property identifiers are unsigned 32-bit values; 0 is never a property.
MAX_PROPERTY_ID = 4_294_967_295

# Reserved protocol tokens: the main token and its test-ecosystem twin.
PROPERTY_OMNI = 1
PROPERTY_TOMNI = 2
PRIMARY_PROPERTIES: FrozenSet[int] = frozenset({PROPERTY_OMNI, PROPERTY_TOMNI})

# Properties created in the test ecosystem start here.
TEST_ECOSYSTEM_FIRST_PROPERTY = 2_147_483_648

# Free-text fields are limited to this many bytes.
MAX_TEXT_BYTES = 255

# Defaults for the safety ceilings, in base-currency smallest units / blocks.
DEFAULT_MAX_REFERENCE_AMOUNT = COIN // 100
DEFAULT_MAX_ACCEPT_FEE = COIN // 100
DEFAULT_MIN_PAYMENT_WINDOW = 10

# base58check version bytes: main P2PKH, main P2SH, test P2PKH, test P2SH.
DEFAULT_ADDRESS_VERSIONS: FrozenSet[int] = frozenset({0x00, 0x05, 0x6F, 0xC4})


# ============================================================================
# ENUMS
# ============================================================================

class CommandKind(Enum):
    """Supported commands, valued by their protocol transaction type."""
    SIMPLE_SEND = 0
    SEND_TO_OWNERS = 3
    EXCHANGE_OFFER = 20
    EXCHANGE_TRADE = 21
    EXCHANGE_ACCEPT = 22
    ISSUANCE_FIXED = 50
    ISSUANCE_CROWDSALE = 51
    CLOSE_CROWDSALE = 53
    ISSUANCE_MANAGED = 54
    GRANT = 55
    REVOKE = 56
    CHANGE_ISSUER = 70


class Ecosystem(Enum):
    MAIN = 1
    TEST = 2


class TokenType(Enum):
    INDIVISIBLE = 1
    DIVISIBLE = 2


class OfferAction(Enum):
    """Sub-actions of a sell offer on the base-currency exchange."""
    NEW = 1
    UPDATE = 2
    CANCEL = 3


class TradeAction(Enum):
    """Sub-actions of a token-for-token trade."""
    ADD = 1
    CANCEL_AT_PRICE = 2
    CANCEL_PAIR = 3
    CANCEL_EVERYTHING = 4


class BuilderResult(Enum):
    """
    Result codes returned by the base-ledger transaction builder.

    OK is the only success code. The others map 1:1 to SubmissionFailed.
    """
    OK = 0
    INSUFFICIENT_FEE_FUNDS = -206
    SIGNING_FAILED = -211
    NO_SPENDABLE_INPUTS = -212
    BROADCAST_REJECTED = -213


class SubmissionState(Enum):
    """Stages a request passes through inside the Coordinator."""
    VALIDATING = "validating"
    ASSEMBLING = "assembling"
    SUBMITTING = "submitting"
    COMMITTED = "committed"
    RETURNED_UNSIGNED = "returned_unsigned"
    FAILED = "failed"


class RecordResult(Enum):
    """
    Outcome of writing a pending entry.

    RECORDED: The entry was added to the ledger.
    ALREADY_RECORDED: An entry with this transaction id exists (idempotent).
    """
    RECORDED = "recorded"
    ALREADY_RECORDED = "already_recorded"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class IssuanceError(Exception):
    """
    Base exception for all pipeline errors.

    Attributes:
        subject: Short tag naming what failed (a field name or a rule)
        detail: Human-readable description
    """

    def __init__(self, subject: str, detail: Optional[str] = None):
        self.subject = subject
        self.detail = detail or subject
        super().__init__(self.detail)


class InvalidAddress(IssuanceError):
    """Raised when an address does not parse as a base-ledger address."""
    pass


class InvalidAmount(IssuanceError):
    """Raised for unparsable, non-positive, out-of-range or wrong-divisibility amounts."""
    pass


class InvalidParameter(IssuanceError):
    """Raised for malformed enumerated fields, text fields, identifiers or parameter counts."""
    pass


class InsufficientBalance(IssuanceError):
    """Raised when the sender's confirmed or available balance is below the amount."""
    pass


class Unauthorized(IssuanceError):
    """Raised when the sender is not the issuer of the managed property."""
    pass


class PreconditionFailed(IssuanceError):
    """Raised when consensus state does not permit the command."""
    pass


class PayloadEncodingFailed(IssuanceError):
    """Raised when the codec cannot encode the payload."""
    pass


class SubmissionFailed(IssuanceError):
    """
    Raised when the transaction builder returns a non-success code.

    Attributes:
        code: The raw result code returned by the builder
        result: The matching BuilderResult, or None for an unknown code
    """

    _REASONS: ClassVar[Dict[BuilderResult, str]] = {
        BuilderResult.INSUFFICIENT_FEE_FUNDS: "insufficient base-currency funds to pay the fee",
        BuilderResult.NO_SPENDABLE_INPUTS: "no spendable inputs for the sending address",
        BuilderResult.SIGNING_FAILED: "the transaction could not be signed",
        BuilderResult.BROADCAST_REJECTED: "the transaction was rejected on broadcast",
    }

    def __init__(self, code: int, reason: Optional[str] = None, subject: Optional[str] = None):
        self.code = code
        try:
            self.result: Optional[BuilderResult] = BuilderResult(code)
        except ValueError:
            self.result = None
        reason = reason or self._REASONS.get(self.result, "unknown builder error")
        subject = subject or (self.result.name.lower() if self.result else f"code {code}")
        super().__init__(subject, f"Transaction builder failed ({code}): {reason}")


# ============================================================================
# CONSENSUS STATE VIEWS
# ============================================================================

@dataclass(frozen=True, slots=True)
class PropertyDescriptor:
    """
    Read-only view of a property's metadata.

    Attributes:
        property_id: Numeric identifier
        divisible: True if amounts have 8 fractional digits
        issuer: Current issuing (administrator) address
        ecosystem: Ecosystem the property belongs to
        crowdsale_active: True while a crowdsale is open for the property
        name: Display name
    """
    property_id: int
    divisible: bool
    issuer: str
    ecosystem: Ecosystem = Ecosystem.MAIN
    crowdsale_active: bool = False
    name: str = ""


@dataclass(frozen=True, slots=True)
class OfferTerms:
    """Terms of a live sell offer on the base-currency exchange."""
    min_fee: int
    payment_window: int


@runtime_checkable
class ConsensusView(Protocol):
    """
    Read-only capability over live consensus state.

    Guards and the normalizer receive this instead of touching a global
    store, so tests can hand in synthetic snapshots.
    """

    def get_property(self, property_id: int) -> Optional[PropertyDescriptor]:
        """Return the descriptor for a property, or None if unknown."""
        ...

    def get_balance(self, address: str, property_id: int) -> int:
        """Return the confirmed balance in smallest units (0 if none)."""
        ...

    def offer_exists(self, address: str, property_id: int) -> bool:
        """Return True if the address has a live sell offer for the property."""
        ...

    def get_offer(self, address: str, property_id: int) -> Optional[OfferTerms]:
        """Return the terms of the address's sell offer, or None."""
        ...

    def is_crowdsale_active(self, property_id: int) -> bool:
        """Return True if the property currently has an active crowdsale."""
        ...


# ============================================================================
# TRANSACTION BUILDER
# ============================================================================

@dataclass(frozen=True, slots=True)
class BuildResult:
    """
    Result of one call into the transaction builder.

    txid is meaningful only when code is OK and the call committed;
    raw_tx only when code is OK and the call did not commit.
    """
    code: int
    txid: Optional[str] = None
    raw_tx: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.code == BuilderResult.OK.value


@runtime_checkable
class TransactionBuilder(Protocol):
    """Builds, and in commit mode signs and broadcasts, a base-ledger transaction."""

    def build(
        self,
        sender: str,
        recipient: Optional[str],
        redeem_address: str,
        reference_amount: int,
        payload: bytes,
        commit: bool,
    ) -> BuildResult:
        ...


# ============================================================================
# TRANSACTION REQUESTS
# ============================================================================
#
# One frozen dataclass per command. Amounts are integers in smallest units.
# Optional addresses use None for "not given".

@dataclass(frozen=True, slots=True)
class SimpleSend:
    kind: ClassVar[CommandKind] = CommandKind.SIMPLE_SEND
    sender: str
    recipient: str
    property_id: int
    amount: int
    redeem_address: Optional[str] = None
    reference_amount: int = 0


@dataclass(frozen=True, slots=True)
class SendToOwners:
    kind: ClassVar[CommandKind] = CommandKind.SEND_TO_OWNERS
    sender: str
    property_id: int
    amount: int
    redeem_address: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ExchangeOffer:
    kind: ClassVar[CommandKind] = CommandKind.EXCHANGE_OFFER
    sender: str
    property_id: int
    amount_for_sale: int
    amount_desired: int
    payment_window: int
    min_fee: int
    action: OfferAction


@dataclass(frozen=True, slots=True)
class ExchangeAccept:
    kind: ClassVar[CommandKind] = CommandKind.EXCHANGE_ACCEPT
    sender: str
    seller: str
    property_id: int
    amount: int
    override: bool = False


@dataclass(frozen=True, slots=True)
class ExchangeTrade:
    kind: ClassVar[CommandKind] = CommandKind.EXCHANGE_TRADE
    sender: str
    property_for_sale: int
    amount_for_sale: int
    property_desired: int
    amount_desired: int
    action: TradeAction


@dataclass(frozen=True, slots=True)
class IssuanceFixed:
    kind: ClassVar[CommandKind] = CommandKind.ISSUANCE_FIXED
    sender: str
    ecosystem: Ecosystem
    token_type: TokenType
    previous_id: int
    category: str
    subcategory: str
    name: str
    url: str
    data: str
    amount: int


@dataclass(frozen=True, slots=True)
class IssuanceCrowdsale:
    kind: ClassVar[CommandKind] = CommandKind.ISSUANCE_CROWDSALE
    sender: str
    ecosystem: Ecosystem
    token_type: TokenType
    previous_id: int
    category: str
    subcategory: str
    name: str
    url: str
    data: str
    property_desired: int
    tokens_per_unit: int
    deadline: int
    early_bonus: int
    issuer_percentage: int


@dataclass(frozen=True, slots=True)
class IssuanceManaged:
    kind: ClassVar[CommandKind] = CommandKind.ISSUANCE_MANAGED
    sender: str
    ecosystem: Ecosystem
    token_type: TokenType
    previous_id: int
    category: str
    subcategory: str
    name: str
    url: str
    data: str


@dataclass(frozen=True, slots=True)
class Grant:
    kind: ClassVar[CommandKind] = CommandKind.GRANT
    sender: str
    recipient: str
    property_id: int
    amount: int
    memo: str = ""


@dataclass(frozen=True, slots=True)
class Revoke:
    kind: ClassVar[CommandKind] = CommandKind.REVOKE
    sender: str
    property_id: int
    amount: int
    memo: str = ""


@dataclass(frozen=True, slots=True)
class CloseCrowdsale:
    kind: ClassVar[CommandKind] = CommandKind.CLOSE_CROWDSALE
    sender: str
    property_id: int


@dataclass(frozen=True, slots=True)
class ChangeIssuer:
    kind: ClassVar[CommandKind] = CommandKind.CHANGE_ISSUER
    sender: str
    new_issuer: str
    property_id: int


TransactionRequest = Union[
    SimpleSend, SendToOwners, ExchangeOffer, ExchangeAccept, ExchangeTrade,
    IssuanceFixed, IssuanceCrowdsale, IssuanceManaged,
    Grant, Revoke, CloseCrowdsale, ChangeIssuer,
]


# ============================================================================
# PENDING ENTRY
# ============================================================================

@dataclass(frozen=True, slots=True)
class PendingEntry:
    """
    Provisional effect of a committed but unconfirmed transaction.

    Attributes:
        txid: Transaction identifier returned by the builder
        sender: Sending address
        kind: Command that produced the transaction
        property_id: Property moved (or offered) by the sender
        amount: Amount of property_id involved
        created_at: When the entry was written
        recipient: Counterparty address, if any
        property_desired: Property asked for in return (trades/offers)
        amount_desired: Amount asked for in return (trades/offers)
        action: Offer or trade sub-action code (0 when not applicable)
    """
    txid: str
    sender: str
    kind: CommandKind
    property_id: int
    amount: int
    created_at: datetime
    recipient: Optional[str] = None
    property_desired: int = 0
    amount_desired: int = 0
    action: int = 0

    def __post_init__(self):
        if not self.txid or not self.txid.strip():
            raise ValueError("PendingEntry txid cannot be empty")
        if not self.sender or not self.sender.strip():
            raise ValueError("PendingEntry sender cannot be empty")
        if self.amount < 0:
            raise ValueError(f"PendingEntry amount must be non-negative, got {self.amount}")

    @property
    def outflow(self) -> int:
        """
        Amount of property_id this entry removes from the sender's spendable balance.

        Cancels reserve nothing; offers and trades reserve the amount for sale.
        """
        if self.kind in (CommandKind.SIMPLE_SEND, CommandKind.SEND_TO_OWNERS, CommandKind.REVOKE):
            return self.amount
        if self.kind == CommandKind.EXCHANGE_OFFER:
            if self.action in (OfferAction.NEW.value, OfferAction.UPDATE.value):
                return self.amount
            return 0
        if self.kind == CommandKind.EXCHANGE_TRADE:
            return self.amount if self.action == TradeAction.ADD.value else 0
        return 0

    def __repr__(self) -> str:
        return f"PendingEntry({self.kind.name} {self.amount} of #{self.property_id} from {self.sender}, txid={self.txid[:16]})"


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass(frozen=True, slots=True)
class SubmissionConfig:
    """
    Run-time settings for the pipeline.

    Attributes:
        auto_commit: Sign and broadcast on success (False returns unsigned hex)
        max_reference_amount: Ceiling for the reference output, in base units
        max_accept_fee: Largest offer minimum fee accepted without override
        min_payment_window: Smallest offer payment window accepted without override
        strict_text: Reject over-long text (False truncates it)
        address_versions: Accepted base58check version bytes
    """
    auto_commit: bool = True
    max_reference_amount: int = DEFAULT_MAX_REFERENCE_AMOUNT
    max_accept_fee: int = DEFAULT_MAX_ACCEPT_FEE
    min_payment_window: int = DEFAULT_MIN_PAYMENT_WINDOW
    strict_text: bool = True
    address_versions: FrozenSet[int] = field(default=DEFAULT_ADDRESS_VERSIONS)
