"""
issuance - Token-layer transaction issuance pipeline

Turns high-level token instructions (send, exchange offers and trades,
property issuance, grant/revoke, crowdsale close, issuer change) into
base-ledger transactions, and tracks the balance effect of committed but
unconfirmed ones.

Usage:
    from issuance import (
        SubmissionCoordinator, CommandSurface, BinaryPayloadCodec,
    )

    coordinator = SubmissionCoordinator(view, BinaryPayloadCodec(), builder)
    surface = CommandSurface(coordinator)

    txid = surface.execute("send", [alice, bob, 3, "60"])
    coordinator.available_balance(alice, 3)

    # Once the transaction confirms, the reconciliation process retires it
    coordinator.pending.retire(txid)
"""

# Core types
from .core import (
    ConsensusView,
    TransactionBuilder,
    PropertyDescriptor,
    OfferTerms,
    BuildResult,
    PendingEntry,
    SubmissionConfig,
    TransactionRequest,
    SimpleSend,
    SendToOwners,
    ExchangeOffer,
    ExchangeAccept,
    ExchangeTrade,
    IssuanceFixed,
    IssuanceCrowdsale,
    IssuanceManaged,
    Grant,
    Revoke,
    CloseCrowdsale,
    ChangeIssuer,
    CommandKind,
    Ecosystem,
    TokenType,
    OfferAction,
    TradeAction,
    BuilderResult,
    SubmissionState,
    RecordResult,
    IssuanceError,
    InvalidAddress,
    InvalidAmount,
    InvalidParameter,
    InsufficientBalance,
    Unauthorized,
    PreconditionFailed,
    PayloadEncodingFailed,
    SubmissionFailed,
    COIN,
    MAX_AMOUNT,
    PROPERTY_OMNI,
    PROPERTY_TOMNI,
)

# Normalizer
from .normalize import (
    ParameterNormalizer,
    parse_amount,
    format_amount,
    encode_address,
    decode_address,
)

# Guards
from .guards import Guard, GuardContext, check_all

# Payload
from .codec import PayloadCodec, BinaryPayloadCodec, EncodingError
from .payload import assemble

# State
from .pending import PendingLedger
from .fee_policy import FeePolicy, FeePolicyRegistry

# Pipeline
from .commands import COMMANDS, CommandSpec
from .coordinator import SubmissionCoordinator, SubmissionResult
from .surface import CommandSurface


__all__ = [
    # Core types
    'ConsensusView', 'TransactionBuilder', 'PropertyDescriptor', 'OfferTerms',
    'BuildResult', 'PendingEntry', 'SubmissionConfig', 'TransactionRequest',
    'SimpleSend', 'SendToOwners', 'ExchangeOffer', 'ExchangeAccept', 'ExchangeTrade',
    'IssuanceFixed', 'IssuanceCrowdsale', 'IssuanceManaged',
    'Grant', 'Revoke', 'CloseCrowdsale', 'ChangeIssuer',
    'CommandKind', 'Ecosystem', 'TokenType', 'OfferAction', 'TradeAction',
    'BuilderResult', 'SubmissionState', 'RecordResult',
    # Exceptions
    'IssuanceError', 'InvalidAddress', 'InvalidAmount', 'InvalidParameter',
    'InsufficientBalance', 'Unauthorized', 'PreconditionFailed',
    'PayloadEncodingFailed', 'SubmissionFailed',
    # Constants
    'COIN', 'MAX_AMOUNT', 'PROPERTY_OMNI', 'PROPERTY_TOMNI',
    # Normalizer
    'ParameterNormalizer', 'parse_amount', 'format_amount',
    'encode_address', 'decode_address',
    # Guards
    'Guard', 'GuardContext', 'check_all',
    # Payload
    'PayloadCodec', 'BinaryPayloadCodec', 'EncodingError', 'assemble',
    # State
    'PendingLedger', 'FeePolicy', 'FeePolicyRegistry',
    # Pipeline
    'COMMANDS', 'CommandSpec', 'SubmissionCoordinator', 'SubmissionResult',
    'CommandSurface',
]

__version__ = '1.0.0'
