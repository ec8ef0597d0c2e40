"""
coordinator.py - Transaction Submission Coordinator

The SubmissionCoordinator drives every request through the same stages:

    Validating -> Assembling -> Submitting -> Committed | Returned-Unsigned | Failed

Key responsibilities:
    - Normalizes raw command parameters and runs the command's guard chain
    - Assembles the payload through the codec
    - Installs the command's fee policy override, if any, around exactly one
      builder call
    - Records a pending entry only after a committed, successful build
    - Serializes submissions so balance guards and record() are atomic

It is the only module that writes to the pending ledger.
"""

from __future__ import annotations
from contextlib import nullcontext
from dataclasses import dataclass
from datetime import datetime, timezone
import logging
import threading
from typing import Any, Callable, Optional, Sequence

from .codec import PayloadCodec
from .commands import COMMANDS, CommandSpec, spec_for
from .core import (
    ConsensusView, TransactionBuilder, SubmissionConfig,
    SubmissionState, RecordResult,
    IssuanceError, InvalidParameter, SubmissionFailed,
)
from .fee_policy import FeePolicyRegistry
from .guards import GuardContext, check_all
from .normalize import ParameterNormalizer
from .payload import assemble
from .pending import PendingLedger


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SubmissionResult:
    """
    Terminal outcome of a successful submission.

    Attributes:
        state: COMMITTED or RETURNED_UNSIGNED
        request: The validated request
        txid: Transaction id (COMMITTED only)
        raw_tx: Unsigned transaction encoding (RETURNED_UNSIGNED only)
        recorded: Outcome of the pending ledger write, None if nothing was recorded
    """
    state: SubmissionState
    request: Any
    txid: Optional[str] = None
    raw_tx: Optional[str] = None
    recorded: Optional[RecordResult] = None

    @property
    def value(self) -> Optional[str]:
        """The transaction id when committed, otherwise the raw encoding."""
        return self.txid if self.state == SubmissionState.COMMITTED else self.raw_tx


class SubmissionCoordinator:
    """
    Generic submission pipeline, parameterized per command by a CommandSpec.

    Thread Safety:
        Submissions are serialized by a re-entrant lock held from validation
        through record(). The builder call happens under the lock.

    Example:
        coordinator = SubmissionCoordinator(view, BinaryPayloadCodec(), builder)
        result = coordinator.call("send", [alice, bob, 3, "60"])
        coordinator.pending.available_balance(view, alice, 3)
    """

    def __init__(
        self,
        view: ConsensusView,
        codec: PayloadCodec,
        builder: TransactionBuilder,
        pending: Optional[PendingLedger] = None,
        fee_policy: Optional[FeePolicyRegistry] = None,
        config: Optional[SubmissionConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Create a coordinator.

        Args:
            view: Read-only consensus state
            codec: Payload encoder
            builder: Base-ledger transaction builder
            pending: Pending effects ledger (default: a new, empty one)
            fee_policy: Process-wide fee policy holder (default: a new registry)
            config: Run-time settings (default: SubmissionConfig())
            clock: Timestamp source for pending entries (default: UTC now)
        """
        self.view = view
        self.codec = codec
        self.builder = builder
        self.pending = pending if pending is not None else PendingLedger()
        self.fee_policy = fee_policy if fee_policy is not None else FeePolicyRegistry()
        self.config = config or SubmissionConfig()
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.normalizer = ParameterNormalizer(
            view, self.config.address_versions, self.config.strict_text
        )
        self.last_state: Optional[SubmissionState] = None
        self._auto_commit = self.config.auto_commit
        self._lock = threading.RLock()

    @property
    def auto_commit(self) -> bool:
        """Sign and broadcast on success; when False, return the unsigned encoding."""
        return self._auto_commit

    @auto_commit.setter
    def auto_commit(self, value: bool) -> None:
        with self._lock:
            self._auto_commit = bool(value)

    def available_balance(self, address: str, property_id: int) -> int:
        return self.pending.available_balance(self.view, address, property_id)

    # ========================================================================
    # ENTRY POINTS
    # ========================================================================

    def call(self, command: str, params: Sequence[Any]) -> SubmissionResult:
        """
        Run a command from its ordered raw parameters.

        The parameter count is checked before any normalization.

        Raises:
            InvalidParameter: Unknown command or wrong parameter count
            IssuanceError: Any validation, encoding or submission failure
        """
        spec = COMMANDS.get(command)
        if spec is None:
            raise InvalidParameter("command", f"Unknown command: {command!r}")
        params = list(params)
        if not spec.min_params <= len(params) <= spec.max_params:
            raise InvalidParameter(
                "params",
                f"{command} takes {_arity(spec)} parameters, got {len(params)}. Usage: {spec.usage}",
            )

        with self._lock:
            self.last_state = SubmissionState.VALIDATING
            try:
                request = spec.parse(self.normalizer, params)
            except IssuanceError as exc:
                self._fail(spec, exc)
                raise
            return self._run(spec, request)

    def submit(self, request: Any) -> SubmissionResult:
        """
        Run an already-typed request through the pipeline.

        The request is normalized like raw parameters would be, so it fails
        with the same errors as the equivalent call().
        """
        try:
            spec = spec_for(request)
        except (AttributeError, KeyError):
            raise TypeError(f"Not a transaction request: {request!r}") from None
        with self._lock:
            self.last_state = SubmissionState.VALIDATING
            try:
                request = spec.parse(self.normalizer, spec.params(self.normalizer, request))
            except IssuanceError as exc:
                self._fail(spec, exc)
                raise
            return self._run(spec, request)

    # ========================================================================
    # STAGES
    # ========================================================================

    def _run(self, spec: CommandSpec, request: Any) -> SubmissionResult:
        ctx = GuardContext(self.view, self.pending, self.config)
        try:
            check_all(spec.guards, ctx, request)

            self.last_state = SubmissionState.ASSEMBLING
            payload = assemble(self.codec, request)

            self.last_state = SubmissionState.SUBMITTING
            commit = self._auto_commit
            override = spec.fee_override(ctx, request) if spec.fee_override else None
            scope = self.fee_policy.override(override) if override is not None else nullcontext()
            redeem = getattr(request, "redeem_address", None) or request.sender
            with scope:
                result = self.builder.build(
                    request.sender,
                    spec.recipient(request),
                    redeem,
                    getattr(request, "reference_amount", 0),
                    payload,
                    commit,
                )
            if not result.ok:
                raise SubmissionFailed(result.code)
            if commit and not result.txid:
                raise SubmissionFailed(
                    result.code, "builder reported success without a transaction id", "txid"
                )
        except IssuanceError as exc:
            self._fail(spec, exc)
            raise

        if not commit:
            self.last_state = SubmissionState.RETURNED_UNSIGNED
            logger.info("%s built unsigned transaction for %s", spec.name, request.sender)
            return SubmissionResult(self.last_state, request, raw_tx=result.raw_tx)

        recorded = None
        if spec.pending is not None:
            recorded = self.pending.record(spec.pending(request, result.txid, self.clock()))
        self.last_state = SubmissionState.COMMITTED
        logger.info("%s committed %s", spec.name, result.txid)
        return SubmissionResult(self.last_state, request, txid=result.txid, recorded=recorded)

    def _fail(self, spec: CommandSpec, exc: IssuanceError) -> None:
        stage = self.last_state.value if self.last_state else "validating"
        self.last_state = SubmissionState.FAILED
        if isinstance(exc, SubmissionFailed):
            logger.warning("%s rejected by builder: %s", spec.name, exc.detail)
        else:
            logger.info("%s failed while %s: %s", spec.name, stage, exc.detail)

    def __repr__(self) -> str:
        return f"SubmissionCoordinator(auto_commit={self._auto_commit}, pending={self.pending!r})"


def _arity(spec: CommandSpec) -> str:
    if spec.min_params == spec.max_params:
        return str(spec.min_params)
    return f"{spec.min_params} to {spec.max_params}"
