"""Transaction validator: atomic accept/reject of proved transfers.

Every request walks a fixed sequence of checks against the pool state:

    RECEIVED
      -> ROOT_CHECKED                 root is in the recent root history
      -> NULLIFIERS_UNSPENT_CHECKED   no input nullifier is spent
      -> EXT_DATA_HASH_CHECKED        ext_data_hash matches the external fields
      -> PUBLIC_AMOUNT_CHECKED        public_amount == ext_amount - fee
      -> PROOF_VERIFIED               the zero-knowledge proof verifies
      -> SETTLED                      funds moved, nullifiers spent, outputs inserted

The cheap, proof-independent checks run first. Any failure raises the
matching ``ShieldedPoolException`` and leaves the pool untouched; the whole
check-then-mutate sequence runs under the pool lock so two requests racing
on the same nullifier cannot both settle.

The one exception is a ledger failure whose compensating transfer also
fails: funds have then left the pool, so the input nullifiers are marked
spent (without new outputs) before the original ``TransferError`` is raised.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Tuple

from shielded_pool.core.ledger import AssetLedger
from shielded_pool.core.state import NULL_ADDRESS, PoolState
from shielded_pool.core.verifier import ProofVerifier, run_verifier
from shielded_pool.models.schemas import CommitmentEvent, NullifierEvent, TransferRequest
from shielded_pool.utils.encoding import normalize_address, to_fixed_hex
from shielded_pool.utils.field import compute_public_amount, split_signed
from shielded_pool.exceptions import (
    AmountExceedsLimitError,
    ErrorKind,
    InvalidExternalDataHashError,
    InvalidMerkleRootError,
    InvalidProofError,
    InvalidPublicAmountError,
    NullifierAlreadySpentError,
    ShieldedPoolException,
    TransferError,
    TreeFullError,
    WithdrawalToZeroAddressError,
)

logger = logging.getLogger(__name__)

OUTPUTS_PER_TRANSACTION = 2


class ValidationStage(str, Enum):
    """Last stage a request reached."""

    RECEIVED = "received"
    ROOT_CHECKED = "root_checked"
    NULLIFIERS_UNSPENT_CHECKED = "nullifiers_unspent_checked"
    EXT_DATA_HASH_CHECKED = "ext_data_hash_checked"
    PUBLIC_AMOUNT_CHECKED = "public_amount_checked"
    PROOF_VERIFIED = "proof_verified"
    SETTLED = "settled"


class AmountDirection(str, Enum):
    """Which way value crosses the pool boundary."""

    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TRANSFER = "transfer"


@dataclass
class Receipt:
    """Receipt for a settled transfer."""

    spent_nullifiers: List[int]
    new_commitment_base_index: int
    settled_amount_direction: AmountDirection
    output_commitments: List[int]
    amount: int
    fee: int
    new_root: int
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "spent_nullifiers": [to_fixed_hex(n) for n in self.spent_nullifiers],
            "new_commitment_base_index": self.new_commitment_base_index,
            "settled_amount_direction": self.settled_amount_direction.value,
            "output_commitments": [to_fixed_hex(c) for c in self.output_commitments],
            "amount": self.amount,
            "fee": self.fee,
            "new_root": to_fixed_hex(self.new_root),
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class VerificationResult:
    """Outcome of a dry-run verification."""

    is_valid: bool
    stage: ValidationStage
    invalid_reason: Optional[ErrorKind] = None
    message: str = ""

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "is_valid": self.is_valid,
            "stage": self.stage.value,
            "invalid_reason": self.invalid_reason.value if self.invalid_reason else None,
            "message": self.message,
        }


@dataclass
class _Trace:
    stage: ValidationStage = ValidationStage.RECEIVED


class TransactionValidator:
    """
    Orchestrates the commitment tree, nullifier registry, external data
    binding, proof verifier and asset ledger into one atomic decision.
    """

    def __init__(self, verifier: ProofVerifier, ledger: AssetLedger):
        self.verifier = verifier
        self.ledger = ledger

    def process(
        self,
        state: PoolState,
        request: TransferRequest,
        depositor: Optional[str] = None,
    ) -> Receipt:
        """
        Validate ``request`` and, if every check passes, settle it.

        Args:
            state: Pool to read and mutate
            request: Proved transfer
            depositor: For deposits, account to pull the deposit from; when
                omitted the deposit is assumed to be escrowed already

        Returns:
            Receipt: Spent nullifiers, base index of the new leaves, direction

        Raises:
            ShieldedPoolException: Specific kind of the first failed check;
                the pool is unchanged in that case
        """
        trace = _Trace()
        with state.lock:
            try:
                direction, magnitude = self._check(state, request, trace)
                receipt = self._settle(state, request, direction, magnitude, depositor)
            except ShieldedPoolException as e:
                kind = e.kind.value if e.kind else type(e).__name__
                logger.warning(f"Rejected transfer after {trace.stage.value}: {kind} ({e})")
                raise
            trace.stage = ValidationStage.SETTLED

        logger.info(
            f"Settled {direction.value} of {magnitude} (fee {request.ext_data.fee}), "
            f"outputs at {receipt.new_commitment_base_index}/{receipt.new_commitment_base_index + 1}"
        )
        return receipt

    def verify(self, state: PoolState, request: TransferRequest) -> VerificationResult:
        """
        Run every check without settling.

        Returns:
            VerificationResult: Whether ``process`` would currently accept the
                request, and otherwise the kind of the first failed check
        """
        trace = _Trace()
        with state.lock:
            try:
                self._check(state, request, trace)
            except ShieldedPoolException as e:
                return VerificationResult(
                    is_valid=False, stage=trace.stage, invalid_reason=e.kind, message=str(e)
                )
        return VerificationResult(is_valid=True, stage=trace.stage)

    def _check(
        self, state: PoolState, request: TransferRequest, trace: _Trace
    ) -> Tuple[AmountDirection, int]:
        tree = state.tree
        ext_data = request.ext_data

        # 1. root
        if not tree.is_known_root(request.root):
            raise InvalidMerkleRootError(f"Unknown Merkle root {to_fixed_hex(request.root)}")
        trace.stage = ValidationStage.ROOT_CHECKED

        # 2. nullifiers
        for nullifier in request.input_nullifiers:
            if state.spent.contains(nullifier):
                raise NullifierAlreadySpentError(
                    f"Nullifier {to_fixed_hex(nullifier)} already spent"
                )
        if len(set(request.input_nullifiers)) != len(request.input_nullifiers):
            raise NullifierAlreadySpentError("Duplicate nullifier within request")
        trace.stage = ValidationStage.NULLIFIERS_UNSPENT_CHECKED

        # 3. external data binding
        if ext_data.hash() != request.ext_data_hash:
            raise InvalidExternalDataHashError("Incorrect external data hash")
        trace.stage = ValidationStage.EXT_DATA_HASH_CHECKED

        # 4. conservation of value
        if compute_public_amount(ext_data.ext_amount, ext_data.fee) != request.public_amount:
            raise InvalidPublicAmountError("Invalid public amount")
        trace.stage = ValidationStage.PUBLIC_AMOUNT_CHECKED

        magnitude, is_negative = split_signed(ext_data.ext_amount)
        if is_negative:
            direction = AmountDirection.WITHDRAWAL
            if normalize_address(ext_data.recipient) == NULL_ADDRESS:
                raise WithdrawalToZeroAddressError("Can't withdraw to zero address")
        elif magnitude > 0:
            direction = AmountDirection.DEPOSIT
            if magnitude > state.deposit_limit:
                raise AmountExceedsLimitError(
                    f"Amount {magnitude} exceeds deposit limit {state.deposit_limit}"
                )
        else:
            direction = AmountDirection.TRANSFER

        if len(request.output_commitments) != OUTPUTS_PER_TRANSACTION:
            raise InvalidProofError(
                f"Expected {OUTPUTS_PER_TRANSACTION} output commitments, "
                f"got {len(request.output_commitments)}"
            )
        if not tree.has_capacity():
            raise TreeFullError(f"Merkle tree is full (max {tree.capacity} leaves)")

        # 5. proof
        if not run_verifier(self.verifier, request.proof, request.public_inputs()):
            raise InvalidProofError("Invalid transaction proof")
        trace.stage = ValidationStage.PROOF_VERIFIED

        return direction, magnitude

    def _settle(
        self,
        state: PoolState,
        request: TransferRequest,
        direction: AmountDirection,
        magnitude: int,
        depositor: Optional[str],
    ) -> Receipt:
        ext_data = request.ext_data
        pool = state.pool_identity

        # (sender, recipient, amount) of every executed transfer, for compensation
        executed: List[Tuple[str, str, int]] = []
        planned: List[Tuple[str, str, int]] = []
        if direction == AmountDirection.DEPOSIT and depositor is not None:
            planned.append((depositor, pool, magnitude))
        if direction == AmountDirection.WITHDRAWAL:
            planned.append((pool, ext_data.recipient, magnitude))
        if ext_data.fee > 0:
            planned.append((pool, ext_data.relayer, ext_data.fee))

        nullifiers = list(request.input_nullifiers)
        try:
            for sender, recipient, amount in planned:
                self.ledger.transfer(sender, recipient, amount)
                executed.append((sender, recipient, amount))
        except TransferError:
            if not self._revert(executed):
                # value already left the pool, so the inputs are burned
                state.spent.mark_spent_many(nullifiers, merkle_root=request.root)
                state.events.extend(NullifierEvent(nullifier=n) for n in nullifiers)
                logger.critical(
                    f"Settlement partially executed; {len(nullifiers)} nullifiers marked spent "
                    f"without new outputs"
                )
            raise

        state.spent.mark_spent_many(nullifiers, merkle_root=request.root)

        first, second = request.output_commitments
        base_index = state.tree.insert_pair(first, second)

        state.events.append(
            CommitmentEvent(
                commitment=first, index=base_index, encrypted_output=ext_data.encrypted_output1
            )
        )
        state.events.append(
            CommitmentEvent(
                commitment=second,
                index=base_index + 1,
                encrypted_output=ext_data.encrypted_output2,
            )
        )
        state.events.extend(NullifierEvent(nullifier=n) for n in nullifiers)

        return Receipt(
            spent_nullifiers=nullifiers,
            new_commitment_base_index=base_index,
            settled_amount_direction=direction,
            output_commitments=[first, second],
            amount=magnitude,
            fee=ext_data.fee,
            new_root=state.tree.current_root(),
        )

    def _revert(self, executed: List[Tuple[str, str, int]]) -> bool:
        """Undo executed transfers in reverse order; False if any reversal failed."""
        reverted = True
        for sender, recipient, amount in reversed(executed):
            logger.error(f"Reverting transfer of {amount} to {recipient[:10]}...")
            try:
                self.ledger.transfer(recipient, sender, amount)
            except TransferError as e:
                logger.critical(f"Failed to revert transfer of {amount} to {recipient[:10]}...: {e}")
                reverted = False
        return reverted
