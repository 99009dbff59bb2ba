"""Shielded pool: orchestration of pool state, validator and capabilities.

Architecture:
    1. PoolState: commitment tree + nullifier registry + configuration
    2. TransactionValidator: ordered checks, then atomic settlement
    3. ProofVerifier / AssetLedger: injected external capabilities
    4. Events: NewCommitment / NewNullifier, used by clients to rebuild the tree

Transaction Flow:

    DEPOSIT (ext_amount > 0):
        1. Client creates two output notes and proves the transfer
        2. Deposit amount is escrowed in the pool account
        3. Output commitments are appended to the tree

    TRANSFER (ext_amount == 0):
        1. Client spends up to two notes into two new notes
        2. Input nullifiers are recorded, outputs appended

    WITHDRAWAL (ext_amount < 0):
        1. As TRANSFER, and the pool pays |ext_amount| to the recipient

Key Invariants:
    - Value Conservation: public_amount == ext_amount - fee
    - Nullifier Uniqueness: no nullifier is accepted twice
    - Root Validity: proofs reference one of the last 100 roots
    - Binding: ext_data_hash is recomputed, never trusted
"""

import logging
from typing import Any, List, Optional

from shielded_pool.config import PoolSettings, get_settings
from shielded_pool.core.ledger import AssetLedger
from shielded_pool.core.state import (
    PoolState,
    configure_deposit_limit,
    current_root,
    initialize,
    is_known_root,
    is_spent,
)
from shielded_pool.core.validator import Receipt, TransactionValidator, VerificationResult
from shielded_pool.core.verifier import ProofVerifier
from shielded_pool.models.schemas import CommitmentEvent, PoolStateResponse, TransferRequest
from shielded_pool.utils.encoding import to_fixed_hex
from shielded_pool.utils.hash import FieldHasher

logger = logging.getLogger(__name__)


def process(
    state: PoolState,
    request: TransferRequest,
    verifier: ProofVerifier,
    ledger: AssetLedger,
    depositor: Optional[str] = None,
) -> Receipt:
    """Validate and settle ``request`` against ``state``."""
    return TransactionValidator(verifier, ledger).process(state, request, depositor=depositor)


class ShieldedPool:
    """
    Main shielded pool service.

    Owns one ``PoolState`` and the capabilities needed to settle transfers.
    All access to the state goes through this object (or the module-level
    functions taking the state explicitly); there is no global pool.
    """

    def __init__(self, state: PoolState, verifier: ProofVerifier, ledger: AssetLedger):
        self.state = state
        self.validator = TransactionValidator(verifier, ledger)

    @classmethod
    def create(
        cls,
        verifier: ProofVerifier,
        ledger: AssetLedger,
        height: int,
        deposit_limit: int,
        asset_reference: str,
        admin_identity: str,
        hasher: Optional[FieldHasher] = None,
        **kwargs: Any,
    ) -> "ShieldedPool":
        """Initialize a new pool and wrap it in a service."""
        state = initialize(
            height=height,
            deposit_limit=deposit_limit,
            asset_reference=asset_reference,
            admin_identity=admin_identity,
            hasher=hasher,
            **kwargs,
        )
        return cls(state, verifier, ledger)

    @classmethod
    def from_settings(
        cls,
        verifier: ProofVerifier,
        ledger: AssetLedger,
        settings: Optional[PoolSettings] = None,
        hasher: Optional[FieldHasher] = None,
    ) -> "ShieldedPool":
        """Initialize a new pool from ``PoolSettings`` (environment by default)."""
        settings = settings or get_settings()
        return cls.create(
            verifier,
            ledger,
            height=settings.tree_height,
            deposit_limit=settings.deposit_limit,
            asset_reference=settings.asset_reference,
            admin_identity=settings.admin_identity,
            hasher=hasher,
            pool_identity=settings.pool_identity,
            zero_value=settings.zero_value,
        )

    @property
    def ledger(self) -> AssetLedger:
        return self.validator.ledger

    def transact(self, request: TransferRequest, depositor: Optional[str] = None) -> Receipt:
        """
        Execute a proved transfer.

        Args:
            request: Transfer request
            depositor: Account funding a deposit, if not escrowed already

        Returns:
            Receipt: Settlement receipt

        Raises:
            ShieldedPoolException: Kind of the first failed check
        """
        return self.validator.process(self.state, request, depositor=depositor)

    def verify(self, request: TransferRequest) -> VerificationResult:
        """Check whether ``transact`` would accept ``request`` right now."""
        return self.validator.verify(self.state, request)

    def is_spent(self, nullifier: int) -> bool:
        return is_spent(self.state, nullifier)

    def current_root(self) -> int:
        return current_root(self.state)

    def is_known_root(self, root: int) -> bool:
        return is_known_root(self.state, root)

    def configure_deposit_limit(self, caller: str, new_limit: int) -> None:
        """Change the deposit limit (admin only)."""
        configure_deposit_limit(self.state, caller, new_limit)

    def get_commitment_events(self, from_index: int = 0) -> List[CommitmentEvent]:
        """NewCommitment events, for clients rebuilding the full tree."""
        return self.state.commitment_events(from_index)

    def get_state(self) -> PoolStateResponse:
        """
        Return current pool state summary.

        Returns:
            PoolStateResponse: Root, tree fill, nullifier count, configuration
        """
        with self.state.lock:
            tree = self.state.tree
            return PoolStateResponse(
                current_root=to_fixed_hex(tree.current_root()),
                tree_height=tree.height,
                next_index=tree.next_index,
                capacity=tree.capacity,
                num_nullifiers=self.state.spent.size,
                deposit_limit=self.state.deposit_limit,
                admin_identity=self.state.admin_identity,
                asset_reference=self.state.asset_reference,
            )

    def __repr__(self) -> str:
        return f"ShieldedPool({self.state.tree!r}, spent={self.state.spent.size})"
