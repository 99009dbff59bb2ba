"""Pool state: commitment tree, nullifier registry and pool configuration."""

import logging
import threading
from dataclasses import dataclass, field
from typing import List, Optional, Union

from shielded_pool.core.merkle_tree import ZERO_VALUE, CommitmentTree
from shielded_pool.core.nullifier import NullifierRegistry
from shielded_pool.models.schemas import CommitmentEvent, NullifierEvent
from shielded_pool.utils.encoding import normalize_address, to_fixed_hex
from shielded_pool.utils.hash import FieldHasher
from shielded_pool.exceptions import UnauthorizedError

logger = logging.getLogger(__name__)

NULL_ADDRESS = "0x" + "00" * 32

# Escrow account holding the pool's funds in the asset ledger
DEFAULT_POOL_IDENTITY = "0x" + "5e" * 32

PoolEvent = Union[CommitmentEvent, NullifierEvent]


@dataclass
class PoolState:
    """
    The single unit of shared mutable state of a shielded pool.

    Mutated only through ``tree.insert_pair`` and ``spent.mark_spent_many``
    while ``lock`` is held.
    """

    tree: CommitmentTree
    spent: NullifierRegistry
    deposit_limit: int
    admin_identity: str
    asset_reference: str
    pool_identity: str = DEFAULT_POOL_IDENTITY
    events: List[PoolEvent] = field(default_factory=list)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    @property
    def height(self) -> int:
        return self.tree.height

    @property
    def next_index(self) -> int:
        return self.tree.next_index

    def commitment_events(self, from_index: int = 0) -> List[CommitmentEvent]:
        """NewCommitment events with leaf index >= from_index, in index order."""
        with self.lock:
            return [
                event
                for event in self.events
                if isinstance(event, CommitmentEvent) and event.index >= from_index
            ]


def initialize(
    height: int,
    deposit_limit: int,
    asset_reference: str,
    admin_identity: str,
    hasher: Optional[FieldHasher] = None,
    pool_identity: str = DEFAULT_POOL_IDENTITY,
    zero_value: int = ZERO_VALUE,
) -> PoolState:
    """
    Create a fresh pool.

    Args:
        height: Commitment tree height, 1 <= height < 32
        deposit_limit: Maximum magnitude of a single deposit
        asset_reference: Identifier of the pooled asset
        admin_identity: Account allowed to reconfigure the pool
        hasher: Hash2 implementation shared with the circuit
        pool_identity: Escrow account of the pool in the asset ledger
        zero_value: Empty leaf value

    Returns:
        PoolState: Pool with an empty tree and no spent nullifiers

    Raises:
        InvalidHeightError: If height is out of range
        ValueError: If deposit_limit is negative
    """
    if deposit_limit < 0:
        raise ValueError("Deposit limit must be nonnegative")

    tree = CommitmentTree(height, hasher=hasher, zero_value=zero_value)
    state = PoolState(
        tree=tree,
        spent=NullifierRegistry(),
        deposit_limit=deposit_limit,
        admin_identity=normalize_address(admin_identity),
        asset_reference=asset_reference,
        pool_identity=normalize_address(pool_identity),
    )

    logger.info(
        f"Initialized pool for {asset_reference}: height={height}, "
        f"deposit_limit={deposit_limit}, root={to_fixed_hex(tree.current_root())[:18]}..."
    )
    return state


def _is_identity(caller: str, identity: str) -> bool:
    try:
        return normalize_address(caller) == identity
    except (ValueError, TypeError):
        return False


def is_spent(state: PoolState, nullifier: int) -> bool:
    """Check whether ``nullifier`` has been spent in this pool."""
    return state.spent.contains(nullifier)


def current_root(state: PoolState) -> int:
    """Latest commitment tree root."""
    with state.lock:
        return state.tree.current_root()


def is_known_root(state: PoolState, root: int) -> bool:
    """Check ``root`` against the pool's root history."""
    with state.lock:
        return state.tree.is_known_root(root)


def configure_deposit_limit(state: PoolState, caller: str, new_limit: int) -> None:
    """
    Change the deposit limit.

    Raises:
        UnauthorizedError: If caller is not the pool admin; limit unchanged
        ValueError: If new_limit is negative
    """
    with state.lock:
        if not _is_identity(caller, state.admin_identity):
            logger.warning(f"Unauthorized deposit limit change attempted by {caller}")
            raise UnauthorizedError("Only the pool admin can configure the deposit limit")
        if new_limit < 0:
            raise ValueError("Deposit limit must be nonnegative")

        old_limit = state.deposit_limit
        state.deposit_limit = new_limit

    logger.info(f"Deposit limit changed from {old_limit} to {new_limit}")
