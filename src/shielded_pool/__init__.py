"""Main package initialization."""

__version__ = "0.1.0"
__author__ = "Shielded Pool Team"
__description__ = "Shielded pool: private transfers over a commitment tree and nullifier set"

from .core.merkle_tree import CommitmentTree
from .core.nullifier import NullifierRegistry
from .core.ledger import AssetLedger, InMemoryAssetLedger
from .core.verifier import CallableVerifier, ProofVerifier
from .core.state import PoolState, initialize
from .core.validator import AmountDirection, Receipt, TransactionValidator, VerificationResult
from .core.pool import ShieldedPool, process
from .models.schemas import ExtData, TransferRequest

__all__ = [
    "CommitmentTree",
    "NullifierRegistry",
    "AssetLedger",
    "InMemoryAssetLedger",
    "ProofVerifier",
    "CallableVerifier",
    "PoolState",
    "initialize",
    "AmountDirection",
    "Receipt",
    "TransactionValidator",
    "VerificationResult",
    "ShieldedPool",
    "process",
    "ExtData",
    "TransferRequest",
]
