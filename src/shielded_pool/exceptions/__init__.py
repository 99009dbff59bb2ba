"""Custom exceptions for the shielded pool engine."""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Rejection kinds surfaced to callers of the pool API."""

    INVALID_HEIGHT = "InvalidHeight"
    TREE_FULL = "TreeFull"
    INVALID_MERKLE_ROOT = "InvalidMerkleRoot"
    NULLIFIER_ALREADY_SPENT = "NullifierAlreadySpent"
    INVALID_EXTERNAL_DATA_HASH = "InvalidExternalDataHash"
    INVALID_PUBLIC_AMOUNT = "InvalidPublicAmount"
    INVALID_PROOF = "InvalidProof"
    AMOUNT_EXCEEDS_LIMIT = "AmountExceedsLimit"
    INVALID_FEE = "InvalidFee"
    INVALID_EXT_AMOUNT = "InvalidExtAmount"
    WITHDRAWAL_TO_ZERO_ADDRESS = "WithdrawalToZeroAddress"
    UNAUTHORIZED = "Unauthorized"
    TRANSFER_ERROR = "TransferError"


class ShieldedPoolException(Exception):
    """Base exception for all shielded pool errors."""

    kind: Optional[ErrorKind] = None

    def __init__(self, message: str = ""):
        super().__init__(message or (self.kind.value if self.kind else ""))


# Field Errors
class FieldError(ShieldedPoolException):
    """Base exception for field arithmetic errors."""
    pass


class InvalidFeeError(FieldError):
    """Raised when a fee is negative or not below MAX_FEE."""
    kind = ErrorKind.INVALID_FEE


class InvalidExtAmountError(FieldError):
    """Raised when an external amount magnitude is not below MAX_EXT_AMOUNT."""
    kind = ErrorKind.INVALID_EXT_AMOUNT


# Merkle Tree Errors
class MerkleTreeError(ShieldedPoolException):
    """Base exception for commitment tree errors."""
    pass


class InvalidHeightError(MerkleTreeError):
    """Raised when the tree height is outside [1, 32)."""
    kind = ErrorKind.INVALID_HEIGHT


class TreeFullError(MerkleTreeError):
    """Raised when no room is left for another leaf pair."""
    kind = ErrorKind.TREE_FULL


class InvalidMerkleRootError(MerkleTreeError):
    """Raised when a request references a root outside the history window."""
    kind = ErrorKind.INVALID_MERKLE_ROOT


# Transaction Errors
class TransactionError(ShieldedPoolException):
    """Base exception for rejected transfer requests."""
    pass


class NullifierAlreadySpentError(TransactionError):
    """Raised when attempting to spend the same nullifier twice."""
    kind = ErrorKind.NULLIFIER_ALREADY_SPENT


class InvalidExternalDataHashError(TransactionError):
    """Raised when ext_data_hash does not match the request's external fields."""
    kind = ErrorKind.INVALID_EXTERNAL_DATA_HASH


class InvalidPublicAmountError(TransactionError):
    """Raised when public_amount does not equal ext_amount - fee."""
    kind = ErrorKind.INVALID_PUBLIC_AMOUNT


class InvalidProofError(TransactionError):
    """Raised when proof verification fails or the outputs are malformed."""
    kind = ErrorKind.INVALID_PROOF


class AmountExceedsLimitError(TransactionError):
    """Raised when a deposit exceeds the configured deposit limit."""
    kind = ErrorKind.AMOUNT_EXCEEDS_LIMIT


class WithdrawalToZeroAddressError(TransactionError):
    """Raised when a withdrawal names the null recipient."""
    kind = ErrorKind.WITHDRAWAL_TO_ZERO_ADDRESS


class UnauthorizedError(ShieldedPoolException):
    """Raised when a caller other than the admin changes pool configuration."""
    kind = ErrorKind.UNAUTHORIZED


class TransferError(ShieldedPoolException):
    """Raised by an asset ledger when a transfer cannot be executed."""
    kind = ErrorKind.TRANSFER_ERROR


# Configuration Errors
class ConfigurationError(ShieldedPoolException):
    """Raised when pool settings are inconsistent."""
    pass


# Storage Errors
class StorageError(ShieldedPoolException):
    """Base exception for storage errors."""
    pass


class PoolNotFoundError(StorageError):
    """Raised when no persisted pool matches the requested id."""
    pass
