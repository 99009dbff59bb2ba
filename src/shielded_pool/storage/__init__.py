"""Storage layer for persistent pool state."""

from shielded_pool.storage.database import (
    DatabaseManager,
    PoolRecord,
    FilledSubtree,
    RootHistoryEntry,
    Nullifier,
    Commitment,
    Base,
    get_db_manager,
    reset_db_manager,
)

__all__ = [
    "DatabaseManager",
    "PoolRecord",
    "FilledSubtree",
    "RootHistoryEntry",
    "Nullifier",
    "Commitment",
    "Base",
    "get_db_manager",
    "reset_db_manager",
]
