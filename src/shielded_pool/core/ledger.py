"""Asset custody capability injected into the pool.

The pool never holds balances itself; it instructs an ``AssetLedger`` to move
funds out of the pool's escrow account on withdrawals and fee payments.
"""

import logging
import threading
from typing import Dict, Optional, Protocol

from shielded_pool.exceptions import TransferError
from shielded_pool.utils.encoding import normalize_address

logger = logging.getLogger(__name__)


class AssetLedger(Protocol):
    """Moves ``amount`` units of the pool asset between accounts."""

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        """
        Raises:
            TransferError: If the transfer cannot be executed
        """
        ...


class InMemoryAssetLedger:
    """
    Balance table for a single asset.

    Used for local runs and tests; real deployments bind the pool to a token
    contract or custody service.
    """

    def __init__(self, asset_reference: str = "native", balances: Optional[Dict[str, int]] = None):
        self.asset_reference = asset_reference
        self._balances: Dict[str, int] = {}
        self._lock = threading.Lock()
        for account, amount in (balances or {}).items():
            self.mint(account, amount)

    def mint(self, account: str, amount: int) -> None:
        """Credit ``amount`` to ``account`` out of thin air."""
        if amount < 0:
            raise ValueError("Mint amount must be nonnegative")
        account = normalize_address(account)
        with self._lock:
            self._balances[account] = self._balances.get(account, 0) + amount

    def balance_of(self, account: str) -> int:
        """Current balance of ``account``."""
        return self._balances.get(normalize_address(account), 0)

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        """
        Move funds between accounts.

        Raises:
            TransferError: On nonpositive amount or insufficient balance
        """
        if amount <= 0:
            raise TransferError(f"Transfer amount must be positive, got {amount}")

        sender = normalize_address(sender)
        recipient = normalize_address(recipient)

        with self._lock:
            available = self._balances.get(sender, 0)
            if available < amount:
                raise TransferError(
                    f"Insufficient {self.asset_reference} balance: {available} < {amount}"
                )
            self._balances[sender] = available - amount
            self._balances[recipient] = self._balances.get(recipient, 0) + amount

        logger.debug(f"Transferred {amount} {self.asset_reference} {sender[:10]}... -> {recipient[:10]}...")

    def __repr__(self) -> str:
        return f"InMemoryAssetLedger(asset={self.asset_reference!r}, accounts={len(self._balances)})"
