"""Permanent registry of spent nullifiers.

A nullifier is published when a note is spent. The registry only ever grows:
there is no removal, and a nullifier can be inserted exactly once. Uniqueness
here is the only double-spend defence, so insertion is an atomic
insert-if-absent rather than a ``contains`` followed by an ``add``.

Example:
    >>> registry = NullifierRegistry()
    >>> registry.mark_spent(1234)
    >>> registry.contains(1234)
    True
    >>> registry.mark_spent(1234)
    Traceback (most recent call last):
    ...
    shielded_pool.exceptions.NullifierAlreadySpentError: ...
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, Iterator, List, Optional

from shielded_pool.utils.encoding import to_fixed_hex
from shielded_pool.utils.field import is_field_element
from shielded_pool.exceptions import NullifierAlreadySpentError


@dataclass(frozen=True)
class NullifierRecord:
    """
    Record of a spent nullifier.

    Tracks when and under which root a nullifier was used.
    """

    nullifier: int
    spent_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    merkle_root_at_spending: Optional[int] = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "nullifier": to_fixed_hex(self.nullifier),
            "spent_at": self.spent_at,
            "merkle_root_at_spending": (
                to_fixed_hex(self.merkle_root_at_spending)
                if self.merkle_root_at_spending is not None
                else None
            ),
        }


class NullifierRegistry:
    """
    Maintains the set of spent nullifiers.

    Key properties:
      - Set grows over time (never shrinks)
      - Every entry is inserted exactly once and never overwritten
      - Insert-if-absent is atomic, including for a batch of nullifiers
    """

    def __init__(self, nullifiers: Iterable[int] = ()):
        """Initialize registry, optionally pre-loaded from persisted state."""
        self._lock = threading.Lock()
        self._records: Dict[int, NullifierRecord] = {}
        for nullifier in nullifiers:
            self._check(nullifier)
            self._records[nullifier] = NullifierRecord(nullifier=nullifier)

    @staticmethod
    def _check(nullifier: int) -> None:
        if not is_field_element(nullifier):
            raise ValueError(f"Nullifier is not a field element: {nullifier!r}")

    def contains(self, nullifier: int) -> bool:
        """Check if a nullifier has been spent."""
        return nullifier in self._records

    def mark_spent(self, nullifier: int, merkle_root: Optional[int] = None) -> None:
        """
        Register a nullifier as spent.

        Args:
            nullifier: The nullifier field element
            merkle_root: Root the spending proof referenced

        Raises:
            NullifierAlreadySpentError: If the nullifier is already registered
        """
        self.mark_spent_many([nullifier], merkle_root=merkle_root)

    def mark_spent_many(self, nullifiers: List[int], merkle_root: Optional[int] = None) -> None:
        """
        Register several nullifiers at once, all or nothing.

        Raises:
            NullifierAlreadySpentError: If any nullifier is registered already
                or appears twice in ``nullifiers``; nothing is inserted then
        """
        for nullifier in nullifiers:
            self._check(nullifier)

        with self._lock:
            seen = set()
            for nullifier in nullifiers:
                if nullifier in self._records or nullifier in seen:
                    raise NullifierAlreadySpentError(
                        f"Nullifier {to_fixed_hex(nullifier)} already spent"
                    )
                seen.add(nullifier)

            for nullifier in nullifiers:
                self._records[nullifier] = NullifierRecord(
                    nullifier=nullifier, merkle_root_at_spending=merkle_root
                )

    def get_record(self, nullifier: int) -> Optional[NullifierRecord]:
        """Get spending record for a nullifier."""
        return self._records.get(nullifier)

    @property
    def size(self) -> int:
        """Get number of spent nullifiers."""
        return len(self._records)

    def __contains__(self, nullifier: int) -> bool:
        return self.contains(nullifier)

    def __iter__(self) -> Iterator[int]:
        with self._lock:
            return iter(list(self._records))

    def __len__(self) -> int:
        return self.size

    def __repr__(self) -> str:
        return f"NullifierRegistry(spent={self.size})"
