"""Incremental Merkle tree for output commitments with bounded root history."""

import logging
from typing import List, Optional, Sequence

from shielded_pool.utils.field import is_field_element
from shielded_pool.utils.hash import FieldHasher, default_hasher
from shielded_pool.utils.encoding import to_fixed_hex
from shielded_pool.exceptions import InvalidHeightError, TreeFullError, MerkleTreeError

logger = logging.getLogger(__name__)

# Number of recent roots a proof may reference
ROOT_HISTORY_SIZE = 100

# keccak256("tornado") % FIELD_SIZE, the fixed-merkle-tree default zero element
ZERO_VALUE = 21663839004416932945382355908790599225266501822907911457504978515578255421292

MIN_HEIGHT = 1
MAX_HEIGHT = 31


def compute_zeros(height: int, hasher: FieldHasher, zero_value: int = ZERO_VALUE) -> List[int]:
    """
    Compute the empty-subtree roots for levels ``0..height``.

    ``zeros[0]`` is the empty leaf and ``zeros[i + 1] = Hash2(zeros[i], zeros[i])``,
    so ``zeros[height]`` is the root of a completely empty tree.
    """
    zeros = [zero_value]
    for _ in range(height):
        zeros.append(hasher(zeros[-1], zeros[-1]))
    return zeros


class CommitmentTree:
    """
    Append-only Merkle tree that only stores its right frontier.

    Leaves are inserted in pairs (the two outputs of one transaction). Only
    ``filled_subtrees`` and a ring buffer of the last ``ROOT_HISTORY_SIZE``
    roots are kept, which is enough to insert and to recognise recent roots.

    Slot values of 0 in the root history mean "never written"; 0 is never
    accepted as a known root.
    """

    def __init__(
        self,
        height: int,
        hasher: Optional[FieldHasher] = None,
        zero_value: int = ZERO_VALUE,
        root_history_size: int = ROOT_HISTORY_SIZE,
    ):
        """
        Initialize an empty tree.

        Args:
            height: Number of levels above the leaves, 1 <= height < 32
            hasher: Hash2 implementation (defaults to Sha256FieldHasher)
            zero_value: Value of an empty leaf
            root_history_size: Capacity of the root ring buffer

        Raises:
            InvalidHeightError: If height is out of range
        """
        if not isinstance(height, int) or height < MIN_HEIGHT or height > MAX_HEIGHT:
            raise InvalidHeightError(f"Tree height must be between {MIN_HEIGHT} and {MAX_HEIGHT}")
        if root_history_size < 1:
            raise ValueError("Root history size must be positive")
        if not is_field_element(zero_value):
            raise ValueError("Zero value must be a field element")

        self.height = height
        self.hasher = hasher or default_hasher()
        self.root_history_size = root_history_size

        self._zeros = compute_zeros(height, self.hasher, zero_value)

        self.filled_subtrees: List[int] = [self._zeros[level] for level in range(height)]
        self.roots: List[int] = [0] * root_history_size
        self.roots[0] = self._zeros[height]
        self.current_root_index = 0
        self.next_index = 0

    @classmethod
    def from_state(
        cls,
        height: int,
        filled_subtrees: Sequence[int],
        roots: Sequence[int],
        current_root_index: int,
        next_index: int,
        hasher: Optional[FieldHasher] = None,
        zero_value: int = ZERO_VALUE,
    ) -> "CommitmentTree":
        """
        Rebuild a tree from its persisted frontier and root history.

        Raises:
            MerkleTreeError: If the persisted state is inconsistent
        """
        tree = cls(height, hasher=hasher, zero_value=zero_value, root_history_size=len(roots))

        if len(filled_subtrees) != height:
            raise MerkleTreeError(f"Expected {height} filled subtrees, got {len(filled_subtrees)}")
        if not 0 <= current_root_index < len(roots):
            raise MerkleTreeError(f"Root cursor out of range: {current_root_index}")
        if next_index % 2 != 0 or not 0 <= next_index <= tree.capacity:
            raise MerkleTreeError(f"Invalid next index: {next_index}")

        tree.filled_subtrees = list(filled_subtrees)
        tree.roots = list(roots)
        tree.current_root_index = current_root_index
        tree.next_index = next_index
        return tree

    @property
    def capacity(self) -> int:
        """Maximum number of leaves."""
        return 2**self.height

    def has_capacity(self, pairs: int = 1) -> bool:
        """Check whether ``pairs`` more leaf pairs fit."""
        return self.next_index + 2 * pairs <= self.capacity

    def zeros(self, level: int) -> int:
        """Root of an empty subtree at ``level`` (0 = empty leaf)."""
        if level < 0 or level > self.height:
            raise IndexError(f"Level out of range: {level}")
        return self._zeros[level]

    def insert_pair(self, leaf_a: int, leaf_b: int) -> int:
        """
        Append two leaves and record the new root.

        Args:
            leaf_a: Commitment placed at the returned index
            leaf_b: Commitment placed at the returned index + 1

        Returns:
            int: Index assigned to ``leaf_a``

        Raises:
            TreeFullError: If the tree has no room for another pair
            ValueError: If a leaf is not a field element
        """
        if not is_field_element(leaf_a) or not is_field_element(leaf_b):
            raise ValueError("Leaves must be field elements")

        next_index = self.next_index
        if next_index == self.capacity:
            raise TreeFullError(f"Merkle tree is full (max {self.capacity} leaves)")

        current_index = next_index // 2
        current_level_hash = self.hasher(leaf_a, leaf_b)

        for level in range(1, self.height):
            if current_index % 2 == 0:
                left = current_level_hash
                right = self._zeros[level]
                self.filled_subtrees[level] = current_level_hash
            else:
                left = self.filled_subtrees[level]
                right = current_level_hash
            current_level_hash = self.hasher(left, right)
            current_index //= 2

        new_root_index = (self.current_root_index + 1) % self.root_history_size
        self.current_root_index = new_root_index
        self.roots[new_root_index] = current_level_hash
        self.next_index = next_index + 2

        logger.debug(
            f"Inserted leaves at {next_index}/{next_index + 1}, "
            f"root {to_fixed_hex(current_level_hash)[:18]}..."
        )
        return next_index

    def is_known_root(self, root: int) -> bool:
        """
        Check whether ``root`` is among the last ``root_history_size`` roots.

        Scans backwards from the current slot, wrapping around once.
        """
        if root == 0:
            return False
        if not is_field_element(root):
            return False

        start = self.current_root_index
        i = start
        while True:
            if self.roots[i] == root:
                return True
            if i == 0:
                i = self.root_history_size
            i -= 1
            if i == start:
                return False

    def current_root(self) -> int:
        """Most recently recorded root."""
        return self.roots[self.current_root_index]

    @property
    def root(self) -> int:
        """Alias for current_root()."""
        return self.current_root()

    def get_state(self) -> dict:
        """
        Get the current state of the tree for serialization.

        Returns:
            dict: Height, frontier, root ring buffer, cursor and next index
        """
        return {
            "height": self.height,
            "filled_subtrees": list(self.filled_subtrees),
            "roots": list(self.roots),
            "current_root_index": self.current_root_index,
            "next_index": self.next_index,
        }

    def __len__(self) -> int:
        """Return the number of leaves in the tree."""
        return self.next_index

    def __repr__(self) -> str:
        """String representation of the tree."""
        return (
            f"CommitmentTree(height={self.height}, "
            f"leaves={self.next_index}/{self.capacity}, "
            f"root={to_fixed_hex(self.current_root())[:18]}...)"
        )
