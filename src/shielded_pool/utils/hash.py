"""Two-to-one field hashing used by the commitment tree.

The tree only needs ``Hash2(left, right) -> FieldElement``. Production pools
inject the same permutation the transaction circuit uses (Poseidon over
BN254); ``Sha256FieldHasher`` is a deterministic stand-in so the engine can
run on its own.
"""

import hashlib
from typing import Callable, Protocol

from shielded_pool.utils.field import FIELD_SIZE, is_field_element


class FieldHasher(Protocol):
    """Hash2 capability: two field elements in, one field element out."""

    def __call__(self, left: int, right: int) -> int:
        ...


def sha256(data: bytes) -> bytes:
    """
    Compute SHA-256 hash of data.

    Args:
        data: Bytes to hash

    Returns:
        bytes: 32-byte SHA-256 hash
    """
    return hashlib.sha256(data).digest()


class Sha256FieldHasher:
    """
    Hash2 built from SHA-256(left || right) reduced into the field.

    Both inputs are serialized as 32-byte big-endian integers.
    """

    def __call__(self, left: int, right: int) -> int:
        if not is_field_element(left):
            raise ValueError(f"Left input is not a field element: {left!r}")
        if not is_field_element(right):
            raise ValueError(f"Right input is not a field element: {right!r}")

        digest = sha256(left.to_bytes(32, "big") + right.to_bytes(32, "big"))
        return int.from_bytes(digest, "big") % FIELD_SIZE

    def __repr__(self) -> str:
        return "Sha256FieldHasher()"


class CallableHasher:
    """Adapt a plain ``f(left, right)`` function to the FieldHasher protocol."""

    def __init__(self, func: Callable[[int, int], int]):
        self._func = func

    def __call__(self, left: int, right: int) -> int:
        result = self._func(left, right)
        if not is_field_element(result):
            raise ValueError(f"Hash2 returned a non-field value: {result!r}")
        return result


def default_hasher() -> FieldHasher:
    """Return the hasher used when none is injected."""
    return Sha256FieldHasher()
