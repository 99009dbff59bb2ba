"""Binding of a transfer's externally visible parameters.

The proof commits to ``ext_data_hash``; the pool recomputes it from the
request's own recipient, amount, relayer, fee and encrypted outputs. A proof
captured in flight therefore cannot be replayed with a different recipient,
amount or payload.

Serialization (must match the client that builds the proof):

    recipient          32 bytes, address left-padded
    ext_amount         32 bytes, little-endian u256 (field-encoded signed)
    relayer            32 bytes, address left-padded
    fee                 8 bytes, little-endian u64
    encrypted_output1  raw bytes
    encrypted_output2  raw bytes

The concatenation is hashed with SHA3-256, the digest is read as a
little-endian integer and reduced modulo the field size.
"""

from typing import Union

from cryptography.hazmat.primitives import hashes

from shielded_pool.utils.encoding import (
    address_to_bytes,
    ensure_bytes,
    int_to_le_bytes,
    le_bytes_to_int,
)
from shielded_pool.utils.field import FIELD_SIZE, to_field

U256_LENGTH = 32
U64_LENGTH = 8
U64_MAX = 2**64 - 1


def sha3_256(data: bytes) -> bytes:
    """SHA3-256 digest of ``data``."""
    digest = hashes.Hash(hashes.SHA3_256())
    digest.update(data)
    return digest.finalize()


def serialize_ext_data(
    recipient: Union[str, bytes],
    ext_amount: int,
    relayer: Union[str, bytes],
    fee: int,
    encrypted_output1: Union[str, bytes],
    encrypted_output2: Union[str, bytes],
) -> bytes:
    """
    Serialize external data in the fixed binding order.

    Raises:
        ValueError: If fee does not fit a u64 or an address is malformed
    """
    if fee < 0 or fee > U64_MAX:
        raise ValueError(f"Fee does not fit in u64: {fee}")

    return b"".join(
        [
            address_to_bytes(recipient),
            int_to_le_bytes(to_field(ext_amount), U256_LENGTH),
            address_to_bytes(relayer),
            int_to_le_bytes(fee, U64_LENGTH),
            ensure_bytes(encrypted_output1),
            ensure_bytes(encrypted_output2),
        ]
    )


def compute_ext_data_hash(
    recipient: Union[str, bytes],
    ext_amount: int,
    relayer: Union[str, bytes],
    fee: int,
    encrypted_output1: Union[str, bytes],
    encrypted_output2: Union[str, bytes],
) -> int:
    """
    Compute the field element binding a transfer's external data.

    Args:
        recipient: Withdrawal recipient address
        ext_amount: Signed external amount (field-encoded or negative int)
        relayer: Relayer address
        fee: Relayer fee
        encrypted_output1: Encrypted note for the first output (hex or bytes)
        encrypted_output2: Encrypted note for the second output (hex or bytes)

    Returns:
        int: SHA3-256 of the serialized data, little-endian, mod FIELD_SIZE
    """
    data = serialize_ext_data(
        recipient, ext_amount, relayer, fee, encrypted_output1, encrypted_output2
    )
    return le_bytes_to_int(sha3_256(data)) % FIELD_SIZE
