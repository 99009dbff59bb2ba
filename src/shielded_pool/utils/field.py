"""Field arithmetic over the BN254 scalar field.

Every commitment, nullifier, root, public amount and external data hash is an
integer in ``[0, FIELD_SIZE)``. Signed quantities are carried inside the
unsigned field with a fixed convention:

    value <  FIELD_SIZE // 2  -> nonnegative, equal to value
    value >= FIELD_SIZE // 2  -> negative, equal to -(FIELD_SIZE - value)

The same convention is used by the off-chain prover when it builds the
``publicAmount`` circuit input, so encoding here must match it exactly.

Example:
    >>> from shielded_pool.utils.field import FIELD_SIZE, encode_signed, compute_public_amount
    >>> encode_signed(500, is_negative=True) == FIELD_SIZE - 500
    True
    >>> compute_public_amount(1000, 100)
    900
"""

from typing import Tuple

from shielded_pool.exceptions import InvalidExtAmountError, InvalidFeeError

# BN254 (alt_bn128) scalar field order
FIELD_SIZE = 21888242871839275222246405745257275088548364400416034343698204186575808495617

HALF_FIELD = FIELD_SIZE // 2

# Ceilings for externally supplied magnitudes
MAX_FEE = 2**248
MAX_EXT_AMOUNT = 2**248


def to_field(value: int) -> int:
    """Reduce an integer into ``[0, FIELD_SIZE)``; negative ints wrap."""
    return int(value) % FIELD_SIZE


def is_field_element(value: int) -> bool:
    """Check that a value is an int already inside the field."""
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value < FIELD_SIZE


def encode_signed(magnitude: int, is_negative: bool = False) -> int:
    """
    Encode a signed magnitude as a field element.

    Args:
        magnitude: Absolute value, must be below FIELD_SIZE
        is_negative: Whether the value is negative

    Returns:
        int: ``magnitude`` or ``FIELD_SIZE - magnitude``

    Raises:
        ValueError: If magnitude is negative or does not fit the field
    """
    if magnitude < 0 or magnitude >= FIELD_SIZE:
        raise ValueError(f"Magnitude out of range: {magnitude}")

    if is_negative and magnitude != 0:
        return FIELD_SIZE - magnitude
    return magnitude


def decode_signed(value: int) -> int:
    """
    Read a field element back as a signed Python int.

    Args:
        value: Field element in [0, FIELD_SIZE)

    Returns:
        int: Nonnegative value, or a negative int for the upper half of the field
    """
    value = to_field(value)
    if value < HALF_FIELD:
        return value
    return -(FIELD_SIZE - value)


def split_signed(value: int) -> Tuple[int, bool]:
    """Return ``(magnitude, is_negative)`` for a field-encoded signed value."""
    signed = decode_signed(value)
    return abs(signed), signed < 0


def compute_public_amount(ext_amount: int, fee: int) -> int:
    """
    Compute the circuit's public amount ``ext_amount - fee`` in the field.

    ``ext_amount`` may be given field-encoded (``FIELD_SIZE - 500`` for a 500
    withdrawal) or as a plain negative int; both decode to the same value.

    Args:
        ext_amount: Signed external amount
        fee: Relayer fee (nonnegative)

    Returns:
        int: Field element for ``ext_amount - fee``

    Raises:
        InvalidFeeError: If fee is negative or fee >= MAX_FEE
        InvalidExtAmountError: If |ext_amount| >= MAX_EXT_AMOUNT
    """
    if fee < 0 or fee >= MAX_FEE:
        raise InvalidFeeError(f"Invalid fee: {fee}")

    ext = decode_signed(ext_amount)
    if abs(ext) >= MAX_EXT_AMOUNT:
        raise InvalidExtAmountError(f"Invalid ext amount: {ext}")

    if ext >= fee:
        return ext - fee
    return FIELD_SIZE - (fee - ext)
