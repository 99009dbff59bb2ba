"""Encoding and decoding utilities."""

import string
from typing import Union

ADDRESS_LENGTH = 32  # bytes


def bytes_to_hex(data: bytes) -> str:
    """
    Convert bytes to hexadecimal string.

    Args:
        data: Bytes to convert

    Returns:
        str: Hexadecimal string with '0x' prefix
    """
    return "0x" + data.hex()


def hex_to_bytes(hex_str: str) -> bytes:
    """
    Convert hexadecimal string to bytes.

    An odd number of digits is left-padded with a zero nibble, matching how
    the client serializes encrypted outputs.

    Args:
        hex_str: Hexadecimal string (with or without '0x' prefix)

    Returns:
        bytes: Decoded bytes

    Raises:
        ValueError: If hex string is invalid
    """
    if hex_str.startswith("0x") or hex_str.startswith("0X"):
        hex_str = hex_str[2:]

    if len(hex_str) % 2 != 0:
        hex_str = "0" + hex_str

    return bytes.fromhex(hex_str)


def ensure_bytes(data: Union[bytes, str]) -> bytes:
    """
    Ensure payload data is in bytes format.

    Strings are treated as hex.

    Args:
        data: Bytes or hex string

    Returns:
        bytes: Data as bytes
    """
    if isinstance(data, bytes):
        return data
    elif isinstance(data, str):
        return hex_to_bytes(data)
    else:
        raise TypeError(f"Expected bytes or str, got {type(data)}")


def to_fixed_hex(value: int, length: int = 32) -> str:
    """Render an integer as a '0x' hex string zero-padded to ``length`` bytes."""
    return "0x" + format(value, "x").zfill(length * 2)


def parse_int(value: Union[int, str]) -> int:
    """
    Parse an integer given as int, decimal string or '0x' hex string.

    Raises:
        ValueError: If value cannot be parsed
    """
    if isinstance(value, bool):
        raise ValueError("Booleans are not integers here")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        value = value.strip()
        if value.lower().startswith("0x"):
            return int(value, 16)
        return int(value, 10)
    raise ValueError(f"Cannot parse integer from {type(value)}")


def int_to_le_bytes(value: int, length: int) -> bytes:
    """Little-endian fixed-width encoding (BCS integer layout)."""
    return value.to_bytes(length, "little")


def le_bytes_to_int(data: bytes) -> int:
    """Inverse of int_to_le_bytes."""
    return int.from_bytes(data, "little")


def normalize_address(address: Union[str, bytes]) -> str:
    """
    Normalize an account address to its long form.

    Addresses are 32 bytes, rendered as '0x' + 64 lowercase hex digits.
    Short forms such as '0x1' are left-padded.

    Raises:
        ValueError: If address is longer than 32 bytes or not hex
    """
    if isinstance(address, bytes):
        if len(address) > ADDRESS_LENGTH:
            raise ValueError(f"Address longer than {ADDRESS_LENGTH} bytes")
        return bytes_to_hex(address.rjust(ADDRESS_LENGTH, b"\x00"))

    if not isinstance(address, str):
        raise TypeError(f"Expected bytes or str, got {type(address)}")

    raw = address[2:] if address.lower().startswith("0x") else address
    if len(raw) > ADDRESS_LENGTH * 2:
        raise ValueError(f"Address longer than {ADDRESS_LENGTH} bytes: {address}")
    if not all(c in string.hexdigits for c in raw):
        raise ValueError(f"Address is not hex: {address}")

    return "0x" + raw.lower().zfill(ADDRESS_LENGTH * 2)


def address_to_bytes(address: Union[str, bytes]) -> bytes:
    """Serialize an address as its 32 raw bytes."""
    return hex_to_bytes(normalize_address(address))
