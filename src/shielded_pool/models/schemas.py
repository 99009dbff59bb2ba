"""Pydantic data models for the shielded pool."""

from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shielded_pool.core.ext_data import U64_MAX, compute_ext_data_hash
from shielded_pool.utils.encoding import hex_to_bytes, normalize_address, parse_int
from shielded_pool.utils.field import FIELD_SIZE, decode_signed, is_field_element, to_field


def parse_field_element(value: Any) -> int:
    """Parse int / decimal / hex input and require it to lie in the field."""
    parsed = parse_int(value)
    if not is_field_element(parsed):
        raise ValueError(f"Value is not a field element (0 <= v < {FIELD_SIZE})")
    return parsed


class ExtData(BaseModel):
    """Externally visible parameters of a transfer."""

    model_config = ConfigDict(frozen=True)

    recipient: str = Field(..., description="Withdrawal recipient address (hex)")
    ext_amount: int = Field(..., description="Signed external amount, field-encoded")
    relayer: str = Field(..., description="Relayer address (hex)")
    fee: int = Field(default=0, ge=0, le=U64_MAX, description="Relayer fee (u64)")
    encrypted_output1: str = Field(default="0x", description="Encrypted first output (hex)")
    encrypted_output2: str = Field(default="0x", description="Encrypted second output (hex)")

    @field_validator("recipient", "relayer", mode="before")
    @classmethod
    def _normalize_address(cls, value: Any) -> str:
        return normalize_address(value)

    @field_validator("ext_amount", mode="before")
    @classmethod
    def _encode_ext_amount(cls, value: Any) -> int:
        parsed = parse_int(value)
        if parsed <= -FIELD_SIZE or parsed >= FIELD_SIZE:
            raise ValueError("ext_amount is not a field element")
        if parsed < 0:
            # plain negative amounts are accepted and stored field-encoded
            parsed = to_field(parsed)
        return parsed

    @field_validator("fee", mode="before")
    @classmethod
    def _parse_fee(cls, value: Any) -> int:
        return parse_int(value)

    @field_validator("encrypted_output1", "encrypted_output2", mode="before")
    @classmethod
    def _normalize_payload(cls, value: Any) -> str:
        if isinstance(value, bytes):
            return "0x" + value.hex()
        if not isinstance(value, str):
            raise ValueError("Encrypted output must be hex string or bytes")
        return "0x" + hex_to_bytes(value).hex()

    @property
    def signed_amount(self) -> int:
        """ext_amount read back as a signed int."""
        return decode_signed(self.ext_amount)

    def hash(self) -> int:
        """Compute the ext_data_hash binding these parameters."""
        return compute_ext_data_hash(
            self.recipient,
            self.ext_amount,
            self.relayer,
            self.fee,
            self.encrypted_output1,
            self.encrypted_output2,
        )


class TransferRequest(BaseModel):
    """A proved transfer submitted to the pool."""

    model_config = ConfigDict(frozen=True)

    proof: Any = Field(..., description="Opaque proof passed to the verifier")
    root: int = Field(..., description="Merkle root the proof was built against")
    input_nullifiers: List[int] = Field(..., min_length=1, max_length=2)
    output_commitments: List[int] = Field(..., description="New commitments (exactly 2)")
    public_amount: int = Field(..., description="ext_amount - fee in the field")
    ext_data_hash: int = Field(..., description="Hash of ext_data")
    ext_data: ExtData

    @field_validator("root", "public_amount", "ext_data_hash", mode="before")
    @classmethod
    def _parse_scalar(cls, value: Any) -> int:
        return parse_field_element(value)

    @field_validator("input_nullifiers", "output_commitments", mode="before")
    @classmethod
    def _parse_list(cls, value: Any) -> List[int]:
        if not isinstance(value, (list, tuple)):
            raise ValueError("Expected a list of field elements")
        return [parse_field_element(item) for item in value]

    def public_inputs(self) -> List[int]:
        """Public signals in circuit order."""
        return [
            self.root,
            self.public_amount,
            self.ext_data_hash,
            *self.input_nullifiers,
            *self.output_commitments,
        ]


class CommitmentEvent(BaseModel):
    """NewCommitment event emitted for each inserted leaf."""

    commitment: int
    index: int
    encrypted_output: str


class NullifierEvent(BaseModel):
    """NewNullifier event emitted for each spent nullifier."""

    nullifier: int


class PoolStateResponse(BaseModel):
    """Summary of pool state."""

    current_root: str = Field(..., description="Current Merkle root (hex)")
    tree_height: int = Field(..., description="Merkle tree height")
    next_index: int = Field(..., description="Index of the next leaf")
    capacity: int = Field(..., description="Maximum number of leaves")
    num_nullifiers: int = Field(..., description="Number of spent nullifiers")
    deposit_limit: int
    admin_identity: str
    asset_reference: str
    last_update: Optional[datetime] = Field(default_factory=lambda: datetime.now(timezone.utc))
