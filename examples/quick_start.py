#!/usr/bin/env python3
"""
Quick start guide for the shielded pool.

Run this to see a complete workflow example. Proofs are produced by an
off-chain prover in real deployments; here a stand-in verifier accepts the
literal proof "valid".
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from shielded_pool.config import configure_logging
from shielded_pool.core.ledger import InMemoryAssetLedger
from shielded_pool.core.pool import ShieldedPool
from shielded_pool.core.state import DEFAULT_POOL_IDENTITY
from shielded_pool.core.verifier import CallableVerifier
from shielded_pool.exceptions import ShieldedPoolException
from shielded_pool.models.schemas import ExtData, TransferRequest
from shielded_pool.utils.field import compute_public_amount

ALICE = "0xa11ce"
BOB = "0xb0b"
RELAYER = "0x7e1a"


def build_request(pool, nullifiers, commitments, ext_amount=0, fee=0, recipient=BOB):
    """Assemble what a client submits alongside its proof."""
    ext_data = ExtData(
        recipient=recipient,
        ext_amount=ext_amount,
        relayer=RELAYER,
        fee=fee,
        encrypted_output1="0x01",
        encrypted_output2="0x02",
    )
    return TransferRequest(
        proof="valid",
        root=pool.current_root(),
        input_nullifiers=nullifiers,
        output_commitments=commitments,
        public_amount=compute_public_amount(ext_data.ext_amount, fee),
        ext_data_hash=ext_data.hash(),
        ext_data=ext_data,
    )


def main():
    """Run a simple example of the shielded pool."""
    configure_logging("WARNING")

    print("=" * 70)
    print("SHIELDED POOL QUICK START EXAMPLE")
    print("=" * 70)
    print()

    # Step 1: Initialize the pool
    print("Step 1: Initialize the pool")
    print("-" * 70)
    ledger = InMemoryAssetLedger(balances={ALICE: 10_000})
    pool = ShieldedPool.create(
        CallableVerifier(lambda proof, inputs: proof == "valid"),
        ledger,
        height=8,
        deposit_limit=5_000,
        asset_reference="native",
        admin_identity="0xad",
    )
    print("✓ Pool created with 8-level commitment tree (supports 256 notes)")
    print(f"  Empty root: {hex(pool.current_root())[:34]}...")
    print()

    # Step 2: Alice deposits
    print("Step 2: Alice deposits 1000")
    print("-" * 70)
    receipt = pool.transact(build_request(pool, [1], [11, 12], ext_amount=1_000), depositor=ALICE)
    print(f"✓ Deposit settled at leaves {receipt.new_commitment_base_index}, {receipt.new_commitment_base_index + 1}")
    print(f"  Alice balance: {ledger.balance_of(ALICE)}")
    print(f"  Pool balance: {ledger.balance_of(DEFAULT_POOL_IDENTITY)}")
    print()

    # Step 3: Private transfer
    print("Step 3: Alice pays Bob privately")
    print("-" * 70)
    receipt = pool.transact(build_request(pool, [2, 3], [13, 14]))
    print(f"✓ Transfer settled ({receipt.settled_amount_direction.value})")
    print(f"  Nullifiers spent: {pool.get_state().num_nullifiers}")
    print()

    # Step 4: Bob withdraws through a relayer
    print("Step 4: Bob withdraws 600 through a relayer (fee 10)")
    print("-" * 70)
    withdrawal = build_request(pool, [4, 5], [15, 16], ext_amount=-600, fee=10)
    receipt = pool.transact(withdrawal)
    print("✓ Withdrawal settled")
    print(f"  Bob balance: {ledger.balance_of(BOB)}")
    print(f"  Relayer balance: {ledger.balance_of(RELAYER)}")
    print()

    # Step 5: Replay attempt
    print("Step 5: Replaying Bob's withdrawal")
    print("-" * 70)
    try:
        pool.transact(withdrawal)
        print("✗ Replay accepted")
    except ShieldedPoolException as e:
        print(f"✓ Replay rejected: {e.kind.value}")
    print()

    # Summary
    state = pool.get_state()
    print("=" * 70)
    print("POOL STATE")
    print("=" * 70)
    print(f"  Leaves: {state.next_index}/{state.capacity}")
    print(f"  Spent nullifiers: {state.num_nullifiers}")
    print(f"  Current root: {state.current_root[:34]}...")


if __name__ == "__main__":
    main()
