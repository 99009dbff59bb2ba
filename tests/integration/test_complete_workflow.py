"""Integration tests for the complete shielded pool system."""

import pytest

from shielded_pool.core.ledger import InMemoryAssetLedger
from shielded_pool.core.pool import ShieldedPool
from shielded_pool.core.state import DEFAULT_POOL_IDENTITY
from shielded_pool.core.validator import AmountDirection
from shielded_pool.core.verifier import CallableVerifier
from shielded_pool.exceptions import (
    InvalidExternalDataHashError,
    InvalidMerkleRootError,
    NullifierAlreadySpentError,
)
from shielded_pool.storage.database import DatabaseManager

ALICE = "0xa11ce"
BOB = "0xb0b"
RELAYER = "0x7e1a"


def rebuild_root(events, height, hasher, zero_value):
    """Client-side root from NewCommitment events, as a wallet would compute it."""
    leaves = [event.commitment for event in sorted(events, key=lambda e: e.index)]
    level = leaves + [zero_value] * (2**height - len(leaves))
    for _ in range(height):
        level = [hasher(level[i], level[i + 1]) for i in range(0, len(level), 2)]
    return level[0]


class TestCompletePoolWorkflow:
    """Tests for complete pool workflows."""

    @pytest.fixture
    def ledger(self):
        return InMemoryAssetLedger(balances={ALICE: 10_000})

    @pytest.fixture
    def pool(self, ledger):
        """Create a pool for testing."""
        return ShieldedPool.create(
            CallableVerifier(lambda proof, inputs: proof == "valid"),
            ledger,
            height=6,
            deposit_limit=5_000,
            asset_reference="native",
            admin_identity="0xad",
        )

    def test_deposit_transfer_withdraw(self, pool, ledger, build_request):
        """Test a note's life from deposit to withdrawal through a relayer."""
        # Step 1: Alice deposits 3000 into two notes
        deposit = build_request(pool, ext_amount=3_000, proof="valid", nullifiers=[101], commitments=[201, 202])
        receipt = pool.transact(deposit, depositor=ALICE)
        assert receipt.settled_amount_direction == AmountDirection.DEPOSIT
        assert ledger.balance_of(ALICE) == 7_000
        assert ledger.balance_of(DEFAULT_POOL_IDENTITY) == 3_000

        # Step 2: private transfer, no value crosses the boundary
        transfer = build_request(pool, proof="valid", nullifiers=[102, 103], commitments=[203, 204])
        receipt = pool.transact(transfer)
        assert receipt.settled_amount_direction == AmountDirection.TRANSFER
        assert receipt.new_commitment_base_index == 2
        assert ledger.balance_of(DEFAULT_POOL_IDENTITY) == 3_000

        # Step 3: Bob withdraws 1000 through a relayer charging 25
        withdrawal = build_request(
            pool,
            ext_amount=-1_000,
            fee=25,
            recipient=BOB,
            relayer=RELAYER,
            proof="valid",
            nullifiers=[104, 105],
            commitments=[205, 206],
        )
        receipt = pool.transact(withdrawal)
        assert receipt.settled_amount_direction == AmountDirection.WITHDRAWAL
        assert ledger.balance_of(BOB) == 1_000
        assert ledger.balance_of(RELAYER) == 25
        assert ledger.balance_of(DEFAULT_POOL_IDENTITY) == 1_975

        # Step 4: the pool is consistent with what clients observe
        assert pool.state.next_index == 6
        assert pool.state.spent.size == 5
        tree = pool.state.tree
        assert pool.current_root() == rebuild_root(
            pool.get_commitment_events(), tree.height, tree.hasher, tree.zeros(0)
        )

    def test_replayed_withdrawal_rejected(self, pool, ledger, build_request):
        """Test that a captured withdrawal cannot be settled twice or redirected."""
        pool.transact(build_request(pool, ext_amount=3_000, proof="valid"), depositor=ALICE)

        withdrawal = build_request(pool, ext_amount=-500, recipient=BOB, proof="valid", nullifiers=[7, 8])
        pool.transact(withdrawal)
        root_after = pool.current_root()

        with pytest.raises(NullifierAlreadySpentError):
            pool.transact(withdrawal)

        # Front-running relayer swaps the recipient but keeps the proof
        redirected = build_request(
            pool,
            ext_amount=-500,
            recipient="0xe71",
            proof="valid",
            nullifiers=[9, 10],
            ext_data_hash=build_request(
                pool, ext_amount=-500, recipient=BOB, nullifiers=[9, 10]
            ).ext_data_hash,
        )
        with pytest.raises(InvalidExternalDataHashError):
            pool.transact(redirected)

        assert pool.current_root() == root_after
        assert ledger.balance_of(BOB) == 500
        assert ledger.balance_of("0xe71") == 0

    def test_stale_root_expires(self, ledger, build_request):
        """Test that proofs against roots older than the history window fail."""
        pool = ShieldedPool.create(
            CallableVerifier(lambda proof, inputs: True),
            ledger,
            height=8,
            deposit_limit=5_000,
            asset_reference="native",
            admin_identity="0xad",
        )
        stale_root = pool.current_root()
        pending = build_request(pool)

        for _ in range(100):
            pool.transact(build_request(pool))

        assert not pool.is_known_root(stale_root)
        with pytest.raises(InvalidMerkleRootError):
            pool.transact(pending)

    def test_restart_from_database(self, pool, ledger, build_request, tmp_path):
        """Test that a pool persisted and reloaded continues where it stopped."""
        db = DatabaseManager(f"sqlite:///{tmp_path / 'pool.db'}")
        db.create_tables()

        pool.transact(build_request(pool, ext_amount=1_000, proof="valid", nullifiers=[1]), depositor=ALICE)
        session = db.get_session()
        pool_id = db.save_pool(session, pool.state)
        session.close()

        session = db.get_session()
        restored = ShieldedPool(
            db.load_pool(session, pool_id),
            CallableVerifier(lambda proof, inputs: proof == "valid"),
            ledger,
        )
        session.close()

        assert restored.current_root() == pool.current_root()
        assert restored.is_spent(1)
        with pytest.raises(NullifierAlreadySpentError):
            restored.transact(build_request(restored, proof="valid", nullifiers=[1]))

        receipt = restored.transact(build_request(restored, ext_amount=-400, recipient=BOB, proof="valid"))
        assert receipt.new_commitment_base_index == 2
        assert ledger.balance_of(BOB) == 400
        db.engine.dispose()
