"""Pytest configuration and fixtures."""

import itertools
import pytest
import sys
from pathlib import Path

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from shielded_pool.config import reset_settings
from shielded_pool.core.ledger import InMemoryAssetLedger
from shielded_pool.core.pool import ShieldedPool
from shielded_pool.core.state import DEFAULT_POOL_IDENTITY
from shielded_pool.core.verifier import CallableVerifier
from shielded_pool.models.schemas import ExtData, TransferRequest
from shielded_pool.utils.field import compute_public_amount
from shielded_pool.utils.hash import Sha256FieldHasher

ADMIN = "0xad"
RECIPIENT = "0xbeef"
RELAYER = "0x7e1a"
DEPOSITOR = "0xd0"
POOL_FUNDS = 10**15


@pytest.fixture(autouse=True)
def _reset_settings():
    """Settings are cached per process; start every test clean."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def temp_db(tmp_path):
    """Fixture providing a temporary database path."""
    return tmp_path / "test.db"


@pytest.fixture(scope="session")
def test_data():
    """Fixture providing test data."""
    return {
        "admin": ADMIN,
        "recipient": RECIPIENT,
        "relayer": RELAYER,
        "depositor": DEPOSITOR,
        "pool_funds": POOL_FUNDS,
        "sample_tree_height": 8,
        "deposit_limit": 10**12,
    }


@pytest.fixture
def hasher():
    """Default Hash2 implementation."""
    return Sha256FieldHasher()


@pytest.fixture
def verifier_calls():
    """Public inputs seen by the accepting verifier, in call order."""
    return []


@pytest.fixture
def accepting_verifier(verifier_calls):
    """Verifier that accepts every proof and records its public inputs."""

    def verify(proof, public_inputs):
        verifier_calls.append(public_inputs)
        return True

    return CallableVerifier(verify)


@pytest.fixture
def rejecting_verifier():
    """Verifier that rejects every proof."""
    return CallableVerifier(lambda proof, public_inputs: False)


@pytest.fixture
def ledger():
    """Ledger with the pool escrow and the depositor funded."""
    return InMemoryAssetLedger(
        asset_reference="native",
        balances={DEFAULT_POOL_IDENTITY: POOL_FUNDS, DEPOSITOR: POOL_FUNDS},
    )


@pytest.fixture
def pool(accepting_verifier, ledger, test_data):
    """Fresh pool of height 8 with an accepting verifier."""
    return ShieldedPool.create(
        accepting_verifier,
        ledger,
        height=test_data["sample_tree_height"],
        deposit_limit=test_data["deposit_limit"],
        asset_reference="native",
        admin_identity=ADMIN,
    )


@pytest.fixture
def build_request():
    """
    Factory for well-formed transfer requests.

    ext_data_hash and public_amount are derived from the ext data unless
    overridden; nullifiers and commitments are fresh per call.
    """
    counter = itertools.count(1)

    def build(
        pool,
        ext_amount=0,
        fee=0,
        recipient=RECIPIENT,
        relayer=RELAYER,
        nullifiers=None,
        commitments=None,
        root=None,
        public_amount=None,
        ext_data_hash=None,
        encrypted_output1="0xaa01",
        encrypted_output2="0xbb02",
        proof="proof",
    ):
        if nullifiers is None:
            nullifiers = [1_000_000 + next(counter), 1_000_000 + next(counter)]
        if commitments is None:
            commitments = [2_000_000 + next(counter), 2_000_000 + next(counter)]

        ext_data = ExtData(
            recipient=recipient,
            ext_amount=ext_amount,
            relayer=relayer,
            fee=fee,
            encrypted_output1=encrypted_output1,
            encrypted_output2=encrypted_output2,
        )
        return TransferRequest(
            proof=proof,
            root=pool.current_root() if root is None else root,
            input_nullifiers=nullifiers,
            output_commitments=commitments,
            public_amount=(
                compute_public_amount(ext_data.ext_amount, fee)
                if public_amount is None
                else public_amount
            ),
            ext_data_hash=ext_data.hash() if ext_data_hash is None else ext_data_hash,
            ext_data=ext_data,
        )

    return build
