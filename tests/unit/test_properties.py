"""Property-based tests using Hypothesis for pool invariants."""

from hypothesis import HealthCheck, given, settings, strategies as st

from shielded_pool.core.ext_data import U64_MAX, compute_ext_data_hash
from shielded_pool.core.ledger import InMemoryAssetLedger
from shielded_pool.core.merkle_tree import CommitmentTree
from shielded_pool.core.nullifier import NullifierRegistry
from shielded_pool.core.pool import ShieldedPool
from shielded_pool.core.verifier import CallableVerifier
from shielded_pool.exceptions import NullifierAlreadySpentError, ShieldedPoolException
from shielded_pool.models.schemas import ExtData, TransferRequest
from shielded_pool.utils.field import (
    FIELD_SIZE,
    MAX_EXT_AMOUNT,
    compute_public_amount,
    decode_signed,
    encode_signed,
)

field_elements = st.integers(min_value=1, max_value=FIELD_SIZE - 1)
amounts = st.integers(min_value=-(2**64), max_value=2**64)
fees = st.integers(min_value=0, max_value=U64_MAX)


def make_pool(height=6, deposit_limit=2**64):
    ledger = InMemoryAssetLedger(balances={"0x" + "5e" * 32: 2**80})
    return ShieldedPool.create(
        CallableVerifier(lambda proof, inputs: True),
        ledger,
        height=height,
        deposit_limit=deposit_limit,
        asset_reference="native",
        admin_identity="0xad",
    )


def make_request(pool, nullifiers, commitments, ext_amount=0, fee=0):
    ext_data = ExtData(recipient="0xbeef", ext_amount=ext_amount, relayer="0x7e1a", fee=fee)
    return TransferRequest(
        proof="proof",
        root=pool.current_root(),
        input_nullifiers=nullifiers,
        output_commitments=commitments,
        public_amount=compute_public_amount(ext_data.ext_amount, fee),
        ext_data_hash=ext_data.hash(),
        ext_data=ext_data,
    )


class TestFieldProperties:
    """Property-based tests for signed field arithmetic."""

    @given(st.integers(min_value=-(MAX_EXT_AMOUNT - 1), max_value=MAX_EXT_AMOUNT - 1))
    @settings(max_examples=200)
    def test_signed_round_trip(self, value: int):
        """Property: decode_signed inverts encode_signed."""
        encoded = encode_signed(abs(value), is_negative=value < 0)
        assert decode_signed(encoded) == value

    @given(amounts, fees)
    @settings(max_examples=200)
    def test_public_amount_is_difference(self, ext_amount: int, fee: int):
        """Property: public_amount decodes to ext_amount - fee."""
        public_amount = compute_public_amount(ext_amount, fee)
        assert 0 <= public_amount < FIELD_SIZE
        assert decode_signed(public_amount) == ext_amount - fee


class TestTreeProperties:
    """Property-based tests for the commitment tree."""

    @given(st.lists(st.tuples(field_elements, field_elements), min_size=1, max_size=16))
    @settings(max_examples=30, suppress_health_check=[HealthCheck.too_slow])
    def test_insertion_order_determines_root(self, pairs):
        """Property: same pairs in same order produce same roots."""
        tree1 = CommitmentTree(5)
        tree2 = CommitmentTree(5)
        for a, b in pairs:
            assert tree1.insert_pair(a, b) == tree2.insert_pair(a, b)
        assert tree1.current_root() == tree2.current_root()
        assert tree1.next_index == 2 * len(pairs)

    @given(st.lists(st.tuples(field_elements, field_elements), min_size=1, max_size=16))
    @settings(max_examples=30, suppress_health_check=[HealthCheck.too_slow])
    def test_all_recent_roots_known(self, pairs):
        """Property: every root produced within the window stays known."""
        tree = CommitmentTree(5)
        roots = [tree.current_root()]
        for a, b in pairs:
            tree.insert_pair(a, b)
            roots.append(tree.current_root())
        assert all(tree.is_known_root(root) for root in roots)


class TestNullifierProperties:
    """Property-based tests for nullifier uniqueness."""

    @given(st.lists(field_elements, min_size=1, max_size=50))
    @settings(max_examples=50)
    def test_each_nullifier_accepted_once(self, nullifiers):
        """Property: a nullifier is accepted exactly once however often it is offered."""
        registry = NullifierRegistry()
        accepted = []
        for nullifier in nullifiers:
            try:
                registry.mark_spent(nullifier)
                accepted.append(nullifier)
            except NullifierAlreadySpentError:
                pass
        assert sorted(accepted) == sorted(set(nullifiers))
        assert registry.size == len(set(nullifiers))


class TestPoolProperties:
    """Property-based tests for end-to-end pool behavior."""

    @given(
        st.lists(
            st.tuples(st.lists(field_elements, min_size=1, max_size=2), amounts, st.integers(0, 1000)),
            min_size=1,
            max_size=10,
        )
    )
    @settings(max_examples=25, suppress_health_check=[HealthCheck.too_slow])
    def test_rejections_never_mutate(self, submissions):
        """Property: the pool changes only on success, by exactly one pair."""
        pool = make_pool()
        for i, (nullifiers, ext_amount, fee) in enumerate(submissions):
            request = make_request(pool, nullifiers, [2 * i + 1, 2 * i + 2], ext_amount, fee)
            before = (pool.current_root(), pool.state.next_index, pool.state.spent.size)
            try:
                receipt = pool.transact(request)
            except ShieldedPoolException:
                assert (pool.current_root(), pool.state.next_index, pool.state.spent.size) == before
            else:
                assert receipt.new_commitment_base_index == before[1]
                assert pool.state.next_index == before[1] + 2
                assert pool.state.spent.size == before[2] + len(set(nullifiers))
                assert all(pool.is_spent(n) for n in nullifiers)

    @given(st.binary(max_size=64), st.binary(max_size=64))
    @settings(max_examples=50)
    def test_ext_hash_in_field(self, payload1: bytes, payload2: bytes):
        """Property: ext_data_hash is always a field element."""
        value = compute_ext_data_hash("0x1", 5, "0x2", 0, payload1, payload2)
        assert 0 <= value < FIELD_SIZE
