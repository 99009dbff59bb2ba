"""Proof verification capability injected into the pool."""

import logging
from typing import Any, Callable, Protocol, Sequence

logger = logging.getLogger(__name__)


class ProofVerifier(Protocol):
    """
    VerifyProof capability.

    ``public_inputs`` are, in order: root, public_amount, ext_data_hash,
    input nullifiers, output commitments.
    """

    def verify(self, proof: Any, public_inputs: Sequence[int]) -> bool:
        ...


class CallableVerifier:
    """Adapt a plain ``f(proof, public_inputs) -> bool`` to ProofVerifier."""

    def __init__(self, func: Callable[[Any, Sequence[int]], bool]):
        self._func = func

    def verify(self, proof: Any, public_inputs: Sequence[int]) -> bool:
        return bool(self._func(proof, list(public_inputs)))


def run_verifier(verifier: ProofVerifier, proof: Any, public_inputs: Sequence[int]) -> bool:
    """
    Call the verifier.

    Value, type and arithmetic errors raised while decoding a malformed
    proof count as a failed verification.
    """
    try:
        return bool(verifier.verify(proof, list(public_inputs)))
    except (ValueError, TypeError, ArithmeticError) as e:
        logger.warning(f"Proof verifier raised on malformed input: {e}")
        return False
