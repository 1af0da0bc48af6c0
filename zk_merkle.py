# zk_merkle.py
"""
Merkle opening verification as a PySNARK circuit.

Given hash parameters (constants), a root (public input) and a record plus its
authentication path (private witnesses), we recompute the root INSIDE THE
CIRCUIT and enforce that it equals the public root. The prover thereby shows
that some record sits somewhere under the root without revealing which
record, which index or which siblings.

This mirrors merkle_tree.verify_opening step for step:
- leaf = leaf_hash(serialize(record))
- per level, bit k of the index picks the operand order
- node = node_hash(left, right)
- final node compared with the root

Unlike a plain list of public positions, the index bits are private
witnesses here, constrained to be bits; the operand order is chosen with
circuit.conditional_swap.
"""

import logging
from dataclasses import dataclass
from typing import List

from circuit import AllocationMode, AllocVar, Circuit, Value, conditional_swap
from hash_gadgets import HashParametersVar, leaf_hash_gadget, node_hash_gadget
from hash_utils import HashParameters
from merkle_tree import AuthenticationPath, MalformedPathError, OpeningProof
from records import serialize

logger = logging.getLogger(__name__)


@dataclass
class PathVar(AllocVar):
    """
    Circuit mirror of AuthenticationPath.

    position_bits[k] is bit k of the leaf index (1 = our node is the RIGHT
    child at level k); siblings[k] is the sibling digest at level k.
    """
    position_bits: List[Value]
    siblings: List[Value]

    @classmethod
    def new_variable(cls, circuit: Circuit, f, mode: AllocationMode) -> "PathVar":
        path: AuthenticationPath = f() if callable(f) else f
        if path.leaf_index < 0 or path.leaf_index >> len(path.siblings):
            raise MalformedPathError(
                f"leaf index {path.leaf_index} does not fit a path of length {len(path.siblings)}"
            )
        with circuit.namespace("path"):
            position_bits = [circuit.allocate_bit(bit, mode) for bit in path.positions()]
            siblings = [circuit.allocate(s, mode) for s in path.siblings]
        return cls(position_bits=position_bits, siblings=siblings)

    def __len__(self) -> int:
        return len(self.siblings)


def allocate_record(circuit: Circuit, record, mode: AllocationMode) -> List[Value]:
    """
    Serialize `record` and allocate one byte per serialized byte.

    Serialization happens outside the circuit; a SerializationError aborts
    the allocation before anything is added to `circuit`.
    """
    data = serialize(record)
    with circuit.namespace("record"):
        return [circuit.allocate_byte(byte, mode) for byte in data]


@dataclass
class OpeningProofVar(AllocVar):
    root: Value
    record: List[Value]
    path: PathVar

    @classmethod
    def new_variable(cls, circuit: Circuit, f, mode: AllocationMode) -> "OpeningProofVar":
        """
        Allocate every part of an opening proof.

        With mode=WITNESS only the record and the path are private; the root
        is allocated as a public input because the verifier supplies it.
        """
        proof: OpeningProof = f() if callable(f) else f
        root_mode = AllocationMode.INPUT if mode is AllocationMode.WITNESS else mode
        # record first: a record that cannot be serialized leaves the circuit untouched
        record = allocate_record(circuit, proof.record, mode)
        with circuit.namespace("root"):
            root = circuit.allocate(proof.root, root_mode)
        path = PathVar.new_variable(circuit, proof.path, mode)
        return cls(root=root, record=record, path=path)


def allocate_params(circuit: Circuit, params: HashParameters) -> HashParametersVar:
    """Hash parameters are compiled into the circuit as constants."""
    return HashParametersVar.new_constant(circuit, params)


def allocate_proof(circuit: Circuit, proof: OpeningProof) -> OpeningProofVar:
    """Root as public input; record and path as private witnesses."""
    return OpeningProofVar.new_witness(circuit, proof)


def verify_membership(
    circuit: Circuit,
    params: HashParametersVar,
    proof: OpeningProofVar,
) -> Value:
    """
    Recompute the root from the record and the path, in-circuit.

    Walks up the tree exactly like merkle_tree.verify_opening and returns the
    computed root; the caller decides how to compare it.
    """
    with circuit.namespace("leaf"):
        current = leaf_hash_gadget(params, proof.record)

    for level, (bit, sibling) in enumerate(zip(proof.path.position_bits, proof.path.siblings)):
        with circuit.namespace(f"level_{level}"):
            # bit == 1: current is the RIGHT child
            left, right = conditional_swap(bit, current, sibling)
            current = node_hash_gadget(params, left, right)

    return current


def generate_constraints(
    circuit: Circuit,
    params: HashParametersVar,
    proof: OpeningProofVar,
) -> None:
    """
    Add the membership equations for one opening proof to `circuit`.

    The equations hold iff merkle_tree.verify_opening would return True for
    the same plaintext values; check with circuit.is_satisfied(). Errors
    from the context (a finalized circuit) propagate unchanged.
    """
    circuit.check_open()
    before = circuit.num_assertions
    with circuit.namespace("membership"):
        computed_root = verify_membership(circuit, params, proof)
        circuit.assert_equal(computed_root, proof.root, "root")
    logger.debug(
        "membership constraints generated: %d new assertions, height %d, %d record bytes",
        circuit.num_assertions - before, len(proof.path), len(proof.record),
    )
