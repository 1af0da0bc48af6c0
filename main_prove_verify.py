# main_prove_verify.py
"""
Example driver that ties everything together:

- Generate hash parameters and commit to a vector of records.
- Compute an opening for one record and check it natively.
- Run the PySNARK circuit to prove membership (record is in the store).

Linear flow, any failure aborts:
Setup -> Build store -> Open -> native verify -> Allocate -> Generate
constraints -> prove (PySNARK backend chosen by PYSNARK_BACKEND).
"""

import logging
import random
from typing import List

from pysnark.runtime import snark

from circuit import Circuit
from hash_utils import setup, to_hex
from merkle_tree import CommitmentStore
from zk_merkle import allocate_params, allocate_proof, generate_constraints

logger = logging.getLogger(__name__)

NUM_LEAVES = 16


def generate_random_records(num_records: int) -> List[int]:
    """
    Generate random 128-bit integers to act as records.
    """
    return [random.getrandbits(128) for _ in range(num_records)]


@snark
def merkle_membership_example():
    """
    Commit to NUM_LEAVES random records and prove membership of one of them.

    Off-circuit: parameters, tree, opening and the native check.
    In-circuit: params as constants, root as PubVal, record bytes and path as
    PrivVal; PySNARK proves the recorded constraints when this function
    returns.
    """
    # ============================================================
    # OFF-CIRCUIT: Build tree, extract opening
    # ============================================================
    params = setup()
    records = generate_random_records(NUM_LEAVES)
    store = CommitmentStore(params, records)

    index = random.randrange(NUM_LEAVES)
    proof = store.proof(index)
    if not proof.verify(params):
        raise RuntimeError("native verification failed for a freshly opened proof")
    logger.info("commitment %s, proving index %d", to_hex(proof.root), index)

    # ============================================================
    # IN-CIRCUIT: allocate and generate membership constraints
    # ============================================================
    circuit = Circuit()
    params_var = allocate_params(circuit, params)
    proof_var = allocate_proof(circuit, proof)
    generate_constraints(circuit, params_var, proof_var)
    circuit.finalize()

    if not circuit.is_satisfied():
        raise AssertionError("membership circuit unsatisfied at %s" % (circuit.which_is_unsatisfied(),))
    logger.info(
        "circuit: %d assertions, %d public inputs, %d witnesses",
        circuit.num_assertions, len(circuit.public_inputs), len(circuit.witnesses),
    )


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    merkle_membership_example()
