"""
Shared fixtures for the vector commitment tests.

Randomness comes from seeded random.Random instances so every run builds the
same parameters and trees.
"""

import random

import pytest

from circuit import Circuit
from hash_utils import setup
from merkle_tree import CommitmentStore
from zk_merkle import allocate_params, allocate_proof, generate_constraints


@pytest.fixture(scope="session")
def params():
    return setup(random.Random(0))


@pytest.fixture(scope="session")
def other_params():
    """An independently generated parameter set."""
    return setup(random.Random(1))


@pytest.fixture(scope="session")
def int_records():
    return list(range(16))


@pytest.fixture(scope="session")
def int_store(params, int_records):
    return CommitmentStore(params, int_records)


@pytest.fixture(scope="session")
def byte_records():
    return [bytes([i]) * 40 for i in range(6)]


@pytest.fixture(scope="session")
def byte_store(params, byte_records):
    return CommitmentStore(params, byte_records)


@pytest.fixture(scope="session")
def membership_circuit():
    """
    Factory: build the full membership circuit for (params, proof) and return
    the Circuit.
    """
    def build(params, proof):
        circuit = Circuit()
        params_var = allocate_params(circuit, params)
        proof_var = allocate_proof(circuit, proof)
        generate_constraints(circuit, params_var, proof_var)
        return circuit

    return build
