# hash_gadgets.py
"""
Circuit versions of the keyed hashes in hash_utils.py.

The Poseidon constraints themselves come from PySNARK's poseidon_hash; this
module only feeds it the same keyed chain the native side uses. For the same
inputs the output's value equals the native digest. Chains whose inputs are
all constants fold to plain ints and add nothing to the circuit.
"""

from dataclasses import dataclass
from typing import List, Sequence

from circuit import AllocationMode, AllocVar, Circuit, Value
from hash_utils import CHUNK_SIZE, HashParameters, KeyedHashParameters, keyed_absorb


@dataclass
class KeyedHashParametersVar(AllocVar):
    key: Value

    @classmethod
    def new_variable(cls, circuit: Circuit, f, mode: AllocationMode) -> "KeyedHashParametersVar":
        params: KeyedHashParameters = f() if callable(f) else f
        return cls(key=circuit.allocate(params.key, mode))


@dataclass
class HashParametersVar(AllocVar):
    leaf_params: KeyedHashParametersVar
    node_params: KeyedHashParametersVar

    @classmethod
    def new_variable(cls, circuit: Circuit, f, mode: AllocationMode) -> "HashParametersVar":
        params: HashParameters = f() if callable(f) else f
        with circuit.namespace("hash_params"):
            leaf_params = KeyedHashParametersVar.new_variable(circuit, params.leaf_params, mode)
            node_params = KeyedHashParametersVar.new_variable(circuit, params.node_params, mode)
        return cls(leaf_params=leaf_params, node_params=node_params)


def bytes_to_field_elements_gadget(byte_vars: Sequence[Value]) -> List[Value]:
    """
    Mirror of hash_utils.bytes_to_field_elements.

    The byte count is a property of the circuit's shape, so the length
    prefix is a constant. Packing is linear and adds no constraints.
    """
    elements: List[Value] = [len(byte_vars)]
    for i in range(0, len(byte_vars), CHUNK_SIZE):
        chunk = byte_vars[i:i + CHUNK_SIZE]
        packed = chunk[0]
        for j, byte in enumerate(chunk[1:], start=1):
            packed = packed + byte * (1 << (8 * j))
        elements.append(packed)
    return elements


def leaf_hash_gadget(params: HashParametersVar, byte_vars: Sequence[Value]) -> Value:
    return keyed_absorb(params.leaf_params.key, bytes_to_field_elements_gadget(byte_vars))


def node_hash_gadget(params: HashParametersVar, left: Value, right: Value) -> Value:
    return keyed_absorb(params.node_params.key, (left, right))
