# hash_utils.py
"""
Keyed hashing for the vector commitment.

Two keyed hash functions are used:
1. LEAF HASH: applied to the canonical bytes of a record
2. NODE HASH: 2-to-1 compression of two child digests

Both are chains of PySNARK's Poseidon (poseidon_hash). The same function is
evaluated on plain field elements when building and verifying trees, and on
LinComb values inside the circuit (hash_gadgets.py), so native digests and
in-circuit digests cannot drift apart.

Only the keying lives here: each chain starts from a random public key,
one per hash function, drawn once by setup(). Parameters are public.
"""

import hashlib
import secrets
from dataclasses import dataclass
from typing import Iterable, List

from pysnark.poseidon_hash import poseidon_hash

# BN254 field modulus (used by PySNARK and most backends)
FIELD_MODULUS = 21888242871839275222246405745257275088548364400416034343698204186575808495617

# Bytes packed into one field element; 31 * 8 < 254 so packing never wraps
CHUNK_SIZE = 31

# Domain tags mixed into key derivation
LEAF_DOMAIN = 1
NODE_DOMAIN = 2

# Digest used for padding slots. It is placed in the tree as-is, never hashed.
EMPTY_LEAF_DIGEST = 0

Digest = int


def field(val: int) -> int:
    """
    Convert a Python int to a field element by reducing modulo FIELD_MODULUS.
    """
    return val % FIELD_MODULUS


def sha256_to_field(*values: int) -> int:
    """
    Hash integers using SHA-256 and map into field.

    Deterministic: same inputs always produce same output across runs.

    Args:
        *values: non-negative integers below 2**256

    Returns:
        integer in [0, FIELD_MODULUS)
    """
    h = hashlib.sha256()
    for v in values:
        # Fixed-width (32 bytes) encoding ensures deterministic hashing
        h.update(v.to_bytes(32, byteorder="big", signed=False))
    digest = h.digest()
    as_int = int.from_bytes(digest, byteorder="big")
    return as_int % FIELD_MODULUS


def to_hex(digest: Digest) -> str:
    """Render a digest as 0x-prefixed, 32-byte big-endian hex."""
    return "0x" + digest.to_bytes(32, byteorder="big").hex()


@dataclass(frozen=True)
class KeyedHashParameters:
    """
    One keyed hash function: the field element the Poseidon chain starts from.
    """
    key: int

    @classmethod
    def generate(cls, rng, domain: int) -> "KeyedHashParameters":
        """
        Draw a fresh key from 256 random bits, separated by `domain`.
        """
        return cls(key=sha256_to_field(rng.getrandbits(256), domain))


@dataclass(frozen=True)
class HashParameters:
    """
    Parameters for the two hash functions used by the tree.

    - leaf_params: hash applied to a serialized record
    - node_params: compression applied to (left, right) sibling pairs
    """
    leaf_params: KeyedHashParameters
    node_params: KeyedHashParameters


def setup(rng=None) -> HashParameters:
    """
    Generate independent leaf and node hash parameters.

    Args:
        rng: randomness source exposing getrandbits(k); defaults to the
             operating system CSPRNG. Errors raised by the source propagate.

    Returns:
        HashParameters shared by every later build / open / verify call
    """
    if rng is None:
        rng = secrets.SystemRandom()
    leaf_params = KeyedHashParameters.generate(rng, LEAF_DOMAIN)
    node_params = KeyedHashParameters.generate(rng, NODE_DOMAIN)
    return HashParameters(leaf_params=leaf_params, node_params=node_params)


def poseidon2(left, right):
    """
    Two-to-one Poseidon from PySNARK.

    Works on plain ints and on LinComb values alike; with LinComb inputs every
    call adds the Poseidon constraints to the running circuit.
    """
    return poseidon_hash([left, right])[0]


def keyed_absorb(key, elements: Iterable):
    """
    Chain elements into a Poseidon state seeded with `key`:
    h = key; h = poseidon2(h, m) for each m.

    Plain-int intermediate states are reduced so constant chains stay small.
    """
    h = key
    for m in elements:
        h = poseidon2(h, m)
        if isinstance(h, int):
            h %= FIELD_MODULUS
    return h


def bytes_to_field_elements(data: bytes) -> List[int]:
    """
    Length prefix followed by the data cut into little-endian CHUNK_SIZE chunks.

    The length prefix keeps b"\\x01" and b"\\x01\\x00" apart.
    """
    elements = [len(data)]
    for i in range(0, len(data), CHUNK_SIZE):
        elements.append(int.from_bytes(data[i:i + CHUNK_SIZE], byteorder="little"))
    return elements


def leaf_hash(params: HashParameters, data: bytes) -> Digest:
    """
    Leaf digest of a record's canonical bytes.
    """
    return field(keyed_absorb(params.leaf_params.key, bytes_to_field_elements(data)))


def node_hash(params: HashParameters, left: Digest, right: Digest) -> Digest:
    """
    Merkle parent hash for arity=2.

    Args:
        left: left child digest
        right: right child digest

    Returns:
        parent digest
    """
    return field(keyed_absorb(params.node_params.key, (left, right)))
