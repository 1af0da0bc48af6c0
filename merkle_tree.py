# merkle_tree.py
"""
Binary Merkle tree over records, used as a vector commitment.

This is the "off-chain" / non-ZK part: we build the tree, hand out openings
and check them in plain Python. zk_merkle.py replays exactly the same
verification as circuit constraints.
"""

import logging
from dataclasses import dataclass
from typing import Any, Generic, List, Sequence, Tuple, TypeVar

from hash_utils import (
    EMPTY_LEAF_DIGEST,
    FIELD_MODULUS,
    Digest,
    HashParameters,
    leaf_hash,
    node_hash,
)
from records import serialize

logger = logging.getLogger(__name__)

Record = TypeVar("Record")


class MalformedPathError(ValueError):
    """An authentication path that cannot belong to any tree."""


class PathLengthError(ValueError):
    """An authentication path whose length differs from the tree height."""


def next_power_of_two(n: int) -> int:
    return 1 << (n - 1).bit_length() if n > 1 else 1


@dataclass(frozen=True)
class AuthenticationPath:
    """
    Sibling digests from the leaf level up to just below the root.

    Bit k of leaf_index tells which side our node is on at level k:
    0 = LEFT child (hash(current, sibling)), 1 = RIGHT child
    (hash(sibling, current)).
    """
    leaf_index: int
    siblings: Tuple[Digest, ...]

    def __len__(self) -> int:
        return len(self.siblings)

    def positions(self) -> List[int]:
        return [(self.leaf_index >> level) & 1 for level in range(len(self.siblings))]


@dataclass(frozen=True)
class OpeningProof(Generic[Record]):
    """
    Everything a verifier needs to check that `record` sits under `root`.
    """
    root: Digest
    record: Record
    path: AuthenticationPath

    def verify(self, params: HashParameters) -> bool:
        return verify_opening(params, self.root, self.record, self.path)


class CommitmentStore(Generic[Record]):
    """
    Binary Merkle tree (arity = 2) over an ordered list of records.

    - levels[0] = leaf digests, padded with EMPTY_LEAF_DIGEST to a power of two
    - levels[1] = parents of leaves
    - ...
    - levels[-1][0] = root (the commitment)

    The store is built once and never modified afterwards, so it can be read
    from several threads at once.
    """

    def __init__(self, params: HashParameters, records: Sequence[Record]) -> None:
        if len(records) == 0:
            raise ValueError("Tree must have at least one record")
        self.params = params
        self.records: Tuple[Record, ...] = tuple(records)
        self.levels: Tuple[Tuple[Digest, ...], ...] = ()
        self._build_tree()
        logger.debug(
            "built commitment store: %d records, %d leaves, height %d",
            len(self.records), self.leaf_count, self.height,
        )

    def _build_tree(self) -> None:
        """
        Build the full tree bottom-up.
        """
        leaves = [leaf_hash(self.params, serialize(r)) for r in self.records]
        leaves.extend([EMPTY_LEAF_DIGEST] * (next_power_of_two(len(leaves)) - len(leaves)))

        level = leaves
        levels = [tuple(level)]
        while len(level) > 1:
            level = [
                node_hash(self.params, level[i], level[i + 1])
                for i in range(0, len(level), 2)
            ]
            levels.append(tuple(level))
        self.levels = tuple(levels)

    def __len__(self) -> int:
        return len(self.records)

    def __getitem__(self, index: int) -> Record:
        self._check_index(index)
        return self.records[index]

    @property
    def leaf_count(self) -> int:
        return len(self.levels[0])

    @property
    def height(self) -> int:
        return len(self.levels) - 1

    def commitment(self) -> Digest:
        """
        Return the root digest of the tree.
        """
        return self.levels[-1][0]

    def _check_index(self, index: int) -> None:
        if index < 0 or index >= len(self.records):
            raise IndexError(
                f"Record index {index} out of range for {len(self.records)} records"
            )

    def opening(self, index: int) -> AuthenticationPath:
        """
        Compute the authentication path for the record at `index`.

        Example for a tree with leaves [A, B, C, D] and opening(2):
                    root
                   /    \\
                 N1       N2
                /  \\     /  \\
               A    B   C    D

        - siblings[0] = D   (C is LEFT child of N2, bit 0 of 2 is 0)
        - siblings[1] = N1  (N2 is RIGHT child of root, bit 1 of 2 is 1)
        """
        self._check_index(index)

        siblings: List[Digest] = []
        idx = index
        for level in self.levels[:-1]:
            # Sibling index: flip the last bit (idx ^ 1)
            siblings.append(level[idx ^ 1])
            idx //= 2

        return AuthenticationPath(leaf_index=index, siblings=tuple(siblings))

    def proof(self, index: int) -> OpeningProof[Record]:
        path = self.opening(index)
        return OpeningProof(root=self.commitment(), record=self.records[index], path=path)

    def verify(self, record: Any, path: AuthenticationPath) -> bool:
        """
        Check an opening against this store's parameters and root.

        Raises:
            PathLengthError: the path was not produced for a tree of this height
        """
        if len(path) != self.height:
            raise PathLengthError(
                f"path has {len(path)} siblings, tree height is {self.height}"
            )
        return verify_opening(self.params, self.commitment(), record, path)


def verify_opening(
    params: HashParameters,
    root: Digest,
    record: Any,
    path: AuthenticationPath,
) -> bool:
    """
    Recompute the root from `record` and `path` and compare it to `root`.

    A wrong record, sibling or root gives False. Inputs that cannot describe
    any tree raise instead.

    Raises:
        MalformedPathError: leaf_index does not fit the path length, or a
                            digest is not a field element
        SerializationError: the record has no canonical byte form
    """
    height = len(path.siblings)
    if path.leaf_index < 0 or path.leaf_index >> height:
        raise MalformedPathError(
            f"leaf index {path.leaf_index} does not fit a path of length {height}"
        )
    for digest in (root, *path.siblings):
        if not isinstance(digest, int) or not 0 <= digest < FIELD_MODULUS:
            raise MalformedPathError(f"digest {digest!r} is not a field element")

    current = leaf_hash(params, serialize(record))
    for sibling, position_bit in zip(path.siblings, path.positions()):
        if position_bit == 0:
            current = node_hash(params, current, sibling)
        else:
            current = node_hash(params, sibling, current)

    return current == root
