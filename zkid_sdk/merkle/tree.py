"""
zkid_sdk.merkle.tree
====================

Fixed-height binary Merkle trees over BN254 field elements.

The two registries (certificates, height 16; circuits, height 12) publish the
root of a tree built as follows:

- leaves are field elements (already hashes), **sorted ascending** before
  insertion; the sort is stable and part of the canonical construction,
- unused leaf slots hold the zero element,
- internal nodes are `poseidon2(left, right)`,
- the tree always has exactly `height` levels above the leaves.

Empty subtrees are not materialised: the hash of an all-zero subtree of each
height is computed once per tree, so a height-16 tree with a few hundred leaves is
built in O(n * height) hashes.

API
---
    MerkleTree(height, leaves, zero=0)
        .root, .leaves, .index_of(leaf), .proof(index) -> MerkleProof
    MerkleProof(leaf, index, path).verify(root) -> bool
    verify_proof(root, leaf, index, path) -> bool
    certificate_tree(leaves), circuit_tree(leaves)

Notes
-----
- `index` is interpreted little-endian by bit position (LSB decides whether
  the current node is a *right* child (`index & 1 == 1`) or *left* child).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from ..constants import CERTIFICATE_REGISTRY_HEIGHT, CIRCUIT_REGISTRY_HEIGHT
from ..crypto.poseidon import poseidon2, to_field

log = logging.getLogger(__name__)


def _zero_hashes(height: int, zero: int) -> Tuple[int, ...]:
    """zeros[h] is the root of an all-zero subtree of height h."""
    out = [zero]
    for _ in range(height):
        out.append(poseidon2(out[-1], out[-1]))
    return tuple(out)


@dataclass(frozen=True)
class MerkleProof:
    leaf: int
    index: int
    path: Tuple[int, ...]

    def verify(self, root: int) -> bool:
        return verify_proof(root, self.leaf, self.index, self.path)


def compute_root(leaf: int, index: int, path: Sequence[int]) -> int:
    node = to_field(leaf)
    idx = int(index)
    for sib in path:
        if (idx & 1) == 1:
            # current node is right child -> parent = H(sibling, node)
            node = poseidon2(to_field(sib), node)
        else:
            node = poseidon2(node, to_field(sib))
        idx >>= 1
    return node


def verify_proof(root: int, leaf: int, index: int, path: Sequence[int]) -> bool:
    """Recompute the root from a leaf, its index and sibling path."""
    if index < 0 or index >= (1 << len(path)):
        return False
    return compute_root(leaf, index, path) == to_field(root)


class MerkleTree:
    def __init__(self, height: int, leaves: Iterable[int], zero: int = 0) -> None:
        if height < 1:
            raise ValueError("height must be >= 1")
        sorted_leaves = sorted(to_field(v) for v in leaves)
        if len(sorted_leaves) > (1 << height):
            raise ValueError(
                f"{len(sorted_leaves)} leaves do not fit in a tree of height {height}"
            )
        self.height = height
        self.zero = to_field(zero)
        self._leaves: Tuple[int, ...] = tuple(sorted_leaves)
        self._zeros = _zero_hashes(height, self.zero)
        self._levels = self._build()
        log.debug("built merkle tree height=%d leaves=%d", height, len(self._leaves))

    def _build(self) -> List[List[int]]:
        levels: List[List[int]] = [list(self._leaves)]
        for h in range(self.height):
            cur = levels[-1]
            nxt: List[int] = []
            for i in range(0, len(cur), 2):
                left = cur[i]
                right = cur[i + 1] if i + 1 < len(cur) else self._zeros[h]
                nxt.append(poseidon2(left, right))
            levels.append(nxt)
        return levels

    @property
    def leaves(self) -> Tuple[int, ...]:
        return self._leaves

    @property
    def root(self) -> int:
        top = self._levels[-1]
        return top[0] if top else self._zeros[self.height]

    def index_of(self, leaf: int) -> int:
        try:
            return self._leaves.index(to_field(leaf))
        except ValueError:
            raise KeyError(f"leaf {leaf:#x} is not in the tree") from None

    def proof(self, index: int) -> MerkleProof:
        if index < 0 or index >= len(self._leaves):
            raise IndexError(f"leaf index {index} out of range (have {len(self._leaves)})")
        path: List[int] = []
        idx = index
        for h in range(self.height):
            level = self._levels[h]
            sib = idx ^ 1
            path.append(level[sib] if sib < len(level) else self._zeros[h])
            idx >>= 1
        return MerkleProof(self._leaves[index], index, tuple(path))

    def proof_for(self, leaf: int) -> MerkleProof:
        return self.proof(self.index_of(leaf))


def certificate_tree(leaves: Iterable[int]) -> MerkleTree:
    return MerkleTree(CERTIFICATE_REGISTRY_HEIGHT, leaves)


def circuit_tree(leaves: Iterable[int]) -> MerkleTree:
    return MerkleTree(CIRCUIT_REGISTRY_HEIGHT, leaves)


__all__ = [
    "MerkleTree",
    "MerkleProof",
    "compute_root",
    "verify_proof",
    "certificate_tree",
    "circuit_tree",
]
