"""
Canonical registry trees: the root depends on the leaf set only, and every
leaf has a membership proof against it.
"""
from __future__ import annotations

import pytest
from hypothesis import given, settings, strategies as st

from zkid_sdk.crypto.poseidon import FIELD_MODULUS, poseidon2
from zkid_sdk.merkle import MerkleTree, circuit_tree, compute_root, verify_proof

HEIGHT = 4

leaf_sets = st.lists(st.integers(min_value=1, max_value=FIELD_MODULUS - 2), min_size=1, max_size=1 << HEIGHT, unique=True)


@settings(max_examples=20, deadline=None)
@given(leaf_sets, st.data())
def test_root_ignores_insertion_order(leaves, data):
    shuffled = data.draw(st.permutations(leaves))
    assert MerkleTree(HEIGHT, leaves).root == MerkleTree(HEIGHT, shuffled).root


@settings(max_examples=20, deadline=None)
@given(leaf_sets)
def test_perturbing_one_leaf_changes_root(leaves):
    bumped = leaves[0] + 1
    if bumped in leaves:
        # leaves stay below p - 1
        bumped = FIELD_MODULUS - 1
    changed = [bumped] + leaves[1:]
    assert MerkleTree(HEIGHT, leaves).root != MerkleTree(HEIGHT, changed).root


@settings(max_examples=10, deadline=None)
@given(leaf_sets)
def test_every_leaf_proves_membership(leaves):
    tree = MerkleTree(HEIGHT, leaves)
    for leaf in leaves:
        proof = tree.proof_for(leaf)
        assert len(proof.path) == HEIGHT
        assert proof.verify(tree.root)
        assert not verify_proof(tree.root, leaf + 1, proof.index, proof.path)


def test_leaves_are_sorted_and_padded_with_zero():
    tree = MerkleTree(2, [30, 10, 20])
    assert tree.leaves == (10, 20, 30)
    expected = poseidon2(poseidon2(10, 20), poseidon2(30, 0))
    assert tree.root == expected


def test_empty_tree_root_is_zero_subtree_hash():
    empty = MerkleTree(2, [])
    assert empty.root == poseidon2(poseidon2(0, 0), poseidon2(0, 0))


def test_proof_index_bits_pick_the_side():
    tree = MerkleTree(2, [1, 2, 3, 4])
    proof = tree.proof(2)
    assert proof.path == (4, poseidon2(1, 2))
    assert compute_root(3, 2, proof.path) == tree.root
    # out-of-range indices never verify
    assert not verify_proof(tree.root, 3, 4, proof.path)


def test_capacity_is_enforced():
    with pytest.raises(ValueError):
        MerkleTree(1, [1, 2, 3])
    with pytest.raises(KeyError):
        MerkleTree(2, [1]).index_of(5)
    with pytest.raises(IndexError):
        MerkleTree(2, [1]).proof(1)


def test_circuit_tree_height():
    assert circuit_tree([5]).height == 12
