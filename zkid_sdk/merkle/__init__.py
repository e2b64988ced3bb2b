from .tree import (MerkleProof, MerkleTree, certificate_tree, circuit_tree,
                   compute_root, verify_proof)

__all__ = ["MerkleTree", "MerkleProof", "compute_root", "verify_proof", "certificate_tree", "circuit_tree"]
