"""
Proof artifacts as the verifier sees them.

- parser: proof names, canonical order, public-input layouts
- disclosure: the document fields revealed by a disclose proof
"""

from .disclosure import DisclosedData
from .parser import (PROOF_ORDER, ProofName, PublicInputs, Stage,
                     canonical_sort, parse_proof_bytes, public_inputs_of)

__all__ = [
    "PROOF_ORDER",
    "Stage",
    "ProofName",
    "PublicInputs",
    "canonical_sort",
    "parse_proof_bytes",
    "public_inputs_of",
    "DisclosedData",
]
