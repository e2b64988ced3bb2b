"""
Cryptographic building blocks.

- poseidon: the field hash used by commitments and Merkle trees
- signatures: the signature verification capability (delegates to `cryptography`)
"""

from .poseidon import (DEFAULT_PARAMS, FIELD_MODULUS, PoseidonParams,
                       get_params, is_placeholder, load_params_json,
                       poseidon2, poseidon_hash, register_params)
from .signatures import (AlgorithmHint, CryptographyVerifier,
                         SignatureVerifier, is_supported_algorithm)

__all__ = [
    "DEFAULT_PARAMS",
    "FIELD_MODULUS",
    "PoseidonParams",
    "register_params",
    "get_params",
    "is_placeholder",
    "load_params_json",
    "poseidon_hash",
    "poseidon2",
    "AlgorithmHint",
    "SignatureVerifier",
    "CryptographyVerifier",
    "is_supported_algorithm",
]
