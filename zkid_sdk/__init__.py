"""
zkid SDK for Python.
Convenience exports for verifying identity-document proof bundles.
"""

from .version import __version__  # noqa: F401

# Core config & errors
from .config import RegistryConfig, VerifierConfig  # noqa: F401
from .errors import (  # noqa: F401
    ZkidError,
    RpcError,
    AbiError,
    RegistryError,
    FetchError,
    ValidationFailedError,
    CommitmentError,
    ProofFormatError,
    SessionError,
)

# Types
from .types.proofs import (  # noqa: F401
    ClaimKind,
    NullifierKind,
    ProofResult,
)
from .types.query import Query, QueryResult  # noqa: F401
from .types.registry import RootDetails  # noqa: F401

# Commitments & trees
from .commitments.codec import parameter_commitment  # noqa: F401
from .merkle.tree import MerkleTree, certificate_tree, circuit_tree  # noqa: F401

# Registry
from .registry.rpc import RegistryRpcClient  # noqa: F401
from .registry.client import RegistryClient  # noqa: F401

# Verification
from .verifier.chain import ProofChainValidator, VerificationVerdict  # noqa: F401
from .verifier.session import Session  # noqa: F401

__all__ = [
    "__version__",
    # Core
    "RegistryConfig", "VerifierConfig",
    "ZkidError", "RpcError", "AbiError", "RegistryError", "FetchError",
    "ValidationFailedError", "CommitmentError", "ProofFormatError", "SessionError",
    # Types
    "ClaimKind", "NullifierKind", "ProofResult", "Query", "QueryResult", "RootDetails",
    # Commitments & trees
    "parameter_commitment", "MerkleTree", "certificate_tree", "circuit_tree",
    # Registry
    "RegistryRpcClient", "RegistryClient",
    # Verification
    "ProofChainValidator", "VerificationVerdict", "Session",
]
