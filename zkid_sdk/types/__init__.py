"""
zkid_sdk.types
==============

Datatypes shared across the SDK:

- :mod:`zkid_sdk.types.abi`      call encoding and the `AbiReader` cursor
- :mod:`zkid_sdk.types.proofs`   proofs, claim kinds, committed inputs, nullifiers
- :mod:`zkid_sdk.types.query`    the relying party's query and the holder's result
- :mod:`zkid_sdk.types.registry` root details and packaged snapshot documents
"""

from .abi import AbiReader, encode_call, function_selector
from .proofs import (BoundData, ClaimKind, CommittedInput, Nullifier,
                     NullifierKind, ProofResult)
from .query import ClaimConstraint, Query, QueryResult
from .registry import (CircuitManifest, PackagedCertificate,
                       PackagedCertificatesFile, PackagedCircuit, RootDetails)

__all__ = [
    "AbiReader",
    "encode_call",
    "function_selector",
    "BoundData",
    "ClaimKind",
    "CommittedInput",
    "Nullifier",
    "NullifierKind",
    "ProofResult",
    "ClaimConstraint",
    "Query",
    "QueryResult",
    "CircuitManifest",
    "PackagedCertificate",
    "PackagedCertificatesFile",
    "PackagedCircuit",
    "RootDetails",
]
