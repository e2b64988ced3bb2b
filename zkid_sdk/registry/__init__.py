"""
On-chain registry access.

- RegistryRpcClient: root validity, root details, history, registry address
- RegistryClient: the above plus validated certificate / circuit snapshots
"""

from .client import RegistryClient
from .leaves import certificate_leaf_hash, vkey_hash
from .rpc import RegistryRpcClient, decode_root_details

__all__ = [
    "RegistryClient",
    "RegistryRpcClient",
    "decode_root_details",
    "certificate_leaf_hash",
    "vkey_hash",
]
