"""
Utility helpers for the verifier SDK.

Re-exports:
- bytes: hex helpers and big-endian field packing
- hash: SHA-256 / Keccak-256 convenience wrappers
- retry: exponential backoff retry utilities
"""

from .bytes import (be_bytes, ensure_bytes, from_hex, normalise_hash,
                    pack_be_bytes_into_fields, strip_0x, to_hex, to_int)
from .hash import digest_to_field, keccak256, sha256, sha256_to_field
from .retry import aretry_call, backoff_delay, retry_call

__all__ = [
    # bytes
    "to_hex",
    "from_hex",
    "strip_0x",
    "ensure_bytes",
    "to_int",
    "be_bytes",
    "normalise_hash",
    "pack_be_bytes_into_fields",
    # hash
    "sha256",
    "keccak256",
    "digest_to_field",
    "sha256_to_field",
    # retry
    "backoff_delay",
    "retry_call",
    "aretry_call",
]
