from __future__ import annotations

import hashlib

from Crypto.Hash import keccak as _keccak

from .bytes import BytesLike, ensure_bytes, to_hex

# --- Keccak-256 (Ethereum-style) ----------------------------------------------
# CPython's hashlib exposes NIST SHA3 but not the original Keccak padding used
# for Solidity function selectors, so we take it from pycryptodome.


def keccak256(data: BytesLike) -> bytes:
    """Return Keccak-256 digest of *data* (bytes)."""
    h = _keccak.new(digest_bits=256)
    h.update(ensure_bytes(data))
    return h.digest()


def keccak256_hex(data: BytesLike, *, prefix: bool = True) -> str:
    """Return hex string of Keccak-256 digest (0x-prefixed by default)."""
    return to_hex(keccak256(data), prefix=prefix)


# --- SHA-256 ------------------------------------------------------------------


def sha256(data: BytesLike) -> bytes:
    return hashlib.sha256(ensure_bytes(data)).digest()


def sha256_hex(data: BytesLike, *, prefix: bool = True) -> str:
    return to_hex(sha256(data), prefix=prefix)


def digest_to_field(digest: BytesLike) -> int:
    """
    Fit a 32-byte digest into the 254-bit scalar field.

    The digest's first 31 bytes are read big-endian, i.e. the value is shifted
    right by one byte. Dropping the last byte (rather than masking the top
    bits) is what the circuits do, so it must be reproduced exactly.
    """
    d = bytes(digest)
    if len(d) != 32:
        raise ValueError(f"digest must be 32 bytes, got {len(d)}")
    return int.from_bytes(d[:31], "big")


def sha256_to_field(data: BytesLike) -> int:
    return digest_to_field(sha256(data))


__all__ = [
    "keccak256",
    "keccak256_hex",
    "sha256",
    "sha256_hex",
    "digest_to_field",
    "sha256_to_field",
]
