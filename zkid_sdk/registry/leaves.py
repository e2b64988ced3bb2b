"""
Registry leaf hashing.

Certificate leaf (v0)
---------------------
    poseidon([
        *tags_flags,                       # 3 fields, 253 bits each
        pack([type, c0, c1, c2]),          # cert type + alpha-3 country bytes
        *pack31(public_key_bytes),         # RSA: modulus, EC: x || y
    ])

A tag is a two-letter code; tag "XY" sets bit (X - 'A') * 26 + (Y - 'A') of
a 759-bit flag word split into three 253-bit limbs (limb 0 holds bits 0..252).

Circuit leaf
------------
The vkey hash: poseidon over the verification key split into 32-byte
big-endian field elements.
"""

from __future__ import annotations

import base64
from typing import Iterable, List, Optional, Sequence, Union

from ..constants import CERT_TYPE_CSCA, CERTIFICATE_TAG_BITS
from ..crypto.poseidon import poseidon_hash
from ..types.registry import ECPublicKey, PackagedCertificate, PublicKey, RSAPublicKey
from ..utils.bytes import BytesLike, pack_be_bytes_into_fields, split_words, to_int

TAG_LIMBS = 3


def tags_to_flags(tags: Optional[Iterable[str]]) -> List[int]:
    bits = 0
    for tag in tags or ():
        t = tag.strip().upper()
        if len(t) != 2 or not ("A" <= t[0] <= "Z" and "A" <= t[1] <= "Z"):
            raise ValueError(f"certificate tag must be two letters A-Z, got {tag!r}")
        bits |= 1 << ((ord(t[0]) - ord("A")) * 26 + (ord(t[1]) - ord("A")))
    mask = (1 << CERTIFICATE_TAG_BITS) - 1
    return [(bits >> (CERTIFICATE_TAG_BITS * i)) & mask for i in range(TAG_LIMBS)]


def _int_bytes(value: int, size: Optional[int]) -> bytes:
    n = size if size else max(1, (value.bit_length() + 7) // 8)
    return value.to_bytes(n, "big")


def public_key_to_bytes(key: PublicKey) -> bytes:
    if isinstance(key, RSAPublicKey):
        size = key.key_size // 8 if key.key_size else None
        return _int_bytes(to_int(key.modulus), size)
    if isinstance(key, ECPublicKey):
        x, y = to_int(key.public_key_x), to_int(key.public_key_y)
        if key.key_size:
            size = (key.key_size + 7) // 8
        else:
            size = max(1, (max(x.bit_length(), y.bit_length()) + 7) // 8)
        return _int_bytes(x, size) + _int_bytes(y, size)
    raise TypeError(f"unsupported public key type {type(key)!r}")


def certificate_leaf_hash(cert: PackagedCertificate) -> int:
    country = cert.country.encode("ascii")
    cert_type = cert.type if cert.type is not None else CERT_TYPE_CSCA
    type_country = int.from_bytes(bytes([cert_type]) + country, "big")
    fields = [
        *tags_to_flags(cert.tags),
        type_country,
        *pack_be_bytes_into_fields(public_key_to_bytes(cert.public_key), 31),
    ]
    return poseidon_hash(fields)


def certificate_leaves(certs: Sequence[PackagedCertificate]) -> List[int]:
    return [certificate_leaf_hash(c) for c in certs]


def vkey_fields(vkey: Union[str, BytesLike]) -> List[int]:
    """Verification key (base64 text or raw bytes) as 32-byte field elements."""
    raw = base64.b64decode(vkey, validate=True) if isinstance(vkey, str) else bytes(vkey)
    if len(raw) % 32 != 0:
        raise ValueError(f"verification key length {len(raw)} is not a multiple of 32")
    return [int.from_bytes(w, "big") for w in split_words(raw, 32)]


def vkey_hash(vkey: Union[str, BytesLike]) -> int:
    return poseidon_hash(vkey_fields(vkey))


__all__ = [
    "TAG_LIMBS",
    "tags_to_flags",
    "public_key_to_bytes",
    "certificate_leaf_hash",
    "certificate_leaves",
    "vkey_fields",
    "vkey_hash",
]
