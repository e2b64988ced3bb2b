"""
Signature verification capability.

The verifier never does curve or modular arithmetic itself. It decides which
(scheme, hash, curve) combinations are acceptable and hands the actual check
to a `SignatureVerifier`. The default implementation delegates to the
`cryptography` package.

Accepted algorithms
-------------------
- RSA PKCS#1 v1.5 and RSA-PSS with SHA-1/224/256/384/512
- ECDSA over NIST P-256/P-384/P-521 and brainpoolP256r1/P384r1/P512r1

Signatures for ECDSA may be DER or raw `r || s`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Protocol, Union, runtime_checkable

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa
from cryptography.hazmat.primitives.asymmetric.utils import (
    Prehashed, encode_dss_signature)

from ..types.registry import ECPublicKey, PublicKey, RSAPublicKey
from ..utils.bytes import BytesLike, to_int

log = logging.getLogger(__name__)

_HASHES: Dict[str, type] = {
    "SHA-1": hashes.SHA1,
    "SHA-224": hashes.SHA224,
    "SHA-256": hashes.SHA256,
    "SHA-384": hashes.SHA384,
    "SHA-512": hashes.SHA512,
}

_CURVES: Dict[str, type] = {
    "P-256": ec.SECP256R1,
    "P-384": ec.SECP384R1,
    "P-521": ec.SECP521R1,
    "brainpoolP256r1": ec.BrainpoolP256R1,
    "brainpoolP384r1": ec.BrainpoolP384R1,
    "brainpoolP512r1": ec.BrainpoolP512R1,
}

# Common aliases found in certificate dumps
_CURVE_ALIASES = {
    "secp256r1": "P-256",
    "prime256v1": "P-256",
    "secp384r1": "P-384",
    "secp521r1": "P-521",
}

_SCHEMES = ("RSA", "RSA-PSS", "ECDSA")


@dataclass(frozen=True)
class AlgorithmHint:
    scheme: str  # "RSA" (PKCS#1 v1.5) | "RSA-PSS" | "ECDSA"
    hash_algorithm: str  # "SHA-256", ...
    curve: Optional[str] = None

    @classmethod
    def parse(cls, value: Union["AlgorithmHint", Mapping[str, str], str]) -> "AlgorithmHint":
        """
        Accept an AlgorithmHint, a mapping with scheme/hash_algorithm/curve keys,
        or a string such as "RSA-PSS:SHA-256" / "ECDSA:SHA-384:brainpoolP384r1".
        """
        if isinstance(value, AlgorithmHint):
            return value
        if isinstance(value, str):
            parts = value.split(":")
            if len(parts) < 2:
                raise ValueError(f"bad algorithm hint: {value!r}")
            return cls(parts[0], parts[1], parts[2] if len(parts) > 2 else None)
        return cls(
            str(value.get("scheme") or value.get("signature_algorithm") or ""),
            str(value.get("hash_algorithm") or ""),
            value.get("curve"),
        )


def normalise_curve(name: Optional[str]) -> Optional[str]:
    if name is None:
        return None
    return _CURVE_ALIASES.get(name.lower(), name)


def is_supported_algorithm(hint: Union[AlgorithmHint, Mapping[str, str], str]) -> bool:
    """True when the (scheme, hash, curve) triple is one the registry accepts."""
    try:
        h = AlgorithmHint.parse(hint)
    except ValueError:
        return False
    if h.scheme not in _SCHEMES or h.hash_algorithm not in _HASHES:
        return False
    if h.scheme == "ECDSA":
        return normalise_curve(h.curve) in _CURVES
    return h.curve is None


@runtime_checkable
class SignatureVerifier(Protocol):
    def verify(
        self,
        digest: bytes,
        signature: bytes,
        public_key: PublicKey,
        algorithm: Union[AlgorithmHint, Mapping[str, str], str],
    ) -> bool: ...


class CryptographyVerifier:
    """`SignatureVerifier` backed by the `cryptography` package."""

    def verify(
        self,
        digest: BytesLike,
        signature: BytesLike,
        public_key: PublicKey,
        algorithm: Union[AlgorithmHint, Mapping[str, str], str],
    ) -> bool:
        hint = AlgorithmHint.parse(algorithm)
        if not is_supported_algorithm(hint):
            log.warning("rejecting unsupported signature algorithm %s", hint)
            return False
        hash_alg = _HASHES[hint.hash_algorithm]()
        prehashed = Prehashed(hash_alg)
        sig = bytes(signature)
        try:
            if hint.scheme in ("RSA", "RSA-PSS"):
                if not isinstance(public_key, RSAPublicKey):
                    return False
                key = rsa.RSAPublicNumbers(public_key.exponent, to_int(public_key.modulus)).public_key()
                if hint.scheme == "RSA":
                    pad = padding.PKCS1v15()
                else:
                    pad = padding.PSS(mgf=padding.MGF1(hash_alg), salt_length=padding.PSS.AUTO)
                key.verify(sig, bytes(digest), pad, prehashed)
                return True

            if not isinstance(public_key, ECPublicKey):
                return False
            curve = _CURVES[normalise_curve(hint.curve) or ""]()
            key = ec.EllipticCurvePublicNumbers(
                to_int(public_key.public_key_x), to_int(public_key.public_key_y), curve
            ).public_key()
            coord = (curve.key_size + 7) // 8
            if len(sig) == 2 * coord:
                sig = encode_dss_signature(
                    int.from_bytes(sig[:coord], "big"), int.from_bytes(sig[coord:], "big")
                )
            key.verify(sig, bytes(digest), ec.ECDSA(prehashed))
            return True
        except InvalidSignature:
            return False
        except ValueError as exc:
            # malformed key numbers or signature encoding
            log.debug("signature verification input rejected: %s", exc)
            return False


__all__ = [
    "AlgorithmHint",
    "SignatureVerifier",
    "CryptographyVerifier",
    "is_supported_algorithm",
    "normalise_curve",
]
