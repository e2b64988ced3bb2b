from __future__ import annotations

import hashlib

import pytest
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa
from cryptography.hazmat.primitives.asymmetric.utils import (Prehashed,
                                                             decode_dss_signature)

from zkid_sdk.crypto.signatures import (AlgorithmHint, CryptographyVerifier,
                                        SignatureVerifier,
                                        is_supported_algorithm)
from zkid_sdk.types.registry import ECPublicKey, RSAPublicKey

DIGEST = hashlib.sha256(b"LDS security object").digest()


@pytest.fixture(scope="module")
def ec_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="module")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def _ec_public(key) -> ECPublicKey:
    nums = key.public_key().public_numbers()
    return ECPublicKey(curve="prime256v1", public_key_x=hex(nums.x), public_key_y=hex(nums.y), key_size=256)


def _rsa_public(key) -> RSAPublicKey:
    nums = key.public_key().public_numbers()
    return RSAPublicKey(modulus=hex(nums.n), exponent=nums.e, key_size=2048)


def test_verifier_satisfies_protocol():
    assert isinstance(CryptographyVerifier(), SignatureVerifier)


def test_ecdsa_der_and_raw_signatures(ec_key):
    der = ec_key.sign(DIGEST, ec.ECDSA(Prehashed(hashes.SHA256())))
    r, s = decode_dss_signature(der)
    raw = r.to_bytes(32, "big") + s.to_bytes(32, "big")
    verifier = CryptographyVerifier()

    assert verifier.verify(DIGEST, der, _ec_public(ec_key), "ECDSA:SHA-256:P-256")
    assert verifier.verify(DIGEST, raw, _ec_public(ec_key), {"scheme": "ECDSA", "hash_algorithm": "SHA-256", "curve": "secp256r1"})
    assert not verifier.verify(hashlib.sha256(b"other").digest(), der, _ec_public(ec_key), "ECDSA:SHA-256:P-256")


@pytest.mark.parametrize("scheme", ["RSA", "RSA-PSS"])
def test_rsa_signatures(rsa_key, scheme):
    if scheme == "RSA":
        pad = padding.PKCS1v15()
    else:
        pad = padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=32)
    sig = rsa_key.sign(DIGEST, pad, Prehashed(hashes.SHA256()))
    verifier = CryptographyVerifier()

    assert verifier.verify(DIGEST, sig, _rsa_public(rsa_key), f"{scheme}:SHA-256")
    assert not verifier.verify(DIGEST, sig[:-1] + bytes([sig[-1] ^ 1]), _rsa_public(rsa_key), f"{scheme}:SHA-256")


def test_key_type_must_match_scheme(ec_key, rsa_key):
    sig = rsa_key.sign(DIGEST, padding.PKCS1v15(), Prehashed(hashes.SHA256()))
    assert not CryptographyVerifier().verify(DIGEST, sig, _ec_public(ec_key), "RSA:SHA-256")


def test_unsupported_algorithms_are_rejected(ec_key):
    der = ec_key.sign(DIGEST, ec.ECDSA(Prehashed(hashes.SHA256())))
    assert not CryptographyVerifier().verify(DIGEST, der, _ec_public(ec_key), "ECDSA:MD5:P-256")
    assert not is_supported_algorithm("ECDSA:SHA-256:secp256k1")
    assert not is_supported_algorithm("RSA:SHA-256:P-256")
    assert not is_supported_algorithm("garbage")
    assert is_supported_algorithm("ECDSA:SHA-512:brainpoolP512r1")
    assert is_supported_algorithm(AlgorithmHint("RSA-PSS", "SHA-384"))
