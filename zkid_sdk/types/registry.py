"""
Registry data types.

- RootDetails: one on-chain registry snapshot record (decoded from RPC).
- PackagedCertificate / PackagedCertificatesFile: the off-chain certificate
  snapshot served for a certificate-registry root.
- CircuitManifest / PackagedCircuit: the off-chain circuit snapshot served for
  a circuit-registry root.

The JSON documents are parsed with Pydantic so a snapshot with missing keys or
wrong shapes fails loudly (pydantic.ValidationError) before any Merkle
validation is attempted.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..utils.bytes import normalise_hash


@dataclass(frozen=True)
class RootDetails:
    """
    On-chain record for a registry root.

    `valid_to` is None while the root is current; it is set once a newer root
    supersedes it. `revoked` can flip independently.
    """

    index: int
    root: str
    valid_from: datetime
    valid_to: Optional[datetime]
    revoked: bool
    leaves: int
    cid: str
    is_latest: bool = False

    def is_valid_at(self, ts: datetime) -> bool:
        if self.revoked or ts < self.valid_from:
            return False
        return self.valid_to is None or ts < self.valid_to


# ----------------------------- certificates -----------------------------


class RSAPublicKey(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: Literal["RSA"] = "RSA"
    modulus: str
    exponent: int = 65537
    key_size: Optional[int] = None


class ECPublicKey(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: Literal["EC"] = "EC"
    curve: str
    public_key_x: str
    public_key_y: str
    key_size: Optional[int] = None


PublicKey = Annotated[Union[RSAPublicKey, ECPublicKey], Field(discriminator="type")]


class Validity(BaseModel):
    not_before: int
    not_after: int


class PackagedCertificate(BaseModel):
    """A CSCA entry of a packaged certificates file."""

    model_config = ConfigDict(extra="allow")

    country: str = Field(..., min_length=3, max_length=3)
    signature_algorithm: str
    hash_algorithm: str
    public_key: PublicKey
    validity: Validity
    subject_key_identifier: Optional[str] = None
    authority_key_identifier: Optional[str] = None
    tags: Optional[List[str]] = None
    type: Optional[int] = None


class PackagedCertificatesFile(BaseModel):
    model_config = ConfigDict(extra="allow")

    version: int = 0
    certificates: List[PackagedCertificate]
    serialised: List[Any]


# ------------------------------- circuits -------------------------------


class CircuitManifestEntry(BaseModel):
    model_config = ConfigDict(extra="allow")

    hash: str
    size: Optional[int] = None

    @field_validator("hash")
    @classmethod
    def _hash_hex(cls, v: str) -> str:
        return normalise_hash(v)


class CircuitManifest(BaseModel):
    model_config = ConfigDict(extra="allow")

    version: str
    root: str
    circuits: Dict[str, CircuitManifestEntry]

    @field_validator("root")
    @classmethod
    def _root_hex(cls, v: str) -> str:
        return normalise_hash(v)


class PackagedCircuit(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    vkey: str  # base64
    vkey_hash: str
    noir_version: Optional[str] = None
    bb_version: Optional[str] = None
    size: Optional[int] = None

    @field_validator("vkey_hash")
    @classmethod
    def _vkey_hash_hex(cls, v: str) -> str:
        return normalise_hash(v)


__all__ = [
    "RootDetails",
    "RSAPublicKey",
    "ECPublicKey",
    "PublicKey",
    "Validity",
    "PackagedCertificate",
    "PackagedCertificatesFile",
    "CircuitManifestEntry",
    "CircuitManifest",
    "PackagedCircuit",
]
