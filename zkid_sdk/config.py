"""
SDK configuration: registry endpoints, chain id, retry/timeouts and the
verifier's relying-party settings.

- `RegistryConfig` starts from the built-in per-chain defaults in
  `constants.CHAIN_CONFIG` and supports overrides via keyword arguments or
  environment variables (ZKID_*).
- `VerifierConfig` carries the relying party's domain/scope, the validity
  window, dev mode and the facematch trust anchors.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from .constants import (APPLE_APP_ATTEST_ROOT_KEY_HASH, CHAIN_CONFIG,
                        DEFAULT_VALIDITY, IOS_APP_ID_HASH, ZERO_ADDRESS)
from .errors import RegistryError
from .utils.bytes import to_int
from .version import __version__

DEFAULT_CHAIN_ID = 11155111

_HEX_RE = re.compile(r"^0x[0-9a-fA-F]+$")
_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def _parse_chain_id(val: Any, default: int = DEFAULT_CHAIN_ID) -> int:
    """
    Accepts int, decimal str, or 0x-hex str and returns int.
    """
    if val is None or val == "":
        return int(default)
    if isinstance(val, int):
        return val
    s = str(val).strip()
    if _HEX_RE.match(s):
        return int(s, 16)
    return int(s, 10)


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(name)
    return v if v is not None else default


def _ensure_scheme(url: Optional[str], allowed: tuple[str, ...]) -> Optional[str]:
    if not url:
        return url
    lower = url.lower()
    if not any(lower.startswith(f"{sch}://") for sch in allowed):
        raise ValueError(f"URL must start with {allowed}, got: {url!r}")
    return url


def _ensure_address(value: Optional[str], what: str) -> Optional[str]:
    if value is None:
        return None
    if not _ADDRESS_RE.match(value):
        raise ValueError(f"{what} must be a 0x-prefixed 20-byte address, got: {value!r}")
    return value


@dataclass(slots=True)
class RegistryConfig:
    chain_id: int
    rpc_url: str
    root_registry: str
    registry_helper: Optional[str] = None
    retry_count: int = 3
    request_timeout: float = 10.0
    certificates_url: Optional[str] = None
    circuits_url: Optional[str] = None
    user_agent: str = field(default_factory=lambda: f"zkid-sdk-py/{__version__}")

    @classmethod
    def for_chain(cls, chain_id: Any = DEFAULT_CHAIN_ID, **overrides: Any) -> "RegistryConfig":
        """
        Built-in defaults for a well-known chain id plus keyword overrides.

        An unknown chain id is accepted only when `rpc_url` and
        `root_registry` are both supplied.
        """
        cid = _parse_chain_id(chain_id)
        data: Dict[str, Any] = dict(CHAIN_CONFIG.get(cid, {}))
        data.update({k: v for k, v in overrides.items() if v is not None})
        if not data.get("rpc_url") or not data.get("root_registry"):
            raise RegistryError(
                f"no registry deployment known for chain {cid}; pass rpc_url and root_registry"
            )
        if data.get("root_registry") == ZERO_ADDRESS:
            raise RegistryError(f"root registry is not deployed on chain {cid}")
        _ensure_scheme(data["rpc_url"], ("http", "https"))
        _ensure_address(data["root_registry"], "root_registry")
        _ensure_address(data.get("registry_helper"), "registry_helper")
        known = {f for f in cls.__dataclass_fields__ if f != "chain_id"}
        return cls(chain_id=cid, **{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_env(cls, prefix: str = "ZKID_") -> "RegistryConfig":
        """
        Create config from environment variables:

        ZKID_CHAIN_ID           (int or 0x-hex; default Sepolia)
        ZKID_RPC_URL            (http/https)
        ZKID_ROOT_REGISTRY      (address)
        ZKID_REGISTRY_HELPER    (address)
        ZKID_RETRY_COUNT        (int)
        ZKID_TIMEOUT            (float seconds)
        ZKID_CERTIFICATES_URL   (http/https)
        ZKID_CIRCUITS_URL       (http/https)
        ZKID_USER_AGENT         (str)
        """
        overrides: Dict[str, Any] = {
            "rpc_url": _env(f"{prefix}RPC_URL"),
            "root_registry": _env(f"{prefix}ROOT_REGISTRY"),
            "registry_helper": _env(f"{prefix}REGISTRY_HELPER"),
            "certificates_url": _env(f"{prefix}CERTIFICATES_URL"),
            "circuits_url": _env(f"{prefix}CIRCUITS_URL"),
            "user_agent": _env(f"{prefix}USER_AGENT"),
        }
        retries = _env(f"{prefix}RETRY_COUNT")
        if retries is not None:
            overrides["retry_count"] = int(retries)
        timeout = _env(f"{prefix}TIMEOUT")
        if timeout is not None:
            overrides["request_timeout"] = float(timeout)
        return cls.for_chain(_env(f"{prefix}CHAIN_ID"), **overrides)

    def with_overrides(self, **overrides: Any) -> "RegistryConfig":
        """Copy with keyword overrides. Unknown keys are ignored."""
        data = self.to_dict()
        data.update({k: v for k, v in overrides.items() if k in data})
        if "chain_id" in overrides:
            data["chain_id"] = _parse_chain_id(overrides["chain_id"], self.chain_id)
        if "rpc_url" in overrides:
            _ensure_scheme(data["rpc_url"], ("http", "https"))
        return RegistryConfig(**data)

    def http_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": self.user_agent,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chain_id": int(self.chain_id),
            "rpc_url": self.rpc_url,
            "root_registry": self.root_registry,
            "registry_helper": self.registry_helper,
            "retry_count": int(self.retry_count),
            "request_timeout": float(self.request_timeout),
            "certificates_url": self.certificates_url,
            "circuits_url": self.circuits_url,
            "user_agent": self.user_agent,
        }


def _hash_set(values: Tuple[Any, ...]) -> frozenset:
    return frozenset(to_int(v) for v in values)


@dataclass(slots=True)
class VerifierConfig:
    """
    Relying-party settings for one validator.

    `validity` is in seconds. The facematch anchors are hashes (hex or int) of
    the attestation root keys and app ids the relying party trusts; the
    Google/Android values have no built-in default and must be supplied to
    accept Android facematch proofs.
    """

    domain: str
    scope: Optional[str] = None
    validity: int = DEFAULT_VALIDITY
    dev_mode: bool = False
    sanctions_root: Optional[Any] = None
    facematch_root_key_hashes: Tuple[Any, ...] = (APPLE_APP_ATTEST_ROOT_KEY_HASH,)
    facematch_app_id_hashes: Tuple[Any, ...] = (IOS_APP_ID_HASH,)

    def __post_init__(self) -> None:
        if not self.domain or not self.domain.strip():
            raise ValueError("domain must be a non-empty string")
        if self.validity <= 0:
            raise ValueError("validity must be a positive number of seconds")

    @property
    def trusted_root_key_leaves(self) -> frozenset:
        return _hash_set(self.facematch_root_key_hashes)

    @property
    def trusted_app_ids(self) -> frozenset:
        return _hash_set(self.facematch_app_id_hashes)


__all__ = ["DEFAULT_CHAIN_ID", "RegistryConfig", "VerifierConfig"]
