"""Relying-party domain normalisation and the scope hashes proofs commit to."""

from __future__ import annotations

import re

from ..utils.hash import sha256_to_field

_PROTOCOL_RE = re.compile(r"^https?://", re.IGNORECASE)


def normalize_domain(domain: str) -> str:
    """
    "https://App.Example.com:8443/login?x=1#top" -> "app.example.com"

    Strips the protocol, path, port, query and fragment, then lowercases.
    """
    d = _PROTOCOL_RE.sub("", domain.strip())
    for sep in ("/", "?", "#"):
        d = d.split(sep, 1)[0]
    d = re.sub(r":[0-9]+$", "", d)
    return d.lower()


def service_scope_hash(domain: str) -> int:
    return sha256_to_field(normalize_domain(domain).encode("utf-8"))


def service_subscope_hash(scope: str) -> int:
    return sha256_to_field(scope.encode("utf-8"))


__all__ = ["normalize_domain", "service_scope_hash", "service_subscope_hash"]
