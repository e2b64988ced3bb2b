"""
Typed error classes for the verifier SDK.

These are raised by the rpc transport, the registry client, the ABI reader and
the commitment codec so callers can catch specific failure modes while still
being able to catch the base `ZkidError`.

Proof-semantic failures (broken commitment chain, stale date, bad root, ...)
are never raised: the validator records them in the verdict instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Optional

__all__ = [
    "ZkidError",
    "RpcError",
    "AbiError",
    "RegistryError",
    "FetchError",
    "ValidationFailedError",
    "CommitmentError",
    "ProofFormatError",
    "SessionError",
    "JsonRpcCode",
    "from_jsonrpc_error",
]


class ZkidError(Exception):
    """Base class for all SDK errors."""


class JsonRpcCode(IntEnum):
    # JSON-RPC 2.0 spec
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    # Server errors (implementation-defined range: -32099 to -32000)
    SERVER_ERROR = -32000

    # Node extensions seen on public eth endpoints
    EXECUTION_REVERTED = 3
    RATE_LIMITED = -32005


@dataclass(slots=True)
class RpcError(ZkidError):
    """Raised when a JSON-RPC call returns an error object or a malformed body."""

    method: Optional[str]
    code: int
    message: str
    data: Optional[Any] = None
    request_id: Optional[Any] = None
    http_status: Optional[int] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        parts = [f"RPC[{self.method or '-'}] code={self.code} msg={self.message!r}"]
        if self.request_id is not None:
            parts.append(f"id={self.request_id}")
        if self.http_status is not None:
            parts.append(f"http={self.http_status}")
        if self.data is not None:
            parts.append(f"data={self.data!r}")
        return " ".join(parts)

    @property
    def code_enum(self) -> Optional[JsonRpcCode]:
        try:
            return JsonRpcCode(self.code)
        except ValueError:
            return None


@dataclass(slots=True)
class AbiError(ZkidError):
    """
    Raised when ABI encoding/decoding fails.

    Typical causes: truncated return data, an array offset pointing past the
    end of the payload, non-hex characters.
    """

    message: str
    function: Optional[str] = None
    parameter: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        where = []
        if self.function:
            where.append(f"fn={self.function}")
        if self.parameter:
            where.append(f"param={self.parameter}")
        where_s = (" [" + ", ".join(where) + "]") if where else ""
        return f"AbiError{where_s}: {self.message}"


@dataclass(slots=True)
class RegistryError(ZkidError):
    """Registry misconfiguration or a registry id that does not exist on-chain."""

    message: str
    registry_id: Optional[int] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        rid = f" registry={self.registry_id}" if self.registry_id is not None else ""
        return f"RegistryError{rid}: {self.message}"


@dataclass(slots=True)
class FetchError(ZkidError):
    """A packaged snapshot (certificates, manifest, circuit) could not be fetched."""

    message: str
    url: Optional[str] = None
    status: Optional[int] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        bits = [self.message]
        if self.url:
            bits.append(f"url={self.url}")
        if self.status is not None:
            bits.append(f"http={self.status}")
        return "FetchError: " + " ".join(bits)


@dataclass(slots=True)
class ValidationFailedError(ZkidError):
    """
    A snapshot was fetched and parsed but does not match its root of trust.

    `kind` is one of "certificates", "circuit_manifest", "packaged_circuit".
    """

    kind: str
    expected: Optional[str] = None
    received: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"Validation failed for {self.kind}: expected={self.expected} got={self.received}"


@dataclass(slots=True)
class CommitmentError(ZkidError):
    """Committed inputs that cannot be encoded (overlong payload, bad country code)."""

    message: str
    kind: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        kind = f"[{self.kind}] " if self.kind else ""
        return f"CommitmentError: {kind}{self.message}"


@dataclass(slots=True)
class ProofFormatError(ZkidError):
    """Proof bytes too short for the declared public-input count, or an unknown proof name."""

    message: str
    name: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        name = f" proof={self.name}" if self.name else ""
        return f"ProofFormatError{name}: {self.message}"


def from_jsonrpc_error(
    err_obj: Dict[str, Any],
    *,
    method: Optional[str] = None,
    request_id: Optional[Any] = None,
    http_status: Optional[int] = None,
) -> RpcError:
    """
    Convert a JSON-RPC error object into RpcError.

    `err_obj` should resemble: {"code": int, "message": str, "data": any?}
    """
    code = int(err_obj.get("code", JsonRpcCode.SERVER_ERROR))
    message = str(err_obj.get("message", "Unknown JSON-RPC error"))
    data = err_obj.get("data")
    return RpcError(
        method=method,
        code=code,
        message=message,
        data=data,
        request_id=request_id,
        http_status=http_status,
    )


@dataclass(slots=True)
class SessionError(ZkidError):
    """An operation that the session's current status does not allow."""

    message: str
    request_id: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        rid = f" request={self.request_id}" if self.request_id else ""
        return f"SessionError{rid}: {self.message}"
