"""
Async JSON-RPC client for read-only Ethereum calls.

Provides:
- a retrying async JSON-RPC transport over HTTP(S) (httpx.AsyncClient)
- `eth_call(to, data)` at the "latest" block

Retry policy
------------
Only transport-level failures (`httpx.TransportError`: connection errors,
timeouts, protocol errors) are retried, with a 100 ms doubling backoff up to
`RegistryConfig.retry_count` times. The last transport exception is re-raised
unchanged. A well-formed JSON-RPC `error` object, a non-2xx HTTP status or a
malformed body raises `RpcError` immediately.
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from ..config import RegistryConfig
from ..errors import RpcError, from_jsonrpc_error
from ..utils.retry import DEFAULT_BASE_DELAY, aretry_call

log = logging.getLogger(__name__)

JSON = Dict[str, Any]


class EthRpcClient:
    """
    Minimal async JSON-RPC client.

    Pass `transport` (e.g. `httpx.MockTransport`) to route requests without a
    network, or `client` to share an existing `httpx.AsyncClient`.
    """

    def __init__(
        self,
        config: RegistryConfig,
        *,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._cfg = config
        self._ids = itertools.count(1)
        self._client = client
        self._owns_client = client is None
        self._transport = transport
        self._sleep = sleep

    @property
    def config(self) -> RegistryConfig:
        return self._cfg

    # ---------- lifecycle ----------

    async def start(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._cfg.request_timeout,
                headers=self._cfg.http_headers(),
                transport=self._transport,
            )

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "EthRpcClient":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ---------- core transport ----------

    async def _call_once(self, method: str, params: List[Any]) -> Any:
        if self._client is None:
            await self.start()
        assert self._client is not None  # for type-checkers

        req_id = next(self._ids)
        payload = {"jsonrpc": "2.0", "id": req_id, "method": method, "params": params}
        log.debug("rpc -> %s id=%s %s", method, req_id, self._cfg.rpc_url)
        resp = await self._client.post(self._cfg.rpc_url, json=payload)

        if resp.status_code // 100 != 2:
            raise RpcError(
                method=method,
                code=-32000,
                message=f"HTTP {resp.status_code}: {resp.text[:256]!r}",
                request_id=req_id,
                http_status=resp.status_code,
            )
        try:
            data = resp.json()
        except (json.JSONDecodeError, ValueError) as e:
            raise RpcError(method=method, code=-32700, message=f"invalid JSON response: {e}", request_id=req_id) from e
        if not isinstance(data, dict):
            raise RpcError(method=method, code=-32600, message="response is not a JSON object", request_id=req_id)
        if data.get("error") is not None:
            raise from_jsonrpc_error(data["error"], method=method, request_id=req_id, http_status=resp.status_code)
        if "result" not in data:
            raise RpcError(method=method, code=-32600, message="response has no result", request_id=req_id)
        return data["result"]

    def _on_retry(self, attempt: int, exc: BaseException, delay: float) -> None:
        log.warning("rpc transport error (%s), retry %d/%d in %.0f ms", exc, attempt, self._cfg.retry_count, delay * 1000)

    async def call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """JSON-RPC call with transport-level retries."""
        return await aretry_call(
            self._call_once,
            method,
            params or [],
            retries=self._cfg.retry_count,
            base=DEFAULT_BASE_DELAY,
            exceptions=httpx.TransportError,
            on_retry=self._on_retry,
            sleep=self._sleep,
        )

    async def eth_call(self, to: str, data: str, block: str = "latest") -> str:
        result = await self.call("eth_call", [{"to": to, "data": data}, block])
        if not isinstance(result, str) or not result.startswith("0x"):
            raise RpcError(method="eth_call", code=-32600, message=f"unexpected eth_call result {result!r}")
        return result


__all__ = ["EthRpcClient"]
