"""
Registry RPC client against an in-memory contract served through
httpx.MockTransport.
"""
from __future__ import annotations

import json
from datetime import datetime, timezone

import httpx
import pytest

from zkid_sdk.config import RegistryConfig
from zkid_sdk.constants import (CERTIFICATE_REGISTRY_ID,
                                GET_HISTORICAL_ROOTS_SELECTOR,
                                GET_LATEST_ROOT_DETAILS_SELECTOR,
                                LATEST_ROOT_SELECTOR)
from zkid_sdk.errors import RegistryError, RpcError
from zkid_sdk.registry.rpc import (GET_ROOT_DETAILS_SELECTOR,
                                   IS_ROOT_VALID_SELECTOR,
                                   REGISTRIES_SELECTOR, RegistryRpcClient)
from zkid_sdk.utils.bytes import int_to_hex32

RPC_URL = "http://rpc.test"
ROOT_REGISTRY = "0x" + "aa" * 20
HELPER = "0x" + "bb" * 20
CERT_REGISTRY_ADDRESS = "0x" + "cc" * 20
T0 = 1_700_000_000


def _root(i: int) -> int:
    return 0xF00D0000 + i


class FakeRegistryContract:
    """
    Root registry plus helper for a certificate registry holding `count`
    roots. Root i (1-based) was valid from T0 + i*1000 until the next one.
    """

    def __init__(self, count: int) -> None:
        self.count = count
        self.calls = []
        self.transport_failures = 0

    def _record(self, i: int) -> list:
        valid_to = 0 if i == self.count else T0 + (i + 1) * 1000
        return [i, _root(i), T0 + i * 1000, valid_to, 0, 100 + i, 0xC1D0 + i]

    @staticmethod
    def _encode(*words: int) -> str:
        return "0x" + "".join(format(w, "064x") for w in words)

    def _args(self, data: str) -> list:
        body = data[10:]
        return [int(body[i : i + 64], 16) for i in range(0, len(body), 64)]

    def eth_call(self, to: str, data: str) -> str:
        selector, args = data[:10], self._args(data)
        self.calls.append((to, selector, args))
        if selector == LATEST_ROOT_SELECTOR:
            return self._encode(_root(self.count))
        if selector == REGISTRIES_SELECTOR:
            if args[0] != CERTIFICATE_REGISTRY_ID:
                return self._encode(0)
            return self._encode(int(CERT_REGISTRY_ADDRESS, 16))
        if selector == IS_ROOT_VALID_SELECTOR:
            _, root, ts = args
            for i in range(1, self.count + 1):
                _, r, start, end, revoked, _, _ = self._record(i)
                if r == root and start <= ts and (end == 0 or ts < end) and not revoked:
                    return self._encode(1)
            return self._encode(0)
        if selector == GET_LATEST_ROOT_DETAILS_SELECTOR:
            return self._encode(*self._record(self.count))
        if selector == GET_ROOT_DETAILS_SELECTOR:
            _, root = args
            for i in range(1, self.count + 1):
                if _root(i) == root:
                    return self._encode(*self._record(i))
            return self._encode(*([0] * 7))
        if selector == GET_HISTORICAL_ROOTS_SELECTOR:
            _, start, limit = args
            end = min(self.count, start + limit - 1)
            records = [w for i in range(start, end + 1) for w in self._record(i)]
            is_last = 1 if end >= self.count else 0
            return self._encode(64, is_last, end - start + 1 if end >= start else 0, *records)
        raise AssertionError(f"unexpected selector {selector}")

    def handler(self, request: httpx.Request) -> httpx.Response:
        if self.transport_failures:
            self.transport_failures -= 1
            raise httpx.ConnectError("connection refused", request=request)
        payload = json.loads(request.content)
        assert payload["method"] == "eth_call"
        call, block = payload["params"]
        assert block == "latest"
        result = self.eth_call(call["to"], call["data"])
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": result})


def _config(**overrides) -> RegistryConfig:
    return RegistryConfig.for_chain(
        31337, rpc_url=RPC_URL, root_registry=ROOT_REGISTRY, registry_helper=HELPER, **overrides
    )


def _client(contract: FakeRegistryContract, sleeps=None, **overrides) -> RegistryRpcClient:
    async def sleep(s):
        if sleeps is not None:
            sleeps.append(s)

    return RegistryRpcClient(_config(**overrides), transport=httpx.MockTransport(contract.handler), sleep=sleep)


@pytest.mark.asyncio
async def test_latest_root_and_details():
    contract = FakeRegistryContract(3)
    async with _client(contract) as client:
        assert await client.get_latest_root(CERTIFICATE_REGISTRY_ID) == int_to_hex32(_root(3))
        latest = await client.get_root_details(CERTIFICATE_REGISTRY_ID)
        details = await client.get_root_details(CERTIFICATE_REGISTRY_ID, int_to_hex32(_root(2)))

    assert latest.is_latest and latest.index == 3 and latest.valid_to is None
    assert details.index == 2
    assert details.root == int_to_hex32(_root(2))
    assert details.valid_from == datetime.fromtimestamp(T0 + 2000, tz=timezone.utc)
    assert details.valid_to == datetime.fromtimestamp(T0 + 3000, tz=timezone.utc)
    assert details.leaves == 102
    assert not details.is_latest
    # details come from the helper, the latest root from the registry itself
    assert [to for to, _, _ in contract.calls] == [ROOT_REGISTRY, HELPER, HELPER]


@pytest.mark.asyncio
async def test_unknown_root_details():
    async with _client(FakeRegistryContract(3)) as client:
        with pytest.raises(RegistryError):
            await client.get_root_details(CERTIFICATE_REGISTRY_ID, "0x1234")


@pytest.mark.asyncio
async def test_is_root_valid_uses_timestamp():
    contract = FakeRegistryContract(3)
    async with _client(contract) as client:
        assert await client.is_root_valid(CERTIFICATE_REGISTRY_ID, _root(1), T0 + 1500)
        assert not await client.is_root_valid(CERTIFICATE_REGISTRY_ID, _root(1), T0 + 2500)
        assert await client.is_root_valid(
            CERTIFICATE_REGISTRY_ID, int_to_hex32(_root(3)), datetime.fromtimestamp(T0 + 10**6, tz=timezone.utc)
        )
    _, selector, args = contract.calls[0]
    assert selector == IS_ROOT_VALID_SELECTOR
    assert args == [CERTIFICATE_REGISTRY_ID, _root(1), T0 + 1500]


@pytest.mark.asyncio
async def test_historical_roots_from_index_is_inclusive():
    async with _client(FakeRegistryContract(12)) as client:
        roots, is_last = await client.get_historical_roots(CERTIFICATE_REGISTRY_ID, 1, 5)
    assert [r.index for r in roots] == [1, 2, 3, 4, 5]
    assert not is_last


@pytest.mark.asyncio
async def test_historical_roots_from_hash_is_exclusive():
    async with _client(FakeRegistryContract(12)) as client:
        roots, is_last = await client.get_historical_roots(CERTIFICATE_REGISTRY_ID, int_to_hex32(_root(5)), 5)
    assert [r.index for r in roots] == [6, 7, 8, 9, 10]
    assert not is_last


@pytest.mark.asyncio
async def test_last_page_marks_latest_root():
    async with _client(FakeRegistryContract(12)) as client:
        roots, is_last = await client.get_historical_roots(CERTIFICATE_REGISTRY_ID, 11, 5)
    assert is_last
    assert [r.index for r in roots] == [11, 12]
    assert roots[-1].is_latest and not roots[0].is_latest


@pytest.mark.asyncio
async def test_all_historical_roots_pages_through():
    progress = []
    async with _client(FakeRegistryContract(12)) as client:
        roots = await client.get_all_historical_roots(
            CERTIFICATE_REGISTRY_ID, page_size=5,
            on_progress=lambda page, batch, total, last: progress.append((page, len(batch), total, last)),
        )
    assert [r.index for r in roots] == list(range(1, 13))
    assert progress == [(1, 5, 5, False), (2, 5, 10, False), (3, 2, 12, True)]


@pytest.mark.asyncio
async def test_pagination_arguments_are_validated():
    async with _client(FakeRegistryContract(1)) as client:
        with pytest.raises(ValueError):
            await client.get_historical_roots(CERTIFICATE_REGISTRY_ID, 0, 5)
        with pytest.raises(ValueError):
            await client.get_historical_roots(CERTIFICATE_REGISTRY_ID, 1, 0)


@pytest.mark.asyncio
async def test_registry_address():
    async with _client(FakeRegistryContract(1)) as client:
        assert await client.get_registry_address(CERTIFICATE_REGISTRY_ID) == CERT_REGISTRY_ADDRESS
        with pytest.raises(RegistryError):
            await client.get_registry_address(99)


@pytest.mark.asyncio
async def test_transport_errors_are_retried():
    contract = FakeRegistryContract(1)
    contract.transport_failures = 2
    sleeps = []
    async with _client(contract, sleeps) as client:
        assert await client.get_latest_root(CERTIFICATE_REGISTRY_ID) == int_to_hex32(_root(1))
    assert sleeps == pytest.approx([0.1, 0.2])


@pytest.mark.asyncio
async def test_dead_transport_rethrows_after_four_attempts():
    contract = FakeRegistryContract(1)
    contract.transport_failures = 100
    sleeps = []
    async with _client(contract, sleeps) as client:
        with pytest.raises(httpx.ConnectError):
            await client.get_latest_root(CERTIFICATE_REGISTRY_ID)
    assert contract.transport_failures == 96
    assert sleeps == pytest.approx([0.1, 0.2, 0.4])


@pytest.mark.asyncio
async def test_rpc_error_objects_are_not_retried():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        body = json.loads(request.content)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": {"code": 3, "message": "execution reverted"}})

    client = RegistryRpcClient(_config(), transport=httpx.MockTransport(handler))
    try:
        with pytest.raises(RpcError) as exc:
            await client.get_latest_root(CERTIFICATE_REGISTRY_ID)
    finally:
        await client.close()
    assert exc.value.code == 3
    assert len(attempts) == 1


@pytest.mark.asyncio
async def test_missing_helper_is_a_registry_error():
    config = RegistryConfig(chain_id=31337, rpc_url=RPC_URL, root_registry=ROOT_REGISTRY)
    client = RegistryRpcClient(config, transport=httpx.MockTransport(FakeRegistryContract(1).handler))
    with pytest.raises(RegistryError):
        await client.get_historical_roots(CERTIFICATE_REGISTRY_ID)
    await client.close()
