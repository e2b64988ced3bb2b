"""
Read-only client for the on-chain root registry.

Every operation is a single `eth_call` (retried on transport failures by
`EthRpcClient`) whose calldata is a 4-byte selector followed by 32-byte
arguments, and whose return data is decoded with `AbiReader`.

Contracts
---------
- root registry:    latestRoot(bytes32), registries(bytes32),
                    isRootValid(bytes32,bytes32,uint256)
- registry helper:  getLatestRootDetails(bytes32), getRootDetails(bytes32,bytes32),
                    getHistoricalRoots(bytes32,uint256,uint256)

A `RootDetails` struct is 7 static words:
    index, root, validFrom, validTo (0 = open), revoked, leaves, cid

Pagination
----------
`get_historical_roots(from_=<int>)` starts AT that index (inclusive, the first
root is index 1). `get_historical_roots(from_=<root hash>)` starts AFTER that
root (exclusive): the root is resolved to its index and the page begins at the
next one.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple, Union

from ..config import RegistryConfig
from ..constants import (DEFAULT_HISTORICAL_ROOTS_PAGE_SIZE,
                         GET_HISTORICAL_ROOTS_SELECTOR,
                         GET_LATEST_ROOT_DETAILS_SELECTOR,
                         GET_ROOT_DETAILS_SIGNATURE, IS_ROOT_VALID_SIGNATURE,
                         LATEST_ROOT_SELECTOR, REGISTRIES_SIGNATURE)
from ..errors import AbiError, RegistryError
from ..rpc.http import EthRpcClient
from ..types.abi import (AbiReader, encode_bytes32, encode_call,
                         encode_uint, function_selector)
from ..types.registry import RootDetails
from ..utils.bytes import normalise_hash

log = logging.getLogger(__name__)

RootRef = Union[int, str]
Timestamp = Union[int, float, datetime]
ProgressFn = Callable[[int, List[RootDetails], int, bool], None]

REGISTRIES_SELECTOR = function_selector(REGISTRIES_SIGNATURE)
IS_ROOT_VALID_SELECTOR = function_selector(IS_ROOT_VALID_SIGNATURE)
GET_ROOT_DETAILS_SELECTOR = function_selector(GET_ROOT_DETAILS_SIGNATURE)


def _unix(ts: Optional[Timestamp]) -> int:
    if ts is None:
        return int(datetime.now(timezone.utc).timestamp())
    if isinstance(ts, datetime):
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        return int(ts.timestamp())
    return int(ts)


def _datetime(seconds: int) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def decode_root_details(reader: AbiReader) -> RootDetails:
    """Read one 7-word RootDetails struct at the reader's cursor."""
    index = reader.read_u256("index")
    root = reader.read_bytes32("root")
    valid_from = reader.read_u256("validFrom")
    valid_to = reader.read_u256("validTo")
    revoked = reader.read_bool("revoked")
    leaves = reader.read_u256("leaves")
    cid = reader.read_bytes32("cid")
    return RootDetails(
        index=index,
        root=root,
        valid_from=_datetime(valid_from),
        valid_to=_datetime(valid_to) if valid_to else None,
        revoked=revoked,
        leaves=leaves,
        cid=cid,
    )


class RegistryRpcClient:
    def __init__(self, config: RegistryConfig, *, rpc: Optional[EthRpcClient] = None, **rpc_kwargs) -> None:
        self._cfg = config
        self._rpc = rpc or EthRpcClient(config, **rpc_kwargs)

    @property
    def config(self) -> RegistryConfig:
        return self._cfg

    async def close(self) -> None:
        await self._rpc.close()

    async def __aenter__(self) -> "RegistryRpcClient":
        await self._rpc.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ---------- helpers ----------

    def _helper(self) -> str:
        if not self._cfg.registry_helper:
            raise RegistryError("registry helper address is not configured")
        return self._cfg.registry_helper

    async def _call(self, to: str, data: str, function: str) -> AbiReader:
        result = await self._rpc.eth_call(to, data)
        return AbiReader(result, function=function)

    # ---------- operations ----------

    async def is_root_valid(self, registry_id: int, root: RootRef, timestamp: Optional[Timestamp] = None) -> bool:
        data = encode_call(
            IS_ROOT_VALID_SELECTOR,
            encode_bytes32(registry_id),
            encode_bytes32(root),
            encode_uint(_unix(timestamp)),
        )
        reader = await self._call(self._cfg.root_registry, data, "isRootValid")
        valid = reader.read_bool("valid")
        log.debug("isRootValid(registry=%s, root=%s) -> %s", registry_id, normalise_hash(root), valid)
        return valid

    async def get_latest_root(self, registry_id: int) -> str:
        data = encode_call(LATEST_ROOT_SELECTOR, encode_bytes32(registry_id))
        reader = await self._call(self._cfg.root_registry, data, "latestRoot")
        return reader.read_bytes32("root")

    async def get_root_details(self, registry_id: int, root: Optional[RootRef] = None) -> RootDetails:
        """Details of `root`, or of the latest root when `root` is None."""
        if root is None:
            data = encode_call(GET_LATEST_ROOT_DETAILS_SELECTOR, encode_bytes32(registry_id))
            reader = await self._call(self._helper(), data, "getLatestRootDetails")
            return replace(decode_root_details(reader), is_latest=True)
        data = encode_call(GET_ROOT_DETAILS_SELECTOR, encode_bytes32(registry_id), encode_bytes32(root))
        reader = await self._call(self._helper(), data, "getRootDetails")
        details = decode_root_details(reader)
        if details.index == 0:
            raise RegistryError(f"root {normalise_hash(root)} is not in the registry", registry_id=registry_id)
        return details

    async def get_historical_roots(
        self,
        registry_id: int,
        from_: RootRef = 1,
        limit: int = DEFAULT_HISTORICAL_ROOTS_PAGE_SIZE,
    ) -> Tuple[List[RootDetails], bool]:
        """
        One page of registry history as (roots, is_last_page).

        An int `from_` is an inclusive index; a hex string is a root hash and
        the page starts after it.
        """
        helper = self._helper()
        if isinstance(from_, str):
            start = (await self.get_root_details(registry_id, from_)).index + 1
        else:
            start = int(from_)
        if start < 1:
            raise ValueError("historical root indices start at 1")
        if limit < 1:
            raise ValueError("limit must be >= 1")

        data = encode_call(
            GET_HISTORICAL_ROOTS_SELECTOR,
            encode_bytes32(registry_id),
            encode_uint(start),
            encode_uint(limit),
        )
        reader = await self._call(helper, data, "getHistoricalRoots")
        roots = reader.read_dynamic_array(decode_root_details, "roots")
        is_last_page = reader.read_bool("isLastPage")
        if is_last_page and roots:
            roots[-1] = replace(roots[-1], is_latest=True)
        log.debug("historical roots registry=%s from=%d: %d roots, last=%s", registry_id, start, len(roots), is_last_page)
        return roots, is_last_page

    async def get_all_historical_roots(
        self,
        registry_id: int,
        page_size: int = DEFAULT_HISTORICAL_ROOTS_PAGE_SIZE,
        on_progress: Optional[ProgressFn] = None,
    ) -> List[RootDetails]:
        """
        Walk the whole history from index 1.

        Stops on the page marked last, or on an empty page in case the helper
        never reports one.
        """
        page = 0
        index = 1
        out: List[RootDetails] = []
        while True:
            roots, is_last = await self.get_historical_roots(registry_id, index, page_size)
            out.extend(roots)
            page += 1
            index += len(roots)
            if on_progress is not None:
                on_progress(page, roots, len(out), is_last)
            if is_last or not roots:
                break
        log.info("fetched %d historical roots for registry %s in %d pages", len(out), registry_id, page)
        return out

    async def get_registry_address(self, registry_id: int) -> str:
        data = encode_call(REGISTRIES_SELECTOR, encode_bytes32(registry_id))
        result = await self._rpc.eth_call(self._cfg.root_registry, data)
        if len(result) < 42:
            raise AbiError(f"return data too short for an address: {result!r}", function="registries")
        if int(result, 16) == 0:
            raise RegistryError(f"registry {registry_id} doesn't exist", registry_id=registry_id)
        return "0x" + result[-40:].lower()


__all__ = [
    "RegistryRpcClient",
    "decode_root_details",
    "REGISTRIES_SELECTOR",
    "IS_ROOT_VALID_SELECTOR",
    "GET_ROOT_DETAILS_SELECTOR",
]
