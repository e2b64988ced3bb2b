"""
zkid_sdk.rpc
------------

Async JSON-RPC transport for read-only `eth_call` requests.

    from zkid_sdk.rpc import EthRpcClient
    async with EthRpcClient(RegistryConfig.for_chain(11155111)) as rpc:
        data = await rpc.eth_call(to, calldata)
"""

from .http import EthRpcClient

__all__ = ["EthRpcClient"]
