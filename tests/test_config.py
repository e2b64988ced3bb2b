from __future__ import annotations

import pytest

from zkid_sdk.config import DEFAULT_CHAIN_ID, RegistryConfig, VerifierConfig
from zkid_sdk.constants import DEFAULT_VALIDITY, IOS_APP_ID_HASH
from zkid_sdk.errors import RegistryError
from zkid_sdk.utils.bytes import to_int


def test_defaults_for_sepolia():
    cfg = RegistryConfig.for_chain()
    assert cfg.chain_id == DEFAULT_CHAIN_ID == 11155111
    assert cfg.rpc_url.startswith("https://")
    assert cfg.retry_count == 3
    assert cfg.user_agent.startswith("zkid-sdk-py/")


def test_hex_chain_id_and_overrides():
    cfg = RegistryConfig.for_chain("0x7a69", rpc_url="http://127.0.0.1:8545", retry_count=5)
    assert cfg.chain_id == 31337
    assert cfg.rpc_url == "http://127.0.0.1:8545"
    assert cfg.retry_count == 5


def test_undeployed_and_unknown_chains():
    with pytest.raises(RegistryError):
        RegistryConfig.for_chain(1)
    with pytest.raises(RegistryError):
        RegistryConfig.for_chain(424242)
    cfg = RegistryConfig.for_chain(424242, rpc_url="https://rpc.example", root_registry="0x" + "11" * 20)
    assert cfg.registry_helper is None


def test_invalid_values():
    with pytest.raises(ValueError):
        RegistryConfig.for_chain(31337, rpc_url="ws://localhost:8546")
    with pytest.raises(ValueError):
        RegistryConfig.for_chain(31337, root_registry="0x1234")


def test_from_env(monkeypatch):
    monkeypatch.setenv("ZKID_CHAIN_ID", "31337")
    monkeypatch.setenv("ZKID_RPC_URL", "http://node:8545")
    monkeypatch.setenv("ZKID_RETRY_COUNT", "1")
    monkeypatch.setenv("ZKID_TIMEOUT", "2.5")
    cfg = RegistryConfig.from_env()
    assert cfg.chain_id == 31337
    assert cfg.rpc_url == "http://node:8545"
    assert cfg.retry_count == 1
    assert cfg.request_timeout == 2.5


def test_with_overrides_returns_copy():
    cfg = RegistryConfig.for_chain(31337)
    other = cfg.with_overrides(retry_count=0, unknown="ignored")
    assert other.retry_count == 0
    assert cfg.retry_count == 3
    assert other.to_dict()["root_registry"] == cfg.root_registry


def test_verifier_config():
    cfg = VerifierConfig(domain="example.com")
    assert cfg.validity == DEFAULT_VALIDITY == 7 * 24 * 60 * 60
    assert not cfg.dev_mode
    assert to_int(IOS_APP_ID_HASH) in cfg.trusted_app_ids

    android = VerifierConfig(domain="example.com", facematch_app_id_hashes=(IOS_APP_ID_HASH, "0x1234"))
    assert 0x1234 in android.trusted_app_ids

    with pytest.raises(ValueError):
        VerifierConfig(domain=" ")
    with pytest.raises(ValueError):
        VerifierConfig(domain="example.com", validity=0)
