"""
Registry facade: on-chain roots plus the off-chain snapshots they commit to.

Snapshots (packaged certificates, circuit manifests, packaged circuits) are
plain JSON served over HTTP. Each one is parsed with Pydantic and then checked
against its root of trust by rebuilding the canonical Merkle tree (or the vkey
hash). A snapshot that parses but does not match raises
`ValidationFailedError`; one that cannot be fetched raises `FetchError`.

URL layout
----------
    {certificates_url}/{root}.json
    {circuits_url}/manifests/{root}.json
    {circuits_url}/versions/{version}/manifest.json
    {circuits_url}/hashes/{vkey_hash}.json
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional, Tuple

import httpx

from ..config import RegistryConfig
from ..constants import (CERTIFICATE_REGISTRY_ID, CIRCUIT_REGISTRY_ID,
                         DEFAULT_HISTORICAL_ROOTS_PAGE_SIZE)
from ..errors import FetchError, RegistryError, ValidationFailedError
from ..merkle.tree import MerkleProof, certificate_tree, circuit_tree
from ..types.registry import (CircuitManifest, PackagedCertificate,
                              PackagedCertificatesFile, PackagedCircuit,
                              RootDetails)
from ..utils.bytes import normalise_hash, to_int
from ..utils.retry import aretry_call
from .leaves import certificate_leaves, vkey_hash
from .rpc import ProgressFn, RegistryRpcClient, RootRef, Timestamp

log = logging.getLogger(__name__)


class RegistryClient:
    def __init__(
        self,
        config: RegistryConfig,
        *,
        rpc: Optional[RegistryRpcClient] = None,
        http: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep=asyncio.sleep,
    ) -> None:
        self._cfg = config
        self._sleep = sleep
        self._rpc = rpc or RegistryRpcClient(config, transport=transport, sleep=sleep)
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(
            timeout=config.request_timeout,
            headers={"User-Agent": config.user_agent, "Accept": "application/json"},
            transport=transport,
        )

    @property
    def rpc(self) -> RegistryRpcClient:
        return self._rpc

    async def close(self) -> None:
        await self._rpc.close()
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "RegistryClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ---------- urls ----------

    def _base(self, value: Optional[str], what: str) -> str:
        if not value:
            raise RegistryError(f"{what} is not configured for chain {self._cfg.chain_id}")
        return value.rstrip("/")

    def certificates_url(self, root: RootRef) -> str:
        return f"{self._base(self._cfg.certificates_url, 'certificates_url')}/{normalise_hash(root)}.json"

    def manifest_url(self, root: Optional[RootRef] = None, version: Optional[str] = None) -> str:
        base = self._base(self._cfg.circuits_url, "circuits_url")
        if version is not None:
            return f"{base}/versions/{version}/manifest.json"
        if root is None:
            raise ValueError("either root or version is required")
        return f"{base}/manifests/{normalise_hash(root)}.json"

    def packaged_circuit_url(self, circuit_hash: RootRef) -> str:
        return f"{self._base(self._cfg.circuits_url, 'circuits_url')}/hashes/{normalise_hash(circuit_hash)}.json"

    # ---------- fetching ----------

    async def _get_once(self, url: str) -> Any:
        resp = await self._http.get(url)
        if resp.status_code // 100 != 2:
            raise FetchError(f"failed to fetch snapshot: {resp.reason_phrase}", url=url, status=resp.status_code)
        try:
            return resp.json()
        except ValueError as e:
            raise FetchError(f"snapshot is not JSON: {e}", url=url, status=resp.status_code) from e

    async def _fetch_json(self, url: str) -> Any:
        log.debug("fetching %s", url)
        return await aretry_call(
            self._get_once,
            url,
            retries=self._cfg.retry_count,
            exceptions=httpx.TransportError,
            sleep=self._sleep,
        )

    # ---------- certificates ----------

    @staticmethod
    def certificates_root(certificates: List[PackagedCertificate]) -> str:
        return normalise_hash(certificate_tree(certificate_leaves(certificates)).root)

    def validate_certificates(self, certificates: List[PackagedCertificate], root: RootRef) -> bool:
        return self.certificates_root(certificates) == normalise_hash(root)

    async def get_certificates(self, root: Optional[RootRef] = None, *, validate: bool = True) -> PackagedCertificatesFile:
        """
        Packaged certificates for `root` (the latest root when omitted).

        Raises pydantic.ValidationError for a malformed document and
        ValidationFailedError when the rebuilt tree root does not match.
        """
        if root is None:
            root = await self._rpc.get_latest_root(CERTIFICATE_REGISTRY_ID)
        data = await self._fetch_json(self.certificates_url(root))
        packaged = PackagedCertificatesFile.model_validate(data)
        log.debug("got %d packaged certificates", len(packaged.certificates))
        if validate:
            calculated = self.certificates_root(packaged.certificates)
            if calculated != normalise_hash(root):
                log.warning("certificates snapshot rejected: expected %s got %s", normalise_hash(root), calculated)
                raise ValidationFailedError("certificates", expected=normalise_hash(root), received=calculated)
            log.info("validated packaged certificates against root %s", calculated)
        return packaged

    # ---------- circuits ----------

    @staticmethod
    def manifest_root(manifest: CircuitManifest) -> str:
        return normalise_hash(circuit_tree(to_int(e.hash) for e in manifest.circuits.values()).root)

    def validate_circuit_manifest(self, manifest: CircuitManifest, root: Optional[RootRef] = None) -> bool:
        expected = normalise_hash(root) if root is not None else manifest.root
        return self.manifest_root(manifest) == expected and manifest.root == expected

    async def get_circuit_manifest(
        self,
        root: Optional[RootRef] = None,
        *,
        version: Optional[str] = None,
        validate: bool = True,
    ) -> CircuitManifest:
        """
        Circuit manifest for `root`, for a release `version`, or for the
        latest circuit root when neither is given.
        """
        if root is None and version is None:
            root = await self._rpc.get_latest_root(CIRCUIT_REGISTRY_ID)
        data = await self._fetch_json(self.manifest_url(root, version))
        manifest = CircuitManifest.model_validate(data)
        if validate:
            expected = normalise_hash(root) if root is not None else manifest.root
            calculated = self.manifest_root(manifest)
            if calculated != expected or manifest.root != expected:
                log.warning("circuit manifest rejected: expected %s got %s", expected, calculated)
                raise ValidationFailedError("circuit_manifest", expected=expected, received=calculated)
            log.info("validated circuit manifest %s against root %s", manifest.version, calculated)
        return manifest

    def circuit_membership_proof(self, manifest: CircuitManifest, name: str) -> MerkleProof:
        try:
            entry = manifest.circuits[name]
        except KeyError:
            raise KeyError(f"circuit {name!r} is not in manifest {manifest.version}") from None
        tree = circuit_tree(to_int(e.hash) for e in manifest.circuits.values())
        return tree.proof_for(to_int(entry.hash))

    @staticmethod
    def validate_packaged_circuit(circuit: PackagedCircuit, expected_hash: Optional[RootRef] = None) -> bool:
        expected = normalise_hash(expected_hash) if expected_hash is not None else circuit.vkey_hash
        return normalise_hash(vkey_hash(circuit.vkey)) == expected and circuit.vkey_hash == expected

    async def get_packaged_circuit(self, name: str, manifest: CircuitManifest, *, validate: bool = True) -> PackagedCircuit:
        try:
            entry = manifest.circuits[name]
        except KeyError:
            raise KeyError(f"circuit {name!r} is not in manifest {manifest.version}") from None
        data = await self._fetch_json(self.packaged_circuit_url(entry.hash))
        circuit = PackagedCircuit.model_validate(data)
        if validate:
            calculated = normalise_hash(vkey_hash(circuit.vkey))
            if calculated != entry.hash or circuit.vkey_hash != entry.hash:
                log.warning("packaged circuit %s rejected: expected %s got %s", name, entry.hash, calculated)
                raise ValidationFailedError("packaged_circuit", expected=entry.hash, received=calculated)
            log.info("validated packaged circuit %s against hash %s", name, entry.hash)
        return circuit

    # ---------- on-chain pass-throughs ----------

    async def is_root_valid(self, registry_id: int, root: RootRef, timestamp: Optional[Timestamp] = None) -> bool:
        return await self._rpc.is_root_valid(registry_id, root, timestamp)

    async def is_certificate_root_valid(self, root: RootRef, timestamp: Optional[Timestamp] = None) -> bool:
        return await self._rpc.is_root_valid(CERTIFICATE_REGISTRY_ID, root, timestamp)

    async def is_circuit_root_valid(self, root: RootRef, timestamp: Optional[Timestamp] = None) -> bool:
        return await self._rpc.is_root_valid(CIRCUIT_REGISTRY_ID, root, timestamp)

    async def get_certificate_root_details(self, root: Optional[RootRef] = None) -> RootDetails:
        return await self._rpc.get_root_details(CERTIFICATE_REGISTRY_ID, root)

    async def get_circuit_root_details(self, root: Optional[RootRef] = None) -> RootDetails:
        return await self._rpc.get_root_details(CIRCUIT_REGISTRY_ID, root)

    async def get_historical_certificate_roots(
        self, from_: RootRef = 1, limit: int = DEFAULT_HISTORICAL_ROOTS_PAGE_SIZE
    ) -> Tuple[List[RootDetails], bool]:
        return await self._rpc.get_historical_roots(CERTIFICATE_REGISTRY_ID, from_, limit)

    async def get_historical_circuit_roots(
        self, from_: RootRef = 1, limit: int = DEFAULT_HISTORICAL_ROOTS_PAGE_SIZE
    ) -> Tuple[List[RootDetails], bool]:
        return await self._rpc.get_historical_roots(CIRCUIT_REGISTRY_ID, from_, limit)

    async def get_all_historical_certificate_roots(
        self, page_size: int = DEFAULT_HISTORICAL_ROOTS_PAGE_SIZE, on_progress: Optional[ProgressFn] = None
    ) -> List[RootDetails]:
        return await self._rpc.get_all_historical_roots(CERTIFICATE_REGISTRY_ID, page_size, on_progress)

    async def get_all_historical_circuit_roots(
        self, page_size: int = DEFAULT_HISTORICAL_ROOTS_PAGE_SIZE, on_progress: Optional[ProgressFn] = None
    ) -> List[RootDetails]:
        return await self._rpc.get_all_historical_roots(CIRCUIT_REGISTRY_ID, page_size, on_progress)

    async def get_certificate_registry_address(self) -> str:
        return await self._rpc.get_registry_address(CERTIFICATE_REGISTRY_ID)

    async def get_circuit_registry_address(self) -> str:
        return await self._rpc.get_registry_address(CIRCUIT_REGISTRY_ID)


__all__ = ["RegistryClient"]
