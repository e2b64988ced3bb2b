"""
Shared pytest fixtures:
- Logging for the SDK loggers, enabled with ZKID_TEST_LOG=DEBUG (or INFO, ...)
- A fixed clock so date checks are deterministic
- FakeRegistry: in-memory stand-in for the on-chain root registry
- BundleBuilder: proof bundles whose commitment chain links up
- A sample passport MRZ for disclose proofs
"""
from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence, Tuple

import pytest

from zkid_sdk.commitments import parameter_commitment
from zkid_sdk.config import VerifierConfig
from zkid_sdk.constants import CERTIFICATE_REGISTRY_ID, CIRCUIT_REGISTRY_ID
from zkid_sdk.types.proofs import CommittedInput, NullifierKind, ProofResult
from zkid_sdk.utils.bytes import to_int
from zkid_sdk.verifier import ProofChainValidator
from zkid_sdk.verifier.scope import service_scope_hash, service_subscope_hash

DOMAIN = "example.com"


# ---------- LOGGING ----------

def configure_test_logging() -> None:
    level = os.getenv("ZKID_TEST_LOG")
    if not level:
        return
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )
    logging.getLogger("zkid_sdk").setLevel(level.upper())


def pytest_configure(config: pytest.Config) -> None:
    configure_test_logging()


# ---------- FAKES ----------

class FakeRegistry:
    """
    In-memory root registry. A root is valid when its (registry_id, root) pair
    was registered; `error` makes every lookup raise instead.
    """

    def __init__(self, valid: Iterable[Tuple[int, int]] = (), error: Optional[Exception] = None) -> None:
        self.valid = {(rid, to_int(root)) for rid, root in valid}
        self.error = error
        self.calls: List[Tuple[int, int, object]] = []

    async def is_root_valid(self, registry_id: int, root, timestamp=None) -> bool:
        self.calls.append((registry_id, to_int(root), timestamp))
        if self.error is not None:
            raise self.error
        return (registry_id, to_int(root)) in self.valid


class BundleBuilder:
    """
    Builds proofs with pre-split public inputs.

    The three base stages link dsc -> id data -> integrity through fixed
    commitments; disclosure proofs link to the integrity commitment and carry
    the parameter commitment of their committed input.
    """

    certificate_root = 0x0C3A5C3A5C3A5C3A5C3A5C3A5C3A5C3A5C3A5C3A5C3A5C3A5C3A5C3A5C3A5C3A
    circuit_root = 0x0C1C0C1C0C1C0C1C0C1C0C1C0C1C0C1C0C1C0C1C0C1C0C1C0C1C0C1C0C1C0C1C
    nullifier = 0x2D7A1B3C4E5F60718293A4B5C6D7E8F90A1B2C3D4E5F60718293A4B5C6D7E8F9

    now = datetime(2025, 3, 14, 15, 30, tzinfo=timezone.utc)
    today = int(datetime(2025, 3, 14, tzinfo=timezone.utc).timestamp())

    def __init__(self, domain: str = DOMAIN, scope: Optional[str] = None) -> None:
        self.scope_hash = service_scope_hash(domain)
        self.subscope_hash = service_subscope_hash(scope) if scope else 0
        self.dsc_out = 0xD5C0
        self.id_data_out = 0x1DA7A
        self.integrity_out = 0x17E6

    def base(self, *, current_date: Optional[int] = None) -> List[ProofResult]:
        date = self.today if current_date is None else current_date
        return [
            ProofResult(
                "sig_check_dsc_tbs_700_rsa_pkcs_4096_sha256",
                public_inputs=(self.certificate_root, self.dsc_out),
            ),
            ProofResult(
                "sig_check_id_data_tbs_700_rsa_pkcs_2048_sha256",
                public_inputs=(self.dsc_out, self.id_data_out),
            ),
            ProofResult(
                "data_check_integrity_sa_sha256_dg_sha256",
                public_inputs=(self.id_data_out, date, self.integrity_out),
            ),
        ]

    def disclosure(
        self,
        name: str,
        ci: CommittedInput,
        *,
        current_date: Optional[int] = None,
        nullifier_type: int = NullifierKind.NON_SALTED,
        commitment_in: Optional[int] = None,
    ) -> ProofResult:
        pc = parameter_commitment(ci, evm=name.endswith("_evm"))
        return ProofResult(
            name,
            public_inputs=(
                self.integrity_out if commitment_in is None else commitment_in,
                self.today if current_date is None else current_date,
                self.scope_hash,
                self.subscope_hash,
                pc,
                int(nullifier_type),
                self.nullifier,
            ),
            committed_inputs={ci.kind: ci},
        )

    def outer(
        self,
        inputs: Sequence[CommittedInput],
        *,
        evm: bool = False,
        current_date: Optional[int] = None,
        nullifier_type: int = NullifierKind.NON_SALTED,
    ) -> ProofResult:
        pcs = [parameter_commitment(ci, evm=evm) for ci in inputs]
        name = f"outer{'_evm' if evm else ''}_count_{len(pcs) + 3}"
        return ProofResult(
            name,
            public_inputs=(
                self.certificate_root,
                self.circuit_root,
                self.today if current_date is None else current_date,
                self.scope_hash,
                self.subscope_hash,
                *pcs,
                int(nullifier_type),
                self.nullifier,
            ),
            committed_inputs={ci.kind: ci for ci in inputs},
        )


# ---------- FIXTURES ----------

@pytest.fixture
def bundle() -> BundleBuilder:
    return BundleBuilder()


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry(
        valid=[
            (CERTIFICATE_REGISTRY_ID, BundleBuilder.certificate_root),
            (CIRCUIT_REGISTRY_ID, BundleBuilder.circuit_root),
        ]
    )


@pytest.fixture
def verifier_config() -> VerifierConfig:
    return VerifierConfig(domain=DOMAIN)


@pytest.fixture
def validator(registry: FakeRegistry, verifier_config: VerifierConfig) -> ProofChainValidator:
    return ProofChainValidator(registry, verifier_config)


@pytest.fixture
def passport_mrz() -> bytes:
    """TD3 MRZ from the ICAO 9303 specimen, padded to the 90 disclosed bytes."""
    line1 = "P<UTOERIKSSON<<ANNA<MARIA<<<<<<<<<<<<<<<<<<<"
    line2 = "L898902C36UTO7408122F1204159ZE184226B<<<<<10"
    assert len(line1) == len(line2) == 44
    return (line1 + line2).encode("ascii") + b"\x00\x00"
