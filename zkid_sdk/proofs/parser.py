"""
Proof names, canonical ordering and public-input layouts.

A proof's name is parsed once into a `ProofName` (stage, claim kind, EVM
flag, outer subproof count); everything downstream dispatches on that value
instead of re-inspecting the string.

Public inputs are the leading 32-byte big-endian words of the proof bytes.
Their layout per stage:

    sig_check_dsc          [certificate_root, commitment_out]
    sig_check_id_data      [commitment_in, commitment_out]
    data_check_integrity   [commitment_in, current_date, commitment_out]
    disclosure stages      [commitment_in, current_date, service_scope,
                            service_subscope, param_commitment,
                            nullifier_type, nullifier]
    outer_count_N          [certificate_root, circuit_root, current_date,
                            service_scope, service_subscope,
                            *param_commitments (N - 3),
                            nullifier_type, nullifier]
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple, TypeVar, Union

from ..errors import ProofFormatError
from ..types.proofs import ClaimKind, ProofResult
from ..utils.bytes import BytesLike, ensure_bytes, split_words

P = TypeVar("P")

PROOF_ORDER: Tuple[str, ...] = (
    "sig_check_dsc",
    "sig_check_id_data",
    "data_check_integrity",
    "disclose_bytes",
    "compare_age",
    "compare_birthdate",
    "compare_expiry",
    "exclusion_check_nationality",
    "inclusion_check_nationality",
    "exclusion_check_issuing_country",
    "inclusion_check_issuing_country",
    "bind",
    "exclusion_check_sanctions",
    "facematch",
)

CLAIM_PREFIXES: Dict[str, ClaimKind] = {
    "disclose_bytes": ClaimKind.DISCLOSE,
    "compare_age": ClaimKind.AGE,
    "compare_birthdate": ClaimKind.BIRTHDATE,
    "compare_expiry": ClaimKind.EXPIRY_DATE,
    "exclusion_check_nationality": ClaimKind.NATIONALITY_EXCLUSION,
    "inclusion_check_nationality": ClaimKind.NATIONALITY_INCLUSION,
    "exclusion_check_issuing_country": ClaimKind.ISSUING_COUNTRY_EXCLUSION,
    "inclusion_check_issuing_country": ClaimKind.ISSUING_COUNTRY_INCLUSION,
    "bind": ClaimKind.BIND,
    "exclusion_check_sanctions": ClaimKind.SANCTIONS_EXCLUSION,
    "facematch": ClaimKind.FACEMATCH,
}

OUTER_PREFIX = "outer"
# Public inputs of an outer proof besides its param commitments
OUTER_FIXED_INPUTS = 7
# Subproofs of an outer proof that carry no param commitment (dsc, id data, integrity)
OUTER_BASE_SUBPROOFS = 3

_OUTER_RE = re.compile(r"^outer(_evm)?_count_(\d+)$")


class Stage(str, Enum):
    DSC = "dsc"
    ID_DATA = "id_data"
    INTEGRITY = "integrity"
    DISCLOSURE = "disclosure"
    OUTER = "outer"
    UNKNOWN = "unknown"


_STAGE_PREFIXES = {
    "sig_check_dsc": Stage.DSC,
    "sig_check_id_data": Stage.ID_DATA,
    "data_check_integrity": Stage.INTEGRITY,
}


@dataclass(frozen=True)
class ProofName:
    raw: str
    stage: Stage
    priority: int
    claim_kind: Optional[ClaimKind] = None
    evm: bool = False
    subproof_count: Optional[int] = None

    @classmethod
    def parse(cls, name: str) -> "ProofName":
        """Never raises: names that match no known prefix parse as Stage.UNKNOWN."""
        evm = name.endswith("_evm") or "_evm_" in name
        if name.startswith(OUTER_PREFIX):
            m = _OUTER_RE.match(name)
            count = int(m.group(2)) if m else None
            return cls(name, Stage.OUTER, len(PROOF_ORDER), evm=evm, subproof_count=count)
        for priority, prefix in enumerate(PROOF_ORDER):
            if name.startswith(prefix):
                if prefix in _STAGE_PREFIXES:
                    return cls(name, _STAGE_PREFIXES[prefix], priority, evm=evm)
                return cls(name, Stage.DISCLOSURE, priority, claim_kind=CLAIM_PREFIXES[prefix], evm=evm)
        return cls(name, Stage.UNKNOWN, len(PROOF_ORDER), evm=evm)

    @property
    def prefix(self) -> str:
        """The PROOF_ORDER entry this name matched, "outer", or the raw name."""
        if self.priority < len(PROOF_ORDER):
            return PROOF_ORDER[self.priority]
        return OUTER_PREFIX if self.is_outer else self.raw

    @property
    def is_disclosure(self) -> bool:
        return self.stage is Stage.DISCLOSURE

    @property
    def is_outer(self) -> bool:
        return self.stage is Stage.OUTER

    @property
    def param_commitment_count(self) -> Optional[int]:
        if self.subproof_count is None:
            return None
        return self.subproof_count - OUTER_BASE_SUBPROOFS

    @property
    def public_input_count(self) -> int:
        if self.stage in (Stage.DSC, Stage.ID_DATA):
            return 2
        if self.stage is Stage.INTEGRITY:
            return 3
        if self.stage is Stage.DISCLOSURE:
            return 7
        if self.stage is Stage.OUTER and self.subproof_count is not None:
            if self.subproof_count < OUTER_BASE_SUBPROOFS:
                raise ProofFormatError(f"outer proof over {self.subproof_count} subproofs", name=self.raw)
            return OUTER_FIXED_INPUTS + self.subproof_count - OUTER_BASE_SUBPROOFS
        raise ProofFormatError("no public input layout for this proof name", name=self.raw)


def canonical_sort(proofs: Sequence[P], *, key=lambda p: p.name) -> List[P]:
    """Stable sort by the first matching prefix in PROOF_ORDER; unmatched names last."""
    return sorted(proofs, key=lambda p: ProofName.parse(key(p)).priority)


# ---------------------------------------------------------------------------
# Proof bytes and public inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProofData:
    public_inputs: Tuple[int, ...]
    proof: Tuple[bytes, ...]


def parse_proof_bytes(proof: Union[str, BytesLike], n_public_inputs: int, *, name: Optional[str] = None) -> ProofData:
    """
    Split raw proof bytes into `n_public_inputs` leading public inputs and the
    proof body, both in 32-byte words.
    """
    try:
        data = ensure_bytes(proof)
    except (TypeError, ValueError) as e:
        raise ProofFormatError(f"proof is not valid hex: {e}", name=name) from e
    if len(data) % 32 != 0:
        raise ProofFormatError(f"proof length {len(data)} is not a multiple of 32", name=name)
    words = split_words(data, 32)
    if len(words) < n_public_inputs:
        raise ProofFormatError(
            f"proof has {len(words)} words, fewer than {n_public_inputs} public inputs", name=name
        )
    return ProofData(
        public_inputs=tuple(int.from_bytes(w, "big") for w in words[:n_public_inputs]),
        proof=tuple(words[n_public_inputs:]),
    )


_SLOTS: Dict[Stage, Dict[str, int]] = {
    Stage.DSC: {"certificate_root": 0, "commitment_out": 1},
    Stage.ID_DATA: {"commitment_in": 0, "commitment_out": 1},
    Stage.INTEGRITY: {"commitment_in": 0, "current_date": 1, "commitment_out": 2},
    Stage.DISCLOSURE: {
        "commitment_in": 0,
        "current_date": 1,
        "service_scope": 2,
        "service_subscope": 3,
        "param_commitment": 4,
        "nullifier_type": 5,
        "nullifier": 6,
    },
    Stage.OUTER: {
        "certificate_root": 0,
        "circuit_root": 1,
        "current_date": 2,
        "service_scope": 3,
        "service_subscope": 4,
        "nullifier_type": -2,
        "nullifier": -1,
    },
}


@dataclass(frozen=True)
class PublicInputs:
    """Named view over the public inputs of one proof."""

    name: ProofName
    values: Tuple[int, ...]

    def get(self, slot: str) -> Optional[int]:
        idx = _SLOTS.get(self.name.stage, {}).get(slot)
        if idx is None:
            return None
        return self.values[idx]

    @property
    def commitment_in(self) -> Optional[int]:
        return self.get("commitment_in")

    @property
    def commitment_out(self) -> Optional[int]:
        return self.get("commitment_out")

    @property
    def current_date(self) -> Optional[int]:
        return self.get("current_date")

    @property
    def service_scope(self) -> Optional[int]:
        return self.get("service_scope")

    @property
    def service_subscope(self) -> Optional[int]:
        return self.get("service_subscope")

    @property
    def certificate_root(self) -> Optional[int]:
        return self.get("certificate_root")

    @property
    def circuit_root(self) -> Optional[int]:
        return self.get("circuit_root")

    @property
    def nullifier_type(self) -> Optional[int]:
        return self.get("nullifier_type")

    @property
    def nullifier(self) -> Optional[int]:
        return self.get("nullifier")

    @property
    def param_commitment(self) -> Optional[int]:
        return self.get("param_commitment")

    @property
    def param_commitments(self) -> Tuple[int, ...]:
        if self.name.is_outer:
            return self.values[5:-2]
        pc = self.param_commitment
        return (pc,) if pc is not None else ()


def public_inputs_of(proof: ProofResult, name: Optional[ProofName] = None) -> PublicInputs:
    """
    Public inputs of a proof, from its pre-split list or its raw bytes.

    Raises ProofFormatError when the count does not match the stage layout.
    """
    name = name or ProofName.parse(proof.name)
    expected = name.public_input_count
    if proof.public_inputs is not None:
        values = tuple(proof.public_inputs)
        if len(values) != expected:
            raise ProofFormatError(
                f"expected {expected} public inputs, got {len(values)}", name=proof.name
            )
        return PublicInputs(name, values)
    if proof.proof is None:
        raise ProofFormatError("proof carries neither bytes nor public inputs", name=proof.name)
    return PublicInputs(name, parse_proof_bytes(proof.proof, expected, name=proof.name).public_inputs)


__all__ = [
    "PROOF_ORDER",
    "CLAIM_PREFIXES",
    "Stage",
    "ProofName",
    "canonical_sort",
    "ProofData",
    "parse_proof_bytes",
    "PublicInputs",
    "public_inputs_of",
]
