"""
Proof-chain verification.

`ProofChainValidator.verify` turns a bundle of proofs plus the holder's query
result into a `VerificationVerdict`. Nothing in here raises for a bad proof:
every failed check is recorded in a per-call `VerificationReport` and the walk
continues, so the caller sees every reason a bundle was rejected.

Per-stage bundles are walked in canonical order (see proofs.parser):

    sig_check_dsc -> sig_check_id_data -> data_check_integrity -> disclosures

Each stage's commitment-in must equal the previous stage's commitment-out;
every disclosure stage links to the integrity stage. An outer proof replaces
the chain and exposes the parameter commitments of every disclosure at once.

Registry roots are checked last, concurrently, against the on-chain registry.
A registry that cannot be reached counts as an invalid root.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import (Any, Dict, Iterable, List, Mapping, Optional, Protocol,
                    Set, Tuple, Union)

from pydantic import ValidationError

from ..commitments.codec import parameter_commitment
from ..config import VerifierConfig
from ..constants import CERTIFICATE_REGISTRY_ID, CIRCUIT_REGISTRY_ID
from ..errors import CommitmentError, ProofFormatError, ZkidError
from ..proofs.parser import (ProofName, PublicInputs, Stage, canonical_sort,
                             public_inputs_of)
from ..types.proofs import (ClaimKind, CommittedInput, Nullifier,
                            NullifierKind, ProofResult)
from ..types.query import Query, QueryResult
from ..utils.bytes import normalise_hash
from .checks import QUERY_CHECKS, CheckContext, field_key, unproved_claims
from .report import VerificationReport
from .scope import service_scope_hash, service_subscope_hash

log = logging.getLogger(__name__)

OUTER_KEY = "outer"


class RootValidator(Protocol):
    async def is_root_valid(self, registry_id: int, root: Any, timestamp: Any = None) -> bool: ...


@dataclass
class VerificationVerdict:
    verified: bool
    unique_identifier: Optional[int] = None
    unique_identifier_kind: Optional[NullifierKind] = None
    field_errors: Dict[str, Dict[str, List[Dict[str, str]]]] = field(default_factory=dict)

    @property
    def nullifier(self) -> Optional[Nullifier]:
        if self.unique_identifier is None or self.unique_identifier_kind is None:
            return None
        return Nullifier(self.unique_identifier, self.unique_identifier_kind)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "verified": self.verified,
            "uniqueIdentifier": str(self.unique_identifier) if self.unique_identifier is not None else None,
            "uniqueIdentifierType": int(self.unique_identifier_kind) if self.unique_identifier_kind is not None else None,
            "queryResultErrors": self.field_errors,
        }


@dataclass(frozen=True)
class _RootCheck:
    field_key: str
    constraint: str
    registry_id: int
    root: int


@dataclass
class _Walk:
    """State of one verification call."""

    report: VerificationReport
    ctx: CheckContext
    config: VerifierConfig
    now: datetime
    commitment_out: Optional[int] = None
    commitment_out_stage: Optional[str] = None
    integrity_out: Optional[int] = None
    nullifier: Optional[int] = None
    nullifier_kind: Optional[NullifierKind] = None
    proved: Set[ClaimKind] = field(default_factory=set)
    root_checks: List[_RootCheck] = field(default_factory=list)

    @property
    def today(self) -> date:
        return self.ctx.today


def _midnight(d: date) -> int:
    return int(datetime(d.year, d.month, d.day, tzinfo=timezone.utc).timestamp())


def _utc_date(ts: int) -> Optional[date]:
    try:
        return datetime.fromtimestamp(ts, tz=timezone.utc).date()
    except (OverflowError, ValueError, OSError):
        return None


def _proof_key(raw: Mapping[str, Any]) -> str:
    name = raw.get("name") if isinstance(raw, Mapping) else None
    if not isinstance(name, str):
        return "proofs"
    parsed = ProofName.parse(name)
    return field_key(parsed.claim_kind) if parsed.is_disclosure else parsed.prefix


def _coerce_proofs(
    proofs: Iterable[Union[ProofResult, Mapping[str, Any]]], report: VerificationReport
) -> List[ProofResult]:
    """Typed proofs; a wire proof that does not parse is recorded as a format error and skipped."""
    out: List[ProofResult] = []
    for p in proofs:
        if isinstance(p, ProofResult):
            out.append(p)
            continue
        try:
            out.append(ProofResult.from_dict(p))
        except (ZkidError, KeyError, TypeError, ValueError) as e:
            key = _proof_key(p)
            received = p.get("name") if isinstance(p, Mapping) else type(p).__name__
            report.add(key, "format", expected="well-formed proof", received=received,
                       message=f"Proof could not be parsed: {e}")
    return out


class ProofChainValidator:
    """
    Verifies proof bundles for one relying party.

    `registry` is anything with an async `is_root_valid(registry_id, root,
    timestamp)`: a `RegistryClient`, a `RegistryRpcClient` or a test double.
    A validator holds no per-call state and may serve concurrent calls.
    """

    def __init__(self, registry: RootValidator, config: VerifierConfig) -> None:
        self._registry = registry
        self._config = config

    @property
    def config(self) -> VerifierConfig:
        return self._config

    async def verify(
        self,
        proofs: Iterable[Union[ProofResult, Mapping[str, Any]]],
        query_result: Union[QueryResult, Mapping[str, Any]],
        query: Optional[Union[Query, Mapping[str, Any]]] = None,
        *,
        now: Optional[datetime] = None,
        config: Optional[VerifierConfig] = None,
    ) -> VerificationVerdict:
        cfg = config or self._config
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        report = VerificationReport()
        try:
            result = query_result if isinstance(query_result, QueryResult) else QueryResult.model_validate(query_result)
        except ValidationError as e:
            report.add("query_result", "format", expected="well-formed query result", received=None,
                       message=f"Query result could not be parsed: {e.error_count()} errors")
            return VerificationVerdict(verified=False, field_errors=report.to_dict())
        if query is not None and not isinstance(query, Query):
            query = Query.model_validate(query)

        ctx = CheckContext(result=result, config=cfg, report=report, today=now.astimezone(timezone.utc).date(), query=query)
        walk = _Walk(report=report, ctx=ctx, config=cfg, now=now)

        bundle = canonical_sort(_coerce_proofs(proofs, report))
        if not bundle:
            report.add("proofs", "count", expected="at least one proof", received=0, message="No proofs to verify")
            return VerificationVerdict(verified=False, field_errors=report.to_dict())

        outers = [p for p in bundle if ProofName.parse(p.name).is_outer]
        if outers:
            if len(outers) != len(bundle):
                log.warning("ignoring %d per-stage proofs sent alongside an outer proof", len(bundle) - len(outers))
            for proof in outers:
                self._outer(proof, walk)
        else:
            for proof in bundle:
                self._stage(proof, walk)

        await self._check_roots(walk)
        if query is not None:
            unproved_claims(query, walk.proved, report)

        verified = report.ok
        verdict = VerificationVerdict(
            verified=verified,
            unique_identifier=walk.nullifier if verified else None,
            unique_identifier_kind=walk.nullifier_kind if verified else None,
            field_errors=report.to_dict(),
        )
        if verified:
            log.info("proof bundle verified (%d proofs, nullifier kind %s)", len(bundle), walk.nullifier_kind)
        else:
            log.info("proof bundle rejected with %d errors", len(report))
        return verdict

    # ---------- per-stage branch ----------

    def _stage(self, proof: ProofResult, walk: _Walk) -> None:
        name = ProofName.parse(proof.name)
        stage_key = field_key(name.claim_kind) if name.is_disclosure else name.prefix
        try:
            pi = public_inputs_of(proof, name)
        except ProofFormatError as e:
            walk.report.add(stage_key, "format", expected="well-formed proof", received=proof.name, message=e.message)
            return

        if name.stage is Stage.DSC:
            walk.root_checks.append(_RootCheck(stage_key, "certificate", CERTIFICATE_REGISTRY_ID, pi.certificate_root))
        elif name.stage in (Stage.ID_DATA, Stage.INTEGRITY):
            self._link(walk, stage_key, pi.commitment_in, walk.commitment_out, walk.commitment_out_stage)
        if name.stage in (Stage.DSC, Stage.ID_DATA, Stage.INTEGRITY):
            walk.commitment_out = pi.commitment_out
            walk.commitment_out_stage = stage_key
        if name.stage is Stage.INTEGRITY:
            walk.integrity_out = pi.commitment_out
            self._check_validity(walk, stage_key, pi.current_date)
        elif name.is_disclosure:
            self._disclosure(proof, name, pi, stage_key, walk)

    def _link(self, walk: _Walk, stage: str, commitment_in: Optional[int], expected: Optional[int], upstream: Optional[str]) -> None:
        if expected is None or commitment_in != expected:
            walk.report.add(
                stage, "commitment", expected=expected, received=commitment_in,
                message=f"Commitment in of {stage} does not match the commitment out of {upstream or 'a missing upstream stage'}",
            )

    def _disclosure(self, proof: ProofResult, name: ProofName, pi: PublicInputs, key: str, walk: _Walk) -> None:
        kind = name.claim_kind
        upstream = "data_check_integrity" if walk.integrity_out is not None else None
        self._link(walk, key, pi.commitment_in, walk.integrity_out, upstream)

        ci = proof.committed_inputs.get(kind)
        if ci is None:
            walk.report.add(key, "commitment", expected=f"{proof.name} committed inputs", received=None,
                            message="The proof carries no committed inputs for its claim")
        else:
            calculated = self._commitment(walk, key, ci, evm=name.evm)
            if calculated is not None and calculated != pi.param_commitment:
                walk.report.add(key, "commitment", expected=calculated, received=pi.param_commitment,
                                message="The committed inputs do not match the parameter commitment of the proof")
            walk.proved.add(kind)
            QUERY_CHECKS[kind](ci, walk.ctx)

        if kind.is_date_bearing:
            self._check_freshness(walk, key, pi.current_date)
        self._check_scope(walk, key, pi)
        self._take_nullifier(walk, key, pi)

    # ---------- outer branch ----------

    def _outer(self, proof: ProofResult, walk: _Walk) -> None:
        name = ProofName.parse(proof.name)
        try:
            pi = public_inputs_of(proof, name)
        except ProofFormatError as e:
            walk.report.add(OUTER_KEY, "format", expected="well-formed outer proof", received=proof.name, message=e.message)
            return

        walk.root_checks.append(_RootCheck(OUTER_KEY, "certificate", CERTIFICATE_REGISTRY_ID, pi.certificate_root))
        walk.root_checks.append(_RootCheck(OUTER_KEY, "circuit", CIRCUIT_REGISTRY_ID, pi.circuit_root))
        self._check_validity(walk, OUTER_KEY, pi.current_date)

        exposed = pi.param_commitments
        inputs = proof.committed_inputs
        if len(inputs) != len(exposed):
            walk.report.add(
                OUTER_KEY, "commitment", expected=len(exposed), received=len(inputs),
                message="The proof does not verify all the requested conditions and information",
            )
        members = set(exposed)
        for kind, ci in inputs.items():
            key = field_key(kind)
            calculated = self._commitment(walk, key, ci, evm=name.evm)
            if calculated is not None and calculated not in members:
                walk.report.add(key, "commitment", expected=calculated, received=", ".join(str(c) for c in exposed),
                                message=f"This proof does not verify the {key} claim")
            walk.proved.add(kind)
            QUERY_CHECKS[kind](ci, walk.ctx)

        if any(k.is_date_bearing for k in inputs):
            self._check_freshness(walk, OUTER_KEY, pi.current_date)
        self._check_scope(walk, OUTER_KEY, pi)
        self._take_nullifier(walk, OUTER_KEY, pi)

    # ---------- shared checks ----------

    def _commitment(self, walk: _Walk, key: str, ci: CommittedInput, *, evm: bool) -> Optional[int]:
        try:
            return parameter_commitment(ci, evm=evm)
        except CommitmentError as e:
            walk.report.add(key, "commitment", expected="encodable committed inputs", received=e.kind, message=e.message)
            return None

    def _check_validity(self, walk: _Walk, key: str, current_date: Optional[int]) -> None:
        validity = walk.config.validity
        if current_date is None:
            walk.report.add(key, "date", expected="current date", received=None, message="The proof exposes no current date")
            return
        elapsed = _midnight(walk.today) - current_date
        if elapsed >= validity:
            walk.report.add(
                key, "date", expected=f"Difference: {validity} seconds", received=f"Difference: {elapsed} seconds",
                message="The date used to check the validity of the ID is older than the validity period",
            )

    def _check_freshness(self, walk: _Walk, key: str, current_date: Optional[int]) -> None:
        committed = _utc_date(current_date) if current_date is not None else None
        if committed not in (walk.today, walk.today - timedelta(days=1)):
            walk.report.add(
                key, "date", expected=walk.today.isoformat(), received=committed.isoformat() if committed else None,
                message="Current date in the proof is too old",
            )

    def _check_scope(self, walk: _Walk, key: str, pi: PublicInputs) -> None:
        cfg = walk.config
        expected = service_scope_hash(cfg.domain)
        if pi.service_scope != expected:
            walk.report.add(key, "scope", expected=f"Scope: {expected}", received=f"Scope: {pi.service_scope}",
                            message="The proof comes from a different domain than the one expected")
        if cfg.scope:
            expected_sub = service_subscope_hash(cfg.scope)
            if pi.service_subscope != expected_sub:
                walk.report.add(key, "scope", expected=f"Scope: {expected_sub}", received=f"Scope: {pi.service_subscope}",
                                message="The proof uses a different scope than the one expected")

    def _take_nullifier(self, walk: _Walk, key: str, pi: PublicInputs) -> None:
        try:
            kind = NullifierKind(pi.nullifier_type)
        except ValueError:
            walk.report.add(key, "nullifier", expected="known nullifier type", received=pi.nullifier_type,
                            message="Unknown nullifier type")
            return
        if kind.is_mock:
            if walk.config.dev_mode:
                log.warning("accepting mock nullifier (%s) from %s in dev mode", kind.name, key)
            else:
                walk.report.add(key, "nullifier", expected="non-mock nullifier", received=kind.name,
                                message="Mock proofs are only accepted in dev mode")
        walk.nullifier = pi.nullifier
        walk.nullifier_kind = kind

    async def _check_roots(self, walk: _Walk) -> None:
        if not walk.root_checks:
            return
        valid = await asyncio.gather(*(self._root_valid(rc, walk.now) for rc in walk.root_checks))
        for rc, ok in zip(walk.root_checks, valid):
            if ok:
                continue
            what = "certificate" if rc.registry_id == CERTIFICATE_REGISTRY_ID else "circuit"
            walk.report.add(
                rc.field_key, rc.constraint, expected=f"A valid {what} registry root",
                received=f"Got invalid {what} registry root: {normalise_hash(rc.root)}",
                message="The ID was signed by an unrecognized root certificate" if what == "certificate"
                else "The proof uses an unrecognized circuit",
            )

    async def _root_valid(self, rc: _RootCheck, now: datetime) -> bool:
        try:
            return bool(await self._registry.is_root_valid(rc.registry_id, rc.root, now))
        except Exception as e:  # fail closed
            log.warning("root check for registry %s failed: %s", rc.registry_id, e)
            return False


def verdict_errors(verdict: VerificationVerdict) -> List[Tuple[str, str, str]]:
    """Flat (field, constraint, message) triples, handy for logging and assertions."""
    return [
        (fk, ck, e["message"])
        for fk, constraints in verdict.field_errors.items()
        for ck, errs in constraints.items()
        for e in errs
    ]


__all__ = ["ProofChainValidator", "VerificationVerdict", "RootValidator", "verdict_errors"]
