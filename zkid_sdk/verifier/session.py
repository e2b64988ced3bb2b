"""
One verification request, from the relying party's query to the verdict.

A `Session` owns everything that belongs to a single request: the query, the
proofs as they arrive from the holder's device, the holder's query result and
a count of proofs the device reported as failed. Sessions are plain values;
callers keep them in whatever store they like and pass them around
explicitly.

Lifecycle::

    PENDING --add_proof/record_failure/set_result--> PENDING
    PENDING --verify()--> VERIFYING --> COMPLETED
    PENDING --cancel()--> CANCELLED
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, List, Mapping, Optional, Union

from ..config import VerifierConfig
from ..constants import DEFAULT_VALIDITY
from ..errors import SessionError
from ..types.proofs import ProofResult
from ..types.query import Query, QueryResult
from .chain import ProofChainValidator, VerificationVerdict

log = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    PENDING = "pending"
    VERIFYING = "verifying"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass
class Session:
    domain: str
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    scope: Optional[str] = None
    validity: int = DEFAULT_VALIDITY
    dev_mode: bool = False
    query: Optional[Query] = None
    proofs: List[ProofResult] = field(default_factory=list)
    result: Optional[QueryResult] = None
    failed_proof_count: int = 0
    status: SessionStatus = SessionStatus.PENDING
    verdict: Optional[VerificationVerdict] = None

    def __post_init__(self) -> None:
        if isinstance(self.query, Mapping):
            self.query = Query.model_validate(self.query)

    def _require_pending(self, action: str) -> None:
        if self.status is not SessionStatus.PENDING:
            raise SessionError(f"cannot {action} a {self.status.value} session", request_id=self.request_id)

    def add_proof(self, proof: Union[ProofResult, Mapping[str, Any]]) -> ProofResult:
        self._require_pending("add a proof to")
        p = proof if isinstance(proof, ProofResult) else ProofResult.from_dict(proof)
        self.proofs.append(p)
        log.debug("session %s: proof %s received (%d so far)", self.request_id, p.name, len(self.proofs))
        return p

    def record_failure(self, reason: Optional[str] = None) -> None:
        """The holder's device failed to generate one proof."""
        self._require_pending("record a failure on")
        self.failed_proof_count += 1
        log.warning("session %s: proof generation failed (%s)", self.request_id, reason or "no reason given")

    def set_result(self, result: Union[QueryResult, Mapping[str, Any]]) -> None:
        self._require_pending("set the result of")
        self.result = result if isinstance(result, QueryResult) else QueryResult.model_validate(result)

    def cancel(self) -> None:
        if self.status in (SessionStatus.COMPLETED, SessionStatus.CANCELLED):
            return
        self.status = SessionStatus.CANCELLED
        self.proofs.clear()
        self.result = None
        log.info("session %s cancelled", self.request_id)

    @property
    def expected_proof_count(self) -> Optional[int]:
        totals = {p.total for p in self.proofs if p.total is not None}
        return max(totals) if totals else None

    @property
    def ready(self) -> bool:
        """All expected proofs are in (or accounted for as failed) and the result is set."""
        if self.status is not SessionStatus.PENDING or self.result is None or not self.proofs:
            return False
        expected = self.expected_proof_count
        return expected is None or len(self.proofs) + self.failed_proof_count >= expected

    def verifier_config(self, base: Optional[VerifierConfig] = None) -> VerifierConfig:
        if base is None:
            return VerifierConfig(domain=self.domain, scope=self.scope, validity=self.validity, dev_mode=self.dev_mode)
        return replace(base, domain=self.domain, scope=self.scope, validity=self.validity, dev_mode=self.dev_mode)

    async def verify(self, validator: ProofChainValidator, *, now: Optional[datetime] = None) -> VerificationVerdict:
        """
        Verify the collected proofs and close the session.

        The session's domain, scope, validity and dev mode override those of
        the validator's config. Raises SessionError when the session is not
        pending or has no query result yet.
        """
        self._require_pending("verify")
        if self.result is None:
            raise SessionError("no query result has been received", request_id=self.request_id)
        self.status = SessionStatus.VERIFYING
        try:
            verdict = await validator.verify(
                list(self.proofs),
                self.result,
                self.query,
                now=now,
                config=self.verifier_config(validator.config),
            )
        except BaseException:
            self.status = SessionStatus.PENDING
            raise
        self.verdict = verdict
        self.status = SessionStatus.COMPLETED
        self.proofs.clear()
        log.info("session %s completed: verified=%s", self.request_id, verdict.verified)
        return verdict


__all__ = ["Session", "SessionStatus"]
