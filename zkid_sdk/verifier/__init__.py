from .chain import ProofChainValidator, VerificationVerdict, verdict_errors
from .checks import QUERY_CHECKS
from .report import ConstraintError, VerificationReport
from .scope import normalize_domain, service_scope_hash, service_subscope_hash
from .session import Session, SessionStatus

__all__ = [
    "ProofChainValidator",
    "VerificationVerdict",
    "verdict_errors",
    "QUERY_CHECKS",
    "ConstraintError",
    "VerificationReport",
    "normalize_domain",
    "service_scope_hash",
    "service_subscope_hash",
    "Session",
    "SessionStatus",
]
