"""
Structured accumulation of verification failures.

Failures are data: every check records what it expected and what it got under
a (field, constraint) key, and processing carries on. A report that has
recorded anything can never turn back into a success.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConstraintError:
    expected: str
    received: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"expected": self.expected, "received": self.received, "message": self.message}


def _fmt(value: Any) -> str:
    if value is None:
        return "none"
    if isinstance(value, int) and not isinstance(value, bool):
        return hex(value) if value > 0xFFFFFFFF else str(value)
    return str(value)


@dataclass
class VerificationReport:
    """Per-call error sink. Never shared between verification calls."""

    errors: Dict[str, Dict[str, List[ConstraintError]]] = field(default_factory=dict)

    def add(self, field_key: str, constraint: str, *, expected: Any, received: Any, message: str) -> None:
        log.warning("%s.%s: %s (expected %s, got %s)", field_key, constraint, message, _fmt(expected), _fmt(received))
        err = ConstraintError(_fmt(expected), _fmt(received), message)
        self.errors.setdefault(field_key, {}).setdefault(constraint, []).append(err)

    def merge(self, other: "VerificationReport") -> None:
        for fk, constraints in other.errors.items():
            for ck, errs in constraints.items():
                self.errors.setdefault(fk, {}).setdefault(ck, []).extend(errs)

    @property
    def ok(self) -> bool:
        return not self.errors

    def __len__(self) -> int:
        return sum(len(errs) for c in self.errors.values() for errs in c.values())

    def messages(self) -> List[str]:
        return [e.message for c in self.errors.values() for errs in c.values() for e in errs]

    def to_dict(self) -> Dict[str, Dict[str, List[Dict[str, str]]]]:
        return {
            fk: {ck: [e.to_dict() for e in errs] for ck, errs in constraints.items()}
            for fk, constraints in self.errors.items()
        }


__all__ = ["ConstraintError", "VerificationReport"]
