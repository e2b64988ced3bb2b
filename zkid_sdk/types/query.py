"""
Relying-party query and the holder's query result.

Both documents arrive as JSON and are parsed with Pydantic. The validator
never trusts a `result` flag in `QueryResult`: it re-derives each claim from
the committed inputs of the proofs and checks the asserted values against it.

Constraint keys follow the wire format (`eq`, `gte`, `gt`, `lte`, `lt`,
`range`, `in`, `out`, `disclose`); `in` is exposed as `in_` in Python.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .proofs import BoundData, chain_id_from

DOCUMENT_FIELDS: Tuple[str, ...] = (
    "age",
    "birthdate",
    "expiry_date",
    "nationality",
    "issuing_country",
    "document_type",
    "document_number",
    "gender",
    "firstname",
    "lastname",
    "fullname",
)

CONSTRAINT_KEYS: Tuple[str, ...] = ("eq", "gte", "gt", "lte", "lt", "range", "in_", "out", "disclose")


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")


# --------------------------------- query ---------------------------------


class ClaimConstraint(_Model):
    """Constraints requested for one document field. Each is independently optional."""

    eq: Any = None
    gte: Any = None
    gt: Any = None
    lte: Any = None
    lt: Any = None
    range: Optional[Tuple[Any, Any]] = None
    in_: Optional[List[Any]] = Field(default=None, alias="in")
    out: Optional[List[Any]] = None
    disclose: Optional[bool] = None

    def is_set(self) -> bool:
        return any(getattr(self, k) not in (None, False) for k in CONSTRAINT_KEYS)


class BoundDataRequest(_Model):
    user_address: Optional[str] = None
    chain: Optional[int] = None
    custom_data: Optional[str] = None

    @field_validator("chain", mode="before")
    @classmethod
    def _chain(cls, v: Any) -> Optional[int]:
        return chain_id_from(v)

    def to_bound_data(self) -> BoundData:
        return BoundData(self.user_address, self.chain, self.custom_data)


class SanctionsConfig(_Model):
    countries: Any = None
    lists: Any = None
    strict: bool = False


class FacematchConfig(_Model):
    mode: str = "regular"


class Query(_Model):
    age: Optional[ClaimConstraint] = None
    birthdate: Optional[ClaimConstraint] = None
    expiry_date: Optional[ClaimConstraint] = None
    nationality: Optional[ClaimConstraint] = None
    issuing_country: Optional[ClaimConstraint] = None
    document_type: Optional[ClaimConstraint] = None
    document_number: Optional[ClaimConstraint] = None
    gender: Optional[ClaimConstraint] = None
    firstname: Optional[ClaimConstraint] = None
    lastname: Optional[ClaimConstraint] = None
    fullname: Optional[ClaimConstraint] = None
    bind: Optional[BoundDataRequest] = None
    sanctions: Optional[SanctionsConfig] = None
    facematch: Optional[FacematchConfig] = None

    def requested(self) -> Dict[str, Any]:
        """Field name -> request, for every field the relying party asked about."""
        out: Dict[str, Any] = {}
        for name in DOCUMENT_FIELDS:
            c = getattr(self, name)
            if c is not None and c.is_set():
                out[name] = c
        for name in ("bind", "sanctions", "facematch"):
            v = getattr(self, name)
            if v is not None:
                out[name] = v
        return out


# ------------------------------ query result ------------------------------


class ConstraintResult(_Model):
    expected: Any = None
    result: Any = None


class FieldResult(_Model):
    eq: Optional[ConstraintResult] = None
    gte: Optional[ConstraintResult] = None
    gt: Optional[ConstraintResult] = None
    lte: Optional[ConstraintResult] = None
    lt: Optional[ConstraintResult] = None
    range: Optional[ConstraintResult] = None
    in_: Optional[ConstraintResult] = Field(default=None, alias="in")
    out: Optional[ConstraintResult] = None
    disclose: Optional[ConstraintResult] = None

    def items(self) -> List[Tuple[str, ConstraintResult]]:
        return [(k, getattr(self, k)) for k in CONSTRAINT_KEYS if getattr(self, k) is not None]


class SanctionsResult(_Model):
    passed: bool = False
    is_strict: bool = Field(default=False, alias="isStrict")


class FacematchResult(_Model):
    mode: str = "regular"
    passed: bool = False


class QueryResult(_Model):
    age: Optional[FieldResult] = None
    birthdate: Optional[FieldResult] = None
    expiry_date: Optional[FieldResult] = None
    nationality: Optional[FieldResult] = None
    issuing_country: Optional[FieldResult] = None
    document_type: Optional[FieldResult] = None
    document_number: Optional[FieldResult] = None
    gender: Optional[FieldResult] = None
    firstname: Optional[FieldResult] = None
    lastname: Optional[FieldResult] = None
    fullname: Optional[FieldResult] = None
    bind: Optional[BoundDataRequest] = None
    sanctions: Optional[SanctionsResult] = None
    facematch: Optional[FacematchResult] = None

    def fields(self) -> Dict[str, FieldResult]:
        return {n: getattr(self, n) for n in DOCUMENT_FIELDS if getattr(self, n) is not None}


__all__ = [
    "DOCUMENT_FIELDS",
    "CONSTRAINT_KEYS",
    "ClaimConstraint",
    "BoundDataRequest",
    "SanctionsConfig",
    "FacematchConfig",
    "Query",
    "ConstraintResult",
    "FieldResult",
    "SanctionsResult",
    "FacematchResult",
    "QueryResult",
]
