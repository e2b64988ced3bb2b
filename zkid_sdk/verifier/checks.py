"""
Query-result cross-checks, one handler per claim kind.

The holder's device computes a `result` flag for every constraint it answers;
none of them is taken at face value. Each handler derives the ground truth
from the committed input that produced the proof's parameter commitment and
checks the asserted expectations against it:

    age / dates    asserted bounds must equal the committed bounds exactly;
                   a side with no constraint must be committed as 0
    country lists  `in` must be a subset of the committed list; `out` must be
                   a subset and the committed list strictly ascending
    disclose       eq / disclose values must match the disclosed MRZ bytes
    bind           bound data must match what was committed
    sanctions      committed root and strictness
    facematch      attestation anchors, environment and mode

`QUERY_CHECKS` maps each `ClaimKind` to its handler; `unproved_claims` flags
fields the relying party asked about that no proof covers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple

from ..config import VerifierConfig
from ..proofs.disclosure import DOCUMENT_TYPES, DisclosedData
from ..types.proofs import (AgeInput, BindInput, ClaimKind, CommittedInput,
                            CountryListInput, DateRangeInput, DiscloseInput,
                            FacematchInput, SanctionsInput)
from ..types.query import (ClaimConstraint, ConstraintResult, FieldResult,
                           Query, QueryResult)
from ..utils.bytes import to_int
from .report import VerificationReport

FIELD_KEYS: Dict[ClaimKind, str] = {
    ClaimKind.DISCLOSE: "disclose",
    ClaimKind.AGE: "age",
    ClaimKind.BIRTHDATE: "birthdate",
    ClaimKind.EXPIRY_DATE: "expiry_date",
    ClaimKind.NATIONALITY_INCLUSION: "nationality",
    ClaimKind.NATIONALITY_EXCLUSION: "nationality",
    ClaimKind.ISSUING_COUNTRY_INCLUSION: "issuing_country",
    ClaimKind.ISSUING_COUNTRY_EXCLUSION: "issuing_country",
    ClaimKind.BIND: "bind",
    ClaimKind.SANCTIONS_EXCLUSION: "sanctions",
    ClaimKind.FACEMATCH: "facematch",
}

# Document fields revealed by a disclose proof (age is proved by compare_age)
DISCLOSABLE_FIELDS: Tuple[str, ...] = (
    "document_type",
    "document_number",
    "issuing_country",
    "nationality",
    "birthdate",
    "expiry_date",
    "gender",
    "firstname",
    "lastname",
    "fullname",
)

_LOWER_KEYS = ("gte", "gt")
_UPPER_KEYS = ("lte", "lt")


def field_key(kind: ClaimKind) -> str:
    return FIELD_KEYS[kind]


@dataclass(frozen=True)
class CheckContext:
    result: QueryResult
    config: VerifierConfig
    report: VerificationReport
    today: date
    query: Optional[Query] = None


QueryCheck = Callable[[Any, CheckContext], None]


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------


def as_date(value: Any) -> Optional[date]:
    """
    Calendar date (UTC) from a date, datetime, unix timestamp, YYYYMMDD or
    ISO-8601 string. Zero or unreadable values read as None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        if value == 0:
            return None
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc).date()
        except (OverflowError, ValueError, OSError):
            return None
    if isinstance(value, str):
        s = value.strip()
        if s.isdigit():
            if len(s) == 8:
                try:
                    return date(int(s[:4]), int(s[4:6]), int(s[6:]))
                except ValueError:
                    return None
            return as_date(int(s))
        try:
            return as_date(datetime.fromisoformat(s.replace("Z", "+00:00")))
        except ValueError:
            return None
    return None


def _norm_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return " ".join(str(value).split()).lower()


def _same_value(asserted: Any, truth: Any) -> bool:
    if isinstance(truth, date):
        d = as_date(asserted)
        return d is not None and d == truth
    if truth is None:
        return asserted is None or asserted == ""
    return _norm_text(asserted) == _norm_text(truth)


def _claimed(c: Optional[ConstraintResult]) -> bool:
    """A constraint the holder claims to satisfy."""
    return c is not None and bool(c.result)


def _int_or_none(v: Any) -> Optional[int]:
    try:
        return int(v)
    except (TypeError, ValueError):
        return None


# ---------------------------------------------------------------------------
# Age
# ---------------------------------------------------------------------------


def check_age(ci: AgeInput, ctx: CheckContext) -> None:
    report = ctx.report
    fr = ctx.result.age
    if fr is None:
        report.add("age", "disclose", expected="age", received=None, message="Age is not set in the query result")
        return

    for key in _LOWER_KEYS:
        c = getattr(fr, key)
        if _claimed(c) and _int_or_none(c.expected) != ci.min_age:
            report.add(
                "age", key, expected=c.expected, received=ci.min_age,
                message=f"Age {key} bound does not match the committed minimum age",
            )
    for key in _UPPER_KEYS:
        c = getattr(fr, key)
        if _claimed(c) and _int_or_none(c.expected) != ci.max_age:
            report.add(
                "age", key, expected=c.expected, received=ci.max_age,
                message=f"Age {key} bound does not match the committed maximum age",
            )
    if _claimed(fr.range):
        lo, hi = _pair(fr.range.expected)
        if _int_or_none(lo) != ci.min_age or _int_or_none(hi) != ci.max_age:
            report.add(
                "age", "range", expected=fr.range.expected, received=[ci.min_age, ci.max_age],
                message="Age is not in the expected range",
            )
    for key in ("eq", "disclose"):
        c = getattr(fr, key)
        if c is None:
            continue
        value = c.expected if key == "eq" else c.result
        if key == "eq" and not c.result:
            continue
        if _int_or_none(value) != ci.min_age or _int_or_none(value) != ci.max_age:
            report.add(
                "age", key, expected=f"{ci.min_age}", received=value,
                message="Age does not match the committed age",
            )

    pinned = fr.eq is not None or fr.range is not None or fr.disclose is not None
    if not pinned and not any(getattr(fr, k) is not None for k in _UPPER_KEYS) and ci.max_age != 0:
        report.add("age", "disclose", expected=0, received=ci.max_age, message="Maximum age should be equal to 0")
    if not pinned and not any(getattr(fr, k) is not None for k in _LOWER_KEYS) and ci.min_age != 0:
        report.add("age", "disclose", expected=0, received=ci.min_age, message="Minimum age should be equal to 0")


def _pair(value: Any) -> Tuple[Any, Any]:
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return value[0], value[1]
    return None, None


# ---------------------------------------------------------------------------
# Birthdate / expiry date
# ---------------------------------------------------------------------------


def check_date_range(ci: DateRangeInput, ctx: CheckContext) -> None:
    key_name = field_key(ci.kind)
    label = "Birthdate" if ci.kind is ClaimKind.BIRTHDATE else "Expiry date"
    report = ctx.report
    fr: Optional[FieldResult] = getattr(ctx.result, key_name)
    if fr is None:
        report.add(key_name, "disclose", expected=key_name, received=None, message=f"{label} is not set in the query result")
        return
    min_date, max_date = as_date(ci.min_date), as_date(ci.max_date)

    for key in _LOWER_KEYS:
        c = getattr(fr, key)
        if _claimed(c) and as_date(c.expected) != min_date:
            report.add(
                key_name, key, expected=as_date(c.expected), received=min_date,
                message=f"{label} {key} bound does not match the committed minimum date",
            )
    for key in _UPPER_KEYS:
        c = getattr(fr, key)
        if _claimed(c) and as_date(c.expected) != max_date:
            report.add(
                key_name, key, expected=as_date(c.expected), received=max_date,
                message=f"{label} {key} bound does not match the committed maximum date",
            )
    if _claimed(fr.range):
        lo, hi = _pair(fr.range.expected)
        if as_date(lo) != min_date or as_date(hi) != max_date:
            report.add(
                key_name, "range", expected=fr.range.expected, received=[min_date, max_date],
                message=f"{label} is not in the expected range",
            )

    if fr.range is None and not any(getattr(fr, k) is not None for k in _UPPER_KEYS) and ci.max_date != 0:
        report.add(key_name, "disclose", expected=0, received=ci.max_date, message=f"Maximum {label.lower()} should be equal to 0")
    if fr.range is None and not any(getattr(fr, k) is not None for k in _LOWER_KEYS) and ci.min_date != 0:
        report.add(key_name, "disclose", expected=0, received=ci.min_date, message=f"Minimum {label.lower()} should be equal to 0")


# ---------------------------------------------------------------------------
# Disclosed bytes
# ---------------------------------------------------------------------------


def _disclosed_views(ci: DiscloseInput) -> List[DisclosedData]:
    # The layout is unknown unless the document type was committed
    kinds: Iterable[str] = (ci.document_type,) if ci.document_type in DOCUMENT_TYPES else DOCUMENT_TYPES
    return [DisclosedData.from_bytes(ci.disclosed_bytes, k) for k in kinds]


def check_disclose(ci: DiscloseInput, ctx: CheckContext) -> None:
    views = _disclosed_views(ci)
    for name in DISCLOSABLE_FIELDS:
        fr: Optional[FieldResult] = getattr(ctx.result, name)
        if fr is None:
            continue
        truths = [v.value(name) for v in views]
        if _claimed(fr.eq) and not any(_same_value(fr.eq.expected, t) for t in truths):
            ctx.report.add(
                name, "eq", expected=fr.eq.expected, received=_first(truths),
                message=f"{name} does not match the disclosed data",
            )
        if fr.disclose is not None and not any(_same_value(fr.disclose.result, t) for t in truths):
            ctx.report.add(
                name, "disclose", expected=fr.disclose.result, received=_first(truths),
                message=f"{name} does not match the disclosed {name} in query result",
            )


def _first(values: List[Any]) -> Any:
    return next((v for v in values if v is not None), None)


# ---------------------------------------------------------------------------
# Country lists
# ---------------------------------------------------------------------------


def check_country_list(ci: CountryListInput, ctx: CheckContext) -> None:
    name = ci.document_field
    key = "out" if ci.is_exclusion else "in_"
    wire_key = "out" if ci.is_exclusion else "in"
    what = "exclusion" if ci.is_exclusion else "inclusion"
    committed = list(ci.countries)
    fr: Optional[FieldResult] = getattr(ctx.result, name)
    c: Optional[ConstraintResult] = getattr(fr, key) if fr is not None else None

    if c is None:
        ctx.report.add(name, wire_key, expected=what, received=None, message=f"{name} {what} is not set in the query result")
    elif c.result:
        asserted = list(c.expected or [])
        if not all(code in committed for code in asserted):
            ctx.report.add(
                name, wire_key, expected=asserted, received=committed,
                message=f"{name} {what} list does not match the one from the query results",
            )

    # Exclusion circuits are only sound over a sorted list
    if ci.is_exclusion and any(committed[i] <= committed[i - 1] for i in range(1, len(committed))):
        ctx.report.add(
            name, wire_key, expected="strictly ascending country list", received=committed,
            message=f"The {name} exclusion list has not been sorted, and thus the proof cannot be trusted",
        )


# ---------------------------------------------------------------------------
# Bind / sanctions / facematch
# ---------------------------------------------------------------------------


def _addr(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    v = value.strip().lower()
    return v[2:] if v.startswith("0x") else v


def _custom(value: Optional[str]) -> Optional[str]:
    return value.strip().lower() if value is not None else None


def check_bind(ci: BindInput, ctx: CheckContext) -> None:
    asserted = ctx.result.bind
    if asserted is None:
        return
    bound = ci.data
    if _addr(asserted.user_address) != _addr(bound.user_address):
        ctx.report.add(
            "bind", "eq", expected=asserted.user_address, received=bound.user_address,
            message="Bound user address does not match the one from the query results",
        )
    if asserted.chain != bound.chain:
        ctx.report.add(
            "bind", "eq", expected=asserted.chain, received=bound.chain,
            message="Bound chain id does not match the one from the query results",
        )
    if _custom(asserted.custom_data) != _custom(bound.custom_data):
        ctx.report.add(
            "bind", "eq", expected=asserted.custom_data, received=bound.custom_data,
            message="Bound custom data does not match the one from the query results",
        )


def check_sanctions(ci: SanctionsInput, ctx: CheckContext) -> None:
    asserted = ctx.result.sanctions
    if asserted is None or not asserted.passed:
        return
    if ctx.config.sanctions_root is not None:
        expected_root = to_int(ctx.config.sanctions_root)
        if ci.root != expected_root:
            ctx.report.add("sanctions", "eq", expected=expected_root, received=ci.root, message="Invalid sanctions registry root")
    if ctx.query is not None and ctx.query.sanctions is not None:
        strict = ctx.query.sanctions.strict
    else:
        strict = asserted.is_strict
    if ci.is_strict != strict:
        ctx.report.add(
            "sanctions", "eq", expected=strict, received=ci.is_strict,
            message="Sanctions strictness does not match the one requested",
        )


def check_facematch(ci: FacematchInput, ctx: CheckContext) -> None:
    asserted = ctx.result.facematch
    if asserted is None or not asserted.passed:
        return
    cfg = ctx.config
    if ci.root_key_leaf not in cfg.trusted_root_key_leaves:
        ctx.report.add(
            "facematch", "eq", expected="trusted attestation root key", received=ci.root_key_leaf,
            message="Invalid facematch root key hash",
        )
    if ci.environment != "production":
        ctx.report.add(
            "facematch", "eq", expected="production", received=ci.environment,
            message="Invalid facematch environment, it should be production",
        )
    if ci.app_id not in cfg.trusted_app_ids:
        ctx.report.add(
            "facematch", "eq", expected="trusted app id", received=ci.app_id,
            message="Invalid facematch app id hash, the attestation should be coming from a trusted app",
        )
    mode = ctx.query.facematch.mode if ctx.query is not None and ctx.query.facematch is not None else asserted.mode
    if ci.mode != mode:
        ctx.report.add("facematch", "eq", expected=mode, received=ci.mode, message="Facematch mode does not match the one requested")


QUERY_CHECKS: Dict[ClaimKind, QueryCheck] = {
    ClaimKind.DISCLOSE: check_disclose,
    ClaimKind.AGE: check_age,
    ClaimKind.BIRTHDATE: check_date_range,
    ClaimKind.EXPIRY_DATE: check_date_range,
    ClaimKind.NATIONALITY_INCLUSION: check_country_list,
    ClaimKind.NATIONALITY_EXCLUSION: check_country_list,
    ClaimKind.ISSUING_COUNTRY_INCLUSION: check_country_list,
    ClaimKind.ISSUING_COUNTRY_EXCLUSION: check_country_list,
    ClaimKind.BIND: check_bind,
    ClaimKind.SANCTIONS_EXCLUSION: check_sanctions,
    ClaimKind.FACEMATCH: check_facematch,
}


def run_query_check(ci: CommittedInput, ctx: CheckContext) -> None:
    QUERY_CHECKS[ci.kind](ci, ctx)


# ---------------------------------------------------------------------------
# Requested but not proved
# ---------------------------------------------------------------------------

_DATE_KINDS = {"birthdate": ClaimKind.BIRTHDATE, "expiry_date": ClaimKind.EXPIRY_DATE}
_COUNTRY_KINDS = {
    "nationality": (ClaimKind.NATIONALITY_INCLUSION, ClaimKind.NATIONALITY_EXCLUSION),
    "issuing_country": (ClaimKind.ISSUING_COUNTRY_INCLUSION, ClaimKind.ISSUING_COUNTRY_EXCLUSION),
}


def required_claims(name: str, constraint: ClaimConstraint) -> List[Tuple[str, ClaimKind]]:
    """(constraint key, claim kind) pairs needed to answer one document field."""
    out: List[Tuple[str, ClaimKind]] = []
    set_keys = [k for k in ("eq", "gte", "gt", "lte", "lt", "range", "in_", "out", "disclose")
                if getattr(constraint, k) not in (None, False)]
    for k in set_keys:
        wire = "in" if k == "in_" else k
        if name == "age":
            out.append((wire, ClaimKind.AGE))
        elif name in _DATE_KINDS and k not in ("eq", "disclose"):
            out.append((wire, _DATE_KINDS[name]))
        elif name in _COUNTRY_KINDS and k in ("in_", "out"):
            inc, exc = _COUNTRY_KINDS[name]
            out.append((wire, inc if k == "in_" else exc))
        else:
            out.append((wire, ClaimKind.DISCLOSE))
    return out


def unproved_claims(query: Query, proved: Set[ClaimKind], report: VerificationReport) -> None:
    for name, request in query.requested().items():
        if name == "bind":
            needed = [("eq", ClaimKind.BIND)]
        elif name == "sanctions":
            needed = [("eq", ClaimKind.SANCTIONS_EXCLUSION)]
        elif name == "facematch":
            needed = [("eq", ClaimKind.FACEMATCH)]
        else:
            needed = required_claims(name, request)
        for constraint, kind in needed:
            if kind not in proved:
                report.add(
                    name, constraint, expected=f"{kind.name.lower()} proof", received=None,
                    message=f"The {name} claim was requested but is not proved by any proof",
                )


__all__ = [
    "FIELD_KEYS",
    "DISCLOSABLE_FIELDS",
    "CheckContext",
    "QueryCheck",
    "QUERY_CHECKS",
    "as_date",
    "field_key",
    "check_age",
    "check_date_range",
    "check_disclose",
    "check_country_list",
    "check_bind",
    "check_sanctions",
    "check_facematch",
    "run_query_check",
    "required_claims",
    "unproved_claims",
]
