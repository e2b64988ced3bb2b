"""
Proof bundle data types.

- ClaimKind: the claim type tag used inside parameter commitments.
- CommittedInput variants: one frozen dataclass per ClaimKind carrying exactly
  the values needed to recompute its parameter commitment.
- NullifierKind / Nullifier: the proof-bound unique identifier.
- ProofResult: one proof as received from the holder's device.

`parse_committed_inputs` turns the JSON shape sent by the mobile app
(`{"compare_age": {"minAge": 18, "maxAge": 0}, ...}`) into typed inputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import (Any, ClassVar, Dict, List, Mapping, Optional, Sequence,
                    Tuple, Union)

from ..constants import (CLAIM_PAYLOAD_LENGTHS, DISCLOSED_BYTES_LENGTH,
                         FACEMATCH_ENV_DEVELOPMENT, FACEMATCH_ENV_PRODUCTION,
                         FACEMATCH_MODE_REGULAR, FACEMATCH_MODE_STRICT,
                         MAX_DATE_TIMESTAMP, MIN_DATE_TIMESTAMP)
from ..errors import CommitmentError
from ..utils.bytes import ensure_bytes, to_int


class ClaimKind(IntEnum):
    DISCLOSE = 0
    AGE = 1
    BIRTHDATE = 2
    EXPIRY_DATE = 3
    NATIONALITY_INCLUSION = 4
    NATIONALITY_EXCLUSION = 5
    ISSUING_COUNTRY_INCLUSION = 6
    ISSUING_COUNTRY_EXCLUSION = 7
    BIND = 8
    SANCTIONS_EXCLUSION = 9
    FACEMATCH = 10

    @property
    def standard_length(self) -> int:
        return CLAIM_PAYLOAD_LENGTHS[int(self)][0]

    @property
    def evm_length(self) -> int:
        return CLAIM_PAYLOAD_LENGTHS[int(self)][1]

    @property
    def is_date_bearing(self) -> bool:
        return self in (ClaimKind.AGE, ClaimKind.BIRTHDATE, ClaimKind.EXPIRY_DATE)


class NullifierKind(IntEnum):
    NON_SALTED = 0
    SALTED = 1
    NON_SALTED_MOCK = 2
    SALTED_MOCK = 3

    @property
    def is_mock(self) -> bool:
        return self in (NullifierKind.NON_SALTED_MOCK, NullifierKind.SALTED_MOCK)


@dataclass(frozen=True)
class Nullifier:
    value: int
    kind: NullifierKind


# ----------------------------- committed inputs -----------------------------


@dataclass(frozen=True)
class AgeInput:
    kind: ClassVar[ClaimKind] = ClaimKind.AGE

    min_age: int
    max_age: int

    def __post_init__(self) -> None:
        for name in ("min_age", "max_age"):
            v = getattr(self, name)
            if not 0 <= v <= 255:
                raise CommitmentError(f"{name} must fit in one byte, got {v}", kind="age")


@dataclass(frozen=True)
class DateRangeInput:
    """Date bounds as unix seconds (UTC midnight); 0 means "no bound"."""

    kind: ClassVar[ClaimKind]

    min_date: int
    max_date: int

    def __post_init__(self) -> None:
        for name in ("min_date", "max_date"):
            v = getattr(self, name)
            if not MIN_DATE_TIMESTAMP <= v <= MAX_DATE_TIMESTAMP:
                raise CommitmentError(f"{name} is not a calendar date, got {v}", kind=self.kind.name.lower())


@dataclass(frozen=True)
class BirthdateInput(DateRangeInput):
    kind: ClassVar[ClaimKind] = ClaimKind.BIRTHDATE


@dataclass(frozen=True)
class ExpiryDateInput(DateRangeInput):
    kind: ClassVar[ClaimKind] = ClaimKind.EXPIRY_DATE


@dataclass(frozen=True)
class DiscloseInput:
    kind: ClassVar[ClaimKind] = ClaimKind.DISCLOSE

    disclose_mask: bytes
    disclosed_bytes: bytes
    document_type: Optional[str] = None  # "passport" | "id_card"; None tries both layouts

    def __post_init__(self) -> None:
        for name in ("disclose_mask", "disclosed_bytes"):
            if len(getattr(self, name)) != DISCLOSED_BYTES_LENGTH:
                raise CommitmentError(
                    f"{name} must be {DISCLOSED_BYTES_LENGTH} bytes", kind="disclose"
                )


@dataclass(frozen=True)
class CountryListInput:
    kind: ClassVar[ClaimKind]

    countries: Tuple[str, ...]

    @property
    def is_exclusion(self) -> bool:
        return self.kind in (ClaimKind.NATIONALITY_EXCLUSION, ClaimKind.ISSUING_COUNTRY_EXCLUSION)

    @property
    def document_field(self) -> str:
        if self.kind in (ClaimKind.NATIONALITY_INCLUSION, ClaimKind.NATIONALITY_EXCLUSION):
            return "nationality"
        return "issuing_country"


@dataclass(frozen=True)
class NationalityInclusionInput(CountryListInput):
    kind: ClassVar[ClaimKind] = ClaimKind.NATIONALITY_INCLUSION


@dataclass(frozen=True)
class NationalityExclusionInput(CountryListInput):
    kind: ClassVar[ClaimKind] = ClaimKind.NATIONALITY_EXCLUSION


@dataclass(frozen=True)
class IssuingCountryInclusionInput(CountryListInput):
    kind: ClassVar[ClaimKind] = ClaimKind.ISSUING_COUNTRY_INCLUSION


@dataclass(frozen=True)
class IssuingCountryExclusionInput(CountryListInput):
    kind: ClassVar[ClaimKind] = ClaimKind.ISSUING_COUNTRY_EXCLUSION


# Chain names used by the mobile app for bound data
CHAIN_NAMES: Dict[str, int] = {
    "ethereum": 1,
    "ethereum_sepolia": 11155111,
    "local": 31337,
}


def chain_id_from(value: Union[int, str, None]) -> Optional[int]:
    """Chain id from an int, a decimal/0x string or a chain name."""
    if value is None:
        return None
    if isinstance(value, str) and value.strip().lower() in CHAIN_NAMES:
        return CHAIN_NAMES[value.strip().lower()]
    return to_int(value)


@dataclass(frozen=True)
class BoundData:
    user_address: Optional[str] = None
    chain: Optional[int] = None
    custom_data: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "BoundData":
        return cls(
            user_address=raw.get("user_address"),
            chain=chain_id_from(raw.get("chain")),
            custom_data=raw.get("custom_data"),
        )


@dataclass(frozen=True)
class BindInput:
    kind: ClassVar[ClaimKind] = ClaimKind.BIND

    data: BoundData


@dataclass(frozen=True)
class SanctionsInput:
    kind: ClassVar[ClaimKind] = ClaimKind.SANCTIONS_EXCLUSION

    root: int
    is_strict: bool = False


@dataclass(frozen=True)
class FacematchInput:
    kind: ClassVar[ClaimKind] = ClaimKind.FACEMATCH

    root_key_leaf: int
    environment: str  # "development" | "production"
    app_id: int
    mode: str = "regular"  # "regular" | "strict"

    @property
    def environment_code(self) -> int:
        return FACEMATCH_ENV_DEVELOPMENT if self.environment == "development" else FACEMATCH_ENV_PRODUCTION

    @property
    def mode_code(self) -> int:
        return FACEMATCH_MODE_REGULAR if self.mode == "regular" else FACEMATCH_MODE_STRICT


CommittedInput = Union[
    AgeInput,
    BirthdateInput,
    ExpiryDateInput,
    DiscloseInput,
    NationalityInclusionInput,
    NationalityExclusionInput,
    IssuingCountryInclusionInput,
    IssuingCountryExclusionInput,
    BindInput,
    SanctionsInput,
    FacematchInput,
]

COUNTRY_LIST_INPUTS: Dict[ClaimKind, type] = {
    ClaimKind.NATIONALITY_INCLUSION: NationalityInclusionInput,
    ClaimKind.NATIONALITY_EXCLUSION: NationalityExclusionInput,
    ClaimKind.ISSUING_COUNTRY_INCLUSION: IssuingCountryInclusionInput,
    ClaimKind.ISSUING_COUNTRY_EXCLUSION: IssuingCountryExclusionInput,
}


# ------------------------------- proof result -------------------------------


@dataclass(frozen=True)
class ProofResult:
    """
    One proof from the holder's device.

    Either `proof` (hex/bytes: public inputs followed by the proof body, in
    32-byte fields) or a pre-split `public_inputs` list must be given.
    """

    name: str
    proof: Optional[Union[str, bytes]] = None
    public_inputs: Optional[Tuple[int, ...]] = None
    vkey_hash: Optional[str] = None
    version: Optional[str] = None
    committed_inputs: Mapping[ClaimKind, CommittedInput] = field(default_factory=dict)
    index: Optional[int] = None
    total: Optional[int] = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "ProofResult":
        pis = raw.get("publicInputs", raw.get("public_inputs"))
        return cls(
            name=str(raw["name"]),
            proof=raw.get("proof"),
            public_inputs=tuple(to_int(v) for v in pis) if pis is not None else None,
            vkey_hash=raw.get("vkeyHash", raw.get("vkey_hash")),
            version=raw.get("version"),
            committed_inputs=parse_committed_inputs(raw.get("committedInputs", raw.get("committed_inputs")) or {}),
            index=raw.get("index"),
            total=raw.get("total"),
        )


# Keys accepted for each kind in the wire-level committed inputs map
_KIND_KEYS: Dict[str, ClaimKind] = {
    "disclose_bytes": ClaimKind.DISCLOSE,
    "disclose_bytes_evm": ClaimKind.DISCLOSE,
    "compare_age": ClaimKind.AGE,
    "compare_age_evm": ClaimKind.AGE,
    "compare_birthdate": ClaimKind.BIRTHDATE,
    "compare_birthdate_evm": ClaimKind.BIRTHDATE,
    "compare_expiry": ClaimKind.EXPIRY_DATE,
    "compare_expiry_evm": ClaimKind.EXPIRY_DATE,
    "inclusion_check_nationality": ClaimKind.NATIONALITY_INCLUSION,
    "inclusion_check_nationality_evm": ClaimKind.NATIONALITY_INCLUSION,
    "exclusion_check_nationality": ClaimKind.NATIONALITY_EXCLUSION,
    "exclusion_check_nationality_evm": ClaimKind.NATIONALITY_EXCLUSION,
    "inclusion_check_issuing_country": ClaimKind.ISSUING_COUNTRY_INCLUSION,
    "inclusion_check_issuing_country_evm": ClaimKind.ISSUING_COUNTRY_INCLUSION,
    "exclusion_check_issuing_country": ClaimKind.ISSUING_COUNTRY_EXCLUSION,
    "exclusion_check_issuing_country_evm": ClaimKind.ISSUING_COUNTRY_EXCLUSION,
    "bind": ClaimKind.BIND,
    "bind_evm": ClaimKind.BIND,
    "exclusion_check_sanctions": ClaimKind.SANCTIONS_EXCLUSION,
    "exclusion_check_sanctions_evm": ClaimKind.SANCTIONS_EXCLUSION,
    "facematch": ClaimKind.FACEMATCH,
    "facematch_evm": ClaimKind.FACEMATCH,
}


def claim_kind_from_key(key: Union[str, ClaimKind]) -> ClaimKind:
    if isinstance(key, ClaimKind):
        return key
    k = key.strip()
    if k in _KIND_KEYS:
        return _KIND_KEYS[k]
    try:
        return ClaimKind[k.upper()]
    except KeyError:
        raise CommitmentError(f"unknown committed input key {key!r}") from None


def _get(raw: Mapping[str, Any], *names: str, default: Any = None) -> Any:
    for n in names:
        if n in raw:
            return raw[n]
    return default


def _countries(raw: Mapping[str, Any]) -> Tuple[str, ...]:
    vals: Sequence[str] = _get(raw, "countries", default=[])
    return tuple(str(c) for c in vals)


def committed_input_from_dict(kind: ClaimKind, raw: Mapping[str, Any]) -> CommittedInput:
    """Build the typed committed input for `kind` from its JSON object."""
    if kind is ClaimKind.AGE:
        return AgeInput(int(_get(raw, "minAge", "min_age", default=0)), int(_get(raw, "maxAge", "max_age", default=0)))
    if kind in (ClaimKind.BIRTHDATE, ClaimKind.EXPIRY_DATE):
        cls = BirthdateInput if kind is ClaimKind.BIRTHDATE else ExpiryDateInput
        return cls(
            int(_get(raw, "minDateTimestamp", "min_date", default=0)),
            int(_get(raw, "maxDateTimestamp", "max_date", default=0)),
        )
    if kind is ClaimKind.DISCLOSE:
        return DiscloseInput(
            bytes(_as_byte_list(_get(raw, "discloseMask", "disclose_mask"))),
            bytes(_as_byte_list(_get(raw, "disclosedBytes", "disclosed_bytes"))),
            _get(raw, "documentType", "document_type"),
        )
    if kind in COUNTRY_LIST_INPUTS:
        return COUNTRY_LIST_INPUTS[kind](_countries(raw))
    if kind is ClaimKind.BIND:
        return BindInput(BoundData.from_dict(_get(raw, "data", default={}) or {}))
    if kind is ClaimKind.SANCTIONS_EXCLUSION:
        return SanctionsInput(to_int(_get(raw, "rootHash", "root", default=0)), bool(_get(raw, "isStrict", "is_strict", default=False)))
    if kind is ClaimKind.FACEMATCH:
        return FacematchInput(
            root_key_leaf=to_int(_get(raw, "rootKeyLeaf", "root_key_leaf")),
            environment=str(_get(raw, "environment", default="production")),
            app_id=to_int(_get(raw, "appIdHash", "appId", "app_id")),
            mode=str(_get(raw, "mode", default="regular")),
        )
    raise CommitmentError(f"no committed input type for {kind!r}")


def _as_byte_list(v: Any) -> List[int]:
    if v is None:
        raise CommitmentError("missing byte list in committed inputs", kind="disclose")
    if isinstance(v, str):
        return list(ensure_bytes(v))
    return [int(x) for x in v]


def parse_committed_inputs(raw: Mapping[Any, Any]) -> Dict[ClaimKind, CommittedInput]:
    out: Dict[ClaimKind, CommittedInput] = {}
    for key, value in raw.items():
        kind = claim_kind_from_key(key)
        out[kind] = value if not isinstance(value, Mapping) else committed_input_from_dict(kind, value)
    return out


__all__ = [
    "ClaimKind",
    "NullifierKind",
    "Nullifier",
    "AgeInput",
    "DateRangeInput",
    "BirthdateInput",
    "ExpiryDateInput",
    "DiscloseInput",
    "CountryListInput",
    "NationalityInclusionInput",
    "NationalityExclusionInput",
    "IssuingCountryInclusionInput",
    "IssuingCountryExclusionInput",
    "CHAIN_NAMES",
    "chain_id_from",
    "BoundData",
    "BindInput",
    "SanctionsInput",
    "FacematchInput",
    "CommittedInput",
    "COUNTRY_LIST_INPUTS",
    "ProofResult",
    "claim_kind_from_key",
    "committed_input_from_dict",
    "parse_committed_inputs",
]
