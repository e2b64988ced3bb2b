"""
zkid_sdk.commitments.codec
==========================

Parameter commitments: one-way hashes binding a disclosure proof to the exact
parameters (bounds, lists, flags) it checked.

Two encodings exist for every claim kind:

Standard (native verifier)
    poseidon([tag, standard_length, *payload_fields])

EVM (Solidity verifier)
    sha256(tag:u8 || evm_length:u16be || payload_bytes padded to evm_length)
    read as a field element from its first 31 bytes (the digest shifted right
    by one byte, so it fits the 254-bit scalar field).

`tag`, `standard_length` and `evm_length` are protocol constants per
`ClaimKind`; changing any of them changes every commitment.

Each kind registers a `(fields_fn, bytes_fn)` pair in `COMMITMENT_HANDLERS`;
`parameter_commitment` is a pure function of the committed input.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Sequence, Tuple

from ..constants import (BOUND_DATA_MAX_LENGTH, COUNTRY_CODE_PADDING,
                         MAX_COUNTRY_LIST_LENGTH, SECONDS_BETWEEN_1900_AND_1970)
from ..crypto.poseidon import poseidon_hash
from ..errors import CommitmentError
from ..types.proofs import (AgeInput, BindInput, ClaimKind, CommittedInput,
                            CountryListInput, DateRangeInput, DiscloseInput,
                            FacematchInput, SanctionsInput)
from ..utils.bytes import be_bytes, pack_be_bytes_into_fields, right_pad
from ..utils.hash import sha256_to_field
from .bind import format_bound_data

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

FieldsFn = Callable[[CommittedInput], List[int]]
BytesFn = Callable[[CommittedInput], bytes]


# ---------------------------------------------------------------------------
# Hash envelopes
# ---------------------------------------------------------------------------


def standard_commitment(kind: ClaimKind, fields: Sequence[int]) -> int:
    return poseidon_hash([int(kind), kind.standard_length, *fields])


def evm_commitment(kind: ClaimKind, payload: bytes) -> int:
    length = kind.evm_length
    if len(payload) > length:
        raise CommitmentError(
            f"payload of {len(payload)} bytes exceeds {length} bytes", kind=kind.name.lower()
        )
    data = bytes([int(kind)]) + length.to_bytes(2, "big") + payload + b"\x00" * (length - len(payload))
    return sha256_to_field(data)


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------


def _age_fields(ci: AgeInput) -> List[int]:
    return [ci.min_age, ci.max_age]


def _age_bytes(ci: AgeInput) -> bytes:
    return bytes([ci.min_age, ci.max_age])


def _shifted(ci: DateRangeInput, value: int) -> int:
    # Birthdates count from 1900 so pre-1970 dates stay non-negative
    if ci.kind is ClaimKind.BIRTHDATE and value != 0:
        return value + SECONDS_BETWEEN_1900_AND_1970
    return value


def _date_fields(ci: DateRangeInput) -> List[int]:
    out = [_shifted(ci, ci.min_date), _shifted(ci, ci.max_date)]
    if any(v < 0 for v in out):
        raise CommitmentError("date bound precedes 1900-01-01", kind=ci.kind.name.lower())
    return out


def yyyymmdd(timestamp: int) -> str:
    """8-character UTC calendar date for a unix timestamp; 0 means unset."""
    if timestamp == 0:
        return "00000000"
    d = _EPOCH + timedelta(seconds=timestamp)
    return f"{d.year:04d}{d.month:02d}{d.day:02d}"


def _date_bytes(ci: DateRangeInput) -> bytes:
    return (yyyymmdd(ci.min_date) + yyyymmdd(ci.max_date)).encode("ascii")


def _disclose_fields(ci: DiscloseInput) -> List[int]:
    return list(ci.disclose_mask) + list(ci.disclosed_bytes)


def _disclose_bytes(ci: DiscloseInput) -> bytes:
    return ci.disclose_mask + ci.disclosed_bytes


def _country_codes(ci: CountryListInput) -> List[bytes]:
    if len(ci.countries) > MAX_COUNTRY_LIST_LENGTH:
        raise CommitmentError(
            f"{len(ci.countries)} countries exceed the list size of {MAX_COUNTRY_LIST_LENGTH}",
            kind=ci.kind.name.lower(),
        )
    out = []
    for code in ci.countries:
        if len(code) != 3 or not code.isascii() or not code.isalpha():
            raise CommitmentError(f"invalid alpha-3 country code {code!r}", kind=ci.kind.name.lower())
        out.append(code.encode("ascii"))
    return out


def _country_fields(ci: CountryListInput) -> List[int]:
    packed = [int.from_bytes(c, "big") for c in _country_codes(ci)]
    return right_pad(packed, MAX_COUNTRY_LIST_LENGTH, 0)


def _country_bytes(ci: CountryListInput) -> bytes:
    codes = _country_codes(ci)
    padding = COUNTRY_CODE_PADDING.encode("ascii") * (MAX_COUNTRY_LIST_LENGTH - len(codes))
    return b"".join(codes) + padding


def _bind_bytes(ci: BindInput) -> bytes:
    data = format_bound_data(ci.data)
    return data + b"\x00" * (BOUND_DATA_MAX_LENGTH - len(data))


def _bind_fields(ci: BindInput) -> List[int]:
    return pack_be_bytes_into_fields(_bind_bytes(ci), 31)


def _sanctions_fields(ci: SanctionsInput) -> List[int]:
    return [ci.root, int(ci.is_strict)]


def _sanctions_bytes(ci: SanctionsInput) -> bytes:
    return be_bytes(ci.root, 32) + bytes([int(ci.is_strict)])


def _facematch_fields(ci: FacematchInput) -> List[int]:
    return [ci.root_key_leaf, ci.environment_code, ci.app_id, ci.mode_code]


def _facematch_bytes(ci: FacematchInput) -> bytes:
    return (
        be_bytes(ci.root_key_leaf, 32)
        + bytes([ci.environment_code])
        + be_bytes(ci.app_id, 32)
        + bytes([ci.mode_code])
    )


COMMITMENT_HANDLERS: Dict[ClaimKind, Tuple[FieldsFn, BytesFn]] = {
    ClaimKind.DISCLOSE: (_disclose_fields, _disclose_bytes),
    ClaimKind.AGE: (_age_fields, _age_bytes),
    ClaimKind.BIRTHDATE: (_date_fields, _date_bytes),
    ClaimKind.EXPIRY_DATE: (_date_fields, _date_bytes),
    ClaimKind.NATIONALITY_INCLUSION: (_country_fields, _country_bytes),
    ClaimKind.NATIONALITY_EXCLUSION: (_country_fields, _country_bytes),
    ClaimKind.ISSUING_COUNTRY_INCLUSION: (_country_fields, _country_bytes),
    ClaimKind.ISSUING_COUNTRY_EXCLUSION: (_country_fields, _country_bytes),
    ClaimKind.BIND: (_bind_fields, _bind_bytes),
    ClaimKind.SANCTIONS_EXCLUSION: (_sanctions_fields, _sanctions_bytes),
    ClaimKind.FACEMATCH: (_facematch_fields, _facematch_bytes),
}


def payload_fields(committed_input: CommittedInput) -> List[int]:
    return COMMITMENT_HANDLERS[committed_input.kind][0](committed_input)


def payload_bytes(committed_input: CommittedInput) -> bytes:
    return COMMITMENT_HANDLERS[committed_input.kind][1](committed_input)


def parameter_commitment(committed_input: CommittedInput, *, evm: bool = False) -> int:
    """
    Canonical parameter commitment of a committed input.

    Raises CommitmentError for inputs that cannot be encoded (overlong
    payloads, malformed country codes, oversized bound data).
    """
    kind = getattr(committed_input, "kind", None)
    if kind not in COMMITMENT_HANDLERS:
        raise CommitmentError(f"no commitment encoding for {type(committed_input).__name__}")
    if evm:
        return evm_commitment(kind, payload_bytes(committed_input))
    return standard_commitment(kind, payload_fields(committed_input))


__all__ = [
    "COMMITMENT_HANDLERS",
    "standard_commitment",
    "evm_commitment",
    "payload_fields",
    "payload_bytes",
    "parameter_commitment",
    "yyyymmdd",
]
