"""
Parameter commitments: both encodings are pure functions of the committed
input, and any single-field change moves the commitment.
"""
from __future__ import annotations

import hashlib

import pytest
from hypothesis import given, settings, strategies as st

from zkid_sdk.commitments import (evm_commitment, format_bound_data,
                                  parameter_commitment, payload_bytes,
                                  payload_fields)
from zkid_sdk.commitments.codec import yyyymmdd
from zkid_sdk.constants import MAX_COUNTRY_LIST_LENGTH
from zkid_sdk.crypto.poseidon import FIELD_MODULUS
from zkid_sdk.errors import CommitmentError
from zkid_sdk.types.proofs import (AgeInput, BindInput, BirthdateInput,
                                   BoundData, ClaimKind, ExpiryDateInput,
                                   FacematchInput, NationalityExclusionInput,
                                   NationalityInclusionInput, SanctionsInput)

ages = st.integers(min_value=0, max_value=255)


@settings(max_examples=25, deadline=None)
@given(ages, ages)
def test_age_commitment_is_pure(lo, hi):
    ci = AgeInput(lo, hi)
    assert parameter_commitment(ci) == parameter_commitment(AgeInput(lo, hi))
    assert parameter_commitment(ci, evm=True) == parameter_commitment(AgeInput(lo, hi), evm=True)


@settings(max_examples=25, deadline=None)
@given(ages, ages)
def test_changing_one_bound_changes_the_commitment(lo, hi):
    base = AgeInput(lo, hi)
    other = AgeInput((lo + 1) % 256, hi)
    assert parameter_commitment(base) != parameter_commitment(other)
    assert parameter_commitment(base, evm=True) != parameter_commitment(other, evm=True)


def test_standard_and_evm_encodings_differ():
    ci = AgeInput(18, 0)
    assert parameter_commitment(ci) != parameter_commitment(ci, evm=True)
    assert 0 <= parameter_commitment(ci) < FIELD_MODULUS


def test_evm_commitment_is_digest_shifted_by_one_byte():
    ci = AgeInput(18, 0)
    digest = hashlib.sha256(bytes([ClaimKind.AGE]) + (2).to_bytes(2, "big") + bytes([18, 0])).digest()
    assert parameter_commitment(ci, evm=True) == int.from_bytes(digest, "big") >> 8
    assert parameter_commitment(ci, evm=True) < 1 << 248


def test_evm_payload_is_zero_padded_to_fixed_length():
    ci = SanctionsInput(root=1)
    assert len(payload_bytes(ci)) == ClaimKind.SANCTIONS_EXCLUSION.evm_length
    # trailing zeros are part of the padding, so a shorter payload hashes the same
    assert evm_commitment(ClaimKind.BIRTHDATE, b"") == evm_commitment(ClaimKind.BIRTHDATE, b"\x00" * 16)


def test_overlong_evm_payload_is_rejected():
    with pytest.raises(CommitmentError):
        evm_commitment(ClaimKind.AGE, b"\x00" * 3)


def test_age_must_fit_in_a_byte():
    with pytest.raises(CommitmentError):
        AgeInput(256, 0)


def test_date_payloads():
    ci = ExpiryDateInput(min_date=1735689600, max_date=0)  # 2025-01-01
    assert payload_bytes(ci) == b"2025010100000000"
    assert payload_fields(ci) == [1735689600, 0]
    assert yyyymmdd(0) == "00000000"
    # the full calendar span stays eight characters
    assert yyyymmdd(-62135596800) == "00010101"
    assert yyyymmdd(253402300799) == "99991231"


def test_date_bounds_outside_the_calendar_are_rejected():
    with pytest.raises(CommitmentError):
        ExpiryDateInput(min_date=0, max_date=10**13)
    with pytest.raises(CommitmentError):
        BirthdateInput(min_date=-62135596800 - 1, max_date=0)


def test_birthdates_are_counted_from_1900():
    ci = BirthdateInput(min_date=-86400, max_date=0)  # 1969-12-31
    fields = payload_fields(ci)
    assert fields[0] == 2208988800 - 86400
    assert fields[1] == 0
    with pytest.raises(CommitmentError):
        parameter_commitment(BirthdateInput(min_date=-2208988800 - 1, max_date=0))


def test_country_lists_are_padded():
    ci = NationalityInclusionInput(("FRA", "DEU"))
    fields = payload_fields(ci)
    assert len(fields) == MAX_COUNTRY_LIST_LENGTH
    assert fields[:3] == [int.from_bytes(b"FRA", "big"), int.from_bytes(b"DEU", "big"), 0]
    assert len(payload_bytes(ci)) == 3 * MAX_COUNTRY_LIST_LENGTH


def test_inclusion_and_exclusion_commit_differently():
    countries = ("DEU", "FRA")
    assert parameter_commitment(NationalityInclusionInput(countries)) != parameter_commitment(
        NationalityExclusionInput(countries)
    )


@pytest.mark.parametrize("code", ["FR", "FRAN", "F1A", "ÉTA"])
def test_bad_country_codes(code):
    with pytest.raises(CommitmentError):
        parameter_commitment(NationalityInclusionInput((code,)))


def test_bound_data_records():
    data = BoundData(user_address="0x" + "11" * 20, chain=11155111, custom_data="hi")
    encoded = format_bound_data(data)
    assert encoded == (
        b"\x01\x00\x14" + b"\x11" * 20
        + b"\x02\x00\x04" + (11155111).to_bytes(4, "big")
        + b"\x03\x00\x02hi"
    )
    assert len(payload_fields(BindInput(data))) == ClaimKind.BIND.standard_length


def test_bound_data_validation():
    with pytest.raises(CommitmentError):
        format_bound_data(BoundData(user_address="0x1234"))
    with pytest.raises(CommitmentError):
        format_bound_data(BoundData(chain=1 << 32))
    with pytest.raises(CommitmentError):
        format_bound_data(BoundData(custom_data="x" * 600))


def test_facematch_fields():
    ci = FacematchInput(root_key_leaf=7, environment="production", app_id=9, mode="strict")
    assert payload_fields(ci) == [7, 1, 9, 2]
    assert len(payload_bytes(ci)) == 66
    assert parameter_commitment(ci, evm=True) == evm_commitment(ClaimKind.FACEMATCH, payload_bytes(ci) + b"\x00" * 32)
