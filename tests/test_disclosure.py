from __future__ import annotations

from datetime import date

import pytest

from zkid_sdk.proofs.disclosure import DisclosedData, mrz_date


def test_passport_fields(passport_mrz):
    data = DisclosedData.from_bytes(passport_mrz, "passport")
    assert data.document_type == "P"
    assert data.issuing_country == "UTO"
    assert data.nationality == "UTO"
    assert data.document_number == "L898902C3"
    assert data.gender == "F"
    assert data.lastname == "ERIKSSON"
    assert data.firstname == "ANNA MARIA"
    assert data.fullname == "ANNA MARIA ERIKSSON"
    assert data.birthdate == date(1974, 8, 12)
    assert data.expiry_date == date(2012, 4, 15)


def test_undisclosed_fields_read_as_none(passport_mrz):
    masked = bytearray(passport_mrz)
    masked[54:57] = b"\x00\x00\x00"  # nationality
    masked[5:44] = b"\x00" * 39  # names
    data = DisclosedData.from_bytes(bytes(masked), "passport")
    assert data.nationality is None
    assert data.firstname is None and data.lastname is None and data.fullname is None
    assert data.issuing_country == "UTO"


def test_id_card_layout():
    line1 = "I<UTOD231458907".ljust(30, "<")
    line2 = "7408122F1204159UTO".ljust(29, "<") + "6"
    line3 = "ERIKSSON<<ANNA<MARIA".ljust(30, "<")
    data = DisclosedData.from_bytes((line1 + line2 + line3).encode("ascii"), "id_card")
    assert data.document_type == "I"
    assert data.document_number == "D23145890"
    assert data.nationality == "UTO"
    assert data.birthdate == date(1974, 8, 12)
    assert data.fullname == "ANNA MARIA ERIKSSON"


def test_unknown_document_type(passport_mrz):
    with pytest.raises(ValueError):
        DisclosedData.from_bytes(passport_mrz, "visa")


def test_mrz_dates():
    today = date(2025, 3, 14)
    assert mrz_date("250314", is_expiry=False, today=today) == date(2025, 3, 14)
    assert mrz_date("300101", is_expiry=False, today=today) == date(1930, 1, 1)
    assert mrz_date("300101", is_expiry=True) == date(2030, 1, 1)
    assert mrz_date("991340", is_expiry=True) is None
    assert mrz_date(None, is_expiry=True) is None
