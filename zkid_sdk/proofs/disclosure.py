"""
Ground truth from the bytes a disclose proof reveals.

The disclosed bytes are the document's MRZ with every undisclosed byte set to
zero. Fields are read from fixed offsets: a passport MRZ (TD3) is two lines of
44 characters, an ID card MRZ (TD1) is three lines of 30. A field whose bytes
are all zero was not disclosed and reads as None.

No checksum validation and no name prettification happens here; names keep
their MRZ spelling with fillers turned into spaces.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Dict, Optional, Tuple

_Range = Tuple[int, int]

_LAYOUTS: Dict[str, Dict[str, _Range]] = {
    "passport": {
        "document_type": (0, 2),
        "issuing_country": (2, 5),
        "name": (5, 44),
        "document_number": (44, 53),
        "nationality": (54, 57),
        "birthdate": (57, 63),
        "gender": (64, 65),
        "expiry_date": (65, 71),
    },
    "id_card": {
        "document_type": (0, 2),
        "issuing_country": (2, 5),
        "document_number": (5, 14),
        "birthdate": (30, 36),
        "gender": (37, 38),
        "expiry_date": (38, 44),
        "nationality": (45, 48),
        "name": (60, 90),
    },
}

DOCUMENT_TYPES = tuple(_LAYOUTS)


def _slice(data: bytes, rng: _Range) -> Optional[str]:
    chunk = data[rng[0] : rng[1]]
    if not chunk or all(b == 0 for b in chunk):
        return None
    return chunk.replace(b"\x00", b"<").decode("ascii", errors="replace")


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return " ".join(value.replace("<", " ").split())


def mrz_date(yymmdd: Optional[str], *, is_expiry: bool, today: Optional[date] = None) -> Optional[date]:
    """
    Calendar date from an MRZ YYMMDD field.

    Expiry dates are always 20YY. Birthdates take the latest century that does
    not put them in the future.
    """
    if yymmdd is None or len(yymmdd) != 6 or not yymmdd.isdigit():
        return None
    yy, mm, dd = int(yymmdd[:2]), int(yymmdd[2:4]), int(yymmdd[4:])
    if is_expiry:
        year = 2000 + yy
    else:
        today = today or date.today()
        year = 2000 + yy if 2000 + yy <= today.year else 1900 + yy
    try:
        return date(year, mm, dd)
    except ValueError:
        return None


@dataclass(frozen=True)
class DisclosedData:
    document_kind: str
    document_type: Optional[str]
    issuing_country: Optional[str]
    nationality: Optional[str]
    document_number: Optional[str]
    birthdate: Optional[date]
    expiry_date: Optional[date]
    gender: Optional[str]
    lastname: Optional[str]
    firstname: Optional[str]
    fullname: Optional[str]

    @classmethod
    def from_bytes(cls, disclosed_bytes: bytes, document_type: str = "passport") -> "DisclosedData":
        if document_type not in _LAYOUTS:
            raise ValueError(f"unknown document type {document_type!r}; expected one of {DOCUMENT_TYPES}")
        layout = _LAYOUTS[document_type]
        raw = {k: _slice(bytes(disclosed_bytes), rng) for k, rng in layout.items()}

        lastname = firstname = fullname = None
        if raw["name"] is not None:
            last, _, first = raw["name"].partition("<<")
            lastname = _clean(last) or None
            firstname = _clean(first) or None
            fullname = " ".join(p for p in (firstname, lastname) if p) or None

        gender = raw["gender"]
        if gender == "<":
            gender = None

        return cls(
            document_kind=document_type,
            document_type=_clean(raw["document_type"]),
            issuing_country=_clean(raw["issuing_country"]),
            nationality=_clean(raw["nationality"]),
            document_number=_clean(raw["document_number"]),
            birthdate=mrz_date(raw["birthdate"], is_expiry=False),
            expiry_date=mrz_date(raw["expiry_date"], is_expiry=True),
            gender=gender,
            lastname=lastname,
            firstname=firstname,
            fullname=fullname,
        )

    def value(self, field: str):
        return getattr(self, field)


__all__ = ["DisclosedData", "DOCUMENT_TYPES", "mrz_date"]
