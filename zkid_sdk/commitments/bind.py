"""Serialisation of the data a bind proof commits to."""

from __future__ import annotations

from typing import List

from ..constants import (BOUND_DATA_CHAIN, BOUND_DATA_CUSTOM_DATA,
                         BOUND_DATA_MAX_LENGTH, BOUND_DATA_USER_ADDRESS)
from ..errors import CommitmentError
from ..types.proofs import BoundData
from ..utils.bytes import from_hex


def _record(tag: int, value: bytes) -> bytes:
    if len(value) > 0xFFFF:
        raise CommitmentError(f"bound data record {tag} too long ({len(value)} bytes)", kind="bind")
    return bytes([tag]) + len(value).to_bytes(2, "big") + value


def format_bound_data(data: BoundData) -> bytes:
    """
    Tag-length-value encoding of bound data, in a fixed record order:

        0x01 | len:u16 | 20-byte user address
        0x02 | len:u16 | 4-byte big-endian chain id
        0x03 | len:u16 | UTF-8 custom data

    Absent (or empty) values are omitted. The result is at most 509 bytes.
    """
    parts: List[bytes] = []
    if data.user_address:
        try:
            address = from_hex(data.user_address)
        except ValueError as e:
            raise CommitmentError(f"user address is not hex: {e}", kind="bind") from e
        if len(address) != 20:
            raise CommitmentError(f"user address must be 20 bytes, got {len(address)}", kind="bind")
        parts.append(_record(BOUND_DATA_USER_ADDRESS, address))
    if data.chain:
        if not 0 < data.chain < 1 << 32:
            raise CommitmentError(f"chain id {data.chain} does not fit in 4 bytes", kind="bind")
        parts.append(_record(BOUND_DATA_CHAIN, data.chain.to_bytes(4, "big")))
    if data.custom_data:
        parts.append(_record(BOUND_DATA_CUSTOM_DATA, data.custom_data.encode("utf-8")))

    out = b"".join(parts)
    if len(out) > BOUND_DATA_MAX_LENGTH:
        raise CommitmentError(f"bound data too long: {len(out)} > {BOUND_DATA_MAX_LENGTH}", kind="bind")
    return out


__all__ = ["format_bound_data"]
