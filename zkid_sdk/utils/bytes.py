from __future__ import annotations

from typing import List, Sequence, Union

BytesLike = Union[bytes, bytearray, memoryview]


def ensure_bytes(data: Union[BytesLike, str]) -> bytes:
    """
    Ensure input is bytes.

    Accepts:
      - bytes / bytearray / memoryview  -> bytes(data)
      - str: treated as hex; optional '0x' prefix; even-length enforced

    Raises:
      ValueError on invalid hex strings.
    """
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    if isinstance(data, str):
        return from_hex(data)
    raise TypeError(f"Unsupported type for ensure_bytes: {type(data)!r}")


def to_hex(b: BytesLike, prefix: bool = True) -> str:
    """
    Bytes -> hex string (lowercase). Prefix with '0x' by default.
    """
    s = bytes(b).hex()
    return f"0x{s}" if prefix else s


def strip_0x(s: str) -> str:
    return s[2:] if s.startswith(("0x", "0X")) else s


def from_hex(s: str) -> bytes:
    """
    Hex string (optionally '0x' prefixed) -> bytes.

    Enforces even-length (nibbles must pair to bytes) and lowercase/uppercase agnostic.
    """
    if not isinstance(s, str):
        raise TypeError("from_hex expects a string")
    s = strip_0x(s)
    if len(s) % 2 != 0:
        raise ValueError("hex string must have even length")
    try:
        return bytes.fromhex(s)
    except ValueError as e:
        raise ValueError(f"invalid hex string: {e}") from e


def to_int(value: Union[int, str, BytesLike]) -> int:
    """
    Integer from an int, a decimal/0x-hex string, or big-endian bytes.
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return int.from_bytes(bytes(value), "big")
    s = str(value).strip()
    if s.startswith(("0x", "0X")):
        return int(s[2:] or "0", 16)
    return int(s, 10)


def be_bytes(x: int, n: int = 32) -> bytes:
    """Big-endian, fixed-length encoding of a non-negative integer."""
    if x < 0:
        raise ValueError("be_bytes expects a non-negative integer")
    return int(x).to_bytes(n, "big")


def int_to_hex32(x: int) -> str:
    """0x-prefixed, 64-nibble lowercase hex of an integer."""
    return "0x" + format(int(x), "064x")


def normalise_hash(value: Union[int, str, BytesLike]) -> str:
    """
    Canonical 0x + 64 lowercase nibble form of a 32-byte hash.

    Roots arrive from RPC responses, JSON files and proof public inputs in
    slightly different shapes (with/without 0x, short, upper case).
    """
    return int_to_hex32(to_int(value))


def pack_be_bytes_into_fields(data: BytesLike, max_chunk_size: int = 31) -> List[int]:
    """
    Pack bytes into field elements of at most `max_chunk_size` bytes each.

    Chunks are cut from the END of the input, so only the chunk holding the
    leading bytes may be short. Each chunk is read big-endian, and the list
    is ordered least significant chunk first: element 0 holds the last
    `max_chunk_size` bytes and the short leading chunk comes last. This is
    the layout the circuits use when packing keys and bound data.
    """
    b = bytes(data)
    if max_chunk_size <= 0:
        raise ValueError("max_chunk_size must be > 0")
    out: List[int] = []
    end = len(b)
    while end > 0:
        start = max(0, end - max_chunk_size)
        out.append(int.from_bytes(b[start:end], "big"))
        end = start
    return out


def split_words(data: BytesLike, size: int = 32) -> List[bytes]:
    """Split bytes into consecutive `size`-byte chunks (last chunk may be short)."""
    b = bytes(data)
    return [b[i : i + size] for i in range(0, len(b), size)]


def right_pad(data: Sequence[int], length: int, fill: int = 0) -> List[int]:
    if len(data) > length:
        raise ValueError(f"sequence of {len(data)} items does not fit in {length}")
    return list(data) + [fill] * (length - len(data))


__all__ = [
    "BytesLike",
    "ensure_bytes",
    "to_hex",
    "strip_0x",
    "from_hex",
    "to_int",
    "be_bytes",
    "int_to_hex32",
    "normalise_hash",
    "pack_be_bytes_into_fields",
    "split_words",
    "right_pad",
]
