"""
Minimal Solidity ABI support for the registry contracts.

This module defines:
- helpers to compute canonical selectors from function signatures
- static argument encoding (uint256 / bytes32 / address / bool words)
- `AbiReader`: a cursor over ABI return data with named readers
  (`read_u256`, `read_bytes32`, `read_bool`, `read_address`,
  `read_dynamic_array`) so offset arithmetic lives in one place.

Only the static head/tail layout used by the registry contracts is covered:
scalars are 32-byte big-endian words, and a dynamic array is referenced by a
byte offset (from the start of the return data) pointing at a length word
followed by `length` fixed-width structs.
"""

from __future__ import annotations

import re
from typing import Callable, List, Optional, TypeVar, Union

from ..errors import AbiError
from ..utils.bytes import BytesLike, from_hex, strip_0x, to_hex, to_int
from ..utils.hash import keccak256

T = TypeVar("T")

WORD = 32

_HEX_RE = re.compile(r"^[0-9a-fA-F]*$")
_SIG_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*\([a-z0-9,\[\]]*\)$")


# --- Selectors ---------------------------------------------------------------


def function_selector(signature: str) -> str:
    """First 4 bytes of keccak256(signature), 0x-prefixed: e.g. "registries(bytes32)"."""
    sig = signature.replace(" ", "")
    if not _SIG_RE.match(sig):
        raise AbiError(f"invalid function signature: {signature!r}")
    return to_hex(keccak256(sig.encode("utf-8"))[:4])


# --- Encoding ----------------------------------------------------------------


def encode_uint(value: Union[int, str, BytesLike]) -> str:
    """64-nibble left-padded hex word (no 0x) for uint256/bytes32-as-number."""
    v = to_int(value)
    if v < 0 or v >= 1 << 256:
        raise AbiError(f"value out of uint256 range: {v}")
    return format(v, "064x")


def encode_bytes32(value: Union[int, str, BytesLike]) -> str:
    """Left-padded hex word for a bytes32 that is semantically a number (ids, roots)."""
    if isinstance(value, str):
        h = strip_0x(value)
        if len(h) > 64 or not _HEX_RE.match(h):
            raise AbiError(f"invalid bytes32 hex: {value!r}")
        return h.lower().rjust(64, "0")
    return encode_uint(value)


def encode_address(value: str) -> str:
    h = strip_0x(value)
    if len(h) != 40 or not _HEX_RE.match(h):
        raise AbiError(f"invalid address: {value!r}")
    return h.lower().rjust(64, "0")


def encode_call(selector: str, *words: str) -> str:
    """0x + selector + pre-encoded 64-nibble argument words."""
    sel = strip_0x(selector)
    if len(sel) != 8:
        raise AbiError(f"selector must be 4 bytes: {selector!r}")
    for w in words:
        if len(w) != 64:
            raise AbiError(f"argument word must be 32 bytes, got {len(w) // 2}")
    return "0x" + sel.lower() + "".join(words)


# --- Decoding ----------------------------------------------------------------


class AbiReader:
    """
    Sequential reader over ABI-encoded return data.

    Offsets are byte offsets from the start of the data (as in the ABI's
    head/tail encoding). Every read is bounds-checked and raises AbiError.
    """

    __slots__ = ("_data", "_pos", "function")

    def __init__(self, data: Union[str, BytesLike], *, function: Optional[str] = None) -> None:
        if isinstance(data, str):
            try:
                data = from_hex(data) if data not in ("0x", "") else b""
            except ValueError as e:
                raise AbiError(f"return data is not hex: {e}", function=function) from e
        self._data = bytes(data)
        self._pos = 0
        self.function = function

    def __len__(self) -> int:
        return len(self._data)

    @property
    def position(self) -> int:
        return self._pos

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def seek(self, offset: int) -> "AbiReader":
        if offset < 0 or offset > len(self._data):
            raise AbiError(
                f"offset {offset} outside return data of {len(self._data)} bytes",
                function=self.function,
            )
        self._pos = offset
        return self

    def _word(self, what: str) -> bytes:
        end = self._pos + WORD
        if end > len(self._data):
            raise AbiError(
                f"truncated return data reading {what} at byte {self._pos}",
                function=self.function,
                parameter=what,
            )
        w = self._data[self._pos : end]
        self._pos = end
        return w

    def read_u256(self, what: str = "uint256") -> int:
        return int.from_bytes(self._word(what), "big")

    def read_bytes32(self, what: str = "bytes32") -> str:
        return to_hex(self._word(what))

    def read_bool(self, what: str = "bool") -> bool:
        v = self.read_u256(what)
        if v not in (0, 1):
            raise AbiError(f"invalid bool word {v}", function=self.function, parameter=what)
        return v == 1

    def read_address(self, what: str = "address") -> str:
        return to_hex(self._word(what)[12:])

    def read_dynamic_array(self, decode_item: Callable[["AbiReader"], T], what: str = "array") -> List[T]:
        """
        Follow the offset word at the cursor to a length-prefixed array.

        The cursor advances past the offset word only, so later head fields can
        still be read in order.
        """
        offset = self.read_u256(f"{what}.offset")
        head = self._pos
        self.seek(offset)
        length = self.read_u256(f"{what}.length")
        items = [decode_item(self) for _ in range(length)]
        self._pos = head
        return items


__all__ = [
    "WORD",
    "function_selector",
    "encode_uint",
    "encode_bytes32",
    "encode_address",
    "encode_call",
    "AbiReader",
]
