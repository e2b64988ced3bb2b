"""
Poseidon over the BN254 scalar field.

Commitments, registry leaves and Merkle nodes are all Poseidon digests, so the
verifier must hash with the parameter set the circuits were compiled with.
Parameter sets live in a small named registry; `bn254_t3` is the one every
other module uses.

At import time `bn254_t3` is filled with a deterministic placeholder set
(t=3, 8 full rounds, 57 partial rounds, x^5 S-box) so the SDK is usable
without extra files. Digests under the placeholder never match a deployed
circuit: production callers replace it before verifying anything, with
`load_params_json(path, name="bn254_t3")` or `register_params`.

Parameter files are JSON objects with keys `t`, `R_F`, `R_P`, optional
`alpha` (default 5), `mds` (t rows of t) and `rc` (R_F + R_P rows of t).
Numbers may be JSON ints, decimal strings or 0x-hex strings.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set, Union

from py_ecc.bn128 import curve_order

log = logging.getLogger(__name__)

FIELD_MODULUS = int(curve_order)
DEFAULT_PARAMS = "bn254_t3"


def to_field(value: int) -> int:
    """Reduce an integer into Fr. Negative inputs are rejected."""
    v = int(value)
    if v < 0:
        raise ValueError("field elements must be non-negative")
    return v % FIELD_MODULUS


def _sbox(x: int, alpha: int) -> int:
    if alpha == 5:
        sq = x * x % FIELD_MODULUS
        return sq * sq % FIELD_MODULUS * x % FIELD_MODULUS
    return pow(x, alpha, FIELD_MODULUS)


@dataclass(frozen=True)
class PoseidonParams:
    t: int
    R_F: int
    R_P: int
    alpha: int
    mds: List[List[int]]
    rc: List[List[int]]

    @property
    def rounds(self) -> int:
        return self.R_F + self.R_P

    def validate(self) -> None:
        if self.t < 2:
            raise ValueError(f"state width must be at least 2, got {self.t}")
        if self.R_F % 2:
            raise ValueError(f"full rounds split evenly around the partial rounds, got R_F={self.R_F}")
        if self.alpha < 3 or self.alpha % 2 == 0:
            raise ValueError(f"S-box exponent must be odd and >= 3, got {self.alpha}")
        if len(self.mds) != self.t or any(len(row) != self.t for row in self.mds):
            raise ValueError(f"MDS matrix must be {self.t}x{self.t}")
        if len(self.rc) != self.rounds or any(len(row) != self.t for row in self.rc):
            raise ValueError(f"round constants must be {self.rounds}x{self.t}")


_REGISTRY: Dict[str, PoseidonParams] = {}
# Names still bound to the built-in placeholder set
_PLACEHOLDERS: Set[str] = set()
_warned: Set[str] = set()


def register_params(name: str, params: PoseidonParams) -> None:
    if not isinstance(name, str) or not name:
        raise ValueError("parameter set name must be a non-empty string")
    params.validate()
    _REGISTRY[name] = params
    _PLACEHOLDERS.discard(name)
    _warned.discard(name)


def get_params(name: str = DEFAULT_PARAMS) -> PoseidonParams:
    try:
        return _REGISTRY[name]
    except KeyError:
        raise KeyError(f"no Poseidon parameter set named {name!r}; register one first") from None


def is_placeholder(name: str = DEFAULT_PARAMS) -> bool:
    """True while `name` still holds the built-in placeholder parameters."""
    return name in _PLACEHOLDERS


def _field_value(x: Union[int, str]) -> int:
    if isinstance(x, int):
        return x % FIELD_MODULUS
    s = str(x).strip().lower()
    return int(s, 16 if s.startswith("0x") else 10) % FIELD_MODULUS


def load_params_json(path: str, name: Optional[str] = None) -> PoseidonParams:
    """Read a parameter file and register it under `name` (default: the file stem)."""
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    params = PoseidonParams(
        t=int(raw["t"]),
        R_F=int(raw["R_F"]),
        R_P=int(raw["R_P"]),
        alpha=int(raw.get("alpha", 5)),
        mds=[[_field_value(v) for v in row] for row in raw["mds"]],
        rc=[[_field_value(v) for v in row] for row in raw["rc"]],
    )
    reg_name = name or os.path.splitext(os.path.basename(path))[0]
    register_params(reg_name, params)
    log.info("loaded poseidon params %r from %s (t=%d)", reg_name, path, params.t)
    return params


def poseidon_permute(state: Sequence[int], params: PoseidonParams) -> List[int]:
    """Full rounds on both sides of the partial rounds; partial rounds S-box lane 0 only."""
    if len(state) != params.t:
        raise ValueError(f"state has {len(state)} lanes, parameters expect {params.t}")
    half = params.R_F // 2
    x = [int(v) % FIELD_MODULUS for v in state]
    for r, constants in enumerate(params.rc):
        x = [(v + c) % FIELD_MODULUS for v, c in zip(x, constants)]
        if r < half or r >= half + params.R_P:
            x = [_sbox(v, params.alpha) for v in x]
        else:
            x[0] = _sbox(x[0], params.alpha)
        x = [sum(m * v for m, v in zip(row, x)) % FIELD_MODULUS for row in params.mds]
    return x


def _warn_placeholder(name: str) -> None:
    if name in _PLACEHOLDERS and name not in _warned:
        _warned.add(name)
        log.warning(
            "hashing with placeholder Poseidon parameters %r; digests will not match deployed circuits "
            "until the circuit parameters are registered",
            name,
        )


def poseidon_hash(inputs: Sequence[int], *, params_name: str = DEFAULT_PARAMS) -> int:
    """
    Sponge with one capacity lane. The capacity lane starts at len(inputs), so
    inputs that differ only by trailing zeros hash differently.
    """
    params = get_params(params_name)
    _warn_placeholder(params_name)
    rate = params.t - 1
    state = [0] * params.t
    state[-1] = len(inputs) % FIELD_MODULUS
    for start in range(0, len(inputs), rate):
        for i, v in enumerate(inputs[start : start + rate]):
            state[i] = (state[i] + to_field(v)) % FIELD_MODULUS
        state = poseidon_permute(state, params)
    return poseidon_permute(state, params)[0]


def poseidon2(left: int, right: int, *, params_name: str = DEFAULT_PARAMS) -> int:
    """Merkle node compression."""
    return poseidon_hash([left, right], params_name=params_name)


def _register_placeholder(name: str = DEFAULT_PARAMS) -> None:
    t, full, partial = 3, 8, 57
    bases = (2, 3, 5)
    mds = [[pow(b, i + 1, FIELD_MODULUS) for b in bases] for i in range(t)]
    rc = [
        [
            int.from_bytes(hashlib.sha3_256(f"zkid/poseidon/placeholder/{r}/{i}".encode()).digest(), "big") % FIELD_MODULUS
            for i in range(t)
        ]
        for r in range(full + partial)
    ]
    register_params(name, PoseidonParams(t=t, R_F=full, R_P=partial, alpha=5, mds=mds, rc=rc))
    _PLACEHOLDERS.add(name)


_register_placeholder()


__all__ = [
    "FIELD_MODULUS",
    "DEFAULT_PARAMS",
    "PoseidonParams",
    "register_params",
    "get_params",
    "is_placeholder",
    "load_params_json",
    "poseidon_permute",
    "poseidon_hash",
    "poseidon2",
    "to_field",
]
