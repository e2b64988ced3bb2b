from __future__ import annotations

import dataclasses
import json
import logging

import pytest

from zkid_sdk.crypto import poseidon
from zkid_sdk.crypto.poseidon import (DEFAULT_PARAMS, FIELD_MODULUS,
                                      PoseidonParams, get_params,
                                      is_placeholder, load_params_json,
                                      poseidon2, poseidon_hash,
                                      poseidon_permute, register_params)

LOGGER = "zkid_sdk.crypto.poseidon"


def test_default_set_is_the_placeholder():
    assert is_placeholder(DEFAULT_PARAMS)
    params = get_params()
    assert (params.t, params.R_F, params.R_P, params.alpha) == (3, 8, 57, 5)


def test_input_length_separates_digests():
    assert poseidon_hash([1]) != poseidon_hash([1, 0])
    assert poseidon_hash([]) != poseidon_hash([0])
    assert poseidon2(1, 2) == poseidon_hash([1, 2])
    assert poseidon2(1, 2) != poseidon2(2, 1)
    assert 0 <= poseidon_hash([FIELD_MODULUS - 1, 7, 9]) < FIELD_MODULUS


def test_inputs_are_reduced_into_the_field():
    assert poseidon_hash([FIELD_MODULUS + 5]) == poseidon_hash([5])
    with pytest.raises(ValueError):
        poseidon_hash([-1])


def test_placeholder_warning_is_logged_once_per_set(caplog):
    poseidon._register_placeholder("placeholder_copy")
    with caplog.at_level(logging.WARNING, logger=LOGGER):
        poseidon_hash([1], params_name="placeholder_copy")
        poseidon_hash([2], params_name="placeholder_copy")
    warnings = [r for r in caplog.records if r.name == LOGGER and "placeholder" in r.getMessage()]
    assert len(warnings) == 1

    # registering real parameters under the name silences it
    register_params("placeholder_copy", get_params())
    assert not is_placeholder("placeholder_copy")
    caplog.clear()
    with caplog.at_level(logging.WARNING, logger=LOGGER):
        poseidon_hash([3], params_name="placeholder_copy")
    assert not [r for r in caplog.records if r.name == LOGGER]


def test_load_params_json(tmp_path):
    params = get_params()
    path = tmp_path / "circuit_t3.json"
    path.write_text(json.dumps({
        "t": params.t,
        "R_F": params.R_F,
        "R_P": params.R_P,
        "mds": [[hex(v) for v in row] for row in params.mds],
        "rc": [[str(v) for v in row] for row in params.rc],
    }))
    loaded = load_params_json(str(path))
    assert loaded == params
    assert not is_placeholder("circuit_t3")
    assert poseidon_hash([4, 5], params_name="circuit_t3") == poseidon_hash([4, 5])


def test_parameter_validation():
    params = get_params()
    with pytest.raises(ValueError):
        register_params("bad", dataclasses.replace(params, R_F=7))
    with pytest.raises(ValueError):
        register_params("bad", dataclasses.replace(params, alpha=4))
    with pytest.raises(ValueError):
        register_params("bad", dataclasses.replace(params, rc=params.rc[:-1]))
    with pytest.raises(KeyError):
        get_params("bad")
    with pytest.raises(ValueError):
        poseidon_permute([0, 0], params)
