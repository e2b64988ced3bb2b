from __future__ import annotations

import random

import pytest

from zkid_sdk.errors import ProofFormatError
from zkid_sdk.proofs.parser import (PROOF_ORDER, ProofName, Stage,
                                    canonical_sort, parse_proof_bytes,
                                    public_inputs_of)
from zkid_sdk.types.proofs import ClaimKind, ProofResult

NAMES = [
    "sig_check_dsc_tbs_700_rsa_pkcs_4096_sha256",
    "sig_check_id_data_tbs_700_ecdsa_p256_sha256",
    "data_check_integrity_sa_sha256_dg_sha256",
    "disclose_bytes",
    "compare_age_evm",
    "exclusion_check_nationality",
    "bind",
    "facematch",
]


def test_canonical_sort_is_independent_of_input_order():
    shuffled = list(NAMES)
    random.Random(7).shuffle(shuffled)
    assert canonical_sort(shuffled, key=lambda n: n) == NAMES


def test_unknown_names_sort_last_and_keep_their_order():
    names = ["zz_custom", "bind", "aa_custom", "sig_check_dsc"]
    assert canonical_sort(names, key=lambda n: n) == ["sig_check_dsc", "bind", "zz_custom", "aa_custom"]


def test_parse_stages():
    assert ProofName.parse(NAMES[0]).stage is Stage.DSC
    assert ProofName.parse(NAMES[1]).stage is Stage.ID_DATA
    assert ProofName.parse(NAMES[2]).stage is Stage.INTEGRITY

    age = ProofName.parse("compare_age_evm")
    assert age.is_disclosure and age.evm
    assert age.claim_kind is ClaimKind.AGE
    assert age.prefix == "compare_age"
    assert age.public_input_count == 7

    unknown = ProofName.parse("something_else")
    assert unknown.stage is Stage.UNKNOWN
    assert unknown.prefix == "something_else"
    with pytest.raises(ProofFormatError):
        unknown.public_input_count


def test_parse_outer():
    outer = ProofName.parse("outer_evm_count_5")
    assert outer.is_outer and outer.evm
    assert outer.subproof_count == 5
    assert outer.param_commitment_count == 2
    assert outer.public_input_count == 9
    assert outer.prefix == "outer"
    assert outer.priority == len(PROOF_ORDER)

    plain = ProofName.parse("outer_count_4")
    assert not plain.evm
    assert plain.public_input_count == 8

    with pytest.raises(ProofFormatError):
        ProofName.parse("outer_count_2").public_input_count


def test_parse_proof_bytes():
    words = [(i + 1).to_bytes(32, "big") for i in range(5)]
    data = parse_proof_bytes("0x" + b"".join(words).hex(), 3)
    assert data.public_inputs == (1, 2, 3)
    assert data.proof == tuple(words[3:])


@pytest.mark.parametrize("raw", [b"\x01" * 33, b"\x01" * 64, "0xzz"])
def test_parse_proof_bytes_errors(raw):
    with pytest.raises(ProofFormatError) as exc:
        parse_proof_bytes(raw, 3, name="bind")
    assert exc.value.name == "bind"


def test_public_inputs_named_slots():
    proof = ProofResult(name="disclose_bytes", public_inputs=(1, 2, 3, 4, 5, 6, 7))
    pis = public_inputs_of(proof)
    assert pis.commitment_in == 1
    assert pis.current_date == 2
    assert pis.service_scope == 3
    assert pis.param_commitments == (5,)
    assert pis.nullifier == 7
    assert pis.certificate_root is None

    outer = ProofResult(name="outer_count_5", public_inputs=tuple(range(10, 19)))
    pis = public_inputs_of(outer)
    assert pis.certificate_root == 10
    assert pis.circuit_root == 11
    assert pis.param_commitments == (15, 16)
    assert pis.nullifier_type == 17
    assert pis.nullifier == 18


def test_public_input_count_mismatch():
    with pytest.raises(ProofFormatError):
        public_inputs_of(ProofResult(name="sig_check_dsc", public_inputs=(1, 2, 3)))
    with pytest.raises(ProofFormatError):
        public_inputs_of(ProofResult(name="sig_check_dsc"))
