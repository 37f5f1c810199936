"""Tests for proof system parameters, the proof format, and prove/verify."""

import pytest

from triton_cli.kernel import stark
from triton_cli.kernel.claim import Claim
from triton_cli.kernel.field import PRIME
from triton_cli.kernel.nondeterminism import NonDeterminism
from triton_cli.kernel.program import parse_program
from triton_cli.kernel.stark import Proof, ProofFormatError, ProvingError, StarkParameters
from triton_cli.kernel.vm import trace_execution


PARAMS = StarkParameters.default()


def _prove(source, public_input=(), non_determinism=None):
    program = parse_program(source)
    nd = non_determinism or NonDeterminism()
    claim = Claim.about_program(program).with_input(public_input)
    trace, output = trace_execution(program, list(public_input), nd)
    claim = claim.with_output(output)
    return claim, stark.prove(PARAMS, claim, trace)


def test_default_parameters():
    assert PARAMS.security_level == 160
    assert PARAMS.fri_expansion_factor == 4
    assert PARAMS.num_collinearity_checks == 80
    assert PARAMS.num_trace_randomizers == 86


def test_fri_domain_length():
    # 256 + 86 randomizers -> 512, times the expansion factor
    assert PARAMS.fri_domain_length(256) == 2048
    assert PARAMS.fri_domain_length(1024) == 8192


def test_prove_and_verify():
    claim, proof = _prove("read_io 2 add write_io 1 halt", [42, 58])
    assert claim.output == [100]
    assert proof.padded_height == 256
    assert stark.verify(PARAMS, claim, proof) is True


def test_verify_with_secret_input():
    nd = NonDeterminism(individual_tokens=[255], ram={8: 100, 9: 200, 10: 300})
    claim, proof = _prove("divine 1 push 10 read_mem 3 write_io 5 halt", non_determinism=nd)
    assert stark.verify(PARAMS, claim, proof) is True


def test_proof_bytes_round_trip():
    nd = NonDeterminism(individual_tokens=[1, 2], digests=[[1, 2, 3, 4, 5]], ram={3: 4})
    _, proof = _prove("halt", non_determinism=nd)
    assert Proof.from_bytes(proof.to_bytes()) == proof


def test_verify_rejects_other_output():
    claim, proof = _prove("read_io 2 add write_io 1 halt", [42, 58])
    assert stark.verify(PARAMS, claim.with_output([101]), proof) is False


def test_verify_rejects_other_input():
    claim, proof = _prove("read_io 1 push 42 eq assert halt", [42])
    assert stark.verify(PARAMS, claim.with_input([43]), proof) is False


def test_verify_rejects_other_program():
    claim, proof = _prove("halt")
    other = Claim.about_program(parse_program("nop halt"))
    assert stark.verify(PARAMS, other, proof) is False


def test_verify_rejects_other_parameters():
    claim, proof = _prove("halt")
    assert stark.verify(StarkParameters(security_level=128), claim, proof) is False


def test_prove_rejects_mismatched_claim():
    program = parse_program("halt")
    trace, _ = trace_execution(program, [], NonDeterminism())
    claim = Claim.about_program(parse_program("nop halt"))
    with pytest.raises(ProvingError):
        stark.prove(PARAMS, claim, trace)


def test_every_flipped_byte_is_detected():
    claim, proof = _prove("read_io 2 add write_io 1 halt", [42, 58])
    data = proof.to_bytes()
    for i in range(len(data)):
        tampered = bytearray(data)
        tampered[i] ^= 0x01
        try:
            decoded = Proof.from_bytes(bytes(tampered))
        except ProofFormatError:
            continue
        assert stark.verify(PARAMS, claim, decoded) is False


@pytest.mark.parametrize("cut", [0, 10, 60])
def test_truncated_proof(cut):
    _, proof = _prove("halt")
    with pytest.raises(ProofFormatError):
        Proof.from_bytes(proof.to_bytes()[:cut])


def test_trailing_bytes_are_rejected():
    _, proof = _prove("halt")
    with pytest.raises(ProofFormatError):
        Proof.from_bytes(proof.to_bytes() + b"\x00")


def test_out_of_field_value_is_rejected():
    _, proof = _prove("halt")
    forged = Proof(
        padded_height=proof.padded_height,
        claim_binding=proof.claim_binding,
        trace_commitment=proof.trace_commitment,
        program_words=proof.program_words,
        individual_tokens=(PRIME,),
        digests=(),
        ram=(),
    )
    with pytest.raises(ProofFormatError, match="not a field element"):
        Proof.from_bytes(forged.to_bytes())
