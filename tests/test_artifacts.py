"""Tests for reading and writing claim and proof files."""

import json
import os
import stat
from pathlib import Path

import pytest

from triton_cli.errors import DeserializationError, InputFileError
from triton_cli.kernel import stark
from triton_cli.kernel.claim import CLAIM_VERSION, Claim
from triton_cli.kernel.nondeterminism import NonDeterminism
from triton_cli.kernel.program import parse_program
from triton_cli.kernel.vm import trace_execution
from triton_cli.api import prove
from triton_cli._internal.io.artifacts import ProofArtifacts, read_artifacts, write_artifacts
from triton_cli._internal.resolve import SeparateFilesArgs


@pytest.fixture
def claim_and_proof():
    program = parse_program("read_io 2 add write_io 1 halt")
    trace, output = trace_execution(program, [42, 58], NonDeterminism())
    claim = Claim.about_program(program).with_input([42, 58]).with_output(output)
    return claim, stark.prove(stark.StarkParameters.default(), claim, trace)


def test_default_paths():
    artifacts = ProofArtifacts()
    assert artifacts.claim == Path("triton.claim")
    assert artifacts.proof == Path("triton.proof")


def test_write_then_read(tmp_path, claim_and_proof):
    claim, proof = claim_and_proof
    artifacts = ProofArtifacts(claim=tmp_path / "c.json", proof=tmp_path / "p.bin")
    write_artifacts(claim, proof, artifacts)
    assert read_artifacts(artifacts) == (claim, proof)


def test_claim_file_is_readable_json(tmp_path, claim_and_proof):
    claim, proof = claim_and_proof
    artifacts = ProofArtifacts(claim=tmp_path / "c.json", proof=tmp_path / "p.bin")
    write_artifacts(claim, proof, artifacts)
    data = json.loads(artifacts.claim.read_text(encoding="utf-8"))
    assert set(data) == {"program_digest", "version", "input", "output"}
    assert data["version"] == CLAIM_VERSION
    assert data["input"] == [42, 58]
    assert data["output"] == [100]
    assert len(data["program_digest"]) == 80


def test_existing_files_are_replaced_without_leftovers(tmp_path, claim_and_proof):
    claim, proof = claim_and_proof
    artifacts = ProofArtifacts(claim=tmp_path / "c.json", proof=tmp_path / "p.bin")
    artifacts.claim.write_text("old", encoding="utf-8")
    artifacts.proof.write_bytes(b"old")
    write_artifacts(claim, proof, artifacts)
    assert read_artifacts(artifacts) == (claim, proof)
    assert sorted(p.name for p in tmp_path.iterdir()) == ["c.json", "p.bin"]


def test_unwritable_location(tmp_path, claim_and_proof):
    claim, proof = claim_and_proof
    artifacts = ProofArtifacts(claim=tmp_path / "missing-dir" / "c.json", proof=tmp_path / "p.bin")
    with pytest.raises(InputFileError) as excinfo:
        write_artifacts(claim, proof, artifacts)
    assert excinfo.value.argument == "claim"


@pytest.mark.parametrize("which", ["claim", "proof"])
def test_missing_files(tmp_path, claim_and_proof, which):
    claim, proof = claim_and_proof
    artifacts = ProofArtifacts(claim=tmp_path / "c.json", proof=tmp_path / "p.bin")
    write_artifacts(claim, proof, artifacts)
    getattr(artifacts, which).unlink()
    with pytest.raises(InputFileError) as excinfo:
        read_artifacts(artifacts)
    assert excinfo.value.argument == which


@pytest.mark.parametrize(
    "content",
    [
        "{",
        "[]",
        '{"program_digest": "abc", "version": 0, "input": [], "output": []}',
        '{"version": 0, "input": [], "output": []}',
        '{"program_digest": "' + "0" * 80 + '", "input": [-1], "output": []}',
        '{"program_digest": "' + "0" * 80 + '", "extra": 1}',
    ],
)
def test_malformed_claim(tmp_path, claim_and_proof, content):
    claim, proof = claim_and_proof
    artifacts = ProofArtifacts(claim=tmp_path / "c.json", proof=tmp_path / "p.bin")
    write_artifacts(claim, proof, artifacts)
    artifacts.claim.write_text(content, encoding="utf-8")
    with pytest.raises(DeserializationError):
        read_artifacts(artifacts)


@pytest.mark.parametrize("content", [b"", b"TVMP", b"not a proof at all" * 10])
def test_malformed_proof(tmp_path, claim_and_proof, content):
    claim, proof = claim_and_proof
    artifacts = ProofArtifacts(claim=tmp_path / "c.json", proof=tmp_path / "p.bin")
    write_artifacts(claim, proof, artifacts)
    artifacts.proof.write_bytes(content)
    with pytest.raises(DeserializationError):
        read_artifacts(artifacts)


@pytest.mark.skipif(os.name != "posix", reason="POSIX file modes")
def test_new_files_follow_the_umask(tmp_path, claim_and_proof):
    claim, proof = claim_and_proof
    artifacts = ProofArtifacts(claim=tmp_path / "c.json", proof=tmp_path / "p.bin")
    old_umask = os.umask(0o022)
    try:
        write_artifacts(claim, proof, artifacts)
    finally:
        os.umask(old_umask)
    assert stat.S_IMODE(artifacts.claim.stat().st_mode) == 0o644
    assert stat.S_IMODE(artifacts.proof.stat().st_mode) == 0o644


@pytest.mark.skipif(os.name != "posix", reason="POSIX file modes")
def test_replaced_files_keep_their_mode(tmp_path, write_file):
    artifacts = ProofArtifacts(claim=tmp_path / "c.json", proof=tmp_path / "p.bin")
    artifacts.claim.write_text("old", encoding="utf-8")
    artifacts.proof.write_bytes(b"old")
    os.chmod(artifacts.claim, 0o644)
    os.chmod(artifacts.proof, 0o640)
    program = write_file("halt.tasm", "halt")
    prove(SeparateFilesArgs(program), artifacts)
    assert stat.S_IMODE(artifacts.claim.stat().st_mode) == 0o644
    assert stat.S_IMODE(artifacts.proof.stat().st_mode) == 0o640
