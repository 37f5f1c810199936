"""Public API for triton-cli.

High-level functions behind the `run`, `prove` and `verify` commands. Each
returns a structured result and raises a `TritonCliError` subclass on
failure. A rejected proof is a result (`VerifyResult.accepted is False`),
not an error.
"""

import logging
from typing import List, Optional

from pydantic import BaseModel, Field

from triton_cli.config import default_stark_parameters
from triton_cli.errors import EngineFault
from triton_cli.kernel.claim import Claim
from triton_cli.kernel.engine import ReferenceEngine, VMEngine
from triton_cli.kernel.field import format_elements
from triton_cli.kernel.stark import ProvingError
from triton_cli.kernel.vm import VMError
from triton_cli._internal.io.artifacts import ProofArtifacts, read_artifacts, write_artifacts
from triton_cli._internal.profiling import (
    ExecutionProfile,
    ProofProfile,
    Stopwatch,
    VerificationProfile,
)
from triton_cli._internal.resolve import (
    ExecutionRequest,
    RunArgs,
    resolve,
)


logger = logging.getLogger(__name__)


class RunResult(BaseModel):
    """Result of executing a program."""
    output: List[int]
    profile: Optional[ExecutionProfile] = None

    def format_output(self) -> str:
        """Comma-separated output, or the empty string for no output."""
        return format_elements(self.output)


class ProveResult(BaseModel):
    """Result of proving; the claim is what was written to disk."""
    claim: Claim
    artifacts: ProofArtifacts
    padded_height: int
    profile: Optional[ProofProfile] = None


class VerifyResult(BaseModel):
    """Verdict on a claim/proof pair."""
    accepted: bool
    claim: Claim
    profile: Optional[VerificationProfile] = None
    reasons: List[str] = Field(default_factory=list)


def _engine_or_default(engine: Optional[VMEngine]) -> VMEngine:
    return engine if engine is not None else ReferenceEngine(default_stark_parameters())


def run(args: RunArgs, engine: Optional[VMEngine] = None, profile: bool = False) -> RunResult:
    """
    Execute a program and return its public output.

    Raises:
        UsageError, InputFileError, ParseError, RangeError,
        DeserializationError: from input resolution
        EngineFault: the program did not terminate gracefully
    """
    engine = _engine_or_default(engine)
    stopwatch = Stopwatch()
    request = resolve(args, engine)
    stopwatch.lap("resolve")

    try:
        if profile:
            output, stats = engine.profile(request.program, request.public_input, request.non_determinism)
        else:
            output = engine.execute(request.program, request.public_input, request.non_determinism)
    except VMError as e:
        raise EngineFault(f"execution failed: {e}") from e
    stopwatch.lap("execute")
    logger.info("execution finished with %d output element(s)", len(output))

    execution_profile = None
    if profile:
        execution_profile = ExecutionProfile.from_stats(stats, stopwatch.timings)
    return RunResult(output=list(output), profile=execution_profile)


def _prove_request(request: ExecutionRequest, engine: VMEngine, stopwatch: Stopwatch):
    claim = Claim.about_program(request.program).with_input(request.public_input)
    try:
        trace, output = engine.trace_execution(
            request.program, request.public_input, request.non_determinism
        )
    except VMError as e:
        raise EngineFault(f"execution failed: {e}") from e
    stopwatch.lap("trace execution")
    logger.info("traced %d cycle(s)", trace.cycle_count)

    claim = claim.with_output(output)
    try:
        proof = engine.prove(claim, trace)
    except ProvingError as e:
        raise EngineFault(f"proving failed: {e}") from e
    stopwatch.lap("prove")
    return claim, trace, proof


def prove(
    args: RunArgs,
    artifacts: Optional[ProofArtifacts] = None,
    engine: Optional[VMEngine] = None,
    profile: bool = False,
) -> ProveResult:
    """
    Execute a program, prove the execution and write claim and proof.

    Nothing is written unless proving succeeds.

    Raises:
        UsageError, InputFileError, ParseError, RangeError,
        DeserializationError: from input resolution
        EngineFault: execution or proving failed
        InputFileError: an artifact cannot be written
    """
    engine = _engine_or_default(engine)
    artifacts = artifacts or ProofArtifacts()
    stopwatch = Stopwatch()
    request = resolve(args, engine)
    stopwatch.lap("resolve")

    claim, trace, proof = _prove_request(request, engine, stopwatch)
    write_artifacts(claim, proof, artifacts)
    stopwatch.lap("write artifacts")

    proof_profile = None
    if profile:
        proof_profile = ProofProfile(
            execution=ExecutionProfile.from_stats(
                trace.stats(), stopwatch.timings, default_stark_parameters()
            ),
            proof_size_bytes=len(proof.to_bytes()),
        )
    return ProveResult(
        claim=claim,
        artifacts=artifacts,
        padded_height=proof.padded_height,
        profile=proof_profile,
    )


def verify(
    artifacts: Optional[ProofArtifacts] = None,
    engine: Optional[VMEngine] = None,
    profile: bool = False,
) -> VerifyResult:
    """
    Check a claim/proof pair with the default proof system parameters.

    Raises:
        InputFileError: a file is missing or unreadable
        DeserializationError: a file is malformed
    """
    engine = _engine_or_default(engine)
    artifacts = artifacts or ProofArtifacts()
    parameters = default_stark_parameters()
    stopwatch = Stopwatch()
    claim, proof = read_artifacts(artifacts)
    stopwatch.lap("read artifacts")

    accepted = engine.verify(claim, proof, parameters)
    stopwatch.lap("verify")
    logger.info("proof %s", "accepted" if accepted else "rejected")

    verification_profile = None
    if profile:
        verification_profile = VerificationProfile(
            padded_height=proof.padded_height,
            fri_domain_length=parameters.fri_domain_length(proof.padded_height),
            proof_size_bytes=len(proof.to_bytes()),
            timings_ms=stopwatch.timings,
        )
    reasons = [] if accepted else ["proof does not attest to the claim"]
    return VerifyResult(accepted=accepted, claim=claim, profile=verification_profile, reasons=reasons)
