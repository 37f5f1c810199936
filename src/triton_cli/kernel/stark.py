"""Proof system parameters, the proof format, and the reference prover/verifier.

The reference proof is a transparent attestation: it commits to the claim
and to the execution trace, and carries the secret input so the verifier can
re-execute the program and compare. It is neither zero-knowledge nor
succinct; it exists so the command-line workflow (prove, persist, verify
later) runs end to end without a native proving backend.

Binary layout (all integers big-endian):

    magic "TVMP" | format version u16 | padded height u32
    claim binding (32 bytes) | trace commitment (32 bytes)
    program words:  u32 count, u64 each
    secret tokens:  u32 count, u64 each
    secret digests: u32 count, 5 x u64 each
    ram:            u32 count, (u64 address, u64 value) each
    checksum: SHA256 of everything above (32 bytes)
"""

import hashlib
import logging
import math
import struct
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from pydantic import BaseModel, ConfigDict

from .claim import Claim
from .digest import DIGEST_LENGTH, Digest
from .field import PRIME
from .nondeterminism import NonDeterminism
from .program import Program, ProgramDecodeError
from .vm import AlgebraicExecutionTrace, VMError, next_power_of_two, trace_execution


logger = logging.getLogger(__name__)

PROOF_MAGIC = b"TVMP"
PROOF_FORMAT_VERSION = 1

_HASH_BYTES = 32
_HEADER = struct.Struct(">4sHI")


class StarkParameters(BaseModel):
    """Parameters of the proof system, shared by prover and verifier."""
    security_level: int = 160
    fri_expansion_factor: int = 4

    model_config = ConfigDict(frozen=True, extra="forbid")

    @classmethod
    def default(cls) -> "StarkParameters":
        return cls()

    @property
    def num_collinearity_checks(self) -> int:
        return math.ceil(self.security_level / math.log2(self.fri_expansion_factor))

    @property
    def num_trace_randomizers(self) -> int:
        # Two out-of-domain rows, each in a degree-3 extension field.
        return self.num_collinearity_checks + 2 * 3

    def randomized_trace_length(self, padded_height: int) -> int:
        return next_power_of_two(padded_height + self.num_trace_randomizers)

    def fri_domain_length(self, padded_height: int) -> int:
        return self.fri_expansion_factor * self.randomized_trace_length(padded_height)

    def encode(self) -> bytes:
        return struct.pack(">II", self.security_level, self.fri_expansion_factor)


class ProofFormatError(ValueError):
    """Raised when bytes do not decode into a proof."""
    pass


class ProvingError(ValueError):
    """Raised when claim and trace do not belong together."""
    pass


@dataclass(frozen=True)
class Proof:
    """Reference proof; see the module docstring for the binary layout."""
    padded_height: int
    claim_binding: bytes
    trace_commitment: bytes
    program_words: Tuple[int, ...]
    individual_tokens: Tuple[int, ...]
    digests: Tuple[Digest, ...]
    ram: Tuple[Tuple[int, int], ...]

    def to_bytes(self) -> bytes:
        out = bytearray(_HEADER.pack(PROOF_MAGIC, PROOF_FORMAT_VERSION, self.padded_height))
        out += self.claim_binding
        out += self.trace_commitment
        _pack_words(out, self.program_words)
        _pack_words(out, self.individual_tokens)
        out += struct.pack(">I", len(self.digests))
        for digest in self.digests:
            out += struct.pack(f">{DIGEST_LENGTH}Q", *digest)
        out += struct.pack(">I", len(self.ram))
        for address, value in self.ram:
            out += struct.pack(">QQ", address, value)
        out += hashlib.sha256(out).digest()
        return bytes(out)

    @classmethod
    def from_bytes(cls, data: bytes) -> "Proof":
        if len(data) < _HEADER.size + 3 * _HASH_BYTES:
            raise ProofFormatError(f"proof is truncated ({len(data)} bytes)")
        body, checksum = data[:-_HASH_BYTES], data[-_HASH_BYTES:]
        if hashlib.sha256(body).digest() != checksum:
            raise ProofFormatError("proof checksum mismatch")

        magic, version, padded_height = _HEADER.unpack_from(body, 0)
        if magic != PROOF_MAGIC:
            raise ProofFormatError("not a proof file (bad magic)")
        if version != PROOF_FORMAT_VERSION:
            raise ProofFormatError(f"unsupported proof format version: {version}")

        reader = _Reader(body, _HEADER.size)
        claim_binding = reader.take(_HASH_BYTES)
        trace_commitment = reader.take(_HASH_BYTES)
        program_words = reader.words()
        individual_tokens = reader.words()
        digests = tuple(Digest(reader.elements(DIGEST_LENGTH)) for _ in range(reader.count()))
        ram = tuple(tuple(reader.elements(2)) for _ in range(reader.count()))
        if not reader.at_end():
            raise ProofFormatError("trailing bytes after proof")

        return cls(
            padded_height=padded_height,
            claim_binding=claim_binding,
            trace_commitment=trace_commitment,
            program_words=program_words,
            individual_tokens=individual_tokens,
            digests=digests,
            ram=ram,
        )

    def non_determinism(self) -> NonDeterminism:
        return NonDeterminism(
            individual_tokens=list(self.individual_tokens),
            digests=list(self.digests),
            ram=dict(self.ram),
        )


def _pack_words(out: bytearray, words: Sequence[int]) -> None:
    out += struct.pack(">I", len(words))
    out += struct.pack(f">{len(words)}Q", *words)


class _Reader:
    def __init__(self, data: bytes, offset: int):
        self.data = data
        self.offset = offset

    def take(self, n: int) -> bytes:
        end = self.offset + n
        if end > len(self.data):
            raise ProofFormatError("proof is truncated")
        chunk = self.data[self.offset:end]
        self.offset = end
        return chunk

    def count(self) -> int:
        return struct.unpack(">I", self.take(4))[0]

    def elements(self, n: int) -> List[int]:
        values = list(struct.unpack(f">{n}Q", self.take(8 * n)))
        for value in values:
            if value >= PRIME:
                raise ProofFormatError(f"{value} is not a field element")
        return values

    def words(self) -> Tuple[int, ...]:
        n = self.count()
        # Reject absurd counts before allocating anything.
        if 8 * n > len(self.data) - self.offset:
            raise ProofFormatError("proof is truncated")
        return tuple(self.elements(n))

    def at_end(self) -> bool:
        return self.offset == len(self.data)


def trace_commitment(parameters: StarkParameters, trace: AlgebraicExecutionTrace) -> bytes:
    """Commit to the parameters, the table heights and every processor row."""
    h = hashlib.sha256(parameters.encode())
    stats = trace.stats()
    for table, height in stats.table_heights.items():
        h.update(table.value.encode("utf-8"))
        h.update(struct.pack(">Q", height))
    for row in trace.processor_trace:
        h.update(struct.pack(f">{len(row)}Q", *row))
    return h.digest()


def prove(parameters: StarkParameters, claim: Claim, trace: AlgebraicExecutionTrace) -> Proof:
    """Produce a proof for `claim` from the execution trace.

    Raises:
        ProvingError: the trace is not an execution of the claimed program on
            the claimed input
    """
    if claim.program_digest != trace.program.digest():
        raise ProvingError("claimed program digest does not match the traced program")
    if tuple(claim.input) != tuple(trace.public_input):
        raise ProvingError("claimed public input does not match the traced input")

    nd = trace.non_determinism
    proof = Proof(
        padded_height=trace.stats().padded_height,
        claim_binding=claim.binding(),
        trace_commitment=trace_commitment(parameters, trace),
        program_words=tuple(trace.program.to_words()),
        individual_tokens=tuple(nd.individual_tokens),
        digests=tuple(nd.digests),
        ram=tuple(sorted(nd.ram.items())),
    )
    logger.debug(
        "proof generated: padded height %d, FRI domain length %d",
        proof.padded_height,
        parameters.fri_domain_length(proof.padded_height),
    )
    return proof


def verify(parameters: StarkParameters, claim: Claim, proof: Proof) -> bool:
    """Check that `proof` attests to `claim`. Never raises for a bad proof."""
    if proof.claim_binding != claim.binding():
        logger.debug("rejected: proof is bound to a different claim")
        return False

    try:
        program = Program.from_words(proof.program_words)
    except ProgramDecodeError as e:
        logger.debug("rejected: proof carries an undecodable program: %s", e)
        return False
    if program.digest() != claim.program_digest:
        logger.debug("rejected: program digest mismatch")
        return False

    try:
        trace, output = trace_execution(program, claim.input, proof.non_determinism())
    except VMError as e:
        logger.debug("rejected: re-execution failed: %s", e)
        return False

    if list(output) != list(claim.output):
        logger.debug("rejected: public output mismatch")
        return False
    if trace.stats().padded_height != proof.padded_height:
        logger.debug("rejected: padded height mismatch")
        return False
    if trace_commitment(parameters, trace) != proof.trace_commitment:
        logger.debug("rejected: trace commitment mismatch")
        return False
    return True
