"""Claim: the public statement a proof attests to."""

import hashlib
import json
from typing import Annotated, List

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, PlainValidator, WithJsonSchema

from .digest import DIGEST_LENGTH, Digest
from .nondeterminism import FieldElement
from .program import Program


CLAIM_VERSION = 0


def _digest_from_hex(value) -> Digest:
    if isinstance(value, Digest):
        return value
    if not isinstance(value, str):
        raise ValueError(f"program digest must be a hex string, got {type(value).__name__}")
    return Digest.from_hex(value)


HexDigest = Annotated[
    Digest,
    PlainValidator(_digest_from_hex),
    PlainSerializer(lambda d: d.to_hex(), return_type=str),
    WithJsonSchema({"type": "string", "pattern": f"^[0-9a-fA-F]{{{DIGEST_LENGTH * 16}}}$"}),
]


class Claim(BaseModel):
    """Program identity plus public input and public output.

    Built fresh for every proof with `about_program`, `with_input` and
    `with_output`. Instances are frozen; the builders return copies.
    """
    program_digest: HexDigest
    version: int = CLAIM_VERSION
    input: List[FieldElement] = Field(default_factory=list)
    output: List[FieldElement] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    @classmethod
    def about_program(cls, program: Program) -> "Claim":
        return cls(program_digest=program.digest())

    def with_input(self, public_input) -> "Claim":
        return self.model_copy(update={"input": list(public_input)})

    def with_output(self, public_output) -> "Claim":
        return self.model_copy(update={"output": list(public_output)})

    def binding(self) -> bytes:
        """SHA256 over the canonical JSON form; proofs commit to this value."""
        canonical = json.dumps(
            self.model_dump(mode="json"),
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
        )
        return hashlib.sha256(canonical.encode("utf-8")).digest()
