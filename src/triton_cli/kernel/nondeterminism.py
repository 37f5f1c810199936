"""Pydantic models for field elements, digests and secret (non-deterministic) input."""

from typing import Annotated, Dict, List

from pydantic import BaseModel, PlainValidator, ConfigDict, Field, PlainSerializer, WithJsonSchema

from .digest import DIGEST_LENGTH, Digest, digest_from_json
from .field import PRIME


# Canonical field element. Strict: JSON booleans and strings are rejected.
FieldElement = Annotated[int, Field(strict=True, ge=0, lt=PRIME)]

# RAM addresses come from JSON object keys, which are always strings.
Address = Annotated[int, Field(ge=0, lt=PRIME)]

DigestElements = Annotated[
    Digest,
    PlainValidator(digest_from_json),
    PlainSerializer(lambda d: list(d), return_type=List[int]),
    WithJsonSchema({
        "type": "array",
        "items": {"type": "integer", "minimum": 0, "maximum": PRIME - 1},
        "minItems": DIGEST_LENGTH,
        "maxItems": DIGEST_LENGTH,
    }),
]


class NonDeterminism(BaseModel):
    """Secret input of a program: individual tokens, digests, and initial RAM.

    The three parts are consumed by `divine`, `merkle_step` and `read_mem`
    respectively. None of it is part of the claim.
    """
    individual_tokens: List[FieldElement] = Field(default_factory=list)
    digests: List[DigestElements] = Field(default_factory=list)
    ram: Dict[Address, FieldElement] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    def is_empty(self) -> bool:
        return not (self.individual_tokens or self.digests or self.ram)
