"""Parser for initial-state documents.

An initial state bundles everything needed to start the VM in one file:
the program source, public input and the three kinds of secret input.
"""

from typing import Any, Dict, List, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from triton_cli.kernel.nondeterminism import (
    Address,
    DigestElements,
    FieldElement,
    NonDeterminism,
)

from .common import format_validation_error


class InitialStateDocument(BaseModel):
    """Initial-state schema."""
    program: Union[str, List[str]]  # source text, or one line per entry
    public_input: List[FieldElement] = Field(default_factory=list)
    secret_individual_tokens: List[FieldElement] = Field(default_factory=list)
    secret_digests: List[DigestElements] = Field(default_factory=list)
    ram: Dict[Address, FieldElement] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    def program_source(self) -> str:
        if isinstance(self.program, str):
            return self.program
        return "\n".join(self.program)

    def non_determinism(self) -> NonDeterminism:
        return NonDeterminism(
            individual_tokens=list(self.secret_individual_tokens),
            digests=list(self.secret_digests),
            ram=dict(self.ram),
        )


def parse_initial_state(obj: Any) -> InitialStateDocument:
    """
    Parse an initial-state document.

    Raises:
        ValueError: If the document does not match the schema
    """
    if not isinstance(obj, dict):
        raise ValueError(f"expected a JSON object, got {type(obj).__name__}")
    try:
        return InitialStateDocument.model_validate(obj)
    except ValidationError as e:
        raise ValueError(format_validation_error(e)) from None
