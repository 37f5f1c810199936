"""Parser for non-determinism (secret input) documents."""

from typing import Any

from pydantic import ValidationError

from triton_cli.kernel.nondeterminism import NonDeterminism

from .common import format_validation_error


def parse_non_determinism(obj: Any) -> NonDeterminism:
    """
    Parse a non-determinism document.

    Expected shape: `{"individual_tokens": [...], "digests": [...], "ram": {...}}`.
    Every key is optional; unknown keys are rejected.

    Raises:
        ValueError: If the document does not match the schema
    """
    if not isinstance(obj, dict):
        raise ValueError(f"expected a JSON object, got {type(obj).__name__}")
    try:
        return NonDeterminism.model_validate(obj)
    except ValidationError as e:
        raise ValueError(format_validation_error(e)) from None
