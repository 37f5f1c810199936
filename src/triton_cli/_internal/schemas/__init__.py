"""Parsers for the JSON documents the CLI reads.

Each parser takes the decoded JSON object and returns a validated model,
raising ValueError with a readable message on any schema violation.
"""

from .common import format_validation_error
from .nondeterminism_schema import parse_non_determinism
from .initial_state_schema import InitialStateDocument, parse_initial_state

__all__ = [
    "format_validation_error",
    "parse_non_determinism",
    "InitialStateDocument",
    "parse_initial_state",
]
