"""Common helpers for schema parsing."""

from pydantic import ValidationError


def format_validation_error(error: ValidationError) -> str:
    """Collapse a pydantic error into one line: `loc: msg; loc: msg`."""
    parts = []
    for item in error.errors():
        loc = ".".join(str(p) for p in item["loc"]) or "<root>"
        parts.append(f"{loc}: {item['msg']}")
    return "; ".join(parts)
