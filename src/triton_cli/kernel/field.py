"""Prime field arithmetic for the base field of the VM.

Field: F_p where p = 2^64 - 2^32 + 1.

Field elements are plain Python ints in canonical form, i.e. in [0, p).
Everything that enters the VM from the outside (public input, secret input,
RAM, claims, proofs) passes through `to_field` or `parse_field_element`
so non-canonical values never reach the interpreter.
"""

import re
from typing import Iterable, List


PRIME = (1 << 64) - (1 << 32) + 1

U32_LIMIT = 1 << 32

_INTEGER_RE = re.compile(r"^[+-]?[0-9]+$")

# Tokens with more significant digits than the prime are out of range.
_MAX_DIGITS = len(str(PRIME))


class FieldRangeError(ValueError):
    """Raised when an integer cannot be mapped into the field."""

    def __init__(self, value):
        self.value = value
        super().__init__(
            f"{value} is not in the field's range; "
            f"values must satisfy -{PRIME} < value < {PRIME}"
        )


def to_field(value: int) -> int:
    """Map a signed integer into canonical form.

    Negative values wrap around the modulus, so -1 becomes p - 1. Values with
    an absolute value of p or more are rejected instead of being reduced.
    """
    if value <= -PRIME or value >= PRIME:
        raise FieldRangeError(value)
    return value % PRIME


def is_canonical(value: int) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value < PRIME


def parse_field_element(token: str) -> int:
    """Parse one decimal, optionally signed, integer token.

    Raises:
        ValueError: token is not an integer
        FieldRangeError: integer is outside of the field's range
    """
    token = token.strip()
    if not _INTEGER_RE.match(token):
        raise ValueError(f"invalid integer {token!r}")
    digits = token.lstrip("+-").lstrip("0")
    if len(digits) > _MAX_DIGITS:
        raise FieldRangeError(f"{token[:_MAX_DIGITS]}... ({len(digits)} digits)")
    return to_field(int(token))


def parse_field_elements(text: str) -> List[int]:
    """Parse a comma-separated list of signed integers.

    Surrounding whitespace of every token is ignored. Empty (or
    whitespace-only) text is the empty list.
    """
    if not text.strip():
        return []
    return [parse_field_element(token) for token in text.split(",")]


def add(a: int, b: int) -> int:
    return (a + b) % PRIME


def mul(a: int, b: int) -> int:
    return (a * b) % PRIME


def inverse(a: int) -> int:
    """Multiplicative inverse via Fermat's little theorem."""
    if a % PRIME == 0:
        raise ZeroDivisionError("cannot invert zero")
    return pow(a, PRIME - 2, PRIME)


def power(base: int, exponent: int) -> int:
    return pow(base, exponent, PRIME)


def is_u32(value: int) -> bool:
    return 0 <= value < U32_LIMIT


def format_elements(values: Iterable[int]) -> str:
    """Render field elements the way the CLI prints public output."""
    return ", ".join(str(v) for v in values)
