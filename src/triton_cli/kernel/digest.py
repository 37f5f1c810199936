"""Digests: fixed-length tuples of field elements, and the hash producing them.

Key rules:
- A digest is exactly DIGEST_LENGTH canonical field elements
- Hex form is 16 big-endian hex digits per element, concatenated
- Hashing absorbs the 8-byte big-endian encoding of every element, with a
  domain separation tag, and squeezes DIGEST_LENGTH elements reduced mod p
"""

import hashlib
from typing import Iterable, Sequence

from .field import PRIME, is_canonical


DIGEST_LENGTH = 5

# Elements absorbed per permutation of the hash table, see `vm`.
RATE = 10

_ELEMENT_BYTES = 8


class DigestError(ValueError):
    """Raised when a value cannot be interpreted as a digest."""
    pass


class Digest(tuple):
    """Immutable digest of DIGEST_LENGTH field elements."""

    def __new__(cls, elements: Iterable[int]):
        elements = tuple(elements)
        if len(elements) != DIGEST_LENGTH:
            raise DigestError(
                f"a digest has {DIGEST_LENGTH} elements, got {len(elements)}"
            )
        for element in elements:
            if not is_canonical(element):
                raise DigestError(f"digest element {element!r} is not a field element")
        return super().__new__(cls, elements)

    @classmethod
    def zero(cls) -> "Digest":
        return cls([0] * DIGEST_LENGTH)

    @classmethod
    def from_hex(cls, text: str) -> "Digest":
        """Parse the hex form produced by `to_hex`."""
        expected = DIGEST_LENGTH * 2 * _ELEMENT_BYTES
        if len(text) != expected:
            raise DigestError(
                f"hex digest must have {expected} characters, got {len(text)}"
            )
        try:
            raw = bytes.fromhex(text)
        except ValueError as e:
            raise DigestError(f"invalid hex digest: {e}") from e
        return cls(
            int.from_bytes(raw[i:i + _ELEMENT_BYTES], "big")
            for i in range(0, len(raw), _ELEMENT_BYTES)
        )

    def to_hex(self) -> str:
        return "".join(element.to_bytes(_ELEMENT_BYTES, "big").hex() for element in self)

    def __repr__(self) -> str:
        return f"Digest({self.to_hex()})"

    def __str__(self) -> str:
        return self.to_hex()


def _encode(elements: Sequence[int]) -> bytes:
    return b"".join(e.to_bytes(_ELEMENT_BYTES, "big") for e in elements)


def _squeeze(domain: bytes, payload: bytes) -> Digest:
    # 16 bytes per element keeps the bias of the reduction mod p negligible.
    h = hashlib.shake_256(len(domain).to_bytes(1, "big") + domain + payload)
    raw = h.digest(DIGEST_LENGTH * 16)
    return Digest(
        int.from_bytes(raw[i:i + 16], "big") % PRIME
        for i in range(0, len(raw), 16)
    )


def hash_varlen(elements: Sequence[int]) -> Digest:
    """Hash a sequence of field elements of any length."""
    length = len(elements).to_bytes(_ELEMENT_BYTES, "big")
    return _squeeze(b"triton.varlen", length + _encode(elements))


def hash_fixed(elements: Sequence[int]) -> Digest:
    """Hash exactly RATE field elements (instruction `hash`)."""
    if len(elements) != RATE:
        raise DigestError(f"fixed-length hashing takes {RATE} elements, got {len(elements)}")
    return _squeeze(b"triton.fixed", _encode(elements))


def hash_pair(left: Digest, right: Digest) -> Digest:
    """Merkle tree node: hash of the left child followed by the right child."""
    return hash_fixed(list(left) + list(right))


def permutation_count(num_elements: int) -> int:
    """Number of permutations needed to absorb `num_elements` with padding.

    Padding always appends at least one element, so the count is
    `num_elements // RATE + 1`.
    """
    return num_elements // RATE + 1


def digest_from_json(value) -> Digest:
    """Accept a digest from a JSON document: hex string or list of integers."""
    if isinstance(value, Digest):
        return value
    if isinstance(value, str):
        return Digest.from_hex(value)
    if isinstance(value, (list, tuple)):
        return Digest(value)
    raise DigestError(
        f"a digest is a hex string or a list of {DIGEST_LENGTH} integers, got {type(value).__name__}"
    )

