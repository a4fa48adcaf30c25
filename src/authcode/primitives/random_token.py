"""Uniform random strings over the RFC 3986 unreserved alphabet.

Uses rejection sampling: 256 is not a multiple of 66, so mapping every byte
with ``byte % 66`` would favour the first 58 characters. Bytes at or above
the largest multiple of 66 that fits in a byte are thrown away instead.
"""

from __future__ import annotations

import string

from authcode.models.errors import EntropyError
from authcode.primitives.entropy import EntropySource, get_default_entropy_source

# RFC 7636 Section 4.1: ALPHA / DIGIT / "-" / "." / "_" / "~"
UNRESERVED_ALPHABET = (
    string.ascii_uppercase + string.ascii_lowercase + string.digits + "-._~"
)


def acceptance_ceiling(alphabet_size: int) -> int:
    """Largest multiple of ``alphabet_size`` that fits in a byte's range."""
    return 256 - (256 % alphabet_size)


# 198: bytes below this map uniformly onto the 66 symbols
ACCEPTANCE_CEILING = acceptance_ceiling(len(UNRESERVED_ALPHABET))


class RandomTokenGenerator:
    """Draws unbiased random strings from an injected entropy source."""

    def __init__(
        self,
        entropy: EntropySource | None = None,
        alphabet: str = UNRESERVED_ALPHABET,
    ):
        """Initialize the generator.

        Args:
            entropy: Source of secure random bytes. Defaults to the
                process-wide system source.
            alphabet: Output symbols, at most 256 of them
        """
        if not 0 < len(alphabet) <= 256:
            raise ValueError("alphabet must contain between 1 and 256 symbols")
        self._entropy = entropy
        self.alphabet = alphabet
        self.ceiling = acceptance_ceiling(len(alphabet))

    @property
    def entropy(self) -> EntropySource:
        return self._entropy or get_default_entropy_source()

    def generate(self, length: int) -> str:
        """Return exactly ``length`` uniformly drawn characters.

        Raises:
            ValueError: If length is negative
            EntropyError: If the entropy source fails
        """
        if length < 0:
            raise ValueError("length must be non-negative")

        size = len(self.alphabet)
        chars: list[str] = []
        while len(chars) < length:
            remaining = length - len(chars)
            # ~1.5% of bytes get rejected for 66 symbols; oversize the batch
            batch = self._draw(remaining + remaining // 16 + 8)
            for byte in batch:
                if byte >= self.ceiling:
                    continue
                chars.append(self.alphabet[byte % size])
                if len(chars) == length:
                    break

        return "".join(chars)

    def _draw(self, n: int) -> bytes:
        try:
            data = self.entropy.draw(n)
        except EntropyError:
            raise
        except Exception as e:
            raise EntropyError(f"Entropy source failed: {e}") from e

        if len(data) != n:
            raise EntropyError(
                f"Entropy source returned {len(data)} bytes, expected {n}"
            )
        return data


def generate_random_string(length: int, entropy: EntropySource | None = None) -> str:
    """Convenience wrapper around RandomTokenGenerator.generate."""
    return RandomTokenGenerator(entropy).generate(length)
