"""Cryptographically secure entropy sources.

Every generator in this package draws its randomness through an
``EntropySource``. The process-wide default is created lazily and can be
swapped out in tests; consumers also accept a source at construction.
"""

from __future__ import annotations

import logging
import secrets
import threading
from typing import Protocol

from authcode.models.errors import EntropyError

logger = logging.getLogger(__name__)


class EntropySource(Protocol):
    """Supplier of secure random bytes.

    Implementations must be safe for concurrent draws and must raise
    EntropyError rather than fall back to a weaker source.
    """

    def draw(self, n: int) -> bytes:
        """Return exactly ``n`` secure random bytes."""
        ...


class SystemEntropySource:
    """Entropy from the operating system CSPRNG."""

    def draw(self, n: int) -> bytes:
        try:
            data = secrets.token_bytes(n)
        except (OSError, NotImplementedError) as e:
            raise EntropyError(f"System entropy source unavailable: {e}") from e

        if len(data) != n:
            raise EntropyError(
                f"System entropy source returned {len(data)} bytes, expected {n}"
            )
        return data


_default_source: EntropySource | None = None
_default_lock = threading.Lock()


def get_default_entropy_source() -> EntropySource:
    """Return the process-wide entropy source, creating it on first use."""
    global _default_source
    if _default_source is None:
        with _default_lock:
            if _default_source is None:
                logger.debug("Initializing system entropy source")
                _default_source = SystemEntropySource()
    return _default_source


def set_default_entropy_source(source: EntropySource | None) -> None:
    """Replace the process-wide entropy source.

    Passing None resets it so the next call recreates the system source.
    """
    global _default_source
    with _default_lock:
        _default_source = source
