"""PKCE (Proof Key for Code Exchange) manager.

Implements RFC 7636 parameter generation and validation to prevent
authorization code interception attacks, plus the CSRF state token that
travels alongside it.
"""

from __future__ import annotations

import hashlib

from authcode.models.security import (
    MAX_VERIFIER_LENGTH,
    MIN_STATE_LENGTH,
    MIN_VERIFIER_LENGTH,
    PKCEParameters,
)
from authcode.primitives.encoding import base64url_encode
from authcode.primitives.entropy import EntropySource
from authcode.primitives.random_token import RandomTokenGenerator

CODE_VERIFIER_LENGTH = 128
STATE_LENGTH = 32


class PKCEManager:
    """Generates PKCE verifiers, challenges and CSRF state tokens.

    This implementation follows RFC 7636 requirements:
    - Uses S256 code challenge method (SHA256 + base64url)
    - Generates code verifiers of maximum length from the unreserved alphabet
    - Draws state independently of the verifier, so neither can be
      derived from the other
    """

    def __init__(self, entropy: EntropySource | None = None):
        """Initialize the PKCE manager.

        Args:
            entropy: Source of secure random bytes. Defaults to the
                process-wide system source.
        """
        self._generator = RandomTokenGenerator(entropy)

    def generate_parameters(self) -> PKCEParameters:
        """Generate a fresh verifier and its S256 challenge."""
        code_verifier = self.generate_code_verifier()
        return PKCEParameters(
            code_verifier=code_verifier,
            code_challenge=generate_code_challenge(code_verifier),
            code_challenge_method="S256",
        )

    def generate_code_verifier(self) -> str:
        """Generate a 128-character code verifier.

        RFC 7636 Section 4.1: code verifier must be 43-128 characters long
        and use only unreserved characters:
            [A-Z] / [a-z] / [0-9] / "-" / "." / "_" / "~"
        """
        return self._generator.generate(CODE_VERIFIER_LENGTH)

    def generate_code_challenge(self, code_verifier: str) -> str:
        return generate_code_challenge(code_verifier)

    def generate_state(self) -> str:
        """Generate a 32-character CSRF state token."""
        return self._generator.generate(STATE_LENGTH)

    def validate_code_verifier(self, code_verifier: str) -> bool:
        return validate_code_verifier(code_verifier)

    def validate_state(self, state: str) -> bool:
        return validate_state(state)


def generate_code_challenge(code_verifier: str) -> str:
    """Derive the S256 code challenge.

    RFC 7636 Section 4.2: BASE64URL-ENCODE(SHA256(ASCII(code_verifier)))

    Args:
        code_verifier: The code verifier to hash

    Returns:
        Base64url-encoded SHA256 hash of the code verifier, without padding
    """
    digest = hashlib.sha256(code_verifier.encode("utf-8")).digest()
    return base64url_encode(digest)


def validate_code_verifier(code_verifier: str) -> bool:
    """Check the RFC 7636 length bounds (43-128 characters)."""
    return MIN_VERIFIER_LENGTH <= len(code_verifier) <= MAX_VERIFIER_LENGTH


def validate_state(state: str) -> bool:
    """Check the state token is at least 32 characters."""
    return len(state) >= MIN_STATE_LENGTH
