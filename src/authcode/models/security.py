"""Security-related models for the authorization code flow.

Contains PKCE parameters and the length bounds shared by the generators
and validators.
"""

from __future__ import annotations

from dataclasses import dataclass, field

MIN_VERIFIER_LENGTH = 43
MAX_VERIFIER_LENGTH = 128
MIN_STATE_LENGTH = 32


@dataclass(frozen=True)
class PKCEParameters:
    """PKCE (Proof Key for Code Exchange) parameters.

    Immutable parameters generated for each authorization flow to prevent
    authorization code interception attacks (RFC 7636).
    """

    code_verifier: str = field()
    code_challenge: str = field()
    code_challenge_method: str = field(default="S256")

    def __post_init__(self) -> None:
        """Validate PKCE parameters meet RFC 7636 requirements."""
        if not (MIN_VERIFIER_LENGTH <= len(self.code_verifier) <= MAX_VERIFIER_LENGTH):
            raise ValueError("code_verifier must be 43-128 characters")
        if self.code_challenge_method != "S256":
            raise ValueError("Only S256 code challenge method is supported")
