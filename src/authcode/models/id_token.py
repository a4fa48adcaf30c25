"""OpenID Connect ID token models.

Contains the decoded JWT header and claim set, and the configuration the
claims are validated against.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_CLOCK_SKEW_SECONDS = 60


class JwtHeader(BaseModel):
    model_config = ConfigDict(frozen=True)

    alg: str  # e.g. "RS256"
    typ: str | None = None
    kid: str | None = None  # Key ID for looking up the signing key


class IdTokenClaims(BaseModel):
    """Standard OIDC ID token claims (OpenID Connect Core Section 2).

    ``aud`` is always a non-empty list, whether the token carried a single
    string or an array.
    """

    model_config = ConfigDict(frozen=True)

    iss: str
    sub: str
    aud: list[str] = Field(min_length=1)
    exp: int
    iat: int
    nonce: str | None = None
    auth_time: int | None = None
    azp: str | None = None
    at_hash: str | None = None
    email: str | None = None
    email_verified: bool | None = None
    name: str | None = None
    picture: str | None = None
    given_name: str | None = None
    family_name: str | None = None
    locale: str | None = None


@dataclass(frozen=True)
class DecodedIdToken:
    header: JwtHeader
    claims: IdTokenClaims
    signature: str  # Raw base64url segment; never verified


class TokenSource(Enum):
    """How an ID token reached the application.

    Decides whether claims-only validation is acceptable.
    """

    # Straight from the provider's token endpoint over TLS
    DIRECT_FROM_TOKEN_ENDPOINT = "direct_from_token_endpoint"
    # Browser, mobile app or any other channel an attacker can write to
    FROM_UNTRUSTED_SOURCE = "from_untrusted_source"


class ValidationConfig(BaseModel):
    """Expected values for ID token claim validation."""

    model_config = ConfigDict(frozen=True)

    issuer: str
    client_id: str  # Expected audience
    clock_skew_seconds: int = Field(default=DEFAULT_CLOCK_SKEW_SECONDS, ge=0)
    require_nonce: bool = False
    expected_nonce: str | None = None

    @model_validator(mode="after")
    def check_nonce(self) -> ValidationConfig:
        if self.require_nonce and self.expected_nonce is None:
            raise ValueError("expected_nonce is required when require_nonce is set")
        return self

    @classmethod
    def create(
        cls,
        issuer: str,
        client_id: str,
        expected_nonce: str | None = None,
        clock_skew_seconds: int = DEFAULT_CLOCK_SKEW_SECONDS,
    ) -> ValidationConfig:
        """Build a config that requires a nonce exactly when one is given."""
        return cls(
            issuer=issuer,
            client_id=client_id,
            clock_skew_seconds=clock_skew_seconds,
            require_nonce=expected_nonce is not None,
            expected_nonce=expected_nonce,
        )
