"""Authorization flow models.

Contains the per-attempt flow state, the authorization request and the
parsed authorization callback.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict

from authcode.models.tokens import OAuthErrorResponse
from authcode.primitives.encoding import percent_encode

# Lifetime of a flow attempt between redirect and callback
STATE_TTL_SECONDS = 15 * 60


class OAuthState(BaseModel):
    """Ephemeral record for one authorization attempt.

    Produced when a flow starts; the caller persists it (session, cookie,
    cache) until the callback arrives. This package never stores it.
    """

    model_config = ConfigDict(frozen=True)

    state: str  # CSRF token
    code_verifier: str  # PKCE code verifier
    provider: str
    redirect_uri: str
    created_at: float  # Unix timestamp
    expires_at: float  # Unix timestamp
    custom_data: str | None = None  # Opaque app-specific data

    def is_expired(self, now: float | None = None) -> bool:
        if now is None:
            now = time.time()
        return now > self.expires_at


@dataclass(frozen=True)
class AuthorizationRequest:
    """Authorization request parameters (RFC 6749 Section 4.1.1 + RFC 7636)."""

    authorization_endpoint: str
    client_id: str
    redirect_uri: str
    scope: str
    state: str
    code_challenge: str
    code_challenge_method: str = "S256"
    extra_params: list[tuple[str, str]] = field(default_factory=list)

    def to_query_params(self) -> list[tuple[str, str]]:
        params = [
            ("response_type", "code"),
            ("client_id", self.client_id),
            ("redirect_uri", self.redirect_uri),
            ("scope", self.scope),
            ("state", self.state),
            ("code_challenge", self.code_challenge),
            ("code_challenge_method", self.code_challenge_method),
        ]
        params.extend(self.extra_params)
        return params

    def build_authorization_url(self) -> str:
        """Build the complete authorization URL."""
        query = "&".join(
            f"{key}={percent_encode(value)}" for key, value in self.to_query_params()
        )
        return f"{self.authorization_endpoint}?{query}"


@dataclass(frozen=True)
class AuthorizationResponse:
    """Parameters the provider sent back on the redirect URI."""

    code: str | None = None
    state: str | None = None
    error: str | None = None
    error_description: str | None = None
    error_uri: str | None = None

    def is_success(self) -> bool:
        return self.error is None and self.code is not None

    def is_error(self) -> bool:
        return self.error is not None

    def oauth_error(self) -> OAuthErrorResponse | None:
        if self.error is None:
            return None
        return OAuthErrorResponse(
            error=self.error,
            error_description=self.error_description,
            error_uri=self.error_uri,
        )
