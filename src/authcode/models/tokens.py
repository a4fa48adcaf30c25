"""Token request and response models for OAuth 2.0.

Contains the form bodies sent to the token endpoint and the parsed
token endpoint responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator

from authcode.primitives.encoding import form_encode


@dataclass(frozen=True)
class TokenRequest:
    """Authorization code exchange parameters (RFC 6749 Section 4.1.3).

    Includes the PKCE code_verifier (RFC 7636).
    """

    token_endpoint: str
    code: str
    client_id: str
    redirect_uri: str
    code_verifier: str
    client_secret: str | None = None
    grant_type: str = "authorization_code"

    def to_form_params(self) -> list[tuple[str, str]]:
        """Ordered form parameters; client_secret goes last when present."""
        params = [
            ("code", self.code),
            ("grant_type", self.grant_type),
            ("client_id", self.client_id),
            ("redirect_uri", self.redirect_uri),
            ("code_verifier", self.code_verifier),
        ]
        if self.client_secret is not None:
            params.append(("client_secret", self.client_secret))
        return params

    def to_form_body(self) -> str:
        """Encode as an application/x-www-form-urlencoded body."""
        return form_encode(self.to_form_params())


@dataclass(frozen=True)
class RefreshTokenRequest:
    """Refresh token request parameters (RFC 6749 Section 6)."""

    token_endpoint: str
    refresh_token: str
    client_id: str
    client_secret: str | None = None
    grant_type: str = "refresh_token"

    def to_form_params(self) -> list[tuple[str, str]]:
        params = [
            ("refresh_token", self.refresh_token),
            ("grant_type", self.grant_type),
            ("client_id", self.client_id),
        ]
        if self.client_secret is not None:
            params.append(("client_secret", self.client_secret))
        return params

    def to_form_body(self) -> str:
        return form_encode(self.to_form_params())


class TokenResponse(BaseModel):
    """Successful token endpoint response (RFC 6749 Section 5.1).

    Error responses (Section 5.2) never become a TokenResponse; they are
    reported as UpstreamProtocolError carrying an OAuthErrorResponse.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    access_token: str
    token_type: str = "Bearer"
    expires_in: int | None = None  # Seconds until expiry
    refresh_token: str | None = None
    scope: str | None = None
    id_token: str | None = None  # OpenID Connect providers only

    @model_validator(mode="before")
    @classmethod
    def drop_mistyped_optionals(cls, data: Any) -> Any:
        # A bad optional field must not sink an otherwise usable token
        if not isinstance(data, dict):
            return data
        cleaned = dict(data)
        if not isinstance(cleaned.get("token_type"), str):
            cleaned["token_type"] = "Bearer"
        expires_in = cleaned.get("expires_in")
        if isinstance(expires_in, bool) or not isinstance(expires_in, int):
            cleaned["expires_in"] = None
        for name in ("refresh_token", "scope", "id_token"):
            if not isinstance(cleaned.get(name), str):
                cleaned[name] = None
        return cleaned

    def to_json(self) -> dict[str, Any]:
        """Serializable form with every field present."""
        return self.model_dump()


class OAuthErrorResponse(BaseModel):
    """OAuth 2.0 error body (RFC 6749 Sections 4.1.2.1 and 5.2)."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    error: str
    error_description: str | None = None
    error_uri: str | None = None

    def __str__(self) -> str:
        if self.error_description:
            return f"{self.error}: {self.error_description}"
        return self.error
