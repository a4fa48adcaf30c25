"""Provider configuration for the authorization code flow."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ProviderConfig(BaseModel):
    """Static OAuth 2.0 settings for one identity provider.

    Built once by the caller and shared by every flow attempt against
    that provider; nothing in this package mutates it.
    """

    model_config = ConfigDict(frozen=True)

    provider: str = Field(min_length=1)  # e.g. "google", "github"
    client_id: str = Field(min_length=1)
    client_secret: str | None = None  # Not needed for pure PKCE clients
    redirect_uri: str
    scopes: list[str] = Field(default_factory=list)
    auth_endpoint: str
    token_endpoint: str
    user_info_endpoint: str
    extra_auth_params: list[tuple[str, str]] = Field(default_factory=list)

    @property
    def scope_string(self) -> str:
        """Scopes joined with single spaces, in configured order."""
        return " ".join(self.scopes)
