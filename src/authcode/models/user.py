"""Normalized identity returned by provider user-info parsers."""

from __future__ import annotations

from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field


class UserInfo(BaseModel):
    """Provider-independent view of the signed-in user.

    Built by a provider-specific parser; ``raw_response`` keeps the
    provider's JSON for fields this model does not cover.
    """

    model_config = ConfigDict(frozen=True)

    provider: str
    provider_user_id: str
    email: str | None = None
    email_verified: bool | None = None
    name: str | None = None
    given_name: str | None = None
    family_name: str | None = None
    username: str | None = None
    avatar_url: str | None = None
    locale: str | None = None
    raw_response: dict[str, Any] = Field(default_factory=dict)


# Raw user-info response body -> UserInfo. Raise on malformed input.
UserInfoParser = Callable[[str], UserInfo]
