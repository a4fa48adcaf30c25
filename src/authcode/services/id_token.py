"""OpenID Connect ID token decoding and claim validation.

Security model
--------------
This module validates ID token *claims*. It never verifies the JWT
signature.

That is sound when the token came straight from the provider's token
endpoint over HTTPS to your backend: TLS already authenticates the sender,
and nobody else can inject a token into that response.

It is not sound when the token passed through a browser, a mobile app, or
any channel other than the token endpoint. Such tokens need signature
verification against the provider's JWKS, which is outside this package.
``validate_id_token_from_source`` refuses them outright.

The claim checks (issuer, audience, expiry, issued-at, nonce) are required
in either case.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable

from authcode.models.errors import (
    AudienceMismatchError,
    Base64DecodeError,
    IssuerMismatchError,
    JsonDecodeError,
    MissingClaimError,
    NonceMismatchError,
    NonceMissingError,
    TokenExpiredError,
    TokenFormatError,
    TokenNotYetValidError,
    UntrustedSourceError,
)
from authcode.models.id_token import (
    DecodedIdToken,
    IdTokenClaims,
    JwtHeader,
    TokenSource,
    ValidationConfig,
)
from authcode.models.user import UserInfo
from authcode.primitives.encoding import base64url_decode

logger = logging.getLogger(__name__)

GOOGLE_ISSUER = "https://accounts.google.com"

# Microsoft issuers vary by tenant
MICROSOFT_ISSUER_COMMON = "https://login.microsoftonline.com/common/v2.0"
MICROSOFT_ISSUER_CONSUMERS = "https://login.microsoftonline.com/consumers/v2.0"
MICROSOFT_ISSUER_ORGANIZATIONS = "https://login.microsoftonline.com/organizations/v2.0"

_OPTIONAL_STRING_CLAIMS = (
    "nonce",
    "azp",
    "at_hash",
    "email",
    "name",
    "picture",
    "given_name",
    "family_name",
    "locale",
)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _decode_segment(segment: str, value: str) -> dict[str, Any]:
    try:
        raw = base64url_decode(value)
    except ValueError as e:
        raise Base64DecodeError(segment, value) from e

    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise JsonDecodeError(segment, str(e)) from e

    if not isinstance(data, dict):
        raise JsonDecodeError(segment, "expected a JSON object")
    return data


def _parse_header(data: dict[str, Any]) -> JwtHeader:
    alg = data.get("alg")
    if not isinstance(alg, str):
        raise JsonDecodeError("header", "missing string 'alg'")
    typ = data.get("typ")
    kid = data.get("kid")
    return JwtHeader(
        alg=alg,
        typ=typ if isinstance(typ, str) else None,
        kid=kid if isinstance(kid, str) else None,
    )


def _parse_claims(data: dict[str, Any]) -> IdTokenClaims:
    for claim in ("iss", "sub"):
        if not isinstance(data.get(claim), str):
            raise MissingClaimError(claim)
    for claim in ("exp", "iat"):
        if not _is_int(data.get(claim)):
            raise MissingClaimError(claim)

    # aud may be a single string or an array of strings
    aud = data.get("aud")
    if isinstance(aud, str):
        audience = [aud]
    elif isinstance(aud, list) and aud and all(isinstance(a, str) for a in aud):
        audience = list(aud)
    else:
        raise MissingClaimError("aud")

    # Optional claims of the wrong type are dropped rather than rejected
    optional: dict[str, Any] = {
        claim: data[claim]
        for claim in _OPTIONAL_STRING_CLAIMS
        if isinstance(data.get(claim), str)
    }
    if _is_int(data.get("auth_time")):
        optional["auth_time"] = data["auth_time"]
    if isinstance(data.get("email_verified"), bool):
        optional["email_verified"] = data["email_verified"]

    return IdTokenClaims(
        iss=data["iss"],
        sub=data["sub"],
        aud=audience,
        exp=data["exp"],
        iat=data["iat"],
        **optional,
    )


def decode_id_token(token: str) -> DecodedIdToken:
    """Decode an ID token without verifying its signature.

    Raises:
        TokenFormatError: If the token is not three dot-separated segments
        Base64DecodeError: If the header or payload is not base64url
        JsonDecodeError: If the header or payload is not a JSON object
        MissingClaimError: If a required claim is absent or mistyped
    """
    parts = token.split(".")
    if len(parts) != 3:
        raise TokenFormatError("JWT must have 3 parts separated by '.'")

    header_b64, payload_b64, signature = parts
    header = _parse_header(_decode_segment("header", header_b64))
    claims = _parse_claims(_decode_segment("payload", payload_b64))
    return DecodedIdToken(header=header, claims=claims, signature=signature)


def validate_issuer(config: ValidationConfig, claims: IdTokenClaims) -> None:
    if claims.iss != config.issuer:
        raise IssuerMismatchError(config.issuer, claims.iss)


def validate_audience(config: ValidationConfig, claims: IdTokenClaims) -> None:
    if config.client_id not in claims.aud:
        raise AudienceMismatchError(config.client_id, list(claims.aud))


def validate_expiration(
    config: ValidationConfig, claims: IdTokenClaims, now: int
) -> None:
    if now > claims.exp + config.clock_skew_seconds:
        raise TokenExpiredError(claims.exp, now)


def validate_issued_at(
    config: ValidationConfig, claims: IdTokenClaims, now: int
) -> None:
    """Reject tokens issued in the future, beyond the allowed skew."""
    if claims.iat - config.clock_skew_seconds > now:
        raise TokenNotYetValidError(claims.iat, now)


def validate_nonce(config: ValidationConfig, claims: IdTokenClaims) -> None:
    if not config.require_nonce or config.expected_nonce is None:
        return
    if claims.nonce is None:
        raise NonceMissingError(config.expected_nonce)
    if claims.nonce != config.expected_nonce:
        raise NonceMismatchError(config.expected_nonce, claims.nonce)


def validate_claims(
    config: ValidationConfig, claims: IdTokenClaims, now: int | None = None
) -> None:
    """Run every claim check, stopping at the first failure.

    Checks, in order: issuer, audience, expiration, issued-at, nonce.

    Raises:
        ClaimValidationError: The subclass naming the failed check
    """
    if now is None:
        now = int(time.time())

    validate_issuer(config, claims)
    validate_audience(config, claims)
    validate_expiration(config, claims, now)
    validate_issued_at(config, claims, now)
    validate_nonce(config, claims)


def validate_id_token(
    config: ValidationConfig, token: str, now: int | None = None
) -> IdTokenClaims:
    """Decode an ID token and validate its claims.

    Only for tokens received directly from the provider's token endpoint
    over HTTPS. See the module documentation for the security model.

    Returns:
        The validated claims
    """
    decoded = decode_id_token(token)
    validate_claims(config, decoded.claims, now)
    logger.debug(f"ID token validated for subject {decoded.claims.sub}")
    return decoded.claims


def validate_id_token_from_source(
    source: TokenSource,
    config: ValidationConfig,
    token: str,
    now: int | None = None,
) -> IdTokenClaims:
    """Validate an ID token, stating explicitly how it was obtained.

    Raises:
        UntrustedSourceError: Always, for FROM_UNTRUSTED_SOURCE, before the
            token is even decoded
    """
    if source is TokenSource.FROM_UNTRUSTED_SOURCE:
        logger.warning("Refusing claims-only validation of untrusted ID token")
        raise UntrustedSourceError(
            "Tokens from untrusted sources require signature verification. "
            "Use a JWT library with JWKS support (e.g. PyJWT or authlib)."
        )
    return validate_id_token(config, token, now)


class IdTokenValidator:
    """Validates ID tokens against a fixed configuration."""

    def __init__(
        self,
        config: ValidationConfig,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self._clock = clock

    def validate(
        self,
        token: str,
        source: TokenSource = TokenSource.DIRECT_FROM_TOKEN_ENDPOINT,
    ) -> IdTokenClaims:
        return validate_id_token_from_source(
            source, self.config, token, int(self._clock())
        )


def google_validation_config(
    client_id: str, expected_nonce: str | None = None
) -> ValidationConfig:
    return ValidationConfig.create(GOOGLE_ISSUER, client_id, expected_nonce)


def microsoft_validation_config(
    client_id: str, tenant: str, expected_nonce: str | None = None
) -> ValidationConfig:
    """Validation config for a Microsoft identity platform tenant.

    Single-tenant apps should pass their tenant ID; tokens then carry the
    tenant-specific issuer.
    """
    issuer = f"https://login.microsoftonline.com/{tenant}/v2.0"
    return ValidationConfig.create(issuer, client_id, expected_nonce)


def user_info_from_claims(provider: str, claims: IdTokenClaims) -> UserInfo:
    """Build UserInfo from validated claims, skipping the user-info call."""
    return UserInfo(
        provider=provider,
        provider_user_id=claims.sub,
        email=claims.email,
        email_verified=claims.email_verified,
        name=claims.name,
        given_name=claims.given_name,
        family_name=claims.family_name,
        username=None,
        avatar_url=claims.picture,
        locale=claims.locale,
        raw_response={"sub": claims.sub, "iss": claims.iss, "email": claims.email},
    )
