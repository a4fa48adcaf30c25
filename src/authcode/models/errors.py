"""Exception hierarchy for the authorization code flow and ID token checks.

Every failure carries the values needed to log it: HTTP status and raw body
for upstream failures, the offending segment or claim for decode failures,
and expected/actual values for claim validation failures.
"""

from __future__ import annotations

from typing import Any

from authcode.models.tokens import OAuthErrorResponse


class EntropyError(RuntimeError):
    """Raised when the entropy source cannot supply secure random bytes.

    Fatal. Deliberately not an OAuth2Error so generic handlers do not
    swallow it.
    """


class OAuth2Error(Exception):
    """Base exception for all OAuth 2.0 / OIDC errors."""

    pass


class TransportError(OAuth2Error):
    """Raised when the transport could not complete the HTTP exchange."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UpstreamProtocolError(OAuth2Error):
    """Raised when the provider answers with a non-success status."""

    def __init__(
        self,
        message: str,
        status: int,
        body: str,
        oauth_error: OAuthErrorResponse | None = None,
    ):
        super().__init__(f"{message} with status {status}: {body}")
        self.status = status
        self.body = body
        self.oauth_error = oauth_error


class ResponseParseError(OAuth2Error):
    """Raised when a provider response body is malformed or has the wrong shape."""

    def __init__(self, message: str, status: int, body: str):
        super().__init__(message)
        self.status = status
        self.body = body


class AuthorizationError(OAuth2Error):
    """Raised when the provider reports an error on the authorization redirect."""

    def __init__(self, message: str, oauth_error: OAuthErrorResponse | None = None):
        super().__init__(message)
        self.oauth_error = oauth_error


class AuthorizationCallbackError(OAuth2Error):
    """Raised when authorization server callback data is malformed or invalid.

    This indicates the authorization server sent an invalid callback URL,
    not that our callback handling code failed.
    """

    pass


class StateValidationError(AuthorizationCallbackError):
    """Raised when OAuth state parameter validation fails.

    This indicates a missing, mismatched or expired state parameter,
    which could indicate a CSRF attack.
    """

    pass


class IdTokenError(OAuth2Error):
    """Base exception for ID token decoding and validation failures."""

    pass


class TokenFormatError(IdTokenError):
    """Raised when the token is not three dot-separated segments."""

    pass


class Base64DecodeError(IdTokenError):
    """Raised when a token segment is not valid base64url."""

    def __init__(self, segment: str, value: str):
        super().__init__(f"Invalid base64url encoding in {segment} segment")
        self.segment = segment
        self.value = value


class JsonDecodeError(IdTokenError):
    """Raised when a decoded token segment is not a JSON object."""

    def __init__(self, segment: str, reason: str):
        super().__init__(f"Invalid JSON in {segment} segment: {reason}")
        self.segment = segment
        self.reason = reason


class MissingClaimError(IdTokenError):
    """Raised when a required claim is absent or has the wrong type."""

    def __init__(self, claim: str):
        super().__init__(f"Missing required claim: {claim}")
        self.claim = claim


class ClaimValidationError(IdTokenError):
    """Base exception for claims that decoded fine but failed validation."""

    def __init__(self, message: str, expected: Any, actual: Any):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class IssuerMismatchError(ClaimValidationError):
    def __init__(self, expected: str, actual: str):
        super().__init__(
            f"Invalid issuer: expected '{expected}', got '{actual}'", expected, actual
        )


class AudienceMismatchError(ClaimValidationError):
    def __init__(self, expected: str, actual: list[str]):
        super().__init__(
            f"Invalid audience: expected '{expected}', got [{', '.join(actual)}]",
            expected,
            actual,
        )


class TokenExpiredError(ClaimValidationError):
    def __init__(self, exp: int, now: int):
        super().__init__(f"Token expired: exp={exp}, now={now}", exp, now)
        self.exp = exp
        self.now = now


class TokenNotYetValidError(ClaimValidationError):
    def __init__(self, iat: int, now: int):
        super().__init__(f"Token not yet valid: iat={iat}, now={now}", iat, now)
        self.iat = iat
        self.now = now


class NonceMissingError(ClaimValidationError):
    def __init__(self, expected: str):
        super().__init__("Nonce required but not present in token", expected, None)


class NonceMismatchError(ClaimValidationError):
    def __init__(self, expected: str, actual: str):
        super().__init__(
            f"Invalid nonce: expected '{expected}', got '{actual}'", expected, actual
        )


class UntrustedSourceError(IdTokenError):
    """Raised for ID tokens that did not come straight from the token endpoint.

    Claims-only validation is unsafe for such tokens; they need signature
    verification against the provider's key set, which this package does
    not perform.
    """

    pass
