"""OAuth 2.0 token exchange and refresh service.

Implements the RFC 6749 token endpoint interactions with the PKCE
code_verifier (RFC 7636). Bodies are application/x-www-form-urlencoded
with a fixed parameter order.
"""

from __future__ import annotations

import json
import logging

from pydantic import ValidationError

from authcode.models.errors import ResponseParseError, UpstreamProtocolError
from authcode.models.http import HttpResponse
from authcode.models.tokens import (
    OAuthErrorResponse,
    RefreshTokenRequest,
    TokenRequest,
    TokenResponse,
)
from authcode.services.transport import Transport

logger = logging.getLogger(__name__)

TOKEN_REQUEST_HEADERS = [
    ("Content-Type", "application/x-www-form-urlencoded"),
    ("Accept", "application/json"),
]


class OAuth2TokenManager:
    """Exchanges authorization codes and refresh tokens for access tokens.

    Handles:
    - Authorization code to access token exchange (RFC 6749 Section 4.1.3)
    - Access token refresh (RFC 6749 Section 6)

    Only a 200 response is a success. Anything else surfaces as
    UpstreamProtocolError with the raw status and body.
    """

    def __init__(self, transport: Transport):
        self._transport = transport

    async def exchange_code_for_token(
        self, token_request: TokenRequest
    ) -> TokenResponse:
        """Exchange an authorization code for tokens.

        Raises:
            TransportError: If the request could not be sent
            UpstreamProtocolError: If the endpoint answered with a non-200 status
            ResponseParseError: If a 200 body is not a valid token response
        """
        logger.debug(
            f"Exchanging authorization code at {token_request.token_endpoint} "
            f"for client {token_request.client_id}"
        )

        response = await self._transport.post(
            token_request.token_endpoint,
            TOKEN_REQUEST_HEADERS,
            token_request.to_form_body(),
        )
        return self._parse_token_response(response, "Token exchange")

    async def refresh_access_token(
        self, refresh_request: RefreshTokenRequest
    ) -> TokenResponse:
        """Refresh an access token using a refresh token.

        Raises:
            TransportError: If the request could not be sent
            UpstreamProtocolError: If the endpoint answered with a non-200 status
            ResponseParseError: If a 200 body is not a valid token response
        """
        logger.debug(
            f"Refreshing access token at {refresh_request.token_endpoint} "
            f"for client {refresh_request.client_id}"
        )

        response = await self._transport.post(
            refresh_request.token_endpoint,
            TOKEN_REQUEST_HEADERS,
            refresh_request.to_form_body(),
        )
        return self._parse_token_response(response, "Token refresh")

    def _parse_token_response(
        self, response: HttpResponse, operation: str
    ) -> TokenResponse:
        if response.status != 200:
            oauth_error = parse_oauth_error(response.body)
            logger.warning(
                f"{operation} failed with {response.status}: "
                f"{oauth_error or 'no OAuth error body'}"
            )
            raise UpstreamProtocolError(
                f"{operation} failed", response.status, response.body, oauth_error
            )

        try:
            data = json.loads(response.body)
        except ValueError as e:
            raise ResponseParseError(
                f"Failed to parse token response: {e}", response.status, response.body
            ) from e

        if not isinstance(data, dict):
            raise ResponseParseError(
                "Failed to parse token response: expected a JSON object",
                response.status,
                response.body,
            )

        try:
            token_response = TokenResponse.model_validate(data)
        except ValidationError as e:
            raise ResponseParseError(
                f"Invalid token response format: {e}", response.status, response.body
            ) from e

        logger.info(f"{operation} successful")
        return token_response


def parse_oauth_error(body: str) -> OAuthErrorResponse | None:
    """Extract an RFC 6749 error object from a response body, if it has one."""
    try:
        data = json.loads(body)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    try:
        return OAuthErrorResponse.model_validate(data)
    except ValidationError:
        return None
