"""Authorization flow start and callback handling.

Builds the authorization redirect with PKCE and a CSRF state token, and
validates the callback the provider sends back.
"""

from __future__ import annotations

import hmac
import logging
import time
from typing import Callable
from urllib.parse import parse_qs, urlparse

from authcode.models.config import ProviderConfig
from authcode.models.errors import (
    AuthorizationCallbackError,
    AuthorizationError,
    StateValidationError,
)
from authcode.models.flow import (
    STATE_TTL_SECONDS,
    AuthorizationRequest,
    AuthorizationResponse,
    OAuthState,
)
from authcode.primitives.entropy import EntropySource
from authcode.primitives.pkce import PKCEManager, generate_code_challenge

logger = logging.getLogger(__name__)


def build_authorization_url(
    config: ProviderConfig, state: str, code_challenge: str
) -> str:
    """Build the provider authorization URL.

    Parameter order is fixed: response_type, client_id, redirect_uri, scope,
    state, code_challenge, code_challenge_method, then the provider's extra
    parameters in configured order.
    """
    auth_request = AuthorizationRequest(
        authorization_endpoint=config.auth_endpoint,
        client_id=config.client_id,
        redirect_uri=config.redirect_uri,
        scope=config.scope_string,
        state=state,
        code_challenge=code_challenge,
        code_challenge_method="S256",
        extra_params=list(config.extra_auth_params),
    )
    return auth_request.build_authorization_url()


def states_match(expected: str, actual: str) -> bool:
    """Compare state tokens in constant time."""
    return hmac.compare_digest(expected.encode("utf-8"), actual.encode("utf-8"))


class OAuth2FlowManager:
    """Starts authorization code flows and processes their callbacks.

    Holds no per-flow state: start_authorization_flow hands the caller an
    OAuthState to persist, and the callback is checked against it.
    """

    def __init__(
        self,
        pkce_manager: PKCEManager | None = None,
        entropy: EntropySource | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the flow manager.

        Args:
            pkce_manager: Generator for verifiers and state tokens
            entropy: Entropy source for a default PKCEManager
            clock: Returns the current Unix time
        """
        self._pkce_manager = pkce_manager or PKCEManager(entropy)
        self._clock = clock

    def start_authorization_flow(
        self, config: ProviderConfig, custom_data: str | None = None
    ) -> tuple[OAuthState, str]:
        """Start an authorization flow.

        No network call is made.

        Args:
            config: Provider configuration
            custom_data: Opaque value to carry in the returned state record

        Returns:
            Tuple of (oauth_state, authorization_url)
            - oauth_state: Persist this until the callback arrives
            - authorization_url: URL to redirect the user to

        Raises:
            EntropyError: If no secure randomness is available
        """
        state = self._pkce_manager.generate_state()
        code_verifier = self._pkce_manager.generate_code_verifier()
        code_challenge = generate_code_challenge(code_verifier)

        authorization_url = build_authorization_url(config, state, code_challenge)

        now = self._clock()
        oauth_state = OAuthState(
            state=state,
            code_verifier=code_verifier,
            provider=config.provider,
            redirect_uri=config.redirect_uri,
            created_at=now,
            expires_at=now + STATE_TTL_SECONDS,
            custom_data=custom_data,
        )

        logger.info(
            f"Generated authorization URL for {config.provider} "
            f"client {config.client_id}"
        )
        return oauth_state, authorization_url

    def handle_authorization_callback(
        self,
        callback_url: str,
        oauth_state: OAuthState,
        now: float | None = None,
    ) -> AuthorizationResponse:
        """Validate the redirect the provider sent back.

        Args:
            callback_url: Full callback URL received from the provider
            oauth_state: Record returned by start_authorization_flow

        Returns:
            AuthorizationResponse carrying the authorization code

        Raises:
            StateValidationError: If state is missing, mismatched or expired
            AuthorizationError: If the provider reported an error
            AuthorizationCallbackError: If the callback carries no code
        """
        auth_response = self._parse_callback_url(callback_url)

        if auth_response.state is None:
            raise StateValidationError(
                "Authorization server callback missing required state parameter"
            )
        if not states_match(oauth_state.state, auth_response.state):
            raise StateValidationError(
                "State parameter mismatch - possible CSRF attack"
            )
        if oauth_state.is_expired(self._clock() if now is None else now):
            raise StateValidationError("Authorization flow state has expired")

        if auth_response.is_error():
            oauth_error = auth_response.oauth_error()
            logger.warning(f"Authorization callback contained error: {oauth_error}")
            raise AuthorizationError(
                f"Authorization failed: {oauth_error}", oauth_error
            )
        if auth_response.code is None:
            raise AuthorizationCallbackError("Missing authorization code")

        logger.info("Authorization callback successful - received authorization code")
        return auth_response

    def _parse_callback_url(self, callback_url: str) -> AuthorizationResponse:
        try:
            parsed = urlparse(callback_url)
            query_params = parse_qs(parsed.query)
        except ValueError as e:
            raise AuthorizationCallbackError(
                f"Failed to parse callback URL: {e}"
            ) from e

        # Extract single values from query parameter lists
        def get_single_param(key: str) -> str | None:
            values = query_params.get(key, [])
            return values[0] if values else None

        return AuthorizationResponse(
            code=get_single_param("code"),
            state=get_single_param("state"),
            error=get_single_param("error"),
            error_description=get_single_param("error_description"),
            error_uri=get_single_param("error_uri"),
        )
