"""OAuth 2.0 authorization code client with PKCE.

Coordinates flow start, callback handling, token exchange, token refresh
and user-info retrieval for any provider described by a ProviderConfig.

Flow attempts move through states the caller tracks, not this client:
NotStarted -> AuthorizationRequested -> CodeReceived -> TokensExchanged
-> UserInfoFetched.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from authcode.models.config import ProviderConfig
from authcode.models.flow import AuthorizationResponse, OAuthState
from authcode.models.tokens import RefreshTokenRequest, TokenRequest, TokenResponse
from authcode.models.user import UserInfo, UserInfoParser
from authcode.primitives.entropy import EntropySource
from authcode.primitives.pkce import PKCEManager
from authcode.services.flow import OAuth2FlowManager, build_authorization_url
from authcode.services.tokens import OAuth2TokenManager
from authcode.services.transport import HttpxTransport, Transport
from authcode.services.userinfo import UserInfoFetcher

logger = logging.getLogger(__name__)


class OAuth2Client:
    """Authorization code flow orchestrator.

    Stateless between calls: every operation depends only on its arguments,
    the injected transport and the injected entropy source. No retries,
    timeouts or backoff are applied beyond what the transport does.
    """

    def __init__(
        self,
        transport: Transport | None = None,
        entropy: EntropySource | None = None,
        timeout: float = 30.0,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the client.

        Args:
            transport: HTTP transport. Defaults to an HttpxTransport owned
                (and closed) by this client.
            entropy: Source of secure random bytes for state and verifiers
            timeout: Request timeout for the default transport
            clock: Returns the current Unix time
        """
        self._owns_transport = transport is None
        self.transport = transport or HttpxTransport(timeout=timeout)

        self.pkce_manager = PKCEManager(entropy)
        self.flow_manager = OAuth2FlowManager(self.pkce_manager, clock=clock)
        self.token_manager = OAuth2TokenManager(self.transport)
        self.user_info_fetcher = UserInfoFetcher(self.transport)

    def build_authorization_url(
        self, config: ProviderConfig, state: str, code_challenge: str
    ) -> str:
        return build_authorization_url(config, state, code_challenge)

    def start_authorization_flow(
        self, config: ProviderConfig, custom_data: str | None = None
    ) -> tuple[OAuthState, str]:
        """Generate state, verifier and challenge, and build the redirect URL.

        Returns:
            Tuple of (oauth_state, authorization_url)
        """
        return self.flow_manager.start_authorization_flow(config, custom_data)

    def handle_authorization_callback(
        self, callback_url: str, oauth_state: OAuthState
    ) -> AuthorizationResponse:
        return self.flow_manager.handle_authorization_callback(
            callback_url, oauth_state
        )

    async def exchange_code_for_tokens(
        self, config: ProviderConfig, code: str, code_verifier: str
    ) -> TokenResponse:
        """Exchange an authorization code plus PKCE verifier for tokens."""
        token_request = TokenRequest(
            token_endpoint=config.token_endpoint,
            code=code,
            client_id=config.client_id,
            redirect_uri=config.redirect_uri,
            code_verifier=code_verifier,
            client_secret=config.client_secret,
        )
        return await self.token_manager.exchange_code_for_token(token_request)

    async def refresh_access_token(
        self, config: ProviderConfig, refresh_token: str
    ) -> TokenResponse:
        refresh_request = RefreshTokenRequest(
            token_endpoint=config.token_endpoint,
            refresh_token=refresh_token,
            client_id=config.client_id,
            client_secret=config.client_secret,
        )
        return await self.token_manager.refresh_access_token(refresh_request)

    async def get_user_info(
        self,
        config: ProviderConfig,
        access_token: str,
        parse_user_info: UserInfoParser,
    ) -> UserInfo:
        return await self.user_info_fetcher.get_user_info(
            config.user_info_endpoint, access_token, parse_user_info
        )

    async def complete_oauth_flow(
        self,
        config: ProviderConfig,
        code: str,
        code_verifier: str,
        parse_user_info: UserInfoParser,
    ) -> tuple[TokenResponse, UserInfo]:
        """Exchange the code, then fetch user info with the new access token.

        User info is only requested once the exchange succeeded; any
        exchange failure propagates unchanged.
        """
        logger.debug(f"Completing authorization flow for {config.provider}")
        token_response = await self.exchange_code_for_tokens(
            config, code, code_verifier
        )
        user_info = await self.get_user_info(
            config, token_response.access_token, parse_user_info
        )
        logger.info(f"Completed authorization flow for {config.provider}")
        return token_response, user_info

    async def close(self) -> None:
        """Close the default transport, if this client created it."""
        if self._owns_transport and isinstance(self.transport, HttpxTransport):
            await self.transport.close()

    async def __aenter__(self) -> OAuth2Client:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
