"""User-info endpoint retrieval.

Fetches the provider's user-info document with a bearer token and hands
the body to a caller-supplied, provider-specific parser.
"""

from __future__ import annotations

import logging

from authcode.models.errors import ResponseParseError, UpstreamProtocolError
from authcode.models.user import UserInfo, UserInfoParser
from authcode.services.tokens import parse_oauth_error
from authcode.services.transport import Transport

logger = logging.getLogger(__name__)


class UserInfoFetcher:
    def __init__(self, transport: Transport):
        self._transport = transport

    async def get_user_info(
        self,
        user_info_endpoint: str,
        access_token: str,
        parse_user_info: UserInfoParser,
    ) -> UserInfo:
        """Fetch and parse the user-info document.

        Raises:
            TransportError: If the request could not be sent
            UpstreamProtocolError: If the endpoint answered with a non-200 status
            ResponseParseError: If the parser rejected the body
        """
        headers = [
            ("Authorization", f"Bearer {access_token}"),
            ("Accept", "application/json"),
        ]

        logger.debug(f"Fetching user info from {user_info_endpoint}")
        response = await self._transport.get(user_info_endpoint, headers)

        if response.status != 200:
            logger.warning(f"User info request failed with {response.status}")
            raise UpstreamProtocolError(
                "User info request failed",
                response.status,
                response.body,
                parse_oauth_error(response.body),
            )

        try:
            user_info = parse_user_info(response.body)
        except Exception as e:
            raise ResponseParseError(
                f"Failed to parse user info: {e}", response.status, response.body
            ) from e

        logger.info(f"Fetched user info for {user_info.provider} user")
        return user_info
