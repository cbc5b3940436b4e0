#!/usr/bin/env python3
"""
Authentication module for the Škola OnLine widget.

Exchanges the stored refresh token for a short-lived access token. When the
server issues a new refresh token, the stored one is replaced before the
access token is handed out.
"""
from typing import Optional

import httpx

from skolaonline_widget import logger
from skolaonline_widget.api_client import create_httpx_client, request_json
from skolaonline_widget.constants import (
    CLIENT_ID,
    GRANT_TYPE_REFRESH,
    KEY_REFRESH_TOKEN,
    REQUEST_TIMEOUT,
    TOKEN_URL,
)
from skolaonline_widget.state_store import StateStore
from skolaonline_widget.utils.error_utils import AuthError, NotAuthenticated, handle_errors

class TokenAuthenticator:
    """Performs the refresh-token credential exchange against /connect/token."""

    def __init__(
        self,
        token_store: StateStore,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = REQUEST_TIMEOUT
    ):
        self._token_store = token_store
        self._owns_client = client is None
        self._client = client or create_httpx_client(timeout)
        self.timeout = timeout

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def stored_refresh_token(self) -> Optional[str]:
        """The refresh token currently stored, or None when signed out."""
        token = self._token_store.get(KEY_REFRESH_TOKEN)
        if not token or not str(token).strip():
            return None
        return str(token).strip()

    async def get_access_token(self) -> str:
        """
        Exchange the stored refresh token for an access token.

        Returns:
            str: The access token

        Raises:
            NotAuthenticated: If no refresh token is stored
            AuthError: If the exchange is rejected, fails, times out or the body is malformed
        """
        refresh_token = self.stored_refresh_token()
        if refresh_token is None:
            raise NotAuthenticated("No refresh token stored")
        return await self._exchange(refresh_token)

    @handle_errors(error_category="auth_errors", error_class=AuthError,
                   error_message="Token exchange failed: {error}")
    async def _exchange(self, refresh_token: str) -> str:
        body = await request_json(
            self._client, "POST", TOKEN_URL, AuthError,
            timeout=self.timeout,
            data={
                "client_id": CLIENT_ID,
                "grant_type": GRANT_TYPE_REFRESH,
                "refresh_token": refresh_token,
            },
        )

        access_token = body.get("access_token")
        if not isinstance(access_token, str) or not access_token.strip():
            raise AuthError("Token response does not contain an access_token")

        new_refresh_token = body.get("refresh_token")
        if isinstance(new_refresh_token, str) and new_refresh_token.strip():
            await self._rotate(refresh_token, new_refresh_token.strip())

        logger.debug("Obtained access token")
        return access_token.strip()

    async def _rotate(self, old_token: str, new_token: str) -> None:
        if new_token == old_token:
            return
        async with self._token_store.transaction() as data:
            data[KEY_REFRESH_TOKEN] = new_token
        logger.info("Stored rotated refresh token")
