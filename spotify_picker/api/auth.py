"""
Handles the OAuth client-credentials exchange and publishes the resulting
access token into the credential store.
"""

import asyncio
import logging
from typing import Dict
from urllib.parse import quote

from spotify_picker.exceptions import (
    BadOAuthError,
    NoCredentialError,
    RateLimitedError,
)
from spotify_picker.models.catalog import TokenResponse
from spotify_picker.storage.credential_store import CredentialStore

from .client import SpotifyAPIClient

log = logging.getLogger(__name__)

TOKEN_PATH = "/api/token"


def build_form_body(parameters: Dict[str, str]) -> str:
    """Encodes parameters as application/x-www-form-urlencoded, percent-encoding each value."""
    return "&".join(f"{key}={quote(value, safe='')}" for key, value in parameters.items())


class TokenManager:
    """
    Manages the client-credentials token lifecycle.
    """

    def __init__(self, api_client: SpotifyAPIClient, store: CredentialStore):
        """
        Initializes the token manager.

        Args:
            api_client: Client used to reach the token endpoint.
            store: Credential store that receives fresh tokens.
        """
        self._api_client = api_client
        self._store = store
        self._refresh_lock = asyncio.Lock()

    @property
    def store(self) -> CredentialStore:
        return self._store

    def _build_body(self) -> str:
        config = self._api_client.config
        return build_form_body(
            {
                "grant_type": "client_credentials",
                "client_id": config.client_id,
                "client_secret": config.client_secret,
            }
        )

    async def refresh(self) -> None:
        """
        Requests a new access token and persists it.

        No retries are performed; callers decide how to back off.

        Raises:
            InvalidEndpointError: If the token endpoint URL cannot be built.
            InvalidResponseError: If a response body cannot be decoded.
            BadOAuthError: On HTTP 403. Re-authenticating won't help.
            RateLimitedError: On HTTP 429.
            UpstreamError: On any other non-200 status.
            TransportError: On network failures.
        """
        url = self._api_client.auth_url(TOKEN_PATH)
        log.debug("Requesting a new access token...")

        response = await self._api_client.request(
            "POST",
            url,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            data=self._build_body().encode("utf-8"),
        )

        if response.status == 200:
            token = response.decode(TokenResponse)
            self._store.persist(token.access_token, token.expires_in)
            log.info(f"Obtained a new access token (valid for {token.expires_in}s).")
            return
        if response.status == 403:
            raise BadOAuthError()
        if response.status == 429:
            raise RateLimitedError(response.retry_after)

        response.raise_upstream()

    async def ensure_token(self) -> str:
        """
        Returns the current token, refreshing it first when none is cached.

        Concurrent callers share a single refresh.
        """
        if token := self._store.get():
            return token

        async with self._refresh_lock:
            if token := self._store.get():
                return token
            await self.refresh()
            token = self._store.get()

        if token is None:
            raise NoCredentialError("the token endpoint returned an unusable lifetime")
        return token
