"""
Thin async HTTP client shared by the token and search services.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, NoReturn, Optional, Type, TypeVar

import aiohttp
from pydantic import BaseModel, ValidationError
from yarl import URL

from spotify_picker.exceptions import (
    InvalidEndpointError,
    InvalidResponseError,
    TransportError,
    UpstreamError,
)
from spotify_picker.models.catalog import ErrorResponse
from spotify_picker.models.config import PickerConfig

log = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

JSON_ACCEPT = "application/json; charset=utf-8"


@dataclass
class APIResponse:
    """Status, headers and raw body of a completed HTTP exchange."""

    status: int
    body: bytes
    headers: Mapping[str, str] = field(default_factory=dict)

    def decode(self, model: Type[ModelT]) -> ModelT:
        """Decodes the body into ``model``, raising InvalidResponseError on mismatch."""
        try:
            return model.model_validate_json(self.body)
        except ValidationError as e:
            raise InvalidResponseError(
                f"could not decode {model.__name__} from HTTP {self.status}"
            ) from e

    def raise_upstream(self) -> NoReturn:
        """Raises the error described by the catalog's error envelope."""
        envelope = self.decode(ErrorResponse)
        raise UpstreamError(envelope.error.message, status=envelope.error.status)

    @property
    def retry_after(self) -> Optional[float]:
        value = self.headers.get("Retry-After")
        if value is None:
            return None
        try:
            return float(value)
        except ValueError:
            return None


class SpotifyAPIClient:
    """
    Async client for the catalog's token and Web API hosts.

    It only moves bytes: status handling belongs to the services built on top
    of it, and it never retries.
    """

    def __init__(
        self,
        config: PickerConfig,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initializes the API client.

        Args:
            config: Validated application configuration.
            session: Optional externally owned session; it is not closed by
                :meth:`close`.
        """
        self.config = config
        self._session = session
        self._owns_session = session is None

    async def _initialize_session(self) -> aiohttp.ClientSession:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"Accept-Encoding": "gzip, deflate"},
                timeout=aiohttp.ClientTimeout(
                    total=self.config.request_timeout, connect=15
                ),
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Gracefully closes the aiohttp session if this client created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    @staticmethod
    def endpoint(base_url: str, path: str) -> URL:
        """
        Joins a configured base URL and an endpoint path.

        Raises:
            InvalidEndpointError: If the result is not an absolute http(s) URL.
        """
        try:
            url = URL(base_url.rstrip("/") + "/" + path.lstrip("/"))
        except (TypeError, ValueError) as e:
            raise InvalidEndpointError(f"{base_url!r} + {path!r}") from e
        if url.scheme not in ("http", "https") or not url.host:
            raise InvalidEndpointError(str(url))
        return url

    def api_url(self, path: str) -> URL:
        return self.endpoint(self.config.api_base_url, path)

    def auth_url(self, path: str) -> URL:
        return self.endpoint(self.config.auth_base_url, path)

    async def request(
        self,
        method: str,
        url: URL,
        *,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
        data: Any = None,
    ) -> APIResponse:
        """
        Performs a single HTTP exchange and returns its status and body.

        Raises:
            InvalidResponseError: If the server's reply is not valid HTTP.
            TransportError: On connection failures and timeouts.
        """
        session = await self._initialize_session()
        request_headers = {"Accept": JSON_ACCEPT}
        if headers:
            request_headers.update(headers)

        start_time = time.monotonic()
        try:
            async with session.request(
                method, url, headers=request_headers, params=params, data=data
            ) as r:
                body = await r.read()
                duration_ms = (time.monotonic() - start_time) * 1000
                log.debug(
                    f"{method} {url.path} -> {r.status} "
                    f"({len(body)} bytes, {duration_ms:.0f} ms)"
                )
                return APIResponse(
                    status=r.status, body=body, headers=r.headers.copy()
                )
        except aiohttp.ClientResponseError as e:
            log.debug(f"{method} {url.path} returned a malformed response: {e}")
            raise InvalidResponseError(str(e)) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            log.debug(f"{method} {url.path} failed: {e!r}")
            raise TransportError(e) from e
