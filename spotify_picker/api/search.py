"""
Track search with an in-process result cache keyed by the raw query string.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Dict, List, Optional, Tuple

from spotify_picker.exceptions import (
    BadTokenError,
    ForbiddenError,
    NoCredentialError,
    RateLimitedError,
)
from spotify_picker.models.catalog import SearchResponse, Track
from spotify_picker.storage.credential_store import CredentialStore

from .client import SpotifyAPIClient

log = logging.getLogger(__name__)

SEARCH_PATH = "/v1/search"


class SearchCache:
    """
    Executes catalog searches and memoizes the results per exact query string.

    Entries are never evicted or refreshed for the lifetime of the instance.
    Concurrent fetches of the same query share one request.
    """

    def __init__(
        self,
        api_client: SpotifyAPIClient,
        store: CredentialStore,
        stats_callback: Callable[[bool], None] | None = None,
    ):
        """
        Initializes the search cache.

        Args:
            api_client: Client used to reach the search endpoint.
            store: Credential store providing the bearer token.
            stats_callback: Optional callback to report cache hits (True) or
                misses (False).
        """
        self._api_client = api_client
        self._store = store
        self._stats_callback = stats_callback
        self._cache: Dict[str, Tuple[Track, ...]] = {}
        self._inflight: Dict[str, asyncio.Task] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, query: object) -> bool:
        return query in self._cache

    def _record(self, is_hit: bool) -> None:
        if is_hit:
            self.hits += 1
        else:
            self.misses += 1
        if self._stats_callback:
            self._stats_callback(is_hit)

    async def fetch(self, query: str) -> List[Track]:
        """
        Returns tracks matching ``query``.

        A cached query is answered without a credential check or any network
        access.

        Raises:
            NoCredentialError: If no current token is stored.
            InvalidEndpointError: If the search URL cannot be built.
            InvalidResponseError: If a response body cannot be decoded.
            BadTokenError: On HTTP 401.
            ForbiddenError: On HTTP 403.
            RateLimitedError: On HTTP 429.
            UpstreamError: On any other non-200 status.
            TransportError: On network failures.
        """
        # Entries are immutable; every caller gets its own list
        if (cached := self._cache.get(query)) is not None:
            self._record(True)
            return list(cached)

        self._record(False)
        task = self._inflight.get(query)
        if task is None:
            task = asyncio.ensure_future(self._fetch_remote(query))
            self._inflight[query] = task
            task.add_done_callback(lambda _t, q=query: self._inflight.pop(q, None))
        else:
            log.debug(f"Joining in-flight search for '{query}'.")

        return list(await asyncio.shield(task))

    async def _fetch_remote(self, query: str) -> Tuple[Track, ...]:
        access_token = self._store.get()
        if access_token is None:
            raise NoCredentialError()

        url = self._api_client.api_url(SEARCH_PATH)
        response = await self._api_client.request(
            "GET",
            url,
            headers={"Authorization": f"Bearer {access_token}"},
            params={"q": query.strip(), "type": "track"},
        )

        if response.status == 200:
            result = tuple(response.decode(SearchResponse).tracks.items)
            self._cache[query] = result
            log.debug(f"Cached {len(result)} tracks for query '{query}'.")
            return result
        if response.status == 401:
            raise BadTokenError()
        if response.status == 403:
            raise ForbiddenError()
        if response.status == 429:
            raise RateLimitedError(response.retry_after)

        response.raise_upstream()

    def get_cached(self, query: str) -> Optional[List[Track]]:
        cached = self._cache.get(query)
        return list(cached) if cached is not None else None
