"""
Wires the credential store, token and search services and the download
pipeline into the caller flow: ensure a token, search, acquire a preview.
"""

import logging
from typing import List, Optional

from spotify_picker.api.auth import TokenManager
from spotify_picker.api.client import SpotifyAPIClient
from spotify_picker.api.search import SearchCache
from spotify_picker.exceptions import BadTokenError
from spotify_picker.media import Downloader, Transcoder
from spotify_picker.models.catalog import PickerItem, Track
from spotify_picker.models.config import PickerConfig
from spotify_picker.storage.credential_store import CredentialStore

from .pipeline import DownloadPipeline, StateCallback

log = logging.getLogger(__name__)


class SpotifyPicker:
    """
    High-level facade used by the CLI.

    Components that are not injected are built from ``config``; only the
    sessions created here are closed on exit.
    """

    def __init__(
        self,
        config: PickerConfig,
        store: Optional[CredentialStore] = None,
        api_client: Optional[SpotifyAPIClient] = None,
        downloader: Optional[Downloader] = None,
        transcoder: Optional[Transcoder] = None,
        on_state: Optional[StateCallback] = None,
    ):
        self.config = config
        self.store = store or CredentialStore(
            config.credentials_file, config.token_namespace
        )
        self.api_client = api_client or SpotifyAPIClient(config)
        self.downloader = downloader or Downloader(timeout=config.request_timeout)
        self.transcoder = transcoder or Transcoder(config.ffmpeg_path)

        self.tokens = TokenManager(self.api_client, self.store)
        self.searches = SearchCache(self.api_client, self.store)
        self.pipeline = DownloadPipeline(
            config.scratch_dir, self.downloader, self.transcoder, on_state=on_state
        )

    async def __aenter__(self) -> "SpotifyPicker":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self.api_client.close()
        await self.downloader.close()

    async def ensure_token(self) -> str:
        return await self.tokens.ensure_token()

    async def search(self, query: str) -> List[Track]:
        """
        Searches for tracks, obtaining a token first when none is cached.

        A token rejected by the catalog is refreshed once and the search is
        retried once; any other failure propagates unchanged.
        """
        await self.ensure_token()
        try:
            return await self.searches.fetch(query)
        except BadTokenError:
            log.info("[yellow]Access token was rejected, requesting a new one.[/yellow]")
            self.store.clear()
            await self.tokens.refresh()
            return await self.searches.fetch(query)

    async def pick(self, track: Track) -> PickerItem:
        """Acquires the local preview for ``track``."""
        local_path = await self.pipeline.acquire(track)
        return PickerItem(track=track, local_path=local_path)
