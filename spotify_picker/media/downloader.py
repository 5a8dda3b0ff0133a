"""
Handles the low-level downloading of preview audio and artwork over HTTP.
"""

import asyncio
import logging
import os
from typing import Optional

import aiofiles
import aiohttp

from spotify_picker.exceptions import TransportError

log = logging.getLogger(__name__)


class Downloader:
    """A low-level file downloader. Failures surface as TransportError; nothing is retried."""

    CHUNK_SIZE = 131072  # 128 KB

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 60.0,
    ):
        """
        Initializes the downloader.

        Args:
            session: Optional externally owned session; it is not closed by
                :meth:`close`.
            timeout: Total timeout for a single download, in seconds.
        """
        self._session = session
        self._owns_session = session is None
        self._timeout = timeout
        self.request_count = 0

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(
                    total=self._timeout, sock_connect=15, sock_read=30
                ),
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Closes the session if this downloader created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
            log.debug("Downloader session closed.")

    async def download_file(self, url: str, destination_path: str) -> int:
        """
        Streams ``url`` into ``destination_path``.

        Args:
            url: Source URL.
            destination_path: File to create or overwrite.

        Returns:
            The number of bytes written.

        Raises:
            TransportError: On HTTP error statuses, connection failures and timeouts.
        """
        session = await self._get_session()
        self.request_count += 1
        try:
            async with session.get(url, allow_redirects=True) as response:
                response.raise_for_status()
                bytes_downloaded = 0
                async with aiofiles.open(destination_path, "wb") as f:
                    async for chunk in response.content.iter_chunked(self.CHUNK_SIZE):
                        await f.write(chunk)
                        bytes_downloaded += len(chunk)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            log.debug(
                f"Download of '{os.path.basename(destination_path)}' failed: {e!r}"
            )
            raise TransportError(e) from e

        log.debug(
            f"Downloaded {bytes_downloaded} bytes to "
            f"'{os.path.basename(destination_path)}'."
        )
        return bytes_downloaded

    async def fetch_bytes(self, url: str) -> bytes:
        """
        Fetches a small resource fully into memory.

        Raises:
            TransportError: On HTTP error statuses, connection failures and timeouts.
        """
        session = await self._get_session()
        self.request_count += 1
        try:
            async with session.get(url, allow_redirects=True) as response:
                response.raise_for_status()
                return await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(e) from e

    async def download_asset(self, url: Optional[str]) -> Optional[bytes]:
        """
        Fetches an optional asset such as cover art. Any failure is logged and
        yields None.
        """
        if not url:
            return None
        try:
            return await self.fetch_bytes(url)
        except (TransportError, ValueError) as e:
            log.debug(f"Failed to download asset '{url}': {e}")
            return None
