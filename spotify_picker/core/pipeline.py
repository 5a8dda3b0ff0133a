"""
Acquires a local, tagged preview file for a single track.
"""

import asyncio
import hashlib
import logging
import os
import tempfile
from collections import OrderedDict
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from pathvalidate import sanitize_filename
from yarl import URL

from spotify_picker.exceptions import InvalidURLError, MissingPreviewError
from spotify_picker.media import Downloader, MetadataBundle, Transcoder
from spotify_picker.models.catalog import ArtworkVariant, Track

log = logging.getLogger(__name__)

RAW_EXTENSION = "mp3"


class PipelineState(Enum):
    PENDING = "pending"
    FETCHING = "fetching"
    TRANSCODING = "transcoding"
    FINALIZED = "finalized"
    FAILED = "failed"


StateCallback = Callable[[str, PipelineState], None]


def identity_for(track_id: str) -> str:
    """
    Derives a filesystem-safe, collision-free name from a track id.

    Ids that need sanitizing get a digest of the raw id appended, so two
    different ids never map to the same name.
    """
    safe = sanitize_filename(track_id, replacement_text="_")
    if safe != track_id or not safe:
        digest = hashlib.sha256(track_id.encode("utf-8")).hexdigest()[:12]
        safe = f"{safe}-{digest}" if safe else digest
    return safe


class DownloadPipeline:
    """
    Orchestrates fetch, export and finalization of a single track's preview.

    The finalized file at ``<scratch_dir>/<identity>.m4a`` is trusted as-is
    once it exists. Runs for the same identity are serialized; different
    identities never share a path.
    """

    def __init__(
        self,
        scratch_dir: Path,
        downloader: Downloader,
        transcoder: Transcoder,
        on_state: Optional[StateCallback] = None,
    ):
        self.scratch_dir = Path(scratch_dir)
        self.downloader = downloader
        self.transcoder = transcoder
        self._on_state = on_state
        self._locks: OrderedDict[str, asyncio.Lock] = OrderedDict()
        self._max_locks = 1000
        self._locks_main = asyncio.Lock()

    def final_path(self, track: Track) -> Path:
        return self.scratch_dir / f"{identity_for(track.id)}.{self.transcoder.extension}"

    def raw_path(self, track: Track) -> Path:
        return self.scratch_dir / f"{identity_for(track.id)}.{RAW_EXTENSION}"

    def _emit(self, track: Track, state: PipelineState) -> None:
        log.debug(f"Track {track.id}: {state.value}")
        if self._on_state:
            self._on_state(track.id, state)

    async def _get_lock(self, identity: str) -> asyncio.Lock:
        """Gets or creates the lock guarding one identity's temporary paths."""
        async with self._locks_main:
            if identity in self._locks:
                self._locks.move_to_end(identity)
                return self._locks[identity]

            lock = asyncio.Lock()
            self._locks[identity] = lock

            # Evict the oldest idle locks if over limit
            if len(self._locks) > self._max_locks:
                for key in list(self._locks):
                    if len(self._locks) <= self._max_locks:
                        break
                    if not self._locks[key].locked():
                        del self._locks[key]

            return lock

    async def acquire(self, track: Track) -> Path:
        """
        Returns the path of the tagged preview for ``track``, producing it if needed.

        Raises:
            MissingPreviewError: If the track has no preview URL.
            InvalidURLError: If the preview URL cannot be parsed.
            IncompatibleExportError: If the fetched audio can't use the export preset.
            InvalidExportSessionError: If the exporter cannot be constructed.
            ExportFailedError: If the export fails.
            TransportError: If the preview download fails.
        """
        final_path = self.final_path(track)
        if await asyncio.to_thread(final_path.is_file):
            log.debug(f"Using existing preview for track {track.id}.")
            return final_path

        lock = await self._get_lock(identity_for(track.id))
        async with lock:
            # Second check (inside lock): a concurrent run may have finished
            if await asyncio.to_thread(final_path.is_file):
                return final_path
            return await self._run(track, final_path)

    @staticmethod
    def _validate_preview(track: Track) -> str:
        if not track.preview_url:
            raise MissingPreviewError()
        try:
            url = URL(track.preview_url)
        except (TypeError, ValueError) as e:
            raise InvalidURLError(track.preview_url) from e
        if url.scheme not in ("http", "https") or not url.host:
            raise InvalidURLError(track.preview_url)
        return track.preview_url

    async def _run(self, track: Track, final_path: Path) -> Path:
        self._emit(track, PipelineState.PENDING)
        temporaries: List[Path] = []
        try:
            preview_url = self._validate_preview(track)
            self.scratch_dir.mkdir(parents=True, exist_ok=True)

            self._emit(track, PipelineState.FETCHING)
            raw_path = await self._fetch_raw(track, preview_url, temporaries)
            metadata = await self._build_metadata(track)

            self._emit(track, PipelineState.TRANSCODING)
            partial_path = final_path.with_name(final_path.name + ".part")
            temporaries.append(partial_path)
            await self.transcoder.export(raw_path, partial_path, metadata)

            os.replace(partial_path, final_path)
        except (Exception, asyncio.CancelledError) as e:
            self._emit(track, PipelineState.FAILED)
            log.debug(f"Pipeline for track {track.id} failed: {e!r}")
            raise
        finally:
            for path in temporaries:
                try:
                    path.unlink(missing_ok=True)
                except OSError as e:
                    log.warning(f"Could not remove temporary file '{path.name}': {e}")

        self._emit(track, PipelineState.FINALIZED)
        log.info(f"Saved preview for track {track.id} to [dim]{final_path}[/dim]")
        return final_path

    async def _fetch_raw(
        self, track: Track, preview_url: str, temporaries: List[Path]
    ) -> Path:
        """Downloads the preview and moves it onto the identity's raw-audio path."""
        identity = identity_for(track.id)
        fd, download_name = tempfile.mkstemp(
            prefix=f"{identity}.", suffix=".download", dir=self.scratch_dir
        )
        os.close(fd)
        download_path = Path(download_name)
        temporaries.append(download_path)

        await self.downloader.download_file(preview_url, str(download_path))

        raw_path = self.raw_path(track)
        temporaries.append(raw_path)
        if raw_path.exists():
            log.debug(f"Removing stale raw audio '{raw_path.name}'.")
            raw_path.unlink()
        os.replace(download_path, raw_path)
        return raw_path

    async def _build_metadata(self, track: Track) -> MetadataBundle:
        # Artwork is optional: a failed fetch only drops the cover
        artwork = await self.downloader.download_asset(
            track.image_url(ArtworkVariant.LARGE)
        )
        return MetadataBundle.from_track(track, artwork)
