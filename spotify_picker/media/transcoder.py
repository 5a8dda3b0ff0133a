"""
Exports raw preview audio into the fixed M4A preset using ffmpeg, then
injects the metadata bundle with mutagen.
"""

import asyncio
import contextlib
import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import mutagen

from spotify_picker.exceptions import (
    ExportFailedError,
    IncompatibleExportError,
    InvalidExportSessionError,
)

from .tagger import MetadataBundle, Tagger

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExportPreset:
    """A fixed ffmpeg output configuration."""

    name: str
    container: str
    codec: str
    bitrate: str
    extension: str
    # mutagen type names the preset accepts as input
    source_types: tuple[str, ...]


M4A_PRESET = ExportPreset(
    name="m4a-aac",
    container="ipod",
    codec="aac",
    bitrate="256k",
    extension="m4a",
    source_types=("MP3", "MP4", "AAC", "FLAC", "OggVorbis", "WAVE"),
)


def resolve_binary(name: str) -> Optional[Path]:
    """
    Resolve a binary name or path to its full path.

    Args:
        name: Binary name (e.g., "ffmpeg") or an explicit path.

    Returns:
        Path to the binary, or None if not found.
    """
    candidate = Path(name).expanduser()
    if candidate.parent != Path(".") and candidate.is_file():
        return candidate if os.access(candidate, os.X_OK) else None

    system_path = shutil.which(name)
    if system_path:
        return Path(system_path)

    return None


def probe_audio_type(source: Path) -> Optional[str]:
    """
    Returns mutagen's type name for ``source`` when it holds playable audio,
    otherwise None.
    """
    try:
        audio = mutagen.File(str(source))
    except (mutagen.MutagenError, OSError) as e:
        log.debug(f"Could not probe '{source.name}': {e}")
        return None
    if audio is None or audio.info is None:
        return None
    if getattr(audio.info, "length", 0) <= 0:
        return None
    return type(audio).__name__


class ExportSession:
    """One ffmpeg run followed by a tagging pass."""

    STDERR_TAIL = 500

    def __init__(self, binary: Path, preset: ExportPreset, tagger: Tagger):
        self.binary = binary
        self.preset = preset
        self._tagger = tagger

    def build_command(self, source: Path, destination: Path) -> list[str]:
        return [
            str(self.binary),
            "-nostdin",
            "-hide_banner",
            "-loglevel",
            "error",
            "-y",
            "-i",
            str(source),
            "-map",
            "0:a:0",
            "-map_metadata",
            "-1",
            "-c:a",
            self.preset.codec,
            "-b:a",
            self.preset.bitrate,
            "-f",
            self.preset.container,
            str(destination),
        ]

    async def export(
        self, source: Path, destination: Path, metadata: MetadataBundle
    ) -> None:
        """
        Writes the exported, tagged file to ``destination``.

        Raises:
            ExportFailedError: If ffmpeg fails or the output cannot be tagged.
        """
        cmd = self.build_command(source, destination)
        log.debug(f"Starting export: {' '.join(cmd)}")

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise InvalidExportSessionError(f"could not start {self.binary}: {e}") from e

        try:
            _, stderr = await proc.communicate()
        except asyncio.CancelledError:
            if proc.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    proc.kill()
                with contextlib.suppress(Exception):
                    await proc.wait()
            raise

        if proc.returncode != 0:
            message = (stderr or b"").decode(errors="ignore").strip()
            raise ExportFailedError(
                f"ffmpeg exited with code {proc.returncode}: "
                f"{message[-self.STDERR_TAIL:] or 'no stderr'}"
            )
        if not destination.is_file() or destination.stat().st_size == 0:
            raise ExportFailedError("ffmpeg produced no output")

        try:
            await asyncio.to_thread(self._tagger.tag_file, str(destination), metadata)
        except (mutagen.MutagenError, OSError) as e:
            raise ExportFailedError(f"could not write tags: {e}") from e


class Transcoder:
    """
    Checks compatibility, builds export sessions and runs them.
    """

    def __init__(
        self,
        ffmpeg_binary: str = "ffmpeg",
        preset: ExportPreset = M4A_PRESET,
        tagger: Optional[Tagger] = None,
    ):
        self.ffmpeg_binary = ffmpeg_binary
        self.preset = preset
        self._tagger = tagger or Tagger()

    @property
    def extension(self) -> str:
        return self.preset.extension

    def is_compatible(self, source: Path) -> bool:
        """True when ``source`` is audio the preset can take as input."""
        audio_type = probe_audio_type(source)
        if audio_type is None:
            return False
        return audio_type in self.preset.source_types

    def create_session(self) -> ExportSession:
        """
        Raises:
            InvalidExportSessionError: If the ffmpeg binary cannot be found.
        """
        binary = resolve_binary(self.ffmpeg_binary)
        if binary is None:
            raise InvalidExportSessionError(f"'{self.ffmpeg_binary}' was not found")
        return ExportSession(binary, self.preset, self._tagger)

    async def export(
        self, source: Path, destination: Path, metadata: MetadataBundle
    ) -> None:
        """
        Remuxes ``source`` into the preset and tags the result at ``destination``.

        Raises:
            IncompatibleExportError: If the source is not usable with the preset.
            InvalidExportSessionError: If the exporter cannot be constructed.
            ExportFailedError: If the export itself fails.
        """
        if not await asyncio.to_thread(self.is_compatible, source):
            raise IncompatibleExportError(
                f"'{source.name}' cannot be exported with preset '{self.preset.name}'"
            )

        session = self.create_session()
        await session.export(source, destination, metadata)
        log.debug(f"Exported '{source.name}' to '{destination.name}'.")
