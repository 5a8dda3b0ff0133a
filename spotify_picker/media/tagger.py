"""
Builds the metadata bundle for a track and writes it as MP4 atoms.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from mutagen.mp4 import MP4, MP4Cover

from spotify_picker.models.catalog import Track

log = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


@dataclass(frozen=True)
class MetadataBundle:
    """Descriptive tags injected into an exported file."""

    album: str
    title: str
    artists: str
    artwork: Optional[bytes] = None

    @classmethod
    def from_track(cls, track: Track, artwork: Optional[bytes] = None) -> "MetadataBundle":
        return cls(
            album=track.album.name,
            title=track.name,
            artists=track.artist_names,
            artwork=artwork,
        )


def cover_format(data: bytes) -> int:
    """Detects the MP4 cover image format from the image's magic bytes."""
    if data.startswith(PNG_SIGNATURE):
        return MP4Cover.FORMAT_PNG
    return MP4Cover.FORMAT_JPEG


class Tagger:
    """Writes metadata tags to M4A files."""

    def tag_file(self, file_path: str, metadata: MetadataBundle) -> None:
        """
        Replaces the descriptive tags of ``file_path`` with ``metadata``.

        Errors from mutagen propagate to the caller.
        """
        audio = MP4(file_path)
        if audio.tags is None:
            audio.add_tags()

        audio.tags["\xa9alb"] = [metadata.album]
        audio.tags["\xa9nam"] = [metadata.title]
        if metadata.artists:
            audio.tags["\xa9ART"] = [metadata.artists]

        if metadata.artwork:
            audio.tags["covr"] = [
                MP4Cover(metadata.artwork, imageformat=cover_format(metadata.artwork))
            ]
        elif "covr" in audio.tags:
            del audio.tags["covr"]

        audio.save()
        log.debug(
            f"Tagged '{file_path}' "
            f"({'with' if metadata.artwork else 'without'} artwork)."
        )
