"""
Pydantic models mirroring the catalog's wire format (snake_case on the wire).
"""

from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class ArtworkVariant(Enum):
    """The catalog serves three artwork sizes; each variant maps to a pixel width."""

    SMALL = 64
    REGULAR = 300
    LARGE = 640

    @property
    def size(self) -> int:
        return self.value


class _WireModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class Artwork(_WireModel):
    url: str
    width: int
    height: int


class Artist(_WireModel):
    id: str
    name: str


class Album(_WireModel):
    """An album; ``images`` is ordered widest first."""

    id: str
    name: str
    images: List[Artwork] = []


class Track(_WireModel):
    """A track object of the catalog API."""

    id: str
    preview_url: Optional[str] = None
    name: str
    duration_ms: int
    explicit: bool = False
    album: Album
    artists: List[Artist] = []

    @property
    def artist_names(self) -> str:
        return ", ".join(artist.name for artist in self.artists)

    @property
    def duration_seconds(self) -> float:
        return self.duration_ms / 1000

    def image_url(self, variant: ArtworkVariant) -> Optional[str]:
        """Returns the URL of the first artwork whose width matches the variant exactly."""
        for image in self.album.images:
            if image.width == variant.size:
                return image.url
        return None


class TracksPage(_WireModel):
    items: List[Track]
    offset: int
    limit: int
    total: int


class SearchResponse(_WireModel):
    tracks: TracksPage


class TokenResponse(_WireModel):
    access_token: str
    token_type: str
    expires_in: int


class ErrorObject(_WireModel):
    status: int
    message: str


class ErrorResponse(_WireModel):
    error: ErrorObject


class PickerItem(_WireModel):
    """A picked track together with the local path of its tagged preview."""

    track: Track
    local_path: Path
