"""
Data Models Layer.

This package contains Pydantic models that define the core data structures
used throughout the application: catalog wire shapes and configuration.
"""

from .catalog import (
    Album,
    Artist,
    Artwork,
    ArtworkVariant,
    PickerItem,
    Track,
)
from .config import PickerConfig

__all__ = [
    "Album",
    "Artist",
    "Artwork",
    "ArtworkVariant",
    "PickerConfig",
    "PickerItem",
    "Track",
]
