"""
Media Processing Layer.

This package is responsible for all media file operations: downloading
previews and artwork, exporting to the fixed M4A preset, and tagging.
"""

from .downloader import Downloader
from .tagger import MetadataBundle, Tagger
from .transcoder import M4A_PRESET, ExportPreset, ExportSession, Transcoder

__all__ = [
    "Downloader",
    "ExportPreset",
    "ExportSession",
    "M4A_PRESET",
    "MetadataBundle",
    "Tagger",
    "Transcoder",
]
