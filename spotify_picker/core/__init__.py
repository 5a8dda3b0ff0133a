from .picker import SpotifyPicker
from .pipeline import DownloadPipeline, PipelineState, identity_for

__all__ = ["DownloadPipeline", "PipelineState", "SpotifyPicker", "identity_for"]
