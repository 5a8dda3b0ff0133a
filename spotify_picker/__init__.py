"""
Search the Spotify catalog and pick a track's preview as a tagged local file.
"""

__version__ = "0.1.0"
