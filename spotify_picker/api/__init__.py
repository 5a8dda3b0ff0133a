"""
Catalog API Layer.

This package handles all communication with the catalog's token endpoint
and Web API.
"""

from .auth import TokenManager
from .client import APIResponse, SpotifyAPIClient
from .search import SearchCache

__all__ = ["APIResponse", "SearchCache", "SpotifyAPIClient", "TokenManager"]
