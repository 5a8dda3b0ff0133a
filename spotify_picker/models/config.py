"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

import tempfile
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator
from yarl import URL

DEFAULT_API_BASE_URL = "https://api.spotify.com"
DEFAULT_AUTH_BASE_URL = "https://accounts.spotify.com"
DEFAULT_TOKEN_NAMESPACE = "spotify-picker"


def default_scratch_dir() -> Path:
    return Path(tempfile.gettempdir()) / "spotify-picker"


class PickerConfig(BaseModel):
    """A validated configuration model for the application."""

    model_config = ConfigDict(validate_assignment=True, str_strip_whitespace=True)

    # Client credentials from the developer dashboard
    client_id: str
    client_secret: str = Field(..., repr=False)

    # Endpoints
    api_base_url: str = DEFAULT_API_BASE_URL
    auth_base_url: str = DEFAULT_AUTH_BASE_URL
    request_timeout: float = 30.0

    # Storage
    token_namespace: str = DEFAULT_TOKEN_NAMESPACE
    scratch_dir: Path = Field(default_factory=default_scratch_dir)
    ffmpeg_path: str = "ffmpeg"

    # Internal fields not loaded from INI file
    config_path: str = Field(..., repr=False)

    @field_validator("client_id", "client_secret", "token_namespace")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("Value cannot be empty.")
        return v

    @field_validator("api_base_url", "auth_base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Base URLs must be absolute http(s) URLs; a trailing slash is dropped."""
        url = URL(v)
        if url.scheme not in ("http", "https") or not url.host:
            raise ValueError(f"'{v}' is not an absolute http(s) URL.")
        return v.rstrip("/")

    @field_validator("request_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Request timeout must be positive.")
        return v

    @field_validator("ffmpeg_path")
    @classmethod
    def validate_ffmpeg_path(cls, v: str) -> str:
        return v or "ffmpeg"

    @property
    def credentials_file(self) -> Path:
        return Path(self.config_path) / "credentials.json"

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
