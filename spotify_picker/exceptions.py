"""
Defines custom exceptions for the application to allow for more specific error handling.

Every error carries a stable ``kind`` from :class:`ErrorKind` so presentation
layers can switch on it, plus a human-readable ``description``. Only
:class:`UpstreamError` carries free text from the server.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Closed set of failure kinds exposed to callers."""

    NO_CREDENTIAL = "no_credential"
    INVALID_ENDPOINT = "invalid_endpoint"
    INVALID_RESPONSE = "invalid_response"
    BAD_TOKEN = "bad_token"
    FORBIDDEN = "forbidden"
    BAD_OAUTH = "bad_oauth"
    RATE_LIMITED = "rate_limited"
    UPSTREAM = "upstream"
    TRANSPORT = "transport"
    MISSING_PREVIEW = "missing_preview"
    INVALID_URL = "invalid_url"
    INCOMPATIBLE_EXPORT = "incompatible_export"
    INVALID_EXPORT_SESSION = "invalid_export_session"
    EXPORT_FAILED = "export_failed"
    CONFIGURATION = "configuration"


class SpotifyPickerError(Exception):
    """Base exception for all application-specific errors."""

    kind: ErrorKind = ErrorKind.UPSTREAM
    description: str = "An unexpected error occurred."

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail
        super().__init__(self._render())

    def _render(self) -> str:
        if self.detail:
            return f"{self.description} ({self.detail})"
        return self.description


class CatalogError(SpotifyPickerError):
    """Raised for failures talking to the catalog or token endpoints."""


class NoCredentialError(CatalogError):
    """Raised when no current access token is cached."""

    kind = ErrorKind.NO_CREDENTIAL
    description = "An expired access token is used."


class InvalidEndpointError(CatalogError):
    """Raised when an endpoint URL cannot be built from the configured base."""

    kind = ErrorKind.INVALID_ENDPOINT
    description = "Invalid URL components."


class InvalidResponseError(CatalogError):
    """Raised when a response body cannot be decoded into the expected shape."""

    kind = ErrorKind.INVALID_RESPONSE
    description = "Invalid HTTP response."


class BadTokenError(CatalogError):
    """
    Bad or expired token. The user revoked it or it expired server-side;
    re-authenticating is the fix.
    """

    kind = ErrorKind.BAD_TOKEN
    description = (
        "Bad or expired token. This can happen if the user revoked a token or the "
        "access token has expired. You should re-authenticate the user."
    )


class ForbiddenError(CatalogError):
    """Raised when the catalog refuses a request with HTTP 403."""

    kind = ErrorKind.FORBIDDEN
    description = "The catalog refused the request (forbidden)."


class BadOAuthError(ForbiddenError):
    """
    Bad OAuth request (wrong consumer key, bad nonce, expired timestamp...).
    Re-authenticating won't help in this case.
    """

    kind = ErrorKind.BAD_OAUTH
    description = (
        "Bad OAuth request (wrong consumer key, bad nonce, expired timestamp...). "
        "Unfortunately, re-authenticating the user won't help here."
    )


class RateLimitedError(CatalogError):
    """Raised when the app has exceeded its rate limits (HTTP 429)."""

    kind = ErrorKind.RATE_LIMITED
    description = "The app has exceeded its rate limits."

    def __init__(self, retry_after: Optional[float] = None):
        self.retry_after = retry_after
        super().__init__(
            f"retry after {retry_after:g}s" if retry_after is not None else None
        )


class UpstreamError(CatalogError):
    """An unknown error response from the catalog, with the server's message."""

    kind = ErrorKind.UPSTREAM
    description = "An unknown error response from Spotify API"

    def __init__(self, message: str, status: Optional[int] = None):
        self.message = message
        self.status = status
        super().__init__(message)

    def _render(self) -> str:
        return f"{self.description}: {self.message}"


class DownloadError(SpotifyPickerError):
    """Raised for failures while acquiring a local preview file."""


class TransportError(CatalogError, DownloadError):
    """Raised when the underlying network transport fails."""

    kind = ErrorKind.TRANSPORT
    description = "A network error occurred."

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(str(cause) or type(cause).__name__)


class MissingPreviewError(DownloadError):
    """Thrown when the selected track doesn't provide a preview URL."""

    kind = ErrorKind.MISSING_PREVIEW
    description = "Selected track doesn't provide a preview URL."


class InvalidURLError(DownloadError):
    """Thrown when the preview URL cannot be parsed."""

    kind = ErrorKind.INVALID_URL
    description = "Invalid URL."


class IncompatibleExportError(DownloadError):
    """Thrown when the source audio is not compatible with the export preset."""

    kind = ErrorKind.INCOMPATIBLE_EXPORT
    description = "Incompatible export options."


class InvalidExportSessionError(DownloadError):
    """Thrown when the export session cannot be created."""

    kind = ErrorKind.INVALID_EXPORT_SESSION
    description = "Couldn't create an export session."


class ExportFailedError(DownloadError):
    """Thrown when the export process runs but does not produce a file."""

    kind = ErrorKind.EXPORT_FAILED
    description = "The export session failed."


class ConfigurationError(SpotifyPickerError):
    """Raised for issues related to configuration loading or validation."""

    kind = ErrorKind.CONFIGURATION
    description = "Invalid configuration."

    def _render(self) -> str:
        return self.detail or self.description
