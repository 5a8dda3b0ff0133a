"""
Shared fixtures: an in-process stand-in for the catalog's token, search and
media hosts, plus a controllable clock and preconfigured components.
"""

from __future__ import annotations

import asyncio
import json
from collections import Counter
from pathlib import Path
from typing import Any, Optional

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from spotify_picker.api.client import SpotifyAPIClient
from spotify_picker.media import MetadataBundle
from spotify_picker.models.config import PickerConfig
from spotify_picker.storage.credential_store import CredentialStore

TOKEN_PATH = "/api/token"
SEARCH_PATH = "/v1/search"
PREVIEW_PATH = "/media/preview.mp3"
COVER_PATH = "/media/cover.png"

PREVIEW_BYTES = b"ID3\x03\x00\x00\x00\x00\x00\x00" + b"\xff\xfb\x90\x00" * 64
COVER_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


# --------------------------------------------------------------------------- #
# helpers                                                                     #
# --------------------------------------------------------------------------- #
class FakeClock:
    """A clock that only moves when told to."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _image_path(width: int) -> str:
    return COVER_PATH if width == 640 else f"/media/{width}.png"


def track_payload(
    track_id: str = "4uLU6hMCjMI75M1A2tKUQC",
    *,
    name: str = "Never Gonna Give You Up",
    preview_url: Optional[str] = None,
    image_widths: tuple[int, ...] = (640, 300, 64),
    base_url: str = "http://media.invalid",
) -> dict[str, Any]:
    """Builds a track object as the search endpoint returns it."""
    return {
        "id": track_id,
        "name": name,
        "preview_url": preview_url,
        "duration_ms": 213573,
        "explicit": False,
        "popularity": 77,
        "album": {
            "id": "6N9PS4QXF1D0OWPk0Sxtb4",
            "name": "Whenever You Need Somebody",
            "images": [
                {
                    "url": f"{base_url}{_image_path(width)}",
                    "width": width,
                    "height": width,
                }
                for width in image_widths
            ],
        },
        "artists": [
            {"id": "0gxyHStUsqpMadRV0Di1Qt", "name": "Rick Astley"},
        ],
    }


def search_payload(items: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "tracks": {
            "items": items,
            "offset": 0,
            "limit": 20,
            "total": len(items),
        }
    }


def error_payload(status: int, message: str) -> dict[str, Any]:
    return {"error": {"status": status, "message": message}}


class StubCatalog:
    """
    Serves canned token, search and media responses and counts calls per path.

    Each endpoint's behavior is controlled through plain attributes; set
    ``search_statuses`` to script a sequence of statuses for consecutive calls.
    """

    def __init__(self):
        self.base_url = ""
        self.calls: Counter[str] = Counter()

        self.token_status = 200
        self.token_payload: dict[str, Any] = {
            "access_token": "awesomeToken",
            "token_type": "Bearer",
            "expires_in": 3600,
        }
        self.token_delay = 0.0
        self.token_requests: list[dict[str, Any]] = []

        self.search_status = 200
        self.search_statuses: list[int] = []
        self.search_items: Optional[list[dict[str, Any]]] = None
        self.search_delay = 0.0
        self.search_requests: list[dict[str, Any]] = []

        self.error_message = "Service unavailable"
        self.raw_error_body: Optional[bytes] = None
        self.retry_after: Optional[str] = None

        self.preview_status = 200
        self.preview_body = PREVIEW_BYTES
        self.cover_status = 200
        self.cover_body = COVER_BYTES

        self.app = web.Application()
        self.app.router.add_post(TOKEN_PATH, self._token)
        self.app.router.add_get(SEARCH_PATH, self._search)
        self.app.router.add_get(PREVIEW_PATH, self._preview)
        self.app.router.add_get(COVER_PATH, self._cover)

    @property
    def preview_url(self) -> str:
        return f"{self.base_url}{PREVIEW_PATH}"

    def track(self, track_id: str = "4uLU6hMCjMI75M1A2tKUQC", **kwargs) -> dict[str, Any]:
        kwargs.setdefault("preview_url", self.preview_url)
        return track_payload(track_id, base_url=self.base_url, **kwargs)

    def _error(self, status: int) -> web.Response:
        headers = {}
        if status == 429 and self.retry_after is not None:
            headers["Retry-After"] = self.retry_after
        if self.raw_error_body is not None:
            return web.Response(
                status=status, body=self.raw_error_body, headers=headers
            )
        return web.json_response(
            error_payload(status, self.error_message), status=status, headers=headers
        )

    async def _token(self, request: web.Request) -> web.Response:
        self.calls[TOKEN_PATH] += 1
        self.token_requests.append(
            {
                "content_type": request.headers.get("Content-Type"),
                "accept": request.headers.get("Accept"),
                "body": await request.text(),
            }
        )
        if self.token_delay:
            await asyncio.sleep(self.token_delay)
        if self.token_status != 200:
            return self._error(self.token_status)
        return web.json_response(self.token_payload)

    async def _search(self, request: web.Request) -> web.Response:
        self.calls[SEARCH_PATH] += 1
        self.search_requests.append(
            {
                "params": dict(request.query),
                "authorization": request.headers.get("Authorization"),
            }
        )
        if self.search_delay:
            await asyncio.sleep(self.search_delay)
        status = self.search_statuses.pop(0) if self.search_statuses else self.search_status
        if status != 200:
            return self._error(status)
        items = self.search_items if self.search_items is not None else [self.track()]
        return web.Response(
            body=json.dumps(search_payload(items)).encode(),
            content_type="application/json",
        )

    async def _preview(self, request: web.Request) -> web.Response:
        self.calls[PREVIEW_PATH] += 1
        if self.preview_status != 200:
            return web.Response(status=self.preview_status)
        return web.Response(body=self.preview_body, content_type="audio/mpeg")

    async def _cover(self, request: web.Request) -> web.Response:
        self.calls[COVER_PATH] += 1
        if self.cover_status != 200:
            return web.Response(status=self.cover_status)
        return web.Response(body=self.cover_body, content_type="image/png")


class FakeTranscoder:
    """Writes a recognizable file instead of running ffmpeg."""

    extension = "m4a"

    def __init__(self, fail: Optional[Exception] = None, delay: float = 0.0):
        self.fail = fail
        self.delay = delay
        self.calls: list[tuple[Path, Path, MetadataBundle]] = []
        self.sources: list[bytes] = []
        self.started: Optional[asyncio.Event] = None

    async def export(
        self, source: Path, destination: Path, metadata: MetadataBundle
    ) -> None:
        self.calls.append((source, destination, metadata))
        self.sources.append(source.read_bytes())
        if self.started is not None:
            self.started.set()
        destination.write_bytes(b"partial")
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail is not None:
            raise self.fail
        destination.write_bytes(b"m4a:" + source.read_bytes())


# --------------------------------------------------------------------------- #
# fixtures                                                                    #
# --------------------------------------------------------------------------- #
@pytest_asyncio.fixture
async def catalog():
    stub = StubCatalog()
    server = TestServer(stub.app)
    await server.start_server()
    stub.base_url = f"http://{server.host}:{server.port}"
    yield stub
    await server.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config(tmp_path: Path, catalog: StubCatalog) -> PickerConfig:
    return PickerConfig(
        client_id="client-id",
        client_secret="client-secret",
        api_base_url=catalog.base_url,
        auth_base_url=catalog.base_url,
        request_timeout=5.0,
        scratch_dir=tmp_path / "scratch",
        config_path=str(tmp_path),
    )


@pytest.fixture
def store(tmp_path: Path, clock: FakeClock) -> CredentialStore:
    return CredentialStore(tmp_path / "credentials.json", "spotify-picker", clock=clock)


@pytest_asyncio.fixture
async def api_client(config: PickerConfig):
    client = SpotifyAPIClient(config)
    yield client
    await client.close()
