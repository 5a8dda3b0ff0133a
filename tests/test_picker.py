"""
End-to-end caller flow through SpotifyPicker against the stub catalog.
"""

from __future__ import annotations

import pytest
import pytest_asyncio
from conftest import PREVIEW_BYTES, SEARCH_PATH, TOKEN_PATH, FakeTranscoder, StubCatalog

from spotify_picker.core import SpotifyPicker
from spotify_picker.exceptions import BadTokenError, BadOAuthError
from spotify_picker.models.catalog import PickerItem
from spotify_picker.models.config import PickerConfig
from spotify_picker.storage.credential_store import CredentialStore


@pytest_asyncio.fixture
async def picker(config: PickerConfig, store: CredentialStore):
    async with SpotifyPicker(config, store=store, transcoder=FakeTranscoder()) as p:
        yield p


@pytest.mark.asyncio
async def test_search_obtains_token_first(picker: SpotifyPicker, catalog: StubCatalog) -> None:
    tracks = await picker.search("never gonna")

    assert len(tracks) == 1
    assert catalog.calls[TOKEN_PATH] == 1
    assert catalog.search_requests[0]["authorization"] == "Bearer awesomeToken"


@pytest.mark.asyncio
async def test_search_reuses_cached_token(
    picker: SpotifyPicker, store: CredentialStore, catalog: StubCatalog
) -> None:
    store.persist("cachedToken", 600)

    await picker.search("never gonna")

    assert catalog.calls[TOKEN_PATH] == 0
    assert catalog.search_requests[0]["authorization"] == "Bearer cachedToken"


@pytest.mark.asyncio
async def test_rejected_token_is_refreshed_once(
    picker: SpotifyPicker, store: CredentialStore, catalog: StubCatalog
) -> None:
    store.persist("revokedToken", 600)
    catalog.search_statuses = [401]

    tracks = await picker.search("never gonna")

    assert len(tracks) == 1
    assert catalog.calls[TOKEN_PATH] == 1
    assert catalog.calls[SEARCH_PATH] == 2
    assert catalog.search_requests[-1]["authorization"] == "Bearer awesomeToken"


@pytest.mark.asyncio
async def test_second_rejection_propagates(
    picker: SpotifyPicker, catalog: StubCatalog
) -> None:
    catalog.search_status = 401

    with pytest.raises(BadTokenError):
        await picker.search("never gonna")
    assert catalog.calls[SEARCH_PATH] == 2


@pytest.mark.asyncio
async def test_bad_client_credentials_propagate(
    picker: SpotifyPicker, catalog: StubCatalog
) -> None:
    catalog.token_status = 403

    with pytest.raises(BadOAuthError):
        await picker.search("never gonna")
    assert catalog.calls[SEARCH_PATH] == 0


@pytest.mark.asyncio
async def test_pick_returns_item_with_local_file(
    picker: SpotifyPicker, config: PickerConfig
) -> None:
    tracks = await picker.search("never gonna")

    item = await picker.pick(tracks[0])

    assert isinstance(item, PickerItem)
    assert item.track == tracks[0]
    assert item.local_path == config.scratch_dir / f"{tracks[0].id}.m4a"
    assert item.local_path.read_bytes() == b"m4a:" + PREVIEW_BYTES
