from __future__ import annotations

from pathlib import Path

import pytest
from conftest import FakeClock
from typer.testing import CliRunner

from spotify_picker import __version__
from spotify_picker.cli import app as cli_app
from spotify_picker.models.config import DEFAULT_TOKEN_NAMESPACE
from spotify_picker.storage.config_manager import ConfigManager
from spotify_picker.storage.credential_store import CredentialStore

runner = CliRunner()


@pytest.fixture
def config_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setattr(cli_app, "CONFIG_DIR", tmp_path)
    monkeypatch.setattr(cli_app, "CONFIG_FILE", tmp_path / "config.ini")
    monkeypatch.delenv("SPOTIFY_CLIENT_ID", raising=False)
    monkeypatch.delenv("SPOTIFY_CLIENT_SECRET", raising=False)
    return tmp_path


def test_version() -> None:
    result = runner.invoke(cli_app.app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_init_writes_config(config_dir: Path) -> None:
    result = runner.invoke(cli_app.app, ["init", "my-client", "my-secret"])

    assert result.exit_code == 0, result.output
    config = ConfigManager(config_dir / "config.ini").load_config()
    assert config.client_id == "my-client"
    assert config.client_secret == "my-secret"


def test_init_refuses_to_overwrite_without_confirmation(config_dir: Path) -> None:
    runner.invoke(cli_app.app, ["init", "first", "secret"])

    result = runner.invoke(cli_app.app, ["init", "second", "secret"], input="n\n")

    assert result.exit_code != 0
    assert ConfigManager(config_dir / "config.ini").load_config().client_id == "first"


def test_show_config_hides_secret(config_dir: Path) -> None:
    runner.invoke(cli_app.app, ["init", "my-client", "super-secret-value"])

    result = runner.invoke(cli_app.app, ["--show-config"])

    assert result.exit_code == 0
    assert "my-client" in result.output
    assert "super-secret-value" not in result.output


def test_logout_clears_cached_token(config_dir: Path) -> None:
    runner.invoke(cli_app.app, ["init", "my-client", "my-secret"])
    store = CredentialStore(config_dir / "credentials.json", DEFAULT_TOKEN_NAMESPACE)
    store.persist("awesomeToken", 3600)
    assert store.get() == "awesomeToken"

    result = runner.invoke(cli_app.app, ["logout"])

    assert result.exit_code == 0
    assert store.get() is None


def test_logout_without_config_uses_default_location(config_dir: Path) -> None:
    clock = FakeClock()
    store = CredentialStore(
        config_dir / "credentials.json", DEFAULT_TOKEN_NAMESPACE, clock=clock
    )
    store.persist("awesomeToken", 3600)

    result = runner.invoke(cli_app.app, ["logout"])

    assert result.exit_code == 0
    assert store.expires_at is None
