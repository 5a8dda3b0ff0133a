"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
import time
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from spotify_picker import __version__
from spotify_picker.core import PipelineState, SpotifyPicker
from spotify_picker.exceptions import ConfigurationError
from spotify_picker.models.config import DEFAULT_TOKEN_NAMESPACE, PickerConfig
from spotify_picker.storage.config_manager import ConfigManager
from spotify_picker.storage.credential_store import CredentialStore
from spotify_picker.utils.formatting import format_duration, token_preview

from .formatters import build_tracks_table, print_config, print_pick_panel

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("spotify_picker")

app = typer.Typer(
    name="spotify-picker",
    help=(
        "Search the Spotify catalog and save a track's preview as a tagged M4A"
        " file. Use 'spotify-picker <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)

STATE_MESSAGES = {
    PipelineState.PENDING: "Preparing...",
    PipelineState.FETCHING: "Downloading preview...",
    PipelineState.TRANSCODING: "Exporting to M4A...",
}


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "spotify-picker"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


def _load_config() -> PickerConfig:
    return ConfigManager(CONFIG_FILE).load_config()


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """Spotify Picker CLI"""
    if version:
        console.print(f"[bold]spotify-picker[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("spotify_picker").setLevel(log_level)

    if show_config:
        if not CONFIG_FILE.is_file():
            console.print(
                "[red]✗ Config file not found.[/] Run [cyan]spotify-picker init[/cyan]"
                " first."
            )
            raise typer.Exit(code=1)
        config_manager = ConfigManager(CONFIG_FILE)
        config_manager.load_config()
        print_config(CONFIG_FILE, config_manager._get_config_as_dict())
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    client_id: str = typer.Argument(..., help="Client ID from the developer dashboard."),
    client_secret: str = typer.Argument(
        ..., help="Client secret from the developer dashboard."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration without asking."
    ),
):
    """Initialize configuration with Spotify client credentials."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    config_manager = ConfigManager(CONFIG_FILE)
    config_manager.save_new_config(
        {"client_id": client_id, "client_secret": client_secret}
    )
    # Validate what was written so a bad value fails here, not on first use
    config_manager.load_config()
    console.print(f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")
    console.print("Ready to search! Try: [cyan]spotify-picker search <QUERY>[/cyan]")


@app.command()
def token():
    """Request a new access token and show when it expires."""
    config = _load_config()

    async def _token_async():
        async with SpotifyPicker(config) as picker:
            await picker.tokens.refresh()
            access_token = picker.store.get()
            expires_at = picker.store.expires_at

        if access_token is None or expires_at is None:
            console.print("[yellow]⚠️  The token endpoint returned an unusable token.[/yellow]")
            raise typer.Exit(code=1)

        remaining = format_duration(expires_at - time.time())
        console.print(
            f"[green]✓ Access token [dim]{token_preview(access_token)}[/dim] "
            f"is valid for {remaining}.[/green]"
        )

    asyncio.run(_token_async())


@app.command()
def logout():
    """Remove the cached access token."""
    try:
        config = _load_config()
        store = CredentialStore(config.credentials_file, config.token_namespace)
    except ConfigurationError as e:
        log.debug(f"Using default credential location: {e}")
        store = CredentialStore(CONFIG_DIR / "credentials.json", DEFAULT_TOKEN_NAMESPACE)

    store.clear()
    console.print("[green]✓ Cached access token removed.[/green]")


@app.command()
def search(
    query: str = typer.Argument(..., help="Free-text search query."),
    limit: int = typer.Option(
        10, "--limit", "-n", min=1, help="Maximum number of results to show."
    ),
):
    """Search the catalog for tracks."""
    config = _load_config()

    async def _search_async():
        async with SpotifyPicker(config) as picker:
            return await picker.search(query)

    tracks = asyncio.run(_search_async())
    if not tracks:
        console.print(f"[yellow]No tracks found for '{query}'.[/yellow]")
        return
    console.print(build_tracks_table(tracks[:limit], query))


@app.command()
def pick(
    query: str = typer.Argument(..., help="Free-text search query."),
    index: int = typer.Option(
        1, "--index", "-i", min=1, help="Which search result to pick (1-based)."
    ),
):
    """Search the catalog and save the chosen result's preview locally."""
    config = _load_config()

    async def _pick_async():
        with console.status("Searching...") as status:

            def on_state(track_id: str, state: PipelineState) -> None:
                if message := STATE_MESSAGES.get(state):
                    status.update(message)

            async with SpotifyPicker(config, on_state=on_state) as picker:
                tracks = await picker.search(query)
                if len(tracks) < index:
                    console.print(
                        f"[red]✗ Only {len(tracks)} result(s) for '{query}'; "
                        f"cannot pick #{index}.[/red]"
                    )
                    raise typer.Exit(code=1)
                return await picker.pick(tracks[index - 1])

    item = asyncio.run(_pick_async())
    print_pick_panel(item)
