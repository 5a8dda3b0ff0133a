"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any, List, Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from spotify_picker.exceptions import ErrorKind, SpotifyPickerError
from spotify_picker.models.catalog import PickerItem, Track
from spotify_picker.utils.formatting import format_size, format_track_length

SECRET_KEYS = ("client_secret",)

SUGGESTIONS = {
    ErrorKind.NO_CREDENTIAL: [
        "• No access token is cached. Run `spotify-picker token`.",
    ],
    ErrorKind.BAD_TOKEN: [
        "• The access token was rejected. Run `spotify-picker token` to get a new one.",
    ],
    ErrorKind.BAD_OAUTH: [
        "• Verify the client id and secret in the configuration file.",
        "• Run `spotify-picker init --force` with credentials from the developer dashboard.",
    ],
    ErrorKind.FORBIDDEN: [
        "• The app is not allowed to perform this request.",
        "• Check the app's settings in the developer dashboard.",
    ],
    ErrorKind.RATE_LIMITED: [
        "• Too many requests were sent. Wait a moment and try again.",
    ],
    ErrorKind.TRANSPORT: [
        "• A network connection issue occurred.",
        "• Check your internet connection and try again.",
    ],
    ErrorKind.INVALID_ENDPOINT: [
        "• Check `api_base_url` and `auth_base_url` in the configuration file.",
    ],
    ErrorKind.MISSING_PREVIEW: [
        "• This track has no preview. Pick another result with `--index`.",
    ],
    ErrorKind.INVALID_EXPORT_SESSION: [
        "• Make sure ffmpeg is installed and on your PATH.",
        "• Or set `ffmpeg_path` in the configuration file.",
    ],
    ErrorKind.CONFIGURATION: [
        "• Run `spotify-picker init CLIENT_ID CLIENT_SECRET` to create a configuration.",
        "• Use `spotify-picker --show-config` to review the current settings.",
    ],
}


def format_error_with_suggestions(
    error: Exception, context: Optional[dict] = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    if isinstance(error, SpotifyPickerError):
        error_type = error.kind.value
        suggestions = SUGGESTIONS.get(error.kind)
    else:
        error_type = type(error).__name__
        suggestions = None

    if not suggestions:
        suggestions = ["• Run the command with -vv for detailed logs."]

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(str(error))

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(Text("\n".join(suggestions)))

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration, hiding sensitive data."""
    console = Console()
    content = ""
    for key, value in config_data.items():
        if key in SECRET_KEYS:
            value = "********"
        content += f"{key} = {escape(str(value))}\n"

    console.print(
        Panel(
            content.strip(),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def build_tracks_table(tracks: List[Track], query: str) -> Table:
    """Builds a numbered table of search results."""
    table = Table(title=f"Results for '{escape(query)}'", box=box.ROUNDED)
    table.add_column("#", style="dim", justify="right")
    table.add_column("Title", style="bold")
    table.add_column("Artists", style="cyan")
    table.add_column("Album")
    table.add_column("Length", justify="right")
    table.add_column("E", justify="center")
    table.add_column("Preview", justify="center")

    for index, track in enumerate(tracks, 1):
        table.add_row(
            str(index),
            escape(track.name),
            escape(track.artist_names),
            escape(track.album.name),
            format_track_length(track.duration_ms),
            "[red]E[/red]" if track.explicit else "",
            "[green]✓[/green]" if track.preview_url else "[dim]✗[/dim]",
        )
    return table


def print_pick_panel(item: PickerItem):
    """Displays the picked track and where its preview was saved."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    track = item.track
    table.add_row("Title:", escape(track.name))
    table.add_row("Artists:", escape(track.artist_names))
    table.add_row("Album:", escape(track.album.name))
    table.add_row("Length:", format_track_length(track.duration_ms))
    size = item.local_path.stat().st_size if item.local_path.is_file() else 0
    table.add_row("File:", f"[dim]{item.local_path}[/dim] ({format_size(size)})")

    console.print(
        Panel(
            table,
            title="[bold green]✓ Preview Ready[/bold green]",
            border_style="green",
            expand=False,
        )
    )
