"""
Helper functions for formatting data into human-readable strings.
"""


def format_size(bytes_size: int) -> str:
    """Formats bytes into a human-readable size string (e.g., '145.3 KB')."""
    if bytes_size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    while bytes_size >= 1024 and i < len(units) - 1:
        bytes_size /= 1024
        i += 1
    return f"{bytes_size:.1f} {units[i]}"


def format_duration(seconds: float) -> str:
    """
    Formats a duration in seconds into a human-readable string (e.g., '59m 12s').
    """
    s = int(seconds)
    hours, remainder = divmod(s, 3600)
    minutes, secs = divmod(remainder, 60)
    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if secs > 0 or not parts:
        parts.append(f"{secs}s")
    return " ".join(parts)


def format_track_length(duration_ms: int) -> str:
    """Formats a track length as 'm:ss' (e.g., '3:07')."""
    minutes, secs = divmod(max(duration_ms, 0) // 1000, 60)
    return f"{minutes}:{secs:02d}"


def token_preview(token: str, length: int = 8) -> str:
    """Shows only the first characters of a secret."""
    if len(token) <= length:
        return "*" * len(token)
    return f"{token[:length]}…"
