"""Shared utility functions."""

from __future__ import annotations

import os
from pathlib import Path

_UNITS = ("B", "KB", "MB", "GB", "TB")


def xdg_config_home() -> Path:
    """Return XDG_CONFIG_HOME, defaulting to ~/.config."""
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


def canonical_path(path: Path | str) -> str:
    """Return the absolute, symlink-resolved form of *path* used as a cache key."""
    return os.path.realpath(os.path.abspath(os.fspath(path)))


def bytes_to_human(size_bytes: int) -> str:
    """Convert a byte count to a human-readable string.

    Picks the largest unit up to TB that keeps the value below 1024 and
    prints two decimals with trailing zeros trimmed: ``1536 -> "1.5 KB"``,
    ``1048576 -> "1 MB"``. Plain bytes are always whole numbers.
    """
    value = float(size_bytes)
    index = 0
    while index < len(_UNITS) - 1 and value >= 1024:
        value /= 1024
        index += 1
    if index == 0:
        return f"{size_bytes} B"
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {_UNITS[index]}"


def format_elapsed(seconds: float) -> str:
    """Format an elapsed time as a human-readable string."""
    if seconds < 1:
        return f"{seconds * 1000:.0f} ms"
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes = int(seconds) // 60
    secs = seconds - minutes * 60
    return f"{minutes}m {secs:.0f}s"
