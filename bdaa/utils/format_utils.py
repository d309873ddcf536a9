"""
This module contains helper functions for formatting data into human-readable strings
and for measuring files on disk. Sizes use decimal units so they read the same way
as disc capacities (a "25 GB" disc holds 25,000,000,000 bytes).
"""

from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterable, Optional

from ..config.common import COMPACT_TIMESTAMP_FORMAT


def format_timedelta(td_object: timedelta) -> str:
    """
    Formats a timedelta object into a "HH:MM:SS" string.

    Args:
        td_object: The timedelta object to format.

    Returns:
        A string such as "02:01:01". Returns "00:00:00" if the input is not a
        valid timedelta object.
    """
    if not isinstance(td_object, timedelta):
        return "00:00:00"

    total_seconds = int(td_object.total_seconds())
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02}:{minutes:02}:{seconds:02}"


def format_seconds(seconds: Optional[float]) -> str:
    """Formats a duration in seconds as "H:MM:SS" (or "M:SS" under an hour)."""
    if not seconds or seconds < 0:
        return "0:00"
    total = int(round(seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02}:{secs:02}"
    return f"{minutes}:{secs:02}"


def formatted_size(size_bytes: int) -> str:
    """
    Converts a size in bytes to a human-readable string (B, KB, MB, GB, TB).

    Args:
        size_bytes: The size in bytes.

    Returns:
        A formatted string such as "1.5 KB" or "24.87 GB".
    """
    if size_bytes < 0:
        size_bytes = 0
    if size_bytes == 0:
        return "0 B"

    units = ["B", "KB", "MB", "GB", "TB"]
    factor = 1000.0
    size = float(size_bytes)
    for unit in units:
        if size < factor:
            if unit == "B":
                return f"{int(size)} {unit}"
            return f"{size:.2f} {unit}".replace(".00", "")
        size /= factor
    return f"{size:.2f} PB".replace(".00", "")


def format_gb(size_bytes: int) -> str:
    """Formats bytes as decimal gigabytes with two decimals, e.g. "24.87 GB"."""
    return f"{size_bytes / 1_000_000_000:.2f} GB"


def compact_timestamp(moment: Optional[datetime] = None) -> str:
    """Returns a filesystem-safe timestamp such as "20240131_235959"."""
    return (moment or datetime.now()).strftime(COMPACT_TIMESTAMP_FORMAT)


def contains_any_extensions(file_path_obj: Path, extensions_to_check: Iterable[str]) -> bool:
    """
    Checks if a file's extension is present in a given list (case-insensitive).

    Args:
        file_path_obj: The file to check.
        extensions_to_check: Extensions with or without the leading dot.
    """
    normalized_extensions = {
        ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in extensions_to_check
    }
    if not normalized_extensions:
        return False
    return file_path_obj.suffix.lower() in normalized_extensions


def file_size_bytes(path: Optional[Path]) -> int:
    """Returns the size of `path` in bytes, or 0 if it does not exist or cannot be read."""
    if path is None:
        return 0
    try:
        return path.stat().st_size
    except OSError:
        return 0


def directory_size_bytes(root: Path) -> int:
    """
    Recursively sums the sizes of regular files below `root`.

    Hidden files and directories (names starting with ".") are skipped, so
    Finder metadata such as `.DS_Store` does not count against the disc budget.
    """
    if not root.is_dir():
        return 0
    total = 0
    for path in root.rglob("*"):
        relative_parts = path.relative_to(root).parts
        if any(part.startswith(".") for part in relative_parts):
            continue
        if path.is_file() and not path.is_symlink():
            total += file_size_bytes(path)
    return total
