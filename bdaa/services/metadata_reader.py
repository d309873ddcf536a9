"""
Reading descriptive tags (title, artist, album, track number) with mutagen.

Tags are read in two passes. The first pass uses mutagen's "easy" interface,
which maps format-specific fields to common keys. The second pass walks the raw
tag frames and fills whatever is still missing from identifier-based keys:
ID3 (`TIT2`, `TPE1`, `TALB`, `TRCK`), MP4 atoms (`©nam`, `©ART`, `©alb`,
`trkn`) and Vorbis comments (`title`, `artist`, `album`, `tracknumber`).

Files mutagen cannot open at all get a "Track N" placeholder.
"""

from pathlib import Path
from typing import Any, Optional

import mutagen
from loguru import logger
from mutagen import MutagenError

from ..config.video import UNKNOWN_ALBUM, UNKNOWN_ARTIST
from ..domain.models import TrackMetadata

_IDENTIFIER_FIELDS = {
    "title": ("title", "tit2", "©nam"),
    "artist": ("artist", "tpe1", "©art"),
    "album": ("album", "talb", "©alb", "albumtitle"),
    "tracknumber": ("tracknumber", "trck", "trkn"),
}


def _first_value(value: Any) -> Optional[str]:
    """Reduces a mutagen tag value (frame, list, tuple) to its first text."""
    if value is None:
        return None
    if hasattr(value, "text"):
        value = value.text
    if isinstance(value, (list, tuple)):
        if not value:
            return None
        value = value[0]
        # MP4 `trkn` is a list of (number, total) tuples.
        if isinstance(value, tuple):
            value = value[0] if value else None
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_track_number(value: Optional[str]) -> Optional[int]:
    """Parses "3", "3/12" or "03" into 3. Returns None for anything else."""
    if not value:
        return None
    head = value.split("/")[0].strip()
    try:
        return int(head)
    except ValueError:
        return None


def _open(path: Path, easy: bool):
    try:
        return mutagen.File(str(path), easy=easy)
    except (MutagenError, OSError) as e:
        logger.debug(f"mutagen could not read {path.name}: {e}")
        return None


def placeholder_metadata(track_index: int) -> TrackMetadata:
    """Metadata for a track whose tags cannot be read. `track_index` is 1-based."""
    return TrackMetadata(title=f"Track {track_index}", artist="", album="", track_number=track_index)


def read_metadata(path: Path, track_index: int) -> TrackMetadata:
    """
    Reads the descriptive tags of one track.

    Args:
        path: The source audio file.
        track_index: 1-based position in the track list, used for the placeholder.

    Returns:
        The tags found, with the file stem, "Unknown Artist", "Unknown Album" and
        track 1 standing in for missing fields.
    """
    easy_file = _open(path, easy=True)
    raw_file = _open(path, easy=False)
    if easy_file is None and raw_file is None:
        logger.info(f"No readable tags in {path.name}; using placeholder title.")
        return placeholder_metadata(track_index)

    found: dict[str, str] = {}

    if easy_file is not None and easy_file.tags:
        for key in _IDENTIFIER_FIELDS:
            try:
                text = _first_value(easy_file.tags.get(key))
            except (KeyError, ValueError):
                text = None
            if text:
                found[key] = text

    if raw_file is not None and raw_file.tags:
        for tag_key, tag_value in raw_file.tags.items():
            identifier = str(tag_key).lower()
            for field, identifiers in _IDENTIFIER_FIELDS.items():
                if field in found or identifier not in identifiers:
                    continue
                text = _first_value(tag_value)
                if text:
                    found[field] = text

    return TrackMetadata(
        title=found.get("title") or path.stem,
        artist=found.get("artist") or UNKNOWN_ARTIST,
        album=found.get("album") or UNKNOWN_ALBUM,
        track_number=parse_track_number(found.get("tracknumber")) or 1,
    )
