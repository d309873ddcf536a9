"""
Probing audio files with ffprobe.

The probe asks for the first audio stream's codec name, channel count, sample
rate and bit depth plus the container duration, as JSON. Parsing is defensive:
absent or malformed numbers become 0 so a half-readable file still imports.
"""

from pathlib import Path
from pprint import pformat
from typing import Any, Iterable, Optional

import ffmpeg
from loguru import logger

from .models import AudioItem, TrackList

PROBE_ENTRIES = "stream=codec_name,channels,sample_rate,bits_per_raw_sample,bits_per_sample:format=duration"


def _to_int(value: Any) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        try:
            return int(float(str(value).strip()))
        except (TypeError, ValueError):
            return 0


def _to_float(value: Any) -> float:
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return 0.0


def parse_probe_data(probe: dict) -> dict:
    """
    Extracts the audio attributes from ffprobe's JSON output.

    Bit depth prefers `bits_per_raw_sample` and falls back to `bits_per_sample`
    when the former is absent or zero (typical for PCM in WAV).

    Returns:
        A dict with duration, sample_rate, bit_depth, channels and codec_name.
    """
    streams = probe.get("streams") or []
    stream = streams[0] if streams and isinstance(streams[0], dict) else {}
    fmt = probe.get("format") or {}

    bit_depth = _to_int(stream.get("bits_per_raw_sample"))
    if bit_depth <= 0:
        bit_depth = _to_int(stream.get("bits_per_sample"))

    return {
        "duration": _to_float(fmt.get("duration")),
        "sample_rate": _to_int(stream.get("sample_rate")),
        "bit_depth": bit_depth,
        "channels": _to_int(stream.get("channels")),
        "codec_name": str(stream.get("codec_name") or "?"),
    }


def probe_audio(path: Path, ffprobe_path: str = "ffprobe") -> dict:
    """
    Runs ffprobe on one file.

    Raises:
        ffmpeg.Error: If ffprobe exits with a non-zero status.
    """
    probe = ffmpeg.probe(
        str(path),
        cmd=ffprobe_path,
        v="error",
        select_streams="a:0",
        show_entries=PROBE_ENTRIES,
    )
    logger.trace(f"Probe data for {path.name}:\n{pformat(probe)}")
    return parse_probe_data(probe)


def probe_item(path: Path, ffprobe_path: str = "ffprobe") -> AudioItem:
    """
    Creates an `AudioItem` for `path`, filling in probed attributes.

    A probe failure never aborts the import: the item comes back with unknown
    attributes and the failure is logged.
    """
    item = AudioItem.from_path(path)
    try:
        info = probe_audio(path, ffprobe_path)
    except ffmpeg.Error as e:
        stderr = e.stderr.decode("utf-8", errors="replace") if isinstance(e.stderr, bytes) else e.stderr
        logger.warning(f"ffprobe failed for {path.name}: {(stderr or '').strip() or e}")
        return item
    except (OSError, ValueError) as e:
        logger.warning(f"ffprobe failed for {path.name}: {e}")
        return item

    item.duration = info["duration"]
    item.sample_rate = info["sample_rate"]
    item.bit_depth = info["bit_depth"]
    item.channels = info["channels"]
    item.codec_name = info["codec_name"]
    logger.info(f"Probed: {item.describe()}")
    return item


def import_tracks(paths: Iterable[Path], ffprobe_path: str = "ffprobe", track_list: Optional[TrackList] = None) -> TrackList:
    """Probes each path in order and appends it to `track_list` (a new list by default)."""
    track_list = track_list if track_list is not None else TrackList()
    for path in paths:
        track_list.append(probe_item(Path(path), ffprobe_path))
    return track_list
