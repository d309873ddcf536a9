"""
Writing the tsMuxeR descriptor (`author.meta`).

tsMuxeR is strict about this file, so it is produced byte for byte in this form:

    MUXOPT --blu-ray --vbr 20000 --auto-chapters=0 --custom-chapters=00:00:00;00:03:12
    V_MPEG4/ISO/AVC, /path/video.h264, fps=23.976, level=4.1
    A_LPCM, /path/program_lpcm.wav, bitDepth=24, lang=eng

`track=1` is added to the video or audio line only when that file is a
container rather than a raw elementary stream. `bitDepth=24` appears only for
LPCM. Chapter times are read back from the chapter list and rounded to whole
seconds (500 ms and above round up).
"""

from pathlib import Path
from typing import Sequence

from loguru import logger

from ..config.audio import AUDIO_CONTAINER_EXTENSIONS, MuxAudioType
from ..config.common import META_FILENAME
from ..config.video import VIDEO_CONTAINER_EXTENSIONS, VIDEO_LEVEL

MUXOPT_LINE = "MUXOPT --blu-ray --vbr 20000 --auto-chapters=0"
VIDEO_TOKEN = "V_MPEG4/ISO/AVC"


def chapter_to_whole_seconds(timestamp: str) -> str:
    """
    Converts "HH:MM:SS.mmm" to "HH:MM:SS", rounding 500 ms and above up.

    Returns an empty string if `timestamp` is not a chapter time.
    """
    parts = timestamp.split(":")
    if len(parts) < 3:
        return ""
    sec_parts = parts[2].split(".")

    def _int(text: str) -> int:
        try:
            return int(text)
        except ValueError:
            return 0

    total = _int(parts[0]) * 3600 + _int(parts[1]) * 60 + _int(sec_parts[0])
    if len(sec_parts) > 1 and _int(sec_parts[1]) >= 500:
        total += 1
    return f"{total // 3600:02d}:{(total % 3600) // 60:02d}:{total % 60:02d}"


def custom_chapter_times(chapter_text: str) -> list[str]:
    """Whole-second chapter times from the contents of a chapter list."""
    times = []
    for line in chapter_text.split("\n"):
        token = line.split(" ")[0] if line else ""
        converted = chapter_to_whole_seconds(token)
        if converted:
            times.append(converted)
    return times


def render_meta(
    video_path: Path,
    audio_path: Path,
    audio_type: MuxAudioType,
    fps: str,
    chapter_times: Sequence[str] = (),
) -> str:
    """Renders the descriptor text. Identical inputs give identical output."""
    meta = MUXOPT_LINE
    if chapter_times:
        meta += " --custom-chapters=" + ";".join(chapter_times)
    meta += "\n"

    meta += f"{VIDEO_TOKEN}, {video_path}"
    if video_path.suffix.lower() in VIDEO_CONTAINER_EXTENSIONS:
        meta += ", track=1"
    meta += f", fps={fps}, level={VIDEO_LEVEL}\n"

    meta += f"{audio_type.meta_token}, {audio_path}"
    if audio_type is MuxAudioType.LPCM:
        meta += ", bitDepth=24"
    if audio_path.suffix.lower() in AUDIO_CONTAINER_EXTENSIONS:
        meta += ", track=1"
    meta += ", lang=eng\n"
    return meta


def write_meta(video_path: Path, audio_path: Path, audio_type: MuxAudioType, fps: str, chapters_path: Path) -> Path:
    """
    Writes `author.meta` next to the video stream and returns its path.

    The chapter list is re-read from `chapters_path`.
    """
    chapter_times = custom_chapter_times(chapters_path.read_text(encoding="utf-8"))
    meta = render_meta(video_path, audio_path, audio_type, fps, chapter_times)
    path = video_path.parent / META_FILENAME
    path.write_text(meta, encoding="utf-8", newline="\n")
    logger.info(f"Meta file: {path.name}")
    logger.debug(f"Meta contents:\n{meta}")
    return path
